"""Pipeline orchestration for the speck-group focal plane analysis."""

from dataclasses import dataclass
from pathlib import Path

import numpy as np

from .aggregate import ResultsTable, aggregate
from .config import DEFAULT_HALF_WINDOW, DEFAULT_NOISE, DO_QC
from .cropping import EdgePositions, check_orientation, crop_group, crop_region
from .edges import locate_edges
from .errors import PreconditionError
from .focus import check_window, select_focal_slice
from .geometry import VolumeGeometry
from .io_utils import generate_iterative_filename, geometry_from_metadata, load_volume, read_metadata, timer, write_results_csv
from .landmarks import LabeledPoints, LandmarkSearch, canonicalize, find_landmarks


@dataclass(frozen=True)
class SpeckAnalysis:
    table: ResultsTable
    labeled: LabeledPoints
    search: LandmarkSearch
    focal_slice: int
    group: np.ndarray
    edges: EdgePositions | None = None
    flipped: bool = False


def analyze_group(
    group: np.ndarray,
    geom: VolumeGeometry,
    noise: float = DEFAULT_NOISE,
    half_window: int = DEFAULT_HALF_WINDOW,
    detector=None,
    verbose: bool = True,
) -> SpeckAnalysis:
    """Focal slice, speck search, labelling and window statistics on a cropped speck group."""
    group = np.asarray(group, dtype=np.float32)

    with timer("Focal slice", verbose):
        focal = select_focal_slice(group, verbose=verbose)
        check_window(focal, half_window, group.shape[0])

    with timer("Speck search", verbose):
        search = find_landmarks(group[focal - 1], detector=detector, noise=noise, verbose=verbose)
        labeled = canonicalize(search.points, geom)
        if verbose:
            for lab, (x, y) in labeled.as_dict().items():
                print(f"  {lab:>10s}: ({x:7.1f}, {y:7.1f}) px")

    with timer("Window statistics", verbose):
        table = aggregate(group, focal, labeled, geom, half_window=half_window, verbose=verbose)

    return SpeckAnalysis(table=table, labeled=labeled, search=search, focal_slice=focal, group=group)


def analyze_volume(
    vol: np.ndarray,
    geom: VolumeGeometry,
    noise: float = DEFAULT_NOISE,
    half_window: int = DEFAULT_HALF_WINDOW,
    detector=None,
    verbose: bool = True,
) -> SpeckAnalysis:
    vol = np.asarray(vol, dtype=np.float32)
    if vol.ndim != 3 or 0 in vol.shape:
        raise PreconditionError("load", f"expected a non-empty (N, H, W) stack, got shape={vol.shape}")

    with timer("Orientation + crop", verbose):
        vol, flipped = check_orientation(vol, verbose=verbose)
        vol = crop_region(vol, verbose=verbose)

    with timer("Edges + group crop", verbose):
        edges = locate_edges(vol, geom, verbose=verbose)
        group = crop_group(vol, edges, geom, verbose=verbose)

    result = analyze_group(group, geom, noise=noise, half_window=half_window, detector=detector, verbose=verbose)
    return SpeckAnalysis(
        table=result.table,
        labeled=result.labeled,
        search=result.search,
        focal_slice=result.focal_slice,
        group=result.group,
        edges=edges,
        flipped=flipped,
    )


def run_pipeline(
    input_path: Path,
    output_path: Path | None = None,
    out_dir: Path | None = None,
    pixel_spacing_mm=None,
    slice_thickness_mm: float | None = None,
    noise: float = DEFAULT_NOISE,
    half_window: int = DEFAULT_HALF_WINDOW,
    do_qc: bool = DO_QC,
    verbose: bool = True,
) -> Path:
    print("=" * 60)
    print("Speck Group Focal Plane Analysis")
    print("=" * 60)

    input_path = Path(input_path)
    if not input_path.exists():
        raise FileNotFoundError(f"Input not found: {input_path}")

    with timer("Load volume", verbose):
        vol = load_volume(input_path)
        if verbose:
            print(f"  Loaded {vol.shape[0]} slices of {vol.shape[2]}x{vol.shape[1]} px")

    meta = {}
    if pixel_spacing_mm is None or slice_thickness_mm is None:
        meta = read_metadata(input_path)
    geom = geometry_from_metadata(meta, pixel_spacing_mm, slice_thickness_mm, verbose=verbose)
    if verbose:
        geom.print_summary()

    analysis = analyze_volume(vol, geom, noise=noise, half_window=half_window, verbose=verbose)

    if output_path is None:
        output_path = generate_iterative_filename(input_path, out_dir, verbose)
    output_path = Path(output_path)

    with timer("Save", verbose):
        write_results_csv(analysis.table, output_path, noise=analysis.search.noise)
        if verbose:
            print(f"  Saved: {output_path}")

    if do_qc:
        from .qc import generate_qc

        with timer("QC", verbose):
            generate_qc(analysis.group, analysis.table, output_path.parent / "QC", verbose=verbose)

    print("=" * 60)
    print("Pipeline complete")
    print("=" * 60)
    return output_path

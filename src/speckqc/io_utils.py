"""Volume loading, DICOM metadata, result export and small helpers."""

import csv
import re
import time
from contextlib import contextmanager
from datetime import timedelta
from pathlib import Path

import numpy as np
import SimpleITK as sitk

from .config import RESULT_COLUMNS
from .errors import PreconditionError
from .geometry import VolumeGeometry

PIXEL_SPACING_TAG = "0028|0030"
IMAGER_PIXEL_SPACING_TAG = "0018|1164"
SLICE_THICKNESS_TAG = "0018|0050"


def fmt_t(sec: float) -> str:
    return str(timedelta(seconds=int(sec)))


@contextmanager
def timer(label: str, verbose: bool = True):
    t0 = time.time()
    yield
    dt = time.time() - t0
    if verbose:
        print(f"[{label}] {fmt_t(dt)}")


def _series_files(folder: Path) -> list:
    files = sitk.ImageSeriesReader.GetGDCMSeriesFileNames(str(folder))
    if not files:
        raise FileNotFoundError(f"No DICOM series found in: {folder}")
    return list(files)


def load_volume(path: Path) -> np.ndarray:
    """Read a volume file or DICOM series directory as a (N, H, W) float32 stack."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input not found: {path}")

    if path.is_dir():
        reader = sitk.ImageSeriesReader()
        reader.SetFileNames(_series_files(path))
        img = reader.Execute()
    else:
        img = sitk.ReadImage(str(path))

    if img.GetNumberOfComponentsPerPixel() != 1:
        raise PreconditionError("load", f"expected a scalar volume, got {img.GetNumberOfComponentsPerPixel()} components")

    arr = sitk.GetArrayFromImage(img)
    if arr.ndim == 2:
        arr = arr[None, :, :]
    if arr.ndim != 3 or arr.shape[0] == 0:
        raise PreconditionError("load", f"expected a 3D slice stack, got shape={arr.shape}")
    return arr.astype(np.float32)


def read_metadata(path: Path) -> dict:
    path = Path(path)
    first = _series_files(path)[0] if path.is_dir() else str(path)

    reader = sitk.ImageFileReader()
    reader.SetFileName(first)
    reader.LoadPrivateTagsOn()
    reader.ReadImageInformation()
    return {k: reader.GetMetaData(k) for k in reader.GetMetaDataKeys()}


def parse_pixel_spacing(text: str) -> tuple:
    """Parse a backslash-delimited DICOM spacing (row\\column) into (sx, sy) mm/px."""
    parts = [p for p in str(text).strip().split("\\") if p.strip()]
    try:
        row_mm, col_mm = (float(p) for p in parts)
    except ValueError as e:
        raise PreconditionError("metadata", f"unparseable pixel spacing {text!r}") from e
    return col_mm, row_mm


def parse_slice_thickness(text: str) -> float:
    try:
        return float(str(text).strip())
    except ValueError as e:
        raise PreconditionError("metadata", f"unparseable slice thickness {text!r}") from e


def geometry_from_metadata(meta: dict, pixel_spacing=None, slice_thickness=None, verbose: bool = True) -> VolumeGeometry:
    """Build the volume geometry; explicit values override the DICOM tags."""
    if pixel_spacing is None:
        tag = PIXEL_SPACING_TAG if PIXEL_SPACING_TAG in meta else IMAGER_PIXEL_SPACING_TAG
        if tag not in meta:
            raise PreconditionError("metadata", f"pixel spacing tag {PIXEL_SPACING_TAG} missing; pass --pixel-spacing")
        pixel_spacing = parse_pixel_spacing(meta[tag])
    if slice_thickness is None:
        if SLICE_THICKNESS_TAG not in meta:
            raise PreconditionError("metadata", f"slice thickness tag {SLICE_THICKNESS_TAG} missing; pass --slice-thickness")
        slice_thickness = parse_slice_thickness(meta[SLICE_THICKNESS_TAG])
    return VolumeGeometry(pixel_spacing, slice_thickness, verbose=verbose)


def generate_iterative_filename(input_path: Path, out_dir: Path | None, verbose: bool = True) -> Path:
    input_path = Path(input_path)
    stem = input_path.name if input_path.is_dir() else input_path.name.split(".")[0]
    prefix = f"{re.sub(r'[^A-Za-z0-9_-]+', '_', stem).strip('_') or 'volume'}_SPECKS"

    target = Path(out_dir) if out_dir is not None else input_path.parent
    target.mkdir(parents=True, exist_ok=True)

    # next free run number after the highest existing <prefix>_rNN.csv
    run_re = re.compile(re.escape(prefix) + r"_r(\d+)\.csv$")
    runs = [int(m.group(1)) for m in (run_re.match(p.name) for p in target.iterdir()) if m]
    out_file = target / f"{prefix}_r{max(runs, default=0) + 1:02d}.csv"

    if verbose:
        print(f"[OUTPUT] Using iterative filename: {out_file}")
    return out_file


def write_results_csv(table, path: Path, noise: float | None = None) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", newline="") as f:
        if noise is not None:
            f.write(f"# focal_slice={table.focal_slice} half_window={table.half_window} prominence={noise:g}\n")
        w = csv.writer(f)
        w.writerow(RESULT_COLUMNS)
        for r in table.rows:
            w.writerow([r.slice, r.offset] + [f"{v:.3f}" for v in r.as_tuple()[2:]])
    return path


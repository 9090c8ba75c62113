"""Per-slice speck maxima and background statistics around the focal slice."""

from dataclasses import dataclass

import numpy as np

from .config import (
    BACKGROUND_COLOR,
    BACKGROUND_LABEL,
    DEFAULT_HALF_WINDOW,
    LANDMARK_LABELS,
    MARKER_COLOR,
    RESULT_COLUMNS,
)
from .focus import check_window
from .geometry import VolumeGeometry
from .imaging import ellipse_stats
from .landmarks import LabeledPoints


@dataclass(frozen=True)
class SliceRow:
    slice: int
    offset: int
    mean_max: float
    maxima: tuple             # six values in LANDMARK_LABELS order
    background_mean: float

    def as_tuple(self) -> tuple:
        return (self.slice, self.offset, self.mean_max, *self.maxima, self.background_mean)


@dataclass(frozen=True)
class Overlay:
    label: str
    cx: float
    cy: float
    rx: float
    ry: float
    color: tuple


@dataclass(frozen=True)
class ResultsTable:
    rows: tuple
    overlays: tuple
    focal_slice: int
    half_window: int

    columns = RESULT_COLUMNS

    def __len__(self):
        return len(self.rows)

    def row(self, offset: int) -> SliceRow:
        return self.rows[offset + self.half_window]

    def as_array(self) -> np.ndarray:
        return np.asarray([r.as_tuple() for r in self.rows], dtype=np.float64)


def _marker_overlays(labeled: LabeledPoints, rx: float, ry: float) -> tuple:
    out = [
        Overlay(lab, float(x), float(y), rx, ry, MARKER_COLOR)
        for lab, (x, y) in zip(LANDMARK_LABELS, labeled.markers)
    ]
    bx, by = labeled.background
    out.append(Overlay(BACKGROUND_LABEL, float(bx), float(by), 2.0 * rx, 2.0 * ry, BACKGROUND_COLOR))
    return tuple(out)


def aggregate(
    vol: np.ndarray,
    focal_slice: int,
    labeled: LabeledPoints,
    geom: VolumeGeometry,
    half_window: int = DEFAULT_HALF_WINDOW,
    verbose: bool = True,
) -> ResultsTable:
    """Measure every slice in ``focal_slice ± half_window``.

    Each speck contributes the maximum inside an oval of the marker radius;
    the background point contributes the mean inside an oval of twice that
    radius.
    """
    check_window(focal_slice, half_window, vol.shape[0])
    rx, ry = geom.marker_radius_px()
    bx, by = labeled.background

    rows = []
    overlays = ()
    for j in range(-half_window, half_window + 1):
        s = focal_slice + j
        img = vol[s - 1]

        maxima = tuple(ellipse_stats(img, x, y, rx, ry).max for x, y in labeled.markers)
        bg_mean = ellipse_stats(img, bx, by, 2.0 * rx, 2.0 * ry).mean
        rows.append(
            SliceRow(
                slice=s,
                offset=j,
                mean_max=float(np.mean(maxima)),
                maxima=maxima,
                background_mean=bg_mean,
            )
        )
        if j == 0:
            overlays = _marker_overlays(labeled, rx, ry)

    if verbose:
        print("[aggregate] slice  offset  mean_max  background")
        for r in rows:
            print(f"            {r.slice:5d}  {r.offset:+6d}  {r.mean_max:8.1f}  {r.background_mean:10.1f}")

    return ResultsTable(rows=tuple(rows), overlays=overlays, focal_slice=focal_slice, half_window=half_window)

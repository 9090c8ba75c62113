"""Material edge localisation from intensity profile minima."""

import numpy as np

from .config import EXPECTED_FOCUS_MM, PROFILE_END_MARGIN_PX
from .cropping import EdgePositions
from .errors import PreconditionError
from .geometry import VolumeGeometry
from .imaging import sample_profile


def expected_focus_slice(geom: VolumeGeometry, n_slices: int) -> int:
    s = int(round(EXPECTED_FOCUS_MM / geom.slice_thickness_mm))
    if s < 1 or s > n_slices:
        raise PreconditionError(
            "edges",
            f"expected focus slice {s} ({EXPECTED_FOCUS_MM} mm / {geom.slice_thickness_mm} mm) "
            f"is outside the stack (1..{n_slices})",
        )
    return s


def last_min_index(profile) -> int:
    """Index of the profile minimum; the last occurrence wins on ties."""
    p = np.asarray(profile)
    if p.size == 0:
        raise PreconditionError("edges", "empty intensity profile")
    best = 0
    for i in range(1, p.size):
        if p[i] <= p[best]:
            best = i
    return best


def locate_edges(vol: np.ndarray, geom: VolumeGeometry, verbose: bool = True) -> EdgePositions:
    n, h, w = vol.shape
    s = expected_focus_slice(geom, n)
    img = vol[s - 1]

    x_end = max(w - 1 - PROFILE_END_MARGIN_PX, 0)
    row = h // 2
    col = w // 3
    h_prof = sample_profile(img, 0, row, x_end, row)
    v_prof = sample_profile(img, col, 0, col, h - 1)

    edges = EdgePositions(x=last_min_index(h_prof), y=last_min_index(v_prof), slice=s)
    if verbose:
        print(
            f"[edges] slice {s}: x-edge={edges.x} px (min {float(h_prof[edges.x]):.1f}), "
            f"y-edge={edges.y} px (min {float(v_prof[edges.y]):.1f})"
        )
    return edges

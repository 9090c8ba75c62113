"""Orientation check and the two crops that isolate the speck group."""

from dataclasses import dataclass

import numpy as np

from .config import (
    EMPTY_SPACE_THRESHOLD,
    GROUP_OFFSET_X_MM,
    GROUP_OFFSET_Y_MM,
    GROUP_SIZE_MM,
    ORIENTATION_STRIP_PX,
)
from .geometry import VolumeGeometry
from .imaging import crop, rect_stats, rotate180


@dataclass(frozen=True)
class EdgePositions:
    x: int       # column of the vertical material edge
    y: int       # row of the horizontal material edge
    slice: int   # 1-based slice the profiles were sampled on


def check_orientation(
    vol: np.ndarray,
    threshold: float = EMPTY_SPACE_THRESHOLD,
    strip_px: int = ORIENTATION_STRIP_PX,
    verbose: bool = True,
):
    """Flip the stack by 180° when the lower-right edge strip holds no phantom material.

    Returns ``(vol, flipped)``; ``vol`` is a new array when flipped.
    """
    _n, h, w = vol.shape
    strip_px = min(int(strip_px), w)
    st = rect_stats(vol, w - strip_px, h // 2, strip_px, h - h // 2)

    flipped = st.mean < float(threshold)
    if verbose:
        state = "empty -> rotating 180°" if flipped else "OK"
        print(f"[orient] right-edge strip mean={st.mean:.1f} (threshold {threshold:.0f}): {state}")
    if flipped:
        vol = rotate180(vol)
    return vol, flipped


def crop_region(vol: np.ndarray, verbose: bool = True) -> np.ndarray:
    _n, h, w = vol.shape
    out = crop(vol, 2 * w // 3, h // 2, w // 3, h // 3, stage="crop-region")
    if verbose:
        print(f"[crop] region {w}x{h} -> {out.shape[2]}x{out.shape[1]} px")
    return out


def group_rect(edges: EdgePositions, geom: VolumeGeometry):
    x0 = int(round(edges.x + geom.mm_to_px_x(GROUP_OFFSET_X_MM)))
    y0 = int(round(edges.y + geom.mm_to_px_y(GROUP_OFFSET_Y_MM)))
    w = int(round(geom.mm_to_px_x(GROUP_SIZE_MM)))
    h = int(round(geom.mm_to_px_y(GROUP_SIZE_MM)))
    return x0, y0, w, h


def crop_group(vol: np.ndarray, edges: EdgePositions, geom: VolumeGeometry, verbose: bool = True) -> np.ndarray:
    x0, y0, w, h = group_rect(edges, geom)
    out = crop(vol, x0, y0, w, h, stage="crop-group")
    if verbose:
        print(f"[crop] speck group at ({x0}, {y0}) size {out.shape[2]}x{out.shape[1]} px")
    return out

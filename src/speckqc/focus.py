"""Focal slice selection: the slice holding the brightest pixel of the speck group."""

import numpy as np

from .errors import PreconditionError


def slice_maxima(vol: np.ndarray) -> np.ndarray:
    return vol.reshape(vol.shape[0], -1).max(axis=1)


def select_focal_slice(vol: np.ndarray, verbose: bool = True) -> int:
    """Return the 1-based slice with the highest maximum; the first one wins on ties."""
    if vol.ndim != 3 or vol.shape[0] == 0 or vol.shape[1] == 0 or vol.shape[2] == 0:
        raise PreconditionError("focus", f"speck group volume has no usable slices (shape={vol.shape})")

    maxima = slice_maxima(vol)
    best_slice = 1
    best_value = maxima[0]
    for s in range(2, maxima.size + 1):
        if maxima[s - 1] > best_value:
            best_value = maxima[s - 1]
            best_slice = s

    if verbose:
        print(f"[focus] focal slice {best_slice}/{maxima.size} (max={float(best_value):.1f})")
    return best_slice


def check_window(focal_slice: int, half_window: int, n_slices: int):
    if half_window < 0:
        raise PreconditionError("aggregate", f"half window must be >= 0, got {half_window}")
    lo, hi = focal_slice - half_window, focal_slice + half_window
    if lo < 1 or hi > n_slices:
        raise PreconditionError(
            "aggregate",
            f"slice window {lo}..{hi} around focal slice {focal_slice} exceeds the stack (1..{n_slices})",
        )

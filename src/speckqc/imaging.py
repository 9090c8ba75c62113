"""Primitive image operations on (N, H, W) slice stacks and single slices."""

from dataclasses import dataclass

import numpy as np
from scipy.ndimage import map_coordinates

from .errors import PreconditionError


@dataclass(frozen=True)
class RegionStats:
    area: int
    mean: float
    min: float
    max: float


def _stats(values: np.ndarray) -> RegionStats:
    values = np.asarray(values, dtype=np.float64)
    return RegionStats(
        area=int(values.size),
        mean=float(values.mean()),
        min=float(values.min()),
        max=float(values.max()),
    )


def _clip_rect(shape, x, y, w, h):
    hh, ww = shape[-2], shape[-1]
    x0 = int(np.clip(int(x), 0, ww))
    y0 = int(np.clip(int(y), 0, hh))
    x1 = int(np.clip(int(x) + int(w), 0, ww))
    y1 = int(np.clip(int(y) + int(h), 0, hh))
    return x0, y0, x1, y1


def crop(vol: np.ndarray, x, y, w, h, stage: str = "crop") -> np.ndarray:
    """Crop every slice to the rectangle (x, y, w, h), clipped to the image."""
    x0, y0, x1, y1 = _clip_rect(vol.shape, x, y, w, h)
    if x1 <= x0 or y1 <= y0:
        raise PreconditionError(
            stage, f"crop rectangle ({x}, {y}, {w}, {h}) lies outside image {vol.shape[-1]}x{vol.shape[-2]}"
        )
    return np.ascontiguousarray(vol[..., y0:y1, x0:x1])


def rotate180(vol: np.ndarray) -> np.ndarray:
    return np.ascontiguousarray(vol[..., ::-1, ::-1])


def sample_profile(image: np.ndarray, x0, y0, x1, y1, n: int | None = None) -> np.ndarray:
    """Bilinear samples along the segment (x0, y0) -> (x1, y1).

    Defaults to one sample per pixel of segment length, so the sample index is
    also the pixel distance from the start point.
    """
    if image.ndim != 2:
        raise ValueError(f"sample_profile expects a 2D slice; got shape={image.shape}")
    if n is None:
        n = int(round(float(np.hypot(x1 - x0, y1 - y0)))) + 1
    n = max(int(n), 1)
    xs = np.linspace(float(x0), float(x1), n)
    ys = np.linspace(float(y0), float(y1), n)
    return map_coordinates(image.astype(np.float32, copy=False), [ys, xs], order=1, mode="nearest")


def rect_stats(arr: np.ndarray, x, y, w, h) -> RegionStats:
    """Statistics over a rectangle; a stack is measured across all of its slices."""
    x0, y0, x1, y1 = _clip_rect(arr.shape, x, y, w, h)
    if x1 <= x0 or y1 <= y0:
        raise PreconditionError("measure", f"rectangle ({x}, {y}, {w}, {h}) lies outside the image")
    return _stats(arr[..., y0:y1, x0:x1])


def ellipse_mask(shape, cx: float, cy: float, rx: float, ry: float) -> np.ndarray:
    if rx <= 0 or ry <= 0:
        raise ValueError(f"ellipse radii must be > 0, got ({rx}, {ry})")
    h, w = shape[-2], shape[-1]
    yy, xx = np.ogrid[:h, :w]
    return ((xx - float(cx)) / float(rx)) ** 2 + ((yy - float(cy)) / float(ry)) ** 2 <= 1.0


def ellipse_stats(image: np.ndarray, cx: float, cy: float, rx: float, ry: float) -> RegionStats:
    mask = ellipse_mask(image.shape, cx, cy, rx, ry)
    if not mask.any():
        raise PreconditionError("measure", f"oval at ({cx:.1f}, {cy:.1f}) does not cover any pixel")
    return _stats(image[mask])

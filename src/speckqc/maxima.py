"""Prominence-based local maxima search and its list-style text output.

A maximum is kept when no higher pixel can be reached from it without
dropping by at least ``prominence`` (its dynamic is >= ``prominence``); the
brightest maximum is always kept. Equal peaks joined above that level are
reported once, the first in (value, row, column) order winning. The search
is one grey-level reconstruction (``skimage.morphology.h_maxima``) followed
by a single labelling pass, so its cost does not grow with the number of
candidate peaks.

The text form mirrors what an imaging toolkit's results list produces when
copied out: an optional ``X Y`` header and an optional 1-based row number in
front of every coordinate pair.
"""

from dataclasses import dataclass

import numpy as np
from scipy.ndimage import label
from skimage.morphology import h_maxima, local_maxima

_EIGHT_CONNECTED = np.ones((3, 3), dtype=bool)


def _component_representatives(mask: np.ndarray):
    """One (y, x) per 8-connected component of ``mask``: its top-left pixel."""
    labels, n = label(mask, structure=_EIGHT_CONNECTED)
    if n == 0:
        return np.empty(0, dtype=int), np.empty(0, dtype=int)
    ys, xs = np.nonzero(labels)
    # np.nonzero is row-major, so the first hit of each label is its top-left pixel.
    _, first = np.unique(labels[ys, xs], return_index=True)
    return ys[first], xs[first]


def _peak_tops(img: np.ndarray, prominence: float) -> np.ndarray:
    if prominence > 0:
        tops = h_maxima(img, prominence).astype(bool)
    else:
        tops = local_maxima(img)
    if not tops.any():
        # h_maxima drops everything once the prominence exceeds the image range
        tops = img == img.max()
    return tops


def find_maxima(image: np.ndarray, prominence: float) -> np.ndarray:
    """Return (K, 2) integer (x, y) maxima sorted by descending intensity."""
    if image.ndim != 2:
        raise ValueError(f"find_maxima expects a 2D slice; got shape={image.shape}")

    img = np.asarray(image, dtype=np.float64)
    if img.size == 0:
        return np.empty((0, 2), dtype=int)
    prominence = max(float(prominence), 0.0)

    ys, xs = _component_representatives(_peak_tops(img, prominence))
    vals = img[ys, xs]
    order = np.lexsort((xs, ys, -vals))

    values, counts = np.unique(vals, return_counts=True)
    shared = set(values[counts > 1].tolist()) if prominence > 0 else set()
    regions = {}
    accepted = []
    for i in order:
        y0, x0, v = int(ys[i]), int(xs[i]), float(vals[i])
        if v in shared:
            if v not in regions:
                regions[v] = (label(img > v - prominence, structure=_EIGHT_CONNECTED)[0], set())
            region_labels, seen = regions[v]
            r = int(region_labels[y0, x0])
            if r in seen:
                continue
            seen.add(r)
        accepted.append((x0, y0))

    return np.asarray(accepted, dtype=int).reshape(-1, 2)


def format_maxima(points, header: bool = True, index: bool = False) -> list[str]:
    tokens = ["X", "Y"] if header else []
    for i, (x, y) in enumerate(np.asarray(points, dtype=int).reshape(-1, 2).tolist(), start=1):
        if index:
            tokens.append(str(i))
        tokens.extend((str(x), str(y)))
    return tokens


@dataclass(frozen=True)
class MaximaDetector:
    """Callable ``(image, prominence) -> tokens`` used by the adaptive speck search."""

    header: bool = True
    index: bool = False

    def __call__(self, image: np.ndarray, prominence: float) -> list[str]:
        return format_maxima(find_maxima(image, prominence), header=self.header, index=self.index)

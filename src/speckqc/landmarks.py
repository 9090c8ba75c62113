"""Adaptive six-speck search and canonical clock labelling.

The maxima finder reports its result as a flat list of text tokens whose
layout is not fixed: the list may start with an ``X Y`` header and every
coordinate pair may be preceded by a 1-based row number. Four layouts are
recognised (see :class:`MaximaFormat`). The search adjusts the prominence
until the token count matches the layout for exactly six specks:

    too many tokens -> raise the prominence by NOISE_STEP
    too few tokens  -> lower the prominence by NOISE_STEP

Specks are then labelled by clock position. The four outermost points by
row (12, 2, 5 and 7 o'clock) are taken from the row ranking directly; the
two middle ranks are split on column, the left one being 10 o'clock and
the right one the centre speck.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Sequence

import numpy as np

from .config import (
    BACKGROUND_LABEL,
    BACKGROUND_OFFSET_MM,
    DEFAULT_NOISE,
    LANDMARK_LABELS,
    MAX_NOISE_ITERATIONS,
    N_SPECKS,
    NOISE_STEP,
)
from .errors import LandmarkSearchError, PreconditionError
from .geometry import VolumeGeometry
from .maxima import MaximaDetector

HEADER_TOKENS = 2

Detector = Callable[[np.ndarray, float], Sequence[str]]


class MaximaFormat(Enum):
    PLAIN = (False, False)
    HEADER = (True, False)
    INDEXED = (False, True)
    HEADER_INDEXED = (True, True)

    @property
    def header(self) -> bool:
        return self.value[0]

    @property
    def index(self) -> bool:
        return self.value[1]

    @property
    def offset(self) -> int:
        """Position of the first x token."""
        return (HEADER_TOKENS if self.header else 0) + (1 if self.index else 0)

    @property
    def stride(self) -> int:
        return 3 if self.index else 2

    @property
    def token_count(self) -> int:
        return (HEADER_TOKENS if self.header else 0) + N_SPECKS * self.stride


def _is_number(v) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def parse_tokens(tokens: Sequence) -> list:
    """Convert tokens to int (or float) where possible; other tokens stay text."""
    out = []
    for tok in tokens:
        if _is_number(tok):
            out.append(tok)
            continue
        s = str(tok).strip()
        if not s:
            continue
        try:
            out.append(int(s))
            continue
        except ValueError:
            pass
        try:
            v = float(s)
        except ValueError:
            out.append(s)
            continue
        if np.isfinite(v) and float(v).is_integer():
            out.append(int(v))
        elif np.isfinite(v):
            out.append(v)
        else:
            out.append(s)
    return out


def classify_tokens(values: Sequence) -> MaximaFormat:
    header = len(values) > 0 and not _is_number(values[0])
    data = values[HEADER_TOKENS:] if header else values
    index = len(data) > 0 and _is_number(data[0]) and data[0] == 1
    return MaximaFormat((header, index))


def extract_points(values: Sequence, fmt: MaximaFormat) -> np.ndarray:
    """Read the N_SPECKS (x, y) pairs of a token list already matching ``fmt``."""
    if len(values) != fmt.token_count:
        raise ValueError(f"{fmt.name} layout needs {fmt.token_count} tokens, got {len(values)}")
    pts = np.zeros((N_SPECKS, 2), dtype=np.float64)
    for k in range(N_SPECKS):
        i = fmt.offset + k * fmt.stride
        x, y = values[i], values[i + 1]
        if not (_is_number(x) and _is_number(y)):
            raise ValueError(f"non-numeric coordinate pair at token {i}: {x!r}, {y!r}")
        pts[k] = (x, y)
    return pts


@dataclass
class SearchState:
    noise: float
    iterations: int = 0
    visited: set = field(default_factory=set)


@dataclass(frozen=True)
class LandmarkSearch:
    points: np.ndarray          # (6, 2) unordered (x, y)
    noise: float                # prominence that produced them
    initial_noise: float
    iterations: int
    fmt: MaximaFormat

    @property
    def adjusted(self) -> bool:
        return self.noise != self.initial_noise


def find_landmarks(
    image: np.ndarray,
    detector: Optional[Detector] = None,
    noise: float = DEFAULT_NOISE,
    step: float = NOISE_STEP,
    max_iterations: int = MAX_NOISE_ITERATIONS,
    verbose: bool = True,
) -> LandmarkSearch:
    if detector is None:
        detector = MaximaDetector()

    state = SearchState(noise=float(noise))
    while True:
        if state.iterations >= max_iterations:
            raise LandmarkSearchError(
                "landmarks",
                f"could not converge on {N_SPECKS} specks after {state.iterations} attempts "
                f"(last prominence {state.noise:g})",
            )
        if state.noise in state.visited:
            raise LandmarkSearchError(
                "landmarks",
                f"could not converge on {N_SPECKS} specks: prominence {state.noise:g} revisited "
                f"after {state.iterations} attempts",
            )
        state.visited.add(state.noise)

        values = parse_tokens(detector(image, state.noise))
        state.iterations += 1
        fmt = classify_tokens(values)
        delta = len(values) - fmt.token_count

        if delta == 0:
            points = extract_points(values, fmt)
            break

        new_noise = state.noise + step if delta > 0 else max(state.noise - step, 0.0)
        if verbose:
            kind = "too many" if delta > 0 else "too few"
            print(
                f"[landmarks] prominence {state.noise:g}: {len(values)} tokens as {fmt.name} "
                f"(want {fmt.token_count}, {kind}) -> {new_noise:g}"
            )
        state.noise = new_noise

    search = LandmarkSearch(
        points=points,
        noise=state.noise,
        initial_noise=float(noise),
        iterations=state.iterations,
        fmt=fmt,
    )
    if verbose:
        print(f"[landmarks] {N_SPECKS} specks at prominence {search.noise:g} ({fmt.name}, {search.iterations} call(s))")
        if search.adjusted:
            print(f"[landmarks] NOTE: non-default prominence {search.noise:g} was needed (default {search.initial_noise:g})")
    return search


@dataclass(frozen=True)
class LabeledPoints:
    """Specks in clock order (center, 12, 2, 5, 7, 10) followed by the background point."""

    xy: np.ndarray  # (7, 2)

    labels = LANDMARK_LABELS + (BACKGROUND_LABEL,)

    @property
    def markers(self) -> np.ndarray:
        return self.xy[:N_SPECKS]

    @property
    def background(self) -> np.ndarray:
        return self.xy[N_SPECKS]

    def as_dict(self) -> dict:
        return {lab: (float(x), float(y)) for lab, (x, y) in zip(self.labels, self.xy)}


def canonicalize(points, geom: VolumeGeometry) -> LabeledPoints:
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    if pts.shape[0] != N_SPECKS:
        raise PreconditionError("canonicalize", f"need exactly {N_SPECKS} points, got {pts.shape[0]}")

    ranked = pts[np.argsort(pts[:, 1], kind="stable")]
    ten, center = ranked[2], ranked[3]
    if ten[0] > center[0]:
        ten, center = center, ten

    bg = (
        pts[:, 0].min() - geom.mm_to_px_x(BACKGROUND_OFFSET_MM),
        pts[:, 1].min() + geom.mm_to_px_y(BACKGROUND_OFFSET_MM),
    )
    xy = np.vstack([center, ranked[0], ranked[1], ranked[4], ranked[5], ten, bg])
    return LabeledPoints(xy=xy)

"""Physical calibration of a volume and mm/pixel helpers."""

from .config import MARKER_RADIUS_MM
from .errors import PreconditionError


class VolumeGeometry:
    """Pixel spacing and slice thickness of a reconstructed volume (read-only)."""

    def __init__(self, pixel_spacing_mm: tuple, slice_thickness_mm: float, verbose: bool = False):
        sx, sy = (float(v) for v in pixel_spacing_mm)
        st = float(slice_thickness_mm)
        if sx <= 0 or sy <= 0:
            raise PreconditionError("metadata", f"pixel spacing must be > 0, got ({sx}, {sy})")
        if st <= 0:
            raise PreconditionError("metadata", f"slice thickness must be > 0, got {st}")

        self._spacing = (sx, sy)
        self._thickness = st

        if verbose:
            print(f"[GEOM] pixel=({sx:.4f}, {sy:.4f}) mm/px, slice={st:.3f} mm")

    @property
    def pixel_spacing_mm(self) -> tuple:
        return self._spacing

    @property
    def slice_thickness_mm(self) -> float:
        return self._thickness

    def mm_to_px_x(self, mm: float) -> float:
        return mm / self._spacing[0]

    def mm_to_px_y(self, mm: float) -> float:
        return mm / self._spacing[1]

    def marker_radius_px(self) -> tuple:
        return self.mm_to_px_x(MARKER_RADIUS_MM), self.mm_to_px_y(MARKER_RADIUS_MM)

    def print_summary(self):
        sx, sy = self._spacing
        rx, ry = self.marker_radius_px()
        print("\n" + "=" * 60)
        print("VOLUME GEOMETRY")
        print("=" * 60)
        print(f"Pixel spacing:    {sx:.4f} x {sy:.4f} mm/px")
        print(f"Slice thickness:  {self._thickness:.3f} mm")
        print(f"Marker radius:    {rx:.2f} x {ry:.2f} px ({MARKER_RADIUS_MM} mm)")
        print("=" * 60 + "\n")

    def __repr__(self):
        return f"VolumeGeometry(pixel_spacing_mm={self._spacing}, slice_thickness_mm={self._thickness})"

"""QC images: speck and background ovals drawn over the focal window."""

from pathlib import Path

import cv2
import imageio.v3 as iio
import matplotlib
import numpy as np

matplotlib.use("Agg")
import matplotlib.pyplot as plt


def to_display_u8(image: np.ndarray, vmin: float | None = None, vmax: float | None = None) -> np.ndarray:
    img = image.astype(np.float32, copy=False)
    if vmin is None:
        vmin = float(np.percentile(img, 1.0))
    if vmax is None:
        vmax = float(np.percentile(img, 99.9))
    scale = max(vmax - vmin, 1e-6)
    return (255.0 * np.clip((img - vmin) / scale, 0.0, 1.0)).astype(np.uint8)


def draw_overlay(image: np.ndarray, overlays, vmin: float | None = None, vmax: float | None = None) -> np.ndarray:
    """Return an RGB uint8 rendering of ``image`` with one oval per overlay."""
    rgb = cv2.cvtColor(to_display_u8(image, vmin, vmax), cv2.COLOR_GRAY2RGB)
    for ov in overlays:
        center = (int(round(ov.cx)), int(round(ov.cy)))
        axes = (max(int(round(ov.rx)), 1), max(int(round(ov.ry)), 1))
        cv2.ellipse(rgb, center, axes, 0.0, 0.0, 360.0, tuple(int(c) for c in ov.color), 1, cv2.LINE_AA)
    return rgb


def generate_qc(group_vol: np.ndarray, table, qc_dir: Path, verbose: bool = True):
    qc_dir = Path(qc_dir)
    qc_dir.mkdir(parents=True, exist_ok=True)

    window = group_vol[table.rows[0].slice - 1 : table.rows[-1].slice]
    vmin = float(np.percentile(window, 1.0))
    vmax = float(np.percentile(window, 99.9))

    focal = draw_overlay(group_vol[table.focal_slice - 1], table.overlays, vmin, vmax)
    iio.imwrite(qc_dir / "focal_overlay.png", focal)

    n = len(table.rows)
    fig, axes = plt.subplots(1, n, figsize=(2.2 * n, 2.6), squeeze=False)
    for ax, row in zip(axes[0], table.rows):
        ax.imshow(draw_overlay(group_vol[row.slice - 1], table.overlays, vmin, vmax))
        ax.set_title(f"slice {row.slice} ({row.offset:+d})", fontsize=8)
        ax.axis("off")
    fig.tight_layout()
    fig.savefig(qc_dir / "window_montage.png", dpi=120)
    plt.close(fig)

    if verbose:
        print(f"QC images saved to: {qc_dir}")

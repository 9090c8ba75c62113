"""Phantom layout constants, defaults and config-file handling."""

import json
from pathlib import Path
from typing import Any, Dict

import yaml

# ==================== PHANTOM LAYOUT (SINGLE SOURCE OF TRUTH) ====================
EMPTY_SPACE_THRESHOLD = 50.0     # Mean below this in the edge strip means no phantom material there
ORIENTATION_STRIP_PX = 10        # Width of the right-edge strip sampled by the orientation check

EXPECTED_FOCUS_MM = 34.0         # Height above the detector where the speck group sits
PROFILE_END_MARGIN_PX = 10       # Horizontal profile stops short of the far edge (zero padding)

GROUP_SIZE_MM = 20.0             # Side of the square window holding the six specks
GROUP_OFFSET_X_MM = 45.0         # Window origin relative to the vertical material edge
GROUP_OFFSET_Y_MM = 26.0         # Window origin relative to the horizontal material edge

N_SPECKS = 6
MARKER_RADIUS_MM = 1.25          # Measurement radius around each speck
BACKGROUND_OFFSET_MM = 0.5       # Background sample offset from the speck bounding corner

# ==================== ADAPTIVE MAXIMA SEARCH ====================
DEFAULT_NOISE = 150.0            # Initial prominence handed to the maxima finder
NOISE_STEP = 25.0
MAX_NOISE_ITERATIONS = 50

# ==================== REPORTING ====================
DEFAULT_HALF_WINDOW = 3          # Slices measured on each side of the focal slice

LANDMARK_LABELS = ("center", "12", "2", "5", "7", "10")
BACKGROUND_LABEL = "background"

RESULT_COLUMNS = (
    "slice",
    "offset",
    "mean_max",
    "max_center",
    "max_12",
    "max_2",
    "max_5",
    "max_7",
    "max_10",
    "background_mean",
)

MARKER_COLOR = (255, 255, 0)      # RGB
BACKGROUND_COLOR = (0, 255, 255)  # RGB

DO_QC = True
# =====================


def load_config(path: Path) -> Dict[str, Any]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    if path.suffix.lower() in (".yml", ".yaml"):
        with open(path, "r") as f:
            return yaml.safe_load(f) or {}
    with open(path, "r") as f:
        return json.load(f)


def merge_cli_into_config(cfg: Dict[str, Any], args) -> Dict[str, Any]:
    """CLI flags override config values when provided."""
    cfg = dict(cfg)
    input_path = args.input or args.input_path
    if input_path is not None:
        cfg["input"] = str(input_path)
    if args.out_dir is not None:
        cfg["out_dir"] = str(args.out_dir)
    if args.output is not None:
        cfg["output"] = str(args.output)
    if args.pixel_spacing is not None:
        cfg["pixel_spacing_mm"] = [float(v) for v in args.pixel_spacing]
    if args.slice_thickness is not None:
        cfg["slice_thickness_mm"] = float(args.slice_thickness)
    if args.noise is not None:
        cfg["noise"] = float(args.noise)
    if args.half_window is not None:
        cfg["half_window"] = int(args.half_window)
    if args.no_qc:
        cfg["do_qc"] = False
    if args.quiet:
        cfg["verbose"] = False

    cfg.setdefault("noise", DEFAULT_NOISE)
    cfg.setdefault("half_window", DEFAULT_HALF_WINDOW)
    cfg.setdefault("do_qc", DO_QC)
    cfg.setdefault("verbose", True)
    return cfg

"""Command line interface for the speck-group analysis."""

import argparse
import sys
from pathlib import Path

import matplotlib

# Must be set before any pyplot import for headless environments.
matplotlib.use("Agg", force=True)

from .config import load_config, merge_cli_into_config
from .errors import SpeckQCError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Locate the six-speck group, pick its focal slice and measure the slice window")

    parser.add_argument("input_path", nargs="?", type=Path, help="Volume file or DICOM series directory (positional)")
    parser.add_argument("--input", type=Path, help="Volume file or DICOM series directory")
    parser.add_argument("--config", type=Path, default=None, help="YAML or JSON config file; CLI flags override it")
    parser.add_argument("--out-dir", type=Path, help="Output directory (file auto-named as *_SPECKS_rNN.csv)")
    parser.add_argument("-o", "--output", type=Path, default=None, help="Explicit output CSV path")

    parser.add_argument("--pixel-spacing", type=float, nargs=2, metavar=("SX", "SY"), default=None, help="Override pixel spacing in mm/px")
    parser.add_argument("--slice-thickness", type=float, default=None, help="Override slice thickness in mm")
    parser.add_argument("--noise", type=float, default=None, help="Initial prominence for the maxima search")
    parser.add_argument("--half-window", type=int, default=None, help="Slices measured on each side of the focal slice")
    parser.add_argument("--no-qc", action="store_true", help="Skip QC overlay images")
    parser.add_argument("--quiet", action="store_true", help="Less console output")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        cfg = load_config(args.config) if args.config is not None else {}
    except Exception as e:
        print(f"ERROR: could not read config: {e}", file=sys.stderr)
        sys.exit(1)
    cfg = merge_cli_into_config(cfg, args)

    if cfg.get("input") is None:
        parser.print_help(sys.stderr)
        print("\nERROR: You must provide an input volume (positional, --input or config 'input').", file=sys.stderr)
        sys.exit(1)

    from .pipeline import run_pipeline

    spacing = cfg.get("pixel_spacing_mm")
    try:
        run_pipeline(
            input_path=Path(cfg["input"]),
            output_path=Path(cfg["output"]) if cfg.get("output") else None,
            out_dir=Path(cfg["out_dir"]) if cfg.get("out_dir") else None,
            pixel_spacing_mm=tuple(spacing) if spacing is not None else None,
            slice_thickness_mm=cfg.get("slice_thickness_mm"),
            noise=float(cfg["noise"]),
            half_window=int(cfg["half_window"]),
            do_qc=bool(cfg["do_qc"]),
            verbose=bool(cfg["verbose"]),
        )
    except SystemExit:
        raise
    except SpeckQCError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"ERROR: {e}", file=sys.stderr)
        if cfg["verbose"]:
            import traceback

            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()

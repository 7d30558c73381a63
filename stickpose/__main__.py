from __future__ import annotations

import argparse
from pathlib import Path

from .ui import run_app


def main() -> None:
    ap = argparse.ArgumentParser(prog="stickpose", description="Pose a 3D stick figure and exchange poses as JSON.")
    ap.add_argument("--config", type=Path, default=None, help="path to config.json (defaults apply when missing)")
    args = ap.parse_args()
    run_app(args.config)


if __name__ == "__main__":
    main()

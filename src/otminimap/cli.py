# src/otminimap/cli.py
"""
Command line helpers for OTMM files.

    python -m otminimap info minimap.otmm
    python -m otminimap import-image minimap.otmm floor-07.png --x 31744 --y 30976 --z 7
    python -m otminimap export-png minimap.otmm out.png --x 32000 --y 31000 --w 512 --h 512 --z 7

Runs headless (SDL dummy drivers); exit code 0 on success, 1 on failure.
"""
from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import List, Optional


def _enable_headless() -> None:
    """Set SDL to dummy drivers so pygame can work without a display/audio device."""
    os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
    os.environ.setdefault("SDL_AUDIODRIVER", "dummy")
    os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")


def _cmd_info(args: argparse.Namespace) -> int:
    from otminimap.core.errors import OtmmFormatError
    from otminimap.core.otmm_io import describe_otmm

    try:
        header = describe_otmm(args.file)
    except (OSError, EOFError, OtmmFormatError) as e:
        logging.getLogger("otminimap.cli").error("cannot read %s: %s", args.file, e)
        return 1

    print(f"file        : {args.file}")
    print(f"version     : {header.version}")
    print(f"flags       : {header.flags:#010x}")
    print(f"description : {header.description}")
    print(f"data start  : {header.data_start}")
    total = 0
    for z in sorted(header.blocks_per_layer):
        print(f"layer {z:>2}    : {header.blocks_per_layer[z]} blocks")
        total += header.blocks_per_layer[z]
    print(f"blocks      : {total}")
    return 0


def _cmd_import_image(args: argparse.Namespace) -> int:
    from otminimap.core.minimap import Minimap
    from otminimap.core.position import Position

    minimap = Minimap()
    if os.path.exists(args.file) and not minimap.load_otmm(args.file):
        return 1
    if not minimap.load_image(args.image, Position(args.x, args.y, args.z), args.factor, mark_seen=True):
        return 1
    return 0 if minimap.save_otmm(args.file, min_size=0) else 1


def _cmd_export_png(args: argparse.Namespace) -> int:
    import pygame
    from otminimap.core.minimap import Minimap

    minimap = Minimap()
    if not minimap.load_otmm(args.file):
        return 1
    ok = minimap.save_image(args.out, pygame.Rect(args.x, args.y, args.w, args.h), args.z)
    return 0 if ok else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="otminimap", description="Inspect and convert OTMM minimap files.")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("info", help="print header and block counts")
    p.add_argument("file")
    p.set_defaults(func=_cmd_info)

    p = sub.add_parser("import-image", help="seed unexplored tiles from a map image")
    p.add_argument("file", help="OTMM file (created if missing)")
    p.add_argument("image")
    p.add_argument("--x", type=int, required=True)
    p.add_argument("--y", type=int, required=True)
    p.add_argument("--z", type=int, required=True)
    p.add_argument("--factor", type=float, default=1.0, help="colour multiplier")
    p.set_defaults(func=_cmd_import_image)

    p = sub.add_parser("export-png", help="render a map region, one pixel per tile")
    p.add_argument("file")
    p.add_argument("out")
    p.add_argument("--x", type=int, required=True)
    p.add_argument("--y", type=int, required=True)
    p.add_argument("--w", type=int, required=True)
    p.add_argument("--h", type=int, required=True)
    p.add_argument("--z", type=int, required=True)
    p.set_defaults(func=_cmd_export_png)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    from otminimap.utils.logging_setup import configure_logging

    _enable_headless()
    configure_logging(logging.DEBUG if args.verbose else logging.INFO)
    return int(args.func(args))


if __name__ == "__main__":
    sys.exit(main())

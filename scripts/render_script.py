#!/usr/bin/env python3
"""Render a drawing script to an image.

CLI wrapper around ScriptInterpreter: loads the render config, sets up
logging, executes the script and (optionally) saves the final canvas.

Usage:
    # Script decides where to save (``save`` command)
    python scripts/render_script.py assets/scripts/robot.dw

    # Custom config, also save the final canvas
    python scripts/render_script.py assets/scripts/robot.dw \
        --config configs/render_v1.yaml --output outputs/robot.png

    # Override canvas size and seed the per-face fill colors
    python scripts/render_script.py scene.dw --size 800,600 --seed 7 --verbose

Outputs:
    - Files written by the script's ``save`` commands
    - --output: final canvas (format from extension, .ppm written directly)
    - --summary: YAML run summary (commands, shapes, timings)
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Tuple

from scanline3d.script import ScriptError, ScriptInterpreter
from scanline3d.utils import fs, logging_config, validators


def canvas_size(text: str) -> Tuple[int, int]:
    """argparse type for ``WIDTH,HEIGHT`` with both values positive."""
    try:
        width, height = (int(v) for v in text.split(','))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected WIDTH,HEIGHT, got '{text}'") from None
    if width <= 0 or height <= 0:
        raise argparse.ArgumentTypeError(f"canvas size must be positive, got {width},{height}")
    return width, height


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render a drawing script with the scanline rasterizer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument('script', type=str, help='Path to the drawing script')
    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='Render config YAML (default: built-in render.v1 defaults)'
    )
    parser.add_argument(
        '--output',
        type=str,
        default=None,
        help='Save the final canvas to this path'
    )
    parser.add_argument(
        '--size',
        type=canvas_size,
        default=None,
        help='Canvas size override as WIDTH,HEIGHT'
    )
    parser.add_argument(
        '--seed',
        type=int,
        default=None,
        help='Seed for per-triangle fill colors'
    )
    parser.add_argument(
        '--no-fill',
        action='store_true',
        help='Draw triangle edges only'
    )
    parser.add_argument(
        '--summary',
        type=str,
        default=None,
        help='Write the run summary as YAML to this path'
    )
    parser.add_argument('--verbose', action='store_true', help='Enable DEBUG logging')
    return parser.parse_args(argv)


def build_config(args) -> validators.RenderConfigV1:
    """Load the config and apply command-line overrides."""
    if args.config:
        cfg = validators.load_render_config(args.config)
    else:
        cfg = validators.default_render_config()

    if args.size:
        width, height = args.size
        cfg.canvas = cfg.canvas.model_copy(update={'width': width, 'height': height})
    if args.seed is not None:
        cfg.fill = cfg.fill.model_copy(update={'seed': args.seed})
    if args.no_fill:
        cfg.fill = cfg.fill.model_copy(update={'enabled': False})
    return cfg


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)
    cfg = build_config(args)

    logging_config.configure_from_settings(cfg.logging, app="render", verbose=args.verbose)
    logger = logging.getLogger(__name__)
    logger.info(f"Canvas: {cfg.canvas.width}×{cfg.canvas.height} px, max color {cfg.canvas.max_color}")

    interp = ScriptInterpreter(config=cfg)
    try:
        interp.load_file(args.script)
        summary = interp.run()
    except FileNotFoundError as e:
        logger.error(str(e))
        return 2
    except ScriptError as e:
        logger.error(f"Render failed: {e}")
        return 1

    if args.output:
        path = interp.canvas.save(args.output)
        summary['saved'].append(path)

    interp.timers.log_summary()

    if args.summary:
        report = dict(summary)
        report['saved'] = [str(p) for p in summary['saved']]
        report['script'] = str(Path(args.script))
        report['timings_s'] = interp.timers.totals()
        fs.atomic_yaml_dump(report, args.summary)
        logger.info(f"Saved summary: {args.summary}")

    logger.info(
        f"Rendered {summary['shapes_rendered']} shapes "
        f"({summary['triangles_drawn']} triangles) in {summary['elapsed_s']:.3f}s"
    )
    logging_config.shutdown()
    return 0


if __name__ == '__main__':
    sys.exit(main())

#!/usr/bin/env python3
"""Render an orbiting-spheres animation through an external converter.

A central sphere and tilted torus with two orbiting spheres, each carrying
moons, rendered once per rotation step. Every frame is streamed to the
converter (ImageMagick by default) as a binary PPM, so the output format
follows the output extension (``.gif`` for an animation).

Usage:
    python scripts/orbit_animation.py --output outputs/orbit.gif

    # Coarser steps, frames also kept as individual images
    python scripts/orbit_animation.py --output orbit.gif --step 30 --frames-dir outputs/frames

    # No converter installed: just write the frames
    python scripts/orbit_animation.py --frames-dir outputs/frames --no-pipe
"""

import argparse
import logging
import sys
from contextlib import nullcontext

import numpy as np

from scanline3d.geometry import GeometryMatrix, TransformStack, shapes
from scanline3d.geometry.matrix import move, rotate_x, rotate_y, rotate_z
from scanline3d.raster import FramePipe, RasterImage
from scanline3d.utils import fs, logging_config, validators
from scanline3d.utils.color import RGB
from scanline3d.utils.profiler import TimerAccumulator

LIGHT_YELLOW = RGB(245, 236, 66)
BLUE = RGB(66, 135, 245)
MAGENTA = RGB(239, 66, 245)
PURPLE = RGB(209, 66, 245)
BROWN = RGB(212, 143, 78)


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Orbiting spheres animation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument('--output', type=str, default='orbit.gif',
                        help='Converter output path (default: orbit.gif)')
    parser.add_argument('--config', type=str, default=None,
                        help='Render config YAML (default: built-in defaults)')
    parser.add_argument('--step', type=int, default=10,
                        help='Rotation step per frame in degrees (default: 10)')
    parser.add_argument('--frames-dir', type=str, default=None,
                        help='Also save every frame as frame_NNN.png here')
    parser.add_argument('--no-pipe', action='store_true',
                        help='Do not start the converter')
    parser.add_argument('--verbose', action='store_true', help='Enable DEBUG logging')
    return parser.parse_args(argv)


def _draw(img, stack, polygons, rng, color=None, local=None):
    """Render the scratch polygons with the stack, then clear them."""
    if local is not None:
        drawn = polygons.transform(local)
    else:
        drawn = polygons
    default_fg = img.fg_color
    if color is not None:
        img.fg_color = color
    try:
        img.render_polygons_with_stack(stack, drawn, rng=rng)
    finally:
        img.fg_color = default_fg
        polygons.clear()


def render_orbit_frame(img: RasterImage, rot: float, rng: np.random.Generator,
                       sphere_steps: int = 20, torus_steps: int = 20) -> None:
    """Draw one frame of the scene at rotation ``rot`` degrees."""
    stack = TransformStack()
    polygons = GeometryMatrix.polygons()
    cx, cy = img.width / 2.0, img.height / 2.0

    stack.push_matrix()
    stack.transform_top(move(cx, cy, 0.0))

    # Center sphere tumbling on all three axes
    stack.push_matrix()
    stack.transform_top(rotate_z(rot) @ rotate_y(rot) @ rotate_x(rot))
    shapes.add_sphere(polygons, (0, 0, 0), 40, sphere_steps)
    _draw(img, stack, polygons, rng)
    stack.pop_matrix()

    # Tilted ring around it
    stack.push_matrix()
    stack.transform_top(rotate_y(rot) @ rotate_z(45))
    shapes.add_torus(polygons, (0, 0, 0), 10, 70, torus_steps)
    _draw(img, stack, polygons, rng)
    stack.pop_matrix()

    # First planet with two moons orbiting about x
    stack.push_matrix()
    stack.transform_top(rotate_z(rot))
    stack.transform_top(move(150, 0, 0))
    shapes.add_sphere(polygons, (0, 0, 0), 30, sphere_steps)
    _draw(img, stack, polygons, rng, MAGENTA, local=rotate_y(rot) @ rotate_x(rot))

    for offset in (80, -80):
        stack.push_matrix()
        stack.transform_top(rotate_x(rot * 3))
        stack.transform_top(move(0, offset, 0))
        shapes.add_sphere(polygons, (0, 0, 0), 20, sphere_steps)
        _draw(img, stack, polygons, rng, LIGHT_YELLOW)
        if offset > 0:
            shapes.add_torus(polygons, (0, 0, 0), 5, 40, torus_steps)
            _draw(img, stack, polygons, rng, BROWN,
                  local=rotate_y(rot * 4) @ rotate_z(-45))
        stack.pop_matrix()
    stack.pop_matrix()

    # Second planet, moons orbiting in the image plane
    stack.push_matrix()
    stack.transform_top(rotate_z(rot))
    stack.transform_top(move(-200, 0, 0))
    shapes.add_sphere(polygons, (0, 0, 0), 30, sphere_steps)
    _draw(img, stack, polygons, rng, BLUE)

    for offset, color in ((80, PURPLE), (-80, None)):
        stack.push_matrix()
        stack.transform_top(rotate_z(-rot * 3))
        stack.transform_top(move(offset, 0, 0))
        shapes.add_sphere(polygons, (0, 0, 0), 20, sphere_steps)
        _draw(img, stack, polygons, rng, color)
        stack.pop_matrix()
    stack.pop_matrix()


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)
    cfg = validators.load_render_config(args.config) if args.config else validators.default_render_config()

    logging_config.configure_from_settings(cfg.logging, app="orbit", verbose=args.verbose)
    logger = logging.getLogger(__name__)

    if args.no_pipe and not args.frames_dir:
        logger.error("--no-pipe needs --frames-dir, nothing would be written")
        return 2
    if args.step <= 0:
        logger.error(f"--step must be positive, got {args.step}")
        return 2

    frames_dir = fs.ensure_dir(args.frames_dir) if args.frames_dir else None
    img = RasterImage.from_config(cfg.canvas)
    rng = np.random.default_rng(cfg.fill.seed)
    frame_timer = TimerAccumulator("frame")

    pipe = nullcontext() if args.no_pipe else FramePipe(
        [args.output], command=cfg.export.convert_command
    )
    with pipe:
        for i, rot in enumerate(range(0, 360, args.step)):
            with logging_config.log_context(frame=i):
                with frame_timer.measure():
                    render_orbit_frame(img, float(rot), rng,
                                       cfg.polygons.sphere_steps, cfg.polygons.torus_steps)
                if not args.no_pipe:
                    pipe.write_frame(img)
                if frames_dir is not None:
                    img.save(fs.frame_path(frames_dir, i))
                logger.debug(f"Rendered at {rot}°")
            img.clear()

    logger.info(f"Rendered {frame_timer.count} frames, mean {frame_timer.mean():.3f}s per frame")
    if not args.no_pipe:
        logger.info(f"Saved animation: {args.output}")
    logging_config.shutdown()
    return 0


if __name__ == '__main__':
    sys.exit(main())

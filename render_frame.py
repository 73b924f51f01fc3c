import argparse
import logging
import sys
import time

from spheretrace.cli import add_render_arguments, config_from_args, log_level
from spheretrace.integrator import render_frame_linear, encode_frame
from spheretrace.image_io import save_png, save_exr
from spheretrace.logging_config import setup_logging

logger = logging.getLogger("spheretrace.render_frame")


def main(argv=None):
    # --- Argument Parsing ---
    parser = argparse.ArgumentParser(description="Render one frame of the SDF scene")
    parser.add_argument('--time', type=float, default=0.0, help='Elapsed time in seconds (drives the camera orbit)')
    parser.add_argument('--output', type=str, default='frame.png', help='PNG output path')
    parser.add_argument('--exr', type=str, default=None, help='Optional EXR path for the linear image')
    add_render_arguments(parser)
    args = parser.parse_args(argv)

    setup_logging(log_level(args), args.log_file)

    try:
        config = config_from_args(args)
    except (OSError, ValueError) as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    logger.info(f"Rendering {config.width}x{config.height} at t={args.time:.2f}s "
                f"(reflections: {config.max_reflections}, soft shadows: {config.soft_shadows}, fog: {config.fog_enabled})")
    logger.info("Compiling renderer (JIT)...")
    start_time = time.time()
    linear = render_frame_linear(args.time, config, progress=args.progress)
    elapsed = time.time() - start_time
    pixels = config.width * config.height
    logger.info(f"Rendering finished in {elapsed:.2f} seconds ({pixels / max(elapsed, 1e-9) / 1e6:.2f} Mpix/s, compile included)")

    try:
        save_png(args.output, encode_frame(linear, config))
        if args.exr:
            save_exr(args.exr, linear)
    except OSError as e:
        logger.error(f"Could not write output: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

import argparse
import logging
import sys
import time

from tqdm import tqdm

from spheretrace.cli import add_render_arguments, config_from_args, log_level
from spheretrace.integrator import render_frame
from spheretrace.image_io import save_animation
from spheretrace.logging_config import setup_logging

logger = logging.getLogger("spheretrace.render_animation")


def main(argv=None):
    # --- Argument Parsing ---
    parser = argparse.ArgumentParser(description="Render the orbiting SDF scene as an animation")
    parser.add_argument('--frames', type=int, default=48, help='Number of frames')
    parser.add_argument('--fps', type=float, default=24.0, help='Playback frame rate')
    parser.add_argument('--start-time', type=float, default=0.0, help='Elapsed time of the first frame')
    parser.add_argument('--output', type=str, default='orbit.gif', help='Animation path (.gif, .mp4, ...)')
    add_render_arguments(parser)
    args = parser.parse_args(argv)

    setup_logging(log_level(args), args.log_file)

    if args.frames <= 0 or args.fps <= 0:
        logger.error("--frames and --fps must be positive")
        return 1
    try:
        config = config_from_args(args)
    except (OSError, ValueError) as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    logger.info(f"Rendering {args.frames} frames of {config.width}x{config.height} at {args.fps:g} fps")

    frames = []
    frame_times = []
    for i in tqdm(range(args.frames), desc="Frames", unit="frame"):
        t = args.start_time + i / args.fps
        start = time.time()
        frames.append(render_frame(t, config, progress=args.progress))
        frame_times.append(time.time() - start)

    # The first frame carries the JIT compile, leave it out of the average
    steady = frame_times[1:] or frame_times
    avg = sum(steady) / len(steady)
    logger.info(f"Average frame time {avg * 1000:.1f}ms ({1.0 / max(avg, 1e-9):.2f} fps), "
                f"first frame {frame_times[0]:.2f}s")

    try:
        save_animation(args.output, frames, args.fps)
    except OSError as e:
        logger.error(f"Could not write output: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""Command line options shared by the render scripts."""
import argparse
import logging

from .config import RenderConfig, load_config


def add_render_arguments(parser: argparse.ArgumentParser) -> argparse.ArgumentParser:
    parser.add_argument('--config', type=str, default=None, help='JSON file with RenderConfig overrides')
    parser.add_argument('--width', type=int, default=None, help='Image width')
    parser.add_argument('--height', type=int, default=None, help='Image height')
    parser.add_argument('--max-reflections', type=int, default=None, help='Maximum mirror bounces')
    parser.add_argument('--band-height', type=int, default=None, help='Rows rendered per compiled call')
    parser.add_argument('--hard-shadows', action='store_true', help='Disable the soft shadow penumbra')
    parser.add_argument('--no-fog', action='store_true', help='Disable distance fog')
    parser.add_argument('--progress', action='store_true', help='Show a progress bar per frame')
    parser.add_argument('--log-level', type=str, default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'], help='Logging verbosity')
    parser.add_argument('--log-file', type=str, default=None, help='Also write the log to this file')
    return parser


def config_from_args(args: argparse.Namespace) -> RenderConfig:
    """Config file first, then command line options on top."""
    overrides = dict(
        width=args.width,
        height=args.height,
        max_reflections=args.max_reflections,
        band_height=args.band_height,
    )
    if args.hard_shadows:
        overrides['soft_shadows'] = False
    if args.no_fog:
        overrides['fog_enabled'] = False
    return load_config(args.config, **overrides)


def log_level(args: argparse.Namespace) -> int:
    return getattr(logging, args.log_level.upper())

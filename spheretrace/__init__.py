"""
spheretrace

Sphere-traced signed-distance-field scene renderer written with JAX.
"""

from .config import RenderConfig, load_config
from .integrator import render_frame, render_frame_linear

__all__ = ['RenderConfig', 'load_config', 'render_frame', 'render_frame_linear']

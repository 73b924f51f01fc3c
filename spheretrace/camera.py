import jax
import jax.numpy as jnp
from flax import struct
from functools import partial

from .types import Ray
from .utils import normalize

WORLD_UP = (0.0, 1.0, 0.0)


@struct.dataclass
class Camera:
    eye: jnp.ndarray      # Shape (3,)
    target: jnp.ndarray   # Shape (3,)
    # Orthonormal basis, built by look_at()
    right: jnp.ndarray
    up: jnp.ndarray
    forward: jnp.ndarray

    @classmethod
    def look_at(cls, eye, target, world_up=WORLD_UP) -> "Camera":
        eye = jnp.asarray(eye, dtype=jnp.float32)
        target = jnp.asarray(target, dtype=jnp.float32)
        forward = normalize(target - eye)
        right = normalize(jnp.cross(jnp.asarray(world_up, dtype=jnp.float32), forward))
        up = jnp.cross(forward, right)
        return cls(eye=eye, target=target, right=right, up=up, forward=forward)

    @classmethod
    def orbit(cls, time, config) -> "Camera":
        """Camera circling the look-at point; phase 0 puts the eye on +z."""
        phase = jnp.asarray(time, dtype=jnp.float32) * config.orbit_speed
        eye = jnp.stack([
            config.orbit_radius * jnp.sin(phase),
            jnp.full_like(phase, config.orbit_height),
            config.orbit_radius * jnp.cos(phase),
        ])
        return cls.look_at(eye, config.look_at)

    def generate_ray(self, frag_coord: jnp.ndarray, resolution) -> Ray:
        """Primary ray through a fragment coordinate (pixel centres at +0.5, y up)."""
        u, v = screen_coords(frag_coord, resolution)
        direction = normalize(self.right * u + self.up * v + self.forward)
        return Ray(origin=self.eye, direction=direction, target=self.target, position=self.eye)


@partial(jax.jit, static_argnames=('resolution',))
def screen_coords(frag_coord: jnp.ndarray, resolution) -> jnp.ndarray:
    """Map a fragment coordinate to aspect-corrected coordinates in [-aspect, aspect] x [-1, 1]."""
    width, height = resolution
    frag_coord = jnp.asarray(frag_coord, dtype=jnp.float32)
    u = (2.0 * frag_coord[..., 0] / width - 1.0) * (width / height)
    v = 2.0 * frag_coord[..., 1] / height - 1.0
    return jnp.stack([u, v], axis=-1)


def pixel_grid(width: int, height: int, row_offset=0, rows=None) -> jnp.ndarray:
    """Fragment coordinates of pixel centres, shape (rows, width, 2), row 0 at the bottom."""
    rows = height if rows is None else rows
    x, y = jnp.meshgrid(jnp.arange(width), jnp.arange(rows) + row_offset)
    return jnp.stack([x, y], axis=-1).astype(jnp.float32) + 0.5

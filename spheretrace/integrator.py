import logging
import time as _time

import jax
import jax.numpy as jnp
import numpy as np
from jax import lax
from functools import partial
from typing import NamedTuple, Tuple
from tqdm import tqdm

from .types import Ray, SurfaceSample
from .camera import Camera, pixel_grid
from .marcher import trace, is_hit, estimate_normal
from .shadow import soft_shadow
from .shading import shade, lookup_material
from .utils import reflect, mix, gamma_encode, to_rgba

logger = logging.getLogger(__name__)


# --- Direct Lighting of One Hit ---
def shade_hit(sample: SurfaceSample, ray: Ray, config) -> Tuple[jnp.ndarray, jnp.ndarray]:
    """Colour and normal at the point `ray` stopped on. Returns (color, normal)."""
    normal = estimate_normal(ray.position, config.normal_epsilon)
    # March from the light down to a point just above the surface
    receiver = ray.position + normal * config.surface_offset
    light_ray = Ray.towards(config.light_position, receiver)
    shadow_factor = soft_shadow(light_ray, config.shadow_hardness_or_none, config)
    return shade(sample, ray, normal, shadow_factor, config), normal


# --- Reflection Loop State ---
class BounceState(NamedTuple):
    ray: Ray
    active: jnp.ndarray        # False once a bounce missed
    count: jnp.ndarray         # Number of layers written so far
    colors: jnp.ndarray        # (max_reflections + 1, 3)
    reflectivity: jnp.ndarray  # (max_reflections + 1,)


def composite_layers(colors: jnp.ndarray, reflectivity: jnp.ndarray, count) -> jnp.ndarray:
    """
    Fold reflection layers back to front.

    Starts from the last written layer and, moving towards layer 0, blends
    each layer's colour with what was accumulated behind it:
    result = mix(color[i], result, reflectivity[i]). Slots at or beyond
    `count` are never folded in, whatever they contain.
    """
    slots = colors.shape[0]
    last = count - 1
    init = colors[last]

    def body(j, acc):
        i = slots - 1 - j
        blended = mix(colors[i], acc, reflectivity[i])
        return jnp.where(i < last, blended, acc)

    return lax.fori_loop(0, slots, body, init)


def composite_reflections(ray: Ray, config) -> jnp.ndarray:
    """Linear colour seen along `ray`, including up to config.max_reflections mirror bounces."""
    slots = config.max_reflections + 1
    background = jnp.asarray(config.fog_color, dtype=jnp.float32)

    init_state = BounceState(
        ray=ray,
        active=jnp.asarray(True),
        count=jnp.asarray(0, dtype=jnp.int32),
        colors=jnp.zeros((slots, 3), dtype=jnp.float32),
        reflectivity=jnp.zeros((slots,), dtype=jnp.float32),
    )

    def scan_body(state, index):
        """One bounce: march, then record a layer and set up the reflected ray."""

        def active_bounce(current_state):
            sample, marched = trace(current_state.ray, config)

            def handle_miss(miss_state):
                # Background layer, nothing shows through it; stop bouncing
                return miss_state._replace(
                    active=jnp.asarray(False),
                    count=miss_state.count + 1,
                    colors=miss_state.colors.at[index].set(background),
                    reflectivity=miss_state.reflectivity.at[index].set(0.0),
                )

            def handle_hit(hit_state):
                color, normal = shade_hit(sample, marched, config)
                material = lookup_material(sample.material_id, config)

                direction = reflect(marched.direction, normal)
                origin = marched.position + direction * config.surface_offset
                next_ray = Ray(
                    origin=origin,
                    direction=direction,
                    target=origin + direction * config.max_distance,
                    position=origin,
                )
                return BounceState(
                    ray=next_ray,
                    active=hit_state.active,
                    count=hit_state.count + 1,
                    colors=hit_state.colors.at[index].set(color),
                    reflectivity=hit_state.reflectivity.at[index].set(material.reflectivity),
                )

            return lax.cond(is_hit(sample, config), handle_hit, handle_miss, current_state)

        # Inactive paths pass through unchanged
        next_state = lax.cond(state.active, active_bounce, lambda s: s, state)
        return next_state, None

    final_state, _ = lax.scan(scan_body, init_state, jnp.arange(slots))
    return composite_layers(final_state.colors, final_state.reflectivity, final_state.count)


# --- Per-Pixel Rendering ---
def render_pixel(camera: Camera, frag_coord: jnp.ndarray, resolution, config) -> jnp.ndarray:
    """Linear, unclamped colour of one fragment."""
    ray = camera.generate_ray(frag_coord, resolution)
    return composite_reflections(ray, config)


@partial(jax.jit, static_argnames=('rows', 'config'))
def render_band(time, row_offset, rows: int, config) -> jnp.ndarray:
    """Linear colours for `rows` image rows starting at `row_offset`, shape (rows, width, 3)."""
    camera = Camera.orbit(time, config)
    frag_coords = pixel_grid(config.width, config.height, row_offset=row_offset, rows=rows)

    pixel_fn = partial(render_pixel, camera, resolution=config.resolution, config=config)
    # Map over the pixels of a row, then over rows
    render_row = jax.vmap(pixel_fn)
    return jax.vmap(render_row)(frag_coords)


def render_frame_linear(time: float, config, progress: bool = False) -> np.ndarray:
    """
    Render a whole frame as linear RGB, shape (height, width, 3), row 0 at the bottom.

    The image is split into bands of config.band_height rows; every band is an
    independent call of the same compiled kernel.
    """
    start = _time.time()
    offsets = range(0, config.height, config.band_height)
    if progress:
        offsets = tqdm(offsets, desc=f"t={time:.2f}s", unit="band", leave=False)

    bands = []
    for row_offset in offsets:
        rows = min(config.band_height, config.height - row_offset)
        band = render_band(jnp.float32(time), jnp.int32(row_offset), rows, config)
        bands.append(np.asarray(band))
    image = np.concatenate(bands, axis=0)

    elapsed = _time.time() - start
    pixels = config.width * config.height
    logger.debug(f"Frame t={time:.3f}s rendered in {elapsed:.2f}s ({pixels / max(elapsed, 1e-9) / 1e6:.2f} Mpix/s)")
    return image


def encode_frame(linear_rgb, config) -> np.ndarray:
    """Gamma-encoded RGBA in [0, 1]."""
    return np.asarray(to_rgba(gamma_encode(jnp.asarray(linear_rgb), gamma=config.gamma)))


def render_frame(time: float, config, progress: bool = False) -> np.ndarray:
    """Gamma-encoded RGBA frame, shape (height, width, 4), row 0 at the bottom."""
    return encode_frame(render_frame_linear(time, config, progress=progress), config)

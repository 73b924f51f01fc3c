import jax.numpy as jnp
import numpy as np
import pytest
import sys
import os

# Add project root to path to allow imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from spheretrace.config import RenderConfig, LIGHTGRAY, MIRROR
from spheretrace.config import RED as RED_ID, BLUE as BLUE_ID
from spheretrace.camera import Camera, screen_coords, pixel_grid
from spheretrace.types import Ray
from spheretrace.marcher import trace, is_hit
from spheretrace.utils import mix
from spheretrace.integrator import (
    shade_hit,
    composite_layers,
    composite_reflections,
    render_pixel,
    encode_frame,
    render_frame,
    render_frame_linear,
)

RED = [1.0, 0.0, 0.0]
GREEN = [0.0, 1.0, 0.0]
BLUE = [0.0, 0.0, 1.0]
CENTER_FRAG = jnp.array([400.0, 300.0])
RESOLUTION = (800, 600)


@pytest.fixture
def config():
    return RenderConfig()


# --- Tests for the camera ---

def test_orbit_starts_on_positive_z(config):
    camera = Camera.orbit(0.0, config)
    assert jnp.allclose(camera.eye, jnp.array([0.0, config.orbit_height, config.orbit_radius]), atol=1e-6)

def test_orbit_keeps_radius_and_height(config):
    camera = Camera.orbit(7.3, config)
    assert jnp.allclose(jnp.linalg.norm(camera.eye[jnp.array([0, 2])]), config.orbit_radius, atol=1e-5)
    assert jnp.allclose(camera.eye[1], config.orbit_height)

def test_camera_basis_is_orthonormal(config):
    camera = Camera.orbit(2.0, config)
    basis = jnp.stack([camera.right, camera.up, camera.forward])
    assert jnp.allclose(basis @ basis.T, jnp.eye(3), atol=1e-5)

def test_center_ray_points_at_target(config):
    camera = Camera.orbit(1.5, config)
    ray = camera.generate_ray(CENTER_FRAG, RESOLUTION)
    expected = (camera.target - camera.eye) / jnp.linalg.norm(camera.target - camera.eye)
    assert jnp.allclose(ray.direction, expected, atol=1e-6)
    assert jnp.allclose(ray.position, camera.eye)

def test_screen_coords_are_aspect_corrected():
    corner = screen_coords(jnp.array([0.0, 0.0]), RESOLUTION)
    assert jnp.allclose(corner, jnp.array([-800.0 / 600.0, -1.0]))
    assert jnp.allclose(screen_coords(CENTER_FRAG, RESOLUTION), jnp.zeros(2))

def test_pixel_grid_uses_pixel_centres():
    grid = pixel_grid(4, 3)
    assert grid.shape == (3, 4, 2)
    assert jnp.allclose(grid[0, 0], jnp.array([0.5, 0.5]))
    assert jnp.allclose(grid[2, 3], jnp.array([3.5, 2.5]))
    band = pixel_grid(4, 3, row_offset=1, rows=2)
    assert jnp.allclose(band[0, 0], jnp.array([0.5, 1.5]))

def test_camera_right_axis_at_phase_zero(config):
    """right = cross(world_up, forward): looking down -z, screen right is world -x."""
    camera = Camera.orbit(0.0, config)
    assert jnp.allclose(camera.right, jnp.array([-1.0, 0.0, 0.0]), atol=1e-6)

@pytest.mark.parametrize("frag, material_id", [
    # Projections of the ball centre (-3, 1, 0) and its mirror image (3, 1, 0)
    ((505.9, 331.6), RED_ID),
    ((294.1, 331.6), BLUE_ID),
])
def test_scene_handedness_on_screen(config, frag, material_id):
    """The red ball shows up in the right half of the frame, the blue block in the left."""
    camera = Camera.orbit(0.0, config)
    sample, _ = trace(camera.generate_ray(jnp.array(frag), RESOLUTION), config)
    assert bool(is_hit(sample, config))
    assert int(sample.material_id) == material_id


# --- Tests for composite_layers ---

def test_two_layers_blend_by_front_reflectivity():
    colors = jnp.array([RED, BLUE])
    reflectivity = jnp.array([0.5, 0.0])
    result = composite_layers(colors, reflectivity, jnp.int32(2))
    assert jnp.allclose(result, jnp.array([0.5, 0.0, 0.5]))

def test_three_layers_fold_back_to_front():
    colors = jnp.array([RED, GREEN, BLUE])
    reflectivity = jnp.array([0.5, 0.5, 0.0])
    result = composite_layers(colors, reflectivity, jnp.int32(3))
    assert jnp.allclose(result, jnp.array([0.5, 0.25, 0.25]))

def test_unwritten_slots_are_ignored():
    colors = jnp.array([RED, BLUE, [jnp.nan] * 3, [jnp.nan] * 3])
    reflectivity = jnp.array([0.5, 0.0, jnp.nan, jnp.nan])
    result = composite_layers(colors, reflectivity, jnp.int32(2))
    assert jnp.allclose(result, jnp.array([0.5, 0.0, 0.5]))

def test_single_layer_is_returned_unchanged():
    colors = jnp.array([GREEN, RED])
    reflectivity = jnp.array([0.9, 0.3])
    result = composite_layers(colors, reflectivity, jnp.int32(1))
    assert jnp.allclose(result, jnp.array(GREEN))


# --- Tests for the reflection loop ---

def test_without_reflections_result_is_direct_shading():
    config = RenderConfig(max_reflections=0)
    ray = Camera.orbit(0.0, config).generate_ray(CENTER_FRAG, RESOLUTION)
    sample, marched = trace(ray, config)
    direct, _ = shade_hit(sample, marched, config)
    assert jnp.allclose(composite_reflections(ray, config), direct, atol=1e-6)

def test_ray_into_the_sky_returns_background(config):
    ray = Ray.towards([0.0, 5.0, 0.0], [0.0, 10.0, 0.0])
    assert jnp.allclose(composite_reflections(ray, config), jnp.array(config.fog_color))

def test_point_behind_ball_is_in_shadow(config):
    """The light, the ball centre and this ground point are collinear."""
    ray = Ray.towards([-4.0, 5.0, -6.0 / 7.0], [-4.0, 0.0, -6.0 / 7.0])
    sample, marched = trace(ray, config)
    assert bool(is_hit(sample, config))
    color, normal = shade_hit(sample, marched, config)
    assert jnp.allclose(normal, jnp.array([0.0, 1.0, 0.0]), atol=1e-3)
    assert jnp.allclose(color, jnp.full(3, 0.8 * config.ambient), atol=1e-4)

def test_ground_reflects_the_sky(config):
    """Straight down onto the ground: one shaded layer, then the reflected ray misses."""
    ray = Ray.towards([0.0, 5.0, 6.0], [0.0, 0.0, 6.0])
    sample, marched = trace(ray, config)
    direct, _ = shade_hit(sample, marched, config)
    reflectivity = config.materials[LIGHTGRAY].reflectivity
    expected = mix(direct, jnp.array(config.fog_color), reflectivity)
    assert jnp.allclose(composite_reflections(ray, config), expected, atol=1e-5)

def test_mirror_hit_differs_from_direct_shading(config):
    """A ray onto a rounded corner of the lens bounces back out to the sky."""
    center = jnp.array([-3.0, 1.0, -4.0])
    diagonal = jnp.ones(3) / jnp.sqrt(3.0)
    ray = Ray.towards(center + diagonal * 6.0, center)
    sample, marched = trace(ray, config)
    assert int(sample.material_id) == MIRROR

    direct, _ = shade_hit(sample, marched, config)
    reflected = composite_reflections(ray, config)
    assert not jnp.allclose(reflected, direct, atol=1e-3)
    expected = mix(direct, jnp.array(config.fog_color), config.materials[MIRROR].reflectivity)
    assert jnp.allclose(reflected, expected, atol=1e-5)


# --- End to end ---

def test_center_pixel_sees_lit_ground():
    config = RenderConfig(max_reflections=0)
    camera = Camera.orbit(0.0, config)
    sample, _ = trace(camera.generate_ray(CENTER_FRAG, RESOLUTION), config)
    assert int(sample.material_id) == LIGHTGRAY

    color = render_pixel(camera, CENTER_FRAG, RESOLUTION, config)
    # Unshadowed, unfogged ground right below the look-at point
    lx, ly, lz = config.light_position
    distance_sq = lx * lx + ly * ly + lz * lz
    diffuse = (ly / np.sqrt(distance_sq)) * config.light_intensity / distance_sq
    expected = 0.8 * (diffuse + diffuse ** 20 + config.ambient)
    assert jnp.allclose(color, jnp.full(3, expected), atol=5e-3)

def test_center_pixel_with_reflections_is_displayable(config):
    camera = Camera.orbit(0.0, config)
    color = render_pixel(camera, CENTER_FRAG, RESOLUTION, config)
    assert bool(jnp.all(jnp.isfinite(color)))
    encoded = encode_frame(color[None, None, :], config)
    assert encoded.shape == (1, 1, 4)
    assert np.all((encoded >= 0.0) & (encoded <= 1.0))

def test_small_frame_shape_and_range():
    # Two bands, the second one shorter
    config = RenderConfig(width=16, height=12, band_height=8)
    frame = render_frame(0.0, config)
    assert frame.shape == (12, 16, 4)
    assert np.all(np.isfinite(frame))
    assert np.all((frame >= 0.0) & (frame <= 1.0))
    assert np.all(frame[..., 3] == 1.0)

def test_default_frame_is_not_blown_out():
    """Diffuse stays at or below 1 everywhere, so the raised specular term cannot explode."""
    image = render_frame_linear(0.0, RenderConfig(width=32, height=24, band_height=24))
    # Brightest case: lightgray ground right below the light, 0.8 * (60/64 + (60/64)**20 + 0.1)
    assert np.all(np.isfinite(image))
    assert float(image.max()) <= 1.1

def test_frames_are_deterministic():
    config = RenderConfig(width=8, height=6, band_height=6)
    first = render_frame(0.5, config)
    second = render_frame(0.5, config)
    assert np.array_equal(first, second)

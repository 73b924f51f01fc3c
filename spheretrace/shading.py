import jax
import jax.numpy as jnp

from .types import Material, Ray, SurfaceSample
from .utils import dot, normalize, mix


def material_table(config) -> Material:
    """Stack the presets plus the background material into arrays indexed by material id."""
    background = Material(base_color=config.fog_color, diffuse=0.0, specular_exponent=1.0, reflectivity=0.0)
    materials = tuple(config.materials) + (background,)
    return Material(
        base_color=jnp.asarray([m.base_color for m in materials], dtype=jnp.float32),
        diffuse=jnp.asarray([m.diffuse for m in materials], dtype=jnp.float32),
        specular_exponent=jnp.asarray([m.specular_exponent for m in materials], dtype=jnp.float32),
        reflectivity=jnp.asarray([m.reflectivity for m in materials], dtype=jnp.float32),
    )

def lookup_material(material_id, config) -> Material:
    table = material_table(config)
    return jax.tree.map(lambda x: x[material_id], table)


def fog_factor(travelled, config) -> jnp.ndarray:
    """Exponential fog amount in [0, 1], zero before fog_start."""
    depth = jnp.maximum(travelled - config.fog_start, 0.0)
    return jnp.clip(1.0 - jnp.exp(-config.fog_density * depth), 0.0, 1.0)


def diffuse_term(position, normal, material: Material, shadow_factor, config) -> jnp.ndarray:
    light_position = jnp.asarray(config.light_position, dtype=jnp.float32)
    to_point = position - light_position
    distance_sq = jnp.maximum(dot(to_point, to_point), config.light_distance_floor)
    light_direction = normalize(to_point)
    lambert = jnp.maximum(0.0, dot(-light_direction, normal))
    return lambert * material.diffuse * shadow_factor * (config.light_intensity / distance_sq)


def shade(sample: SurfaceSample, view_ray: Ray, normal, shadow_factor, config) -> jnp.ndarray:
    """
    Colour of a hit point.

    The specular term is the diffuse term raised to the material's exponent,
    not a reflection-vector highlight.
    """
    material = lookup_material(sample.material_id, config)
    diffuse = diffuse_term(view_ray.position, normal, material, shadow_factor, config)
    specular = jnp.power(diffuse, material.specular_exponent)
    color = material.base_color * (diffuse + specular + config.ambient)

    if config.fog_enabled:
        fog_color = jnp.asarray(config.fog_color, dtype=jnp.float32)
        color = mix(color, fog_color, fog_factor(view_ray.travelled(), config))
    return color

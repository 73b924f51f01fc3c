"""
Render configuration.

Every tunable constant of the renderer lives on one immutable RenderConfig.
All fields are static (not pytree leaves), so a config is hashable and can be
passed to jax.jit as a static argument; changing a value recompiles.
"""
import dataclasses
import json
import logging
from typing import Optional

from flax import struct

from .types import Material, N_MATERIAL_PRESETS

logger = logging.getLogger(__name__)

# --- Material Presets ---
# Order matters: scene primitives refer to these by index.
LIGHTGRAY = 0
RED = 1
GREEN = 2
BLUE = 3
MIRROR = 4

DEFAULT_MATERIALS = (
    Material(base_color=(0.8, 0.8, 0.8), diffuse=1.0, specular_exponent=20.0, reflectivity=0.2),   # lightgray
    Material(base_color=(0.9, 0.15, 0.1), diffuse=0.9, specular_exponent=8.0, reflectivity=0.1),   # red
    Material(base_color=(0.15, 0.8, 0.25), diffuse=0.9, specular_exponent=16.0, reflectivity=0.2), # green
    Material(base_color=(0.15, 0.3, 0.9), diffuse=0.9, specular_exponent=32.0, reflectivity=0.3),  # blue
    Material(base_color=(0.95, 0.95, 0.95), diffuse=0.6, specular_exponent=64.0, reflectivity=0.85),  # mirror
)


def _static(default):
    return struct.field(pytree_node=False, default=default)


@struct.dataclass
class RenderConfig:
    # Output
    width: int = _static(800)
    height: int = _static(600)
    gamma: float = _static(2.2)
    band_height: int = _static(64)  # Rows rendered per compiled call

    # Camera orbit
    orbit_speed: float = _static(0.3)  # Radians per second
    orbit_radius: float = _static(8.0)
    orbit_height: float = _static(4.0)
    look_at: tuple = _static((0.0, 0.0, 0.0))

    # Marching
    max_distance: float = _static(100.0)
    hit_epsilon: float = _static(1e-3)
    normal_epsilon: float = _static(1e-3)
    surface_offset: float = _static(0.01)  # Start offset for shadow and reflection rays

    # Shadows
    shadow_step: float = _static(0.02)
    shadow_hardness: float = _static(16.0)
    soft_shadows: bool = _static(True)

    # Lighting
    light_position: tuple = _static((4.0, 8.0, 6.0))
    light_intensity: float = _static(60.0)  # Keeps diffuse <= 1 on the ground right below the light
    light_distance_floor: float = _static(1e-4)
    ambient: float = _static(0.1)

    # Reflections
    max_reflections: int = _static(3)

    # Fog (also the background colour on a miss)
    fog_enabled: bool = _static(True)
    fog_start: float = _static(12.0)
    fog_density: float = _static(0.08)
    fog_color: tuple = _static((0.6, 0.7, 0.8))

    materials: tuple = _static(DEFAULT_MATERIALS)

    @property
    def resolution(self):
        return (self.width, self.height)

    @property
    def shadow_hardness_or_none(self) -> Optional[float]:
        """Hardness passed to the shadow tracer; None selects hard shadows."""
        return self.shadow_hardness if self.soft_shadows else None

    def validate(self) -> "RenderConfig":
        """Raise ValueError if any value cannot produce an image."""
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Resolution must be positive, got {self.width}x{self.height}")
        if self.band_height <= 0:
            raise ValueError(f"band_height must be positive, got {self.band_height}")
        for name in ('gamma', 'max_distance', 'hit_epsilon', 'normal_epsilon',
                     'surface_offset', 'shadow_step', 'light_distance_floor'):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        if self.shadow_hardness <= 0:
            raise ValueError(f"shadow_hardness must be positive, got {self.shadow_hardness}")
        if self.max_reflections < 0:
            raise ValueError(f"max_reflections must be >= 0, got {self.max_reflections}")
        if self.fog_density < 0 or self.fog_start < 0:
            raise ValueError("fog_start and fog_density must be >= 0")
        for name in ('look_at', 'light_position', 'fog_color'):
            _check_vec3(name, getattr(self, name))
        if len(self.materials) != N_MATERIAL_PRESETS:
            raise ValueError(f"Expected {N_MATERIAL_PRESETS} material presets, got {len(self.materials)}")
        for i, mat in enumerate(self.materials):
            _check_vec3(f"materials[{i}].base_color", mat.base_color)
            if not 0.0 <= mat.reflectivity <= 1.0:
                raise ValueError(f"materials[{i}].reflectivity must be in [0, 1], got {mat.reflectivity}")
        return self


def _check_vec3(name, value):
    if len(value) != 3:
        raise ValueError(f"{name} must have 3 components, got {value!r}")


# --- Serialization ---

_FIELD_NAMES = tuple(f.name for f in dataclasses.fields(RenderConfig))
_MATERIAL_FIELDS = tuple(f.name for f in dataclasses.fields(Material))


def _material_from_dict(data: dict) -> Material:
    unknown = set(data) - set(_MATERIAL_FIELDS)
    if unknown:
        raise ValueError(f"Unknown material keys: {sorted(unknown)}")
    if 'base_color' in data:
        data = dict(data, base_color=tuple(float(c) for c in data['base_color']))
    return Material(**data)


def config_from_dict(data: dict) -> RenderConfig:
    """Build a validated config from plain JSON-style values."""
    unknown = set(data) - set(_FIELD_NAMES)
    if unknown:
        raise ValueError(f"Unknown config keys: {sorted(unknown)}")
    values = {}
    for key, value in data.items():
        if key == 'materials':
            value = tuple(_material_from_dict(m) for m in value)
        elif isinstance(value, list):
            value = tuple(value)  # keep the config hashable
        values[key] = value
    return RenderConfig(**values).validate()


def config_to_dict(config: RenderConfig) -> dict:
    data = {}
    for name in _FIELD_NAMES:
        value = getattr(config, name)
        if name == 'materials':
            value = [{k: getattr(m, k) for k in _MATERIAL_FIELDS} for m in value]
            for m in value:
                m['base_color'] = list(m['base_color'])
        elif isinstance(value, tuple):
            value = list(value)
        data[name] = value
    return data


def load_config(path: Optional[str] = None, **overrides) -> RenderConfig:
    """
    Load a config from a JSON file and apply keyword overrides.

    Keys in the file are RenderConfig field names; missing keys keep their
    defaults. Overrides whose value is None are ignored, which lets command
    line options pass through unchanged when not given.
    """
    data = {}
    if path is not None:
        logger.info(f"Loading render config from {path}")
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a JSON object")
    data.update({k: v for k, v in overrides.items() if v is not None})
    return config_from_dict(data)


def save_config(config: RenderConfig, path: str) -> None:
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(config_to_dict(config), f, indent=2)
    logger.info(f"Render config written to {path}")

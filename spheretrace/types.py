import enum

import jax.numpy as jnp
from flax import struct

from .utils import normalize

# --- Material Table Layout ---
# Ids 0-4 index the five presets held by RenderConfig.materials.
# The background/fog material is appended after them.
N_MATERIAL_PRESETS = 5
BACKGROUND_MATERIAL_ID = N_MATERIAL_PRESETS

# Distance carried by a miss sample. It only marks "no hit", it is not a length.
MISS_DISTANCE = jnp.inf

# --- Type Aliases for Clarity ---
Vec3 = jnp.ndarray  # Shape (3,)
Color = jnp.ndarray  # Linear RGB, shape (3,)


@struct.dataclass
class Material:
    base_color: tuple = (1.0, 1.0, 1.0)  # RGB in [0, 1]
    diffuse: float = 1.0
    specular_exponent: float = 1.0
    reflectivity: float = 0.0  # Fraction of the farther reflection showing through


@struct.dataclass
class SurfaceSample:
    distance: jnp.ndarray     # Scalar signed distance
    material_id: jnp.ndarray  # Scalar int32 index into the material table


@struct.dataclass
class Ray:
    origin: jnp.ndarray     # Shape (3,)
    direction: jnp.ndarray  # Shape (3,), unit length, fixed once built
    target: jnp.ndarray     # Shape (3,), look-at point or light position
    position: jnp.ndarray   # Shape (3,), advanced by marching

    @classmethod
    def towards(cls, origin, target):
        """Build a ray starting at `origin` and pointing at `target`."""
        origin = jnp.asarray(origin, dtype=jnp.float32)
        target = jnp.asarray(target, dtype=jnp.float32)
        return cls(origin=origin, direction=normalize(target - origin), target=target, position=origin)

    def travelled(self):
        return jnp.linalg.norm(self.position - self.origin)


class PrimitiveKind(enum.IntEnum):
    PLANE = 0
    SPHERE = 1
    BOX = 2


@struct.dataclass
class Primitive:
    # Plain tuples so the whole scene stays hashable and static under jit
    kind: PrimitiveKind = struct.field(pytree_node=False)
    center: tuple = struct.field(pytree_node=False, default=(0.0, 0.0, 0.0))
    size: tuple = struct.field(pytree_node=False, default=(1.0, 1.0, 1.0))  # radius in size[0] for spheres
    material_id: int = struct.field(pytree_node=False, default=0)

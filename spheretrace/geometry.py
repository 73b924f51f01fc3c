import jax
import jax.numpy as jnp

from .types import SurfaceSample, Primitive, PrimitiveKind


def _sample(distance, material_id) -> SurfaceSample:
    return SurfaceSample(
        distance=jnp.asarray(distance, dtype=jnp.float32),
        material_id=jnp.asarray(material_id, dtype=jnp.int32),
    )

# --- Primitive Distance Functions ---
# Each takes a point already expressed relative to the primitive's center.

def sd_plane(p: jnp.ndarray, material_id) -> SurfaceSample:
    """Infinite ground plane through the local origin, positive above it."""
    return _sample(p[1], material_id)

def sd_sphere(p: jnp.ndarray, radius, material_id) -> SurfaceSample:
    return _sample(jnp.linalg.norm(p) - radius, material_id)

def sd_box(p: jnp.ndarray, half_extents, material_id) -> SurfaceSample:
    """Axis-aligned box. Exact outside, bounded by the nearest face inside."""
    q = jnp.abs(p) - jnp.asarray(half_extents, dtype=jnp.float32)
    outside = jnp.linalg.norm(jnp.maximum(q, 0.0))
    inside = jnp.minimum(jnp.max(q), 0.0)
    return _sample(outside + inside, material_id)


def evaluate_primitive(primitive: Primitive, point: jnp.ndarray) -> SurfaceSample:
    """Evaluate one primitive at a world-space point."""
    local = point - jnp.asarray(primitive.center, dtype=jnp.float32)
    # Kind is static, so this branch is resolved while tracing
    if primitive.kind == PrimitiveKind.PLANE:
        return sd_plane(local, primitive.material_id)
    if primitive.kind == PrimitiveKind.SPHERE:
        return sd_sphere(local, primitive.size[0], primitive.material_id)
    if primitive.kind == PrimitiveKind.BOX:
        return sd_box(local, primitive.size, primitive.material_id)
    raise ValueError(f"Unknown primitive kind: {primitive.kind!r}")


# --- CSG Combinators ---

def _select(take_a, a: SurfaceSample, b: SurfaceSample) -> SurfaceSample:
    return jax.tree.map(lambda x, y: jnp.where(take_a, x, y), a, b)

def union(a: SurfaceSample, b: SurfaceSample) -> SurfaceSample:
    """Nearer surface wins and keeps its material."""
    return _select(a.distance <= b.distance, a, b)

def intersect(a: SurfaceSample, b: SurfaceSample) -> SurfaceSample:
    """Farther surface wins and keeps its material."""
    return _select(a.distance >= b.distance, a, b)

def subtract(a: SurfaceSample, b: SurfaceSample) -> SurfaceSample:
    """
    Carve `a` out of `b`.

    The cut surface takes `a`'s material. Near the cut boundary the returned
    distance can be smaller than the true distance; marching stays safe, it
    just takes more steps there.
    """
    carved = a.replace(distance=-a.distance)
    return _select(carved.distance > b.distance, carved, b)

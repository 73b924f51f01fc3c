"""
Sphere tracing through the scene's distance field.

A ray is advanced by the field value at its current position; that step can
never pass through a surface as long as the field does not overestimate the
distance. Marching stops once the field drops below the hit epsilon or the
distance travelled from the origin reaches the configured budget. The last
step is cut short so a ray never travels past max_distance. Every other
step covers at least hit_epsilon, so the loop is bounded by
max_distance / hit_epsilon iterations.
"""
import jax
import jax.numpy as jnp
from jax import lax
from functools import partial
from typing import NamedTuple, Tuple

from .types import Ray, SurfaceSample, BACKGROUND_MATERIAL_ID, MISS_DISTANCE
from .scene import evaluate
from .utils import normalize


def miss_sample() -> SurfaceSample:
    return SurfaceSample(
        distance=jnp.asarray(MISS_DISTANCE, dtype=jnp.float32),
        material_id=jnp.asarray(BACKGROUND_MATERIAL_ID, dtype=jnp.int32),
    )

def is_hit(sample: SurfaceSample, config) -> jnp.ndarray:
    return sample.distance < config.hit_epsilon


# --- Marching Loop State ---
class MarchState(NamedTuple):
    position: jnp.ndarray
    travelled: jnp.ndarray
    sample: SurfaceSample
    hit: jnp.ndarray


@partial(jax.jit, static_argnames=('config',))
def trace(ray: Ray, config) -> Tuple[SurfaceSample, Ray]:
    """March `ray` into the scene. Returns the surface sample and the ray advanced to where marching stopped."""
    start_travelled = jnp.linalg.norm(ray.position - ray.origin)
    init_state = MarchState(
        position=ray.position,
        travelled=start_travelled,
        sample=miss_sample(),
        hit=jnp.asarray(False),
    )

    def cond_fun(state):
        return ~state.hit & (state.travelled < config.max_distance)

    def body_fun(state):
        sample = evaluate(state.position)
        hit = is_hit(sample, config)
        # Never step past the distance budget
        step = jnp.where(hit, 0.0, jnp.minimum(sample.distance, config.max_distance - state.travelled))
        return MarchState(
            position=state.position + ray.direction * step,
            travelled=state.travelled + step,
            sample=sample,
            hit=hit,
        )

    final_state = lax.while_loop(cond_fun, body_fun, init_state)

    # Budget exhausted without converging: report the background sentinel
    result = jax.tree.map(
        lambda h, m: jnp.where(final_state.hit, h, m),
        final_state.sample, miss_sample()
    )
    return result, ray.replace(position=final_state.position)


@partial(jax.jit, static_argnames=('epsilon',))
def estimate_normal(point: jnp.ndarray, epsilon: float = 1e-3) -> jnp.ndarray:
    """
    Surface normal from central differences of the distance field.

    At CSG seams the field is not differentiable and the gradient may be tiny
    or skewed; the result is still finite. Smaller epsilons make the seams
    more visible.
    """
    offsets = jnp.eye(3, dtype=jnp.float32) * epsilon
    field_distance = lambda p: evaluate(p).distance
    forward = jax.vmap(lambda o: field_distance(point + o))(offsets)
    backward = jax.vmap(lambda o: field_distance(point - o))(offsets)
    return normalize(forward - backward)

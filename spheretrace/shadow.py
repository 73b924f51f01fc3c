import jax
import jax.numpy as jnp
from jax import lax
from functools import partial
from typing import NamedTuple, Optional

from .types import Ray
from .scene import evaluate
from .utils import dot


class ShadowState(NamedTuple):
    position: jnp.ndarray
    penumbra: jnp.ndarray
    occluded: jnp.ndarray


@partial(jax.jit, static_argnames=('hardness', 'config'))
def soft_shadow(light_ray: Ray, hardness: Optional[float], config) -> jnp.ndarray:
    """
    Visibility between `light_ray.origin` and `light_ray.target`, in [0, 1].

    The renderer starts the ray at the light and targets the shaded point
    (lifted off its surface); the march stops 2 * hit_epsilon short of the
    target so the receiving surface never counts as an occluder.

    Returns 0 as soon as the march touches a surface. Otherwise returns the
    smallest value of hardness * field distance / distance left to the
    target seen along the way. With hardness=None no penumbra is tracked and a
    clear path gives exactly 1.

    The penumbra term is a cheap heuristic, not a physical estimate.
    """
    eps = config.hit_epsilon

    def remaining(position):
        # Measured along the ray so an overshooting last step ends the loop
        return dot(light_ray.target - position, light_ray.direction)

    init_state = ShadowState(
        position=light_ray.origin,
        penumbra=jnp.asarray(1.0, dtype=jnp.float32),
        occluded=jnp.asarray(False),
    )

    def cond_fun(state):
        return ~state.occluded & (remaining(state.position) > 2.0 * eps)

    def body_fun(state):
        distance = evaluate(state.position).distance
        occluded = distance < eps
        penumbra = state.penumbra
        if hardness is not None:
            penumbra = jnp.minimum(penumbra, hardness * distance / remaining(state.position))
        # Fixed minimum step keeps grazing rays from stalling
        step = jnp.where(distance > config.shadow_step, distance, config.shadow_step)
        return ShadowState(
            position=state.position + light_ray.direction * step,
            penumbra=penumbra,
            occluded=occluded,
        )

    final_state = lax.while_loop(cond_fun, body_fun, init_state)
    return jnp.where(final_state.occluded, 0.0, final_state.penumbra)

import jax
import jax.numpy as jnp
from functools import partial


# --- Vector Utilities ---
def dot(v1, v2):
    return jnp.sum(v1 * v2, axis=-1)

def normalize(v):
    """Normalize a vector."""
    # Zero-length vectors (degenerate gradients at CSG seams) stay finite
    norm = jnp.linalg.norm(v, axis=-1, keepdims=True)
    return v / jnp.maximum(norm, 1e-6)

def reflect(v, n):
    """Reflect vector v around normal n."""
    return v - 2 * dot(v, n)[..., None] * n

def mix(a, b, t):
    """Linear blend from a (t=0) to b (t=1), GLSL style."""
    return a * (1.0 - t) + b * t


# --- Output Encoding ---
@partial(jax.jit, static_argnames=('gamma',))
def gamma_encode(rgb_linear: jnp.ndarray, gamma: float = 2.2) -> jnp.ndarray:
    """Clamp a linear colour to [0, 1] and apply a pure power-law gamma."""
    return jnp.power(jnp.clip(rgb_linear, 0.0, 1.0), 1.0 / gamma)

def to_rgba(rgb: jnp.ndarray) -> jnp.ndarray:
    """Append an opaque alpha channel to (..., 3) colours."""
    alpha = jnp.ones(rgb.shape[:-1] + (1,), dtype=rgb.dtype)
    return jnp.concatenate([rgb, alpha], axis=-1)

import jax.numpy as jnp

from .types import Primitive, PrimitiveKind, SurfaceSample
from .geometry import evaluate_primitive, union, intersect, subtract
from .config import LIGHTGRAY, RED, GREEN, BLUE, MIRROR

# The scene is fixed: a ground plane and four solids, two of which are
# CSG pairs. Parameters are read-only and shared by every pixel.

GROUND = Primitive(kind=PrimitiveKind.PLANE, center=(0.0, 0.0, 0.0), material_id=LIGHTGRAY)

BALL = Primitive(kind=PrimitiveKind.SPHERE, center=(-3.0, 1.0, 0.0), size=(1.0,), material_id=RED)

BLOCK = Primitive(kind=PrimitiveKind.BOX, center=(3.0, 0.75, 0.0), size=(0.75, 0.75, 0.75), material_id=BLUE)

# Box with a spherical bite taken out of its top
CARVED_BOX = Primitive(kind=PrimitiveKind.BOX, center=(0.0, 1.0, -4.0), size=(1.0, 1.0, 1.0), material_id=GREEN)
CARVING_SPHERE = Primitive(kind=PrimitiveKind.SPHERE, center=(0.0, 2.0, -4.0), size=(1.2,), material_id=RED)

# Rounded cube: sphere clipped by a box
LENS_SPHERE = Primitive(kind=PrimitiveKind.SPHERE, center=(-3.0, 1.0, -4.0), size=(1.25,), material_id=MIRROR)
LENS_BOX = Primitive(kind=PrimitiveKind.BOX, center=(-3.0, 1.0, -4.0), size=(0.95, 0.95, 0.95), material_id=BLUE)

PRIMITIVES = (GROUND, BALL, BLOCK, CARVED_BOX, CARVING_SPHERE, LENS_SPHERE, LENS_BOX)


def evaluate(point) -> SurfaceSample:
    """Signed distance to the nearest surface and the material found there."""
    point = jnp.asarray(point, dtype=jnp.float32)

    ground = evaluate_primitive(GROUND, point)
    ball = evaluate_primitive(BALL, point)
    block = evaluate_primitive(BLOCK, point)
    carved = subtract(evaluate_primitive(CARVING_SPHERE, point), evaluate_primitive(CARVED_BOX, point))
    lens = intersect(evaluate_primitive(LENS_SPHERE, point), evaluate_primitive(LENS_BOX, point))

    return union(union(union(union(ground, ball), block), carved), lens)

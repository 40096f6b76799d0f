"""
Simulated sensors.

The distance sensor casts a ray from the robot's centre along its heading
and intersects it with every edge of every static entity at once.
"""

import math
from typing import Iterable, Optional

import numpy as np

from ..config import NO_OBSTACLE
from .scene import Entity, Scene, Vector

_EPSILON = 1e-12


def _edge_arrays(entities: Iterable[Entity]):
    starts, ends = [], []
    for entity in entities:
        for start, end in entity.edges():
            starts.append((start.x, start.y))
            ends.append((end.x, end.y))
    return np.asarray(starts, dtype=float).reshape(-1, 2), np.asarray(ends, dtype=float).reshape(-1, 2)


def ray_distance(
    origin: Vector,
    heading: float,
    entities: Iterable[Entity],
    max_range: float = NO_OBSTACLE,
) -> float:
    """
    Distance from `origin` to the nearest entity edge along `heading`.

    Returns `max_range` when no edge is hit (or the nearest hit lies
    beyond it).
    """
    starts, ends = _edge_arrays(entities)
    if len(starts) == 0:
        return max_range

    o = np.array([origin.x, origin.y])
    d = np.array([math.cos(heading), math.sin(heading)])
    e = ends - starts
    w = starts - o

    # o + s*d == start + u*e  solved with 2D cross products
    denom = d[0] * e[:, 1] - d[1] * e[:, 0]
    parallel = np.abs(denom) < _EPSILON
    safe = np.where(parallel, 1.0, denom)
    s = (w[:, 0] * e[:, 1] - w[:, 1] * e[:, 0]) / safe
    u = (w[:, 0] * d[1] - w[:, 1] * d[0]) / safe

    hits = (~parallel) & (s >= 0.0) & (u >= -_EPSILON) & (u <= 1.0 + _EPSILON)
    if not np.any(hits):
        return max_range
    nearest = float(np.min(s[hits]))
    return min(nearest, max_range)


def read_distance(scene: Scene, max_range: Optional[float] = None) -> float:
    """Distance sensor reading for the robot in `scene`. Does not modify it."""
    robot = scene.robot
    return ray_distance(
        robot.position,
        robot.heading,
        scene.entities,
        NO_OBSTACLE if max_range is None else max_range,
    )


def read_timestamp(scene: Scene) -> float:
    """Current simulated time in seconds."""
    return scene.time

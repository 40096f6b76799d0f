"""
RoboML runtime - tree-walking evaluator producing a kinematic scene.

This module provides:
- Evaluator: Executes a Program Tree against a fresh scene
- Scene: Arena layout plus the robot's timestamped trajectory
- ExecutionContext: Explicit stack of call frames
- ExecutionBudget / CancellationToken: Loop ceilings and cooperative abort
- Sensors: Ray-cast distance and simulated clock
"""

from .scene import (
    Vector,
    Entity,
    Robot,
    Snapshot,
    Scene,
    base_scene,
    boundary_walls,
)

from .sensors import (
    NO_OBSTACLE,
    ray_distance,
    read_distance,
    read_timestamp,
)

from .budget import (
    CancellationToken,
    ExecutionBudget,
)

from .context import (
    Frame,
    ExecutionContext,
)

from .interpreter import (
    Evaluator,
    ExecutionResult,
    evaluate,
    run,
)

__all__ = [
    # Scene
    'Vector',
    'Entity',
    'Robot',
    'Snapshot',
    'Scene',
    'base_scene',
    'boundary_walls',

    # Sensors
    'NO_OBSTACLE',
    'ray_distance',
    'read_distance',
    'read_timestamp',

    # Budget
    'CancellationToken',
    'ExecutionBudget',

    # Context
    'Frame',
    'ExecutionContext',

    # Evaluator
    'Evaluator',
    'ExecutionResult',
    'evaluate',
    'run',
]

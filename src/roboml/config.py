"""Simulation settings for the RoboML evaluator and emitter."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Tuple

import yaml

if TYPE_CHECKING:
    from .runtime.scene import Entity

DEFAULT_INITIAL_SPEED = 100.0          # mm/s
DEFAULT_ANGULAR_RATE = math.pi / 2.0   # rad/s
DEFAULT_MAX_ITERATIONS = 100_000
DEFAULT_MAX_DURATION = 5.0             # seconds of wall-clock time per run
DEFAULT_CHECKPOINT_INTERVAL = 1000     # loop iterations between polls
DEFAULT_MAX_CALL_DEPTH = 64
DEFAULT_ARENA_SIZE = (10000.0, 10000.0)
DEFAULT_ROBOT_SIZE = (250.0, 250.0)

# Distance reading when the sensor ray meets nothing
NO_OBSTACLE = 1.0e9


@dataclass
class SimulationConfig:
    """
    Tunable constants for one evaluation run.

    Speeds are mm/s, the angular rate rad/s, durations seconds and sizes
    millimetres.
    """
    initial_speed: float = DEFAULT_INITIAL_SPEED
    angular_rate: float = DEFAULT_ANGULAR_RATE
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    max_duration: Optional[float] = DEFAULT_MAX_DURATION
    checkpoint_interval: int = DEFAULT_CHECKPOINT_INTERVAL
    max_call_depth: int = DEFAULT_MAX_CALL_DEPTH
    arena_size: Tuple[float, float] = DEFAULT_ARENA_SIZE
    robot_size: Tuple[float, float] = DEFAULT_ROBOT_SIZE
    sensor_max_range: float = NO_OBSTACLE
    entities: List["Entity"] = field(default_factory=list)

    def __post_init__(self):
        if self.angular_rate <= 0:
            raise ValueError("angular_rate must be positive")
        if self.max_iterations < 0:
            raise ValueError("max_iterations must not be negative")
        if self.checkpoint_interval < 1:
            raise ValueError("checkpoint_interval must be at least 1")
        if self.max_call_depth < 1:
            raise ValueError("max_call_depth must be at least 1")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SimulationConfig":
        """Build a config from a plain mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"unknown configuration key(s): {', '.join(unknown)}")

        values: Dict[str, Any] = dict(data)
        for key in ("arena_size", "robot_size"):
            if key in values:
                values[key] = _pair(values[key], key)
        if "entities" in values:
            values["entities"] = [_entity(item) for item in values["entities"] or []]
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["arena_size"] = list(self.arena_size)
        data["robot_size"] = list(self.robot_size)
        data["entities"] = [
            {"type": e.kind, "pos": [e.position.x, e.position.y], "size": [e.size.x, e.size.y]}
            for e in self.entities
        ]
        return data


def _pair(value: Any, key: str) -> Tuple[float, float]:
    if isinstance(value, Mapping):
        value = (value.get("x"), value.get("y"))
    try:
        x, y = value
        return float(x), float(y)
    except (TypeError, ValueError):
        raise ValueError(f"{key} must be a pair of numbers, got {value!r}")


def _entity(item: Mapping[str, Any]) -> "Entity":
    from .runtime.scene import Entity, Vector

    if not isinstance(item, Mapping):
        raise ValueError(f"entity must be a mapping, got {item!r}")
    kind = item.get("type", "Block")
    pos = _pair(item.get("pos"), "entity pos")
    size = _pair(item.get("size"), "entity size")
    return Entity(str(kind), Vector(*pos), Vector(*size))


def load_config(path: Path | str) -> SimulationConfig:
    """Load a SimulationConfig from a YAML file. An empty file gives defaults."""
    with Path(path).open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    if not isinstance(data, Mapping):
        raise ValueError(f"configuration in {path} must be a mapping")
    return SimulationConfig.from_dict(data)

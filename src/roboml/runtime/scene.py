"""
Kinematic scene produced by the evaluator.

A scene holds the static layout of the arena, the robot's current state
and the ordered list of snapshots recorded while a program runs. All
lengths are millimetres, angles radians and times seconds. The y axis
grows downward, so a positive heading change turns the robot clockwise.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from ..config import DEFAULT_ARENA_SIZE, DEFAULT_ROBOT_SIZE


@dataclass(frozen=True)
class Vector:
    """A 2D vector in scene coordinates."""
    x: float
    y: float

    def __add__(self, other: "Vector") -> "Vector":
        return Vector(self.x + other.x, self.y + other.y)

    @staticmethod
    def from_angle(angle: float, length: float = 1.0) -> "Vector":
        return Vector(math.cos(angle) * length, math.sin(angle) * length)

    def to_json(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True)
class Entity:
    """
    A static, axis-aligned obstacle.

    `position` is the corner with the smallest coordinates and `size` the
    extent along each axis. Walls usually have one zero extent.
    """
    kind: str           # "Wall" or "Block"
    position: Vector
    size: Vector

    def corners(self) -> List[Vector]:
        p, s = self.position, self.size
        return [
            p,
            Vector(p.x + s.x, p.y),
            Vector(p.x + s.x, p.y + s.y),
            Vector(p.x, p.y + s.y),
        ]

    def edges(self) -> List[tuple]:
        """The outline as (start, end) pairs, degenerate edges dropped."""
        corners = self.corners()
        result = []
        for i, start in enumerate(corners):
            end = corners[(i + 1) % 4]
            if start != end and (start, end) not in result and (end, start) not in result:
                result.append((start, end))
        return result

    def to_json(self) -> Dict[str, Any]:
        return {"type": self.kind, "pos": self.position.to_json(), "size": self.size.to_json()}


@dataclass(frozen=True)
class Snapshot:
    """One immutable recorded robot state at a simulated instant."""
    time: float
    position: Vector
    heading: float
    size: Vector
    speed: float

    def to_json(self) -> Dict[str, Any]:
        return {
            "time": self.time,
            "pos": self.position.to_json(),
            "rad": self.heading,
            "size": self.size.to_json(),
            "speed": self.speed,
        }


@dataclass
class Robot:
    """Mutable robot state; only the evaluator that owns the scene changes it."""
    position: Vector
    size: Vector = field(default_factory=lambda: Vector(*DEFAULT_ROBOT_SIZE))
    heading: float = 0.0
    speed: float = 0.0

    def translate(self, offset: Vector) -> None:
        self.position = self.position + offset

    def turn(self, angle: float) -> None:
        self.heading += angle

    def snapshot(self, time: float) -> Snapshot:
        return Snapshot(
            time=time,
            position=self.position,
            heading=self.heading,
            size=self.size,
            speed=self.speed,
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "pos": self.position.to_json(),
            "size": self.size.to_json(),
            "rad": self.heading,
            "speed": self.speed,
        }


@dataclass
class Scene:
    """Static layout plus the robot's timestamped trajectory."""
    size: Vector
    robot: Robot
    entities: List[Entity] = field(default_factory=list)
    time: float = 0.0
    snapshots: List[Snapshot] = field(default_factory=list)

    def advance(self, duration: float) -> None:
        """Move the clock forward; time never runs backwards."""
        if duration < 0:
            raise ValueError(f"negative duration: {duration}")
        self.time += duration

    def record(self) -> Snapshot:
        """Append a snapshot of the robot at the current time."""
        snap = self.robot.snapshot(self.time)
        self.snapshots.append(snap)
        return snap

    def to_json(self) -> Dict[str, Any]:
        """Plain data transfer object for renderers."""
        return {
            "size": self.size.to_json(),
            "entities": [e.to_json() for e in self.entities],
            "robot": self.robot.to_json(),
            "time": self.time,
            "timestamps": [s.to_json() for s in self.snapshots],
        }


def boundary_walls(width: float, height: float) -> List[Entity]:
    """Four zero-thickness walls enclosing the arena."""
    return [
        Entity("Wall", Vector(0.0, 0.0), Vector(width, 0.0)),
        Entity("Wall", Vector(0.0, 0.0), Vector(0.0, height)),
        Entity("Wall", Vector(width, 0.0), Vector(0.0, height)),
        Entity("Wall", Vector(0.0, height), Vector(width, 0.0)),
    ]


def base_scene(
    arena_size: Sequence[float] = DEFAULT_ARENA_SIZE,
    robot_size: Sequence[float] = DEFAULT_ROBOT_SIZE,
    speed: float = 0.0,
    entities: Optional[Sequence[Entity]] = None,
) -> Scene:
    """
    Create a fresh scene: walled arena with the robot in the centre.

    Args:
        arena_size: Arena width and height (mm)
        robot_size: Robot footprint (mm)
        speed: Initial robot speed (mm/s)
        entities: Extra static obstacles added after the boundary walls
    """
    width, height = float(arena_size[0]), float(arena_size[1])
    robot = Robot(
        position=Vector(width / 2.0, height / 2.0),
        size=Vector(float(robot_size[0]), float(robot_size[1])),
        heading=0.0,
        speed=speed,
    )
    scene = Scene(size=Vector(width, height), robot=robot)
    scene.entities.extend(boundary_walls(width, height))
    if entities:
        scene.entities.extend(entities)
    return scene

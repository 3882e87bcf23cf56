"""
Head Juggling Physics Engine
Verlet integration, head/wall repulsion, gravity.
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from vector import vec, distance

# ──────────────────────────────────────────────
# Constants (playfield pixels, per-tick units)
# ──────────────────────────────────────────────
SCENE_WIDTH: float = 960.0
SCENE_HEIGHT: float = 720.0
BALL_RADIUS: float = 100.0

FRICTION: float = 0.005  # air drag, fraction of implied velocity lost per tick
BOUNCE: float = 0.4  # repulsion strength per unit of overlap
GRAVITY: np.ndarray = vec(0.0, 0.2)  # downward, +y is down

ROTATION_FACTOR: float = 1 / 500  # ball spin per pixel of horizontal travel


@dataclass
class Body:
    """Point mass advanced by Verlet integration.

    previous_position is None until the first integration step; after that the
    velocity is implied by (position - previous_position).
    """
    position: np.ndarray = field(default_factory=vec)
    previous_position: Optional[np.ndarray] = None

    def __post_init__(self):
        self.position = np.array(self.position, dtype=float)
        if self.previous_position is not None:
            self.previous_position = np.array(self.previous_position, dtype=float)

    @property
    def velocity(self) -> np.ndarray:
        if self.previous_position is None:
            return vec()
        return self.position - self.previous_position

    def teleport(self, point) -> None:
        """Move without imparting velocity."""
        self.position = np.array(point, dtype=float)
        self.previous_position = self.position.copy()


@dataclass
class Ball(Body):
    radius: float = BALL_RADIUS
    rotation: float = 0.0  # turns

    def spin(self) -> None:
        """Accumulate rotation from the last horizontal displacement."""
        if self.previous_position is not None:
            self.rotation += (self.position[0] - self.previous_position[0]) * ROTATION_FACTOR

    @property
    def bottom(self) -> float:
        return float(self.position[1] + self.radius)


@dataclass
class FloatingLabel(Body):
    """Decorative "+1" text; only fades, never removed."""
    text: str = ""
    opacity: float = 0.0


@dataclass
class HeadTarget:
    """Smoothed estimate of the player's head. Not integrated."""
    position: np.ndarray = field(default_factory=vec)
    radius: float = 0.0

    POSITION_BLEND = 0.5
    RADIUS_BLEND = 0.05

    def __post_init__(self):
        self.position = np.array(self.position, dtype=float)

    def follow(self, point, radius: float) -> None:
        """Blend toward a raw detection (exponential smoothing)."""
        point = np.array(point, dtype=float)
        self.position = self.position + (point - self.position) * self.POSITION_BLEND
        self.radius = self.radius + (radius - self.radius) * self.RADIUS_BLEND


def verlet(body: Body, get_forces: Callable[[], np.ndarray]) -> None:
    """Advance body one tick: damped implied velocity plus accumulated forces."""
    previous = body.position.copy()

    if body.previous_position is not None:
        body.position = body.position + (body.position - body.previous_position) * (1 - FRICTION)

    body.position = body.position + get_forces()

    body.previous_position = previous


class PhysicsEngine:
    """Collision resolver for one ball against the head and three walls."""

    def __init__(self, width: float = SCENE_WIDTH, height: float = SCENE_HEIGHT):
        self.width = width
        self.height = height
        self.events: List[dict] = []

    # ──────────────────────────────────────────
    # Repulsion
    # ──────────────────────────────────────────
    @staticmethod
    def repulsion(position: np.ndarray, other: np.ndarray,
                  dist: float, field_: float) -> np.ndarray:
        """
        Push position away from other, proportional to the overlap depth.

        Args:
            position: Point being pushed (ball center).
            other: Point pushing back (head center or wall contact point).
            dist: Separation used for the overlap test; for walls this is the
                  signed distance to the wall line.
            field_: Separation below which the two are in contact.
        """
        if dist >= field_ or dist == 0:
            return vec()
        return (position - other) / dist * (dist - field_) * -BOUNCE

    def head_force(self, ball: Ball, head: HeadTarget) -> np.ndarray:
        dist = distance(ball.position, head.position)
        field_ = ball.radius + head.radius
        if dist >= field_:
            return vec()
        self.events.append({"type": "head", "depth": float(field_ - dist)})
        return self.repulsion(ball.position, head.position, dist, field_)

    def wall_force(self, ball: Ball) -> np.ndarray:
        x, y = float(ball.position[0]), float(ball.position[1])
        walls = (
            ("left", x, vec(0.0, y)),
            ("right", self.width - x, vec(self.width, y)),
            ("bottom", self.height - y, vec(x, self.height)),
        )
        total = vec()
        for side, dist, other in walls:
            if dist < ball.radius:
                self.events.append({"type": "wall", "side": side,
                                    "depth": float(ball.radius - dist)})
                total = total + self.repulsion(ball.position, other, dist, ball.radius)
        return total

    # ──────────────────────────────────────────
    # Aggregate
    # ──────────────────────────────────────────
    def compute_forces(self, ball: Ball, head: HeadTarget,
                       gravity: bool = True, collide_head: bool = True) -> np.ndarray:
        """Sum of gravity, head and wall contributions for this tick."""
        self.events.clear()
        forces = vec()
        if gravity:
            forces = forces + GRAVITY
        if collide_head:
            forces = forces + self.head_force(ball, head)
        forces = forces + self.wall_force(ball)
        return forces

    def head_contact(self) -> bool:
        return any(ev["type"] == "head" for ev in self.events)

"""
Juggle state machine.

Each state is an immutable record carrying only the fields that make sense in
it; transitions return the next state instead of mutating counters.

    Loading ──ready()──▶ Sticky ──tick()…──▶ Active ──drop()──▶ Dropped
                           ▲                                      │
                           └──────────────── tick()… ─────────────┘
"""

import math
from dataclasses import dataclass, replace
from typing import List, Tuple, Union

FPS: int = 60
STICKY_TICKS: int = 3 * FPS  # grace period before the first serve
RESET_STICKY_TICKS: int = 4 * FPS  # grace period after a drop
DROPPED_TICKS: int = 3 * FPS  # how long the final score stays up
MIN_JUGGLE_DISTANCE: float = 50.0  # ball/head surface gap required between two juggles

SCORE_TIERS: Tuple[Tuple[float, str], ...] = (
    (1, "😴"),
    (5, "😐"),
    (10, "😊"),
    (20, "😁"),
    (math.inf, "🤩"),
)


def score_tier(juggle_count: int) -> str:
    """Emoji of the first threshold strictly greater than juggle_count."""
    for threshold, emoji in SCORE_TIERS:
        if threshold > juggle_count:
            return emoji
    return SCORE_TIERS[-1][1]


@dataclass(frozen=True)
class Loading:
    """Waiting for the face detector."""
    frame_count: int = 0

    def tick(self) -> "Loading":
        return replace(self, frame_count=self.frame_count + 1)

    def ready(self) -> "Sticky":
        return Sticky(STICKY_TICKS)

    @property
    def display(self) -> List[str]:
        dots = (self.frame_count // 30) % 4
        return [f"Loading {'.' * dots}"]


@dataclass(frozen=True)
class Sticky:
    """Ball held in place, gravity and head collision off."""
    ticks: int = STICKY_TICKS
    furthest: float = 0.0  # carried over from the previous round

    def tick(self) -> Union["Sticky", "Active"]:
        if self.ticks - 1 <= 0:
            return Active(furthest=self.furthest)
        return replace(self, ticks=self.ticks - 1)

    @property
    def display(self) -> List[str]:
        return [f"{self.ticks / FPS:.1f}"]


@dataclass(frozen=True)
class Active:
    """Normal play."""
    juggle_count: int = 0
    furthest: float = 0.0

    def observe_gap(self, gap: float) -> "Active":
        """Track the widest ball/head surface gap since the last juggle."""
        if gap <= self.furthest:
            return self
        return replace(self, furthest=gap)

    def head_contact(self) -> Tuple["Active", bool]:
        """Ball touches the head; counts only after it travelled away first."""
        if self.furthest > MIN_JUGGLE_DISTANCE:
            return Active(juggle_count=self.juggle_count + 1, furthest=0.0), True
        return self, False

    def drop(self) -> "Dropped":
        return Dropped(DROPPED_TICKS, self.juggle_count, self.furthest)

    @property
    def display(self) -> List[str]:
        return []


@dataclass(frozen=True)
class Dropped:
    """Ball hit the floor; final score on screen until the countdown ends."""
    ticks: int = DROPPED_TICKS
    juggle_count: int = 0
    furthest: float = 0.0

    def tick(self) -> Union["Dropped", "Sticky"]:
        if self.ticks - 1 <= 0:
            return Sticky(RESET_STICKY_TICKS, self.furthest)
        return replace(self, ticks=self.ticks - 1)

    @property
    def display(self) -> List[str]:
        n = self.juggle_count
        return [f"You made {n} juggle{'s' if n > 1 else ''}", score_tier(n)]


GameState = Union[Loading, Sticky, Active, Dropped]


def is_enabled(state: GameState) -> bool:
    """Detection and head collision run only during normal play."""
    return isinstance(state, Active)


def has_gravity(state: GameState) -> bool:
    return not isinstance(state, Sticky)

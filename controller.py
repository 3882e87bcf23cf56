"""
JuggleController — Layer 2 (Game Logic)

Owns the game state, the bodies and the per-frame driver. The host
(server.py) calls once per rendered frame:

  await ctrl.tick(frame)      — advance state machine + physics by one tick
  ctrl.pending_events         — game events to consume (juggle, dropped, reset)
  ctrl.physics_events         — contacts of the last tick, for sounds
  ctrl.snapshot()             — everything a renderer needs
"""

import asyncio
import json
import math
import random
from typing import List, Optional

import numpy as np

from vector import vec, distance, lerp, rotate
from physics import (
    PhysicsEngine, Ball, FloatingLabel, HeadTarget, verlet,
    GRAVITY, SCENE_WIDTH, SCENE_HEIGHT,
)
from game_state import (
    GameState, Loading, Sticky, Active, Dropped, is_enabled, has_gravity,
)
from detector import Detector, Detection, ReplayDetector, head_target_point

CAMERA_PROMPT = "Enable your camera"


class JuggleController:
    """Layer 2: juggle state machine + physics orchestration."""

    # ── Class-level constants ─────────────────────────────────────────────────
    LABEL_FADE       = 0.04   # opacity blend toward 0 per tick
    LABEL_SPAWN_AT   = 0.4    # label appears this far from ball toward head
    LABEL_KICK       = 5.0    # initial label speed (px/tick)
    LABEL_SPIN_RANGE = (0.2, 0.4)  # turns; 0.25 sends the label straight up

    # ── Constructor ───────────────────────────────────────────────────────────

    def __init__(self, detector: Optional[Detector] = None,
                 width: float = SCENE_WIDTH, height: float = SCENE_HEIGHT,
                 seed: Optional[int] = None):
        self.width  = width
        self.height = height
        self.engine = PhysicsEngine(width, height)
        self.detector = detector
        self._rng = random.Random(seed)
        self._ready = False
        self._detect_lock = asyncio.Lock()

        # Bodies
        self.ball  = Ball(position=self.serve_position)
        self.head  = HeadTarget()
        self.label = FloatingLabel()

        # Game state
        self.state: GameState = Loading()
        self.enabled = False

        # Overlay (L3 reads these to update text entities)
        self.info_lines: List[str] = [CAMERA_PROMPT]
        self.info_visible = True
        self.marker_visible = False
        self.marker_x = 0.0
        self.marker_text = ""

        # Event queues
        self.pending_events: list[dict] = []   # L3 game events
        self.physics_events: list[dict] = []   # contacts for sounds

    # ──────────────────────────────────────────────────────────────────────────
    # Flat state view
    # ──────────────────────────────────────────────────────────────────────────

    @property
    def serve_position(self) -> np.ndarray:
        return vec(self.width / 2, 0.0)

    @property
    def mode(self) -> str:
        return type(self.state).__name__.lower()

    @property
    def sticky_ticks(self) -> int:
        return self.state.ticks if isinstance(self.state, Sticky) else 0

    @property
    def dropped_ticks(self) -> int:
        return self.state.ticks if isinstance(self.state, Dropped) else 0

    @property
    def juggle_count(self) -> int:
        if isinstance(self.state, (Active, Dropped)):
            return self.state.juggle_count
        return 0

    @property
    def furthest_distance(self) -> float:
        return getattr(self.state, "furthest", 0.0)

    def mark_ready(self) -> None:
        """Detector finished loading; the next tick leaves the loading screen."""
        self._ready = True

    # ──────────────────────────────────────────────────────────────────────────
    # Main loop
    # ──────────────────────────────────────────────────────────────────────────

    async def tick(self, frame=None) -> None:
        """Advance one rendered frame. frame is handed to the detector as-is."""
        # 1. Loading gate
        if isinstance(self.state, Loading):
            if not self._ready:
                self._show(self.state.display)
                self.state = self.state.tick()
                return
            self.state = self.state.ready()

        # 2. Sticky / dropped countdowns
        self._advance_state()

        # 3. Fade the juggle counter
        self.label.opacity += (0.0 - self.label.opacity) * self.LABEL_FADE

        # 4. Track the head
        if self.enabled:
            detection = await self._detect(frame)
            if detection is not None:
                self._follow_head(detection)

        # 5. Spin
        self.ball.spin()

        # 6. Out-of-screen marker
        self._update_marker()

        # 7. Move the ball
        enabled = self.enabled
        verlet(self.ball, lambda: self._ball_forces(enabled))
        self.physics_events = list(self.engine.events)

        # 8. Move the juggle counter
        verlet(self.label, lambda: GRAVITY)

    def _advance_state(self) -> None:
        state = self.state
        lines: List[str] = []
        enabled = False

        if isinstance(state, Sticky):
            lines = state.display
            state = state.tick()
        elif isinstance(state, Active):
            if self.ball.bottom > self.height:
                state = state.drop()
                print(f"[GAME] Dropped after {state.juggle_count} juggle(s)")
                self.pending_events.append({"type": "dropped",
                                            "juggle_count": state.juggle_count})
            else:
                enabled = is_enabled(state)

        if isinstance(state, Dropped):
            lines = state.display
            state = state.tick()
            if isinstance(state, Sticky):
                self._reset_ball()

        self.state = state
        self.enabled = enabled
        self._show(lines)

    def _show(self, lines: List[str]) -> None:
        if lines:
            self.info_lines = list(lines)
            self.info_visible = True
        else:
            self.info_visible = False

    def _reset_ball(self) -> None:
        self.ball.teleport(self.serve_position)
        self.pending_events.append({"type": "reset"})
        print("[GAME] Ball reset")

    async def _detect(self, frame) -> Optional[Detection]:
        if self.detector is None:
            return None
        # One detector call in flight at a time
        async with self._detect_lock:
            return await self.detector.detect(frame)

    def _follow_head(self, detection: Detection) -> None:
        box = detection.box.rescale(detection.frame_size, (self.width, self.height))
        point, radius = head_target_point(box, self.width)
        self.head.follow(point, radius)

        gap = distance(self.ball.position, self.head.position) - self.ball.radius - self.head.radius
        self.state = self.state.observe_gap(gap)

    def _update_marker(self) -> None:
        b = self.ball
        y = float(b.position[1])
        if y < -b.radius:
            self.marker_visible = True
            self.marker_x = float(b.position[0])
            self.marker_text = f"{(-y - b.radius) / (b.radius * 4):.1f}m"
        else:
            self.marker_visible = False

    def _ball_forces(self, enabled: bool) -> np.ndarray:
        forces = self.engine.compute_forces(
            self.ball, self.head,
            gravity=has_gravity(self.state),
            collide_head=enabled,
        )
        if enabled and self.engine.head_contact():
            self.state, juggled = self.state.head_contact()
            if juggled:
                self._spawn_label()
        return forces

    def _spawn_label(self) -> None:
        count = self.state.juggle_count
        pos = lerp(self.ball.position, self.head.position, self.LABEL_SPAWN_AT)
        spin = self._rng.uniform(*self.LABEL_SPIN_RANGE)
        self.label.position = pos
        self.label.previous_position = rotate(pos + vec(self.LABEL_KICK, 0.0), spin * 2 * math.pi, pos)
        self.label.text = str(count)
        self.label.opacity = 1.0
        self.pending_events.append({"type": "juggle", "juggle_count": count})

    # ──────────────────────────────────────────────────────────────────────────
    # Headless API
    # ──────────────────────────────────────────────────────────────────────────

    async def run(self, ticks: int, frame=None) -> None:
        for _ in range(ticks):
            await self.tick(frame)

    def simulate(self, ticks: int, detections=None) -> dict:
        """Run ticks synchronously (no event loop may be running) and return a snapshot.

        detections, if given, replaces the detector for the run: one entry
        (a Detection or None) is consumed per detector call, and None is
        returned once they run out.
        """
        detector = self.detector
        if detections is not None:
            self.detector = ReplayDetector(detections)
        try:
            asyncio.run(self.run(ticks))
        finally:
            self.detector = detector
        return self.snapshot()

    # ──────────────────────────────────────────────────────────────────────────
    # State export
    # ──────────────────────────────────────────────────────────────────────────

    def snapshot(self) -> dict:
        def _pt(p):
            return [round(float(p[0]), 3), round(float(p[1]), 3)]

        return {
            "mode": self.mode,
            "enabled": self.enabled,
            "sticky_ticks": self.sticky_ticks,
            "dropped_ticks": self.dropped_ticks,
            "juggle_count": self.juggle_count,
            "furthest_distance": round(self.furthest_distance, 3),
            "ball": {
                "pos": _pt(self.ball.position),
                "radius": self.ball.radius,
                "rotation": round(self.ball.rotation, 4),
            },
            "head": {
                "pos": _pt(self.head.position),
                "radius": round(self.head.radius, 3),
            },
            "label": {
                "pos": _pt(self.label.position),
                "text": self.label.text,
                "opacity": round(self.label.opacity, 4),
            },
            "marker": {
                "visible": self.marker_visible,
                "x": round(self.marker_x, 3),
                "text": self.marker_text,
            },
            "info": {
                "visible": self.info_visible,
                "lines": list(self.info_lines),
            },
        }

    def get_state_json(self) -> str:
        return json.dumps(self.snapshot(), indent=2, ensure_ascii=False)

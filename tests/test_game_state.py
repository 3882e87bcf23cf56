"""
State machine tests — transitions, juggle rule, score tiers.
"""

import sys
import os
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from game_state import (
    Loading, Sticky, Active, Dropped, score_tier, is_enabled, has_gravity,
    STICKY_TICKS, RESET_STICKY_TICKS, DROPPED_TICKS, MIN_JUGGLE_DISTANCE,
)


class TestTransitions:

    def test_loading_to_sticky(self):
        assert Loading().ready() == Sticky(STICKY_TICKS)

    def test_loading_dots(self):
        state = Loading()
        assert state.display == ["Loading "]
        for _ in range(30):
            state = state.tick()
        assert state.display == ["Loading ."]
        for _ in range(90):
            state = state.tick()
        assert state.display == ["Loading "]

    def test_sticky_counts_down_to_active(self):
        state = Sticky(3)
        state = state.tick()
        assert state == Sticky(2)
        state = state.tick()
        assert state == Sticky(1)
        assert state.tick() == Active()

    def test_sticky_display_seconds(self):
        assert Sticky(180).display == ["3.0"]
        assert Sticky(240).display == ["4.0"]
        assert Sticky(30).display == ["0.5"]

    def test_drop_keeps_count(self):
        assert Active(juggle_count=4, furthest=12.0).drop() == Dropped(DROPPED_TICKS, 4, 12.0)

    def test_dropped_ends_in_long_sticky(self):
        state = Dropped(2, 9)
        state = state.tick()
        assert state == Dropped(1, 9)
        assert state.tick() == Sticky(RESET_STICKY_TICKS)

    def test_furthest_carries_into_next_round(self):
        state = Active(juggle_count=3, furthest=70.0).drop()
        for _ in range(DROPPED_TICKS):
            state = state.tick()
        assert state == Sticky(RESET_STICKY_TICKS, 70.0)
        for _ in range(RESET_STICKY_TICKS):
            state = state.tick()
        assert state == Active(juggle_count=0, furthest=70.0)
        # Already far enough apart: the first contact of the new round counts
        _, juggled = state.head_contact()
        assert juggled

    def test_flags(self):
        assert is_enabled(Active())
        for state in (Loading(), Sticky(), Dropped()):
            assert not is_enabled(state)
        assert not has_gravity(Sticky())
        assert has_gravity(Active())
        assert has_gravity(Dropped())

    def test_states_are_immutable(self):
        state = Active()
        with pytest.raises(Exception):
            state.juggle_count = 3


class TestJuggleRule:

    def test_contact_without_separation_does_not_count(self):
        state = Active(juggle_count=2, furthest=MIN_JUGGLE_DISTANCE)
        nxt, juggled = state.head_contact()
        assert not juggled
        assert nxt is state

    def test_contact_after_separation_counts_once(self):
        state = Active(juggle_count=2, furthest=MIN_JUGGLE_DISTANCE + 0.5)
        nxt, juggled = state.head_contact()
        assert juggled
        assert nxt == Active(juggle_count=3, furthest=0.0)
        again, juggled_again = nxt.head_contact()
        assert not juggled_again
        assert again.juggle_count == 3

    def test_observe_gap_keeps_maximum(self):
        state = Active().observe_gap(30.0).observe_gap(80.0).observe_gap(-20.0).observe_gap(10.0)
        assert state.furthest == 80.0

    def test_negative_gap_never_lowers_furthest(self):
        assert Active().observe_gap(-40.0).furthest == 0.0


class TestScoreTier:

    @pytest.mark.parametrize("count, emoji", [
        (0, "😴"),
        (1, "😐"),
        (4, "😐"),
        (5, "😊"),
        (9, "😊"),
        (10, "😁"),
        (19, "😁"),
        (20, "🤩"),
        (100, "🤩"),
    ])
    def test_first_threshold_strictly_greater(self, count, emoji):
        assert score_tier(count) == emoji

    def test_dropped_display(self):
        assert Dropped(10, 0).display == ["You made 0 juggle", "😴"]
        assert Dropped(10, 1).display == ["You made 1 juggle", "😐"]
        assert Dropped(10, 7).display == ["You made 7 juggles", "😊"]

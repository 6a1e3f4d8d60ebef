"""
Tests for snake_engine.py - movement, collisions, growth and the drive loop.
"""

import random
from collections import deque

import pytest

from snake_engine import (
    DOWN, GRID_CELLS, LEFT, RIGHT, UP,
    DriveLoop, GameOverEvent, HighScoreUpdated, RunState, SnakeEngine,
    current_interval,
)


def make_engine(snake, direction=RIGHT, food=(0, 0), high_score=0, seed=7):
    """Running engine with a hand-placed board"""
    engine = SnakeEngine(high_score=high_score, rng=random.Random(seed))
    engine.snake = deque(snake)
    engine.direction = direction
    engine.food = food
    engine.state = RunState.RUNNING
    return engine


def record_events(engine):
    events = []
    engine.subscribe(events.append)
    return events


class TestCurrentInterval:
    """Speed curve."""

    @pytest.mark.parametrize("score, expected", [
        (0, 120),
        (10, 120),
        (20, 115),
        (100, 95),
        (240, 60),
        (10000, 60),
    ])
    def test_interval_for_score(self, score, expected):
        assert current_interval(score) == expected

    def test_engine_interval_tracks_score(self):
        engine = make_engine([(5, 5)])
        engine.score = 40
        assert engine.interval == 110


class TestReset:
    """Initial state."""

    def test_reset_yields_initial_state(self):
        """reset() with no steps gives the start position, heading right, idle."""
        engine = SnakeEngine(rng=random.Random(1))
        engine.score = 90
        engine.state = RunState.OVER
        engine.reset()
        assert list(engine.snake) == [(10, 10)]
        assert engine.direction == (1, 0)
        assert engine.pending_direction is None
        assert engine.score == 0
        assert engine.state == RunState.IDLE

    def test_reset_places_food_off_the_snake(self):
        for seed in range(50):
            engine = SnakeEngine(rng=random.Random(seed))
            assert engine.food != (10, 10)
            assert 0 <= engine.food[0] < GRID_CELLS
            assert 0 <= engine.food[1] < GRID_CELLS

    def test_reset_keeps_high_score_and_listeners(self):
        engine = make_engine([(5, 5)], food=(6, 5), high_score=0)
        events = record_events(engine)
        engine.step()
        engine.reset()
        assert engine.high_score == 10

        engine.snake = deque([(0, 5)])
        engine.direction = LEFT
        engine.state = RunState.RUNNING
        engine.step()
        assert events[-1] == GameOverEvent(0)


class TestRequestDirection:
    """Turn acceptance rules."""

    def test_reversal_is_rejected(self):
        """Reversing into the body is ignored and the snake keeps going right."""
        engine = make_engine([(5, 5), (4, 5), (3, 5)])
        engine.request_direction(LEFT)
        assert engine.pending_direction is None
        engine.step()
        assert list(engine.snake) == [(6, 5), (5, 5), (4, 5)]
        assert engine.state == RunState.RUNNING

    def test_same_direction_is_rejected(self):
        engine = make_engine([(5, 5)])
        engine.request_direction(RIGHT)
        assert engine.pending_direction is None

    def test_perpendicular_turn_is_queued_until_step(self):
        engine = make_engine([(5, 5), (4, 5)])
        engine.request_direction(UP)
        assert engine.pending_direction == UP
        assert engine.direction == RIGHT
        engine.step()
        assert engine.direction == UP
        assert engine.pending_direction is None
        assert engine.snake[0] == (5, 4)

    def test_last_accepted_turn_wins(self):
        engine = make_engine([(5, 5), (4, 5)])
        engine.request_direction(UP)
        engine.request_direction(DOWN)
        engine.step()
        assert engine.snake[0] == (5, 6)

    def test_two_quick_turns_cannot_reverse(self):
        """UP then LEFT inside one interval must not turn the snake back on itself."""
        engine = make_engine([(5, 5), (4, 5), (3, 5)])
        engine.request_direction(UP)
        engine.request_direction(LEFT)
        engine.step()
        assert engine.direction == UP
        assert engine.state == RunState.RUNNING

    def test_accepted_turn_starts_idle_game(self):
        engine = SnakeEngine(rng=random.Random(3))
        engine.request_direction(DOWN)
        assert engine.state == RunState.RUNNING

    def test_rejected_turn_leaves_game_idle(self):
        engine = SnakeEngine(rng=random.Random(3))
        engine.request_direction(LEFT)
        assert engine.state == RunState.IDLE
        assert engine.pending_direction is None

    def test_requests_ignored_after_game_over(self):
        engine = make_engine([(5, 5)])
        engine.state = RunState.OVER
        engine.request_direction(UP)
        assert engine.pending_direction is None

    @pytest.mark.parametrize("vector", [(1, 1), (0, 0), (2, 0), (0, -3)])
    def test_invalid_vector_is_ignored(self, vector):
        """Anything but a unit direction is dropped without raising."""
        engine = make_engine([(5, 5)])
        assert engine.request_direction(vector) is None
        assert engine.pending_direction is None
        engine.step()
        assert engine.snake[0] == (6, 5)

    def test_invalid_vector_leaves_game_idle(self):
        engine = SnakeEngine(rng=random.Random(3))
        engine.request_direction((0, 2))
        assert engine.state == RunState.IDLE

    def test_request_returns_nothing(self):
        engine = make_engine([(5, 5)])
        assert engine.request_direction(LEFT) is None
        assert engine.request_direction(UP) is None


class TestStart:

    def test_start_from_idle(self):
        engine = SnakeEngine(rng=random.Random(3))
        engine.start()
        assert engine.state == RunState.RUNNING
        assert engine.direction == RIGHT

    def test_start_does_not_revive_finished_game(self):
        engine = make_engine([(5, 5)])
        engine.state = RunState.OVER
        engine.start()
        assert engine.state == RunState.OVER


class TestStep:
    """Movement, growth and collisions."""

    def test_step_is_noop_when_idle(self):
        engine = SnakeEngine(rng=random.Random(3))
        engine.step()
        assert list(engine.snake) == [(10, 10)]

    def test_step_is_noop_when_over(self):
        engine = make_engine([(5, 5)])
        engine.state = RunState.OVER
        engine.step()
        assert list(engine.snake) == [(5, 5)]

    def test_plain_move_keeps_length(self):
        engine = make_engine([(5, 5), (4, 5), (3, 5)], food=(0, 0))
        engine.step()
        assert list(engine.snake) == [(6, 5), (5, 5), (4, 5)]
        assert engine.score == 0

    def test_eating_food_grows_and_scores(self):
        """Head lands on food: snake grows by one, score +10, food moves elsewhere."""
        engine = make_engine([(5, 5)], food=(6, 5))
        engine.step()
        assert list(engine.snake) == [(6, 5), (5, 5)]
        assert engine.score == 10
        assert engine.food not in ((6, 5), (5, 5))
        assert engine.state == RunState.RUNNING

    def test_wall_collision_ends_game(self):
        """Moving left off column 0 ends the game with the score unchanged."""
        engine = make_engine([(0, 5)], direction=LEFT)
        engine.score = 30
        events = record_events(engine)
        engine.step()
        assert engine.state == RunState.OVER
        assert engine.score == 30
        assert list(engine.snake) == [(0, 5)]
        assert events == [GameOverEvent(final_score=30)]

    @pytest.mark.parametrize("head, direction", [
        ((GRID_CELLS - 1, 3), RIGHT),
        ((3, 0), UP),
        ((3, GRID_CELLS - 1), DOWN),
    ])
    def test_every_wall_is_fatal(self, head, direction):
        engine = make_engine([head], direction=direction)
        engine.step()
        assert engine.state == RunState.OVER

    def test_self_collision_ends_game(self):
        engine = make_engine([(5, 5), (5, 6), (4, 6), (4, 5), (4, 4), (5, 4)], direction=UP)
        engine.request_direction(LEFT)
        engine.step()
        assert engine.state == RunState.OVER

    def test_chasing_the_tail_is_fatal(self):
        """The tail cell still counts as occupied on the step it would be vacated."""
        engine = make_engine([(5, 5), (5, 6), (4, 6), (4, 5)], direction=UP)
        engine.request_direction(LEFT)
        engine.step()
        assert engine.state == RunState.OVER
        assert len(engine.snake) == 4

    def test_high_score_updated_event(self):
        engine = make_engine([(5, 5)], food=(6, 5), high_score=0)
        events = record_events(engine)
        engine.step()
        assert engine.high_score == 10
        assert events == [HighScoreUpdated(10)]

    def test_no_high_score_event_below_best(self):
        engine = make_engine([(5, 5)], food=(6, 5), high_score=50)
        events = record_events(engine)
        engine.step()
        assert engine.high_score == 50
        assert events == []

    def test_food_cleared_when_board_is_full(self):
        cells = [(x, y) for y in range(GRID_CELLS) for x in range(GRID_CELLS)]
        engine = make_engine(cells)
        engine.place_food()
        assert engine.food is None

    def test_food_lands_on_the_only_free_cell(self):
        cells = [(x, y) for y in range(GRID_CELLS) for x in range(GRID_CELLS)]
        cells.remove((7, 3))
        engine = make_engine(cells)
        engine.place_food()
        assert engine.food == (7, 3)


class TestRandomPlay:
    """Invariants over many random games."""

    def test_invariants_hold_under_random_input(self):
        rng = random.Random(2024)
        for game in range(30):
            engine = SnakeEngine(rng=random.Random(game))
            engine.start()
            for _ in range(500):
                if engine.state != RunState.RUNNING:
                    break
                previous_direction = engine.direction
                previous_length = len(engine.snake)
                previous_score = engine.score

                engine.request_direction(rng.choice([UP, DOWN, LEFT, RIGHT]))
                engine.step()

                opposite = (-previous_direction[0], -previous_direction[1])
                assert engine.direction != opposite
                for x, y in engine.snake:
                    assert 0 <= x < GRID_CELLS and 0 <= y < GRID_CELLS
                if engine.state == RunState.RUNNING:
                    grew = engine.score > previous_score
                    assert len(engine.snake) == previous_length + (1 if grew else 0)
                    assert len(set(engine.snake)) == len(engine.snake)
                    assert engine.food not in engine.snake


class TestSnapshot:

    def test_snapshot_is_a_copy(self):
        engine = make_engine([(5, 5), (4, 5)], food=(9, 9), high_score=40)
        snap = engine.snapshot()
        engine.step()
        assert snap.snake == ((5, 5), (4, 5))
        assert snap.food == (9, 9)
        assert snap.high_score == 40
        assert snap.state == RunState.RUNNING
        assert snap.direction == RIGHT


class TestDriveLoop:
    """Stepping at the speed interval, rendering every frame."""

    def make_loop(self, engine):
        frames = []
        loop = DriveLoop(engine, render=lambda: frames.append(engine.snake[0]))
        return loop, frames

    def test_renders_every_frame_even_when_idle(self):
        engine = SnakeEngine(rng=random.Random(3))
        loop, frames = self.make_loop(engine)
        for now in range(0, 1000, 16):
            assert loop.tick(now) is False
        assert len(frames) == len(range(0, 1000, 16))
        assert loop.steps == 0

    def test_steps_only_after_interval(self):
        engine = make_engine([(5, 5)])
        loop, frames = self.make_loop(engine)
        assert loop.tick(1000) is False  # arms the clock
        assert loop.tick(1119) is False
        assert loop.tick(1120) is True
        assert engine.snake[0] == (6, 5)
        assert loop.tick(1200) is False
        assert loop.tick(1240) is True
        assert loop.steps == 2
        assert len(frames) == 5

    def test_interval_shrinks_with_score(self):
        engine = make_engine([(5, 5)])
        engine.score = 240
        loop, _ = self.make_loop(engine)
        loop.tick(0)
        assert loop.tick(59) is False
        assert loop.tick(60) is True

    def test_stopped_loop_renders_without_stepping(self):
        engine = make_engine([(5, 5)])
        loop, frames = self.make_loop(engine)
        loop.tick(0)
        loop.stop()
        assert loop.tick(500) is False
        assert engine.snake[0] == (5, 5)
        assert len(frames) == 2

    def test_restart_waits_a_full_interval(self):
        engine = make_engine([(5, 5)])
        loop, _ = self.make_loop(engine)
        loop.tick(0)
        loop.stop()
        loop.start()
        assert loop.tick(5000) is False
        assert loop.tick(5119) is False
        assert loop.tick(5120) is True

    def test_no_steps_after_game_over(self):
        engine = make_engine([(GRID_CELLS - 1, 5)])
        loop, _ = self.make_loop(engine)
        loop.tick(0)
        loop.tick(120)
        assert engine.state == RunState.OVER
        assert loop.tick(1000) is False
        assert loop.steps == 1

    def test_render_callback_optional(self):
        engine = make_engine([(5, 5)])
        loop = DriveLoop(engine)
        loop.tick(0)
        assert loop.tick(120) is True

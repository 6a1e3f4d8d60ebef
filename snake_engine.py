"""
Snake simulation engine

Owns the game state (snake body, direction, food, score, run state) and
advances it one grid step at a time. Nothing in here touches pygame, so the
rules can run headless and under test.

DriveLoop couples the engine to a frame clock: it steps the engine only when
the score-dependent interval has elapsed, but renders on every frame.
"""

import logging
import random
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)

# Board
BOARD_SIZE = 400
CELL_SIZE = 20
GRID_CELLS = BOARD_SIZE // CELL_SIZE

# Speed curve (milliseconds between steps)
BASE_SPEED = 120
MIN_SPEED = 60
SPEED_STEP = 20  # points per speed-up
SPEED_DELTA = 5

FOOD_REWARD = 10
START_CELL = (10, 10)

# Directions (dx, dy)
UP = (0, -1)
DOWN = (0, 1)
LEFT = (-1, 0)
RIGHT = (1, 0)
DIRECTIONS = (UP, DOWN, LEFT, RIGHT)

Cell = Tuple[int, int]
Direction = Tuple[int, int]


class RunState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    OVER = "over"


@dataclass(frozen=True)
class GameOverEvent:
    """Fatal collision; carries the score at the moment of death"""
    final_score: int


@dataclass(frozen=True)
class HighScoreUpdated:
    """Score went past the previous best"""
    high_score: int


@dataclass(frozen=True)
class Snapshot:
    """Read-only view of the engine handed to the renderer each frame"""
    snake: Tuple[Cell, ...]
    direction: Direction
    food: Optional[Cell]
    score: int
    high_score: int
    state: RunState


def current_interval(score: int) -> int:
    """Milliseconds between steps for a given score"""
    return max(MIN_SPEED, BASE_SPEED - (score // SPEED_STEP) * SPEED_DELTA)


def in_bounds(cell: Cell) -> bool:
    """True if the cell lies on the board"""
    return 0 <= cell[0] < GRID_CELLS and 0 <= cell[1] < GRID_CELLS


class SnakeEngine:
    """Single-player snake rules on a square grid"""

    def __init__(self, high_score: int = 0, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()
        self.high_score = high_score
        self.listeners: List[Callable[[object], None]] = []
        self.reset()

    def reset(self):
        """Return to the initial idle state; high score and listeners survive"""
        self.snake: deque = deque([START_CELL])
        self.direction: Direction = RIGHT
        self.pending_direction: Optional[Direction] = None
        self.score = 0
        self.state = RunState.IDLE
        self.food: Optional[Cell] = None
        self.place_food()

    def subscribe(self, listener: Callable[[object], None]):
        """Register a callable that receives every emitted event"""
        self.listeners.append(listener)

    def _emit(self, event):
        """Hand an event to the listeners in subscription order"""
        for listener in self.listeners:
            listener(event)

    @property
    def interval(self) -> int:
        """Step interval for the current score"""
        return current_interval(self.score)

    def start(self):
        """Leave the idle state without turning"""
        if self.state == RunState.IDLE:
            self.state = RunState.RUNNING
            logger.debug("Game started heading %s", self.direction)

    def request_direction(self, direction: Direction):
        """Queue a turn.

        Only turns onto the perpendicular axis are accepted, which rules out
        both reversing and repeating the current heading. The check is made
        against the committed direction, so several turns inside one interval
        cannot add up to a reversal; the last accepted one wins. Anything
        that is not one of the four unit directions is ignored.
        """
        if direction not in DIRECTIONS or self.state == RunState.OVER:
            return

        dx, dy = direction
        if (dx != 0 and self.direction[0] == 0) or (dy != 0 and self.direction[1] == 0):
            self.pending_direction = direction
            if self.state == RunState.IDLE:
                self.state = RunState.RUNNING
                logger.debug("Game started heading %s", direction)

    def step(self):
        """Advance the snake one cell"""
        if self.state != RunState.RUNNING:
            return

        if self.pending_direction is not None:
            self.direction = self.pending_direction
            self.pending_direction = None

        head = self.snake[0]
        new_head = (head[0] + self.direction[0], head[1] + self.direction[1])

        # The tail has not moved yet, so chasing it is fatal
        if not in_bounds(new_head) or new_head in self.snake:
            self._game_over(new_head)
            return

        self.snake.appendleft(new_head)

        if new_head == self.food:
            self.score += FOOD_REWARD
            if self.score > self.high_score:
                self.high_score = self.score
                self._emit(HighScoreUpdated(self.high_score))
            self.place_food()
        else:
            self.snake.pop()

    def _game_over(self, crash_cell: Cell):
        self.state = RunState.OVER
        logger.info("Snake crashed at %s with score %d (length %d)",
                    crash_cell, self.score, len(self.snake))
        self._emit(GameOverEvent(self.score))

    def place_food(self):
        """Drop food on a uniformly random free cell"""
        total = GRID_CELLS * GRID_CELLS
        if len(self.snake) >= total:
            self.food = None
            return

        while True:
            cell = (self.rng.randrange(GRID_CELLS), self.rng.randrange(GRID_CELLS))
            if cell not in self.snake:
                self.food = cell
                return

    def snapshot(self) -> Snapshot:
        """Read-only copy of the state for the renderer"""
        return Snapshot(
            snake=tuple(self.snake),
            direction=self.direction,
            food=self.food,
            score=self.score,
            high_score=self.high_score,
            state=self.state,
        )


class DriveLoop:
    """Frame-driven clock for the engine.

    tick() is called once per display frame with a monotonic time in
    milliseconds. The engine is stepped only when its interval has elapsed;
    the render callback runs on every tick regardless.
    """

    def __init__(self, engine: SnakeEngine, render: Optional[Callable[[], None]] = None):
        self.engine = engine
        self.render = render
        self.active = True
        self.last_step_time: Optional[int] = None
        self.steps = 0

    def start(self):
        """Resume stepping; the next tick re-arms the clock"""
        self.active = True
        self.last_step_time = None

    def stop(self):
        """Stop stepping, keep rendering"""
        self.active = False

    def tick(self, now: int) -> bool:
        """Run one frame, return True if the engine stepped"""
        stepped = False

        if self.active and self.engine.state == RunState.RUNNING:
            if self.last_step_time is None:
                # Freshly started: the first step waits a full interval
                self.last_step_time = now
            elif now - self.last_step_time >= self.engine.interval:
                self.engine.step()
                self.last_step_time = now
                self.steps += 1
                stepped = True
        elif self.engine.state != RunState.RUNNING:
            self.last_step_time = None

        if self.render is not None:
            self.render()
        return stepped

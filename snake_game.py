#!/usr/bin/env python3
"""
Snake
A classic grid snake game on a 20x20 board

Features:
- Speed ramps up every 20 points
- Best score kept between runs
- Keyboard, swipe and on-screen control pad input
- Resizable window, the board scales to fit

Run with: python snake_game.py
For headless testing: SDL_VIDEODRIVER=dummy python snake_game.py --headless
"""

import logging
import math
import os
import sys
import tempfile
from typing import Dict, Optional, Tuple

import pygame

from high_score import HighScoreStore
from snake_engine import (
    BOARD_SIZE, CELL_SIZE, DOWN, GRID_CELLS, LEFT, RIGHT, UP,
    Direction, DriveLoop, GameOverEvent, HighScoreUpdated, RunState,
    SnakeEngine, Snapshot,
)

# Check for headless mode
HEADLESS = '--headless' in sys.argv or os.environ.get('SDL_VIDEODRIVER') == 'dummy'

# Set SDL driver for headless mode before pygame init
if HEADLESS:
    os.environ['SDL_VIDEODRIVER'] = 'dummy'
    os.environ['SDL_AUDIODRIVER'] = 'dummy'

logger = logging.getLogger(__name__)

# Layout (logical pixels; the window scales this whole canvas)
HUD_HEIGHT = 60
PAD_HEIGHT = 180
WINDOW_WIDTH = BOARD_SIZE
WINDOW_HEIGHT = HUD_HEIGHT + BOARD_SIZE + PAD_HEIGHT
BOARD_TOP = HUD_HEIGHT
FPS = 60
SWIPE_THRESHOLD = 30
HEADLESS_FRAMES = 300

# Colors
BLACK = (0, 0, 0)
WHITE = (255, 255, 255)
DARK_BG = (15, 15, 30)
BOARD_BG = (26, 26, 46)
GRID_COLOR = (22, 33, 62)

# Snake gradient colors
SNAKE_HEAD_COLOR = (134, 239, 172)
SNAKE_HEAD_BORDER = (34, 197, 94)
SNAKE_BODY_START = (74, 222, 128)
SNAKE_BODY_END = (30, 120, 60)
EYE_COLOR = (0, 0, 0)

# Food colors
FOOD_COLOR = (239, 68, 68)
FOOD_GLOW = (239, 68, 68)
FOOD_HIGHLIGHT = (255, 107, 107)
FOOD_BORDER = (220, 38, 38)

# UI Colors
SCORE_COLOR = (180, 180, 220)
GAME_OVER_COLOR = (255, 80, 100)
TITLE_COLOR = (100, 200, 255)
BUTTON_COLOR = (40, 48, 80)
BUTTON_ACTIVE = (60, 72, 120)
BUTTON_GLYPH = (180, 190, 230)

KEY_DIRECTIONS: Dict[int, Direction] = {
    pygame.K_UP: UP, pygame.K_w: UP,
    pygame.K_DOWN: DOWN, pygame.K_s: DOWN,
    pygame.K_LEFT: LEFT, pygame.K_a: LEFT,
    pygame.K_RIGHT: RIGHT, pygame.K_d: RIGHT,
}


def classify_swipe(dx: float, dy: float, threshold: float = SWIPE_THRESHOLD) -> Optional[Direction]:
    """Direction of a drag by its dominant axis, None if it is too short"""
    if max(abs(dx), abs(dy)) < threshold:
        return None
    if abs(dx) > abs(dy):
        return RIGHT if dx > 0 else LEFT
    return DOWN if dy > 0 else UP


def cell_center(cell: Tuple[int, int]) -> Tuple[int, int]:
    """Pixel center of a grid cell on the logical canvas"""
    return (cell[0] * CELL_SIZE + CELL_SIZE // 2,
            BOARD_TOP + cell[1] * CELL_SIZE + CELL_SIZE // 2)


def build_pad_buttons() -> Dict[Direction, pygame.Rect]:
    """Four-way control pad laid out under the board"""
    size = 56
    gap = 70
    cx = WINDOW_WIDTH // 2
    cy = BOARD_TOP + BOARD_SIZE + PAD_HEIGHT // 2
    buttons = {}
    for direction in (UP, DOWN, LEFT, RIGHT):
        rect = pygame.Rect(0, 0, size, size)
        rect.center = (cx + direction[0] * gap, cy + direction[1] * (gap - 10))
        buttons[direction] = rect
    return buttons


RESTART_BUTTON = pygame.Rect(0, 0, 160, 44)
RESTART_BUTTON.center = (WINDOW_WIDTH // 2, BOARD_TOP + BOARD_SIZE // 2 + 110)


class Game:
    """pygame shell around the snake engine: window, drawing and input"""

    def __init__(self, store: Optional[HighScoreStore] = None, engine: Optional[SnakeEngine] = None):
        pygame.init()
        self.screen = pygame.display.set_mode((WINDOW_WIDTH, WINDOW_HEIGHT), pygame.RESIZABLE)
        pygame.display.set_caption("Snake")
        self.canvas = pygame.Surface((WINDOW_WIDTH, WINDOW_HEIGHT))
        self.clock = pygame.time.Clock()

        self.font_large = pygame.font.Font(None, 64)
        self.font_medium = pygame.font.Font(None, 40)
        self.font_small = pygame.font.Font(None, 30)
        self.font_tiny = pygame.font.Font(None, 22)

        self.store = store or HighScoreStore()
        self.engine = engine or SnakeEngine(high_score=self.store.load())
        self.engine.subscribe(self.on_engine_event)
        self.loop = DriveLoop(self.engine, render=self.draw)

        self.pad_buttons = build_pad_buttons()
        self.pressed_button: Optional[Direction] = None
        self.swipe_start: Optional[Tuple[int, int]] = None
        self.game_time = 0.0
        self.reset()

    def reset(self):
        """Start a fresh round"""
        self.engine.reset()
        self.loop.start()
        self.paused = False
        self.best_at_start = self.engine.high_score
        self.new_high_score = False
        self.game_over_timer = 0.0

    @property
    def game_over(self) -> bool:
        """True once the engine has ended the round"""
        return self.engine.state == RunState.OVER

    def on_engine_event(self, event):
        """Persist new best scores and start the game-over fade"""
        if isinstance(event, HighScoreUpdated):
            self.store.save(event.high_score)
        elif isinstance(event, GameOverEvent):
            self.game_over_timer = 0.0
            self.new_high_score = event.final_score > self.best_at_start
            logger.info("Game over, final score %d", event.final_score)

    def steer(self, direction: Direction):
        """Route a direction request from any input device to the engine"""
        if self.paused or self.game_over:
            return
        self.engine.request_direction(direction)
        # Any direction starts the game, even one that can't be taken yet
        self.engine.start()

    def toggle_pause(self):
        """Pause or resume stepping; ignored after game over"""
        if self.game_over:
            return
        self.paused = not self.paused
        if self.paused:
            self.loop.stop()
        else:
            self.loop.start()

    def to_logical(self, pos: Tuple[float, float]) -> Tuple[int, int]:
        """Map a window position back onto the logical canvas"""
        scale, (ox, oy) = self.viewport()
        return (int((pos[0] - ox) / scale), int((pos[1] - oy) / scale))

    def viewport(self) -> Tuple[float, Tuple[int, int]]:
        """Scale factor and offset that letterbox the canvas into the window"""
        width, height = self.screen.get_size()
        scale = min(width / WINDOW_WIDTH, height / WINDOW_HEIGHT)
        offset = (int((width - WINDOW_WIDTH * scale) / 2),
                  int((height - WINDOW_HEIGHT * scale) / 2))
        return scale, offset

    def handle_input(self) -> bool:
        """Handle pending events, return False to quit"""
        for event in pygame.event.get():
            if not self.handle_event(event):
                return False
        return True

    def handle_event(self, event) -> bool:
        """Handle one event, return False to quit"""
        if event.type == pygame.QUIT:
            return False

        if event.type == pygame.KEYDOWN:
            if event.key == pygame.K_ESCAPE:
                return False
            if event.key == pygame.K_p:
                self.toggle_pause()
            elif self.game_over:
                if event.key in (pygame.K_SPACE, pygame.K_r):
                    self.reset()
            elif event.key in KEY_DIRECTIONS:
                self.steer(KEY_DIRECTIONS[event.key])

        # Touch also arrives as synthetic mouse events; use the finger ones
        elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1 and not getattr(event, 'touch', False):
            self.pointer_down(self.to_logical(event.pos))
        elif event.type == pygame.MOUSEBUTTONUP and event.button == 1 and not getattr(event, 'touch', False):
            self.pointer_up(self.to_logical(event.pos))
        elif event.type in (pygame.FINGERDOWN, pygame.FINGERUP):
            width, height = self.screen.get_size()
            pos = self.to_logical((event.x * width, event.y * height))
            if event.type == pygame.FINGERDOWN:
                self.pointer_down(pos)
            else:
                self.pointer_up(pos)

        return True

    def pointer_down(self, pos: Tuple[int, int]):
        """Press on a button, or begin a swipe"""
        if self.game_over:
            if RESTART_BUTTON.collidepoint(pos):
                self.reset()
            return

        for direction, rect in self.pad_buttons.items():
            if rect.collidepoint(pos):
                self.pressed_button = direction
                self.steer(direction)
                return

        self.swipe_start = pos

    def pointer_up(self, pos: Tuple[int, int]):
        """Release: finish a swipe if one was started"""
        self.pressed_button = None
        if self.swipe_start is None:
            return
        sx, sy = self.swipe_start
        self.swipe_start = None
        direction = classify_swipe(pos[0] - sx, pos[1] - sy)
        if direction is not None:
            self.steer(direction)

    def update(self, dt: float):
        """Advance animation timers"""
        self.game_time += dt
        if self.game_over:
            self.game_over_timer += dt

    def draw(self):
        """Draw everything"""
        snapshot = self.engine.snapshot()
        surface = self.canvas
        surface.fill(DARK_BG)

        self.draw_board(surface)
        if snapshot.food is not None:
            self.draw_food(surface, snapshot.food)
        self.draw_snake(surface, snapshot)
        self.draw_ui(surface, snapshot)
        self.draw_pad(surface)

        if snapshot.state == RunState.OVER:
            self.draw_game_over(surface, snapshot)
        elif self.paused:
            self.draw_paused(surface)
        elif snapshot.state == RunState.IDLE:
            self.draw_idle_hint(surface)

        self.present()

    def present(self):
        """Scale the logical canvas into the window"""
        scale, offset = self.viewport()
        self.screen.fill(BLACK)
        if scale == 1:
            self.screen.blit(self.canvas, offset)
        else:
            size = (max(1, int(WINDOW_WIDTH * scale)), max(1, int(WINDOW_HEIGHT * scale)))
            self.screen.blit(pygame.transform.scale(self.canvas, size), offset)
        pygame.display.flip()

    def draw_board(self, surface: pygame.Surface):
        """Draw board background and grid lines"""
        board = pygame.Rect(0, BOARD_TOP, BOARD_SIZE, BOARD_SIZE)
        pygame.draw.rect(surface, BOARD_BG, board)
        for i in range(GRID_CELLS + 1):
            pygame.draw.line(surface, GRID_COLOR,
                             (i * CELL_SIZE, BOARD_TOP), (i * CELL_SIZE, BOARD_TOP + BOARD_SIZE))
            pygame.draw.line(surface, GRID_COLOR,
                             (0, BOARD_TOP + i * CELL_SIZE), (BOARD_SIZE, BOARD_TOP + i * CELL_SIZE))

    def draw_snake(self, surface: pygame.Surface, snapshot: Snapshot):
        """Draw body segments tail first, then the head with eyes"""
        segments = snapshot.snake
        num_segments = len(segments)

        for i in range(num_segments - 1, 0, -1):
            t = i / max(1, num_segments - 1)
            body_color = tuple(
                int(SNAKE_BODY_START[c] + (SNAKE_BODY_END[c] - SNAKE_BODY_START[c]) * t)
                for c in range(3)
            )
            x, y = segments[i]
            rect = pygame.Rect(x * CELL_SIZE + 1, BOARD_TOP + y * CELL_SIZE + 1,
                               CELL_SIZE - 2, CELL_SIZE - 2)
            pygame.draw.rect(surface, body_color, rect, border_radius=4)

        x, y = cell_center(segments[0])
        radius = (CELL_SIZE - 2) // 2
        pygame.draw.circle(surface, SNAKE_HEAD_COLOR, (x, y), radius)
        pygame.draw.circle(surface, SNAKE_HEAD_BORDER, (x, y), radius, 2)

        # Eyes sit on the leading edge of the head
        eye_offset = 4
        eye_size = 3
        dx, dy = snapshot.direction
        if dx != 0:
            eye_positions = [(x + dx * eye_offset, y - eye_offset), (x + dx * eye_offset, y + eye_offset)]
        else:
            eye_positions = [(x - eye_offset, y + dy * eye_offset), (x + eye_offset, y + dy * eye_offset)]
        for ex, ey in eye_positions:
            pygame.draw.circle(surface, EYE_COLOR, (ex, ey), eye_size)

    def draw_food(self, surface: pygame.Surface, food: Tuple[int, int]):
        """Draw food with a pulsing glow"""
        x, y = cell_center(food)
        radius = CELL_SIZE // 2 - 3
        pulse = 0.85 + 0.15 * math.sin(self.game_time * 5)

        glow_size = int(CELL_SIZE * pulse)
        glow_surface = pygame.Surface((glow_size * 2, glow_size * 2), pygame.SRCALPHA)
        for i in range(4):
            alpha = int(40 * (1 - i / 4))
            size = glow_size - i * 4
            if size > 0:
                pygame.draw.circle(glow_surface, (*FOOD_GLOW, alpha), (glow_size, glow_size), size)
        surface.blit(glow_surface, (x - glow_size, y - glow_size))

        pygame.draw.circle(surface, FOOD_COLOR, (x, y), radius)
        pygame.draw.circle(surface, FOOD_HIGHLIGHT, (x - 2, y - 2), max(1, int(radius * 0.4)))
        pygame.draw.circle(surface, FOOD_BORDER, (x, y), radius, 2)

    def draw_ui(self, surface: pygame.Surface, snapshot: Snapshot):
        """Draw score, best score and current speed"""
        score_surface = self.font_small.render(f"Score: {snapshot.score}", True, SCORE_COLOR)
        surface.blit(score_surface, (10, 10))

        best_surface = self.font_small.render(f"Best: {snapshot.high_score}", True, SCORE_COLOR)
        surface.blit(best_surface, (WINDOW_WIDTH - best_surface.get_width() - 10, 10))

        info_text = f"Length: {len(snapshot.snake)}   Step: {self.engine.interval} ms"
        info_surface = self.font_tiny.render(info_text, True, (150, 150, 180))
        surface.blit(info_surface, (10, 38))

    def draw_pad(self, surface: pygame.Surface):
        """Draw the on-screen direction buttons"""
        for direction, rect in self.pad_buttons.items():
            color = BUTTON_ACTIVE if direction == self.pressed_button else BUTTON_COLOR
            pygame.draw.rect(surface, color, rect, border_radius=10)

            dx, dy = direction
            cx, cy = rect.center
            tip = (cx + dx * 14, cy + dy * 14)
            # Base corners are perpendicular to the arrow
            left = (cx - dx * 8 - dy * 12, cy - dy * 8 + dx * 12)
            right = (cx - dx * 8 + dy * 12, cy - dy * 8 - dx * 12)
            pygame.draw.polygon(surface, BUTTON_GLYPH, [tip, left, right])

    def draw_overlay(self, surface: pygame.Surface, alpha: int):
        """Darken the board area"""
        overlay = pygame.Surface((BOARD_SIZE, BOARD_SIZE), pygame.SRCALPHA)
        overlay.fill((0, 0, 0, alpha))
        surface.blit(overlay, (0, BOARD_TOP))

    def draw_idle_hint(self, surface: pygame.Surface):
        """Draw the how-to-start prompt"""
        hint_surface = self.font_tiny.render("Press an arrow key or swipe to start", True, TITLE_COLOR)
        hint_rect = hint_surface.get_rect(center=(WINDOW_WIDTH // 2, BOARD_TOP + BOARD_SIZE - 30))
        surface.blit(hint_surface, hint_rect)

    def draw_game_over(self, surface: pygame.Surface, snapshot: Snapshot):
        """Draw game over screen with a fade-in"""
        self.draw_overlay(surface, min(200, int(self.game_over_timer * 250)))
        if self.game_over_timer <= 0.3:
            return

        center_y = BOARD_TOP + BOARD_SIZE // 2

        text_surface = self.font_large.render("GAME OVER", True, GAME_OVER_COLOR)
        surface.blit(text_surface, text_surface.get_rect(center=(WINDOW_WIDTH // 2, center_y - 60)))

        score_surface = self.font_medium.render(f"Final Score: {snapshot.score}", True, WHITE)
        surface.blit(score_surface, score_surface.get_rect(center=(WINDOW_WIDTH // 2, center_y)))

        if self.new_high_score:
            hs_pulse = 0.7 + 0.3 * math.sin(self.game_over_timer * 5)
            hs_color = (int(255 * hs_pulse), int(200 * hs_pulse), 50)
            hs_surface = self.font_small.render("NEW HIGH SCORE!", True, hs_color)
            surface.blit(hs_surface, hs_surface.get_rect(center=(WINDOW_WIDTH // 2, center_y + 45)))

        pygame.draw.rect(surface, BUTTON_ACTIVE, RESTART_BUTTON, border_radius=8)
        restart_surface = self.font_small.render("Restart", True, WHITE)
        surface.blit(restart_surface, restart_surface.get_rect(center=RESTART_BUTTON.center))

        hint_surface = self.font_tiny.render("SPACE to restart  |  ESC to quit", True, SCORE_COLOR)
        surface.blit(hint_surface, hint_surface.get_rect(center=(WINDOW_WIDTH // 2, RESTART_BUTTON.bottom + 20)))

    def draw_paused(self, surface: pygame.Surface):
        """Draw pause overlay"""
        self.draw_overlay(surface, 150)
        center_y = BOARD_TOP + BOARD_SIZE // 2

        pause_surface = self.font_large.render("PAUSED", True, TITLE_COLOR)
        surface.blit(pause_surface, pause_surface.get_rect(center=(WINDOW_WIDTH // 2, center_y)))

        hint_surface = self.font_small.render("Press P to continue", True, SCORE_COLOR)
        surface.blit(hint_surface, hint_surface.get_rect(center=(WINDOW_WIDTH // 2, center_y + 50)))

    def run(self):
        """Main game loop"""
        running = True
        while running:
            dt = self.clock.tick(FPS) / 1000.0

            running = self.handle_input()
            self.update(dt)
            self.loop.tick(pygame.time.get_ticks())

        pygame.quit()


def log_level(name: Optional[str]) -> int:
    """Numeric logging level for a level name, WARNING if it is not one"""
    level = logging.getLevelName((name or "WARNING").strip().upper())
    return level if isinstance(level, int) else logging.WARNING


def run_headless(game: Game):
    """Play a few seconds of simulated frames with scripted input"""
    print("Running in headless mode for testing...")
    for i in range(HEADLESS_FRAMES):
        dt = 1.0 / FPS
        if i == 0:
            game.steer(UP)
        elif i == 60:
            game.steer(LEFT)
        game.handle_input()
        game.update(dt)
        game.loop.tick(int(i * 1000 / FPS))
    print(f"Headless test complete. Score: {game.engine.score}, "
          f"steps: {game.loop.steps}, state: {game.engine.state.value}")
    pygame.quit()


def main():
    """Entry point"""
    logging.basicConfig(
        level=log_level(os.environ.get("SNAKE_LOG_LEVEL")),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if HEADLESS:
        # Scratch store so scripted runs never touch the real best score
        with tempfile.TemporaryDirectory() as scratch:
            run_headless(Game(store=HighScoreStore(os.path.join(scratch, "high_score.json"))))
    else:
        Game().run()


if __name__ == "__main__":
    main()

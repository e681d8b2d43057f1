import logging
import random
import time
from collections import deque
from enum import Enum, auto
from dataclasses import dataclass, field
from typing import Callable, Deque, Dict, List, Optional, Tuple

import pygame

logger = logging.getLogger(__name__)

Color = Tuple[int, int, int]

# --- Game Actions & Run States ---
class GameAction(Enum):
    MOVE_LEFT = auto()
    MOVE_RIGHT = auto()
    START = auto()
    PAUSE_RESUME = auto()
    QUIT = auto()

class RunState(Enum):
    STOPPED = auto()
    RUNNING = auto()
    PAUSED = auto()

# --- Configuration DataClasses ---
@dataclass(frozen=True)
class CarDimensions:
    CAR_WIDTH: int = 50
    CAR_HEIGHT: int = 80

@dataclass(frozen=True)
class DifficultyConfig:
    BASE_SPEED: float = 3.0
    SPEED_INC: float = 0.5
    BASE_SPAWN_INTERVAL_MS: int = 1500
    SPAWN_INTERVAL_STEP_MS: int = 100
    MIN_SPAWN_INTERVAL_MS: int = 500
    ESCALATION_STEP: int = 100     # score between two speed-ups
    DODGE_POINTS: int = 10
    STARTING_LIVES: int = 3

    def __post_init__(self):
        if self.MIN_SPAWN_INTERVAL_MS > self.BASE_SPAWN_INTERVAL_MS:
            raise ValueError("MIN_SPAWN_INTERVAL_MS must not exceed BASE_SPAWN_INTERVAL_MS")
        if self.ESCALATION_STEP <= 0:
            raise ValueError("ESCALATION_STEP must be positive")
        if self.STARTING_LIVES <= 0:
            raise ValueError("STARTING_LIVES must be positive")

@dataclass(frozen=True)
class RoadRushConfig:
    screen_width: int = 400
    screen_height: int = 600
    fps: int = 60
    player_speed: float = 5.0
    # Player sits this far above the bottom edge.
    player_bottom_offset: int = 100

    difficulty: DifficultyConfig = field(default_factory=DifficultyConfig)
    dimensions: CarDimensions = field(default_factory=CarDimensions)

    def __post_init__(self):
        dims = self.dimensions
        if dims.CAR_WIDTH <= 0 or dims.CAR_HEIGHT <= 0:
            raise ValueError("car dimensions must be positive")
        if self.screen_width < dims.CAR_WIDTH:
            raise ValueError("screen_width is narrower than a car")
        if self.lane_right - self.lane_left < dims.CAR_WIDTH:
            raise ValueError("drivable lane is narrower than a car")
        if not 0 <= self.screen_height - self.player_bottom_offset <= self.screen_height - dims.CAR_HEIGHT:
            raise ValueError("player_bottom_offset puts the player outside the screen")

    @property
    def lane_left(self) -> float:
        return self.screen_width / 4

    @property
    def lane_right(self) -> float:
        return self.screen_width - self.screen_width / 4

@dataclass(frozen=True)
class RenderConfig:
    colors: Dict[str, Tuple[int, ...]] = field(default_factory=lambda: {
        "background": (45, 80, 22),
        "road_line": (255, 255, 255),
        "player": (52, 152, 219),
        "player_window": (174, 214, 241),
        "car_detail": (44, 62, 80),
        "text": (255, 255, 255),
        "overlay": (0, 0, 0, 180),
    })
    font_name: str = None
    font_size: int = 24

# --- Game Entities ---
@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

def intersects(a: Rect, b: Rect) -> bool:
    """AABB overlap test. Rectangles that only share an edge do not intersect.

    Anything with ``x``, ``y``, ``width`` and ``height`` works, so ``Player``
    and ``Obstacle`` are passed in directly.
    """
    return (a.x < b.x + b.width and a.x + a.width > b.x and
            a.y < b.y + b.height and a.y + a.height > b.y)

@dataclass
class Player:
    x: float
    y: float
    width: int
    height: int
    speed: float

# eq=False: obstacles are compared by identity, two cars on the same spot are still two cars.
@dataclass(eq=False)
class Obstacle:
    x: float
    y: float
    speed: float
    color: Color
    width: int = 50
    height: int = 80

    def update(self):
        self.y += self.speed

def random_car_color(rng: random.Random) -> Color:
    color = pygame.Color(0, 0, 0)
    color.hsla = (rng.random() * 360, 70, 50, 100)
    return (color.r, color.g, color.b)

# --- Game State ---
@dataclass
class GameState:
    run_state: RunState
    score: int
    lives: int
    speed: float
    obstacles: List[Obstacle]
    last_spawn_time: Optional[float]   # ms; None spawns on the next running tick
    spawn_interval_ms: int
    next_escalation_score: int
    paused_at: Optional[float] = None

    @property
    def running(self) -> bool:
        return self.run_state is RunState.RUNNING

    @property
    def game_over(self) -> bool:
        return self.run_state is RunState.STOPPED and self.lives <= 0

# --- Game Logic ---
class RoadRushLogic:
    def __init__(self, config: RoadRushConfig,
                 rng: Optional[random.Random] = None,
                 on_score_changed: Optional[Callable[[int], None]] = None,
                 on_lives_changed: Optional[Callable[[int], None]] = None,
                 on_game_over: Optional[Callable[[int], None]] = None):
        self.cfg = config
        self.rng = rng or random.Random()
        self.on_score_changed = on_score_changed
        self.on_lives_changed = on_lives_changed
        self.on_game_over = on_game_over
        dims = config.dimensions
        self.player = Player(x=self._centered_x(),
                             y=config.screen_height - config.player_bottom_offset,
                             width=dims.CAR_WIDTH,
                             height=dims.CAR_HEIGHT,
                             speed=config.player_speed)
        self.state = self._fresh_state(RunState.STOPPED)

    def _centered_x(self) -> float:
        return self.cfg.screen_width / 2 - self.cfg.dimensions.CAR_WIDTH / 2

    def _fresh_state(self, run_state: RunState) -> GameState:
        diff = self.cfg.difficulty
        return GameState(
            run_state=run_state,
            score=0,
            lives=diff.STARTING_LIVES,
            speed=diff.BASE_SPEED,
            obstacles=[],
            last_spawn_time=None,
            spawn_interval_ms=diff.BASE_SPAWN_INTERVAL_MS,
            next_escalation_score=diff.ESCALATION_STEP,
        )

    # -- lifecycle --

    def reset(self):
        self.state = self._fresh_state(RunState.RUNNING)
        self.player.x = self._centered_x()
        self._notify(self.on_score_changed, self.state.score)
        self._notify(self.on_lives_changed, self.state.lives)
        logger.info("Game started")

    def start(self):
        # Stopped and paused games both start over; only a live run ignores it.
        if self.state.running:
            return
        self.reset()

    def toggle_pause(self, now: float):
        s = self.state
        if s.run_state is RunState.RUNNING:
            s.run_state = RunState.PAUSED
            s.paused_at = now
            logger.info(f"Game paused at score {s.score}")
        elif s.run_state is RunState.PAUSED:
            # Time spent paused does not count towards the next spawn.
            if s.last_spawn_time is not None and s.paused_at is not None:
                s.last_spawn_time += now - s.paused_at
            s.paused_at = None
            s.run_state = RunState.RUNNING
            logger.info("Game resumed")

    def move_player(self, action: GameAction):
        if not self.state.running:
            return
        p = self.player
        if action is GameAction.MOVE_LEFT:
            p.x = max(self.cfg.lane_left, p.x - p.speed)
        elif action is GameAction.MOVE_RIGHT:
            p.x = min(self.cfg.lane_right - p.width, p.x + p.speed)

    def apply(self, action: GameAction, now: float):
        if action is GameAction.START:
            self.start()
        elif action is GameAction.PAUSE_RESUME:
            self.toggle_pause(now)
        elif action in (GameAction.MOVE_LEFT, GameAction.MOVE_RIGHT):
            self.move_player(action)

    # -- per-frame update --

    def step(self, now: float):
        if not self.state.running:
            return
        self._advance_obstacles()
        if self.state.running:
            self._maybe_spawn(now)

    def _advance_obstacles(self):
        s = self.state
        diff = self.cfg.difficulty
        survivors: List[Obstacle] = []
        for ob in s.obstacles:
            if not s.running:
                # The run ended earlier in this frame; leave the rest alone.
                survivors.append(ob)
                continue
            ob.update()
            if ob.y > self.cfg.screen_height:
                s.score += diff.DODGE_POINTS
                self._notify(self.on_score_changed, s.score)
            elif intersects(self.player, ob):
                s.lives -= 1
                self._notify(self.on_lives_changed, s.lives)
                logger.info(f"Hit! Lives: {s.lives}")
                if s.lives <= 0:
                    self._end_game()
            else:
                survivors.append(ob)
        s.obstacles = survivors

    def _end_game(self):
        s = self.state
        s.lives = 0
        s.run_state = RunState.STOPPED
        logger.info(f"Game over, final score {s.score}")
        self._notify(self.on_game_over, s.score)

    # -- spawner --

    def spawn_obstacle(self) -> Obstacle:
        dims = self.cfg.dimensions
        x = self.rng.uniform(0, self.cfg.screen_width - dims.CAR_WIDTH)
        return Obstacle(x=x, y=-dims.CAR_HEIGHT, speed=self.state.speed,
                        color=random_car_color(self.rng),
                        width=dims.CAR_WIDTH, height=dims.CAR_HEIGHT)

    def _maybe_spawn(self, now: float):
        s = self.state
        if s.last_spawn_time is not None and now - s.last_spawn_time <= s.spawn_interval_ms:
            return
        ob = self.spawn_obstacle()
        s.obstacles.append(ob)
        s.last_spawn_time = now
        logger.debug(f"Spawned obstacle at x={ob.x:.1f} speed={ob.speed}")
        self._escalate()

    def _escalate(self):
        s = self.state
        diff = self.cfg.difficulty
        while s.score >= s.next_escalation_score:
            s.speed += diff.SPEED_INC
            s.spawn_interval_ms = max(diff.MIN_SPAWN_INTERVAL_MS,
                                      s.spawn_interval_ms - diff.SPAWN_INTERVAL_STEP_MS)
            s.next_escalation_score += diff.ESCALATION_STEP
            logger.debug(f"Difficulty up: speed={s.speed} interval={s.spawn_interval_ms}ms")

    @staticmethod
    def _notify(callback, value: int):
        if callback is not None:
            callback(value)

# --- Frame Loop ---
def monotonic_ms() -> float:
    return time.monotonic() * 1000.0

class FrameLoop:
    """Drains queued commands, updates and renders once per tick.

    ``tick`` returns True only while the game is running, i.e. when the host
    should schedule another frame.
    """

    def __init__(self, logic: RoadRushLogic,
                 render_fn: Optional[Callable[[GameState, Player], None]] = None,
                 clock: Callable[[], float] = monotonic_ms):
        self.logic = logic
        self.commands: Deque[GameAction] = deque()
        self.quit_requested = False
        self._render_fn = render_fn
        self._clock = clock

    def submit(self, action: GameAction):
        self.commands.append(action)

    def tick(self) -> bool:
        now = self._clock()
        while self.commands:
            action = self.commands.popleft()
            if action is GameAction.QUIT:
                self.quit_requested = True
            else:
                self.logic.apply(action, now)
        self.logic.step(now)
        if self._render_fn is not None:
            self._render_fn(self.logic.state, self.logic.player)
        return self.logic.state.running

# --- Rendering ---
class RoadRushRenderer:
    def __init__(self, cfg: RoadRushConfig, rc: RenderConfig):
        pygame.init()
        self.cfg, self.rc = cfg, rc
        self.screen = pygame.display.set_mode((cfg.screen_width, cfg.screen_height))
        pygame.display.set_caption("Road Rush")
        self.font = pygame.font.Font(rc.font_name, rc.font_size)

    def _fill(self, color, x, y, w, h):
        pygame.draw.rect(self.screen, color, pygame.Rect(int(x), int(y), int(w), int(h)))

    def _draw_road(self):
        w, h = self.cfg.screen_width, self.cfg.screen_height
        line = self.rc.colors["road_line"]
        # dashed center line
        for i in range(0, h, 40):
            self._fill(line, w / 2 - 5, i, 10, 20)
        # lane edges
        lane = w / 4
        self._fill(line, lane - 5, 0, 10, h)
        self._fill(line, w - lane - 5, 0, 10, h)

    def _draw_car(self, x, y, w, h, color):
        detail = self.rc.colors["car_detail"]
        self._fill(color, x, y, w, h)
        self._fill(detail, x + 5, y + 10, w - 10, 15)
        self._fill(detail, x + 5, y + h - 25, w - 10, 15)

    def _draw_centered(self, text, dy=0):
        surf = self.font.render(text, True, self.rc.colors["text"])
        r = surf.get_rect(center=(self.cfg.screen_width // 2, self.cfg.screen_height // 2 + dy))
        self.screen.blit(surf, r)

    def _draw_overlay(self):
        overlay = pygame.Surface((self.cfg.screen_width, self.cfg.screen_height), pygame.SRCALPHA)
        overlay.fill(self.rc.colors["overlay"])
        self.screen.blit(overlay, (0, 0))

    def render(self, state: GameState, player: Player):
        self.screen.fill(self.rc.colors["background"])
        self._draw_road()
        for ob in state.obstacles:
            self._draw_car(ob.x, ob.y, ob.width, ob.height, ob.color)

        p = player
        self._draw_car(p.x, p.y, p.width, p.height, self.rc.colors["player"])
        self._fill(self.rc.colors["player_window"], p.x + 10, p.y + 30, p.width - 20, 20)

        # HUD
        hud = f"Score: {state.score}  Lives: {state.lives}"
        self.screen.blit(self.font.render(hud, True, self.rc.colors["text"]), (10, 10))
        if state.run_state is not RunState.STOPPED:
            hint = "P: Resume" if state.run_state is RunState.PAUSED else "P: Pause"
            hint_surf = self.font.render(hint, True, self.rc.colors["text"])
            self.screen.blit(hint_surf, (self.cfg.screen_width - hint_surf.get_width() - 10, 10))

        if state.run_state is RunState.PAUSED:
            self._draw_overlay()
            self._draw_centered("PAUSED")
        elif state.game_over:
            self._draw_overlay()
            self._draw_centered("GAME OVER", -20)
            self._draw_centered(f"Final Score: {state.score}", 20)
            self._draw_centered("ENTER to play again", 60)
        elif state.run_state is RunState.STOPPED:
            self._draw_overlay()
            self._draw_centered("ROAD RUSH", -20)
            self._draw_centered("ENTER to start", 20)
        pygame.display.flip()

# --- Controller ---
KEY_BINDINGS: Dict[int, GameAction] = {
    pygame.K_LEFT: GameAction.MOVE_LEFT,
    pygame.K_a: GameAction.MOVE_LEFT,
    pygame.K_RIGHT: GameAction.MOVE_RIGHT,
    pygame.K_d: GameAction.MOVE_RIGHT,
    pygame.K_RETURN: GameAction.START,
    pygame.K_SPACE: GameAction.START,
    pygame.K_p: GameAction.PAUSE_RESUME,
    pygame.K_ESCAPE: GameAction.QUIT,
}

def translate_event(ev) -> Optional[GameAction]:
    if ev.type == pygame.QUIT:
        return GameAction.QUIT
    if ev.type == pygame.KEYDOWN:
        return KEY_BINDINGS.get(ev.key)
    return None

class GameController:
    def __init__(self):
        self.config = RoadRushConfig()
        self.renderer = RoadRushRenderer(self.config, RenderConfig())
        self.logic = RoadRushLogic(self.config,
                                   on_score_changed=lambda _: self._update_caption(),
                                   on_lives_changed=lambda _: self._update_caption(),
                                   on_game_over=self._announce_game_over)
        self.loop = FrameLoop(self.logic, render_fn=self.renderer.render)
        self.clock = pygame.time.Clock()
        # Holding an arrow key keeps steering.
        pygame.key.set_repeat(150, 30)

    def _update_caption(self):
        s = self.logic.state
        pygame.display.set_caption(f"Road Rush - Score: {s.score}  Lives: {s.lives}")

    def _announce_game_over(self, score: int):
        pygame.display.set_caption(f"Road Rush - Game Over! Your final score: {score}")

    def run(self):
        scheduled = self.loop.tick()
        while not self.loop.quit_requested:
            if scheduled:
                events = pygame.event.get()
            else:
                # Nothing to animate; sleep until the player does something.
                events = [pygame.event.wait()] + pygame.event.get()
            for ev in events:
                action = translate_event(ev)
                if action is not None:
                    self.loop.submit(action)
            scheduled = self.loop.tick()
            if scheduled:
                self.clock.tick(self.config.fps)
        pygame.quit()

# --- Main ---
def main():
    logging.basicConfig(level=logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    GameController().run()

if __name__ == "__main__":
    main()

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import IntEnum
import logging
import math
import random
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from .grid import BoardLimits, BoardSize, Coordinate, VolumeGrid
from .input import Direction, Control, camera_relative_offset, lookup_key
from .persistence import Progress, ProgressStore
from .pieces import SHAPES, Axis, Piece, PieceKind, Shape, resolve_rotation
from .rules import ScoringRules
from .timers import Scheduler, TimerHandle


logger = logging.getLogger(__name__)

DOWN: Coordinate = (0, -1, 0)
VIEW_TYPES = ("perspective", "top", "anaglyph", "stereo", "cross", "parallel")


class Action(IntEnum):
    MOVE_LEFT = 0
    MOVE_RIGHT = 1
    MOVE_FORWARD = 2
    MOVE_BACK = 3
    ROTATE_X = 4
    ROTATE_Y = 5
    ROTATE_Z = 6
    SOFT_DROP = 7
    HARD_DROP = 8
    NONE = 9


_ACTION_OFFSETS: Dict[Action, Coordinate] = {
    Action.MOVE_LEFT: (-1, 0, 0),
    Action.MOVE_RIGHT: (1, 0, 0),
    Action.MOVE_FORWARD: (0, 0, -1),
    Action.MOVE_BACK: (0, 0, 1),
}

_ACTION_AXES: Dict[Action, Axis] = {
    Action.ROTATE_X: Axis.X,
    Action.ROTATE_Y: Axis.Y,
    Action.ROTATE_Z: Axis.Z,
}


@dataclass
class GameConfig:
    board_size: BoardSize = field(default_factory=BoardSize)
    limits: BoardLimits = field(default_factory=BoardLimits)
    queue_length: int = 3
    clear_animation_ms: int = 400
    reset_message_ms: int = 2000
    celebrate_message_ms: int = 2000
    bomb_message_ms: int = 1500
    resize_message_ms: int = 2000
    storage_key: str = "3dtris-progress"
    random_seed: Optional[int] = None
    shapes: Tuple[Shape, ...] = SHAPES
    rules: ScoringRules = field(default_factory=ScoringRules)


def _finite(value: Any) -> Optional[float]:
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


@dataclass(frozen=True)
class StereoSettings:
    eye_distance: float = 0.065
    focus_depth: float = 5.0
    fov: float = 60.0

    _ALIASES = {"eyeDistance": "eye_distance", "focusDepth": "focus_depth"}

    def merged(self, partial: Mapping[str, Any]) -> "StereoSettings":
        """Overlay known, finite values from ``partial``; everything else is ignored."""
        updates: Dict[str, float] = {}
        for key, value in partial.items():
            name = self._ALIASES.get(key, key)
            number = _finite(value)
            if name in ("eye_distance", "focus_depth", "fov") and number is not None:
                updates[name] = number
        return replace(self, **updates)


@dataclass(frozen=True)
class GameSnapshot:
    grid: VolumeGrid
    active_piece: Optional[Piece]
    next_piece: Optional[Piece]
    queue: Tuple[Piece, ...]
    board_size: BoardSize
    score: int
    level: int
    lines_cleared: int
    view_type: str
    stereo_settings: StereoSettings
    cube_opacity: float
    is_paused: bool
    game_over: bool
    message: str
    clearing_layers: Tuple[int, ...]
    camera_theta: float
    gravity_armed: bool


Listener = Callable[[GameSnapshot], None]


class Tris3DGame:
    """Falling-block simulation inside a 3D volume.

    Every command returns True when it changed state (and broadcast a new
    snapshot) and False when it was rejected; after ``destroy`` every
    command is rejected. Gravity, the clear animation
    window and message expiry run on ``scheduler``; the host must call
    ``scheduler.advance`` with elapsed milliseconds.
    """

    def __init__(self, config: Optional[GameConfig] = None, store: Optional[ProgressStore] = None,
                 scheduler: Optional[Scheduler] = None) -> None:
        self.config = config or GameConfig()
        if not self.config.shapes:
            raise ValueError("shape catalog must not be empty")
        self.rules = self.config.rules
        self.rng = random.Random(self.config.random_seed)
        self.scheduler = scheduler or Scheduler()
        self.store = store

        self._subscribers: List[Listener] = []
        self._loop_timer: Optional[TimerHandle] = None
        self._clear_timer: Optional[TimerHandle] = None
        self._message_timer: Optional[TimerHandle] = None
        self._started = False
        self._destroyed = False

        self.view_type = "perspective"
        self.stereo_settings = StereoSettings()
        self.cube_opacity = 0.85
        self.camera_theta = 0.0

        progress = self._load_progress()
        size = self.config.board_size
        if progress.board_width is not None:
            footprint = self.config.limits.clamp(progress.board_width)
            if footprint is not None:
                size = size.with_footprint(footprint)
        self._new_run(size)
        self.level = progress.level
        self.score = progress.score
        self.lines_cleared = progress.lines_cleared

    # ------------------------------------------------------------------
    # Lifecycle and observers
    # ------------------------------------------------------------------
    def start(self) -> None:
        if self._destroyed:
            return
        self._started = True
        self._schedule_loop()
        self.notify()

    def destroy(self) -> None:
        self._destroyed = True
        self._started = False
        for handle in (self._loop_timer, self._clear_timer, self._message_timer):
            if handle is not None:
                handle.cancel()
        self._loop_timer = self._clear_timer = self._message_timer = None
        self._subscribers.clear()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._subscribers.append(listener)
        listener(self.snapshot())

        def unsubscribe() -> None:
            if listener in self._subscribers:
                self._subscribers.remove(listener)

        return unsubscribe

    @property
    def next_piece(self) -> Optional[Piece]:
        return self.queue[0] if self.queue else None

    def snapshot(self) -> GameSnapshot:
        return GameSnapshot(
            grid=self.grid,
            active_piece=self.active_piece,
            next_piece=self.next_piece,
            queue=self.queue,
            board_size=self.board_size,
            score=self.score,
            level=self.level,
            lines_cleared=self.lines_cleared,
            view_type=self.view_type,
            stereo_settings=self.stereo_settings,
            cube_opacity=self.cube_opacity,
            is_paused=self.is_paused,
            game_over=self.game_over,
            message=self.message,
            clearing_layers=self.clearing_layers,
            camera_theta=self.camera_theta,
            gravity_armed=self.gravity_armed,
        )

    def notify(self) -> None:
        state = self.snapshot()
        for listener in list(self._subscribers):
            listener(state)
        self._persist_progress()

    def progress(self) -> Dict[str, Any]:
        return Progress.to_payload(self.level, self.score, self.lines_cleared, self.board_size)

    def _load_progress(self) -> Progress:
        if self.store is None:
            return Progress()
        try:
            payload = self.store.load(self.config.storage_key)
        except (OSError, ValueError, TypeError) as e:
            logger.warning(f"Failed to restore progress: {e}")
            return Progress()
        return Progress.from_payload(payload)

    def _persist_progress(self) -> None:
        if self.store is None:
            return
        try:
            self.store.save(self.config.storage_key, self.progress())
        except (OSError, ValueError, TypeError) as e:
            logger.warning(f"Failed to persist progress: {e}")

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------
    def _cancel_loop(self) -> None:
        if self._loop_timer is not None:
            self._loop_timer.cancel()
            self._loop_timer = None

    def _schedule_loop(self) -> None:
        self._cancel_loop()
        if not self._started or self._destroyed:
            return
        if self.is_paused or self.game_over or not self.gravity_armed or self.active_piece is None:
            return
        delay = self.rules.gravity_delay_ms(self.level)
        self._loop_timer = self.scheduler.call_every(delay, self._gravity_tick)

    def _gravity_tick(self) -> None:
        if self.is_paused or self.game_over:
            return
        self.soft_drop()

    def _set_message(self, text: str, duration_ms: int = 0) -> None:
        self.message = text
        if self._message_timer is not None:
            self._message_timer.cancel()
            self._message_timer = None
        if duration_ms > 0 and not self._destroyed:
            self._message_timer = self.scheduler.call_later(duration_ms, self._expire_message)

    def _expire_message(self) -> None:
        self._message_timer = None
        self.message = ""
        self.notify()

    def _finish_clear_animation(self) -> None:
        self._clear_timer = None
        self.clearing_layers = ()
        self.notify()

    # ------------------------------------------------------------------
    # Run setup and spawning
    # ------------------------------------------------------------------
    def _create_piece(self) -> Piece:
        shapes = self.config.shapes
        shape = self.rng.choices(shapes, weights=[s.weight for s in shapes])[0]
        return Piece.spawn(shape, self.board_size)

    def _new_run(self, size: BoardSize) -> None:
        self.board_size = size
        self.grid = VolumeGrid.empty(size)
        self.queue: Tuple[Piece, ...] = tuple(self._create_piece() for _ in range(self.config.queue_length))
        self.active_piece: Optional[Piece] = None
        self.score = 0
        self.level = 1
        self.lines_cleared = 0
        self.is_paused = False
        self.game_over = False
        self.gravity_armed = False
        self.clearing_layers: Tuple[int, ...] = ()
        if self._clear_timer is not None:
            self._clear_timer.cancel()
            self._clear_timer = None
        self._set_message("")
        self._spawn_next()

    def _spawn_next(self) -> bool:
        if self.queue:
            candidate = self.queue[0]
            self.queue = self.queue[1:] + (self._create_piece(),)
        else:
            candidate = self._create_piece()
        self.gravity_armed = False
        if not self.grid.can_place(candidate):
            self.active_piece = None
            self.game_over = True
            self._cancel_loop()
            self._set_message("Mission failed. Restart to try again.")
            logger.info(f"Game over with score {self.score} at level {self.level}")
            return False
        self.active_piece = candidate
        return True

    # ------------------------------------------------------------------
    # Piece commands
    # ------------------------------------------------------------------
    def move(self, offset: Coordinate) -> bool:
        if self._destroyed or self.active_piece is None:
            return False
        dx, dy, dz = (int(v) for v in offset)
        if not self.grid.can_place(self.active_piece, (dx, dy, dz)):
            return False
        self.active_piece = self.active_piece.moved((dx, dy, dz))
        self.notify()
        return True

    def move_by_key(self, key: Union[str, Direction]) -> bool:
        if isinstance(key, Direction):
            direction: Optional[Direction] = key
        else:
            binding = lookup_key(key)
            direction = binding.direction if binding is not None else None
        if direction is None:
            return False
        return self.move(camera_relative_offset(direction, self.camera_theta))

    def rotate(self, axis: Union[str, Axis]) -> bool:
        if self._destroyed or self.active_piece is None:
            return False
        try:
            axis = Axis(axis)
        except ValueError:
            return False
        rotated = resolve_rotation(self.grid, self.active_piece, axis)
        if rotated is None:
            return False
        self.active_piece = rotated
        self.notify()
        return True

    def soft_drop(self) -> bool:
        """One gravity step: fall a layer, or lock when blocked."""
        if self._destroyed or self.active_piece is None:
            return False
        if self.grid.can_place(self.active_piece, DOWN):
            self.active_piece = self.active_piece.moved(DOWN)
            self.notify()
            return True
        self._lock_piece()
        return True

    def hard_drop(self) -> bool:
        if self._destroyed or self.active_piece is None:
            return False
        piece = self.active_piece
        while self.grid.can_place(piece, DOWN):
            piece = piece.moved(DOWN)
        self.active_piece = piece
        self._lock_piece()
        return True

    def arm_or_drop(self) -> bool:
        """First press arms gravity for the current piece, the second drops it."""
        if self._destroyed or self.active_piece is None:
            return False
        if not self.gravity_armed:
            self.gravity_armed = True
            self._schedule_loop()
            self.notify()
            return True
        return self.hard_drop()

    # ------------------------------------------------------------------
    # Locking
    # ------------------------------------------------------------------
    def _lock_piece(self) -> None:
        piece = self.active_piece
        if piece is None:
            return
        if piece.kind is PieceKind.BOMB:
            self._detonate(piece)
        else:
            self._merge_and_clear(piece)
        self._spawn_next()
        self.notify()
        self._schedule_loop()

    def _merge_and_clear(self, piece: Piece) -> None:
        merged = self.grid.merge(piece)
        full = merged.find_full_layers()
        if full:
            self.clearing_layers = tuple(full)
            if self._clear_timer is not None:
                self._clear_timer.cancel()
            if not self._destroyed:
                self._clear_timer = self.scheduler.call_later(
                    self.config.clear_animation_ms, self._finish_clear_animation)
        self.grid = merged.collapse(full)
        self.score += self.rules.score_for_layers(len(full), self.level)
        self.lines_cleared += len(full)
        self.level = self.rules.level_for(self.lines_cleared)
        if len(full) >= self.rules.celebrate_threshold:
            self._set_message("Perfect clear!", self.config.celebrate_message_ms)
        logger.debug(f"Locked {piece.name} at {piece.position}, cleared layers {full}")

    def _detonate(self, piece: Piece) -> None:
        targets = set()
        for x, y, z in piece.absolute_cells():
            below = y - 1 if y - 1 >= 0 else y
            if self.grid.is_occupied(x, below, z):
                targets.add((x, below, z))
        self.grid = self.grid.remove_cells(targets)
        removed = len(targets)
        self.score += self.rules.score_for_removals(removed)
        noun = "block" if removed == 1 else "blocks"
        self._set_message(f"Bomb cleared {removed} {noun}!", self.config.bomb_message_ms)
        logger.debug(f"Bomb at {piece.position} removed {removed} {noun}")

    # ------------------------------------------------------------------
    # Game-level commands
    # ------------------------------------------------------------------
    def toggle_pause(self) -> bool:
        if self._destroyed or self.game_over:
            return False
        self.is_paused = not self.is_paused
        self._set_message("Game paused" if self.is_paused else "")
        self.notify()
        self._schedule_loop()
        return True

    def reset_game(self, board_size: Optional[float] = None) -> bool:
        if self._destroyed:
            return False
        size = self.board_size
        if board_size is not None:
            footprint = self.config.limits.clamp(board_size)
            if footprint is not None:
                size = size.with_footprint(footprint)
        self._new_run(size)
        if not self.game_over:
            self._set_message("Fresh run engaged!", self.config.reset_message_ms)
        logger.info(f"New run on a {size.width}x{size.depth}x{size.height} board")
        self.notify()
        self._schedule_loop()
        return True

    def update_board_size(self, footprint: float) -> bool:
        if self._destroyed:
            return False
        clamped = self.config.limits.clamp(footprint)
        if clamped is None:
            return False
        if clamped == self.board_size.width and clamped == self.board_size.depth:
            return False
        size = self.board_size.with_footprint(clamped)
        self._new_run(size)
        if not self.game_over:
            self._set_message(f"Board resized to {size.width}×{size.depth}×{size.height}",
                              self.config.resize_message_ms)
        logger.info(f"Board resized to {size.width}x{size.depth}x{size.height}")
        self.notify()
        self._schedule_loop()
        return True

    def update_view(self, view: str) -> bool:
        if self._destroyed or view not in VIEW_TYPES:
            return False
        self.view_type = view
        self.notify()
        return True

    def update_stereo_settings(self, partial: Mapping[str, Any]) -> bool:
        if self._destroyed:
            return False
        self.stereo_settings = self.stereo_settings.merged(partial or {})
        self.notify()
        return True

    def update_opacity(self, value: float) -> bool:
        if self._destroyed:
            return False
        number = _finite(value)
        if number is None:
            number = self.cube_opacity
        self.cube_opacity = max(0.2, min(1.0, number))
        self.notify()
        return True

    def update_camera_yaw(self, theta: float) -> bool:
        if self._destroyed:
            return False
        number = _finite(theta)
        if number is not None:
            self.camera_theta = number
        self.notify()
        return True

    def handle_raw_key(self, key: str) -> bool:
        if self._destroyed or self.game_over:
            return False
        binding = lookup_key(key)
        if binding is None:
            return False
        if binding.direction is not None:
            return self.move_by_key(binding.direction)
        if binding.axis is not None:
            return self.rotate(binding.axis)
        if binding.control is Control.DROP:
            return self.arm_or_drop()
        if binding.control is Control.PAUSE:
            return self.toggle_pause()
        return False

    def apply_action(self, action: Action) -> bool:
        """Board-axis command used by agents; not camera relative."""
        action = Action(action)
        if action in _ACTION_OFFSETS:
            return self.move(_ACTION_OFFSETS[action])
        if action in _ACTION_AXES:
            return self.rotate(_ACTION_AXES[action])
        if action == Action.SOFT_DROP:
            return self.soft_drop()
        if action == Action.HARD_DROP:
            return self.hard_drop()
        return False

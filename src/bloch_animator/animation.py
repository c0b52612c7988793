"""
Gate animation queue.

A FIFO of AppliedGate requests animated one at a time. The host calls
`advance(now_ms)` once per display tick with the current wall-clock time;
progress is driven by elapsed time, not by the number of ticks.
"""
####### Imports #######

import logging
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, List, Optional, Tuple

import numpy as np

from .bloch import RotationPath, RotationPlanner, pointer_direction
from .config import PATH_STEPS, ROTATION_DURATION_MS
from .errors import BlochError
from .qubit import AppliedGate

logger = logging.getLogger(__name__)


####### Easing #######
# See https://gizma.com/easing/

def ease_in_out_sine(x: float) -> float:
    return float(-(np.cos(np.pi * x) - 1.0) / 2.0)

def ease_out_sine(x: float) -> float:
    return float(np.sin(x * np.pi / 2.0))

def trail_weights(n: int) -> List[float]:
    """Visual weight of each of n trail points, oldest (index 0) most faded."""
    return [ease_out_sine((idx + 1) / n) for idx in range(n)]


####### Frames and trail #######

@dataclass(frozen=True)
class TrailPoint:
    position: Tuple[float, float, float]
    created_at_index: int

@dataclass(frozen=True)
class Frame:
    """What the renderer receives on every tick; `gate` is None for the resting frame after a reset."""
    orientation: np.ndarray
    pointer: np.ndarray
    t: float
    gate: Optional[AppliedGate]
    axis: Optional[np.ndarray]
    trail: Tuple[TrailPoint, ...]
    weights: Tuple[float, ...]
    finished: bool


Renderer = Callable[[Frame], None]


####### Queue #######

class GateAnimationQueue:
    """
    Animates queued gates in enqueue order, at most one at a time.

    Args:
        rotation_duration_ms: duration of one gate animation.
        path_steps: trail points recorded along one gate.
        renderer: called with a Frame on every sample.
        on_finished: called with the gate once its animation reached t = 1.
        on_rejected: called with (gate, error) when a gate cannot be planned.
    """

    def __init__(
        self,
        rotation_duration_ms: float = ROTATION_DURATION_MS,
        path_steps: int = PATH_STEPS,
        *,
        renderer: Optional[Renderer] = None,
        on_finished: Optional[Callable[[AppliedGate], None]] = None,
        on_rejected: Optional[Callable[[AppliedGate, BlochError], None]] = None,
    ):
        if not rotation_duration_ms > 0:
            raise ValueError("rotation_duration_ms must be > 0.")
        self.rotation_duration_ms = float(rotation_duration_ms)
        self.planner = RotationPlanner(steps=path_steps)
        self.renderer = renderer
        self.on_finished = on_finished
        self.on_rejected = on_rejected

        self._pending: Deque[AppliedGate] = deque()
        self._path: Optional[RotationPath] = None
        self._start_ms = 0.0
        self._last_ms = 0.0         # clock of the latest advance()
        self._recorded = 0          # path positions of the current gate already in the trail
        self._trail: List[TrailPoint] = []
        self._weights: List[float] = []
        self.needs_tick = False

    # --- read access ---

    @property
    def pending(self) -> int:
        return len(self._pending)

    @property
    def is_animating(self) -> bool:
        return self._path is not None

    @property
    def current_gate(self) -> Optional[AppliedGate]:
        return None if self._path is None else self._path.gate

    @property
    def current_axis(self) -> Optional[np.ndarray]:
        """World-frame axis of the gate being animated, None when idle."""
        return None if self._path is None else self._path.axis.copy()

    @property
    def orientation(self) -> np.ndarray:
        """Resting orientation (after the last finished gate)."""
        return self.planner.orientation.copy()

    @property
    def last_tick_ms(self) -> float:
        """Timestamp passed to the latest advance(), 0 before the first tick."""
        return self._last_ms

    @property
    def trail(self) -> Tuple[TrailPoint, ...]:
        return tuple(self._trail)

    @property
    def weights(self) -> Tuple[float, ...]:
        return tuple(self._weights)

    # --- scheduling ---

    def enqueue(self, gate: AppliedGate) -> None:
        self._pending.append(gate)
        self.needs_tick = True

    def _start_next(self, now_ms: float) -> bool:
        while self._pending:
            gate = self._pending.popleft()
            try:
                self._path = self.planner.begin(gate)
            except BlochError as err:
                logger.error("Rejected gate %r: %s", gate.label, err)
                if self.on_rejected is not None:
                    self.on_rejected(gate, err)
                continue
            self._start_ms = float(now_ms)
            self._recorded = 0
            logger.debug("Animating gate %r", gate.label)
            return True
        return False

    def _record_trail(self, t: float) -> bool:
        added = False
        for idx in self._path.trail_indices(t):
            if idx < self._recorded:
                continue
            position = self._path.position_at(idx)
            self._trail.append(TrailPoint(tuple(float(v) for v in position), len(self._trail)))
            self._recorded = idx + 1
            added = True
        return added

    def advance(self, now_ms: float) -> Optional[Frame]:
        """
        One tick of the animation loop. Returns the Frame handed to the
        renderer, or None when there is nothing left to animate.
        """
        self._last_ms = float(now_ms)
        if self._path is None and not self._start_next(now_ms):
            self.needs_tick = False
            return None

        x = max(0.0, (float(now_ms) - self._start_ms) / self.rotation_duration_ms)
        t = ease_in_out_sine(x) if x < 1.0 else 1.0

        orientation = self._path.sample_at(t)
        if self._record_trail(t):
            self._weights = trail_weights(len(self._trail))

        gate = self._path.gate
        finished = t >= 1.0
        frame = Frame(
            orientation=orientation,
            pointer=pointer_direction(orientation),
            t=t,
            gate=gate,
            axis=None if finished else self._path.axis.copy(),
            trail=tuple(self._trail),
            weights=tuple(self._weights),
            finished=finished,
        )
        if self.renderer is not None:
            self.renderer(frame)

        if finished:
            self.planner.finish()
            self._path = None
            logger.debug("Finished gate %r", gate.label)
            if self.on_finished is not None:
                self.on_finished(gate)
        return frame

    def run_until_idle(self, now_ms: float = 0.0, tick_ms: float = 16.0, max_ticks: int = 100000) -> float:
        """Drives advance() with synthetic timestamps until idle. Returns the last time."""
        ticks = 0
        while self.advance(now_ms) is not None:
            ticks += 1
            if ticks >= max_ticks:
                raise RuntimeError("Gate animation did not settle.")
            now_ms += tick_ms
        return now_ms

    def reset(self) -> None:
        """
        Drops pending and in-flight gates and the trail; back to identity.
        An attached renderer gets one resting frame so the scene is redrawn.
        """
        self._pending.clear()
        self._path = None
        self._recorded = 0
        self._trail.clear()
        self._weights = []
        self.planner.reset()
        self.needs_tick = False
        if self.renderer is not None:
            self.renderer(self._resting_frame())

    def _resting_frame(self) -> Frame:
        orientation = self.planner.orientation.copy()
        return Frame(
            orientation=orientation,
            pointer=pointer_direction(orientation),
            t=0.0,
            gate=None,
            axis=None,
            trail=(),
            weights=(),
            finished=True,
        )

"""
Bloch-sphere session
====================
One BlochSession per independent Bloch sphere: it owns the qubit state, the
animation queue and the drift diagnostics, so two spheres never share state.

The committed `state` only reflects a gate once its animation has finished,
which keeps the displayed pointer and the amplitudes in step. Gate requests
are computed against `projected_state`, the state after every queued gate.
"""
import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Optional, Tuple, Union

from .animation import Frame, GateAnimationQueue, Renderer
from .bloch import to_bloch_angles
from .config import AnimationSettings
from .errors import BlochError, UnrecognizedGateSymbolError
from .qubit import (
    KET0, AppliedGate, DriftMonitor, Matrix2, SequenceResult, StateVector,
    apply_unitary, iter_sequence, resolve_gate, rotation_matrix,
    NAMED_GATE_ROTATIONS, applied_gate_for_unitary, parse_angle, rotation_gate,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EvolutionStep:
    """One committed gate: its label, its matrix (None for a pointer-only turn) and the state around it."""
    label: str
    unitary: Optional[Matrix2]
    prior: StateVector
    state: StateVector


class BlochSession:

    def __init__(
        self,
        settings: Optional[AnimationSettings] = None,
        *,
        renderer: Optional[Renderer] = None,
        monitor: Optional[DriftMonitor] = None,
    ):
        self.settings = settings or AnimationSettings()
        self.monitor = monitor or DriftMonitor()
        self.queue = GateAnimationQueue(
            self.settings.rotation_duration_ms,
            self.settings.path_steps,
            renderer=renderer,
            on_finished=self._commit,
            on_rejected=self._drop,
        )
        self._state = KET0
        self._projected = KET0
        # matrices of the queued gates, same order as the queue
        self._unitaries: Deque[Tuple[AppliedGate, Optional[Matrix2]]] = deque()
        self.history: List[EvolutionStep] = []

    @property
    def state(self) -> StateVector:
        return self._state

    @property
    def projected_state(self) -> StateVector:
        return self._projected

    def bloch_angles(self) -> Tuple[float, float]:
        return to_bloch_angles(self._state)

    # --- gate requests ---

    def _request(self, U: Matrix2, gate: AppliedGate) -> StateVector:
        # dry run on the projected state so NaN never reaches the queue
        self._projected = apply_unitary(self._projected, U)
        self._unitaries.append((gate, U))
        self.queue.enqueue(gate)
        return self._projected

    def apply_named_gate(self, symbol: str) -> Tuple[StateVector, AppliedGate]:
        """Queues one of X Y Z H S s T t. Raises UnrecognizedGateSymbolError."""
        U = resolve_gate(symbol)
        gate = NAMED_GATE_ROTATIONS[symbol]
        return self._request(U, gate), gate

    def apply_rotation(self, axis: str, angle: Union[str, float]) -> Tuple[StateVector, Optional[AppliedGate]]:
        """Queues R_axis(angle); an angle that is not a finite number is a no-op."""
        theta = parse_angle(angle)
        if theta is None:
            logger.warning("Ignoring R%s request: invalid angle %r", str(axis)[-1:].lower(), angle)
            return self._projected, None
        U = rotation_matrix(axis, theta)
        gate = rotation_gate(axis, theta)
        return self._request(U, gate), gate

    def apply_sequence(self, text: str, ignore_separators: Optional[bool] = None) -> SequenceResult:
        """Queues every recognized gate of `text`, skipping the others."""
        if ignore_separators is None:
            ignore_separators = self.settings.ignore_separators
        result = SequenceResult(self._projected)
        for idx, symbol in iter_sequence(text, ignore_separators):
            try:
                result.state, gate = self.apply_named_gate(symbol)
            except UnrecognizedGateSymbolError as err:
                logger.warning("Skipping character %d of gate sequence: %s", idx, err)
                result.skipped.append((idx, symbol))
                continue
            result.gates.append(gate)
        return result

    def apply_matrix(self, U: Matrix2, label: str = "U") -> Tuple[StateVector, AppliedGate]:
        """Queues an arbitrary unitary; the pointer takes the shortest rotation that matches it."""
        gate = applied_gate_for_unitary(U, label)
        return self._request(U, gate), gate

    def enqueue(self, gate: Optional[AppliedGate] = None, U: Optional[Matrix2] = None) -> None:
        """
        Queues a raw geometric gate; `U` (if any) commits with it.
        Without a gate, the rotation is derived from `U`.
        """
        if gate is None:
            if U is None:
                raise ValueError("enqueue() needs a gate, a matrix or both.")
            gate = applied_gate_for_unitary(U)
        if U is not None:
            self._projected = apply_unitary(self._projected, U)
        self._unitaries.append((gate, U))
        self.queue.enqueue(gate)

    # --- queue callbacks ---

    def _pop(self, gate: AppliedGate) -> Optional[Matrix2]:
        queued, U = self._unitaries.popleft()
        if queued is not gate:
            raise RuntimeError("Gate queue and session went out of order.")
        return U

    def _commit(self, gate: AppliedGate) -> None:
        U = self._pop(gate)
        prior = self._state
        if U is not None:
            self._state = apply_unitary(self._state, U, self.monitor)
        if gate.label:
            self.history.append(EvolutionStep(gate.label, U, prior, self._state))

    def _drop(self, gate: AppliedGate, error: BlochError) -> None:
        U = self._pop(gate)
        if U is not None:
            # replay what is still queued on top of the committed state
            self._projected = self._state
            for _, pending in self._unitaries:
                if pending is not None:
                    self._projected = apply_unitary(self._projected, pending)
        logger.warning("Dropped gate %r: %s", gate.label, error)

    # --- animation ---

    def advance(self, now_ms: float) -> Optional[Frame]:
        return self.queue.advance(now_ms)

    def run_until_idle(self, now_ms: float = 0.0, tick_ms: float = 16.0) -> float:
        return self.queue.run_until_idle(now_ms, tick_ms)

    @property
    def is_idle(self) -> bool:
        return not self.queue.is_animating and self.queue.pending == 0

    def reset(self) -> None:
        """Back to |0>: queue, in-flight animation, trail and history cleared."""
        self.queue.reset()
        self._unitaries.clear()
        self._state = KET0
        self._projected = KET0
        self.history.clear()
        self.monitor.reset()

    def __repr__(self):
        theta, phi = self.bloch_angles()
        return (f"BlochSession(state={self._state!r}, theta={theta:.3f}, "
                f"phi={phi:.3f}, pending={self.queue.pending})")

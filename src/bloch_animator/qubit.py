####### Imports #######

import logging
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple, Union

import numpy as np
from qiskit.circuit.library import XGate, YGate, ZGate, HGate, SGate, TGate
from qiskit.quantum_info import Operator

from .config import DRIFT_TOLERANCE, SEQUENCE_SEPARATORS, STATE_TOLERANCE
from .errors import InvalidAxisError, InvalidNumericInputError, UnrecognizedGateSymbolError

logger = logging.getLogger(__name__)


####### Complex helpers #######
# Amplitudes are plain Python / numpy complex numbers: add, sub, mul, conj and
# real scaling are the native operators. Only the polar parts need a convention.

def magnitude(z: complex) -> float:
    return float(abs(z))

def argument(z: complex) -> float:
    """atan2(im, re); the argument of 0 is defined as 0."""
    z = complex(z)
    if z == 0:
        return 0.0
    return float(np.arctan2(z.imag, z.real))

def polar(z: complex) -> Tuple[float, float]:
    return magnitude(z), argument(z)


####### State vector #######

class StateVector:
    """
    Single-qubit amplitudes (a, b) of a|0> + b|1>.

    Immutable: gate application returns a new StateVector. The constructor does
    not normalize, so that a non-unitary matrix shows up as a caller bug instead
    of being silently corrected (see `renormalized` and `DriftMonitor`).
    """

    __slots__ = ("_amps",)

    def __init__(self, a: complex, b: complex):
        amps = np.array([a, b], dtype=complex)
        amps.setflags(write=False)
        self._amps = amps

    @property
    def a(self) -> complex:
        return complex(self._amps[0])

    @property
    def b(self) -> complex:
        return complex(self._amps[1])

    @property
    def amplitudes(self) -> np.ndarray:
        """Read-only array [a, b]."""
        return self._amps

    def norm_squared(self) -> float:
        return float(np.real(np.vdot(self._amps, self._amps)))

    def is_finite(self) -> bool:
        return bool(np.all(np.isfinite(self._amps)))

    def is_normalized(self, tol: float = STATE_TOLERANCE) -> bool:
        return self.is_finite() and abs(self.norm_squared() - 1.0) <= tol

    def renormalized(self) -> "StateVector":
        """Returns the state divided by its norm."""
        norm = np.sqrt(self.norm_squared())
        if not np.isfinite(norm) or norm == 0.0:
            raise InvalidNumericInputError(f"Cannot normalize state with norm {norm}.")
        return StateVector(*(self._amps / norm))

    def allclose(self, other: "StateVector", tol: float = STATE_TOLERANCE) -> bool:
        return bool(np.allclose(self._amps, other._amps, rtol=0.0, atol=tol))

    def __eq__(self, other):
        if not isinstance(other, StateVector):
            return NotImplemented
        return bool(np.array_equal(self._amps, other._amps))

    def __hash__(self):
        return hash((self.a, self.b))

    def __repr__(self):
        return f"StateVector(a={self.a:.6g}, b={self.b:.6g})"


KET0 = StateVector(1, 0)
KET1 = StateVector(0, 1)


####### 2x2 matrices #######

class Matrix2:
    """
    Immutable 2x2 complex matrix [[a, b], [c, d]] acting on a single qubit.

    Composition follows the circuit order read right to left: applying G1 then
    G2 to a state is `G2.mul(G1)`.
    """

    __slots__ = ("_m",)

    def __init__(self, data):
        m = np.array(data, dtype=complex)
        if m.shape != (2, 2):
            raise ValueError("Matrix2 expects a 2x2 array.")
        m.setflags(write=False)
        self._m = m

    @property
    def data(self) -> np.ndarray:
        return self._m

    a = property(lambda self: complex(self._m[0, 0]))
    b = property(lambda self: complex(self._m[0, 1]))
    c = property(lambda self: complex(self._m[1, 0]))
    d = property(lambda self: complex(self._m[1, 1]))

    def mul(self, other: "Matrix2") -> "Matrix2":
        """Matrix product self · other."""
        return Matrix2(self._m @ other._m)

    __matmul__ = mul

    def mul_vec(self, state: StateVector) -> StateVector:
        """Applies the matrix to the amplitudes. No renormalization."""
        return StateVector(*(self._m @ state.amplitudes))

    def adjoint(self) -> "Matrix2":
        """Conjugate transpose."""
        return Matrix2(self._m.conj().T)

    def det(self) -> complex:
        return complex(self._m[0, 0] * self._m[1, 1] - self._m[0, 1] * self._m[1, 0])

    def is_finite(self) -> bool:
        return bool(np.all(np.isfinite(self._m)))

    def allclose(self, other: "Matrix2", tol: float = STATE_TOLERANCE) -> bool:
        return bool(np.allclose(self._m, other._m, rtol=0.0, atol=tol))

    def is_unitary(self, tol: float = STATE_TOLERANCE) -> bool:
        """M · M† = I within `tol` on each entry."""
        return self.mul(self.adjoint()).allclose(IDENTITY, tol)

    def __eq__(self, other):
        if not isinstance(other, Matrix2):
            return NotImplemented
        return bool(np.array_equal(self._m, other._m))

    def __hash__(self):
        return hash(tuple(self._m.ravel().tolist()))

    def __repr__(self):
        return f"Matrix2({self._m.tolist()})"


####### Gates definition #######

# fixed gates
IDENTITY = Matrix2(np.eye(2, dtype=complex))
PAULI_X = Matrix2(Operator(XGate()).data)
PAULI_Y = Matrix2(Operator(YGate()).data)
PAULI_Z = Matrix2(Operator(ZGate()).data)
HADAMARD = Matrix2(Operator(HGate()).data)
S_GATE = Matrix2(Operator(SGate()).data)
T_GATE = Matrix2(Operator(TGate()).data)

# lowercase symbols are the adjoints
GATE_SYMBOLS = {
    "X": PAULI_X,
    "Y": PAULI_Y,
    "Z": PAULI_Z,
    "H": HADAMARD,
    "S": S_GATE,
    "s": S_GATE.adjoint(),
    "T": T_GATE,
    "t": T_GATE.adjoint(),
}

AXIS_VECTORS = {
    "X": (1.0, 0.0, 0.0),
    "Y": (0.0, 1.0, 0.0),
    "Z": (0.0, 0.0, 1.0),
}

def resolve_gate(symbol: str) -> Matrix2:
    try:
        return GATE_SYMBOLS[symbol]
    except (KeyError, TypeError):
        raise UnrecognizedGateSymbolError(symbol) from None

def _normalize_axis_name(axis: str) -> str:
    name = str(axis).upper()
    if name.startswith("R") and len(name) == 2:
        name = name[1]
    if name not in AXIS_VECTORS:
        raise InvalidAxisError(f"Unknown rotation axis {axis!r}, expected 'X', 'Y' or 'Z'.")
    return name

# parametric rotation gates
def rotation_matrix(axis: str, theta: float) -> Matrix2:
    """
    Builds exp(-i * theta/2 * sigma_axis) in closed form.
    axis: 'X', 'Y' or 'Z' (case-insensitive, 'Rx' style names accepted).
    """
    name = _normalize_axis_name(axis)
    c = np.cos(theta / 2.0)
    s = np.sin(theta / 2.0)
    if name == "X":
        return Matrix2([[c, -1j * s], [-1j * s, c]])
    if name == "Y":
        return Matrix2([[c, -s], [s, c]])
    return Matrix2([[np.exp(-0.5j * theta), 0.0], [0.0, np.exp(0.5j * theta)]])

def RX(theta: float) -> Matrix2: return rotation_matrix("X", theta)
def RY(theta: float) -> Matrix2: return rotation_matrix("Y", theta)
def RZ(theta: float) -> Matrix2: return rotation_matrix("Z", theta)

def rm_global_phase(U: Matrix2) -> Matrix2:
    """removes the global phase of the gate : returns U / sqrt(det(U))."""
    det = U.det()
    if np.isclose(det, 0.0):
        return U
    return Matrix2(U.data / np.sqrt(det))

def unitary_to_axis_angle(U: Matrix2) -> Tuple[np.ndarray, float]:
    """
    U ∈ U(2) -> (n, theta) such as U ≈ exp(-i * theta/2 * n·σ) up to a global phase.
    theta is folded into [0, pi]; n is a unit np.array of shape (3,).
    """
    V = rm_global_phase(U).data

    c = np.clip(np.real(np.trace(V)) / 2.0, -1.0, 1.0)
    theta = 2.0 * np.arccos(c)

    s = np.sin(theta / 2.0)
    if np.isclose(s, 0.0, atol=1e-12):
        return np.array([0.0, 0.0, 1.0]), 0.0

    # V = cos(theta/2) I - i sin(theta/2) n·σ
    nx = -np.imag(V[0, 1] + V[1, 0]) / (2.0 * s)
    ny = np.real(V[1, 0] - V[0, 1]) / (2.0 * s)
    nz = np.imag(V[1, 1] - V[0, 0]) / (2.0 * s)

    n = np.array([nx, ny, nz], dtype=float)
    nr = np.linalg.norm(n)
    n = np.array([0.0, 0.0, 1.0]) if nr < 1e-12 else (n / nr)

    # -V is the same rotation, keep the short way round
    if theta > np.pi:
        theta = 2.0 * np.pi - theta
        n = -n
    return n, float(theta)


####### Geometric description of the gates #######

@dataclass(frozen=True)
class AppliedGate:
    """How a gate turns the Bloch-sphere pointer: `angle` radians about `axis`."""
    axis: Tuple[float, float, float]
    angle: float
    label: str = ""

_H_AXIS = (1.0 / np.sqrt(2.0), 0.0, 1.0 / np.sqrt(2.0))

NAMED_GATE_ROTATIONS = {
    "X": AppliedGate(AXIS_VECTORS["X"], np.pi, "X"),
    "Y": AppliedGate(AXIS_VECTORS["Y"], np.pi, "Y"),
    "Z": AppliedGate(AXIS_VECTORS["Z"], np.pi, "Z"),
    "H": AppliedGate(_H_AXIS, np.pi, "H"),
    "S": AppliedGate(AXIS_VECTORS["Z"], np.pi / 2, "S"),
    "s": AppliedGate(AXIS_VECTORS["Z"], -np.pi / 2, "S†"),
    "T": AppliedGate(AXIS_VECTORS["Z"], np.pi / 4, "T"),
    "t": AppliedGate(AXIS_VECTORS["Z"], -np.pi / 4, "T†"),
}

def rotation_gate(axis: str, theta: float) -> AppliedGate:
    name = _normalize_axis_name(axis)
    return AppliedGate(AXIS_VECTORS[name], float(theta), f"R{name.lower()}({theta:.2f})")

def applied_gate_for_unitary(U: Matrix2, label: str = "U") -> AppliedGate:
    """
    Pointer rotation of an arbitrary single-qubit unitary (shortest way round).
    The identity maps to a zero-angle turn about z.
    """
    if not U.is_finite():
        raise InvalidNumericInputError(f"Cannot derive a rotation from {U!r}.")
    n, theta = unitary_to_axis_angle(U)
    return AppliedGate(tuple(float(v) for v in n), theta, label)


####### Normalization drift #######

class DriftMonitor:
    """
    Renormalizes states after each gate and counts how often the correction
    exceeded `strict_tolerance`.
    """

    def __init__(self, strict_tolerance: float = DRIFT_TOLERANCE):
        self.strict_tolerance = float(strict_tolerance)
        self.corrections = 0
        self.max_deviation = 0.0

    def correct(self, state: StateVector) -> StateVector:
        deviation = abs(state.norm_squared() - 1.0)
        if not np.isfinite(deviation):
            raise InvalidNumericInputError(f"Non-finite amplitudes in {state!r}.")
        self.max_deviation = max(self.max_deviation, deviation)
        if deviation > self.strict_tolerance:
            self.corrections += 1
            logger.debug("Renormalized state drifted by %.3e", deviation)
        return state.renormalized()

    def reset(self) -> None:
        self.corrections = 0
        self.max_deviation = 0.0


####### Gates application #######

def apply_unitary(state: StateVector, U: Matrix2, monitor: Optional[DriftMonitor] = None) -> StateVector:
    """|psi> ↦ U|psi>, renormalized. Raises InvalidNumericInputError on NaN/inf."""
    new_state = U.mul_vec(state)
    if not new_state.is_finite():
        raise InvalidNumericInputError(f"Gate produced non-finite amplitudes: {new_state!r}.")
    if monitor is None:
        return new_state.renormalized()
    return monitor.correct(new_state)

def apply_named_gate(
    state: StateVector,
    symbol: str,
    monitor: Optional[DriftMonitor] = None,
) -> Tuple[StateVector, AppliedGate]:
    """Applies one of X Y Z H S s T t. Unknown symbols raise UnrecognizedGateSymbolError."""
    U = resolve_gate(symbol)
    return apply_unitary(state, U, monitor), NAMED_GATE_ROTATIONS[symbol]

def parse_angle(value: Union[str, float, None]) -> Optional[float]:
    """Returns the angle as a finite float, or None if it cannot be one."""
    if isinstance(value, bool):
        return None
    try:
        angle = float(value)
    except (TypeError, ValueError):
        return None
    return angle if np.isfinite(angle) else None

def apply_rotation(
    state: StateVector,
    axis: str,
    angle: Union[str, float],
    monitor: Optional[DriftMonitor] = None,
) -> Tuple[StateVector, Optional[AppliedGate]]:
    """
    Applies R_axis(angle). Angles outside [0, 2pi] are accepted.
    An angle that is not a finite number leaves the state untouched and
    returns (state, None).
    """
    theta = parse_angle(angle)
    if theta is None:
        logger.warning("Ignoring R%s rotation: invalid angle %r", str(axis)[-1:].lower(), angle)
        return state, None
    U = rotation_matrix(axis, theta)
    return apply_unitary(state, U, monitor), rotation_gate(axis, theta)


####### Gate sequences #######

@dataclass
class SequenceResult:
    state: StateVector
    gates: List[AppliedGate] = field(default_factory=list)
    # (position in the text, character) of every skipped symbol
    skipped: List[Tuple[int, str]] = field(default_factory=list)

def iter_sequence(text: str, ignore_separators: bool = False) -> Iterator[Tuple[int, str]]:
    """
    Yields (index, character) of a gate sequence, left to right.
    Separators are only dropped when `ignore_separators` is set; otherwise they
    reach the caller and are reported as unrecognized gates.
    """
    for idx, symbol in enumerate(text):
        if ignore_separators and symbol in SEQUENCE_SEPARATORS:
            continue
        yield idx, symbol

def apply_sequence(
    state: StateVector,
    text: str,
    *,
    ignore_separators: bool = False,
    monitor: Optional[DriftMonitor] = None,
) -> SequenceResult:
    """
    Applies a gate sequence such as 'THt' (earliest character first).
    Unrecognized characters are logged and skipped, the rest still applies.
    """
    result = SequenceResult(state)
    for idx, symbol in iter_sequence(text, ignore_separators):
        try:
            result.state, gate = apply_named_gate(result.state, symbol, monitor)
        except UnrecognizedGateSymbolError as err:
            logger.warning("Skipping character %d of gate sequence: %s", idx, err)
            result.skipped.append((idx, symbol))
            continue
        result.gates.append(gate)
    return result

def sequence_unitary(text: str, ignore_separators: bool = False) -> Matrix2:
    """Net unitary of a gate sequence; unrecognized characters are skipped."""
    U = IDENTITY
    for _, symbol in iter_sequence(text, ignore_separators):
        try:
            U = resolve_gate(symbol).mul(U)
        except UnrecognizedGateSymbolError:
            continue
    return U

"""
Bloch-sphere geometry: state -> (theta, phi) -> unit vector, and the rotation
paths the pointer sweeps through when a gate is applied.

Frame convention
----------------
Bloch frame, z up: x = sin(theta)cos(phi), y = sin(theta)sin(phi), z = cos(theta).
|0> points to +z, |1> to -z, |+> to +x. Renderers whose scene uses another
up-axis permute the coordinates at their boundary (see renderer.to_scene_axes).

Orientations are unit quaternions, scalar first [w, x, y, z]. The identity
orientation leaves the pointer on +z.
"""
####### Imports #######

import enum
import logging
from typing import Iterator, Optional, Tuple

import numpy as np
from scipy.spatial.transform import Rotation

from .config import PATH_STEPS
from .errors import InvalidAxisError, InvalidNumericInputError
from .qubit import AppliedGate, StateVector, argument, magnitude

logger = logging.getLogger(__name__)

TWO_PI = 2.0 * np.pi
POINTER_REST = np.array([0.0, 0.0, 1.0])


####### Bloch coordinates #######

def to_bloch_angles(state: StateVector) -> Tuple[float, float]:
    """
    (theta, phi) of a state:
      theta = 2 * acos(|a|), with |a| clamped to [0, 1]
      phi   = arg(b) - arg(a), normalized to [0, 2pi)
    """
    if not state.is_finite():
        raise InvalidNumericInputError(f"Cannot map non-finite state {state!r}.")
    r = min(max(magnitude(state.a), 0.0), 1.0)
    theta = 2.0 * np.arccos(r)
    phi = argument(state.b) - argument(state.a)
    while phi < 0.0:
        phi += TWO_PI
    if phi >= TWO_PI:
        phi -= TWO_PI
    return float(theta), float(phi)

def to_unit_vector(theta: float, phi: float) -> np.ndarray:
    return np.array([
        np.sin(theta) * np.cos(phi),
        np.sin(theta) * np.sin(phi),
        np.cos(theta),
    ])

def bloch_vector(state: StateVector) -> np.ndarray:
    return to_unit_vector(*to_bloch_angles(state))


####### Quaternions #######

IDENTITY_ORIENTATION = np.array([1.0, 0.0, 0.0, 0.0])

def quat_from_axis_angle(axis, angle: float) -> np.ndarray:
    """q = [cos(angle/2), sin(angle/2) * n] for a unit axis n. No short-way folding."""
    n = np.asarray(axis, dtype=float)
    half = 0.5 * angle
    return np.concatenate(([np.cos(half)], np.sin(half) * n))

def quat_multiply(p: np.ndarray, q: np.ndarray) -> np.ndarray:
    """Hamilton product p ⊗ q (q applied first)."""
    pw, px, py, pz = p
    qw, qx, qy, qz = q
    return np.array([
        pw * qw - px * qx - py * qy - pz * qz,
        pw * qx + px * qw + py * qz - pz * qy,
        pw * qy - px * qz + py * qw + pz * qx,
        pw * qz + px * qy - py * qx + pz * qw,
    ])

def _as_rotation(q: np.ndarray) -> Rotation:
    # scipy stores quaternions scalar last
    return Rotation.from_quat([q[1], q[2], q[3], q[0]])

def rotate_vector(q: np.ndarray, v) -> np.ndarray:
    """Rotates the 3-vector v by orientation q."""
    return _as_rotation(q).apply(np.asarray(v, dtype=float))

def world_to_local(q: np.ndarray, v) -> np.ndarray:
    """Expresses a world-frame vector in the local frame of orientation q."""
    return _as_rotation(q).inv().apply(np.asarray(v, dtype=float))

def pointer_direction(q: np.ndarray) -> np.ndarray:
    """Where the pointer (resting on +z) points under orientation q."""
    return rotate_vector(q, POINTER_REST)


####### Rotation paths #######

class RotationPath:
    """
    Rotation of a pointer by `angle` about a fixed axis, starting at `start`.

    The axis is stored in the pointer's local frame: sample_at(t) is
    start ⊗ q(local_axis, t * angle), so the swept angle is exactly t * angle,
    even for half turns and rotations longer than pi.
    """

    def __init__(self, gate: AppliedGate, start: np.ndarray, steps: int = PATH_STEPS):
        axis = np.asarray(gate.axis, dtype=float)
        if axis.shape != (3,):
            raise InvalidAxisError(f"Rotation axis must be a 3-vector, got {gate.axis!r}.")
        norm = np.linalg.norm(axis)
        if not np.isfinite(norm) or norm < 1e-12:
            raise InvalidAxisError(f"Rotation axis {gate.axis!r} has no direction.")
        if not np.isfinite(gate.angle):
            raise InvalidNumericInputError(f"Rotation angle {gate.angle!r} is not finite.")

        self.gate = gate
        self.steps = max(1, int(steps))
        self.start = np.array(start, dtype=float)
        self.start.setflags(write=False)
        self.axis = axis / norm
        self.local_axis = world_to_local(self.start, self.axis)
        self.angle = float(gate.angle)

        target = quat_multiply(self.start, quat_from_axis_angle(self.local_axis, self.angle))
        target.setflags(write=False)
        self.target = target

    def sample_at(self, t: float) -> np.ndarray:
        """Orientation after a fraction t of the rotation; exact endpoints."""
        if t <= 0.0:
            return self.start.copy()
        if t >= 1.0:
            return self.target.copy()
        return quat_multiply(self.start, quat_from_axis_angle(self.local_axis, t * self.angle))

    def position_at(self, index: int) -> np.ndarray:
        """Pointer position at trail index k of the path (k / steps of the way)."""
        return pointer_direction(self.sample_at(index / self.steps))

    def trail_indices(self, t: float) -> Iterator[int]:
        """Indices k in [0, steps] with k / steps <= t."""
        if t >= 1.0:
            last = self.steps
        else:
            last = int(np.floor(max(t, 0.0) * self.steps))
        return iter(range(last + 1))

    def __repr__(self):
        return f"RotationPath(axis={self.axis.tolist()}, angle={self.angle:.4f})"


class PlannerState(enum.Enum):
    IDLE = "idle"
    ANIMATING = "animating"


class RotationPlanner:
    """
    Keeps the resting orientation of the pointer and plans one path per gate.

    IDLE --begin()--> ANIMATING --finish()--> IDLE
    """

    def __init__(self, steps: int = PATH_STEPS, orientation: Optional[np.ndarray] = None):
        self.steps = max(1, int(steps))
        self.orientation = (IDENTITY_ORIENTATION if orientation is None
                            else np.asarray(orientation, dtype=float)).copy()
        self.path: Optional[RotationPath] = None

    @property
    def state(self) -> PlannerState:
        return PlannerState.IDLE if self.path is None else PlannerState.ANIMATING

    def begin(self, gate: AppliedGate, orientation: Optional[np.ndarray] = None) -> RotationPath:
        """
        Plans the path of `gate` from `orientation` (default: the resting one).
        Raises InvalidAxisError without leaving the IDLE state.
        """
        if self.path is not None:
            raise RuntimeError("A rotation is already animating, finish() it first.")
        start = self.orientation if orientation is None else orientation
        self.path = RotationPath(gate, start, self.steps)
        logger.debug("Planned %s for gate %r", self.path, gate.label)
        return self.path

    def finish(self) -> np.ndarray:
        """Retires the current path; its target becomes the resting orientation."""
        if self.path is not None:
            self.orientation = np.array(self.path.target)
            self.path = None
        return self.orientation.copy()

    def reset(self) -> None:
        self.path = None
        self.orientation = IDENTITY_ORIENTATION.copy()

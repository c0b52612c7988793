"""
Public API for the bloch_animator package.

This module re-exports the most useful names from:
- qubit.py      (amplitudes, 2x2 gates, gate application)
- bloch.py      (Bloch angles, orientations, rotation paths)
- animation.py  (gate animation queue)
- session.py    (one Bloch sphere = one session)

So examples (and users) can simply:
    from bloch_animator import BlochSession, apply_sequence, to_bloch_angles, ...
"""

# ----- qubit engine -----
from .qubit import (
    # amplitudes
    StateVector, KET0, KET1,
    magnitude, argument, polar,

    # gates
    Matrix2, IDENTITY, PAULI_X, PAULI_Y, PAULI_Z, HADAMARD, S_GATE, T_GATE,
    GATE_SYMBOLS, resolve_gate, rotation_matrix, RX, RY, RZ,
    rm_global_phase, unitary_to_axis_angle,

    # application
    AppliedGate, applied_gate_for_unitary, NAMED_GATE_ROTATIONS, DriftMonitor, SequenceResult,
    apply_unitary, apply_named_gate, apply_rotation, apply_sequence,
    parse_angle, sequence_unitary,
)

# ----- geometry -----
from .bloch import (
    to_bloch_angles, to_unit_vector, bloch_vector,
    IDENTITY_ORIENTATION, quat_from_axis_angle, quat_multiply, pointer_direction,
    RotationPath, RotationPlanner, PlannerState,
)

# ----- animation -----
from .animation import (
    GateAnimationQueue, Frame, TrailPoint,
    ease_in_out_sine, ease_out_sine, trail_weights,
)
from .session import BlochSession, EvolutionStep

# ----- ambient -----
from .config import AnimationSettings, ROTATION_DURATION_MS, PATH_STEPS
from .errors import (
    BlochError, UnrecognizedGateSymbolError, InvalidNumericInputError, InvalidAxisError,
)
from .logging_config import setup_logging

__all__ = [
    # qubit
    "StateVector", "KET0", "KET1", "magnitude", "argument", "polar",
    "Matrix2", "IDENTITY", "PAULI_X", "PAULI_Y", "PAULI_Z", "HADAMARD", "S_GATE", "T_GATE",
    "GATE_SYMBOLS", "resolve_gate", "rotation_matrix", "RX", "RY", "RZ",
    "rm_global_phase", "unitary_to_axis_angle",
    "AppliedGate", "applied_gate_for_unitary", "NAMED_GATE_ROTATIONS", "DriftMonitor", "SequenceResult",
    "apply_unitary", "apply_named_gate", "apply_rotation", "apply_sequence",
    "parse_angle", "sequence_unitary",

    # geometry
    "to_bloch_angles", "to_unit_vector", "bloch_vector",
    "IDENTITY_ORIENTATION", "quat_from_axis_angle", "quat_multiply", "pointer_direction",
    "RotationPath", "RotationPlanner", "PlannerState",

    # animation
    "GateAnimationQueue", "Frame", "TrailPoint",
    "ease_in_out_sine", "ease_out_sine", "trail_weights", "BlochSession", "EvolutionStep",

    # ambient
    "AnimationSettings", "ROTATION_DURATION_MS", "PATH_STEPS",
    "BlochError", "UnrecognizedGateSymbolError", "InvalidNumericInputError", "InvalidAxisError",
    "setup_logging",
]

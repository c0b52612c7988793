"""
Configuration
=============
Central registry for the animation constants and numeric tolerances.

Exports:
    ROTATION_DURATION_MS (float): wall-clock duration of one gate animation.
    PATH_STEPS (int): number of trail positions recorded along one gate path.
    STATE_TOLERANCE (float): tolerance of the normalization/unitarity checks.
    DRIFT_TOLERANCE (float): stricter inner tolerance counted by DriftMonitor.
    AnimationSettings: per-session overrides of the values above.
"""
from dataclasses import dataclass

# Global Constants
ROTATION_DURATION_MS: float = 100.0
PATH_STEPS: int = 64
STATE_TOLERANCE: float = 1e-9
DRIFT_TOLERANCE: float = 1e-12

# Characters that `ignore_separators=True` drops from a gate sequence
SEQUENCE_SEPARATORS: str = " \t\r\n,;"


@dataclass(frozen=True)
class AnimationSettings:
    rotation_duration_ms: float = ROTATION_DURATION_MS
    path_steps: int = PATH_STEPS
    # False: separators are reported as unknown gates and skipped
    ignore_separators: bool = False

    def __post_init__(self):
        if not self.rotation_duration_ms > 0:
            raise ValueError("rotation_duration_ms must be > 0.")
        if int(self.path_steps) < 1:
            raise ValueError("path_steps must be >= 1.")

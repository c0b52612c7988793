# examples/example_1qubit.py
# Minimal usage demo: type a gate sequence, watch the pointer sweep through it.

import logging

import matplotlib
import matplotlib.pyplot as plt
from bloch_animator import BlochSession, AnimationSettings, setup_logging
from bloch_animator.renderer import MatplotlibRenderer, animate_session

matplotlib.use("Qt5Agg")
setup_logging(logging.INFO)

# --- session (one per Bloch sphere) ---
settings = AnimationSettings(rotation_duration_ms=600, path_steps=64)
session = BlochSession(settings)

# --- gate sequence ('Q' is reported and skipped) ---
result = session.apply_sequence("HTQtSHY")
print("skipped:", result.skipped)
session.apply_rotation("Rx", 0.8)
session.apply_rotation("Rz", "not a number")   # ignored

# --- animation ---
renderer = MatplotlibRenderer(title="1 qubit")
anim = animate_session(session, renderer, interval_ms=20)
plt.show()

print("final state:", session.state)
print("bloch angles:", session.bloch_angles())

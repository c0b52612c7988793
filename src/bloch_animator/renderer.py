####### Imports #######

import colorsys
from typing import Optional, Sequence

import numpy as np
import matplotlib.pyplot as plt
from matplotlib.animation import FuncAnimation

from .animation import Frame
from .session import BlochSession


####### Scene helpers #######

def to_scene_axes(v) -> np.ndarray:
    """
    Bloch frame -> scene coordinates. matplotlib's 3D axes are z-up like the
    Bloch frame, so this is the identity; a y-up scene would use (y, z, x).
    """
    return np.asarray(v, dtype=float)

def trail_colors(weights: Sequence[float]) -> np.ndarray:
    """HSL(0.6, weight, 0.5) per trail point: faded points lose saturation."""
    return np.array([colorsys.hls_to_rgb(0.6, 0.5, float(w)) for w in weights]).reshape(-1, 3)


####### Renderer #######

class MatplotlibRenderer:
    """
    Draws the Bloch sphere, the pointer, the current rotation axis and the
    fading trail. Call it with a Frame (it is a valid queue renderer).
    """

    def __init__(self, ax=None, title: str = "Bloch sphere"):
        if ax is None:
            fig = plt.figure(figsize=(5, 5))
            ax = fig.add_subplot(111, projection="3d")
        self.ax = ax
        self.title = title
        self.frames = 0

        # Sphere
        u = np.linspace(0, 2*np.pi, 60)
        v = np.linspace(0, np.pi, 30)
        xs = np.outer(np.cos(u), np.sin(v))
        ys = np.outer(np.sin(u), np.sin(v))
        zs = np.outer(np.ones_like(u), np.cos(v))
        ax.plot_surface(xs, ys, zs, alpha=0.12, linewidth=0)

        # Axis
        ax.plot([-1,1],[0,0],[0,0]); ax.text(1.1,0,0,"X")
        ax.plot([0,0],[-1,1],[0,0]); ax.text(0,1.1,0,"Y")
        ax.plot([0,0],[0,0],[-1,1]); ax.text(0,0,1.1,"Z")
        ax.set_xlim([-1,1]); ax.set_ylim([-1,1]); ax.set_zlim([-1,1])
        ax.set_box_aspect([1,1,1])
        ax.set_xlabel("X"); ax.set_ylabel("Y"); ax.set_zlabel("Z")

        # Animated elements
        self.pointer, = ax.plot([0, 0], [0, 0], [0, 1], linewidth=2.5, c="red")
        self.axis_line, = ax.plot([], [], [], linewidth=1, linestyle="--", c="gray")
        self.trail = ax.scatter([], [], [], s=8)

    def __call__(self, frame: Frame) -> None:
        x, y, z = to_scene_axes(frame.pointer)
        self.pointer.set_data([0, x], [0, y]); self.pointer.set_3d_properties([0, z])

        if frame.axis is None:
            self.axis_line.set_data([], []); self.axis_line.set_3d_properties([])
        else:
            ax_, ay, az = to_scene_axes(frame.axis) * 1.2
            self.axis_line.set_data([-ax_, ax_], [-ay, ay]); self.axis_line.set_3d_properties([-az, az])

        if frame.trail:
            pts = to_scene_axes([p.position for p in frame.trail])
            self.trail._offsets3d = (pts[:, 0], pts[:, 1], pts[:, 2])
            self.trail.set_color(trail_colors(frame.weights))
            self.trail.set_sizes(8 * (np.asarray(frame.weights) + 0.5))
        else:
            empty = np.empty(0)
            self.trail._offsets3d = (empty, empty, empty)

        self.frames += 1
        if frame.gate is None:
            self.ax.set_title(self.title)
        else:
            label = frame.gate.label or "gate"
            self.ax.set_title(f"{self.title} - {label} ({frame.t:.0%})")


####### Animation #######

def make_frame_updater(session: BlochSession, renderer: MatplotlibRenderer, interval_ms: float):
    """
    FuncAnimation callback: frame i advances `session` to interval_ms * i past
    the session's latest tick, so gates queued after earlier ticks still animate.
    """
    base_ms = session.queue.last_tick_ms

    def update(i):
        session.advance(base_ms + i * interval_ms)
        return renderer.pointer, renderer.axis_line, renderer.trail

    return update

def animate_session(session: BlochSession, renderer: Optional[MatplotlibRenderer] = None,
                    interval_ms: int = 25, frames: Optional[int] = None) -> FuncAnimation:
    """
    Plays the gates queued on `session`. Frame i advances the session by
    i * interval_ms of synthetic time, so the animation speed does not depend on
    how fast matplotlib draws.
    """
    if renderer is None:
        renderer = MatplotlibRenderer()
    session.queue.renderer = renderer

    if frames is None:
        n_gates = session.queue.pending + int(session.queue.is_animating)
        per_gate = int(np.ceil(session.settings.rotation_duration_ms / interval_ms)) + 2
        frames = max(1, n_gates * per_gate)

    update = make_frame_updater(session, renderer, interval_ms)
    fig = renderer.ax.figure
    anim = FuncAnimation(fig, update, frames=frames, interval=interval_ms, blit=False, repeat=False)
    return anim

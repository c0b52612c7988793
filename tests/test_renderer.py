import matplotlib
matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import pytest
from matplotlib.animation import FuncAnimation

from bloch_animator import BlochSession, KET1
from bloch_animator.renderer import (
    MatplotlibRenderer, animate_session, make_frame_updater, to_scene_axes, trail_colors,
)


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close("all")


def test_scene_axes_are_z_up():
    np.testing.assert_array_equal(to_scene_axes([0.0, 0.0, 1.0]), [0.0, 0.0, 1.0])

def test_trail_colors_lose_saturation_when_faded():
    faded, fresh = trail_colors([0.0, 1.0])
    np.testing.assert_allclose(faded, [0.5, 0.5, 0.5])
    assert fresh[2] > fresh[0]

def test_renderer_draws_session_frames():
    renderer = MatplotlibRenderer()
    session = BlochSession(renderer=renderer)
    session.apply_named_gate("X")
    session.run_until_idle(tick_ms=20)

    assert renderer.frames == 6
    xs, ys, zs = renderer.pointer.get_data_3d()
    assert zs[-1] == pytest.approx(-1.0)
    assert "X" in renderer.ax.get_title()

def test_animate_session_attaches_renderer():
    session = BlochSession()
    session.apply_sequence("HZH")
    renderer = MatplotlibRenderer()
    anim = animate_session(session, renderer, interval_ms=25)
    assert isinstance(anim, FuncAnimation)
    assert session.queue.renderer is renderer

    session.run_until_idle(tick_ms=25)
    assert renderer.frames > 0
    assert session.state.allclose(KET1)

def test_frames_continue_from_the_latest_tick():
    session = BlochSession()
    session.apply_named_gate("X")
    session.advance(5000)
    assert session.queue.is_animating
    renderer = MatplotlibRenderer()
    session.queue.renderer = renderer
    update = make_frame_updater(session, renderer, 25)
    for i in range(10):
        update(i)
    assert not session.queue.is_animating
    assert session.state.allclose(KET1)
    assert renderer.frames == 5

def test_reset_clears_the_drawn_trail():
    renderer = MatplotlibRenderer()
    session = BlochSession(renderer=renderer)
    session.apply_named_gate("H")
    session.run_until_idle(tick_ms=20)
    assert len(renderer.trail._offsets3d[0]) > 0

    session.reset()
    assert len(renderer.trail._offsets3d[0]) == 0
    xs, ys, zs = renderer.pointer.get_data_3d()
    assert zs[-1] == pytest.approx(1.0)
    assert renderer.ax.get_title() == renderer.title

import numpy as np
import pytest
from qiskit.circuit.library import RXGate, RYGate, RZGate, SdgGate, TdgGate
from qiskit.quantum_info import Operator, Statevector

from bloch_animator import (
    KET0, KET1, IDENTITY, PAULI_X, PAULI_Z, HADAMARD, S_GATE, T_GATE, GATE_SYMBOLS,
    StateVector, Matrix2, DriftMonitor,
    magnitude, argument, polar, resolve_gate, rotation_matrix, RZ,
    unitary_to_axis_angle, applied_gate_for_unitary,
    IDENTITY_ORIENTATION, NAMED_GATE_ROTATIONS, RotationPath, bloch_vector, pointer_direction,
    apply_unitary, apply_named_gate, apply_rotation, apply_sequence, sequence_unitary,
    parse_angle, InvalidAxisError, InvalidNumericInputError, UnrecognizedGateSymbolError,
)

TOL = 1e-9


####### Complex helpers #######

def test_polar_parts():
    assert magnitude(3 + 4j) == pytest.approx(5.0)
    assert argument(1j) == pytest.approx(np.pi / 2)
    assert argument(-1) == pytest.approx(np.pi)
    assert polar(0j) == (0.0, 0.0)


####### Gates #######

@pytest.mark.parametrize("symbol", sorted(GATE_SYMBOLS))
def test_catalog_gates_are_unitary(symbol):
    G = GATE_SYMBOLS[symbol]
    assert G.mul(G.adjoint()).allclose(IDENTITY, TOL)
    assert G.is_unitary()

def test_lowercase_symbols_are_adjoints():
    np.testing.assert_allclose(resolve_gate("s").data, Operator(SdgGate()).data, atol=TOL)
    np.testing.assert_allclose(resolve_gate("t").data, Operator(TdgGate()).data, atol=TOL)

def test_unknown_symbol():
    with pytest.raises(UnrecognizedGateSymbolError) as info:
        resolve_gate("Q")
    assert isinstance(info.value, KeyError)
    assert "Q" in str(info.value)

@pytest.mark.parametrize("theta", [0.0, 0.3, np.pi / 2, 2.5, 2 * np.pi, 7.0, -1.2])
def test_rotation_matrix_matches_qiskit(theta):
    np.testing.assert_allclose(rotation_matrix("X", theta).data, Operator(RXGate(theta)).data, atol=TOL)
    np.testing.assert_allclose(rotation_matrix("Y", theta).data, Operator(RYGate(theta)).data, atol=TOL)
    np.testing.assert_allclose(rotation_matrix("Z", theta).data, Operator(RZGate(theta)).data, atol=TOL)

def test_rz_sign_convention():
    theta = 0.8
    Rz = rotation_matrix("Z", theta)
    assert Rz.a == pytest.approx(np.exp(-0.5j * theta))
    assert Rz.d == pytest.approx(np.exp(0.5j * theta))
    assert Rz.b == 0 and Rz.c == 0

def test_same_axis_rotations_compose():
    angle = 1.7
    assert RZ(angle / 2).mul(RZ(angle / 2)).allclose(RZ(angle))

def test_rotation_axis_names():
    assert rotation_matrix("rx", 0.4) == rotation_matrix("X", 0.4)
    with pytest.raises(InvalidAxisError):
        rotation_matrix("W", 0.4)

def test_composition_order():
    # H then Z on the state is Z.mul(H)
    state = PAULI_Z.mul(HADAMARD).mul_vec(KET0)
    assert state.allclose(StateVector(1 / np.sqrt(2), -1 / np.sqrt(2)))
    assert not state.allclose(HADAMARD.mul(PAULI_Z).mul_vec(KET0))

def test_matrix_is_immutable():
    with pytest.raises(ValueError):
        PAULI_X.data[0, 0] = 5

def test_mul_vec_does_not_renormalize_or_hide_nan():
    doubled = Matrix2(2 * np.eye(2)).mul_vec(KET0)
    assert doubled.norm_squared() == pytest.approx(4.0)
    broken = Matrix2([[np.nan, 0], [0, 1]]).mul_vec(KET0)
    assert not broken.is_finite()


####### Axis-angle #######

def test_unitary_to_axis_angle_s_gate():
    n, theta = unitary_to_axis_angle(S_GATE)
    np.testing.assert_allclose(n, [0, 0, 1], atol=TOL)
    assert theta == pytest.approx(np.pi / 2)

    n, theta = unitary_to_axis_angle(T_GATE.adjoint())
    np.testing.assert_allclose(n, [0, 0, -1], atol=TOL)
    assert theta == pytest.approx(np.pi / 4)

@pytest.mark.parametrize("U", [HADAMARD, PAULI_X, S_GATE, rotation_matrix("Y", 5.0), sequence_unitary("HTsY")])
def test_gate_for_unitary_turns_pointer_like_the_matrix(U):
    gate = applied_gate_for_unitary(U, "M")
    assert gate.label == "M"
    assert 0.0 <= gate.angle <= np.pi
    # start off the poles so a z-rotation is visible
    start = RotationPath(NAMED_GATE_ROTATIONS["H"], IDENTITY_ORIENTATION).target
    path = RotationPath(gate, start)
    expected = bloch_vector(apply_unitary(HADAMARD.mul_vec(KET0), U))
    np.testing.assert_allclose(pointer_direction(path.target), expected, atol=TOL)

def test_identity_has_no_rotation():
    n, theta = unitary_to_axis_angle(IDENTITY)
    assert theta == 0.0
    assert np.linalg.norm(n) == pytest.approx(1.0)

def test_gate_for_identity_is_a_zero_turn():
    gate = applied_gate_for_unitary(IDENTITY)
    assert gate.angle == 0.0 and gate.label == "U"

def test_gate_for_unitary_rejects_nan():
    with pytest.raises(InvalidNumericInputError):
        applied_gate_for_unitary(Matrix2([[np.nan, 0], [0, 1]]))


####### Gate application #######

def test_x_on_ket0():
    state, gate = apply_named_gate(KET0, "X")
    assert state.allclose(KET1)
    assert gate.angle == pytest.approx(np.pi)
    assert gate.axis == (1.0, 0.0, 0.0)

def test_h_on_ket0():
    state, _ = apply_named_gate(KET0, "H")
    assert state.allclose(StateVector(1 / np.sqrt(2), 1 / np.sqrt(2)))

def test_named_gates_match_qiskit():
    text = "HTSYXtsZ"
    result = apply_sequence(KET0, text)
    expected = Statevector([1, 0])
    for symbol in text:
        expected = expected.evolve(Operator(GATE_SYMBOLS[symbol].data))
    np.testing.assert_allclose(result.state.amplitudes, expected.data, atol=TOL)

def test_apply_rotation_accepts_text_and_out_of_range():
    state, gate = apply_rotation(KET0, "X", "3.14159")
    assert gate is not None and gate.label.startswith("Rx")
    state, gate = apply_rotation(KET0, "Z", 9.0)
    assert gate.angle == 9.0
    assert state.is_normalized()

@pytest.mark.parametrize("angle", ["abc", "", None, "nan", float("inf"), True])
def test_invalid_angle_is_a_no_op(angle, caplog):
    state, gate = apply_rotation(KET1, "Y", angle)
    assert gate is None
    assert state is KET1
    assert "invalid angle" in caplog.text

def test_parse_angle():
    assert parse_angle("0.5") == 0.5
    assert parse_angle(2) == 2.0
    assert parse_angle("-inf") is None

def test_non_finite_result_raises():
    with pytest.raises(InvalidNumericInputError):
        apply_unitary(KET0, Matrix2([[np.nan, 0], [0, 1]]))


####### Sequences #######

def test_unrecognized_symbols_are_skipped(caplog):
    skipped = apply_sequence(KET0, "XQZ")
    plain = apply_sequence(KET0, "XZ")
    assert skipped.state.allclose(plain.state)
    assert skipped.skipped == [(1, "Q")]
    assert [g.label for g in skipped.gates] == ["X", "Z"]
    assert "Unknown gate" in caplog.text

def test_separators_are_reported_by_default():
    result = apply_sequence(KET0, "X, Z")
    assert result.skipped == [(1, ","), (2, " ")]
    assert result.state.allclose(apply_sequence(KET0, "XZ").state)

def test_separators_can_be_ignored():
    result = apply_sequence(KET0, "T H,\tt", ignore_separators=True)
    assert result.skipped == []
    assert [g.label for g in result.gates] == ["T", "H", "T†"]

def test_sequence_unitary():
    assert sequence_unitary("HZH").allclose(PAULI_X)
    assert sequence_unitary("XQ") == PAULI_X.mul(IDENTITY)
    assert sequence_unitary("").allclose(IDENTITY)
    # applying the net unitary equals applying the gates one by one
    text = "THtSsY"
    assert sequence_unitary(text).mul_vec(KET0).allclose(apply_sequence(KET0, text).state)


####### Normalization #######

def test_long_sequences_stay_normalized():
    rng = np.random.default_rng(7)
    monitor = DriftMonitor()
    state = KET0
    symbols = list(GATE_SYMBOLS)
    for _ in range(2000):
        state, _ = apply_named_gate(state, symbols[rng.integers(len(symbols))], monitor)
        assert abs(state.norm_squared() - 1.0) <= TOL
    assert monitor.max_deviation < 1e-9

def test_drift_monitor_counts_corrections():
    monitor = DriftMonitor(strict_tolerance=1e-12)
    fixed = monitor.correct(StateVector(1.001, 0))
    assert fixed.is_normalized()
    assert monitor.corrections == 1
    monitor.correct(KET0)
    assert monitor.corrections == 1
    monitor.reset()
    assert monitor.corrections == 0 and monitor.max_deviation == 0.0

def test_zero_state_cannot_be_normalized():
    with pytest.raises(InvalidNumericInputError):
        StateVector(0, 0).renormalized()

"""
Transient engine tests against circuits with known answers.
"""
import logging
from pathlib import Path

import numpy as np
import pytest

from component_stamps import diode_current
from constants import GMIN
from errors import ErrorKind, NonConvergenceError, SingularSystemError
from matrix import Matrix
from netlist_parser import parse_netlist
from postprocessing import node_voltages
from solver import solve_nonlinear_circuit
from transient_analysis import State, TransientAnalysis

TESTFILES = Path(__file__).parent / "testfiles"


def load_netlist(name):
    return (TESTFILES / name).read_text()


def run_netlist(name, **options):
    engine = TransientAnalysis(parse_netlist(load_netlist(name)), **options)
    rows = list(engine.run())
    return engine, rows


def approx(a, b, tol=1e-9):
    return abs(a - b) < tol


# ============================================================
# LINEAR CIRCUITS
# ============================================================
def test_voltage_divider():
    engine, rows = run_netlist("voltage_divider.cir")
    assert len(rows) == 11
    for row in rows:
        t, v1, v2 = row
        assert approx(v1, 2.0)
        assert approx(v2, 1.0)
    assert engine.state is State.DONE


def test_row_layout():
    engine, rows = run_netlist("voltage_divider.cir")
    assert all(isinstance(value, float) for value in rows[-1])
    assert [round(row[0], 9) for row in rows] == [round(0.1 * k, 9) for k in range(11)]
    assert approx(rows[-1][0], 1.0)


def test_row_holds_node_voltages_only():
    engine, rows = run_netlist("voltage_divider.cir")
    # The solution also carries the V1 branch current after the nodes
    assert len(engine.solution()) == 3
    voltages = node_voltages(engine.solution(), 2)
    assert rows[-1][1:] == (voltages[1], voltages[2])


def test_divider_branch_currents():
    engine, rows = run_netlist("voltage_divider.cir")
    currents = engine.branch_currents()
    assert approx(currents["R1"], 1.0)
    assert approx(currents["R2"], 1.0)
    # Current from the + terminal through the source to the - terminal
    assert approx(currents["V1"], -1.0)


def test_integrals_use_trapezoidal_rule():
    engine, rows = run_netlist("voltage_divider.cir")
    # History starts at zero, so the first step only adds half a step
    expected = 0.1 / 2 * 1.0 + 10 * 0.1 * 1.0
    assert approx(engine.voltage_integral(1, 2), expected)
    assert approx(engine.voltage_integral(2, 1), -expected)
    assert approx(engine.current_integral("R1"), expected)
    assert approx(engine.current_integral(1), expected)
    with pytest.raises(KeyError):
        engine.voltage_integral(1, 3)


def test_node_voltage_lookup():
    engine, rows = run_netlist("voltage_divider.cir")
    assert approx(engine.node_voltage(2), 1.0)
    assert engine.node_voltage(0) == 0.0
    with pytest.raises(KeyError):
        engine.node_voltage(7)


def test_rc_charging():
    engine, rows = run_netlist("rc_charge.cir")
    assert len(rows) == 501
    for t, v1, v2 in rows:
        assert abs(v2 - (1 - np.exp(-t))) < 1e-2
    assert approx(rows[-1][0], 5.0)


def test_rl_current():
    engine, rows = run_netlist("rl_step.cir")
    for t, v1, v2 in rows:
        assert abs(v2 - np.exp(-t)) < 1e-2
    assert abs(engine.branch_currents()["L1"] - (1 - np.exp(-5.0))) < 1e-2


def test_current_source_direction():
    engine = TransientAnalysis(parse_netlist("I1 N001 0 1m\nR1 N001 0 1k\n.tran 1 2"))
    rows = list(engine.run())
    assert approx(rows[0][1], 1.0)
    assert approx(engine.branch_currents()["I1"], -1e-3)


def test_sine_source():
    engine, rows = run_netlist("sine_source.cir")
    expected = [0.0, 1.0, 0.0, -1.0, 0.0]
    assert [round(row[0], 9) for row in rows] == [0.0, 0.25, 0.5, 0.75, 1.0]
    for row, v in zip(rows, expected):
        assert approx(row[1], v)


def test_start_time():
    schematic = parse_netlist("V1 N001 0 1\nR1 N001 0 1\n.tran 0.1 1 0.5")
    rows = list(TransientAnalysis(schematic).run())
    assert len(rows) == 6
    assert approx(rows[0][0], 0.5)


# ============================================================
# NONLINEAR CIRCUITS
# ============================================================
def test_diode_forward_voltage():
    engine, rows = run_netlist("diode_clamp.cir")
    for t, v1, v2 in rows:
        assert 0.6 < v2 < 0.8
    current = engine.branch_currents()["D1"]
    assert approx(current, (5.0 - rows[-1][2]) / 1e3, tol=1e-8)


def test_diode_first_row_satisfies_kcl():
    engine, rows = run_netlist("diode_clamp.cir")
    t, v1, v2 = rows[0]
    resistor_current = (v1 - v2) / 1e3
    diode_current_at_v2 = diode_current(v2)[0] + GMIN * v2
    assert approx(resistor_current, diode_current_at_v2, tol=1e-8)
    assert approx(v2, rows[-1][2], tol=1e-5)


def test_npn_first_row_matches_steady_state():
    engine, rows = run_netlist("common_emitter.cir")
    # Purely resistive around the transistor, so every time point is the same
    for value_first, value_last in zip(rows[0][1:], rows[-1][1:]):
        assert approx(value_first, value_last, tol=1e-5)


def test_limited_junction_is_never_accepted():
    # Linear part already settled: only the diode junction voltage is still clamped
    assemble_calls = []

    def assemble(V_guess):
        assemble_calls.append(V_guess)
        G = Matrix.from_rows([[1.0]])
        return G, Matrix.column([2.0]), len(assemble_calls) < 3

    solution = solve_nonlinear_circuit(assemble, [2.0], node_count=1, max_iter=5)
    assert len(assemble_calls) == 3
    assert solution == Matrix.column([2.0])


def test_npn_forward_active():
    engine, rows = run_netlist("common_emitter.cir")
    t, vcc, vin, vb, vc = rows[-1]
    assert 0.6 < vb < 0.8
    assert 1.0 < vc < 3.0

    currents = engine.branch_currents()
    beta = currents["Q1"] / currents["R1"]
    assert abs(beta - 100.0) < 1.0


def test_pnp_mirrors_npn():
    _, npn_rows = run_netlist("common_emitter.cir")
    _, pnp_rows = run_netlist("common_emitter_pnp.cir")
    for npn, pnp in zip(npn_rows, pnp_rows):
        for v_npn, v_pnp in zip(npn[1:], pnp[1:]):
            assert approx(v_pnp, -v_npn)


def test_non_convergence():
    engine = TransientAnalysis(parse_netlist(load_netlist("diode_clamp.cir")), max_iterations=1)
    with pytest.raises(NonConvergenceError) as info:
        list(engine.run())
    assert info.value.kind is ErrorKind.NON_CONVERGENCE
    assert info.value.iterations == 1
    assert info.value.time == 0.0
    assert engine.state is State.FAILED


# ============================================================
# FAILURES & LIFECYCLE
# ============================================================
def test_singular_system(caplog):
    engine = TransientAnalysis(parse_netlist(load_netlist("floating_node.cir")))
    with caplog.at_level(logging.ERROR, logger="transient_analysis"):
        with pytest.raises(SingularSystemError) as info:
            list(engine.run())
    assert info.value.kind is ErrorKind.SINGULAR_SYSTEM
    assert info.value.time == 0.0
    assert engine.state is State.FAILED
    assert engine.failed_time == 0.0
    assert "failed" in caplog.text


def test_parallel_voltage_sources_are_singular():
    schematic = parse_netlist("V1 N001 0 1\nV2 N001 0 2\nR1 N001 0 1\n.tran 1 2")
    with pytest.raises(SingularSystemError):
        list(TransientAnalysis(schematic).run())


def test_rows_are_lazy():
    engine = TransientAnalysis(parse_netlist(load_netlist("rc_charge.cir")))
    rows = engine.run()
    assert engine.state is State.UNCONFIGURED
    first = next(rows)
    assert first[0] == 0.0
    assert engine.state is State.STEPPING


def test_run_is_not_restartable():
    engine, rows = run_netlist("voltage_divider.cir")
    with pytest.raises(RuntimeError):
        next(engine.run())


def test_sizing():
    engine = TransientAnalysis(parse_netlist(load_netlist("common_emitter.cir")))
    engine.size()
    assert engine.state is State.SIZED
    assert engine.G.size == (6, 6)
    assert engine.b.size == (6, 1)
    assert engine.node_map["V1"] == 4
    assert engine.node_map["V2"] == 5
    assert engine.node_map[1] == 0


def test_run_logs_start_and_end(caplog):
    with caplog.at_level(logging.INFO, logger="transient_analysis"):
        run_netlist("voltage_divider.cir")
    assert "linear" in caplog.text
    assert "11 time steps" in caplog.text

"""
Transient analysis engine.

Every time step clears the MNA system, stamps each component (capacitors and
inductors as trapezoidal companion models, diodes and transistors linearized
around a Newton-Raphson guess), solves it and emits the node voltages.
Branch currents and the running integrals of voltages and currents are kept
in two history maps for diagnostics.
"""
import logging
from enum import Enum

import numpy as np

from assembleYmatrix import assemble_system
from component_stamps import (bjt_collector_current, capacitor_current, diode_current,
                              inductor_current, node_voltage)
from components import Kind
from constants import *
from errors import SimulationError
from matrix import Matrix
from node_index import build_node_index, get_idx, validate_node
from postprocessing import node_voltages
from solver import solve_linear_circuit, solve_nonlinear_circuit
from sources import evaluate_source

logger = logging.getLogger(__name__)

# Slack when counting steps, so that stop_time itself is not lost to rounding
STEP_TOLERANCE = 1e-9


class State(Enum):
    UNCONFIGURED = "unconfigured"
    SIZED = "sized"
    STEPPING = "stepping"
    DONE = "done"
    FAILED = "failed"


def history_keys(comp):
    """Node pairs whose voltage is tracked for a component."""
    if comp.kind is Kind.TRANSISTOR:
        base, collector, emitter = comp.nodes
        return [(base, collector), (base, emitter)]
    return [tuple(comp.nodes)]


class TransientAnalysis:
    """
    One transient run over a parsed Schematic.

    The run is driven by iterating `run()`, which yields one
    `(t, v1, ..., vN)` row per time step. A run can't be restarted;
    build a new TransientAnalysis instead.
    """

    def __init__(self, schematic, max_iterations=MAX_ITER, tolerance=TOLERANCE, gmin=GMIN):
        self.schematic = schematic
        self.start_time = schematic.tran.start_time
        self.stop_time = schematic.tran.stop_time
        self.time_step = schematic.tran.time_step

        self.max_iterations = max_iterations
        self.tolerance = tolerance
        self.gmin = gmin

        self.G = Matrix()
        self.b = Matrix()
        self.result = Matrix()
        self.node_map = {}

        # (node_a, node_b) -> [integral of v, previous v]
        self.voltage_history = {}
        # component index -> [integral of i, previous i]
        self.current_history = {}
        # junction voltages from the last Newton-Raphson iteration
        self.junctions = {}

        self.state = State.UNCONFIGURED
        self.time = None
        self.failed_time = None

    # =========================================================================
    # SETUP
    # =========================================================================
    def size(self):
        """Size the MNA system and reset the history maps to zero."""
        n = self.schematic.dimension
        self.G.resize(n, n)
        self.b.resize(n, 1)
        self.result.resize(n, 1)
        self.node_map = build_node_index(self.schematic)

        self.voltage_history.clear()
        self.current_history.clear()
        self.junctions.clear()
        for index, comp in enumerate(self.schematic.components):
            for key in history_keys(comp):
                self.voltage_history[key] = [0.0, 0.0]
            self.current_history[index] = [0.0, 0.0]

        self.state = State.SIZED

    def times(self):
        """Time values of the run, from start_time to stop_time inclusive."""
        span = (self.stop_time - self.start_time) / self.time_step
        steps = int(np.floor(span + STEP_TOLERANCE))
        for k in range(steps + 1):
            yield self.start_time + k * self.time_step

    # =========================================================================
    # STEPPING
    # =========================================================================
    def run(self):
        """Generator of `(t, v1, ..., vN)` rows, one per time step."""
        if self.state is not State.UNCONFIGURED:
            raise RuntimeError(f"Transient analysis can't be restarted (state: {self.state.value})")

        self.size()
        self.state = State.STEPPING
        logger.info("Transient analysis from %g s to %g s, step %g s, %d unknowns (%s)",
                    self.start_time, self.stop_time, self.time_step, self.schematic.dimension,
                    "nonlinear" if self.schematic.has_nonlinear else "linear")

        steps = 0
        for t in self.times():
            self.time = t
            try:
                self.step(t)
            except SimulationError:
                self.state = State.FAILED
                self.failed_time = t
                logger.error("Transient analysis failed at t=%g", t)
                raise
            self.update_history()
            steps += 1
            yield self.row(t)

        self.state = State.DONE
        logger.info("Transient analysis done: %d time steps", steps)

    def step(self, t):
        """Solve the circuit at time t, leaving the solution in self.result."""
        schematic = self.schematic

        def assemble(V_guess=None):
            return assemble_system(self.G, self.b, schematic.components, self.node_map, t,
                                   self.time_step, self.voltage_history, self.current_history,
                                   V_guess, self.junctions, self.gmin)

        if schematic.has_nonlinear:
            # Initial guess is the previous time step's solution
            V_ini = self.result.to_array()[:, 0]
            self.result = solve_nonlinear_circuit(assemble, V_ini, schematic.node_count,
                                                  self.max_iterations, self.tolerance, time=t)
        else:
            assemble()
            self.result = solve_linear_circuit(self.G, self.b, time=t)

    def solution(self):
        """The latest solution as a flat array."""
        return self.result.to_array()[:, 0]

    def row(self, t):
        V = self.solution()
        voltages = node_voltages(V, self.schematic.node_count)
        return (float(t),) + tuple(voltages[node] for node in range(1, self.schematic.node_count + 1))

    # =========================================================================
    # HISTORY
    # =========================================================================
    def pair_voltage(self, V, pair):
        a, b = pair
        return node_voltage(V, get_idx(a, self.node_map)) - node_voltage(V, get_idx(b, self.node_map))

    def branch_current(self, index, comp, V):
        """Current from the first node to the second through the component."""
        if comp.kind is Kind.RESISTOR:
            return self.pair_voltage(V, comp.nodes) / comp.value
        if comp.kind is Kind.CAPACITOR:
            v_prev, i_prev = self.voltage_history[comp.nodes][1], self.current_history[index][1]
            return capacitor_current(comp, self.time_step, self.pair_voltage(V, comp.nodes), v_prev, i_prev)
        if comp.kind is Kind.INDUCTOR:
            v_prev, i_prev = self.voltage_history[comp.nodes][1], self.current_history[index][1]
            return inductor_current(comp, self.time_step, self.pair_voltage(V, comp.nodes), v_prev, i_prev)
        if comp.kind is Kind.VOLTAGE_SOURCE:
            return V[self.node_map[comp.name]]
        if comp.kind is Kind.CURRENT_SOURCE:
            return -evaluate_source(comp, self.time)
        if comp.kind is Kind.DIODE:
            vd = self.pair_voltage(V, comp.nodes)
            return diode_current(vd)[0] + self.gmin * vd
        if comp.kind is Kind.TRANSISTOR:
            return bjt_collector_current(comp, V, self.node_map, self.gmin)
        raise ValueError(f"Unsupported component kind: {comp.kind}")

    def update_history(self):
        """
        Compute every branch current from the new solution, then advance both
        history maps with the trapezoidal rule.
        """
        V = self.solution()
        h = self.time_step
        currents = {
            index: float(self.branch_current(index, comp, V))
            for index, comp in enumerate(self.schematic.components)
        }

        for pair, entry in self.voltage_history.items():
            v = float(self.pair_voltage(V, pair))
            entry[0] += h * (v + entry[1]) / 2
            entry[1] = v

        for index, i in currents.items():
            entry = self.current_history[index]
            entry[0] += h * (i + entry[1]) / 2
            entry[1] = i

    # =========================================================================
    # DIAGNOSTICS
    # =========================================================================
    def node_voltage(self, node):
        """Latest voltage of a node (0 for ground); KeyError for unknown nodes."""
        idx = validate_node(node, self.node_map)
        return float(node_voltage(self.solution(), idx))

    def voltage_integral(self, a, b):
        """Running integral of the voltage between two tracked nodes."""
        if (a, b) in self.voltage_history:
            return self.voltage_history[(a, b)][0]
        if (b, a) in self.voltage_history:
            return -self.voltage_history[(b, a)][0]
        raise KeyError(f"No component between nodes {a} and {b}")

    def current_integral(self, component):
        """Running integral of a component's current; component is an index or a name."""
        index = self.schematic.index_of(component) if isinstance(component, str) else component
        return self.current_history[index][0]

    def branch_currents(self):
        """Latest branch current of every component, by name."""
        return {
            comp.name: self.current_history[index][1]
            for index, comp in enumerate(self.schematic.components)
        }

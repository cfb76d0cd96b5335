import numpy as np

from constants import *
from node_index import get_idx
from sources import evaluate_source


def node_voltage(V, idx):
    """Voltage of a matrix index in a solution vector, 0 for ground (None)."""
    return V[idx] if idx is not None else 0.0


def stamp_conductance(G, i, j, g):
    """Add conductance g between matrix indices i and j (either may be ground)."""
    if i is not None:
        G[i, i] += g
        if j is not None:
            G[i, j] -= g
            G[j, i] -= g  # Symmetric cross-term
    if j is not None:
        G[j, j] += g


def stamp_current(sources, i, j, value):
    """Stamp a current of `value` flowing out of node i and into node j."""
    if i is not None: sources[i, 0] -= value
    if j is not None: sources[j, 0] += value


# =============================================================================
# LINEAR STATIC STAMPS (Resistors, Sources)
# =============================================================================
def stamp_resistor(G, sources, comp, node_map):
    """
    Stamps a resistor into the conductance matrix G.
    G: NxN Matrix
    comp: resistor Component, nodes (n1, n2), value R
    node_map: dict mapping node numbers to matrix indices
    """
    n1, n2 = comp.nodes
    g = 1 / comp.value
    stamp_conductance(G, get_idx(n1, node_map), get_idx(n2, node_map), g)


def stamp_current_source(G, sources, comp, node_map, t):
    """
    Stamps a current source into the RHS vector: +I(t) into n1, -I(t) into n2.
    sources: Nx1 Matrix
    t: time at which the source function is evaluated
    """
    n1, n2 = comp.nodes
    value = evaluate_source(comp, t)
    i, j = get_idx(n1, node_map), get_idx(n2, node_map)
    if i is not None: sources[i, 0] += value
    if j is not None: sources[j, 0] -= value


def stamp_independent_voltage(G, sources, comp, node_map, t):
    """
    Stamps an independent voltage source using MNA (extra row/col).
    n1, n2: node numbers (n1=positive, n2=negative)
    node_map[comp.name]: matrix index for the branch current variable
    """
    n1, n2 = comp.nodes
    value = evaluate_source(comp, t)
    idx = node_map[comp.name]
    i, j = get_idx(n1, node_map), get_idx(n2, node_map)

    if i is not None:
        G[i, idx] += 1
        G[idx, i] += 1
    if j is not None:
        G[j, idx] -= 1
        G[idx, j] -= 1

    sources[idx, 0] = value


# =============================================================================
# TRANSIENT DYNAMIC STAMPS (Capacitors, Inductors - Trapezoidal)
# =============================================================================
def stamp_capacitor_trap(G, sources, comp, node_map, dt, v_prev, i_prev):
    """
    Stamp a capacitor as its trapezoidal companion model.

    Parameters:
        G       : Conductance matrix
        sources : RHS vector
        comp    : capacitor Component
        dt      : Time step
        v_prev  : Voltage across the capacitor at the previous step
        i_prev  : Current through the capacitor at the previous step
    """
    n1, n2 = comp.nodes
    C = comp.value

    # Equivalent conductance in parallel with a history current source
    G_eq = 2 * C / dt
    I_eq = G_eq * v_prev + i_prev

    i1, i2 = get_idx(n1, node_map), get_idx(n2, node_map)
    stamp_conductance(G, i1, i2, G_eq)
    stamp_current(sources, i2, i1, I_eq)


def stamp_inductor_trap(G, sources, comp, node_map, dt, v_prev, i_prev):
    """
    Stamp an inductor as its trapezoidal companion model (the dual of the
    capacitor's): resistance 2L/dt in parallel with a history current source.

    Parameters:
        v_prev  : Voltage across the inductor at the previous step
        i_prev  : Current through the inductor at the previous step
    """
    n1, n2 = comp.nodes
    L = comp.value

    G_eq = dt / (2 * L)
    I_eq = i_prev + G_eq * v_prev

    i1, i2 = get_idx(n1, node_map), get_idx(n2, node_map)
    stamp_conductance(G, i1, i2, G_eq)
    stamp_current(sources, i1, i2, I_eq)


def capacitor_current(comp, dt, v, v_prev, i_prev):
    """Current through a capacitor once the step's voltage v is known."""
    return 2 * comp.value / dt * (v - v_prev) - i_prev


def inductor_current(comp, dt, v, v_prev, i_prev):
    """Current through an inductor once the step's voltage v is known."""
    return i_prev + dt / (2 * comp.value) * (v + v_prev)


# =============================================================================
# NON-LINEAR STAMPS (Diodes, Transistors)
# =============================================================================
def critical_voltage(Is):
    """Junction voltage above which pnjlim starts limiting."""
    return Vt * np.log(Vt / (np.sqrt(2) * Is))


def pnjlim(v_new, v_old, critical_v):
    """
    Standard SPICE limiting algorithm for PN junctions.
    Prevents V_guess from jumping too far in one iteration.

    Returns (voltage, limited); limited is True when the voltage was changed.
    """
    if v_new > critical_v and abs(v_new - v_old) > (2 * Vt):
        if v_old > 0:
            arg = 1 + (v_new - v_old) / Vt
            if arg > 0:
                # Already conducting: move along the log of the exponential
                return v_old + Vt * np.log(arg), True
            return critical_v, True
        return Vt * np.log(v_new / Vt), True
    return v_new, False


def junction_exp(v):
    return np.exp(min(v / Vt, MAX_EXPONENT))


def diode_current(vd, Is=DIODE_IS):
    """Shockley diode current and its conductance dI/dV at vd."""
    exp_term = junction_exp(vd)
    return Is * (exp_term - 1), (Is / Vt) * exp_term


def bjt_currents(vbe, vbc, Is=BJT_IS, BF=BJT_BF, BR=BJT_BR):
    """
    Ebers-Moll (transport form) currents of an NPN transistor.

    Returns:
        ic, ib                 : collector and base currents (into the device)
        dic_dvbe, dic_dvbc     : partial derivatives of ic
        dib_dvbe, dib_dvbc     : partial derivatives of ib
    """
    ef, er = junction_exp(vbe), junction_exp(vbc)
    gf, gr = (Is / Vt) * ef, (Is / Vt) * er

    ic = Is * (ef - er) - (Is / BR) * (er - 1)
    ib = (Is / BF) * (ef - 1) + (Is / BR) * (er - 1)

    return ic, ib, gf, -gr - gr / BR, gf / BF, gr / BR


def stamp_diode(G, sources, comp, node_map, V_guess, junctions, key, gmin=GMIN):
    """
    Stamps a linearized diode. Returns True when pnjlim limited the junction
    voltage, in which case the iteration can't be accepted as converged.
    """
    n1, n2 = comp.nodes
    idx1, idx2 = get_idx(n1, node_map), get_idx(n2, node_map)

    # Calculate Vd from the current guess
    vd_k = node_voltage(V_guess, idx1) - node_voltage(V_guess, idx2)

    # limit the amount v can jump at a time & prevent overflows
    vd_k, limited = pnjlim(vd_k, junctions.get(key, 0.0), critical_voltage(DIODE_IS))
    junctions[key] = vd_k

    # 1. Calculate linearization components
    id_k, gd = diode_current(vd_k)
    id_k += gmin * vd_k
    gd += gmin

    # linearized companion model
    ieq = id_k - gd * vd_k

    # 2. Stamp gd into G (like a resistor)
    stamp_conductance(G, idx1, idx2, gd)

    # 3. Stamp Ieq into RHS vector
    stamp_current(sources, idx1, idx2, ieq)

    return limited


def stamp_bjt(G, sources, comp, node_map, V_guess, junctions, key, gmin=GMIN):
    """
    Stamps a linearized bipolar transistor. Terminal order is (base,
    collector, emitter). A PNP is the NPN model with every junction voltage
    and terminal current negated.
    """
    polarity = 1.0 if comp.model == "NPN" else -1.0
    idx_b, idx_c, idx_e = [get_idx(node, node_map) for node in comp.nodes]

    v_b = node_voltage(V_guess, idx_b)
    v_c = node_voltage(V_guess, idx_c)
    v_e = node_voltage(V_guess, idx_e)

    v_crit = critical_voltage(BJT_IS)
    vbe, limited_be = pnjlim(polarity * (v_b - v_e), junctions.get((key, "be"), 0.0), v_crit)
    vbc, limited_bc = pnjlim(polarity * (v_b - v_c), junctions.get((key, "bc"), 0.0), v_crit)
    junctions[(key, "be")], junctions[(key, "bc")] = vbe, vbc

    ic, ib, dic_dvbe, dic_dvbc, dib_dvbe, dib_dvbc = bjt_currents(vbe, vbc)

    # gmin across both junctions
    ib += gmin * (vbe + vbc)
    ic -= gmin * vbc
    dib_dvbe += gmin
    dib_dvbc += gmin
    dic_dvbc -= gmin

    # The emitter current closes KCL for the device
    terminals = [
        (idx_c, dic_dvbe, dic_dvbc, ic),
        (idx_b, dib_dvbe, dib_dvbc, ib),
        (idx_e, -(dic_dvbe + dib_dvbe), -(dic_dvbc + dib_dvbc), -(ic + ib)),
    ]
    for row, g_be, g_bc, i_k in terminals:
        if row is None:
            continue
        if idx_b is not None: G[row, idx_b] += g_be + g_bc
        if idx_e is not None: G[row, idx_e] -= g_be
        if idx_c is not None: G[row, idx_c] -= g_bc
        sources[row, 0] -= polarity * (i_k - g_be * vbe - g_bc * vbc)

    return limited_be or limited_bc


def bjt_collector_current(comp, V, node_map, gmin=GMIN):
    """Collector current (into the collector terminal) at solution V."""
    polarity = 1.0 if comp.model == "NPN" else -1.0
    v_b, v_c, v_e = [node_voltage(V, get_idx(node, node_map)) for node in comp.nodes]
    vbc = polarity * (v_b - v_c)
    ic = bjt_currents(polarity * (v_b - v_e), vbc)[0]
    return polarity * (ic - gmin * vbc)

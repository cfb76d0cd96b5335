from components import Kind
import component_stamps as stamps

# 1. Purely static components (time independent)
STATIC_DISPATCH = {
    Kind.RESISTOR: stamps.stamp_resistor,
}

# 2. Source components (re-evaluated at every time step)
SOURCE_DISPATCH = {
    Kind.VOLTAGE_SOURCE: stamps.stamp_independent_voltage,
    Kind.CURRENT_SOURCE: stamps.stamp_current_source,
}

# 3. Transient companion models (Trapezoidal discretization)
TRANSIENT_DISPATCH = {
    Kind.CAPACITOR: stamps.stamp_capacitor_trap,
    Kind.INDUCTOR: stamps.stamp_inductor_trap,
}

# 4. Non-linear components (re-stamped each Newton-Raphson iteration)
NONLINEAR_DISPATCH = {
    Kind.DIODE: stamps.stamp_diode,
    Kind.TRANSISTOR: stamps.stamp_bjt,
}


def stamp_static_components(G, sources, components, node_map):
    """Stamps the time-independent components (R)."""
    for comp in components:
        if comp.kind in STATIC_DISPATCH:
            STATIC_DISPATCH[comp.kind](G, sources, comp, node_map)


def stamp_source_components(G, sources, components, node_map, t):
    """Stamps independent sources (V, I) evaluated at time t."""
    for comp in components:
        if comp.kind in SOURCE_DISPATCH:
            SOURCE_DISPATCH[comp.kind](G, sources, comp, node_map, t)


def stamp_transient_components(G, sources, components, node_map, dt, voltage_history, current_history):
    """
    Stamps the companion models of C and L for one time step.

    Parameters:
        voltage_history : dict {(node_a, node_b): [integral, previous voltage]}
        current_history : dict {component index: [integral, previous current]}
    """
    for index, comp in enumerate(components):
        if comp.kind in TRANSIENT_DISPATCH:
            v_prev = voltage_history[comp.nodes][1]
            i_prev = current_history[index][1]
            TRANSIENT_DISPATCH[comp.kind](G, sources, comp, node_map, dt, v_prev, i_prev)


def stamp_nonlinear_components(G, sources, components, node_map, V_guess, junctions, gmin):
    """
    Stamps the linearized D and Q models around the guess V_guess.
    Returns True when any junction voltage was limited.
    """
    limited = False
    for index, comp in enumerate(components):
        if comp.kind in NONLINEAR_DISPATCH:
            if NONLINEAR_DISPATCH[comp.kind](G, sources, comp, node_map, V_guess, junctions, index, gmin):
                limited = True
    return limited


def assemble_system(G, sources, components, node_map, t, dt, voltage_history, current_history,
                    V_guess=None, junctions=None, gmin=None):
    """
    Clears G and sources, then stamps every component for time t.
    Non-linear devices are only stamped when a guess is given.

    Returns (G, sources, limited); limited is True when a junction voltage
    was limited while stamping.
    """
    G.clear()
    sources.clear()

    stamp_static_components(G, sources, components, node_map)
    stamp_source_components(G, sources, components, node_map, t)
    stamp_transient_components(G, sources, components, node_map, dt, voltage_history, current_history)

    limited = False
    if V_guess is not None:
        limited = stamp_nonlinear_components(G, sources, components, node_map, V_guess, junctions, gmin)

    return G, sources, limited

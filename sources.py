import numpy as np

from components import Constant, Sinusoid


def evaluate_constant(function, t):
    return function.offset


def evaluate_sinusoid(function, t):
    """
    Damped sine:
        offset + amplitude * exp(-damping * (t - delay)) * sin(2*pi*f*(t - delay) + phase)

    Yields exactly 0 before the delay, and after cycle_count periods when a
    cycle count is set.
    """
    if t < function.delay:
        return 0.0

    if (function.cycle_count and function.frequency and
            t > function.cycle_count / function.frequency + function.delay):
        return 0.0

    elapsed = t - function.delay
    omega = 2 * np.pi * function.frequency
    damping = np.exp(-function.damping * elapsed)
    sine = np.sin(omega * elapsed + function.phase)
    return float(function.amplitude * damping * sine + function.offset)


FUNCTION_DISPATCH = {
    Constant: evaluate_constant,
    Sinusoid: evaluate_sinusoid,
}


def evaluate_function(function, t):
    """Evaluate a source function at time t."""
    try:
        evaluate = FUNCTION_DISPATCH[type(function)]
    except KeyError:
        raise ValueError(f"Unknown source function: {function!r}") from None
    return evaluate(function, t)


def evaluate_source(comp, t):
    """Value of a current or voltage source component at time t."""
    return evaluate_function(comp.function, t)

import numpy as np
import pytest

from components import Component, Constant, Kind, Sinusoid
from sources import evaluate_function, evaluate_source


def approx(a, b, tol=1e-12):
    return abs(a - b) < tol


def test_constant():
    assert evaluate_function(Constant(5.0), 0.0) == 5.0
    assert evaluate_function(Constant(5.0), 123.0) == 5.0


def test_sine_shape():
    sine = Sinusoid(offset=0, amplitude=1, frequency=1)
    assert approx(evaluate_function(sine, 0.0), 0.0)
    assert approx(evaluate_function(sine, 0.25), 1.0)
    assert approx(evaluate_function(sine, 0.75), -1.0)


def test_sine_offset_and_phase_in_radians():
    sine = Sinusoid(offset=2, amplitude=1, frequency=1, phase=np.pi / 2)
    assert approx(evaluate_function(sine, 0.0), 3.0)
    assert approx(evaluate_function(Sinusoid(0, 1, 1, 0, 0, np.pi / 2, 0), 0.0), 1.0)
    # A phase of 90 is read as 90 radians
    assert approx(evaluate_function(Sinusoid(0, 1, 1, 0, 0, 90, 0), 0.0), np.sin(90))


def test_sine_damping():
    sine = Sinusoid(amplitude=1, frequency=1, damping=1)
    assert approx(evaluate_function(sine, 0.25), np.exp(-0.25))


def test_sine_is_zero_before_delay():
    sine = Sinusoid(offset=1, amplitude=1, frequency=1, delay=0.5)
    assert evaluate_function(sine, 0.25) == 0.0
    assert approx(evaluate_function(sine, 0.75), 2.0)


def test_sine_is_zero_after_its_cycles():
    sine = Sinusoid(0, 1, 1, 0, 0, 0, 0)
    # cycle_count 0 never expires
    assert approx(evaluate_function(sine, 10.25), 1.0)

    sine = Sinusoid(offset=0.5, amplitude=1, frequency=1, cycle_count=2)
    assert approx(evaluate_function(sine, 1.25), 1.5)
    assert evaluate_function(sine, 2.25) == 0.0


def test_zero_frequency_sine_is_its_offset():
    sine = Sinusoid(offset=1.5, amplitude=1, cycle_count=3)
    assert approx(evaluate_function(sine, 1.0), 1.5)


def test_evaluate_source():
    source = Component(Kind.VOLTAGE_SOURCE, 1, (1, 0), function=Sinusoid(amplitude=2, frequency=1))
    assert approx(evaluate_source(source, 0.25), 2.0)


def test_unknown_function():
    with pytest.raises(ValueError):
        evaluate_function(3.0, 0.0)

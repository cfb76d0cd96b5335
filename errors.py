"""
Error kinds raised while parsing a netlist or running a simulation.

Parse errors derive from ValueError and carry the buffer position at which
parsing stopped. Simulation errors derive from RuntimeError and carry the
time step at which the run was aborted.
"""
from enum import Enum


class ErrorKind(Enum):
    MALFORMED_NUMBER = "MalformedNumber"
    UNKNOWN_PREFIX = "UnknownPrefix"
    UNKNOWN_COMPONENT = "UnknownComponent"
    SYNTAX_ERROR = "SyntaxError"
    SINGULAR_SYSTEM = "SingularSystem"
    NON_CONVERGENCE = "NonConvergence"


class CircuitError(Exception):
    """Base class for every error surfaced to callers of the simulator."""
    kind = None


# =============================================================================
# PARSE ERRORS
# =============================================================================
class NetlistError(CircuitError, ValueError):

    def __init__(self, message, position=None):
        self.message = message
        self.position = position
        if position is not None:
            message = f"{message} (line {position.line}, column {position.column})"
        super().__init__(message)

    @property
    def line(self):
        return self.position.line if self.position is not None else None

    @property
    def column(self):
        return self.position.column if self.position is not None else None


class MalformedNumberError(NetlistError):
    kind = ErrorKind.MALFORMED_NUMBER


class UnknownPrefixError(NetlistError):
    kind = ErrorKind.UNKNOWN_PREFIX


class UnknownComponentError(NetlistError):
    kind = ErrorKind.UNKNOWN_COMPONENT


class NetlistSyntaxError(NetlistError):
    kind = ErrorKind.SYNTAX_ERROR


# =============================================================================
# SIMULATION ERRORS
# =============================================================================
class SimulationError(CircuitError, RuntimeError):

    def __init__(self, message, time=None):
        self.message = message
        self.time = time
        if time is not None:
            message = f"{message} at t={time:g}"
        super().__init__(message)


class SingularSystemError(SimulationError):
    kind = ErrorKind.SINGULAR_SYSTEM


class NonConvergenceError(SimulationError):
    kind = ErrorKind.NON_CONVERGENCE

    def __init__(self, message, time=None, iterations=None):
        self.iterations = iterations
        super().__init__(message, time=time)


# =============================================================================
# MATRIX ERRORS
# =============================================================================
class MatrixDimensionError(ValueError):
    pass


class SingularMatrixError(ArithmeticError):
    pass

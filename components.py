"""
Component data model.

Every netlist line becomes one immutable Component. The set of kinds is
closed, so behaviour that differs per kind is looked up in dispatch tables
keyed by Kind (see assembleYmatrix.py and netlist_parser.py) instead of being
spread over subclasses.
"""
from dataclasses import dataclass, astuple
from enum import Enum
from typing import Optional, Tuple, Union


class Kind(Enum):
    CAPACITOR = "C"
    DIODE = "D"
    CURRENT_SOURCE = "I"
    INDUCTOR = "L"
    TRANSISTOR = "Q"
    RESISTOR = "R"
    VOLTAGE_SOURCE = "V"

    @property
    def symbol(self):
        return self.value


PASSIVE_KINDS = (Kind.RESISTOR, Kind.CAPACITOR, Kind.INDUCTOR)
SOURCE_KINDS = (Kind.CURRENT_SOURCE, Kind.VOLTAGE_SOURCE)
NONLINEAR_KINDS = (Kind.DIODE, Kind.TRANSISTOR)

TRANSISTOR_MODELS = ("NPN", "PNP")


# =============================================================================
# SOURCE FUNCTIONS
# =============================================================================
@dataclass(frozen=True)
class Constant:
    offset: float = 0.0


@dataclass(frozen=True)
class Sinusoid:
    # Field order matches the SINE(...) argument order
    offset: float = 0.0
    amplitude: float = 0.0
    frequency: float = 0.0
    delay: float = 0.0
    damping: float = 0.0
    phase: float = 0.0  # radians
    cycle_count: float = 0.0  # 0 means the source never expires


Function = Union[Constant, Sinusoid]


# =============================================================================
# COMPONENT
# =============================================================================
@dataclass(frozen=True)
class Component:
    kind: Kind
    designator: int
    nodes: Tuple[int, ...]
    value: Optional[float] = None
    function: Optional[Function] = None
    model: Optional[str] = None

    @property
    def name(self):
        return f"{self.kind.symbol}{self.designator}"

    def __str__(self):
        return format_component(self)


# =============================================================================
# PRINTING
# =============================================================================
def format_number(value):
    """Shortest text that parses back to exactly `value`."""
    return repr(float(value))


def format_designator(kind, designator):
    return f"{kind.symbol}{designator:03d}"


def format_node(node):
    return f"N{node:03d}"


def format_function(function):
    if isinstance(function, Constant):
        return format_number(function.offset)
    fields = " ".join(format_number(field) for field in astuple(function))
    return f"SINE({fields})"


def format_component(component):
    """Print a component as a netlist line (without the newline)."""
    parts = [format_designator(component.kind, component.designator)]
    parts += [format_node(node) for node in component.nodes]

    if component.kind in PASSIVE_KINDS:
        parts.append(format_number(component.value))
    elif component.kind in SOURCE_KINDS:
        parts.append(format_function(component.function))
    else:
        parts.append(component.model)

    return " ".join(parts)

from collections import Counter
from dataclasses import dataclass

from components import Kind, NONLINEAR_KINDS


@dataclass(frozen=True)
class TranDirective:
    """Parameters of a '.tran' line."""
    time_step: float
    stop_time: float
    start_time: float = 0.0


class Schematic:
    """
    The parsed circuit: an ordered arena of components plus the transient
    directive. The transient engine refers to components by their index in
    `components` and never modifies them.

    Derived quantities:
        node_count      : highest node id (node 0 is ground and has no unknown)
        counts          : Counter of components per Kind
        voltage_sources : indices of the voltage sources, in netlist order;
                          each one adds a branch-current unknown
        dimension       : size of the MNA system
    """

    def __init__(self, components, tran):
        self.components = tuple(components)
        self.tran = tran

        self.node_count = max((node for comp in self.components for node in comp.nodes), default=0)
        self.counts = Counter(comp.kind for comp in self.components)
        self.voltage_sources = tuple(
            index for index, comp in enumerate(self.components)
            if comp.kind is Kind.VOLTAGE_SOURCE
        )
        self.dimension = self.node_count + len(self.voltage_sources)
        self.has_nonlinear = any(comp.kind in NONLINEAR_KINDS for comp in self.components)

    def __len__(self):
        return len(self.components)

    def __iter__(self):
        return iter(self.components)

    def index_of(self, name):
        """Index of the component called `name` (e.g. 'R1')."""
        for index, comp in enumerate(self.components):
            if comp.name == name:
                return index
        raise KeyError(f"No component named {name}")

    def nodes(self):
        """Every node id that appears in the netlist, ground included."""
        return sorted({node for comp in self.components for node in comp.nodes})

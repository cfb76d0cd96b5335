from netlist_parser import parse_netlist
from postprocessing import write_rows
from transient_analysis import TransientAnalysis


def run_transient(schematic, **options):
    """
    Runs a transient analysis over an already parsed schematic.

    Parameters:
        schematic : Schematic from parse_netlist
        options   : overrides of the solver defaults (max_iterations, tolerance, gmin)
    Returns the lazy row generator.
    """
    return TransientAnalysis(schematic, **options).run()


def parse_and_run(netlist_text, **options):
    """
    Parses netlist_text right away (parse errors raise here) and returns the
    generator of `(t, v1, ..., vN)` rows. Simulation errors surface while
    iterating.
    """
    schematic = parse_netlist(netlist_text)
    return run_transient(schematic, **options)


def run_to_sink(netlist_text, sink, **options):
    """Parses, simulates and writes every row to sink. Returns the row count."""
    return write_rows(parse_and_run(netlist_text, **options), sink)

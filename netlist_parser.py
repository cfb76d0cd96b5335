import logging
import re
from functools import partial

from components import Component, Constant, Kind, Sinusoid, TRANSISTOR_MODELS
from constants import DEFAULT_TIME_STEP
from errors import (MalformedNumberError, NetlistSyntaxError,
                    UnknownComponentError, UnknownPrefixError)
from parse_buffer import ParseBuffer, Whitespace
from schematic import Schematic, TranDirective

logger = logging.getLogger(__name__)

NODE_MARKER = "N"
SEPARATORS = Whitespace.SPACES | Whitespace.TABS

# =============================================================================
# METRIC VALUE PARSER
# =============================================================================
MEG = "meg"
METRIC_PREFIXES = {
    'f': -15, 'p': -12, 'n': -9, 'u': -6, 'm': -3,
    'k': 3, 'g': 9, 't': 12,
}

NUMBER_PATTERN = re.compile(r'^([+-]?)(\d*)(?:\.(\d*))?(?:[eE]([+-]?\d+))?(.*)$', re.DOTALL)


def parse_metric_value(token, position=None):
    """
    Parses a number with an optional metric prefix, e.g. '4.7k', '10n',
    '2Meg', '1k2' (= 1.2k) or '2.2e-6'.

    'Meg' is checked before the single-letter prefixes so it is never read
    as milli. Raises MalformedNumberError when there is no numeric part and
    UnknownPrefixError when the text after the number is not a prefix.
    """
    match = NUMBER_PATTERN.match(token)
    sign, whole, fraction, exponent, suffix = match.groups()
    if not whole and not fraction:
        raise MalformedNumberError(f"Malformed number '{token}'", position)

    exponent = int(exponent) if exponent else 0

    if suffix:
        lowered = suffix.lower()
        if lowered.startswith(MEG):
            exponent += 6
            remainder = suffix[len(MEG):]
        elif lowered[0] in METRIC_PREFIXES:
            exponent += METRIC_PREFIXES[lowered[0]]
            remainder = suffix[1:]
        else:
            raise UnknownPrefixError(f"Unknown metric prefix '{suffix}' in '{token}'", position)

        # Infix notation: the digits after the prefix are the fractional part
        if remainder.isdigit() and fraction is None and match.group(4) is None:
            fraction = remainder
        elif remainder:
            raise UnknownPrefixError(f"Unknown metric prefix '{suffix}' in '{token}'", position)

    mantissa = f"{sign}{whole or '0'}.{fraction or '0'}"
    return float(f"{mantissa}e{exponent}")


# =============================================================================
# FIELD PARSERS
# =============================================================================
def parse_integer(buffer):
    """Parse a run of digits, returning None when there are none."""
    digits = ""
    while buffer.current().isdigit():
        digits += buffer.advance()
    return int(digits) if digits else None


def parse_node(buffer):
    """Parse a node such as 'N001' (leading zeros skipped) or a bare '0'."""
    position = buffer.position()
    buffer.match_literal(NODE_MARKER)
    node = parse_integer(buffer)
    if node is None:
        raise NetlistSyntaxError("Expected a node", position)
    return node


def parse_value(buffer, stop=""):
    position = buffer.position()
    token = buffer.read_token(stop)
    return parse_metric_value(token, position)


def next_field(buffer, description):
    """Skip the separator before the next field on the same line."""
    position = buffer.position()
    if not buffer.skip_whitespace(SEPARATORS) or buffer.at_line_end():
        raise NetlistSyntaxError(f"Expected {description}", position)


def parse_designator(buffer, kind):
    # Dispatch guarantees the buffer sits on the right letter
    assert buffer.current() == kind.symbol, \
        f"{kind.name} parser called on '{buffer.current()}'"
    buffer.advance()

    position = buffer.position()
    designator = parse_integer(buffer)
    if designator is None:
        raise NetlistSyntaxError(f"Expected a number after '{kind.symbol}'", position)
    return designator


def parse_nodes(buffer, count):
    nodes = []
    for _ in range(count):
        next_field(buffer, "a node")
        nodes.append(parse_node(buffer))
    return tuple(nodes)


# =============================================================================
# SOURCE FUNCTIONS
# =============================================================================
SINE_KEYWORDS = ("SINE", "SIN")
SINE_FIELDS = ["offset", "amplitude", "frequency", "delay", "damping", "phase", "cycle_count"]


def parse_sinusoid(buffer):
    """
    Parses the argument list of SINE(...). Fields are positional; parsing
    stops at the first token that does not start like a number, after which
    the closing bracket must follow. The bracket group may span lines.
    """
    position = buffer.position()
    buffer.skip_whitespace(SEPARATORS)
    if not buffer.match_literal("("):
        raise NetlistSyntaxError("Expected '(' after SINE", position)

    values = {}
    for field in SINE_FIELDS:
        buffer.skip_whitespace()
        character = buffer.current()
        if not (character and (character.isdigit() or character in ".+-")):
            break
        values[field] = parse_value(buffer, stop=")")

    buffer.skip_whitespace()
    position = buffer.position()
    if not buffer.match_literal(")"):
        raise NetlistSyntaxError("Expected ')' to close SINE", position)

    return Sinusoid(**values)


def parse_function(buffer):
    for keyword in SINE_KEYWORDS:
        if buffer.match_literal(keyword, case_sensitive=False):
            return parse_sinusoid(buffer)
    return Constant(parse_value(buffer))


# =============================================================================
# COMPONENT PARSERS
# =============================================================================
ZERO_FORBIDDEN_KINDS = (Kind.RESISTOR, Kind.INDUCTOR)


def parse_passive(buffer, kind):
    """<designator> <node_a> <node_b> <value>"""
    designator = parse_designator(buffer, kind)
    nodes = parse_nodes(buffer, 2)
    next_field(buffer, "a value")
    position = buffer.position()
    value = parse_value(buffer)
    # 1/R and dt/(2L) are stamped as conductances
    if value == 0 and kind in ZERO_FORBIDDEN_KINDS:
        raise NetlistSyntaxError(f"{kind.symbol}{designator} can't have a value of zero", position)
    return Component(kind, designator, nodes, value=value)


def parse_source(buffer, kind):
    """<designator> <node_pos> <node_neg> <value | SINE(...)>"""
    designator = parse_designator(buffer, kind)
    nodes = parse_nodes(buffer, 2)
    next_field(buffer, "a value or function")
    function = parse_function(buffer)
    return Component(kind, designator, nodes, function=function)


def parse_diode(buffer):
    """<designator> <anode> <cathode> <model>"""
    designator = parse_designator(buffer, Kind.DIODE)
    nodes = parse_nodes(buffer, 2)
    next_field(buffer, "a diode model")
    model = buffer.read_token()
    return Component(Kind.DIODE, designator, nodes, model=model)


def parse_transistor(buffer):
    """<designator> <base> <collector> <emitter> <NPN|PNP>"""
    designator = parse_designator(buffer, Kind.TRANSISTOR)
    nodes = parse_nodes(buffer, 3)
    next_field(buffer, "a transistor model")
    position = buffer.position()
    model = buffer.read_token().upper()
    if model not in TRANSISTOR_MODELS:
        raise NetlistSyntaxError(f"Expected NPN or PNP, found '{model}'", position)
    return Component(Kind.TRANSISTOR, designator, nodes, model=model)


PARSE_DISPATCH = {
    'C': partial(parse_passive, kind=Kind.CAPACITOR),
    'D': parse_diode,
    'I': partial(parse_source, kind=Kind.CURRENT_SOURCE),
    'L': partial(parse_passive, kind=Kind.INDUCTOR),
    'Q': parse_transistor,
    'R': partial(parse_passive, kind=Kind.RESISTOR),
    'V': partial(parse_source, kind=Kind.VOLTAGE_SOURCE),
}


def parse_component(buffer):
    """Parse one component, chosen by the designator letter under the cursor."""
    parse = PARSE_DISPATCH.get(buffer.current())
    if parse is None:
        raise UnknownComponentError(f"Unknown component '{buffer.current()}'", buffer.position())
    return parse(buffer)


def expect_line_end(buffer):
    buffer.skip_whitespace(Whitespace.INLINE)
    if not buffer.at_line_end():
        position = buffer.position()
        raise NetlistSyntaxError(f"Unexpected '{buffer.read_token()}'", position)


# =============================================================================
# DIRECTIVES
# =============================================================================
def parse_tran(buffer, position):
    """
    Parses the arguments of '.tran <time_step> <stop_time> [<start_time>]'.
    A zero time step (the '0' placeholder some dialects put first) falls back
    to DEFAULT_TIME_STEP.
    """
    values = []
    while True:
        buffer.skip_whitespace(Whitespace.INLINE)
        if buffer.at_line_end():
            break
        values.append(parse_value(buffer))

    if len(values) > 3:
        raise NetlistSyntaxError(".tran takes at most 3 parameters", position)

    time_step, stop_time, start_time = (values + [0.0] * 3)[:3]
    if stop_time <= 0:
        raise NetlistSyntaxError(".tran stop time must be greater than zero", position)
    if time_step < 0 or start_time < 0:
        raise NetlistSyntaxError(".tran parameters can't be negative", position)
    if start_time >= stop_time:
        raise NetlistSyntaxError(".tran start time must come before its stop time", position)
    if time_step == 0:
        time_step = DEFAULT_TIME_STEP

    return TranDirective(time_step=time_step, stop_time=stop_time, start_time=start_time)


def skip_line(buffer):
    while not buffer.at_line_end():
        buffer.advance()


# =============================================================================
# MAIN NETLIST PARSER
# =============================================================================
def parse_netlist(text):
    """Parse a whole netlist into a Schematic. Any error aborts the parse."""
    buffer = ParseBuffer(text)
    components = []
    seen = set()
    tran = None

    while True:
        buffer.skip_whitespace()
        if buffer.end_reached():
            break

        position = buffer.position()
        if buffer.current() == ".":
            directive = buffer.read_token().lower()
            if directive == ".end":
                break
            elif directive == ".tran":
                if tran is not None:
                    raise NetlistSyntaxError("Duplicate .tran directive", position)
                tran = parse_tran(buffer, position)
            else:
                logger.warning(f"Skipping unsupported directive {directive} on line {position.line}")
                skip_line(buffer)
            continue

        component = parse_component(buffer)
        if (component.kind, component.designator) in seen:
            raise NetlistSyntaxError(f"Duplicate designator {component.name}", position)
        seen.add((component.kind, component.designator))
        components.append(component)
        expect_line_end(buffer)

    if tran is None:
        raise NetlistSyntaxError("Netlist has no .tran directive", buffer.position())

    logger.debug(f"Parsed {len(components)} components")
    return Schematic(components, tran)

"""
Tests for the netlist parse buffer: cursor movement, literal matching,
whitespace/comment skipping and position bookkeeping.
"""
from parse_buffer import END, ParseBuffer, Position, Whitespace


# ============================================================
# CURSOR
# ============================================================
def test_current_and_peek():
    buffer = ParseBuffer("R1")
    assert buffer.current() == "R"
    assert buffer.peek_next() == "1"
    buffer.advance()
    assert buffer.current() == "1"
    assert buffer.peek_next() == END


def test_end_sentinel_past_the_text():
    buffer = ParseBuffer("a")
    assert buffer.advance(5) == "a"
    assert buffer.end_reached()
    assert buffer.current() == END


def test_position_tracks_lines_and_columns():
    buffer = ParseBuffer("ab\ncd")
    assert buffer.position() == Position(0, 1, 1)
    assert buffer.advance(3) == "ab\n"
    assert buffer.position() == Position(3, 2, 1)
    buffer.advance()
    assert buffer.position() == Position(4, 2, 2)


# ============================================================
# MATCHING
# ============================================================
def test_match_literal():
    buffer = ParseBuffer("N001")
    assert buffer.match_literal("N") == "N"
    assert buffer.current() == "0"


def test_match_literal_failure_leaves_cursor():
    buffer = ParseBuffer("SIN(")
    assert buffer.match_literal("SINE") == ""
    assert buffer.position() == Position(0, 1, 1)


def test_match_literal_case_insensitive():
    buffer = ParseBuffer("sine(0)")
    assert buffer.match_literal("SINE") == ""
    assert buffer.match_literal("SINE", case_sensitive=False) == "sine"
    assert buffer.current() == "("


def test_read_token_stops_at_whitespace_and_stop_characters():
    buffer = ParseBuffer("1k)  next")
    assert buffer.read_token(stop=")") == "1k"
    assert buffer.current() == ")"
    buffer.advance()
    assert buffer.read_token() == ""
    buffer.skip_whitespace()
    assert buffer.read_token() == "next"


# ============================================================
# WHITESPACE
# ============================================================
def test_skip_whitespace_swallows_comments_and_newlines():
    buffer = ParseBuffer("  * a comment\n\tR1")
    assert buffer.skip_whitespace() == "  * a comment\n\t"
    assert buffer.current() == "R"
    assert buffer.position().line == 2


def test_skip_whitespace_respects_flags():
    buffer = ParseBuffer("  \tx")
    assert buffer.skip_whitespace(Whitespace.SPACES) == "  "
    assert buffer.current() == "\t"


def test_inline_whitespace_stops_at_line_end():
    buffer = ParseBuffer(" * trailing\nR1")
    buffer.skip_whitespace(Whitespace.INLINE)
    assert buffer.at_line_end()
    assert buffer.current() == "\n"


def test_carriage_return_counts_as_line_end():
    buffer = ParseBuffer("\r\nR1")
    assert buffer.at_line_end()
    buffer.skip_whitespace()
    assert buffer.current() == "R"

from collections import namedtuple
from enum import IntFlag

# Returned by current()/peek_next() once the cursor runs past the text
END = ""

COMMENT_MARKER = "*"

Position = namedtuple("Position", ["offset", "line", "column"])


class Whitespace(IntFlag):
    """Flags selecting what skip_whitespace() consumes."""
    COMMENTS = 1
    NEWLINES = 1 << 1
    SPACES = 1 << 2
    TABS = 1 << 3

    INLINE = COMMENTS | SPACES | TABS
    ALL = COMMENTS | NEWLINES | SPACES | TABS


class ParseBuffer:
    """
    Cursor over an immutable block of netlist text.

    Keeps line and column bookkeeping up to date as the cursor advances, so
    parse errors can report where they happened. None of the methods raise:
    a failed match leaves the cursor where it was and returns an empty
    result, and the caller decides whether that is an error.
    """

    def __init__(self, text):
        self.text = text
        self.length = len(text)
        self.index = 0
        self.line = 0
        self.column = 0

    def current(self):
        """Character under the cursor, or END."""
        return self.text[self.index] if self.index < self.length else END

    def peek_next(self):
        """Character after the cursor, or END."""
        return self.text[self.index + 1] if self.index + 1 < self.length else END

    def end_reached(self):
        return self.index >= self.length

    def advance(self, steps=1):
        """Move the cursor forward, returning the text stepped over."""
        start = self.index
        for _ in range(steps):
            if self.index >= self.length:
                break
            if self.text[self.index] == "\n":
                self.line += 1
                self.column = 0
            else:
                self.column += 1
            self.index += 1
        return self.text[start:self.index]

    def match_literal(self, literal, case_sensitive=True):
        """
        Consume `literal` (a character or a string) if the text at the cursor
        matches it exactly, returning the matched text; otherwise return ""
        and leave the cursor untouched.
        """
        if not literal:
            return ""
        candidate = self.text[self.index:self.index + len(literal)]
        if len(candidate) != len(literal):
            return ""
        if case_sensitive:
            matched = candidate == literal
        else:
            matched = candidate.lower() == literal.lower()
        return self.advance(len(literal)) if matched else ""

    def skip_whitespace(self, flags=Whitespace.ALL):
        """Skip the kinds of whitespace selected by `flags`, returning them."""
        start = self.index
        while not self.end_reached():
            character = self.current()
            if ((character == " " and flags & Whitespace.SPACES) or
                    (character == "\t" and flags & Whitespace.TABS) or
                    (character == "\n" and flags & Whitespace.NEWLINES) or
                    (character == "\r" and flags & Whitespace.NEWLINES)):
                self.advance()
            elif character == COMMENT_MARKER and flags & Whitespace.COMMENTS:
                while not self.end_reached() and self.current() != "\n":
                    self.advance()
            else:
                break
        return self.text[start:self.index]

    def read_token(self, stop=""):
        """Consume a run of non-whitespace characters, halting before any in `stop`."""
        start = self.index
        while not self.end_reached():
            character = self.current()
            if character.isspace() or character in stop:
                break
            self.advance()
        return self.text[start:self.index]

    def at_line_end(self):
        return self.end_reached() or self.current() in "\r\n"

    def position(self):
        """Offset plus 1-based line and column of the cursor."""
        return Position(self.index, self.line + 1, self.column + 1)

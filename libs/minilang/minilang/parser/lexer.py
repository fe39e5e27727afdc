"""Lexer (tokenizer) for minilang source code."""

from __future__ import annotations

import logging
import re
import string
from collections.abc import Iterable

from minilang.diagnostics.collector import DiagnosticCollector
from minilang.diagnostics.diagnostic import Diagnostic
from minilang.diagnostics.kinds import DiagnosticKind
from minilang.diagnostics.location import SourceLocation
from minilang.parser.tokens import OPERATOR_SEQUENCES, Token, TokenKind

logger = logging.getLogger(__name__)

_NUMBER_RE = re.compile(r"[0-9]*\.?[0-9]+")


class Lexer:
    """Tokenize minilang source into a flat token stream.

    Identifier and number characters are buffered and flushed into a token
    at the next boundary.  String literals and comments are scanned in one
    go.  An unterminated string or comment, or a character outside the
    language's alphabet, is reported and stops the scan; the returned
    stream still ends with an EOF token.
    """

    # Any ASCII punctuation except the string delimiter becomes a SYMBOL.
    _SYMBOLS: frozenset[str] = frozenset(string.punctuation) - {'"', "_"}

    def __init__(
        self,
        source: str,
        keywords: Iterable[str] = (),
        filename: str = "<string>",
        diagnostics: DiagnosticCollector | None = None,
    ) -> None:
        self._source = source
        self._keywords = frozenset(keywords)
        self._filename = filename
        self._diag = diagnostics if diagnostics is not None else DiagnosticCollector()
        self._diag.attach_source(source)
        self._pos = 0
        self._line = 1
        self._col = 1
        self._buffer: list[str] = []
        self._buffer_loc: SourceLocation | None = None
        self._tokens: list[Token] = []
        self._halted = False

    @property
    def diagnostics(self) -> DiagnosticCollector:
        return self._diag

    @property
    def halted(self) -> bool:
        """True once a fatal lexical error has stopped the scan."""
        return self._halted

    # ------------------------------------------------------------------
    # Helper methods
    # ------------------------------------------------------------------

    def _peek(self, offset: int = 0) -> str:
        """Return character at current position + offset, or '' at EOF."""
        idx = self._pos + offset
        if idx < len(self._source):
            return self._source[idx]
        return ""

    def _advance(self) -> str:
        """Consume and return the current character, updating line/col."""
        ch = self._source[self._pos]
        self._pos += 1
        if ch == "\n":
            self._line += 1
            self._col = 1
        else:
            self._col += 1
        return ch

    def _at_end(self) -> bool:
        return self._pos >= len(self._source)

    def _loc(self, line: int | None = None, col: int | None = None) -> SourceLocation:
        return SourceLocation(
            line=self._line if line is None else line,
            column=self._col if col is None else col,
            file=self._filename,
        )

    def _emit(self, kind: TokenKind, lexeme: str, loc: SourceLocation) -> None:
        self._tokens.append(Token(kind, lexeme, loc))

    def _fail(self, kind: DiagnosticKind, message: str, loc: SourceLocation) -> None:
        """Record a fatal lexical diagnostic and stop scanning."""
        self._diag.report(kind, message, loc)
        self._halted = True

    # ------------------------------------------------------------------
    # Buffer handling
    # ------------------------------------------------------------------

    def _flush_buffer(self) -> None:
        """Turn the pending word buffer into a keyword, number or identifier."""
        text = "".join(self._buffer)
        loc = self._buffer_loc
        self._buffer = []
        self._buffer_loc = None
        if not text.strip() or loc is None:
            return
        if text in self._keywords:
            kind = TokenKind.KEYWORD
        elif _NUMBER_RE.fullmatch(text):
            kind = TokenKind.NUMBER
        else:
            kind = TokenKind.IDENTIFIER
        self._emit(kind, text, loc)

    def _buffer_char(self) -> None:
        if not self._buffer:
            self._buffer_loc = self._loc()
        self._buffer.append(self._advance())

    def _continues_number(self) -> bool:
        """True if a '.' at the cursor is the decimal point of a number."""
        pending = "".join(self._buffer)
        return (pending == "" or pending.isdigit()) and self._peek(1).isdigit()

    # ------------------------------------------------------------------
    # Scanning helpers
    # ------------------------------------------------------------------

    def _skip_line_comment(self) -> None:
        """Skip from '//' to end of line (the newline itself is NOT consumed)."""
        while not self._at_end() and self._peek() != "\n":
            self._advance()

    def _skip_block_comment(self) -> None:
        """Skip a '/* ... */' comment. The cursor is on the opening '/'."""
        start = self._loc()
        self._advance()
        self._advance()
        while not self._at_end():
            if self._peek() == "*" and self._peek(1) == "/":
                self._advance()
                self._advance()
                return
            self._advance()
        self._fail(DiagnosticKind.UNTERMINATED_COMMENT, "Unterminated block comment", start)

    def _scan_string(self) -> None:
        """Scan a double-quoted string literal. The cursor is on the opening '"'.

        An empty literal produces no token.
        """
        start = self._loc()
        self._advance()
        chars: list[str] = []
        while not self._at_end():
            ch = self._advance()
            if ch == '"':
                if chars:
                    self._emit(TokenKind.STRING, "".join(chars), start)
                return
            chars.append(ch)
        self._fail(DiagnosticKind.UNTERMINATED_STRING, "Unterminated string literal", start)

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    def tokenize(self) -> list[Token]:
        """Tokenize the entire source. Returns list ending with an EOF token."""
        while not self._halted and not self._at_end():
            ch = self._peek()

            # --- String literal ---
            if ch == '"':
                self._flush_buffer()
                self._scan_string()
                continue

            # --- Whitespace ---
            if ch.isspace():
                self._flush_buffer()
                self._advance()
                continue

            # --- Comments ---
            if ch == "/" and self._peek(1) == "/":
                self._flush_buffer()
                self._skip_line_comment()
                continue
            if ch == "/" and self._peek(1) == "*":
                self._flush_buffer()
                self._skip_block_comment()
                continue

            # --- Two-character operators ---
            pair = ch + self._peek(1)
            if pair in OPERATOR_SEQUENCES:
                self._flush_buffer()
                loc = self._loc()
                self._advance()
                self._advance()
                self._emit(TokenKind.OPERATOR, pair, loc)
                continue

            # --- Identifier / keyword / number characters ---
            if ch == "." and self._continues_number():
                self._buffer_char()
                continue
            if ch.isalnum() or ch == "_":
                self._buffer_char()
                continue

            # --- Single-character symbols ---
            if ch in self._SYMBOLS:
                self._flush_buffer()
                loc = self._loc()
                self._advance()
                self._emit(TokenKind.SYMBOL, ch, loc)
                continue

            # --- Invalid character ---
            self._flush_buffer()
            self._fail(DiagnosticKind.INVALID_CHARACTER, f"Invalid character {ch!r}", self._loc())

        self._flush_buffer()
        self._emit(TokenKind.EOF, "", self._loc())
        logger.debug(
            "tokenized %s: %d tokens, %d diagnostics%s",
            self._filename,
            len(self._tokens),
            len(self._diag),
            " (halted)" if self._halted else "",
        )
        return list(self._tokens)


def tokenize(
    source: str,
    keywords: Iterable[str] = (),
    filename: str = "<string>",
) -> tuple[list[Token], list[Diagnostic]]:
    """Tokenize *source* with the given keyword set.

    Returns:
        A ``(tokens, diagnostics)`` tuple.  The token list always ends with
        exactly one EOF token.
    """
    lexer = Lexer(source, keywords, filename)
    tokens = lexer.tokenize()
    return tokens, lexer.diagnostics.get_all()

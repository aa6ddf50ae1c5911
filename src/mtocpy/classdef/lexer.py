"""
Classdef Scanner (Tokenizer)
============================

This module implements the scanner for MATLAB classdef files. It converts
source text into a stream of tokens for the class parser while keeping the
exact source offsets of every token, so that default values and method
bodies can later be sliced out of the source verbatim.

Token Categories
----------------
- Words: identifiers and keywords (keywords only at statement start)
- Numbers: 42, 1.5, .5, 1e-3, 0x1F, 3i
- Literals: 'char arrays' and "strings", quotes doubled to escape
- Comments: % line comments and %{ ... %} block comments
- Continuations: ... plus the rest of the line
- Brackets, delimiters and operators

Scanner States
--------------
The scanner is an explicit state machine rather than a set of line-based
regular expressions, because brackets and quotes interact:

| State            | Leaves on                         |
|------------------|-----------------------------------|
| OUTSIDE          | quote (literal), %{ line (comment)|
| IN_LITERAL       | unescaped closing quote           |
| IN_BLOCK_COMMENT | matching %} line                  |

Brackets inside a literal never change the nesting depth, and a quote that
follows an operand without whitespace (or inside parentheses) is the
transpose operator, not the start of a literal.

Statement Start
---------------
The language is layout-insensitive except that structural keywords
(classdef, properties, methods, events, end, function, ...) only count as
keywords when they are the first significant token of a logical statement.
Every token therefore carries a `statement_start` flag.

Example Usage
-------------
>>> from mtocpy.classdef.lexer import Scanner
>>> for token in Scanner("x = 'a(';  % note", "test.m").tokenize():
...     print(token)
Token(WORD, 'x', 1:1)
Token(ASSIGN, '=', 1:3)
Token(CHAR_ARRAY, "'a('", 1:5)
Token(SEMICOLON, ';', 1:9)
Token(COMMENT, ' note', 1:12)
Token(EOF, 1:18)
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator, Optional
import string

from mtocpy.errors import SourceLocation
from mtocpy.classdef.errors import (
    LexError,
    UnbalancedBracketError,
)


# =============================================================================
# Token Type Enumeration
# =============================================================================

class TokenType(Enum):
    """Token types for classdef source."""

    # === Structural Tokens ===
    EOF = auto()
    NEWLINE = auto()        # depth-0 newline, ends a statement

    # === Words and Literals ===
    WORD = auto()           # identifier or keyword
    NUMBER = auto()
    CHAR_ARRAY = auto()     # '...'
    STRING = auto()         # "..."

    # === Comments ===
    COMMENT = auto()        # % text (value excludes the %)
    BLOCK_COMMENT = auto()  # %{ ... %} (value is the inner lines)
    CONTINUATION = auto()   # ... rest of line

    # === Brackets ===
    LPAREN = auto()
    RPAREN = auto()
    LBRACKET = auto()
    RBRACKET = auto()
    LBRACE = auto()
    RBRACE = auto()

    # === Delimiters and Operators ===
    SEMICOLON = auto()
    COMMA = auto()
    ASSIGN = auto()         # =
    DOT = auto()            # .
    AT = auto()             # @
    LT = auto()             # < (superclass list)
    AMPERSAND = auto()      # & (superclass separator)
    TILDE = auto()          # ~ (negated attribute, ignored output)
    QUESTION = auto()       # ? (meta-class query)
    TRANSPOSE = auto()      # ' or .'
    OPERATOR = auto()       # any other operator


# =============================================================================
# Keywords
# =============================================================================

# Keywords that structure the class file itself
CLASS_KEYWORDS = frozenset({
    "classdef", "properties", "methods", "events", "enumeration", "end",
})

# Keywords that open a nested block inside a function body; each is
# closed by a statement-start 'end'
BODY_OPENERS = frozenset({
    "if", "for", "parfor", "while", "switch", "try", "spmd", "function",
})

STRUCTURAL_KEYWORDS = CLASS_KEYWORDS | BODY_OPENERS

# Keywords after which the next word starts a new statement even without
# a separator
STATEMENT_PREFIXES = frozenset({"end", "else", "otherwise", "try"})

# Token types that can be followed by a transpose operator
OPERAND_TYPES = frozenset({
    TokenType.WORD,
    TokenType.NUMBER,
    TokenType.RPAREN,
    TokenType.RBRACKET,
    TokenType.RBRACE,
    TokenType.TRANSPOSE,
    TokenType.CHAR_ARRAY,
    TokenType.STRING,
})

# Tokens that never affect statement-start tracking
TRIVIA_TYPES = frozenset({
    TokenType.CONTINUATION,
})

BRACKET_PAIRS = {")": "(", "]": "[", "}": "{"}

BRACKET_TOKENS = {
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "[": TokenType.LBRACKET,
    "]": TokenType.RBRACKET,
    "{": TokenType.LBRACE,
    "}": TokenType.RBRACE,
}

TWO_CHAR_OPERATORS = frozenset({
    "==", "~=", "<=", ">=", "&&", "||", ".*", "./", ".\\", ".^",
})

SINGLE_TOKENS = {
    ";": TokenType.SEMICOLON,
    ",": TokenType.COMMA,
    "=": TokenType.ASSIGN,
    ".": TokenType.DOT,
    "@": TokenType.AT,
    "<": TokenType.LT,
    "&": TokenType.AMPERSAND,
    "~": TokenType.TILDE,
    "?": TokenType.QUESTION,
}


class ScanState(Enum):
    """States of the scanner state machine."""
    OUTSIDE = auto()
    IN_LITERAL = auto()
    IN_BLOCK_COMMENT = auto()


# =============================================================================
# Token Data Class
# =============================================================================

@dataclass(frozen=True)
class Token:
    """
    Represents a single token of classdef source.

    Attributes:
        type: The TokenType classification
        value: Token text (raw source text for literals, comment text
            without the leading % for comments)
        line: Line number in source (1-indexed)
        column: Column number in source (1-indexed)
        filename: Name of the source file
        start: Offset of the first character in the source
        end: Offset one past the last character in the source
        depth: Bracket nesting depth at the token
        statement_start: True if this is the first significant token of a
            logical statement
    """
    type: TokenType
    value: Optional[str]
    line: int
    column: int
    filename: str
    start: int = 0
    end: int = 0
    depth: int = 0
    statement_start: bool = False

    def __repr__(self) -> str:
        """Format token for debugging output."""
        if self.value is not None:
            return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"
        return f"Token({self.type.name}, {self.line}:{self.column})"

    @property
    def location(self) -> SourceLocation:
        """Return a SourceLocation for error reporting."""
        return SourceLocation(self.filename, self.line, self.column)

    def is_word(self, *words: str) -> bool:
        """Return True if this is a WORD token with one of the given texts."""
        return self.type == TokenType.WORD and self.value in words

    def is_keyword(self, *words: str) -> bool:
        """
        Return True if this token is one of the given structural keywords.

        A word is only a keyword when it starts a logical statement, so
        `x(end)` or `obj.methods` never match.
        """
        return self.statement_start and self.is_word(*words)

    def is_comment(self) -> bool:
        """Return True for line and block comments."""
        return self.type in (TokenType.COMMENT, TokenType.BLOCK_COMMENT)


# =============================================================================
# Scanner Implementation
# =============================================================================

class Scanner:
    """
    Tokenizes MATLAB classdef source code.

    Usage:
        scanner = Scanner(source_text, filename)
        tokens = list(scanner.tokenize())

    Raises LexError for unterminated literals and block comments, and
    UnbalancedBracketError for brackets that do not pair up.
    """

    IDENT_START = string.ascii_letters + "_"
    IDENT_CHARS = string.ascii_letters + string.digits + "_"

    def __init__(self, source: str, filename: str = "<input>"):
        self.source = source
        self.filename = filename
        self.lines = source.splitlines()

        self._pos = 0
        self._line = 1
        self._column = 1
        self._line_start_pos = 0

        self._state = ScanState.OUTSIDE

        # Open brackets: (char, location)
        self._brackets: list[tuple[str, SourceLocation]] = []

        # Statement-start tracking
        self._at_statement_start = True
        self._last: Optional[Token] = None
        self._space_before = False

        # Pending literal / block comment bookkeeping
        self._literal_quote = ""
        self._literal_start: tuple[int, int, int] = (0, 0, 0)
        self._block_start: tuple[int, int, int] = (0, 0, 0)
        self._block_depth = 0
        self._block_lines: list[str] = []

    @property
    def depth(self) -> int:
        """Current bracket nesting depth."""
        return len(self._brackets)

    def tokenize(self) -> Iterator[Token]:
        """
        Generate tokens from the source code.

        Yields:
            Token objects, ending with a single EOF token
        """
        while not self._at_end():
            if self._state is ScanState.IN_LITERAL:
                token = self._scan_literal_body()
            elif self._state is ScanState.IN_BLOCK_COMMENT:
                token = self._scan_block_comment_body()
            else:
                token = self._scan_outside()

            if token is not None:
                self._register(token)
                yield token

        if self._state is ScanState.IN_LITERAL:
            self._raise_unterminated_literal()
        if self._state is ScanState.IN_BLOCK_COMMENT:
            self._raise_unterminated_block_comment()

        if self._brackets:
            char, opened_at = self._brackets[-1]
            raise UnbalancedBracketError(
                char,
                f"unclosed '{char}' at end of file",
                opened_at,
                self._line_text(opened_at.line),
            )

        yield Token(
            TokenType.EOF, None, self._line, self._column, self.filename,
            self._pos, self._pos, 0, True,
        )

    # =========================================================================
    # Character Access Methods
    # =========================================================================

    def _at_end(self) -> bool:
        return self._pos >= len(self.source)

    def _peek(self, offset: int = 0) -> str:
        pos = self._pos + offset
        if pos >= len(self.source):
            return ""
        return self.source[pos]

    def _advance(self) -> str:
        if self._at_end():
            return ""

        char = self.source[self._pos]
        self._pos += 1

        if char == "\n":
            self._line += 1
            self._column = 1
            self._line_start_pos = self._pos
        else:
            self._column += 1

        return char

    def _rest_of_line(self) -> str:
        end = self.source.find("\n", self._pos)
        if end == -1:
            end = len(self.source)
        return self.source[self._pos:end]

    def _line_text(self, line: int) -> Optional[str]:
        if 0 < line <= len(self.lines):
            return self.lines[line - 1]
        return None

    # =========================================================================
    # Token Bookkeeping
    # =========================================================================

    def _make_token(
        self,
        token_type: TokenType,
        value: Optional[str],
        start: tuple[int, int, int],
        depth: Optional[int] = None,
    ) -> Token:
        """Create a token spanning from `start` (pos, line, column) to here."""
        pos, line, column = start
        return Token(
            type=token_type,
            value=value,
            line=line,
            column=column,
            filename=self.filename,
            start=pos,
            end=self._pos,
            depth=self.depth if depth is None else depth,
            statement_start=self._at_statement_start,
        )

    def _mark(self) -> tuple[int, int, int]:
        return (self._pos, self._line, self._column)

    def _register(self, token: Token) -> None:
        """Update statement-start tracking after emitting a token."""
        if token.type in TRIVIA_TYPES:
            self._space_before = True
            return

        self._space_before = False

        self._last = token

        if token.type in (TokenType.NEWLINE, TokenType.COMMENT, TokenType.BLOCK_COMMENT):
            if token.depth == 0:
                self._at_statement_start = True
            return

        if token.type in (TokenType.SEMICOLON, TokenType.COMMA) and token.depth == 0:
            self._at_statement_start = True
            return

        if token.is_keyword(*STATEMENT_PREFIXES):
            # 'end end' closes two blocks, 'else if' opens a nested one
            self._at_statement_start = True
            return

        self._at_statement_start = False

    # =========================================================================
    # OUTSIDE State
    # =========================================================================

    def _scan_outside(self) -> Optional[Token]:
        """Scan one token in the OUTSIDE state, or switch state."""
        char = self._peek()

        if char in " \t\r\f\v":
            self._advance()
            self._space_before = True
            return None

        start = self._mark()

        if char == "\n":
            self._advance()
            if self.depth == 0:
                return self._make_token(TokenType.NEWLINE, "\n", start)
            # Newlines inside brackets are row separators
            self._space_before = True
            return None

        if char == "%":
            if self._is_block_comment_open():
                self._enter_block_comment(start)
                return None
            return self._scan_line_comment(start)

        if char == "." and self._peek(1) == "." and self._peek(2) == ".":
            return self._scan_continuation(start)

        if char == "'":
            if self._quote_is_transpose():
                self._advance()
                return self._make_token(TokenType.TRANSPOSE, "'", start)
            self._enter_literal(start, "'")
            return None

        if char == '"':
            self._enter_literal(start, '"')
            return None

        if char in self.IDENT_START:
            return self._scan_word(start)

        if char.isdigit() or (char == "." and self._peek(1).isdigit()):
            return self._scan_number(start)

        if char in BRACKET_TOKENS:
            return self._scan_bracket(start)

        return self._scan_operator(start)

    def _scan_line_comment(self, start: tuple[int, int, int]) -> Token:
        self._advance()  # consume %
        text = self._rest_of_line()
        for _ in text:
            self._advance()
        return self._make_token(TokenType.COMMENT, text, start)

    def _scan_continuation(self, start: tuple[int, int, int]) -> Token:
        """
        Scan '...' and the rest of its line, including the newline.

        The text after the marker is a comment for MATLAB and is kept
        verbatim so default values can be reproduced byte for byte.
        """
        text = self._rest_of_line()
        for _ in text:
            self._advance()
        token = self._make_token(TokenType.CONTINUATION, text, start)
        if self._peek() == "\n":
            self._advance()
        return token

    def _scan_word(self, start: tuple[int, int, int]) -> Token:
        chars = []
        while self._peek() and self._peek() in self.IDENT_CHARS:
            chars.append(self._advance())
        return self._make_token(TokenType.WORD, "".join(chars), start)

    def _scan_number(self, start: tuple[int, int, int]) -> Token:
        """
        Scan a numeric literal.

        Handles 42, 1.5, .5, 1e-3, 2.5E+10, 0x1F, 0b101 and imaginary
        suffixes (3i, 2j). A '.' followed by an element-wise operator
        character is left for the operator ('1.*x' is '1 .* x').
        """
        chars = []

        if self._peek() == "0" and self._peek(1) in ("x", "X", "b", "B"):
            chars.append(self._advance())
            chars.append(self._advance())
            while self._peek() and self._peek() in string.hexdigits:
                chars.append(self._advance())
            return self._make_token(TokenType.NUMBER, "".join(chars), start)

        while self._peek().isdigit():
            chars.append(self._advance())

        if self._peek() == "." and self._peek(1) not in ("*", "/", "\\", "^", "'"):
            if not (self._peek(1) == "." and self._peek(2) == "."):
                chars.append(self._advance())
                while self._peek().isdigit():
                    chars.append(self._advance())

        if self._peek() in ("e", "E", "d", "D"):
            sign = self._peek(1)
            if sign.isdigit() or (sign in "+-" and self._peek(2).isdigit()):
                chars.append(self._advance())
                if sign in "+-":
                    chars.append(self._advance())
                while self._peek().isdigit():
                    chars.append(self._advance())

        follower = self._peek(1)
        if self._peek() in ("i", "j") and not (follower and follower in self.IDENT_CHARS):
            chars.append(self._advance())

        return self._make_token(TokenType.NUMBER, "".join(chars), start)

    def _scan_bracket(self, start: tuple[int, int, int]) -> Token:
        char = self._advance()
        location = SourceLocation(self.filename, start[1], start[2])

        if char in "([{":
            token = self._make_token(BRACKET_TOKENS[char], char, start)
            self._brackets.append((char, location))
            return token

        if not self._brackets:
            raise UnbalancedBracketError(
                char,
                f"unmatched '{char}'",
                location,
                self._line_text(start[1]),
            )

        opener, opened_at = self._brackets[-1]
        if BRACKET_PAIRS[char] != opener:
            raise UnbalancedBracketError(
                opener,
                f"mismatched '{char}'",
                location,
                self._line_text(start[1]),
                opened_at=opened_at,
            )

        self._brackets.pop()
        return self._make_token(BRACKET_TOKENS[char], char, start)

    def _scan_operator(self, start: tuple[int, int, int]) -> Token:
        pair = self._peek() + self._peek(1)

        if pair == ".'":
            self._advance()
            self._advance()
            return self._make_token(TokenType.TRANSPOSE, pair, start)

        if pair in TWO_CHAR_OPERATORS:
            self._advance()
            self._advance()
            return self._make_token(TokenType.OPERATOR, pair, start)

        char = self._advance()
        if char in SINGLE_TOKENS:
            return self._make_token(SINGLE_TOKENS[char], char, start)
        return self._make_token(TokenType.OPERATOR, char, start)

    # =========================================================================
    # Quote Disambiguation
    # =========================================================================

    def _quote_is_transpose(self) -> bool:
        """
        Decide whether a single quote is a transpose or opens a literal.

        - Directly after an operand (a', x(1)', [1 2]'): transpose.
        - After whitespace inside [] or {}: literal, whitespace separates
          elements there ([a 'b']).
        - After whitespace elsewhere: transpose if it follows an operand,
          unless that operand is a word opening a command-syntax statement
          (disp 'hello').
        """
        last = self._last
        if last is None or last.type not in OPERAND_TYPES:
            return False

        if not self._space_before and last.end == self._pos:
            return True

        if self._brackets and self._brackets[-1][0] in "[{":
            return False

        if last.type == TokenType.WORD and last.statement_start:
            return False

        return True

    # =========================================================================
    # IN_LITERAL State
    # =========================================================================

    def _enter_literal(self, start: tuple[int, int, int], quote: str) -> None:
        self._advance()  # consume opening quote
        self._literal_quote = quote
        self._literal_start = start
        self._state = ScanState.IN_LITERAL

    def _scan_literal_body(self) -> Optional[Token]:
        """Consume literal characters until the closing quote."""
        quote = self._literal_quote
        char = self._peek()

        if char == "\n":
            self._raise_unterminated_literal()

        self._advance()
        if char != quote:
            return None

        if self._peek() == quote:
            # Doubled quote is an escaped quote character
            self._advance()
            return None

        self._state = ScanState.OUTSIDE
        token_type = TokenType.CHAR_ARRAY if quote == "'" else TokenType.STRING
        pos = self._literal_start[0]
        return self._make_token(token_type, self.source[pos:self._pos], self._literal_start)

    def _raise_unterminated_literal(self) -> None:
        _, line, column = self._literal_start
        kind = "character array" if self._literal_quote == "'" else "string"
        raise LexError(
            f"unterminated {kind}",
            SourceLocation(self.filename, line, column),
            hint=f"add closing {self._literal_quote} to complete the literal",
            source_line=self._line_text(line),
        )

    # =========================================================================
    # IN_BLOCK_COMMENT State
    # =========================================================================

    def _is_block_comment_open(self) -> bool:
        """A block comment opens with '%{' alone on its line."""
        if self._peek(1) != "{":
            return False
        before = self.source[self._line_start_pos:self._pos]
        after = self._rest_of_line()[2:]
        return not before.strip() and not after.strip()

    def _enter_block_comment(self, start: tuple[int, int, int]) -> None:
        for _ in self._rest_of_line():
            self._advance()
        self._advance()  # newline
        self._block_start = start
        self._block_depth = 1
        self._block_lines = []
        self._state = ScanState.IN_BLOCK_COMMENT

    def _scan_block_comment_body(self) -> Optional[Token]:
        """Consume one line of a block comment."""
        text = self._rest_of_line()
        marker = text.strip()

        if marker == "%{":
            self._block_depth += 1
        elif marker == "%}":
            self._block_depth -= 1
            if self._block_depth == 0:
                for _ in text:
                    self._advance()
                self._state = ScanState.OUTSIDE
                return self._make_token(
                    TokenType.BLOCK_COMMENT,
                    "\n".join(self._block_lines),
                    self._block_start,
                )

        self._block_lines.append(text)
        for _ in text:
            self._advance()
        if self._peek() == "\n":
            self._advance()
        return None

    def _raise_unterminated_block_comment(self) -> None:
        _, line, column = self._block_start
        raise LexError(
            "unterminated block comment",
            SourceLocation(self.filename, line, column),
            hint="add a line containing only %} to close the comment",
            source_line=self._line_text(line),
        )


def tokenize(source: str, filename: str = "<input>") -> list[Token]:
    """Tokenize source into a list of tokens ending with EOF."""
    return list(Scanner(source, filename).tokenize())

"""
Classdef Filter Error Hierarchy
===============================

This module defines the exception hierarchy for the classdef filter.
All exceptions inherit from ClassdefError, which itself inherits from
the base MtocError for consistent error handling across the package.

Exception Hierarchy
-------------------
ClassdefError (base for all fatal per-file errors)
├── LexError - unterminated literal or block comment
├── SourceEncodingError - source file is not valid UTF-8
├── ClassdefSyntaxError - parser and bracket errors
│   ├── UnexpectedTokenError - token does not fit the grammar
│   ├── MissingTokenError - required token not found
│   └── UnbalancedBracketError - stray, mismatched or unclosed bracket
├── UnsupportedConstructError - recognized but unhandled construct
└── MacroTableError - malformed macro substitution table

Fatal errors abort the translation of the current file only. Non-fatal
findings are collected as Diagnostic records (see DiagnosticCollector);
AssociationAmbiguity is one of them and is never raised.

Error Message Format
--------------------
    classA.m:5:12: error: unterminated character array
        x = 'abc
            ^
    hint: add closing ' to complete the literal
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, List

from mtocpy.errors import MtocError, SourceLocation


# =============================================================================
# Base Classdef Exception
# =============================================================================

class ClassdefError(MtocError):
    """
    Base exception for all classdef filter errors.

    Attributes:
        message: The error description
        location: Where in the source the error occurred
        hint: A suggestion for fixing the error
        source_line: The actual source text at the error location
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        self.source_line = source_line
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """
        Format the error message with location, source context, and hint.

            classA.m:5:12: error: unexpected token 'foo'
                foo bar
                ^
            hint: expected 'properties', 'methods', 'events' or 'end'
        """
        parts = []

        if self.location:
            parts.append(f"{self.location}: error: {self.message}")
        else:
            parts.append(f"error: {self.message}")

        if self.source_line is not None and self.location is not None:
            parts.append(f"    {self.source_line}")
            if self.location.column > 0:
                padding = " " * (4 + self.location.column - 1)
                parts.append(f"{padding}^")

        if self.hint:
            parts.append(f"hint: {self.hint}")

        return "\n".join(parts)


# =============================================================================
# Lexical Errors
# =============================================================================

class LexError(ClassdefError):
    """
    Unterminated literal or block comment.

    Examples:
        x = 'abc        % char array never closed
        %{              % block comment never closed
    """
    pass


class SourceEncodingError(ClassdefError):
    """Source file that is not valid UTF-8."""
    pass


# =============================================================================
# Syntax Errors (Parser and Bracket Tracking)
# =============================================================================

class ClassdefSyntaxError(ClassdefError):
    """
    Syntax error in a classdef file.

    Raised when the token stream cannot be parsed according to the
    classdef grammar, or when a block or bracket is not balanced.
    """
    pass


class UnexpectedTokenError(ClassdefSyntaxError):
    """Token that does not fit the grammar rule being parsed."""

    def __init__(
        self,
        found: str,
        expected: Optional[str] = None,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.found = found
        self.expected = expected

        hint = None
        if expected:
            hint = f"expected {expected}"

        super().__init__(
            f"unexpected token '{found}'",
            location=location,
            hint=hint,
            source_line=source_line,
        )


class MissingTokenError(ClassdefSyntaxError):
    """Required token (like ')' or 'end') not found where expected."""

    def __init__(
        self,
        expected: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.expected = expected
        super().__init__(
            f"expected {expected}",
            location=location,
            source_line=source_line,
        )


class UnbalancedBracketError(ClassdefSyntaxError):
    """Stray, mismatched or unclosed bracket."""

    def __init__(
        self,
        bracket: str,
        message: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
        opened_at: Optional[SourceLocation] = None,
    ):
        self.bracket = bracket
        self.opened_at = opened_at

        hint = None
        if opened_at:
            hint = f"'{bracket}' was opened at {opened_at}"

        super().__init__(
            message,
            location=location,
            hint=hint,
            source_line=source_line,
        )


# =============================================================================
# Unsupported Constructs
# =============================================================================

class UnsupportedConstructError(ClassdefError):
    """
    Recognized but unhandled construct of the classdef grammar.

    Examples:
        - enumeration blocks
        - access lists naming meta-classes (Access = ?OtherClass)
    """

    def __init__(
        self,
        construct: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
        alternative: Optional[str] = None,
    ):
        self.construct = construct
        super().__init__(
            f"unsupported construct: {construct}",
            location=location,
            hint=alternative,
            source_line=source_line,
        )


class MacroTableError(ClassdefError):
    """Malformed line in a macro substitution table."""
    pass


# =============================================================================
# Non-fatal Diagnostics
# =============================================================================

class Severity(Enum):
    """Severity of a non-fatal diagnostic."""
    INFO = "info"
    WARNING = "warning"


@dataclass(frozen=True)
class Diagnostic:
    """
    A non-fatal finding reported while translating one file.

    Attributes:
        message: Description of the finding
        location: Source location, if known
        severity: INFO or WARNING
        kind: Short category name used for filtering
    """
    message: str
    location: Optional[SourceLocation] = None
    severity: Severity = Severity.WARNING
    kind: str = "general"

    def __str__(self) -> str:
        if self.location:
            return f"{self.location}: {self.severity.value}: {self.message}"
        return f"{self.severity.value}: {self.message}"


@dataclass(frozen=True)
class AssociationAmbiguity(Diagnostic):
    """
    A documentation block that could bind to more than one target.

    Always resolved by the documentation associator's priority rule and
    only ever reported, never raised.
    """
    severity: Severity = Severity.INFO
    kind: str = "association"


class DiagnosticCollector:
    """
    Collects non-fatal diagnostics for one translation, in report order.

    Example:
        collector = DiagnosticCollector()
        collector.warning("unknown attribute 'Foo'", token.location)
        for diag in collector.diagnostics:
            print(diag)
    """

    def __init__(self):
        self.diagnostics: List[Diagnostic] = []

    def add(self, diagnostic: Diagnostic) -> None:
        """Add a diagnostic to the collection."""
        self.diagnostics.append(diagnostic)

    def warning(self, message: str, location: Optional[SourceLocation] = None) -> None:
        """Add a warning."""
        self.add(Diagnostic(message, location, Severity.WARNING))

"""
mtocpy Error Hierarchy
======================

This module defines the root of the exception hierarchy for mtocpy.
All exceptions inherit from MtocError, allowing callers to catch every
filter-related error with a single except clause if desired.

Exception Hierarchy
-------------------
MtocError (base)
└── ClassdefError (classdef filter, see mtocpy.classdef.errors)
    ├── LexError - unterminated literal or block comment
    ├── ClassdefSyntaxError - unexpected token, unbalanced bracket or block
    ├── UnsupportedConstructError - recognized but unhandled construct
    └── MacroTableError - malformed macro substitution table

Design Philosophy
-----------------
Each exception captures source location information (filename, line, column)
when applicable. The first line of every formatted message follows the
compiler convention understood by editors and build tools:

    filename:line:column: error: description
"""

from dataclasses import dataclass


# =============================================================================
# Base Exception Class
# =============================================================================

class MtocError(Exception):
    """
    Base exception for all mtocpy errors.

        try:
            translate_file("classA.m")
        except MtocError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    Represents a location in source code for error reporting.

    Attributes:
        filename: Name of the source file (or "<input>" for string input)
        line: Line number (1-indexed)
        column: Column number (1-indexed)
    """
    filename: str
    line: int
    column: int

    def __str__(self) -> str:
        """Format as 'filename:line:column' for error messages."""
        return f"{self.filename}:{self.line}:{self.column}"

"""
MATLAB Classdef Filter
======================

This package translates a MATLAB classdef file into C++-like pseudo-code
that a documentation generator can index. Members keep their names,
access levels and help texts; MATLAB attributes that have no C++
counterpart show up as region markers and notes.

It provides:

- A scanner for classdef source that tracks bracket depth and statement
  starts
- A recursive descent parser producing a declaration tree
- A documentation associator binding help comments to members
- An attribute resolver for access levels and modifiers
- An emitter writing the pseudo-code
- A batch driver translating many files on a worker pool

Pipeline
--------
    Classdef Source → Scanner → Parser → Associator → Resolver → Emitter → Pseudo-code

Usage
-----
>>> from mtocpy.classdef import translate
>>> source = '''
... classdef A < handle
...     properties
...         x = 1;  % the x coordinate
...     end
... end
... '''
>>> print(translate(source, "A.m"))

Not supported
-------------
- Enumeration blocks
- Property validation functions with side effects
- Script files and plain function files
"""

# =============================================================================
# Version Information
# =============================================================================

__version__ = "1.0.0"

# =============================================================================
# Public API Imports
# =============================================================================

from mtocpy.classdef.translator import (
    ClassdefTranslator,
    TranslationResult,
    translate,
    translate_file,
)
from mtocpy.classdef.config import TranslatorConfig
from mtocpy.classdef.batch import (
    BatchResult,
    FileResult,
    FileStatus,
    translate_batch,
)
from mtocpy.classdef.macros import Macro, MacroTable
from mtocpy.classdef.errors import (
    ClassdefError,
    LexError,
    SourceEncodingError,
    ClassdefSyntaxError,
    UnexpectedTokenError,
    MissingTokenError,
    UnbalancedBracketError,
    UnsupportedConstructError,
    MacroTableError,
    Severity,
    Diagnostic,
    AssociationAmbiguity,
    DiagnosticCollector,
)
from mtocpy.classdef.lexer import Scanner, Token, TokenType, tokenize
from mtocpy.classdef.parser import ClassParser, parse_source
from mtocpy.classdef.emitter import PseudoCodeEmitter
from mtocpy.classdef.ast import (
    Access,
    BlockKind,
    ClassNode,
    Block,
    PropertyDeclaration,
    MethodDeclaration,
    EventDeclaration,
    Parameter,
    Attribute,
    DocComment,
    ASTPrinter,
)

__all__ = [
    # Version
    "__version__",
    # Main API
    "ClassdefTranslator",
    "TranslationResult",
    "TranslatorConfig",
    "translate",
    "translate_file",
    # Batch
    "translate_batch",
    "BatchResult",
    "FileResult",
    "FileStatus",
    # Macros
    "Macro",
    "MacroTable",
    # Errors and diagnostics
    "ClassdefError",
    "LexError",
    "SourceEncodingError",
    "ClassdefSyntaxError",
    "UnexpectedTokenError",
    "MissingTokenError",
    "UnbalancedBracketError",
    "UnsupportedConstructError",
    "MacroTableError",
    "Severity",
    "Diagnostic",
    "AssociationAmbiguity",
    "DiagnosticCollector",
    # Scanner
    "Scanner",
    "Token",
    "TokenType",
    "tokenize",
    # Parser
    "ClassParser",
    "parse_source",
    # Emitter
    "PseudoCodeEmitter",
    # Declaration tree
    "Access",
    "BlockKind",
    "ClassNode",
    "Block",
    "PropertyDeclaration",
    "MethodDeclaration",
    "EventDeclaration",
    "Parameter",
    "Attribute",
    "DocComment",
    "ASTPrinter",
]

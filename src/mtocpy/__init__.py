"""
mtocpy - Classdef Documentation Filter
======================================

mtocpy turns MATLAB classdef files into C++-like pseudo-code so that a
C++ documentation generator (doxygen) can build reference pages for
MATLAB classes: inheritance graphs, member lists grouped by access level,
and help texts rendered as documentation blocks.

Components
----------
- **classdef**: scanner, parser, documentation associator, attribute
  resolver, emitter and batch driver
- **cli**: the `mtocpp` filter command and the `mtocbatch` batch command

Quick Start
-----------
>>> from mtocpy import translate
>>> print(translate("classdef A < B.C\\nend\\n", "A.m"))

The filter is meant to be registered as a doxygen input filter:

    FILTER_PATTERNS = *.m=mtocpp

Author: mtocpy Contributors
"""

__version__ = "1.0.0"
__author__ = "mtocpy Contributors"

# =============================================================================
# Public API Exports
# =============================================================================

from mtocpy.errors import MtocError, SourceLocation
from mtocpy.classdef import (
    ClassdefTranslator,
    TranslationResult,
    TranslatorConfig,
    translate,
    translate_file,
    translate_batch,
    BatchResult,
    FileResult,
    MacroTable,
    ClassdefError,
    Diagnostic,
)

__all__ = [
    "__version__",
    "MtocError",
    "SourceLocation",
    "ClassdefTranslator",
    "TranslationResult",
    "TranslatorConfig",
    "translate",
    "translate_file",
    "translate_batch",
    "BatchResult",
    "FileResult",
    "MacroTable",
    "ClassdefError",
    "Diagnostic",
]

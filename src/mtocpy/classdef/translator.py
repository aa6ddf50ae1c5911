"""
Classdef Translator
===================

This module provides the main interface of the classdef filter. It runs
the complete translation of one file:

    Source → Scan → Parse → Associate → Resolve → Emit → Pseudo-code

Usage
-----
Command line:
    $ mtocpp classA.m > classA.cc

Programmatic:
    >>> from mtocpy.classdef import translate
    >>> text = translate('classdef A\\nend\\n', "A.m")

Translation Pipeline
--------------------
1. **Scanning**: Convert source to tokens (Scanner)
2. **Parsing**: Build the declaration tree (ClassParser)
3. **Association**: Bind comment blocks to declarations (DocAssociator)
4. **Resolution**: Access levels, modifiers, notes, signature checks
   (AttributeResolver), then help text rendering and @type substitution
   (DocRenderer)
5. **Emission**: Render pseudo-code (PseudoCodeEmitter)

Error Handling
--------------
Fatal errors raise a ClassdefError subclass carrying path, line and
column; translation of that file stops. Non-fatal findings are returned
as diagnostics with the result.

A translator holds only its configuration: every call builds its own
scanner, parser and emitter, so one instance may be shared between
threads.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import logging

from mtocpy.classdef.lexer import Scanner, Token
from mtocpy.classdef.parser import ClassParser
from mtocpy.classdef.ast import ClassNode
from mtocpy.classdef.attributes import AttributeResolver
from mtocpy.classdef.docs import DocAssociator, DocRenderer
from mtocpy.classdef.emitter import PseudoCodeEmitter
from mtocpy.classdef.config import TranslatorConfig
from mtocpy.classdef.errors import Diagnostic, DiagnosticCollector, SourceEncodingError
from mtocpy.errors import SourceLocation

logger = logging.getLogger(__name__)


@dataclass
class TranslationResult:
    """
    Result of translating one file.

    Attributes:
        filename: Source filename
        output: Generated pseudo-code
        tree: Declaration tree
        token_count: Number of tokens scanned
        diagnostics: Non-fatal findings, in report order
    """
    filename: str = ""
    output: str = ""
    tree: Optional[ClassNode] = None
    token_count: int = 0
    diagnostics: list[Diagnostic] = field(default_factory=list)


class ClassdefTranslator:
    """
    Translates MATLAB classdef files into documented pseudo-code.

    Example:
        translator = ClassdefTranslator(TranslatorConfig(group="models"))
        result = translator.translate_file("classA.m")
        print(result.output)

    Attributes:
        config: Translator configuration
    """

    def __init__(self, config: Optional[TranslatorConfig] = None):
        self.config = config or TranslatorConfig()

    def translate_source(self, source: str, filename: str = "<input>") -> TranslationResult:
        """
        Translate classdef source text.

        Args:
            source: Classdef source code
            filename: Source filename for error messages

        Returns:
            TranslationResult with output and diagnostics

        Raises:
            ClassdefError: If the source cannot be translated
        """
        diagnostics = DiagnosticCollector()
        result = TranslationResult(filename=filename)
        source_lines = source.splitlines()

        # Stage 1: Scanning
        tokens = self._scan(source, filename)
        result.token_count = len(tokens)

        # Stage 2: Parsing
        tree = ClassParser(tokens, filename, source).parse()
        tree.group = self.config.group
        result.tree = tree

        # Stage 3: Documentation association
        DocAssociator(source, diagnostics).associate(tree)

        # Stage 4: Attribute resolution and type substitution
        AttributeResolver(
            diagnostics,
            source_lines,
            attribute_doc_links=self.config.attribute_doc_links,
        ).resolve(tree)
        DocRenderer(self.config.macros).apply(tree)

        # Stage 5: Emission
        result.output = PseudoCodeEmitter(self.config).emit(tree)
        result.diagnostics = list(diagnostics.diagnostics)

        logger.debug(
            f"{filename}: translated class '{tree.name}' "
            f"({result.token_count} tokens, {len(result.diagnostics)} diagnostics)"
        )
        return result

    def translate_file(self, filepath: Path | str) -> TranslationResult:
        """
        Translate a classdef file.

        Raises:
            ClassdefError: If the file cannot be translated
            SourceEncodingError: If the file is not valid UTF-8
            FileNotFoundError: If the file does not exist
        """
        path = Path(filepath)
        if not path.exists():
            raise FileNotFoundError(f"Source file not found: {filepath}")

        source = self._decode(path.read_bytes(), str(filepath))
        return self.translate_source(source, str(filepath))

    def _scan(self, source: str, filename: str) -> list[Token]:
        return list(Scanner(source, filename).tokenize())

    def _decode(self, data: bytes, filename: str) -> str:
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            line = data.count(b"\n", 0, e.start) + 1
            column = e.start - data.rfind(b"\n", 0, e.start)
            location = SourceLocation(filename, line, column)
            raise SourceEncodingError(
                f"invalid UTF-8 byte 0x{data[e.start]:02x}",
                location,
                hint="save the file with UTF-8 encoding",
            ) from e
        return text.replace("\r\n", "\n").replace("\r", "\n")


# =============================================================================
# Convenience Functions
# =============================================================================

def translate(
    source: str,
    filename: str = "<input>",
    config: Optional[TranslatorConfig] = None,
) -> str:
    """
    Translate classdef source to pseudo-code.

    Raises:
        ClassdefError: If translation fails

    Example:
        >>> text = translate("classdef A\\nproperties\\nx = 1;\\nend\\nend\\n", "A.m")
    """
    return ClassdefTranslator(config).translate_source(source, filename).output


def translate_file(
    filepath: Path | str,
    output_path: Optional[Path | str] = None,
    config: Optional[TranslatorConfig] = None,
) -> str:
    """
    Translate a classdef file, optionally writing the pseudo-code to `output_path`.

    Raises:
        ClassdefError: If translation fails
        FileNotFoundError: If the source file is missing
    """
    result = ClassdefTranslator(config).translate_file(filepath)

    if output_path:
        Path(output_path).write_text(result.output, encoding="utf-8")

    return result.output

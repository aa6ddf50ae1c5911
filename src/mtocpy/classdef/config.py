"""
Translator Configuration
========================

Every translation receives an explicit TranslatorConfig; there is no
global preference state. Configuration can come from:
- Default values (defined here)
- Environment variables (TranslatorConfig.from_env)
- Command line options of the mtocpp / mtocbatch commands
"""

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional
import os

from mtocpy.classdef.macros import MacroTable
from mtocpy.classdef.types import DEFAULT_TYPE_PLACEHOLDER


@dataclass
class TranslatorConfig:
    """
    Settings for translating classdef files.

    Attributes:
        group: Grouping tag emitted as '@ingroup' in the class documentation
        macros: Macro table applied to documentation text
        type_placeholder: Type rendered for untyped names
        emit_banner: Prefix the output with an autoinserted banner comment
        emit_default_notes: Add '@b Default:' lines to property documentation
        attribute_doc_links: Add a link to the MATLAB attribute reference
            to members that carry attribute notes
        output_suffix: File suffix used by the batch driver
    """

    group: Optional[str] = None
    macros: MacroTable = field(default_factory=MacroTable)
    type_placeholder: str = DEFAULT_TYPE_PLACEHOLDER
    emit_banner: bool = True
    emit_default_notes: bool = True
    attribute_doc_links: bool = True
    output_suffix: str = ".cc"

    # ═══════════════════════════════════════════════════════════════════════════
    # FACTORY METHODS
    # ═══════════════════════════════════════════════════════════════════════════

    @classmethod
    def from_env(cls) -> "TranslatorConfig":
        """
        Create a TranslatorConfig from environment variables.

        Environment variables (all optional):
            MTOC_GROUP: Grouping tag
            MTOC_TYPE_PLACEHOLDER: Placeholder type name
            MTOC_NO_BANNER: Any non-empty value other than "0" disables the banner
            MTOC_MACRO_TABLE: Path of a macro table to load
        """
        config = cls()

        if group := os.environ.get("MTOC_GROUP"):
            config.group = group

        if placeholder := os.environ.get("MTOC_TYPE_PLACEHOLDER"):
            config.type_placeholder = placeholder

        if no_banner := os.environ.get("MTOC_NO_BANNER"):
            config.emit_banner = no_banner == "0"

        if table := os.environ.get("MTOC_MACRO_TABLE"):
            config = config.with_macro_table(table)

        return config

    # ═══════════════════════════════════════════════════════════════════════════
    # HELPER METHODS
    # ═══════════════════════════════════════════════════════════════════════════

    def with_macro_table(self, path: Path | str) -> "TranslatorConfig":
        """
        Return a copy with the macros of `path` added.

        Raises:
            MacroTableError: If the table is malformed
            OSError: If the file cannot be read
        """
        return replace(self, macros=self.macros.merged(MacroTable.from_file(path)))

    def with_group(self, group: Optional[str]) -> "TranslatorConfig":
        """Return a copy with a different grouping tag."""
        return replace(self, group=group)

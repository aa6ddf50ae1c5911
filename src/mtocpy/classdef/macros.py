"""
Documentation Macro Table
=========================

Macros let documentation comments use short names for recurring text
(project names, links, LaTeX snippets). A macro table is a plain text file
of #define lines:

    #define PROJECT  mtocpy
    #define MLINK(page, text)  <a href="https://example.org/page">text</a>

Blank lines and other '#' lines are ignored; any other line is an error.
Macros are expanded in documentation text only, never in code, and never
inside @verbatim / @code blocks (the documentation renderer decides which
lines to pass in).

Expansion
---------
Expansion is a single left-to-right pass: the replacement text of a macro
is itself expanded, but a macro is never expanded again inside its own
replacement, so self-referencing definitions terminate.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import logging
import re

from mtocpy.errors import SourceLocation
from mtocpy.classdef.errors import MacroTableError

logger = logging.getLogger(__name__)


@dataclass
class Macro:
    """
    A documentation macro.

    Attributes:
        name: Macro name
        body: Replacement text
        parameters: Parameter names for function-like macros (None for simple)
        location: Where the macro was defined
    """
    name: str
    body: str
    parameters: Optional[list[str]] = None
    location: Optional[SourceLocation] = None

    @property
    def is_function_like(self) -> bool:
        """Return True if this is a function-like macro."""
        return self.parameters is not None


@dataclass
class MacroTable:
    """
    Named text substitutions applied to documentation text.

    Example:
        table = MacroTable.from_text("#define PROJECT mtocpy\\n")
        table.expand("Part of PROJECT.")   # 'Part of mtocpy.'
    """
    macros: dict[str, Macro] = field(default_factory=dict)

    # Pattern for #define with optional parameters
    DEFINE_PATTERN = re.compile(
        r'^\s*#\s*define\s+(\w+)(?:\(([^)]*)\))?\s*(.*?)$'
    )

    # Pattern for identifier (for macro expansion)
    IDENTIFIER_PATTERN = re.compile(r'\b([A-Za-z_]\w*)\b')

    def __len__(self) -> int:
        return len(self.macros)

    def __contains__(self, name: str) -> bool:
        return name in self.macros

    # =========================================================================
    # Loading
    # =========================================================================

    @classmethod
    def from_text(cls, text: str, filename: str = "<macros>") -> "MacroTable":
        """
        Parse a macro table.

        Raises:
            MacroTableError: For a malformed #define or a non-directive line
        """
        table = cls()
        for number, line in enumerate(text.splitlines(), start=1):
            stripped = line.strip()
            if not stripped:
                continue

            location = SourceLocation(filename, number, 1)
            if not stripped.startswith("#"):
                raise MacroTableError(
                    "expected a #define line",
                    location,
                    hint="comment lines in a macro table start with '#'",
                    source_line=line,
                )
            if not re.match(r'#\s*define\b', stripped):
                continue

            match = cls.DEFINE_PATTERN.match(line)
            if not match:
                raise MacroTableError("invalid #define syntax", location, source_line=line)

            table.define(match.group(1), match.group(3).strip(), match.group(2), location)

        logger.debug(f"loaded {len(table)} macros from {filename}")
        return table

    @classmethod
    def from_file(cls, path: Path | str) -> "MacroTable":
        """Load a macro table from a file."""
        path = Path(path)
        return cls.from_text(path.read_text(encoding="utf-8"), str(path))

    def define(
        self,
        name: str,
        body: str,
        params_str: Optional[str] = None,
        location: Optional[SourceLocation] = None,
    ) -> None:
        """Add or replace a macro; `params_str` is the text inside '(...)'."""
        parameters = None
        if params_str is not None:
            parameters = [p.strip() for p in params_str.split(",") if p.strip()]

        if name in self.macros:
            logger.debug(f"macro '{name}' redefined")

        self.macros[name] = Macro(
            name=name,
            body=body,
            parameters=parameters,
            location=location,
        )

    def merged(self, other: "MacroTable") -> "MacroTable":
        """Return a new table with `other`'s definitions taking precedence."""
        return MacroTable({**self.macros, **other.macros})

    # =========================================================================
    # Expansion
    # =========================================================================

    def expand(self, text: str) -> str:
        """Expand all macros in a line of documentation text."""
        if not self.macros:
            return text
        return self._expand_impl(text, frozenset())

    def _expand_impl(self, text: str, expanding: frozenset[str]) -> str:
        """Implementation of macro expansion with recursion tracking."""
        result = []
        pos = 0

        while True:
            match = self.IDENTIFIER_PATTERN.search(text, pos)
            if match is None:
                result.append(text[pos:])
                break

            name = match.group(1)
            macro = self.macros.get(name)

            if macro is None or name in expanding:
                result.append(text[pos:match.end()])
                pos = match.end()
                continue

            if macro.is_function_like:
                args, end = self._parse_macro_args(text, match.end())
                if args is None:
                    # Name used without an argument list: leave as is
                    result.append(text[pos:match.end()])
                    pos = match.end()
                    continue
                expansion = self._expand_function_macro(macro, args, expanding | {name})
            else:
                end = match.end()
                expansion = self._expand_impl(macro.body, expanding | {name})

            result.append(text[pos:match.start()])
            result.append(expansion)
            pos = end

        return "".join(result)

    def _parse_macro_args(self, text: str, start: int) -> tuple[Optional[list[str]], int]:
        """
        Parse macro arguments from text starting at '('.

        Returns:
            Tuple of (argument_list, end_position) or (None, 0) if not valid
        """
        if start >= len(text) or text[start] != "(":
            return None, 0

        args = []
        current_arg = []
        depth = 1
        i = start + 1

        while i < len(text) and depth > 0:
            char = text[i]

            if char == "(":
                depth += 1
                current_arg.append(char)
            elif char == ")":
                depth -= 1
                if depth > 0:
                    current_arg.append(char)
            elif char == "," and depth == 1:
                args.append("".join(current_arg).strip())
                current_arg = []
            else:
                current_arg.append(char)

            i += 1

        if depth != 0:
            return None, 0

        if current_arg or args:
            args.append("".join(current_arg).strip())

        return args, i

    def _expand_function_macro(
        self,
        macro: Macro,
        args: list[str],
        expanding: frozenset[str],
    ) -> str:
        """Expand a function-like macro with arguments."""
        if len(args) != len(macro.parameters):
            raise MacroTableError(
                f"macro '{macro.name}' expects {len(macro.parameters)} arguments, "
                f"got {len(args)}",
                macro.location,
            )

        values = dict(zip(macro.parameters, args))
        if values:
            pattern = re.compile(r'\b(' + "|".join(map(re.escape, values)) + r')\b')
            result = pattern.sub(lambda m: values[m.group(1)], macro.body)
        else:
            result = macro.body

        return self._expand_impl(result, expanding)

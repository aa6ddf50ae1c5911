"""
Documentation Association and Rendering
=======================================

This module binds comment blocks to the declarations they document and
turns the bound MATLAB help text into doxygen-flavoured documentation.

Comment Blocks
--------------
Consecutive comment lines form one block. A comment that follows code on
the same line starts a block that continues over directly following
comment-only lines. A %{ ... %} comment is a block by itself.

Association Rules
-----------------
1. Trailing: a block starting on the last line of a declaration, or on the
   line right after it. For a concrete method this is the block opening
   its body. Trailing blocks are primary documentation.
2. Leading: a block ending on the line right before a declaration. Used
   only if the declaration has no trailing block and the block is not the
   trailing block of another declaration.
3. Supplementary: a block whose first line is '@var NAME', '@fn NAME',
   '@event NAME' or '@class NAME' is appended to that member's
   documentation, in file order, wherever it appears.

Where a block could document two declarations, the rule above decides and
an AssociationAmbiguity diagnostic records the decision. Blocks bound to
nothing are kept on the class as free comments and emitted as plain
C comments.

Help Text Rendering
-------------------
    % brief description              @brief brief description
    %                           ->
    % Parameters:                    @param x the input
    %   x: the input @type double    (parameter type: double)
    %
    % See also: other                @sa other
"""

from dataclasses import dataclass, field
from typing import Optional, Union
import logging
import re

from mtocpy.classdef.lexer import Token, TokenType
from mtocpy.classdef.errors import AssociationAmbiguity, DiagnosticCollector
from mtocpy.classdef.macros import MacroTable
from mtocpy.classdef.ast import (
    ClassNode,
    Declaration,
    DocComment,
    EventDeclaration,
    MethodDeclaration,
    PropertyDeclaration,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Comment Blocks
# =============================================================================

TAG_PATTERN = re.compile(r'^\s*@(var|fn|event|class)\s+([A-Za-z_][\w.]*)\s*(.*)$')


def build_comment_blocks(comments: list[Token], source: str) -> list[DocComment]:
    """
    Group comment tokens into documentation blocks.

    Args:
        comments: Comment tokens in file order
        source: Full source text (for line extents and inline detection)
    """
    lines = source.splitlines()
    blocks: list[DocComment] = []
    current: Optional[DocComment] = None

    for token in comments:
        inline = _has_code_before(token, lines)
        end_line = token.line + source.count("\n", token.start, token.end)
        text = _comment_lines(token)

        extends = (
            current is not None
            and token.type == TokenType.COMMENT
            and current.tokens[-1].type == TokenType.COMMENT
            and not inline
            and token.line == current.end_line + 1
        )

        if extends:
            current.lines.extend(text)
            current.tokens.append(token)
            current.end_line = end_line
            continue

        current = DocComment(
            lines=text,
            start_line=token.line,
            end_line=end_line,
            location=token.location,
            tokens=[token],
            inline=inline,
        )
        blocks.append(current)

    for block in blocks:
        _detect_tag(block)
    return blocks


def _has_code_before(token: Token, lines: list[str]) -> bool:
    if token.line > len(lines):
        return False
    return bool(lines[token.line - 1][:token.column - 1].strip())


def _comment_lines(token: Token) -> list[str]:
    if token.type == TokenType.BLOCK_COMMENT:
        return token.value.split("\n") if token.value else []
    return [token.value]


def _detect_tag(block: DocComment) -> None:
    """Mark blocks that name their target with @var/@fn/@event/@class."""
    for index, line in enumerate(block.lines):
        if not line.strip():
            continue
        match = TAG_PATTERN.match(line)
        if match:
            block.tag = match.group(1)
            block.target_name = match.group(2)
            rest = match.group(3)
            block.lines = ([f" {rest}"] if rest else []) + block.lines[index + 1:]
        return


# =============================================================================
# Associator
# =============================================================================

Target = Union[ClassNode, Declaration]


class DocAssociator:
    """
    Binds comment blocks of one class to its declarations.

    Usage:
        DocAssociator(source, diagnostics).associate(class_node)

    After association every declaration's `doc` holds its primary
    documentation (or None) and `supplementary` its tagged blocks.
    """

    def __init__(self, source: str, diagnostics: Optional[DiagnosticCollector] = None):
        self.source = source
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticCollector()

    def associate(self, cls: ClassNode) -> None:
        blocks = build_comment_blocks(cls.comments, self.source)
        free = [b for b in blocks if not b.is_supplementary]
        tagged = [b for b in blocks if b.is_supplementary]

        targets: list[Target] = [cls, *cls.declarations()]
        used: dict[int, Target] = {}

        # Pass 1: trailing documentation
        for target in targets:
            block = self._trailing_block(target, free)
            if block is None:
                continue

            owner = used.get(id(block))
            if owner is not None:
                # Declarations sharing a line: the last one keeps the block
                owner.doc = None
                self._ambiguity(
                    f"documentation block binds to '{self._name(target)}', "
                    f"not to '{self._name(owner)}' on the same line",
                    block,
                )

            target.doc = block
            used[id(block)] = target
            logger.debug(
                f"line {block.start_line}: trailing documentation of '{self._name(target)}'"
            )

        # Pass 2: leading documentation
        for target in targets:
            block = self._leading_block(target, free)
            if block is None:
                continue

            owner = used.get(id(block))
            if target.doc is not None:
                if owner is None:
                    self._ambiguity(
                        f"documentation block ignored for '{self._name(target)}': "
                        f"its trailing documentation takes precedence",
                        block,
                    )
                continue

            if owner is not None:
                if owner is not target:
                    self._ambiguity(
                        f"documentation block binds to '{self._name(owner)}' as trailing "
                        f"documentation, not to '{self._name(target)}'",
                        block,
                    )
                continue

            target.doc = block
            used[id(block)] = target
            logger.debug(
                f"line {block.start_line}: leading documentation of '{self._name(target)}'"
            )

        # Pass 3: supplementary documentation
        for block in tagged:
            target = self._tag_target(cls, block)
            if target is None:
                self._ambiguity(
                    f"@{block.tag} names unknown member '{block.target_name}'; "
                    f"documentation dropped",
                    block,
                )
                continue
            target.supplementary.append(block)
            used[id(block)] = target

        cls.free_comments = [b for b in free if id(b) not in used]
        for block in cls.free_comments:
            logger.debug(f"line {block.start_line}: comment block not bound to any declaration")

    # =========================================================================
    # Candidates
    # =========================================================================

    def _trailing_block(self, target: Target, blocks: list[DocComment]) -> Optional[DocComment]:
        if isinstance(target, MethodDeclaration) and target.body is not None:
            body_blocks = build_comment_blocks(target.body_comments, self.source)
            if not body_blocks:
                return None
            first = body_blocks[0]
            if first.is_supplementary:
                return None
            if first.start_line == target.end_line or (
                first.start_line == target.end_line + 1 and not first.inline
            ):
                return first
            return None

        for block in blocks:
            start = block.tokens[0].start
            if block.start_line == target.end_line and start >= target.end_offset:
                return block
            if block.start_line == target.end_line + 1 and not block.inline:
                return block
        return None

    def _leading_block(self, target: Target, blocks: list[DocComment]) -> Optional[DocComment]:
        for block in blocks:
            if block.end_line == target.start_line - 1 and not block.inline:
                return block
        return None

    def _tag_target(self, cls: ClassNode, block: DocComment) -> Optional[Target]:
        name = block.target_name

        if block.tag == "class":
            return cls if name == cls.name else None

        if block.tag == "fn":
            methods = list(cls.methods())
            for method in methods:
                if method.name == name:
                    return method
            for method in methods:
                if method.display_name == name:
                    return method
            return None

        kinds: tuple[type, ...]
        if block.tag == "event":
            kinds = (EventDeclaration,)
        else:
            kinds = (PropertyDeclaration, EventDeclaration)

        for decl in cls.declarations():
            if isinstance(decl, kinds) and decl.name == name:
                return decl
        return None

    # =========================================================================
    # Helpers
    # =========================================================================

    def _name(self, target: Target) -> str:
        return target.name

    def _ambiguity(self, message: str, block: DocComment) -> None:
        logger.debug(f"line {block.start_line}: {message}")
        self.diagnostics.add(AssociationAmbiguity(message, block.location))


# =============================================================================
# Help Text Rendering
# =============================================================================

SECTION_PATTERN = re.compile(r'^\s*(Parameters|Return values)\s*:\s*$', re.IGNORECASE)
ITEM_PATTERN = re.compile(r'^(\s*)([A-Za-z_]\w*)\s*:\s*(.*)$')
SEE_ALSO_PATTERN = re.compile(r'^(\s*)See also\b\s*:?\s*(.*)$', re.IGNORECASE)
TYPE_PATTERN = re.compile(r'@type\s+([A-Za-z_][\w.]*)')
VERBATIM_START = re.compile(r'[@\\](verbatim|code)\b')
VERBATIM_END = re.compile(r'[@\\](endverbatim|endcode)\b')
FORMULA_MARKER = "@f$"

# Lines starting with these commands never get an @brief prefix
BRIEF_EXEMPT = ("@brief", "@short", "@param", "@retval", "@sa", "@verbatim", "@code")


@dataclass
class RenderedDoc:
    """
    Documentation text ready for emission.

    Attributes:
        lines: Output lines, without the comment prefix
        type_name: Type named by a free-standing @type (properties)
        parameter_types: Parameter name -> type from 'Parameters:' items
        return_types: Return value name -> type from 'Return values:' items
    """
    lines: list[str] = field(default_factory=list)
    type_name: Optional[str] = None
    parameter_types: dict[str, str] = field(default_factory=dict)
    return_types: dict[str, str] = field(default_factory=dict)

    @property
    def has_text(self) -> bool:
        return any(line.strip() for line in self.lines)


class DocRenderer:
    """
    Converts MATLAB help text into doxygen documentation lines.

    Macros are expanded everywhere except in @verbatim / @code blocks and
    inside @f$ ... @f$ formulas.
    """

    def __init__(self, macros: Optional[MacroTable] = None):
        self.macros = macros if macros is not None else MacroTable()

    def render(
        self,
        primary: Optional[DocComment],
        supplementary: list[DocComment],
    ) -> RenderedDoc:
        """Render primary text followed by supplementary text, in order."""
        result = RenderedDoc()
        chunks = []
        if primary is not None:
            chunks.append(primary.lines)
        chunks.extend(block.lines for block in supplementary)

        for index, chunk in enumerate(chunks):
            if index > 0:
                result.lines.append("")
            self._render_chunk(chunk, result)

        self._add_brief(result.lines)
        return result

    def apply(self, cls: ClassNode) -> None:
        """
        Render the documentation of the class and all its declarations.

        Types named with @type fill in property, parameter and return
        types that the declaration itself leaves open.
        """
        cls.doc_lines = self.render(cls.doc, cls.supplementary).lines

        for decl in cls.declarations():
            rendered = self.render(decl.doc, decl.supplementary)
            decl.doc_lines = rendered.lines

            if isinstance(decl, PropertyDeclaration):
                if decl.type_name is None and rendered.type_name:
                    decl.type_name = rendered.type_name
            elif isinstance(decl, MethodDeclaration):
                for param in decl.parameters:
                    if param.type_name is None:
                        param.type_name = rendered.parameter_types.get(param.name)
                for ret in decl.returns:
                    if ret.type_name is None:
                        ret.type_name = rendered.return_types.get(ret.name)

    def _render_chunk(self, lines: list[str], result: RenderedDoc) -> None:
        verbatim = False
        section: Optional[str] = None
        last_item: Optional[str] = None

        for line in lines:
            if verbatim:
                result.lines.append(line)
                if VERBATIM_END.search(line):
                    verbatim = False
                continue

            start = VERBATIM_START.search(line)
            if start and not VERBATIM_END.search(line, start.end()):
                verbatim = True
                section = None
                result.lines.append(line)
                continue

            if not line.strip():
                section = None
                result.lines.append("")
                continue

            header = SECTION_PATTERN.match(line)
            if header:
                section = "param" if header.group(1).lower() == "parameters" else "retval"
                last_item = None
                continue

            if section is not None:
                types = result.parameter_types if section == "param" else result.return_types
                item = ITEM_PATTERN.match(line)
                if item:
                    indent, name, text = item.groups()
                    text, type_name = self._take_type(text)
                    if type_name:
                        types[name] = type_name
                    last_item = name
                    result.lines.append(f"{indent}@{section} {name} {self._expand(text)}".rstrip())
                    continue

                text, type_name = self._take_type(line)
                if type_name and last_item:
                    types[last_item] = type_name
                if text.strip():
                    result.lines.append(self._expand(text))
                continue

            see_also = SEE_ALSO_PATTERN.match(line)
            if see_also:
                indent, rest = see_also.groups()
                result.lines.append(f"{indent}@sa {self._expand(rest)}".rstrip())
                continue

            text, type_name = self._take_type(line)
            if type_name:
                if result.type_name is None:
                    result.type_name = type_name
                if not text.strip():
                    continue
            result.lines.append(self._expand(text))

    def _add_brief(self, lines: list[str]) -> None:
        for index, line in enumerate(lines):
            stripped = line.strip()
            if not stripped:
                continue
            if not stripped.startswith(BRIEF_EXEMPT):
                separator = "" if line[:1].isspace() else " "
                lines[index] = f"@brief{separator}{line}"
            return

    def _take_type(self, text: str) -> tuple[str, Optional[str]]:
        """Remove the first '@type T' from text and return (text, T)."""
        match = TYPE_PATTERN.search(text)
        if not match:
            return text, None
        return (text[:match.start()] + text[match.end():]).rstrip(), match.group(1)

    def _expand(self, text: str) -> str:
        """Expand macros outside @f$ ... @f$ formulas."""
        if not self.macros.macros:
            return text
        parts = text.split(FORMULA_MARKER)
        for index in range(0, len(parts), 2):
            parts[index] = self.macros.expand(parts[index])
        return FORMULA_MARKER.join(parts)

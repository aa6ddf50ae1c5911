"""
Pseudo-Code Emitter
===================

This module renders a resolved, documented class tree as C++-like
pseudo-code for the documentation generator:

    class classA
      :public ::general::reference::classB,
       public ::a::b::c {
    /** @class "classA"
      * @ingroup test
      * @brief help for classA
      */

      protected: /* ( Transient ) */

        ::gridbase::gridbase mixed_access;
    /** @var mixed_access
      * @brief storing a grid.
      *
      * @note This property has the MATLAB attribute @c Transient set to true.
      */
    };

Layout Rules
------------
- One region marker per run of declarations with equal access and
  modifiers.
- A declaration's documentation block follows it directly.
- Default values and method bodies are copied verbatim, with three
  rewrites: MATLAB comments become C comments, char arrays and strings
  become double-quoted C strings, and '*/' inside documentation is
  escaped. Braces and comment markers inside literals then never count
  as pseudo-code syntax.
- Comment blocks that document nothing are kept as plain C comments at
  their place in the file.
- Accessors are wrapped in '#if 0' guards so they do not show up as
  separate members.
"""

from typing import Optional
import logging
import re

from mtocpy.classdef.ast import (
    ClassNode,
    DocComment,
    EventDeclaration,
    MethodDeclaration,
    PropertyDeclaration,
    Region,
)
from mtocpy.classdef.config import TranslatorConfig
from mtocpy.classdef.lexer import Token, TokenType
from mtocpy.classdef.types import render_parameter_list, render_type, return_construct

logger = logging.getLogger(__name__)


BANNER = """\
/* (Autoinserted by mtocpy)
 * This source code has been filtered by the mtocpy classdef filter,
 * which generates code that can be processed by the doxygen documentation tool.
 *
 * It can neither be interpreted by MATLAB, nor can it be compiled with a C++ compiler.
 * Except for the comments, the function bodies of your M-file functions are untouched.
 */"""

COMMENT_CLOSE_ESCAPE = "*&#47;"
COMMENT_OPEN_ESCAPE = "/&#42;"

# Backslashes that would escape the closing quote of a C string
BACKSLASH_RUN = re.compile(r'\\+(?="|$)')


def escape_comment(text: str) -> str:
    """Keep '*/' in text from closing the surrounding comment."""
    return text.replace("*/", COMMENT_CLOSE_ESCAPE)


def quote_literal(token: Token) -> str:
    r"""
    Rewrite a MATLAB char array or string as a double-quoted C string.

        'it''s {'    ->   "it's {"
        "a ""b"" c"  ->   "a \"b\" c"

    Comment markers inside the text are escaped like in documentation.
    """
    quote = token.value[0]
    text = token.value[1:-1].replace(quote * 2, quote)
    text = BACKSLASH_RUN.sub(lambda m: m.group(0) * 2, text)
    text = text.replace('"', '\\"')
    text = escape_comment(text).replace("/*", COMMENT_OPEN_ESCAPE)
    return f'"{text}"'


class PseudoCodeEmitter:
    """
    Generates pseudo-code for one class.

    Usage:
        emitter = PseudoCodeEmitter(config)
        text = emitter.emit(class_node)
    """

    def __init__(self, config: Optional[TranslatorConfig] = None):
        self.config = config if config is not None else TranslatorConfig()
        self._output: list[str] = []
        self._region: Optional[Region] = None

    def emit(self, cls: ClassNode) -> str:
        self._output = []
        self._region = None

        if self.config.emit_banner:
            self._emit(BANNER)
            self._emit()

        free = list(cls.free_comments)
        self._emit_free_comments(free, cls.start_line)

        self._emit_class_header(cls)
        self._emit_class_doc(cls)

        for decl in cls.declarations():
            self._emit_free_comments(free, decl.start_line)
            self._emit_region(decl.region)
            if isinstance(decl, PropertyDeclaration):
                self._emit_property(decl)
            elif isinstance(decl, MethodDeclaration):
                self._emit_method(decl)
            elif isinstance(decl, EventDeclaration):
                self._emit_event(decl)

        self._emit_free_comments(free)
        self._emit("};")
        self._emit()

        logger.debug(f"emitted {len(self._output)} lines for class '{cls.name}'")
        return "\n".join(self._output)

    # =========================================================================
    # Output Helpers
    # =========================================================================

    def _emit(self, line: str = "") -> None:
        self._output.append(line)

    def _emit_region(self, region: Optional[Region]) -> None:
        if region is None or region == self._region:
            return
        self._region = region
        self._emit()
        self._emit(f"  {region.marker()}")
        self._emit()

    def _emit_doc(
        self,
        header: str,
        lines: list[str],
        notes: list[str],
        force: bool = False,
        default: Optional[str] = None,
    ) -> None:
        """
        Emit a documentation block.

        Nothing is emitted for members without documentation text unless
        `force` is set.
        """
        has_text = any(line.strip() for line in lines)
        if not has_text and not force:
            return

        self._emit(f"/** {header}")
        for line in lines:
            self._emit(f"  * {escape_comment(line)}" if line else "  *")

        if notes:
            self._emit("  *")
            for note in notes:
                self._emit(f"  * @note {escape_comment(note)}")

        if default is not None and self.config.emit_default_notes:
            first, *rest = escape_comment(default).split("\n")
            self._emit(f"  * <br/>@b Default: {first}")
            for line in rest:
                self._emit(line)

        self._emit("  */")

    def _emit_free_comments(self, blocks: list[DocComment], before: Optional[int] = None) -> None:
        """Emit and remove the leading blocks that end before line `before`."""
        while blocks and (before is None or blocks[0].end_line < before):
            block = blocks.pop(0)
            if not any(line.strip() for line in block.lines):
                continue
            text = "\n".join(escape_comment(line) for line in block.lines)
            self._emit(f"   /*{text} */")
            self._emit()

    # =========================================================================
    # Class
    # =========================================================================

    def _emit_class_header(self, cls: ClassNode) -> None:
        if not cls.superclasses:
            self._emit(f"class {cls.name} {{")
            return

        self._emit(f"class {cls.name}")
        bases = [render_type(name) for name in cls.superclasses]
        for index, base in enumerate(bases):
            lead = "  :" if index == 0 else "   "
            tail = " {" if index == len(bases) - 1 else ","
            self._emit(f"{lead}public {base}{tail}")

    def _emit_class_doc(self, cls: ClassNode) -> None:
        lines = []
        if self.config.group:
            lines.append(f"@ingroup {self.config.group}")
        lines.extend(cls.doc_lines)
        self._emit_doc(f'@class "{cls.name}"', lines, cls.notes, force=True)

    # =========================================================================
    # Members
    # =========================================================================

    def _emit_property(self, prop: PropertyDeclaration) -> None:
        prefix = "static const " if "Constant" in prop.region.modifiers else ""
        type_text = render_type(prop.type_name, self.config.type_placeholder)

        if prop.default is not None:
            default = self.rewrite_code(prop.default, prop.default_start, prop.default_tokens)
            self._emit(f"    {prefix}{type_text} {prop.name} = {default};")
        else:
            self._emit(f"    {prefix}{type_text} {prop.name};")

        self._emit_doc(
            f"@var {prop.name}",
            prop.doc_lines,
            prop.notes,
            force=prop.force_doc,
            default=prop.default,
        )
        self._emit()

    def _emit_event(self, event: EventDeclaration) -> None:
        self._emit(f"    EVENT {event.name};")
        has_text = any(line.strip() for line in event.doc_lines)
        lines = list(event.doc_lines) if has_text else [f"@brief {event.name}"]
        lines.extend(["", f"@event {event.name}"])
        self._emit_doc(f"@var {event.name}", lines, event.notes, force=True)
        self._emit()

    def _emit_method(self, method: MethodDeclaration) -> None:
        signature = self.signature(method)

        if method.is_accessor:
            self._emit(f"#if 0 //mtoc++: '{method.name}'")
            self._emit(f"{signature} {{{self.render_body(method)}}}")
            self._emit()
            self._emit("#endif")
        elif method.is_abstract:
            virtual = "" if "Static" in method.region.modifiers else "virtual "
            self._emit(f"    {virtual}{signature} = 0;")
        elif method.body is None:
            self._emit(f"    {signature};")
        else:
            self._emit(f"    {signature} {{{self.render_body(method)}}}")

        self._emit_doc(f"@fn {self.signature(method, declaration=False)}", method.doc_lines,
                       method.notes, force=method.force_doc)
        self._emit()

    def signature(self, method: MethodDeclaration, declaration: bool = True) -> str:
        """
        Render a method signature.

        With `declaration` set, static methods are prefixed with 'static'
        (the documentation '@fn' line omits it).
        """
        params = render_parameter_list(method.rendered_parameters, self.config.type_placeholder)
        text = f"{method.display_name}({params})"

        if not method.is_constructor:
            returns = return_construct(method.returns, setter=method.accessor_kind == "set")
            text = f"{returns} {text}"
        if declaration and method.region and "Static" in method.region.modifiers:
            text = f"static {text}"
        return text

    # =========================================================================
    # Copied Code
    # =========================================================================

    def render_body(self, method: MethodDeclaration) -> str:
        """
        Return the method body as pseudo-code.

        Comments that were taken as the method's documentation are removed,
        together with their line when nothing else is on it.
        """
        doc_tokens = method.doc.tokens if method.doc else []
        return self.rewrite_code(
            method.body or "",
            method.body_start,
            [*method.body_comments, *method.body_literals],
            removed={id(t) for t in doc_tokens},
        )

    def rewrite_code(
        self,
        text: str,
        base: int,
        tokens: list[Token],
        removed: frozenset[int] | set[int] = frozenset(),
    ) -> str:
        """
        Rewrite the literals and comments of a raw source slice.

        Args:
            text: Source slice starting at offset `base`
            tokens: Literal, continuation and comment tokens inside the slice
            removed: ids of comment tokens to drop instead of converting
        """
        pieces = []
        pos = 0
        for token in sorted(tokens, key=lambda t: t.start):
            start = token.start - base
            end = token.end - base

            if id(token) in removed:
                start, end = self._removal_span(text, start, end)
                pieces.append(text[pos:start])
            else:
                pieces.append(text[pos:start])
                pieces.append(self._rewrite_token(token))
            pos = end

        pieces.append(text[pos:])
        return "".join(pieces)

    def _removal_span(self, body: str, start: int, end: int) -> tuple[int, int]:
        """Widen [start, end) to the whole line if the comment is alone on it."""
        line_start = body.rfind("\n", 0, start) + 1
        if line_start == 0 or body[line_start:start].strip():
            return start, end
        if body.startswith("\n", end):
            end += 1
        return line_start, end

    def _rewrite_token(self, token: Token) -> str:
        if token.type in (TokenType.CHAR_ARRAY, TokenType.STRING):
            return quote_literal(token)
        if token.type == TokenType.CONTINUATION:
            rest = token.value[3:]
            if rest.strip():
                return f".../*{escape_comment(rest)} */"
            return token.value

        text = escape_comment(token.value or "")
        if token.type == TokenType.BLOCK_COMMENT:
            return f"/*\n{text}\n*/"
        return f"/*{text} */"

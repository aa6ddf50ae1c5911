"""
Classdef Recursive Descent Parser
=================================

This module implements the parser for MATLAB classdef files. It consumes
the scanner's token stream and builds the declaration tree defined in
mtocpy.classdef.ast. Only the class structure is parsed; default values
and method bodies are kept as raw source slices.

Grammar (Simplified EBNF)
-------------------------
file            ::= classdef local_function*
classdef        ::= 'classdef' attr_list? NAME ('<' super (('&' | ',') super)*)?
                    block* 'end'
super           ::= NAME ('.' NAME)*
block           ::= ('properties' | 'methods' | 'events') attr_list? member* 'end'
attr_list       ::= '(' (attr (',' attr)*)? ')'
attr            ::= '~'? NAME ('=' value)?
property        ::= NAME ('@' type | dims? type? validators?) ('=' raw_value)?
event           ::= NAME
method          ::= 'function' signature body 'end'      (concrete)
                  | 'function'? signature                 (abstract or external)
signature       ::= outputs? NAME ('.' NAME)? ('(' inputs ')')?
outputs         ::= NAME '=' | '[' NAME* ']' '='

Statements end at a newline, ';', ',' or a comment. Member names and the
block keywords are recognized at grammatical statement boundaries, so a
whole class may sit on one line:

    classdef A < B.C  properties(Constant)  x = 1;  end end

Example Usage
-------------
>>> from mtocpy.classdef.parser import parse_source
>>> cls = parse_source("classdef A\\nproperties\\nx = 1;\\nend\\nend\\n", "A.m")
>>> cls.name, [d.name for d in cls.declarations()]
('A', ['x'])
"""

import logging
from typing import Optional

from mtocpy.classdef.lexer import Scanner, Token, TokenType, BODY_OPENERS
from mtocpy.classdef.errors import (
    MissingTokenError,
    UnexpectedTokenError,
    UnsupportedConstructError,
)
from mtocpy.classdef.ast import (
    Attribute,
    Block,
    BlockKind,
    ClassNode,
    Declaration,
    EventDeclaration,
    MethodDeclaration,
    Parameter,
    PropertyDeclaration,
)

logger = logging.getLogger(__name__)


# Tokens that end a statement at bracket depth 0
STATEMENT_END = frozenset({
    TokenType.NEWLINE,
    TokenType.SEMICOLON,
    TokenType.COMMA,
    TokenType.COMMENT,
    TokenType.BLOCK_COMMENT,
    TokenType.EOF,
})

SEPARATORS = frozenset({
    TokenType.NEWLINE,
    TokenType.SEMICOLON,
    TokenType.COMMA,
    TokenType.COMMENT,
    TokenType.BLOCK_COMMENT,
})

CLOSING = {
    TokenType.LPAREN: TokenType.RPAREN,
    TokenType.LBRACKET: TokenType.RBRACKET,
    TokenType.LBRACE: TokenType.RBRACE,
}

OPENER_TEXT = {
    TokenType.LPAREN: "(",
    TokenType.LBRACKET: "[",
    TokenType.LBRACE: "{",
}

MEMBER_BLOCKS = ("properties", "methods", "events")

# Tokens whose text is rewritten when code is copied into the output
VERBATIM_TOKENS = frozenset({
    TokenType.CHAR_ARRAY,
    TokenType.STRING,
    TokenType.CONTINUATION,
    TokenType.COMMENT,
    TokenType.BLOCK_COMMENT,
})


class ClassParser:
    """
    Parses a classdef token stream into a ClassNode.

    Continuation tokens and comments inside brackets never matter for the
    grammar, so the parser works on a filtered stream; the full stream is
    kept for collecting the comments of method bodies.

    Attributes:
        tokens: Significant tokens
        filename: Source filename for error reporting
        source: Full source text, used for raw slices
    """

    def __init__(
        self,
        tokens: list[Token],
        filename: str = "<input>",
        source: str = "",
    ):
        self.filename = filename
        self.source = source
        self.source_lines = source.splitlines()

        self.tokens = [t for t in tokens if self._is_significant(t)]
        self._comments = [t for t in tokens if t.is_comment()]
        self._verbatim = [t for t in tokens if t.type in VERBATIM_TOKENS]
        self._pos = 0

        # Comments outside method bodies, for the documentation associator
        self._class_comments: list[Token] = []

    @staticmethod
    def _is_significant(token: Token) -> bool:
        if token.type == TokenType.CONTINUATION:
            return False
        if token.is_comment() and token.depth > 0:
            return False
        return True

    def parse(self) -> ClassNode:
        """
        Parse the token stream.

        Returns:
            The ClassNode of the file

        Raises:
            ClassdefSyntaxError: If the file does not follow the grammar
            UnsupportedConstructError: For enumeration blocks and files
                without a classdef
        """
        self._skip_separators()
        token = self._peek()

        if token.is_word("function"):
            raise UnsupportedConstructError(
                "function file without classdef",
                token.location,
                self._get_source_line(token.line),
                alternative="only classdef files can be translated",
            )
        if not token.is_word("classdef"):
            raise UnexpectedTokenError(
                self._describe(token),
                "'classdef'",
                token.location,
                self._get_source_line(token.line),
            )

        cls = self._parse_class_header()
        self._parse_class_body(cls)
        self._parse_local_functions()

        cls.comments = self._class_comments
        logger.debug(
            f"parsed class '{cls.name}': {len(cls.blocks)} blocks, "
            f"{sum(len(b.declarations) for b in cls.blocks)} declarations"
        )
        return cls

    # =========================================================================
    # Token Access Methods
    # =========================================================================

    def _at_end(self) -> bool:
        return self._peek().type == TokenType.EOF

    def _peek(self, offset: int = 0) -> Token:
        pos = self._pos + offset
        if pos >= len(self.tokens):
            return self.tokens[-1]
        return self.tokens[pos]

    def _advance(self) -> Token:
        if not self._at_end():
            token = self.tokens[self._pos]
            self._pos += 1
            return token
        return self.tokens[-1]

    def _check(self, *types: TokenType) -> bool:
        return self._peek().type in types

    def _match(self, *types: TokenType) -> Optional[Token]:
        if self._check(*types):
            return self._advance()
        return None

    def _expect(self, token_type: TokenType, message: str) -> Token:
        """
        Expect and consume a specific token type.

        Raises:
            MissingTokenError: If the expected token is not found
        """
        if self._check(token_type):
            return self._advance()

        current = self._peek()
        raise MissingTokenError(
            message,
            current.location,
            self._get_source_line(current.line),
        )

    def _get_source_line(self, line: int) -> Optional[str]:
        if 0 < line <= len(self.source_lines):
            return self.source_lines[line - 1]
        return None

    def _describe(self, token: Token) -> str:
        if token.type == TokenType.EOF:
            return "end of file"
        if token.type == TokenType.NEWLINE:
            return "end of line"
        return token.value or token.type.name.lower()

    def _at_statement_end(self) -> bool:
        token = self._peek()
        return token.type in STATEMENT_END and token.depth == 0

    def _end_statement(self, what: str) -> None:
        """Require the end of the current statement (or a closing 'end')."""
        token = self._peek()
        if self._at_statement_end() or token.is_word("end"):
            return
        raise UnexpectedTokenError(
            self._describe(token),
            f"end of {what}",
            token.location,
            self._get_source_line(token.line),
        )

    def _skip_separators(self) -> None:
        """Skip statement separators, collecting class-level comments."""
        while self._check(*SEPARATORS):
            token = self._advance()
            if token.is_comment():
                self._class_comments.append(token)

    # =========================================================================
    # Class Header and Body
    # =========================================================================

    def _parse_class_header(self) -> ClassNode:
        keyword = self._advance()
        cls = ClassNode(location=keyword.location, start_line=keyword.line)

        if self._check(TokenType.LPAREN):
            cls.attributes = self._parse_attribute_list()

        name = self._expect(TokenType.WORD, "class name")
        cls.name = name.value
        last = name

        if self._match(TokenType.LT):
            while True:
                reference, last = self._parse_dotted_name("superclass name")
                cls.superclasses.append(reference)
                if not self._match(TokenType.AMPERSAND, TokenType.COMMA):
                    break

        cls.end_line = last.line
        cls.end_offset = last.end
        return cls

    def _parse_class_body(self, cls: ClassNode) -> None:
        while True:
            self._skip_separators()
            token = self._peek()

            if token.type == TokenType.EOF:
                raise MissingTokenError(
                    f"'end' to close classdef '{cls.name}'",
                    token.location,
                    self._get_source_line(cls.location.line),
                )

            # The parser is at a statement boundary here, so words count as
            # keywords even where the scanner could not tell (one-line classes)
            if token.is_word("end"):
                self._advance()
                return

            if token.is_word(*MEMBER_BLOCKS):
                cls.blocks.append(self._parse_block(cls))
                continue

            if token.is_word("enumeration"):
                raise UnsupportedConstructError(
                    "enumeration block",
                    token.location,
                    self._get_source_line(token.line),
                    alternative="enumeration members are not translated",
                )

            raise UnexpectedTokenError(
                self._describe(token),
                "'properties', 'methods', 'events' or 'end'",
                token.location,
                self._get_source_line(token.line),
            )

    def _parse_local_functions(self) -> None:
        """Skip local functions that follow the classdef; comments between them are kept."""
        while True:
            self._skip_separators()
            token = self._peek()
            if token.type == TokenType.EOF:
                return
            if not token.is_word("function"):
                raise UnexpectedTokenError(
                    self._describe(token),
                    "end of file after classdef",
                    token.location,
                    self._get_source_line(token.line),
                )
            keyword = self._advance()
            function = self._parse_signature(keyword)
            self._parse_body(function, keyword)
            logger.debug(f"skipped local function '{function.name}' at line {keyword.line}")

    # =========================================================================
    # Blocks
    # =========================================================================

    def _parse_block(self, cls: ClassNode) -> Block:
        keyword = self._advance()
        block = Block(location=keyword.location, kind=BlockKind(keyword.value))

        if self._check(TokenType.LPAREN):
            block.attributes = self._parse_attribute_list()

        while True:
            self._skip_separators()
            token = self._peek()

            if token.type == TokenType.EOF:
                raise MissingTokenError(
                    f"'end' to close {block.kind.value} block",
                    token.location,
                    self._get_source_line(keyword.line),
                )

            if token.is_word("end"):
                block.end_line = self._advance().line
                return block

            decl: Declaration
            if block.kind == BlockKind.PROPERTIES:
                decl = self._parse_property()
            elif block.kind == BlockKind.EVENTS:
                decl = self._parse_event()
            else:
                decl = self._parse_method(block, cls)

            decl.block = block
            block.declarations.append(decl)

    def _parse_attribute_list(self) -> list[Attribute]:
        """Parse '(' attr, attr, ... ')'."""
        self._expect(TokenType.LPAREN, "'('")
        attributes = []

        while not self._check(TokenType.RPAREN):
            negated = self._match(TokenType.TILDE) is not None
            key = self._expect(TokenType.WORD, "attribute name")

            if self._match(TokenType.ASSIGN):
                value, raw = self._parse_attribute_value()
                if negated and isinstance(value, bool):
                    value = not value
            else:
                value, raw = not negated, ""

            attributes.append(Attribute(key.value, value, raw, key.location))

            if not self._match(TokenType.COMMA):
                break

        self._expect(TokenType.RPAREN, "')' to close attribute list")
        return attributes

    def _parse_attribute_value(self) -> tuple[object, str]:
        """
        Parse the value of `Key = value`.

        Returns (value, raw): True/False for logical values, the unquoted
        text for words and literals, the raw text for meta-class queries
        ('?Name') and cell lists ('{?A, ?B}').
        """
        token = self._peek()

        if token.type == TokenType.WORD:
            text, last = self._parse_dotted_name("attribute value")
            raw = self.source[token.start:last.end]
            if text in ("true", "false"):
                return text == "true", raw
            return text, raw

        if token.type == TokenType.NUMBER and token.value in ("0", "1"):
            self._advance()
            return token.value == "1", token.value

        if token.type in (TokenType.CHAR_ARRAY, TokenType.STRING):
            self._advance()
            return token.value[1:-1], token.value

        if token.type == TokenType.QUESTION:
            self._advance()
            _, last = self._parse_dotted_name("class name after '?'")
            raw = self.source[token.start:last.end]
            return raw, raw

        if token.type == TokenType.LBRACE:
            raw, _ = self._capture_group()
            return raw, raw

        raise UnexpectedTokenError(
            self._describe(token),
            "attribute value",
            token.location,
            self._get_source_line(token.line),
        )

    # =========================================================================
    # Members
    # =========================================================================

    def _parse_property(self) -> PropertyDeclaration:
        name = self._expect(TokenType.WORD, "property name")
        prop = PropertyDeclaration(
            location=name.location,
            name=name.value,
            start_line=name.line,
        )
        last = name

        if self._match(TokenType.AT):
            prop.type_name, last = self._parse_dotted_name("type name after '@'")
        else:
            if self._check(TokenType.LPAREN):
                prop.dimensions, last = self._capture_group()
            if self._check(TokenType.WORD) and not self._peek().is_word("end"):
                prop.type_name, last = self._parse_dotted_name("type name")
            if self._check(TokenType.LBRACE):
                prop.validators, last = self._capture_group()

        if self._match(TokenType.ASSIGN):
            prop.default_start = self._peek().start
            prop.default, last = self._capture_value(f"default value of '{prop.name}'")
            prop.default_tokens = self._verbatim_tokens(prop.default_start, last.end)

        self._end_statement("property declaration")
        prop.end_line = last.line
        prop.end_offset = last.end
        return prop

    def _parse_event(self) -> EventDeclaration:
        name = self._expect(TokenType.WORD, "event name")
        self._end_statement("event declaration")
        return EventDeclaration(
            location=name.location,
            name=name.value,
            start_line=name.line,
            end_line=name.line,
            end_offset=name.end,
        )

    def _parse_method(self, block: Block, cls: ClassNode) -> MethodDeclaration:
        token = self._peek()
        abstract = block.flag("Abstract")

        if token.is_word("function"):
            keyword = self._advance()
            method = self._parse_signature(keyword)
            if abstract:
                method.is_abstract = True
                self._end_statement("abstract method signature")
            else:
                self._parse_body(method, keyword)
        else:
            method = self._parse_signature(token)
            if abstract:
                method.is_abstract = True
            else:
                method.is_external = True
            self._end_statement("method signature")

        method.is_constructor = method.name == cls.name
        return method

    def _parse_signature(self, first: Token) -> MethodDeclaration:
        """Parse `[outs] = name(ins)`, with 'get.X' / 'set.X' names."""
        returns: list[Parameter] = []

        if self._check(TokenType.LBRACKET):
            returns = self._parse_argument_list(TokenType.LBRACKET, "output argument")
            self._expect(TokenType.ASSIGN, "'=' after output list")
        elif self._check(TokenType.WORD) and self._peek(1).type == TokenType.ASSIGN:
            output = self._advance()
            returns = [Parameter(output.value, location=output.location)]
            self._advance()

        name_token = self._expect(TokenType.WORD, "method name")
        name = name_token.value
        last = name_token
        accessor_kind = None
        accessor_of = None

        if name in ("get", "set") and self._check(TokenType.DOT):
            self._advance()
            prop = self._expect(TokenType.WORD, f"property name after '{name}.'")
            accessor_kind = name
            accessor_of = prop.value
            name = f"{name}.{prop.value}"
            last = prop

        parameters: list[Parameter] = []
        if self._check(TokenType.LPAREN):
            parameters = self._parse_argument_list(TokenType.LPAREN, "input argument")
            last = self.tokens[self._pos - 1]

        return MethodDeclaration(
            location=first.location,
            name=name,
            start_line=first.line,
            end_line=last.line,
            end_offset=last.end,
            parameters=parameters,
            returns=returns,
            accessor_of=accessor_of,
            accessor_kind=accessor_kind,
        )

    def _parse_argument_list(self, opener: TokenType, what: str) -> list[Parameter]:
        """Parse '(a, ~, b)' or '[a b]' into parameters."""
        self._expect(opener, f"'{OPENER_TEXT[opener]}'")
        closer = CLOSING[opener]
        arguments = []

        while not self._check(closer):
            if self._match(TokenType.COMMA):
                continue
            token = self._peek()
            if token.type not in (TokenType.WORD, TokenType.TILDE):
                raise UnexpectedTokenError(
                    self._describe(token),
                    what,
                    token.location,
                    self._get_source_line(token.line),
                )
            self._advance()
            arguments.append(Parameter(token.value, location=token.location))

        self._advance()
        return arguments

    def _parse_body(self, method: MethodDeclaration, keyword: Token) -> None:
        """
        Consume a function body up to its closing 'end'.

        Nesting is tracked with statement-start keywords only; the body
        itself is kept as a raw slice of the source.
        """
        depth = 1

        while True:
            token = self._peek()
            if token.type == TokenType.EOF:
                raise MissingTokenError(
                    f"'end' to close function '{method.name}'",
                    keyword.location,
                    self._get_source_line(keyword.line),
                )
            self._advance()

            if token.type != TokenType.WORD or not token.statement_start:
                continue

            if token.value in BODY_OPENERS or self._opens_arguments_block(token):
                depth += 1
            elif token.value == "end":
                depth -= 1
                if depth == 0:
                    closing = token
                    break

        method.body_start = method.end_offset
        method.body = self.source[method.end_offset:closing.start]
        method.body_comments = [
            c for c in self._comments
            if method.end_offset <= c.start < closing.start
        ]
        method.body_literals = [
            t for t in self._verbatim_tokens(method.end_offset, closing.start)
            if not t.is_comment()
        ]

    def _verbatim_tokens(self, start: int, end: int) -> list[Token]:
        """Literal, continuation and comment tokens starting in [start, end)."""
        return [t for t in self._verbatim if start <= t.start < end]

    def _opens_arguments_block(self, token: Token) -> bool:
        # 'arguments' is a block keyword unless used as a variable
        return token.value == "arguments" and not self._check(TokenType.ASSIGN, TokenType.DOT)

    # =========================================================================
    # Raw Slices
    # =========================================================================

    def _parse_dotted_name(self, what: str) -> tuple[str, Token]:
        """Parse NAME ('.' NAME)* and return the dotted text and last token."""
        first = self._expect(TokenType.WORD, what)
        parts = [first.value]
        last = first
        while self._check(TokenType.DOT) and self._peek(1).type == TokenType.WORD:
            self._advance()
            last = self._advance()
            parts.append(last.value)
        return ".".join(parts), last

    def _capture_group(self) -> tuple[str, Token]:
        """Consume a bracketed group and return its raw text and closing token."""
        opener = self._advance()
        closer_type = CLOSING[opener.type]

        while True:
            token = self._advance()
            if token.type == TokenType.EOF:
                raise MissingTokenError(
                    f"'{opener.value}' to be closed",
                    opener.location,
                    self._get_source_line(opener.line),
                )
            if token.type == closer_type and token.depth == opener.depth:
                return self.source[opener.start:token.end], token

    def _capture_value(self, what: str) -> tuple[str, Token]:
        """Consume tokens to the end of the statement and return the raw text."""
        first = self._peek()
        if self._at_statement_end():
            raise MissingTokenError(
                what,
                first.location,
                self._get_source_line(first.line),
            )

        last = first
        while not self._at_statement_end():
            last = self._advance()
        return self.source[first.start:last.end], last


def parse_source(source: str, filename: str = "<input>") -> ClassNode:
    """Scan and parse classdef source into a ClassNode."""
    tokens = list(Scanner(source, filename).tokenize())
    return ClassParser(tokens, filename, source).parse()

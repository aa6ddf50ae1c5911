"""
Classdef Declaration Tree
=========================

This module defines the node types produced by the class parser. The tree
holds exactly what the pseudo-code emitter needs to render one classdef
file: the class header, its blocks and their declarations, raw source
slices (default values, method bodies) and the documentation bound to
each declaration.

Node Hierarchy
--------------
ASTNode (base)
├── ClassNode - the classdef, exactly one per file
├── Block - properties / methods / events block with its attribute list
└── Declaration - a member of a block
    ├── PropertyDeclaration
    ├── MethodDeclaration
    └── EventDeclaration

Supporting records: Attribute, Parameter, DocComment, Region.

Design Notes
------------
- Nodes are mutable dataclasses: the parser builds them, the documentation
  associator and the attribute resolver fill in documentation, regions and
  notes afterwards.
- A declaration refers back to its block, and an accessor method refers to
  the property it serves by name only (`accessor_of`). Neither reference
  owns the target, so the tree has no ownership cycles.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional, Union

from mtocpy.errors import SourceLocation
from mtocpy.classdef.lexer import Token


# =============================================================================
# Enumerations
# =============================================================================

class BlockKind(Enum):
    """The three member block kinds of a classdef."""
    PROPERTIES = "properties"
    METHODS = "methods"
    EVENTS = "events"


class Access(Enum):
    """Access levels, ordered from least to most restrictive."""
    PUBLIC = "public"
    PROTECTED = "protected"
    PRIVATE = "private"

    @property
    def rank(self) -> int:
        """0 for public, 1 for protected, 2 for private."""
        return _ACCESS_RANK[self]

    def __str__(self) -> str:
        return self.value


_ACCESS_RANK = {Access.PUBLIC: 0, Access.PROTECTED: 1, Access.PRIVATE: 2}


# =============================================================================
# Base Node
# =============================================================================

@dataclass
class ASTNode:
    """
    Base class for all tree nodes.

    Attributes:
        location: Source location where this node starts
    """
    location: SourceLocation

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}@{self.location.line}:{self.location.column}"


# =============================================================================
# Supporting Records
# =============================================================================

@dataclass
class Attribute:
    """
    One entry of an attribute list: `Constant`, `~Hidden` or `SetAccess = private`.

    Attributes:
        name: Attribute key as written
        value: True/False for flags, the value text otherwise
        raw: Source text of the value (empty for bare flags)
        location: Where the key appears
    """
    name: str
    value: Union[bool, str]
    raw: str = ""
    location: Optional[SourceLocation] = None


@dataclass
class Parameter:
    """
    A method input or output argument.

    `type_name` is filled in from `@type` annotations in the method's
    documentation.
    """
    name: str
    type_name: Optional[str] = None
    location: Optional[SourceLocation] = None

    @property
    def is_ignored(self) -> bool:
        """True for the '~' placeholder argument."""
        return self.name == "~"


@dataclass
class DocComment:
    """
    A block of consecutive comment lines.

    Attributes:
        lines: Comment text, one entry per source line, comment markers removed
        start_line: First source line of the block
        end_line: Last source line of the block
        location: Location of the first comment token
        tokens: The comment tokens making up the block
        inline: True if the block starts after code on the same line
        tag: 'var', 'fn', 'event' or 'class' if the block names its target
            explicitly (supplementary documentation), else None
        target_name: Member named by the tag
    """
    lines: list[str]
    start_line: int
    end_line: int
    location: SourceLocation
    tokens: list[Token] = field(default_factory=list, repr=False)
    inline: bool = False
    tag: Optional[str] = None
    target_name: Optional[str] = None

    @property
    def is_supplementary(self) -> bool:
        return self.tag is not None


@dataclass(frozen=True)
class Region:
    """
    Access/modifier classification shared by a run of declarations.

    Adjacent declarations with equal regions are emitted under a single
    region marker.
    """
    access: Access
    modifiers: tuple[str, ...] = ()

    def marker(self) -> str:
        """Render the region marker, e.g. 'protected: /* ( Transient ) */'."""
        if self.modifiers:
            return f"{self.access.value}: /* ( {', '.join(self.modifiers)} ) */"
        return f"{self.access.value}:"


# =============================================================================
# Declarations
# =============================================================================

@dataclass
class Declaration(ASTNode):
    """
    Base class for block members.

    Attributes:
        name: Member name as written (accessors keep their 'get.'/'set.' prefix)
        type_name: Explicit type reference in dotted form, if any
        start_line: First source line of the declaration
        end_line: Last source line of the declaration statement (for
            concrete methods, the last line of the signature)
        block: Owning block (back-reference)
        doc: Primary documentation
        supplementary: Supplementary documentation, in file order
        doc_lines: Rendered documentation text
        notes: Notes added by the attribute resolver
        force_doc: True if a documentation block must be emitted even
            without any documentation text
        region: Resolved access/modifier classification
    """
    name: str = ""
    type_name: Optional[str] = None
    start_line: int = 0
    end_line: int = 0
    end_offset: int = 0
    block: Optional["Block"] = field(default=None, repr=False, compare=False)
    doc: Optional[DocComment] = field(default=None, repr=False)
    supplementary: list[DocComment] = field(default_factory=list, repr=False)
    doc_lines: list[str] = field(default_factory=list, repr=False)
    notes: list[str] = field(default_factory=list)
    force_doc: bool = False
    region: Optional[Region] = None

    @property
    def display_name(self) -> str:
        """Name used in the rendered pseudo-code."""
        return self.name


@dataclass
class PropertyDeclaration(Declaration):
    """
    A property, e.g. `x@double = [1 2 ...\\n 3]`.

    Attributes:
        default: Raw source text of the default value, verbatim
        default_start: Source offset where `default` begins
        default_tokens: Literal, continuation and comment tokens inside
            the default value
        dimensions: Raw size-validation text, e.g. '(1,:)'
        validators: Raw validator-function text, e.g. '{mustBePositive}'
    """
    default: Optional[str] = None
    default_start: int = 0
    default_tokens: list[Token] = field(default_factory=list, repr=False)
    dimensions: Optional[str] = None
    validators: Optional[str] = None


@dataclass
class EventDeclaration(Declaration):
    """An event name."""
    pass


@dataclass
class MethodDeclaration(Declaration):
    """
    A method signature with optional body.

    Attributes:
        parameters: Input arguments as written (object argument included)
        returns: Output arguments, in declaration order
        body: Raw body source between the signature and the closing
            'end'; None for abstract and externally defined methods
        body_start: Source offset where `body` begins
        body_comments: Comment tokens inside the body
        body_literals: Literal and continuation tokens inside the body
        is_abstract: Declared in an Abstract block, rendered without body
        is_external: Signature-only declaration of a method defined in
            its own file
        accessor_of: Property name for 'get.X' / 'set.X' methods
        accessor_kind: 'get' or 'set' for accessors
        is_constructor: Method named like its class
        rendered_parameters: Parameters shown in the output (object
            argument removed), set by the attribute resolver
    """
    parameters: list[Parameter] = field(default_factory=list)
    returns: list[Parameter] = field(default_factory=list)
    body: Optional[str] = field(default=None, repr=False)
    body_start: int = 0
    body_comments: list[Token] = field(default_factory=list, repr=False)
    body_literals: list[Token] = field(default_factory=list, repr=False)
    is_abstract: bool = False
    is_external: bool = False
    accessor_of: Optional[str] = None
    accessor_kind: Optional[str] = None
    is_constructor: bool = False
    rendered_parameters: list[Parameter] = field(default_factory=list)

    @property
    def is_accessor(self) -> bool:
        return self.accessor_of is not None

    @property
    def display_name(self) -> str:
        return self.accessor_of if self.accessor_of else self.name


# =============================================================================
# Blocks and Class
# =============================================================================

@dataclass
class Block(ASTNode):
    """
    A properties, methods or events block.

    Attributes:
        kind: Block kind
        attributes: Attribute list as written
        declarations: Members in file order
        end_line: Line of the closing 'end'
        set_access / get_access: Resolved access tuple (default public)
        modifiers: Resolved true modifiers, sorted
        raw_access: Access values as written, for notes
    """
    kind: BlockKind = BlockKind.PROPERTIES
    attributes: list[Attribute] = field(default_factory=list)
    declarations: list[Declaration] = field(default_factory=list)
    end_line: int = 0
    set_access: Access = Access.PUBLIC
    get_access: Access = Access.PUBLIC
    modifiers: tuple[str, ...] = ()
    raw_access: tuple[str, str] = ("public", "public")

    def flag(self, name: str) -> bool:
        """
        Return True if attribute `name` is set to true by every occurrence.

        Used by the parser before attribute resolution; conflicting
        occurrences read as unset, matching the resolver.
        """
        values = [a.value for a in self.attributes if a.name.lower() == name.lower()]
        if not values:
            return False
        return all(v is True for v in values)


@dataclass
class ClassNode(ASTNode):
    """
    Root node: the classdef of one file.

    Attributes:
        name: Class name
        superclasses: Superclass references in dotted form, in order
        attributes: Class attribute list
        blocks: Member blocks in file order
        comments: Comment tokens outside method bodies, in file order
        start_line / end_line: Lines of the classdef header
        group: Output grouping tag (from configuration)
        doc / supplementary / doc_lines / notes: Class documentation
        free_comments: Comment blocks outside methods that document
            nothing, in file order
    """
    name: str = ""
    superclasses: list[str] = field(default_factory=list)
    attributes: list[Attribute] = field(default_factory=list)
    blocks: list[Block] = field(default_factory=list)
    comments: list[Token] = field(default_factory=list, repr=False)
    start_line: int = 0
    end_line: int = 0
    end_offset: int = 0
    group: Optional[str] = None
    doc: Optional[DocComment] = field(default=None, repr=False)
    supplementary: list[DocComment] = field(default_factory=list, repr=False)
    doc_lines: list[str] = field(default_factory=list, repr=False)
    notes: list[str] = field(default_factory=list)
    free_comments: list[DocComment] = field(default_factory=list, repr=False)

    def declarations(self) -> Iterator[Declaration]:
        """Iterate over all declarations in file order."""
        for block in self.blocks:
            yield from block.declarations

    def properties(self) -> Iterator[PropertyDeclaration]:
        for decl in self.declarations():
            if isinstance(decl, PropertyDeclaration):
                yield decl

    def methods(self) -> Iterator[MethodDeclaration]:
        for decl in self.declarations():
            if isinstance(decl, MethodDeclaration):
                yield decl

    def find_property(self, name: str) -> Optional[PropertyDeclaration]:
        for prop in self.properties():
            if prop.name == name:
                return prop
        return None


# =============================================================================
# Tree Printer
# =============================================================================

class ASTPrinter:
    """Pretty-printer for the declaration tree (debugging aid)."""

    def print(self, cls: ClassNode) -> str:
        lines = [f"Class {cls.name}"]
        for sup in cls.superclasses:
            lines.append(f"  < {sup}")
        for block in cls.blocks:
            attrs = ", ".join(
                a.name if a.value is True else f"{a.name}={a.value}"
                for a in block.attributes
            )
            lines.append(f"  {block.kind.value}({attrs})")
            for decl in block.declarations:
                lines.append(f"    {self._describe(decl)}")
        return "\n".join(lines)

    def _describe(self, decl: Declaration) -> str:
        if isinstance(decl, PropertyDeclaration):
            text = f"property {decl.name}"
            if decl.type_name:
                text += f"@{decl.type_name}"
            if decl.default is not None:
                text += f" = {decl.default}"
            return text
        if isinstance(decl, MethodDeclaration):
            params = ", ".join(p.name for p in decl.parameters)
            outs = ", ".join(p.name for p in decl.returns)
            text = f"method [{outs}] = {decl.name}({params})"
            if decl.is_abstract:
                text += " abstract"
            return text
        return f"event {decl.name}"

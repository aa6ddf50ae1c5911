"""
Attribute Resolution
====================

Turns the attribute lists of the class and its blocks into access levels,
modifier sets, regions and documentation notes, and checks the method
signatures that depend on them.

Access
------
| Key          | properties | methods | events |
|--------------|------------|---------|--------|
| Access       | set + get  | both    | -      |
| SetAccess    | set        | -       | -      |
| GetAccess    | get        | -       | -      |
| NotifyAccess | -          | -       | set    |
| ListenAccess | -          | -       | get    |

A member whose set and get access differ is grouped under the more
restrictive level and receives a single note naming both.

Modifiers
---------
Modifiers set to true appear, sorted, in the region marker and as one
note each. Hidden members always get a documentation block.

Conflicts
---------
A key repeated with different values is left unset and reported as a
warning; a key repeated with the same value is accepted.
"""

from dataclasses import dataclass
from typing import Optional, Union
import logging

from mtocpy.classdef.errors import (
    ClassdefSyntaxError,
    DiagnosticCollector,
    UnsupportedConstructError,
)
from mtocpy.classdef.ast import (
    Access,
    Attribute,
    Block,
    BlockKind,
    ClassNode,
    Declaration,
    MethodDeclaration,
    PropertyDeclaration,
    Region,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Vocabularies
# =============================================================================

PROPERTY_MODIFIERS = (
    "Constant", "Transient", "Dependent", "Hidden", "Abstract",
    "SetObservable", "GetObservable", "AbortSet", "NonCopyable",
)
METHOD_MODIFIERS = ("Static", "Abstract", "Hidden", "Sealed")
EVENT_MODIFIERS = ("Hidden",)
CLASS_MODIFIERS = ("Sealed", "Abstract", "Hidden", "HandleCompatible", "ConstructOnLoad")

MODIFIERS = {
    BlockKind.PROPERTIES: PROPERTY_MODIFIERS,
    BlockKind.METHODS: METHOD_MODIFIERS,
    BlockKind.EVENTS: EVENT_MODIFIERS,
}

# Access keys and the slots they set: (set, get)
ACCESS_KEYS = {
    BlockKind.PROPERTIES: {
        "Access": (True, True),
        "SetAccess": (True, False),
        "GetAccess": (False, True),
    },
    BlockKind.METHODS: {
        "Access": (True, True),
    },
    BlockKind.EVENTS: {
        "NotifyAccess": (True, False),
        "ListenAccess": (False, True),
    },
}

# Slot names used in the non-unique access note
ACCESS_NOTE_KEYS = {
    BlockKind.PROPERTIES: ("SetAccess", "GetAccess"),
    BlockKind.METHODS: ("Access", "Access"),
    BlockKind.EVENTS: ("NotifyAccess", "ListenAccess"),
}

# Accepted by MATLAB, without effect on the output
IGNORED_KEYS = frozenset({
    "description", "detaileddescription", "inferiorclasses", "allowedsubclasses",
    "partialmatchpriority", "testtags", "testparameterdefinition",
    "parametercombination", "framework",
})

ACCESS_VALUES = {
    "public": Access.PUBLIC,
    "protected": Access.PROTECTED,
    "private": Access.PRIVATE,
    "immutable": Access.PRIVATE,
}

MEMBER_NOUN = {
    BlockKind.PROPERTIES: "property",
    BlockKind.METHODS: "method",
    BlockKind.EVENTS: "event",
}

PROPERTY_DOC_LINK = (
    '<a href="http://www.mathworks.com/help/matlab/matlab_oop/property-attributes.html">'
    "Matlab documentation of property attributes.</a>"
)
METHOD_DOC_LINK = (
    '<a href="http://www.mathworks.com/help/matlab/matlab_oop/method-attributes.html">'
    "Matlab documentation of method attributes.</a>"
)

CLASS_NOTES = {
    "Sealed": "This class has the class property <tt>Sealed</tt> and cannot be derived from.",
    "Abstract": "This class has the class property <tt>Abstract</tt> and cannot be instantiated.",
}


@dataclass
class ResolvedAttributes:
    """Result of resolving one attribute list."""
    set_access: Access = Access.PUBLIC
    get_access: Access = Access.PUBLIC
    raw_set: str = "public"
    raw_get: str = "public"
    modifiers: tuple[str, ...] = ()

    @property
    def region_access(self) -> Access:
        """The more restrictive of the two access levels."""
        return max(self.set_access, self.get_access, key=lambda a: a.rank)

    @property
    def is_asymmetric(self) -> bool:
        return self.set_access != self.get_access


# =============================================================================
# Resolver
# =============================================================================

class AttributeResolver:
    """
    Resolves attributes and checks signatures for one class.

    Usage:
        resolver = AttributeResolver(diagnostics, source_lines)
        resolver.resolve(class_node)

    Raises ClassdefSyntaxError for invalid access values, accessors of
    unknown properties, accessors with the wrong parameter count and
    constant properties without a value; UnsupportedConstructError for
    meta-class access lists.
    """

    def __init__(
        self,
        diagnostics: Optional[DiagnosticCollector] = None,
        source_lines: Optional[list[str]] = None,
        attribute_doc_links: bool = True,
    ):
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticCollector()
        self.source_lines = source_lines or []
        self.attribute_doc_links = attribute_doc_links

    def resolve(self, cls: ClassNode) -> None:
        self._resolve_class(cls)

        for block in cls.blocks:
            resolved = self.resolve_attributes(block.kind, block.attributes)
            block.set_access = resolved.set_access
            block.get_access = resolved.get_access
            block.raw_access = (resolved.raw_set, resolved.raw_get)
            block.modifiers = resolved.modifiers

            for decl in block.declarations:
                decl.region = Region(resolved.region_access, resolved.modifiers)
                self._add_notes(decl, block, resolved)

                if isinstance(decl, PropertyDeclaration):
                    self._check_property(decl, block)
                elif isinstance(decl, MethodDeclaration):
                    self._resolve_signature(decl, block, cls)

        self._add_accessor_notes(cls)

    # =========================================================================
    # Attribute Lists
    # =========================================================================

    def resolve_attributes(
        self,
        kind: Optional[BlockKind],
        attributes: list[Attribute],
    ) -> ResolvedAttributes:
        """
        Resolve one attribute list.

        Args:
            kind: Block kind, or None for the class attribute list
            attributes: Attributes as written
        """
        vocabulary = MODIFIERS[kind] if kind else CLASS_MODIFIERS
        access_keys = ACCESS_KEYS[kind] if kind else {}
        canonical = {name.lower(): name for name in (*vocabulary, *access_keys)}

        groups: dict[str, list[Attribute]] = {}
        for attribute in attributes:
            groups.setdefault(attribute.name.lower(), []).append(attribute)

        result = ResolvedAttributes()
        modifiers = set()

        # 'Access' first so that SetAccess / GetAccess refine it
        ordered = sorted(groups.items(), key=lambda item: item[0] != "access")

        for key, occurrences in ordered:
            name = canonical.get(key)
            first = occurrences[0]

            if name is None:
                if key not in IGNORED_KEYS:
                    self.diagnostics.warning(f"unknown attribute '{first.name}' ignored", first.location)
                continue

            values = {self._normalize(a.value) for a in occurrences}
            if len(values) > 1:
                written = ", ".join(sorted(str(v) for v in values))
                self.diagnostics.warning(
                    f"conflicting values for attribute '{name}' ({written}); attribute left unset",
                    occurrences[1].location,
                )
                continue

            if name in access_keys:
                level = self._access_level(first)
                raw = str(first.value)
                sets_set, sets_get = access_keys[name]
                if sets_set:
                    result.set_access, result.raw_set = level, raw
                if sets_get:
                    result.get_access, result.raw_get = level, raw
                continue

            if first.value is True:
                modifiers.add(name)
            elif first.value is not False:
                self.diagnostics.warning(
                    f"attribute '{name}' expects a logical value, got '{first.value}'",
                    first.location,
                )

        result.modifiers = tuple(sorted(modifiers))
        return result

    def _normalize(self, value: Union[bool, str]) -> Union[bool, str]:
        return value.lower() if isinstance(value, str) else value

    def _access_level(self, attribute: Attribute) -> Access:
        value = attribute.value
        if isinstance(value, str) and value.startswith(("?", "{")):
            raise UnsupportedConstructError(
                f"access list '{value}'",
                attribute.location,
                self._get_source_line(attribute.location),
                alternative="use public, protected or private",
            )

        level = ACCESS_VALUES.get(str(value).lower()) if isinstance(value, str) else None
        if level is None:
            raise ClassdefSyntaxError(
                f"invalid value '{value}' for attribute '{attribute.name}'",
                attribute.location,
                hint="expected public, protected or private",
                source_line=self._get_source_line(attribute.location),
            )
        return level

    # =========================================================================
    # Notes
    # =========================================================================

    def _resolve_class(self, cls: ClassNode) -> None:
        resolved = self.resolve_attributes(None, cls.attributes)
        for modifier in resolved.modifiers:
            cls.notes.append(
                CLASS_NOTES.get(modifier, f"This class has the class property <tt>{modifier}</tt>.")
            )

    def _add_notes(self, decl: Declaration, block: Block, resolved: ResolvedAttributes) -> None:
        noun = MEMBER_NOUN[block.kind]

        for modifier in resolved.modifiers:
            if block.kind == BlockKind.METHODS:
                decl.notes.append(
                    f"This method has the MATLAB method attribute @c {modifier} set to true."
                )
            else:
                decl.notes.append(f"This {noun} has the MATLAB attribute @c {modifier} set to true.")
            if modifier == "Hidden":
                decl.force_doc = True

        if resolved.is_asymmetric:
            set_key, get_key = ACCESS_NOTE_KEYS[block.kind]
            decl.notes.append(
                f"This {noun} has non-unique access specifier: "
                f"<tt>{set_key} = {resolved.raw_set}, {get_key} = {resolved.raw_get}</tt>"
            )
            decl.force_doc = True

        if decl.notes and self.attribute_doc_links:
            if block.kind == BlockKind.PROPERTIES:
                decl.notes.append(PROPERTY_DOC_LINK)
            elif block.kind == BlockKind.METHODS:
                decl.notes.append(METHOD_DOC_LINK)

    def _add_accessor_notes(self, cls: ClassNode) -> None:
        kinds: dict[str, set[str]] = {}
        for method in cls.methods():
            if method.is_accessor:
                kinds.setdefault(method.accessor_of, set()).add(method.accessor_kind)

        for name, found in kinds.items():
            prop = cls.find_property(name)
            if found == {"get", "set"}:
                what = "retrieved or changed"
            elif found == {"get"}:
                what = "retrieved"
            else:
                what = "changed"
            prop.notes.append(f"This property has custom functionality when its value is {what}.")
            prop.force_doc = True

    # =========================================================================
    # Checks
    # =========================================================================

    def _check_property(self, prop: PropertyDeclaration, block: Block) -> None:
        if "Constant" in block.modifiers and prop.default is None:
            raise ClassdefSyntaxError(
                f"constant property '{prop.name}' has no value",
                prop.location,
                hint="constant properties must be initialized",
                source_line=self._get_source_line(prop.location),
            )

    def _resolve_signature(self, method: MethodDeclaration, block: Block, cls: ClassNode) -> None:
        """Drop the object argument and check accessor signatures."""
        params = method.parameters

        if method.is_accessor:
            if cls.find_property(method.accessor_of) is None:
                raise ClassdefSyntaxError(
                    f"'{method.name}' is an accessor of unknown property '{method.accessor_of}'",
                    method.location,
                    source_line=self._get_source_line(method.location),
                )
            expected = 1 if method.accessor_kind == "get" else 2
            if len(params) != expected:
                shape = "the object" if expected == 1 else "the object and the new value"
                raise ClassdefSyntaxError(
                    f"'{method.name}' takes {len(params)} arguments, expected {shape}",
                    method.location,
                    source_line=self._get_source_line(method.location),
                )
            method.rendered_parameters = params[1:]
            return

        if method.is_constructor or "Static" in block.modifiers:
            method.rendered_parameters = list(params)
            return

        if not params:
            self.diagnostics.warning(
                f"method '{method.name}' declares no object argument",
                method.location,
            )
            method.rendered_parameters = []
            return

        method.rendered_parameters = params[1:]

    def _get_source_line(self, location) -> Optional[str]:
        if location is None:
            return None
        if 0 < location.line <= len(self.source_lines):
            return self.source_lines[location.line - 1]
        return None

# =============================================================================
# test_attributes.py - Attribute Resolver Tests
# =============================================================================
# Tests for access levels, modifiers, regions, notes and the signature
# checks of the attribute resolver.
# =============================================================================

import pytest

from mtocpy.classdef.parser import parse_source
from mtocpy.classdef.attributes import (
    AttributeResolver,
    CLASS_NOTES,
    METHOD_DOC_LINK,
    PROPERTY_DOC_LINK,
)
from mtocpy.classdef.ast import Access, Region
from mtocpy.classdef.errors import (
    ClassdefSyntaxError,
    DiagnosticCollector,
    Severity,
    UnsupportedConstructError,
)


def resolve(source: str, links: bool = True):
    """Parse and resolve; return the class and the diagnostics."""
    cls = parse_source(source, "A.m")
    diagnostics = DiagnosticCollector()
    AttributeResolver(diagnostics, source.splitlines(), attribute_doc_links=links).resolve(cls)
    return cls, diagnostics


def single_property(attributes: str, body: str = "x", links: bool = True):
    source = f"classdef A\n properties ({attributes})\n  {body}\n end\nend\n"
    cls, diagnostics = resolve(source, links)
    return next(cls.declarations()), diagnostics


def messages(diagnostics) -> str:
    return "\n".join(d.message for d in diagnostics.diagnostics)


# =============================================================================
# Access Tests
# =============================================================================

class TestAccess:

    def test_default_is_public(self):
        cls, _ = resolve("classdef A\n properties\n  x\n end\nend\n")
        assert next(cls.declarations()).region == Region(Access.PUBLIC, ())

    def test_block_access(self):
        prop, _ = single_property("Access = protected")
        assert prop.region.access == Access.PROTECTED
        assert prop.notes == []

    def test_access_is_case_insensitive(self):
        prop, diagnostics = single_property("access = Private")
        assert prop.region.access == Access.PRIVATE
        assert diagnostics.diagnostics == []

    def test_immutable_is_private(self):
        prop, _ = single_property("SetAccess = immutable")
        assert prop.region.access == Access.PRIVATE

    def test_invalid_access_value(self):
        with pytest.raises(ClassdefSyntaxError) as exc:
            single_property("Access = everyone")
        assert "invalid value 'everyone'" in str(exc.value)

    def test_meta_class_access_is_unsupported(self):
        source = "classdef A\n methods (Access = ?B)\n  f(this)\n end\nend\n"
        with pytest.raises(UnsupportedConstructError):
            resolve(source)


# =============================================================================
# Asymmetric Access Tests
# =============================================================================

class TestAsymmetricAccess:
    """Differing set and get access: most restrictive region, one note."""

    def test_grouped_under_most_restrictive(self):
        prop, _ = single_property("SetAccess = private, GetAccess = public")
        assert prop.region.access == Access.PRIVATE

    def test_exactly_one_access_note(self):
        prop, _ = single_property("SetAccess = private, GetAccess = public")
        access_notes = [n for n in prop.notes if "non-unique access" in n]
        assert access_notes == [
            "This property has non-unique access specifier: "
            "<tt>SetAccess = private, GetAccess = public</tt>"
        ]

    def test_forces_documentation(self):
        prop, _ = single_property("SetAccess = protected")
        assert prop.force_doc

    def test_access_refined_by_set_access(self):
        """Access applies first, SetAccess then overrides the set slot."""
        prop, _ = single_property("SetAccess = private, Access = protected")
        assert prop.region.access == Access.PRIVATE
        assert "<tt>SetAccess = private, GetAccess = protected</tt>" in prop.notes[0]

    def test_symmetric_pair_has_no_note(self):
        prop, _ = single_property("SetAccess = protected, GetAccess = protected")
        assert prop.notes == []
        assert not prop.force_doc

    def test_event_access(self):
        source = "classdef A < handle\n events (NotifyAccess = protected)\n  Changed\n end\nend\n"
        cls, _ = resolve(source)
        event = next(cls.declarations())
        assert event.region.access == Access.PROTECTED
        assert event.notes == [
            "This event has non-unique access specifier: "
            "<tt>NotifyAccess = protected, ListenAccess = public</tt>"
        ]


# =============================================================================
# Modifier Tests
# =============================================================================

class TestModifiers:

    def test_modifiers_sorted_in_region(self):
        prop, _ = single_property("Transient, Dependent")
        assert prop.region == Region(Access.PUBLIC, ("Dependent", "Transient"))
        assert prop.region.marker() == "public: /* ( Dependent, Transient ) */"

    def test_one_note_per_modifier_and_link(self):
        prop, _ = single_property("Transient, SetObservable")
        assert prop.notes == [
            "This property has the MATLAB attribute @c SetObservable set to true.",
            "This property has the MATLAB attribute @c Transient set to true.",
            PROPERTY_DOC_LINK,
        ]

    def test_link_can_be_disabled(self):
        prop, _ = single_property("Transient", links=False)
        assert PROPERTY_DOC_LINK not in prop.notes

    def test_false_modifier_is_not_set(self):
        prop, _ = single_property("Transient = false")
        assert prop.region.modifiers == ()

    def test_hidden_forces_documentation(self):
        prop, _ = single_property("Hidden")
        assert prop.force_doc

    def test_method_notes(self):
        source = "classdef A\n methods (Static)\n  function r = make()\n  end\n end\nend\n"
        cls, _ = resolve(source)
        method = next(cls.declarations())
        assert method.notes == [
            "This method has the MATLAB method attribute @c Static set to true.",
            METHOD_DOC_LINK,
        ]

    def test_constant_without_value(self):
        with pytest.raises(ClassdefSyntaxError) as exc:
            single_property("Constant", "x")
        assert "constant property 'x' has no value" in str(exc.value)

    def test_constant_with_value(self):
        prop, _ = single_property("Constant", "x = 1")
        assert prop.region.modifiers == ("Constant",)

    def test_class_notes(self):
        cls, _ = resolve("classdef (Sealed) A\nend\n")
        assert cls.notes == [CLASS_NOTES["Sealed"]]


# =============================================================================
# Diagnostic Tests
# =============================================================================

class TestAttributeDiagnostics:

    def test_conflicting_values_leave_key_unset(self):
        prop, diagnostics = single_property("Transient, Transient = false")
        assert prop.region.modifiers == ()
        assert [d.severity for d in diagnostics.diagnostics] == [Severity.WARNING]
        assert "conflicting values for attribute 'Transient'" in diagnostics.diagnostics[0].message

    def test_repeated_equal_values_are_accepted(self):
        prop, diagnostics = single_property("Transient, Transient = true")
        assert prop.region.modifiers == ("Transient",)
        assert diagnostics.diagnostics == []

    def test_unknown_attribute(self):
        prop, diagnostics = single_property("Frobnicate")
        assert prop.region.modifiers == ()
        assert "unknown attribute 'Frobnicate' ignored" in messages(diagnostics)

    def test_ignored_attribute(self):
        _, diagnostics = single_property("Description = 'the x'")
        assert diagnostics.diagnostics == []

    def test_non_logical_modifier_value(self):
        _, diagnostics = single_property("Transient = yes")
        assert "expects a logical value" in messages(diagnostics)


# =============================================================================
# Signature Tests
# =============================================================================

class TestSignatures:

    def test_object_argument_dropped(self):
        source = "classdef A\n methods\n  function r = f(this, a, b)\n  end\n end\nend\n"
        cls, _ = resolve(source)
        method = next(cls.declarations())
        assert [p.name for p in method.rendered_parameters] == ["a", "b"]

    def test_static_keeps_all_arguments(self):
        source = "classdef A\n methods (Static)\n  function r = f(a, b)\n  end\n end\nend\n"
        cls, _ = resolve(source)
        assert [p.name for p in next(cls.declarations()).rendered_parameters] == ["a", "b"]

    def test_constructor_keeps_all_arguments(self):
        source = "classdef A\n methods\n  function this = A(a)\n  end\n end\nend\n"
        cls, _ = resolve(source)
        assert [p.name for p in next(cls.declarations()).rendered_parameters] == ["a"]

    def test_missing_object_argument_warns(self):
        source = "classdef A\n methods\n  function f()\n  end\n end\nend\n"
        _, diagnostics = resolve(source)
        assert "declares no object argument" in messages(diagnostics)

    def test_getter_renders_without_parameters(self):
        source = (
            "classdef A\n properties\n  prop\n end\n"
            " methods\n  function v = get.prop(this)\n  end\n end\nend\n"
        )
        cls, _ = resolve(source)
        getter = [m for m in cls.methods()][0]
        assert getter.rendered_parameters == []

    def test_setter_needs_two_arguments(self):
        source = (
            "classdef A\n properties\n  prop\n end\n"
            " methods\n  function this = set.prop(this)\n  end\n end\nend\n"
        )
        with pytest.raises(ClassdefSyntaxError) as exc:
            resolve(source)
        assert "expected the object and the new value" in str(exc.value)

    def test_accessor_of_unknown_property(self):
        source = " methods\n  function v = get.nothing(this)\n  end\n end\n"
        with pytest.raises(ClassdefSyntaxError) as exc:
            resolve(f"classdef A\n{source}end\n")
        assert "unknown property 'nothing'" in str(exc.value)

    def test_accessor_notes(self):
        source = (
            "classdef A\n properties\n  prop\n  other\n end\n"
            " methods\n"
            "  function v = get.prop(this)\n  end\n"
            "  function this = set.prop(this, v)\n  end\n"
            "  function this = set.other(this, v)\n  end\n"
            " end\nend\n"
        )
        cls, _ = resolve(source)
        prop = cls.find_property("prop")
        other = cls.find_property("other")
        assert prop.notes == ["This property has custom functionality when its value is retrieved or changed."]
        assert other.notes == ["This property has custom functionality when its value is changed."]
        assert prop.force_doc and other.force_doc

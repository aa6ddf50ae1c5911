# =============================================================================
# test_types.py - Type and Return Substitution Tests
# =============================================================================

from mtocpy.classdef.ast import Parameter
from mtocpy.classdef.types import (
    DEFAULT_TYPE_PLACEHOLDER,
    NO_RETURN,
    qualify,
    render_parameter_list,
    render_type,
    return_construct,
)


class TestTypes:

    def test_qualify_dotted_name(self):
        assert qualify("general.reference.classB") == "::general::reference::classB"

    def test_qualify_simple_name(self):
        assert qualify("handle") == "::handle"

    def test_placeholder_for_missing_type(self):
        assert render_type(None) == DEFAULT_TYPE_PLACEHOLDER
        assert render_type("") == "matlabtypesubstitute"

    def test_custom_placeholder(self):
        assert render_type(None, "auto") == "auto"


class TestReturnConstruct:

    def test_no_return(self):
        assert return_construct([]) == "mlhsInnerSubst<void>"

    def test_setter(self):
        assert return_construct([], setter=True) == NO_RETURN == "noret::substitute"

    def test_single_return_has_no_name(self):
        assert return_construct([Parameter("r")]) == "mlhsInnerSubst<void>"

    def test_typed_return(self):
        assert return_construct([Parameter("r", "a.B")]) == "mlhsInnerSubst<::a::B>"

    def test_typed_return_among_several(self):
        returns = [Parameter("a", "a.B"), Parameter("b")]
        assert return_construct(returns) == (
            "mlhsSubst<mlhsInnerSubst<::a::B,a> ,mlhsInnerSubst<void,b> >"
        )

    def test_multiple_returns_keep_order(self):
        returns = [Parameter("b"), Parameter("a"), Parameter("c")]
        assert return_construct(returns) == (
            "mlhsSubst<mlhsInnerSubst<void,b> ,mlhsInnerSubst<void,a> ,mlhsInnerSubst<void,c> >"
        )


class TestParameters:

    def test_parameter_list(self):
        params = [Parameter("x"), Parameter("y", "double")]
        assert render_parameter_list(params) == "matlabtypesubstitute x,::double y"

    def test_ignored_parameter_gets_generated_name(self):
        params = [Parameter("~"), Parameter("y")]
        assert render_parameter_list(params) == "matlabtypesubstitute unused1,matlabtypesubstitute y"

    def test_empty_list(self):
        assert render_parameter_list([]) == ""

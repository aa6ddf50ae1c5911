"""
Type and Return Substitution
============================

MATLAB is dynamically typed, but the documentation generator parses the
output as C++ and needs a type in front of every name. This module supplies
the syntactic substitutes:

| Source                      | Rendered                                   |
|-----------------------------|--------------------------------------------|
| no type                     | matlabtypesubstitute                       |
| type a.b.C                  | ::a::b::C                                  |
| no return value             | mlhsInnerSubst<void>                       |
| one return value r          | mlhsInnerSubst<void>                       |
| setter (set.X)              | noret::substitute                          |
| return values a, b          | mlhsSubst<mlhsInnerSubst<void,a> ,mlhsInnerSubst<void,b> > |

A return value with a known type uses that type instead of 'void'. Only
several return values carry their names. No type is ever inferred; types
only come from explicit declarations and @type annotations.
"""

from typing import Optional

from mtocpy.classdef.ast import Parameter


DEFAULT_TYPE_PLACEHOLDER = "matlabtypesubstitute"
NO_RETURN = "noret::substitute"
RETURN_TYPE_PLACEHOLDER = "void"


def qualify(name: str) -> str:
    """
    Convert a dotted MATLAB name into a fully qualified C++ name.

        >>> qualify("general.reference.classB")
        '::general::reference::classB'
    """
    return "::" + "::".join(part for part in name.split(".") if part)


def render_type(type_name: Optional[str], placeholder: str = DEFAULT_TYPE_PLACEHOLDER) -> str:
    """Render a declared type, or the placeholder if there is none."""
    if not type_name:
        return placeholder
    return qualify(type_name)


def return_type(ret: Optional[Parameter]) -> str:
    """Render the type of a return value, or 'void' without one."""
    if ret is None or not ret.type_name:
        return RETURN_TYPE_PLACEHOLDER
    return qualify(ret.type_name)


def render_inner_return(ret: Parameter) -> str:
    """Render one of several return values as mlhsInnerSubst<T,name>."""
    return f"mlhsInnerSubst<{return_type(ret)},{ret.name}>"


def return_construct(returns: list[Parameter], setter: bool = False) -> str:
    """
    Render the return construct of a method signature.

    Setters render as noret::substitute. A single return value (or none)
    renders only its type; several keep their names, in order.
    """
    if setter:
        return NO_RETURN
    if len(returns) <= 1:
        return f"mlhsInnerSubst<{return_type(returns[0] if returns else None)}>"
    inner = ",".join(f"{render_inner_return(r)} " for r in returns)
    return f"mlhsSubst<{inner}>"


def render_parameter(
    param: Parameter,
    placeholder: str = DEFAULT_TYPE_PLACEHOLDER,
    index: int = 0,
) -> str:
    """Render one input parameter; '~' placeholders get a generated name."""
    name = f"unused{index}" if param.is_ignored else param.name
    return f"{render_type(param.type_name, placeholder)} {name}"


def render_parameter_list(
    params: list[Parameter],
    placeholder: str = DEFAULT_TYPE_PLACEHOLDER,
) -> str:
    """Render a parameter list without parentheses: 'T a,T b'."""
    return ",".join(
        render_parameter(p, placeholder, i + 1) for i, p in enumerate(params)
    )

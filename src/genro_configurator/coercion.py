# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Attribute coercion: from raw attribute strings to typed setter arguments.

Attribute values always arrive as strings. Before a ``set_*`` method is
invoked the string is converted to the type declared by the method's single
parameter annotation.

Target types, in precedence order:
    - str, Any, object or no annotation: value passed through
    - bool: True for 'true', 'yes', 'on' (case-sensitive), False otherwise
    - Char: first character, ' ' for the empty string
    - int: decimal integer literal (optional sign, ASCII digits only)
    - type / type[X]: class reference (typedef name or dotted import path)
    - pathlib paths: resolved through the FileResolver
    - float, Decimal, date, datetime, time: TYTX typed decoding
    - Literal[...]: the choice whose text equals the value
    - list, tuple, set, frozenset, dict and other generics: unsupported
    - anything else: ``param_type(value)``

Annotation handling:
    - Annotated[T, validator...] -> T, validators run after conversion
    - T | None, Optional[T] -> T
    - T1 | T2 -> first member that converts

Constraint classes for use with Annotated:
    Regex: regex pattern for strings
    Range: min/max value constraints for numbers (ge, le, gt, lt)

Example:
    >>> coerce_value(int, '42', attribute='count')
    42
    >>> coerce_value(bool, 'yes', attribute='verbose')
    True
"""

from __future__ import annotations

import builtins
import importlib
import operator
import re
import types
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from pathlib import PurePath
from typing import (
    TYPE_CHECKING,
    Annotated,
    Any,
    Literal,
    NewType,
    Union,
    get_args,
    get_origin,
)

from genro_toolbox import smartsplit
from genro_tytx import from_tytx

from .exceptions import ConfiguratorException

if TYPE_CHECKING:
    from .file_resolver import FileResolver


Char = NewType("Char", str)
"""Single character attribute type (the first character of the raw value)."""

TRUE_VALUES = ("true", "yes", "on")

# TYTX type codes for the types decoded through genro_tytx
_TYTX_CODES: dict[type, str] = {
    float: "R",
    Decimal: "N",
    datetime: "DHZ",
    date: "D",
    time: "H",
}

_PASS_THROUGH = (str, object, Any)

# no single-string constructor: calling them would split the value
_COLLECTION_TYPES = (list, tuple, set, frozenset, dict)

_INT_PATTERN = re.compile(r"[+-]?[0-9]+")


# --- Validator classes (Annotated metadata) ---


@dataclass(frozen=True)
class Regex:
    """Setter constraint: the converted string must fully match ``pattern``.

    Example:
        >>> def set_version(self, version: Annotated[str, Regex(r'[0-9]+[.][0-9]+')]) -> None:
        ...     self.version = version
    """

    pattern: str
    flags: int = 0

    def __call__(self, value: Any) -> None:
        if not isinstance(value, str):
            raise TypeError(f"Regex applies to str values, got {type(value).__name__}")
        if not re.fullmatch(self.pattern, value, self.flags):
            raise ValueError(f"{value!r} must match pattern '{self.pattern}'")


# bound attribute, comparison that must hold, symbol for the message
_RANGE_CHECKS = (
    ("ge", operator.ge, ">="),
    ("le", operator.le, "<="),
    ("gt", operator.gt, ">"),
    ("lt", operator.lt, "<"),
)


@dataclass(frozen=True)
class Range:
    """Setter constraint on numbers; every given bound must hold."""

    ge: float | None = None
    le: float | None = None
    gt: float | None = None
    lt: float | None = None

    def __call__(self, value: Any) -> None:
        if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
            raise TypeError(f"Range applies to numbers, got {type(value).__name__}")
        for bound_name, holds, symbol in _RANGE_CHECKS:
            bound = getattr(self, bound_name)
            if bound is not None and not holds(value, bound):
                raise ValueError(f"must be {symbol} {bound}")


# --- Type hint parsing utilities ---


def _split_annotated(tp: Any) -> tuple[Any, list]:
    """Return (base, callable metadata) for ``Annotated[base, ...]``, else (tp, [])."""
    if get_origin(tp) is not Annotated:
        return tp, []
    base, *metadata = get_args(tp)
    return base, [m for m in metadata if callable(m)]


def _is_union(tp: Any) -> bool:
    origin = get_origin(tp)
    return origin is Union or origin is types.UnionType


def normalize_annotation(tp: Any) -> tuple[Any, list]:
    """Reduce a parameter annotation to (base_type, validators).

    ``Annotated`` metadata becomes the validator list and ``Optional[T]``
    collapses to ``T``. Unions of several concrete types are kept as they are.
    """
    base, validators = _split_annotated(tp)
    if _is_union(base):
        members = [a for a in get_args(base) if a is not type(None)]
        if len(members) == 1:
            inner, more = _split_annotated(members[0])
            return inner, validators + more
    return base, validators


def class_of(tp: Any) -> type:
    """Return the runtime class used to key and instantiate a parameter type.

    Generic aliases map to their origin (``dict[str, str]`` -> ``dict``);
    anything that is not a class (``Any``, unions) maps to ``object``.
    """
    if tp is Any:
        return object
    origin = get_origin(tp)
    if isinstance(origin, type):
        return origin
    if isinstance(tp, type):
        return tp
    return object


# --- Class references ---


def resolve_class(name: str, typedefs: Mapping[str, type] | None = None) -> type:
    """Resolve a class reference by typedef name or dotted import path.

    Dotted paths may address nested classes ('pkg.module.Outer.Inner'):
    the longest importable module prefix is imported and the remaining
    parts are looked up as attributes. A bare name is looked up in the
    typedef registry first, then among the builtins.

    Raises:
        ConfiguratorException: If the name does not designate a class.
    """
    if typedefs and name in typedefs:
        return typedefs[name]

    parts = [p for p in smartsplit(name, ".") if p]
    if not parts:
        raise ConfiguratorException(f"empty class reference {name!r}")

    target: Any = None
    if len(parts) == 1:
        target = getattr(builtins, parts[0], None)
    else:
        for i in range(len(parts) - 1, 0, -1):
            try:
                target = importlib.import_module(".".join(parts[:i]))
            except ModuleNotFoundError:
                continue
            for attr_name in parts[i:]:
                target = getattr(target, attr_name, None)
                if target is None:
                    break
            break

    if not isinstance(target, type):
        raise ConfiguratorException(f"class not found: {name}")
    return target


# --- Coercion ---


def coerce_value(
    param_type: Any,
    value: str,
    *,
    attribute: str,
    owner: Any = None,
    owner_name: str | None = None,
    file_resolver: FileResolver | None = None,
    typedefs: Mapping[str, type] | None = None,
    validators: Iterable[Callable[[Any], Any]] = (),
) -> Any:
    """Convert a raw attribute string to ``param_type``.

    Args:
        param_type: Declared type of the setter parameter.
        value: Raw attribute value.
        attribute: Attribute name (for diagnostics and path labels).
        owner: Object the attribute is set on (for diagnostics).
        owner_name: Configuration name of the owner, used in path labels.
        file_resolver: Resolver for path-typed attributes.
        typedefs: Typedef registry consulted for class references.
        validators: Callables run on the converted value.

    Returns:
        The converted value.

    Raises:
        ConfiguratorException: If the conversion or a validator fails.
    """
    base, more_validators = normalize_annotation(param_type)
    try:
        converted = _convert(base, value, attribute, owner, owner_name, file_resolver, typedefs)
        for validator in [*validators, *more_validators]:
            validator(converted)
    except Exception as err:
        owner_type = type(owner) if owner is not None else None
        raise ConfiguratorException(
            f"impossible to convert {value!r} to {_type_name(base)} for setting "
            f"{attribute} on {owner_type}: {err}"
        ) from err
    return converted


def _convert(
    tp: Any,
    value: str,
    attribute: str,
    owner: Any,
    owner_name: str | None,
    file_resolver: FileResolver | None,
    typedefs: Mapping[str, type] | None,
) -> Any:
    if tp in _PASS_THROUGH or tp is None:
        return value
    if tp is bool:
        return value in TRUE_VALUES
    if tp is Char:
        return value[0] if value else " "
    if tp is int:
        if not _INT_PATTERN.fullmatch(value):
            raise ValueError(f"{value!r} is not a decimal integer")
        return int(value, 10)
    if tp is type or get_origin(tp) is type:
        cls = resolve_class(value, typedefs)
        bound = get_args(tp)
        if bound and isinstance(bound[0], type) and not issubclass(cls, bound[0]):
            raise TypeError(f"{cls.__name__} is not a subclass of {bound[0].__name__}")
        return cls
    if _is_union(tp):
        return _convert_union(tp, value, attribute, owner, owner_name, file_resolver, typedefs)
    if isinstance(tp, type) and issubclass(tp, PurePath):
        if file_resolver is None:
            from .file_resolver import FileResolver

            file_resolver = FileResolver()
        label = f"{owner_name or type(owner).__name__}.{attribute}"
        return file_resolver.resolve_file(value, label)
    if tp in _TYTX_CODES:
        return _decode_typed(value, tp)
    origin = get_origin(tp)
    if origin is Literal:
        for choice in get_args(tp):
            if str(choice) == value:
                return choice
        raise ValueError(f"must be one of {list(get_args(tp))}")
    if origin is not None or tp in _COLLECTION_TYPES or not callable(tp):
        raise TypeError(f"unsupported attribute type {_type_name(tp)}")
    return tp(value)


def _convert_union(tp: Any, value: str, *args: Any) -> Any:
    """Convert to the first union member that accepts the value."""
    errors = []
    for member in get_args(tp):
        if member is type(None):
            continue
        base, member_validators = _split_annotated(member)
        try:
            converted = _convert(base, value, *args)
            for validator in member_validators:
                validator(converted)
            return converted
        except Exception as err:
            errors.append(f"{_type_name(base)}: {err}")
    raise ValueError("; ".join(errors))


def _decode_typed(value: str, tp: type) -> Any:
    """Decode with genro_tytx, using the type code of ``tp`` unless one is given."""
    source = value if "::" in value else f"{value}::{_TYTX_CODES[tp]}"
    decoded = from_tytx(source)
    if tp is float and isinstance(decoded, (int, Decimal)) and not isinstance(decoded, bool):
        decoded = float(decoded)
    if not isinstance(decoded, tp):
        raise ValueError(f"{value!r} is not a valid {tp.__name__}")
    return decoded


def _type_name(tp: Any) -> str:
    if isinstance(tp, type):
        return tp.__name__
    return getattr(tp, "__name__", None) or repr(tp)

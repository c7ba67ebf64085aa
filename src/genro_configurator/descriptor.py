# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""ObjectDescriptor - per-object cache of configuration methods.

An ObjectDescriptor wraps one live object and classifies the public methods
of its class, once, into four families:

    create_<name>()            -> child      zero-argument factory
    add_<name>(child)          -> None       attach a freshly created child
    add_configured_<name>(c)   -> None       attach a child once configured
    set_<name>(value)          -> None       attribute setter

camelCase spellings (createFoo, addConfiguredFoo, setFoo) are recognised
too. A prefix only counts when followed by '_', an uppercase letter or the
end of the name, so ``address()`` is not an add method.

The add and add_configured families are also keyed by parameter type: a
method named exactly ``add`` or ``add_configured`` is only reachable by type,
a named one only when decorated with ``@typed``. Type lookups accept the
exact type first, then the first registered superclass found in table order.

Example:
    >>> class Project:
    ...     def set_name(self, name: str) -> None: ...
    ...     def create_target(self) -> Target: ...
    ...     def add_configured(self, task: Task) -> None: ...
    >>> od = ObjectDescriptor(Project())
    >>> od.get_set_method('name').name
    'set_name'
    >>> od.get_add_configured_method(EchoTask).name  # EchoTask(Task)
    'add_configured'
"""

from __future__ import annotations

import inspect
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, get_type_hints

from .coercion import class_of, normalize_annotation

_FAMILY_PREFIXES: tuple[tuple[str, str], ...] = (
    ("add_configured", "add_configured"),
    ("add_configured", "addConfigured"),
    ("create", "create"),
    ("add", "add"),
    ("set", "set"),
)

_NO_ANNOTATION = inspect.Parameter.empty

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


@dataclass(frozen=True)
class ConfigMethod:
    """A configuration method bound to its target object.

    Attributes:
        name: Method name on the target class.
        method: The bound method.
        param_type: Normalized annotation of the single parameter
            (None for create methods, Any when unannotated).
        validators: Validators taken from ``Annotated`` metadata.
    """

    name: str
    method: Callable[..., Any]
    param_type: Any = None
    validators: tuple = field(default=())

    @property
    def param_class(self) -> type:
        """Runtime class of the parameter (``object`` when not a class)."""
        return class_of(self.param_type)

    def __call__(self, *args: Any) -> Any:
        return self.method(*args)


class ObjectDescriptor:
    """Reflective descriptor of one object being configured.

    Attributes:
        obj: The described object.
        obj_name: Name under which the object was created (None for roots).
        deferred_add: add_configured method of the parent to call with the
            object once it is configured (set by the Configurator).
    """

    __slots__ = (
        "obj",
        "obj_name",
        "deferred_add",
        "_create_methods",
        "_add_methods",
        "_add_configured_methods",
        "_set_methods",
        "_type_add_methods",
        "_type_add_configured_methods",
    )

    def __init__(self, obj: Any, obj_name: str | None = None) -> None:
        self.obj = obj
        self.obj_name = obj_name
        self.deferred_add: ConfigMethod | None = None

        create: dict[str, ConfigMethod] = {}
        add: dict[str, ConfigMethod] = {}
        add_configured: dict[str, ConfigMethod] = {}
        set_: dict[str, ConfigMethod] = {}
        type_add: dict[type, ConfigMethod] = {}
        type_add_configured: dict[type, ConfigMethod] = {}

        cls = type(obj)
        for attr_name in dir(cls):
            if attr_name.startswith("_"):
                continue
            classified = _classify(attr_name)
            if classified is None:
                continue
            family, name = classified
            func = inspect.getattr_static(cls, attr_name, None)
            if not inspect.isfunction(func):
                continue
            config_method = _build_config_method(obj, attr_name, func, family)
            if config_method is None:
                continue

            names = [name] if name else []
            names.extend(getattr(func, "_config_aliases", ()))
            by_type = not name or getattr(func, "_config_typed", False)

            if family == "create":
                for n in names:
                    create[n] = config_method
            elif family == "set":
                for n in names:
                    current = set_.get(n)
                    if current is not None and current.param_class is str:
                        # str setters take precedence
                        continue
                    set_[n] = config_method
            elif family == "add":
                if by_type:
                    type_add[config_method.param_class] = config_method
                for n in names:
                    add[n] = config_method
            else:
                if by_type:
                    type_add_configured[config_method.param_class] = config_method
                for n in names:
                    add_configured[n] = config_method

        self._create_methods = MappingProxyType(create)
        self._add_methods = MappingProxyType(add)
        self._add_configured_methods = MappingProxyType(add_configured)
        self._set_methods = MappingProxyType(set_)
        self._type_add_methods = MappingProxyType(type_add)
        self._type_add_configured_methods = MappingProxyType(type_add_configured)

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def get_create_method(self, name: str) -> ConfigMethod | None:
        return _lookup_name(self._create_methods, name)

    def get_add_method(self, key: str | type) -> ConfigMethod | None:
        """Return the add method for a child name or a child type."""
        if isinstance(key, type):
            return _lookup_type(self._type_add_methods, key)
        return _lookup_name(self._add_methods, key)

    def get_add_configured_method(self, key: str | type) -> ConfigMethod | None:
        """Return the add_configured method for a child name or a child type."""
        if isinstance(key, type):
            return _lookup_type(self._type_add_configured_methods, key)
        return _lookup_name(self._add_configured_methods, key)

    def get_set_method(self, name: str) -> ConfigMethod | None:
        return _lookup_name(self._set_methods, name)

    def get_text_method(self) -> ConfigMethod | None:
        """Return ``add_text(text: str)`` if the object has one."""
        method = self._add_methods.get("text")
        if method is not None and method.param_class in (str, object):
            return method
        return None

    # -------------------------------------------------------------------------
    # Tables (read-only views)
    # -------------------------------------------------------------------------

    @property
    def create_methods(self) -> MappingProxyType:
        return self._create_methods

    @property
    def add_methods(self) -> MappingProxyType:
        return self._add_methods

    @property
    def add_configured_methods(self) -> MappingProxyType:
        return self._add_configured_methods

    @property
    def set_methods(self) -> MappingProxyType:
        return self._set_methods

    @property
    def type_add_methods(self) -> MappingProxyType:
        return self._type_add_methods

    @property
    def type_add_configured_methods(self) -> MappingProxyType:
        return self._type_add_configured_methods

    def __repr__(self) -> str:
        return f"<ObjectDescriptor {self.obj_name or '#root'}: {type(self.obj).__name__}>"


# =============================================================================
# Method classification (internal)
# =============================================================================


def _classify(attr_name: str) -> tuple[str, str] | None:
    """Return (family, derived_name) for a method name, None if not a config method."""
    for family, prefix in _FAMILY_PREFIXES:
        if not attr_name.startswith(prefix):
            continue
        rest = attr_name[len(prefix):]
        if rest and rest[0] != "_" and not rest[0].isupper():
            continue
        rest = rest.lstrip("_")
        if not rest and family in ("create", "set"):
            return None
        return family, rest[:1].lower() + rest[1:]
    return None


def _type_hints(func: Callable) -> dict[str, Any]:
    """Return evaluated annotations, keeping the raw ones that cannot be evaluated."""
    try:
        return get_type_hints(func, include_extras=True)
    except Exception:
        hints = {}
        for name, tp in getattr(func, "__annotations__", {}).items():
            if tp == "None" or tp is None:
                hints[name] = type(None)
            elif not isinstance(tp, str):
                hints[name] = tp
        return hints


def _build_config_method(
    obj: Any, attr_name: str, func: Callable, family: str
) -> ConfigMethod | None:
    """Check the method shape for its family and bind it."""
    try:
        sig = inspect.signature(func)
    except (TypeError, ValueError):
        return None

    params = list(sig.parameters.values())[1:]
    positional = [
        p for p in params
        if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
    ]
    required = [
        p for p in params
        if p.default is inspect.Parameter.empty
        and p.kind not in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
    ]

    hints = _type_hints(func)
    returns = hints.get("return", _NO_ANNOTATION)
    returns_none = returns is type(None)
    bound = getattr(obj, attr_name)

    if family == "create":
        if required or returns_none:
            return None
        return ConfigMethod(attr_name, bound)

    # add, add_configured, set: one argument, no result
    if not positional or len(required) > 1 or (required and required[0] is not positional[0]):
        return None
    if returns is not _NO_ANNOTATION and not returns_none:
        return None

    param_type, validators = normalize_annotation(hints.get(positional[0].name, Any))
    return ConfigMethod(attr_name, bound, param_type, tuple(validators))


def _lookup_name(table: MappingProxyType, name: str) -> ConfigMethod | None:
    method = table.get(name)
    if method is None:
        normalized = _CAMEL_BOUNDARY.sub(r"_\1", name.replace("-", "_")).lower()
        if normalized != name:
            method = table.get(normalized)
    return method


def _lookup_type(table: MappingProxyType, child_type: type) -> ConfigMethod | None:
    method = table.get(child_type)
    if method is not None:
        return method
    # first assignable match in table order; ties are not ranked
    for registered, candidate in table.items():
        if issubclass(child_type, registered):
            return candidate
    return None

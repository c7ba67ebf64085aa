# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Configurator - builds object graphs from structural configuration events.

The Configurator populates plain objects from a flat sequence of events,
as produced by a markup parser walking a document:

    start_create_child(name)    open a child of the current object
    set_attribute(name, value)  set an attribute of the current object
    add_text(text)              pass character data to the current object
    end_create_child()          close the current object

No binding code is needed per class: children and attributes are resolved
on the live objects by naming convention (see ObjectDescriptor), attribute
strings are coerced to the setter parameter types (see coercion), and
registered names can be bound to classes (typedefs) or to macros.

Resolution order for start_create_child(name):
    1. recording: the current object is a macro definition, a macro
       use-site or a recorded node -> record the child
    2. a macro registered under name -> new macro use-site
    3. a class registered under name (typedef) -> instantiate, attach by type
    4. create_<name>() / add_<name>(child) / add_configured_<name>(child)
       on the current object, in this order

Example:
    >>> conf = Configurator()
    >>> conf.type_def('buildpath', BuildPath)
    >>> conf.set_root(selector)
    >>> conf.start_create_child('buildpath')
    >>> conf.set_attribute('path', '.')
    >>> conf.start_create_child('xinterface')
    >>> conf.set_attribute('count', '4')
    >>> conf.end_create_child()  # xinterface
    >>> conf.end_create_child()  # buildpath
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, MutableMapping
from typing import TYPE_CHECKING, Any

from genro_toolbox import safe_is_instance

from .coercion import coerce_value, resolve_class
from .descriptor import ConfigMethod, ObjectDescriptor
from .exceptions import ConfiguratorException
from .file_resolver import FileResolver

if TYPE_CHECKING:
    from .macro import MacroDef

logger = logging.getLogger(__name__)

# children of a macro definition declaring its formals instead of its template
RESERVED_MACRO_NAMES = ("attribute", "element")

_MACRO_DEF = "genro_configurator.macro.MacroDef"
_MACRO = "genro_configurator.macro.Macro"
_MACRO_RECORD = "genro_configurator.macro.MacroRecord"

_MAPPING_TYPES = (dict, Mapping, MutableMapping)


class Configurator:
    """Event-driven builder of object graphs.

    One Configurator serves one construction session at a time. Its state is
    the stack of ObjectDescriptors from the root to the object currently
    configured, plus the typedef and macro registries.

    Attributes:
        _typedefs: Name -> class registry.
        _macrodefs: Name -> MacroDef registry.
        _stack: ObjectDescriptors, root first, current object last.
        _file_resolver: Resolver for path-typed attributes.
    """

    def __init__(
        self,
        file_resolver: FileResolver | None = None,
        typedefs: Mapping[str, type | str] | None = None,
    ) -> None:
        """Initialize an empty configurator.

        Args:
            file_resolver: Resolver for path-typed attributes. Defaults to a
                FileResolver relative to the working directory.
            typedefs: Initial name -> class (or dotted class name) bindings.
        """
        self._file_resolver = file_resolver if file_resolver is not None else FileResolver()
        self._typedefs: dict[str, type] = {}
        self._macrodefs: dict[str, MacroDef] = {}
        self._stack: list[ObjectDescriptor] = []
        for name, cls in (typedefs or {}).items():
            self.type_def(name, cls)

    # -------------------------------------------------------------------------
    # Registries
    # -------------------------------------------------------------------------

    def type_def(self, name: str, cls: type | str) -> None:
        """Bind name to a class, given directly or as a dotted import path."""
        if isinstance(cls, str):
            cls = resolve_class(cls)
        self._typedefs[name] = cls
        logger.debug("typedef %s -> %s", name, cls)

    def get_type_def(self, name: str) -> type | None:
        return self._typedefs.get(name)

    def add_configured_macrodef(self, macrodef: MacroDef) -> None:
        """Register (or replace) a macro definition under its name."""
        macrodef.validate()
        self._macrodefs[macrodef.name] = macrodef
        logger.debug("macro %s defined", macrodef.name)

    def get_macro_def(self, name: str) -> MacroDef | None:
        return self._macrodefs.get(name)

    @property
    def file_resolver(self) -> FileResolver:
        return self._file_resolver

    @file_resolver.setter
    def file_resolver(self, file_resolver: FileResolver) -> None:
        if file_resolver is None:
            raise ConfiguratorException("file_resolver cannot be None")
        self._file_resolver = file_resolver

    def clone(self) -> Configurator:
        """Return a configurator with copies of the registries and an empty stack."""
        other = type(self)(file_resolver=self._file_resolver)
        other._typedefs = dict(self._typedefs)
        other._macrodefs = dict(self._macrodefs)
        return other

    # -------------------------------------------------------------------------
    # Stack
    # -------------------------------------------------------------------------

    def set_root(self, root: Any) -> None:
        """Start a new session configuring root."""
        if root is None:
            raise ConfiguratorException("root cannot be None")
        self._stack.clear()
        logger.debug("root set to %s", type(root).__name__)
        self._push(root, None)

    def clear(self) -> None:
        self._stack.clear()

    @property
    def current(self) -> Any:
        """The object currently configured (None before set_root)."""
        return self._stack[-1].obj if self._stack else None

    @property
    def depth(self) -> int:
        return len(self._stack)

    def is_top_level_macro_def(self) -> bool:
        """True when the current object is a macro definition being recorded.

        An event producer uses this to route the reserved ``attribute`` and
        ``element`` children to the definition's formals.
        """
        return bool(self._stack) and safe_is_instance(self._stack[-1].obj, _MACRO_DEF)

    def _push(self, obj: Any, name: str | None, deferred_add: ConfigMethod | None = None) -> Any:
        od = ObjectDescriptor(obj, name)
        od.deferred_add = deferred_add
        self._stack.append(od)
        return obj

    def _top(self, action: str) -> ObjectDescriptor:
        if not self._stack:
            raise ConfiguratorException(f"set root before {action}")
        return self._stack[-1]

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    def start_create_child(self, name: str) -> Any:
        """Open child name of the current object and make it current.

        Returns:
            The new current object (a MacroRecord or Macro while recording).

        Raises:
            ConfiguratorException: If no root is set, or no registry entry or
                method of the current object can provide the child.
        """
        parent_od = self._top("creating child")
        parent = parent_od.obj

        if safe_is_instance(parent, _MACRO_DEF) and name not in RESERVED_MACRO_NAMES:
            return self._push(parent.record_create_child(name), name)
        if safe_is_instance(parent, _MACRO):
            return self._push(parent.record_create_child(name), name)
        if safe_is_instance(parent, _MACRO_RECORD):
            return self._push(parent.record_child(name), name)

        macrodef = self._macrodefs.get(name)
        if macrodef is not None:
            return self._push(macrodef.instantiate(), name)

        child_class = self._typedefs.get(name)
        if child_class is not None:
            return self._add_child(parent_od, child_class, name, None)

        method = parent_od.get_create_method(name)
        if method is not None:
            child = self._invoke(method, parent, name)
            return self._push(child, name)

        method = parent_od.get_add_method(name)
        if method is not None:
            child = self._instantiate(method.param_class, name, parent)
            self._invoke(method, parent, name, child)
            return self._push(child, name)

        method = parent_od.get_add_configured_method(name)
        if method is not None:
            child = self._instantiate(method.param_class, name, parent)
            return self._push(child, name, method)

        raise ConfiguratorException(
            f"no appropriate method found for adding {name} on {type(parent)}"
        )

    def add_child(self, name: str, child: Any) -> None:
        """Attach an already built child to the current object and make it current.

        Under a recorded node the child is recorded as a pre-bound reference,
        attached as-is when the macro is replayed.
        """
        parent_od = self._top("creating child")
        self._add_child(parent_od, type(child), name, child)

    def _add_child(
        self, parent_od: ObjectDescriptor, child_class: type, name: str, child: Any
    ) -> Any:
        """Attach by child type: add methods now, add_configured ones at end."""
        parent = parent_od.obj
        if safe_is_instance(parent, _MACRO_RECORD):
            return self._push(parent.record_child(name, child), name)

        method = parent_od.get_add_method(child_class)
        if method is not None:
            if child is None:
                child = self._instantiate(child_class, name, parent)
            self._invoke(method, parent, name, child)
            return self._push(child, name)

        method = parent_od.get_add_configured_method(child_class)
        if method is not None:
            if child is None:
                child = self._instantiate(child_class, name, parent)
            return self._push(child, name, method)

        raise ConfiguratorException(
            f"no appropriate method found for adding {name} on {type(parent)}"
        )

    def end_create_child(self) -> Any:
        """Close the current object and return it.

        A macro use-site is replayed at this point and the object built by
        the replay is returned instead. Otherwise the finished child is given
        to the add_configured method of its parent that was resolved for it
        (by name or by type) when it was opened, or else to the one matching
        its name, if any.

        Raises:
            ConfiguratorException: If the stack is empty or only holds the root.
        """
        self._top("ending child")
        if len(self._stack) == 1:
            raise ConfiguratorException("cannot end root")

        od = self._stack.pop()
        if safe_is_instance(od.obj, _MACRO):
            return od.obj.play(self)

        parent_od = self._stack[-1]
        name = od.obj_name
        method = od.deferred_add
        if method is None and name:
            method = parent_od.get_add_configured_method(name)

        if method is not None:
            try:
                method(od.obj)
            except ConfiguratorException:
                raise
            except Exception as err:
                raise ConfiguratorException(
                    f"impossible to add configured child for {name} on "
                    f"{type(parent_od.obj)}: {err}"
                ) from err
        return od.obj

    def set_attribute(self, name: str, value: str) -> None:
        """Set attribute name of the current object from its string value.

        Raises:
            ConfiguratorException: If no set method exists, the value cannot
                be coerced, or the setter fails.
        """
        od = self._top("setting attribute")
        obj = od.obj

        if safe_is_instance(obj, _MACRO):
            obj.define_attribute(name, value)
            return
        if safe_is_instance(obj, _MACRO_RECORD):
            obj.record_attribute(name, value)
            return
        if isinstance(obj, MutableMapping):
            obj[name] = value
            return

        method = od.get_set_method(name)
        if method is None:
            raise ConfiguratorException(f"no set method found for {name} on {type(obj)}")

        converted = coerce_value(
            method.param_type,
            value,
            attribute=name,
            owner=obj,
            owner_name=od.obj_name,
            file_resolver=self._file_resolver,
            typedefs=self._typedefs,
            validators=method.validators,
        )
        try:
            method(converted)
        except ConfiguratorException:
            raise
        except Exception as err:
            raise ConfiguratorException(
                f"impossible to set {name} to {converted!r} on {type(obj)}"
            ) from err

    def add_text(self, text: str) -> None:
        """Pass character data to ``add_text(text)`` of the current object."""
        od = self._top("adding text")
        method = od.get_text_method()
        if method is None:
            raise ConfiguratorException(f"impossible to add text on {type(od.obj)}")
        try:
            method(text)
        except ConfiguratorException:
            raise
        except Exception as err:
            raise ConfiguratorException(f"impossible to add text on {type(od.obj)}") from err

    # -------------------------------------------------------------------------
    # Macro definition
    # -------------------------------------------------------------------------

    def start_macro_def(self, name: str) -> MacroDef:
        """Start recording macro definition name (allowed before any root)."""
        from .macro import MacroDef

        return self._push(MacroDef(name), name)

    def add_macro_attribute(self, name: str, default: str | None = None) -> None:
        self._current_macro_def().declare_attribute(name, default)

    def add_macro_element(self, name: str, optional: bool = False) -> None:
        self._current_macro_def().declare_element(name, optional)

    def end_macro_def(self) -> MacroDef:
        """Register the macro definition on top of the stack and pop it."""
        macrodef = self._current_macro_def()
        self.add_configured_macrodef(macrodef)
        self._stack.pop()
        return macrodef

    def _current_macro_def(self) -> MacroDef:
        if not self.is_top_level_macro_def():
            raise ConfiguratorException("no macro definition in progress")
        return self._stack[-1].obj

    # -------------------------------------------------------------------------
    # Reflective calls (internal)
    # -------------------------------------------------------------------------

    def _instantiate(self, child_class: type, name: str, parent: Any) -> Any:
        """Create a child with the no-argument constructor of child_class."""
        if child_class in _MAPPING_TYPES:
            return {}
        if child_class is object:
            raise ConfiguratorException(
                f"no child type declared for adding {name} on {type(parent)}"
            )
        try:
            return child_class()
        except TypeError as err:
            raise ConfiguratorException(
                f"no default constructor on {child_class} for adding {name} on {type(parent)}"
            ) from err
        except Exception as err:
            raise ConfiguratorException(
                f"impossible to instantiate {child_class} for adding {name} on {type(parent)}"
            ) from err

    def _invoke(self, method: ConfigMethod, parent: Any, name: str, *args: Any) -> Any:
        try:
            return method(*args)
        except ConfiguratorException:
            raise
        except Exception as err:
            raise ConfiguratorException(
                f"bad method found for {name} on {type(parent)}: {err}"
            ) from err

    def __repr__(self) -> str:
        path = "/".join(od.obj_name or "#root" for od in self._stack)
        return f"<Configurator depth={self.depth} path={path!r}>"

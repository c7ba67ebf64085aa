# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Macro module - recorded templates replayed through a Configurator.

A macro is a named template subtree declared once and instantiated many
times. Its definition (MacroDef) declares:

    - formal attributes, optionally with a default value, referenced in the
      template as ``${name}`` placeholders
    - formal elements: named slots in the template whose content is supplied
      at each use-site (optional or required)

and owns exactly one recorded template (a MacroRecord tree). A use-site
(Macro) collects attribute values and, for each element slot, the recorded
content supplied by the caller. Replaying a Macro drives the Configurator
with the template's begin/attribute/end events, substituting placeholders
and splicing the supplied slot content in place of the slot.

Classes:
    MacroAttribute - formal attribute declaration
    MacroElement - formal element slot declaration
    MacroRecord - recorded node (name, attributes, children, pre-bound object)
    MacroDef - macro definition
    Macro - one use-site of a MacroDef

Example:
    >>> macrodef = MacroDef('server')
    >>> macrodef.declare_attribute('port', '8080')
    >>> macrodef.declare_element('routes', optional=True)
    >>> template = macrodef.record_create_child('listener')
    >>> template.record_attribute('port', '${port}')
    >>> template.record_child('routes')
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from typing import TYPE_CHECKING, Any

from .exceptions import ConfiguratorException

if TYPE_CHECKING:
    from .configurator import Configurator

logger = logging.getLogger(__name__)

_PARAM_PATTERN = re.compile(r"\$\{([^}]+)\}")


def substitute_params(text: str, values: dict[str, str]) -> str:
    """Replace ``${name}`` tokens with their value; unknown tokens are kept as-is.

    Example:
        >>> substitute_params('${host}:${port}', {'host': 'localhost'})
        'localhost:${port}'
    """
    def replace(match: re.Match) -> str:
        name = match.group(1)
        return values[name] if name in values else match.group(0)

    return _PARAM_PATTERN.sub(replace, text)


def find_params(text: str) -> list[str]:
    """Return the names of the ``${name}`` tokens in text."""
    return _PARAM_PATTERN.findall(text)


class MacroAttribute:
    """Formal attribute of a macro definition."""

    def __init__(self, name: str | None = None, default: str | None = None) -> None:
        self.name = name
        self.default = default

    def set_name(self, name: str) -> None:
        self.name = name

    def set_default(self, default: str) -> None:
        self.default = default

    def __repr__(self) -> str:
        return f"<MacroAttribute {self.name} default={self.default!r}>"


class MacroElement:
    """Formal element slot of a macro definition."""

    def __init__(self, name: str | None = None, optional: bool = False) -> None:
        self.name = name
        self.optional = optional

    def set_name(self, name: str) -> None:
        self.name = name

    def set_optional(self, optional: bool) -> None:
        self.optional = optional

    def __repr__(self) -> str:
        return f"<MacroElement {self.name} optional={self.optional}>"


class MacroRecord:
    """A recorded node of a macro template or of a use-site slot content.

    Attributes:
        name: Child name to begin at replay.
        attributes: Attribute name -> raw value (placeholders kept verbatim).
        children: Ordered child records.
        obj: Pre-bound object, attached as-is at replay (None for plain nodes).
    """

    __slots__ = ("name", "attributes", "children", "obj")

    def __init__(self, name: str, obj: Any = None) -> None:
        self.name = name
        self.attributes: dict[str, str] = {}
        self.children: list[MacroRecord] = []
        self.obj = obj

    def record_attribute(self, name: str, value: str) -> None:
        self.attributes[name] = value

    def record_child(self, name: str, obj: Any = None) -> MacroRecord:
        """Append and return a child record, optionally bound to an existing object."""
        child = MacroRecord(name, obj)
        self.children.append(child)
        return child

    def walk(self) -> Iterator[MacroRecord]:
        """Yield this record and all its descendants, depth-first."""
        yield self
        for child in self.children:
            yield from child.walk()

    def __repr__(self) -> str:
        if self.obj is not None:
            return f"<MacroRecord {self.name} -> {type(self.obj).__name__}>"
        return f"<MacroRecord {self.name} ({len(self.children)} children)>"


class MacroDef:
    """Macro definition: formal attributes, formal elements and one template.

    Formal attributes and elements can be declared programmatically
    (declare_attribute / declare_element) or through the Configurator, by
    creating ``attribute`` and ``element`` children while the definition is
    on top of the stack: they reach the definition through
    add_configured_attribute / add_configured_element.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self.attributes: dict[str, MacroAttribute] = {}
        self.elements: dict[str, MacroElement] = {}
        self.macro_record: MacroRecord | None = None

    def get_attribute(self, name: str) -> MacroAttribute | None:
        return self.attributes.get(name)

    def get_element(self, name: str) -> MacroElement | None:
        return self.elements.get(name)

    def add_configured_attribute(self, attribute: MacroAttribute) -> None:
        if not attribute.name:
            raise ConfiguratorException(f"attribute without name in macro {self.name}")
        self.attributes[attribute.name] = attribute

    def add_configured_element(self, element: MacroElement) -> None:
        if not element.name:
            raise ConfiguratorException(f"element without name in macro {self.name}")
        self.elements[element.name] = element

    def declare_attribute(self, name: str, default: str | None = None) -> MacroAttribute:
        attribute = MacroAttribute(name, default)
        self.add_configured_attribute(attribute)
        return attribute

    def declare_element(self, name: str, optional: bool = False) -> MacroElement:
        element = MacroElement(name, optional)
        self.add_configured_element(element)
        return element

    def record_create_child(self, name: str) -> MacroRecord:
        """Start recording the template root."""
        if self.macro_record is not None:
            raise ConfiguratorException(
                f"macro {self.name} already has a template ({self.macro_record.name}), "
                f"cannot record {name}"
            )
        self.macro_record = MacroRecord(name)
        return self.macro_record

    def instantiate(self) -> Macro:
        """Return a new use-site of this definition."""
        return Macro(self)

    def validate(self) -> None:
        """Check the definition can be committed.

        Raises:
            ConfiguratorException: If there is no template or the template
                references an undeclared attribute.
        """
        if self.macro_record is None:
            raise ConfiguratorException(f"macro {self.name} has no template")
        for record in self.macro_record.walk():
            for att_name, att_value in record.attributes.items():
                for param in find_params(att_value):
                    if param not in self.attributes:
                        raise ConfiguratorException(
                            f"undeclared attribute {param} referenced in {record.name}.{att_name}"
                            f" of macro {self.name}"
                        )

    # -------------------------------------------------------------------------
    # Replay
    # -------------------------------------------------------------------------

    def play(
        self,
        conf: Configurator,
        att_values: dict[str, str],
        macro_records: dict[str, list[MacroRecord]],
    ) -> Any:
        """Replay the template on conf and return the object built for its root.

        Args:
            conf: Configurator whose current object receives the result.
            att_values: Attribute values supplied at the use-site.
            macro_records: Element name -> records supplied at the use-site.

        Raises:
            ConfiguratorException: If a required attribute has neither value
                nor default, or a required element has no content.
        """
        if self.macro_record is None:
            raise ConfiguratorException(f"macro {self.name} has no template")

        values = dict(att_values)
        for attribute in self.attributes.values():
            if values.get(attribute.name) is None:
                if attribute.default is None:
                    raise ConfiguratorException(
                        f"attribute {attribute.name} is required in {self.name}"
                    )
                values[attribute.name] = attribute.default

        for element in self.elements.values():
            if not element.optional and not macro_records.get(element.name):
                raise ConfiguratorException(
                    f"non optional element is not specified: {element.name} in macro {self.name}"
                )

        logger.debug("replaying macro %s with %s", self.name, values)
        return self._play(conf, self.macro_record, values, macro_records)

    def _play(
        self,
        conf: Configurator,
        record: MacroRecord,
        values: dict[str, str],
        macro_records: dict[str, list[MacroRecord]] | None,
    ) -> Any:
        if record.obj is not None:
            # recorded reference: attach the object itself
            conf.add_child(record.name, record.obj)
            conf.end_create_child()
            return record.obj

        conf.start_create_child(record.name)
        for att_name, att_value in record.attributes.items():
            conf.set_attribute(att_name, substitute_params(att_value, values))

        for child in record.children:
            if macro_records is not None and child.name in self.elements:
                for supplied in macro_records.get(child.name, ()):
                    for content in supplied.children:
                        self._play(conf, content, values, None)
                continue
            self._play(conf, child, values, macro_records)

        return conf.end_create_child()

    def __repr__(self) -> str:
        return (
            f"<MacroDef {self.name} attributes={list(self.attributes)} "
            f"elements={list(self.elements)}>"
        )


class Macro:
    """One use-site of a macro definition, replayed when its child ends."""

    def __init__(self, macrodef: MacroDef) -> None:
        self.macrodef = macrodef
        self.att_values: dict[str, str] = {}
        self.macro_records: dict[str, list[MacroRecord]] = {}

    def define_attribute(self, name: str, value: str) -> None:
        if self.macrodef.get_attribute(name) is None:
            raise ConfiguratorException(
                f"undeclared attribute {name} on macro {self.macrodef.name}"
            )
        self.att_values[name] = value

    def record_create_child(self, name: str) -> MacroRecord:
        """Record content supplied for the element slot ``name``."""
        if self.macrodef.get_element(name) is None:
            raise ConfiguratorException(
                f"undeclared element {name} on macro {self.macrodef.name}"
            )
        record = MacroRecord(name)
        self.macro_records.setdefault(name, []).append(record)
        return record

    def play(self, conf: Configurator) -> Any:
        return self.macrodef.play(conf, self.att_values, self.macro_records)

    def __repr__(self) -> str:
        return f"<Macro {self.macrodef.name} {self.att_values}>"

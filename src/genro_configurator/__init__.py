# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""genro-configurator: build object graphs from configuration events.

A Configurator receives begin/attribute/text/end events (typically from a
markup parser) and replays them on plain Python objects, resolving children
and attributes through method naming conventions:

    create_<name>()  add_<name>(child)  add_configured_<name>(child)  set_<name>(value)

Named templates (macros) with formal attributes and element slots can be
defined once and instantiated many times.

Example:
    >>> from genro_configurator import Configurator
    >>> conf = Configurator()
    >>> conf.set_root(project)
    >>> conf.start_create_child('target')
    >>> conf.set_attribute('name', 'build')
    >>> conf.end_create_child()
"""

from genro_configurator.coercion import TRUE_VALUES, Char, Range, Regex, coerce_value
from genro_configurator.configurator import Configurator
from genro_configurator.decorators import alias, typed
from genro_configurator.descriptor import ConfigMethod, ObjectDescriptor
from genro_configurator.exceptions import ConfiguratorException
from genro_configurator.file_resolver import FileResolver
from genro_configurator.macro import (
    Macro,
    MacroAttribute,
    MacroDef,
    MacroElement,
    MacroRecord,
    substitute_params,
)

__version__ = "0.1.0"

__all__ = [
    "Char",
    "ConfigMethod",
    "Configurator",
    "ConfiguratorException",
    "FileResolver",
    "Macro",
    "MacroAttribute",
    "MacroDef",
    "MacroElement",
    "MacroRecord",
    "ObjectDescriptor",
    "Range",
    "Regex",
    "TRUE_VALUES",
    "alias",
    "coerce_value",
    "substitute_params",
    "typed",
]

# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Decorators registering configuration methods under extra keys."""

from __future__ import annotations

from collections.abc import Callable


def _parse_names(names: str | tuple[str, ...]) -> list[str]:
    """Split 'a, b' or ('a', 'b') into a list of non-empty names."""
    raw = names.split(",") if isinstance(names, str) else names
    return [n.strip() for n in raw if n and n.strip()]


def alias(names: str | tuple[str, ...]) -> Callable:
    """Decorator to register additional names for a configuration method.

    The method keeps the family given by its prefix (create, add,
    add_configured, set); the aliases are registered in that family next to
    the name derived from the method name. Useful for names that are not
    valid identifiers, like hyphenated element or attribute names.

    Args:
        names: Extra names. Can be:
            - A comma-separated string: 'conflict-manager, cm'
            - A tuple of strings: ('conflict-manager', 'cm')

    Example:
        >>> class Settings:
        ...     @alias('conflict-manager')
        ...     def add_configured_conflict_manager(self, cm: ConflictManager) -> None:
        ...         self.conflict_manager = cm
    """
    name_list = _parse_names(names)

    def decorator(func: Callable) -> Callable:
        existing = getattr(func, "_config_aliases", ())
        func._config_aliases = (*existing, *name_list)  # type: ignore[attr-defined]
        return func

    return decorator


def typed(func: Callable) -> Callable:
    """Decorator to make an add or add_configured method reachable by child type.

    Methods named exactly ``add`` or ``add_configured`` are always keyed by
    their parameter type. A named method decorated with ``@typed`` is keyed
    by type as well, so a class can accept several child types by type.

    Example:
        >>> class Path:
        ...     @typed
        ...     def add_fileset(self, fileset: FileSet) -> None: ...
        ...
        ...     @typed
        ...     def add_dirset(self, dirset: DirSet) -> None: ...
    """
    func._config_typed = True  # type: ignore[attr-defined]
    return func

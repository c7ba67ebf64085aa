# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Exception raised by the configurator."""

from __future__ import annotations


class ConfiguratorException(Exception):
    """Exception raised for every configuration failure.

    Covers protocol errors (events issued in the wrong state), resolution
    errors (no create/add/set method for a name), coercion errors, macro
    contract errors and construction errors. The underlying cause, when
    there is one, is chained and available as ``__cause__``.

    Example:
        - Ending the root object
        - Setting an attribute no ``set_*`` method accepts
        - Replaying a macro without a required attribute
    """
    pass

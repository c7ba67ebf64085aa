# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Pytest configuration and fixtures."""

import pytest

from genro_configurator import Configurator, FileResolver


@pytest.fixture
def conf(tmp_path):
    """Fresh Configurator resolving relative paths against a temporary directory."""
    return Configurator(file_resolver=FileResolver(base_dir=tmp_path))

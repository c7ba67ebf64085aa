# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""FileResolver - path resolution for path-typed attributes."""

from __future__ import annotations

import os
from pathlib import Path


class FileResolver:
    """Resolve raw path attributes to absolute paths.

    Relative paths are resolved against ``base_dir`` when given, otherwise
    against the process working directory at the time of resolution.
    Subclass and override ``resolve_file`` to plug in a different policy;
    the ``label`` argument ('<object>.<attribute>') identifies the attribute
    being set, for diagnostics.

    Example:
        >>> resolver = FileResolver(base_dir='/etc/app')
        >>> resolver.resolve_file('conf/main.xml', 'settings.file')
        PosixPath('/etc/app/conf/main.xml')
    """

    def __init__(self, base_dir: str | os.PathLike | None = None) -> None:
        self.base_dir = Path(base_dir) if base_dir is not None else None

    def resolve_file(self, path: str, label: str) -> Path:
        """Return ``path`` as an absolute path."""
        resolved = Path(path).expanduser()
        if not resolved.is_absolute():
            base = self.base_dir if self.base_dir is not None else Path.cwd()
            resolved = base.absolute() / resolved
        return Path(os.path.normpath(resolved))

    def __repr__(self) -> str:
        return f"<{type(self).__name__} base_dir={self.base_dir}>"

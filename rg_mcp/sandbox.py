"""
Path sandbox for the ripgrep MCP server.

Security features:
- Null byte rejection
- Canonicalization (resolves .., symlinks)
- Component-wise containment check against a single root
"""

from __future__ import annotations

import logging
from pathlib import Path

from rg_mcp.errors import ConfigError, InvalidPathError, PathTraversalError

logger = logging.getLogger("rg-mcp.sandbox")


def is_within_root(path: Path, root: Path) -> bool:
    """
    Check whether ``path`` is ``root`` or a descendant of it.

    Both arguments must already be canonical. The comparison works on path
    components, so ``/srv/data-old`` is not inside ``/srv/data``.
    """
    return path == root or path.is_relative_to(root)


class PathSandbox:
    """Resolves caller-supplied relative paths against a fixed root."""

    def __init__(self, root: str | Path):
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def canonical_root(self) -> Path:
        try:
            return self._root.resolve(strict=True)
        except (OSError, RuntimeError) as e:
            raise ConfigError(f"Could not resolve root directory {self._root}: {e}") from e

    def resolve(self, path: str) -> Path:
        """
        Map ``path`` to an absolute location inside the root.

        An empty path yields the root itself, untouched.

        Raises:
            InvalidPathError: path has a null byte, does not exist, or cannot be resolved
            PathTraversalError: path resolves outside the root
            ConfigError: the root itself cannot be resolved
        """
        if not path:
            return self._root

        if "\x00" in path:
            raise InvalidPathError("path contains null bytes")

        candidate = self._root / path
        try:
            canonical = candidate.resolve(strict=True)
        except (OSError, RuntimeError):
            raise InvalidPathError(path) from None

        root = self.canonical_root()
        if not is_within_root(canonical, root):
            logger.warning("Rejected path outside root: %r -> %s", path, canonical)
            raise PathTraversalError(path)

        return canonical

# remote_executor/sandbox.py
import os
import re
from pathlib import Path
from typing import Any, Union

from .errors import AccessDenied

ACCESS_DENIED_MESSAGE = "Access denied: Path is outside the allowed workspace."

# one or more leading "../" (or "..\") segments
_PARENT_PREFIX = re.compile(r"^(\.\.(?:[/\\]|$))+")

_RESOLVER_KEY = object()


class SandboxedPath:
    """An absolute path proven to lie inside a sandbox root.

    Only Sandbox.resolve() can build one, so anything holding a SandboxedPath
    went through the containment check.
    """

    __slots__ = ("_path", "_root")

    def __init__(self, path: Path, root: Path, _key: object = None):
        if _key is not _RESOLVER_KEY:
            raise TypeError("SandboxedPath is only created by Sandbox.resolve()")
        self._path = path
        self._root = root

    @property
    def path(self) -> Path:
        return self._path

    @property
    def root(self) -> Path:
        return self._root

    @property
    def relative(self) -> str:
        rel = self._path.relative_to(self._root).as_posix()
        return "" if rel == "." else rel

    def __fspath__(self) -> str:
        return str(self._path)

    def __str__(self) -> str:
        return str(self._path)

    def __repr__(self) -> str:
        return f"SandboxedPath({str(self._path)!r})"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, SandboxedPath):
            return self._path == other._path
        if isinstance(other, (str, Path)):
            return self._path == Path(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._path)


def _strip_user_path(user_path: str) -> str:
    normalized = os.path.normpath(user_path)
    # Re-root absolute input and peel ".." runs until neither is left in front.
    while True:
        stripped = _PARENT_PREFIX.sub("", normalized.lstrip("/\\"))
        if stripped == normalized:
            return normalized
        normalized = stripped


def _is_within(candidate: Path, root: Path) -> bool:
    # Component-wise, so /srv/box-evil is not accepted for root /srv/box.
    return candidate == root or root in candidate.parents


class Sandbox:
    """Resolves caller-supplied paths against a fixed root directory."""

    def __init__(self, root: Union[str, Path]):
        self._root = Path(root).resolve()

    @property
    def root(self) -> Path:
        return self._root

    def resolve(self, user_path: Any = None) -> SandboxedPath:
        if not isinstance(user_path, str):
            return SandboxedPath(self._root, self._root, _RESOLVER_KEY)
        if "\x00" in user_path:
            raise AccessDenied(ACCESS_DENIED_MESSAGE)

        relative = _strip_user_path(user_path)
        # resolve() follows symlinks, so a link pointing out of the root fails below
        candidate = (self._root / relative).resolve()
        if not _is_within(candidate, self._root):
            raise AccessDenied(ACCESS_DENIED_MESSAGE)
        return SandboxedPath(candidate, self._root, _RESOLVER_KEY)


def resolve(root: Union[str, Path], user_path: Any = None) -> SandboxedPath:
    return Sandbox(root).resolve(user_path)

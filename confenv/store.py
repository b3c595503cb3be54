# confenv/store.py
"""
confenv.store
-------------

Environment stores: the key-value backends a Registry reads from and mirrors
into. Any object with ``get``/``set``/``delete``/``items`` works; two
implementations are provided.

- ``OsEnvironStore`` reads and writes the real process environment, so values
  set through a Registry are inherited by child processes. This is the default.
- ``MemoryStore`` keeps variables in a private dict, for tests and sandboxes.
"""

import os
from typing import Dict, Iterable, Optional, Protocol, Tuple


class EnvironmentStore(Protocol):
    """Structural contract for an environment variable backend."""

    def get(self, name: str) -> Optional[str]:
        """Return the value of `name`, or None if unset."""

    def set(self, name: str, value: str) -> None:
        """Create or overwrite `name`."""

    def delete(self, name: str) -> None:
        """Remove `name`; a missing name is not an error."""

    def items(self) -> Iterable[Tuple[str, str]]:
        """Return all (name, value) pairs."""


class OsEnvironStore:
    """Store backed by ``os.environ``."""

    def get(self, name: str) -> Optional[str]:
        return os.environ.get(name)

    def set(self, name: str, value: str) -> None:
        os.environ[name] = value

    def delete(self, name: str) -> None:
        os.environ.pop(name, None)

    def items(self) -> Iterable[Tuple[str, str]]:
        # Snapshot, so callers may mutate the environment while iterating.
        return list(os.environ.items())

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class MemoryStore:
    """
    Store backed by a private dict.

    Args:
        initial: Starting variables (copied, not referenced).
    """

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._vars: Dict[str, str] = dict(initial) if initial else {}

    def get(self, name: str) -> Optional[str]:
        return self._vars.get(name)

    def set(self, name: str, value: str) -> None:
        self._vars[name] = value

    def delete(self, name: str) -> None:
        self._vars.pop(name, None)

    def items(self) -> Iterable[Tuple[str, str]]:
        return list(self._vars.items())

    def as_dict(self) -> Dict[str, str]:
        """Return a copy of every stored variable."""
        return dict(self._vars)

    def __contains__(self, name: str) -> bool:
        return name in self._vars

    def __len__(self) -> int:
        return len(self._vars)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._vars!r})"


def find(store: EnvironmentStore, name: str) -> Optional[str]:
    """
    Return the value of `name` in `store`, matching names case-insensitively.

    The exact spelling is tried first; otherwise the first variable whose
    uppercased name equals ``name.upper()`` wins.
    """
    value = store.get(name)
    if value is not None:
        return value
    wanted = name.upper()
    for key, value in store.items():
        if key.upper() == wanted:
            return value
    return None

# confenv/scope.py
"""
confenv.scope
-------------

Scopes: lightweight handles bound to a sub-path of a Registry.

    db = conf.scope("db").scope("1")
    db.param("conn")          # same as conf.param("db.1.conn")
    db.param("user", "root")  # same as conf.param("db.1.user", "root")

A Scope holds no data of its own; reads and writes go straight to the
registry it was created from, so every scope and the registry see the same
values.
"""

from typing import TYPE_CHECKING, Any, Dict, List

from . import codec

if TYPE_CHECKING:
    from .registry import Registry

_MISSING = object()


class Scope:
    """A (registry, path prefix) pair resolving paths as ``prefix.path``."""

    def __init__(self, registry: "Registry", prefix: str):
        self._registry = registry
        self._prefix = prefix

    @property
    def registry(self) -> "Registry":
        return self._registry

    @property
    def prefix(self) -> str:
        return self._prefix

    def _resolve(self, path: str) -> str:
        return codec.join_path(self._prefix, path.lower())

    def param(self, path: str, value: Any = _MISSING) -> Any:
        """``Registry.param`` relative to this scope's prefix."""
        if value is _MISSING:
            return self._registry.param(self._resolve(path))
        return self._registry.param(self._resolve(path), value)

    def params(self, *paths: str) -> List[Any]:
        return self._registry.params(*(self._resolve(path) for path in paths))

    def get(self, path: str, default: Any = None) -> Any:
        return self._registry.get(self._resolve(path), default)

    def __contains__(self, path: Any) -> bool:
        return isinstance(path, str) and self._resolve(path) in self._registry

    def scope(self, path: str) -> "Scope":
        """Return a nested scope at ``prefix.path`` on the same registry."""
        return Scope(self._registry, self._resolve(path))

    def environment(self) -> Dict[str, str]:
        """Return ``{ENV_KEY: scalar}`` for every leaf under this scope."""
        value = self._registry.param(self._prefix) if self._prefix else self._registry.tree
        if value is None:
            return {}
        domain = self._registry.domain
        return {codec.encode(path, domain): scalar
                for path, scalar in codec.flatten(value, self._prefix).items()}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(domain={self._registry.domain!r}, prefix={self._prefix!r})"

# confenv/registry.py
"""
confenv.registry
----------------

The Registry: one domain's environment variables as a nested configuration
tree, readable and writable through dot-notation paths.

    conf = Registry("myapp")
    conf.param("db.1.conn", "dbi:mysql:dbname=foobar")   # sets MYAPP_DB_1_CONN
    conf.param("db.1.user")                              # via MYAPP_DB_1_USER or None
    conf.param("server", {"node": ["10.10.10.02", "10.10.10.03"]})
    conf.param("server.node.2")                          # '10.10.10.03'
"""

import copy
import logging
import os
import threading
from typing import Any, Dict, List, Mapping, Optional

from dotenv import dotenv_values, find_dotenv

from . import codec
from .exceptions import InvalidDomain
from .provenance import ProvenanceEntry, ProvenanceStore
from .scope import Scope
from .store import EnvironmentStore, OsEnvironStore, find

log = logging.getLogger(__name__)

_MISSING = object()


class Registry:
    """
    Configuration registry backed by environment variables under one domain.

    Every variable named ``DOMAIN_SEG_SEG...`` (matched case-insensitively)
    becomes the leaf ``seg.seg...`` of a nested tree. Integer segments are
    1-based sequence positions: ``MYAPP_SERVER_NODE_1`` and
    ``MYAPP_SERVER_NODE_2`` read back as ``param("server.node") ==
    [<node 1>, <node 2>]``.

    Loading precedence is last-write-wins: each ``load()`` (and each
    ``param(path, value)``, which is a single-key load) is merged over the
    current tree, mappings recursively and everything else by replacement.
    A list passed as a value replaces the whole sequence at its path.

    Args:
        domain: Environment variable prefix, e.g. ``"myapp"`` for ``MYAPP_*``.
        store: Backend to read from and mirror into. Defaults to
            ``OsEnvironStore`` (the real process environment).
        autoload: Load every matching variable from `store` on construction.
        override: If False, ``param(path, value)`` never replaces a variable
            that already exists in `store`.
        mirror: Write loaded leaves back into `store` (and delete leaves a
            load removed). If False the tree changes but the store does not.
        lifecycle: Snapshot the domain's variables on construction and restore
            them in ``close()`` / on leaving a ``with`` block.
        track_provenance: Record which load produced each leaf.
        dotenv_path: ``.env`` file to load right after autoload.

    Raises:
        InvalidDomain: If `domain` is missing or empty.
    """

    def __init__(self,
                 domain: str,
                 *,
                 store: Optional[EnvironmentStore] = None,
                 autoload: bool = True,
                 override: bool = True,
                 mirror: bool = True,
                 lifecycle: bool = False,
                 track_provenance: bool = False,
                 dotenv_path: Optional[str] = None):
        if not isinstance(domain, str) or not codec.normalize_domain(domain):
            raise InvalidDomain(domain)

        self._domain = domain.strip().rstrip("_")
        self._store = store if store is not None else OsEnvironStore()
        self.override = override
        self.mirror = mirror
        self.lifecycle = lifecycle

        self._lock = threading.RLock()
        self._tree: Dict[str, Any] = {}
        self._cache: Dict[str, Any] = {}
        self._provenance = ProvenanceStore() if track_provenance else None
        self._snapshot = self._domain_variables() if lifecycle else None
        self._closed = False

        if autoload:
            self.load(dict(self._store.items()), origin="environ")
        if dotenv_path:
            self.load_dotenv(dotenv_path)

        log.debug(f"Registry for domain '{self._domain}' ready with {len(self._tree)} top-level keys.")

    @property
    def domain(self) -> str:
        return self._domain

    @property
    def store(self) -> EnvironmentStore:
        return self._store

    @property
    def tree(self) -> Dict[str, Any]:
        """A copy of the whole configuration tree, sequences as lists."""
        with self._lock:
            # The root stays a dict even if its keys are all indexes.
            return {key: codec.materialize(child) for key, child in self._tree.items()}

    # --- Loading ---

    def load(self, source: Mapping[str, Any], origin: str = "load") -> "Registry":
        """
        Merge every entry of `source` that belongs to this domain.

        Keys are matched against ``DOMAIN_`` case-insensitively and processed
        in sorted order. Values may be scalars, lists or dicts. Composite
        values are flattened below their key, and their lists are renumbered
        1..n and replace whatever sequence was at that path before. The batch
        is merged over the tree (newer values win). The resulting leaves are
        then written back to the store as ``DOMAIN_...`` variables when
        mirroring.

        Args:
            source: Mapping of variable names to values (``os.environ``-like).
            origin: Label recorded for provenance.

        Returns:
            The registry itself, for chaining.
        """
        with self._lock:
            leaves: Dict[str, str] = {}
            replaced: List[str] = []
            for key in sorted(source, key=lambda name: (name.upper(), name)):
                path = codec.decode(key, self._domain)
                if path is None:
                    continue
                value = source[key]
                leaves.update(codec.flatten(value, path))
                replaced.extend(codec.sequence_paths(value, path))

            if not leaves and not replaced:
                log.debug(f"Nothing to load for domain '{self._domain}' from {origin}.")
                return self

            before = codec.flatten(self._tree)
            for path in replaced:
                self._drop(path)
            overlay = codec.unflatten(leaves, sequences=False)
            self._tree = codec.deep_merge(self._tree, overlay)
            self._cache.clear()
            after = codec.flatten(self._tree)

            log.debug(f"Loaded {len(leaves)} leaves into domain '{self._domain}' from {origin}.")
            self._write_back(leaves, before, after, origin)
            return self

    def _drop(self, path: str) -> None:
        """Remove the subtree at `path` from the tree, if any."""
        node = self._tree
        parts = path.split(".")
        for part in parts[:-1]:
            node = node.get(part)
            if not isinstance(node, dict):
                return
        node.pop(parts[-1], None)

    def _write_back(self, leaves: Dict[str, str], before: Dict[str, str],
                    after: Dict[str, str], origin: str) -> None:
        # Leaves that lost a collision within the batch are not in `after`.
        written = {path: value for path, value in leaves.items() if after.get(path) == value}
        removed = [path for path in before if path not in after]

        if self.mirror:
            for path in removed:
                self._store.delete(codec.encode(path, self._domain))
            for path, value in written.items():
                self._store.set(codec.encode(path, self._domain), value)
            if removed:
                log.debug(f"Removed {len(removed)} stale variables from the store: {removed}")

        if self._provenance is not None:
            for path, value in written.items():
                self._provenance.record(path, value, origin, codec.encode(path, self._domain))
            self._provenance.prune(after)

    def load_dotenv(self, path: Optional[str] = None, override: bool = False) -> "Registry":
        """
        Load this domain's variables from a ``.env`` file.

        The file is parsed by python-dotenv. Without `path`, the nearest
        ``.env`` from the working directory upwards is used. ``~`` and
        ``$VAR`` in `path` are expanded.

        Args:
            path: File to read.
            override: If False (like ``dotenv.load_dotenv``), variables that
                already exist in the store keep their value.

        Raises:
            FileNotFoundError: If no file is found.
        """
        resolved = os.path.expandvars(os.path.expanduser(path)) if path else find_dotenv(usecwd=True)
        if not resolved or not os.path.isfile(resolved):
            raise FileNotFoundError(f".env file not found: {path or '(searched upwards from cwd)'}")

        values = {
            key: value for key, value in dotenv_values(resolved).items()
            if value is not None and (override or find(self._store, key) is None)
        }
        log.debug(f"Read {len(values)} variables from {resolved}.")
        return self.load(values, origin=f"dotenv:{resolved}")

    # --- Access ---

    def param(self, path: str, value: Any = _MISSING) -> Any:
        """
        Get, or set and then get, the value at a dot-notation `path`.

        Reading returns a scalar string, a list (for 1..n indexed children)
        or a dict, and None when nothing exists at `path` (including paths
        that would descend into a scalar). Results are cached until the next
        load.

        Writing performs ``load({DOMAIN_PATH: value})``, so `value` may be a
        scalar, list or dict. When the registry was built with
        ``override=False`` and the variable already exists in the store, the
        write is skipped and the existing value is returned.
        """
        path = path.lower()
        with self._lock:
            if value is not _MISSING:
                self._set(path, value)

            if path in self._cache:
                return copy.deepcopy(self._cache[path])

            found = self._lookup(path)
            if found is _MISSING:
                log.debug(f"Path '{path}' not found in domain '{self._domain}'.")
                return None
            self._cache[path] = found
            return copy.deepcopy(found)

    def _set(self, path: str, value: Any) -> None:
        env_key = codec.encode(path, self._domain)
        if not self.override and find(self._store, env_key) is not None:
            log.debug(f"Override disabled, keeping existing {env_key}.")
            return
        self.load({env_key: value}, origin="param")
        self._cache[path] = copy.deepcopy(value)

    def _lookup(self, path: str) -> Any:
        node: Any = self._tree
        for segment in path.split("."):
            if not isinstance(node, dict) or segment not in node:
                return _MISSING
            node = node[segment]
        return codec.materialize(node)

    def params(self, *paths: str) -> List[Any]:
        """Return ``param(path)`` for each of `paths`, in order."""
        return [self.param(path) for path in paths]

    def get(self, path: str, default: Any = None) -> Any:
        """Like ``param(path)``, returning `default` instead of None."""
        found = self.param(path)
        return default if found is None else found

    def __contains__(self, path: Any) -> bool:
        return isinstance(path, str) and self.param(path) is not None

    def environment(self) -> Dict[str, str]:
        """Return every leaf of the tree as ``{ENV_KEY: scalar}``."""
        with self._lock:
            return {codec.encode(path, self._domain): value
                    for path, value in codec.flatten(self._tree).items()}

    def scope(self, path: str) -> Scope:
        """Return a view resolving every path relative to `path`."""
        return Scope(self, codec.join_path(path.lower()))

    # --- Provenance ---

    def provenance(self, path: str) -> Optional[ProvenanceEntry]:
        """Return where the leaf at `path` came from, or None if untracked."""
        if self._provenance is None:
            return None
        return self._provenance.get(path.lower())

    def provenance_history(self, path: str) -> List[ProvenanceEntry]:
        """Return every recorded write to the leaf at `path`, oldest first."""
        if self._provenance is None:
            return []
        return self._provenance.get_history(path.lower())

    def provenance_dump(self) -> Dict[str, str]:
        """Return ``{leaf_path: source}`` for every tracked leaf."""
        if self._provenance is None:
            return {}
        return {key: entry.source for key, entry in sorted(self._provenance.all_entries().items())}

    def provenance_summary(self) -> Dict[str, int]:
        """Return how many tracked leaves each origin category supplied."""
        if self._provenance is None:
            return {}
        return self._provenance.sources_summary()

    # --- Lifecycle ---

    def _domain_variables(self) -> Dict[str, str]:
        return {name: value for name, value in self._store.items()
                if codec.decode(name, self._domain) is not None}

    def close(self) -> None:
        """
        Restore the domain's variables to their state at construction.

        Only acts when the registry was created with ``lifecycle=True``:
        variables introduced since are deleted, changed ones are set back.
        Calling it more than once is a no-op.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            if not self.lifecycle:
                return

            current = self._domain_variables()
            introduced = [name for name in current if name not in self._snapshot]
            for name in introduced:
                self._store.delete(name)
            restored = 0
            for name, value in self._snapshot.items():
                if current.get(name) != value:
                    self._store.set(name, value)
                    restored += 1
            log.debug(f"Lifecycle restore for '{self._domain}': removed {len(introduced)}, restored {restored}.")

    def __enter__(self) -> "Registry":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(domain={self._domain!r}, store={self._store!r})"

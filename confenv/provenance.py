# confenv/provenance.py
"""
confenv.provenance
------------------

Optional origin tracking for configuration leaves.

When enabled via ``Registry(..., track_provenance=True)``, every leaf written
by ``Registry.load()`` is recorded together with the load's origin label.
This answers "where did ``MYAPP_DB_1_USER`` come from?" after several loads
and ``param`` writes have been layered on top of the environment.

Origin labels:
    ``"environ"``          autoload from the store at construction
    ``"load"``             an explicit ``Registry.load()`` call
    ``"param"``            a ``Registry.param(path, value)`` write
    ``"dotenv:<path>"``    ``Registry.load_dotenv()``

Thread-safety:
    - The store is only mutated from ``Registry.load()``, which holds the
      registry lock.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable


@dataclass(frozen=True)
class ProvenanceEntry:
    """Records the origin of a single leaf.

    Attributes:
        value: The scalar that was written.
        source: Origin label, e.g. ``"environ"`` or ``"dotenv:/srv/app/.env"``.
        key: Dotted path of the leaf (e.g., ``"db.1.user"``).
        env_key: The environment variable the leaf maps to (``"MYAPP_DB_1_USER"``).
    """

    value: Any
    source: str
    key: str
    env_key: str = ""

    def __repr__(self) -> str:
        return f"{self.env_key or self.key} = {self.value!r}  ← {self.source}"


@dataclass
class ProvenanceStore:
    """Current origin per leaf plus the chain of values it replaced.

    Attributes:
        _entries: Current (winning) entry for each leaf path.
        _history: Earlier entries for leaves that were written more than once.
    """

    _entries: dict[str, ProvenanceEntry] = field(default_factory=dict)
    _history: dict[str, list[ProvenanceEntry]] = field(default_factory=dict)

    def record(self, key: str, value: Any, source: str, env_key: str = "") -> None:
        """Record that leaf `key` now holds `value`, written by `source`.

        A previous entry for the same leaf is pushed onto its history.
        """
        entry = ProvenanceEntry(value=value, source=source, key=key, env_key=env_key)

        if key in self._entries:
            self._history.setdefault(key, []).append(self._entries[key])

        self._entries[key] = entry

    def prune(self, live_keys: Iterable[str]) -> list[str]:
        """Forget leaves that no longer exist in the tree.

        A sequence replaced by a shorter one, or a scalar replaced by a
        mapping, leaves entries behind for paths that cannot be resolved any
        more. Their history is dropped with them.

        Returns:
            The dropped leaf paths, sorted.
        """
        live = set(live_keys)
        dropped = sorted(key for key in self._entries if key not in live)
        for key in dropped:
            del self._entries[key]
            self._history.pop(key, None)
        return dropped

    def get(self, key: str) -> ProvenanceEntry | None:
        """Return the current entry for leaf `key`, or ``None`` if untracked."""
        return self._entries.get(key)

    def get_history(self, key: str) -> list[ProvenanceEntry]:
        """Return every entry for leaf `key`, oldest first, current last.

        Empty list if the leaf was never recorded.
        """
        history = list(self._history.get(key, []))
        current = self._entries.get(key)
        if current:
            history.append(current)
        return history

    def all_entries(self) -> dict[str, ProvenanceEntry]:
        """Shallow copy of the current entries, keyed by leaf path."""
        return dict(self._entries)

    def sources_summary(self) -> dict[str, int]:
        """Count current leaves per origin category.

        Groups by the part before the first ``:``, so every
        ``"dotenv:<path>"`` counts under ``"dotenv"``.
        """
        counts: dict[str, int] = {}
        for entry in self._entries.values():
            base_source = entry.source.split(":")[0]
            counts[base_source] = counts.get(base_source, 0) + 1
        return counts

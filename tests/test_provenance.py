# tests/test_provenance.py
"""
Tests for provenance tracking.

Covers:
    - ProvenanceEntry and ProvenanceStore standalone behavior
    - Provenance wired through Registry.load() / param() / load_dotenv()
    - Opt-in behavior (disabled by default)
"""

import pytest

from confenv.provenance import ProvenanceEntry, ProvenanceStore
from confenv.registry import Registry
from confenv.store import MemoryStore

# ---------------------------------------------------------------------------
# ProvenanceEntry / ProvenanceStore
# ---------------------------------------------------------------------------


class TestProvenanceEntry:

    def test_frozen(self):
        entry = ProvenanceEntry(value="42", source="environ", key="db.port")
        with pytest.raises(AttributeError):
            entry.value = "99"  # type: ignore[misc]

    def test_repr_prefers_env_key(self):
        entry = ProvenanceEntry(value="42", source="param", key="db.port", env_key="MYAPP_DB_PORT")
        r = repr(entry)
        assert "MYAPP_DB_PORT" in r
        assert "'42'" in r
        assert "param" in r


class TestProvenanceStore:

    def test_record_and_get(self):
        store = ProvenanceStore()
        store.record("a.b", "42", "environ")
        assert store.get("a.b").value == "42"
        assert store.get("missing") is None

    def test_history_oldest_first(self):
        store = ProvenanceStore()
        store.record("a", "1", "environ")
        store.record("a", "2", "load")
        store.record("a", "3", "param")
        assert [e.value for e in store.get_history("a")] == ["1", "2", "3"]
        assert store.get_history("never") == []

    def test_prune(self):
        store = ProvenanceStore()
        store.record("n.1", "a", "param")
        store.record("n.2", "b", "param")
        store.record("n.2", "c", "param")
        assert store.prune(["n.1"]) == ["n.2"]
        assert store.get("n.2") is None
        assert store.get_history("n.2") == []
        assert store.get("n.1").value == "a"

    def test_sources_summary(self):
        store = ProvenanceStore()
        store.record("a", "1", "environ")
        store.record("b", "2", "dotenv:/srv/.env")
        store.record("c", "3", "dotenv:/home/.env")
        assert store.sources_summary() == {"environ": 1, "dotenv": 2}


# ---------------------------------------------------------------------------
# Registry integration
# ---------------------------------------------------------------------------


class TestRegistryProvenance:

    def test_disabled_by_default(self):
        conf = Registry("myapp", store=MemoryStore({"MYAPP_A": "1"}))
        assert conf.provenance("a") is None
        assert conf.provenance_history("a") == []
        assert conf.provenance_dump() == {}

    def test_environ_then_param(self):
        conf = Registry("myapp", store=MemoryStore({"MYAPP_DB_HOST": "h"}), track_provenance=True)
        entry = conf.provenance("db.host")
        assert entry.source == "environ"
        assert entry.env_key == "MYAPP_DB_HOST"

        conf.param("db.host", "x")
        assert conf.provenance("DB.Host").source == "param"
        assert [e.value for e in conf.provenance_history("db.host")] == ["h", "x"]

    def test_explicit_load_origin(self):
        conf = Registry("myapp", store=MemoryStore(), track_provenance=True)
        conf.load({"MYAPP_A": "1"})
        conf.load({"MYAPP_B": "2"}, origin="secrets")
        assert conf.provenance_dump() == {"a": "load", "b": "secrets"}

    def test_summary(self):
        conf = Registry("myapp", store=MemoryStore({"MYAPP_A": "1"}), track_provenance=True)
        conf.load({"MYAPP_B": "2", "MYAPP_C": "3"})
        conf.param("d", "4")
        assert conf.provenance_summary() == {"environ": 1, "load": 2, "param": 1}
        assert Registry("myapp", store=MemoryStore()).provenance_summary() == {}

    def test_dotenv_origin(self, tmp_path):
        path = tmp_path / ".env"
        path.write_text("MYAPP_PORT=8080\n")
        conf = Registry("myapp", store=MemoryStore(), track_provenance=True)
        conf.load_dotenv(str(path))
        assert conf.provenance("port").source.startswith("dotenv:")

    def test_replaced_sequence_pruned(self):
        conf = Registry("myapp", store=MemoryStore(), track_provenance=True)
        conf.param("n", ["a", "b"])
        conf.param("n", ["c"])
        assert conf.provenance("n.2") is None
        assert conf.provenance_dump() == {"n.1": "param"}

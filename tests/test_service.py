"""Tests for lineage/service.py — eligibility, root filtering and graph assembly."""
import pytest
from lineage import records, service


def _node_ids(payload):
    return {n["id"] for n in payload["nodes"]}


def _edge_pairs(payload):
    return {(e["source"], e["target"]) for e in payload["edges"]}


@pytest.fixture
def abc(record):
    """A (no parents); B father=A; C father=A, mother=X where X does not exist."""
    return [record("A"), record("B", father="A"), record("C", father="A", mother="X")]


class TestIsEligible:
    def test_approved_canonical(self, record):
        assert service.is_eligible(record("A")) is True

    @pytest.mark.parametrize("overrides", [
        {"status": "PENDING_REVIEW"},
        {"status": "REJECTED"},
        {"is_canonical": False},
        {"is_canonical": None},
    ])
    def test_not_eligible(self, record, overrides):
        assert service.is_eligible(record("A", **overrides)) is False


class TestAssembleGraph:
    def test_full_graph(self, abc):
        payload = service.assemble_graph(abc)
        assert _node_ids(payload) == {"A", "B", "C"}
        assert _edge_pairs(payload) == {("A", "B"), ("A", "C")}
        assert payload["root"] == {"requested": None, "id": None, "matched": False}

    def test_rooted_graph_includes_siblings(self, abc):
        # B and C share father A, so C is a collateral of B
        payload = service.assemble_graph(abc, root="b")
        assert _node_ids(payload) == {"A", "B", "C"}
        assert payload["root"] == {"requested": "b", "id": "B", "matched": True}

    def test_rooted_graph_excludes_other_families(self, abc, record):
        people = abc + [record("P"), record("Q", mother="P")]
        payload = service.assemble_graph(people, root="b")
        assert _node_ids(payload) == {"A", "B", "C"}
        assert _edge_pairs(payload) == {("A", "B"), ("A", "C")}

        payload = service.assemble_graph(people, root="q")
        assert _node_ids(payload) == {"P", "Q"}
        assert _edge_pairs(payload) == {("P", "Q")}

    def test_isolated_root(self, abc, record):
        payload = service.assemble_graph(abc + [record("Z")], root="z")
        assert [n["id"] for n in payload["nodes"]] == ["Z"]
        assert payload["edges"] == []

    def test_unknown_root_falls_back_to_full_graph(self, abc):
        payload = service.assemble_graph(abc, root="nobody")
        assert _node_ids(payload) == {"A", "B", "C"}
        assert payload["root"] == {"requested": "nobody", "id": None, "matched": False}

    @pytest.mark.parametrize("root", ["", "   ", 123, ["b"]])
    def test_malformed_root_means_no_root(self, abc, root):
        payload = service.assemble_graph(abc, root=root)
        assert _node_ids(payload) == {"A", "B", "C"}
        assert payload["root"]["requested"] is None

    def test_empty(self):
        payload = service.assemble_graph([])
        assert payload["nodes"] == []
        assert payload["edges"] == []

    def test_ineligible_parent_never_appears(self, record):
        people = [
            record("P", status="PENDING_REVIEW"),
            record("R", status="REJECTED"),
            record("V", is_canonical=False),
            record("C", father="P", mother="R"),
            record("D", father="V"),
        ]
        payload = service.assemble_graph(people)
        assert _node_ids(payload) == {"C", "D"}
        assert payload["edges"] == []

    def test_rooted_graph_keeps_siblings_of_pending_parent(self, record):
        people = [
            record("X", status="PENDING_REVIEW"),
            record("B", mother="X"),
            record("C", mother="X"),
            record("Z"),
        ]
        payload = service.assemble_graph(people, root="b")
        assert _node_ids(payload) == {"B", "C"}
        assert payload["edges"] == []

    def test_ineligible_root_falls_back(self, record):
        people = [record("A"), record("P", status="PENDING_REVIEW")]
        payload = service.assemble_graph(people, root="p")
        assert _node_ids(payload) == {"A"}
        assert payload["root"]["matched"] is False

    def test_edges_reference_nodes(self, record):
        people = [
            record("A", father="B"),
            record("B", father="A", mother="hidden"),
            record("hidden", status="REJECTED"),
            record("C", father="C"),
            record("D", father="A", mother="A"),
        ]
        for root in (None, "a", "c", "hidden"):
            payload = service.assemble_graph(people, root=root)
            node_ids = _node_ids(payload)
            assert all(e["source"] in node_ids and e["target"] in node_ids
                       for e in payload["edges"])

    def test_idempotent(self, abc):
        assert service.assemble_graph(abc, root="c") == service.assemble_graph(abc, root="c")


class TestGetLineage:
    def test_from_store(self, conn, abc_family):
        payload = service.get_lineage(conn)
        assert {n["slug"] for n in payload["nodes"]} == {"a", "b", "c"}
        a = abc_family["a"]["id"]
        assert _edge_pairs(payload) == {(a, abc_family["b"]["id"]), (a, abc_family["c"]["id"])}

    def test_store_filters_moderation(self, conn, abc_family, make_person):
        make_person("pending-child", status="PENDING_REVIEW", father_id=abc_family["a"]["id"])
        make_person("variant", is_canonical=False, father_id=abc_family["a"]["id"])
        payload = service.get_lineage(conn)
        assert {n["slug"] for n in payload["nodes"]} == {"a", "b", "c"}
        assert len(payload["edges"]) == 2

    def test_rooted(self, conn, abc_family, make_person):
        make_person("loner")
        payload = service.get_lineage(conn, root="loner")
        assert [n["slug"] for n in payload["nodes"]] == ["loner"]

    def test_store_failure_propagates(self, failing_conn):
        with pytest.raises(records.RecordStoreError):
            service.get_lineage(failing_conn)

"""Lineage query: eligibility filter, optional root component, graph build."""
import logging
from typing import Any, Iterable, Mapping

import kuzu

from . import records
from .graph import build_graph
from .reachability import filter_to_root

logger = logging.getLogger(__name__)


def is_eligible(person: Mapping) -> bool:
    """Only approved canonical records may appear in the public graph."""
    return person.get("status") == records.ELIGIBLE_STATUS and bool(person.get("is_canonical"))


def assemble_graph(people: Iterable[Mapping], root: Any = None) -> dict:
    """
    Build the lineage payload from a snapshot of person records.

    Non-eligible records are dropped before anything else, so edges pointing at
    them are omitted by the builder. When ``root`` names an eligible record the
    graph is restricted to its connected component; otherwise the full eligible
    graph is returned and ``root.matched`` is False.
    """
    eligible = [p for p in people if is_eligible(p)]

    requested = root.strip() if isinstance(root, str) and root.strip() else None
    root_id = None
    if requested is not None:
        component = filter_to_root(eligible, requested)
        eligible = component.people
        root_id = component.root_id
        if not component.matched:
            logger.info("Lineage root %r not found, serving full graph", requested)

    nodes, edges = build_graph(eligible)
    return {
        "nodes": nodes,
        "edges": edges,
        "root": {"requested": requested, "id": root_id, "matched": root_id is not None},
    }


def get_lineage(conn: kuzu.Connection, root: Any = None) -> dict:
    """Fetch eligible people from the record store and assemble the graph.
    RecordStoreError propagates to the caller unchanged."""
    people = records.list_eligible_people(conn)
    return assemble_graph(people, root=root)

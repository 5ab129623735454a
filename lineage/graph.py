"""Lineage graph construction: person records -> nodes and parent->child edges."""
import logging
from typing import Iterable, Iterator, Mapping

logger = logging.getLogger(__name__)

EDGE_KIND = "smoothstep"
PARENT_ROLES = ("father", "mother")


def edge_id(parent_id: str, child_id: str) -> str:
    return f"e-{parent_id}-{child_id}"


def parent_links(person: Mapping) -> Iterator[tuple[str, str]]:
    """Yield (parent_id, role) for each non-null parent reference, father first."""
    for role in PARENT_ROLES:
        parent_id = person.get(f"{role}_id")
        if parent_id:
            yield parent_id, role


def build_node(person: Mapping) -> dict:
    return {
        "id": person["id"],
        "label": person["name"],
        "slug": person["slug"],
        "gender": person.get("gender"),
        "type": person.get("type") or "PERSON",
    }


def build_graph(people: Iterable[Mapping], edge_kind: str = EDGE_KIND) -> tuple[list[dict], list[dict]]:
    """
    Build (nodes, edges) from person records.
    - one node per record, in input order
    - one edge per parent reference that resolves to a record in the same input;
      references to absent records and to the record itself are dropped
    - each (parent, child) pair is emitted once
    """
    people = list(people)
    present = {p["id"] for p in people}

    nodes = [build_node(p) for p in people]
    edges: list[dict] = []
    seen: set[tuple[str, str]] = set()
    for child in people:
        child_id = child["id"]
        for parent_id, _role in parent_links(child):
            if parent_id not in present or parent_id == child_id:
                continue
            if (parent_id, child_id) in seen:
                continue
            seen.add((parent_id, child_id))
            edges.append({
                "id": edge_id(parent_id, child_id),
                "source": parent_id,
                "target": child_id,
                "kind": edge_kind,
            })

    logger.debug("Built lineage graph: %d nodes, %d edges", len(nodes), len(edges))
    return nodes, edges

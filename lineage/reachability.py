"""Connected-component extraction around a root person."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set

from .graph import parent_links

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ComponentFilter:
    people: List[Mapping]
    root_id: Optional[str] = None

    @property
    def matched(self) -> bool:
        """False when the root selector named no record and the input came back unfiltered."""
        return self.root_id is not None


def build_adjacency(people: Sequence[Mapping]) -> Dict[str, Set[str]]:
    """
    Undirected parent<->child adjacency over the given records.
    Every non-null reference links both ways, including references to ids
    outside the input: siblings sharing a hidden or missing parent stay in
    one component. Such ids are traversal-only keys; callers keep input
    records only. Self-links are left out.
    """
    adj: Dict[str, Set[str]] = {p["id"]: set() for p in people}
    for p in people:
        for parent_id, _role in parent_links(p):
            if parent_id == p["id"]:
                continue
            adj.setdefault(parent_id, set()).add(p["id"])
            adj[p["id"]].add(parent_id)
    return adj


def find_root(people: Sequence[Mapping], selector: Any) -> Optional[Mapping]:
    """Find the record named by a slug, falling back to an id match.
    Anything but a non-empty string selects nothing."""
    if not isinstance(selector, str) or not selector.strip():
        return None
    selector = selector.strip()
    for p in people:
        if p.get("slug") == selector:
            return p
    for p in people:
        if p.get("id") == selector:
            return p
    return None


def connected_component(
    people: Sequence[Mapping],
    root_id: str,
    adjacency: Optional[Dict[str, Set[str]]] = None,
) -> Set[str]:
    """Ids reachable from root_id through parent/child links in either direction.
    May include referenced ids that have no record in the input."""
    adj = adjacency if adjacency is not None else build_adjacency(people)
    seen: Set[str] = set()
    stack = [root_id]
    while stack:
        cur = stack.pop()
        if cur in seen:
            continue
        seen.add(cur)
        stack.extend(n for n in adj.get(cur, ()) if n not in seen)
    return seen


def filter_to_root(people: Sequence[Mapping], selector: Any) -> ComponentFilter:
    """
    Restrict people to the component containing the selected root, keeping input order.
    An unknown or malformed selector returns the input unchanged with root_id None.
    """
    people = list(people)
    root = find_root(people, selector)
    if root is None:
        logger.debug("Root %r not found among %d people; returning all", selector, len(people))
        return ComponentFilter(people=people)

    component = connected_component(people, root["id"])
    return ComponentFilter(
        people=[p for p in people if p["id"] in component],
        root_id=root["id"],
    )

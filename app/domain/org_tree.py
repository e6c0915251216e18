"""Pure tree helpers for the org chart.

Everything here works on in-memory data: a parent lookup callable or a list
of chart nodes. The service layer feeds the same walk with database point
lookups, the read side feeds it a dict built from the current listing.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from typing import Any

from pydantic import ConfigDict

from app.domain.models import CamelModel, OrgNodeType

MAX_ANCESTOR_HOPS = 256
VIRTUAL_ROOT_ID = "__virtual_root__"
VIRTUAL_ROOT_NAME = "Org Root"

ParentLookup = Callable[[str], str | None]


class ChartNode(CamelModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    parent_id: str | None = None
    name: str
    role_title: str = ""
    department: str | None = None
    description: str | None = None
    photo_url: str | None = None
    node_type: OrgNodeType
    created_by_id: str | None = None
    linked_user_id: str | None = None
    user_id: str | None = None
    is_virtual: bool = False


class ParentOption(CamelModel):
    id: str
    name: str
    node_type: OrgNodeType
    disabled: bool = False


def reaches_node(candidate_parent_id: str | None, node_id: str, lookup_parent: ParentLookup) -> bool:
    """Walk up from ``candidate_parent_id`` and report whether ``node_id`` is hit.

    Walking past ``MAX_ANCESTOR_HOPS`` counts as a hit. An id the lookup does
    not know ends the walk like a root does.
    """
    current = candidate_parent_id
    steps = 0
    while current:
        if steps > MAX_ANCESTOR_HOPS:
            return True
        steps += 1
        if current == node_id:
            return True
        current = lookup_parent(current)
    return False


def is_descendant(candidate_parent_id: str | None, node_id: str, lookup_parent: ParentLookup) -> bool:
    if not candidate_parent_id:
        return False
    return reaches_node(candidate_parent_id, node_id, lookup_parent)


def ancestor_ids(node_id: str, lookup_parent: ParentLookup) -> list[str]:
    ancestors: list[str] = []
    seen = {node_id}
    current = lookup_parent(node_id)
    while current and len(ancestors) < MAX_ANCESTOR_HOPS:
        if current in seen:
            break
        ancestors.append(current)
        seen.add(current)
        current = lookup_parent(current)
    return ancestors


def parent_map(nodes: Iterable[Any]) -> dict[str, str | None]:
    return {node.id: node.parent_id for node in nodes}


def to_chart_nodes(nodes: Iterable[Any]) -> list[ChartNode]:
    return [ChartNode.model_validate(node, from_attributes=True) for node in nodes]


def normalize_forest(nodes: Sequence[ChartNode]) -> list[ChartNode]:
    roots = [node for node in nodes if not node.parent_id]
    if len(roots) <= 1:
        return list(nodes)

    virtual_root = ChartNode(
        id=VIRTUAL_ROOT_ID,
        parent_id=None,
        name=VIRTUAL_ROOT_NAME,
        role_title="",
        department="",
        description="",
        photo_url="",
        node_type=OrgNodeType.DIVISION,
        is_virtual=True,
    )
    root_ids = {root.id for root in roots}
    return [
        virtual_root,
        *(
            node.model_copy(update={"parent_id": VIRTUAL_ROOT_ID}) if node.id in root_ids else node
            for node in nodes
        ),
    ]


def parent_options(nodes: Sequence[ChartNode], node_id: str | None = None) -> list[ParentOption]:
    lookup = parent_map(nodes).get
    options: list[ParentOption] = []
    for node in nodes:
        if node.is_virtual or node.id == VIRTUAL_ROOT_ID:
            continue
        disabled = node_id is not None and is_descendant(node.id, node_id, lookup)
        options.append(
            ParentOption(id=node.id, name=node.name, node_type=node.node_type, disabled=disabled)
        )
    return options

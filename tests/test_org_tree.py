from __future__ import annotations

from app.domain.models import OrgNodeType
from app.domain.org_tree import (
    MAX_ANCESTOR_HOPS,
    VIRTUAL_ROOT_ID,
    ChartNode,
    ancestor_ids,
    is_descendant,
    normalize_forest,
    parent_map,
    parent_options,
    reaches_node,
)


def _node(node_id: str, parent_id: str | None = None, node_type: OrgNodeType = OrgNodeType.PERSON) -> ChartNode:
    return ChartNode(id=node_id, parent_id=parent_id, name=node_id.upper(), node_type=node_type)


def _chain() -> list[ChartNode]:
    # a <- b <- c
    return [_node("a", None, OrgNodeType.DIVISION), _node("b", "a"), _node("c", "b")]


def test_reaches_node_walks_up_the_chain() -> None:
    lookup = parent_map(_chain()).get

    assert reaches_node("c", "a", lookup) is True
    assert reaches_node("a", "c", lookup) is False
    assert reaches_node("b", "b", lookup) is True
    assert reaches_node(None, "a", lookup) is False


def test_unknown_parent_ends_walk() -> None:
    lookup = {"x": "ghost"}.get
    assert reaches_node("x", "a", lookup) is False


def test_overlong_chain_counts_as_cycle() -> None:
    parents = {f"n{index}": f"n{index + 1}" for index in range(MAX_ANCESTOR_HOPS + 10)}
    assert reaches_node("n0", "unrelated", parents.get) is True

    short = {f"n{index}": f"n{index + 1}" for index in range(10)}
    assert reaches_node("n0", "unrelated", short.get) is False


def test_corrupted_loop_is_bounded() -> None:
    loop = {"p": "q", "q": "p"}
    assert reaches_node("p", "z", loop.get) is True
    assert ancestor_ids("p", loop.get) == ["q"]


def test_is_descendant_mirrors_guard() -> None:
    lookup = parent_map(_chain()).get
    assert is_descendant("c", "a", lookup) is True
    assert is_descendant("a", "a", lookup) is True
    assert is_descendant("a", "b", lookup) is False
    assert is_descendant(None, "a", lookup) is False
    assert is_descendant("", "a", lookup) is False


def test_ancestor_ids_order() -> None:
    lookup = parent_map(_chain()).get
    assert ancestor_ids("c", lookup) == ["b", "a"]
    assert ancestor_ids("a", lookup) == []


def test_normalize_forest_single_root_unchanged() -> None:
    nodes = _chain()
    assert normalize_forest(nodes) == nodes
    assert normalize_forest([]) == []


def test_normalize_forest_adds_one_virtual_root() -> None:
    nodes = [*_chain(), _node("d"), _node("e", "d")]

    chart = normalize_forest(nodes)

    roots = [node for node in chart if node.parent_id is None]
    assert len(roots) == 1
    assert roots[0].id == VIRTUAL_ROOT_ID
    assert roots[0].is_virtual is True
    assert {node.id for node in chart if node.parent_id == VIRTUAL_ROOT_ID} == {"a", "d"}
    assert len(chart) == len(nodes) + 1
    # input left untouched
    assert nodes[0].parent_id is None


def test_virtual_root_serializes_camel_case() -> None:
    chart = normalize_forest([_node("a"), _node("b")])
    dumped = chart[1].model_dump(by_alias=True)
    assert dumped["parentId"] == VIRTUAL_ROOT_ID
    assert dumped["isVirtual"] is False


def test_parent_options_disable_subtree() -> None:
    nodes = normalize_forest([*_chain(), _node("d")])

    options = {option.id: option.disabled for option in parent_options(nodes, "b")}

    assert VIRTUAL_ROOT_ID not in options
    assert options == {"a": False, "b": True, "c": True, "d": False}


def test_parent_options_without_node_enable_everything() -> None:
    options = parent_options(_chain())
    assert [option.id for option in options] == ["a", "b", "c"]
    assert not any(option.disabled for option in options)

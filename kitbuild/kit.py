# /kitbuild/kit.py

import random
from typing import List, Literal, Optional, Sequence

from kitbuild.models import Edge, GoalMap, Kit, KitNode, Node
from kitbuild.validator import (
    check_connector_degrees,
    check_edge_references,
    check_minimums,
    check_unique_ids,
    degree_counts,
    partition_nodes,
)


class KitStructureError(Exception):
    """Raised when a goal map is not structurally sound enough to hand out as a kit."""

    def __init__(self, goal_map_id: str, errors: List[str]):
        self.goal_map_id = goal_map_id
        self.errors = errors
        super().__init__(f"Goal map {goal_map_id} cannot produce a kit: {'; '.join(errors)}")


def check_kit_structure(nodes: Sequence[Node], edges: Sequence[Edge]) -> List[str]:
    """
    The structural subset of goal-map validation that kit generation needs.
    Uses the validator's own rules so the two checks stay in sync.
    """
    concept_nodes, connector_nodes = partition_nodes(nodes)
    in_count, out_count = degree_counts(edges)

    errors = []
    errors.extend(check_minimums(concept_nodes, connector_nodes, edges))
    errors.extend(check_unique_ids(nodes))
    errors.extend(check_edge_references(nodes, edges))
    errors.extend(check_connector_degrees(connector_nodes, in_count, out_count))
    return errors


def _kit_node(node: Node, keep_position: bool) -> KitNode:
    return KitNode(
        id=node.id,
        kind=node.kind,
        label=node.label,
        image_url=node.data.url if node.kind == "image" else None,
        position=node.position if keep_position else None,
    )


def derive_kit(goal_map: GoalMap, layout: Literal["preset", "random"] = "preset", seed: Optional[int] = None) -> Kit:
    """
    Builds the kit handed to learners: every concept and connector of the goal
    map with its label, and no edges. The "random" layout shuffles the node
    order and drops positions so the client places them itself.
    """
    errors = check_kit_structure(goal_map.nodes, goal_map.edges)
    if errors:
        raise KitStructureError(goal_map.id, errors)

    keep_position = layout == "preset"
    nodes = [_kit_node(n, keep_position) for n in goal_map.nodes if n.is_concept or n.is_connector]
    if layout == "random":
        random.Random(seed).shuffle(nodes)

    return Kit(goal_map_id=goal_map.id, layout=layout, nodes=nodes, edges=[])

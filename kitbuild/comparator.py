# /kitbuild/comparator.py

import math
from typing import Dict, List, Sequence

from kitbuild.models import (
    DiagnosisResult,
    Edge,
    EdgeClassification,
    EdgeLink,
    MapComparison,
    Node,
    NodeLabel,
    Proposition,
)
from kitbuild.validator import compose_propositions

# Edges are matched on their endpoints only. Parallel edges sharing a
# source/target pair collapse into one logical edge.


def _edges_by_key(edges: Sequence[Edge]) -> Dict[str, Edge]:
    keyed = {}
    for edge in edges:
        keyed.setdefault(edge.key, edge)
    return keyed


def _round_half_up(value: float, places: int = 2) -> float:
    factor = 10 ** places
    return math.floor(value * factor + 0.5) / factor


def compare_graphs(learner_edges: Sequence[Edge], goal_edges: Sequence[Edge]) -> MapComparison:
    """
    Partitions a learner's edges against the goal map.

    `match` and `excessive` split the learner edges, `miss` holds the goal edges
    the learner did not reproduce. Output keeps the input order.
    """
    goal_keys = _edges_by_key(goal_edges)
    learner_keys = _edges_by_key(learner_edges)

    return MapComparison(
        match=[edge for edge in learner_edges if edge.key in goal_keys],
        miss=[edge for edge in goal_edges if edge.key not in learner_keys],
        excessive=[edge for edge in learner_edges if edge.key not in goal_keys],
    )


def diagnose(learner_edges: Sequence[Edge], goal_edges: Sequence[Edge]) -> DiagnosisResult:
    """Scores a learner map: the share of goal edges the learner reproduced."""
    goal_keys = _edges_by_key(goal_edges)
    learner_keys = _edges_by_key(learner_edges)

    correct = [edge for edge in goal_edges if edge.key in learner_keys]
    missing = [edge for edge in goal_edges if edge.key not in learner_keys]
    excessive = [edge for edge in learner_edges if edge.key not in goal_keys]

    score = _round_half_up(len(correct) / len(goal_edges)) if goal_edges else 1.0

    def links(edges):
        return [EdgeLink(source=e.source, target=e.target, edge_id=e.id) for e in edges]

    return DiagnosisResult(
        correct=links(correct),
        missing=links(missing),
        excessive=links(excessive),
        score=score,
        total_goal_edges=len(goal_edges),
    )


def classify_edges(learner_edges: Sequence[Edge], goal_edges: Sequence[Edge]) -> List[EdgeClassification]:
    """
    Display overlay for a single learner map.

    Learner edges are tagged correct or excessive; one dashed placeholder edge is
    appended per missing goal edge. The neutral tag only covers learner edges
    that fall in neither scoring bucket.
    """
    diagnosis = diagnose(learner_edges, goal_edges)
    correct_keys = {f"{link.source}-{link.target}" for link in diagnosis.correct}
    excessive_keys = {f"{link.source}-{link.target}" for link in diagnosis.excessive}

    classifications = []
    for edge in learner_edges:
        if edge.key in excessive_keys:
            kind = "excessive"
        elif edge.key in correct_keys:
            kind = "correct"
        else:
            kind = "neutral"
        classifications.append(EdgeClassification(edge=edge, type=kind))

    for link in diagnosis.missing:
        placeholder = Edge(
            id=f"missing-{link.source}-{link.target}",
            source=link.source,
            target=link.target,
            animated=True,
            style={"strokeDasharray": "5,5", "opacity": 0.5},
        )
        classifications.append(EdgeClassification(edge=placeholder, type="missing"))

    return classifications


def label_propositions(nodes: Sequence[Node], edges: Sequence[Edge]) -> List[Proposition]:
    """Propositions of a map with human-readable labels, for analytics views."""
    return [
        Proposition(
            source=NodeLabel(id=source.id, label=source.label),
            link=NodeLabel(id=link.id, label=link.label),
            target=NodeLabel(id=target.id, label=target.label),
        )
        for source, link, target in compose_propositions(nodes, edges)
    ]

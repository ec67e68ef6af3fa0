# /kitbuild/aggregator.py

import csv
import io
from typing import Dict, Literal, Mapping, Sequence, Union

from kitbuild.comparator import compare_graphs, diagnose
from kitbuild.config import settings
from kitbuild.models import (
    AssignmentSummary,
    Edge,
    ExportResult,
    GroupComparison,
    GroupedProposition,
    LearnerComparisonRecord,
    LearnerMap,
    Node,
    NodeLabel,
)

NodeIndex = Mapping[str, Node]


def index_nodes(nodes: Sequence[Node]) -> Dict[str, Node]:
    index = {}
    for node in nodes:
        index.setdefault(node.id, node)
    return index


def resolve_node_label(node_id: str, nodes: Union[Sequence[Node], NodeIndex]) -> NodeLabel:
    """Looks up a node's display label, falling back to the raw id. Never raises."""
    index = nodes if isinstance(nodes, Mapping) else index_nodes(nodes)
    node = index.get(node_id)
    label = node.label if node is not None else ""
    return NodeLabel(id=node_id, label=label or node_id)


def _link_endpoint(edge: Edge, index: NodeIndex) -> str:
    # Edges run concept -> connector or connector -> concept; the connector names the relation.
    target = index.get(edge.target)
    if target is not None and target.is_connector:
        return edge.target
    return edge.source


def _grouped(edge: Edge, index: NodeIndex, kind: str) -> GroupedProposition:
    return GroupedProposition(
        source=resolve_node_label(edge.source, index),
        link=resolve_node_label(_link_endpoint(edge, index), index),
        target=resolve_node_label(edge.target, index),
        count=0,
        type=kind,
    )


def _tally(bucket: Dict[str, GroupedProposition], edge: Edge, learner: LearnerComparisonRecord, index: NodeIndex, kind: str):
    entry = bucket.get(edge.key)
    if entry is None:
        entry = bucket[edge.key] = _grouped(edge, index, kind)
    entry.count += 1
    entry.learner_ids.append(learner.user_id)
    entry.learner_names.append(learner.user_name)


def aggregate_group(
    learner_results: Sequence[LearnerComparisonRecord],
    goal_edges: Sequence[Edge],
    goal_nodes: Sequence[Node],
) -> GroupComparison:
    """
    Folds per-learner comparisons into one cohort report.

    match/miss/excessive entries are keyed by edge endpoints and count every
    learner attempt that produced them. Each goal edge then lands in exactly one
    of `leave` (matched by nobody) or `abandon` (matched by at least one
    learner); those entries carry no counts.

    Args:
        learner_results: One record per learner attempt, including its comparison.
        goal_edges: Edges of the goal map.
        goal_nodes: Nodes of the goal map, used to label leave/abandon entries.

    Returns:
        A GroupComparison whose lists keep first-seen order.
    """
    match_map: Dict[str, GroupedProposition] = {}
    miss_map: Dict[str, GroupedProposition] = {}
    excessive_map: Dict[str, GroupedProposition] = {}
    leave_map: Dict[str, GroupedProposition] = {}
    abandon_map: Dict[str, GroupedProposition] = {}

    for learner in learner_results:
        index = index_nodes(learner.nodes)
        for edge in learner.comparison.match:
            _tally(match_map, edge, learner, index, "match")
        for edge in learner.comparison.miss:
            _tally(miss_map, edge, learner, index, "miss")
        for edge in learner.comparison.excessive:
            _tally(excessive_map, edge, learner, index, "excessive")

    goal_index = index_nodes(goal_nodes)
    for edge in goal_edges:
        if edge.key in match_map:
            abandon_map.setdefault(edge.key, _grouped(edge, goal_index, "abandon"))
        else:
            leave_map.setdefault(edge.key, _grouped(edge, goal_index, "leave"))

    return GroupComparison(
        match=list(match_map.values()),
        miss=list(miss_map.values()),
        excessive=list(excessive_map.values()),
        leave=list(leave_map.values()),
        abandon=list(abandon_map.values()),
    )


def build_learner_record(learner_map: LearnerMap, goal_edges: Sequence[Edge]) -> LearnerComparisonRecord:
    return LearnerComparisonRecord(
        user_id=learner_map.user_id,
        user_name=learner_map.user_name,
        nodes=learner_map.nodes,
        edges=learner_map.edges,
        comparison=compare_graphs(learner_map.edges, goal_edges),
    )


def summarize_learners(learner_maps: Sequence[LearnerMap], goal_edges: Sequence[Edge]) -> AssignmentSummary:
    """
    Cohort score statistics. Drafts are counted but not scored; the median is
    the upper middle element for an even number of scores.
    """
    scores = sorted(
        diagnose(lm.edges, goal_edges).score
        for lm in learner_maps
        if lm.status != "draft"
    )
    summary = AssignmentSummary(
        total_learners=len(learner_maps),
        submitted_count=sum(1 for lm in learner_maps if lm.status == "submitted"),
        draft_count=sum(1 for lm in learner_maps if lm.status == "draft"),
    )
    if scores:
        summary.avg_score = sum(scores) / len(scores)
        summary.median_score = scores[len(scores) // 2]
        summary.highest_score = scores[-1]
        summary.lowest_score = scores[0]
    return summary


def export_group_comparison(group: GroupComparison, fmt: Literal["csv", "json"], goal_map_id: str) -> ExportResult:
    filename = f"{settings.EXPORT_FILENAME_PREFIX}-{goal_map_id}.{fmt}"
    if fmt == "json":
        return ExportResult(filename=filename, data=group.model_dump_json(indent=2), content_type="application/json")

    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(["type", "source", "link", "target", "count", "learners"])
    for bucket in (group.match, group.miss, group.excessive, group.leave, group.abandon):
        for prop in bucket:
            writer.writerow([
                prop.type,
                prop.source.label,
                prop.link.label,
                prop.target.label,
                prop.count,
                "; ".join(prop.learner_names),
            ])
    return ExportResult(filename=filename, data=buffer.getvalue(), content_type="text/csv")

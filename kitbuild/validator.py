# /kitbuild/validator.py

from collections import Counter, defaultdict
from typing import Any, Dict, List, Sequence, Tuple

from pydantic import TypeAdapter, ValidationError

from kitbuild.logger import get_logger
from kitbuild.models import (
    CONNECTOR_KIND,
    Edge,
    Node,
    PropositionRef,
    ValidationResult,
)

logger = get_logger(__name__)

_NODES_ADAPTER = TypeAdapter(List[Node])
_EDGES_ADAPTER = TypeAdapter(List[Edge])

_VISITING = 1
_DONE = 2


# --- Rules shared with the kit structure check ---

def partition_nodes(nodes: Sequence[Node]) -> Tuple[List[Node], List[Node]]:
    """Splits nodes into (concept nodes, connector nodes). Unknown kinds land in neither."""
    concepts = [n for n in nodes if n.is_concept]
    connectors = [n for n in nodes if n.is_connector]
    return concepts, connectors


def check_minimums(concept_nodes: Sequence[Node], connector_nodes: Sequence[Node], edges: Sequence[Edge]) -> List[str]:
    errors = []
    if len(concept_nodes) < 2:
        errors.append("At least 2 concept nodes (text/image) required")
    if len(connector_nodes) < 1:
        errors.append("At least 1 connector node required")
    if len(edges) < 2:
        errors.append("At least 2 edges required")
    return errors


def check_unique_ids(nodes: Sequence[Node]) -> List[str]:
    if len({n.id for n in nodes}) != len(nodes):
        return ["All node IDs must be unique"]
    return []


def check_edge_references(nodes: Sequence[Node], edges: Sequence[Edge]) -> List[str]:
    node_ids = {n.id for n in nodes}
    errors = []
    for edge in edges:
        if edge.source not in node_ids:
            errors.append(f"Edge {edge.edge_id} source node {edge.source} does not exist")
        if edge.target not in node_ids:
            errors.append(f"Edge {edge.edge_id} target node {edge.target} does not exist")
    return errors


def degree_counts(edges: Sequence[Edge]) -> Tuple[Counter, Counter]:
    """Returns (in-degree, out-degree) counters keyed by node id."""
    in_count, out_count = Counter(), Counter()
    for edge in edges:
        out_count[edge.source] += 1
        in_count[edge.target] += 1
    return in_count, out_count


def check_connector_degrees(connector_nodes: Sequence[Node], in_count: Counter, out_count: Counter) -> List[str]:
    errors = []
    for connector in connector_nodes:
        if in_count[connector.id] == 0:
            errors.append(f'Connector "{connector.label}" has no inbound connections')
        if out_count[connector.id] == 0:
            errors.append(f'Connector "{connector.label}" has no outbound connections')
    return errors


# --- Warning-level rules ---

def _connector_chain_warnings(nodes: Sequence[Node], connector_nodes: Sequence[Node], edges: Sequence[Edge]) -> List[str]:
    kinds: Dict[str, str] = {}
    for node in nodes:
        # First node wins when ids are duplicated.
        kinds.setdefault(node.id, node.kind)

    sources, targets = defaultdict(list), defaultdict(list)
    for edge in edges:
        targets[edge.source].append(edge.target)
        sources[edge.target].append(edge.source)

    warnings = []
    for connector in connector_nodes:
        if any(kinds.get(s) == CONNECTOR_KIND for s in sources[connector.id]):
            warnings.append(
                f'Connector "{connector.label}" has connector(s) as source(s) - this may create complex relationships'
            )
        if any(kinds.get(t) == CONNECTOR_KIND for t in targets[connector.id]):
            warnings.append(
                f'Connector "{connector.label}" has connector(s) as target(s) - this may create complex relationships'
            )
    return warnings


def _isolated_concept_warnings(concept_nodes: Sequence[Node], in_count: Counter, out_count: Counter) -> List[str]:
    return [
        f'Concept node "{concept.label}" is not connected to any other nodes'
        for concept in concept_nodes
        if in_count[concept.id] + out_count[concept.id] == 0
    ]


# --- Graph Analysis ---

def compose_propositions(nodes: Sequence[Node], edges: Sequence[Edge]) -> List[Tuple[Node, Node, Node]]:
    """
    Reconstructs every concept -> connector -> concept chain.

    Each connector contributes the full cross product of its inbound sources and
    outbound targets; endpoints that are not concept nodes are skipped.

    Returns:
        A list of (source concept, connector, target concept) tuples.
    """
    concepts = {n.id: n for n in nodes if n.is_concept}
    connectors = {n.id: n for n in nodes if n.is_connector}

    inbound, outbound = defaultdict(list), defaultdict(list)
    for edge in edges:
        inbound[edge.target].append(edge)
        outbound[edge.source].append(edge)

    propositions = []
    for connector_id, connector in connectors.items():
        for in_edge in inbound[connector_id]:
            source_concept = concepts.get(in_edge.source)
            if source_concept is None:
                continue
            for out_edge in outbound[connector_id]:
                target_concept = concepts.get(out_edge.target)
                if target_concept is None:
                    continue
                propositions.append((source_concept, connector, target_concept))
    return propositions


def find_connected_components(nodes: Sequence[Any], edges: Sequence[Edge]) -> List[List[str]]:
    """
    Groups node ids into components of the undirected view of the edge list.
    Isolated nodes form singleton components and every node id appears exactly once.
    """
    node_ids = list(dict.fromkeys(n.id for n in nodes))
    known = set(node_ids)

    adjacency = defaultdict(list)
    for edge in edges:
        adjacency[edge.source].append(edge.target)
        adjacency[edge.target].append(edge.source)

    visited = set()
    components = []
    for start in node_ids:
        if start in visited:
            continue
        component = []
        visited.add(start)
        stack = [start]
        while stack:
            current = stack.pop()
            # Dangling edge endpoints still bridge components but are not members.
            if current in known:
                component.append(current)
            for neighbour in reversed(adjacency.get(current, [])):
                if neighbour not in visited:
                    visited.add(neighbour)
                    stack.append(neighbour)
        components.append(component)
    return components


def detect_cycles(nodes: Sequence[Any], edges: Sequence[Edge]) -> bool:
    """Directed cycle check with an explicit stack. A self-loop is a cycle."""
    adjacency = defaultdict(list)
    for edge in edges:
        adjacency[edge.source].append(edge.target)

    state: Dict[str, int] = {}
    for node in nodes:
        if node.id in state:
            continue
        state[node.id] = _VISITING
        stack = [(node.id, iter(adjacency.get(node.id, [])))]
        while stack:
            current, neighbours = stack[-1]
            descended = False
            for neighbour in neighbours:
                mark = state.get(neighbour)
                if mark == _VISITING:
                    return True
                if mark is None:
                    state[neighbour] = _VISITING
                    stack.append((neighbour, iter(adjacency.get(neighbour, []))))
                    descended = True
                    break
            if not descended:
                state[current] = _DONE
                stack.pop()
    return False


# --- Entry Points ---

def _coerce(nodes: Any, edges: Any) -> Tuple[List[Node], List[Edge]]:
    return _NODES_ADAPTER.validate_python(nodes), _EDGES_ADAPTER.validate_python(edges)


def validate_graph(nodes: Any, edges: Any) -> ValidationResult:
    """
    Checks that an authored graph is a well-formed proposition graph.

    Every rule runs and all findings accumulate. Hard violations go to `errors`,
    advisory findings to `warnings`. The composed propositions are returned even
    when the graph is invalid. Input that cannot be read as nodes and edges
    produces an invalid result rather than an exception.
    """
    try:
        nodes, edges = _coerce(nodes, edges)
    except ValidationError as e:
        logger.warning("Rejected malformed graph input", extra={"error_count": e.error_count()})
        return ValidationResult(is_valid=False, errors=[f"Malformed graph input: {e.error_count()} invalid field(s)"])

    errors: List[str] = []
    warnings: List[str] = []

    concept_nodes, connector_nodes = partition_nodes(nodes)
    errors.extend(check_minimums(concept_nodes, connector_nodes, edges))
    errors.extend(check_unique_ids(nodes))
    errors.extend(check_edge_references(nodes, edges))

    in_count, out_count = degree_counts(edges)
    errors.extend(check_connector_degrees(connector_nodes, in_count, out_count))
    warnings.extend(_connector_chain_warnings(nodes, connector_nodes, edges))
    warnings.extend(_isolated_concept_warnings(concept_nodes, in_count, out_count))

    propositions = compose_propositions(nodes, edges)
    if not propositions and len(concept_nodes) >= 2 and len(connector_nodes) >= 1:
        errors.append("No valid propositions found - check that connectors properly connect concept nodes")

    components = find_connected_components(nodes, edges)
    if len(components) > 1:
        warnings.append(
            f"Goal map has {len(components)} disconnected sections - consider connecting them for better learning outcomes"
        )

    if detect_cycles(nodes, edges):
        warnings.append("Circular relationships detected - this may indicate circular reasoning in the concept structure")

    logger.debug(
        "Validated graph",
        extra={
            "nodes": len(nodes),
            "edges": len(edges),
            "errors": len(errors),
            "warnings": len(warnings),
            "propositions": len(propositions),
        },
    )

    return ValidationResult(
        is_valid=not errors,
        errors=errors,
        warnings=warnings,
        propositions=[
            PropositionRef(source_id=source.id, link_id=link.id, target_id=target.id)
            for source, link, target in propositions
        ],
    )


class GraphValidator:
    """Stateless validator for callers that want an object to inject."""

    def validate(self, nodes: Any, edges: Any) -> ValidationResult:
        return validate_graph(nodes, edges)

    def compose_propositions(self, nodes: Sequence[Node], edges: Sequence[Edge]):
        return compose_propositions(nodes, edges)

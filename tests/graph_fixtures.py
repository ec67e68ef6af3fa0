# /tests/graph_fixtures.py
# Builders shared by the test modules.

from kitbuild.models import ConnectorNode, Edge, GoalMap, ImageData, ImageNode, LabelData, LearnerMap, Position, TextNode


def text(node_id, label=None, x=0.0, y=0.0):
    return TextNode(id=node_id, data=LabelData(label=label or node_id), position=Position(x=x, y=y))


def image(node_id, caption="", url="https://example.org/img.png"):
    return ImageNode(id=node_id, data=ImageData(caption=caption, url=url))


def connector(node_id, label=None):
    return ConnectorNode(id=node_id, data=LabelData(label=label or node_id))


def edge(source, target, edge_id=None):
    return Edge(id=edge_id, source=source, target=target)


def scenario_a():
    """root --link--> child1, child2"""
    nodes = [text("root", "Root"), connector("link", "has"), text("child1", "Child 1"), text("child2", "Child 2")]
    edges = [edge("root", "link", "e1"), edge("link", "child1", "e2"), edge("link", "child2", "e3")]
    return nodes, edges


def photosynthesis_goal_map(goal_map_id="gm1"):
    nodes = [
        text("c1", "Plants"),
        connector("l1", "perform"),
        text("c2", "Photosynthesis"),
        connector("l2", "produces"),
        text("c3", "Oxygen"),
    ]
    edges = [
        edge("c1", "l1", "e1"),
        edge("l1", "c2", "e2"),
        edge("c2", "l2", "e3"),
        edge("l2", "c3", "e4"),
    ]
    return GoalMap(id=goal_map_id, title="Photosynthesis", teacher_id="t1", nodes=nodes, edges=edges)


def learner_map(map_id, user_id, edges, goal_map_id="gm1", status="submitted", attempt=1, user_name=None):
    goal = photosynthesis_goal_map(goal_map_id)
    return LearnerMap(
        id=map_id,
        goal_map_id=goal_map_id,
        user_id=user_id,
        user_name=user_name or user_id.upper(),
        status=status,
        attempt=attempt,
        nodes=goal.nodes,
        edges=edges,
    )

# /kitbuild/database.py

from abc import ABC, abstractmethod
import json
from typing import Any, Dict, List, Optional

from neo4j import GraphDatabase
from pydantic import TypeAdapter

from kitbuild.config import settings
from kitbuild.logger import get_logger
from kitbuild.models import Edge, GoalMap, LearnerMap, Node

logger = get_logger(__name__)

_NODES = TypeAdapter(List[Node])
_EDGES = TypeAdapter(List[Edge])


class GraphDBInterface(ABC):
    """
    An abstract base class defining how goal maps and learner maps are stored.
    Nodes and edges are opaque JSON blobs to the store.
    """
    @abstractmethod
    def load_graph(self, graph_id: str) -> Optional[GoalMap]:
        pass

    @abstractmethod
    def save_graph(self, graph_id: str, goal_map: GoalMap):
        pass

    @abstractmethod
    def save_learner_map(self, learner_map: LearnerMap):
        pass

    @abstractmethod
    def load_learner_map(self, learner_map_id: str) -> Optional[LearnerMap]:
        pass

    @abstractmethod
    def list_learner_maps(self, goal_map_id: str) -> List[LearnerMap]:
        pass

    @abstractmethod
    def close(self):
        pass


def _decode_list(raw: Any, field: str, owner_id: str) -> List[Any]:
    if isinstance(raw, list):
        return raw
    if not raw:
        return []
    try:
        decoded = json.loads(raw)
    except (TypeError, json.JSONDecodeError) as e:
        logger.warning(f"Could not decode {field} of {owner_id}: {e}")
        return []
    return decoded if isinstance(decoded, list) else []


class Neo4jDatabase(GraphDBInterface):
    """Concrete implementation of the GraphDBInterface for Neo4j."""
    def __init__(self):
        uri = settings.NEO4J_URI
        user = settings.NEO4J_USERNAME
        password = settings.NEO4J_PASSWORD
        if not all([uri, user, password]):
            raise ValueError("Neo4j credentials not found in .env file.")
        self._driver = GraphDatabase.driver(uri, auth=(user, password))

    def execute_query(self, query: str, params: Dict = None) -> List[Dict[str, Any]]:
        with self._driver.session() as session:
            result = session.run(query, params or {})
            return result.data()

    def save_graph(self, graph_id: str, goal_map: GoalMap):
        cypher = """
        MERGE (g:GoalMap {id: $id})
        SET g.title = $title,
            g.description = $description,
            g.teacher_id = $teacher_id,
            g.nodes = $nodes,
            g.edges = $edges
        """
        params = {
            "id": graph_id,
            "title": goal_map.title,
            "description": goal_map.description,
            "teacher_id": goal_map.teacher_id,
            "nodes": _NODES.dump_json(goal_map.nodes).decode(),
            "edges": _EDGES.dump_json(goal_map.edges).decode(),
        }
        with self._driver.session() as session:
            session.run(cypher, params)

    def load_graph(self, graph_id: str) -> Optional[GoalMap]:
        rows = self.execute_query(
            "MATCH (g:GoalMap {id: $id}) RETURN g {.*} AS goal_map",
            {"id": graph_id},
        )
        if not rows:
            return None
        props = dict(rows[0]["goal_map"])
        props["nodes"] = _decode_list(props.get("nodes"), "nodes", graph_id)
        props["edges"] = _decode_list(props.get("edges"), "edges", graph_id)
        return GoalMap.model_validate(props)

    def save_learner_map(self, learner_map: LearnerMap):
        cypher = """
        MATCH (g:GoalMap {id: $goal_map_id})
        MERGE (l:LearnerMap {id: $id})
        SET l.goal_map_id = $goal_map_id,
            l.user_id = $user_id,
            l.user_name = $user_name,
            l.status = $status,
            l.attempt = $attempt,
            l.nodes = $nodes,
            l.edges = $edges
        MERGE (l)-[:ATTEMPTS]->(g)
        """
        params = {
            "id": learner_map.id,
            "goal_map_id": learner_map.goal_map_id,
            "user_id": learner_map.user_id,
            "user_name": learner_map.user_name,
            "status": learner_map.status,
            "attempt": learner_map.attempt,
            "nodes": _NODES.dump_json(learner_map.nodes).decode(),
            "edges": _EDGES.dump_json(learner_map.edges).decode(),
        }
        with self._driver.session() as session:
            session.run(cypher, params)

    def _learner_map_from_row(self, props: Dict[str, Any]) -> LearnerMap:
        props = dict(props)
        props["nodes"] = _decode_list(props.get("nodes"), "nodes", props.get("id", "?"))
        props["edges"] = _decode_list(props.get("edges"), "edges", props.get("id", "?"))
        return LearnerMap.model_validate(props)

    def load_learner_map(self, learner_map_id: str) -> Optional[LearnerMap]:
        rows = self.execute_query(
            "MATCH (l:LearnerMap {id: $id}) RETURN l {.*} AS learner_map",
            {"id": learner_map_id},
        )
        if not rows:
            return None
        return self._learner_map_from_row(rows[0]["learner_map"])

    def list_learner_maps(self, goal_map_id: str) -> List[LearnerMap]:
        rows = self.execute_query(
            """
            MATCH (l:LearnerMap)-[:ATTEMPTS]->(:GoalMap {id: $goal_map_id})
            RETURN l {.*} AS learner_map
            ORDER BY l.attempt DESC
            """,
            {"goal_map_id": goal_map_id},
        )
        return [self._learner_map_from_row(row["learner_map"]) for row in rows]

    def close(self):
        self._driver.close()


class InMemoryDatabase(GraphDBInterface):
    """Process-local store. Used for development and as the test double."""
    def __init__(self):
        self._goal_maps: Dict[str, GoalMap] = {}
        self._learner_maps: Dict[str, LearnerMap] = {}

    def save_graph(self, graph_id: str, goal_map: GoalMap):
        self._goal_maps[graph_id] = goal_map.model_copy(update={"id": graph_id}, deep=True)

    def load_graph(self, graph_id: str) -> Optional[GoalMap]:
        goal_map = self._goal_maps.get(graph_id)
        return goal_map.model_copy(deep=True) if goal_map else None

    def save_learner_map(self, learner_map: LearnerMap):
        self._learner_maps[learner_map.id] = learner_map.model_copy(deep=True)

    def load_learner_map(self, learner_map_id: str) -> Optional[LearnerMap]:
        learner_map = self._learner_maps.get(learner_map_id)
        return learner_map.model_copy(deep=True) if learner_map else None

    def list_learner_maps(self, goal_map_id: str) -> List[LearnerMap]:
        maps = [lm.model_copy(deep=True) for lm in self._learner_maps.values() if lm.goal_map_id == goal_map_id]
        return sorted(maps, key=lambda lm: lm.attempt, reverse=True)

    def close(self):
        self._goal_maps.clear()
        self._learner_maps.clear()


_database: Optional[GraphDBInterface] = None


def get_database() -> GraphDBInterface:
    """Returns the process-wide store for the configured STORAGE_BACKEND."""
    global _database
    if _database is None:
        if settings.STORAGE_BACKEND == "neo4j":
            _database = Neo4jDatabase()
        else:
            _database = InMemoryDatabase()
        logger.info(f"Using {type(_database).__name__} for storage")
    return _database


def close_database():
    global _database
    if _database is not None:
        _database.close()
        _database = None

# /tests/test_api.py

import unittest
from unittest.mock import patch
import sys
import os

# Add root directory to path to allow imports from 'api' and 'kitbuild'
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
sys.path.append(os.path.dirname(__file__))

from fastapi.testclient import TestClient

from api.dependencies import get_db
from api.main import app
from kitbuild.config import settings
from kitbuild.database import InMemoryDatabase
from graph_fixtures import photosynthesis_goal_map

TEACHER = {"X-User-Id": "t1", "X-User-Name": "Ms. Rivera", "X-User-Roles": "teacher"}
OTHER_TEACHER = {"X-User-Id": "t2", "X-User-Roles": "teacher"}
LEARNER = {"X-User-Id": "u1", "X-User-Name": "Ann", "X-User-Roles": "learner"}
OTHER_LEARNER = {"X-User-Id": "u2", "X-User-Roles": "learner"}


def goal_map_payload():
    goal = photosynthesis_goal_map()
    return {
        "title": goal.title,
        "nodes": [n.model_dump() for n in goal.nodes],
        "edges": [e.model_dump(exclude_none=True) for e in goal.edges],
    }


class TestAPI(unittest.TestCase):

    def setUp(self):
        self.db = InMemoryDatabase()
        app.dependency_overrides[get_db] = lambda: self.db
        self.addCleanup(app.dependency_overrides.clear)
        self.client = TestClient(app)

    def _save_goal_map(self, goal_map_id="gm1", headers=TEACHER):
        return self.client.put(f"/goal-maps/{goal_map_id}", json=goal_map_payload(), headers=headers)

    def _save_learner_map(self, learner_map_id, edges, headers=LEARNER, status="submitted", attempt=1):
        payload = goal_map_payload()
        return self.client.put(
            f"/learner-maps/{learner_map_id}",
            json={"goal_map_id": "gm1", "status": status, "attempt": attempt, "nodes": payload["nodes"], "edges": edges},
            headers=headers,
        )

    def test_root(self):
        response = self.client.get("/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"message": "KitBuild Analyzer API is running."})

    # --- Goal maps ---

    def test_validate_endpoint(self):
        payload = goal_map_payload()
        response = self.client.post("/goal-maps/validate", json={"nodes": payload["nodes"], "edges": payload["edges"]})

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["is_valid"])
        self.assertEqual(len(body["propositions"]), 2)

    def test_validate_accepts_canvas_node_types(self):
        nodes = [
            {"id": "a", "type": "text", "data": {"label": "A"}},
            {"id": "l", "type": "connector", "data": {"label": "is"}},
        ]
        response = self.client.post("/goal-maps/validate", json={"nodes": nodes, "edges": [{"source": "l", "target": "a"}]})

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertFalse(body["is_valid"])
        self.assertIn('Connector "is" has no inbound connections', body["errors"])

    def test_oversized_graph_is_rejected(self):
        with patch.object(settings, "MAX_GRAPH_NODES", 2):
            payload = goal_map_payload()
            response = self.client.post("/goal-maps/validate", json={"nodes": payload["nodes"], "edges": payload["edges"]})

        self.assertEqual(response.status_code, 413)

    def test_save_and_load_goal_map(self):
        response = self._save_goal_map()

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["saved"])
        self.assertTrue(body["validation"]["is_valid"])

        loaded = self.client.get("/goal-maps/gm1", headers=LEARNER)
        self.assertEqual(loaded.status_code, 200)
        self.assertEqual(loaded.json()["teacher_id"], "t1")
        self.assertEqual(len(loaded.json()["nodes"]), 5)

    def test_invalid_goal_map_is_still_saved(self):
        payload = {"title": "Draft", "nodes": [{"id": "a", "kind": "text"}], "edges": []}
        response = self.client.put("/goal-maps/draft", json=payload, headers=TEACHER)

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["saved"])
        self.assertFalse(response.json()["validation"]["is_valid"])
        self.assertIsNotNone(self.db.load_graph("draft"))

    def test_goal_map_authoring_requires_teacher(self):
        self.assertEqual(self._save_goal_map(headers=LEARNER).status_code, 403)
        self.assertEqual(self._save_goal_map(headers={}).status_code, 401)

    def test_goal_map_cannot_be_overwritten_by_another_teacher(self):
        self._save_goal_map()
        self.assertEqual(self._save_goal_map(headers=OTHER_TEACHER).status_code, 403)

    def test_unknown_goal_map(self):
        self.assertEqual(self.client.get("/goal-maps/nope", headers=LEARNER).status_code, 404)

    # --- Kits ---

    def test_generate_kit(self):
        self._save_goal_map()

        response = self.client.post("/kits/gm1", params={"layout": "random", "seed": 3}, headers=TEACHER)

        self.assertEqual(response.status_code, 200)
        kit = response.json()
        self.assertEqual(kit["layout"], "random")
        self.assertEqual(kit["edges"], [])
        self.assertEqual(len(kit["nodes"]), 5)

    def test_kit_refused_for_unsound_goal_map(self):
        self.client.put("/goal-maps/draft", json={"nodes": [{"id": "a", "kind": "text"}], "edges": []}, headers=TEACHER)

        response = self.client.post("/kits/draft", headers=TEACHER)

        self.assertEqual(response.status_code, 422)
        self.assertIn("At least 2 edges required", response.json()["detail"]["errors"])

    def test_kit_for_unknown_goal_map(self):
        self.assertEqual(self.client.post("/kits/nope", headers=TEACHER).status_code, 404)

    # --- Learner maps ---

    def test_save_learner_map(self):
        self._save_goal_map()

        response = self._save_learner_map("m1", [{"source": "c1", "target": "l1"}])

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["user_id"], "u1")
        self.assertEqual(response.json()["user_name"], "Ann")

    def test_learner_map_requires_known_goal_map(self):
        self.assertEqual(self._save_learner_map("m1", []).status_code, 404)

    def test_learner_map_belongs_to_its_learner(self):
        self._save_goal_map()
        self._save_learner_map("m1", [])

        self.assertEqual(self._save_learner_map("m1", [], headers=OTHER_LEARNER).status_code, 403)

    # --- Analytics ---

    def test_learner_analytics(self):
        self._save_goal_map()
        self._save_learner_map("m1", [{"source": "c1", "target": "l1"}, {"source": "l1", "target": "c2"}])

        response = self.client.get("/analytics/goal-maps/gm1/learners/m1", headers=TEACHER)

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["diagnosis"]["score"], 0.5)
        self.assertEqual(len(body["comparison"]["miss"]), 2)
        self.assertEqual([c["type"] for c in body["classifications"]], ["correct", "correct", "missing", "missing"])
        self.assertEqual(body["propositions"][0]["link"]["label"], "perform")

    def test_group_analytics(self):
        self._save_goal_map()
        self._save_learner_map("m1", [{"source": "c1", "target": "l1"}])
        self._save_learner_map("m2", [{"source": "c1", "target": "l1"}, {"source": "c3", "target": "l1"}], headers=OTHER_LEARNER)

        everyone = self.client.post("/analytics/goal-maps/gm1/group", headers=TEACHER).json()
        self.assertEqual(everyone["match"][0]["count"], 2)
        self.assertEqual(len(everyone["excessive"]), 1)

        selected = self.client.post(
            "/analytics/goal-maps/gm1/group", json={"learner_map_ids": ["m1"]}, headers=TEACHER
        ).json()
        self.assertEqual(selected["match"][0]["count"], 1)
        self.assertEqual(selected["excessive"], [])

    def test_summary_and_export(self):
        self._save_goal_map()
        self._save_learner_map("m1", [{"source": "c1", "target": "l1"}])
        self._save_learner_map("m2", [], headers=OTHER_LEARNER, status="draft")

        summary = self.client.get("/analytics/goal-maps/gm1/summary", headers=TEACHER).json()
        self.assertEqual(summary["total_learners"], 2)
        self.assertEqual(summary["draft_count"], 1)
        self.assertEqual(summary["avg_score"], 0.25)

        export = self.client.get("/analytics/goal-maps/gm1/export", params={"format": "csv"}, headers=TEACHER).json()
        self.assertEqual(export["filename"], "kitbuild-analytics-gm1.csv")
        self.assertTrue(export["data"].startswith("type,source,link,target,count,learners"))

    def test_analytics_requires_teacher(self):
        self._save_goal_map()
        response = self.client.get("/analytics/goal-maps/gm1/summary", headers=LEARNER)
        self.assertEqual(response.status_code, 403)


if __name__ == '__main__':
    unittest.main()

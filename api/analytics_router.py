from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from typing import List, Literal, Optional

from api.dependencies import get_db, require_teacher
from kitbuild.aggregator import aggregate_group, build_learner_record, export_group_comparison, summarize_learners
from kitbuild.comparator import classify_edges, compare_graphs, diagnose, label_propositions
from kitbuild.database import GraphDBInterface
from kitbuild.logger import get_logger
from kitbuild.models import (
    AssignmentSummary,
    CurrentUser,
    DiagnosisResult,
    EdgeClassification,
    ExportResult,
    GoalMap,
    GroupComparison,
    LearnerMap,
    MapComparison,
    Proposition,
)

logger = get_logger(__name__)

# --- Pydantic Models ---
class LearnerAnalytics(BaseModel):
    learner_map: LearnerMap
    comparison: MapComparison
    diagnosis: DiagnosisResult
    classifications: List[EdgeClassification]
    propositions: List[Proposition] = Field(description="Propositions the learner assembled, with labels.")

class GroupRequest(BaseModel):
    learner_map_ids: Optional[List[str]] = Field(None, description="Learner maps to include. All maps of the goal map when omitted.")

router = APIRouter(
    prefix="/analytics",
    tags=["Analytics"],
    dependencies=[Depends(require_teacher)],
)

# --- Helper Functions ---
def _load_goal_map(db: GraphDBInterface, goal_map_id: str) -> GoalMap:
    goal_map = db.load_graph(goal_map_id)
    if goal_map is None:
        raise HTTPException(status_code=404, detail=f"Goal map {goal_map_id} not found.")
    return goal_map

def _select_learner_maps(db: GraphDBInterface, goal_map_id: str, learner_map_ids: Optional[List[str]]) -> List[LearnerMap]:
    learner_maps = db.list_learner_maps(goal_map_id)
    if learner_map_ids is None:
        return learner_maps
    wanted = set(learner_map_ids)
    return [lm for lm in learner_maps if lm.id in wanted]


# --- API Endpoints ---

@router.get("/goal-maps/{goal_map_id}/learners/{learner_map_id}", response_model=LearnerAnalytics)
def get_learner_analytics(goal_map_id: str, learner_map_id: str, db: GraphDBInterface = Depends(get_db)):
    """Scores one learner map against its goal map."""
    goal_map = _load_goal_map(db, goal_map_id)
    learner_map = db.load_learner_map(learner_map_id)
    if learner_map is None or learner_map.goal_map_id != goal_map_id:
        raise HTTPException(status_code=404, detail=f"Learner map {learner_map_id} not found for goal map {goal_map_id}.")

    return LearnerAnalytics(
        learner_map=learner_map,
        comparison=compare_graphs(learner_map.edges, goal_map.edges),
        diagnosis=diagnose(learner_map.edges, goal_map.edges),
        classifications=classify_edges(learner_map.edges, goal_map.edges),
        propositions=label_propositions(learner_map.nodes, learner_map.edges),
    )


@router.post("/goal-maps/{goal_map_id}/group", response_model=GroupComparison)
def get_group_analytics(goal_map_id: str, request: Optional[GroupRequest] = None, db: GraphDBInterface = Depends(get_db)):
    """Aggregates the selected learner maps into one cohort report."""
    goal_map = _load_goal_map(db, goal_map_id)
    learner_map_ids = request.learner_map_ids if request else None
    learner_maps = _select_learner_maps(db, goal_map_id, learner_map_ids)

    records = [build_learner_record(lm, goal_map.edges) for lm in learner_maps]
    group = aggregate_group(records, goal_map.edges, goal_map.nodes)
    logger.info(f"Computed group analytics for {goal_map_id}", extra={"learners": len(records)})
    return group


@router.get("/goal-maps/{goal_map_id}/summary", response_model=AssignmentSummary)
def get_summary(goal_map_id: str, db: GraphDBInterface = Depends(get_db)):
    goal_map = _load_goal_map(db, goal_map_id)
    return summarize_learners(db.list_learner_maps(goal_map_id), goal_map.edges)


@router.get("/goal-maps/{goal_map_id}/export", response_model=ExportResult)
def export_group_analytics(
    goal_map_id: str,
    fmt: Literal["csv", "json"] = Query("csv", alias="format"),
    db: GraphDBInterface = Depends(get_db),
):
    """Exports the cohort report for every learner map of the goal map."""
    goal_map = _load_goal_map(db, goal_map_id)
    records = [build_learner_record(lm, goal_map.edges) for lm in db.list_learner_maps(goal_map_id)]
    group = aggregate_group(records, goal_map.edges, goal_map.nodes)
    return export_group_comparison(group, fmt, goal_map_id)

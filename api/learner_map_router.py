from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from typing import List, Literal

from api.dependencies import ensure_within_bounds, get_current_user, get_db
from kitbuild.database import GraphDBInterface
from kitbuild.logger import get_logger
from kitbuild.models import CurrentUser, Edge, LearnerMap, Node

logger = get_logger(__name__)

# --- Pydantic Models ---
class LearnerMapIn(BaseModel):
    goal_map_id: str
    status: Literal["draft", "submitted", "graded"] = "draft"
    attempt: int = Field(1, ge=1)
    nodes: List[Node] = Field(default_factory=list)
    edges: List[Edge] = Field(default_factory=list)

router = APIRouter(
    prefix="/learner-maps",
    tags=["Learner Maps"]
)


@router.put("/{learner_map_id}", response_model=LearnerMap)
def save_learner_map(
    learner_map_id: str,
    payload: LearnerMapIn,
    user: CurrentUser = Depends(get_current_user),
    db: GraphDBInterface = Depends(get_db),
):
    """Stores the current learner's reconstruction of a kit."""
    ensure_within_bounds(payload.nodes, payload.edges)
    if db.load_graph(payload.goal_map_id) is None:
        raise HTTPException(status_code=404, detail=f"Goal map {payload.goal_map_id} not found.")

    existing = db.load_learner_map(learner_map_id)
    if existing is not None and existing.user_id != user.id:
        raise HTTPException(status_code=403, detail=f"Learner map {learner_map_id} belongs to another learner.")

    learner_map = LearnerMap(
        id=learner_map_id,
        goal_map_id=payload.goal_map_id,
        user_id=user.id,
        user_name=user.name or user.id,
        status=payload.status,
        attempt=payload.attempt,
        nodes=payload.nodes,
        edges=payload.edges,
    )
    db.save_learner_map(learner_map)
    logger.info(f"Saved learner map {learner_map_id}", extra={"goal_map_id": payload.goal_map_id, "status": payload.status})
    return learner_map

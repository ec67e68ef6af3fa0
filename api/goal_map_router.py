from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from typing import List, Optional

from api.dependencies import ensure_within_bounds, get_current_user, get_db, require_teacher
from kitbuild.database import GraphDBInterface
from kitbuild.logger import get_logger
from kitbuild.models import CurrentUser, Edge, GoalMap, KnowledgeGraph, Node, ValidationResult
from kitbuild.validator import validate_graph

logger = get_logger(__name__)

# --- Pydantic Models ---
class GoalMapIn(BaseModel):
    title: str = ""
    description: Optional[str] = None
    nodes: List[Node] = Field(default_factory=list)
    edges: List[Edge] = Field(default_factory=list)

class SaveGoalMapResponse(BaseModel):
    goal_map_id: str
    saved: bool
    validation: ValidationResult = Field(description="Findings for the author. A goal map is stored even when invalid.")

# --- Router Initialization ---
router = APIRouter(
    prefix="/goal-maps",
    tags=["Goal Maps"]
)

# --- Helper Function ---
def _require_owner(existing: Optional[GoalMap], user: CurrentUser):
    """Only the teacher who created a goal map (or an admin) may overwrite it."""
    if existing is None or not existing.teacher_id:
        return
    if existing.teacher_id != user.id and "admin" not in user.roles:
        raise HTTPException(status_code=403, detail=f"Goal map {existing.id} belongs to another teacher.")


# --- API Endpoints ---

@router.post("/validate", response_model=ValidationResult)
def validate_goal_map(graph: KnowledgeGraph):
    """Checks a graph without storing it."""
    ensure_within_bounds(graph.nodes, graph.edges)
    return validate_graph(graph.nodes, graph.edges)


@router.put("/{goal_map_id}", response_model=SaveGoalMapResponse)
def save_goal_map(
    goal_map_id: str,
    payload: GoalMapIn,
    user: CurrentUser = Depends(require_teacher),
    db: GraphDBInterface = Depends(get_db),
):
    """Validates and stores a goal map, returning the validation findings."""
    ensure_within_bounds(payload.nodes, payload.edges)
    _require_owner(db.load_graph(goal_map_id), user)

    validation = validate_graph(payload.nodes, payload.edges)
    goal_map = GoalMap(
        id=goal_map_id,
        title=payload.title,
        description=payload.description,
        teacher_id=user.id,
        nodes=payload.nodes,
        edges=payload.edges,
    )
    db.save_graph(goal_map_id, goal_map)
    logger.info(
        f"Saved goal map {goal_map_id}",
        extra={"is_valid": validation.is_valid, "errors": len(validation.errors), "warnings": len(validation.warnings)},
    )
    return SaveGoalMapResponse(goal_map_id=goal_map_id, saved=True, validation=validation)


@router.get("/{goal_map_id}", response_model=GoalMap)
def get_goal_map(
    goal_map_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: GraphDBInterface = Depends(get_db),
):
    goal_map = db.load_graph(goal_map_id)
    if goal_map is None:
        raise HTTPException(status_code=404, detail=f"Goal map {goal_map_id} not found.")
    return goal_map

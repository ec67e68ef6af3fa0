from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Literal, Optional

from api.dependencies import get_db, require_teacher
from kitbuild.database import GraphDBInterface
from kitbuild.kit import KitStructureError, derive_kit
from kitbuild.logger import get_logger
from kitbuild.models import CurrentUser, Kit

logger = get_logger(__name__)

router = APIRouter(
    prefix="/kits",
    tags=["Kits"]
)


@router.post("/{goal_map_id}", response_model=Kit)
def generate_kit(
    goal_map_id: str,
    layout: Literal["preset", "random"] = Query("preset"),
    seed: Optional[int] = Query(None, description="Seed for the random layout, for reproducible kits."),
    user: CurrentUser = Depends(require_teacher),
    db: GraphDBInterface = Depends(get_db),
):
    """Derives the learner kit from a stored goal map."""
    goal_map = db.load_graph(goal_map_id)
    if goal_map is None:
        raise HTTPException(status_code=404, detail=f"Goal map {goal_map_id} not found.")

    try:
        kit = derive_kit(goal_map, layout=layout, seed=seed)
    except KitStructureError as e:
        logger.warning(f"Kit generation refused for {goal_map_id}", extra={"errors": e.errors})
        raise HTTPException(
            status_code=422,
            detail={"message": "Goal map is not structurally valid for a kit.", "errors": e.errors},
        )

    logger.info(f"Generated kit for {goal_map_id}", extra={"layout": layout, "nodes": len(kit.nodes)})
    return kit

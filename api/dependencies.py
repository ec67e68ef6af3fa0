from typing import Optional, Sequence

from fastapi import Depends, Header, HTTPException

from kitbuild.config import settings
from kitbuild.database import GraphDBInterface, get_database
from kitbuild.models import CurrentUser

AUTHOR_ROLES = {"teacher", "admin"}


def get_db() -> GraphDBInterface:
    return get_database()


def get_current_user(
    x_user_id: Optional[str] = Header(None),
    x_user_name: str = Header(""),
    x_user_roles: str = Header(""),
) -> CurrentUser:
    """Identity is resolved upstream; the gateway forwards it in headers."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header.")
    roles = [role.strip() for role in x_user_roles.split(",") if role.strip()]
    return CurrentUser(id=x_user_id, name=x_user_name, roles=roles)


def require_teacher(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not AUTHOR_ROLES.intersection(user.roles):
        raise HTTPException(status_code=403, detail="Teacher role required.")
    return user


def ensure_within_bounds(nodes: Sequence, edges: Sequence):
    """Rejects graphs larger than the configured limits before they reach the core."""
    if len(nodes) > settings.MAX_GRAPH_NODES:
        raise HTTPException(status_code=413, detail=f"Graph exceeds {settings.MAX_GRAPH_NODES} nodes.")
    if len(edges) > settings.MAX_GRAPH_EDGES:
        raise HTTPException(status_code=413, detail=f"Graph exceeds {settings.MAX_GRAPH_EDGES} edges.")

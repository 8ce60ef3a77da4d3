"""Admin router: maintenance operations."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from edunexus.database import get_db
from edunexus.middleware.auth import get_current_actor
from edunexus.schemas.course import ReconcileResponse
from edunexus.services import course_registry
from edunexus.services.authorization import Actor, require_role

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.post("/reconcile", response_model=ReconcileResponse)
def reconcile(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Sweep assignments, lectures and enrollments left pointing at missing rows."""
    require_role(actor, "admin")
    return ReconcileResponse(**course_registry.reconcile_references(db))

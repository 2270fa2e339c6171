from fastapi import APIRouter, Depends
from pydantic import BaseModel

from coursebot.api.deps import get_tutor
from coursebot.core.models import IndexStats, ReconcileResult
from coursebot.services.tutor_service import TutorService

router = APIRouter(prefix="/index", tags=["index"])


class ReconcileRequest(BaseModel):
    course_id: str


class RebuildRequest(BaseModel):
    dimension: int | None = None


@router.get("/stats", response_model=IndexStats)
def index_stats(tutor: TutorService = Depends(get_tutor)):
    return tutor.get_index_stats()


@router.post("/reconcile", response_model=ReconcileResult)
def reconcile(req: ReconcileRequest, tutor: TutorService = Depends(get_tutor)):
    return tutor.reconcile_course(req.course_id)


@router.post("/rebuild", response_model=IndexStats)
def rebuild(req: RebuildRequest, tutor: TutorService = Depends(get_tutor)):
    """Destructive: drops every course's chunks. Documents must be re-ingested."""
    return tutor.rebuild_index(req.dimension)


@router.delete("")
def delete_index(tutor: TutorService = Depends(get_tutor)):
    existed = tutor.delete_index()
    return {"ok": True, "deleted": existed}

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from coursebot.api.deps import get_tutor
from coursebot.core.models import Retrieval
from coursebot.services.tutor_service import TutorService

router = APIRouter(prefix="/search", tags=["search"])

class SearchRequest(BaseModel):
    query: str
    course_id: str
    unit_name: str

@router.post("", response_model=Retrieval)
def search(req: SearchRequest, tutor: TutorService = Depends(get_tutor)):
    return tutor.retriever.retrieve(req.query, req.course_id, req.unit_name)

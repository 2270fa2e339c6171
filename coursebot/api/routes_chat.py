from typing import Literal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from coursebot.api.deps import get_tutor
from coursebot.core.models import ChatResult, ChatTurn
from coursebot.services.tutor_service import TutorService

router = APIRouter(prefix="/chat", tags=["chat"])

class ChatRequest(BaseModel):
    query: str
    course_id: str
    unit_name: str
    history: list[ChatTurn] = Field(default_factory=list)
    mode: Literal["tutor", "protege"] = "tutor"
    allow_general_knowledge: bool | None = None

@router.post("", response_model=ChatResult)
async def chat(req: ChatRequest, tutor: TutorService = Depends(get_tutor)):
    if not (req.query or "").strip():
        raise HTTPException(status_code=400, detail="query is required")
    return await tutor.chat(
        req.query,
        req.course_id,
        req.unit_name,
        history=req.history or None,
        mode=req.mode,
        allow_general_knowledge=req.allow_general_knowledge,
    )

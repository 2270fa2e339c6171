from fastapi import APIRouter, Depends

from coursebot.api.deps import get_tutor
from coursebot.core.models import DeleteResult, DocumentRecord
from coursebot.services.tutor_service import TutorService

router = APIRouter(prefix="/documents", tags=["documents"])


@router.get("/", response_model=list[DocumentRecord])
def list_docs(course_id: str, tutor: TutorService = Depends(get_tutor)):
    return tutor.metadata.list_documents(course_id)


@router.delete("/{document_id}", response_model=DeleteResult)
def delete_doc(document_id: str, tutor: TutorService = Depends(get_tutor)):
    # Metadata first: if the vector delete fails, the chunks are orphans and
    # the next reconciliation removes them.
    tutor.metadata.delete_document(document_id)
    return tutor.delete_document(document_id)

import logging
import uuid
from pathlib import Path

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel

from coursebot.api.deps import get_tutor
from coursebot.core.errors import InvalidInput
from coursebot.core.models import DocumentRecord, IngestResult
from coursebot.services.ingest_service import extract_text, mime_type_for
from coursebot.services.tutor_service import TutorService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ingest", tags=["ingest"])


class IngestDocumentRequest(BaseModel):
    document: DocumentRecord
    raw_text: str


@router.post("/document", response_model=IngestResult)
def ingest_document(req: IngestDocumentRequest, tutor: TutorService = Depends(get_tutor)):
    return tutor.ingest_document(req.document, req.raw_text)


@router.post("/upload", response_model=IngestResult)
async def ingest_upload(
    course_id: str = Form(...),
    unit_name: str = Form(...),
    document_type: str = Form("lecture-notes"),
    file: UploadFile = File(...),
    tutor: TutorService = Depends(get_tutor),
):
    # Use the original filename for display only.
    file_name = Path(file.filename or "upload.txt").name
    content = await file.read()
    try:
        raw_text = extract_text(file_name, content)
    except InvalidInput:
        raise
    except Exception as e:
        raise InvalidInput(f"Could not read {file_name}", {"cause": str(e)}) from e

    doc = DocumentRecord(
        document_id=str(uuid.uuid4()),
        course_id=course_id,
        unit_name=unit_name,
        file_name=file_name,
        mime_type=file.content_type or mime_type_for(file_name),
        document_type=document_type,
    )
    # The record goes first; if ingestion fails the reconciler never touches
    # it, and a retry re-ingests under the same document id.
    tutor.metadata.save_document(doc)
    logger.info("Registered document %s (%s) for %s/%s", doc.document_id, file_name, course_id, unit_name)
    return await run_in_threadpool(tutor.ingest_document, doc, raw_text)

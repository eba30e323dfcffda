from typing import Annotated

from fastapi import APIRouter, Depends
from sqlmodel import Session

from coworks.api.deps import get_db, get_workflow_service
from coworks.api.errors import http_error
from coworks.schemas.document import DocumentRead, RejectionRequest, SignatureSubmission
from coworks.services.document import DocumentService
from coworks.services.workflow import WorkflowService

router = APIRouter(prefix="/public/sign", tags=["public-signatures"])


@router.post("/{token}/approve", response_model=DocumentRead)
def approve_by_token(
    token: str,
    payload: SignatureSubmission,
    workflow: Annotated[WorkflowService, Depends(get_workflow_service)],
    session: Annotated[Session, Depends(get_db)],
) -> DocumentRead:
    try:
        document = workflow.approve_document_by_token(token, payload.signature_data)
    except ValueError as exc:
        raise http_error(exc) from exc
    return DocumentService(session).build_document_read(document, sanitize=True)


@router.post("/{token}/reject", response_model=DocumentRead)
def reject_by_token(
    token: str,
    workflow: Annotated[WorkflowService, Depends(get_workflow_service)],
    session: Annotated[Session, Depends(get_db)],
    payload: RejectionRequest | None = None,
) -> DocumentRead:
    try:
        document = workflow.reject_document_by_token(token, payload.reason if payload else None)
    except ValueError as exc:
        raise http_error(exc) from exc
    return DocumentService(session).build_document_read(document, sanitize=True)

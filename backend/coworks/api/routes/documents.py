from typing import Annotated, List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from coworks.api.deps import get_actor, get_db, get_workflow_service
from coworks.api.errors import http_error
from coworks.schemas.document import (
    AssigneeRequest,
    CapabilityRead,
    DeadlineUpdate,
    DocumentCreate,
    DocumentDataUpdate,
    DocumentRead,
    RejectionRequest,
    ReviewDecision,
    ReviewerAssignmentComplete,
    SignatureSubmission,
    SignerBatchRequest,
    SignerBatchResult,
    ViewedResponse,
)
from coworks.services.document import DocumentService
from coworks.services.identity import ActorContext
from coworks.services.workflow import WorkflowService

router = APIRouter(prefix="/documents", tags=["documents"])

Actor = Annotated[ActorContext, Depends(get_actor)]
Workflow = Annotated[WorkflowService, Depends(get_workflow_service)]
DB = Annotated[Session, Depends(get_db)]


def _read(session: Session, document) -> DocumentRead:  # type: ignore[no-untyped-def]
    return DocumentService(session).build_document_read(document)


@router.post("", response_model=DocumentRead, status_code=status.HTTP_201_CREATED)
def create_document(payload: DocumentCreate, actor: Actor, workflow: Workflow, session: DB) -> DocumentRead:
    try:
        document = workflow.create_document(
            actor,
            payload.template_id,
            title=payload.title,
            editor_email=payload.editor_email,
            deadline=payload.deadline,
        )
    except ValueError as exc:
        raise http_error(exc) from exc
    return _read(session, document)


@router.get("", response_model=List[DocumentRead])
def list_documents(actor: Actor, session: DB) -> List[DocumentRead]:
    service = DocumentService(session)
    return [service.build_document_read(document) for document in service.list_documents(actor)]


@router.get("/todo", response_model=List[DocumentRead])
def list_todo_documents(actor: Actor, session: DB) -> List[DocumentRead]:
    service = DocumentService(session)
    return [service.build_document_read(document) for document in service.todo_documents(actor)]


@router.get("/by-template/{template_id}", response_model=List[DocumentRead])
def list_documents_by_template(template_id: UUID, actor: Actor, session: DB) -> List[DocumentRead]:
    return DocumentService(session).documents_by_template(template_id, actor)


@router.get("/{document_id}", response_model=DocumentRead)
def get_document(document_id: UUID, actor: Actor, session: DB) -> DocumentRead:
    service = DocumentService(session)
    try:
        document = service.get_document_for(document_id, actor)
    except ValueError as exc:
        raise http_error(exc) from exc
    return service.build_document_read(document)


@router.put("/{document_id}", response_model=DocumentRead)
def update_document_data(
    document_id: UUID, payload: DocumentDataUpdate, actor: Actor, workflow: Workflow, session: DB
) -> DocumentRead:
    try:
        document = workflow.update_document_data(document_id, actor, payload.data, payload.deadline)
    except ValueError as exc:
        raise http_error(exc) from exc
    return _read(session, document)


@router.patch("/{document_id}/deadline", response_model=DocumentRead)
def update_deadline(document_id: UUID, payload: DeadlineUpdate, actor: Actor, workflow: Workflow, session: DB) -> DocumentRead:
    try:
        document = workflow.update_deadline(document_id, actor, payload.deadline)
    except ValueError as exc:
        raise http_error(exc) from exc
    return _read(session, document)


@router.post("/{document_id}/start-editing", response_model=DocumentRead)
def start_editing(document_id: UUID, actor: Actor, workflow: Workflow, session: DB) -> DocumentRead:
    try:
        document = workflow.start_editing(document_id, actor)
    except ValueError as exc:
        raise http_error(exc) from exc
    return _read(session, document)


@router.post("/{document_id}/submit-for-review", response_model=DocumentRead)
def submit_for_review(document_id: UUID, actor: Actor, workflow: Workflow, session: DB) -> DocumentRead:
    try:
        document = workflow.submit_for_review(document_id, actor)
    except ValueError as exc:
        raise http_error(exc) from exc
    return _read(session, document)


@router.post("/{document_id}/complete-editing", response_model=DocumentRead)
def complete_editing(document_id: UUID, actor: Actor, workflow: Workflow, session: DB) -> DocumentRead:
    try:
        document = workflow.complete_editing(document_id, actor)
    except ValueError as exc:
        raise http_error(exc) from exc
    return _read(session, document)


@router.post("/{document_id}/assign-editor", response_model=DocumentRead)
def assign_editor(document_id: UUID, payload: AssigneeRequest, actor: Actor, workflow: Workflow, session: DB) -> DocumentRead:
    try:
        document = workflow.assign_editor(document_id, actor, payload.email, payload.name)
    except ValueError as exc:
        raise http_error(exc) from exc
    return _read(session, document)


@router.post("/{document_id}/assign-reviewer", response_model=DocumentRead)
def assign_reviewer(
    document_id: UUID, payload: AssigneeRequest, actor: Actor, workflow: Workflow, session: DB
) -> DocumentRead:
    try:
        document = workflow.assign_reviewer(document_id, actor, payload.email, payload.name)
    except ValueError as exc:
        raise http_error(exc) from exc
    return _read(session, document)


@router.post("/{document_id}/assign-signer", response_model=DocumentRead)
def assign_signer(document_id: UUID, payload: AssigneeRequest, actor: Actor, workflow: Workflow, session: DB) -> DocumentRead:
    try:
        document = workflow.assign_signer(document_id, actor, payload.email, payload.name)
    except ValueError as exc:
        raise http_error(exc) from exc
    return _read(session, document)


@router.post("/{document_id}/assign-signers-batch", response_model=SignerBatchResult)
def assign_signers_batch(
    document_id: UUID, payload: SignerBatchRequest, actor: Actor, workflow: Workflow, session: DB
) -> SignerBatchResult:
    try:
        document, result = workflow.assign_signers_batch(document_id, actor, payload.emails)
    except ValueError as exc:
        raise http_error(exc) from exc
    return SignerBatchResult(document=_read(session, document), assigned=result.assigned, failed=result.failed)


@router.delete("/{document_id}/reviewers/{email}", response_model=DocumentRead)
def remove_reviewer(document_id: UUID, email: str, actor: Actor, workflow: Workflow, session: DB) -> DocumentRead:
    try:
        document = workflow.remove_reviewer(document_id, actor, email)
    except ValueError as exc:
        raise http_error(exc) from exc
    return _read(session, document)


@router.delete("/{document_id}/signers/{email}", response_model=DocumentRead)
def remove_signer(document_id: UUID, email: str, actor: Actor, workflow: Workflow, session: DB) -> DocumentRead:
    try:
        document = workflow.remove_signer(document_id, actor, email)
    except ValueError as exc:
        raise http_error(exc) from exc
    return _read(session, document)


@router.post("/{document_id}/complete-reviewer-assignment", response_model=DocumentRead)
def complete_reviewer_assignment(
    document_id: UUID,
    actor: Actor,
    workflow: Workflow,
    session: DB,
    payload: ReviewerAssignmentComplete | None = None,
) -> DocumentRead:
    skip_review = payload.skip_review if payload else False
    try:
        document = workflow.complete_reviewer_assignment(document_id, actor, skip_review=skip_review)
    except ValueError as exc:
        raise http_error(exc) from exc
    return _read(session, document)


@router.post("/{document_id}/complete-signer-assignment", response_model=DocumentRead)
def complete_signer_assignment(document_id: UUID, actor: Actor, workflow: Workflow, session: DB) -> DocumentRead:
    try:
        document = workflow.complete_signer_assignment(document_id, actor)
    except ValueError as exc:
        raise http_error(exc) from exc
    return _read(session, document)


@router.post("/{document_id}/review/approve", response_model=DocumentRead)
def approve_review(
    document_id: UUID, actor: Actor, workflow: Workflow, session: DB, payload: ReviewDecision | None = None
) -> DocumentRead:
    try:
        document = workflow.approve_review(document_id, actor, payload.comment if payload else None)
    except ValueError as exc:
        raise http_error(exc) from exc
    return _read(session, document)


@router.post("/{document_id}/review/reject", response_model=DocumentRead)
def reject_review(
    document_id: UUID, actor: Actor, workflow: Workflow, session: DB, payload: RejectionRequest | None = None
) -> DocumentRead:
    try:
        document = workflow.reject_review(document_id, actor, payload.reason if payload else None)
    except ValueError as exc:
        raise http_error(exc) from exc
    return _read(session, document)


@router.post("/{document_id}/sign/approve", response_model=DocumentRead)
def approve_document(
    document_id: UUID, payload: SignatureSubmission, actor: Actor, workflow: Workflow, session: DB
) -> DocumentRead:
    try:
        document = workflow.approve_document(document_id, actor, payload.signature_data)
    except ValueError as exc:
        raise http_error(exc) from exc
    return _read(session, document)


@router.post("/{document_id}/sign/reject", response_model=DocumentRead)
def reject_document(
    document_id: UUID, actor: Actor, workflow: Workflow, session: DB, payload: RejectionRequest | None = None
) -> DocumentRead:
    try:
        document = workflow.reject_document(document_id, actor, payload.reason if payload else None)
    except ValueError as exc:
        raise http_error(exc) from exc
    return _read(session, document)


@router.get("/{document_id}/can-review", response_model=CapabilityRead)
def can_review(document_id: UUID, actor: Actor, session: DB) -> CapabilityRead:
    try:
        allowed = DocumentService(session).can_review(document_id, actor)
    except ValueError as exc:
        raise http_error(exc) from exc
    return CapabilityRead(allowed=allowed)


@router.get("/{document_id}/can-sign", response_model=CapabilityRead)
def can_sign(document_id: UUID, actor: Actor, session: DB) -> CapabilityRead:
    try:
        allowed = DocumentService(session).can_sign(document_id, actor)
    except ValueError as exc:
        raise http_error(exc) from exc
    return CapabilityRead(allowed=allowed)


@router.get("/{document_id}/can-assign-reviewer", response_model=CapabilityRead)
def can_assign_reviewer(document_id: UUID, actor: Actor, session: DB) -> CapabilityRead:
    try:
        allowed = DocumentService(session).can_assign_reviewer(document_id, actor)
    except ValueError as exc:
        raise http_error(exc) from exc
    return CapabilityRead(allowed=allowed)


@router.post("/{document_id}/view", response_model=ViewedResponse)
def mark_document_as_viewed(document_id: UUID, actor: Actor, session: DB) -> ViewedResponse:
    try:
        updated = DocumentService(session).mark_document_as_viewed(document_id, actor)
    except ValueError as exc:
        raise http_error(exc) from exc
    return ViewedResponse(updated=updated)


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_document(document_id: UUID, actor: Actor, workflow: Workflow) -> None:
    try:
        workflow.delete_document(document_id, actor)
    except ValueError as exc:
        raise http_error(exc) from exc

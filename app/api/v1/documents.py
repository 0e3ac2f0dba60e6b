import uuid
from typing import List, Optional
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from app.core.dependencies import get_current_user, get_document_service
from app.db.schema import DocumentEntityType, DocumentType, User
from app.models.common import MessageRead, Page
from app.models.document import (
    DocumentRead, DocumentStats, DocumentUpdate, EntityDocuments, EntityRef
)
from app.services.document import DocumentService


router = APIRouter()


@router.post(
    "/",
    response_model=DocumentRead,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a document",
    description="Multipart upload linked to one collection event, batch, ledger event or finished good."
)
def upload_document(
    file: UploadFile = File(...),
    document_type: DocumentType = Form(...),
    entity_type: DocumentEntityType = Form(...),
    entity_id: uuid.UUID = Form(...),
    description: Optional[str] = Form(None, max_length=1000),
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service)
):
    document = service.upload(
        current_user, file, document_type, EntityRef(kind=entity_type, id=entity_id), description)
    return DocumentRead.from_document(document)


@router.get(
    "/",
    response_model=Page[DocumentRead],
    summary="List documents"
)
def list_documents(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    document_type: Optional[DocumentType] = Query(None),
    entity_type: Optional[DocumentEntityType] = Query(None),
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service)
):
    return service.list_documents(page, limit, document_type, entity_type)


@router.get("/stats", response_model=DocumentStats, summary="Document statistics")
def get_stats(
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service)
):
    return service.get_stats()


@router.get("/search", response_model=List[DocumentRead], summary="Search documents")
def search_documents(
    q: str = Query(..., min_length=1, description="Matches file name or description"),
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service)
):
    return service.search(q)


@router.get(
    "/entity/{entity_type}/{entity_id}",
    response_model=EntityDocuments,
    summary="Documents of one entity",
    description="Grouped by document type."
)
def get_entity_documents(
    entity_type: DocumentEntityType,
    entity_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service)
):
    return service.get_entity_documents(EntityRef(kind=entity_type, id=entity_id))


@router.get("/{document_id}", response_model=DocumentRead, summary="Get document")
def get_document(
    document_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service)
):
    return DocumentRead.from_document(service.get_document(document_id))


@router.patch("/{document_id}", response_model=DocumentRead, summary="Update document")
def update_document(
    document_id: uuid.UUID,
    data: DocumentUpdate,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service)
):
    return DocumentRead.from_document(service.update_document(current_user, document_id, data))


@router.delete(
    "/{document_id}",
    response_model=MessageRead,
    summary="Delete document",
    description="Removes the database record and the stored file."
)
def delete_document(
    document_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service)
):
    return service.delete_document(current_user, document_id)

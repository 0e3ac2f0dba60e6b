from collections import defaultdict
from typing import List, Optional
from uuid import UUID

from fastapi import HTTPException, UploadFile, status
from loguru import logger
from sqlmodel import Session, select, col, func, or_

from app.db.schema import (
    User, UserRole, Document, DocumentType, DocumentEntityType, CollectionEvent,
    RawMaterialBatch, SupplyChainEvent, FinishedGood
)
from app.models.common import Page
from app.models.document import (
    ENTITY_LINK_COLUMNS, EntityRef, DocumentUpdate, DocumentRead, EntityDocuments,
    DocumentStats
)
from app.services.pagination import paginate
from app.utils.file_storage import DOCUMENT_URL_PREFIX, delete_document_file, save_document_file


ENTITY_TABLES = {
    DocumentEntityType.COLLECTION_EVENT: CollectionEvent,
    DocumentEntityType.RAW_MATERIAL_BATCH: RawMaterialBatch,
    DocumentEntityType.SUPPLY_CHAIN_EVENT: SupplyChainEvent,
    DocumentEntityType.FINISHED_GOOD: FinishedGood,
}


class DocumentService:
    """
    Uploaded files attached to exactly one supply-chain entity.
    """

    def __init__(self, session: Session):
        self.session = session

    def get_document(self, document_id: UUID) -> Document:
        document = self.session.get(Document, document_id)
        if not document:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Document not found."
            )
        return document

    def _ensure_target_exists(self, ref: EntityRef) -> None:
        if not self.session.get(ENTITY_TABLES[ref.kind], ref.id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"{ref.kind.value} {ref.id} not found."
            )

    def _ensure_can_modify(self, user: User, document: Document) -> None:
        if document.uploaded_by_id != user.id and user.role not in (UserRole.ADMIN, UserRole.SUPER_ADMIN):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only the uploader can modify this document."
            )

    def upload(
        self,
        user: User,
        upload_file: UploadFile,
        document_type: DocumentType,
        ref: EntityRef,
        description: Optional[str] = None,
    ) -> Document:
        """
        Stores the file and links it to its entity. The file is removed again
        if the database write fails.

        Raises:
            HTTPException(400): Extension not allowed.
            HTTPException(404): The target entity does not exist.
            HTTPException(413): File too large.
        """
        self._ensure_target_exists(ref)

        file_name, file_url, size = save_document_file(upload_file)

        try:
            document = Document(
                file_name=file_name,
                original_name=upload_file.filename or file_name,
                file_url=file_url,
                file_size=size,
                mime_type=upload_file.content_type,
                document_type=document_type,
                description=description,
                uploaded_by_id=user.id,
                **ref.as_columns(),
            )
            self.session.add(document)
            self.session.commit()
            self.session.refresh(document)
        except Exception as e:
            self.session.rollback()
            delete_document_file(file_name)
            logger.error(f"Document upload failed for {ref.kind.value} {ref.id}: {e}")
            raise e

        logger.info(f"Document {document.id} attached to {ref.kind.value} {ref.id}")
        return document

    def list_documents(
        self,
        page: int = 1,
        limit: int = 10,
        document_type: Optional[DocumentType] = None,
        entity_type: Optional[DocumentEntityType] = None,
    ) -> Page:
        query = select(Document)
        if document_type:
            query = query.where(Document.document_type == document_type)
        if entity_type:
            column = getattr(Document, ENTITY_LINK_COLUMNS[entity_type])
            query = query.where(col(column).is_not(None))

        result = paginate(self.session, query.order_by(Document.created_at.desc()), page, limit)
        result.items = [DocumentRead.from_document(d) for d in result.items]
        return result

    def search(self, q: str, limit: int = 50) -> List[DocumentRead]:
        pattern = f"%{q.lower()}%"
        documents = self.session.exec(
            select(Document)
            .where(or_(
                func.lower(Document.original_name).like(pattern),
                func.lower(Document.description).like(pattern),
            ))
            .order_by(Document.created_at.desc())
            .limit(limit)
        ).all()
        return [DocumentRead.from_document(d) for d in documents]

    def get_entity_documents(self, ref: EntityRef) -> EntityDocuments:
        """All documents of one entity, grouped by document type."""
        column = getattr(Document, ENTITY_LINK_COLUMNS[ref.kind])
        documents = self.session.exec(
            select(Document).where(column == ref.id).order_by(Document.created_at.desc())
        ).all()

        grouped = defaultdict(list)
        for document in documents:
            grouped[document.document_type.value].append(DocumentRead.from_document(document))

        return EntityDocuments(entity=ref, total=len(documents), by_type=dict(grouped))

    def get_stats(self) -> DocumentStats:
        total, size = self.session.exec(
            select(func.count(Document.id), func.coalesce(func.sum(Document.file_size), 0))
        ).one()
        type_rows = self.session.exec(
            select(Document.document_type, func.count(Document.id)).group_by(Document.document_type)
        ).all()

        by_entity = {}
        for kind, column_name in ENTITY_LINK_COLUMNS.items():
            column = getattr(Document, column_name)
            by_entity[kind.value] = self.session.exec(
                select(func.count(Document.id)).where(col(column).is_not(None))
            ).one()

        return DocumentStats(
            total_documents=total,
            total_size_bytes=int(size),
            by_document_type={t.value: c for t, c in type_rows},
            by_entity_type=by_entity,
        )

    def update_document(self, user: User, document_id: UUID, data: DocumentUpdate) -> Document:
        document = self.get_document(document_id)
        self._ensure_can_modify(user, document)

        update_data = data.model_dump(exclude_unset=True)
        for key, value in update_data.items():
            setattr(document, key, value)

        self.session.add(document)
        self.session.commit()
        self.session.refresh(document)
        return document

    def delete_document(self, user: User, document_id: UUID) -> dict:
        document = self.get_document(document_id)
        self._ensure_can_modify(user, document)

        file_name = document.file_name
        stored_locally = DOCUMENT_URL_PREFIX in document.file_url
        self.session.delete(document)
        self.session.commit()

        # Photos linked by URL at collection time have no local file
        if stored_locally:
            delete_document_file(file_name)
        return {"message": "Document deleted.", "id": document_id}

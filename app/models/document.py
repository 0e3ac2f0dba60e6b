from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID
from sqlmodel import SQLModel, Field
from app.db.schema import DocumentEntityType, DocumentType


# Column on the Document table that holds the link for each entity kind
ENTITY_LINK_COLUMNS = {
    DocumentEntityType.COLLECTION_EVENT: "collection_event_id",
    DocumentEntityType.RAW_MATERIAL_BATCH: "raw_material_batch_id",
    DocumentEntityType.SUPPLY_CHAIN_EVENT: "supply_chain_event_id",
    DocumentEntityType.FINISHED_GOOD: "finished_good_id",
}


class EntityRef(SQLModel):
    """Tagged reference to the single entity a document belongs to."""
    kind: DocumentEntityType
    id: UUID

    @classmethod
    def from_document(cls, document) -> Optional['EntityRef']:
        for kind, column in ENTITY_LINK_COLUMNS.items():
            value = getattr(document, column)
            if value is not None:
                return cls(kind=kind, id=value)
        return None

    def as_columns(self) -> Dict[str, Optional[UUID]]:
        """Spreads the reference over the four nullable FK columns."""
        columns = {column: None for column in ENTITY_LINK_COLUMNS.values()}
        columns[ENTITY_LINK_COLUMNS[self.kind]] = self.id
        return columns


class DocumentUpdate(SQLModel):
    document_type: Optional[DocumentType] = None
    description: Optional[str] = Field(default=None, max_length=1000)
    original_name: Optional[str] = Field(default=None, max_length=255)


class DocumentRead(SQLModel):
    id: UUID
    file_name: str
    original_name: str
    file_url: str
    file_size: int
    mime_type: Optional[str] = None
    document_type: DocumentType
    description: Optional[str] = None
    uploaded_by_id: UUID
    entity: Optional[EntityRef] = None
    created_at: datetime

    @classmethod
    def from_document(cls, document) -> 'DocumentRead':
        return cls(
            id=document.id,
            file_name=document.file_name,
            original_name=document.original_name,
            file_url=document.file_url,
            file_size=document.file_size,
            mime_type=document.mime_type,
            document_type=document.document_type,
            description=document.description,
            uploaded_by_id=document.uploaded_by_id,
            entity=EntityRef.from_document(document),
            created_at=document.created_at,
        )


class EntityDocuments(SQLModel):
    entity: EntityRef
    total: int
    by_type: Dict[str, List[DocumentRead]]


class DocumentStats(SQLModel):
    total_documents: int
    total_size_bytes: int
    by_document_type: Dict[str, int]
    by_entity_type: Dict[str, int]

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from pydantic import Base64Bytes, BaseModel, ConfigDict, Field, model_validator

from docrouting.models.routing import (
    DocumentStatus,
    DocumentType,
    RecipientStatus,
    UploadType,
)


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


class FileUpload(BaseModel):
    filename: str = Field(min_length=1, max_length=500)
    content: Base64Bytes
    mime_type: str | None = None


class DocumentFileRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    document_id: UUID
    document_recipient_id: UUID | None = None
    original_filename: str
    mime_type: str
    file_size: int
    uploaded_by: UUID
    upload_type: UploadType
    created_at: datetime


class DownloadURLResponse(BaseModel):
    url: str


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class DocumentCreate(BaseModel):
    subject: str = Field(min_length=1, max_length=255)
    description: str | None = None
    document_type: DocumentType
    recipient_department_ids: list[UUID] = Field(min_length=1)
    through_department_ids: list[UUID] = Field(default_factory=list)
    order_number: str | None = Field(default=None, max_length=255)
    signatory: str | None = None
    request_from_department: str | None = None
    files: list[FileUpload] = Field(default_factory=list)


class DocumentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    owner_id: UUID
    department_id: UUID
    subject: str
    description: str | None = None
    document_type: DocumentType
    status: DocumentStatus
    order_number: str
    order_date: date
    signatory: str | None = None
    request_from_department: str | None = None
    through_department_ids: list | None = None
    is_public: bool
    barcode_value: str | None = None
    created_at: datetime
    updated_at: datetime


class RecipientRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    document_id: UUID
    sequence: int
    department_id: UUID | None = None
    user_id: UUID | None = None
    forwarded_by: UUID | None = None
    final_recipient_department_id: UUID | None = None
    status: RecipientStatus
    is_active: bool
    comments: str | None = None
    responded_at: datetime | None = None
    received_at: datetime | None = None
    received_by: UUID | None = None
    created_at: datetime


class DocumentListItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    document: DocumentRead
    latest_entry: RecipientRead | None = None
    state: str
    overstayed: bool = False
    can_respond: bool = False


class TransitionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    document: DocumentRead
    entry: RecipientRead | None = None
    failed_uploads: list[str] = Field(default_factory=list)


class OrderNumberPreview(BaseModel):
    order_number: str


# ---------------------------------------------------------------------------
# Routing requests
# ---------------------------------------------------------------------------


class ForwardRequest(BaseModel):
    department_id: UUID | None = None
    user_id: UUID | None = None
    comments: str | None = None
    files: list[FileUpload] = Field(default_factory=list)

    @model_validator(mode="after")
    def _one_target(self) -> ForwardRequest:
        if (self.department_id is None) == (self.user_id is None):
            raise ValueError("Provide exactly one of department_id or user_id")
        return self


class RespondRequest(BaseModel):
    decision: RecipientStatus
    comments: str | None = None
    files: list[FileUpload] = Field(default_factory=list)


class ResendRequest(BaseModel):
    department_id: UUID
    subject: str | None = Field(default=None, max_length=255)
    description: str | None = None
    order_number: str | None = Field(default=None, max_length=255)
    files: list[FileUpload] = Field(default_factory=list)


class BarcodeReceiveRequest(BaseModel):
    barcode: str = Field(min_length=1, max_length=255)


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------


class PublicDocumentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    subject: str
    description: str | None = None
    document_type: DocumentType
    status: DocumentStatus
    order_number: str
    barcode_value: str | None = None
    public_token: str | None = None
    created_at: datetime


class PublishResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    is_public: bool
    public_token: str | None = None
    barcode_value: str | None = None

import enum
import uuid
from datetime import date, datetime, timezone

from sqlalchemy import (
    BigInteger,
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from docrouting.db import Base


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class DocumentType(enum.Enum):
    special_order = "special_order"
    order = "order"
    memorandum = "memorandum"
    for_info = "for_info"
    letters = "letters"
    email = "email"
    travel_order = "travel_order"
    city_resolution = "city_resolution"
    invitations = "invitations"
    vouchers = "vouchers"
    diploma = "diploma"
    checks = "checks"
    job_orders = "job_orders"
    contract_of_service = "contract_of_service"
    pr = "pr"
    appointment = "appointment"
    purchase_order = "purchase_order"
    other = "other"

    @property
    def display_name(self) -> str:
        special = {
            DocumentType.for_info: "For Info",
            DocumentType.contract_of_service: "Contract of Service",
            DocumentType.pr: "PR",
        }
        if self in special:
            return special[self]
        return self.value.replace("_", " ").title()


class DocumentStatus(enum.Enum):
    pending = "pending"
    in_review = "in_review"
    approved = "approved"
    rejected = "rejected"
    returned = "returned"
    received = "received"
    cancelled = "cancelled"
    archived = "archived"


class RecipientStatus(enum.Enum):
    pending = "pending"
    forwarded = "forwarded"
    received = "received"
    approved = "approved"
    rejected = "rejected"
    returned = "returned"


class UploadType(enum.Enum):
    original = "original"
    response = "response"


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class Document(Base):
    __tablename__ = "documents"
    __table_args__ = (
        Index(
            "uq_documents_daily_order_number",
            "department_id",
            "order_scope",
            "order_number",
            "order_date",
            unique=True,
            postgresql_where=text("status <> 'archived'"),
            sqlite_where=text("status <> 'archived'"),
        ),
        Index("ix_documents_owner_id", "owner_id"),
        Index("ix_documents_status", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("people.id"), nullable=False
    )
    department_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("departments.id"), nullable=False
    )
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    document_type: Mapped[DocumentType] = mapped_column(
        Enum(DocumentType), nullable=False
    )
    status: Mapped[DocumentStatus] = mapped_column(
        Enum(DocumentStatus), default=DocumentStatus.pending
    )

    # Per-day numbering; order_scope is the document type for the
    # presidential department and empty for everyone else.
    order_number: Mapped[str] = mapped_column(String(255), nullable=False)
    order_date: Mapped[date] = mapped_column(Date, nullable=False)
    order_scope: Mapped[str] = mapped_column(String(64), nullable=False, default="")

    signatory: Mapped[str | None] = mapped_column(String(255))
    request_from_department: Mapped[str | None] = mapped_column(String(255))
    through_department_ids: Mapped[list | None] = mapped_column(JSON)

    is_public: Mapped[bool] = mapped_column(Boolean, default=False)
    public_token: Mapped[str | None] = mapped_column(String(64), unique=True)
    barcode_value: Mapped[str | None] = mapped_column(String(255), unique=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    owner = relationship("Person", foreign_keys=[owner_id])
    department = relationship("Department", foreign_keys=[department_id])
    recipients = relationship(
        "DocumentRecipient",
        back_populates="document",
        order_by="DocumentRecipient.sequence",
        cascade="all, delete-orphan",
    )
    files = relationship(
        "DocumentFile", back_populates="document", cascade="all, delete-orphan"
    )
    activity_logs = relationship(
        "DocumentActivityLog", back_populates="document", cascade="all, delete-orphan"
    )


# ---------------------------------------------------------------------------
# Routing chain entries (append-only; ordered by sequence)
# ---------------------------------------------------------------------------


class DocumentRecipient(Base):
    __tablename__ = "document_recipients"
    __table_args__ = (
        Index("ix_document_recipients_document_id", "document_id"),
        Index("ix_document_recipients_department_id", "department_id"),
        Index(
            "uq_document_recipients_active",
            "document_id",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    document_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    department_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("departments.id")
    )
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("people.id")
    )
    forwarded_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("people.id")
    )
    final_recipient_department_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("departments.id")
    )
    status: Mapped[RecipientStatus] = mapped_column(
        Enum(RecipientStatus), default=RecipientStatus.pending
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=False)
    comments: Mapped[str | None] = mapped_column(Text)
    responded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    received_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    received_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("people.id")
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    document = relationship("Document", back_populates="recipients")
    department = relationship("Department", foreign_keys=[department_id])
    final_recipient = relationship(
        "Department", foreign_keys=[final_recipient_department_id]
    )
    user = relationship("Person", foreign_keys=[user_id])
    forwarder = relationship("Person", foreign_keys=[forwarded_by])
    receiver = relationship("Person", foreign_keys=[received_by])
    files = relationship("DocumentFile", back_populates="recipient")


# ---------------------------------------------------------------------------
# Files (immutable, no updated_at)
# ---------------------------------------------------------------------------


class DocumentFile(Base):
    __tablename__ = "document_files"
    __table_args__ = (Index("ix_document_files_document_id", "document_id"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    document_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False
    )
    document_recipient_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("document_recipients.id")
    )
    file_path: Mapped[str] = mapped_column(String(1024), nullable=False)
    original_filename: Mapped[str] = mapped_column(String(500), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(255), nullable=False)
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    uploaded_by: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("people.id"), nullable=False
    )
    upload_type: Mapped[UploadType] = mapped_column(
        Enum(UploadType), default=UploadType.original
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    document = relationship("Document", back_populates="files")
    recipient = relationship("DocumentRecipient", back_populates="files")
    uploader = relationship("Person", foreign_keys=[uploaded_by])


# ---------------------------------------------------------------------------
# Activity logs (append-only)
# ---------------------------------------------------------------------------


class DocumentActivityLog(Base):
    __tablename__ = "document_activity_logs"
    __table_args__ = (
        Index("ix_document_activity_logs_document_id", "document_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    document_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("people.id")
    )
    action: Mapped[str] = mapped_column(String(80), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    document = relationship("Document", back_populates="activity_logs")
    user = relationship("Person", foreign_keys=[user_id])


class UserActivityLog(Base):
    __tablename__ = "user_activity_logs"
    __table_args__ = (Index("ix_user_activity_logs_user_id", "user_id"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("people.id")
    )
    action: Mapped[str] = mapped_column(String(80), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    ip_address: Mapped[str | None] = mapped_column(String(64))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    user = relationship("Person", foreign_keys=[user_id])


# ---------------------------------------------------------------------------
# In-app notifications
# ---------------------------------------------------------------------------


class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_person_id", "person_id"),
        Index("ix_notifications_is_read", "is_read"),
        Index("ix_notifications_event_type", "event_type"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    person_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("people.id"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(80), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(36), nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    metadata_: Mapped[dict | None] = mapped_column("metadata", JSON)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    person = relationship("Person", foreign_keys=[person_id])

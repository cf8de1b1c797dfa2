"""document routing schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from alembic import op
import sqlalchemy as sa

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

DOCUMENT_TYPES = (
    "special_order",
    "order",
    "memorandum",
    "for_info",
    "letters",
    "email",
    "travel_order",
    "city_resolution",
    "invitations",
    "vouchers",
    "diploma",
    "checks",
    "job_orders",
    "contract_of_service",
    "pr",
    "appointment",
    "purchase_order",
    "other",
)


def upgrade() -> None:
    # --- Enums ---
    personrole = sa.Enum("user", "admin", name="personrole")
    documenttype = sa.Enum(*DOCUMENT_TYPES, name="documenttype")
    documentstatus = sa.Enum(
        "pending",
        "in_review",
        "approved",
        "rejected",
        "returned",
        "received",
        "cancelled",
        "archived",
        name="documentstatus",
    )
    recipientstatus = sa.Enum(
        "pending",
        "forwarded",
        "received",
        "approved",
        "rejected",
        "returned",
        name="recipientstatus",
    )
    uploadtype = sa.Enum("original", "response", name="uploadtype")

    # --- Directory ---
    op.create_table(
        "departments",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("code", sa.String(length=32), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_presidential", sa.Boolean(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code", name="uq_departments_code"),
    )

    op.create_table(
        "people",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("first_name", sa.String(length=80), nullable=False),
        sa.Column("last_name", sa.String(length=80), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("department_id", sa.UUID(), nullable=True),
        sa.Column("role", personrole, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["department_id"], ["departments.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_people_email"),
    )
    op.create_index("ix_people_department_id", "people", ["department_id"])

    # --- Documents ---
    op.create_table(
        "documents",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("owner_id", sa.UUID(), nullable=False),
        sa.Column("department_id", sa.UUID(), nullable=False),
        sa.Column("subject", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("document_type", documenttype, nullable=False),
        sa.Column("status", documentstatus, nullable=False),
        sa.Column("order_number", sa.String(length=255), nullable=False),
        sa.Column("order_date", sa.Date(), nullable=False),
        sa.Column("order_scope", sa.String(length=64), nullable=False),
        sa.Column("signatory", sa.String(length=255), nullable=True),
        sa.Column("request_from_department", sa.String(length=255), nullable=True),
        sa.Column("through_department_ids", sa.JSON(), nullable=True),
        sa.Column("is_public", sa.Boolean(), nullable=False),
        sa.Column("public_token", sa.String(length=64), nullable=True),
        sa.Column("barcode_value", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["owner_id"], ["people.id"]),
        sa.ForeignKeyConstraint(["department_id"], ["departments.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("public_token", name="uq_documents_public_token"),
        sa.UniqueConstraint("barcode_value", name="uq_documents_barcode_value"),
    )
    op.create_index("ix_documents_owner_id", "documents", ["owner_id"])
    op.create_index("ix_documents_status", "documents", ["status"])
    op.create_index(
        "uq_documents_daily_order_number",
        "documents",
        ["department_id", "order_scope", "order_number", "order_date"],
        unique=True,
        postgresql_where=sa.text("status <> 'archived'"),
    )

    op.create_table(
        "document_recipients",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("document_id", sa.UUID(), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("department_id", sa.UUID(), nullable=True),
        sa.Column("user_id", sa.UUID(), nullable=True),
        sa.Column("forwarded_by", sa.UUID(), nullable=True),
        sa.Column("final_recipient_department_id", sa.UUID(), nullable=True),
        sa.Column("status", recipientstatus, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("comments", sa.Text(), nullable=True),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("received_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("received_by", sa.UUID(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["document_id"], ["documents.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["department_id"], ["departments.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["people.id"]),
        sa.ForeignKeyConstraint(["forwarded_by"], ["people.id"]),
        sa.ForeignKeyConstraint(
            ["final_recipient_department_id"], ["departments.id"]
        ),
        sa.ForeignKeyConstraint(["received_by"], ["people.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_document_recipients_document_id", "document_recipients", ["document_id"]
    )
    op.create_index(
        "ix_document_recipients_department_id",
        "document_recipients",
        ["department_id"],
    )
    op.create_index(
        "uq_document_recipients_active",
        "document_recipients",
        ["document_id"],
        unique=True,
        postgresql_where=sa.text("is_active"),
    )

    op.create_table(
        "document_files",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("document_id", sa.UUID(), nullable=False),
        sa.Column("document_recipient_id", sa.UUID(), nullable=True),
        sa.Column("file_path", sa.String(length=1024), nullable=False),
        sa.Column("original_filename", sa.String(length=500), nullable=False),
        sa.Column("mime_type", sa.String(length=255), nullable=False),
        sa.Column("file_size", sa.BigInteger(), nullable=False),
        sa.Column("uploaded_by", sa.UUID(), nullable=False),
        sa.Column("upload_type", uploadtype, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["document_id"], ["documents.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["document_recipient_id"], ["document_recipients.id"]
        ),
        sa.ForeignKeyConstraint(["uploaded_by"], ["people.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_document_files_document_id", "document_files", ["document_id"])

    # --- Activity logs ---
    op.create_table(
        "document_activity_logs",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("document_id", sa.UUID(), nullable=False),
        sa.Column("user_id", sa.UUID(), nullable=True),
        sa.Column("action", sa.String(length=80), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["document_id"], ["documents.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["people.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_document_activity_logs_document_id",
        "document_activity_logs",
        ["document_id"],
    )

    op.create_table(
        "user_activity_logs",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("user_id", sa.UUID(), nullable=True),
        sa.Column("action", sa.String(length=80), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["people.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_user_activity_logs_user_id", "user_activity_logs", ["user_id"])

    # --- Notifications ---
    op.create_table(
        "notifications",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("person_id", sa.UUID(), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("event_type", sa.String(length=100), nullable=False),
        sa.Column("entity_type", sa.String(length=80), nullable=False),
        sa.Column("entity_id", sa.String(length=36), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["person_id"], ["people.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_notifications_person_id", "notifications", ["person_id"])
    op.create_index("ix_notifications_is_read", "notifications", ["is_read"])
    op.create_index("ix_notifications_event_type", "notifications", ["event_type"])


def downgrade() -> None:
    op.drop_index("ix_notifications_event_type", table_name="notifications")
    op.drop_index("ix_notifications_is_read", table_name="notifications")
    op.drop_index("ix_notifications_person_id", table_name="notifications")
    op.drop_table("notifications")

    op.drop_index("ix_user_activity_logs_user_id", table_name="user_activity_logs")
    op.drop_table("user_activity_logs")
    op.drop_index(
        "ix_document_activity_logs_document_id", table_name="document_activity_logs"
    )
    op.drop_table("document_activity_logs")

    op.drop_index("ix_document_files_document_id", table_name="document_files")
    op.drop_table("document_files")

    op.drop_index("uq_document_recipients_active", table_name="document_recipients")
    op.drop_index(
        "ix_document_recipients_department_id", table_name="document_recipients"
    )
    op.drop_index("ix_document_recipients_document_id", table_name="document_recipients")
    op.drop_table("document_recipients")

    op.drop_index("uq_documents_daily_order_number", table_name="documents")
    op.drop_index("ix_documents_status", table_name="documents")
    op.drop_index("ix_documents_owner_id", table_name="documents")
    op.drop_table("documents")

    op.drop_index("ix_people_department_id", table_name="people")
    op.drop_table("people")
    op.drop_table("departments")

    for name in (
        "uploadtype",
        "recipientstatus",
        "documentstatus",
        "documenttype",
        "personrole",
    ):
        sa.Enum(name=name).drop(op.get_bind(), checkfirst=True)

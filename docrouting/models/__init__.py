from docrouting.models.person import Department, Person, PersonRole  # noqa: F401
from docrouting.models.routing import (  # noqa: F401
    Document,
    DocumentActivityLog,
    DocumentFile,
    DocumentRecipient,
    DocumentStatus,
    DocumentType,
    Notification,
    RecipientStatus,
    UploadType,
    UserActivityLog,
)

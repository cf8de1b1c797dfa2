import uuid
from datetime import timedelta
from unittest.mock import patch

import pytest

from docrouting.errors import NotFound, Unauthorized, ValidationFailed
from docrouting.models.person import PersonRole
from docrouting.models.routing import (
    Document,
    DocumentActivityLog,
    DocumentFile,
    DocumentStatus,
    DocumentType,
    Notification,
    UploadType,
)
from docrouting.services.common import utcnow
from docrouting.services.documents import documents, is_overstayed
from docrouting.services.files import UploadedFile, document_files
from docrouting.services.identity import DepartmentTarget
from docrouting.services.routing_chain import load_entries, routing_chain


@pytest.fixture()
def mock_storage():
    with patch("docrouting.services.files.storage") as mock:
        mock.generate_storage_key.side_effect = (
            lambda document_id, name: f"documents/{document_id}/key/{name}"
        )
        yield mock


class TestSubmit:
    def test_submit_records_document(self, db_session, submit, departments, people):
        result = submit(
            people.owner,
            [departments.c],
            subject="  Travel order  ",
            description="Conference",
            document_type=DocumentType.travel_order,
        )
        document = result.document
        assert document.subject == "Travel order"
        assert document.owner_id == people.owner.id
        assert document.department_id == departments.a.id
        assert document.status == DocumentStatus.pending
        assert document.is_public is False
        assert result.entry.sequence == 1
        assert result.failed_uploads == []

        actions = {
            log.action
            for log in db_session.query(DocumentActivityLog)
            .filter(DocumentActivityLog.document_id == document.id)
            .all()
        }
        assert {"document_created", "document_sent"} <= actions

    def test_submit_notifies_recipients(self, submit, departments, people, published):
        published.reset_mock()
        submit(people.owner, [departments.c], through=[departments.b])
        event_types = [c.kwargs["event_type"] for c in published.call_args_list]
        assert event_types == ["document.created", "routing.sent"]
        sent = published.call_args_list[1].kwargs["payload"]
        assert sent["notify_department_ids"] == [str(departments.b.id)]

    def test_presidential_fields_kept_only_for_presidential_office(
        self, submit, departments, people, make_person
    ):
        president = make_person(departments.president)
        kept = submit(
            president,
            [departments.c],
            signatory="President",
            request_from_department="Registrar",
        ).document
        dropped = submit(people.owner, [departments.c], signatory="Someone").document
        assert kept.signatory == "President"
        assert kept.request_from_department == "Registrar"
        assert dropped.signatory is None

    def test_actor_without_department_rejected(self, submit, departments, make_person):
        with pytest.raises(Unauthorized):
            submit(make_person(None), [departments.c])

    def test_inactive_actor_rejected(self, submit, departments, make_person):
        with pytest.raises(Unauthorized):
            submit(make_person(departments.a, is_active=False), [departments.c])

    def test_failed_submit_leaves_nothing_behind(
        self, db_session, submit, departments, people
    ):
        with pytest.raises(ValidationFailed):
            submit(people.owner, [departments.b, departments.c])
        assert db_session.query(Document).count() == 0

    def test_files_attached_as_originals(
        self, db_session, submit, departments, people, mock_storage
    ):
        files = [UploadedFile("memo.pdf", b"%PDF-1.4", "application/pdf")]
        result = submit(people.owner, [departments.c], files=files)
        stored = db_session.query(DocumentFile).all()
        assert len(stored) == 1
        assert stored[0].upload_type == UploadType.original
        assert stored[0].original_filename == "memo.pdf"
        assert stored[0].file_size == 8
        assert stored[0].document_recipient_id is None
        assert result.failed_uploads == []
        mock_storage.store.assert_called_once()

    def test_storage_failure_is_reported_not_fatal(
        self, db_session, submit, departments, people, mock_storage
    ):
        mock_storage.store.side_effect = RuntimeError("bucket down")
        files = [UploadedFile("memo.pdf", b"data")]
        result = submit(people.owner, [departments.c], files=files)
        assert result.failed_uploads == ["memo.pdf"]
        assert result.document.status == DocumentStatus.pending
        assert db_session.query(DocumentFile).count() == 0

    def test_oversize_file_rejected(self, submit, departments, people, mock_storage):
        with patch("docrouting.services.files.settings") as mock_settings:
            mock_settings.max_upload_bytes = 4
            mock_settings.allowed_upload_extensions = ("pdf",)
            with pytest.raises(ValidationFailed):
                submit(
                    people.owner,
                    [departments.c],
                    files=[UploadedFile("big.pdf", b"12345")],
                )
        mock_storage.store.assert_not_called()

    def test_disallowed_extension_rejected(self, submit, departments, people):
        with pytest.raises(ValidationFailed):
            submit(people.owner, [departments.c], files=[UploadedFile("run.exe", b"x")])


class TestResponseFiles:
    def test_forward_files_link_to_new_entry(
        self, db_session, submit, departments, people, actor, mock_storage
    ):
        document = submit(people.owner, [departments.c], through=[departments.b]).document
        result = routing_chain.forward(
            db_session,
            document.id,
            actor(people.b_user),
            DepartmentTarget(departments.c.id),
            files=[UploadedFile("endorsement.pdf", b"ok")],
        )
        stored = db_session.query(DocumentFile).one()
        assert stored.document_recipient_id == result.entry.id
        assert stored.upload_type == UploadType.response


class TestGet:
    def test_visibility(self, db_session, submit, departments, people, actor):
        document = submit(people.owner, [departments.c]).document
        assert documents.get(db_session, document.id, actor(people.c_user)).id == document.id
        with pytest.raises(Unauthorized):
            documents.get(db_session, document.id, actor(people.d_user))

    def test_missing(self, db_session, people, actor):
        with pytest.raises(NotFound):
            documents.get(db_session, uuid.uuid4(), actor(people.owner))


class TestList:
    def _list(self, db_session, actor, box="all"):
        return documents.list(db_session, actor, box, "created_at", "desc", 50, 0)

    def test_boxes(self, db_session, submit, departments, people, actor):
        mine = submit(people.owner, [departments.c], through=[departments.b]).document
        theirs = submit(people.c_user, [departments.a]).document

        owned = self._list(db_session, actor(people.owner), "owned")
        inbox = self._list(db_session, actor(people.owner), "inbox")
        everything = self._list(db_session, actor(people.owner))
        assert [i.document.id for i in owned] == [mine.id]
        assert [i.document.id for i in inbox] == [theirs.id]
        assert {i.document.id for i in everything} == {mine.id, theirs.id}

        b_inbox = self._list(db_session, actor(people.b_user), "inbox")
        assert [i.document.id for i in b_inbox] == [mine.id]
        assert b_inbox[0].latest_entry.department_id == departments.b.id
        assert b_inbox[0].state == "awaiting_action"
        assert b_inbox[0].can_respond is True
        assert owned[0].can_respond is False

    def test_returned_box(self, db_session, submit, departments, people, actor):
        document = submit(people.owner, [departments.c]).document
        routing_chain.respond(
            db_session, document.id, actor(people.c_user), "returned", comments="Redo"
        )
        returned = self._list(db_session, actor(people.owner), "returned")
        assert [i.document.id for i in returned] == [document.id]
        assert returned[0].state == "returned"

    def test_can_respond_follows_the_chain(
        self, db_session, submit, departments, people, actor
    ):
        document = submit(people.owner, [departments.c], through=[departments.b]).document
        routing_chain.forward(
            db_session,
            document.id,
            actor(people.b_user),
            DepartmentTarget(departments.d.id),
        )

        b_items = self._list(db_session, actor(people.b_user), "inbox")
        d_items = self._list(db_session, actor(people.d_user), "inbox")
        assert b_items[0].can_respond is False
        assert d_items[0].can_respond is True

    def test_invalid_box(self, db_session, people, actor):
        with pytest.raises(ValidationFailed):
            self._list(db_session, actor(people.owner), "trash")

    def test_overstayed_flag(self, db_session, submit, departments, people, actor):
        document = submit(people.owner, [departments.c]).document
        routing_chain.receive(db_session, document.id, actor(people.c_user))
        entry = load_entries(db_session, document)[0]
        entry.received_at = utcnow() - timedelta(days=2)
        db_session.commit()

        items = self._list(db_session, actor(people.c_user), "inbox")
        assert items[0].overstayed is True

    def test_fresh_receipt_not_overstayed(
        self, db_session, submit, departments, people, actor
    ):
        document = submit(people.owner, [departments.c]).document
        routing_chain.receive(db_session, document.id, actor(people.c_user))
        entry = load_entries(db_session, document)[0]
        assert is_overstayed(entry) is False
        assert is_overstayed(None) is False


class TestDelete:
    def test_owner_deletes_with_cleanup(
        self, db_session, submit, departments, people, actor, mock_storage
    ):
        document = submit(
            people.owner, [departments.c], files=[UploadedFile("a.pdf", b"1")]
        ).document
        db_session.add(
            Notification(
                person_id=people.c_user.id,
                title="New",
                body="New document",
                event_type="routing.sent",
                entity_type="document",
                entity_id=str(document.id),
            )
        )
        db_session.commit()
        document_id = document.id

        with patch("docrouting.services.documents.storage") as doc_storage:
            documents.delete(db_session, document_id, actor(people.owner))
            doc_storage.delete.assert_called_once_with(
                f"documents/{document_id}/key/a.pdf"
            )
        assert db_session.get(Document, document_id) is None
        assert db_session.query(Notification).count() == 0
        assert db_session.query(DocumentFile).count() == 0

    def test_department_admin_can_delete(
        self, db_session, submit, departments, people, actor, make_person
    ):
        document = submit(people.owner, [departments.c]).document
        a_admin = make_person(departments.a, role=PersonRole.admin)
        documents.delete(db_session, document.id, actor(a_admin))
        assert db_session.query(Document).count() == 0

    def test_recipient_cannot_delete(self, db_session, submit, departments, people, actor):
        document = submit(people.owner, [departments.c]).document
        with pytest.raises(Unauthorized):
            documents.delete(db_session, document.id, actor(people.c_admin))


class TestFileDeletion:
    @pytest.fixture()
    def with_file(self, submit, departments, people, mock_storage):
        return submit(
            people.owner, [departments.c], files=[UploadedFile("draft.docx", b"v1")]
        ).document

    def test_owner_deletes_file_while_returned(
        self, db_session, with_file, people, actor, mock_storage
    ):
        routing_chain.respond(
            db_session, with_file.id, actor(people.c_user), "returned", comments="v2"
        )
        record = db_session.query(DocumentFile).one()
        document_files.delete(db_session, record.id, actor(people.owner))
        assert db_session.query(DocumentFile).count() == 0
        mock_storage.delete.assert_called_once()

    def test_file_locked_while_in_review(self, db_session, with_file, people, actor):
        record = db_session.query(DocumentFile).one()
        with pytest.raises(ValidationFailed):
            document_files.delete(db_session, record.id, actor(people.owner))

    def test_only_owner_deletes_files(self, db_session, with_file, people, actor):
        record = db_session.query(DocumentFile).one()
        with pytest.raises(Unauthorized):
            document_files.delete(db_session, record.id, actor(people.c_user))

    def test_download_url_requires_visibility(
        self, db_session, with_file, people, actor, mock_storage
    ):
        mock_storage.generate_download_url.return_value = "https://files/draft.docx"
        record = db_session.query(DocumentFile).one()
        url = document_files.download_url(db_session, record.id, actor(people.c_user))
        assert url == "https://files/draft.docx"
        with pytest.raises(Unauthorized):
            document_files.download_url(db_session, record.id, actor(people.d_user))

    def test_download_url_for_missing_object(
        self, db_session, with_file, people, actor, mock_storage
    ):
        mock_storage.exists.return_value = False
        record = db_session.query(DocumentFile).one()
        with pytest.raises(NotFound):
            document_files.download_url(db_session, record.id, actor(people.owner))
        mock_storage.exists.assert_called_with(record.file_path)
        mock_storage.generate_download_url.assert_not_called()

import uuid
from unittest.mock import MagicMock, patch

from docrouting.services.event import EventType, audience, publish_event


class TestEventType:
    def test_all_event_types_have_dotted_values(self) -> None:
        for et in EventType:
            assert "." in et.value, f"{et.name} value should contain a dot"

    def test_document_events(self) -> None:
        assert EventType.document_created.value == "document.created"
        assert EventType.document_deleted.value == "document.deleted"
        assert EventType.document_published.value == "document.published"

    def test_routing_events(self) -> None:
        assert EventType.routing_sent.value == "routing.sent"
        assert EventType.routing_forwarded.value == "routing.forwarded"
        assert EventType.routing_returned.value == "routing.returned"
        assert EventType.routing_received.value == "routing.received"
        assert EventType.routing_resent.value == "routing.resent"


class TestAudience:
    def test_drops_empty_ids(self) -> None:
        department_id = uuid.uuid4()
        result = audience("Hello", person_ids=[None], department_ids=[department_id])
        assert result == {
            "message": "Hello",
            "notify_person_ids": [],
            "notify_department_ids": [str(department_id)],
        }


class TestPublishEvent:
    def test_publish_event_calls_delay(self, published: MagicMock) -> None:
        entity_id = uuid.uuid4()
        actor_id = uuid.uuid4()
        doc_id = uuid.uuid4()
        publish_event(
            EventType.routing_forwarded,
            entity_type="document",
            entity_id=entity_id,
            actor_id=actor_id,
            document_id=doc_id,
            payload={"message": "Forwarded"},
        )
        published.assert_called_once_with(
            event_type="routing.forwarded",
            entity_type="document",
            entity_id=str(entity_id),
            actor_id=str(actor_id),
            document_id=str(doc_id),
            payload={"message": "Forwarded"},
        )

    def test_publish_event_none_actor_and_document(self, published: MagicMock) -> None:
        entity_id = uuid.uuid4()
        publish_event(EventType.document_deleted, entity_type="document", entity_id=entity_id)
        published.assert_called_once_with(
            event_type="document.deleted",
            entity_type="document",
            entity_id=str(entity_id),
            actor_id=None,
            document_id=None,
            payload={},
        )

    def test_publish_event_never_raises(self, published: MagicMock) -> None:
        published.side_effect = RuntimeError("down")
        publish_event(
            EventType.document_created,
            entity_type="document",
            entity_id=uuid.uuid4(),
        )
        # Should not raise


class TestProcessEventTask:
    @patch("docrouting.tasks.notifications.dispatch_notifications.delay")
    def test_process_event_fans_out(self, mock_notif_delay: MagicMock) -> None:
        from docrouting.tasks.events import process_event

        process_event(
            event_type="routing.sent",
            entity_type="document",
            entity_id="abc",
            actor_id="actor1",
            document_id="doc1",
            payload={"message": "New document"},
        )
        mock_notif_delay.assert_called_once_with(
            event_type="routing.sent",
            entity_type="document",
            entity_id="abc",
            actor_id="actor1",
            document_id="doc1",
            payload={"message": "New document"},
        )

    @patch("docrouting.tasks.notifications.dispatch_notifications.delay")
    def test_silent_events_are_not_fanned_out(self, mock_notif_delay: MagicMock) -> None:
        from docrouting.tasks.events import process_event

        process_event(event_type="document.created", entity_type="document", entity_id="abc")
        mock_notif_delay.assert_not_called()

    @patch(
        "docrouting.tasks.notifications.dispatch_notifications.delay",
        side_effect=RuntimeError("fail"),
    )
    def test_fanout_failure_does_not_raise(self, mock_notif_delay: MagicMock) -> None:
        from docrouting.tasks.events import process_event

        process_event(
            event_type="routing.sent",
            entity_type="document",
            entity_id="abc",
            payload={"message": "New document"},
        )
        mock_notif_delay.assert_called_once()

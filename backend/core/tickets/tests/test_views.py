"""Tests for the HTTP endpoints."""

import json
import uuid
from unittest.mock import MagicMock, patch

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from django.utils import timezone

from tickets.exceptions import TranscriptionError
from tickets.models import Ticket
from tickets.services.conversation_store import ConversationStore
from tickets.services.ingest_pipeline import IngestPipeline
from tickets.services.ticket_store import TicketStore


COMPLETE_CALL_RESULT = {
    "category": "Maintenance",
    "issueType": "Clogged toilet",
    "location": "John Adams Dorm 118",
    "urgency": "MEDIUM",
    "summary": "Toilet is clogged and overflowing slightly.",
    "needsMoreInfo": False,
}


def audio_upload():
    return SimpleUploadedFile("utterance.m4a", b"fake-audio", content_type="audio/m4a")


class ProcessInputViewTests(TestCase):
    url = "/api/process-input/"

    def setUp(self):
        self.pipeline = MagicMock()
        patcher = patch("tickets.views.get_ingest_pipeline", return_value=self.pipeline)
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_missing_file(self):
        response = self.client.post(self.url, {"conversationId": "conv-1"})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Audio file is required"})
        self.pipeline.handle_utterance.assert_not_called()

    def test_processes_utterance(self):
        self.pipeline.handle_utterance.return_value = {
            "transcript": "Leak",
            "reply": "Where?",
            "ticket": None,
            "classification": None,
            "context": None,
        }

        response = self.client.post(
            self.url,
            {"file": audio_upload(), "conversationId": "conv-1", "userId": "user-1"},
        )

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["reply"], "Where?")
        self.assertEqual(body["conversationId"], "conv-1")
        args, kwargs = self.pipeline.handle_utterance.call_args
        self.assertEqual(args, (b"fake-audio", "conv-1"))
        self.assertEqual(kwargs, {"owner_id": "user-1", "mimetype": "audio/m4a"})

    def test_generates_conversation_id(self):
        self.pipeline.handle_utterance.return_value = {"transcript": ""}

        response = self.client.post(self.url, {"file": audio_upload()})

        self.assertTrue(response.json()["conversationId"].startswith("conv-"))
        self.assertIsNone(self.pipeline.handle_utterance.call_args.kwargs["owner_id"])

    def test_transcription_failure(self):
        self.pipeline.handle_utterance.side_effect = TranscriptionError("Deepgram down")

        response = self.client.post(self.url, {"file": audio_upload(), "conversationId": "c"})

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["error"], "Failed to transcribe audio")
        self.assertIn("Deepgram down", response.json()["details"])


class ConversationViewTests(TestCase):
    def test_delete_conversation(self):
        store = ConversationStore()
        store.update("conv-1", {"category": "Maintenance"})
        self.addCleanup(store.shutdown)

        with patch("tickets.views.get_conversation_store", return_value=store):
            response = self.client.delete("/api/conversations/conv-1/")

        self.assertEqual(response.json(), {"conversationId": "conv-1", "cleared": True})
        self.assertEqual(store.get("conv-1"), {})


class CallWebhookViewTests(TestCase):
    url = "/api/call/webhook/"

    def setUp(self):
        self.store = ConversationStore()
        self.addCleanup(self.store.shutdown)
        self.pipeline = IngestPipeline(
            conversation_store=self.store,
            classifier=MagicMock(),
            stt=MagicMock(),
            tts=MagicMock(),
        )
        for target, value in (
            ("tickets.views.get_conversation_store", self.store),
            ("tickets.views.get_ingest_pipeline", self.pipeline),
        ):
            patcher = patch(target, return_value=value)
            patcher.start()
            self.addCleanup(patcher.stop)

    def post_event(self, message):
        return self.client.post(
            self.url, json.dumps({"message": message}), content_type="application/json"
        )

    def call(self, **extra):
        call = {"id": "call-1", "custom": {"conversationId": "conv-call", "userId": "user-7"}}
        call.update(extra)
        return call

    def test_function_result_is_merged(self):
        response = self.post_event(
            {
                "type": "function-call-result",
                "functionCall": {"name": "extract_issue_info"},
                "result": json.dumps(COMPLETE_CALL_RESULT),
                "call": self.call(),
            }
        )

        self.assertEqual(response.json(), {"received": True})
        state = self.store.get("conv-call")
        self.assertEqual(state["issue_type"], "Clogged toilet")
        self.assertIs(state["needs_more_info"], False)

    def test_call_end_creates_single_ticket(self):
        """Duplicate end notifications finalize the conversation once."""
        self.post_event(
            {
                "type": "function-call-result",
                "functionCall": {"name": "extract_issue_info"},
                "result": COMPLETE_CALL_RESULT,
                "call": self.call(),
            }
        )

        self.post_event({"type": "status-update", "call": self.call(status="ended")})
        self.post_event({"type": "end-of-call-report", "call": self.call(transcript="...")})
        self.post_event({"type": "end-of-call-report", "call": self.call(transcript="...")})

        ticket = Ticket.objects.get()
        self.assertEqual(ticket.conversation_id, "conv-call")
        self.assertEqual(ticket.owner, "user-7")
        self.assertEqual(ticket.team, "maintenance")

    def test_incomplete_call_creates_nothing(self):
        self.store.update("conv-call", {"category": "Maintenance"})

        response = self.post_event({"type": "status-update", "call": self.call(status="ended")})

        self.assertEqual(response.json(), {"received": True})
        self.assertFalse(Ticket.objects.exists())

    def test_result_without_needs_more_info_does_not_finalize(self):
        result = {k: v for k, v in COMPLETE_CALL_RESULT.items() if k != "needsMoreInfo"}
        self.post_event(
            {
                "type": "function-call-result",
                "functionCall": {"name": "extract_issue_info"},
                "result": result,
                "call": self.call(),
            }
        )

        self.post_event({"type": "status-update", "call": self.call(status="ended")})

        self.assertEqual(self.store.get("conv-call")["location"], "John Adams Dorm 118")
        self.assertFalse(Ticket.objects.exists())

    def test_informational_events_are_acknowledged(self):
        for message in (
            {"type": "transcript", "role": "user", "transcript": "hello"},
            {"type": "function-call", "functionCall": {"name": "extract_issue_info"}},
            {"type": "status-update", "call": self.call(status="in-progress")},
            {"type": "something-new"},
            {"type": "end-of-call-report", "call": {"id": "no-custom"}},
        ):
            with self.subTest(event=message["type"]):
                self.assertEqual(self.post_event(message).json(), {"received": True})
        self.assertFalse(Ticket.objects.exists())

    def test_invalid_json(self):
        response = self.client.post(self.url, "{not json", content_type="application/json")
        self.assertEqual(response.status_code, 400)


class TicketApiTests(TestCase):
    def setUp(self):
        self.store = TicketStore()
        self.ticket = self.store.create_ticket(
            {
                "category": "Maintenance",
                "issue_type": "Sink leak",
                "location": "John Adams Dorm 204",
                "urgency": "MEDIUM",
                "summary": "Leak under the sink.",
            }
        )

    def test_list_tickets(self):
        response = self.client.get("/api/tickets/", {"team": "maintenance"})

        tickets = response.json()["tickets"]
        self.assertEqual([t["id"] for t in tickets], [str(self.ticket.id)])
        self.assertEqual(self.client.get("/api/tickets/", {"team": "ra"}).json(), {"tickets": []})

    def test_update_status(self):
        response = self.client.patch(
            f"/api/tickets/{self.ticket.id}/status/",
            json.dumps({"status": "In Progress"}),
            content_type="application/json",
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "in_progress")

    def test_update_status_errors(self):
        bad_status = self.client.patch(
            f"/api/tickets/{self.ticket.id}/status/",
            json.dumps({"status": "resolved"}),
            content_type="application/json",
        )
        missing = self.client.patch(
            f"/api/tickets/{uuid.uuid4()}/status/",
            json.dumps({"status": "closed"}),
            content_type="application/json",
        )

        self.assertEqual(bad_status.status_code, 400)
        self.assertEqual(missing.status_code, 404)

    def test_closed_report(self):
        self.store.update_status(self.ticket.id, "closed")
        today = timezone.localdate().isoformat()

        response = self.client.get("/api/tickets/closed/", {"week": today})

        body = response.json()
        self.assertEqual([t["id"] for t in body["tickets"]], [str(self.ticket.id)])
        self.assertLessEqual(body["weekStart"], today)
        self.assertGreaterEqual(body["weekEnd"], today)

    def test_closed_report_invalid_week(self):
        response = self.client.get("/api/tickets/closed/", {"week": "last week"})
        self.assertEqual(response.status_code, 400)


class HealthAndCorsTests(TestCase):
    def test_health(self):
        response = self.client.get("/health/")
        self.assertEqual(response.json(), {"status": "ok"})

    @override_settings(CORS_ALLOWED_ORIGINS=["http://localhost:8081"], CORS_ALLOW_ALL_ORIGINS=False)
    def test_allowed_origin(self):
        response = self.client.get("/health/", HTTP_ORIGIN="http://localhost:8081")
        self.assertEqual(response["Access-Control-Allow-Origin"], "http://localhost:8081")

    @override_settings(CORS_ALLOWED_ORIGINS=["http://localhost:8081"], CORS_ALLOW_ALL_ORIGINS=False)
    def test_blocked_origin(self):
        response = self.client.get("/health/", HTTP_ORIGIN="http://evil.example")
        self.assertNotIn("Access-Control-Allow-Origin", response)

    @override_settings(CORS_ALLOWED_ORIGINS=["http://localhost:8081"], CORS_ALLOW_ALL_ORIGINS=False)
    def test_blocked_preflight(self):
        response = self.client.options(
            "/api/process-input/",
            HTTP_ORIGIN="http://evil.example",
            HTTP_ACCESS_CONTROL_REQUEST_METHOD="POST",
        )
        self.assertNotIn("Access-Control-Allow-Origin", response)

    @override_settings(CORS_ALLOWED_ORIGINS=[], CORS_ALLOW_ALL_ORIGINS=True)
    def test_preflight_any_origin(self):
        response = self.client.options(
            "/api/process-input/",
            HTTP_ORIGIN="http://dash.example",
            HTTP_ACCESS_CONTROL_REQUEST_METHOD="POST",
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response["Access-Control-Allow-Origin"], "*")
        self.assertIn("POST", response["Access-Control-Allow-Methods"])

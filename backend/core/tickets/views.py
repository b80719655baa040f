"""
HTTP endpoints for the MoveMate backend.

    POST   /api/process-input/               - one recorded utterance (multipart)
    DELETE /api/conversations/<id>/          - forget a conversation
    POST   /api/call/webhook/                - telephony provider events
    GET    /api/tickets/                     - dashboard listing
    GET    /api/tickets/closed/?week=        - weekly closed-ticket report
    PATCH  /api/tickets/<id>/status/         - move a ticket through its lifecycle
    GET    /health/                          - liveness probe
"""

import json
import logging
import time
from datetime import timedelta

from django.http import JsonResponse
from django.utils import timezone
from django.utils.dateparse import parse_date
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from tickets.constants import ErrorMessages, STTDefaults
from tickets.exceptions import InvalidStatusError, TicketNotFoundError, TranscriptionError
from tickets.schemas import from_camel_fields
from tickets.services.conversation_store import get_conversation_store
from tickets.services.ingest_pipeline import get_ingest_pipeline
from tickets.services.ticket_store import TicketStore, week_bounds

logger = logging.getLogger(__name__)

# Conversation fields a telephony function result may contribute
_CALL_FIELDS = (
    "category",
    "issue_type",
    "location",
    "urgency",
    "summary",
    "needs_more_info",
    "started_at",
)


def _generated_conversation_id() -> str:
    return f"conv-{int(time.time() * 1000)}"


def _json_body(request):
    """Decoded JSON object body, or None if the body is not a JSON object."""
    try:
        data = json.loads(request.body or b"{}")
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    return data if isinstance(data, dict) else None


@method_decorator(csrf_exempt, name="dispatch")
class ProcessInputView(View):
    """
    Accepts one recorded utterance from the mobile app.

    Form fields:
        file: audio recording (required)
        conversationId: conversation to continue (generated if missing)
        userId: resident id recorded as the ticket owner (optional)
    """

    def post(self, request):
        audio_file = request.FILES.get("file")
        if audio_file is None:
            return JsonResponse({"error": ErrorMessages.AUDIO_REQUIRED}, status=400)

        if audio_file.size > STTDefaults.MAX_UPLOAD_SIZE:
            logger.warning(f"Rejected {audio_file.size} byte upload")
            return JsonResponse({"error": ErrorMessages.INVALID_UPLOAD}, status=400)

        conversation_id = request.POST.get("conversationId") or _generated_conversation_id()
        owner_id = request.POST.get("userId") or None

        logger.info(
            f"Incoming utterance for conversation {conversation_id}: "
            f"{audio_file.name} ({audio_file.content_type}, {audio_file.size} bytes)"
        )

        try:
            result = get_ingest_pipeline().handle_utterance(
                audio_file.read(),
                conversation_id,
                owner_id=owner_id,
                mimetype=audio_file.content_type,
            )
        except TranscriptionError as e:
            logger.error(f"Transcription failed for {conversation_id}: {e}", exc_info=True)
            return JsonResponse(
                {"error": ErrorMessages.TRANSCRIPTION_FAILED, "details": str(e)},
                status=500,
            )
        except Exception as e:
            logger.error(f"Error processing input for {conversation_id}: {e}", exc_info=True)
            return JsonResponse(
                {"error": ErrorMessages.PROCESSING_FAILED, "details": str(e)},
                status=500,
            )

        result["conversationId"] = conversation_id
        return JsonResponse(result)


@method_decorator(csrf_exempt, name="dispatch")
class ConversationView(View):
    """Explicit "start a new conversation" from the client."""

    def delete(self, request, conversation_id):
        cleared = get_conversation_store().delete(conversation_id)
        return JsonResponse({"conversationId": conversation_id, "cleared": cleared})


@method_decorator(csrf_exempt, name="dispatch")
class CallWebhookView(View):
    """
    Receives events from the telephony voice assistant.

    Phone calls carry the app's conversation id in ``call.custom`` so that a
    call and in-app utterances share one conversation. A finished call
    finalizes that conversation into a ticket.
    """

    def post(self, request):
        body = _json_body(request)
        if body is None:
            return JsonResponse({"error": ErrorMessages.INVALID_JSON}, status=400)

        message = body.get("message") or {}
        event_type = message.get("type")
        logger.info(f"Received call event: {event_type}")

        try:
            self.handle_event(event_type, message)
        except Exception as e:
            logger.error(f"Error processing call event {event_type}: {e}", exc_info=True)

        return JsonResponse({"received": True})

    def handle_event(self, event_type, message):
        call = message.get("call") or {}

        if event_type == "status-update":
            logger.info(f"Call {call.get('id')}: {call.get('status')}")
            if call.get("status") == "ended":
                self.finalize_call(call)
        elif event_type == "end-of-call-report":
            self.finalize_call(call)
        elif event_type == "function-call-result":
            self.store_function_result(message, call)
        elif event_type == "transcript":
            logger.info(f"Call transcript [{message.get('role')}]: {message.get('transcript')}")
        elif event_type == "function-call":
            function_call = message.get("functionCall") or {}
            logger.info(
                f"Call function requested: {function_call.get('name')} "
                f"{function_call.get('parameters')}"
            )
        else:
            logger.info(f"Unhandled call event type: {event_type}")

    def store_function_result(self, message, call):
        function_call = message.get("functionCall") or {}
        if function_call.get("name") != "extract_issue_info":
            return

        result = message.get("result")
        if isinstance(result, str):
            try:
                result = json.loads(result)
            except json.JSONDecodeError:
                logger.warning(f"Unparseable extract_issue_info result: {result!r}")
                return
        if not isinstance(result, dict):
            return

        custom = call.get("custom") or {}
        conversation_id = custom.get("conversationId") or _generated_conversation_id()
        fields = {
            key: value
            for key, value in from_camel_fields(result).items()
            if key in _CALL_FIELDS
        }
        get_conversation_store().update(conversation_id, fields)
        logger.info(f"Stored call classification for conversation {conversation_id}")

    def finalize_call(self, call):
        custom = call.get("custom") or {}
        conversation_id = custom.get("conversationId")
        if not conversation_id:
            logger.warning("Call ended without a conversation id")
            return

        ticket = get_ingest_pipeline().finalize_conversation(
            conversation_id,
            owner_id=custom.get("userId"),
            transcript=call.get("transcript") or "",
        )
        if ticket is not None:
            logger.info(f"Call {call.get('id')} finalized as {ticket.display_id}")


class TicketListView(View):
    """Dashboard listing, optionally filtered by ``team`` and ``urgency``."""

    def get(self, request):
        tickets = TicketStore().list_tickets(
            team=request.GET.get("team") or None,
            urgency=request.GET.get("urgency") or None,
        )
        return JsonResponse({"tickets": [t.to_dict() for t in tickets]})


class ClosedTicketsView(View):
    """Weekly closed-ticket report (Sunday to Saturday)."""

    def get(self, request):
        week = request.GET.get("week")
        if week:
            try:
                day = parse_date(week)
            except ValueError:
                day = None
            if day is None:
                return JsonResponse({"error": ErrorMessages.INVALID_WEEK}, status=400)
        else:
            day = timezone.localdate()

        start, end = week_bounds(day)
        tickets = TicketStore().closed_tickets_for_week(day, team=request.GET.get("team") or None)
        return JsonResponse(
            {
                "weekStart": start.date().isoformat(),
                "weekEnd": (end.date() - timedelta(days=1)).isoformat(),
                "tickets": [t.to_dict() for t in tickets],
            }
        )


@method_decorator(csrf_exempt, name="dispatch")
class TicketStatusView(View):
    def patch(self, request, ticket_id):
        body = _json_body(request)
        if body is None:
            return JsonResponse({"error": ErrorMessages.INVALID_JSON}, status=400)

        try:
            ticket = TicketStore().update_status(ticket_id, body.get("status"))
        except InvalidStatusError as e:
            return JsonResponse({"error": str(e)}, status=400)
        except TicketNotFoundError:
            return JsonResponse({"error": ErrorMessages.TICKET_NOT_FOUND}, status=404)

        return JsonResponse(ticket.to_dict())


class HealthView(View):
    def get(self, request):
        return JsonResponse({"status": "ok"})

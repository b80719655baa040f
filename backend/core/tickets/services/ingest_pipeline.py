"""
Utterance ingest workflow built on LangGraph.

One recorded utterance flows through:

    transcribe -> classify -> [finalize] -> synthesize

An empty transcript ends the run right after ``transcribe``. ``finalize``
only runs once the accumulated conversation is schema-complete. Only a
transcription failure aborts the request; classification, persistence and
synthesis failures degrade the response instead.
"""

import logging
from typing import Any, Dict, Optional, TypedDict

from langgraph.graph import END, StateGraph

from tickets.constants import ClassifierDefaults
from tickets.exceptions import ClassificationError, SynthesisError
from tickets.models import Ticket
from tickets.schemas import is_schema_complete, to_camel_fields
from tickets.services.classifier import Classifier
from tickets.services.conversation_store import (
    ConversationStore,
    get_conversation_store,
)
from tickets.services.stt_service import STTService
from tickets.services.ticket_store import TicketStore
from tickets.services.tts_service import TTSService


logger = logging.getLogger(__name__)


class IngestState(TypedDict, total=False):
    """State passed between the workflow nodes."""

    audio: bytes
    mimetype: Optional[str]
    conversation_id: str
    owner_id: Optional[str]
    transcript: str
    classification: Optional[Dict[str, Any]]
    context: Optional[Dict[str, Any]]
    complete: bool
    reply: str
    ticket: Optional[Dict[str, Any]]
    audio_reply: Optional[Dict[str, str]]


class IngestPipeline:
    """
    Runs the voice-to-ticket workflow for one utterance at a time.

    Collaborators are created lazily so a missing Deepgram or OpenAI key only
    fails the step that needs it.

    Example:
        >>> pipeline = IngestPipeline()
        >>> response = pipeline.handle_utterance(audio_bytes, "conv-1")
        >>> response["ticket"]["team"]
        'maintenance'
    """

    def __init__(
        self,
        conversation_store: Optional[ConversationStore] = None,
        classifier: Optional[Classifier] = None,
        ticket_store: Optional[TicketStore] = None,
        stt: Optional[STTService] = None,
        tts: Optional[TTSService] = None,
    ):
        self.conversation_store = (
            conversation_store if conversation_store is not None else get_conversation_store()
        )
        self._classifier = classifier
        self.ticket_store = ticket_store if ticket_store is not None else TicketStore()
        self._stt = stt
        self._tts = tts
        self.graph = None

    @property
    def classifier(self) -> Classifier:
        if self._classifier is None:
            self._classifier = Classifier(conversation_store=self.conversation_store)
        return self._classifier

    @property
    def stt(self) -> STTService:
        if self._stt is None:
            self._stt = STTService()
        return self._stt

    @property
    def tts(self) -> TTSService:
        if self._tts is None:
            self._tts = TTSService()
        return self._tts

    # Nodes

    def transcribe_node(self, state: IngestState) -> Dict[str, Any]:
        result = self.stt.transcribe_audio(state["audio"], mimetype=state.get("mimetype"))
        transcript = (result.get("transcript") or "").strip()
        logger.info(
            f"Conversation {state['conversation_id']} transcript: {transcript!r}"
        )
        return {"transcript": transcript}

    def classify_node(self, state: IngestState) -> Dict[str, Any]:
        conversation_id = state["conversation_id"]
        prior = self.conversation_store.get(conversation_id)

        try:
            result, merged = self.classifier.classify_utterance(
                state["transcript"], conversation_id, prior
            )
        except ClassificationError as e:
            logger.warning(
                f"Classification failed for conversation {conversation_id}: {e}"
            )
            return {
                "classification": None,
                "context": to_camel_fields(prior) if prior else None,
                "complete": False,
                "reply": ClassifierDefaults.FALLBACK_REPLY,
            }

        return {
            "classification": to_camel_fields(result.to_fields()),
            "context": to_camel_fields(merged),
            "complete": is_schema_complete(merged),
            "reply": result.reply or ClassifierDefaults.FALLBACK_REPLY,
        }

    def finalize_node(self, state: IngestState) -> Dict[str, Any]:
        conversation_id = state["conversation_id"]
        fields = dict(self.conversation_store.get(conversation_id))
        fields["transcript"] = state.get("transcript", "")

        try:
            ticket = self.ticket_store.create_ticket(
                fields,
                conversation_id=conversation_id,
                owner=state.get("owner_id"),
            )
        except Exception as e:
            logger.error(
                f"Failed to persist ticket for conversation {conversation_id}: {e}",
                exc_info=True,
            )
            return {"ticket": None}

        return {"ticket": ticket.to_dict()}

    def synthesize_node(self, state: IngestState) -> Dict[str, Any]:
        try:
            return {"audio_reply": self.tts.synthesize_reply(state["reply"])}
        except SynthesisError as e:
            logger.warning(
                f"Reply synthesis failed for conversation {state['conversation_id']}: {e}"
            )
            return {"audio_reply": None}

    # Routing

    def after_transcribe(self, state: IngestState) -> str:
        return "classify" if state.get("transcript") else "end"

    def after_classify(self, state: IngestState) -> str:
        return "finalize" if state.get("complete") else "synthesize"

    def build_graph(self):
        """Build the LangGraph workflow."""
        workflow = StateGraph(IngestState)

        workflow.add_node("transcribe", self.transcribe_node)
        workflow.add_node("classify", self.classify_node)
        workflow.add_node("finalize", self.finalize_node)
        workflow.add_node("synthesize", self.synthesize_node)

        workflow.set_entry_point("transcribe")
        workflow.add_conditional_edges(
            "transcribe",
            self.after_transcribe,
            {"classify": "classify", "end": END},
        )
        workflow.add_conditional_edges(
            "classify",
            self.after_classify,
            {"finalize": "finalize", "synthesize": "synthesize"},
        )
        workflow.add_edge("finalize", "synthesize")
        workflow.add_edge("synthesize", END)

        self.graph = workflow.compile()
        return self.graph

    def handle_utterance(
        self,
        audio: bytes,
        conversation_id: str,
        owner_id: Optional[str] = None,
        mimetype: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Process one recorded utterance.

        Returns:
            {"transcript": ""} for silence, otherwise a dict with
            transcript, reply, ticket, classification, context and, when
            synthesis worked, audio ({"data": base64, "contentType": ...})

        Raises:
            TranscriptionError: If the audio could not be transcribed
        """
        if not self.graph:
            self.build_graph()

        result = self.graph.invoke(
            {
                "audio": audio,
                "mimetype": mimetype,
                "conversation_id": conversation_id,
                "owner_id": owner_id,
            }
        )

        transcript = result.get("transcript", "")
        if not transcript:
            logger.info(f"Conversation {conversation_id}: empty transcript, nothing to do")
            return {"transcript": ""}

        response = {
            "transcript": transcript,
            "reply": result.get("reply"),
            "ticket": result.get("ticket"),
            "classification": result.get("classification"),
            "context": result.get("context"),
        }
        if result.get("audio_reply"):
            response["audio"] = result["audio_reply"]
        return response

    def finalize_conversation(
        self,
        conversation_id: str,
        owner_id: Optional[str] = None,
        transcript: str = "",
    ) -> Optional[Ticket]:
        """
        Create the ticket for a conversation that ended outside the app
        (e.g. a phone call hanging up).

        Returns:
            The ticket, or None if the conversation is unknown or incomplete
        """
        fields = self.conversation_store.get(conversation_id)
        if not is_schema_complete(fields):
            logger.info(
                f"Conversation {conversation_id} ended without a complete issue; no ticket"
            )
            return None

        fields = dict(fields)
        if transcript:
            fields["transcript"] = transcript
        return self.ticket_store.create_ticket(
            fields, conversation_id=conversation_id, owner=owner_id
        )


_pipeline: Optional[IngestPipeline] = None


def get_ingest_pipeline() -> IngestPipeline:
    """Process-wide pipeline sharing the process conversation store."""
    global _pipeline
    if _pipeline is None:
        _pipeline = IngestPipeline()
    return _pipeline

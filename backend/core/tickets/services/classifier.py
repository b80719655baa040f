"""
Transcript Classifier

This module turns one resident utterance, plus what the conversation has
established so far, into an updated structured issue record using an
OpenAI chat model (via langchain-openai).

The model is asked to carry earlier fields forward, but the sticky-field
contract is enforced again in code by ``ConversationStore.update``.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from langchain_core.prompts import ChatPromptTemplate
from langchain_openai import ChatOpenAI
from pydantic import ValidationError

from env_vars import OPENAI_API_KEY, OPENAI_MODEL
from tickets.constants import ClassifierDefaults, ErrorMessages
from tickets.exceptions import ClassificationError
from tickets.schemas import ClassificationResult, to_camel_fields
from tickets.services.conversation_store import (
    ConversationStore,
    get_conversation_store,
)


logger = logging.getLogger(__name__)

Fields = Dict[str, Any]


CLASSIFIER_SYSTEM_PROMPT = """You are MoveMate, an AI assistant that triages dorm and residential life issues.
You maintain context of the conversation and build a complete understanding of the issue over multiple interactions.
Always respond with ONE JSON object in exactly this format:
{{
  "category": "Maintenance | Resident Life",
  "issueType": "Short label for the issue",
  "location": "Named campus building/area and room, or \\"Unknown\\"",
  "urgency": "HIGH | MEDIUM | LOW",
  "summary": "One-sentence summary of the issue",
  "reply": "Friendly acknowledgement and next steps",
  "needsMoreInfo": true or false,
  "timestamp": "ISO-8601 conversation start time"
}}

Current conversation state:
{conversation_state}

Category rules:
- Maintenance: physical problems with the building, rooms, utilities, fixtures or appliances.
- Resident Life: roommate conflicts, noise, behaviour, wellness and community concerns.
- Any threat to personal safety or any emergency is ALWAYS category "Maintenance" with urgency "HIGH".

Urgency rules:
- HIGH: fire, gas leaks, flooding, electrical shorts or sparks, medical emergencies, total loss of power, people stuck in an elevator.
- MEDIUM: contained leaks, repeated disruptive noise, outages affecting several residents, broken fixtures, pests, accessibility problems, heating or cooling failures.
- LOW: cosmetic damage, one-off noise, information requests, minor inconveniences.

Location rules:
- The location must resolve to a named campus building or area, plus a room or floor when given (e.g. "John Adams Dorm 204", "Southwest Tower 512").
- Expand abbreviations and fix phonetic spellings to the canonical building name.
- If the resident names an off-campus place, do NOT record it: keep the previous location (or "Unknown"), set needsMoreInfo to true and ask for the on-campus location.

Field preservation rule:
- Copy every field already present in the current conversation state verbatim unless the new transcript gives new information for it.
- Never change a filled field back to empty or "Unknown".

Timestamp rule:
- "timestamp" is the conversation start time. Use exactly "{conversation_start}" and echo it unchanged on every turn.

If any required field (category, issueType, location, urgency, summary) is missing or incomplete, or the location failed the location rules, set needsMoreInfo to true and ask for the specific missing details in the reply.

When ALL required fields are complete and needsMoreInfo is false, give a warm goodbye in the reply thanking the resident for reporting the issue and letting them know the ticket has been created and the appropriate team will be notified.
"""

CLASSIFIER_USER_PROMPT = 'Transcript: """{transcript}"""'


def _strip_code_fences(content: str) -> str:
    content = content.strip()
    if "```json" in content:
        return content.split("```json")[1].split("```")[0].strip()
    if content.startswith("```"):
        return content.split("```")[1].split("```")[0].strip()
    return content


def parse_classification(raw: Optional[str]) -> ClassificationResult:
    """
    Parse and validate the model's raw response text.

    Raises:
        ClassificationError: If the content is empty, not a JSON object, or
            lacks required keys
    """
    if not raw or not str(raw).strip():
        raise ClassificationError(f"{ErrorMessages.CLASSIFICATION_FAILED}: empty response")

    try:
        payload = json.loads(_strip_code_fences(str(raw)))
    except json.JSONDecodeError as e:
        raise ClassificationError(
            f"{ErrorMessages.CLASSIFICATION_FAILED}: invalid JSON ({e})"
        ) from e

    if not isinstance(payload, dict):
        raise ClassificationError(
            f"{ErrorMessages.CLASSIFICATION_FAILED}: expected a JSON object"
        )

    try:
        return ClassificationResult.model_validate(payload)
    except ValidationError as e:
        raise ClassificationError(
            f"{ErrorMessages.CLASSIFICATION_FAILED}: {e.error_count()} invalid field(s)"
        ) from e


class Classifier:
    """
    Language-model classifier for resident utterances.

    Attributes:
        store: Conversation store the merged result is written to
        model: Chat model name

    Example:
        >>> classifier = Classifier()
        >>> state = classifier.classify(
        ...     "There's a leak under my sink in John Adams 204", "conv-1"
        ... )
        >>> state["category"]
        'Maintenance'
    """

    def __init__(
        self,
        conversation_store: Optional[ConversationStore] = None,
        llm: Optional[Any] = None,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
    ):
        """
        Args:
            conversation_store: Store to read/write state (process store if None)
            llm: Chat model exposing ``invoke(messages)``; built lazily if None
            api_key: OpenAI API key. If None, uses env.OPENAI_API_KEY
            model: Model name. If None, uses env.OPENAI_MODEL
        """
        self.store = (
            conversation_store if conversation_store is not None else get_conversation_store()
        )
        self.api_key = api_key or OPENAI_API_KEY
        self.model = model or OPENAI_MODEL
        self._llm = llm
        self.prompt = ChatPromptTemplate.from_messages(
            [
                ("system", CLASSIFIER_SYSTEM_PROMPT),
                ("human", CLASSIFIER_USER_PROMPT),
            ]
        )

    def _get_llm(self):
        if self._llm is None:
            if not self.api_key:
                raise ClassificationError(ErrorMessages.OPENAI_KEY_MISSING)
            self._llm = ChatOpenAI(
                model=self.model,
                temperature=ClassifierDefaults.TEMPERATURE,
                api_key=self.api_key,
                timeout=ClassifierDefaults.API_TIMEOUT,
                max_retries=ClassifierDefaults.MAX_RETRIES,
            ).bind(response_format={"type": "json_object"})
            logger.info(f"Classifier initialized with model: {self.model}")
        return self._llm

    def build_messages(self, transcript: str, prior_state: Fields, conversation_start: str):
        """Render the system + user messages for one classification request."""
        return self.prompt.format_messages(
            conversation_state=json.dumps(to_camel_fields(prior_state), indent=2),
            conversation_start=conversation_start,
            transcript=transcript,
        )

    def classify(
        self,
        transcript: str,
        conversation_id: str,
        prior_state: Optional[Fields] = None,
    ) -> Fields:
        """Classify one utterance and return the merged conversation state."""
        _, merged = self.classify_utterance(transcript, conversation_id, prior_state)
        return merged

    def classify_utterance(
        self,
        transcript: str,
        conversation_id: str,
        prior_state: Optional[Fields] = None,
    ) -> Tuple[ClassificationResult, Fields]:
        """
        Classify one utterance and merge it into the conversation.

        Args:
            transcript: Text of the latest utterance
            conversation_id: Conversation the utterance belongs to
            prior_state: Accumulated fields; read from the store if None

        Returns:
            (this turn's validated model result, merged state after storage)

        Raises:
            ClassificationError: If the model call fails or its response is
                unusable. The store is left untouched in that case.
        """
        if prior_state is None:
            prior_state = self.store.get(conversation_id)

        conversation_start = prior_state.get("started_at") or datetime.now(
            timezone.utc
        ).isoformat()
        messages = self.build_messages(transcript, prior_state, conversation_start)

        try:
            response = self._get_llm().invoke(messages)
        except ClassificationError:
            raise
        except Exception as e:
            error_msg = f"{ErrorMessages.CLASSIFICATION_FAILED}: {str(e)}"
            logger.error(error_msg, exc_info=True)
            raise ClassificationError(error_msg) from e

        result = parse_classification(getattr(response, "content", None))

        fields = result.to_fields()
        if not fields["started_at"]:
            fields["started_at"] = conversation_start

        merged = self.store.update(conversation_id, fields)
        logger.info(
            f"Classified conversation {conversation_id}: "
            f"category={merged.get('category')!r}, urgency={merged.get('urgency')!r}, "
            f"needs_more_info={merged.get('needs_more_info')}"
        )
        return result, merged

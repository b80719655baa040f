"""Typed shapes exchanged with the language model and API clients."""

from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from tickets.constants import Category, ConversationDefaults
from tickets.services.conversation_store import is_empty_value

Fields = Dict[str, Any]

# snake_case state keys -> camelCase JSON keys
_CAMEL_KEYS = {
    "issue_type": "issueType",
    "needs_more_info": "needsMoreInfo",
    "started_at": "startedAt",
}


class ClassificationResult(BaseModel):
    """
    One model response. Missing required keys fail validation; values may be
    empty or null when the model does not know them yet.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    category: Optional[str]
    issue_type: Optional[str] = Field(
        validation_alias=AliasChoices("issueType", "issue_type")
    )
    location: Optional[str]
    urgency: Optional[str]
    summary: Optional[str]
    reply: Optional[str] = ""
    needs_more_info: bool = Field(
        validation_alias=AliasChoices("needsMoreInfo", "needs_more_info")
    )
    timestamp: Optional[str] = None

    @field_validator("category", "issue_type", "location", "summary", "reply", mode="before")
    @classmethod
    def _strip(cls, value):
        if value is None:
            return ""
        return str(value).strip()

    @field_validator("category")
    @classmethod
    def _canonical_category(cls, value: str) -> str:
        for canonical in Category.ALL:
            if value.lower() == canonical.lower():
                return canonical
        return value

    @field_validator("urgency", mode="before")
    @classmethod
    def _upper_urgency(cls, value):
        if value is None:
            return ""
        return str(value).strip().upper()

    @field_validator("timestamp", mode="before")
    @classmethod
    def _timestamp_text(cls, value):
        if value is None or value == "":
            return None
        return str(value)

    def to_fields(self) -> Fields:
        """Conversation-state fields (snake_case, ``timestamp`` -> ``started_at``)."""
        return {
            "category": self.category,
            "issue_type": self.issue_type,
            "location": self.location,
            "urgency": self.urgency,
            "summary": self.summary,
            "reply": self.reply,
            "needs_more_info": self.needs_more_info,
            "started_at": self.timestamp,
        }


def is_schema_complete(fields: Fields) -> bool:
    """
    True when every required ticket field is filled and the model has said
    it needs nothing more (``needs_more_info`` explicitly false).
    """
    if not fields:
        return False
    if any(is_empty_value(fields.get(f)) for f in ConversationDefaults.REQUIRED_FIELDS):
        return False
    return fields.get("needs_more_info") is False


def to_camel_fields(fields: Optional[Fields]) -> Optional[Dict[str, Any]]:
    """Render conversation fields with the camelCase keys used in API responses."""
    if fields is None:
        return None
    return {_CAMEL_KEYS.get(k, k): v for k, v in fields.items()}


def from_camel_fields(payload: Dict[str, Any]) -> Fields:
    """Inverse of ``to_camel_fields``; unknown keys pass through unchanged."""
    reverse = {v: k for k, v in _CAMEL_KEYS.items()}
    fields = {reverse.get(k, k): v for k, v in payload.items()}
    # Telephony providers echo the classifier's "timestamp" key
    if "timestamp" in fields and "started_at" not in fields:
        fields["started_at"] = fields.pop("timestamp")
    return fields

"""
Constants for Tickets Module

This module contains all constants used throughout the tickets module,
including ticket enums, routing keyword sets, STT/TTS configuration and
service defaults.
"""


# Ticket enums
class Team:
    """Operational queues a ticket can be routed to."""

    MAINTENANCE = "maintenance"
    RA = "ra"

    CHOICES = [
        (MAINTENANCE, "Maintenance"),
        (RA, "Resident Life"),
    ]


class TicketStatus:
    """Ticket lifecycle states."""

    OPEN = "open"
    IN_PROGRESS = "in_progress"
    CLOSED = "closed"

    CHOICES = [
        (OPEN, "Open"),
        (IN_PROGRESS, "In progress"),
        (CLOSED, "Closed"),
    ]

    # Statuses that hold a place in a team queue
    ACTIVE = (OPEN, IN_PROGRESS)


class Category:
    """Canonical ticket categories produced by the classifier."""

    MAINTENANCE = "Maintenance"
    RESIDENT_LIFE = "Resident Life"

    ALL = (MAINTENANCE, RESIDENT_LIFE)


class Urgency:
    """Urgency levels, in dashboard display order."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    UNKNOWN = "UNKNOWN"

    ORDER = [HIGH, MEDIUM, LOW, UNKNOWN]


# Team routing keyword sets (substring match against issue type + summary)
class RoutingKeywords:
    """Keyword sets used by the deterministic team router."""

    RA = (
        "roommate",
        "dispute",
        "noise",
        "party",
        "alcohol",
        "medical",
        "injury",
        "emergency",
        "wellness",
        "behavior",
        "safety",
        "furniture",
        "damage",
    )

    MAINTENANCE = (
        "heat",
        "hvac",
        "water",
        "leak",
        "plumbing",
        "electrical",
        "outlet",
        "light",
        "power",
        "appliance",
        "laundry",
        "trash",
        "mold",
        "pest",
    )


# Conversation state
class ConversationDefaults:
    """Defaults for the in-memory conversation store."""

    # Idle timeout (seconds) before a conversation is evicted
    IDLE_TIMEOUT = 30 * 60

    # How often the background sweeper looks for idle conversations (seconds)
    SWEEP_INTERVAL = 60

    # Fields that must be non-empty for a conversation to become a ticket
    REQUIRED_FIELDS = ("category", "issue_type", "location", "urgency", "summary")

    # Values the model uses to mean "not known yet"
    EMPTY_MARKERS = ("", "unknown", "n/a", "none", "null")


# Dashboard
class DashboardDefaults:
    """Values mirrored from the staff dashboard behaviour."""

    # Closed tickets stay visible this long after closing (seconds)
    CLOSED_HIDE_DELAY = 7

    # Prefix of the human-readable ticket id
    DISPLAY_ID_PREFIX = "ISS-"

    # Channels group receiving ticket change events
    GROUP_NAME = "dashboards"


# Classifier
class ClassifierDefaults:
    """Default values for the language-model classifier."""

    TEMPERATURE = 0

    # Timeout for a single completion request (seconds)
    API_TIMEOUT = 30

    # Retries performed by the OpenAI client on transient failures
    MAX_RETRIES = 2

    FALLBACK_REPLY = (
        "Thanks! MoveMate captured your issue and will share updates "
        "once a team member picks it up."
    )


# Audio Format Constants
class AudioFormat:
    """Audio format specifications for TTS/STT."""

    MP3 = "mp3"

    # Reply audio returned to the mobile client
    REPLY_ENCODING = MP3
    REPLY_CONTENT_TYPE = "audio/mpeg"


# TTS Service Constants
class TTSDefaults:
    """Default values for Text-to-Speech service."""

    # Maximum text length for single TTS request (characters)
    MAX_TEXT_LENGTH = 2000


# STT Service Constants
class STTDefaults:
    """Default values for Speech-to-Text service."""

    # Default language for transcription
    DEFAULT_LANGUAGE = "en-US"

    # Maximum accepted upload size (bytes)
    MAX_UPLOAD_SIZE = 25 * 1024 * 1024


# Error Messages
class ErrorMessages:
    """Standard error messages for the ticketing services."""

    EMPTY_TEXT = "Input text cannot be empty"
    TEXT_TOO_LONG = (
        f"Input text exceeds maximum length of {TTSDefaults.MAX_TEXT_LENGTH} characters"
    )
    API_KEY_MISSING = "Deepgram API key is not configured"
    OPENAI_KEY_MISSING = "OpenAI API key is not configured"
    AUDIO_GENERATION_FAILED = "Failed to generate audio from text"
    TRANSCRIPTION_FAILED = "Failed to transcribe audio"
    CLASSIFICATION_FAILED = "Failed to classify transcript"
    AUDIO_REQUIRED = "Audio file is required"
    INVALID_UPLOAD = "Invalid audio upload"
    INVALID_JSON = "Invalid JSON body"
    INVALID_WEEK = "Invalid week, expected YYYY-MM-DD"
    PROCESSING_FAILED = "Failed to process input"
    TICKET_NOT_FOUND = "Ticket not found"
    INVALID_STATUS = "Invalid ticket status"

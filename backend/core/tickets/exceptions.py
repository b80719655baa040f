"""Exception hierarchy for the ticketing services."""


class TicketingError(Exception):
    """Base exception for ticketing errors."""

    pass


class TranscriptionError(TicketingError):
    """Speech-to-text failed; no text could be obtained."""

    pass


class ClassificationError(TicketingError):
    """The model returned no content, invalid JSON, or an incomplete record."""

    pass


class SynthesisError(TicketingError):
    """Text-to-speech failed. Never fatal for a request."""

    pass


class TicketNotFoundError(TicketingError):
    pass


class InvalidStatusError(TicketingError, ValueError):
    pass

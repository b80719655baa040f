"""
Speech-to-Text Service Module

This module provides STT functionality using Deepgram API.
It transcribes the recorded utterances uploaded by the mobile app.
"""

import logging
from typing import Any, Dict, Optional

from deepgram import DeepgramClient

from env_vars import DEEPGRAM_API_KEY, DEEPGRAM_STT_MODEL
from tickets.constants import ErrorMessages, STTDefaults
from tickets.exceptions import TranscriptionError


logger = logging.getLogger(__name__)


class STTService:
    """
    Speech-to-Text service using Deepgram's prerecorded API.

    Attributes:
        client: Deepgram client instance
        model: STT model name from environment configuration

    Example:
        >>> stt = STTService()
        >>> audio_bytes = open("utterance.m4a", "rb").read()
        >>> result = stt.transcribe_audio(audio_bytes, mimetype="audio/m4a")
        >>> print(result["transcript"])
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        client: Optional[DeepgramClient] = None,
    ):
        """
        Initialize STT service.

        Args:
            api_key: Deepgram API key. If None, uses env.DEEPGRAM_API_KEY
            model: STT model name. If None, uses env.DEEPGRAM_STT_MODEL
            client: Pre-built Deepgram client (mainly for tests)

        Raises:
            TranscriptionError: If API key is not provided or configured
        """
        self.api_key = api_key or DEEPGRAM_API_KEY
        if client is None and not self.api_key:
            raise TranscriptionError(ErrorMessages.API_KEY_MISSING)

        self.model = model or DEEPGRAM_STT_MODEL
        self.client = client or DeepgramClient(api_key=self.api_key)

        logger.info(f"STT Service initialized with model: {self.model}")

    def transcribe_audio(
        self,
        audio_data: bytes,
        language: str = STTDefaults.DEFAULT_LANGUAGE,
        smart_format: bool = True,
        punctuate: bool = True,
        mimetype: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Transcribe audio data to text.

        Args:
            audio_data: Raw audio bytes to transcribe
            language: Language code (e.g., "en-US")
            smart_format: Enable smart formatting (punctuation, numbers, etc.)
            punctuate: Enable automatic punctuation
            mimetype: MIME type reported by the uploader, used for logging only;
                     Deepgram sniffs the container itself

        Returns:
            Dict containing:
                - transcript: The full transcribed text ("" for silence)
                - confidence: Confidence score (0-1) or None
                - metadata: Duration/channel info from Deepgram

        Raises:
            TranscriptionError: If transcription fails or the response is malformed
        """
        if not audio_data:
            raise TranscriptionError(f"{ErrorMessages.TRANSCRIPTION_FAILED}: no audio data")

        try:
            logger.info(
                f"Transcribing {len(audio_data)} bytes of audio "
                f"({mimetype or 'unknown type'})"
            )

            response = self.client.listen.v1.media.transcribe_file(
                request=audio_data,
                model=self.model,
                language=language,
                smart_format=smart_format,
                punctuate=punctuate,
            )

            if not response or not response.results:
                raise TranscriptionError("No results returned from Deepgram")

            channels = response.results.channels
            if not channels:
                raise TranscriptionError("No channel data in response")

            alternatives = channels[0].alternatives
            if not alternatives:
                raise TranscriptionError("No alternatives in response")

            alternative = alternatives[0]
            transcript = (alternative.transcript or "").strip()

            result = {
                "transcript": transcript,
                "confidence": getattr(alternative, "confidence", None),
                "metadata": {},
            }

            metadata = getattr(response, "metadata", None)
            if metadata is not None:
                result["metadata"] = {
                    "duration": getattr(metadata, "duration", None),
                    "channels": getattr(metadata, "channels", None),
                }

            confidence_str = (
                f"{result['confidence']:.2f}" if result["confidence"] else "N/A"
            )
            logger.info(
                f"Transcription complete: {len(transcript)} chars, "
                f"confidence: {confidence_str}"
            )

            return result

        except TranscriptionError:
            raise
        except Exception as e:
            error_msg = f"{ErrorMessages.TRANSCRIPTION_FAILED}: {str(e)}"
            logger.error(error_msg, exc_info=True)
            raise TranscriptionError(error_msg) from e

"""
Text-to-Speech Service Module

This module provides TTS functionality using Deepgram API.
It voices the classifier's reply so the mobile app can play it back.
"""

import base64
import logging
from typing import Dict, Generator, Optional

from deepgram import DeepgramClient

from env_vars import DEEPGRAM_API_KEY, DEEPGRAM_TTS_MODEL
from tickets.constants import AudioFormat, ErrorMessages, TTSDefaults
from tickets.exceptions import SynthesisError


logger = logging.getLogger(__name__)


class TTSService:
    """
    Text-to-Speech service using Deepgram API.

    Attributes:
        client: Deepgram client instance
        model: TTS model name from environment configuration

    Example:
        >>> tts = TTSService()
        >>> payload = tts.synthesize_reply("Thanks, your ticket is in!")
        >>> payload["contentType"]
        'audio/mpeg'
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        client: Optional[DeepgramClient] = None,
    ):
        """
        Initialize TTS service.

        Args:
            api_key: Deepgram API key. If None, uses env.DEEPGRAM_API_KEY
            model: TTS model name. If None, uses env.DEEPGRAM_TTS_MODEL
            client: Pre-built Deepgram client (mainly for tests)

        Raises:
            SynthesisError: If API key is not provided or configured
        """
        self.api_key = api_key or DEEPGRAM_API_KEY
        if client is None and not self.api_key:
            raise SynthesisError(ErrorMessages.API_KEY_MISSING)

        self.model = model or DEEPGRAM_TTS_MODEL
        self.client = client or DeepgramClient(api_key=self.api_key)

        logger.info(f"TTS Service initialized with model: {self.model}")

    def _validate_text(self, text: str) -> None:
        if not text or not text.strip():
            raise SynthesisError(ErrorMessages.EMPTY_TEXT)

        if len(text) > TTSDefaults.MAX_TEXT_LENGTH:
            raise SynthesisError(ErrorMessages.TEXT_TOO_LONG)

    def generate_audio(
        self,
        text: str,
        encoding: str = AudioFormat.REPLY_ENCODING,
    ) -> Generator[bytes, None, None]:
        """
        Generate audio from text.

        Args:
            text: Text to convert to speech
            encoding: Output encoding (mp3 by default)

        Returns:
            Generator yielding audio data chunks as bytes

        Raises:
            SynthesisError: If audio generation fails or input is invalid
        """
        try:
            self._validate_text(text)

            logger.info(
                f"Generating audio for text (length: {len(text)}, "
                f"encoding: {encoding}, model: {self.model})"
            )

            audio_response = self.client.speak.v1.audio.generate(
                text=text, model=self.model, encoding=encoding
            )

            chunk_count = 0
            total_bytes = 0

            for chunk in audio_response:
                if chunk:
                    chunk_count += 1
                    total_bytes += len(chunk)
                    yield chunk

            logger.info(
                f"Audio generation complete: {chunk_count} chunks, "
                f"{total_bytes} bytes total"
            )

        except SynthesisError:
            raise
        except Exception as e:
            error_msg = f"{ErrorMessages.AUDIO_GENERATION_FAILED}: {str(e)}"
            logger.error(error_msg, exc_info=True)
            raise SynthesisError(error_msg) from e

    def synthesize_reply(self, text: str) -> Dict[str, str]:
        """
        Voice a reply and package it for a JSON response.

        Returns:
            {"data": <base64 mp3>, "contentType": "audio/mpeg"}

        Raises:
            SynthesisError: If generation fails or yields no audio
        """
        audio = b"".join(self.generate_audio(text))
        if not audio:
            raise SynthesisError(f"{ErrorMessages.AUDIO_GENERATION_FAILED}: empty audio")

        return {
            "data": base64.b64encode(audio).decode("ascii"),
            "contentType": AudioFormat.REPLY_CONTENT_TYPE,
        }

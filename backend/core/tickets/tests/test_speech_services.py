"""
Unit tests for the Deepgram-backed STT and TTS wrappers.

The Deepgram client is replaced by mocks shaped like its responses.
"""

import base64
import unittest
from types import SimpleNamespace
from unittest.mock import MagicMock

from tickets.exceptions import SynthesisError, TranscriptionError
from tickets.services.stt_service import STTService
from tickets.services.tts_service import TTSService


def deepgram_response(transcript, confidence=0.93):
    alternative = SimpleNamespace(transcript=transcript, confidence=confidence)
    channel = SimpleNamespace(alternatives=[alternative])
    return SimpleNamespace(
        results=SimpleNamespace(channels=[channel]),
        metadata=SimpleNamespace(duration=2.5, channels=1),
    )


class TestSTTService(unittest.TestCase):
    """Test cases for STTService."""

    def setUp(self):
        self.client = MagicMock()
        self.stt = STTService(api_key="test", model="nova-3", client=self.client)

    def test_transcribe_audio(self):
        self.client.listen.v1.media.transcribe_file.return_value = deepgram_response(
            " There's a leak under my sink. "
        )

        result = self.stt.transcribe_audio(b"audio", mimetype="audio/m4a")

        self.assertEqual(result["transcript"], "There's a leak under my sink.")
        self.assertEqual(result["metadata"]["duration"], 2.5)
        kwargs = self.client.listen.v1.media.transcribe_file.call_args.kwargs
        self.assertEqual(kwargs["request"], b"audio")
        self.assertEqual(kwargs["model"], "nova-3")

    def test_silence_gives_empty_transcript(self):
        self.client.listen.v1.media.transcribe_file.return_value = deepgram_response("")
        self.assertEqual(self.stt.transcribe_audio(b"audio")["transcript"], "")

    def test_malformed_response(self):
        self.client.listen.v1.media.transcribe_file.return_value = SimpleNamespace(
            results=SimpleNamespace(channels=[])
        )
        with self.assertRaises(TranscriptionError):
            self.stt.transcribe_audio(b"audio")

    def test_client_error_is_wrapped(self):
        self.client.listen.v1.media.transcribe_file.side_effect = ConnectionError("down")

        with self.assertRaises(TranscriptionError) as ctx:
            self.stt.transcribe_audio(b"audio")

        self.assertIn("down", str(ctx.exception))

    def test_empty_audio(self):
        with self.assertRaises(TranscriptionError):
            self.stt.transcribe_audio(b"")
        self.client.listen.v1.media.transcribe_file.assert_not_called()


class TestTTSService(unittest.TestCase):
    """Test cases for TTSService."""

    def setUp(self):
        self.client = MagicMock()
        self.tts = TTSService(api_key="test", model="aura-2-thalia-en", client=self.client)

    def test_synthesize_reply(self):
        self.client.speak.v1.audio.generate.return_value = iter([b"ID3", b"", b"frames"])

        payload = self.tts.synthesize_reply("Thanks for reporting!")

        self.assertEqual(payload["contentType"], "audio/mpeg")
        self.assertEqual(base64.b64decode(payload["data"]), b"ID3frames")
        self.client.speak.v1.audio.generate.assert_called_once_with(
            text="Thanks for reporting!", model="aura-2-thalia-en", encoding="mp3"
        )

    def test_empty_text(self):
        with self.assertRaises(SynthesisError):
            self.tts.synthesize_reply("  ")

    def test_text_too_long(self):
        with self.assertRaises(SynthesisError):
            self.tts.synthesize_reply("a" * 2001)

    def test_client_error_is_wrapped(self):
        self.client.speak.v1.audio.generate.side_effect = RuntimeError("quota")
        with self.assertRaises(SynthesisError):
            self.tts.synthesize_reply("Hello")

    def test_no_audio_returned(self):
        self.client.speak.v1.audio.generate.return_value = iter([])
        with self.assertRaises(SynthesisError):
            self.tts.synthesize_reply("Hello")

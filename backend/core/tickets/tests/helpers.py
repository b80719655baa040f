"""Shared test doubles for the ticketing tests."""

import json
from types import SimpleNamespace


def model_response(**fields) -> str:
    """JSON text shaped like a classifier response; unspecified keys are blank."""
    payload = {
        "category": "",
        "issueType": "",
        "location": "",
        "urgency": "",
        "summary": "",
        "reply": "",
        "needsMoreInfo": True,
    }
    payload.update(fields)
    return json.dumps(payload)


class ScriptedChatModel:
    """
    Stand-in for the chat model: returns queued responses in order and
    records the messages it was sent.
    """

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def invoke(self, messages):
        self.calls.append(messages)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return SimpleNamespace(content=response)


class FakeSTT:
    """Returns queued transcripts for successive utterances."""

    def __init__(self, *transcripts):
        self.transcripts = list(transcripts)
        self.calls = []

    def transcribe_audio(self, audio_data, mimetype=None, **kwargs):
        self.calls.append((audio_data, mimetype))
        transcript = self.transcripts.pop(0)
        if isinstance(transcript, Exception):
            raise transcript
        return {"transcript": transcript, "confidence": 0.99, "metadata": {}}

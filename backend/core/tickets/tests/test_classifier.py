"""
Unit tests for the transcript classifier.

The chat model is replaced by a scripted stand-in; no OpenAI calls are made.
"""

import unittest

from tickets.constants import ClassifierDefaults
from tickets.exceptions import ClassificationError
from tickets.services.classifier import Classifier, parse_classification
from tickets.services.conversation_store import ConversationStore
from tickets.tests.helpers import ScriptedChatModel, model_response


class TestParseClassification(unittest.TestCase):
    def test_plain_json(self):
        result = parse_classification(model_response(category="Maintenance"))
        self.assertEqual(result.category, "Maintenance")

    def test_code_fenced_json(self):
        raw = "```json\n" + model_response(urgency="high") + "\n```"
        self.assertEqual(parse_classification(raw).urgency, "HIGH")

    def test_rejects_unusable_content(self):
        for raw in (None, "", "   ", "not json", "[1, 2]", '{"category": "Maintenance"}'):
            with self.subTest(raw=raw):
                with self.assertRaises(ClassificationError):
                    parse_classification(raw)


class TestClassifier(unittest.TestCase):
    """Test cases for Classifier."""

    def setUp(self):
        self.store = ConversationStore(idle_timeout=1800)

    def tearDown(self):
        self.store.shutdown()

    def make_classifier(self, *responses):
        self.model = ScriptedChatModel(*responses)
        return Classifier(conversation_store=self.store, llm=self.model, api_key="test")

    def test_uses_injected_empty_store(self):
        """An empty store passed in is used instead of the process store."""
        classifier = self.make_classifier(model_response(category="Maintenance"))

        self.assertIs(classifier.store, self.store)
        classifier.classify("Something is broken", "conv-9")
        self.assertEqual(self.store.get("conv-9")["category"], "Maintenance")

    def test_classify_single_turn(self):
        """A complete response is stored and returned merged."""
        classifier = self.make_classifier(
            model_response(
                category="Maintenance",
                issueType="Sink leak",
                location="John Adams Dorm 204",
                urgency="MEDIUM",
                summary="Water leaking under the bathroom sink.",
                reply="Thanks! Maintenance will be notified.",
                needsMoreInfo=False,
            )
        )

        state = classifier.classify(
            "There's a leak under my sink in John Adams 204", "conv-1"
        )

        self.assertEqual(state["category"], "Maintenance")
        self.assertEqual(state["location"], "John Adams Dorm 204")
        self.assertIs(state["needs_more_info"], False)
        self.assertTrue(state["started_at"])
        self.assertEqual(self.store.get("conv-1"), state)

    def test_fields_preserved_when_model_drops_them(self):
        """Blank fields in a later response do not erase earlier ones."""
        classifier = self.make_classifier(
            model_response(
                category="Resident Life",
                issueType="Noise complaint",
                urgency="MEDIUM",
                summary="Loud music next door every night.",
                needsMoreInfo=True,
            ),
            model_response(location="Southwest Tower 512", needsMoreInfo=False),
        )

        classifier.classify("My neighbors blast music every night", "conv-2")
        state = classifier.classify("I'm in Southwest Tower room 512", "conv-2")

        self.assertEqual(state["category"], "Resident Life")
        self.assertEqual(state["issue_type"], "Noise complaint")
        self.assertEqual(state["location"], "Southwest Tower 512")
        self.assertIs(state["needs_more_info"], False)

    def test_timestamp_defaults_to_conversation_start(self):
        """The model's missing timestamp falls back to the stored start time."""
        self.store.update("conv-3", {"started_at": "2026-10-19T09:00:00+00:00"})
        classifier = self.make_classifier(model_response(category="Maintenance"))

        state = classifier.classify("The heater is broken", "conv-3")

        self.assertEqual(state["started_at"], "2026-10-19T09:00:00+00:00")

    def test_prompt_includes_state_and_transcript(self):
        self.store.update("conv-4", {"location": "John Adams Dorm 204"})
        classifier = self.make_classifier(model_response())

        classifier.classify("It's still leaking", "conv-4")

        system_message, user_message = self.model.calls[0]
        self.assertIn("John Adams Dorm 204", system_message.content)
        self.assertIn('"issueType"', system_message.content)
        self.assertEqual(user_message.content, 'Transcript: """It\'s still leaking"""')

    def test_classify_utterance_returns_turn_result(self):
        classifier = self.make_classifier(
            model_response(category="Maintenance", reply="Where exactly?")
        )

        result, merged = classifier.classify_utterance("Leak", "conv-5")

        self.assertEqual(result.reply, "Where exactly?")
        self.assertEqual(merged["category"], "Maintenance")

    def test_invalid_response_leaves_store_untouched(self):
        self.store.update("conv-6", {"category": "Maintenance"})
        before = self.store.get("conv-6")
        classifier = self.make_classifier("Sorry, I can't help with that.")

        with self.assertRaises(ClassificationError):
            classifier.classify("Something odd", "conv-6")

        self.assertEqual(self.store.get("conv-6"), before)

    def test_model_error_is_wrapped(self):
        classifier = self.make_classifier(RuntimeError("upstream timeout"))

        with self.assertRaises(ClassificationError) as ctx:
            classifier.classify("Leak", "conv-7")

        self.assertIn("upstream timeout", str(ctx.exception))
        self.assertEqual(self.store.get("conv-7"), {})

    def test_missing_api_key(self):
        classifier = Classifier(conversation_store=self.store, api_key="")
        classifier.api_key = ""

        with self.assertRaises(ClassificationError):
            classifier.classify("Leak", "conv-8")

    def test_fallback_reply_is_defined(self):
        self.assertIn("MoveMate", ClassifierDefaults.FALLBACK_REPLY)

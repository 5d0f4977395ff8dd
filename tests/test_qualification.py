"""Tests for intent classification, lead scoring, persona framing and CTAs."""

from __future__ import annotations

import pytest

from copilot.core.intent import classify
from copilot.core.lead import asked_for_demo, score_lead, tier_for
from copilot.core.models import Confidence, Intent, LeadTier
from copilot.core.persona import CTA_TABLE, DEFAULT_CTAS, adapt, recommend


class TestClassify:
    @pytest.mark.parametrize(
        "message, expected",
        [
            ("I'd like a demo", Intent.HIGH_INTENT_BUYER),
            ("Can I talk to someone in sales?", Intent.HIGH_INTENT_BUYER),
            ("What does it cost?", Intent.PRICING),
            ("We want to partner with you", Intent.PARTNER),
            ("The login page is broken", Intent.SUPPORT),
            ("Are you hiring engineers?", Intent.TALENT),
            ("Can I read a case study on retail?", Intent.RESEARCH),
            ("Hello there", Intent.EXPLORING),
        ],
    )
    def test_rules(self, message, expected):
        assert classify(message).intent == expected

    def test_first_rule_wins(self):
        result = classify("What is the pricing for your career coaching?")
        assert result.intent == Intent.PRICING

    def test_demo_beats_pricing(self):
        assert classify("Demo and pricing please").intent == Intent.HIGH_INTENT_BUYER

    def test_case_insensitive(self):
        assert classify("BOOK A CALL").intent == Intent.HIGH_INTENT_BUYER

    def test_default_is_low_confidence(self):
        result = classify("What does Sensihi do?")
        assert result.intent == Intent.EXPLORING
        assert result.confidence == Confidence.LOW

    def test_buyer_is_high_confidence(self):
        assert classify("I'd like a demo").confidence == Confidence.HIGH

    def test_idempotent(self):
        message = "Do you have a blog about evaluating vendors?"
        assert classify(message) == classify(message)

    def test_empty_message(self):
        assert classify("").intent == Intent.EXPLORING


class TestLeadScore:
    def test_all_signals_hot(self):
        lead = score_lead(Intent.HIGH_INTENT_BUYER, 4, True)
        assert lead.score == 90
        assert lead.tier == LeadTier.HOT
        assert lead.signals == [
            "high_intent_language",
            "multi_message_engagement",
            "explicit_demo_request",
        ]

    def test_nothing_fired_cold(self):
        lead = score_lead(Intent.EXPLORING, 1, False)
        assert lead.score == 0
        assert lead.tier == LeadTier.COLD
        assert lead.signals == []

    def test_engagement_only_cold(self):
        lead = score_lead(Intent.RESEARCH, 4, False)
        assert lead.score == 20
        assert lead.tier == LeadTier.COLD

    def test_three_messages_not_engaged(self):
        assert score_lead(Intent.RESEARCH, 3, False).score == 0

    def test_high_intent_only_warm(self):
        lead = score_lead(Intent.HIGH_INTENT_BUYER, 1, False)
        assert lead.score == 40
        assert lead.tier == LeadTier.WARM

    def test_demo_request_on_first_message_hot(self):
        lead = score_lead(Intent.HIGH_INTENT_BUYER, 1, asked_for_demo("I'd like a DEMO"))
        assert lead.score == 70
        assert lead.tier == LeadTier.HOT

    @pytest.mark.parametrize(
        "score, tier",
        [(0, LeadTier.COLD), (39, LeadTier.COLD), (40, LeadTier.WARM),
         (69, LeadTier.WARM), (70, LeadTier.HOT), (90, LeadTier.HOT)],
    )
    def test_tier_boundaries(self, score, tier):
        assert tier_for(score) == tier


class TestPersona:
    def test_founder_prefix(self):
        assert adapt("Answer.", "founder") == "From a founder's perspective:\n\nAnswer."

    def test_technical_case_insensitive(self):
        assert adapt("Answer.", " Technical ").startswith("From a technical standpoint:")

    def test_sales_prefix(self):
        assert adapt("Answer.", "sales").startswith("From a business outcomes view:")

    def test_unknown_persona_untouched(self):
        assert adapt("Answer.", "investor") == "Answer."

    def test_no_persona_untouched(self):
        assert adapt("Answer.", None) == "Answer."

    def test_empty_answer_not_framed(self):
        assert adapt("", "founder") == ""


class TestRecommend:
    def test_buyer_gets_demo_first(self):
        ctas = recommend(Intent.HIGH_INTENT_BUYER)
        assert [(c.label, c.url, c.type) for c in ctas] == [
            ("Book a demo", "/contact", "primary"),
            ("Explore solutions", "/solutions", "secondary"),
        ]

    def test_talent_points_to_careers(self):
        assert [c.url for c in recommend(Intent.TALENT)] == ["/careers"]

    def test_exploring_gets_default_pair(self):
        ctas = recommend(Intent.EXPLORING)
        assert [(c.url, c.type) for c in ctas] == [
            ("/insights", "primary"),
            ("/contact", "secondary"),
        ]
        assert ctas == list(DEFAULT_CTAS)

    def test_every_intent_has_a_primary_first(self):
        for intent in Intent:
            ctas = recommend(intent)
            assert ctas, intent
            assert ctas[0].type == "primary"

    def test_returns_copies(self):
        ctas = recommend(Intent.PRICING)
        ctas[0].label = "changed"
        assert CTA_TABLE[Intent.PRICING][0].label == "Talk to us"

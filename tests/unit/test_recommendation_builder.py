"""Tests for RecommendationBuilder."""

from datetime import datetime, timezone

import pytest

from akwana.classifier import MatchResult
from akwana.recommendation_builder import PreconditionViolation, RecommendationBuilder
from akwana.rule import DiagnosisStatus
from akwana.rule_catalog import default_catalog
from akwana.scan_input import TextInput, input_ref

FIXED_TIME = datetime(2024, 9, 14, 8, 30, tzinfo=timezone.utc)


class TestRecommendationBuilder:
    """Test suite for RecommendationBuilder."""

    @pytest.fixture
    def builder(self):
        ids = iter(f"artifact-{i}" for i in range(100))
        return RecommendationBuilder(clock=lambda: FIXED_TIME, id_factory=lambda: next(ids))

    @pytest.fixture
    def blight_match(self):
        return MatchResult(rule=default_catalog().get("crop-early-blight"), confidence=87)

    def test_copies_rule_fields(self, builder, blight_match):
        scan_input = TextInput("blight")
        artifact = builder.build(blight_match, scan_input)

        rule = blight_match.rule
        assert artifact.matched_rule_id == "crop-early-blight"
        assert artifact.status == DiagnosisStatus.WARNING
        assert artifact.title == "Early Blight Disease Detected"
        assert artifact.issues == rule.issues
        assert artifact.recommendations == rule.recommendations
        assert artifact.cost_estimate == rule.cost_estimate
        assert artifact.input_ref == input_ref(scan_input)
        assert artifact.created_at == FIXED_TIME

    def test_confidence_passes_through(self, builder):
        rule = default_catalog().get("crop-early-blight")
        artifact = builder.build(MatchResult(rule=rule, confidence=12), TextInput("x"))
        assert artifact.confidence == 12

    def test_each_build_gets_fresh_id(self, builder, blight_match):
        first = builder.build(blight_match, TextInput("blight"))
        second = builder.build(blight_match, TextInput("blight"))
        assert first.artifact_id != second.artifact_id
        assert first.input_ref == second.input_ref

    def test_default_ids_are_unique(self, blight_match):
        builder = RecommendationBuilder()
        ids = {builder.build(blight_match, TextInput("x")).artifact_id for _ in range(10)}
        assert len(ids) == 10

    def test_default_clock_is_timezone_aware(self, blight_match):
        artifact = RecommendationBuilder().build(blight_match, TextInput("x"))
        assert artifact.created_at.tzinfo is not None

    def test_fallback_match_has_no_rule_id(self, builder):
        fallback = default_catalog().fallback()
        artifact = builder.build(MatchResult(rule=fallback, confidence=40, fallback=True), TextInput("goats"))
        assert artifact.matched_rule_id is None
        assert artifact.is_fallback
        assert artifact.title == "General Farming Advice"

    def test_artifact_is_immutable(self, builder, blight_match):
        artifact = builder.build(blight_match, TextInput("x"))
        with pytest.raises(AttributeError):
            artifact.confidence = 99


class TestBuilderPreconditions:
    """Malformed matches are programmer errors."""

    @pytest.fixture
    def rule(self):
        return default_catalog().get("advisor-blight")

    def test_not_a_match_result(self):
        with pytest.raises(PreconditionViolation):
            RecommendationBuilder().build({"rule": "advisor-blight"}, TextInput("x"))

    def test_missing_rule(self):
        with pytest.raises(PreconditionViolation):
            RecommendationBuilder().build(MatchResult(rule=None, confidence=50), TextInput("x"))

    @pytest.mark.parametrize("confidence", [-1, 101, 87.5, "87", True])
    def test_bad_confidence(self, rule, confidence):
        with pytest.raises(PreconditionViolation):
            RecommendationBuilder().build(MatchResult(rule=rule, confidence=confidence), TextInput("x"))

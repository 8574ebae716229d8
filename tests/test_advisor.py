"""
Unit tests for task classification and model recommendations.
"""

import copy

import pytest

from claude_usage.advisor import ModelAdvisor, TaskClassification
from claude_usage.config.loader import parse_config
from conftest import TEST_CONFIG

SONNET = "claude-3.5-sonnet-20241022"
OPUS = "claude-opus-4-20250514"
HAIKU = "claude-3-haiku-20240307"


@pytest.fixture
def advisor(test_config):
    return ModelAdvisor(test_config)


class TestClassifyTask:
    """Test keyword classification of task descriptions."""

    def test_code_generation(self, advisor):
        result = advisor.classify_task("Write a function that parses ISO dates")
        assert result.task_type == "code_generation"
        assert result.confidence == pytest.approx(0.5)

    def test_more_matches_raise_confidence(self, advisor):
        result = advisor.classify_task(
            "Debug this: why does my stack trace show an exception error?"
        )
        assert result.task_type == "debugging"
        assert result.confidence == pytest.approx(0.95)

    def test_default_classification(self, advisor):
        result = advisor.classify_task("hello there")
        assert result.task_type == "simple_query"
        assert result.confidence == pytest.approx(0.1)
        assert "Default classification" in result.reasoning

    def test_long_prompt_is_complex_analysis(self, advisor):
        result = advisor.classify_task("word " * 250)
        assert result.task_type == "complex_analysis"
        assert result.confidence == pytest.approx(0.6)

    def test_code_block_boost(self, advisor):
        result = advisor.classify_task("Please refactor\n```\nx = 1\n```")
        assert result.task_type == "refactoring"
        assert result.confidence == pytest.approx(0.7)
        assert "code context boost" in result.reasoning

    def test_multiple_questions(self, advisor):
        result = advisor.classify_task("Hmm? And this? Or that? Maybe?")
        assert result.task_type == "complex_analysis"
        assert result.confidence == pytest.approx(0.2)


class TestModelRecommendation:
    """Test mapping classifications to models."""

    def test_sonnet_task_saves_against_opus(self, advisor):
        classification, recommendation = advisor.recommend(
            "Write a function that parses ISO dates"
        )

        assert recommendation.recommended_model == SONNET
        assert recommendation.confidence == pytest.approx(0.8 * classification.confidence)
        assert recommendation.cost_savings > 0
        assert recommendation.alternative_model.model == OPUS

    def test_savings_amount(self, advisor):
        classification = TaskClassification("code_generation", 1.0, "test")

        recommendation = advisor.get_model_recommendation(classification)

        # 2000 input and 3000 output tokens on opus minus sonnet
        opus = (2000 * 15.0 + 3000 * 75.0) / 1e6
        sonnet = (2000 * 3.0 + 3000 * 15.0) / 1e6
        assert recommendation.cost_savings == pytest.approx(opus - sonnet)
        assert recommendation.confidence == pytest.approx(0.8)

    def test_most_expensive_model_has_no_savings(self, advisor):
        _, recommendation = advisor.recommend(
            "Debug this: why does my stack trace show an exception error?"
        )

        assert recommendation.recommended_model == OPUS
        assert recommendation.cost_savings is None
        assert recommendation.alternative_model.model == HAIKU
        assert "Opus recommended" in recommendation.reasoning

    def test_confidence_is_capped(self, advisor):
        recommendation = advisor.get_model_recommendation(
            TaskClassification("simple_query", 1.0, "test")
        )
        assert recommendation.confidence == pytest.approx(0.95)

    def test_unmapped_task_falls_back_to_cheapest_model(self):
        raw = copy.deepcopy(TEST_CONFIG)
        raw["models"] = {HAIKU: TEST_CONFIG["models"][HAIKU]}
        raw["recommendations"] = {}
        advisor = ModelAdvisor(parse_config(raw))

        _, recommendation = advisor.recommend("Please refactor this module")

        assert recommendation.recommended_model == HAIKU
        assert recommendation.confidence == pytest.approx(0.5 * 0.5)
        assert recommendation.cost_savings is None
        assert recommendation.alternative_model is None

"""
Task classification and model recommendation.

Classifies a free-text task description with keyword patterns and maps the
classification to a model from the configured pricing table.
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from claude_usage.config.loader import TaskRecommendation, UsageConfig
from claude_usage.core.pricing import PricingTable
from claude_usage.core.token_counter import TokenUsage

TASK_PATTERNS: Dict[str, List[str]] = {
    "code_generation": [
        r"write\s+(a\s+)?function",
        r"create\s+(a\s+)?(class|component|module)",
        r"implement\s+",
        r"generate\s+(code|script)",
        r"build\s+(a\s+)?(feature|api|endpoint)",
        r"make\s+(a\s+)?(function|class|component)",
    ],
    "debugging": [
        r"debug",
        r"fix\s+(this\s+)?(bug|error|issue)",
        r"why\s+(is|isn't|does|doesn't)",
        r"what's\s+wrong",
        r"not\s+working",
        r"error",
        r"exception",
        r"stack\s+trace",
    ],
    "code_review": [
        r"review\s+(this\s+)?code",
        r"look\s+at\s+(this\s+)?code",
        r"check\s+(this\s+)?implementation",
        r"feedback\s+on",
        r"improve\s+(this\s+)?code",
        r"optimize\s+(this\s+)?code",
    ],
    "documentation": [
        r"document",
        r"write\s+(a\s+)?readme",
        r"explain\s+(how\s+)?this",
        r"add\s+comments",
        r"write\s+docs",
        r"create\s+documentation",
    ],
    "architecture": [
        r"architecture",
        r"design\s+pattern",
        r"system\s+design",
        r"structure\s+(this\s+)?project",
        r"best\s+practices",
        r"organize\s+(the\s+)?code",
    ],
    "complex_analysis": [
        r"analyze\s+(this\s+)?(complex|large|entire)",
        r"understand\s+(this\s+)?(complex|large|entire)",
        r"reverse\s+engineer",
        r"performance\s+analysis",
        r"security\s+analysis",
        r"comprehensive\s+review",
    ],
    "simple_query": [
        r"what\s+is",
        r"how\s+do\s+i",
        r"can\s+you\s+tell\s+me",
        r"quick\s+question",
        r"simple\s+question",
        r"just\s+wondering",
    ],
    "refactoring": [
        r"refactor",
        r"clean\s+up",
        r"reorganize",
        r"restructure",
        r"improve\s+structure",
        r"make\s+(this\s+)?cleaner",
    ],
}

# Typical (input, output) tokens of one conversation per task type
TOKEN_ESTIMATES: Dict[str, Tuple[int, int]] = {
    "code_generation": (2000, 3000),
    "debugging": (3000, 2000),
    "code_review": (4000, 2500),
    "documentation": (1500, 2000),
    "architecture": (2500, 4000),
    "complex_analysis": (5000, 3500),
    "simple_query": (500, 800),
    "refactoring": (3000, 3500),
}

REASONS: Dict[str, Dict[str, str]] = {
    "code_generation": {
        "sonnet": "Sonnet excels at code generation at a fraction of the cost. Quality is excellent for most coding tasks.",
        "opus": "Opus for the most complex algorithms or when you need the highest code quality.",
    },
    "debugging": {
        "sonnet": "Sonnet can handle most debugging tasks effectively with significant cost savings.",
        "opus": "Opus recommended for complex debugging - better at understanding intricate code relationships.",
    },
    "code_review": {
        "sonnet": "Sonnet provides thorough code reviews with excellent cost efficiency.",
        "opus": "Opus for critical code reviews where you need the deepest analysis.",
    },
    "documentation": {
        "sonnet": "Sonnet is well suited to documentation - clear writing with major cost savings.",
        "opus": "Opus is more than most documentation tasks need.",
    },
    "architecture": {
        "sonnet": "Sonnet can handle many architecture discussions cost-effectively.",
        "opus": "Opus recommended for complex system design - better strategic thinking.",
    },
    "complex_analysis": {
        "sonnet": "Sonnet may miss nuances in complex analysis.",
        "opus": "Opus recommended for deep analysis - stronger reasoning and context understanding.",
    },
    "simple_query": {
        "sonnet": "Sonnet handles straightforward questions well at a much lower cost.",
        "opus": "Opus is wasteful for simple queries.",
    },
    "refactoring": {
        "sonnet": "Sonnet is excellent for refactoring with great cost efficiency.",
        "opus": "Opus for complex refactoring of large codebases.",
    },
}

DEFAULT_TASK = "simple_query"
FALLBACK_CONFIDENCE = 0.5
MAX_CONFIDENCE = 0.95


@dataclass
class TaskClassification:
    task_type: str
    confidence: float
    reasoning: str


@dataclass(frozen=True)
class AlternativeModel:
    model: str
    tradeoffs: str


@dataclass(frozen=True)
class ModelRecommendation:
    recommended_model: str
    confidence: float
    reasoning: str
    cost_savings: Optional[float] = None
    alternative_model: Optional[AlternativeModel] = None


def _tier(model: str) -> str:
    return "opus" if "opus" in model else "sonnet"


class ModelAdvisor:
    """Suggests a model for a task from the configured pricing and mapping."""

    def __init__(self, config: UsageConfig):
        self.config = config
        self.pricing = PricingTable(config.models)
        self._patterns = {
            task: [re.compile(p, re.IGNORECASE) for p in patterns]
            for task, patterns in TASK_PATTERNS.items()
        }

    def classify_task(self, prompt: str) -> TaskClassification:
        """Classify a task description by the pattern family it matches best."""
        best = TaskClassification(
            task_type=DEFAULT_TASK,
            confidence=0.1,
            reasoning="Default classification - no strong pattern match",
        )

        for task_type, patterns in self._patterns.items():
            matched = [p.pattern for p in patterns if p.search(prompt)]
            if not matched:
                continue
            confidence = min(MAX_CONFIDENCE, 0.3 + len(matched) * 0.2)
            if confidence > best.confidence:
                best = TaskClassification(
                    task_type=task_type,
                    confidence=confidence,
                    reasoning=f"Matched {len(matched)} pattern(s): {', '.join(matched[:2])}",
                )

        word_count = len(prompt.split())
        has_code_blocks = "```" in prompt
        has_multiple_questions = prompt.count("?") > 2

        if word_count > 200 and best.task_type == DEFAULT_TASK:
            best.task_type = "complex_analysis"
            best.confidence = 0.6
            best.reasoning += " (adjusted for length)"

        if has_code_blocks and best.confidence < 0.7:
            best.confidence = min(0.9, best.confidence + 0.2)
            best.reasoning += " (code context boost)"

        if has_multiple_questions and best.task_type == DEFAULT_TASK:
            best.task_type = "complex_analysis"
            best.confidence = min(0.8, best.confidence + 0.1)
            best.reasoning += " (multiple questions detected)"

        return best

    def get_model_recommendation(self, classification: TaskClassification) -> ModelRecommendation:
        """Map a classification to a model and estimate the saving.

        The saving compares the recommended model with the most expensive
        model in the pricing table for the task's typical token usage; it is
        None when there is nothing to save.
        """
        mapping = self._mapping_for(classification.task_type)
        usage = self._estimated_usage(classification.task_type)

        recommended_cost = self.pricing.usage_cost(mapping.model, usage)
        most_expensive = max(
            self.pricing.prices, key=lambda m: (self.pricing.usage_cost(m, usage), m)
        )
        savings = self.pricing.usage_cost(most_expensive, usage) - recommended_cost

        return ModelRecommendation(
            recommended_model=mapping.model,
            confidence=min(MAX_CONFIDENCE, mapping.confidence * classification.confidence),
            reasoning=self._reasoning(classification.task_type, mapping.model),
            cost_savings=savings if savings > 0 else None,
            alternative_model=self._alternative(mapping.model, most_expensive, usage),
        )

    def recommend(self, prompt: str) -> Tuple[TaskClassification, ModelRecommendation]:
        classification = self.classify_task(prompt)
        return classification, self.get_model_recommendation(classification)

    def _mapping_for(self, task_type: str) -> TaskRecommendation:
        recommendations = self.config.recommendations
        if task_type in recommendations:
            return recommendations[task_type]
        if DEFAULT_TASK in recommendations:
            return recommendations[DEFAULT_TASK]
        cheapest = min(
            self.pricing.prices,
            key=lambda m: (self.pricing.usage_cost(m, self._estimated_usage(task_type)), m),
        )
        return TaskRecommendation(model=cheapest, confidence=FALLBACK_CONFIDENCE)

    @staticmethod
    def _estimated_usage(task_type: str) -> TokenUsage:
        prompt_tokens, completion_tokens = TOKEN_ESTIMATES.get(
            task_type, TOKEN_ESTIMATES[DEFAULT_TASK]
        )
        return TokenUsage(prompt_tokens=prompt_tokens, completion_tokens=completion_tokens)

    @staticmethod
    def _reasoning(task_type: str, model: str) -> str:
        tier = _tier(model)
        task_reasons = REASONS.get(task_type)
        if task_reasons:
            return task_reasons[tier]
        return "Sonnet for cost efficiency" if tier == "sonnet" else "Opus for maximum capability"

    def _alternative(
        self,
        recommended: str,
        most_expensive: str,
        usage: TokenUsage,
    ) -> Optional[AlternativeModel]:
        if most_expensive != recommended:
            return AlternativeModel(
                model=most_expensive,
                tradeoffs="Higher cost but maximum reasoning capability and nuance detection",
            )

        others = [m for m in self.pricing.prices if m != recommended]
        if not others:
            return None
        cheapest = min(others, key=lambda m: (self.pricing.usage_cost(m, usage), m))
        return AlternativeModel(
            model=cheapest,
            tradeoffs="Lower cost but may miss some nuances in very complex tasks",
        )

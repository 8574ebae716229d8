"""
Model advisor for Claude usage.

Recommends a model for a described task using the configured pricing table.
"""

from .model_advisor import ModelAdvisor, ModelRecommendation, TaskClassification

__all__ = ["ModelAdvisor", "ModelRecommendation", "TaskClassification"]

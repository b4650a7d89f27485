"""External classifier client and response adapters."""

from activity_analytics.classifier.client import ClassifierClient
from activity_analytics.classifier.adapter import CategoryClassifier, KeywordExtractor

__all__ = ["ClassifierClient", "CategoryClassifier", "KeywordExtractor"]

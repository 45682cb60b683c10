"""
Visual Classifier Adapter Service

Provides adapter interfaces and implementations for frame classification.
"""
from focusguard.services.classifier.base import (
    ClassifierError,
    VisualClassifier,
    parse_classification,
    strip_data_url_prefix,
    to_data_url,
)
from focusguard.services.classifier.openai_client import OpenAIVisualClassifier
from focusguard.services.classifier.development_client import DevelopmentVisualClassifier
from focusguard.services.classifier.factory import create_visual_classifier

__all__ = [
    "ClassifierError",
    "VisualClassifier",
    "parse_classification",
    "strip_data_url_prefix",
    "to_data_url",
    "OpenAIVisualClassifier",
    "DevelopmentVisualClassifier",
    "create_visual_classifier",
]

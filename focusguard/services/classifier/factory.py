"""
Visual Classifier Adapter Factory

Creates and configures classifier adapters based on system configuration.
"""
from focusguard.services.classifier.base import VisualClassifier
from focusguard.services.classifier.development_client import DevelopmentVisualClassifier
from focusguard.services.classifier.openai_client import OpenAIVisualClassifier
from focusguard.services.logger_service import get_logger
from focusguard.types.config import ClassifierConfig, ClassifierProvider


def create_visual_classifier(config: ClassifierConfig) -> VisualClassifier:
    """
    Create a visual classifier adapter.

    An unconfigured OpenAI classifier is still returned: every cycle then
    fails with a missing-credential error, which the scheduler turns into
    an ERROR status instead of refusing to start.

    Args:
        config: Classifier configuration.

    Returns:
        Configured VisualClassifier instance.

    Raises:
        ValueError: If the provider is unknown.
    """
    logger = get_logger()

    if config.provider == ClassifierProvider.OPENAI:
        classifier = OpenAIVisualClassifier(
            api_key=config.api_key,
            model=config.model,
            base_url=config.base_url,
            timeout_seconds=config.timeout_seconds,
            max_tokens=config.max_tokens,
        )
        if classifier.is_configured():
            logger.system(
                "classifier_created",
                {"provider": "openai", "model": classifier.get_model_name()},
                level="DEBUG",
            )
        else:
            logger.system(
                "classifier_not_configured",
                {"provider": "openai", "hint": "set OPENAI_API_KEY or classifier.api_key"},
                level="WARNING",
            )
        return classifier

    if config.provider == ClassifierProvider.DEVELOPMENT:
        logger.system(
            "classifier_development_mode",
            {"provider": "development"},
            level="INFO",
        )
        return DevelopmentVisualClassifier()

    logger.system(
        "classifier_provider_unsupported",
        {"provider": str(config.provider)},
        level="ERROR",
    )
    raise ValueError(f"Unsupported classifier provider: {config.provider}")

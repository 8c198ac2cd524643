from pathlib import Path

import pytest

from src.adapters.html.bleach_sanitizer import BleachHtmlSanitizer
from src.components.markdown import (
    MarkdownProcessingService,
    PatternPolicy,
    create_markdown_processing_service,
    policy_from_rules,
)
from src.rules.loader import load_rules
from src.rules.models import Rules


@pytest.fixture
def rules() -> Rules:
    """
    Rules loaded from the real rules.yaml at the project root.
    """
    rules_path = Path(__file__).parent.parent / "rules.yaml"
    if not rules_path.exists():
        raise FileNotFoundError(f"Rules not found at {rules_path}")
    return load_rules(rules_path)


@pytest.fixture
def policy(rules: Rules) -> PatternPolicy:
    return policy_from_rules(rules.markdown)


@pytest.fixture
def markdown_service(policy: PatternPolicy) -> MarkdownProcessingService:
    """Service wired the way the CLI wires it."""
    return create_markdown_processing_service(policy=policy, html_sanitizer=BleachHtmlSanitizer())

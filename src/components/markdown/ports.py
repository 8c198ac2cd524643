"""
Markdown component port definitions.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from src.rules.models import MarkdownRules


class RulesPort(Protocol):
    """Port for accessing markdown policy rules."""

    def get_markdown_rules(self) -> MarkdownRules:
        """Get the markdown section of the rules file."""
        ...


class HtmlSanitizerPort(Protocol):
    """Port for the HTML sanitizer applied to rendered output."""

    def clean(
        self,
        html: str,
        *,
        tags: frozenset[str],
        attributes: Mapping[str, frozenset[str]],
        protocols: frozenset[str],
        allow_data_images: bool,
    ) -> str:
        """Return html with everything outside the allow-lists removed."""
        ...

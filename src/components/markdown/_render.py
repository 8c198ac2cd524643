"""
HtmlRenderer (E4.3) - Markdown to HTML.

Test assertions: TA-0110, TA-0111

Security model:
- markdown-it builds the HTML
- the HtmlSanitizerPort (bleach by default) reduces it to the allow-list
- without a sanitizer, raw HTML input is disabled instead and rendered as
  text, so the output is still safe. Availability is checked on every
  render, not once at construction.
"""

from __future__ import annotations

import importlib
import importlib.util
import logging
from typing import Any

from markdown_it import MarkdownIt

from ._policy import DEFAULT_POLICY, PatternPolicy, classify_url
from .errors import MarkdownRenderingError, MarkdownSanitizationError
from .models import DEFAULT_OPTIONS, ProcessingOptions
from .ports import HtmlSanitizerPort

logger = logging.getLogger(__name__)

SANITIZER_MODULE = "src.adapters.html.bleach_sanitizer"


def html_sanitizer_available() -> bool:
    """Capability check for the optional HTML sanitizer library."""
    return importlib.util.find_spec("bleach") is not None


def load_html_sanitizer() -> HtmlSanitizerPort | None:
    """Return the default HTML sanitizer, or None when it can not be used."""
    if not html_sanitizer_available():
        logger.warning("bleach is not installed; raw HTML in markdown will be escaped instead")
        return None
    module = importlib.import_module(SANITIZER_MODULE)
    sanitizer: HtmlSanitizerPort = module.BleachHtmlSanitizer()
    return sanitizer


def build_parser(allow_html: bool) -> MarkdownIt:
    # - linkify=False: plain URLs are not auto-linked
    # - typographer=False: deterministic output
    # - breaks=True: single newlines become <br>
    return MarkdownIt(
        "commonmark",
        {
            "html": allow_html,
            "linkify": False,
            "typographer": False,
            "breaks": True,
        },
    ).enable(["table", "strikethrough"])


class HtmlRenderer:
    """Renders markdown to HTML, sanitizing the result when asked."""

    def __init__(
        self,
        policy: PatternPolicy | None = None,
        html_sanitizer: HtmlSanitizerPort | None = None,
    ) -> None:
        self._policy = policy or DEFAULT_POLICY
        self._html_sanitizer = html_sanitizer
        self._default_sanitizer: HtmlSanitizerPort | None = None
        self._md = build_parser(allow_html=True)
        self._escaping_md = build_parser(allow_html=False)

    @property
    def degraded(self) -> bool:
        """True when no HTML sanitizer is available right now."""
        return self._html_sanitizer is None and not html_sanitizer_available()

    def _active_sanitizer(self) -> HtmlSanitizerPort | None:
        """The injected sanitizer, else the default one if bleach is usable now."""
        if self._html_sanitizer is not None:
            return self._html_sanitizer
        if self._default_sanitizer is None or not html_sanitizer_available():
            self._default_sanitizer = load_html_sanitizer()
        return self._default_sanitizer

    def render(self, content: Any, options: ProcessingOptions = DEFAULT_OPTIONS) -> str:
        """
        Render content to HTML.

        Raises:
            MarkdownRenderingError: markdown-it failed on the content.
            MarkdownSanitizationError: the HTML sanitizer failed.
        """
        if not isinstance(content, str) or not content.strip():
            return ""

        if not options.sanitize_html:
            return self._render_with(self._md, content)

        html_sanitizer = self._active_sanitizer()
        if html_sanitizer is None:
            return self._render_with(self._escaping_md, content)

        html = self._render_with(self._md, content)
        tags = options.allowed_html_tags
        if tags is None:
            tags = self._policy.allowed_html_tags
        try:
            return html_sanitizer.clean(
                html,
                tags=tags,
                attributes=self._policy.allowed_html_attrs,
                protocols=self._policy.allowed_protocols,
                allow_data_images=self._policy.allow_data_images,
            )
        except Exception as e:
            logger.exception("Sanitizing rendered HTML failed")
            raise MarkdownSanitizationError(
                "Failed to sanitize rendered HTML",
                original_content=content,
                details={"error": str(e)},
            ) from e

    def _render_with(self, md: MarkdownIt, content: str) -> str:
        env: dict[str, Any] = {}
        try:
            tokens = md.parse(content, env)
            self._decorate_links(tokens)
            html: str = md.renderer.render(tokens, md.options, env)
        except Exception as e:
            logger.exception("Rendering markdown failed")
            raise MarkdownRenderingError(
                "Failed to render markdown content",
                {"content_length": len(content), "error": str(e)},
            ) from e
        return html

    def _decorate_links(self, tokens: list[Any]) -> None:
        rel = self._policy.link_rel.value()
        for token in tokens:
            for child in token.children or []:
                if child.type != "link_open":
                    continue
                if rel:
                    child.attrSet("rel", rel)
                href = str(child.attrGet("href") or "")
                if self._policy.is_external(classify_url(href)):
                    child.attrSet("target", "_blank")

"""
Markdown pattern policy (E4.3) - dangerous signatures, allow-lists and limits.

Test assertions: TA-0101, TA-0102

Key behaviors:
- One immutable policy value shared by every component
- Severity of a finding is resolved in exactly one place (is_blocking)
- URL classification shared by the validator and the sanitizer
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

from .models import FindingCode, ProcessingOptions, Severity

if TYPE_CHECKING:
    from src.rules.models import MarkdownRules

# --- Dangerous Patterns ---


@dataclass(frozen=True)
class DangerousPattern:
    """
    A script-injection signature.

    regex matches the signature itself. For an element signature (script,
    style) it matches any open or close tag, and the sanitizer also removes
    the body up to the closing tag (see element_bounds).
    """

    name: str
    label: str
    regex: re.Pattern[str]
    severity: Severity = Severity.ERROR_IN_STRICT
    code: str = FindingCode.SECURITY_ERROR.value
    element: str | None = None


# Every quantifier in the built-in signatures is bounded or stops at the
# next "<", ">" or newline, so a failed match never rescans the text.


def _element(name: str, label: str, tag: str) -> DangerousPattern:
    regex = re.compile(rf"</?{tag}[^<>\n]*>?", re.IGNORECASE)
    return DangerousPattern(name, label, regex, element=tag)


def _tag(tag: str) -> re.Pattern[str]:
    return re.compile(rf"</?{tag}\b[^<>\n]*>?", re.IGNORECASE)


@lru_cache(maxsize=None)
def element_bounds(tag: str) -> tuple[re.Pattern[str], re.Pattern[str]]:
    """Opening and closing tag patterns of an element signature."""
    return (
        re.compile(rf"<{tag}[^<>]*>", re.IGNORECASE),
        re.compile(rf"</{tag}\s*>", re.IGNORECASE),
    )


DEFAULT_DANGEROUS_PATTERNS: tuple[DangerousPattern, ...] = (
    _element("script_tag", "<script>", "script"),
    _element("style_tag", "<style>", "style"),
    DangerousPattern("iframe_tag", "<iframe>", _tag("iframe")),
    DangerousPattern("object_tag", "<object>", _tag("object")),
    DangerousPattern("embed_tag", "<embed>", _tag("embed")),
    DangerousPattern("form_tag", "<form>", _tag("form")),
    DangerousPattern("input_tag", "<input>", _tag("input")),
    DangerousPattern("button_tag", "<button>", _tag("button")),
    DangerousPattern("meta_tag", "<meta>", _tag("meta")),
    DangerousPattern("link_tag", "<link>", _tag("link")),
    DangerousPattern(
        "javascript_url", "javascript:", re.compile(r"javascript\s{0,16}:", re.IGNORECASE)
    ),
    DangerousPattern(
        "vbscript_url", "vbscript:", re.compile(r"vbscript\s{0,16}:", re.IGNORECASE)
    ),
    DangerousPattern(
        "data_url",
        "data: URL (non-image)",
        re.compile(r"\bdata:(?!image/)[\w.+-]{1,64}/[\w.+-]{1,64}", re.IGNORECASE),
    ),
    DangerousPattern(
        "event_handler",
        "inline event handler (on*=)",
        re.compile(r"\bon[a-z]{1,32}\s{0,16}=", re.IGNORECASE),
    ),
    # CSS script vectors
    DangerousPattern(
        "css_expression",
        "CSS expression()",
        re.compile(r"[:=]\s{0,16}[\"']?\s{0,16}expression\s{0,16}\(", re.IGNORECASE),
    ),
    DangerousPattern(
        "css_url_javascript",
        "CSS url(javascript:)",
        re.compile(r"\burl\s{0,16}\(\s{0,16}[\"']?\s{0,16}javascript\s{0,16}:", re.IGNORECASE),
    ),
    DangerousPattern(
        "style_expression",
        "style attribute with expression",
        re.compile(r"\bstyle\s{0,16}=[^<>\n]{0,96}?expression", re.IGNORECASE),
    ),
)

# Longest text before a deletion point that can still be the start of a
# built-in signature (style_expression: 5 + 16 + 1 + 96 + 9 characters).
SIGNATURE_LOOKBEHIND = 160


# --- Severity Resolution ---

DEFAULT_SEVERITY: dict[str, Severity] = {
    FindingCode.VALIDATION_ERROR.value: Severity.ERROR_ALWAYS,
    FindingCode.CONTENT_TOO_LARGE.value: Severity.ERROR_ALWAYS,
    FindingCode.SECURITY_ERROR.value: Severity.ERROR_IN_STRICT,
    FindingCode.INVALID_LINK.value: Severity.ERROR_ALWAYS,
    FindingCode.INVALID_IMAGE.value: Severity.ERROR_ALWAYS,
    FindingCode.UNBALANCED_BRACKETS.value: Severity.WARNING,
    FindingCode.UNBALANCED_PARENTHESES.value: Severity.WARNING,
    FindingCode.LONG_LINES.value: Severity.WARNING,
    FindingCode.DEEP_NESTING.value: Severity.WARNING,
    FindingCode.LARGE_TABLE.value: Severity.WARNING,
    FindingCode.EXTERNAL_LINKS.value: Severity.WARNING,
    FindingCode.DATA_URLS.value: Severity.WARNING,
    FindingCode.SUSPICIOUS_DOMAIN.value: Severity.WARNING,
}


def is_blocking(severity: Severity, strict_mode: bool) -> bool:
    """Map a finding severity onto error (True) or warning (False) for a mode."""
    if severity is Severity.ERROR_ALWAYS:
        return True
    if severity is Severity.ERROR_IN_STRICT:
        return strict_mode
    return False


# --- URL Classification ---

RELATIVE_PREFIXES = ("#", "/", "./", "../")
WEB_SCHEMES = frozenset(["http", "https"])


@dataclass(frozen=True)
class UrlInfo:
    """Parsed view of a markdown link/image target."""

    raw: str
    url: str
    scheme: str | None = None
    host: str = ""
    relative: bool = False
    malformed: bool = False


def classify_url(raw: str) -> UrlInfo:
    """
    Classify the target of a markdown link or image.

    An optional title ("url "title"") and angle brackets are ignored.
    """
    target = raw.strip()
    if target.startswith("<") and ">" in target:
        target = target[1 : target.index(">")]
    tokens = target.split()
    url = tokens[0] if tokens else ""

    if not url or url.startswith(RELATIVE_PREFIXES):
        return UrlInfo(raw=raw, url=url, relative=True)

    try:
        parts = urlsplit(url)
        host = (parts.hostname or "").lower()
    except ValueError:
        return UrlInfo(raw=raw, url=url, malformed=True)

    if not parts.scheme:
        return UrlInfo(raw=raw, url=url, relative=True)

    scheme = parts.scheme.lower()
    if scheme in WEB_SCHEMES and not host:
        return UrlInfo(raw=raw, url=url, scheme=scheme, malformed=True)

    return UrlInfo(raw=raw, url=url, scheme=scheme, host=host)


# --- Policy ---


@dataclass(frozen=True)
class LinkRel:
    """rel attribute flags added to rendered links."""

    noopener: bool = True
    noreferrer: bool = True
    ugc: bool = False

    def value(self) -> str:
        parts = []
        if self.noopener:
            parts.append("noopener")
        if self.noreferrer:
            parts.append("noreferrer")
        if self.ugc:
            parts.append("ugc")
        return " ".join(parts)


@dataclass(frozen=True)
class PatternPolicy:
    """Process-wide markdown policy. Built once, never mutated."""

    dangerous_patterns: tuple[DangerousPattern, ...] = DEFAULT_DANGEROUS_PATTERNS

    allowed_protocols: frozenset[str] = field(
        default_factory=lambda: frozenset(["http", "https", "mailto", "tel", "ftp"])
    )
    allow_data_images: bool = True

    # Normal-mode HTML allow-list
    allowed_html_tags: frozenset[str] = field(
        default_factory=lambda: frozenset(
            [
                "h1",
                "h2",
                "h3",
                "h4",
                "h5",
                "h6",
                "p",
                "br",
                "strong",
                "em",
                "u",
                "s",
                "ul",
                "ol",
                "li",
                "blockquote",
                "code",
                "pre",
                "a",
                "img",
                "table",
                "thead",
                "tbody",
                "tr",
                "th",
                "td",
                "hr",
                "del",
                "ins",
            ]
        )
    )

    # Strict-mode HTML allow-list
    strict_html_tags: frozenset[str] = field(
        default_factory=lambda: frozenset(["strong", "em", "code", "del", "ins"])
    )

    allowed_html_attrs: dict[str, frozenset[str]] = field(
        default_factory=lambda: {
            "a": frozenset(["href", "title", "rel", "target"]),
            "img": frozenset(["src", "alt", "title", "width", "height"]),
            "th": frozenset(["align"]),
            "td": frozenset(["align"]),
        }
    )

    link_rel: LinkRel = field(default_factory=LinkRel)

    suspicious_domain_patterns: tuple[re.Pattern[str], ...] = (
        re.compile(r"\.tk$", re.IGNORECASE),
        re.compile(r"\.ml$", re.IGNORECASE),
        re.compile(r"\.ga$", re.IGNORECASE),
        re.compile(r"\.cf$", re.IGNORECASE),
        re.compile(r"(^|\.)bit\.ly$", re.IGNORECASE),
        re.compile(r"tinyurl", re.IGNORECASE),
        re.compile(r"(^|\.)t\.co$", re.IGNORECASE),
    )

    # Hosts treated as same-origin (never external)
    internal_hosts: frozenset[str] = frozenset()

    # Limits
    max_content_length: int = 1_000_000
    max_word_count: int = 100_000
    max_link_count: int = 100
    max_image_count: int = 50
    max_nesting_depth: int = 4
    max_table_cells: int = 500
    max_line_length: int = 120
    max_data_url_length: int = 1_000_000
    reading_speed_wpm: int = 200

    def html_tags_for(self, options: ProcessingOptions) -> frozenset[str]:
        """HTML tags that survive sanitization for the given options."""
        if options.allowed_html_tags is not None:
            return options.allowed_html_tags
        return self.strict_html_tags if options.strict_mode else self.allowed_html_tags

    def is_external(self, info: UrlInfo) -> bool:
        return info.scheme in WEB_SCHEMES and info.host not in self.internal_hosts

    def is_suspicious_host(self, host: str) -> bool:
        return bool(host) and any(p.search(host) for p in self.suspicious_domain_patterns)

    def link_violation(self, info: UrlInfo, options: ProcessingOptions) -> str | None:
        """
        Describe why a link target is not allowed, or None if it is.

        External web links are folded into the protocol check unless
        external links are allowed.
        """
        if info.relative or info.malformed or info.scheme is None:
            return None
        if info.scheme not in self.allowed_protocols:
            return f"{info.scheme}:"
        if not options.allow_external_links and self.is_external(info):
            return f"{info.scheme}: (external links are not allowed)"
        return None

    def image_violation(self, info: UrlInfo) -> str | None:
        """Describe why an image source is not allowed, or None if it is."""
        if info.relative or info.scheme is None:
            return None
        if info.scheme == "data":
            if self.allow_data_images and info.url.lower().startswith("data:image/"):
                return None
            return "data:"
        if info.scheme not in self.allowed_protocols:
            return f"{info.scheme}:"
        return None


DEFAULT_POLICY = PatternPolicy()


def policy_from_rules(rules: MarkdownRules) -> PatternPolicy:
    """Build a policy from the markdown section of rules.yaml."""
    patterns = DEFAULT_DANGEROUS_PATTERNS
    if rules.dangerous_patterns:
        patterns = tuple(
            DangerousPattern(
                name=p.name,
                label=p.label or p.name,
                regex=re.compile(p.pattern, re.IGNORECASE),
                severity=Severity(p.severity),
            )
            for p in rules.dangerous_patterns
        )

    limits = rules.limits
    return PatternPolicy(
        dangerous_patterns=patterns,
        allowed_protocols=frozenset(p.lower().rstrip(":") for p in rules.allowed_protocols),
        allow_data_images=rules.allow_data_images,
        allowed_html_tags=frozenset(t.lower() for t in rules.allowed_html_tags),
        strict_html_tags=frozenset(t.lower() for t in rules.strict_html_tags),
        allowed_html_attrs={
            tag: frozenset(attrs) for tag, attrs in rules.allowed_html_attrs.items()
        },
        link_rel=LinkRel(
            noopener=rules.link_rel.noopener,
            noreferrer=rules.link_rel.noreferrer,
            ugc=rules.link_rel.ugc,
        ),
        suspicious_domain_patterns=tuple(
            re.compile(p, re.IGNORECASE) for p in rules.suspicious_domains
        ),
        internal_hosts=frozenset(h.lower() for h in rules.internal_hosts),
        max_content_length=limits.max_content_length,
        max_word_count=limits.max_word_count,
        max_link_count=limits.max_link_count,
        max_image_count=limits.max_image_count,
        max_nesting_depth=limits.max_nesting_depth,
        max_table_cells=limits.max_table_cells,
        max_line_length=limits.max_line_length,
        max_data_url_length=limits.max_data_url_length,
        reading_speed_wpm=limits.reading_speed_wpm,
    )

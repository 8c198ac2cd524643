from typing import Literal

from pydantic import BaseModel, Field


class ProjectRules(BaseModel):
    slug: str
    rules_version: str


class DangerousPatternRule(BaseModel):
    name: str
    pattern: str
    label: str | None = None
    severity: Literal["error", "error_in_strict", "warning"] = "error_in_strict"


class LinkRelRules(BaseModel):
    noopener: bool = True
    noreferrer: bool = True
    ugc: bool = False


class MarkdownLimits(BaseModel):
    max_content_length: int = Field(default=1_000_000, gt=0)
    max_word_count: int = Field(default=100_000, gt=0)
    max_link_count: int = Field(default=100, gt=0)
    max_image_count: int = Field(default=50, gt=0)
    max_nesting_depth: int = Field(default=4, gt=0)
    max_table_cells: int = Field(default=500, gt=0)
    max_line_length: int = Field(default=120, gt=0)
    max_data_url_length: int = Field(default=1_000_000, gt=0)
    reading_speed_wpm: int = Field(default=200, gt=0)


class MarkdownRules(BaseModel):
    allowed_protocols: list[str]
    allow_data_images: bool = True
    allowed_html_tags: list[str]
    strict_html_tags: list[str]
    allowed_html_attrs: dict[str, list[str]] = {}
    link_rel: LinkRelRules = LinkRelRules()
    suspicious_domains: list[str] = []
    internal_hosts: list[str] = []
    # Empty list keeps the built-in signatures
    dangerous_patterns: list[DangerousPatternRule] = []
    limits: MarkdownLimits = MarkdownLimits()


class Rules(BaseModel):
    project: ProjectRules
    markdown: MarkdownRules

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from src.components.markdown import (
    MarkdownError,
    MarkdownProcessingService,
    PatternPolicy,
    ProcessingOptions,
    create_markdown_processing_service,
    policy_from_rules,
)
from src.rules.loader import load_rules

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("cli")

RULES_PATH = "rules.yaml"


def get_policy(rules_path: str) -> PatternPolicy | None:
    path = Path(rules_path)
    if not path.exists():
        logger.info("Rules file %s not found, using built-in policy.", rules_path)
        return None

    try:
        rules = load_rules(path)
    except ValueError as e:
        logger.error("Could not load rules: %s", e)
        sys.exit(2)
    return policy_from_rules(rules.markdown)


def get_service(args: argparse.Namespace) -> MarkdownProcessingService:
    return create_markdown_processing_service(policy=get_policy(args.rules))


def read_content(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    path = Path(source)
    if not path.exists():
        logger.error("Input file %s not found.", source)
        sys.exit(2)
    return path.read_text(encoding="utf-8")


def options_from_args(args: argparse.Namespace) -> ProcessingOptions:
    return ProcessingOptions(
        strict_mode=args.strict,
        allow_external_links=args.allow_external_links,
        sanitize_html=not getattr(args, "raw_html", False),
    )


def handle_validate(service: MarkdownProcessingService, args: argparse.Namespace) -> int:
    content = read_content(args.source)
    result = asyncio.run(service.validate_content(content, options_from_args(args)))
    print(json.dumps(result.to_dict(), indent=2))
    if not result.is_valid:
        logger.error("Content is invalid: %d error(s).", len(result.errors))
        return 1
    return 0


def handle_sanitize(service: MarkdownProcessingService, args: argparse.Namespace) -> int:
    content = read_content(args.source)
    print(service.sanitize_content(content, options_from_args(args)))
    return 0


def handle_render(service: MarkdownProcessingService, args: argparse.Namespace) -> int:
    content = read_content(args.source)
    options = options_from_args(args)
    if options.sanitize_html and service.render_degraded:
        logger.warning("bleach is not installed; raw HTML will be escaped.")
    print(service.render_to_html(content, options))
    return 0


def handle_stats(service: MarkdownProcessingService, args: argparse.Namespace) -> int:
    content = read_content(args.source)
    print(f"Words: {service.calculate_word_count(content)}")
    print(f"Reading time: {service.estimate_reading_time(content)} min")
    return 0


HANDLERS = {
    "validate": handle_validate,
    "sanitize": handle_sanitize,
    "render": handle_render,
    "stats": handle_stats,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Markdown content pipeline CLI")
    parser.add_argument("--rules", default=RULES_PATH, help="Path to rules.yaml")
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("validate", "Validate markdown and print the result as JSON"),
        ("sanitize", "Print the sanitized markdown"),
        ("render", "Render markdown to HTML"),
        ("stats", "Print word count and reading time"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("source", nargs="?", default="-", help="Markdown file, or - for stdin")
        sub.add_argument("--strict", action="store_true", help="Enable strict mode")
        sub.add_argument(
            "--allow-external-links",
            action="store_true",
            help="Accept http(s) links to other hosts",
        )
        if name == "render":
            sub.add_argument(
                "--raw-html", action="store_true", help="Skip HTML sanitization (trusted input)"
            )

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    service = get_service(args)
    try:
        return HANDLERS[args.command](service, args)
    except MarkdownError as e:
        logger.error("%s failed: %s", args.command, e.message)
        return 1


if __name__ == "__main__":
    sys.exit(main())

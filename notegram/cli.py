"""
Notegram command line

Usage:
    notegram process [--type photo] "text to process"
    notegram categorize "Meeting with client about Q3"
    notegram categories
"""

import argparse
import asyncio
import logging
import os
import sys

from .ai.orchestrator import AIOrchestrator
from .ai.prompts import PromptComposer
from .categories.classifier import AIClassifier
from .categories.engine import CategorizationEngine
from .common.config import load_config, save_config
from .common.schemas.content import ContentType


def _build(config):
    orchestrator = AIOrchestrator(config.ai, config.processing, PromptComposer(config.prompts))
    engine = CategorizationEngine(
        config.categories,
        AIClassifier(orchestrator),
        on_change=lambda categories, rules: save_config(config),
    )
    return orchestrator, engine


async def _process(args, config) -> int:
    content_type = ContentType.parse(args.type)
    if content_type is None:
        print(f"[Notegram] ERROR: Unknown content type: {args.type}", file=sys.stderr)
        return 2
    orchestrator, _ = _build(config)
    result = await orchestrator.process(args.text, content_type)
    if result is None:
        print("[Notegram] AI processing unavailable, showing original content", file=sys.stderr)
        result = args.text
    print(result)
    return 0


async def _categorize(args, config) -> int:
    _, engine = _build(config)
    match = await engine.match(args.text)
    if match is None:
        print("[Notegram] No category")
        return 1
    category = engine.get_category(match.category_id)
    keywords = f" keywords={','.join(match.matched_keywords)}" if match.matched_keywords else ""
    print(f"{category.name} (strategy={match.matched_rule} confidence={match.confidence:.2f}{keywords})")
    return 0


async def _categories(args, config) -> int:
    _, engine = _build(config)
    for category in engine.categories:
        state = "" if category.enabled else " [disabled]"
        default = " [default]" if category.id == config.categories.default_category_id else ""
        print(f"{category.id}  {category.name}{state}{default}  {category.note_path_template}")
        for rule in engine.rules_for_category(category.id):
            print(f"    rule {rule.id}: {rule.type.value} '{rule.condition}' priority={rule.priority}")
    stats = engine.get_stats()
    print(
        f"[Notegram] {stats['enabled_categories']}/{stats['total_categories']} categories enabled, "
        f"{stats['enabled_rules']}/{stats['total_rules']} rules enabled"
    )
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="notegram", description="Turn chat messages into structured notes")
    parser.add_argument(
        "--log-level",
        default=os.getenv("NOTEGRAM_LOG_LEVEL", "INFO"),
        help="Logging level (default: NOTEGRAM_LOG_LEVEL or INFO)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    process_parser = subparsers.add_parser("process", help="Process text with the configured AI provider")
    process_parser.add_argument("text", help="Content to process")
    process_parser.add_argument("--type", default="text", help="Content type (text, voice, photo, video, audio, document)")

    categorize_parser = subparsers.add_parser("categorize", help="Resolve the category for a piece of text")
    categorize_parser.add_argument("text", help="Content to categorize")

    subparsers.add_parser("categories", help="List categories and rules")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config()
    handlers = {
        "process": _process,
        "categorize": _categorize,
        "categories": _categories,
    }
    return asyncio.run(handlers[args.command](args, config))


if __name__ == "__main__":
    sys.exit(main())

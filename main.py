#!/usr/bin/env python3
"""Grounded Shopping Assistant CLI."""

import argparse
import logging
import sys
import uuid
from config.settings import Settings
from observers import LoggingTurnObserver, MetricsTurnObserver
from orchestrator import ConversationOrchestrator


def _print_result(result):
    print("\n" + "="*60)
    print(result.message)
    for product in result.products:
        price = f"USD {product.price:.2f}" if product.price is not None else "preço sob consulta"
        print(f"  - [{product.id}] {product.title} | {product.store} | {price}")
    print("="*60 + "\n")


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Grounded Shopping Assistant - conversational product search over a store catalog"
    )
    parser.add_argument(
        "--question",
        "-q",
        type=str,
        help="Single utterance to process (interactive mode when omitted)"
    )
    parser.add_argument(
        "--session",
        "-s",
        type=str,
        help="Session ID (a new one is generated when omitted)"
    )
    parser.add_argument(
        "--catalog-json",
        type=str,
        help="Path to a local catalog JSON file"
    )
    parser.add_argument(
        "--catalog-api",
        type=str,
        help="Catalog API base URL (overrides CATALOG_API_URL)"
    )
    parser.add_argument(
        "--provider",
        type=str,
        choices=["openai", "anthropic"],
        default="openai",
        help="LLM provider (default: openai)"
    )
    parser.add_argument(
        "--memory",
        type=str,
        choices=["memory", "sqlite"],
        default="memory",
        help="Session memory backend (default: memory)"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    settings = Settings(
        catalog_json_path=args.catalog_json,
        catalog_api_url=args.catalog_api,
        llm_provider=args.provider,
        memory_backend=args.memory,
        verbose=args.verbose,
    )

    metrics = MetricsTurnObserver()
    orchestrator = ConversationOrchestrator(
        settings=settings,
        observers=[LoggingTurnObserver(), metrics]
    )
    session_id = args.session or uuid.uuid4().hex[:12]

    try:
        if args.question:
            _print_result(orchestrator.process_turn(session_id, args.question))
            return

        print(f"Sessão {session_id}. Digite 'sair' para encerrar.")
        while True:
            try:
                utterance = input("> ").strip()
            except EOFError:
                break
            if utterance.lower() in ("sair", "exit", "quit"):
                break
            if not utterance:
                continue
            _print_result(orchestrator.process_turn(session_id, utterance))

        if args.verbose:
            print(metrics.summary())
    except Exception as e:
        print(f"Error processing turn: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()

"""Reme diagnostics CLI."""

from __future__ import annotations

import argparse
import json

import httpx

from reme.config import RemeSettings
from reme.routing import ModelRouter, build_providers
from reme.storage import ChromaMemoryIndex, ChromaUnavailableError


def load_index(settings: RemeSettings) -> ChromaMemoryIndex:
    index = ChromaMemoryIndex(settings.chroma_persist_path)
    try:
        index.ping()
    except ChromaUnavailableError as exc:
        print(f"Chroma unavailable: {exc}")
        raise SystemExit(1)
    return index


def cmd_models(args: argparse.Namespace) -> None:
    settings = RemeSettings()
    router = ModelRouter(
        build_providers(settings),
        timeout=settings.model_timeout,
        primary_model=settings.primary_model,
        default_model=settings.default_model,
        fallback_model=settings.fallback_model,
    )
    models = router.describe()
    if args.json:
        print(json.dumps({"providers": router.provider_status(), "models": models}, indent=2))
        return
    for model in models:
        marker = "ok" if model["available"] else "--"
        print(f"[{marker}] {model['key']} ({model['provider']}) caps={','.join(model['capabilities'])}")


def cmd_memory(args: argparse.Namespace) -> None:
    settings = RemeSettings()
    index = load_index(settings)
    try:
        if args.query:
            notes = index.query_notes(args.project, args.query, limit=args.limit)
            payload = {
                "project": args.project,
                "query": args.query,
                "notes": [
                    {
                        "id": note.id,
                        "relevance": note.relevance,
                        "tags": note.tags,
                        "content": note.document,
                    }
                    for note in notes
                ],
            }
        else:
            payload = {"project": args.project, "indexed": index.count()}
    except ChromaUnavailableError as exc:
        print(f"Chroma unavailable: {exc}")
        raise SystemExit(1)
    print(json.dumps(payload, indent=2))


def cmd_health(args: argparse.Namespace) -> None:
    url = args.url.rstrip("/") + "/api/health"
    try:
        response = httpx.get(url, timeout=args.timeout)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        print(f"Health check failed: {exc}")
        raise SystemExit(1)
    print(json.dumps(response.json(), indent=2))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Reme diagnostics")
    sub = parser.add_subparsers(dest="cmd")

    p_models = sub.add_parser("models", help="List the model registry and provider availability")
    p_models.add_argument("--json", action="store_true", help="Output JSON")
    p_models.set_defaults(func=cmd_models)

    p_memory = sub.add_parser("memory", help="Inspect persisted memory notes")
    p_memory.add_argument("--project", required=True)
    p_memory.add_argument("--query")
    p_memory.add_argument("--limit", type=int, default=5)
    p_memory.set_defaults(func=cmd_memory)

    p_health = sub.add_parser("health", help="Query a running server's health endpoint")
    p_health.add_argument("--url", default="http://127.0.0.1:5000")
    p_health.add_argument("--timeout", type=float, default=5.0)
    p_health.set_defaults(func=cmd_health)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return
    args.func(args)


if __name__ == "__main__":
    main()

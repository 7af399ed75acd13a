"""
Openjourney Main Entry Point

Run the API server or a single headless generation.
"""

import argparse
import asyncio
import base64
import sys
from pathlib import Path

from openjourney.core.logging_config import LogLevel, setup_logging, get_logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="openjourney",
        description="Openjourney - MidJourney-style image and video generation"
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        help="Path to configuration file"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    parser.add_argument(
        "--log-file",
        type=str,
        help="Also write logs to this file"
    )

    subparsers = parser.add_subparsers(dest="command")

    serve = subparsers.add_parser("serve", help="Run the API server")
    serve.add_argument("--host", type=str, default="0.0.0.0", help="Bind address (default: 0.0.0.0)")
    serve.add_argument("--port", type=int, default=8000, help="Port for the API server (default: 8000)")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes")

    generate = subparsers.add_parser("generate", help="Run one generation and print the results")
    generate.add_argument("kind", choices=["image", "video"], help="What to generate")
    generate.add_argument("prompt", type=str, help="Text prompt")
    generate.add_argument("--image", type=str, help="Source image (conditions images, animates into video)")
    generate.add_argument("--api-key", type=str, help="API key (overrides stored and environment keys)")
    generate.add_argument("--provider", type=str, choices=["google", "fal"], help="Provider to use")

    return parser


def main(argv=None) -> int:
    """Main entry point for the Openjourney application."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(
        level=LogLevel.from_flags(verbose=args.verbose, debug=args.debug),
        log_file=Path(args.log_file) if args.log_file else None,
        verbose=args.verbose or args.debug,
    )

    if args.command == "serve":
        return run_server(args)
    if args.command == "generate":
        return asyncio.run(run_generate(args))

    parser.print_help()
    return 2


def run_server(args) -> int:
    """Run the FastAPI server (blocking)."""
    logger = get_logger("main")
    logger.info(f"Starting API server on port {args.port}")
    print(f"Starting Openjourney API on http://{args.host}:{args.port}")

    from openjourney.api.main import start_server
    start_server(host=args.host, port=args.port, reload=args.reload)
    return 0


def summarize_url(url: str) -> str:
    """Data URIs are shortened to their media type and payload size."""
    if url.startswith("data:") and "," in url:
        header, payload = url.split(",", 1)
        return f"{header},... ({len(payload) * 3 // 4} bytes)"
    return url


async def run_generate(args) -> int:
    """Run a single workflow headless and print the resulting media URLs."""
    from openjourney.core.config import load_config
    from openjourney.core.settings import SettingsContext
    from openjourney.generation.media import flatten
    from openjourney.generation.models import ImageItem, MediaKind
    from openjourney.generation.timeline import GenerationTimeline
    from openjourney.generation.workflows import GenerationWorkflows
    from openjourney.providers.gateway import ProviderGateway

    logger = get_logger("main")

    config = load_config(args.config)
    config.generation.seed_samples = False

    context = SettingsContext()
    if args.provider:
        context.update(provider=args.provider)

    image_bytes = None
    if args.image:
        image_path = Path(args.image)
        if not image_path.exists():
            print(f"Image not found: {image_path}", file=sys.stderr)
            return 1
        image_bytes = base64.b64encode(image_path.read_bytes()).decode("ascii")

    timeline = GenerationTimeline()
    gateway = ProviderGateway(settings=context, config=config)
    workflows = GenerationWorkflows(timeline, gateway)

    try:
        if args.kind == "video" and image_bytes:
            source = ImageItem(url=str(args.image), raw_bytes=image_bytes)
            outcome = await workflows.image_to_video(source, args.prompt, credentials=args.api_key)
        else:
            outcome = await workflows.generate(
                MediaKind(args.kind),
                args.prompt,
                source_image_bytes=image_bytes,
                credentials=args.api_key,
            )
    finally:
        await gateway.aclose()

    if not outcome.success:
        logger.error(f"Generation failed: {outcome.user_message}")
        print(f"Generation failed: {outcome.user_message}", file=sys.stderr)
        if outcome.requires_credentials:
            print("Set GOOGLE_AI_API_KEY / FAL_KEY or pass --api-key.", file=sys.stderr)
        return 1

    print(f"{outcome.record.prompt}")
    for item in flatten(timeline):
        print(f"  [{item.kind.value} {item.local_index + 1}] {summarize_url(item.url)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

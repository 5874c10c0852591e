"""
Command Line Interface
======================

``python -m cardrender export|serve|themes``
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional

from playwright.async_api import Error as PlaywrightError
from pydantic import ValidationError

from cardrender.config.logging import bind_log_context, get_logger
from cardrender.config.settings import get_settings
from cardrender.core.errors import CardRenderError
from cardrender.core.rendering.exporter import ExportOrchestrator
from cardrender.core.rendering.session import preview_session
from cardrender.core.themes.catalog import build_default_registry
from cardrender.core.themes.registry import ThemeRegistry
from cardrender.models.schemas import CardContent, ExportFormat, ExportJob, PngRenderer

logger = get_logger(__name__)


def load_content(path: Path) -> CardContent:
    """Read ``{mainTitle, cards}`` JSON from a file."""
    with open(path, "r", encoding="utf-8") as f:
        return CardContent.model_validate(json.load(f))


async def run_export(args: argparse.Namespace, registry: ThemeRegistry) -> Path:
    settings = get_settings()
    theme = registry.require(args.theme)
    bind_log_context(theme_id=theme.id, output_format=args.format)
    content = load_content(Path(args.input))
    orchestrator = ExportOrchestrator(registry, settings=settings)

    job = ExportJob(
        format=ExportFormat.SVG if args.format == "svg" else ExportFormat.PNG,
        pixel_ratio=args.pixel_ratio if args.pixel_ratio is not None else settings.export_pixel_ratio,
        background_color=args.background if args.background is not None else settings.background_color,
        bottom_reserved_px=settings.bottom_reserved_px,
        renderer=PngRenderer(args.renderer) if args.renderer else None,
    )

    async with preview_session(settings, include_external=not theme.self_contained) as page:
        if args.format == "html":
            html = await orchestrator.export_as_document(page, theme, content, job)
            out = Path(args.out) if args.out else Path(f"{theme.id}.html")
            out.write_text(html, encoding="utf-8")
            return out

        result = await orchestrator.export_as_image(page, theme, content, job)
        out = Path(args.out) if args.out else Path(result.filename)
        out.write_bytes(result.data)
        logger.info("Export written", path=str(out), backend=result.backend, file_size=result.file_size)
        return out


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cardrender", description="Render card content to images and documents")
    commands = parser.add_subparsers(dest="command", required=True)

    export = commands.add_parser("export", help="Export content with a theme")
    export.add_argument("--theme", required=True, help="Theme id")
    export.add_argument("--input", required=True, help="Content JSON file ({mainTitle, cards})")
    export.add_argument("--format", choices=["png", "svg", "html"], default="png", help="Output format")
    export.add_argument("--out", help="Output path (defaults to {theme}-{millis}.{ext})")
    export.add_argument("--pixel-ratio", type=float, help="Output pixel ratio (1-4)")
    export.add_argument("--background", help="Background color, omitted keeps transparency")
    export.add_argument("--renderer", choices=[r.value for r in PngRenderer], help="PNG backend")

    serve = commands.add_parser("serve", help="Run the render API")
    serve.add_argument("--host", help="Bind host")
    serve.add_argument("--port", type=int, help="Bind port")

    commands.add_parser("themes", help="List registered themes")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    registry = build_default_registry()

    if args.command == "themes":
        for summary in registry.summaries():
            flags = []
            if summary.self_contained:
                flags.append("self-contained")
            if summary.headless:
                flags.append("headless")
            print(f"{summary.id:<16} {summary.name:<20} {', '.join(flags)}")
        return 0

    if args.command == "serve":
        from cardrender.api.main import run_server

        run_server(host=args.host, port=args.port)
        return 0

    try:
        out = asyncio.run(run_export(args, registry))
    except FileNotFoundError as e:
        print(f"❌ Input not found: {e.filename}", file=sys.stderr)
        return 2
    except (json.JSONDecodeError, ValidationError) as e:
        print(f"❌ Invalid content: {e}", file=sys.stderr)
        return 2
    except CardRenderError as e:
        print(f"❌ Export failed ({e.error_code}): {e.message}", file=sys.stderr)
        return 1
    except PlaywrightError as e:
        logger.error("Browser failed during export", error=str(e))
        print(f"❌ Browser failed: {e}", file=sys.stderr)
        return 1

    print(f"✅ Wrote {out}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""Entry point for filmcore: headless launch or the web UI server."""
from __future__ import annotations

import argparse
import asyncio
import logging
import mimetypes
import sys
from pathlib import Path

if sys.platform == 'win32':
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

BACKEND_PORT = 8000


def _setup_logging() -> None:
    log_dir = Path.home() / ".filmcore"
    log_dir.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=str(log_dir / "filmcore.log"),
        level=logging.DEBUG,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_persona(path: str):
    from .models import Persona

    p = Path(path)
    mime = mimetypes.guess_type(p.name)[0] or "image/jpeg"
    return Persona.from_bytes(p.stem, p.read_bytes(), mime)


async def run_launch(args: argparse.Namespace) -> Path:
    """Plan a project (and optionally render every scene) without the UI."""
    from .config import Config
    from .models import ProjectAssets, ProjectSettings
    from .project_io import SNAPSHOT_SUFFIX, save_project
    from .studio import Studio

    config = Config.load()
    settings = ProjectSettings(
        genre=args.genre,
        language=args.language,
        page_count=args.pages,
        aspect_ratio=args.ratio,
        premise=args.premise,
    )
    assets = ProjectAssets(heroes=[_load_persona(p) for p in args.hero])

    def alert(msg: str) -> None:
        print(f"⚠  {msg}")

    def credential(kind, msg: str) -> None:
        print(f"🔑 {msg} ({kind.value})")

    studio = Studio(config, progress_cb=print, on_alert=alert, on_credential_needed=credential)
    studio.new_project(settings, assets)
    try:
        await studio.launch()
        if args.visualize:
            for scene in list(studio.project.scenes):
                await studio.visualize_scene(scene.id)
    finally:
        await studio.aclose()

    out = Path(args.out) if args.out else config.output_dir / f"project{SNAPSHOT_SUFFIX}"
    return save_project(studio.project, out)


def run_server(args: argparse.Namespace) -> None:
    import uvicorn

    uvicorn.run("webui.backend.app:app", host=args.host, port=args.port, reload=args.reload)


def _build_parser() -> argparse.ArgumentParser:
    from .catalog import DEFAULT_CATEGORY

    parser = argparse.ArgumentParser(prog="filmcore", description="AI storyboard and film studio")
    sub = parser.add_subparsers(dest="command", required=True)

    launch = sub.add_parser("launch", help="Plan a project from hero reference images")
    launch.add_argument("--hero", action="append", required=True, help="Hero reference image (repeatable)")
    launch.add_argument("--genre", default=DEFAULT_CATEGORY)
    launch.add_argument("--pages", type=int, default=0, help="Scene count (0 = default)")
    launch.add_argument("--language", default="zh-CN")
    launch.add_argument("--ratio", choices=["1:1", "16:9", "9:16"], default="1:1")
    launch.add_argument("--premise", default="")
    launch.add_argument("--visualize", action="store_true", help="Render every scene after planning")
    launch.add_argument("--out", default=None, help="Snapshot output path")

    serve = sub.add_parser("serve", help="Run the web API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=BACKEND_PORT)
    serve.add_argument("--reload", action="store_true")
    return parser


def main(argv: list[str] | None = None) -> None:
    """Launch a project headless, or serve the web UI."""
    _setup_logging()
    args = _build_parser().parse_args(argv)

    if args.command == "serve":
        run_server(args)
        return

    from .errors import FilmCoreError

    try:
        output = asyncio.run(run_launch(args))
        print(f"\n✅ Output: {output}")
    except FilmCoreError as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()

"""Litestar ASGI application: FilmCore Web API."""
from __future__ import annotations

from pathlib import Path

from litestar import Litestar, Request, Response
from litestar.config.cors import CORSConfig
from litestar.logging import LoggingConfig
from litestar.static_files import create_static_files_router
from litestar.status_codes import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_404_NOT_FOUND,
    HTTP_502_BAD_GATEWAY,
)

from filmcore.errors import CREDENTIAL_KINDS, FilmCoreError, classify_error, user_message
from webui.backend.routes.config import get_config, save_config
from webui.backend.routes.music import generate_music, suggest_music
from webui.backend.routes.projects import (
    close_project,
    create_project,
    export_project,
    get_project,
    get_status,
    import_project,
    inspire,
    launch_project,
    patch_settings,
    premise,
    recommend,
    rename_asset,
)
from webui.backend.routes.scenes import (
    add_extra_anchor,
    clear_anchor,
    delete_scene,
    insert_scene,
    patch_metadata,
    regenerate_anchor,
    remove_extra_anchor,
    reshoot_scene,
    rewrite_scene,
    upload_anchor,
    visualize_scene,
)
from webui.backend.routes.shots import (
    cancel_video,
    clear_image,
    delete_shot,
    download_video,
    insert_shot,
    last_frame,
    patch_shot,
    shot_image,
    shot_video,
    toggle_audio,
)
from webui.backend.routes.stream import stream_session

FRONTEND_DIST = Path(__file__).parent.parent / "frontend" / "dist"


def _not_found(request: Request, exc: LookupError) -> Response:
    detail = exc.args[0] if exc.args else "Not found"
    return Response({"detail": str(detail)}, status_code=HTTP_404_NOT_FOUND)


def _bad_request(request: Request, exc: ValueError) -> Response:
    return Response({"detail": str(exc)}, status_code=HTTP_400_BAD_REQUEST)


def _provider_error(request: Request, exc: FilmCoreError) -> Response:
    kind = classify_error(exc)
    status = HTTP_401_UNAUTHORIZED if kind in CREDENTIAL_KINDS else HTTP_502_BAD_GATEWAY
    return Response({"detail": user_message(exc, kind), "kind": kind.value}, status_code=status)


app = Litestar(
    route_handlers=[
        get_config,
        save_config,
        create_project,
        import_project,
        get_project,
        get_status,
        close_project,
        export_project,
        launch_project,
        patch_settings,
        rename_asset,
        recommend,
        inspire,
        premise,
        visualize_scene,
        reshoot_scene,
        rewrite_scene,
        insert_scene,
        delete_scene,
        patch_metadata,
        regenerate_anchor,
        upload_anchor,
        clear_anchor,
        add_extra_anchor,
        remove_extra_anchor,
        patch_shot,
        delete_shot,
        shot_image,
        clear_image,
        last_frame,
        insert_shot,
        shot_video,
        download_video,
        cancel_video,
        toggle_audio,
        suggest_music,
        generate_music,
        stream_session,
    ],
    exception_handlers={
        LookupError: _not_found,
        ValueError: _bad_request,
        FilmCoreError: _provider_error,
    },
    cors_config=CORSConfig(
        allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type"],
    ),
    logging_config=LoggingConfig(
        loggers={
            "filmcore": {"level": "INFO", "handlers": ["queue_listener"]},
            "webui": {"level": "INFO", "handlers": ["queue_listener"]},
        }
    ),
)

# Serve built frontend (production). During dev, Vite dev server handles this.
if FRONTEND_DIST.exists():
    app.register(
        create_static_files_router(
            path="/",
            directories=[FRONTEND_DIST],
            html_mode=True,
        )
    )

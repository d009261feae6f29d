"""Config read/write routes."""
from __future__ import annotations

from pathlib import Path

from litestar import get, post

from filmcore.config import Config
from webui.backend.models import ConfigPayload

_SECRETS = ("text_api_key", "image_api_key", "video_api_key", "music_api_key")


@get("/api/config")
async def get_config() -> ConfigPayload:
    cfg = Config.load()
    return ConfigPayload(
        # Mask secret keys, show only the ends
        text_api_key=_mask(cfg.text_api_key),
        image_api_key=_mask(cfg.image_api_key),
        video_api_key=_mask(cfg.video_api_key),
        music_api_key=_mask(cfg.music_api_key),
        gateway_url=cfg.gateway_url,
        music_base_url=cfg.music_base_url,
        text_model=cfg.text_model,
        image_model=cfg.image_model,
        video_model=cfg.video_model,
        output_dir=str(cfg.output_dir),
    )


@post("/api/config")
async def save_config(data: ConfigPayload) -> dict:
    cfg = Config.load()
    # Only update secrets if the user sent a non-masked value
    for name in _SECRETS:
        value = getattr(data, name)
        if value and "…" not in value:
            setattr(cfg, name, value)
    for name in ("gateway_url", "music_base_url", "text_model", "image_model", "video_model"):
        if value := getattr(data, name):
            setattr(cfg, name, value)
    cfg.output_dir = Path(data.output_dir)
    cfg.save()
    return {"ok": True}


def _mask(value: str) -> str:
    if not value:
        return ""
    return value[:4] + "…" + value[-4:] if len(value) > 8 else "…"

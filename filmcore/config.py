"""Settings, API credentials and gateway constants."""
from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path

from .errors import CredentialMissingError

CONFIG_DIR = Path.home() / ".filmcore"
CONFIG_FILE = CONFIG_DIR / "config.json"

# Gateway
GATEWAY_BASE_URL = "https://ai.t8star.cn"
HTTP_TIMEOUT = 180.0  # seconds; image edits on the gateway are slow

# Models
TEXT_MODEL = "gemini-3-pro-preview"
IMAGE_MODEL = "nano-banana-2-2k"
DEFAULT_VIDEO_MODEL = "veo3.1-pro"
VIDEO_MODELS = {
    "veo3.1": "Veo 3.1 (Standard)",
    "veo3.1-pro": "Veo 3.1 Pro (High Quality)",
    "veo3-pro-frames": "Veo 3 Pro Frames",
    "veo3-fast-frames": "Veo 3 Fast Frames",
    "veo2-fast-frames": "Veo 2 Fast Frames",
    "veo2-fast-components": "Veo 2 Fast Components",
    "veo3.1-components": "Veo 3.1 Components",
}
# Variants that accept a start frame only
SINGLE_REFERENCE_VIDEO_MODELS = frozenset({"veo3-pro-frames"})

# Image sizes the gateway accepts, keyed by aspect ratio
RATIO_TO_SIZE = {
    "1:1": "1024x1024",
    "16:9": "1024x576",
    "9:16": "576x1024",
}
DEFAULT_ASPECT_RATIO = "1:1"

# Retry
MAX_RETRIES = 5
RETRY_DELAY = 4.0  # seconds
RETRY_BACKOFF = 1.5

# Video job polling
POLL_INTERVAL = 5.0  # seconds
MAX_POLLS = 60

# Scene visualization
IMAGE_BATCH_SIZE = 8
BATCH_PAUSE = 0.5  # seconds
MAX_EXTRA_ANCHORS = 5

# Suno music gateway
SUNO_MODEL = "chirp-v4"
MUSIC_POLL_INTERVAL = 5.0
MUSIC_MAX_POLLS = 120


def _env_key(name: str) -> str:
    """Capability key with the shared API_KEY / GEMINI_API_KEY fallbacks."""
    return (
        os.environ.get(name, "")
        or os.environ.get("API_KEY", "")
        or os.environ.get("GEMINI_API_KEY", "")
    )


@dataclass
class Config:
    text_api_key: str = ""
    image_api_key: str = ""
    video_api_key: str = ""
    gateway_url: str = GATEWAY_BASE_URL
    text_model: str = TEXT_MODEL
    image_model: str = IMAGE_MODEL
    video_model: str = DEFAULT_VIDEO_MODEL
    music_api_key: str = ""
    music_base_url: str = GATEWAY_BASE_URL
    output_dir: Path = field(default_factory=lambda: Path("output"))

    @classmethod
    def load(cls) -> "Config":
        """Load config from env vars then config file."""
        cfg = cls()

        # Env vars take priority
        text_key = _env_key("TEXT_API_KEY")
        image_key = _env_key("IMAGE_API_KEY")
        video_key = _env_key("VIDEO_API_KEY")
        music_key = os.environ.get("SUNO_API_KEY", "")

        if CONFIG_FILE.exists():
            try:
                data = json.loads(CONFIG_FILE.read_text(encoding="utf-8-sig"))
                shared = data.get("api_key", "")
                text_key = text_key or data.get("text_api_key", "") or shared
                image_key = image_key or data.get("image_api_key", "") or shared
                video_key = video_key or data.get("video_api_key", "") or shared
                music_key = music_key or data.get("music_api_key", "")
                if url := data.get("gateway_url"):
                    cfg.gateway_url = url
                if tm := data.get("text_model"):
                    cfg.text_model = tm
                if im := data.get("image_model"):
                    cfg.image_model = im
                if vm := data.get("video_model"):
                    cfg.video_model = vm
                if mu := data.get("music_base_url"):
                    cfg.music_base_url = mu
                if out := data.get("output_dir"):
                    cfg.output_dir = Path(out)
            except (json.JSONDecodeError, OSError):
                pass

        if url := os.environ.get("FILMCORE_GATEWAY_URL"):
            cfg.gateway_url = url
        if mu := os.environ.get("SUNO_BASE_URL"):
            cfg.music_base_url = mu

        cfg.text_api_key = text_key
        cfg.image_api_key = image_key
        cfg.video_api_key = video_key
        cfg.music_api_key = music_key
        return cfg

    def save(self) -> None:
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        data = {
            "text_api_key": self.text_api_key,
            "image_api_key": self.image_api_key,
            "video_api_key": self.video_api_key,
            "music_api_key": self.music_api_key,
            "gateway_url": self.gateway_url,
            "text_model": self.text_model,
            "image_model": self.image_model,
            "video_model": self.video_model,
            "music_base_url": self.music_base_url,
            "output_dir": str(self.output_dir),
        }
        CONFIG_FILE.write_text(json.dumps(data, indent=2))

    def key_for(self, capability: str) -> str:
        return {
            "text": self.text_api_key,
            "image": self.image_api_key,
            "video": self.video_api_key,
            "music": self.music_api_key,
        }[capability]

    def require(self, capability: str) -> str:
        """Return the credential for *capability* or raise if it is unset."""
        key = self.key_for(capability)
        if not key:
            raise CredentialMissingError(f"No API key configured for {capability} generation.")
        return key

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field

LOG_FORMAT = "[%(asctime)s] %(levelname)s in %(module)s: %(message)s"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logging.getLogger(__name__).warning("Ignoring invalid %s=%r", name, raw)
        return default


def _env_int(name: str, default: int) -> int:
    return int(_env_float(name, float(default)))


@dataclass(frozen=True)
class Settings:
    """Runtime configuration, read from environment variables."""

    env: str = "development"
    log_level: str = "INFO"
    max_upload_dimension: int = 1536
    # xAI Grok (OpenAI-compatible API)
    xai_base_url: str = "https://api.x.ai/v1"
    xai_vision_model: str = "grok-4-fast-reasoning"
    xai_text_model: str = "grok-4-fast-non-reasoning"
    xai_image_model: str = "grok-imagine-4"
    # Hugging Face Inference API
    hf_api_url: str = "https://api-inference.huggingface.co/models"
    hf_inpaint_model: str = "runwayml/stable-diffusion-inpainting"
    hf_max_dimension: int = 1024
    # which adapter performs prompt edits: "grok", "huggingface" or "hybrid"
    edit_provider: str = "grok"
    request_timeout: float = 120.0
    conform_expanded_output: bool = True
    cors_origins: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_env(cls) -> Settings:
        origins = tuple(o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip())
        return cls(
            env=os.getenv("ENV", "development"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            max_upload_dimension=_env_int("MAX_UPLOAD_DIMENSION", 1536),
            xai_base_url=os.getenv("XAI_BASE_URL", "https://api.x.ai/v1"),
            xai_vision_model=os.getenv("XAI_VISION_MODEL", "grok-4-fast-reasoning"),
            xai_text_model=os.getenv("XAI_TEXT_MODEL", "grok-4-fast-non-reasoning"),
            xai_image_model=os.getenv("XAI_IMAGE_MODEL", "grok-imagine-4"),
            hf_api_url=os.getenv("HF_API_URL", "https://api-inference.huggingface.co/models"),
            hf_inpaint_model=os.getenv("HF_INPAINT_MODEL", "runwayml/stable-diffusion-inpainting"),
            hf_max_dimension=_env_int("HF_MAX_DIMENSION", 1024),
            edit_provider=os.getenv("EDIT_PROVIDER", "grok").lower(),
            request_timeout=_env_float("PROVIDER_TIMEOUT_SECONDS", 120.0),
            conform_expanded_output=os.getenv("CONFORM_EXPANDED_OUTPUT", "1") == "1",
            cors_origins=origins,
        )


def configure_logging(level: str = "INFO") -> None:
    # no-op when the host (uvicorn, pytest) already installed handlers
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stdout)
    logging.getLogger("magic_editor").setLevel(level)

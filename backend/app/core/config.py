"""
PageBinder — Backend Configuration
Loads .env automatically, then reads all settings from environment variables.
"""

import os
import sys
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

_env_path = Path(__file__).resolve().parent.parent.parent / ".env"
load_dotenv(_env_path)


@dataclass(frozen=True)
class PipelineConfig:
    """Tunables for decode, transcode and page layout."""
    max_dimension: int = 4096
    page_margin_mm: float = 1.0
    px_to_mm: float = 0.264583
    shrink_factor: float = 1.0
    heic_quality: float = 0.85
    jpeg_quality: int = 80
    platform: str = "desktop"
    mobile_max_input_mb: float = 25.0
    step_timeout: float | None = None


@dataclass(frozen=True)
class AppConfig:
    """Top-level application configuration."""
    host: str
    port: int
    debug: bool
    max_upload_mb: float
    pipeline: PipelineConfig


def _optional_float(name: str) -> float | None:
    raw = os.getenv(name, "").strip()
    return float(raw) if raw else None


def _load_config() -> AppConfig:
    return AppConfig(
        host=os.getenv("APP_HOST", "0.0.0.0"),
        port=int(os.getenv("APP_PORT", "8000")),
        debug=os.getenv("APP_DEBUG", "false").lower() == "true",
        max_upload_mb=float(os.getenv("PAGEBINDER_MAX_UPLOAD_MB", "50")),
        pipeline=PipelineConfig(
            max_dimension=int(os.getenv("PAGEBINDER_MAX_DIMENSION", "4096")),
            page_margin_mm=float(os.getenv("PAGEBINDER_PAGE_MARGIN_MM", "1.0")),
            px_to_mm=float(os.getenv("PAGEBINDER_PX_TO_MM", "0.264583")),
            shrink_factor=float(os.getenv("PAGEBINDER_SHRINK_FACTOR", "1.0")),
            heic_quality=float(os.getenv("PAGEBINDER_HEIC_QUALITY", "0.85")),
            jpeg_quality=int(os.getenv("PAGEBINDER_JPEG_QUALITY", "80")),
            platform=os.getenv("PAGEBINDER_PLATFORM", "desktop").lower(),
            mobile_max_input_mb=float(os.getenv("PAGEBINDER_MOBILE_MAX_INPUT_MB", "25")),
            step_timeout=_optional_float("PAGEBINDER_STEP_TIMEOUT"),
        ),
    )


def _validate_config(cfg: AppConfig) -> None:
    """Fail fast if a tunable is out of range."""
    problems: list[str] = []
    p = cfg.pipeline
    if p.max_dimension <= 0:
        problems.append("PAGEBINDER_MAX_DIMENSION must be positive")
    if p.page_margin_mm < 0:
        problems.append("PAGEBINDER_PAGE_MARGIN_MM must not be negative")
    if p.px_to_mm <= 0:
        problems.append("PAGEBINDER_PX_TO_MM must be positive")
    if not 0 < p.shrink_factor <= 1:
        problems.append("PAGEBINDER_SHRINK_FACTOR must be in (0, 1]")
    if not 0 < p.heic_quality <= 1:
        problems.append("PAGEBINDER_HEIC_QUALITY must be in (0, 1]")
    if not 1 <= p.jpeg_quality <= 95:
        problems.append("PAGEBINDER_JPEG_QUALITY must be in [1, 95]")
    if p.platform not in ("desktop", "mobile"):
        problems.append("PAGEBINDER_PLATFORM must be 'desktop' or 'mobile'")
    if p.step_timeout is not None and p.step_timeout <= 0:
        problems.append("PAGEBINDER_STEP_TIMEOUT must be positive when set")
    if problems:
        print(
            f"\n  ERROR: Invalid configuration: {'; '.join(problems)}\n"
            f"  Check backend/.env or the PAGEBINDER_* environment variables.\n",
            file=sys.stderr,
        )
        sys.exit(1)


settings = _load_config()
_validate_config(settings)

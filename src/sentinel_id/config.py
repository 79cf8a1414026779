"""
SentinelID Configuration
========================

This module handles configuration loading for the identification service.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    SENTINEL_CAPTURE_BACKEND   -> capture.backend
    SENTINEL_CAMERA_DEVICE     -> capture.device
    SENTINEL_STATIC_IMAGE      -> capture.static_image_path
    SENTINEL_CAPTURE_INTERVAL  -> capture.interval_seconds
    SENTINEL_ORACLE_BACKEND    -> oracle.backend
    SENTINEL_ORACLE_MODEL      -> oracle.model
    SENTINEL_ORACLE_TIMEOUT    -> oracle.timeout_seconds
    GEMINI_API_KEY / GOOGLE_API_KEY / API_KEY -> oracle.api_key
    SENTINEL_COOLDOWN_SECONDS  -> cooldown.window_seconds
    SENTINEL_LOG_MAX_ENTRIES   -> activity_log.max_entries
    SENTINEL_REFERENCE_DIR     -> references.directory
    SENTINEL_PORT              -> server.port
    SENTINEL_LOG_LEVEL         -> logging.level
    PORT                       -> server.port (Cloud Run)

Example:
    from sentinel_id.config import settings

    print(settings.capture.interval_seconds)
    print(settings.cooldown.window_seconds)
"""

import os
import logging
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import BaseModel, Field


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class ServiceConfig(BaseModel):
    """Service identification configuration."""

    name: str = Field(default="sentinel-id", description="Service name")
    version: str = Field(default="v1.0.0", description="Service version")


class CaptureConfig(BaseModel):
    """Video capture and sampling configuration."""

    backend: str = Field(
        default="opencv",
        description="Capture backend: 'opencv' or 'static'",
    )
    device: Union[int, str] = Field(
        default=0,
        description="Camera index or stream URL (opencv backend)",
    )
    static_image_path: Optional[str] = Field(
        default=None,
        description="JPEG replayed by the static backend",
    )
    width: int = Field(default=1280, ge=1, description="Requested frame width")
    height: int = Field(default=720, ge=1, description="Requested frame height")
    jpeg_quality: int = Field(default=80, ge=1, le=100, description="JPEG quality")
    interval_seconds: float = Field(
        default=4.0,
        gt=0,
        description="Period between capture ticks",
    )


class OracleConfig(BaseModel):
    """Identification oracle configuration."""

    backend: str = Field(
        default="gemini",
        description="Oracle backend: 'gemini' or 'mock'",
    )
    model: str = Field(default="gemini-2.5-flash", description="Gemini model name")
    api_key: Optional[str] = Field(default=None, description="Gemini API key")
    temperature: float = Field(default=0.1, ge=0, le=2.0)
    timeout_seconds: float = Field(
        default=30.0,
        ge=0,
        description="Deadline for one oracle call (0 = none)",
    )
    max_references: int = Field(
        default=8,
        ge=1,
        le=8,
        description="Reference faces sent per request (payload ceiling)",
    )


class CooldownConfig(BaseModel):
    """Per-identity cooldown configuration."""

    window_seconds: float = Field(
        default=60.0,
        ge=0,
        description="Minimum gap between two accepted matches of one identity",
    )


class BannerConfig(BaseModel):
    """Match banner configuration."""

    display_seconds: float = Field(
        default=3.0,
        gt=0,
        description="Seconds before a match banner auto-clears",
    )


class ActivityLogConfig(BaseModel):
    """Activity log retention configuration."""

    max_entries: int = Field(
        default=0,
        ge=0,
        description="Retention cap (0 = unbounded, N = keep newest N)",
    )


class ReferencesConfig(BaseModel):
    """Reference face repository configuration."""

    directory: Optional[str] = Field(
        default=None,
        description="Directory preloaded at startup (file stem = name)",
    )
    max_width: int = Field(
        default=512,
        ge=32,
        description="Enrolled images are downscaled to this width",
    )


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8002, ge=1, le=65535, description="Bind port")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for SentinelID.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    service: ServiceConfig = Field(default_factory=ServiceConfig)
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    oracle: OracleConfig = Field(default_factory=OracleConfig)
    cooldown: CooldownConfig = Field(default_factory=CooldownConfig)
    banner: BannerConfig = Field(default_factory=BannerConfig)
    activity_log: ActivityLogConfig = Field(default_factory=ActivityLogConfig)
    references: ReferencesConfig = Field(default_factory=ReferencesConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration
    """
    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path("/app/config.yaml"),
            Path(__file__).parent.parent.parent / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.warning("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Capture settings
    if env_backend := os.environ.get("SENTINEL_CAPTURE_BACKEND"):
        config_data.setdefault("capture", {})["backend"] = env_backend
    if env_device := os.environ.get("SENTINEL_CAMERA_DEVICE"):
        device: Union[int, str] = int(env_device) if env_device.isdigit() else env_device
        config_data.setdefault("capture", {})["device"] = device
    if env_image := os.environ.get("SENTINEL_STATIC_IMAGE"):
        config_data.setdefault("capture", {})["static_image_path"] = env_image
    if env_interval := os.environ.get("SENTINEL_CAPTURE_INTERVAL"):
        config_data.setdefault("capture", {})["interval_seconds"] = float(env_interval)

    # Oracle settings
    if env_oracle := os.environ.get("SENTINEL_ORACLE_BACKEND"):
        config_data.setdefault("oracle", {})["backend"] = env_oracle
    if env_model := os.environ.get("SENTINEL_ORACLE_MODEL"):
        config_data.setdefault("oracle", {})["model"] = env_model
    if env_timeout := os.environ.get("SENTINEL_ORACLE_TIMEOUT"):
        config_data.setdefault("oracle", {})["timeout_seconds"] = float(env_timeout)
    for key_var in ("GEMINI_API_KEY", "GOOGLE_API_KEY", "API_KEY"):
        if env_key := os.environ.get(key_var):
            config_data.setdefault("oracle", {})["api_key"] = env_key
            break

    # Cooldown / retention
    if env_cooldown := os.environ.get("SENTINEL_COOLDOWN_SECONDS"):
        config_data.setdefault("cooldown", {})["window_seconds"] = float(env_cooldown)
    if env_max := os.environ.get("SENTINEL_LOG_MAX_ENTRIES"):
        config_data.setdefault("activity_log", {})["max_entries"] = int(env_max)

    # References
    if env_dir := os.environ.get("SENTINEL_REFERENCE_DIR"):
        config_data.setdefault("references", {})["directory"] = env_dir

    # Server settings (Cloud Run uses PORT env var)
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    elif env_port := os.environ.get("SENTINEL_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Logging settings
    if env_log := os.environ.get("SENTINEL_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


# =============================================================================
# Global Settings Instance
# =============================================================================

# Global settings instance - loaded on import
settings = load_config()
setup_logging(settings)

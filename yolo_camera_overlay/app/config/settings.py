"""Configuration utilities for the live camera overlay."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Application configuration sourced from environment variables or defaults."""

    model_config = SettingsConfigDict(env_prefix="OVERLAY_", case_sensitive=False, protected_namespaces=())

    model_path: Path = Field(default=Path("models/yolov8n.pt"), description="YOLO weights path")
    device: str = Field(default="auto", description="Torch device: auto, cpu, cuda, cuda:N or mps")
    require_acceleration: bool = Field(default=False, description="Refuse to run inference on the CPU.")
    source: str = Field(default="0", description="Camera index or video path")
    capture_width: int = Field(default=640, ge=1)
    capture_height: int = Field(default=480, ge=1)
    capture_fps: int = Field(default=5, ge=1)
    input_size: int = Field(default=416, ge=32, description="Square network input size")
    inflight_buffers: int = Field(default=3, ge=1)
    confidence_threshold: float = Field(default=0.3, ge=0.0, le=1.0)
    iou_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    max_detections: int = Field(default=10, ge=1)
    display_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    overlay_slots: int = Field(default=10, ge=1)
    view_width: int = Field(default=480, ge=1)
    view_height: int = Field(default=854, ge=1)
    display: bool = Field(default=True, description="Render OpenCV windows when true.")
    show_debug_image: bool = Field(default=False)
    show_sprite: bool = Field(default=True)
    overlay_font_scale: float = Field(default=0.5, gt=0.0)
    log_format: str = Field(default="text")
    status_endpoint: Optional[str] = Field(default=None, description="Backend endpoint for status updates.")
    push_status: bool = Field(default=False, description="Whether to send status updates to the endpoint.")
    status_timeout: float = Field(default=2.0, gt=0.0)
    status_max_retries: int = Field(default=2, ge=0)

    @field_validator("model_path", mode="before")
    @classmethod
    def _expand_path(cls, value: str | Path) -> Path:
        return Path(value).expanduser()

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        value = value.lower()
        if value not in {"text", "json"}:
            raise ValueError(f"Unsupported log format: {value}")
        return value

    def video_source(self) -> str | int:
        """Return the camera index as an int when the source is numeric."""

        try:
            return int(self.source)
        except ValueError:
            return self.source


def load_settings(**overrides: object) -> AppSettings:
    """Return application settings, applying optional overrides."""

    return AppSettings(**overrides)

"""
Configuration module using Pydantic Settings for environment variable management.

The lip-track options recognized by the processor live in ``LipTrackOptions``.
Their service-wide defaults can be overridden through environment variables;
individual requests may override them again.
"""

from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class LipTrackOptions(BaseModel):
    """Options controlling speaker windows, lip thresholds and shot boundaries."""

    # Window duration threshold, in timestamp units (microseconds)
    min_speaker_span: int = Field(default=1_000_000, ge=0)

    # Rolling mouth-aspect-ratio history
    variance_history: int = Field(default=10, ge=1)
    mean_history: int = Field(default=3, ge=1)

    # Dual speaking-activation thresholds
    lip_mean_threshold_big_mouth: float = Field(default=0.30, ge=0.0)
    lip_variance_threshold_big_mouth: float = Field(default=0.005, ge=0.0)
    lip_mean_threshold_small_mouth: float = Field(default=0.10, ge=0.0)
    lip_variance_threshold_small_mouth: float = Field(default=0.0015, ge=0.0)

    # Face association and shot-change overlap threshold
    iou_threshold: float = Field(default=0.5, ge=0.0, le=1.0)

    # Debounce duration, in seconds
    min_shot_span: float = Field(default=1.5, ge=0.0)

    output_shot_boundary: bool = True
    output_shot_boundary_only_on_change: bool = True

    def merged(self, overrides: Optional[dict]) -> "LipTrackOptions":
        """Return a copy with the given (validated) overrides applied."""
        if not overrides:
            return self
        data = self.model_dump()
        data.update(overrides)
        return LipTrackOptions(**data)


class Settings(BaseSettings):
    """
    Application settings.

    Only essential configuration is loaded from environment variables.
    Request limits are hardcoded.
    """

    # ============================================================
    # ENVIRONMENT VARIABLES
    # ============================================================

    # Application
    app_name: str = "liptrack"
    debug: bool = False
    log_level: str = "INFO"

    # Security - API authentication
    liptrack_api_key: Optional[str] = None

    # Streaming sessions kept open at the same time
    max_sessions: int = 32

    # Default lip-track options
    min_speaker_span: int = 1_000_000
    variance_history: int = 10
    mean_history: int = 3
    lip_mean_threshold_big_mouth: float = 0.30
    lip_variance_threshold_big_mouth: float = 0.005
    lip_mean_threshold_small_mouth: float = 0.10
    lip_variance_threshold_small_mouth: float = 0.0015
    iou_threshold: float = 0.5
    min_shot_span: float = 1.5
    output_shot_boundary: bool = True
    output_shot_boundary_only_on_change: bool = True

    # ============================================================
    # HARDCODED SETTINGS (not configurable via env vars)
    # ============================================================

    @property
    def max_frames_per_request(self) -> int:
        return 3600  # 2 minutes at 30fps

    @property
    def max_image_bytes(self) -> int:
        return 16 * 1024 * 1024

    @property
    def session_idle_timeout_seconds(self) -> float:
        return 300.0  # Abandoned streaming sessions are dropped after this

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    def get_lip_track_options(self) -> LipTrackOptions:
        """Build the default LipTrackOptions from settings."""
        return LipTrackOptions(
            min_speaker_span=self.min_speaker_span,
            variance_history=self.variance_history,
            mean_history=self.mean_history,
            lip_mean_threshold_big_mouth=self.lip_mean_threshold_big_mouth,
            lip_variance_threshold_big_mouth=self.lip_variance_threshold_big_mouth,
            lip_mean_threshold_small_mouth=self.lip_mean_threshold_small_mouth,
            lip_variance_threshold_small_mouth=self.lip_variance_threshold_small_mouth,
            iou_threshold=self.iou_threshold,
            min_shot_span=self.min_shot_span,
            output_shot_boundary=self.output_shot_boundary,
            output_shot_boundary_only_on_change=self.output_shot_boundary_only_on_change,
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

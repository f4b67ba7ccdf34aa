from __future__ import annotations

from uuid import uuid4

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="TIMELINE_", env_file=".env", extra="ignore")

    app_name: str = "timeline-feed"
    env: str = "dev"

    # Instance ID for distributed deployments
    instance_id: str = Field(default_factory=lambda: str(uuid4())[:8])

    # Redis
    redis_url: str = Field(default="redis://localhost:6379/0", validation_alias="REDIS_URL")

    # Timeline cache
    cache_active_ttl: int = 900  # 15 minutes
    cache_inactive_ttl: int = 3600  # 1 hour
    cache_active_threshold_hours: int = 24

    # Pagination
    default_page_size: int = 20
    max_page_size: int = 100
    candidate_oversample: int = 2

    # Relevance scoring
    score_recency_weight: float = 30.0
    score_recency_half_life_hours: float = 24.0
    score_affinity_bonus: float = 50.0
    score_engagement_weight: float = 20.0
    score_engagement_saturation: float = 25.0
    score_circle_bonus: float = 3.0
    score_group_bonus: float = 4.5
    score_membership_cap: float = 15.0

    # Refresh jobs
    refresh_max_attempts: int = 3
    refresh_job_timeout: int = 300
    bulk_active_window_hours: int = 24
    bulk_progress_interval: int = 100
    bulk_refresh_warm: bool = False
    bulk_refresh_interval: int = 3600

    # Worker
    worker_concurrency: int = 4
    worker_poll_interval: float = 1.0

    # Observability
    enable_metrics: bool = Field(default=True, validation_alias="ENABLE_METRICS")
    log_level: str = "INFO"
    log_json: bool = False


settings = Settings()

from pydantic import BaseModel, Field, field_validator


class ProjectRules(BaseModel):
    slug: str
    rules_version: str


class MetadataRules(BaseModel):
    max_keys: int = Field(default=32, ge=1)
    max_key_length: int = Field(default=64, ge=1)
    max_string_length: int = Field(default=1024, ge=1)


class TrackingRules(BaseModel):
    metadata: MetadataRules = MetadataRules()
    dispatcher_max_workers: int = Field(default=2, ge=1)
    http_timeout_seconds: float = Field(default=5.0, gt=0)


class SessionRules(BaseModel):
    completion_min_progress_percent: float = Field(default=80.0, ge=0, le=100)
    completion_min_duration_seconds: float = Field(default=240.0, ge=0)


class AggregationRules(BaseModel):
    default_window_days: int = Field(default=30, ge=1)
    max_window_days: int = Field(default=365, ge=1)
    reference_timezone: str = "UTC"
    top_articles_limit: int = Field(default=5, ge=1)
    channel_limit: int = Field(default=5, ge=1)

    @field_validator("max_window_days")
    @classmethod
    def _max_not_below_default(cls, v: int, info) -> int:
        default = info.data.get("default_window_days")
        if default is not None and v < default:
            raise ValueError("max_window_days must be >= default_window_days")
        return v


class ConfidenceRules(BaseModel):
    min_sessions: int = Field(default=10, ge=1)
    min_timed_sessions: int = Field(default=5, ge=1)
    min_shares: int = Field(default=3, ge=1)


class OpsRules(BaseModel):
    data_dir_required: bool = False
    required_env: list[str] = []
    fail_fast_on_invalid_rules: bool = True


class Rules(BaseModel):
    project: ProjectRules
    tracking: TrackingRules = TrackingRules()
    sessions: SessionRules = SessionRules()
    aggregation: AggregationRules = AggregationRules()
    confidence: ConfidenceRules = ConfidenceRules()
    ops: OpsRules = OpsRules()

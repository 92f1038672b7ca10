import os
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    openai_api_key: Optional[str] = Field(None, alias="OPENAI_API_KEY")
    agent_model: str = Field("gpt-5-mini", alias="SKILLPATH_AGENT_MODEL")
    agent_reasoning: Literal["minimal", "low", "medium", "high"] = Field("low", alias="SKILLPATH_AGENT_REASONING")
    database_url: Optional[str] = Field(None, alias="SKILLPATH_DATABASE_URL")
    database_pool_size: int = Field(10, alias="SKILLPATH_DATABASE_POOL_SIZE")
    database_max_overflow: int = Field(10, alias="SKILLPATH_DATABASE_MAX_OVERFLOW")
    database_echo: bool = Field(False, alias="SKILLPATH_DATABASE_ECHO")
    generation_timeout_seconds: float = Field(90.0, gt=0, alias="SKILLPATH_GENERATION_TIMEOUT_SECONDS")
    skill_graph_estimated_tokens: int = Field(5000, ge=0, alias="SKILLPATH_SKILL_GRAPH_ESTIMATED_TOKENS")
    course_scan_estimated_tokens: int = Field(2000, ge=0, alias="SKILLPATH_COURSE_SCAN_ESTIMATED_TOKENS")
    course_cache_ttl_hours: float = Field(24.0, gt=0, alias="SKILLPATH_COURSE_CACHE_TTL_HOURS")
    course_result_limit: int = Field(10, ge=1, le=50, alias="SKILLPATH_COURSE_RESULT_LIMIT")
    default_plan_name: str = Field("free", alias="SKILLPATH_DEFAULT_PLAN")
    default_plan_monthly_tokens: int = Field(100_000, ge=0, alias="SKILLPATH_DEFAULT_PLAN_MONTHLY_TOKENS")

    class Config:
        env_file = os.getenv("ENV_FILE", ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache
def get_settings() -> Settings:
    try:
        settings = Settings()  # type: ignore[arg-type]
        if settings.openai_api_key and not os.getenv("OPENAI_API_KEY"):
            os.environ["OPENAI_API_KEY"] = settings.openai_api_key
        return settings
    except ValidationError as exc:
        raise RuntimeError(f"Invalid backend configuration: {exc}") from exc

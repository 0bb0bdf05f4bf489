"""
Configuration management with Pydantic Settings.

Uses pydantic-settings for environment variable loading with type validation.
"""

import os
from pathlib import Path
from typing import List, Literal, Optional
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Fix for httpx proxy scheme validation
for key in ["ALL_PROXY", "all_proxy"]:
    val = os.getenv(key)
    if val and val.startswith("socks://"):
        os.environ[key] = val.replace("socks://", "socks5://", 1)


class LLMSettings(BaseSettings):
    """LLM API configuration."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    api_key: str = Field(default="EMPTY", validation_alias="OPENAI_API_KEY")
    base_url: str = Field(default="https://api.openai.com/v1", validation_alias="OPENAI_BASE_URL")
    model: str = Field(default="gpt-4o-mini", validation_alias="OPENAI_MODEL")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0, validation_alias="OPENAI_TEMPERATURE")
    max_tokens: Optional[int] = Field(default=None, ge=1, validation_alias="OPENAI_MAX_TOKENS")

    @field_validator("api_key")
    @classmethod
    def validate_api_key(cls, v: str) -> str:
        if not v or (v.strip() == "" and v != "EMPTY"):
            raise ValueError("LLM API key is required (use 'EMPTY' for local OpenAI-compatible servers)")
        return v


class SearchSettings(BaseSettings):
    """Tavily search configuration."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    api_key: str = Field(default="", validation_alias="TAVILY_API_KEY")
    base_url: str = Field(default="https://api.tavily.com", validation_alias="TAVILY_BASE_URL")
    max_results: int = Field(default=3, ge=1, le=20, validation_alias="SEARCH_MAX_RESULTS")
    search_depth: Literal["basic", "advanced"] = Field(default="basic", validation_alias="SEARCH_DEPTH")
    include_images: bool = Field(default=True, validation_alias="SEARCH_INCLUDE_IMAGES")
    timeout: float = Field(default=30.0, gt=0, le=300, validation_alias="SEARCH_TIMEOUT")


class DatabaseSettings(BaseSettings):
    """Database configuration."""

    model_config = SettingsConfigDict(env_prefix="DB_")

    app_db_name: str = Field(default="rabbithole.db", alias="APP_DB_NAME")
    # Base dir relative to project root
    base_dir: Path = Field(
        default=Path(__file__).resolve().parent.parent.parent / "db",
        alias="DB_BASE_DIR"
    )

    @property
    def app_db_path(self) -> str:
        """Full path to the application database."""
        return str(self.base_dir / self.app_db_name)


class LayoutSettings(BaseSettings):
    """Graph layout footprints and spacing (pixels)."""

    model_config = SettingsConfigDict(env_prefix="LAYOUT_")

    answer_width: int = Field(default=600, ge=1, alias="LAYOUT_ANSWER_WIDTH")
    answer_height: int = Field(default=500, ge=1, alias="LAYOUT_ANSWER_HEIGHT")
    question_width: int = Field(default=300, ge=1, alias="LAYOUT_QUESTION_WIDTH")
    question_height: int = Field(default=100, ge=1, alias="LAYOUT_QUESTION_HEIGHT")

    node_sep: int = Field(default=100, ge=0, alias="LAYOUT_NODE_SEP")
    rank_sep: int = Field(default=100, ge=0, alias="LAYOUT_RANK_SEP")
    rank_sep_expanded: int = Field(default=200, ge=0, alias="LAYOUT_RANK_SEP_EXPANDED")
    margin_x: int = Field(default=200, ge=0, alias="LAYOUT_MARGIN_X")
    margin_y: int = Field(default=100, ge=0, alias="LAYOUT_MARGIN_Y")
    margin_y_expanded: int = Field(default=200, ge=0, alias="LAYOUT_MARGIN_Y_EXPANDED")


class ExplorationSettings(BaseSettings):
    """Exploration session defaults."""

    model_config = SettingsConfigDict(env_prefix="EXPLORATION_")

    default_mode: Literal["expansive", "focused"] = Field(
        default="expansive", alias="EXPLORATION_DEFAULT_MODE"
    )
    recent_searches_limit: int = Field(default=5, ge=1, le=100, alias="RECENT_SEARCHES_LIMIT")


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App info
    app_name: str = Field(default="Rabbit Hole Explorer", alias="APP_NAME")
    debug: bool = Field(default=False, alias="DEBUG")
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, ge=1, le=65535, alias="PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_file: Optional[str] = Field(default=None, alias="LOG_FILE")
    log_max_bytes: int = Field(default=10 * 1024 * 1024, ge=1024, alias="LOG_MAX_BYTES")
    log_backup_count: int = Field(default=5, ge=0, alias="LOG_BACKUP_COUNT")
    cors_origins: List[str] = Field(
        default=[
            "http://localhost:5173",  # Vite dev server
            "http://localhost:3000",  # Alternative dev port
            "http://127.0.0.1:5173",
            "http://127.0.0.1:3000",
        ],
        alias="CORS_ORIGINS",
    )

    # Nested settings
    llm: LLMSettings = Field(default_factory=LLMSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    layout: LayoutSettings = Field(default_factory=LayoutSettings)
    exploration: ExplorationSettings = Field(default_factory=ExplorationSettings)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"log_level must be one of: {', '.join(valid_levels)}")
        return v_upper


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global config instance
config = get_settings()

# src/taskboard/config.py

"""MongoDB connection settings, loaded from the environment via pydantic-settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class MongoSettings(BaseSettings):
    """Settings read from ``TASKBOARD_*`` environment variables or ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="TASKBOARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    mongo_uri: str = "mongodb://localhost:27017"
    database_name: str = Field(default="taskboard", min_length=1)
    server_selection_timeout_ms: int = Field(default=5000, ge=0)

    # Collections
    users_collection: str = "users"
    projects_collection: str = "projects"
    tasks_collection: str = "tasks"

    # Names used by older deployments; renamed on startup when found alone
    legacy_users_collection: str = "Users"
    legacy_projects_collection: str = "Projects"


@lru_cache
def get_settings() -> MongoSettings:
    """Get cached settings instance."""
    return MongoSettings()

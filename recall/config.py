"""Application settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Recall configuration. All values come from environment variables."""

    # Anthropic (chat completions for query extraction and memory creation)
    anthropic_api_key: str = Field(default="")
    completion_model: str = Field(default="claude-haiku-4-5-20251001")
    completion_max_tokens: int = Field(default=1024)

    # OpenAI (embeddings)
    openai_api_key: str = Field(default="")
    embedding_model: str = Field(default="text-embedding-3-large")
    embedding_dimensions: int = Field(default=3072)

    # Storage (empty paths are derived from data_dir)
    data_dir: Path = Field(default=Path("data"))
    vector_store_path: Path | None = Field(default=None)
    memory_store_path: Path | None = Field(default=None)
    conversation_store_path: Path | None = Field(default=None)

    # Scheduler
    scheduler_timezone: str = Field(default="America/Chicago")
    scheduler_tick_seconds: int = Field(default=60)
    conversation_indexing_schedule: str = Field(default="*/15 * * * *")
    memory_indexing_schedule: str = Field(default="*/15 * * * *")
    memory_creation_schedule: str = Field(default="*/5 * * * *")

    # Memory creation
    memory_creation_enabled: bool = Field(default=True)

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    @property
    def embeddings_enabled(self) -> bool:
        return bool(self.openai_api_key)

    @property
    def completions_enabled(self) -> bool:
        return bool(self.anthropic_api_key)

    def resolve_path(self, name: str) -> Path:
        """Return the configured path for a store, or ``data_dir/<name>.json``.

        *name* is one of ``"vector"``, ``"memory"`` or ``"conversation"``.
        """
        explicit = {
            "vector": self.vector_store_path,
            "memory": self.memory_store_path,
            "conversation": self.conversation_store_path,
        }
        if name not in explicit:
            msg = f"Unknown store name: {name!r}"
            raise ValueError(msg)
        path = explicit[name]
        if path is not None:
            return path
        filenames = {"vector": "vectors.json", "memory": "memories.json", "conversation": "conversations.json"}
        return self.data_dir / filenames[name]


settings = Settings()

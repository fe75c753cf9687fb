"""Application settings loaded from environment variables via pydantic-settings.

Values are read (highest priority first) from environment variables and the
project-root ``.env`` file; field ``database_path`` maps to ``DATABASE_PATH``
and so on.  Defaults apply when neither source provides a value.
"""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """tenderDraft application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # === LLM Providers ===
    # Empty string = "not configured"; provider selection in main.py skips
    # providers with empty keys.
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-3-haiku-20240307"
    openai_api_key: str = ""
    openai_base_url: str = ""
    openai_text_model: str = "gpt-4o-mini"

    # === Data store ===
    database_path: str = "data/tenderdraft.db"

    # === Object store ===
    object_store_dir: str = "data/uploads"
    # When set, stored files are addressed as {base_url}/{path} instead of file:// URLs.
    object_store_public_base_url: str = ""

    # === Organization / auth ===
    default_organization_id: str = "default-org"
    auth_mode: Literal["bypass", "api_key"] = "bypass"
    api_key: str = ""

    # === Ingestion ===
    chunk_size: int = 2000
    chunk_overlap: int = 200
    chunk_insert_batch_size: int = 50
    min_text_length: int = 10
    max_upload_bytes: int = 50 * 1024 * 1024
    # Applied to every object-store, extraction and data-store call.
    external_call_timeout: float = 30.0

    # === Retrieval ===
    search_default_limit: int = 5

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    def get_available_llm_providers(self) -> list[str]:
        """Return a list of LLM provider names that have non-empty API keys configured."""
        providers: list[str] = []
        if self.anthropic_api_key:
            providers.append("anthropic")
        if self.openai_api_key:
            providers.append("openai")
        return providers

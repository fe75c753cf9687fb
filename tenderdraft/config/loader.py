"""YAML configuration with environment overrides.

``config/config.yaml`` holds the static, checked-in defaults (app metadata,
allowed upload extensions, drafting parameters).  Values that
:class:`Settings` reads from ``.env`` / the environment are deep-merged on
top, so the returned dict is the single resolved view used by
``build_services``.
"""

from pathlib import Path

import yaml

from tenderdraft.config.settings import Settings

DEFAULT_CONFIG_PATH = Path("config/config.yaml")


def load_config(path: str | Path = DEFAULT_CONFIG_PATH, settings: Settings | None = None) -> dict:
    """Return the YAML config at *path* merged with environment settings.

    A missing file yields the environment values alone.
    """
    config_path = Path(path)
    config: dict = {}
    if config_path.exists():
        with open(config_path) as f:
            config = yaml.safe_load(f) or {}

    _deep_merge(config, _settings_sections(settings or Settings()))
    return config


def _settings_sections(settings: Settings) -> dict:
    """Environment-derived values, grouped like the YAML sections."""
    return {
        "app": {
            "host": settings.app_host,
            "port": settings.app_port,
            "env": settings.app_env,
        },
        "storage": {
            "database_path": settings.database_path,
            "object_store_dir": settings.object_store_dir,
        },
        "ingestion": {
            "chunk_size": settings.chunk_size,
            "chunk_overlap": settings.chunk_overlap,
            "batch_size": settings.chunk_insert_batch_size,
            "min_text_length": settings.min_text_length,
            "max_upload_bytes": settings.max_upload_bytes,
        },
        "retrieval": {"default_limit": settings.search_default_limit},
        "llm": {"available_providers": settings.get_available_llm_providers()},
        "auth": {
            "mode": settings.auth_mode,
            "default_organization_id": settings.default_organization_id,
        },
        "logging": {"level": settings.log_level},
    }


def _deep_merge(base: dict, overrides: dict) -> None:
    for key, value in overrides.items():
        if isinstance(base.get(key), dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value

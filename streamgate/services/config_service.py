"""Configuration service — loads config.json once and provides read-only access to AppConfig."""
from __future__ import annotations

import json
import logging
import os

from pydantic import ValidationError

from streamgate.models.config import AppConfig, ChannelsConfig, Options, UpstreamConfig

logger = logging.getLogger(__name__)

# Environment variable -> (section, key, cast)
ENV_OVERRIDES = {
    "STREAMGATE_BASE_URL": ("upstream", "base_url", str),
    "STREAMGATE_MAX_DEVICES": ("options", "max_devices", int),
    "STREAMGATE_CACHE_TTL": ("options", "cache_ttl", int),
}


class ConfigService:
    """Holds the process-wide gateway configuration.

    The config is read from ``<data_dir>/config.json`` by ``load()`` at
    startup, layered over the built-in defaults and a few environment
    overrides.  Nothing writes it back; services read it through the
    accessors below.
    """

    def __init__(self, data_dir: str):
        self.data_dir = data_dir
        self.config_file = os.path.join(data_dir, "config.json")
        self._config: AppConfig = AppConfig()

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    def _read_file(self) -> dict:
        if not os.path.exists(self.config_file):
            return {}
        try:
            with open(self.config_file) as f:
                raw = json.load(f)
            if not isinstance(raw, dict):
                logger.error(f"Error loading config: expected an object in {self.config_file}")
                return {}
            return raw
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error loading config: {e}")
            return {}

    @staticmethod
    def _apply_env(raw: dict) -> dict:
        for env_name, (section, key, cast) in ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is None or value == "":
                continue
            try:
                raw.setdefault(section, {})[key] = cast(value)
            except ValueError:
                logger.warning(f"Ignoring invalid {env_name}={value!r}")
        return raw

    def load(self) -> AppConfig:
        """Load configuration from disk, applying defaults and env overrides."""
        raw = self._apply_env(self._read_file())
        try:
            config = AppConfig.model_validate(raw)
        except ValidationError as e:
            logger.error(f"Invalid config, using defaults: {e}")
            config = AppConfig()

        if not config.options.cache_dir:
            config.options.cache_dir = os.path.join(self.data_dir, "cache")
        if not config.channels.file:
            config.channels.file = os.path.join(self.data_dir, "channels.json")

        self._config = config
        logger.info(
            f"Loaded config: upstream={config.upstream.base_url} "
            f"max_devices={config.options.max_devices} cache_ttl={config.options.cache_ttl}s"
        )
        return self._config

    @property
    def config(self) -> AppConfig:
        return self._config

    # ------------------------------------------------------------------
    # Convenience accessors
    # ------------------------------------------------------------------

    @property
    def upstream(self) -> UpstreamConfig:
        return self._config.upstream

    @property
    def options(self) -> Options:
        return self._config.options

    @property
    def channels(self) -> ChannelsConfig:
        return self._config.channels

    def get_content_types(self) -> list[str]:
        return list(self._config.upstream.paths)

    def get_max_devices(self) -> int:
        return self._config.options.max_devices

    max_devices = property(get_max_devices)

    def get_cache_ttl(self) -> int:
        return self._config.options.cache_ttl

    cache_ttl = property(get_cache_ttl)

    def get_session_ttl(self) -> int:
        return self._config.options.session_ttl

    session_ttl = property(get_session_ttl)

    def get_sweep_interval(self) -> int:
        return max(self._config.options.sweep_interval, 60)

    sweep_interval = property(get_sweep_interval)

# hazardwatch/configs/config.py
import yaml
from pathlib import Path
from functools import lru_cache

from hazardwatch.exceptions import ConfigError


class Config:
    """
    File-based configuration for hazardwatch.
    """

    # This points to hazardwatch/configs/
    CONFIG_DIR = Path(__file__).parent.resolve()

    SOURCES_CONFIG_PATH = CONFIG_DIR / "sources.yaml"

    @classmethod
    @lru_cache
    def load_sources_config(cls, path: Path | None = None) -> dict:
        """Loads the YAML configuration describing upstream endpoints."""
        config_path = Path(path) if path else cls.SOURCES_CONFIG_PATH
        if not config_path.exists():
            raise FileNotFoundError(f"Missing config at {config_path}")

        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ConfigError(f"Expected a mapping at the top of {config_path}")
        return data

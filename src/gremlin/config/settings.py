"""
Gremlin Configuration

Parses the optional ``gremlin.yml`` project file and applies environment
overrides (a local ``.env`` is loaded first). Only the CLI layer reads this;
the analysis functions take explicit arguments.
"""

import logging
import os
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_SPEC_PATH = ".gremlin/tests/spec.json"
DEFAULT_FUZZ_OUTPUT = ".gremlin/tests/fuzz/generated.spec.ts"
DEFAULT_PLAYWRIGHT_OUTPUT = ".gremlin/tests/playwright/generated.spec.ts"

ENV_OVERRIDES = {
    "GREMLIN_SPEC_PATH": ("paths", "spec"),
    "GREMLIN_FUZZ_OUTPUT": ("paths", "fuzz_output"),
    "GREMLIN_BASE_URL": ("app", "base_url"),
    "GREMLIN_APP_NAME": ("app", "name"),
    "GREMLIN_PLATFORM": ("app", "platform"),
}


class GremlinConfig:
    """Handles gremlin.yml parsing, defaults and environment overrides."""

    def __init__(self, config_path: str = "gremlin.yml", env_file: Optional[str] = None):
        self.config_path = config_path
        self.env_file = env_file
        self.config: Dict[str, Any] = {}
        self.load_config()

    def load_config(self):
        """
        Load gremlin.yml, merge it over the defaults and apply env overrides.

        Raises:
            yaml.YAMLError: if the file exists but is not valid YAML
        """
        load_dotenv(self.env_file)
        self.config = self.get_default_config()

        try:
            with open(self.config_path, 'r') as file:
                loaded = yaml.safe_load(file) or {}
            self._merge(self.config, loaded)
            logger.info(f"Loaded configuration from {self.config_path}")
        except FileNotFoundError:
            logger.debug(f"No {self.config_path} found, using defaults")
        except yaml.YAMLError as e:
            logger.error(f"Error parsing {self.config_path}: {e}")
            raise

        self._apply_env_overrides()

    def get_default_config(self) -> Dict[str, Any]:
        """Return default configuration when no gremlin.yml is found."""
        return {
            "app": {
                "name": "app",
                "platform": "cross-platform",
                "base_url": "http://localhost:3000",
            },
            "paths": {
                "spec": DEFAULT_SPEC_PATH,
                "fuzz_output": DEFAULT_FUZZ_OUTPUT,
                "playwright_output": DEFAULT_PLAYWRIGHT_OUTPUT,
            },
            "fuzz": {
                "count": 10,
                "strategies": "all",
                "seed": None,
                "include_comments": True,
            },
            "analyzer": {
                "model": "gpt-4o",
                "max_tokens": 8192,
            },
        }

    def _merge(self, base: Dict[str, Any], override: Dict[str, Any]):
        for key, value in override.items():
            if isinstance(value, dict) and isinstance(base.get(key), dict):
                self._merge(base[key], value)
            else:
                base[key] = value

    def _apply_env_overrides(self):
        for env_name, (section, key) in ENV_OVERRIDES.items():
            value = os.getenv(env_name)
            if value:
                self.config.setdefault(section, {})[key] = value
                logger.debug(f"{env_name} overrides {section}.{key}")

    def get_app_config(self) -> Dict[str, Any]:
        return self.config.get("app", {})

    def get_paths(self) -> Dict[str, str]:
        return self.config.get("paths", {})

    def get_fuzz_config(self) -> Dict[str, Any]:
        return self.config.get("fuzz", {})

    def get_fuzz_strategies(self) -> Optional[List[str]]:
        """Configured strategy names, or None for the full set."""
        strategies = self.get_fuzz_config().get("strategies", "all")
        if strategies in (None, "all"):
            return None
        if isinstance(strategies, str):
            return [name.strip() for name in strategies.split(",") if name.strip()]
        return list(strategies)

    def get_analyzer_config(self) -> Dict[str, Any]:
        analyzer = dict(self.config.get("analyzer", {}))
        analyzer["api_key"] = os.getenv("OPENAI_API_KEY")
        return analyzer

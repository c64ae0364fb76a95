"""Configuration file loader for YAML and JSON files."""

import json
import os
from pathlib import Path
from typing import Any

import yaml


class ConfigurationError(Exception):
    """Raised when configuration loading or validation fails."""

    def __init__(self, message: str, field: str | None = None) -> None:
        self.message = message
        self.field = field
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.field:
            return f"Configuration error in field '{self.field}': {self.message}"
        return self.message


SEED_SECTIONS = ("departments", "rooms", "admins", "asset_types")


class ConfigurationFileLoader:
    """Loads configuration from YAML or JSON files.

    A configuration file has two optional top-level sections:

    - `settings`: flat mapping of AppSettings fields
    - `seed`: reference data (departments, rooms, admins, asset_types)
      loaded into the document store on startup

    Example:
        ```yaml
        settings:
          store_backend: memory
          log_level: DEBUG
        seed:
          departments:
            - id: 65f000000000000000000001
              department_id: DEP-FIN
              name: Finance
          rooms:
            - room_number: "101"
              floor_number: 1
              building_name: HQ
              department_id: 65f000000000000000000001
        ```
    """

    def __init__(self, config_file_path: str | Path | None = None) -> None:
        """Initialize ConfigurationFileLoader.

        Args:
            config_file_path: Path to configuration file. If None, reads the
                ASSETDESK_CONFIG_FILE environment variable.

        Raises:
            ConfigurationError: If no path is available or the file is missing.
        """
        if config_file_path is None:
            config_file_path = os.getenv("ASSETDESK_CONFIG_FILE")
            if not config_file_path:
                raise ConfigurationError(
                    "Configuration file path not provided and ASSETDESK_CONFIG_FILE "
                    "environment variable is not set"
                )

        self._config_path = Path(config_file_path)
        if not self._config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {self._config_path}")

    def load(self) -> dict[str, Any]:
        """Load configuration from file, detecting the format from the extension.

        Raises:
            ConfigurationError: If the format is unsupported or the file cannot be parsed.
        """
        suffix = self._config_path.suffix.lower()

        if suffix in (".yaml", ".yml"):
            return self._load_yaml()
        elif suffix == ".json":
            return self._load_json()
        else:
            raise ConfigurationError(
                f"Unsupported configuration file format: {suffix}. "
                "Supported formats: .yaml, .yml, .json"
            )

    def _load_yaml(self) -> dict[str, Any]:
        try:
            with self._config_path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
                if data is None:
                    return {}
                if not isinstance(data, dict):
                    raise ConfigurationError("YAML file must contain a dictionary/mapping")
                return data
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML format: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Failed to read configuration file: {e}") from e

    def _load_json(self) -> dict[str, Any]:
        try:
            with self._config_path.open("r", encoding="utf-8") as f:
                data = json.load(f)
                if not isinstance(data, dict):
                    raise ConfigurationError("JSON file must contain an object")
                return data
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON format: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Failed to read configuration file: {e}") from e

    def parse_settings(self, config: dict[str, Any]) -> dict[str, Any]:
        """Return the `settings` section.

        Raises:
            ConfigurationError: If the section is not a mapping.
        """
        settings = config.get("settings", {})
        if settings is None:
            return {}
        if not isinstance(settings, dict):
            raise ConfigurationError("Configuration 'settings' must be a mapping", field="settings")
        return settings

    def parse_seed(self, config: dict[str, Any]) -> dict[str, list[dict[str, Any]]]:
        """Return the `seed` section as lists of entry mappings.

        Raises:
            ConfigurationError: If a section is not a list of mappings.
        """
        seed = config.get("seed") or {}
        if not isinstance(seed, dict):
            raise ConfigurationError("Configuration 'seed' must be a mapping", field="seed")

        unknown = set(seed) - set(SEED_SECTIONS)
        if unknown:
            raise ConfigurationError(
                f"Unknown seed sections: {', '.join(sorted(unknown))}", field="seed"
            )

        parsed: dict[str, list[dict[str, Any]]] = {}
        for section in SEED_SECTIONS:
            entries = seed.get(section) or []
            if not isinstance(entries, list):
                raise ConfigurationError(
                    f"Seed '{section}' must be a list", field=f"seed.{section}"
                )
            for idx, entry in enumerate(entries):
                if not isinstance(entry, dict):
                    raise ConfigurationError(
                        f"Seed {section} entry at index {idx} must be a dictionary",
                        field=f"seed.{section}[{idx}]",
                    )
            parsed[section] = entries
        return parsed

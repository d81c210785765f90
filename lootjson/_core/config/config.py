from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from yaml import YAMLError

from lootjson._core.error import ConfigurationError
from lootjson._core.parsers.repair.types import RepairRules
from lootjson.incremental.types import IncrementalLootOptions


class Config:
    """
    Parser profile loaded from a YAML file or provided as a dictionary.

    Recognised top-level sections::

        repair:
          track_repairs: true
          rules:
            single_line_comments: false
        incremental:
          fields: [dialogue, emotion]
          max_buffer_size: 4096
          recover: true
        schema:
          type: object
          required: [dialogue]
    """

    def __init__(self, config_source: Union[str, Path, Dict[str, Any]]) -> None:
        """
        Initialize the Config class.

        Args:
            config_source: The configuration source, either a path to a YAML file or a dictionary
        """
        if isinstance(config_source, dict):
            self._config = config_source
        elif isinstance(config_source, (str, Path)):
            self._config = self._load_config(str(config_source))
        else:
            raise ValueError(
                f'Unsupported config source type: {type(config_source)}. '
                "Only 'str', 'dict' or Path inputs are supported."
            )

    @staticmethod
    def _load_config(config_file: str) -> Dict[str, Any]:
        """
        Load the YAML configuration file.

        Args:
            config_file: Path to the YAML configuration file

        Returns:
            Dictionary containing the loaded configuration
        """
        try:
            with open(config_file, 'r') as file:
                loaded = yaml.safe_load(file)
        except FileNotFoundError:
            raise ConfigurationError(f'Configuration file not found: {config_file}')
        except YAMLError as e:
            raise ConfigurationError(f'Invalid YAML format: {str(e)}')

        if loaded is None:
            return {}
        if not isinstance(loaded, dict):
            raise ConfigurationError(
                f'Configuration root must be a mapping, got {type(loaded).__name__}'
            )
        return loaded

    def get(self, key: str, default: Any = None) -> Any:
        """
        Retrieve a configuration value by its key.

        Args:
            key: The configuration key to retrieve, supports dotted notation for nested dictionaries
            default: The default value to return if the key is not found

        Returns:
            The configuration value if found, otherwise the default value
        """
        keys = key.split('.')
        config = self._config

        for k in keys:
            if isinstance(config, dict) and k in config:
                config = config[k]
            else:
                return default

        return config

    @property
    def config(self) -> Dict[str, Any]:
        """
        Get the entire configuration dictionary.

        Returns:
            A copy of the entire configuration dictionary
        """
        return self._config.copy()

    def section(self, name: str) -> Dict[str, Any]:
        """Return a top-level section as a dict (empty when absent)."""
        value = self.get(name, {})
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise ConfigurationError(f"Section '{name}' must be a mapping")
        return dict(value)

    def repair_rules(self) -> RepairRules:
        """Default repair rules merged with the `repair.rules` overrides."""
        return RepairRules.merge(self.get('repair.rules'))

    def track_repairs(self) -> bool:
        return bool(self.get('repair.track_repairs', False))

    def incremental_options(self, **overrides: Any) -> IncrementalLootOptions:
        """
        Options for `IncrementalLoot` built from the `incremental` section.

        `repair.rules` apply when the section has no `rules` of its own;
        keyword overrides (typically callbacks) take precedence over both.
        """
        data = self.section('incremental')
        if 'rules' not in data and self.get('repair.rules') is not None:
            data['rules'] = self.get('repair.rules')
        data.update(overrides)
        return IncrementalLootOptions(**data)

    def schema(self) -> Optional[Dict[str, Any]]:
        schema = self.get('schema')
        if schema is not None and not isinstance(schema, dict):
            raise ConfigurationError("Section 'schema' must be a mapping")
        return schema

    def merge(self, other: 'Config') -> None:
        """
        Merge another Config object into this one.
        This updates values recursively.
        """

        def recursive_merge(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
            for key, value in b.items():
                if key in a and isinstance(a[key], dict) and isinstance(value, dict):
                    a[key] = recursive_merge(a[key], value)
                else:
                    a[key] = value
            return a

        if not isinstance(other, Config):
            raise ValueError('Argument to merge must be a Config instance.')

        self._config = recursive_merge(self._config, other._config)

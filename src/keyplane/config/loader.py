"""Layered configuration loading.

Layers, lowest to highest precedence:

1. Built-in defaults (``models.py``)
2. Global YAML, ``~/.config/keyplane/config.yaml`` (optional)
3. YAML file passed to ``load_config`` (must exist)
4. Environment variables, ``KEYPLANE__<SECTION>__<KEY>``
5. Keyword overrides passed to ``load_config``

Relative ``model.model_path`` / ``tokenizer.vocab_path`` values in a YAML
layer are resolved against that file's directory, so a model directory can
ship its own config.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from keyplane.config.models import (
    KeyplaneConfig,
    KeywordsConfig,
    LoggingConfig,
    ModelConfig,
    TokenizerConfig,
)
from keyplane.core.errors import ConfigError

GLOBAL_CONFIG_PATH = Path("~/.config/keyplane/config.yaml").expanduser()

# (section, key) pairs holding filesystem paths
_PATH_FIELDS = (("model", "model_path"), ("tokenizer", "vocab_path"))


def _load_yaml(path: Path) -> dict[str, Any]:
    """Parse one YAML layer; a missing file is an empty layer."""
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as e:
        raise ConfigError.parse_error(str(path), str(e)) from e
    if not isinstance(data, dict):
        raise ConfigError.parse_error(str(path), "top-level YAML value must be a mapping")
    return _resolve_paths(data, path.parent)


def _resolve_paths(data: dict[str, Any], base_dir: Path) -> dict[str, Any]:
    for section, key in _PATH_FIELDS:
        values = data.get(section)
        if not isinstance(values, dict) or not isinstance(values.get(key), str):
            continue
        path = Path(values[key]).expanduser()
        if not path.is_absolute():
            data[section] = {**values, key: str(base_dir / path)}
    return data


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge *override* into a copy of *base*, recursing into nested dicts."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


class _YamlLayers(PydanticBaseSettingsSource):
    """Settings source serving already-merged YAML layers."""

    def __init__(self, settings_cls: type[BaseSettings], data: dict[str, Any]) -> None:
        super().__init__(settings_cls)
        self._data = data

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:  # noqa: ARG002
        value = self._data.get(field_name)
        return value, field_name, value is not None

    def __call__(self) -> dict[str, Any]:
        return self._data


def _make_settings_class(yaml_data: dict[str, Any]) -> type[BaseSettings]:
    """Build a settings class bound to *yaml_data*.

    A fresh class per call keeps concurrent loads from sharing YAML state.
    """

    class KeyplaneSettings(BaseSettings):
        """Env vars: KEYPLANE__MODEL__MODEL_PATH, KEYPLANE__KEYWORDS__SEED, etc."""

        model_config = SettingsConfigDict(
            env_prefix="KEYPLANE__",
            env_nested_delimiter="__",
            case_sensitive=False,
            protected_namespaces=(),
        )

        logging: LoggingConfig = LoggingConfig()
        model: ModelConfig = ModelConfig()
        tokenizer: TokenizerConfig = TokenizerConfig()
        keywords: KeywordsConfig = KeywordsConfig()

        @classmethod
        def settings_customise_sources(
            cls,
            settings_cls: type[BaseSettings],
            init_settings: PydanticBaseSettingsSource,
            env_settings: PydanticBaseSettingsSource,
            dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
            file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        ) -> tuple[PydanticBaseSettingsSource, ...]:
            # First source wins
            return (init_settings, env_settings, _YamlLayers(settings_cls, yaml_data))

    return KeyplaneSettings


def load_config(config_path: Path | None = None, **overrides: Any) -> KeyplaneConfig:
    """Resolve every configuration layer into a ``KeyplaneConfig``.

    Args:
        config_path: Project YAML merged over the global file.
        **overrides: Section dicts, e.g. ``keywords={"seed": 3}``.

    Raises:
        ConfigError: The explicit file is missing, a YAML layer does not
            parse, or a value fails validation.
    """
    yaml_data = _load_yaml(GLOBAL_CONFIG_PATH)
    if config_path is not None:
        if not config_path.exists():
            raise ConfigError.file_not_found(str(config_path))
        yaml_data = _deep_merge(yaml_data, _load_yaml(config_path))

    try:
        settings = _make_settings_class(yaml_data)(**overrides)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise ConfigError.invalid_value(location, first.get("input"), first["msg"]) from e
    return KeyplaneConfig.model_validate(settings.model_dump())

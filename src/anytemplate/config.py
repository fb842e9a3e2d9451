"""Configuration cascade for template slots.

An option bag given to ``config()`` or ``load()`` is partitioned three ways:

    Config Type     What it Configures
    -----------     ------------------
    plugin          AnyTemplate itself (keys in PLUGIN_CONFIG_KEYS)
    driver          the backend adapter (keys its DriverConfig declares)
    native          the engine underneath (everything else in the
                    backend's section, passed through untouched)

Every top-level key that is not a plugin key must name a backend:

    {
        "default_type": "Jinja",
        "include_paths": ["templates"],
        "Jinja": {"template_extension": ".j2", "trim_blocks": True},
    }
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping, Type

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from anytemplate.dispatcher import ComponentDispatcher, TextRef
from anytemplate.exceptions import InvalidConfigError

if TYPE_CHECKING:
    from anytemplate.backends.base import Backend
    from anytemplate.registry import BackendRegistry

log = logging.getLogger(__name__)


PLUGIN_CONFIG_KEYS = frozenset(
    {
        "callers_package",
        "auto_add_template_extension",
        "default_type",
        "type",
        "include_paths",
        "add_include_paths",
        "file",
        "string",
        "component_handler_class",
    }
)

DEFAULT_PLUGIN_CONFIG: dict[str, Any] = {"auto_add_template_extension": True}

DEFAULT_TYPE = "StringTemplate"
DEFAULT_EMBED_TAG = "CGIAPP_embed"


def _as_path_list(value: Any) -> list[str]:
    """Normalize a scalar-or-list path option to a list of strings."""
    if value is None:
        return []
    if isinstance(value, (str, os.PathLike)):
        return [os.fspath(value)]
    return [os.fspath(v) for v in value]


def merge_include_paths(include_paths: Any, add_include_paths: Any = None) -> list[str]:
    """Prepend added paths to the base paths, dropping later duplicates.

    Example:
        >>> merge_include_paths(["a", "b"], ["c", "a"])
        ['c', 'a', 'b']
    """
    merged = _as_path_list(add_include_paths) + _as_path_list(include_paths)
    return list(dict.fromkeys(merged))


class PluginConfig(BaseModel):
    """Options understood by AnyTemplate itself."""

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    default_type: str | None = None
    type: str | None = None
    include_paths: list[str] = []
    add_include_paths: list[str] = []
    file: str | None = None
    string: str | None = None
    # typing.Type: the "type" field shadows the builtin inside this class
    component_handler_class: Type[ComponentDispatcher] | None = None
    auto_add_template_extension: bool = True
    callers_package: str | None = None

    @field_validator("include_paths", "add_include_paths", mode="before")
    @classmethod
    def normalize_paths(cls, value: Any) -> list[str]:
        return _as_path_list(value)

    @field_validator("file", mode="before")
    @classmethod
    def normalize_file(cls, value: Any) -> Any:
        if isinstance(value, os.PathLike):
            return os.fspath(value)
        return value

    @field_validator("string", mode="before")
    @classmethod
    def deref_string(cls, value: Any) -> Any:
        if isinstance(value, TextRef):
            return value.text
        return value

    @property
    def backend_name(self) -> str:
        """The backend this configuration renders with."""
        return self.type or self.default_type or DEFAULT_TYPE

    @property
    def dispatcher_class(self) -> type[ComponentDispatcher]:
        return self.component_handler_class or ComponentDispatcher

    def resolved_include_paths(self) -> list[str]:
        return merge_include_paths(self.include_paths, self.add_include_paths)


class DriverConfig(BaseModel):
    """Options every backend adapter understands.

    Backends subclass this to change defaults or add keys; the field set
    is the backend's declared driver-config key set.
    """

    model_config = ConfigDict(extra="forbid")

    template_extension: str = ".html"
    embed_tag_name: str = DEFAULT_EMBED_TAG
    associate_query: bool = True

    @field_validator("embed_tag_name")
    @classmethod
    def check_embed_tag_name(cls, value: str) -> str:
        if not value.isidentifier():
            raise ValueError(
                "embed_tag_name must consist of letters, digits and underscores "
                "and must not begin with a digit"
            )
        return value


def _copy_value(value: Any) -> Any:
    if isinstance(value, list):
        return list(value)
    if isinstance(value, dict):
        return dict(value)
    return value


def _format_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        loc = ".".join(str(p) for p in item["loc"]) or "<root>"
        parts.append(f"{loc}: {item['msg']}")
    return "; ".join(parts)


@dataclass
class ConfigStore:
    """Three-tier option storage for one template slot.

    driver_config and native_config are keyed by backend name. For a given
    backend a key lives in exactly one of the two, decided by the
    backend's declared driver keys.
    """

    plugin_config: dict[str, Any] = field(
        default_factory=lambda: dict(DEFAULT_PLUGIN_CONFIG)
    )
    driver_config: dict[str, dict[str, Any]] = field(default_factory=dict)
    native_config: dict[str, dict[str, Any]] = field(default_factory=dict)

    @classmethod
    def from_options(
        cls, options: Mapping[str, Any], registry: BackendRegistry
    ) -> ConfigStore:
        """Build a fresh store from an option bag."""
        store = cls()
        store.add(options, registry)
        return store

    def add(self, options: Mapping[str, Any], registry: BackendRegistry) -> None:
        """Partition an option bag into this store, overwriting matching keys.

        The caller's mapping is never modified.

        Raises:
            InvalidBackendNameError: If a section key has illegal characters.
            UnknownBackendError: If a section key names no backend.
            InvalidConfigError: If a section is not a mapping or any tier
                fails validation.
        """
        for key, value in options.items():
            if key in PLUGIN_CONFIG_KEYS:
                self.plugin_config[key] = _copy_value(value)
                continue

            backend = registry.resolve(key)
            if not isinstance(value, Mapping):
                raise InvalidConfigError(
                    f"Configuration for backend {key} must be a mapping, "
                    f"got {type(value).__name__}"
                )

            declared = backend.declared_config_keys()
            driver = self.driver_config.setdefault(key, {})
            native = self.native_config.setdefault(key, {})
            for option, setting in value.items():
                if option in declared:
                    driver[option] = setting
                else:
                    native[option] = setting

            self.driver_options(key, backend)

        plugin = self.plugin()
        registry.resolve(plugin.backend_name)

    def clone(self) -> ConfigStore:
        """Independent copy; native objects held in options are shared."""
        return ConfigStore(
            plugin_config={k: _copy_value(v) for k, v in self.plugin_config.items()},
            driver_config={
                name: {k: _copy_value(v) for k, v in section.items()}
                for name, section in self.driver_config.items()
            },
            native_config={
                name: {k: _copy_value(v) for k, v in section.items()}
                for name, section in self.native_config.items()
            },
        )

    def merged(
        self, overrides: Mapping[str, Any] | None, registry: BackendRegistry
    ) -> ConfigStore:
        """Layer call-time overrides over this store.

        Without overrides this store itself is returned, not a copy, so the
        result must be treated as read-only.
        """
        if not overrides:
            return self
        store = self.clone()
        store.add(overrides, registry)
        return store

    def plugin(self) -> PluginConfig:
        """Validated view of the plugin tier."""
        try:
            return PluginConfig.model_validate(self.plugin_config)
        except ValidationError as e:
            raise InvalidConfigError(
                f"Invalid template configuration: {_format_validation_error(e)}"
            ) from e

    def driver_options(self, name: str, backend: type[Backend]) -> DriverConfig:
        """Backend defaults overlaid with this store's driver tier."""
        settings = backend.default_config()
        settings.update(self.driver_config.get(name, {}))
        try:
            return backend.DriverConfig.model_validate(settings)
        except ValidationError as e:
            raise InvalidConfigError(
                f"Invalid {name} configuration: {_format_validation_error(e)}"
            ) from e

    def native_options(self, name: str) -> dict[str, Any]:
        return dict(self.native_config.get(name, {}))


def load_config_file(path: Path | str) -> dict[str, Any]:
    """Load an option bag from a YAML file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        data = yaml.safe_load(f)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidConfigError(f"Config file {path} must contain a mapping")

    log.debug("Loaded template configuration from %s", path)
    return data

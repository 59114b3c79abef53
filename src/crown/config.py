"""Configuration models and loading logic."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, ClassVar, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from crown.exceptions import ConfigError

CONFIG_FILE_NAMES: tuple[str, ...] = ("crown.yaml", "crown.yml", "crown.json")
CONFIG_FILE_ENV = "CROWN_CONFIG_FILE"


class InputConfig(BaseModel):
    """Source locations: content glob, main template, main stylesheet."""

    content: str
    template: Path
    styles: Path


class OutputConfig(BaseModel):
    """Output locations for the rendered HTML and the final PDF."""

    html: Path
    pdf: Path


class MetadataConfig(BaseModel):
    """Book metadata exposed to templates and embedded in the PDF."""

    title: str = "Untitled Book"
    author: str = "Unknown Author"
    subject: str = ""
    keywords: list[str] = Field(default_factory=list)
    lang: str = "en"


class MarginsConfig(BaseModel):
    top: str = "2cm"
    bottom: str = "2cm"
    left: str = "2cm"
    right: str = "2cm"
    inside: str = "2cm"
    outside: str = "2cm"


class PageConfig(BaseModel):
    """Page geometry passed through to templates."""

    size: str = "A4"
    margins: MarginsConfig = Field(default_factory=MarginsConfig)


class RendererConfig(BaseModel):
    """External PDF renderer invocation settings."""

    executable_path: str = "prince"
    javascript: bool = True
    verbose: bool = False
    options: list[str] = Field(default_factory=list)
    timeout_seconds: float | None = Field(default=300.0, gt=0.0)


class DevServerConfig(BaseModel):
    host: str = "localhost"
    port: int = Field(default=3000, ge=1, le=65535)
    open: bool = True


class WatchConfig(BaseModel):
    """Watch-session tuning."""

    debounce_ms: int = Field(default=300, ge=0)
    rebuild_when_dirty: bool = True


class LoggingConfig(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    file: Path | None = Path(".crown/crown.log")


class CrownSettings(BaseSettings):
    """Top-level project settings as written in the config file."""

    _config_file_override: ClassVar[Path | None] = None

    input: InputConfig
    output: OutputConfig
    metadata: MetadataConfig = Field(default_factory=MetadataConfig)
    page: PageConfig = Field(default_factory=PageConfig)
    renderer: RendererConfig = Field(default_factory=RendererConfig)
    dev_server: DevServerConfig = Field(default_factory=DevServerConfig)
    watch: WatchConfig = Field(default_factory=WatchConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    data: dict[str, Path] = Field(default_factory=dict)
    helpers: Path | None = None

    model_config = SettingsConfigDict(
        env_prefix="CROWN_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Use the project config file as defaults while allowing env vars to override values."""

        config_file = cls._config_file_override
        sources: list[PydanticBaseSettingsSource] = [init_settings, env_settings]
        if config_file is not None:
            if config_file.suffix.lower() == ".json":
                sources.append(JsonConfigSettingsSource(settings_cls, json_file=config_file))
            else:
                sources.append(YamlConfigSettingsSource(settings_cls, yaml_file=config_file))
        return tuple(sources)


@dataclass(frozen=True, slots=True)
class ResolvedConfig:
    """Immutable configuration with every path made absolute against the project root."""

    root: Path
    config_file: Path
    content_glob: str
    template: Path
    styles: Path
    html_output: Path
    pdf_output: Path
    metadata: MetadataConfig = field(default_factory=MetadataConfig)
    page: PageConfig = field(default_factory=PageConfig)
    renderer: RendererConfig = field(default_factory=RendererConfig)
    dev_server: DevServerConfig = field(default_factory=DevServerConfig)
    watch: WatchConfig = field(default_factory=WatchConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    data: dict[str, Path] = field(default_factory=dict)
    helpers: Path | None = None

    @property
    def log_file(self) -> Path | None:
        if self.logging.file is None:
            return None
        return _resolve_path(self.root, self.logging.file)

    def with_overrides(self, *, pdf_output: Path | None = None, verbose: bool | None = None) -> "ResolvedConfig":
        """Return a copy with CLI-level overrides applied."""

        updates: dict[str, Any] = {}
        if pdf_output is not None:
            updates["pdf_output"] = _resolve_path(Path.cwd(), pdf_output)
        if verbose is not None:
            updates["renderer"] = self.renderer.model_copy(update={"verbose": verbose})
        return replace(self, **updates) if updates else self

    def as_dict(self) -> dict[str, object]:
        """Return the resolved configuration as a JSON-friendly nested dictionary."""

        return {
            "root": str(self.root),
            "config_file": str(self.config_file),
            "input": {
                "content": self.content_glob,
                "template": str(self.template),
                "styles": str(self.styles),
            },
            "output": {"html": str(self.html_output), "pdf": str(self.pdf_output)},
            "metadata": self.metadata.model_dump(mode="json"),
            "page": self.page.model_dump(mode="json"),
            "renderer": self.renderer.model_dump(mode="json"),
            "dev_server": self.dev_server.model_dump(mode="json"),
            "watch": self.watch.model_dump(mode="json"),
            "logging": self.logging.model_dump(mode="json"),
            "data": {name: str(path) for name, path in self.data.items()},
            "helpers": str(self.helpers) if self.helpers is not None else None,
        }


def _resolve_path(root: Path, value: Path) -> Path:
    return value if value.is_absolute() else (root / value).resolve()


def find_config_file(start: Path | None = None) -> Path | None:
    """Locate the nearest config file by traversing upward from start."""

    current = (start or Path.cwd()).resolve()
    for candidate in (current, *current.parents):
        for name in CONFIG_FILE_NAMES:
            config_file = candidate / name
            if config_file.is_file():
                return config_file
    return None


def resolve_config_file(override: Path | None = None, search_from: Path | None = None) -> Path:
    """Resolve config file from explicit override, env var, or upward discovery."""

    chosen = override
    if chosen is None:
        env_value = os.getenv(CONFIG_FILE_ENV)
        if env_value:
            chosen = Path(env_value)
    if chosen is not None:
        chosen = chosen if chosen.is_absolute() else (Path.cwd() / chosen).resolve()
        if not chosen.is_file():
            raise ConfigError(f"Config file not found: {chosen}")
        return chosen

    discovered = find_config_file(search_from)
    if discovered is None:
        names = ", ".join(CONFIG_FILE_NAMES)
        raise ConfigError(f"No crown configuration found. Create one of: {names}")
    return discovered


def resolve_settings(settings: CrownSettings, config_file: Path) -> ResolvedConfig:
    """Resolve project-relative paths in loaded settings against the config file's directory."""

    root = config_file.parent.resolve()
    content = settings.input.content
    content_glob = content if os.path.isabs(content) else str(root / content)
    return ResolvedConfig(
        root=root,
        config_file=config_file.resolve(),
        content_glob=content_glob,
        template=_resolve_path(root, settings.input.template),
        styles=_resolve_path(root, settings.input.styles),
        html_output=_resolve_path(root, settings.output.html),
        pdf_output=_resolve_path(root, settings.output.pdf),
        metadata=settings.metadata,
        page=settings.page,
        renderer=settings.renderer,
        dev_server=settings.dev_server,
        watch=settings.watch,
        logging=settings.logging,
        data={name: _resolve_path(root, path) for name, path in settings.data.items()},
        helpers=_resolve_path(root, settings.helpers) if settings.helpers is not None else None,
    )


def _format_validation_error(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        problems.append(f"{location or '<root>'}: {error.get('msg')}")
    return "; ".join(problems)


def load_config(config_file: Path | None = None, search_from: Path | None = None) -> ResolvedConfig:
    """Load, validate and resolve project configuration once per process."""

    settings_file = resolve_config_file(config_file, search_from=search_from)
    CrownSettings._config_file_override = settings_file
    try:
        settings = CrownSettings()
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration in {settings_file}: {_format_validation_error(exc)}") from exc
    except (yaml.YAMLError, ValueError, OSError) as exc:
        raise ConfigError(f"Could not read configuration {settings_file}: {exc}") from exc
    finally:
        CrownSettings._config_file_override = None
    return resolve_settings(settings, settings_file)

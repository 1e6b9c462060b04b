"""Configuration loading for the monitoring engine."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import httpx
import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .errors import ConfigurationError, InvalidTargetError
from .models import Target
from .notifications import (
    ConsoleProvider,
    NotificationDispatcher,
    PushoverConfig,
    PushoverProvider,
    TelegramConfig,
    TelegramProvider,
)


DEFAULT_CONFIG_PATH = "config.yaml"


class ServiceConfig(BaseModel):
    """One monitored endpoint as written in the config file."""
    url: str = Field(description="Absolute http(s) URL to poll")
    interval_seconds: float = Field(gt=0, description="Delay between check cycles in seconds")
    max_retries: int = Field(default=0, ge=0, description="Extra attempts per cycle after a failure")
    retry_interval: float = Field(default=0.0, ge=0, description="Seconds to wait between attempts")


class PushoverSettings(BaseModel):
    api_key: str = Field(default="", description="Pushover application token")
    user_key: str = Field(default="", description="Pushover user/group key")

    @property
    def configured(self) -> bool:
        return bool(self.api_key.strip() and self.user_key.strip())


class TelegramSettings(BaseModel):
    bot_token: str = Field(default="", description="Telegram bot token")
    chat_id: str = Field(default="", description="Telegram chat id to notify")

    @field_validator("chat_id", mode="before")
    @classmethod
    def _chat_id_as_str(cls, value: Any) -> Any:
        # Chat ids are often written as bare (negative) integers in YAML.
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @property
    def configured(self) -> bool:
        return bool(self.bot_token.strip() and self.chat_id.strip())


class NotificationsConfig(BaseModel):
    console: bool = Field(default=True, description="Print notifications to stdout")
    pushover: PushoverSettings = Field(default_factory=PushoverSettings)
    telegram: TelegramSettings = Field(default_factory=TelegramSettings)


class PulsewatchConfig(BaseModel):
    """Main configuration."""

    log_level: str = Field(default="INFO", description="Logging level")
    listen: Optional[str] = Field(default=None, description="host:port for the read-only status API")
    unix_socket: Optional[str] = Field(default=None, description="Unix socket path for the read-only status API")
    request_timeout_seconds: float = Field(default=10.0, gt=0, description="Per-attempt HTTP timeout")
    notifications: NotificationsConfig = Field(default_factory=NotificationsConfig)
    services: List[ServiceConfig] = Field(default_factory=list, description="Endpoints to monitor")

    @field_validator("listen")
    @classmethod
    def _validate_listen(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not str(value).strip():
            return None
        parse_listen_address(value)
        return str(value).strip()

    @field_validator("unix_socket")
    @classmethod
    def _blank_socket_is_unset(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not str(value).strip():
            return None
        return str(value).strip()

    @model_validator(mode="after")
    def _reject_duplicate_urls(self) -> "PulsewatchConfig":
        seen: set[str] = set()
        for service in self.services:
            url = service.url.strip()
            if url in seen:
                raise ValueError(f"Duplicate service url: {url}")
            seen.add(url)
        return self

    @property
    def listen_address(self) -> Optional[Tuple[str, int]]:
        return parse_listen_address(self.listen) if self.listen else None


def parse_listen_address(value: str) -> Tuple[str, int]:
    s = str(value or "").strip()
    host, sep, port_str = s.rpartition(":")
    if not sep or not host:
        raise ValueError(f"Invalid listen address {value!r}; expected host:port")
    try:
        port = int(port_str)
    except ValueError as exc:
        raise ValueError(f"Invalid listen port in {value!r}") from exc
    if not 0 < port < 65536:
        raise ValueError(f"Invalid listen port in {value!r}")
    return host.strip("[]"), port


def _apply_env_overrides(config_data: Dict[str, Any]) -> Dict[str, Any]:
    env_overrides = {
        ("log_level",): os.getenv("LOG_LEVEL"),
        ("listen",): os.getenv("PULSEWATCH_LISTEN"),
        ("unix_socket",): os.getenv("PULSEWATCH_UNIX_SOCKET"),
        ("notifications", "pushover", "api_key"): os.getenv("PUSHOVER_API_KEY"),
        ("notifications", "pushover", "user_key"): os.getenv("PUSHOVER_USER_KEY"),
        ("notifications", "telegram", "bot_token"): os.getenv("TELEGRAM_BOT_TOKEN"),
        ("notifications", "telegram", "chat_id"): os.getenv("TELEGRAM_CHAT_ID"),
    }

    for path, value in env_overrides.items():
        if value is None:
            continue
        node = config_data
        for key in path[:-1]:
            child = node.get(key)
            if not isinstance(child, dict):
                child = {}
                node[key] = child
            node = child
        node[path[-1]] = value
    return config_data


def load_config(config_path: Optional[str] = None) -> PulsewatchConfig:
    """Load configuration from a YAML file plus environment overrides."""
    if config_path is None:
        config_path = os.getenv("PULSEWATCH_CONFIG", DEFAULT_CONFIG_PATH)

    path = Path(config_path)
    if not path.is_file():
        raise ConfigurationError(f"Config file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Could not read config file {path}: {exc}") from exc

    if not isinstance(config_data, dict):
        raise ConfigurationError("Config YAML must be a mapping")

    try:
        return PulsewatchConfig(**_apply_env_overrides(config_data))
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration in {path}:\n{exc}") from exc


def build_targets(config: PulsewatchConfig) -> List[Target]:
    """Turn configured services into targets; every invalid entry is reported at once."""
    if not config.services:
        raise ConfigurationError("No services configured for monitoring")

    targets: List[Target] = []
    problems: List[str] = []
    for idx, service in enumerate(config.services):
        try:
            targets.append(
                Target(
                    url=service.url,
                    interval_seconds=service.interval_seconds,
                    max_retries=service.max_retries,
                    retry_interval_seconds=service.retry_interval,
                )
            )
        except InvalidTargetError as exc:
            problems.append(f"services[{idx}]: {exc}")

    if problems:
        raise ConfigurationError("Invalid service configuration:\n" + "\n".join(problems))
    return targets


def build_dispatcher(config: PulsewatchConfig, client: httpx.AsyncClient) -> NotificationDispatcher:
    """Register a provider for every notification channel that has credentials."""
    settings = config.notifications
    dispatcher = NotificationDispatcher()

    if settings.console:
        dispatcher.add_provider(ConsoleProvider())

    if settings.pushover.configured:
        dispatcher.add_provider(
            PushoverProvider(
                client,
                PushoverConfig(
                    api_key=settings.pushover.api_key.strip(),
                    user_key=settings.pushover.user_key.strip(),
                ),
            )
        )

    if settings.telegram.configured:
        dispatcher.add_provider(
            TelegramProvider(
                client,
                TelegramConfig(
                    bot_token=settings.telegram.bot_token.strip(),
                    chat_id=settings.telegram.chat_id.strip(),
                ),
            )
        )

    return dispatcher

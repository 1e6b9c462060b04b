from __future__ import annotations

from pathlib import Path

import httpx
import pytest
import yaml

from pulsewatch.config import PulsewatchConfig, build_dispatcher, build_targets, load_config, parse_listen_address
from pulsewatch.errors import ConfigurationError


_ENV_VARS = (
    "PULSEWATCH_CONFIG",
    "PULSEWATCH_LISTEN",
    "PULSEWATCH_UNIX_SOCKET",
    "LOG_LEVEL",
    "PUSHOVER_API_KEY",
    "PUSHOVER_USER_KEY",
    "TELEGRAM_BOT_TOKEN",
    "TELEGRAM_CHAT_ID",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def _write(tmp_path: Path, data) -> Path:
    p = tmp_path / "config.yaml"
    p.write_text(yaml.safe_dump(data), encoding="utf-8")
    return p


def test_example_config_loads() -> None:
    path = Path(__file__).resolve().parents[1] / "config.example.yaml"
    config = load_config(str(path))
    targets = build_targets(config)
    assert targets
    assert all(t.url.startswith(("http://", "https://")) for t in targets)
    assert config.listen_address == ("127.0.0.1", 8080)


def test_load_config_defaults(tmp_path: Path) -> None:
    path = _write(tmp_path, {"services": [{"url": "https://example.com", "interval_seconds": 60}]})
    config = load_config(str(path))

    assert config.log_level == "INFO"
    assert config.listen is None
    assert config.listen_address is None
    assert config.unix_socket is None
    assert config.notifications.console is True
    assert config.notifications.pushover.configured is False
    assert config.notifications.telegram.configured is False

    [target] = build_targets(config)
    assert target.url == "https://example.com"
    assert target.interval_seconds == 60.0
    assert target.max_retries == 0
    assert target.retry_interval_seconds == 0.0


def test_config_path_from_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = _write(tmp_path, {"services": [{"url": "https://example.com", "interval_seconds": 5}]})
    monkeypatch.setenv("PULSEWATCH_CONFIG", str(path))
    assert load_config().services[0].interval_seconds == 5


def test_env_overrides_credentials(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = _write(
        tmp_path,
        {
            "notifications": {"pushover": {"api_key": "from-file"}},
            "services": [{"url": "https://example.com", "interval_seconds": 5}],
        },
    )
    monkeypatch.setenv("PUSHOVER_USER_KEY", "user-from-env")
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "123:abc")
    monkeypatch.setenv("TELEGRAM_CHAT_ID", "-100")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")

    config = load_config(str(path))

    assert config.log_level == "DEBUG"
    assert config.notifications.pushover.api_key == "from-file"
    assert config.notifications.pushover.user_key == "user-from-env"
    assert config.notifications.pushover.configured is True
    assert config.notifications.telegram.configured is True


def test_missing_file_is_configuration_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="not found"):
        load_config(str(tmp_path / "nope.yaml"))


def test_non_mapping_root_is_rejected(tmp_path: Path) -> None:
    path = _write(tmp_path, ["https://example.com"])
    with pytest.raises(ConfigurationError, match="mapping"):
        load_config(str(path))


@pytest.mark.parametrize(
    "service",
    [
        {"url": "https://example.com", "interval_seconds": 0},
        {"url": "https://example.com", "interval_seconds": 10, "max_retries": -1},
        {"url": "https://example.com", "interval_seconds": 10, "retry_interval": -2},
        {"url": "https://example.com"},
    ],
)
def test_invalid_service_fields_are_rejected(tmp_path: Path, service: dict) -> None:
    path = _write(tmp_path, {"services": [service]})
    with pytest.raises(ConfigurationError):
        load_config(str(path))


def test_duplicate_urls_are_rejected(tmp_path: Path) -> None:
    service = {"url": "https://example.com", "interval_seconds": 10}
    path = _write(tmp_path, {"services": [service, dict(service)]})
    with pytest.raises(ConfigurationError, match="Duplicate"):
        load_config(str(path))


def test_invalid_listen_is_rejected(tmp_path: Path) -> None:
    path = _write(tmp_path, {"listen": "nonsense", "services": []})
    with pytest.raises(ConfigurationError):
        load_config(str(path))


def test_unix_socket_from_file_and_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = _write(tmp_path, {"unix_socket": "  /run/pulsewatch.sock ", "services": []})
    assert load_config(str(path)).unix_socket == "/run/pulsewatch.sock"

    monkeypatch.setenv("PULSEWATCH_UNIX_SOCKET", "")
    assert load_config(str(path)).unix_socket is None


def test_parse_listen_address() -> None:
    assert parse_listen_address("0.0.0.0:9000") == ("0.0.0.0", 9000)
    assert parse_listen_address("[::1]:8080") == ("::1", 8080)
    with pytest.raises(ValueError):
        parse_listen_address("localhost:99999")


def test_build_targets_reports_every_invalid_url() -> None:
    config = PulsewatchConfig(
        services=[
            {"url": "", "interval_seconds": 3},
            {"url": "https://fine.example", "interval_seconds": 3},
            {"url": "not a url", "interval_seconds": 3},
            {"url": "http://a\tb/", "interval_seconds": 3},
        ]
    )
    with pytest.raises(ConfigurationError) as excinfo:
        build_targets(config)

    message = str(excinfo.value)
    assert "services[0]" in message
    assert "services[2]" in message
    assert "services[3]" in message
    assert "services[1]" not in message


def test_build_targets_requires_services() -> None:
    with pytest.raises(ConfigurationError, match="No services configured"):
        build_targets(PulsewatchConfig())


@pytest.mark.asyncio
async def test_build_dispatcher_registers_only_configured_providers() -> None:
    async with httpx.AsyncClient() as client:
        bare = build_dispatcher(PulsewatchConfig(), client)
        assert [p.name for p in bare.providers] == ["console"]

        silent = build_dispatcher(PulsewatchConfig(notifications={"console": False}), client)
        assert len(silent) == 0

        partial = build_dispatcher(
            PulsewatchConfig(notifications={"pushover": {"api_key": "k"}, "telegram": {"bot_token": "t", "chat_id": 42}}),
            client,
        )
        assert [p.name for p in partial.providers] == ["console", "telegram"]

        full = build_dispatcher(
            PulsewatchConfig(
                notifications={
                    "pushover": {"api_key": "k", "user_key": "u"},
                    "telegram": {"bot_token": "t", "chat_id": "c"},
                }
            ),
            client,
        )
        assert [p.name for p in full.providers] == ["console", "pushover", "telegram"]

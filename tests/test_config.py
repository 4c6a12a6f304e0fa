"""Tests for environment configuration."""
from webhook_relay.config import ForwarderConfig, Settings


def test_defaults(monkeypatch):
    for name in ("PORT", "DIREKTIV_ENDPOINT", "DIREKTIV_NAMESPACE", "DIREKTIV_TOKEN"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)
    assert settings.PORT == 8080
    assert settings.DIREKTIV_ENDPOINT == ""
    assert settings.REQUIRE_FIELDS is False


def test_reads_direktiv_environment(monkeypatch):
    monkeypatch.setenv("PORT", "9090")
    monkeypatch.setenv("DIREKTIV_ENDPOINT", "https://direktiv.example.com")
    monkeypatch.setenv("DIREKTIV_NAMESPACE", "audit")
    monkeypatch.setenv("DIREKTIV_TOKEN", "tok\n")

    settings = Settings(_env_file=None)
    config = settings.forwarder_config()

    assert settings.PORT == 9090
    assert config.broadcast_url == "https://direktiv.example.com/api/namespaces/audit/broadcast"
    assert config.token == "tok\n"
    assert config.auth_token == "tok"
    assert config.configured is True


def test_unconfigured_forwarder():
    assert ForwarderConfig(endpoint="", namespace="ops", token="").configured is False

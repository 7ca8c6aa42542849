import pytest

from xcom_validator.config import BUNDLED_OPENAPI_PATH, ServerConfig, load_config


def test_defaults(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for env in ("SERVER_PORT", "AUTH_TIMESTAMP_WINDOW_SEC", "NONCE_TTL_SEC", "NONCE_BACKEND", "OPENAPI_PATH", "XCOM_CONFIG"):
        monkeypatch.delenv(env, raising=False)
    cfg = load_config()
    assert cfg.port == 8000
    assert cfg.openapi_path == BUNDLED_OPENAPI_PATH
    assert cfg.timestamp_window_ms == 30_000
    assert cfg.nonce_backend == "memory"


def test_yaml_then_env_then_overrides(monkeypatch, tmp_path):
    cfg_file = tmp_path / "server.yml"
    cfg_file.write_text("port: 9000\nnonce_ttl_sec: 10\ntimestamp_window_sec: 20\nunknown_key: 1\n")
    monkeypatch.setenv("XCOM_CONFIG", str(cfg_file))
    monkeypatch.delenv("SERVER_PORT", raising=False)
    monkeypatch.setenv("NONCE_TTL_SEC", "15")
    cfg = load_config(timestamp_window_sec=25)
    assert cfg.port == 9000
    assert cfg.nonce_ttl_sec == 15
    assert cfg.timestamp_window_sec == 25
    assert cfg.nonce_retention_sec == 50


def test_bad_env_value(monkeypatch):
    monkeypatch.setenv("SERVER_PORT", "eighty")
    with pytest.raises(ValueError, match="SERVER_PORT"):
        load_config()


def test_retention_never_shorter_than_ttl():
    assert ServerConfig(nonce_ttl_sec=300, timestamp_window_sec=30).nonce_retention_sec == 300

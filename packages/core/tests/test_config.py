"""Tests for configuration loading."""

from ideflow_core.config import load_config


def test_defaults_applied_when_no_config_file(tmp_path):
    config = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    assert config["endpoint"] is None
    assert config["timeout"] == 120
    assert config["history_limit"] == 10
    assert config["max_history"] == 50
    assert config["review_mode"] == "standard"
    assert config["store"] == "memory"


def test_config_file_overrides_defaults(tmp_path):
    cfg = tmp_path / ".ideflow.yml"
    cfg.write_text("endpoint: http://localhost:9000/execute\nreview_mode: strict\n")
    config = load_config(config_path=str(cfg))
    assert config["endpoint"] == "http://localhost:9000/execute"
    assert config["review_mode"] == "strict"


def test_empty_config_file_keeps_defaults(tmp_path):
    cfg = tmp_path / ".ideflow.yml"
    cfg.write_text("")
    config = load_config(config_path=str(cfg))
    assert config["max_retries"] == 3


def test_env_endpoint_overrides_config_file(tmp_path, monkeypatch):
    cfg = tmp_path / ".ideflow.yml"
    cfg.write_text("endpoint: http://from-file\n")
    monkeypatch.setenv("IDEFLOW_ENDPOINT", "http://from-env")
    config = load_config(config_path=str(cfg))
    assert config["endpoint"] == "http://from-env"


def test_cli_overrides_env_and_config_file(tmp_path, monkeypatch):
    cfg = tmp_path / ".ideflow.yml"
    cfg.write_text("endpoint: http://from-file\n")
    monkeypatch.setenv("IDEFLOW_ENDPOINT", "http://from-env")
    config = load_config(config_path=str(cfg), cli_overrides={"endpoint": "http://from-cli"})
    assert config["endpoint"] == "http://from-cli"


def test_none_cli_overrides_ignored(tmp_path):
    cfg = tmp_path / ".ideflow.yml"
    cfg.write_text("store: noop\n")
    config = load_config(config_path=str(cfg), cli_overrides={"store": None})
    assert config["store"] == "noop"


def test_api_key_read_from_env_only(tmp_path, monkeypatch):
    cfg = tmp_path / ".ideflow.yml"
    cfg.write_text("api_key: committed-secret\n")
    monkeypatch.setenv("IDEFLOW_API_KEY", "env-key")
    config = load_config(config_path=str(cfg))
    assert config["api_key"] == "env-key"


def test_api_key_none_when_unset(tmp_path, monkeypatch):
    monkeypatch.delenv("IDEFLOW_API_KEY", raising=False)
    config = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    assert config["api_key"] is None


def test_defaults_not_mutated(tmp_path):
    config_a = load_config(config_path=str(tmp_path / "nonexistent.yml"), cli_overrides={"timeout": 5})
    config_b = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    assert config_a["timeout"] == 5
    assert config_b["timeout"] == 120

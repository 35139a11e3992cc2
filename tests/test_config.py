"""Tests for BoardConfig loading."""
import textwrap

from mktg.board.config import BoardConfig


def test_defaults_when_file_missing(tmp_path, monkeypatch):
    monkeypatch.delenv("MKTG_API_URL", raising=False)
    monkeypatch.delenv("MKTG_BOARD_CONFIG", raising=False)
    cfg = BoardConfig.load(str(tmp_path / "absent.yaml"))
    assert cfg.api_url == "http://localhost:3001"
    assert cfg.long_press_ms == 500
    assert cfg.offline is False


def test_yaml_values_and_unknown_keys(tmp_path, monkeypatch):
    monkeypatch.delenv("MKTG_API_URL", raising=False)
    path = tmp_path / "board.yaml"
    path.write_text(textwrap.dedent("""
        api_url: http://api.internal:8080/
        long_press_ms: 350
        offline: true
        theme: dark
    """))
    cfg = BoardConfig.load(str(path))
    assert cfg.api_url == "http://api.internal:8080"
    assert cfg.long_press_ms == 350
    assert cfg.offline is True
    assert not hasattr(cfg, "theme")


def test_environment_overrides(tmp_path, monkeypatch):
    path = tmp_path / "board.yaml"
    path.write_text("api_url: http://from-file\nport: 4000\n")
    monkeypatch.setenv("MKTG_API_URL", "http://from-env:3001")
    monkeypatch.setenv("MKTG_BOARD_PORT", "8123")
    cfg = BoardConfig.load(str(path))
    assert cfg.api_url == "http://from-env:3001"
    assert cfg.port == 8123


def test_config_path_from_env(tmp_path, monkeypatch):
    monkeypatch.delenv("MKTG_API_URL", raising=False)
    path = tmp_path / "alt.yaml"
    path.write_text("request_timeout: 1.5\n")
    monkeypatch.setenv("MKTG_BOARD_CONFIG", str(path))
    assert BoardConfig.load().request_timeout == 1.5

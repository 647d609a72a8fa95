"""Tests for the YAML config service."""
from wf_core.services import config_service
from wf_core.services.config_service import (
    clear_config_cache,
    get_compiler_settings,
    get_logging_settings,
    load_config,
)


def test_missing_file_gives_defaults(isolated_config):
    assert not isolated_config.exists()
    assert load_config() == {}
    assert get_compiler_settings() == {"default_target": "command", "warn_on_cycles": True}
    assert get_logging_settings() == {"level": "WARNING"}


def test_env_path_is_used(isolated_config):
    isolated_config.write_text("compiler:\n  default_target: subagent\nlogging:\n  level: DEBUG\n")
    assert get_compiler_settings()["default_target"] == "subagent"
    assert get_compiler_settings()["warn_on_cycles"] is True
    assert get_logging_settings()["level"] == "DEBUG"


def test_config_is_cached(isolated_config):
    isolated_config.write_text("compiler:\n  warn_on_cycles: false\n")
    assert get_compiler_settings()["warn_on_cycles"] is False
    isolated_config.write_text("compiler:\n  warn_on_cycles: true\n")
    assert get_compiler_settings()["warn_on_cycles"] is False
    clear_config_cache()
    assert get_compiler_settings()["warn_on_cycles"] is True


def test_explicit_path(tmp_path):
    path = tmp_path / "other.yaml"
    path.write_text("custom:\n  key: 1\n")
    assert load_config(path) == {"custom": {"key": 1}}


def test_non_mapping_section_ignored(isolated_config):
    isolated_config.write_text("compiler: just-a-string\n")
    assert get_compiler_settings()["default_target"] == "command"


def test_cwd_default(tmp_path, monkeypatch):
    monkeypatch.delenv("WFKIT_CONFIG_PATH")
    monkeypatch.chdir(tmp_path)
    assert config_service._default_config_path() == tmp_path / "wfkit.yaml"

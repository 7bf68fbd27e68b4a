"""Tests for environment-driven editor configuration."""

from pathlib import Path

from flowcanvas.config import EditorConfig, get_editor_config, reset_editor_config


class TestEditorConfig:

    def test_defaults(self, monkeypatch):
        for env_name in EditorConfig._ENV_MAP.values():
            monkeypatch.delenv(env_name, raising=False)
        config = EditorConfig.get_default_instance()
        assert config.llm_temperature == 0.7
        assert config.llm_max_tokens == 1000
        assert config.duplicate_offset == 24.0
        assert config.workflow_path.name == "workflows"

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("FLOWCANVAS_WORKFLOW_DIR", str(tmp_path))
        monkeypatch.setenv("FLOWCANVAS_LLM_TEMPERATURE", "0.2")
        monkeypatch.setenv("FLOWCANVAS_LLM_MAX_TOKENS", "256")
        monkeypatch.setenv("FLOWCANVAS_DUPLICATE_OFFSET", "40")

        config = EditorConfig.get_default_instance()

        assert config.workflow_path == Path(tmp_path)
        assert config.llm_temperature == 0.2
        assert config.llm_max_tokens == 256
        assert config.duplicate_offset == 40.0

    def test_invalid_values_fall_back_to_defaults(self, monkeypatch):
        monkeypatch.setenv("FLOWCANVAS_LLM_MAX_TOKENS", "lots")
        monkeypatch.setenv("FLOWCANVAS_VIEWPORT_WIDTH", "")
        config = EditorConfig.get_default_instance()
        assert config.llm_max_tokens == 1000
        assert config.viewport_width == 400.0

    def test_to_dict(self):
        values = EditorConfig(llm_max_tokens=12).to_dict()
        assert values["llm_max_tokens"] == 12
        assert set(values) == set(EditorConfig._ENV_MAP)

    def test_singleton_is_cached_until_reset(self, monkeypatch):
        monkeypatch.setenv("FLOWCANVAS_LLM_MAX_TOKENS", "64")
        first = get_editor_config()
        monkeypatch.setenv("FLOWCANVAS_LLM_MAX_TOKENS", "128")
        assert get_editor_config() is first
        assert first.llm_max_tokens == 64

        reset_editor_config()
        assert get_editor_config().llm_max_tokens == 128

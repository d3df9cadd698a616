"""Tests for configuration loading and precedence."""

import json

import pytest
from pydantic import ValidationError

from codegen_enhancer.config import (
    DEFAULT_SYSTEM_PROMPT,
    LLMConfig,
    load_llm_config,
    merge_config_data,
    process_template,
    redacted_config,
)


def write_json(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_defaults_without_file_or_env():
    """No sources yields the built-in defaults."""
    config = load_llm_config()

    assert config.provider == "ollama"
    assert config.ollama.base_url == "http://localhost:11434"
    assert config.ollama.model == "llama3"
    assert config.openai is None
    assert config.debug is False
    assert config.enhancer.enabled is False
    assert config.enhancer.safety_threshold == 0.9
    assert config.enhancer.quiet_periods() == {"fill": 3.0, "press": 2.0}
    assert config.prompts.system_prompt == DEFAULT_SYSTEM_PROMPT


def test_file_values_override_defaults(tmp_path):
    """Keys in the file replace defaults; unspecified keys keep them."""
    write_json(
        tmp_path / "playwright.llm.json",
        {"ollama": {"model": "codellama"}, "prompts": {"systemPrompt": "Be brief."}},
    )

    config = load_llm_config()

    assert config.ollama.model == "codellama"
    assert config.ollama.base_url == "http://localhost:11434"
    assert config.prompts.system_prompt == "Be brief."
    assert "{{generatedCode}}" in config.prompts.user_prompt_template


def test_environment_beats_file(tmp_path, monkeypatch):
    """A model named by the file loses to one named by the environment."""
    write_json(tmp_path / "playwright.llm.json", {"ollama": {"model": "X"}})
    monkeypatch.setenv("OLLAMA_MODEL", "Y")

    assert load_llm_config().ollama.model == "Y"


def test_second_location_is_used(tmp_path):
    write_json(tmp_path / ".playwright" / "llm.config.json", {"debug": True})

    assert load_llm_config().debug is True


def test_first_location_wins(tmp_path):
    write_json(tmp_path / "playwright.llm.json", {"ollama": {"model": "first"}})
    write_json(tmp_path / ".playwright" / "llm.config.json", {"ollama": {"model": "second"}})

    assert load_llm_config().ollama.model == "first"


def test_explicit_path(tmp_path):
    path = write_json(tmp_path / "custom" / "llm.json", {"ollama": {"model": "explicit"}})

    assert load_llm_config(path).ollama.model == "explicit"


def test_malformed_file_falls_back_to_next_source(tmp_path, caplog):
    """Unparseable JSON is logged and skipped."""
    (tmp_path / "playwright.llm.json").write_text("{not json", encoding="utf-8")
    write_json(tmp_path / ".playwright" / "llm.config.json", {"ollama": {"model": "backup"}})

    config = load_llm_config()

    assert config.ollama.model == "backup"
    assert "Error loading LLM config" in caplog.text


def test_malformed_file_falls_back_to_defaults(tmp_path):
    (tmp_path / "playwright.llm.json").write_text("[1, 2]", encoding="utf-8")

    assert load_llm_config() == LLMConfig()


def test_invalid_file_values_are_ignored(tmp_path):
    """A file that fails validation is skipped as a whole."""
    write_json(
        tmp_path / "playwright.llm.json",
        {"enhancer": {"safetyThreshold": 7}, "ollama": {"model": "never"}},
    )

    config = load_llm_config()

    assert config.enhancer.safety_threshold == 0.9
    assert config.ollama.model == "llama3"


def test_openai_key_selects_provider_and_seeds_block(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test-123456")
    monkeypatch.setenv("OPENAI_MODEL", "gpt-4o-mini")

    config = load_llm_config()

    assert config.provider == "openai"
    assert config.openai.api_key == "sk-test-123456"
    assert config.openai.model == "gpt-4o-mini"
    assert config.active_provider_config() is config.openai


def test_env_credentials_overlay_file_block(tmp_path, monkeypatch):
    """File-only keys of a provider block survive the env overlay."""
    write_json(
        tmp_path / "playwright.llm.json",
        {
            "provider": "anthropic",
            "anthropic": {"apiKey": "file-key", "model": "claude-file", "temperature": 0.5},
        },
    )
    monkeypatch.setenv("ANTHROPIC_API_KEY", "env-key")

    config = load_llm_config()

    assert config.provider == "anthropic"
    assert config.anthropic.api_key == "env-key"
    assert config.anthropic.model == "claude-file"
    assert config.anthropic.temperature == 0.5


def test_azure_requires_key_endpoint_and_deployment(monkeypatch):
    monkeypatch.setenv("AZURE_OPENAI_API_KEY", "azure-key")
    monkeypatch.setenv("AZURE_OPENAI_ENDPOINT", "https://example.openai.azure.com")

    assert load_llm_config().provider == "ollama"

    monkeypatch.setenv("AZURE_OPENAI_DEPLOYMENT", "gpt4-deploy")
    config = load_llm_config()

    assert config.provider == "azure-openai"
    assert config.azure_openai.deployment_name == "gpt4-deploy"
    assert config.azure_openai.api_version == "2023-05-15"


def test_feature_switches_from_environment(monkeypatch):
    monkeypatch.setenv("PW_USE_LLM_ENHANCER", "1")
    monkeypatch.setenv("PW_DEBUG_LLM", "true")
    monkeypatch.setenv("PW_LLM_REQUEST_TIMEOUT", "12.5")

    config = load_llm_config()

    assert config.enhancer.enabled is True
    assert config.debug is True
    assert config.enhancer.request_timeout == 12.5


def test_dotenv_file_is_read(tmp_path):
    (tmp_path / ".env").write_text("OLLAMA_BASE_URL=http://gpu-box:11434\n", encoding="utf-8")

    assert load_llm_config().ollama.base_url == "http://gpu-box:11434"


def test_config_is_frozen():
    config = load_llm_config()

    with pytest.raises(ValidationError):
        config.provider = "openai"


def test_merge_accepts_snake_case_keys():
    base = LLMConfig().model_dump(by_alias=True)

    merged = merge_config_data(base, {"enhancer": {"fill_quiet_period": 1.5}})

    assert merged["enhancer"]["fillQuietPeriod"] == 1.5
    assert merged["enhancer"]["pressQuietPeriod"] == 2.0


def test_process_template_replaces_every_occurrence():
    result = process_template("{{a}} and {{a}} then {{b}} {{missing}}", {"a": "x", "b": "y"})

    assert result == "x and x then y {{missing}}"


def test_redacted_config_masks_api_keys(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-abcdefghijkl")

    data = redacted_config(load_llm_config())

    assert data["openai"]["apiKey"] == "sk-a****"
    assert "sk-abcdefghijkl" not in json.dumps(data)


def test_file_settings_survive_when_key_comes_from_environment(tmp_path, monkeypatch):
    """A file without the API key is completed by the environment, not dropped."""
    write_json(
        tmp_path / "playwright.llm.json",
        {
            "provider": "openai",
            "openai": {"model": "gpt-4o"},
            "prompts": {"systemPrompt": "Be brief."},
        },
    )
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env-123456")

    config = load_llm_config()

    assert config.provider == "openai"
    assert config.openai.api_key == "sk-env-123456"
    assert config.openai.model == "gpt-4o"
    assert config.prompts.system_prompt == "Be brief."


def test_incomplete_file_without_env_key_falls_back_to_defaults(tmp_path, caplog):
    write_json(tmp_path / "playwright.llm.json", {"provider": "openai", "openai": {"model": "gpt-4o"}})

    config = load_llm_config()

    assert config.provider == "ollama"
    assert config.openai is None
    assert "Ignoring invalid LLM config" in caplog.text


def test_invalid_file_keeps_environment_credentials(tmp_path, monkeypatch):
    write_json(tmp_path / "playwright.llm.json", {"enhancer": {"safetyThreshold": 7}})
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-123456")

    config = load_llm_config()

    assert config.provider == "anthropic"
    assert config.enhancer.safety_threshold == 0.9


@pytest.mark.parametrize("value", ["2", "maybe"])
def test_malformed_flag_only_affects_itself(monkeypatch, caplog, value):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env-123456")
    monkeypatch.setenv("PW_DEBUG_LLM", value)
    monkeypatch.setenv("PW_USE_LLM_ENHANCER", "1")

    config = load_llm_config()

    assert config.provider == "openai"
    assert config.openai.api_key == "sk-env-123456"
    assert config.enhancer.enabled is True
    assert config.debug is False
    assert "PW_DEBUG_LLM" in caplog.text


def test_malformed_timeout_only_affects_itself(monkeypatch):
    monkeypatch.setenv("OLLAMA_MODEL", "codellama")
    monkeypatch.setenv("PW_LLM_REQUEST_TIMEOUT", "soon")

    config = load_llm_config()

    assert config.ollama.model == "codellama"
    assert config.enhancer.request_timeout == 30.0


def test_flag_zero_disables(tmp_path, monkeypatch):
    write_json(tmp_path / "playwright.llm.json", {"debug": True, "enhancer": {"enabled": True}})
    monkeypatch.setenv("PW_DEBUG_LLM", "0")
    monkeypatch.setenv("PW_USE_LLM_ENHANCER", "false")

    config = load_llm_config()

    assert config.debug is False
    assert config.enhancer.enabled is False


def test_custom_provider_accepts_module_path_key(tmp_path):
    write_json(
        tmp_path / "playwright.llm.json",
        {
            "provider": "custom",
            "customProvider": {"providerModulePath": "my_llm:Provider", "providerOptions": {"a": 1}},
            "ollama": {"model": "kept"},
        },
    )

    config = load_llm_config()

    assert config.provider == "custom"
    assert config.custom_provider.provider == "my_llm:Provider"
    assert config.custom_provider.provider_options == {"a": 1}
    assert config.ollama.model == "kept"

"""LLM enhancer configuration: defaults <- JSON file <- environment."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
)
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

CONFIG_FILE_LOCATIONS = (
    Path("playwright.llm.json"),
    Path(".playwright") / "llm.config.json",
)

PROVIDER_BLOCKS = {
    "ollama": "ollama",
    "openai": "openai",
    "anthropic": "anthropic",
    "azure-openai": "azure_openai",
    "custom": "custom_provider",
}


class _ConfigModel(BaseModel):
    """camelCase on the wire, snake_case in Python; frozen once built."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class ProviderSettings(_ConfigModel):
    """Sampling parameters shared by every provider block."""

    temperature: Optional[float] = Field(0.2, description="Temperature for per-action calls")
    max_tokens: Optional[int] = Field(None, description="Token limit for one response")
    complete_script_temperature: Optional[float] = Field(
        0.1, description="Temperature for the whole-script call"
    )


class OllamaConfig(ProviderSettings):
    base_url: str = "http://localhost:11434"
    model: str = "llama3"
    num_predict: Optional[int] = 300


class OpenAIConfig(ProviderSettings):
    api_key: str
    model: str = "gpt-3.5-turbo"
    organization: Optional[str] = None
    base_url: Optional[str] = None
    max_tokens: Optional[int] = 1024


class AnthropicConfig(ProviderSettings):
    api_key: str
    model: str = "claude-3-sonnet-20240229"
    base_url: Optional[str] = None
    max_tokens: Optional[int] = 1024


class AzureOpenAIConfig(ProviderSettings):
    api_key: str
    endpoint: str
    deployment_name: str
    api_version: str = "2023-05-15"
    max_tokens: Optional[int] = 1024


class CustomProviderConfig(ProviderSettings):
    # providerModulePath is the key older config files use
    provider: str = Field(
        ...,
        validation_alias=AliasChoices("provider", "providerModulePath"),
        description="Registered provider name or 'package.module:attribute' reference",
    )
    provider_options: Dict[str, Any] = Field(default_factory=dict)


DEFAULT_SYSTEM_PROMPT = """You are a seasoned Playwright test automation expert. You receive one recorded browser action at a time, together with the code a generator produced for it. Rewrite that code so it is robust and production ready. The snippets you return are merged, in order, into a single test script.

Follow these rules:
1. Never use absolute coordinates (for example `click({ position: { x: 10, y: 20 } })`).
2. Avoid dynamic values such as generated ids or volatile XPath fragments.
3. Provide at least one fallback locator that differs from the primary one, built from the element information (XPath, JS path, attributes, outer HTML).
4. Add an assertion when it verifies the expected state of the element.
5. Never pass recorder metadata such as targetInfo to Playwright calls.
6. Preserve the behavior of the original code.

Output only the improved code without explanations."""

DEFAULT_USER_PROMPT_TEMPLATE = """Here's one Playwright action in JSON format:
```json
{{actionData}}
```
{{elementContext}}
Here's the generated code for this action:
```javascript
{{generatedCode}}
```

Enhance this code to make it more robust and maintainable while preserving its functionality."""

DEFAULT_COMPLETE_SCRIPT_SYSTEM_PROMPT = """You are an expert Playwright test automation engineer improving a generated test script whose individual steps were already enhanced.

Critical requirements:
1. Never remove any existing action, assertion, navigation, wait or retry logic.
2. Never remove or merge fallback locators.
3. Do not change the order or flow of the test.
4. Make sure no variable is declared twice.
5. Move text typed by the user into variables declared at the top of the script.

Output only the complete improved script without explanations."""

DEFAULT_COMPLETE_SCRIPT_USER_PROMPT_TEMPLATE = """Here is a complete Playwright test script that was auto-generated. Improve it while strictly preserving all existing functionality:

```javascript
{{completeScript}}
```

Return only the complete enhanced test script."""


class PromptTemplates(_ConfigModel):
    """
    Prompt templates with ``{{placeholder}}`` substitution points.

    Per-action user template: ``actionData``, ``elementContext``,
    ``generatedCode``. Whole-script user template: ``completeScript``.
    """

    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    user_prompt_template: str = DEFAULT_USER_PROMPT_TEMPLATE
    complete_script_system_prompt: str = DEFAULT_COMPLETE_SCRIPT_SYSTEM_PROMPT
    complete_script_user_prompt_template: str = DEFAULT_COMPLETE_SCRIPT_USER_PROMPT_TEMPLATE


class EnhancerSettings(_ConfigModel):
    """Pipeline policy constants."""

    enabled: bool = Field(False, description="Master switch for LLM enhancement")
    request_timeout: float = Field(30.0, gt=0, description="Seconds allowed for one provider call")
    pending_timeout: Optional[float] = Field(
        120.0, description="Seconds the script gate waits for per-action work (None = forever)"
    )
    fill_quiet_period: float = Field(3.0, ge=0, description="Debounce quiet period for fill")
    press_quiet_period: float = Field(2.0, ge=0, description="Debounce quiet period for press")
    safety_threshold: float = Field(
        0.9, ge=0, le=1, description="Minimum kept share of each counted operation"
    )
    skip_actions: List[str] = Field(default_factory=lambda: ["screenshot"])
    debounced_actions: List[str] = Field(default_factory=lambda: ["fill", "press"])

    def quiet_periods(self) -> Dict[str, float]:
        """Quiet period per debounced action kind."""
        known = {"fill": self.fill_quiet_period, "press": self.press_quiet_period}
        return {
            kind: known.get(kind, self.fill_quiet_period)
            for kind in self.debounced_actions
        }


class LLMConfig(_ConfigModel):
    """
    Resolved configuration for the LLM enhancer.

    Built once per process by :func:`load_llm_config` and never mutated.
    """

    provider: str = "ollama"
    ollama: Optional[OllamaConfig] = Field(default_factory=OllamaConfig)
    openai: Optional[OpenAIConfig] = None
    anthropic: Optional[AnthropicConfig] = None
    azure_openai: Optional[AzureOpenAIConfig] = None
    custom_provider: Optional[CustomProviderConfig] = None
    debug: bool = False
    prompts: PromptTemplates = Field(default_factory=PromptTemplates)
    enhancer: EnhancerSettings = Field(default_factory=EnhancerSettings)

    def active_provider_config(self) -> Optional[ProviderSettings]:
        """Block of the selected provider, or None when it is not configured."""
        attribute = PROVIDER_BLOCKS.get(self.provider, "ollama")
        return getattr(self, attribute)


DEFAULT_LLM_CONFIG = LLMConfig()


TRUE_FLAG_VALUES = frozenset({"1", "true", "yes", "on"})
FALSE_FLAG_VALUES = frozenset({"0", "false", "no", "off", ""})


class EnvironmentOverrides(BaseSettings):
    """
    Environment variables understood by the enhancer.

    Priority: ENV > .env.local > .env
    """

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Feature switches
    PW_USE_LLM_ENHANCER: Optional[bool] = None
    PW_DEBUG_LLM: Optional[bool] = None
    PW_LLM_REQUEST_TIMEOUT: Optional[float] = None

    # Local model server
    OLLAMA_BASE_URL: Optional[str] = None
    OLLAMA_MODEL: Optional[str] = None

    # Hosted providers (presence of the key selects the provider)
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: Optional[str] = None
    OPENAI_BASE_URL: Optional[str] = None
    OPENAI_ORGANIZATION: Optional[str] = None

    ANTHROPIC_API_KEY: Optional[str] = None
    ANTHROPIC_MODEL: Optional[str] = None
    ANTHROPIC_BASE_URL: Optional[str] = None

    AZURE_OPENAI_API_KEY: Optional[str] = None
    AZURE_OPENAI_ENDPOINT: Optional[str] = None
    AZURE_OPENAI_DEPLOYMENT: Optional[str] = None
    AZURE_OPENAI_API_VERSION: Optional[str] = None

    # A malformed switch only disables itself, never the other overrides
    @field_validator("PW_USE_LLM_ENHANCER", "PW_DEBUG_LLM", mode="before")
    @classmethod
    def parse_flag(cls, value: Any, info: ValidationInfo) -> Optional[bool]:
        if value is None or isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in TRUE_FLAG_VALUES:
            return True
        if text in FALSE_FLAG_VALUES:
            return False
        logger.warning(f"Ignoring {info.field_name}={value!r}: expected 1 or 0")
        return None

    @field_validator("PW_LLM_REQUEST_TIMEOUT", mode="before")
    @classmethod
    def parse_timeout(cls, value: Any, info: ValidationInfo) -> Optional[float]:
        if value is None or value == "":
            return None
        try:
            timeout = float(value)
        except (TypeError, ValueError):
            timeout = 0.0
        if timeout <= 0:
            logger.warning(f"Ignoring {info.field_name}={value!r}: expected a positive number")
            return None
        return timeout


def process_template(template: str, variables: Dict[str, str]) -> str:
    """Replace every ``{{name}}`` in ``template`` with ``variables[name]``."""
    result = template
    for key, value in variables.items():
        result = result.replace("{{" + key + "}}", value)
    return result


def _normalize_keys(data: Dict[str, Any]) -> Dict[str, Any]:
    return {(to_camel(key) if "_" in key else key): value for key, value in data.items()}


def merge_config_data(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Shallow-merge ``override`` over ``base`` one top-level section at a time.

    Dict sections (provider blocks, prompts, enhancer) are merged key by key;
    scalars (provider, debug) are replaced.
    """
    result = dict(base)
    for key, value in _normalize_keys(override).items():
        current = result.get(key)
        if isinstance(value, dict) and isinstance(current, dict):
            result[key] = {**current, **_normalize_keys(value)}
        elif isinstance(value, dict):
            result[key] = _normalize_keys(value)
        else:
            result[key] = value
    return result


def _find_config_file(config_path: Optional[Union[str, Path]], search_dir: Optional[Path]) -> List[Path]:
    if config_path:
        path = Path(config_path)
        if path.exists():
            return [path]
        logger.warning(f"LLM config file not found: {path}")
    base = search_dir or Path.cwd()
    return [base / location for location in CONFIG_FILE_LOCATIONS if (base / location).exists()]


def _read_config_file(path: Path) -> Optional[Dict[str, Any]]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Error loading LLM config from {path}: {e}")
        return None
    if not isinstance(data, dict):
        logger.warning(f"Ignoring LLM config {path}: top level must be an object")
        return None
    return data


def _overlay(block: Optional[Dict[str, Any]], values: Dict[str, Optional[Any]]) -> Dict[str, Any]:
    """Seed a provider block from env values, or overlay them on the file's block."""
    merged = dict(block or {})
    merged.update({key: value for key, value in values.items() if value is not None})
    return merged


def apply_environment(data: Dict[str, Any], env: EnvironmentOverrides) -> Dict[str, Any]:
    """Apply environment overrides on top of the merged defaults and file data."""
    result = dict(data)

    if env.OLLAMA_BASE_URL or env.OLLAMA_MODEL:
        result["ollama"] = _overlay(
            result.get("ollama"),
            {"baseUrl": env.OLLAMA_BASE_URL, "model": env.OLLAMA_MODEL},
        )

    if env.OPENAI_API_KEY:
        result["provider"] = "openai"
        result["openai"] = _overlay(
            result.get("openai"),
            {
                "apiKey": env.OPENAI_API_KEY,
                "model": env.OPENAI_MODEL,
                "baseUrl": env.OPENAI_BASE_URL,
                "organization": env.OPENAI_ORGANIZATION,
            },
        )

    if env.ANTHROPIC_API_KEY:
        result["provider"] = "anthropic"
        result["anthropic"] = _overlay(
            result.get("anthropic"),
            {
                "apiKey": env.ANTHROPIC_API_KEY,
                "model": env.ANTHROPIC_MODEL,
                "baseUrl": env.ANTHROPIC_BASE_URL,
            },
        )

    if env.AZURE_OPENAI_API_KEY and env.AZURE_OPENAI_ENDPOINT and env.AZURE_OPENAI_DEPLOYMENT:
        result["provider"] = "azure-openai"
        result["azureOpenai"] = _overlay(
            result.get("azureOpenai"),
            {
                "apiKey": env.AZURE_OPENAI_API_KEY,
                "endpoint": env.AZURE_OPENAI_ENDPOINT,
                "deploymentName": env.AZURE_OPENAI_DEPLOYMENT,
                "apiVersion": env.AZURE_OPENAI_API_VERSION,
            },
        )

    if env.PW_DEBUG_LLM is not None:
        result["debug"] = env.PW_DEBUG_LLM

    enhancer_values = {
        "enabled": env.PW_USE_LLM_ENHANCER,
        "requestTimeout": env.PW_LLM_REQUEST_TIMEOUT,
    }
    if any(value is not None for value in enhancer_values.values()):
        result["enhancer"] = _overlay(result.get("enhancer"), enhancer_values)

    return result


def _validate(data: Dict[str, Any]) -> Optional[LLMConfig]:
    try:
        return LLMConfig.model_validate(data)
    except ValidationError as e:
        logger.debug(f"LLM config candidate failed validation: {e}")
        return None


def load_llm_config(
    config_path: Optional[Union[str, Path]] = None,
    search_dir: Optional[Path] = None,
) -> LLMConfig:
    """
    Load and return the LLM configuration.

    Priority (highest first):
    1. Environment variables
    2. ``config_path`` if given, else the first of ``playwright.llm.json`` /
       ``.playwright/llm.config.json`` found in ``search_dir`` (cwd by default)
    3. Built-in defaults

    Sources are merged section by section and validated once, so a file may
    leave credentials to the environment. When the merged result is invalid
    the offending source is dropped: first the file, then the environment.

    Never raises: broken sources are logged and skipped.
    """
    defaults = DEFAULT_LLM_CONFIG.model_dump(by_alias=True)

    try:
        env = EnvironmentOverrides()
    except ValidationError as e:
        logger.warning(f"Ignoring invalid LLM environment overrides: {e}")
        env = EnvironmentOverrides.model_construct()

    file_sources = []
    for path in _find_config_file(config_path, search_dir):
        file_data = _read_config_file(path)
        if file_data is not None:
            file_sources.append((path, merge_config_data(defaults, file_data)))

    for path, with_file in file_sources:
        config = _validate(apply_environment(with_file, env))
        if config is not None:
            logger.debug(f"Loaded LLM config from {path}")
            return config
        logger.warning(f"Ignoring invalid LLM config {path}")

    config = _validate(apply_environment(defaults, env))
    if config is not None:
        return config

    logger.warning("Ignoring LLM environment overrides that fail validation")
    for path, with_file in file_sources:
        config = _validate(with_file)
        if config is not None:
            logger.debug(f"Loaded LLM config from {path}")
            return config
    return LLMConfig.model_validate(defaults)


def redacted_config(config: LLMConfig) -> Dict[str, Any]:
    """Config as a camelCase dict with credentials masked, for display."""
    data = config.model_dump(by_alias=True)
    for attribute in PROVIDER_BLOCKS.values():
        block = data.get(to_camel(attribute))
        if isinstance(block, dict) and block.get("apiKey"):
            key = block["apiKey"]
            block["apiKey"] = f"{key[:4]}****" if len(key) > 8 else "****"
    return data

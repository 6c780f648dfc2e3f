"""Analyzer configuration.

All settings live in one immutable object that is passed to the analyzer
explicitly. Reading the process environment happens only in
``AnalyzerConfig.from_env`` (called by the CLI and the MCP server).
"""

from __future__ import annotations

import dataclasses
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

import tiktoken
import yaml

from .errors import DEFAULT_REQUEST_TIMEOUT, ConfigError
from .prompts import DEFAULT_SYSTEM_PROMPT, MUST_HAVE_PROMPT, PREDEFINED_TAGS_PROMPT
from .tokenizer import DEFAULT_ENCODING

logger = logging.getLogger(__name__)

PROVIDERS = ("custom", "openai", "anthropic")

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_ANTHROPIC_MODEL = "claude-sonnet-4-20250514"

# Per-provider environment variables for credentials and model name.
_PROVIDER_ENV = {
    "custom": ("CUSTOM_API_KEY", "CUSTOM_MODEL"),
    "openai": ("OPENAI_API_KEY", "OPENAI_MODEL"),
    "anthropic": ("ANTHROPIC_API_KEY", "ANTHROPIC_MODEL"),
}


@dataclass(frozen=True)
class AnalyzerConfig:
    """Settings for one document analyzer.

    Follows the frozen dataclass pattern: validated once in
    ``__post_init__``, never mutated afterwards.
    """

    provider: str = "custom"
    api_url: str | None = None  # base URL of an OpenAI-compatible endpoint
    api_key: str | None = None
    model: str = DEFAULT_MODEL
    token_limit: int = 128_000  # model context window
    response_tokens: int = 1000  # reserved for the reply
    use_existing_data: bool = False
    use_prompt_tags: bool = False
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    must_have_prompt: str = MUST_HAVE_PROMPT
    predefined_tags_prompt: str = PREDEFINED_TAGS_PROMPT
    prompt_tags: tuple[str, ...] = ()
    temperature: float = 0.3
    tokenizer_encoding: str = DEFAULT_ENCODING
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    thumbnail_dir: Path = field(default_factory=lambda: Path("public/images"))
    paperless_api_url: str | None = None
    paperless_api_token: str | None = None

    def __post_init__(self) -> None:
        """Validate configuration."""
        errors = []

        if self.provider not in PROVIDERS:
            errors.append(
                f"provider must be one of {', '.join(PROVIDERS)}, got {self.provider!r}"
            )
        if self.token_limit < 1:
            errors.append(f"token_limit must be >= 1, got {self.token_limit}")
        if self.response_tokens < 0:
            errors.append(f"response_tokens must be >= 0, got {self.response_tokens}")
        if not self.model:
            errors.append("model cannot be empty")
        if not (0.0 <= self.temperature <= 2.0):
            errors.append(f"temperature must be between 0 and 2, got {self.temperature}")
        if self.request_timeout <= 0:
            errors.append(f"request_timeout must be > 0, got {self.request_timeout}")
        if self.use_prompt_tags and not self.prompt_tags:
            errors.append("use_prompt_tags is set but prompt_tags is empty")
        if self.tokenizer_encoding not in tiktoken.list_encoding_names():
            errors.append(f"unknown tokenizer_encoding {self.tokenizer_encoding!r}")

        if errors:
            raise ValueError(f"Invalid AnalyzerConfig: {'; '.join(errors)}")

    @property
    def has_paperless(self) -> bool:
        return bool(self.paperless_api_url and self.paperless_api_token)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "AnalyzerConfig":
        """Build a config from environment variables.

        Args:
            environ: Mapping to read from. Defaults to ``os.environ``.

        Raises:
            ConfigError: If any value is malformed or fails validation.
        """
        env = os.environ if environ is None else environ
        errors: list[str] = []
        values: dict[str, object] = {}

        provider = env.get("AI_PROVIDER", "custom").strip().lower()
        values["provider"] = provider
        key_var, model_var = _PROVIDER_ENV.get(provider, _PROVIDER_ENV["custom"])
        if env.get(key_var):
            values["api_key"] = env[key_var]
        if env.get(model_var):
            values["model"] = env[model_var]
        elif provider == "anthropic":
            values["model"] = DEFAULT_ANTHROPIC_MODEL
        if env.get("CUSTOM_BASE_URL"):
            values["api_url"] = env["CUSTOM_BASE_URL"]

        for name, var in (("token_limit", "TOKEN_LIMIT"), ("response_tokens", "RESPONSE_TOKENS")):
            raw = env.get(var)
            if raw is None or not raw.strip():
                continue
            try:
                values[name] = int(raw)
            except ValueError:
                errors.append(f"{var} must be an integer, got {raw!r}")

        raw_timeout = env.get("REQUEST_TIMEOUT")
        if raw_timeout:
            try:
                values["request_timeout"] = float(raw_timeout)
            except ValueError:
                errors.append(f"REQUEST_TIMEOUT must be a number, got {raw_timeout!r}")

        values["use_existing_data"] = _is_yes(env.get("USE_EXISTING_DATA"))
        values["use_prompt_tags"] = _is_yes(env.get("USE_PROMPT_TAGS"))

        if env.get("SYSTEM_PROMPT"):
            # .env files often carry the prompt with literal "\n" sequences
            values["system_prompt"] = env["SYSTEM_PROMPT"].replace("\\n", "\n")
        if env.get("PROMPT_TAGS"):
            values["prompt_tags"] = _split_list(env["PROMPT_TAGS"])
        if env.get("TOKENIZER_ENCODING"):
            values["tokenizer_encoding"] = env["TOKENIZER_ENCODING"]
        if env.get("THUMBNAIL_DIR"):
            values["thumbnail_dir"] = Path(env["THUMBNAIL_DIR"])
        if env.get("PAPERLESS_API_URL"):
            values["paperless_api_url"] = env["PAPERLESS_API_URL"].rstrip("/")
        if env.get("PAPERLESS_API_TOKEN"):
            values["paperless_api_token"] = env["PAPERLESS_API_TOKEN"]

        if errors:
            raise ConfigError(f"Invalid environment: {'; '.join(errors)}", errors=errors)
        return _build(values)


def _is_yes(value: str | None) -> bool:
    return (value or "").strip().lower() in ("yes", "true", "1")


def _split_list(value: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


def _build(values: Mapping[str, object]) -> AnalyzerConfig:
    try:
        return AnalyzerConfig(**values)
    except ValueError as e:
        raise ConfigError(str(e), errors=[str(e)]) from e


def load_config(path: Path | str, base: AnalyzerConfig | None = None) -> AnalyzerConfig:
    """Load a config from a YAML file, layered over ``base``.

    The file is a mapping of AnalyzerConfig field names. Unknown keys and
    wrongly typed values are collected and reported together.

    Args:
        path: YAML file path.
        base: Config whose values apply where the file is silent.

    Raises:
        ConfigError: If the file is unreadable, not a mapping, or invalid.
    """
    config_path = Path(path)
    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Cannot read config file {config_path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(
            f"Config file {config_path} must contain a mapping, got {type(raw).__name__}"
        )

    known = {f.name: f for f in dataclasses.fields(AnalyzerConfig)}
    errors: list[str] = []
    values: dict[str, object] = {}
    for key, value in raw.items():
        if key not in known:
            errors.append(f"unknown key: {key}")
            continue
        if key in ("token_limit", "response_tokens"):
            if isinstance(value, bool) or not isinstance(value, int):
                errors.append(f"{key} must be an integer, got {value!r}")
                continue
        elif key in ("use_existing_data", "use_prompt_tags"):
            if not isinstance(value, bool):
                errors.append(f"{key} must be true or false, got {value!r}")
                continue
        elif key == "prompt_tags":
            if isinstance(value, str):
                value = _split_list(value)
            elif isinstance(value, list) and all(isinstance(t, str) for t in value):
                value = tuple(value)
            else:
                errors.append("prompt_tags must be a list of strings")
                continue
        elif key == "thumbnail_dir":
            value = Path(str(value))
        values[key] = value

    if errors:
        raise ConfigError(f"Invalid config file {config_path}", errors=errors)

    merged = dataclasses.asdict(base) if base is not None else {}
    merged.update(values)
    if "prompt_tags" in merged:
        merged["prompt_tags"] = tuple(merged["prompt_tags"])
    logger.debug("Loaded config from %s", config_path)
    return _build(merged)

# arch_provider/settings.py

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import commentjson
import yaml
from dotenv import load_dotenv

from arch_provider.model_props import is_openai_model, parse_model_name, resolve_model_name

load_dotenv()


class ConfigurationError(ValueError):
    pass


class MissingCredentialsError(ConfigurationError):
    pass


DEFAULT_MODEL = "GPT_4O_MINI"


@dataclass(frozen=True)
class ProviderSettings:
    """
    Everything the provider needs, resolved once and injected.
    Core modules never look at the process environment themselves.
    """

    model: str = DEFAULT_MODEL
    openai_api_key: Optional[str] = None
    openai_org_id: Optional[str] = None
    vertex_project: Optional[str] = None
    vertex_region: str = "us-central1"
    timeout: Optional[float] = 300.0
    retries: int = 3
    temperature: Optional[float] = None

    documentation_prompt: Optional[str] = "documentation_only_v1"
    code_prompt: Optional[str] = "code_only_v1"
    aggregation_prompt: Optional[str] = "aggregation_v1"
    strict_aggregation: bool = False
    prompt_families: Dict[str, Any] = field(default_factory=dict)

    noise_tokens: Tuple[str, ...] = ("Components", "Component")
    case_insensitive_dedup: bool = False

    levenshtein_min_length: int = 2
    levenshtein_max_distance: int = 1
    levenshtein_threshold: float = 0.5

    @property
    def model_name(self) -> str:
        return resolve_model_name(self.model)

    @property
    def provider(self) -> str:
        base = self.model_name.split("_")[0]
        return "openai" if is_openai_model(base) else "vertex"

    def validate(self) -> "ProviderSettings":
        if not self.model:
            raise ConfigurationError("No LLM model configured")
        try:
            provider = self.provider
            if provider == "openai":
                parse_model_name(self.model_name)
        except ValueError as e:
            raise ConfigurationError(f"Invalid model '{self.model}': {e}") from e
        if provider == "openai":
            if not self.openai_api_key:
                raise MissingCredentialsError(
                    f"OPENAI_API_KEY must be set to use model '{self.model_name}'"
                )
        elif not self.vertex_project:
            raise MissingCredentialsError(
                f"GOOGLE_CLOUD_PROJECT must be set to use model '{self.model_name}'"
            )
        if self.retries < 1:
            raise ConfigurationError(f"retries must be >= 1, got {self.retries}")
        if self.documentation_prompt is None and self.code_prompt is None:
            raise ConfigurationError("At least one of documentation_prompt / code_prompt must be configured")
        return self

    def bounded_by(self, overall_timeout: Optional[float]) -> "ProviderSettings":
        """
        Settings whose per-call transport timeout does not exceed the overall
        run timeout, so an abandoned worker does not outlive the run for long.
        """
        if overall_timeout is None:
            return self
        if self.timeout is not None and self.timeout <= overall_timeout:
            return self
        return replace(self, timeout=overall_timeout)


def _read_config_file(config_path: Path) -> Dict[str, Any]:
    """
    Load a provider config file. '.yaml'/'.yml' go through PyYAML, anything
    else is read as JSON with comments.
    """
    if not config_path.exists():
        raise ConfigurationError(f"Provider config file not found at '{config_path}'")

    with config_path.open("r", encoding="utf-8") as f:
        if config_path.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(f) or {}
        else:
            data = commentjson.load(f)

    if not isinstance(data, dict):
        raise ConfigurationError(f"Provider config '{config_path}' must hold a mapping at top level")
    return data


def _env_float(name: str) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got '{raw}'") from e


def _settings_from_env() -> Dict[str, Any]:
    values: Dict[str, Any] = {
        "model": os.getenv("ARCH_LLM_MODEL"),
        "openai_api_key": os.getenv("OPENAI_API_KEY"),
        "openai_org_id": os.getenv("OPENAI_ORG_ID"),
        "vertex_project": os.getenv("GOOGLE_CLOUD_PROJECT"),
        "vertex_region": os.getenv("GOOGLE_CLOUD_REGION"),
        "timeout": _env_float("ARCH_LLM_TIMEOUT"),
        "temperature": _env_float("ARCH_LLM_TEMPERATURE"),
    }
    retries = _env_float("ARCH_LLM_RETRIES")
    if retries is not None:
        values["retries"] = int(retries)
    return {k: v for k, v in values.items() if v is not None}


def load_provider_settings(config_path: Optional[str] = None, **overrides) -> ProviderSettings:
    """
    Build validated settings.

    Precedence: explicit keyword overrides > config file > environment > defaults.
    The config file path is taken from `config_path` or ARCH_PROVIDER_CONFIG.
    """
    values: Dict[str, Any] = _settings_from_env()

    path = config_path or os.getenv("ARCH_PROVIDER_CONFIG")
    if path:
        file_values = _read_config_file(Path(path))
        levenshtein = file_values.pop("levenshtein", None) or {}
        for key in ("min_length", "max_distance", "threshold"):
            if key in levenshtein:
                file_values[f"levenshtein_{key}"] = levenshtein[key]
        values.update(file_values)

    values.update(overrides)

    known = set(ProviderSettings.__dataclass_fields__)
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigurationError(f"Unknown provider setting(s): {unknown}")

    if "noise_tokens" in values and values["noise_tokens"] is not None:
        values["noise_tokens"] = tuple(values["noise_tokens"])

    return ProviderSettings(**values).validate()

"""
Configuration for the refresh pipeline.

Values come from, in increasing priority: dataclass defaults, an optional YAML
file, environment variables, and explicit overrides (CLI flags).
"""
from __future__ import annotations
from dataclasses import dataclass, field, fields, asdict, replace
from typing import Any, Dict, List, Optional
import os

import httpx
import yaml

from article_refresher.errors import ConfigError
from article_refresher.llm.client import DEFAULT_API_URL, LLMConfig
from article_refresher.validator import REQUIRED_FIELDS, ValidatorConfig


@dataclass
class RefreshConfig:
    # Rewrite service
    api_url: str = DEFAULT_API_URL
    model: str = "gpt-oss"
    temperature: float = 0.7
    max_tokens: int = 1000
    max_retries: int = 3
    request_timeout: float = 60.0

    # Rate limiting (seconds)
    call_delay: float = 2.0        # between rewrite calls within a document
    document_delay: float = 3.0    # between documents

    # Output
    report_path: str = "processing-report.json"

    # Validation
    required_fields: List[str] = field(default_factory=lambda: list(REQUIRED_FIELDS))

    def llm_config(self, api_key: str) -> LLMConfig:
        return LLMConfig(
            api_key=api_key,
            api_url=self.api_url,
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            max_retries=self.max_retries,
            timeout=self.request_timeout,
        )

    def validator_config(self) -> ValidatorConfig:
        return ValidatorConfig(required_fields=list(self.required_fields))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def validate(self) -> List[str]:
        """Return a list of configuration problems (empty when usable)."""
        issues = []
        if not isinstance(self.api_url, str) or not self.api_url:
            issues.append("api_url must be a non-empty string")
        else:
            try:
                url = httpx.URL(self.api_url)
            except httpx.InvalidURL as e:
                issues.append(f"api_url is not a valid URL: {e}")
            else:
                if url.scheme not in ("http", "https") or not url.host:
                    issues.append("api_url must be an absolute http(s) URL")
        if not self.model:
            issues.append("model must be a non-empty string")
        if not isinstance(self.max_retries, int) or self.max_retries < 1:
            issues.append("max_retries must be a positive integer")
        if not isinstance(self.max_tokens, int) or self.max_tokens <= 0:
            issues.append("max_tokens must be a positive integer")
        if self.call_delay < 0 or self.document_delay < 0:
            issues.append("delays must not be negative")
        if self.request_timeout <= 0:
            issues.append("request_timeout must be positive")
        return issues


_ENV_KEYS = {
    "LLM_API_URL": ("api_url", str),
    "LLM_MODEL": ("model", str),
    "LLM_MAX_RETRIES": ("max_retries", int),
    "REFRESH_CALL_DELAY": ("call_delay", float),
    "REFRESH_DOCUMENT_DELAY": ("document_delay", float),
    "REFRESH_REPORT_PATH": ("report_path", str),
}


def load_config_file(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    known = {f.name for f in fields(RefreshConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown config keys in {path}: {', '.join(unknown)}")
    return data


def _env_overrides(environ) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for key, (name, cast) in _ENV_KEYS.items():
        raw = environ.get(key)
        if raw is None or raw == "":
            continue
        try:
            overrides[name] = cast(raw)
        except ValueError:
            raise ConfigError(f"Invalid value for {key}: {raw!r}")
    return overrides


def load_config(
    path: Optional[str] = None,
    environ: Optional[Dict[str, str]] = None,
    **overrides: Any,
) -> RefreshConfig:
    config = RefreshConfig()
    if path:
        config = replace(config, **load_config_file(path))
    config = replace(config, **_env_overrides(os.environ if environ is None else environ))
    config = replace(config, **{k: v for k, v in overrides.items() if v is not None})

    issues = config.validate()
    if issues:
        raise ConfigError("; ".join(issues))
    return config

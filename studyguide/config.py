from __future__ import annotations
"""
Configuration management for the study guide synthesizer.

Supports loading from YAML files, environment variables, and programmatic overrides.
Uses Pydantic for validation and type safety.
"""

import logging
import os
from pathlib import Path
from typing import Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load environment variables
load_dotenv()


class OllamaConfig(BaseModel):
    """Local inference service configuration."""
    host: str = Field(default="http://localhost:11434")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    top_p: float = Field(default=0.9, ge=0.0, le=1.0)
    stop: list[str] = Field(default=["\n\n", "---", "##", "###"])
    preferred_models: list[str] = Field(
        default=["phi3:mini", "gemma2:2b", "phi3:latest", "llama2:latest"]
    )
    probe_timeout_seconds: float = Field(default=5.0, gt=0)
    list_timeout_seconds: float = Field(default=10.0, gt=0)
    generate_timeout_seconds: float = Field(default=30.0, gt=0)
    connect_attempts: int = Field(default=3, ge=1)
    connect_retry_delay_seconds: float = Field(default=2.0, ge=0.0)
    generation_retries: int = Field(default=0, ge=0)


class CacheConfig(BaseModel):
    """Gateway response cache configuration."""
    ttl_seconds: float = Field(default=300.0, gt=0)
    max_entries: int = Field(default=256, ge=1)
    key_prefix_chars: int = Field(default=100, ge=1)


class CategoryTokens(BaseModel):
    """Generation budget per content category."""
    questions: int = Field(default=500, gt=0)
    notes: int = Field(default=500, gt=0)
    summary: int = Field(default=600, gt=0)
    annotations: int = Field(default=500, gt=0)
    examples: int = Field(default=500, gt=0)


class OverviewLimits(BaseModel):
    """Item limits for the synthesized overview section."""
    keywords: int = Field(default=20, ge=0)
    examples: int = Field(default=10, ge=0)
    questions: int = Field(default=8, ge=0)
    annotations: int = Field(default=8, ge=0)
    summaries: int = Field(default=8, ge=0)
    notes: int = Field(default=8, ge=0)


class SynthesisConfig(BaseModel):
    """Synthesis orchestration configuration."""
    fanout_policy: Literal["all_or_nothing", "per_category"] = Field(default="all_or_nothing")
    use_streaming: bool = Field(default=True)
    max_lines_per_category: int = Field(default=10, ge=1)
    lines_per_document: int = Field(default=2, ge=1)
    max_document_examples: int = Field(default=8, ge=1)
    prompt_char_limit: int = Field(default=2500, gt=0)
    summary_char_limit: int = Field(default=3000, gt=0)
    document_char_limit: int = Field(default=1500, gt=0)
    section_preview_chars: int = Field(default=800, gt=0)
    result_cache_size: int = Field(default=32, ge=1)
    tokens: CategoryTokens = Field(default_factory=CategoryTokens)
    overview: OverviewLimits = Field(default_factory=OverviewLimits)


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = Field(default="INFO")
    format: str = Field(default="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    file: str | None = Field(default=None)


class Config(BaseModel):
    """Main configuration class for the study guide synthesizer."""
    ollama: OllamaConfig = Field(default_factory=OllamaConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    synthesis: SynthesisConfig = Field(default_factory=SynthesisConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def setup_logging(self) -> None:
        """Configure the root logger from the logging section."""
        handlers: list[logging.Handler] = [logging.StreamHandler()]
        if self.logging.file:
            log_path = Path(self.logging.file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_path))

        logging.basicConfig(
            level=getattr(logging, self.logging.level.upper(), logging.INFO),
            format=self.logging.format,
            handlers=handlers,
            force=True,
        )

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Config":
        """Load configuration from YAML file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        # Expand environment variables
        data = cls._expand_env_vars(data)

        return cls(**data)

    @classmethod
    def _expand_env_vars(cls, data):
        """Recursively expand environment variables in config values."""
        if isinstance(data, dict):
            return {k: cls._expand_env_vars(v) for k, v in data.items()}
        elif isinstance(data, list):
            return [cls._expand_env_vars(item) for item in data]
        elif isinstance(data, str) and data.startswith("${") and "}" in data:
            # Parse ${VAR:default} format
            var_part = data[2:data.index("}")]
            if ":" in var_part:
                var_name, default = var_part.split(":", 1)
            else:
                var_name, default = var_part, ""
            return os.environ.get(var_name, default)
        return data


# Global config instance
_config: Config | None = None


def get_config(config_path: str | Path | None = None) -> Config:
    """Get or create global configuration instance."""
    global _config

    if _config is None:
        if config_path is None:
            # Default config path
            config_path = Path(__file__).parent.parent / "configs" / "default.yaml"

        if Path(config_path).exists():
            _config = Config.from_yaml(config_path)
        else:
            _config = Config()

    return _config


def reset_config() -> None:
    """Reset global configuration (useful for testing)."""
    global _config
    _config = None

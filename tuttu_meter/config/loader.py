"""
Configuration management and loading.

Handles price display settings and the model-to-provider map.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

import yaml

from tuttu_meter.core.pricing import USD_PER_MILLION_TUTTU_TOKENS
from tuttu_meter.core.providers import Provider

logger = logging.getLogger(__name__)

# Built-in model map; keys ending in "*" match by prefix.
DEFAULT_MODEL_PROVIDERS: Dict[str, Provider] = {
    "claude-*": Provider.ANTHROPIC,
    "anthropic.claude-*": Provider.BEDROCK,
    "us.anthropic.claude-*": Provider.BEDROCK,
    "gpt-*": Provider.OPENAI,
    "o3*": Provider.OPENAI,
    "o4-*": Provider.OPENAI,
    "grok-*": Provider.XAI,
    "gemini-*": Provider.GOOGLE,
}


@dataclass(frozen=True)
class DisplayConfig:
    """Settings for rendering prices."""
    usd_per_million_tuttu_tokens: float = USD_PER_MILLION_TUTTU_TOKENS

    def __post_init__(self):
        """Validate the price rate is positive."""
        if self.usd_per_million_tuttu_tokens <= 0:
            raise ValueError("usd_per_million_tuttu_tokens must be > 0")


@dataclass(frozen=True)
class MeterConfig:
    """Complete metering configuration."""
    display: DisplayConfig = field(default_factory=DisplayConfig)
    models: Dict[str, Provider] = field(default_factory=lambda: dict(DEFAULT_MODEL_PROVIDERS))

    def provider_for_model(self, model_id: Optional[str]) -> Provider:
        """Resolve the provider serving a model.

        Exact keys win over prefix patterns, and longer prefixes win over
        shorter ones. Unmapped models resolve to UNKNOWN.
        """
        if not model_id:
            return Provider.UNKNOWN
        if model_id in self.models:
            return self.models[model_id]
        best_prefix = None
        for pattern in self.models:
            if not pattern.endswith("*"):
                continue
            prefix = pattern[:-1]
            if model_id.startswith(prefix) and (best_prefix is None or len(prefix) > len(best_prefix)):
                best_prefix = prefix
        if best_prefix is None:
            logger.debug("No provider mapped for model %s", model_id)
            return Provider.UNKNOWN
        return self.models[best_prefix + "*"]


def default_meter_config() -> MeterConfig:
    """Configuration used when no config file is given."""
    return MeterConfig()


def load_meter_config(path: str) -> MeterConfig:
    """Load and validate metering configuration from a YAML file.

    Strict validation ensures a typo never silently falls back to defaults
    and misprices or misattributes usage.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated MeterConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Meter config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a dictionary")

    allowed_top_keys = {'display', 'models'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    display = _parse_display_config(raw_config.get('display', {}))

    models_data = raw_config.get('models')
    if models_data is None:
        models = dict(DEFAULT_MODEL_PROVIDERS)
    else:
        models = _parse_models(models_data)

    logger.debug("Loaded meter config from %s with %d model mappings", path, len(models))
    return MeterConfig(display=display, models=models)


def _parse_display_config(data: Dict) -> DisplayConfig:
    """Parse and validate the display section.

    Raises:
        ValueError: If the section is invalid
    """
    if data is None:
        return DisplayConfig()
    if not isinstance(data, dict):
        raise ValueError("'display' must be a dictionary")

    allowed_keys = {'usd_per_million_tuttu_tokens'}
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown display keys: {unknown_keys}")

    if 'usd_per_million_tuttu_tokens' not in data:
        return DisplayConfig()

    rate = data['usd_per_million_tuttu_tokens']
    if isinstance(rate, bool) or not isinstance(rate, (int, float)) or rate <= 0:
        raise ValueError("'usd_per_million_tuttu_tokens' must be a number > 0")

    return DisplayConfig(usd_per_million_tuttu_tokens=float(rate))


def _parse_models(data: Dict) -> Dict[str, Provider]:
    """Parse and validate the model-to-provider map.

    Raises:
        ValueError: If a model maps to anything but a priced provider
    """
    if not isinstance(data, dict):
        raise ValueError("'models' must be a dictionary")

    models = {}
    for model_id, provider_name in data.items():
        if not isinstance(provider_name, str):
            raise ValueError(f"Provider for model '{model_id}' must be a string")
        provider = Provider.from_name(provider_name)
        if provider is Provider.UNKNOWN:
            valid = [p.value for p in Provider if p is not Provider.UNKNOWN]
            raise ValueError(f"Provider for model '{model_id}' must be one of: {valid}")
        models[str(model_id)] = provider
    return models

"""
Call log reading.

Reads exported LLM call logs (JSON array or JSON Lines) into call records.
"""

import json
import logging
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional

from tuttu_meter.config.loader import MeterConfig, default_meter_config
from tuttu_meter.core.pricing import calculate_tuttu_tokens
from tuttu_meter.core.providers import Provider
from tuttu_meter.core.usage import normalize_usage

from .models import LlmCallRecord, as_messages

logger = logging.getLogger(__name__)


class CallLogError(ValueError):
    """Raised when a call log cannot be read into call records."""


def _get(item: Mapping[str, Any], snake: str, camel: str) -> Any:
    if snake in item:
        return item[snake]
    return item.get(camel)


def parse_call_record(item: Any, config: MeterConfig, index: int = 0) -> LlmCallRecord:
    """Build a call record from one exported call object.

    Args:
        item: Exported call as a dictionary
        config: Configuration used to resolve providers from model ids
        index: Position in the log, for error messages

    Returns:
        LlmCallRecord for the call

    Raises:
        CallLogError: If the call object is malformed
    """
    if not isinstance(item, dict):
        raise CallLogError(f"Call at index {index} must be an object")

    finish_reason = _get(item, "finish_reason", "finishReason")
    if not isinstance(finish_reason, str) or not finish_reason:
        raise CallLogError(f"Call at index {index} missing finishReason")

    for key in ("prompt", "completion"):
        messages = item.get(key)
        if messages is None:
            continue
        if not isinstance(messages, list) or not all(isinstance(m, dict) for m in messages):
            raise CallLogError(f"'{key}' of call at index {index} must be a list of messages")

    raw_usage = item.get("usage")
    if raw_usage is not None and not isinstance(raw_usage, dict):
        raise CallLogError(f"'usage' of call at index {index} must be an object")

    model_id = _get(item, "model_id", "modelId")
    provider_name = item.get("provider")
    if provider_name:
        provider = Provider.from_name(provider_name)
    else:
        provider = config.provider_for_model(model_id)

    usage = normalize_usage(raw_usage, _get(item, "provider_metadata", "providerMetadata"))

    tuttu_tokens = _get(item, "tuttu_tokens", "tuttuTokens")
    if tuttu_tokens is None:
        tuttu_tokens = calculate_tuttu_tokens(usage, provider).tuttu_tokens

    return LlmCallRecord(
        prompt=as_messages(item.get("prompt")),
        completion=as_messages(item.get("completion")),
        usage=usage,
        finish_reason=finish_reason,
        model_id=model_id,
        provider=provider,
        tuttu_tokens=tuttu_tokens,
    )


def parse_call_records(items: Iterable[Any], config: Optional[MeterConfig] = None) -> List[LlmCallRecord]:
    """Build call records from exported call objects, keeping their order."""
    config = config or default_meter_config()
    return [parse_call_record(item, config, index) for index, item in enumerate(items)]


def load_call_log(path: str, config: Optional[MeterConfig] = None) -> List[LlmCallRecord]:
    """Load a call log file.

    Accepts a JSON array of calls or JSON Lines with one call per line.

    Args:
        path: Path to the call log
        config: Optional configuration; defaults to the built-in model map

    Returns:
        Call records in file order

    Raises:
        FileNotFoundError: If the file doesn't exist
        CallLogError: If the file is not a valid call log
    """
    log_path = Path(path)
    if not log_path.exists():
        raise FileNotFoundError(f"Call log not found: {path}")

    text = log_path.read_text(encoding='utf-8')
    if not text.strip():
        return []

    if text.lstrip().startswith("["):
        try:
            items = json.loads(text)
        except json.JSONDecodeError as e:
            raise CallLogError(f"Invalid JSON in call log {path}: {e}")
    else:
        items = []
        for line_number, line in enumerate(text.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                items.append(json.loads(line))
            except json.JSONDecodeError as e:
                raise CallLogError(f"Invalid JSON on line {line_number} of {path}: {e}")

    records = parse_call_records(items, config)
    logger.debug("Loaded %d calls from %s", len(records), path)
    return records

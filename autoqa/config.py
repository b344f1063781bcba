"""
Configuration for AutoQA: credential and model endpoint settings.

Values resolve in layers: built-in defaults, then the persisted settings
store, then per-request overrides carried by a ProviderSelection. The
credential falls back to GEMINI_API_KEY / API_KEY (a local .env is loaded).
"""

from __future__ import annotations
import json
import logging
import os
from pathlib import Path
from typing import Dict, Optional, Protocol, Tuple

from dotenv import load_dotenv

from .exceptions import ConfigurationError
from .models import ProviderSelection

logger = logging.getLogger(__name__)

# Pick up GEMINI_API_KEY / API_KEY from a local .env during development
load_dotenv()

USER_CFG = Path.home() / ".config" / "autoqa" / "settings.json"

CREDENTIAL = "credential"
LOCAL_MODEL_URL = "local_model_url"
LOCAL_MODEL_NAME = "local_model_name"
HOSTED_MODEL_NAME = "hosted_model_name"
ON_DEVICE_MODEL = "on_device_model"

DEFAULT_LOCAL_URL = "http://localhost:11434/v1/chat/completions"
DEFAULT_LOCAL_MODEL = "deepseek-r1"
DEFAULT_HOSTED_MODEL = "gemini-3-flash-preview"
DEFAULT_ON_DEVICE_MODEL = "mlx-community/Qwen2.5-7B-Instruct-4bit"

DEFAULTS: Dict[str, str] = {
    LOCAL_MODEL_URL: DEFAULT_LOCAL_URL,
    LOCAL_MODEL_NAME: DEFAULT_LOCAL_MODEL,
    HOSTED_MODEL_NAME: DEFAULT_HOSTED_MODEL,
    ON_DEVICE_MODEL: DEFAULT_ON_DEVICE_MODEL,
}

# Checked in order when no credential is stored
CREDENTIAL_ENV_VARS = ("GEMINI_API_KEY", "API_KEY")


class SettingsStore(Protocol):
    """Key-value settings backing the credential and endpoint configuration."""

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class InMemorySettingsStore:
    """Non-persistent store, used by tests and as a session-only fallback."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._values.get(key, default)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def delete(self, key: str) -> None:
        self._values.pop(key, None)

    def as_dict(self) -> Dict[str, str]:
        return dict(self._values)


class JsonFileSettingsStore:
    """
    Settings persisted as a flat JSON object on disk.

    The file is re-read on every ``get`` so changes made from the settings
    panel are picked up by the next request without restarting.
    """

    def __init__(self, path: Optional[Path] = None):
        env_path = os.getenv("AUTOQA_SETTINGS_FILE")
        self.path = Path(path or env_path or USER_CFG)

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"无法读取设置文件 {self.path}: {e}")
        if not isinstance(data, dict):
            raise ConfigurationError(f"设置文件格式错误: {self.path}")
        return data

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._read().get(key, default)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)
        logger.debug(f"Saved setting '{key}' to {self.path}")

    def delete(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def get_setting(store: SettingsStore, key: str) -> Optional[str]:
    """Stored value, else the documented default. Blank values count as unset."""
    return _clean(store.get(key)) or DEFAULTS.get(key)


def save_setting(store: SettingsStore, key: str, value: Optional[str]) -> None:
    """Store a trimmed value, or remove the key when the value is blank."""
    cleaned = _clean(value)
    if cleaned is None:
        store.delete(key)
    else:
        store.set(key, cleaned)


def resolve_credential(store: SettingsStore) -> Optional[str]:
    """Explicit user setting first, then the environment default."""
    stored = _clean(store.get(CREDENTIAL))
    if stored:
        return stored
    for var in CREDENTIAL_ENV_VARS:
        env_value = _clean(os.getenv(var))
        if env_value:
            return env_value
    return None


def resolve_local_endpoint(
    store: SettingsStore,
    selection: Optional[ProviderSelection] = None
) -> Tuple[str, str]:
    """
    Resolve the local OpenAI-compatible endpoint URL and model name.

    Merge order: defaults -> stored settings -> per-request override.
    """
    url = get_setting(store, LOCAL_MODEL_URL)
    model = get_setting(store, LOCAL_MODEL_NAME)
    if selection is not None:
        url = _clean(selection.endpoint_url) or url
        model = _clean(selection.model) or model
    return url, model


def resolve_hosted_model(store: SettingsStore, selection: Optional[ProviderSelection] = None) -> str:
    model = get_setting(store, HOSTED_MODEL_NAME)
    if selection is not None:
        model = _clean(selection.model) or model
    return model


def resolve_on_device_model(store: SettingsStore, selection: Optional[ProviderSelection] = None) -> str:
    model = get_setting(store, ON_DEVICE_MODEL)
    if selection is not None:
        model = _clean(selection.model) or model
    return model

import os
import copy
import json
import logging
from typing import Any, Dict, Optional

from config import DEFAULT_HISTORY_TURNS, DEFAULT_MAX_RETRIES, PROVIDERS, SETTINGS_FILE, env_api_key
from errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULTS: Dict[str, Any] = {
    "provider": "anthropic",
    "model": PROVIDERS["anthropic"]["default_model"],
    "max_retries": DEFAULT_MAX_RETRIES,
    "history_turns": DEFAULT_HISTORY_TURNS,
    "include_comp_context": True,
    "api_keys": {"anthropic": "", "openai": "", "google": ""},
}


class SettingsStore:
    """User preferences persisted as JSON, merged over DEFAULTS and cached after the first load."""

    def __init__(self, path: str = SETTINGS_FILE):
        self.path = path
        self._cache: Optional[Dict[str, Any]] = None

    def load(self) -> Dict[str, Any]:
        if self._cache is not None:
            return self._cache

        settings = copy.deepcopy(DEFAULTS)
        if os.path.exists(self.path):
            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                for key, value in data.items():
                    if key == "api_keys" and isinstance(value, dict):
                        settings["api_keys"].update(value)
                    else:
                        settings[key] = value
            except (OSError, ValueError, AttributeError) as e:
                logger.warning("Failed to load settings from %s: %s", self.path, e)

        self._cache = settings
        return settings

    def save(self, settings: Dict[str, Any]) -> None:
        self._cache = settings
        try:
            os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(settings, f, indent=2)
        except OSError as e:
            logger.error("Failed to save settings to %s: %s", self.path, e)

    def get(self, key: str, default: Any = None) -> Any:
        return self.load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        settings = self.load()
        settings[key] = value
        self.save(settings)

    def get_api_key(self, provider: Optional[str] = None) -> str:
        settings = self.load()
        provider = provider or settings["provider"]
        return settings.get("api_keys", {}).get(provider) or env_api_key(provider)

    def set_api_key(self, provider: str, key: str) -> None:
        settings = self.load()
        settings.setdefault("api_keys", {})[provider] = key
        self.save(settings)

    def has_api_key(self, provider: Optional[str] = None) -> bool:
        return len(self.get_api_key(provider)) > 0

    def get_model_selection(self) -> Dict[str, str]:
        settings = self.load()
        return {"provider": settings["provider"], "model": settings["model"]}

    def set_model_selection(self, provider: str, model: Optional[str] = None) -> None:
        if provider not in PROVIDERS:
            raise ConfigError(f"Unknown provider: {provider!r}")
        settings = self.load()
        settings["provider"] = provider
        settings["model"] = model or PROVIDERS[provider]["default_model"]
        self.save(settings)

    def reset(self) -> None:
        self._cache = None
        self.save(copy.deepcopy(DEFAULTS))

import os
import logging
from typing import Optional

from dotenv import load_dotenv

# ==========================================
# Configuration & Setup
# ==========================================
# Values can be supplied through the environment or a local .env file.
# Per-user choices (provider, model, keys) persist through settings.SettingsStore.

load_dotenv()

CONJURE_HOME = os.path.expanduser(os.getenv("CONJURE_HOME", os.path.join("~", "ae-conjure")))
SETTINGS_FILE = os.path.join(CONJURE_HOME, "settings.json")
LIBRARY_FILE = os.path.join(CONJURE_HOME, "library.json")
KNOWLEDGE_FILE = os.path.join(CONJURE_HOME, "knowledge.json")

CORPUS_URL = os.getenv(
    "CONJURE_CORPUS_URL",
    "https://raw.githubusercontent.com/2b3pro/ae-conjure/main/data/knowledge.json",
)

# Command that runs a script file inside the host, e.g. "afterfx -r".
# The script path is appended as the last argument.
HOST_COMMAND = os.getenv("CONJURE_HOST_COMMAND", "")
HOST_TIMEOUT = int(os.getenv("CONJURE_HOST_TIMEOUT", "60"))

MAX_TOKENS = int(os.getenv("CONJURE_MAX_TOKENS", "4096"))
REQUEST_TIMEOUT = float(os.getenv("CONJURE_REQUEST_TIMEOUT", "120"))
LOG_LEVEL = os.getenv("CONJURE_LOG_LEVEL", "INFO")

DEFAULT_MAX_RETRIES = 3
DEFAULT_HISTORY_TURNS = 6

API_KEY_ENV_VARS = {
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
    "google": "GOOGLE_API_KEY",
}

# ==========================================
# Provider Catalogue
# ==========================================

PROVIDERS = {
    "anthropic": {
        "name": "Anthropic",
        "models": [
            ("claude-sonnet-4-5-20250929", "Claude Sonnet 4.5"),
            ("claude-opus-4-1-20250805", "Claude Opus 4.1"),
            ("claude-haiku-4-5-20251001", "Claude Haiku 4.5"),
        ],
        "default_model": "claude-sonnet-4-5-20250929",
    },
    "openai": {
        "name": "OpenAI",
        "models": [
            ("gpt-4.1", "GPT-4.1"),
            ("gpt-4.1-mini", "GPT-4.1 mini"),
            ("gpt-4o", "GPT-4o"),
        ],
        "default_model": "gpt-4.1",
    },
    "google": {
        "name": "Google",
        "models": [
            ("gemini-2.5-flash", "Gemini 2.5 Flash"),
            ("gemini-2.5-pro", "Gemini 2.5 Pro"),
        ],
        "default_model": "gemini-2.5-flash",
    },
}


def env_api_key(provider: str) -> str:
    """Returns the API key exported for a provider, or an empty string."""
    var = API_KEY_ENV_VARS.get(provider)
    return os.getenv(var, "") if var else ""


def setup_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=(level or LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

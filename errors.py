class ConjureError(Exception):
    """Base class for copilot errors."""


class ConfigError(ConjureError):
    """Unknown provider/model selection or unusable settings. Never retried."""


class GenerationError(ConjureError):
    """Transport failure or malformed envelope from a provider backend."""

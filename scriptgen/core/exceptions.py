class ScriptGenError(RuntimeError):
    """Base class for script generation failures."""


class ConfigurationError(ScriptGenError):
    """Raised when settings or credentials make generation impossible."""


class ProviderError(ScriptGenError):
    """Raised when a text-generation provider is unreachable or answers badly."""


class GenerationCancelled(ScriptGenError):
    """Raised when the caller cancels an in-flight generation."""


class DomQueryError(ScriptGenError):
    """Raised when the browser host cannot execute a locator query."""

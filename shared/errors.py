"""Error types shared across webchat components."""


class WebchatError(Exception):
    """Base class for webchat errors."""
    pass


class ConfigurationError(WebchatError):
    """Raised when a required setting or credential is missing."""
    pass


class StoreError(WebchatError):
    """Raised when the conversation store cannot complete an operation."""
    pass


class CompletionError(WebchatError):
    """Raised when the language-model completion call fails."""
    pass

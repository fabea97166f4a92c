"""
Shared infrastructure used by every webchat component.

Logging, configuration loading, error types and the retry policy.
"""

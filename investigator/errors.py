# investigator/errors.py
"""
Error taxonomy for retention investigations.

Only InputError is fatal. Adapter failures are contained per backend and
surface as Error findings; timestamp parse failures suppress only the
timeline. "Not found" is an expected answer and is never raised.
"""


class InvestigatorError(Exception):
    """Base class for investigator errors."""

    pass


class InputError(InvestigatorError):
    """Raised when the alias is empty or whitespace."""

    pass


class AdapterError(InvestigatorError):
    """Raised when a backend call fails (transport, HTTP status, bad payload)."""

    def __init__(self, backend: str, message: str):
        self.backend = backend
        self.message = message
        super().__init__(f"{backend}: {message}")


class AdapterTimeoutError(AdapterError):
    """Raised when a backend call exceeds the per-call timeout."""

    pass


class BackendThrottledError(AdapterError):
    """Raised when a backend answers 429 or 503. Retried inside the adapter."""

    pass


class TimestampParseError(InvestigatorError):
    """Raised when a deletion timestamp cannot be parsed."""

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Unparseable timestamp: {value!r}")

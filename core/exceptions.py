"""
Exception hierarchy for violation lookups.

Browser-level errors are raised inside a lookup and converted to data at the
searcher boundary; only SessionInitError and InvalidTargetError reach callers.
"""


class ViolationLookupError(Exception):
    """Base exception for violation lookup errors."""

    pass


class InvalidTargetError(ViolationLookupError, ValueError):
    """Raised when a plate number or vehicle class fails validation."""

    pass


class SessionInitError(ViolationLookupError):
    """Raised when the browser process or its context cannot be launched."""

    pass


class LookupTimeoutError(ViolationLookupError):
    """Base class for timeouts while driving the search form."""

    pass


class NavigationTimeoutError(LookupTimeoutError):
    """Raised when the search page does not finish loading in time."""

    pass


class FormTimeoutError(LookupTimeoutError):
    """Raised when the search form never appears."""

    pass


class SubmitTimeoutError(LookupTimeoutError):
    """Raised when the result page does not settle after submitting."""

    pass


class ExtractionError(ViolationLookupError):
    """Raised when a single result card cannot be parsed."""

    pass

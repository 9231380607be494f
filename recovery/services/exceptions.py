"""
Service-level exceptions.

This module contains exceptions that can be raised by various services
in the application. The rule engine and aggregator never raise them to
callers; they degrade to empty recommendations instead.
"""

class AdaptationError(Exception):
    """Base exception for adaptation errors."""
    pass

class FeedbackStoreError(AdaptationError):
    """Raised when a record cannot be appended to the feedback store."""
    pass

class InvalidDecisionError(AdaptationError):
    """Raised when a decision payload from the presentation layer is malformed."""
    pass

"""
Domain exceptions - Programming and configuration errors only.

Expected business outcomes (duplicate email, wrong password, private
profile...) are returned as ``Err`` values, see ``result.py``. The
exceptions here signal misuse of the domain API or broken configuration.
"""


class TrustgraphError(Exception):
    """Base class for trustgraph errors."""

    pass


class UnwrapError(TrustgraphError):
    """``unwrap()`` was called on an ``Err`` result."""

    def __init__(self, failure: object) -> None:
        super().__init__(f"Called unwrap() on an Err result: {failure}")
        self.failure = failure


class ConfigurationError(TrustgraphError):
    """Settings are missing or inconsistent (e.g. no signing key)."""

    pass

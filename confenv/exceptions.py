# confenv/exceptions.py
"""
confenv.exceptions
------------------

Custom exceptions for confenv.
"""


class ConfenvError(Exception):
    """
    Base class for errors raised by confenv.
    """


class InvalidDomain(ConfenvError, ValueError):
    """
    Raised when a Registry is constructed without a usable domain prefix.
    """

    def __init__(self, domain):
        super().__init__(f"A non-empty domain is required, got {domain!r}")
        self.domain = domain

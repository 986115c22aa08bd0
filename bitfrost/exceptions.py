"""
Bitfrost Exceptions

Custom exception classes for the Bitfrost client.
"""


class BitfrostException(Exception):
    """Base exception for Bitfrost."""
    pass


class NetworkError(BitfrostException):
    """Network communication error."""
    pass


class ConfigurationError(BitfrostException):
    """Configuration error."""
    pass

# arbwatch/exceptions.py
"""
Error types raised at startup and when persisting opportunities
"""


class ArbwatchError(Exception):
    """Base class for all arbwatch errors"""


class ConfigError(ArbwatchError):
    """Raised when configuration is missing or malformed"""


class AbiError(ArbwatchError):
    """Raised when the router ABI file is missing or unusable"""


class StoreError(ArbwatchError):
    """Raised when the opportunity database cannot be opened or written"""

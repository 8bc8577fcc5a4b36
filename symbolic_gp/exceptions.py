"""
symbolic_gp/exceptions.py - Error types raised at the engine boundary
"""


class GPError(Exception):
    """Base class for symbolic_gp errors"""


class ConfigurationError(GPError, ValueError):
    """Raised when an engine configuration is rejected"""


class NotInitializedError(GPError, RuntimeError):
    """Raised when evolving a population that was never initialized"""

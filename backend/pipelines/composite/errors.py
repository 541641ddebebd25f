"""
Composite Engine Errors
Exceptions raised synchronously by the composite projection engine
"""


class ConfigurationError(Exception):
    """Raised when an edit would break a composite configuration invariant"""
    pass


class ProjectionError(Exception):
    """Raised when a projection cannot be instantiated or parameterised"""
    pass

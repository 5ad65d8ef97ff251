"""
Exception types for the measurement library.

These exceptions describe failures at the plugin boundary. They are raised
internally and converted to logged diagnostics by the factory, so the host
page never sees them as uncaught errors.
"""

from typing import Any, Dict, Optional


class MeasurementError(Exception):
    """Base class for all measurement library errors."""
    pass


class ResolutionError(MeasurementError):
    """
    Raised when a named processor or storage has no registry entry.

    Attributes:
        kind (str): Registry section that was searched ('processor' or 'storage')
        name (str): The name that could not be resolved
    """

    def __init__(self, kind: str, name: str):
        self.kind = kind
        self.name = name
        super().__init__(f"No {kind} with name {name!r} found.")


class ConstructionError(MeasurementError):
    """
    Raised when a processor or storage instance could not be built.

    Covers constructors that raise, references that are not callable, and
    instances that lack a required capability.

    Attributes:
        constructor: The constructor reference that was used (may be None)
        params (Dict[str, Any]): Parameters passed to the constructor
        cause (Exception, optional): The underlying exception, if any
    """

    def __init__(
        self,
        constructor: Any,
        params: Dict[str, Any],
        cause: Optional[BaseException] = None
    ):
        self.constructor = constructor
        self.params = params
        self.cause = cause
        message = (
            f"Could not construct a new instance of {constructor!r} "
            f"with parameters {params!r}"
        )
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)

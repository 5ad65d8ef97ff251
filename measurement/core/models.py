"""
Record models with validation.

This module defines the data records passed around by the built-in plugins:
- StoredValue: A value held by a storage together with its expiry
- PreparedEvent: An event split into top-level and event parameters
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, model_validator


class StoredValue(BaseModel):
    """
    Immutable stored value with an optional expiry.

    Attributes:
        value: The saved value
        saved_at: Clock reading when the value was saved
        expires_at: Clock reading after which the value is gone, None for never

    Examples:
        >>> record = StoredValue(value="abc", saved_at=10.0, expires_at=70.0)
        >>> record.is_expired(now=69.0)
        False
        >>> record.is_expired(now=70.0)
        True
    """

    model_config = {"frozen": True}

    value: Any = Field(
        description="The saved value"
    )
    saved_at: float = Field(
        description="Clock reading when the value was saved"
    )
    expires_at: Optional[float] = Field(
        default=None,
        description="Clock reading after which the value expires"
    )

    @model_validator(mode="after")
    def validate_expiry(self) -> "StoredValue":
        """Ensure the value does not expire before it was saved."""
        if self.expires_at is not None and self.expires_at < self.saved_at:
            raise ValueError(
                f"Invalid StoredValue: expires_at ({self.expires_at}) is before "
                f"saved_at ({self.saved_at})."
            )
        return self

    def is_expired(self, now: float) -> bool:
        """Return True if the value has expired at clock reading ``now``."""
        return self.expires_at is not None and now >= self.expires_at


class PreparedEvent(BaseModel):
    """
    An event ready to be handed to a transport.

    Attributes:
        name: Event name
        measurement_id: Property the event is measured for, if configured
        top_level: Parameters that belong at the top level of a request
        params: Event parameters

    Examples:
        >>> event = PreparedEvent(
        ...     name="page_view",
        ...     top_level={"client_id": "abc"},
        ...     params={"page_title": "Home"}
        ... )
        >>> event.top_level["client_id"]
        'abc'
    """

    model_config = {"frozen": True}

    name: str = Field(
        min_length=1,
        description="Event name"
    )
    measurement_id: Optional[str] = Field(
        default=None,
        description="Measurement id of the property"
    )
    top_level: Dict[str, Any] = Field(
        default_factory=dict,
        description="Top-level request parameters"
    )
    params: Dict[str, Any] = Field(
        default_factory=dict,
        description="Event parameters"
    )

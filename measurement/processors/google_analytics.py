"""
Google Analytics Event Processor for the measurement library

This processor prepares Google Analytics events from ``event`` commands:
- Generates a client id once and keeps it in long-term storage
- Collects automatic parameters (page path, title, user id...) from the
  event options or the page model
- Splits parameters into top-level request fields and event parameters

Delivering the prepared event over the network is not implemented; the
processor logs what it would send.
"""

import math
import uuid
from typing import Any, Callable, Dict, FrozenSet, Optional

from loguru import logger
from pydantic import BaseModel, Field, field_validator

from ..core.data_layer import ModelInterface
from ..core.event_processor import EventProcessor
from ..core.models import PreparedEvent
from ..core.storage import STORAGE_DEFAULT, persist


DEFAULT_MEASUREMENT_URL = "https://www.google-analytics.com/mp/collect"

CLIENT_ID_KEY = "client_id"

DEFAULT_AUTOMATIC_PARAMS: Dict[str, bool] = {
    "page_path": True,
    "page_location": True,
    "page_title": True,
    "user_id": True,
    "client_id": True,
}

TOP_LEVEL_PARAMS: FrozenSet[str] = frozenset({
    "client_id",
    "user_id",
    "timestamp_micros",
    "user_properties",
    "non_personalized_ads",
})


class GoogleAnalyticsOptions(BaseModel):
    """
    Construction options for GoogleAnalyticsEventProcessor.

    Unknown keys are ignored, since the same mapping is merged into every
    event as event options.

    Attributes:
        api_secret: API secret generated in the Google Analytics UI
        measurement_id: Id of the measured property, upper-cased
        measurement_url: Collection endpoint, must be HTTPS
        client_id_expires: Seconds the client id is stored (-1, 0, positive or inf)
        automatic_params: Overrides for which automatic parameters are collected
    """

    api_secret: Optional[str] = Field(
        default=None,
        description="Google Analytics API secret"
    )
    measurement_id: Optional[str] = Field(
        default=None,
        description="Measurement id of the property"
    )
    measurement_url: str = Field(
        default=DEFAULT_MEASUREMENT_URL,
        pattern=r"^https://",
        description="Collection endpoint URL"
    )
    client_id_expires: float = Field(
        default=math.inf,
        description="Client id lifetime in seconds"
    )
    automatic_params: Dict[str, bool] = Field(
        default_factory=dict,
        description="Automatic parameter overrides"
    )

    @field_validator("measurement_id")
    @classmethod
    def normalize_measurement_id(cls, value: Optional[str]) -> Optional[str]:
        """Measurement ids are upper case."""
        return value.upper() if value else value

    @field_validator("client_id_expires")
    @classmethod
    def validate_client_id_expires(cls, value: float) -> float:
        """Only the shared time to live values are meaningful."""
        if math.isnan(value) or (value < 0 and value != STORAGE_DEFAULT):
            raise ValueError(
                f"client_id_expires must be -1, 0, positive or infinite, got {value}"
            )
        return value


class GoogleAnalyticsEventProcessor(EventProcessor):
    """
    Prepares Google Analytics events and manages the client id.

    Configuration:
        api_secret (str): API secret (default: None)
        measurement_id (str): Property id, upper-cased (default: None)
        measurement_url (str): Collection endpoint (default: GA collect URL)
        client_id_expires (float): Client id lifetime (default: math.inf)
        automatic_params (Dict[str, bool]): Enable/disable automatic params

    Examples:
        >>> processor = GoogleAnalyticsEventProcessor({"measurement_id": "g-abc"})
        >>> processor.measurement_id
        'G-ABC'
        >>> processor.persist_time("client_id", "1234")
        inf
        >>> processor.persist_time("page_title", "Home")
        -1
    """

    def __init__(
        self,
        options: Optional[Dict[str, Any]] = None,
        uuid_factory: Callable[[], Any] = uuid.uuid4
    ):
        """
        Initialize the processor from its options.

        Args:
            options (Dict[str, Any], optional): See GoogleAnalyticsOptions
            uuid_factory (Callable): Generates new client ids

        Raises:
            pydantic.ValidationError: If the options are invalid
        """
        self.options = GoogleAnalyticsOptions(**(options or {}))
        self.automatic_params: Dict[str, bool] = {
            **DEFAULT_AUTOMATIC_PARAMS,
            **self.options.automatic_params,
        }
        self.top_level_params = TOP_LEVEL_PARAMS
        self._uuid_factory = uuid_factory

    @property
    def api_secret(self) -> Optional[str]:
        return self.options.api_secret

    @property
    def measurement_id(self) -> Optional[str]:
        return self.options.measurement_id

    @property
    def measurement_url(self) -> str:
        return self.options.measurement_url

    @property
    def client_id_expires(self) -> float:
        return self.options.client_id_expires

    def get_name(self) -> str:
        """Name shared by every Google Analytics processor."""
        return "googleAnalytics"

    def persist_time(self, key: str, value: Any) -> float:
        """
        Store the client id for client_id_expires, anything else by storage default.

        Args:
            key (str): Key passed to the ``set`` command
            value: Value passed to the ``set`` command

        Returns:
            float: client_id_expires for the client id key, otherwise -1
        """
        if key == CLIENT_ID_KEY:
            return self.client_id_expires
        return STORAGE_DEFAULT

    def get_client_id(
        self,
        storage: Any,
        model: ModelInterface,
        options: Optional[Dict[str, Any]] = None
    ) -> str:
        """
        Return the client id, creating and storing one if needed.

        Looked up in the event options, then the page model, then storage.
        A new id is saved for client_id_expires and cached in the page model
        so it stays stable for the page even when it is not persisted.

        Args:
            storage: Storage holding the client id
            model (ModelInterface): Page model
            options (Dict[str, Any], optional): Event options

        Returns:
            str: The client id
        """
        if options and options.get(CLIENT_ID_KEY):
            return options[CLIENT_ID_KEY]

        client_id = model.get(CLIENT_ID_KEY)
        if client_id:
            return client_id

        client_id = storage.load(CLIENT_ID_KEY)
        if not client_id:
            client_id = str(self._uuid_factory())
            logger.debug(f"Generated new client id {client_id}")
            persist(storage, CLIENT_ID_KEY, client_id, self.persist_time(CLIENT_ID_KEY, client_id))

        model.set(CLIENT_ID_KEY, client_id)
        return client_id

    def prepare_event(
        self,
        storage: Any,
        model: ModelInterface,
        event_name: str,
        options: Optional[Dict[str, Any]] = None
    ) -> PreparedEvent:
        """
        Build the parameters of an event.

        Processing flow:
        1. Drop construction options (api secret, endpoint...) from the options
        2. Fill enabled automatic params from the options or the page model
        3. Resolve the client id if it is enabled
        4. Split top-level parameters from event parameters

        Args:
            storage: Storage holding the client id
            model (ModelInterface): Page model
            event_name (str): Event name
            options (Dict[str, Any], optional): Merged event options

        Returns:
            PreparedEvent: The prepared event
        """
        options = dict(options or {})
        params = {
            key: value for key, value in options.items()
            if key not in GoogleAnalyticsOptions.model_fields
        }

        for param, enabled in self.automatic_params.items():
            if not enabled or param == CLIENT_ID_KEY or param in params:
                continue
            value = model.get(param)
            if value is not None:
                params[param] = value

        if self.automatic_params.get(CLIENT_ID_KEY):
            params[CLIENT_ID_KEY] = self.get_client_id(storage, model, options)

        top_level = {k: v for k, v in params.items() if k in self.top_level_params}
        event_params = {k: v for k, v in params.items() if k not in self.top_level_params}

        return PreparedEvent(
            name=event_name,
            measurement_id=self.measurement_id,
            top_level=top_level,
            params=event_params,
        )

    def process_event(
        self,
        storage: Any,
        model: ModelInterface,
        event_name: str,
        options: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Prepare an event and log it.

        Args:
            storage: Storage holding the client id
            model (ModelInterface): Page model
            event_name (str): Event name
            options (Dict[str, Any], optional): Merged event options
        """
        prepared = self.prepare_event(storage, model, event_name, options)
        # TODO: POST prepared events to measurement_url once a transport exists
        logger.debug(
            f"Prepared {prepared.name} event for {self.measurement_url}: "
            f"top_level={prepared.top_level} params={prepared.params}"
        )

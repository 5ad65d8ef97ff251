"""
Factory for processor and storage instances.

Turns a reference (a constructor, or a name registered in the registry)
plus an options mapping into a live instance. Construction is fault
isolated: a missing name, a constructor that raises, or an instance without
the required methods is logged and reported as a failed BuildResult. build()
never raises, so one bad plugin cannot break the host page.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple, Union

from loguru import logger

from .exceptions import ConstructionError, ResolutionError
from .registry import ComponentKind, KindLike, Registry, as_kind, registry as default_registry


Reference = Union[str, Callable[..., Any]]

REQUIRED_CAPABILITIES: Dict[ComponentKind, Tuple[str, ...]] = {
    ComponentKind.PROCESSOR: ("persist_time", "process_event"),
    ComponentKind.STORAGE: ("load", "save"),
}


@dataclass(frozen=True)
class BuildResult:
    """
    Outcome of a build() call.

    Attributes:
        instance: The constructed instance, or None on failure
        error (ConstructionError, optional): Why construction failed
    """

    instance: Any = None
    error: Optional[ConstructionError] = None

    @property
    def ok(self) -> bool:
        """True if an instance was built."""
        return self.error is None


def _missing_capabilities(kind: ComponentKind, instance: Any) -> Tuple[str, ...]:
    return tuple(
        name for name in REQUIRED_CAPABILITIES[kind]
        if not callable(getattr(instance, name, None))
    )


def build(
    kind: KindLike,
    reference: Reference,
    params: Optional[Dict[str, Any]] = None,
    registry: Optional[Registry] = None
) -> BuildResult:
    """
    Build a processor or storage from a constructor or registered name.

    A name that is not registered is logged and construction continues with
    no constructor, so it fails through the same path as any other
    construction error. An unknown kind is logged and reported the same
    way.

    Args:
        kind: 'processor' or 'storage'
        reference: Constructor, or name registered for the kind
        params (Dict[str, Any], optional): Options passed to the constructor
        registry (Registry, optional): Registry to resolve names against.
            Defaults to the process-wide registry.

    Returns:
        BuildResult: The instance, or the ConstructionError describing the failure

    Examples:
        >>> result = build("processor", "googleAnalytics", {"measurement_id": "g-123"})
        >>> result.ok
        True
        >>> build("storage", "nope", {}).ok
        False
    """
    params = dict(params or {})
    try:
        kind = as_kind(kind)
    except ValueError as e:
        error = ConstructionError(reference, params, e)
        logger.error(str(error))
        return BuildResult(error=error)

    registry = registry if registry is not None else default_registry

    constructor: Any = reference
    if isinstance(reference, str):
        try:
            constructor = registry.resolve(kind, reference)
        except ResolutionError as e:
            logger.error(str(e))
            constructor = None

    try:
        instance = constructor(params)
    except Exception as e:
        error = ConstructionError(constructor, params, e)
        logger.error(str(error))
        return BuildResult(error=error)

    missing = _missing_capabilities(kind, instance)
    if missing:
        error = ConstructionError(
            constructor,
            params,
            TypeError(f"{kind} is missing required method(s): {', '.join(missing)}")
        )
        logger.error(str(error))
        return BuildResult(error=error)

    logger.debug(f"Built {kind} {type(instance).__name__}")
    return BuildResult(instance=instance)


def build_processor(reference: Reference, params: Optional[Dict[str, Any]] = None) -> Any:
    """Build an event processor, returning None on failure."""
    return build(ComponentKind.PROCESSOR, reference, params).instance


def build_storage(reference: Reference, params: Optional[Dict[str, Any]] = None) -> Any:
    """Build a storage, returning None on failure."""
    return build(ComponentKind.STORAGE, reference, params).instance

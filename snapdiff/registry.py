"""
Handler registry and rule-set run execution

Rule sets name their handler by a stable string identifier. The registry maps
those identifiers to handler functions; it is populated once at startup and
looked up for every run.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional

from . import handlers
from .fields import MissingParameterError
from .store import SnapshotStore


__all__ = [
    "Handler",
    "UnknownHandlerError",
    "HandlerRegistry",
    "default_registry",
    "RunStatus",
    "RunOutcome",
    "StatusCallback",
    "execute_run",
]

logger = logging.getLogger(__name__)

Handler = Callable[[Mapping[str, Any], SnapshotStore], Dict[str, Any]]


class UnknownHandlerError(LookupError):
    """No handler is registered under the requested name"""


class HandlerRegistry:
    """
    Mapping of handler name to handler function.

    Example:
        >>> registry = HandlerRegistry()
        >>> @registry.register('diff-ss/list')
        ... def diff_list(params, store):
        ...     ...
        >>> registry.get('diff-ss/list')
    """

    def __init__(self):
        self._handlers: Dict[str, Handler] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)

    def register(self, name: str, func: Optional[Handler] = None):
        """
        Register a handler under a name; usable as a decorator when func is omitted

        Raises:
            ValueError: If the name is empty or already registered
            TypeError: If func is not callable
        """
        if func is None:
            return lambda f: self.register(name, f)

        if not name:
            raise ValueError("Handler name cannot be empty")
        if name in self._handlers:
            raise ValueError(f"Handler {name!r} is already registered")
        if not callable(func):
            raise TypeError(f"Handler {name!r} must be callable")

        self._handlers[name] = func
        return func

    def get(self, name: str) -> Handler:
        try:
            return self._handlers[name]
        except KeyError:
            raise UnknownHandlerError(f"Handler not found: {name}") from None

    def names(self) -> List[str]:
        return sorted(self._handlers)


def default_registry() -> HandlerRegistry:
    """Create a registry holding the built-in snapshot diff handlers"""
    registry = HandlerRegistry()
    registry.register("diff-ss/list", handlers.diff_snapshots_as_list)
    registry.register("diff-ss/table", handlers.diff_snapshots_as_table)
    registry.register("diff-spec-agg/table", handlers.diff_aggregated)
    return registry


class RunStatus(Enum):
    """Lifecycle states of a rule-set run"""
    CREATED = "Created"
    EXECUTING = "Executing"
    COMPLETED = "Completed"
    ERROR = "Error"


@dataclass
class RunOutcome:
    """Final state of a run: its status and either results or an error message"""
    handler: str
    status: RunStatus
    results: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"RunOutcome({self.handler}: {self.status.value})"

    @property
    def succeeded(self) -> bool:
        return self.status is RunStatus.COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        return {'handler': self.handler, 'status': self.status.value, 'results': self.results}


StatusCallback = Callable[[RunStatus], None]


def execute_run(
    registry: HandlerRegistry,
    handler_name: str,
    params: Mapping[str, Any],
    store: SnapshotStore,
    on_status: Optional[StatusCallback] = None
) -> RunOutcome:
    """
    Run a registered handler and capture its outcome

    The run moves Created -> Executing -> Completed, or to Error from either
    earlier state. on_status, when given, is called with each state as the
    run enters it.

    A handler that is unknown or raises gives an Error outcome whose results
    are {"message": <error message>}; the error is logged.

    Raises:
        MissingParameterError: If handler_name or params is not given
    """
    if not handler_name:
        raise MissingParameterError("handler")
    if params is None:
        raise MissingParameterError("params")

    def enter(status: RunStatus) -> RunStatus:
        if on_status is not None:
            on_status(status)
        return status

    enter(RunStatus.CREATED)
    try:
        handler = registry.get(handler_name)
    except UnknownHandlerError as error:
        logger.error("Run not started: %s", error)
        return RunOutcome(handler_name, enter(RunStatus.ERROR), {'message': str(error)})

    enter(RunStatus.EXECUTING)
    logger.info("Executing handler %s", handler_name)
    try:
        results = handler(params, store)
    except Exception as error:
        logger.exception("Handler %s failed", handler_name)
        return RunOutcome(handler_name, enter(RunStatus.ERROR), {'message': str(error)})

    logger.info("Handler %s completed", handler_name)
    return RunOutcome(handler_name, enter(RunStatus.COMPLETED), results)

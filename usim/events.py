"""
UI event dispatch.

An event is either scoped to one screen (by identifier or by the id of a
component the screen owns) or unscoped. Scoped events run the screen's
``on_<event>`` method inside the screen lifecycle. Unscoped events run the
registered global handlers and are then broadcast to every root screen of
the session that handles them.

Usage:
    dispatcher = EventDispatcher(resolver, signer)

    @dispatcher.handler("logged_user")
    def on_login(params, context):
        return {"toast": {"message": "Welcome back", "type": "success"}}

    result = dispatcher.dispatch(UIEvent("logged_user"), context)
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from usim.context import RequestContext
from usim.exceptions import HandlerError, UnknownEventError, ValidationError
from usim.logging_config import PerformanceTracker, get_logger, log_event
from usim.screens.base import guard_handler
from usim.screens.registry import ScreenDescriptor, ScreenResolver
from usim.storage import StorageSigner
from usim.ui.changes import UIChanges

logger = get_logger(__name__)

EVENT_NAME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_.-]{0,99}$")
CALLER_PARAM = "_caller_screen"

GlobalHandler = Callable[[dict[str, Any], RequestContext], Optional[dict[str, Any]]]


@dataclass
class UIEvent:
    """A client-triggered action."""

    event_name: str
    params: dict[str, Any] = field(default_factory=dict)
    screen: str | None = None
    component_id: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"event": self.event_name, "parameters": dict(self.params)}
        if self.screen is not None:
            data["screen"] = self.screen
        if self.component_id is not None:
            data["component_id"] = self.component_id
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> UIEvent:
        return cls(
            event_name=data.get("action") or data.get("event") or "",
            params=data.get("parameters") or {},
            screen=data.get("screen"),
            component_id=data.get("component_id"),
        )


@dataclass(frozen=True)
class Ack:
    """Void acknowledgement for events that produced no UI changes."""

    def to_dict(self) -> dict[str, Any]:
        return {"ok": True}


def validate_event_name(name: Any) -> str:
    if not isinstance(name, str) or not EVENT_NAME_RE.match(name):
        raise ValidationError("must start with a letter and contain only letters, digits, '_', '.' or '-'", field="event")
    return name


def handler_method_name(event_name: str) -> str:
    """``submit_form`` -> ``on_submit_form``; ``user.logged-in`` -> ``on_user_logged_in``."""
    return "on_" + re.sub(r"[.\-]", "_", event_name).lower()


class EventDispatcher:
    """Routes UI events to screen methods and global handlers."""

    def __init__(self, resolver: ScreenResolver, signer: StorageSigner) -> None:
        self.resolver = resolver
        self.signer = signer
        self._handlers: dict[str, list[GlobalHandler]] = {}

    def register(self, event_name: str, handler: GlobalHandler) -> None:
        validate_event_name(event_name)
        self._handlers.setdefault(event_name, []).append(handler)

    def handler(self, event_name: str) -> Callable[[GlobalHandler], GlobalHandler]:
        def decorator(fn: GlobalHandler) -> GlobalHandler:
            self.register(event_name, fn)
            return fn

        return decorator

    def has_handler(self, event_name: str) -> bool:
        return bool(self._handlers.get(event_name))

    def dispatch(self, event: UIEvent, context: RequestContext) -> dict[str, Any] | Ack:
        """
        Dispatch one event.

        Raises:
            ValidationError: malformed event name or parameters.
            ScreenNotFoundError: the event targets an unknown screen.
            UnknownEventError: nothing handles the event.
            HandlerError: a handler raised a non-USIM exception.
        """
        name = validate_event_name(event.event_name)
        if not isinstance(event.params, Mapping):
            raise ValidationError("must be an object", field="parameters")

        params = dict(event.params)
        caller = params.pop(CALLER_PARAM, None)
        target = self._target(event, caller)

        with PerformanceTracker("event_dispatch", event=name, screen=target.name if target else None):
            if target is not None:
                result = self._dispatch_to_screen(target, name, params, context)
            else:
                result = self._broadcast(name, params, context)

        log_event("ui_event", event=name, screen=target.name if target else None, ack=isinstance(result, Ack))
        return result

    def _target(self, event: UIEvent, caller: Any) -> ScreenDescriptor | None:
        if caller is not None:
            if isinstance(caller, int) or (isinstance(caller, str) and caller.isdigit()):
                return self.resolver.resolve_component(int(caller))
            return self.resolver.resolve(caller)
        if event.screen:
            return self.resolver.resolve(event.screen)
        if event.component_id is not None:
            return self.resolver.resolve_component(event.component_id)
        return None

    def _run_screen(
        self,
        descriptor: ScreenDescriptor,
        event_name: str,
        params: dict[str, Any],
        context: RequestContext,
        changes: UIChanges,
    ) -> None:
        method = handler_method_name(event_name)
        screen = self.resolver.instantiate(descriptor, context, changes)
        with guard_handler(f"{descriptor.name}.{method}"):
            screen.initialize(query_params=context.query_params)
            getattr(screen, method)(params)
            screen.finalize()

    def _dispatch_to_screen(
        self,
        descriptor: ScreenDescriptor,
        event_name: str,
        params: dict[str, Any],
        context: RequestContext,
    ) -> dict[str, Any]:
        with guard_handler(f"{descriptor.name}.authorize"):
            access = descriptor.screen_class.check_access(context, login_url=self.resolver.login_url)
        if not access.allowed:
            log_event("event_access_denied", level="WARNING", event=event_name, screen=descriptor.name)
            return access.to_document()

        if not callable(getattr(descriptor.screen_class, handler_method_name(event_name), None)):
            raise UnknownEventError(event_name, screen=descriptor.name)

        changes = UIChanges()
        changes.set_storage(context.storage)
        self._run_screen(descriptor, event_name, params, context, changes)
        return changes.document(self.signer)

    def _broadcast(self, event_name: str, params: dict[str, Any], context: RequestContext) -> dict[str, Any] | Ack:
        method = handler_method_name(event_name)
        handlers = list(self._handlers.get(event_name, ()))

        targets: list[ScreenDescriptor] = []
        for identifier in dict.fromkeys(self.resolver.state.root_components(context.session_id).values()):
            descriptor = self.resolver.get(identifier)
            if descriptor is not None and callable(getattr(descriptor.screen_class, method, None)):
                targets.append(descriptor)

        if not handlers and not targets:
            raise UnknownEventError(event_name)

        changes = UIChanges()
        changes.set_storage(context.storage)

        for fn in handlers:
            handler = getattr(fn, "__qualname__", event_name)
            with guard_handler(handler):
                result = fn(dict(params), context)
                if result is not None and not isinstance(result, Mapping):
                    raise HandlerError(handler=handler, reason=f"returned {type(result).__name__}, expected a mapping")
                if result:
                    changes.add(dict(result))

        for descriptor in targets:
            with guard_handler(f"{descriptor.name}.authorize"):
                allowed = descriptor.screen_class.check_access(context, login_url=self.resolver.login_url).allowed
            if not allowed:
                logger.debug("Skipping broadcast to denied screen", extra={"screen": descriptor.name})
                continue
            self._run_screen(descriptor, event_name, dict(params), context, changes)

        if changes.is_empty():
            return Ack()
        return changes.document(self.signer)


__all__ = [
    "Ack",
    "EventDispatcher",
    "UIEvent",
    "handler_method_name",
    "validate_event_name",
]

"""Request/response messages exchanged with the background service."""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Mapping, Optional, Protocol

logger = logging.getLogger(__name__)

GET_CURRENT_EMAIL = "GET_CURRENT_EMAIL"
GENERATE_EMAIL = "GENERATE_EMAIL"

ACTIONS = (GET_CURRENT_EMAIL, GENERATE_EMAIL)

ResponseCallback = Callable[[Dict[str, Any]], None]
ErrorCallback = Callable[[Exception], None]
Handler = Callable[[Dict[str, Any]], Optional[Dict[str, Any]]]


class MessageChannelError(RuntimeError):
    """The background service could not be reached or reported a failure."""


class MessageChannel(Protocol):
    """Delivers a message to the background service.

    Exactly one of ``on_response`` or ``on_error`` is invoked, later, on the
    thread that owns the popup.
    """

    def send(
        self,
        message: Dict[str, Any],
        on_response: ResponseCallback,
        on_error: ErrorCallback,
    ) -> None:
        ...


def build_message(action: str, **payload: Any) -> Dict[str, Any]:
    if action not in ACTIONS:
        raise ValueError(f"Unknown action: {action}")
    message: Dict[str, Any] = dict(payload)
    message["action"] = action
    return message


def unwrap_response(response: object) -> Dict[str, Any]:
    """Return ``response`` as a dictionary or raise :class:`MessageChannelError`."""

    if response is None:
        raise MessageChannelError("No response from background service")
    if not isinstance(response, Mapping):
        raise MessageChannelError(f"Invalid response type: {type(response).__name__}")
    error = response.get("error")
    if error:
        raise MessageChannelError(str(error))
    return dict(response)


def dispatch(handler: Optional[Handler], message: Dict[str, Any]) -> Dict[str, Any]:
    """Run ``handler`` for ``message`` and normalise the outcome."""

    if handler is None:
        raise MessageChannelError("Background service is not connected")
    try:
        response = handler(dict(message))
    except MessageChannelError:
        raise
    except Exception as exc:
        logger.error("background handler error on %s: %s", message.get("action"), exc)
        raise MessageChannelError(f"Background handler failed: {exc}") from exc
    return unwrap_response(response)


__all__ = [
    "ACTIONS",
    "GENERATE_EMAIL",
    "GET_CURRENT_EMAIL",
    "MessageChannel",
    "MessageChannelError",
    "build_message",
    "dispatch",
    "unwrap_response",
]

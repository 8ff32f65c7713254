"""Request and conversation identifiers propagated through async call trees.

Identifiers live in contextvars, so every asyncio task sees the value that was
current when it was created, and a value set inside one task never leaks into
sibling tasks. They are used to correlate log lines only.
"""

import inspect
import logging
import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)
_conversation_id: ContextVar[str | None] = ContextVar("conversation_id", default=None)


def new_request_id() -> str:
    """Generate a random identifier."""
    return uuid.uuid4().hex


def get_request_id() -> str | None:
    """Get the current request ID, or None outside a request."""
    return _request_id.get()


def set_request_id(request_id: str | None) -> None:
    """Set the request ID for the current context and everything it spawns."""
    _request_id.set(request_id)


@contextmanager
def request_context(request_id: str | None = None) -> Iterator[str]:
    """
    Run a block inside a request scope.

    The previous request ID (or its absence) is restored on exit, even when the
    block raises.

    Args:
        request_id: Identifier to use; a random one is generated if None
    """
    if request_id is None:
        request_id = new_request_id()
    token = _request_id.set(request_id)
    try:
        yield request_id
    finally:
        _request_id.reset(token)


def get_conversation_id() -> str | None:
    """Get the current conversation ID, or None outside a conversation."""
    return _conversation_id.get()


def set_conversation_id(conversation_id: str | None) -> None:
    """Set the conversation ID for the current context."""
    _conversation_id.set(conversation_id)


@contextmanager
def conversation_context(conversation_id: str | None = None) -> Iterator[str]:
    """Run a block inside a conversation scope (see request_context)."""
    if conversation_id is None:
        conversation_id = new_request_id()
    token = _conversation_id.set(conversation_id)
    try:
        yield conversation_id
    finally:
        _conversation_id.reset(token)


def run_with_request_id(request_id: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """
    Call fn inside a request scope.

    A plain callable runs immediately and its result is returned. A coroutine
    function returns an awaitable that enters the scope when awaited.
    """
    if inspect.iscoroutinefunction(fn):

        async def runner() -> Any:
            with request_context(request_id):
                return await fn(*args, **kwargs)

        return runner()

    with request_context(request_id):
        return fn(*args, **kwargs)


class ContextFilter(logging.Filter):
    """Attach the ambient request and conversation IDs to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"
        record.conversation_id = get_conversation_id() or "-"
        return True

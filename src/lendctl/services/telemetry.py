"""Lending traces: span trees for service calls.

Tracing is off unless ``-v`` switches it on for the invocation. A
``@traced`` service call then opens a span named after the method, and
everything it does underneath becomes a child: the ``reserve_copy`` /
``release_copy`` counter updates, each ``dispatch`` fan-out, and any other
traced service it calls (``return_item`` -> ``on_restock``). The finished
tree lands in ``ServiceResult.meta["telemetry"]`` of the outermost call.

Whether or not tracing is on, the request, item and borrower IDs a traced
call receives are bound into structlog's context for its duration, so log
lines emitted inside it carry them.
"""

from __future__ import annotations

import functools
import inspect
import time
from collections.abc import Callable, Generator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, ParamSpec, TypeVar

import structlog

from lendctl.services.result import ServiceResult

# Call arguments copied onto spans and into the log context.
TRACED_ARGS = frozenset({"request_id", "item_id", "borrower_id", "user_id"})

_enabled: ContextVar[bool] = ContextVar("_enabled", default=False)
_current_span: ContextVar[Span | None] = ContextVar("_current_span", default=None)

log = structlog.get_logger("lendctl.telemetry")


@dataclass
class Span:
    """One timed step of a lending operation."""

    name: str
    annotations: dict[str, Any] = field(default_factory=dict)
    children: list[Span] = field(default_factory=list)
    outcome: str | None = None
    start_time: float = field(default_factory=time.perf_counter)
    end_time: float | None = None

    @property
    def duration_ms(self) -> float:
        if self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time) * 1000

    def end(self, outcome: str | None = None) -> None:
        self.end_time = time.perf_counter()
        if outcome is not None:
            self.outcome = outcome

    def annotate(self, key: str, value: Any) -> None:
        self.annotations[key] = value

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "duration_ms": round(self.duration_ms, 2)}
        if self.outcome is not None:
            data["outcome"] = self.outcome
        if self.annotations:
            data["annotations"] = dict(self.annotations)
        if self.children:
            data["children"] = [c.to_dict() for c in self.children]
        return data


@contextmanager
def trace_span(name: str, **annotations: Any) -> Generator[Span | None]:
    """Open a child of the current span, pre-annotated with *annotations*.

    Yields None when tracing is off or no traced call is running.
    """
    parent = _current_span.get() if _enabled.get() else None
    if parent is None:
        yield None
        return

    child = Span(name=name, annotations=dict(annotations))
    parent.children.append(child)
    token = _current_span.set(child)
    try:
        yield child
    except Exception:
        child.end("raised")
        raise
    else:
        child.end()
    finally:
        _current_span.reset(token)


def annotate(key: str, value: Any) -> None:
    """Annotate the innermost open span. No-op when tracing is off."""
    span = get_current_span()
    if span is not None:
        span.annotate(key, value)


def _outcome(result: object) -> str | None:
    if not isinstance(result, ServiceResult):
        return None
    if result.ok:
        return "ok"
    return str(result.error.code) if result.error is not None else "error"


def _log_span(span: Span) -> None:
    log.debug(
        "span.complete",
        span_name=span.name,
        duration_ms=round(span.duration_ms, 2),
        outcome=span.outcome,
        children=len(span.children),
        **span.annotations,
    )


_P = ParamSpec("_P")
_R = TypeVar("_R")


def traced(func: Callable[_P, _R]) -> Callable[_P, _R]:  # noqa: UP047
    """Decorator for service methods: bind IDs to the log context and record a span.

    The outermost traced call of a tree receives the span data in its
    ``ServiceResult.meta``; nested traced calls appear as children.
    """
    signature = inspect.signature(func)
    id_params = TRACED_ARGS.intersection(signature.parameters)

    def _ids(args: tuple[Any, ...], kwargs: dict[str, Any]) -> dict[str, Any]:
        if not id_params:
            return {}
        bound = signature.bind_partial(*args, **kwargs).arguments
        return {k: v for k, v in bound.items() if k in id_params and v}

    @functools.wraps(func)
    def wrapper(*args: _P.args, **kwargs: _P.kwargs) -> _R:
        ids = _ids(args, kwargs)
        with structlog.contextvars.bound_contextvars(**ids):
            if not _enabled.get():
                return func(*args, **kwargs)

            parent = _current_span.get()
            span = Span(name=func.__qualname__, annotations=ids)
            if parent is not None:
                parent.children.append(span)
            token = _current_span.set(span)
            try:
                result = func(*args, **kwargs)
            except Exception:
                span.end("raised")
                _log_span(span)
                raise
            finally:
                _current_span.reset(token)

            span.end(_outcome(result))
            _log_span(span)
            if parent is None and isinstance(result, ServiceResult):
                meta = {**(result.meta or {}), "telemetry": span.to_dict()}
                result = result.model_copy(update={"meta": meta})  # type: ignore[assignment]
            return result

    return wrapper


def enable_telemetry() -> None:
    """Turn tracing on for the current context (``-v``)."""
    _enabled.set(True)


def disable_telemetry() -> None:
    _enabled.set(False)


def get_current_span() -> Span | None:
    if not _enabled.get():
        return None
    return _current_span.get()

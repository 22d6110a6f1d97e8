# Copyright The OpenTelemetry Authors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Opening and closing of the spans around hooked client methods.

The entry and exit of a hooked method run in separate callbacks, so the
span of a call cannot live in a ``with`` block. Each opened span is
pushed on a frame stack kept in a :class:`contextvars.ContextVar` (one
stack per thread and per asyncio task) together with the token returned
by :func:`opentelemetry.context.attach`; closing pops the top frame.
"""

from __future__ import annotations

import contextvars
from typing import TYPE_CHECKING, NamedTuple

from opentelemetry import context, trace
from opentelemetry.semconv._incubating.attributes.code_attributes import (
    CODE_FILEPATH,
    CODE_FUNCTION,
    CODE_LINENO,
    CODE_NAMESPACE,
)
from opentelemetry.trace import Span, SpanKind, Status, StatusCode, Tracer

if TYPE_CHECKING:
    from opentelemetry.instrumentation.redis_clients.custom_types import (
        Attributes,
    )
    from opentelemetry.instrumentation.redis_clients.hooks import CallSite


class _Frame(NamedTuple):
    span: Span
    token: object


_FRAMES: contextvars.ContextVar[tuple[_Frame, ...]] = contextvars.ContextVar(
    "opentelemetry_redis_clients_frames", default=()
)


def _code_attributes(call_site: CallSite) -> Attributes:
    attributes = {
        CODE_FUNCTION: call_site.function,
        CODE_NAMESPACE: call_site.namespace,
        CODE_FILEPATH: call_site.filepath,
        CODE_LINENO: call_site.lineno,
    }
    return {
        key: value for key, value in attributes.items() if value is not None
    }


class SpanLifecycle:
    def __init__(self, tracer: Tracer):
        self._tracer = tracer

    def open(
        self,
        name: str,
        call_site: CallSite,
        attributes: Attributes | None = None,
    ) -> Span:
        """Start a client span, make it current and push its frame."""
        span_attributes = _code_attributes(call_site)
        if attributes:
            span_attributes.update(
                (key, value)
                for key, value in attributes.items()
                if value is not None
            )
        span = self._tracer.start_span(
            name, kind=SpanKind.CLIENT, attributes=span_attributes
        )
        token = context.attach(trace.set_span_in_context(span))
        _FRAMES.set(_FRAMES.get() + (_Frame(span, token),))
        return span

    @staticmethod
    def current() -> Span | None:
        frames = _FRAMES.get()
        if not frames:
            return None
        return frames[-1].span

    @staticmethod
    def close(exception: BaseException | None = None) -> None:
        """Pop the top frame and end its span.

        Does nothing when no frame is open.
        """
        frames = _FRAMES.get()
        if not frames:
            return
        span, token = frames[-1]
        _FRAMES.set(frames[:-1])
        context.detach(token)
        if exception is not None:
            span.record_exception(exception, escaped=True)
            span.set_status(Status(StatusCode.ERROR, str(exception)))
        span.end()

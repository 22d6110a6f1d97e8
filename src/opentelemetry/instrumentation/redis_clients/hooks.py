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

from __future__ import annotations

import inspect
import logging
import os
import pkgutil
from typing import TYPE_CHECKING, Any, Callable, Collection, NamedTuple

from wrapt import wrap_function_wrapper

from opentelemetry import trace
from opentelemetry.instrumentation.instrumentor import BaseInstrumentor
from opentelemetry.instrumentation.redis_clients.lifecycle import (
    SpanLifecycle,
)
from opentelemetry.instrumentation.redis_clients.package import _instruments
from opentelemetry.instrumentation.redis_clients.tracker import (
    RedisAttributeTracker,
)
from opentelemetry.instrumentation.redis_clients.version import __version__
from opentelemetry.instrumentation.utils import (
    is_instrumentation_enabled,
    unwrap,
)
from opentelemetry.semconv.schemas import Schemas
from opentelemetry.trace import TracerProvider

if TYPE_CHECKING:
    from opentelemetry.instrumentation.redis_clients.custom_types import (
        ConnectionExtractor,
        PostHook,
        PreHook,
    )

_logger = logging.getLogger(__name__)

_INSTRUMENTATION_ATTR = "_is_instrumented_by_opentelemetry"

Hooks = dict[str, tuple["PreHook | None", "PostHook | None"]]


class CallSite(NamedTuple):
    """Where a hooked method is declared"""

    function: str
    namespace: str
    filepath: str | None
    lineno: int | None


def _call_site(target, method: str, original) -> CallSite:
    owner = target if inspect.isclass(target) else type(target)
    code = getattr(inspect.unwrap(original), "__code__", None)
    return CallSite(
        function=method,
        namespace=f"{owner.__module__}.{owner.__qualname__}",
        filepath=code.co_filename if code is not None else None,
        lineno=code.co_firstlineno if code is not None else None,
    )


def _run_callback(callback: Callable[..., None], *args) -> bool:
    try:
        callback(*args)
    except Exception:  # pylint: disable=broad-exception-caught
        _logger.debug(
            "Redis instrumentation callback %s failed",
            getattr(callback, "__qualname__", callback),
            exc_info=True,
        )
        return False
    return True


def hook(
    target: Any,
    method: str,
    pre: PreHook | None = None,
    post: PostHook | None = None,
) -> bool:
    """Run ``pre`` before and ``post`` after ``target.method``.

    ``target`` is a class or a single instance. ``pre`` receives
    ``(instance, args, kwargs, call_site)``, ``post`` receives
    ``(instance, args, kwargs, result, exception)`` exactly once, whether
    the method returned or raised. The result and the exception of the
    method are passed through untouched; failures of the callbacks are
    logged and swallowed, and a failed ``pre`` skips ``post``.

    Returns False if ``target`` has no attribute ``method``.
    """
    original = getattr(target, method, None)
    if original is None:
        return False
    call_site = _call_site(target, method, original)

    def _hooked(wrapped, instance, args, kwargs):
        if not is_instrumentation_enabled():
            return wrapped(*args, **kwargs)
        if pre is not None and not _run_callback(
            pre, instance, args, kwargs, call_site
        ):
            return wrapped(*args, **kwargs)
        try:
            result = wrapped(*args, **kwargs)
        except BaseException as exc:
            if post is not None:
                _run_callback(post, instance, args, kwargs, None, exc)
            raise
        if post is not None:
            _run_callback(post, instance, args, kwargs, result, None)
        return result

    wrap_function_wrapper(target, method, _hooked)
    return True


def _resolve_client_class(client_class, environment_variable: str):
    if client_class is not None:
        return client_class
    path = os.environ.get(environment_variable)
    if not path:
        return None
    try:
        return pkgutil.resolve_name(path.strip())
    except (ImportError, AttributeError, ValueError):
        _logger.warning(
            "Unable to import the redis client class %s set in %s",
            path,
            environment_variable,
        )
        return None


class ClientInstrumentor(BaseInstrumentor):
    """Base of the instrumentors of each redis client shape.

    Subclasses declare the span name prefix, how connection attributes are
    read from a live client, and the callbacks of each hooked method.
    """

    span_prefix: str
    client_class_env: str
    _extract_attributes: ConnectionExtractor

    # instrumentors are singletons, __init__ runs on every construction
    _client_class = None
    _hooked: tuple[str, ...] = ()

    def instrument(
        self,
        tracer_provider: TracerProvider | None = None,
        client_class: type | None = None,
        **kwargs,
    ):
        """Instruments every instance of a redis client class.

        Args:
            tracer_provider: A TracerProvider, defaults to global.
            client_class: The client class to hook, defaults to the class
                named by the instrumentor's environment variable.
        """
        client_class = _resolve_client_class(
            client_class, self.client_class_env
        )
        if client_class is None:
            _logger.warning(
                "No client class to instrument, pass client_class or set %s",
                self.client_class_env,
            )
            return
        super().instrument(
            tracer_provider=tracer_provider,
            client_class=client_class,
            **kwargs,
        )

    @classmethod
    def _get_tracer(cls, tracer_provider: TracerProvider | None = None):
        return trace.get_tracer(
            cls.__module__,
            __version__,
            tracer_provider=tracer_provider,
            schema_url=Schemas.V1_27_0.value,
        )

    @classmethod
    def _new_tracker(cls) -> RedisAttributeTracker:
        return RedisAttributeTracker(cls._extract_attributes)

    def _hooks(
        self, lifecycle: SpanLifecycle, tracker: RedisAttributeTracker
    ) -> Hooks:
        raise NotImplementedError

    def _span_name(self, method: str) -> str:
        return f"{self.span_prefix}::{method}"

    def instrumentation_dependencies(self) -> Collection[str]:
        return _instruments

    def _instrument(self, **kwargs: Any):
        client_class = kwargs["client_class"]
        lifecycle = SpanLifecycle(
            self._get_tracer(kwargs.get("tracer_provider"))
        )
        hooks = self._hooks(lifecycle, self._new_tracker())
        self._client_class = client_class
        self._hooked = tuple(
            method
            for method, (pre, post) in hooks.items()
            if hook(client_class, method, pre, post)
        )

    def _uninstrument(self, **kwargs: Any):
        for method in self._hooked:
            unwrap(self._client_class, method)
        self._client_class = None
        self._hooked = ()

    def instrument_client(
        self, client: Any, tracer_provider: TracerProvider | None = None
    ):
        """Instrument a single, already constructed client.

        Constructor callbacks do not apply; the connection attributes of the
        client are read right away.

        Args:
            client: The redis client.
            tracer_provider: A TracerProvider, defaults to global.
        """
        if getattr(client, _INSTRUMENTATION_ATTR, False):
            _logger.warning(
                "Attempting to instrument Redis connection while already instrumented"
            )
            return
        tracker = self._new_tracker()
        hooks = self._hooks(
            SpanLifecycle(self._get_tracer(tracer_provider)), tracker
        )
        hooks.pop("__init__", None)
        hooked = [
            method
            for method, (pre, post) in hooks.items()
            if hook(client, method, pre, post)
        ]
        tracker.track_attributes(client)
        setattr(client, _INSTRUMENTATION_ATTR, tuple(hooked))

    @staticmethod
    def uninstrument_client(client: Any):
        """Disables instrumentation for the given client instance

        Args:
            client: The redis client
        """
        hooked = getattr(client, _INSTRUMENTATION_ATTR, False)
        if not hooked:
            _logger.warning(
                "Attempting to un-instrument Redis connection that wasn't instrumented"
            )
            return
        for method in hooked:
            unwrap(client, method)
        setattr(client, _INSTRUMENTATION_ATTR, False)

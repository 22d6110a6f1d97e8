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
Tracing of native Redis clients, the ones exposing their connection through
``get_host()``, ``get_port()``, ``get_db_num()`` and ``get_auth()`` next to
one method per command.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from opentelemetry.instrumentation.redis_clients.environment_variables import (
    OTEL_PYTHON_REDIS_CLIENT_CLASS,
)
from opentelemetry.instrumentation.redis_clients.hooks import (
    ClientInstrumentor,
)
from opentelemetry.instrumentation.redis_clients.util import (
    _arg,
    _extract_native_connect_attributes,
    _extract_native_options_attributes,
    _format_scan_statement,
    _format_set_statement,
    _format_statement,
    _format_varargs_statement,
    _native_connection_attributes,
    _safe_statement,
)
from opentelemetry.semconv._incubating.attributes.db_attributes import (
    DB_REDIS_DATABASE_INDEX,
    DB_STATEMENT,
)

if TYPE_CHECKING:
    from opentelemetry.instrumentation.redis_clients.hooks import Hooks
    from opentelemetry.instrumentation.redis_clients.lifecycle import (
        SpanLifecycle,
    )
    from opentelemetry.instrumentation.redis_clients.tracker import (
        RedisAttributeTracker,
    )

_CONNECT_METHODS = ("connect", "pconnect")
_VARARGS_METHODS = ("exists", "mget", "delete", "unlink")
_SIMPLE_METHODS = ("multi", "pipeline", "exec", "discard")


def _statement_for(method: str, args: tuple, kwargs: dict):
    if method in ("get", "set"):
        key = _arg(args, kwargs, 0, "key")
        if key is None:
            return None
        if method == "get":
            return _format_statement("GET", [key])
        return _format_set_statement(key, _arg(args, kwargs, 2, "options"))
    if method == "setex":
        return _format_statement(
            "SETEX",
            [
                _arg(args, kwargs, 0, "key"),
                _arg(args, kwargs, 1, "expire"),
                _arg(args, kwargs, 2, "value"),
            ],
            revealed=2,
        )
    if method == "scan":
        return _format_scan_statement(
            _arg(args, kwargs, 0, "iterator"),
            _arg(args, kwargs, 1, "pattern"),
            _arg(args, kwargs, 2, "count"),
            _arg(args, kwargs, 3, "type"),
        )
    if method in ("sadd", "srem"):
        return _format_statement(method.upper(), args)
    if method in _VARARGS_METHODS:
        return _format_varargs_statement(method, args)
    return None


class RedisInstrumentor(ClientInstrumentor):
    """An instrumentor for native Redis clients

    See `BaseInstrumentor`
    """

    span_prefix = "Redis"
    client_class_env = OTEL_PYTHON_REDIS_CLIENT_CLASS
    _extract_attributes = staticmethod(_native_connection_attributes)

    def _hooks(
        self, lifecycle: SpanLifecycle, tracker: RedisAttributeTracker
    ) -> Hooks:
        def _refresh_and_close(instance, args, kwargs, result, exception):
            span = lifecycle.current()
            if span is None:
                return
            try:
                span.set_attributes(tracker.track_attributes(instance))
            finally:
                lifecycle.close(exception)

        def _close(instance, args, kwargs, result, exception):
            lifecycle.close(exception)

        def _traced_init(instance, args, kwargs, call_site):
            options = _arg(args, kwargs, 0, "options")
            if options is None and "host" in kwargs:
                options = kwargs
            lifecycle.open(
                self._span_name("__init__"),
                call_site,
                _extract_native_options_attributes(options),
            )

        def _connect_factory(method):
            def _traced_connect(instance, args, kwargs, call_site):
                attributes = _extract_native_connect_attributes(
                    _arg(args, kwargs, 0, "host"),
                    _arg(args, kwargs, 1, "port"),
                    _arg(args, kwargs, 6, "context"),
                )
                lifecycle.open(self._span_name(method), call_site, attributes)

            return _traced_connect

        def _traced_select(instance, args, kwargs, call_site):
            attributes = tracker.lookup(instance)
            attributes[DB_REDIS_DATABASE_INDEX] = _arg(args, kwargs, 0, "db")
            lifecycle.open(self._span_name("select"), call_site, attributes)

        def _traced_select_done(instance, args, kwargs, result, exception):
            span = lifecycle.current()
            if span is None:
                return
            try:
                if exception is None:
                    tracker.track_attributes(instance)
                    tracker.track_db_index(
                        instance, _arg(args, kwargs, 0, "db")
                    )
                    span.set_attributes(tracker.lookup(instance))
            finally:
                lifecycle.close(exception)

        def _command_factory(method):
            def _traced_command(instance, args, kwargs, call_site):
                attributes = tracker.lookup(instance)
                statement = _safe_statement(
                    _statement_for, method, args, kwargs
                )
                if statement is not None:
                    attributes[DB_STATEMENT] = statement
                lifecycle.open(self._span_name(method), call_site, attributes)

            return _traced_command

        hooks: Hooks = {
            "__init__": (_traced_init, _refresh_and_close),
            "select": (_traced_select, _traced_select_done),
            "reset": (_command_factory("reset"), _refresh_and_close),
        }
        for method in _CONNECT_METHODS:
            hooks[method] = (_connect_factory(method), _refresh_and_close)
        for method in (
            "get",
            "set",
            "setex",
            "scan",
            "sadd",
            "srem",
            *_VARARGS_METHODS,
            *_SIMPLE_METHODS,
        ):
            hooks[method] = (_command_factory(method), _close)
        return hooks

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
Tracing of Credis clients: clients dispatching every command through a
generic ``call(name, args)`` method that builds the request with
``_prepare_command(args)``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from opentelemetry.instrumentation.redis_clients.environment_variables import (
    OTEL_PYTHON_CREDIS_CLIENT_CLASS,
)
from opentelemetry.instrumentation.redis_clients.hooks import (
    ClientInstrumentor,
)
from opentelemetry.instrumentation.redis_clients.util import (
    _arg,
    _credis_connection_attributes,
    _extract_credis_constructor_attributes,
    _first_list_item,
    _format_prepared_command,
    _safe_statement,
)
from opentelemetry.semconv._incubating.attributes.db_attributes import (
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


class CredisInstrumentor(ClientInstrumentor):
    """An instrumentor for Credis clients

    See `BaseInstrumentor`
    """

    span_prefix = "Credis"
    client_class_env = OTEL_PYTHON_CREDIS_CLIENT_CLASS
    _extract_attributes = staticmethod(_credis_connection_attributes)

    def _hooks(
        self, lifecycle: SpanLifecycle, tracker: RedisAttributeTracker
    ) -> Hooks:
        def _traced_init(instance, args, kwargs, call_site):
            attributes = _extract_credis_constructor_attributes(
                _arg(args, kwargs, 0, "host"),
                _arg(args, kwargs, 1, "port"),
                _arg(args, kwargs, 4, "db"),
                _arg(args, kwargs, 6, "username"),
            )
            lifecycle.open(self._span_name("__init__"), call_site, attributes)

        def _traced_init_done(instance, args, kwargs, result, exception):
            span = lifecycle.current()
            if span is None:
                return
            try:
                tracker.track_attributes(instance)
                username = _arg(args, kwargs, 6, "username")
                if username:
                    tracker.track_user(instance, username)
                span.set_attributes(tracker.lookup(instance))
            finally:
                lifecycle.close(exception)

        def _track_auth(instance, args, kwargs, call_site):
            username = _arg(args, kwargs, 1, "username")
            if username:
                tracker.track_user(instance, username)

        def _traced_call(instance, args, kwargs, call_site):
            name = str(_arg(args, kwargs, 0, "name")).lower()
            lifecycle.open(
                self._span_name(name), call_site, tracker.lookup(instance)
            )

        def _traced_call_done(instance, args, kwargs, result, exception):
            try:
                name = str(_arg(args, kwargs, 0, "name")).lower()
                if name == "select" and exception is None:
                    index = _first_list_item(_arg(args, kwargs, 1, "args"))
                    if isinstance(index, int) and not isinstance(index, bool):
                        tracker.track_db_index(instance, index)
            finally:
                lifecycle.close(exception)

        def _traced_prepare_command(instance, args, kwargs, call_site):
            span = lifecycle.current()
            if span is None:
                return
            statement = _safe_statement(
                _format_prepared_command, _arg(args, kwargs, 0, "args")
            )
            if statement is not None:
                span.set_attribute(DB_STATEMENT, statement)

        return {
            "__init__": (_traced_init, _traced_init_done),
            "auth": (_track_auth, None),
            "call": (_traced_call, _traced_call_done),
            "_prepare_command": (_traced_prepare_command, None),
        }

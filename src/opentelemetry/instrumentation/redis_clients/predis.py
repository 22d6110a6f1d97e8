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
Tracing of Predis clients: clients wrapping a connection object and sending
every command object through ``execute_command``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from opentelemetry.instrumentation.redis_clients.environment_variables import (
    OTEL_PYTHON_PREDIS_CLIENT_CLASS,
)
from opentelemetry.instrumentation.redis_clients.hooks import (
    ClientInstrumentor,
)
from opentelemetry.instrumentation.redis_clients.util import (
    _arg,
    _extract_predis_parameters_attributes,
    _format_predis_statement,
    _predis_connection_attributes,
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

_logger = logging.getLogger(__name__)


class PredisInstrumentor(ClientInstrumentor):
    """An instrumentor for Predis clients

    See `BaseInstrumentor`
    """

    span_prefix = "Predis"
    client_class_env = OTEL_PYTHON_PREDIS_CLIENT_CLASS
    _extract_attributes = staticmethod(_predis_connection_attributes)

    def _hooks(
        self, lifecycle: SpanLifecycle, tracker: RedisAttributeTracker
    ) -> Hooks:
        def _traced_init(instance, args, kwargs, call_site):
            attributes = _extract_predis_parameters_attributes(
                _arg(args, kwargs, 0, "parameters"),
                _arg(args, kwargs, 1, "options"),
            )
            lifecycle.open(self._span_name("__init__"), call_site, attributes)

        def _traced_init_done(instance, args, kwargs, result, exception):
            span = lifecycle.current()
            if span is None:
                return
            try:
                span.set_attributes(tracker.track_attributes(instance))
            finally:
                lifecycle.close(exception)

        def _traced_execute_command(instance, args, kwargs, call_site):
            attributes = tracker.lookup(instance)
            statement = _safe_statement(
                _format_predis_statement, _arg(args, kwargs, 0, "command")
            )
            if statement is not None:
                attributes[DB_STATEMENT] = statement
            lifecycle.open(
                self._span_name("execute_command"), call_site, attributes
            )

        def _traced_execute_command_done(
            instance, args, kwargs, result, exception
        ):
            span = lifecycle.current()
            if span is None:
                return
            try:
                command_id = _arg(args, kwargs, 0, "command").get_id()
            except AttributeError:
                _logger.debug("Predis command without an id", exc_info=True)
            else:
                span.update_name(self._span_name(command_id))
            finally:
                lifecycle.close(exception)

        return {
            "__init__": (_traced_init, _traced_init_done),
            "execute_command": (
                _traced_execute_command,
                _traced_execute_command_done,
            ),
        }

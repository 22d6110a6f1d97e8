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

import logging
import weakref
from typing import TYPE_CHECKING, Any

from opentelemetry.semconv._incubating.attributes.db_attributes import (
    DB_REDIS_DATABASE_INDEX,
    DB_SYSTEM,
    DB_USER,
    DbSystemValues,
)

if TYPE_CHECKING:
    from opentelemetry.instrumentation.redis_clients.custom_types import (
        Attributes,
        ConnectionExtractor,
    )

_logger = logging.getLogger(__name__)


class RedisAttributeTracker:
    """Remembers the connection attributes of live redis clients.

    Entries are keyed by client identity and dropped when the client is
    garbage collected; the tracker never keeps a client alive.
    """

    def __init__(self, extract: ConnectionExtractor):
        self._extract = extract
        self._attributes: dict[int, Attributes] = {}

    def track_attributes(self, client: Any) -> Attributes:
        """Derive the connection attributes of ``client`` and remember them.

        Returns an empty dict, and stores nothing, while the client has no
        resolved connection. If the client does not support the
        introspection calls, ``db.system`` falls back to ``other_sql``.
        """
        attributes: Attributes = {DB_SYSTEM: DbSystemValues.REDIS.value}
        try:
            if not self._extract(client, attributes):
                return {}
        except Exception:  # pylint: disable=broad-exception-caught
            _logger.debug(
                "Unable to read the connection attributes of %r",
                client,
                exc_info=True,
            )
            attributes[DB_SYSTEM] = DbSystemValues.OTHER_SQL.value
        self._store(client, attributes)
        return dict(attributes)

    def lookup(self, client: Any) -> Attributes:
        return dict(self._attributes.get(id(client), {}))

    def track_db_index(self, client: Any, index: int) -> None:
        entry = self._entry(client)
        if entry is not None:
            entry[DB_REDIS_DATABASE_INDEX] = index

    def track_user(self, client: Any, user: str) -> None:
        entry = self._entry(client)
        if entry is not None:
            entry[DB_USER] = user

    def _entry(self, client: Any) -> Attributes | None:
        key = id(client)
        if key not in self._attributes and not self._store(client, {}):
            return None
        return self._attributes[key]

    def _store(self, client: Any, attributes: Attributes) -> bool:
        key = id(client)
        if key not in self._attributes:
            try:
                weakref.finalize(client, self._attributes.pop, key, None)
            except TypeError:
                _logger.debug(
                    "%s does not support weak references, attributes are not cached",
                    type(client).__qualname__,
                )
                return False
        self._attributes[key] = attributes
        return True

    def __len__(self) -> int:
        return len(self._attributes)

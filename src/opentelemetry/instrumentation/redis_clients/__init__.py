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
#
"""
Instrument Redis clients of three different shapes to report Redis commands.

* ``RedisInstrumentor``: native clients, exposing ``get_host()``,
  ``get_port()``, ``get_db_num()`` and ``get_auth()`` and one method per
  command (``get``, ``set``, ``setex``, ``select``...).
* ``PredisInstrumentor``: clients wrapping a connection (``get_connection()``)
  and sending command objects through ``execute_command``.
* ``CredisInstrumentor``: clients dispatching every command through
  ``call(name, args)``.

Every hooked method reports one ``CLIENT`` span named
``<Prefix>::<method>`` carrying the connection attributes of the client
(``db.system``, ``server.address``, ``server.port``, ``network.transport``,
``db.redis.database_index``, ``db.user``) and a sanitized ``db.statement``
where a command is known.

Instrument All Clients
----------------------

.. code:: python

    from opentelemetry.instrumentation.redis_clients import RedisInstrumentor
    from mycompany.cache import Redis

    # Instrument the client class
    RedisInstrumentor().instrument(client_class=Redis)

    # This will report a "Redis::__init__" span
    client = Redis({"host": "localhost", "port": 6379})

    # This will report a "Redis::get" span with db.statement "GET my-key"
    client.get("my-key")

The class can also be named through the environment, which is what
auto-instrumentation relies on::

    export OTEL_PYTHON_REDIS_CLIENT_CLASS=mycompany.cache:Redis
    export OTEL_PYTHON_PREDIS_CLIENT_CLASS=mycompany.predis:Client
    export OTEL_PYTHON_CREDIS_CLIENT_CLASS=mycompany.credis:Client

Instrument Single Client
------------------------

.. code:: python

    from opentelemetry.instrumentation.redis_clients import PredisInstrumentor

    client = Client({"host": "localhost", "port": 6379})
    PredisInstrumentor().instrument_client(client)

    # This will report a "Predis::GET" span
    client.get("my-key")

Statements
----------

Only the key of a command is recorded, values are replaced with ``?``:
``SET my-key ?``, ``SETEX my-key 60 ?``, ``SADD my-set ? ?``. Key-only
commands (``exists``, ``delete``, ``unlink``, ``mget``) list all of their
keys: ``MGET key-1 key-2``.

API
---
"""

from opentelemetry.instrumentation.redis_clients.credis import (
    CredisInstrumentor,
)
from opentelemetry.instrumentation.redis_clients.native import (
    RedisInstrumentor,
)
from opentelemetry.instrumentation.redis_clients.predis import (
    PredisInstrumentor,
)

__all__ = [
    "CredisInstrumentor",
    "PredisInstrumentor",
    "RedisInstrumentor",
]

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
from unittest import TestCase

from opentelemetry.instrumentation.redis_clients.util import (
    _extract_credis_constructor_attributes,
    _extract_native_connect_attributes,
    _extract_native_options_attributes,
    _extract_predis_parameters_attributes,
    _format_prepared_command,
    _format_scan_statement,
    _format_set_statement,
    _format_statement,
    _format_varargs_statement,
    _safe_statement,
)
from opentelemetry.semconv._incubating.attributes.db_attributes import (
    DB_REDIS_DATABASE_INDEX,
    DB_USER,
)
from opentelemetry.semconv.attributes.network_attributes import (
    NETWORK_TRANSPORT,
)
from opentelemetry.semconv.attributes.server_attributes import (
    SERVER_ADDRESS,
    SERVER_PORT,
)


class TestStatements(TestCase):
    def test_format_statement_masks_values(self):
        self.assertEqual(
            _format_statement("SET", ["test-set", "OK"]), "SET test-set ?"
        )
        self.assertEqual(
            _format_statement("SETEX", ["test-setex", 60, "OK"], revealed=2),
            "SETEX test-setex 60 ?",
        )
        self.assertEqual(
            _format_statement("SETEX", ["test-setex", 60, "OK"]),
            "SETEX test-setex ? ?",
        )

    def test_format_statement_flattens_sequences(self):
        self.assertEqual(
            _format_statement("SADD", ["test-sadd", ["test", "result", "OK"]]),
            "SADD test-sadd ? ? ?",
        )
        self.assertEqual(
            _format_statement("SADD", ("test-sadd", "test", "result")),
            "SADD test-sadd ? ?",
        )
        self.assertEqual(_format_statement("PING", []), "PING")

    def test_format_statement_truncated(self):
        statement = _format_statement("GET", ["k" * 2000])
        self.assertEqual(len(statement), 1000)
        self.assertTrue(statement.startswith("GET kkk"))
        self.assertTrue(statement.endswith("..."))

    def test_set_statement(self):
        self.assertEqual(_format_set_statement("key"), "SET key ?")
        self.assertEqual(_format_set_statement("key", 60), "SET key ? EX 60")
        self.assertEqual(
            _format_set_statement("key", {"ex": 60, "nx": True}),
            "SET key ? EX 60 NX",
        )
        self.assertEqual(
            _format_set_statement("key", {"PX": 500, "GET": False}),
            "SET key ? PX 500",
        )
        self.assertEqual(
            _format_set_statement("key", ["xx", "keepttl", "unknown"]),
            "SET key ? XX KEEPTTL",
        )
        self.assertEqual(
            _format_set_statement("key", {"retry": 3}), "SET key ?"
        )

    def test_scan_statement(self):
        self.assertEqual(_format_scan_statement(0), "SCAN 0")
        self.assertEqual(
            _format_scan_statement(0, "user:*", 100),
            "SCAN 0 MATCH user:* COUNT 100",
        )
        self.assertEqual(
            _format_scan_statement(12, None, None, "hash"),
            "SCAN 12 TYPE hash",
        )

    def test_varargs_statement(self):
        self.assertEqual(
            _format_varargs_statement("delete", ("a", "b")), "DELETE a b"
        )
        self.assertEqual(
            _format_varargs_statement("mget", (["a", "b"],)), "MGET a b"
        )
        self.assertIsNone(_format_varargs_statement("exists", ()))
        self.assertIsNone(_format_varargs_statement("exists", ([],)))

    def test_prepared_command(self):
        self.assertEqual(
            _format_prepared_command(["SET", "key", "value"]), "SET key ?"
        )
        self.assertEqual(_format_prepared_command(["GET", "key"]), "GET key")
        self.assertIsNone(_format_prepared_command([]))

    def test_safe_statement(self):
        def _broken(command):
            raise ValueError(command)

        with self.assertLogs(
            "opentelemetry.instrumentation.redis_clients.util", "DEBUG"
        ):
            self.assertIsNone(_safe_statement(_broken, "GET"))
        self.assertEqual(
            _safe_statement(_format_prepared_command, ["GET", "key"]),
            "GET key",
        )


class TestArgumentAttributes(TestCase):
    def test_native_options(self):
        self.assertEqual(
            _extract_native_options_attributes(
                {"host": "redis", "port": 6380, "auth": ["test", "passwd"]}
            ),
            {
                SERVER_ADDRESS: "redis",
                SERVER_PORT: 6380,
                NETWORK_TRANSPORT: "tcp",
                DB_USER: "test",
            },
        )
        self.assertEqual(
            _extract_native_options_attributes({"host": "/tmp/redis.sock"}),
            {SERVER_ADDRESS: "/tmp/redis.sock", NETWORK_TRANSPORT: "unix"},
        )
        self.assertEqual(_extract_native_options_attributes(None), {})
        self.assertEqual(_extract_native_options_attributes({"port": 1}), {})

    def test_native_options_password_only(self):
        attributes = _extract_native_options_attributes(
            {"host": "redis", "auth": ["passwd"]}
        )
        self.assertNotIn(DB_USER, attributes)
        self.assertEqual(attributes[SERVER_PORT], 6379)

    def test_native_connect(self):
        self.assertEqual(
            _extract_native_connect_attributes(
                "redis", None, {"auth": ["test", "passwd"]}
            ),
            {
                SERVER_ADDRESS: "redis",
                SERVER_PORT: 6379,
                NETWORK_TRANSPORT: "tcp",
                DB_USER: "test",
            },
        )
        self.assertEqual(
            _extract_native_connect_attributes("unix:/run/redis", 0, None),
            {SERVER_ADDRESS: "unix:/run/redis", NETWORK_TRANSPORT: "unix"},
        )
        self.assertEqual(_extract_native_connect_attributes("", 1, None), {})

    def test_predis_mapping(self):
        self.assertEqual(
            _extract_predis_parameters_attributes(
                {
                    "scheme": "tcp",
                    "host": "redis",
                    "port": 6379,
                    "username": "top",
                    "parameters": {"username": "nested"},
                },
                None,
            ),
            {
                SERVER_ADDRESS: "redis",
                SERVER_PORT: 6379,
                NETWORK_TRANSPORT: "tcp",
                DB_USER: "nested",
            },
        )

    def test_predis_list_and_options(self):
        self.assertEqual(
            _extract_predis_parameters_attributes(
                [{"path": "/tmp/redis.sock"}, {"host": "replica"}],
                {"parameters": {"username": "test"}},
            ),
            {
                SERVER_ADDRESS: "/tmp/redis.sock",
                NETWORK_TRANSPORT: "unknown",
                DB_USER: "test",
            },
        )

    def test_predis_uri(self):
        self.assertEqual(
            _extract_predis_parameters_attributes(
                "tcp://test@redis:6380", None
            ),
            {
                SERVER_ADDRESS: "redis",
                SERVER_PORT: 6380,
                NETWORK_TRANSPORT: "tcp",
                DB_USER: "test",
            },
        )
        self.assertEqual(
            _extract_predis_parameters_attributes(
                "unix:///tmp/redis.sock", None
            ),
            {SERVER_ADDRESS: "/tmp/redis.sock", NETWORK_TRANSPORT: "unix"},
        )

    def test_predis_null_port(self):
        self.assertEqual(
            _extract_predis_parameters_attributes(
                {"host": "redis", "port": None}, None
            ),
            {
                SERVER_ADDRESS: "redis",
                SERVER_PORT: "unknown",
                NETWORK_TRANSPORT: "unknown",
            },
        )
        self.assertEqual(
            _extract_predis_parameters_attributes("tcp://redis", None),
            {
                SERVER_ADDRESS: "redis",
                SERVER_PORT: "unknown",
                NETWORK_TRANSPORT: "tcp",
            },
        )

    def test_predis_unsupported(self):
        self.assertEqual(_extract_predis_parameters_attributes(42, None), {})
        self.assertEqual(_extract_predis_parameters_attributes([], None), {})

    def test_credis_constructor(self):
        self.assertEqual(
            _extract_credis_constructor_attributes(None, None, None, None),
            {
                SERVER_ADDRESS: "127.0.0.1",
                SERVER_PORT: 6379,
                NETWORK_TRANSPORT: "tcp",
                DB_REDIS_DATABASE_INDEX: 0,
            },
        )
        self.assertEqual(
            _extract_credis_constructor_attributes(
                "unix:///tmp/redis.sock", 6380, 3, "test"
            ),
            {
                SERVER_ADDRESS: "unix:///tmp/redis.sock",
                SERVER_PORT: 6380,
                NETWORK_TRANSPORT: "unix",
                DB_REDIS_DATABASE_INDEX: 3,
                DB_USER: "test",
            },
        )

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
Some utils used by the redis client integrations
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Callable
from urllib.parse import urlparse

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

if TYPE_CHECKING:
    from opentelemetry.instrumentation.redis_clients.custom_types import (
        Attributes,
        CredisClient,
        PredisClient,
        PredisCommand,
        RedisClient,
    )

_logger = logging.getLogger(__name__)

_DEFAULT_PORT = 6379
_CMD_MAX_LEN = 1000
_VALUE_TOO_LONG_MARK = "..."
_MASK = "?"

_SET_OPTIONS = ("EX", "PX", "EXAT", "PXAT", "NX", "XX", "KEEPTTL", "GET")
_PREDIS_FIELDS = ("scheme", "host", "port", "path", "username", "parameters")
_SCHEME_PATTERN = re.compile(r"^(tcp|unix)://(.+)$")


def _arg(args: tuple, kwargs: dict, index: int, name: str, default=None):
    """Positional-or-keyword argument of a hooked call"""
    if len(args) > index:
        return args[index]
    return kwargs.get(name, default)


def _is_unix_socket(host: str) -> bool:
    return "/" in host or host.startswith("unix:")


def _field(obj, name: str):
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def _to_int(value):
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return value


def _first_list_item(value):
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


#
# connection attributes of already constructed clients
#
def _native_connection_attributes(
    client: RedisClient, attributes: Attributes
) -> bool:
    host = client.get_host()
    if not host:
        return False
    attributes[SERVER_ADDRESS] = host
    if _is_unix_socket(host):
        attributes[NETWORK_TRANSPORT] = "unix"
    else:
        attributes[SERVER_PORT] = client.get_port() or _DEFAULT_PORT
    db_num = client.get_db_num()
    if db_num:
        attributes[DB_REDIS_DATABASE_INDEX] = db_num
    auth = client.get_auth()
    if isinstance(auth, (list, tuple)) and len(auth) > 1:
        attributes[DB_USER] = auth[0]
    return True


def _normalize_predis_parameters(parameters) -> dict[str, Any]:
    return {name: _field(parameters, name) for name in _PREDIS_FIELDS}


def _predis_connection_attributes(
    client: PredisClient, attributes: Attributes
) -> bool:
    connection = client.get_connection()
    get_parameters = getattr(connection, "get_parameters", None)
    if get_parameters is None:
        # aggregate connections (cluster, replication) carry no single node
        return True
    parameters = _normalize_predis_parameters(get_parameters())
    attributes[SERVER_ADDRESS] = (
        parameters["host"] or parameters["path"] or "unknown"
    )
    if parameters["port"] is not None:
        attributes[SERVER_PORT] = parameters["port"]
    if parameters["scheme"] is not None:
        attributes[NETWORK_TRANSPORT] = str(parameters["scheme"]).lower()
    nested = parameters["parameters"]
    database = _field(nested, "database")
    if database is not None:
        attributes[DB_REDIS_DATABASE_INDEX] = _to_int(database)
    user = _field(nested, "username")
    if user is None:
        user = parameters["username"]
    if user is not None:
        attributes[DB_USER] = user
    return True


def _credis_connection_attributes(
    client: CredisClient, attributes: Attributes
) -> bool:
    host = client.get_host()
    if not host:
        return False
    attributes[SERVER_ADDRESS] = host
    match = _SCHEME_PATTERN.match(host)
    scheme = match.group(1) if match else None
    if scheme == "unix" or (scheme is None and _is_unix_socket(host)):
        attributes[NETWORK_TRANSPORT] = "unix"
    else:
        if scheme is not None:
            attributes[NETWORK_TRANSPORT] = scheme
        attributes[SERVER_PORT] = client.get_port() or _DEFAULT_PORT
    selected_db = client.get_selected_db()
    if selected_db is not None:
        attributes[DB_REDIS_DATABASE_INDEX] = selected_db
    return True


#
# connection attributes from constructor / connect arguments
#
def _extract_host_attributes(host: str, port) -> Attributes:
    attributes = {SERVER_ADDRESS: host}
    if _is_unix_socket(host):
        attributes[NETWORK_TRANSPORT] = "unix"
    else:
        attributes[NETWORK_TRANSPORT] = "tcp"
        attributes[SERVER_PORT] = port if port is not None else _DEFAULT_PORT
    return attributes


def _extract_auth_user(auth):
    if isinstance(auth, (list, tuple)) and len(auth) > 1:
        return auth[0]
    return None


def _extract_native_options_attributes(options) -> Attributes:
    """Transform the native client constructor options into attributes"""
    if not isinstance(options, Mapping) or not options.get("host"):
        return {}
    attributes = _extract_host_attributes(
        str(options["host"]), options.get("port")
    )
    user = _extract_auth_user(options.get("auth"))
    if user is not None:
        attributes[DB_USER] = user
    return attributes


def _extract_native_connect_attributes(host, port, context) -> Attributes:
    """Transform ``connect``/``pconnect`` arguments into attributes"""
    if not host:
        return {}
    attributes = _extract_host_attributes(str(host), port)
    if isinstance(context, Mapping):
        user = _extract_auth_user(context.get("auth"))
        if user is not None:
            attributes[DB_USER] = user
    return attributes


def _parse_predis_uri(uri: str) -> dict[str, Any]:
    parsed = urlparse(uri)
    parameters = {"scheme": parsed.scheme or None}
    if parsed.scheme == "unix":
        parameters["path"] = parsed.path
    else:
        parameters["host"] = parsed.hostname
        parameters["port"] = parsed.port
    if parsed.username:
        parameters["username"] = parsed.username
    return parameters


def _extract_predis_parameters_attributes(parameters, options) -> Attributes:
    """Transform Predis constructor parameters and options into attributes"""
    parameters = _first_list_item(parameters)
    if isinstance(parameters, str):
        parameters = _parse_predis_uri(parameters)
    if not isinstance(parameters, Mapping):
        return {}
    attributes = {
        SERVER_ADDRESS: parameters.get("host")
        or parameters.get("path")
        or "unknown",
        NETWORK_TRANSPORT: parameters.get("scheme") or "unknown",
    }
    if "port" in parameters:
        port = parameters["port"]
        attributes[SERVER_PORT] = port if port is not None else "unknown"
    user = (
        _field(parameters.get("parameters"), "username")
        or parameters.get("username")
        or _field(_field(options, "parameters"), "username")
    )
    if user:
        attributes[DB_USER] = user
    return attributes


def _extract_credis_constructor_attributes(
    host, port, db, username
) -> Attributes:
    """Transform Credis constructor arguments into attributes"""
    host = host or "127.0.0.1"
    match = _SCHEME_PATTERN.match(host)
    attributes = {
        SERVER_ADDRESS: host,
        SERVER_PORT: port if port is not None else _DEFAULT_PORT,
        NETWORK_TRANSPORT: match.group(1) if match else "tcp",
        DB_REDIS_DATABASE_INDEX: db if db is not None else 0,
    }
    if username:
        attributes[DB_USER] = username
    return attributes


#
# statements
#
def _truncate(statement: str) -> str:
    if len(statement) > _CMD_MAX_LEN:
        return (
            statement[: _CMD_MAX_LEN - len(_VALUE_TOO_LONG_MARK)]
            + _VALUE_TOO_LONG_MARK
        )
    return statement


def _format_statement(command: str, args, revealed: int = 1) -> str:
    """Format and sanitize command arguments

    The first ``revealed`` arguments (the key, usually) are shown, the rest
    is replaced by ``?``. Sequence arguments count one token per element.
    Sanitized format: ``"COMMAND key ? ?"``
    """
    out = [str(command)]
    for index, arg in enumerate(args):
        values = arg if isinstance(arg, (list, tuple)) else (arg,)
        if index < revealed:
            out.extend(str(value) for value in values)
        else:
            out.extend(_MASK for _ in values)
    return _truncate(" ".join(out))


def _format_set_options(options) -> list[str]:
    if isinstance(options, bool):
        return []
    if isinstance(options, int):
        options = {"EX": options}
    out = []
    if isinstance(options, Mapping):
        for name, value in options.items():
            name = str(name).upper()
            if name not in _SET_OPTIONS or value is None or value is False:
                continue
            out.append(name if value is True else f"{name} {value}")
    elif isinstance(options, (list, tuple)):
        out.extend(
            str(flag).upper()
            for flag in options
            if str(flag).upper() in _SET_OPTIONS
        )
    return out


def _format_set_statement(key, options=None) -> str:
    return _truncate(
        " ".join(["SET", str(key), _MASK, *_format_set_options(options)])
    )


def _format_scan_statement(cursor, pattern=None, count=None, type_=None):
    out = ["SCAN", str(cursor)]
    if pattern:
        out.extend(("MATCH", str(pattern)))
    if count:
        out.extend(("COUNT", str(count)))
    if type_:
        out.extend(("TYPE", str(type_)))
    return _truncate(" ".join(out))


def _format_varargs_statement(command: str, args) -> str | None:
    """Key-only commands (``exists``, ``delete``, ``unlink``, ``mget``).

    Key names are displayed as they are: these commands carry no values.
    """
    if args and isinstance(args[0], (list, tuple)):
        args = args[0]
    if not args:
        return None
    return _truncate(
        " ".join([command.upper(), *(str(arg) for arg in args)])
    )


def _format_predis_statement(command: PredisCommand) -> str:
    return _format_statement(command.get_id(), command.get_arguments())


def _format_prepared_command(args) -> str | None:
    if not args:
        return None
    return _format_statement(args[0], args[1:])


def _safe_statement(formatter: Callable[..., str | None], *args):
    try:
        return formatter(*args)
    except Exception:  # pylint: disable=broad-exception-caught
        _logger.debug("Unable to format the redis statement", exc_info=True)
        return None

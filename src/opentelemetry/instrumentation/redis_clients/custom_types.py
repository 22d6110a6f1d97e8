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

from typing import TYPE_CHECKING, Any, Callable, Dict, Protocol, Union

if TYPE_CHECKING:
    from opentelemetry.instrumentation.redis_clients.hooks import CallSite

AttributeValue = Union[str, int, bool, None]
Attributes = Dict[str, AttributeValue]

PreHook = Callable[[Any, tuple, dict, "CallSite"], None]
PostHook = Callable[[Any, tuple, dict, Any, Union[BaseException, None]], None]

# Fills the given attributes in place, returns False when the client has no
# resolved connection yet.
ConnectionExtractor = Callable[[Any, Attributes], bool]


class RedisClient(Protocol):
    def get_host(self) -> str | None: ...

    def get_port(self) -> int | None: ...

    def get_db_num(self) -> int: ...

    def get_auth(self) -> Any: ...


class PredisCommand(Protocol):
    def get_id(self) -> str: ...

    def get_arguments(self) -> list[Any]: ...


class PredisConnection(Protocol):
    def get_parameters(self) -> Any: ...


class PredisClient(Protocol):
    def get_connection(self) -> PredisConnection: ...

    def execute_command(self, command: PredisCommand) -> Any: ...


class CredisClient(Protocol):
    def get_host(self) -> str | None: ...

    def get_port(self) -> int | None: ...

    def get_selected_db(self) -> int | None: ...

    def call(self, name: str, args: list[Any]) -> Any: ...

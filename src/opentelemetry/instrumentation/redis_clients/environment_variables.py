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
Import path (``module:qualname``) of the native Redis client class to instrument
when ``RedisInstrumentor().instrument()`` is called without ``client_class``.
"""
OTEL_PYTHON_REDIS_CLIENT_CLASS = "OTEL_PYTHON_REDIS_CLIENT_CLASS"

"""
Import path (``module:qualname``) of the Predis client class to instrument
when ``PredisInstrumentor().instrument()`` is called without ``client_class``.
"""
OTEL_PYTHON_PREDIS_CLIENT_CLASS = "OTEL_PYTHON_PREDIS_CLIENT_CLASS"

"""
Import path (``module:qualname``) of the Credis client class to instrument
when ``CredisInstrumentor().instrument()`` is called without ``client_class``.
"""
OTEL_PYTHON_CREDIS_CLIENT_CLASS = "OTEL_PYTHON_CREDIS_CLIENT_CLASS"

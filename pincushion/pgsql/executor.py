#
# This source file is part of the PinCushion open source project.
#
# Copyright 2012-present the PinCushion authors.
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


"""Execution sinks: where generated DDL goes."""


from __future__ import annotations

import asyncpg

from pincushion import errors


class ExecutionSink:
    """Executes one statement at a time.

    No transaction management happens here; atomicity across several
    statements is up to whoever owns the connection.
    """

    async def execute(self, sql: str) -> None:
        raise NotImplementedError


class AsyncpgExecutionSink(ExecutionSink):

    def __init__(self, connection: asyncpg.Connection) -> None:
        self._connection = connection

    async def execute(self, sql: str) -> None:
        try:
            await self._connection.execute(sql)
        except asyncpg.PostgresError as e:
            raise errors.SqlError(
                str(e),
                statement=sql,
                pgcode=getattr(e, 'sqlstate', None),
                hint=getattr(e, 'hint', None),
                details=getattr(e, 'detail', None),
            ) from e

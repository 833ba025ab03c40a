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


"""Live catalog introspection.

Nothing here is cached: the schema is mutated between create and drop
calls, so every call reads the catalogs again.
"""


from __future__ import annotations
from typing import (
    List,
    Optional,
    Tuple,
)

import dataclasses
import logging
import textwrap

import asyncpg

from pincushion import errors
from pincushion.common import debug

from . import common
from . import types


logger = logging.getLogger('pincushion.introspection')


@dataclasses.dataclass(frozen=True)
class ColumnDescriptor:
    name: str
    semantic_type: str
    #: Catalog spelling of the column type, if known.
    sql_type: Optional[str] = None
    #: Declared length, or (precision, scale) for numeric columns.
    modifiers: Tuple[int, ...] = ()

    def ddl_type(self) -> str:
        return types.pg_type_from_semantic(
            self.semantic_type, self.modifiers)


class Introspector:
    """Read-only view of the store's schema."""

    async def get_columns(
        self,
        table: Tuple[str, str],
    ) -> List[ColumnDescriptor]:
        """Return columns of *table* in physical order.

        Raise IntrospectionError if the table does not exist.
        """
        raise NotImplementedError

    async def get_dependent_views(
        self,
        table: Tuple[str, str],
        column: str,
    ) -> List[Tuple[str, str]]:
        """Return (schema, name) of every view reading *table*.*column*."""
        raise NotImplementedError

    async def get_column_comment(
        self,
        table: Tuple[str, str],
        column: str,
    ) -> Optional[str]:
        """Return the comment on *table*.*column*.

        None if the column has no comment or does not exist.
        """
        raise NotImplementedError


COLUMNS_QUERY = textwrap.dedent('''\
    SELECT
        c.column_name,
        c.data_type,
        c.character_maximum_length,
        c.numeric_precision,
        c.numeric_scale
    FROM
        information_schema.columns c
    WHERE
        c.table_schema = $1
        AND c.table_name = $2
    ORDER BY
        c.ordinal_position
''')

# Rewrite rules of views (and rules attached to them) record a
# dependency on every table column they read.  Unlike
# information_schema.view_column_usage this does not depend on who
# owns the views.
DEPENDENT_VIEWS_QUERY = textwrap.dedent('''\
    SELECT DISTINCT
        vns.nspname AS view_schema,
        v.relname AS view_name
    FROM
        pg_catalog.pg_depend d
        INNER JOIN pg_catalog.pg_rewrite r
            ON r.oid = d.objid
        INNER JOIN pg_catalog.pg_class v
            ON v.oid = r.ev_class
        INNER JOIN pg_catalog.pg_namespace vns
            ON vns.oid = v.relnamespace
        INNER JOIN pg_catalog.pg_attribute a
            ON a.attrelid = d.refobjid AND a.attnum = d.refobjsubid
    WHERE
        d.classid = 'pg_catalog.pg_rewrite'::regclass
        AND d.refclassid = 'pg_catalog.pg_class'::regclass
        AND d.refobjid = pg_catalog.to_regclass($1)
        AND a.attname = $2
        AND v.relkind = 'v'
        AND v.oid <> d.refobjid
    ORDER BY
        view_schema,
        view_name
''')

COLUMN_COMMENT_QUERY = textwrap.dedent('''\
    SELECT
        pg_catalog.col_description(a.attrelid, a.attnum) AS comment
    FROM
        pg_catalog.pg_attribute a
    WHERE
        a.attrelid = pg_catalog.to_regclass($1)
        AND a.attname = $2
        AND NOT a.attisdropped
''')


def _modifiers(row) -> Tuple[int, ...]:
    length = row['character_maximum_length']
    if length is not None:
        return (length,)
    # numeric_precision is also reported for integer and float types,
    # which take no modifier.
    if row['data_type'] == 'numeric' and row['numeric_precision'] is not None:
        return (row['numeric_precision'], row['numeric_scale'])
    return ()


class AsyncpgIntrospector(Introspector):

    def __init__(self, connection: asyncpg.Connection) -> None:
        self._connection = connection

    async def _fetch(self, query: str, *args):
        if debug.flags.introspection:
            debug.header('Introspection')
            debug.print(query, args)

        try:
            return await self._connection.fetch(query, *args)
        except asyncpg.PostgresError as e:
            raise errors.IntrospectionError(
                f'could not read catalog: {e}',
                details=query,
            ) from e

    async def get_columns(
        self,
        table: Tuple[str, str],
    ) -> List[ColumnDescriptor]:
        rows = await self._fetch(COLUMNS_QUERY, *table)
        if not rows:
            raise errors.IntrospectionError(
                f'table {".".join(table)} does not exist or has no columns',
            )

        columns = [
            ColumnDescriptor(
                name=row['column_name'],
                semantic_type=types.semantic_type_from_pg(row['data_type']),
                sql_type=row['data_type'],
                modifiers=_modifiers(row),
            )
            for row in rows
        ]
        logger.debug(
            'introspected %s: %s',
            '.'.join(table), ', '.join(c.name for c in columns))
        return columns

    async def get_dependent_views(
        self,
        table: Tuple[str, str],
        column: str,
    ) -> List[Tuple[str, str]]:
        rows = await self._fetch(
            DEPENDENT_VIEWS_QUERY, common.qname(*table), column)
        return [(row['view_schema'], row['view_name']) for row in rows]

    async def get_column_comment(
        self,
        table: Tuple[str, str],
        column: str,
    ) -> Optional[str]:
        rows = await self._fetch(
            COLUMN_COMMENT_QUERY, common.qname(*table), column)
        if not rows:
            return None
        return rows[0]['comment']

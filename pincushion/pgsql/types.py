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


"""Semantic column types and their PostgreSQL DDL spelling."""


from __future__ import annotations

from typing import Mapping, Sequence

from pincushion import errors


# Semantic type -> type literal used when declaring composite types.
# Every catalog type below must map back to the literal it came from:
# a rule's RETURNING list is checked against the row type column by
# column, type modifiers included.
base_type_name_map: Mapping[str, str] = {
    'boolean': 'boolean',
    'smallint': 'smallint',
    'integer': 'integer',
    'bigint': 'bigint',
    'real': 'real',
    'float': 'double precision',
    'decimal': 'numeric',
    'string': 'character varying',
    'character': 'character',
    'text': 'text',
    'datetime': 'timestamp without time zone',
    'timestamptz': 'timestamp with time zone',
    'date': 'date',
    'time': 'time without time zone',
    'binary': 'bytea',
    'uuid': 'uuid',
    'json': 'json',
    'jsonb': 'jsonb',
}

# information_schema.columns.data_type -> semantic type.
pg_type_semantic_map: Mapping[str, str] = {
    literal: semantic for semantic, literal in base_type_name_map.items()
}

# Semantic types that accept a (length) or (precision, scale) modifier.
modified_types = frozenset(('string', 'character', 'decimal'))


def pg_type_from_semantic(
    semantic_type: str,
    modifiers: Sequence[int] = (),
) -> str:
    try:
        literal = base_type_name_map[semantic_type]
    except KeyError:
        raise errors.TypeMappingError(
            f'no DDL type mapping for semantic type {semantic_type!r}',
            hint=(
                'supported semantic types are: '
                + ', '.join(sorted(base_type_name_map))
            ),
        ) from None

    if modifiers:
        if semantic_type not in modified_types:
            raise errors.TypeMappingError(
                f'semantic type {semantic_type!r} takes no type modifiers',
            )
        literal += '(' + ','.join(str(m) for m in modifiers) + ')'

    return literal


def semantic_type_from_pg(data_type: str) -> str:
    """Fold a catalog data type into a semantic type.

    Unknown catalog types are returned as is, so that declaring them
    later fails in pg_type_from_semantic() instead of producing an
    empty type literal.
    """
    return pg_type_semantic_map.get(data_type, data_type)

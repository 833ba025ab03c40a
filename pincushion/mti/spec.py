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


from __future__ import annotations
from typing import (
    Optional,
    Sequence,
    Tuple,
)

import dataclasses
import re

from pincushion import errors
from pincushion.pgsql import common


_IDENT_RE = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')
_PREFIX_RE = re.compile(r'^[A-Za-z0-9_]*$')

_SINGULAR_RULES = (
    (re.compile(r'(?i)([^aeiouy])ies$'), r'\1y'),
    (re.compile(r'(?i)(ss|x|ch|sh)es$'), r'\1'),
    (re.compile(r'(?i)([^s])s$'), r'\1'),
)


class Identifier(str):
    """A table, column, type or function name safe to splice into DDL.

    Only plain identifiers are admitted, and never anything PostgreSQL
    would silently truncate.
    """

    def __new__(cls, value: str, *, what: str = 'identifier') -> Identifier:
        if not isinstance(value, str) or not _IDENT_RE.match(value):
            raise errors.SpecValidationError(
                f'invalid {what}: {value!r}',
                hint='identifiers must match [A-Za-z_][A-Za-z0-9_]*',
            )
        if len(value.encode('utf-8')) > common.MAX_IDENTIFIER_LENGTH:
            raise errors.SpecValidationError(
                f'{what} {value!r} is longer than '
                f'{common.MAX_IDENTIFIER_LENGTH} bytes',
            )
        return super().__new__(cls, value)


def singularize(word: str) -> str:
    for pattern, repl in _SINGULAR_RULES:
        result, n = pattern.subn(repl, word)
        if n:
            return result
    return word


@dataclasses.dataclass(frozen=True)
class InheritanceSpec:
    """What to compile: one parent table, one child table.

    All fields are resolved by the caller; defaults mirror the naming
    conventions of the generated objects.
    """

    parent_table: str
    child_table: str
    parent_type_name: str
    child_type_name: str
    table_prefix: str = 'view_'
    schema: str = 'public'
    sequence_name: Optional[str] = None
    child_sequence_name: Optional[str] = None
    foreign_key_column: Optional[str] = None
    fetch_function_name: Optional[str] = None
    extra_conditions: str | Sequence[str] | None = None

    def __post_init__(self) -> None:
        set_ = object.__setattr__

        for field in ('parent_table', 'child_table', 'parent_type_name',
                      'schema'):
            set_(self, field, Identifier(
                getattr(self, field), what=field.replace('_', ' ')))

        if not isinstance(self.child_type_name, str) \
                or not self.child_type_name:
            raise errors.SpecValidationError(
                'child type name must be a non-empty string')

        if not isinstance(self.table_prefix, str) \
                or not _PREFIX_RE.match(self.table_prefix):
            raise errors.SpecValidationError(
                f'invalid table prefix: {self.table_prefix!r}')

        if self.parent_table == self.child_table:
            raise errors.SpecValidationError(
                'parent and child tables must differ')

        set_(self, 'sequence_name', Identifier(
            self.sequence_name or f'{self.parent_table}_id_seq',
            what='sequence name'))
        set_(self, 'child_sequence_name', Identifier(
            self.child_sequence_name or f'{self.child_table}_id_seq',
            what='child sequence name'))
        set_(self, 'foreign_key_column', Identifier(
            self.foreign_key_column
            or f'{singularize(self.parent_table)}_id',
            what='foreign key column'))
        set_(self, 'fetch_function_name', Identifier(
            self.fetch_function_name
            or f'GetInserted{self.parent_type_name}',
            what='fetch function name'))

        conds = self.extra_conditions
        if conds is None:
            conds = ()
        elif isinstance(conds, str):
            conds = (conds, )
        else:
            conds = tuple(conds)
        if not all(isinstance(c, str) and c.strip() for c in conds):
            raise errors.SpecValidationError(
                'extra conditions must be non-empty SQL strings')
        set_(self, 'extra_conditions', conds)

        if self.view_name == self.child_table:
            raise errors.SpecValidationError(
                'view name collides with the child table',
                hint='use a non-empty table prefix')

        # Derived names must survive without truncation as well.
        for name in self.object_names():
            Identifier(name, what='derived object name')

    @property
    def view_name(self) -> str:
        return f'{self.table_prefix}{self.child_table}'

    @property
    def type_name(self) -> str:
        return f'{self.view_name}_type'

    @property
    def insert_rule_name(self) -> str:
        return f'{self.view_name}_ins'

    @property
    def update_rule_name(self) -> str:
        return f'{self.view_name}_upd'

    @property
    def delete_rule_name(self) -> str:
        return f'{self.view_name}_del'

    @property
    def delete_function_name(self) -> str:
        return f'{self.view_name}_del_function'

    @property
    def delete_trigger_name(self) -> str:
        return f'{self.view_name}_del_trigger'

    @property
    def discriminator_column(self) -> str:
        return f'{self.parent_type_name.lower()}_type'

    def object_names(self) -> Tuple[str, ...]:
        return (
            self.view_name,
            self.type_name,
            self.fetch_function_name,  # type: ignore
            self.insert_rule_name,
            self.update_rule_name,
            self.delete_rule_name,
            self.delete_function_name,
            self.delete_trigger_name,
            self.discriminator_column,
        )

    def qualify(self, name: str) -> Tuple[str, str]:
        return (self.schema, name)

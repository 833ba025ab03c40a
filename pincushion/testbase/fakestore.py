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


"""An in-memory stand-in for a PostgreSQL schema.

FakeStore understands just enough of the DDL emitted by pincushion to
track tables, columns and the objects created on top of them, and it
enforces the object dependencies that make create/drop order matter:
a type cannot go while a function returns it, a function cannot go
while a trigger or a rule uses it, a column cannot go while a view
reads it.
"""


from __future__ import annotations
from typing import (
    Dict,
    List,
    Optional,
    Set,
    Tuple,
)

import copy
import re

from pincushion import errors
from pincushion.pgsql import executor
from pincushion.pgsql import introspection
from pincushion.pgsql import types


Name = Tuple[str, ...]
ObjectKey = Tuple[str, Name]

_TYPE_LITERAL = re.compile(r'^(.*?)(?:\((\d+(?:,\s*\d+)*)\))?$')

_IDENT = r'(?:"(?:[^"]|"")+"|\w+)'
_QNAME = rf'{_IDENT}(?:\.{_IDENT})*'
_COLREF = re.compile(rf'(?<![\w."])({_IDENT})\.({_IDENT})(?![\w."(])')

_STATEMENTS = [
    ('add_column', re.compile(
        rf'ALTER TABLE (?:IF EXISTS )?({_QNAME}) '
        rf'ADD COLUMN (IF NOT EXISTS )?({_IDENT}) (.+)$')),
    ('drop_column', re.compile(
        rf'ALTER TABLE (IF EXISTS )?({_QNAME}) '
        rf'DROP COLUMN (IF EXISTS )?({_IDENT})$')),
    ('comment_column', re.compile(
        rf"COMMENT ON COLUMN ({_QNAME}) IS '((?:[^']|'')*)'$")),
    ('create_view', re.compile(
        rf'CREATE (OR REPLACE )?VIEW ({_QNAME}) AS\n(.*)$', re.S)),
    ('create_type', re.compile(rf'CREATE TYPE ({_QNAME}) AS')),
    ('create_function', re.compile(
        rf'CREATE (OR REPLACE )?FUNCTION ({_QNAME})\(.*?\)\s*'
        rf'RETURNS (?:SETOF )?({_QNAME})', re.S)),
    ('create_rule', re.compile(
        rf'CREATE (OR REPLACE )?RULE ({_IDENT}) AS ON \w+ '
        rf'TO ({_QNAME})\n(.*)$', re.S)),
    ('create_trigger', re.compile(
        rf'CREATE TRIGGER ({_IDENT}) .*?ON ({_QNAME}).*?'
        rf'EXECUTE PROCEDURE ({_QNAME})\(\)', re.S)),
    ('drop_trigger', re.compile(
        rf'DROP TRIGGER (IF EXISTS )?({_IDENT}) ON ({_QNAME})$')),
    ('drop_function', re.compile(
        rf'DROP FUNCTION (IF EXISTS )?({_QNAME})\(')),
    ('drop_rule', re.compile(
        rf'DROP RULE (IF EXISTS )?({_IDENT}) ON ({_QNAME})$')),
    ('drop_type', re.compile(rf'DROP TYPE (IF EXISTS )?({_QNAME})$')),
    ('drop_view', re.compile(rf'DROP VIEW (IF EXISTS )?({_QNAME})$')),
]


def _unquote(ident: str) -> str:
    if ident.startswith('"'):
        return ident[1:-1].replace('""', '"')
    return ident


def _split(qname: str) -> Name:
    return tuple(
        _unquote(m.group(0)) for m in re.finditer(_IDENT, qname))


class FakeStore(introspection.Introspector, executor.ExecutionSink):

    def __init__(self) -> None:
        self.tables: Dict[Name, List[introspection.ColumnDescriptor]] = {}
        self.objects: Set[ObjectKey] = set()
        #: view -> {(table, column)} it reads
        self.view_reads: Dict[Name, Set[Tuple[Name, str]]] = {}
        #: (table, column) -> comment
        self.comments: Dict[Tuple[Name, str], str] = {}
        #: object -> objects it depends on
        self.depends: Dict[ObjectKey, Set[ObjectKey]] = {}
        self.executed: List[str] = []
        self.introspected: List[Name] = []
        self._failures: List[Tuple[str, str]] = []

    def add_table(
        self,
        name: Name,
        columns: List[Tuple],
    ) -> None:
        """Add a table; columns are (name, semantic_type[, modifiers])."""
        self.tables[name] = [
            introspection.ColumnDescriptor(
                name=c[0], semantic_type=c[1], sql_type=None,
                modifiers=tuple(c[2]) if len(c) > 2 else ())
            for c in columns
        ]

    def fail_on(self, prefix: str, message: str = 'simulated failure'):
        """Make the next statement starting with *prefix* fail."""
        self._failures.append((prefix, message))

    def column_names(self, table: Name) -> List[str]:
        return [c.name for c in self.tables[table]]

    def snapshot(self):
        return (
            copy.deepcopy(self.tables),
            set(self.objects),
            dict(self.comments),
        )

    def has(self, kind: str, name: Name) -> bool:
        return (kind, tuple(name)) in self.objects

    # Introspector

    async def get_columns(self, table):
        table = tuple(table)
        self.introspected.append(table)
        try:
            return list(self.tables[table])
        except KeyError:
            raise errors.IntrospectionError(
                f'table {".".join(table)} does not exist') from None

    async def get_dependent_views(self, table, column):
        table = tuple(table)
        return sorted(
            view for view, reads in self.view_reads.items()
            if (table, column) in reads
        )

    async def get_column_comment(self, table, column):
        return self.comments.get((tuple(table), column))

    # ExecutionSink

    async def execute(self, sql: str) -> None:
        self.executed.append(sql)

        for i, (prefix, message) in enumerate(self._failures):
            if sql.startswith(prefix):
                del self._failures[i]
                raise errors.SqlError(message, statement=sql)

        stmt = sql.strip().rstrip(';')
        for kind, pattern in _STATEMENTS:
            m = pattern.match(stmt)
            if m is not None:
                getattr(self, f'_{kind}')(*m.groups())
                return

        raise errors.SqlError(
            'syntax error: statement not understood', statement=sql)

    def _error(self, msg: str, pgcode: Optional[str] = None):
        return errors.SqlError(msg, pgcode=pgcode)

    def _table(self, qname: str) -> Name:
        name = _split(qname)
        if name not in self.tables:
            raise self._error(
                f'relation "{".".join(name)}" does not exist', '42P01')
        return name

    def _create(self, key: ObjectKey, replace: bool) -> None:
        if key in self.objects and not replace:
            raise self._error(
                f'{key[0]} "{".".join(key[1])}" already exists', '42710')
        self.objects.add(key)

    def _drop(self, key: ObjectKey, conditional: bool) -> None:
        if key not in self.objects:
            if conditional:
                return
            raise self._error(
                f'{key[0]} "{".".join(key[1])}" does not exist', '42704')

        dependents = [
            obj for obj, deps in self.depends.items()
            if key in deps and obj in self.objects
        ]
        if dependents:
            raise self._error(
                f'cannot drop {key[0]} {".".join(key[1])} because other '
                f'objects depend on it', '2BP01')

        self.objects.discard(key)
        self.depends.pop(key, None)

    def _add_column(self, table, ifnotexists, column, type_literal):
        name = self._table(table)
        column = _unquote(column)
        if column in self.column_names(name):
            if ifnotexists:
                return
            raise self._error(f'column "{column}" already exists', '42701')

        base, mods = _TYPE_LITERAL.match(type_literal).groups()
        self.tables[name].append(introspection.ColumnDescriptor(
            name=column,
            semantic_type=types.semantic_type_from_pg(base),
            sql_type=base,
            modifiers=tuple(int(m) for m in mods.split(',')) if mods else (),
        ))

    def _drop_column(self, tblifexists, table, colifexists, column):
        name = _split(table)
        if name not in self.tables:
            if tblifexists:
                return
            raise self._error(f'relation "{table}" does not exist', '42P01')

        column = _unquote(column)
        if column not in self.column_names(name):
            if colifexists:
                return
            raise self._error(f'column "{column}" does not exist', '42703')

        for view, reads in self.view_reads.items():
            if (name, column) in reads and ('view', view) in self.objects:
                raise self._error(
                    f'cannot drop column {column} because view '
                    f'{".".join(view)} depends on it', '2BP01')

        self.tables[name] = [
            c for c in self.tables[name] if c.name != column]
        self.comments.pop((name, column), None)

    def _comment_column(self, column, text):
        parts = _split(column)
        table = parts[:-1]
        if table not in self.tables:
            raise self._error(
                f'relation "{".".join(table)}" does not exist', '42P01')
        if parts[-1] not in self.column_names(table):
            raise self._error(
                f'column "{parts[-1]}" of relation "{table[-1]}" '
                f'does not exist', '42703')
        self.comments[(table, parts[-1])] = text.replace("''", "'")

    def _create_view(self, replace, view, query):
        name = _split(view)
        self._create(('view', name), bool(replace))

        schema = name[:-1]
        reads = set()
        for m in _COLREF.finditer(query):
            table = schema + (_unquote(m.group(1)),)
            if table in self.tables:
                column = _unquote(m.group(2))
                if column not in self.column_names(table):
                    self.objects.discard(('view', name))
                    raise self._error(
                        f'column {".".join(table)}.{column} does not exist',
                        '42703')
                reads.add((table, column))
        self.view_reads[name] = reads

    def _create_type(self, type_):
        self._create(('type', _split(type_)), False)

    def _create_function(self, replace, func, returns):
        key = ('function', _split(func))
        deps = set()
        ret = _split(returns)
        if len(ret) > 1:
            if ('type', ret) not in self.objects:
                raise self._error(
                    f'type "{".".join(ret)}" does not exist', '42704')
            deps.add(('type', ret))

        if key in self.objects and replace and self.depends.get(key) != deps:
            raise self._error(
                'cannot change return type of existing function', '42P13')

        self._create(key, bool(replace))
        self.depends[key] = deps

    def _create_rule(self, replace, rule, view, body):
        view_name = _split(view)
        if ('view', view_name) not in self.objects:
            raise self._error(
                f'relation "{".".join(view_name)}" does not exist', '42P01')

        key = ('rule', view_name + (_unquote(rule),))
        deps = {('view', view_name)}
        for obj in self.objects:
            if obj[0] == 'function' and f'{obj[1][-1]}' in body:
                deps.add(obj)
        self._create(key, bool(replace))
        self.depends[key] = deps

    def _create_trigger(self, trigger, table, func):
        table_name = self._table(table)
        func_name = _split(func)
        if ('function', func_name) not in self.objects:
            raise self._error(
                f'function {".".join(func_name)}() does not exist', '42883')

        key = ('trigger', table_name + (_unquote(trigger),))
        self._create(key, False)
        self.depends[key] = {('function', func_name)}

    def _drop_trigger(self, ifexists, trigger, table):
        self._drop(
            ('trigger', _split(table) + (_unquote(trigger),)),
            bool(ifexists))

    def _drop_function(self, ifexists, func):
        self._drop(('function', _split(func)), bool(ifexists))

    def _drop_rule(self, ifexists, rule, view):
        self._drop(
            ('rule', _split(view) + (_unquote(rule),)), bool(ifexists))

    def _drop_type(self, ifexists, type_):
        self._drop(('type', _split(type_)), bool(ifexists))

    def _drop_view(self, ifexists, view):
        name = _split(view)
        key = ('view', name)
        if key in self.objects:
            # Rules live and die with their view.
            for obj in list(self.objects):
                if obj[0] == 'rule' and obj[1][:-1] == name:
                    self.objects.discard(obj)
                    self.depends.pop(obj, None)
        self._drop(key, bool(ifexists))
        if key not in self.objects:
            self.view_reads.pop(name, None)

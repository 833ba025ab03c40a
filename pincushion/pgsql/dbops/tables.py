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

from typing import TypeAlias

from ..common import qname as qn
from ..common import quote_ident as qi

from . import base
from . import ddl


TableName: TypeAlias = tuple[str, ...]
ColumnName: TypeAlias = str


class Column(base.DBObject):
    def __init__(
        self,
        name: ColumnName,
        type: str,
    ) -> None:
        super().__init__()
        self.name = name
        self.type = type

    def code(self) -> str:
        return f"{qi(self.name, column=True)} {self.type}"

    def __repr__(self) -> str:
        return '<%s.%s "%s" %s>' % (
            self.__class__.__module__, self.__class__.__name__, self.name,
            self.type)


class ColumnRef(base.DBObject):
    """An existing column of a table."""

    def __init__(self, table_name: TableName, name: ColumnName) -> None:
        super().__init__()
        self.table_name = table_name
        self.name = name

    def get_type(self) -> str:
        return 'COLUMN'

    def get_id(self) -> str:
        return f'{qn(*self.table_name)}.{qi(self.name, column=True)}'


class AlterTableBase(ddl.DDLOperation):
    def __init__(self, name: TableName) -> None:
        super().__init__()
        self.name = name

    def prefix_code(self) -> str:
        return f'ALTER TABLE {qn(*self.name)}'

    def __repr__(self) -> str:
        return '<%s.%s %s>' % (
            self.__class__.__module__, self.__class__.__name__, self.name)


class AlterTableAddColumn(AlterTableBase):
    def __init__(
        self,
        name: TableName,
        column: Column,
        *,
        conditional: bool = False,
    ) -> None:
        super().__init__(name)
        self.column = column
        self.conditional = conditional

    def get_object_name(self) -> str:
        return '.'.join(self.name + (self.column.name,))

    def code(self) -> str:
        ifnotexists = ' IF NOT EXISTS' if self.conditional else ''
        return (
            f'{self.prefix_code()} ADD COLUMN{ifnotexists} '
            f'{self.column.code()}'
        )


class AlterTableDropColumn(AlterTableBase):
    def __init__(
        self,
        name: TableName,
        column_name: ColumnName,
        *,
        conditional: bool = False,
    ) -> None:
        super().__init__(name)
        self.column_name = column_name
        self.conditional = conditional

    def get_object_name(self) -> str:
        return '.'.join(self.name + (self.column_name,))

    def code(self) -> str:
        ifexists = ' IF EXISTS' if self.conditional else ''
        return (
            f'ALTER TABLE{ifexists} {qn(*self.name)} DROP COLUMN{ifexists} '
            f'{qi(self.column_name, column=True)}'
        )

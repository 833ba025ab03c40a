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
    Collection,
    Iterator,
    TypeAlias,
)

from ..common import qname as qn

from . import base
from . import ddl
from . import tables


CompositeTypeName: TypeAlias = tuple[str, str]


class CompositeType(base.DBObject):
    def __init__(
        self,
        name: CompositeTypeName,
        columns: Collection[tables.Column] = (),
    ):
        super().__init__()
        self.name = name
        self._columns = list(columns)

    def iter_columns(self) -> Iterator[tables.Column]:
        return iter(self._columns)


class CreateCompositeType(ddl.SchemaObjectOperation):
    def __init__(self, type: CompositeType) -> None:
        super().__init__(type.name)
        self.type = type

    def code(self) -> str:
        elems = [c.code() for c in self.type.iter_columns()]
        name = qn(*self.type.name)
        cols = ', '.join(c for c in elems)
        return f'CREATE TYPE {name} AS ({cols})'


class DropCompositeType(ddl.SchemaObjectOperation):
    def __init__(
        self,
        name: CompositeTypeName,
        *,
        conditional: bool = False,
    ):
        super().__init__(name)
        self.conditional = conditional

    def code(self) -> str:
        ifexists = ' IF EXISTS' if self.conditional else ''
        return f'DROP TYPE{ifexists} {qn(*self.name)}'

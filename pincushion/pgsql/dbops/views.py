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

import textwrap

from ..common import qname as qn

from . import base
from . import ddl


class View(base.DBObject):
    def __init__(self, name, query):
        super().__init__()
        self.name = name
        self.query = query

    def get_type(self) -> str:
        return "VIEW"


class CreateView(ddl.SchemaObjectOperation):
    def __init__(self, view, *, or_replace=False):
        super().__init__(view.name)
        self.view = view
        self.or_replace = or_replace

    def code(self) -> str:
        query = textwrap.indent(textwrap.dedent(self.view.query), '    ')
        return (
            f'CREATE {"OR REPLACE " if self.or_replace else ""}'
            f'{self.view.get_type()} {qn(*self.view.name)} AS\n{query}'
        )


class DropView(ddl.SchemaObjectOperation):

    def __init__(self, name, *, conditional=False):
        super().__init__(name)
        self.conditional = conditional

    def code(self) -> str:
        if self.conditional:
            return f'DROP VIEW IF EXISTS {qn(*self.name)}'
        else:
            return f'DROP VIEW {qn(*self.name)}'

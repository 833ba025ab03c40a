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


"""Query rewrite rules (CREATE RULE).

A rule attached to a view with DO INSTEAD replaces the triggering
statement with its action list.  Actions run in the listed order.
"""


from __future__ import annotations

import textwrap
from typing import (
    Sequence,
    TypeAlias,
)

from pincushion.common import enum as s_enum
from ..common import qname as qn
from ..common import quote_ident as qi

from . import base
from . import ddl
from . import tables


RuleName: TypeAlias = str


class RuleEvent(s_enum.StrEnum):
    Insert = 'insert'
    Update = 'update'
    Delete = 'delete'


class Rule(base.DBObject):
    def __init__(
        self,
        name: RuleName,
        *,
        table_name: tables.TableName,
        event: RuleEvent,
        actions: Sequence[str],
    ) -> None:
        super().__init__()

        self.name = name
        self.table_name = table_name
        self.event = event
        self.actions = tuple(actions)

    def __repr__(self) -> str:
        return '<{mod}.{cls} {name} ON {event} TO {table_name}>'.format(
            mod=self.__class__.__module__,
            cls=self.__class__.__name__,
            name=self.name,
            event=self.event,
            table_name=qn(*self.table_name),
        )


class CreateRule(ddl.CreateObject):
    def __init__(self, object: Rule, *, or_replace: bool = False) -> None:
        super().__init__(object)
        self.rule = object
        self.or_replace = or_replace

    def code(self) -> str:
        if self.rule.actions:
            actions = ';\n'.join(
                textwrap.indent(textwrap.dedent(a).strip(), '    ')
                for a in self.rule.actions
            )
            body = f'(\n{actions}\n)'
        else:
            body = 'NOTHING'

        return (
            f'CREATE {"OR REPLACE " if self.or_replace else ""}'
            f'RULE {qi(self.rule.name)} AS '
            f'ON {self.rule.event.upper()} TO {qn(*self.rule.table_name)}\n'
            f'DO INSTEAD {body}'
        )


class DropRule(ddl.DropObject):
    def __init__(
        self,
        object: Rule,
        *,
        conditional: bool = False,
    ) -> None:
        super().__init__(object, conditional=conditional)
        self.rule = object

    def code(self) -> str:
        ifexists = ' IF EXISTS' if self.conditional else ''
        return (
            f'DROP RULE{ifexists} {qi(self.rule.name)} '
            f'ON {qn(*self.rule.table_name)}'
        )

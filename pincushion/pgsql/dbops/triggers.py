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

from pincushion.common import enum as s_enum
from ..common import qname as qn
from ..common import quote_ident as qi

from . import base
from . import ddl
from . import tables


TriggerName: TypeAlias = str


class TriggerTiming(s_enum.StrEnum):
    Before = 'before'


class TriggerGranularity(s_enum.StrEnum):
    Row = 'row'


class Trigger(base.DBObject):
    def __init__(
        self,
        name: TriggerName,
        *,
        table_name: tables.TableName,
        events: tuple[str, ...],
        timing: TriggerTiming = TriggerTiming.Before,
        granularity: TriggerGranularity = TriggerGranularity.Row,
        procedure: tuple[str, ...],
    ) -> None:
        super().__init__()

        self.name = name
        self.table_name = table_name
        self.events = events
        self.timing = timing
        self.granularity = granularity
        self.procedure = procedure

    def __repr__(self) -> str:
        return '<{mod}.{cls} {name} ON {table_name} {timing} {events}>'.format(
            mod=self.__class__.__module__,
            cls=self.__class__.__name__,
            name=self.name,
            table_name=qn(*self.table_name),
            timing=self.timing,
            events=' OR '.join(self.events),
        )


class CreateTrigger(ddl.CreateObject):
    def __init__(self, object: Trigger) -> None:
        super().__init__(object)
        self.trigger = object

    def code(self) -> str:
        trigger = self.trigger
        return (
            f'CREATE TRIGGER {qi(trigger.name)} {trigger.timing.upper()} '
            f'{" OR ".join(trigger.events)}\n'
            f'    ON {qn(*trigger.table_name)}\n'
            f'    FOR EACH {trigger.granularity.upper()}\n'
            f'    EXECUTE PROCEDURE {qn(*trigger.procedure)}()'
        )


class DropTrigger(ddl.DropObject):
    def __init__(
        self,
        object: Trigger,
        *,
        conditional: bool = False,
    ) -> None:
        super().__init__(object, conditional=conditional)
        self.trigger = object

    def code(self) -> str:
        ifexists = ' IF EXISTS' if self.conditional else ''
        return (
            f'DROP TRIGGER{ifexists} {qi(self.trigger.name)} '
            f'ON {qn(*self.trigger.table_name)}'
        )

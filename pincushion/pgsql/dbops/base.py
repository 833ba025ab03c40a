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
    Iterator,
    List,
    Sequence,
)
from collections.abc import MutableSequence


class SQLBlock:
    commands: list[str]

    def __init__(self) -> None:
        self.commands = []

    def to_string(self) -> str:
        stmts = self.get_statements()
        body = '\n\n'.join(stmt + ';' if stmt[-1] != ';' else stmt
                           for stmt in stmts if stmt).rstrip()
        if body and body[-1] != ';':
            body += ';'

        return body

    def get_statements(self) -> List[str]:
        return [cmd.rstrip() for cmd in self.commands]

    def add_command(self, stmt: str) -> None:
        self.commands.append(stmt)


class BaseCommand:
    def generate(self, block: SQLBlock) -> None:
        raise NotImplementedError


class Command(BaseCommand):

    def generate(self, block: SQLBlock) -> None:
        block.add_command(self.code())

    def code(self) -> str:
        raise NotImplementedError

    def get_object_name(self) -> str:
        """Return a human readable name of the affected object."""
        return self.__class__.__name__


class CommandGroup(Command):
    commands: MutableSequence[Command]

    def __init__(self) -> None:
        super().__init__()
        self.commands = []

    def add_command(self, cmd: Command) -> None:
        self.commands.append(cmd)

    def add_commands(self, cmds: Sequence[Command]) -> None:
        self.commands.extend(cmds)

    def get_object_name(self) -> str:
        if self.commands:
            return self.commands[0].get_object_name()
        return super().get_object_name()

    def generate(self, block: SQLBlock) -> None:
        for cmd in self.commands:
            cmd.generate(block)

    def code(self) -> str:
        block = SQLBlock()
        self.generate(block)
        return block.to_string()

    def __iter__(self) -> Iterator[Command]:
        return iter(self.commands)

    def __len__(self) -> int:
        return len(self.commands)


class DBObject:
    """A named database object a command creates or drops."""

    def get_type(self) -> str:
        raise NotImplementedError()

    def get_id(self) -> str:
        raise NotImplementedError()

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
from typing import Optional, Tuple, Sequence

from ..common import qname as qn
from ..common import quote_type as qt

from . import base
from . import ddl

FunctionArgType = str | Tuple[str, ...]
FunctionArg = Tuple[Optional[str], FunctionArgType]

FUNCTION_BODY_QUOTE = '$____funcbody____$'


class Function(base.DBObject):
    def __init__(
        self,
        name: Tuple[str, ...],
        *,
        args: Optional[Sequence[FunctionArg]] = None,
        returns: str | Tuple[str, ...],
        text: str,
        language: str = "sql",
        set_returning: bool = False,
    ):
        super().__init__()
        self.name = name
        self.args = args
        self.returns = returns
        self.text = text
        self.language = language
        self.set_returning = set_returning

    def __repr__(self):
        return '<{} {} at 0x{}>'.format(
            self.__class__.__name__, self.name, id(self))


class FunctionOperation:
    @staticmethod
    def format_args(args: Optional[Sequence[FunctionArg]]) -> str:
        args_buf = []
        for arg_name, arg_typ in args or ():
            arg_expr = ''
            if arg_name is not None:
                arg_expr += qn(arg_name, column=True) + ' '
            arg_expr += qt(arg_typ)
            args_buf.append(arg_expr)

        return ', '.join(args_buf)


class CreateFunction(ddl.DDLOperation, FunctionOperation):
    def __init__(
        self, function: Function, *, or_replace: bool = False,
    ):
        super().__init__()
        self.function = function
        self.or_replace = or_replace

    def get_object_name(self) -> str:
        return '.'.join(self.function.name)

    def code(self) -> str:
        func = self.function
        args = self.format_args(func.args)
        replace = 'OR REPLACE ' if self.or_replace else ''
        setof = 'SETOF ' if func.set_returning else ''
        body = textwrap.dedent(func.text).strip()

        return (
            f'CREATE {replace}FUNCTION {qn(*func.name)}({args})\n'
            f'RETURNS {setof}{qt(func.returns)}\n'
            f'AS {FUNCTION_BODY_QUOTE}\n'
            f'{body}\n'
            f'{FUNCTION_BODY_QUOTE}\n'
            f'LANGUAGE {func.language}'
        )


class DropFunction(ddl.DDLOperation, FunctionOperation):
    def __init__(
        self,
        name: Tuple[str, ...],
        args: Sequence[FunctionArg],
        *,
        if_exists: bool = False,
    ):
        super().__init__()
        self.conditional = if_exists
        self.name = name
        self.args = args

    def get_object_name(self) -> str:
        return '.'.join(self.name)

    def code(self) -> str:
        ifexists = ' IF EXISTS' if self.conditional else ''
        args = self.format_args(self.args)
        return f'DROP FUNCTION{ifexists} {qn(*self.name)}({args})'

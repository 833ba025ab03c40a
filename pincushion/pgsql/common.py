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

from typing import Tuple

from . import keywords as pg_keywords


# This is a postgres limitation (NAMEDATALEN - 1).
MAX_IDENTIFIER_LENGTH = 63


def quote_literal(string: str) -> str:
    return "'" + string.replace("'", "''") + "'"


def _quote_ident(string: str) -> str:
    return '"' + string.replace('"', '""') + '"'


def quote_ident(ident: str, *, force=False, column=False) -> str:
    return (
        _quote_ident(ident)
        if needs_quoting(ident, column=column) or force else ident
    )


def quote_col(ident: str) -> str:
    return quote_ident(ident, column=True)


def needs_quoting(string: str, column: bool = False) -> bool:
    isalnum = (
        string
        and not string[0].isdecimal()
        and string.replace('_', 'a').isalnum()
    )
    return (
        not isalnum or
        string.lower() in pg_keywords.by_type[
            pg_keywords.RESERVED_KEYWORD] or
        string.lower() in pg_keywords.by_type[
            pg_keywords.TYPE_FUNC_NAME_KEYWORD] or
        (column and string.lower() in pg_keywords.by_type[
            pg_keywords.COL_NAME_KEYWORD]) or
        string.lower() != string
    )


def qname(*parts: str, column: bool = False) -> str:
    assert len(parts) <= 3, parts
    return '.'.join([quote_ident(q, column=column) for q in parts])


def quote_type(type_: Tuple[str, ...] | str) -> str:
    if isinstance(type_, tuple):
        first = qname(*type_[:-1]) + '.' if len(type_) > 1 else ''
        last = type_[-1]
    else:
        first = ''
        last = type_

    is_array = last.endswith('[]')
    if is_array:
        last = last[:-2]

    param = None
    if '(' in last:
        last, param = last.split('(', 1)
        param = '(' + param

    # Multi-word built-in names ("double precision") are never quoted.
    if ' ' not in last:
        last = quote_ident(last)

    if param:
        last += param

    if is_array:
        last += '[]'

    return first + last


def quote_regclass(*parts: str) -> str:
    """Return a string literal naming a relation, for regclass arguments.

    E.g. nextval('public.parents_id_seq').
    """
    return quote_literal(qname(*parts))

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

from ..common import quote_literal as ql

from . import base


class DDLOperation(base.Command):
    pass


class SchemaObjectOperation(DDLOperation):
    def __init__(self, name):
        super().__init__()
        self.name = name

    def get_object_name(self) -> str:
        if isinstance(self.name, tuple):
            return '.'.join(self.name)
        return str(self.name)

    def __repr__(self):
        return '<%s.%s %s>' % (
            self.__class__.__module__, self.__class__.__name__, self.name)


class CreateObject(SchemaObjectOperation):

    def __init__(self, object):
        super().__init__(object.name)
        self.object = object


class DropObject(SchemaObjectOperation):

    def __init__(self, object, *, conditional: bool = False):
        super().__init__(object.name)
        self.object = object
        self.conditional = conditional


class Comment(DDLOperation):
    def __init__(self, object, text: str) -> None:
        super().__init__()
        self.object = object
        self.text = text

    def get_object_name(self) -> str:
        return self.object.get_id()

    def code(self) -> str:
        return 'COMMENT ON {type} {id} IS {text}'.format(
            type=self.object.get_type(),
            id=self.object.get_id(),
            text=ql(self.text),
        )

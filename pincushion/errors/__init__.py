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
from typing import Optional

from .base import *  # NOQA
from .base import PinCushionError


__all__ = base.__all__ + (  # type: ignore
    'InternalError',
    'SpecValidationError',
    'IntrospectionError',
    'TypeMappingError',
    'SqlError',
)


class InternalError(PinCushionError):
    _code = 0x_01_00_00_00


class SpecValidationError(PinCushionError):
    _code = 0x_02_00_00_00


class IntrospectionError(PinCushionError):
    _code = 0x_03_00_00_00


class TypeMappingError(PinCushionError):
    _code = 0x_04_00_00_00


class SqlError(PinCushionError):
    _code = 0x_05_00_00_00

    def __init__(
        self,
        msg: Optional[str] = None,
        *,
        statement: Optional[str] = None,
        pgcode: Optional[str] = None,
        hint: Optional[str] = None,
        details: Optional[str] = None,
    ):
        super().__init__(msg, hint=hint, details=details)
        self.statement = statement
        self.pgcode = pgcode
        self.step: Optional[int] = None
        self.step_name: Optional[str] = None

    def set_step(self, step: int, step_name: str) -> None:
        self.step = step
        self.step_name = step_name

    def __str__(self):
        msg = super().__str__()
        if self.step is not None:
            msg = f'step {self.step} ({self.step_name}): {msg}'
        return msg

    def to_json(self):
        err_dct = super().to_json()
        for attr in ('statement', 'pgcode', 'step', 'step_name'):
            val = getattr(self, attr)
            if val is not None:
                err_dct[attr] = val
        return err_dct

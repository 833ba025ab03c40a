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

from typing import Optional, Type, Dict


__all__ = (
    'PinCushionError',
)


class PinCushionErrorMeta(type):
    _error_map: Dict[int, Type[PinCushionError]] = {}

    def __new__(mcls, name, bases, dct):
        cls = super().__new__(mcls, name, bases, dct)

        code = dct.get('_code')
        if code is not None:
            assert code not in mcls._error_map, code
            mcls._error_map[code] = cls

        return cls

    def __init__(cls, name, bases, dct):
        if cls._code is None and cls.__module__ != __name__:
            # Every concrete error must be addressable by code.
            raise RuntimeError(
                'direct subclassing of PinCushionError is prohibited; '
                'subclass one of its subclasses in pincushion.errors')


class PinCushionError(Exception, metaclass=PinCushionErrorMeta):

    _code: Optional[int] = None
    _attrs: Dict[int, str]

    def __init__(
        self,
        msg: Optional[str] = None,
        *,
        hint: Optional[str] = None,
        details: Optional[str] = None,
    ):
        if type(self) is PinCushionError:
            raise RuntimeError(
                'PinCushionError is not supposed to be instantiated directly')

        self._attrs = {}
        self.set_hint_and_details(hint, details)

        super().__init__(msg)

    @classmethod
    def get_code(cls):
        if cls._code is None:
            raise RuntimeError(
                f'PinCushion error code is not set (type: {cls.__name__})')
        return cls._code

    def to_json(self):
        err_dct = {
            'message': str(self),
            'type': str(type(self).__name__),
            'code': self.get_code(),
        }
        for name, field in _JSON_FIELDS.items():
            if field in self._attrs:
                err_dct[name] = self._attrs[field]

        return err_dct

    def set_hint_and_details(self, hint, details=None):
        if hint is not None:
            self._attrs[FIELD_HINT] = hint
        if details is not None:
            self._attrs[FIELD_DETAILS] = details

    @property
    def hint(self):
        return self._attrs.get(FIELD_HINT)

    @property
    def details(self):
        return self._attrs.get(FIELD_DETAILS)


FIELD_HINT = 0x_00_01
FIELD_DETAILS = 0x_00_02

# Fields to include in the json dump of the error
_JSON_FIELDS = {
    'hint': FIELD_HINT,
    'details': FIELD_DETAILS,
}

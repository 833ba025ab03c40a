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


import unittest

from pincushion import errors
from pincushion.errors import base as errors_base


class ErrorsTests(unittest.TestCase):

    def test_errors_codes(self):
        self.assertEqual(errors.SqlError.get_code(), 0x_05_00_00_00)
        self.assertEqual(
            errors.SpecValidationError.get_code(), 0x_02_00_00_00)
        self.assertIs(
            errors_base.PinCushionErrorMeta._error_map[0x_04_00_00_00],
            errors.TypeMappingError)

    def test_errors_base_is_abstract(self):
        with self.assertRaisesRegex(RuntimeError, 'instantiated directly'):
            errors.PinCushionError('oops')

        with self.assertRaisesRegex(RuntimeError, 'prohibited'):
            class UncodedError(errors.PinCushionError):
                pass

    def test_errors_subclass_inherits_code(self):
        class MissingColumnError(errors.SpecValidationError):
            pass

        self.assertEqual(
            MissingColumnError.get_code(), errors.SpecValidationError._code)
        self.assertIsInstance(MissingColumnError('x'), errors.PinCushionError)

    def test_errors_to_json(self):
        err = errors.TypeMappingError(
            'no mapping', hint='use a known type', details='hstore')
        self.assertEqual(err.hint, 'use a known type')
        self.assertEqual(err.details, 'hstore')
        self.assertEqual(err.to_json(), {
            'message': 'no mapping',
            'type': 'TypeMappingError',
            'code': 0x_04_00_00_00,
            'hint': 'use a known type',
            'details': 'hstore',
        })

        err = errors.IntrospectionError('gone')
        self.assertIsNone(err.hint)
        self.assertNotIn('hint', err.to_json())

    def test_errors_sql_error_01(self):
        err = errors.SqlError(
            'cannot drop type', statement='DROP TYPE t', pgcode='2BP01')
        self.assertEqual(str(err), 'cannot drop type')
        self.assertIsNone(err.step)

        err.set_step(7, 'public.view_books_type')
        self.assertEqual(err.step, 7)
        self.assertEqual(
            str(err), 'step 7 (public.view_books_type): cannot drop type')

    def test_errors_sql_error_02(self):
        err = errors.SqlError('boom', statement='SELECT 1')
        err.set_step(2, 'public.v')
        self.assertEqual(err.to_json(), {
            'message': 'step 2 (public.v): boom',
            'type': 'SqlError',
            'code': 0x_05_00_00_00,
            'statement': 'SELECT 1',
            'step': 2,
            'step_name': 'public.v',
        })

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
from pincushion.mti import InheritanceCompiler, InheritanceSpec, render
from pincushion.pgsql import dbops
from pincushion.testbase.fakestore import FakeStore


PRODUCTS = ('public', 'products')
BOOKS = ('public', 'books')
FILMS = ('public', 'films')


class CompilerTestCase(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.store = FakeStore()
        self.store.add_table(PRODUCTS, [
            ('id', 'integer'),
            ('title', 'string'),
            ('price', 'decimal'),
        ])
        self.store.add_table(BOOKS, [
            ('id', 'integer'),
            ('product_id', 'integer'),
            ('isbn', 'string'),
        ])
        self.store.add_table(FILMS, [
            ('id', 'integer'),
            ('product_id', 'integer'),
            ('minutes', 'integer'),
        ])
        self.compiler = InheritanceCompiler(self.store, self.store)

        self.books = InheritanceSpec('products', 'books', 'Product', 'Book')
        # Siblings need distinct fetch functions: each returns its own
        # row type.
        self.films = InheritanceSpec(
            'products', 'films', 'Product', 'Film',
            fetch_function_name='GetInsertedFilm')

    def assertStatements(self, prefixes):
        executed = self.store.executed
        self.assertEqual(len(executed), len(prefixes), executed)
        for sql, prefix in zip(executed, prefixes):
            self.assertTrue(sql.startswith(prefix), sql)


class TestCreate(CompilerTestCase):

    async def test_mti_create_01(self):
        await self.compiler.create(self.books)

        self.assertEqual(self.store.introspected, [PRODUCTS, BOOKS])
        self.assertStatements([
            'ALTER TABLE public.products ADD COLUMN product_type ',
            "COMMENT ON COLUMN public.products.product_type IS 'pincushion",
            'CREATE OR REPLACE VIEW public.view_books AS',
            'CREATE TYPE public.view_books_type AS',
            'CREATE OR REPLACE FUNCTION public."GetInsertedProduct"(int8)',
            'CREATE OR REPLACE RULE view_books_ins AS ON INSERT',
            'CREATE OR REPLACE RULE view_books_upd AS ON UPDATE',
            'CREATE OR REPLACE RULE view_books_del AS ON DELETE',
            'CREATE FUNCTION public.view_books_del_function()',
            'CREATE TRIGGER view_books_del_trigger BEFORE DELETE',
        ])

    async def test_mti_create_02(self):
        await self.compiler.create(self.books)

        store = self.store
        self.assertIn('product_type', store.column_names(PRODUCTS))
        self.assertTrue(store.has('view', ('public', 'view_books')))
        self.assertTrue(store.has('type', ('public', 'view_books_type')))
        self.assertTrue(
            store.has('function', ('public', 'GetInsertedProduct')))
        self.assertTrue(
            store.has('function', ('public', 'view_books_del_function')))
        for suffix in ('ins', 'upd', 'del'):
            self.assertTrue(store.has(
                'rule', ('public', 'view_books', f'view_books_{suffix}')))
        self.assertTrue(store.has(
            'trigger', ('public', 'books', 'view_books_del_trigger')))

    async def test_mti_create_discriminator_once(self):
        await self.compiler.create(self.books)
        self.store.executed.clear()

        await self.compiler.create(self.films)

        self.assertEqual(len(self.store.executed), 8)
        self.assertTrue(
            self.store.executed[0].startswith('CREATE OR REPLACE VIEW'))
        self.assertEqual(
            self.store.column_names(PRODUCTS).count('product_type'), 1)

    async def test_mti_create_shared_fetch_function(self):
        await self.compiler.create(self.books)

        films = InheritanceSpec('products', 'films', 'Product', 'Film')
        with self.assertRaises(errors.SqlError) as cm:
            await self.compiler.create(films)

        self.assertEqual(cm.exception.step, 3)
        self.assertEqual(cm.exception.step_name, 'public.GetInsertedProduct')
        self.assertEqual(cm.exception.pgcode, '42P13')

    async def test_mti_create_type_mapping_error(self):
        self.store.add_table(('public', 'gadgets'), [
            ('id', 'integer'),
            ('product_id', 'integer'),
            ('specs', 'hstore'),
        ])
        spec = InheritanceSpec('products', 'gadgets', 'Product', 'Gadget')

        with self.assertRaises(errors.TypeMappingError):
            await self.compiler.create(spec)

        self.assertEqual(self.store.executed, [])
        self.assertNotIn('product_type', self.store.column_names(PRODUCTS))

    async def test_mti_create_missing_table(self):
        spec = InheritanceSpec('products', 'albums', 'Product', 'Album')

        with self.assertRaisesRegex(errors.IntrospectionError, 'albums'):
            await self.compiler.create(spec)

        self.assertEqual(self.store.executed, [])

    async def test_mti_create_missing_foreign_key(self):
        spec = InheritanceSpec(
            'products', 'books', 'Product', 'Book',
            foreign_key_column='item_id')

        with self.assertRaisesRegex(errors.SpecValidationError, 'item_id'):
            await self.compiler.create(spec)

        self.assertEqual(self.store.executed, [])

    async def test_mti_create_failure_01(self):
        self.store.fail_on('CREATE OR REPLACE RULE view_books_upd')

        with self.assertRaises(errors.SqlError) as cm:
            await self.compiler.create(self.books)

        err = cm.exception
        self.assertEqual(err.step, 6)
        self.assertEqual(err.step_name, 'view_books_upd')
        self.assertTrue(
            err.statement.startswith('CREATE OR REPLACE RULE view_books_upd'))
        self.assertTrue(
            str(err).startswith('step 6 (view_books_upd): simulated failure'))

        # Nothing after the failing step ran.
        self.assertEqual(len(self.store.executed), 7)
        self.assertTrue(self.store.has(
            'rule', ('public', 'view_books', 'view_books_ins')))
        self.assertFalse(self.store.has(
            'rule', ('public', 'view_books', 'view_books_upd')))

    async def test_mti_create_failure_02(self):
        before = self.store.snapshot()
        self.store.fail_on('CREATE TRIGGER')

        with self.assertRaises(errors.SqlError):
            await self.compiler.create(self.books)

        await self.compiler.drop(self.books)
        self.assertEqual(self.store.snapshot(), before)

    async def test_mti_create_failure_03(self):
        # Both statements of the discriminator step report step 1.
        self.store.fail_on('COMMENT ON COLUMN')

        with self.assertRaises(errors.SqlError) as cm:
            await self.compiler.create(self.books)

        self.assertEqual(cm.exception.step, 1)
        self.assertEqual(
            cm.exception.step_name, 'public.products.product_type')
        self.assertEqual(len(self.store.executed), 2)

        await self.compiler.drop(self.books)
        self.assertIn('product_type', self.store.column_names(PRODUCTS))

    async def test_mti_create_logging(self):
        with self.assertLogs('pincushion.mti', level='INFO') as cm:
            await self.compiler.create(self.books)

        self.assertEqual(len(cm.records), 9)
        self.assertEqual(
            cm.records[0].getMessage(),
            'create view_books: step 1/9: AlterTableAddColumn '
            'public.products.product_type')

    async def test_mti_create_failure_logging(self):
        self.store.fail_on('CREATE TYPE')

        with self.assertLogs('pincushion.mti', level='ERROR') as cm:
            with self.assertRaises(errors.SqlError):
                await self.compiler.create(self.books)

        self.assertEqual(len(cm.records), 1)
        self.assertIn('failed at step 3/9', cm.records[0].getMessage())


class TestDrop(CompilerTestCase):

    async def test_mti_drop_01(self):
        await self.compiler.create(self.books)
        self.store.executed.clear()

        await self.compiler.drop(self.books)

        self.assertEqual(self.store.executed, [
            'DROP TRIGGER IF EXISTS view_books_del_trigger ON public.books',
            'DROP FUNCTION IF EXISTS public.view_books_del_function()',
            'DROP RULE IF EXISTS view_books_del ON public.view_books',
            'DROP RULE IF EXISTS view_books_upd ON public.view_books',
            'DROP RULE IF EXISTS view_books_ins ON public.view_books',
            'DROP FUNCTION IF EXISTS public."GetInsertedProduct"(int8)',
            'DROP TYPE IF EXISTS public.view_books_type',
            'DROP VIEW IF EXISTS public.view_books',
            'ALTER TABLE IF EXISTS public.products '
            'DROP COLUMN IF EXISTS product_type',
        ])

    async def test_mti_drop_round_trip(self):
        before = self.store.snapshot()

        await self.compiler.create(self.books)
        self.assertNotEqual(self.store.snapshot(), before)

        await self.compiler.drop(self.books)
        self.assertEqual(self.store.snapshot(), before)
        self.assertEqual(self.store.objects, set())

    async def test_mti_drop_without_create(self):
        before = self.store.snapshot()

        await self.compiler.drop(self.books)

        self.assertEqual(len(self.store.executed), 8)
        self.assertEqual(self.store.snapshot(), before)

    async def test_mti_drop_twice(self):
        await self.compiler.create(self.books)
        await self.compiler.drop(self.books)
        await self.compiler.drop(self.books)

        self.assertEqual(self.store.objects, set())

    async def test_mti_drop_keeps_shared_discriminator(self):
        before = self.store.snapshot()

        await self.compiler.create(self.books)
        await self.compiler.create(self.films)

        with self.assertLogs('pincushion.mti', level='INFO') as cm:
            await self.compiler.drop(self.books)

        self.assertIn(
            'keeping products.product_type: still read by public.view_films',
            [r.getMessage() for r in cm.records])
        self.assertIn('product_type', self.store.column_names(PRODUCTS))
        self.assertFalse(self.store.has('view', ('public', 'view_books')))
        self.assertTrue(self.store.has('view', ('public', 'view_films')))
        self.assertTrue(
            self.store.has('function', ('public', 'GetInsertedFilm')))

        await self.compiler.drop(self.films)
        self.assertEqual(self.store.snapshot(), before)

    async def test_mti_drop_failure(self):
        await self.compiler.create(self.books)
        self.store.fail_on('DROP TYPE', 'type is locked')

        with self.assertRaisesRegex(errors.SqlError, 'step 7'):
            await self.compiler.drop(self.books)

        self.assertTrue(self.store.has('view', ('public', 'view_books')))
        self.assertFalse(
            self.store.has('function', ('public', 'GetInsertedProduct')))

    async def test_mti_drop_keeps_existing_discriminator(self):
        # A parent that already had the column before create keeps it.
        self.store.add_table(PRODUCTS, [
            ('id', 'integer'),
            ('product_type', 'string', (40,)),
        ])
        before = self.store.snapshot()

        await self.compiler.create(self.books)
        self.assertFalse(any(
            sql.startswith(('ALTER TABLE', 'COMMENT ON'))
            for sql in self.store.executed))

        with self.assertLogs('pincushion.mti', level='INFO') as cm:
            await self.compiler.drop(self.books)

        self.assertIn(
            'keeping products.product_type: not added by create',
            [r.getMessage() for r in cm.records])
        self.assertEqual(
            self.store.column_names(PRODUCTS), ['id', 'product_type'])
        self.assertEqual(self.store.snapshot(), before)

    async def test_mti_drop_keeps_foreign_comment(self):
        self.store.add_table(PRODUCTS, [
            ('id', 'integer'),
            ('product_type', 'string'),
        ])
        self.store.comments[(PRODUCTS, 'product_type')] = 'product kind'

        await self.compiler.create(self.books)
        await self.compiler.drop(self.books)

        self.assertIn('product_type', self.store.column_names(PRODUCTS))
        self.assertEqual(
            self.store.comments[(PRODUCTS, 'product_type')], 'product kind')

    async def test_mti_create_existing_discriminator_type(self):
        self.store.add_table(PRODUCTS, [
            ('id', 'integer'),
            ('product_type', 'string', (40,)),
        ])

        await self.compiler.create(self.books)

        create_type = [
            sql for sql in self.store.executed
            if sql.startswith('CREATE TYPE')
        ]
        self.assertEqual(create_type, [
            'CREATE TYPE public.view_books_type AS '
            '(id integer, product_type character varying(40), '
            'isbn character varying)'
        ])


class TestPlans(CompilerTestCase):

    async def test_mti_plan_create_render(self):
        plan = await self.compiler.plan_create(self.books)
        sql = render(plan)

        self.assertEqual(self.store.executed, [])
        self.assertTrue(sql.startswith(
            'ALTER TABLE public.products '
            'ADD COLUMN product_type character varying(255);\n\n'
            'COMMENT ON COLUMN public.products.product_type '
            "IS 'pincushion: discriminator column';\n\n"
            'CREATE OR REPLACE VIEW public.view_books AS\n'))
        self.assertEqual(sql.count('CREATE OR REPLACE RULE'), 3)
        self.assertTrue(sql.endswith(
            'EXECUTE PROCEDURE public.view_books_del_function();'))

    async def test_mti_plan_drop(self):
        await self.compiler.create(self.books)
        await self.compiler.create(self.films)
        self.store.executed.clear()

        plan = await self.compiler.plan_drop(self.films)
        self.assertEqual(len(plan), 8)
        self.assertIsInstance(list(plan)[-1], dbops.DropView)
        self.assertEqual(self.store.executed, [])

    async def test_mti_execute_empty_plan(self):
        with self.assertRaises(errors.InternalError):
            await self.compiler._execute(
                dbops.CommandGroup(), 'create', self.books)

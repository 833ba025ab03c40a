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

import logging

from pincushion import errors
from pincushion.common import debug
from pincushion.pgsql import dbops
from pincushion.pgsql import executor
from pincushion.pgsql import introspection

from . import builder
from .spec import InheritanceSpec


logger = logging.getLogger('pincushion.mti')


class InheritanceCompiler:
    """Creates and drops the objects emulating one parent/child pair.

    Holds no state between calls.  Steps run strictly one after another
    and the first failure aborts the rest; nothing is rolled back, so
    run create()/drop() inside a transaction if atomicity is needed.
    Concurrent migrations touching the same tables must be serialized
    by the caller.
    """

    def __init__(
        self,
        introspector: introspection.Introspector,
        sink: executor.ExecutionSink,
    ) -> None:
        self._introspector = introspector
        self._sink = sink

    async def plan_create(self, spec: InheritanceSpec) -> dbops.CommandGroup:
        parent_columns = await self._introspector.get_columns(
            spec.qualify(spec.parent_table))
        child_columns = await self._introspector.get_columns(
            spec.qualify(spec.child_table))
        return builder.create_plan(spec, parent_columns, child_columns)

    async def plan_drop(self, spec: InheritanceSpec) -> dbops.CommandGroup:
        parent = spec.qualify(spec.parent_table)
        column = spec.discriminator_column
        view_name = spec.qualify(spec.view_name)

        comment = await self._introspector.get_column_comment(parent, column)
        readers = await self._introspector.get_dependent_views(parent, column)
        siblings = [v for v in readers if tuple(v) != view_name]

        drop_column = False
        if comment != builder.DISCRIMINATOR_COMMENT:
            logger.info(
                'keeping %s.%s: not added by create',
                spec.parent_table, column)
        elif siblings:
            logger.info(
                'keeping %s.%s: still read by %s',
                spec.parent_table, column,
                ', '.join('.'.join(v) for v in siblings))
        else:
            drop_column = True

        return builder.drop_plan(spec, drop_discriminator_column=drop_column)

    async def create(self, spec: InheritanceSpec) -> None:
        plan = await self.plan_create(spec)
        await self._execute(plan, 'create', spec)

    async def drop(self, spec: InheritanceSpec) -> None:
        plan = await self.plan_drop(spec)
        await self._execute(plan, 'drop', spec)

    async def _execute(
        self,
        plan: dbops.CommandGroup,
        action: str,
        spec: InheritanceSpec,
    ) -> None:
        if not len(plan):
            raise errors.InternalError(f'empty {action} plan for {spec!r}')

        total = len(plan)
        for step, cmd in enumerate(plan, 1):
            name = cmd.get_object_name()
            block = dbops.SQLBlock()
            cmd.generate(block)

            logger.info(
                '%s %s: step %d/%d: %s %s',
                action, spec.view_name, step, total,
                type(_leader(cmd)).__name__, name)

            for sql in block.get_statements():
                logger.debug('%s', sql)
                if debug.flags.delta_execute:
                    debug.header(f'{action} step {step}/{total}: {name}')
                    debug.print(sql)

                try:
                    await self._sink.execute(sql)
                except errors.SqlError as e:
                    e.set_step(step, name)
                    if e.statement is None:
                        e.statement = sql
                    logger.error(
                        '%s %s failed at step %d/%d (%s): %s',
                        action, spec.view_name, step, total, name, e)
                    raise


def _leader(cmd: dbops.Command) -> dbops.Command:
    # A step may group several statements, e.g. ADD COLUMN + COMMENT.
    while isinstance(cmd, dbops.CommandGroup) and len(cmd):
        cmd = cmd.commands[0]
    return cmd


def render(plan: dbops.CommandGroup) -> str:
    """Return *plan* as a single SQL script."""
    block = dbops.SQLBlock()
    plan.generate(block)
    return block.to_string()

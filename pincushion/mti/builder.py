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


"""DDL for emulated multi-table inheritance.

Every function here is pure: it takes an InheritanceSpec and freshly
introspected column lists and returns dbops objects.  The view is what
application code talks to; the rules and the trigger fan writes on the
view out into the parent and the child tables.
"""


from __future__ import annotations
from typing import (
    AbstractSet,
    List,
    Sequence,
    Tuple,
)

import dataclasses
import textwrap

from pincushion import errors
from pincushion.pgsql import dbops
from pincushion.pgsql.common import qname as qn
from pincushion.pgsql.common import quote_col as qc
from pincushion.pgsql.common import quote_literal as ql
from pincushion.pgsql.common import quote_regclass as qr
from pincushion.pgsql.introspection import ColumnDescriptor

from .spec import InheritanceSpec


ID_COLUMN = 'id'
# Marks a discriminator column added by create_plan(); drop only
# removes columns carrying it.
DISCRIMINATOR_COMMENT = 'pincushion: discriminator column'
DISCRIMINATOR_LENGTH = 255
Event = dbops.RuleEvent


@dataclasses.dataclass(frozen=True)
class ViewColumn:
    #: Unqualified name of the table the column comes from.
    table: str
    column: ColumnDescriptor

    @property
    def name(self) -> str:
        return self.column.name

    def select_expr(self) -> str:
        return qn(self.table, self.column.name, column=True)


def parent_exclusions(spec: InheritanceSpec) -> AbstractSet[str]:
    """Parent columns never written from NEW by the update rule."""
    return frozenset((ID_COLUMN, spec.discriminator_column))


def child_exclusions(spec: InheritanceSpec) -> AbstractSet[str]:
    """Child columns hidden from the view and never written from NEW."""
    return frozenset((ID_COLUMN, spec.foreign_key_column))  # type: ignore


def _names(columns: Sequence[ColumnDescriptor]) -> AbstractSet[str]:
    return frozenset(c.name for c in columns)


def validate_columns(
    spec: InheritanceSpec,
    parent_columns: Sequence[ColumnDescriptor],
    child_columns: Sequence[ColumnDescriptor],
) -> None:
    parent_names = _names(parent_columns)
    child_names = _names(child_columns)

    if ID_COLUMN not in parent_names:
        raise errors.SpecValidationError(
            f'parent table {spec.parent_table} has no {ID_COLUMN!r} column')

    if spec.foreign_key_column not in child_names:
        raise errors.SpecValidationError(
            f'foreign key column {spec.foreign_key_column!r} does not exist '
            f'on child table {spec.child_table}',
            hint='pass foreign_key_column explicitly if the parent table '
                 'name has an irregular plural',
        )

    shared = (child_names - child_exclusions(spec)) & parent_names
    if shared:
        raise errors.SpecValidationError(
            f'columns {", ".join(sorted(shared))} exist on both '
            f'{spec.parent_table} and {spec.child_table}',
            hint='the view cannot expose two columns with the same name',
        )


def discriminator_descriptor(spec: InheritanceSpec) -> ColumnDescriptor:
    return ColumnDescriptor(
        name=spec.discriminator_column,
        semantic_type='string',
        sql_type='character varying',
        modifiers=(DISCRIMINATOR_LENGTH,),
    )


def add_discriminator(spec: InheritanceSpec) -> dbops.CommandGroup:
    """Add the discriminator column and mark it as ours."""
    parent = spec.qualify(spec.parent_table)
    column = dbops.Column(
        name=spec.discriminator_column,
        type=discriminator_descriptor(spec).ddl_type(),
    )

    step = dbops.CommandGroup()
    step.add_commands([
        dbops.AlterTableAddColumn(parent, column),
        dbops.Comment(
            dbops.ColumnRef(parent, spec.discriminator_column),
            DISCRIMINATOR_COMMENT,
        ),
    ])
    return step


def drop_discriminator(spec: InheritanceSpec) -> dbops.AlterTableDropColumn:
    return dbops.AlterTableDropColumn(
        spec.qualify(spec.parent_table),
        spec.discriminator_column,
        conditional=True,
    )


def view_columns(
    spec: InheritanceSpec,
    parent_columns: Sequence[ColumnDescriptor],
    child_columns: Sequence[ColumnDescriptor],
) -> List[ViewColumn]:
    """All parent columns, then child columns minus id and the FK."""
    excluded = child_exclusions(spec)
    cols = [ViewColumn(spec.parent_table, c) for c in parent_columns]
    cols.extend(
        ViewColumn(spec.child_table, c)
        for c in child_columns
        if c.name not in excluded
    )
    return cols


def view(
    spec: InheritanceSpec,
    parent_columns: Sequence[ColumnDescriptor],
    child_columns: Sequence[ColumnDescriptor],
) -> dbops.View:
    cols = view_columns(spec, parent_columns, child_columns)
    select_list = ',\n    '.join(c.select_expr() for c in cols)

    parent = spec.parent_table
    child = spec.child_table
    conditions = [
        f'{qn(parent, spec.discriminator_column, column=True)}'
        f' = {ql(spec.child_type_name)}'
    ]
    conditions.extend(
        f'({cond})' for cond in spec.extra_conditions  # type: ignore
    )
    where = '\n    AND '.join(conditions)

    query = (
        f'SELECT\n    {select_list}\n'
        f'FROM\n'
        f'    {qn(*spec.qualify(parent))}\n'
        f'    INNER JOIN {qn(*spec.qualify(child))}\n'
        f'        ON {qn(parent, ID_COLUMN, column=True)}'
        f' = {qn(child, spec.foreign_key_column, column=True)}\n'
        f'WHERE\n    {where}'
    )

    return dbops.View(name=spec.qualify(spec.view_name), query=query)


def row_type(
    spec: InheritanceSpec,
    parent_columns: Sequence[ColumnDescriptor],
    child_columns: Sequence[ColumnDescriptor],
) -> dbops.CompositeType:
    """Composite type with exactly the view's columns, in view order."""
    columns = [
        dbops.Column(
            name=c.name,
            type=c.column.ddl_type(),
        )
        for c in view_columns(spec, parent_columns, child_columns)
    ]
    return dbops.CompositeType(
        name=spec.qualify(spec.type_name), columns=columns)


def fetch_function(spec: InheritanceSpec) -> dbops.Function:
    # The argument is positional: a named "id" argument would be
    # shadowed by the view's own id column inside the SQL body.
    return dbops.Function(
        name=spec.qualify(spec.fetch_function_name),  # type: ignore
        args=[(None, 'int8')],
        returns=spec.qualify(spec.type_name),
        set_returning=True,
        text=(
            f'SELECT * FROM {qn(*spec.qualify(spec.view_name))} '
            f'WHERE {qc(ID_COLUMN)} = $1'
        ),
    )


def _nextval(seq: Tuple[str, str]) -> str:
    return f'nextval({qr(*seq)})'


def _currval(seq: Tuple[str, str]) -> str:
    return f'currval({qr(*seq)})'


def _insert(
    table: Tuple[str, str],
    values: Sequence[Tuple[str, str]],
) -> str:
    cols = ', '.join(qc(name) for name, _ in values)
    exprs = ', '.join(expr for _, expr in values)
    return f'INSERT INTO {qn(*table)} ({cols})\n    VALUES ({exprs})'


def _update(
    table: Tuple[str, str],
    columns: Sequence[str],
    key: str,
) -> str:
    assignments = ', '.join(f'{qc(c)} = NEW.{qc(c)}' for c in columns)
    return (
        f'UPDATE {qn(*table)}\n    SET {assignments}\n'
        f'    WHERE {qc(key)} = OLD.{qc(ID_COLUMN)}'
    )


def insert_rule(
    spec: InheritanceSpec,
    parent_columns: Sequence[ColumnDescriptor],
    child_columns: Sequence[ColumnDescriptor],
) -> dbops.Rule:
    """INSERT on the view: parent row first, then child row.

    The parent insert must come first.  Callers that update the fresh
    row right after inserting it (e.g. ORM after-create callbacks)
    otherwise observe a stale row.
    """
    parent_seq = spec.qualify(spec.sequence_name)  # type: ignore
    child_seq = spec.qualify(spec.child_sequence_name)  # type: ignore

    parent_values = []
    for col in parent_columns:
        if col.name == ID_COLUMN:
            expr = _nextval(parent_seq)
        elif col.name == spec.discriminator_column:
            expr = ql(spec.child_type_name)
        else:
            expr = f'NEW.{qc(col.name)}'
        parent_values.append((col.name, expr))

    child_values = []
    for col in child_columns:
        if col.name == ID_COLUMN:
            expr = _nextval(child_seq)
        elif col.name == spec.foreign_key_column:
            expr = _currval(parent_seq)
        else:
            expr = f'NEW.{qc(col.name)}'
        child_values.append((col.name, expr))

    # A rewritten multi-table INSERT cannot return the joined row
    # directly, so every column is fetched back through the view.
    fetch = qn(*spec.qualify(spec.fetch_function_name))  # type: ignore
    returning = ',\n        '.join(
        f'(SELECT {qc(c.name)} FROM {fetch}({_currval(parent_seq)}))'
        for c in view_columns(spec, parent_columns, child_columns)
    )

    actions = [
        _insert(spec.qualify(spec.parent_table), parent_values),
        (
            _insert(spec.qualify(spec.child_table), child_values)
            + f'\n    RETURNING\n        {returning}'
        ),
    ]

    return dbops.Rule(
        name=spec.insert_rule_name,
        table_name=spec.qualify(spec.view_name),
        event=Event.Insert,
        actions=actions,
    )


def update_rule(
    spec: InheritanceSpec,
    parent_columns: Sequence[ColumnDescriptor],
    child_columns: Sequence[ColumnDescriptor],
) -> dbops.Rule:
    """UPDATE on the view: child row first, then parent row."""
    child_set = [
        c.name for c in child_columns
        if c.name not in child_exclusions(spec)
    ]
    parent_set = [
        c.name for c in parent_columns
        if c.name not in parent_exclusions(spec)
    ]

    actions = []
    if child_set:
        actions.append(_update(
            spec.qualify(spec.child_table),
            child_set,
            spec.foreign_key_column,  # type: ignore
        ))
    if parent_set:
        actions.append(_update(
            spec.qualify(spec.parent_table),
            parent_set,
            ID_COLUMN,
        ))

    return dbops.Rule(
        name=spec.update_rule_name,
        table_name=spec.qualify(spec.view_name),
        event=Event.Update,
        actions=actions,
    )


def delete_rule(spec: InheritanceSpec) -> dbops.Rule:
    """DELETE on the view removes the child row only.

    A DELETE rule on a view runs a single statement; the parent row is
    removed by the trigger on the child table.
    """
    return dbops.Rule(
        name=spec.delete_rule_name,
        table_name=spec.qualify(spec.view_name),
        event=Event.Delete,
        actions=[
            f'DELETE FROM {qn(*spec.qualify(spec.child_table))}\n'
            f'    WHERE {qc(spec.foreign_key_column)}'  # type: ignore
            f' = OLD.{qc(ID_COLUMN)}'
        ],
    )


def delete_function(spec: InheritanceSpec) -> dbops.Function:
    parent = qn(*spec.qualify(spec.parent_table))
    fk = qc(spec.foreign_key_column)  # type: ignore
    return dbops.Function(
        name=spec.qualify(spec.delete_function_name),
        returns='trigger',
        language='plpgsql',
        text=textwrap.dedent(f'''\
            BEGIN
                IF tg_op = 'DELETE' THEN
                    DELETE FROM {parent} WHERE {qc(ID_COLUMN)} = OLD.{fk};
                    RETURN OLD;
                END IF;
                RETURN NULL;
            END;
        '''),
    )


def delete_trigger(spec: InheritanceSpec) -> dbops.Trigger:
    return dbops.Trigger(
        name=spec.delete_trigger_name,
        table_name=spec.qualify(spec.child_table),
        events=('DELETE',),
        timing=dbops.TriggerTiming.Before,
        granularity=dbops.TriggerGranularity.Row,
        procedure=spec.qualify(spec.delete_function_name),
    )


def create_plan(
    spec: InheritanceSpec,
    parent_columns: Sequence[ColumnDescriptor],
    child_columns: Sequence[ColumnDescriptor],
) -> dbops.CommandGroup:
    """Build all create steps in dependency order.

    Everything, including type mapping, is resolved here, so a broken
    spec fails before any statement reaches the store.
    """
    validate_columns(spec, parent_columns, child_columns)

    plan = dbops.CommandGroup()
    parent_columns = list(parent_columns)

    if spec.discriminator_column not in _names(parent_columns):
        plan.add_command(add_discriminator(spec))
        # ADD COLUMN appends, so physical order is preserved.
        parent_columns.append(discriminator_descriptor(spec))

    plan.add_commands([
        dbops.CreateView(
            view(spec, parent_columns, child_columns), or_replace=True),
        dbops.CreateCompositeType(
            row_type(spec, parent_columns, child_columns)),
        dbops.CreateFunction(fetch_function(spec), or_replace=True),
        dbops.CreateRule(
            insert_rule(spec, parent_columns, child_columns),
            or_replace=True),
        dbops.CreateRule(
            update_rule(spec, parent_columns, child_columns),
            or_replace=True),
        dbops.CreateRule(delete_rule(spec), or_replace=True),
        dbops.CreateFunction(delete_function(spec)),
        dbops.CreateTrigger(delete_trigger(spec)),
    ])

    return plan


def _view_rule_ref(
    spec: InheritanceSpec,
    name: str,
    event: dbops.RuleEvent,
) -> dbops.Rule:
    return dbops.Rule(
        name=name,
        table_name=spec.qualify(spec.view_name),
        event=event,
        actions=(),
    )


def drop_plan(
    spec: InheritanceSpec,
    *,
    drop_discriminator_column: bool,
) -> dbops.CommandGroup:
    """Build all drop steps, the exact inverse of create_plan().

    Each step tolerates a missing object, so dropping after a failed
    create is safe.
    """
    view_name = spec.qualify(spec.view_name)
    fetch = fetch_function(spec)
    delfunc = delete_function(spec)

    plan = dbops.CommandGroup()
    plan.add_commands([
        dbops.DropTrigger(delete_trigger(spec), conditional=True),
        dbops.DropFunction(delfunc.name, args=(), if_exists=True),
        dbops.DropRule(
            _view_rule_ref(spec, spec.delete_rule_name, Event.Delete),
            conditional=True),
        dbops.DropRule(
            _view_rule_ref(spec, spec.update_rule_name, Event.Update),
            conditional=True),
        dbops.DropRule(
            _view_rule_ref(spec, spec.insert_rule_name, Event.Insert),
            conditional=True),
        dbops.DropFunction(fetch.name, args=fetch.args or (), if_exists=True),
        dbops.DropCompositeType(
            spec.qualify(spec.type_name), conditional=True),
        dbops.DropView(view_name, conditional=True),
    ])

    if drop_discriminator_column:
        plan.add_command(drop_discriminator(spec))

    return plan

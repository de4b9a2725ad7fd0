"""
user_id -> account_id backfill.

Rows written before account identifiers existed are keyed only by the legacy
user (payment terms, assessments, transactions) or student primary key
(payments). The backfill first gives every student without an identifier
one, then copies the owner's identifier onto dependent rows:

    UPDATE dependent SET account_id = (
        SELECT account_id FROM students WHERE students.<key> = dependent.<key>
    ) WHERE dependent.account_id IS NULL

Only rows with a null identifier are touched, so re-running is a no-op.
Each invocation is a single atomic block; an interrupted run leaves nothing
behind and can simply be started again. A real run ends with
``verify_backfill()`` inside that block, so rows left without an owner or
pointing at an unknown account roll the whole run back.

Once a run has verified, ``enforce_account_id_constraints()`` makes
``account_id`` NOT NULL on every table.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from django.db import connection, transaction
from django.db.models import OuterRef, Subquery
from django.utils import timezone

from apps.core.students.identifiers import generate_account_id
from apps.core.students.models import Student
from apps.core.utils.exceptions import BackfillIncomplete, OrphanedRecordError

from .models import Payment, StudentAssessment, StudentPaymentTerm, Transaction


logger = logging.getLogger(__name__)

STUDENTS_TABLE = 'students'

# (report name, model, legacy column on the dependent, matching Student field)
DEPENDENT_TABLES = (
    ('payment_terms', StudentPaymentTerm, 'user_id', 'user_id'),
    ('assessments', StudentAssessment, 'user_id', 'user_id'),
    ('transactions', Transaction, 'user_id', 'user_id'),
    ('payments', Payment, 'student_id', 'pk'),
)


@dataclass
class BackfillReport:
    dry_run: bool
    counts_by_table: dict = field(default_factory=dict)
    assigned: dict = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.counts_by_table.values())


def _pending_rows(model, legacy_field, student_field):
    owners = Student.objects.values(student_field)
    return model.objects.missing_account_id().filter(**{f'{legacy_field}__in': owners})


def _backfill_students(*, dry_run: bool, on_date=None) -> dict:
    assigned = {}
    students = Student.objects.missing_account_id().select_for_update().order_by('created_at', 'id')
    for student in students:
        issued_on = on_date or timezone.localdate(student.created_at)
        account_id = generate_account_id(issued_on, taken=assigned.values())
        assigned[student.pk] = account_id
        if not dry_run:
            student.account_id = account_id
            student.save(update_fields=['account_id', 'updated_at'])
        logger.info('%s %s -> student #%s', 'Would assign' if dry_run else 'Assigned', account_id, student.pk)
    return assigned


def _backfill_dependent(model, legacy_field, student_field, *, dry_run: bool) -> int:
    pending = _pending_rows(model, legacy_field, student_field)
    if dry_run:
        return pending.count()
    owner_account = Student.objects.filter(**{student_field: OuterRef(legacy_field)}).values('account_id')[:1]
    return pending.update(account_id=Subquery(owner_account))


def run_backfill(*, dry_run: bool = False, on_date=None) -> BackfillReport:
    report = BackfillReport(dry_run=dry_run)

    with transaction.atomic():
        report.assigned = _backfill_students(dry_run=dry_run, on_date=on_date)
        report.counts_by_table[STUDENTS_TABLE] = len(report.assigned)

        for name, model, legacy_field, student_field in DEPENDENT_TABLES:
            count = _backfill_dependent(model, legacy_field, student_field, dry_run=dry_run)
            report.counts_by_table[name] = count
            logger.info('Backfill %s: %s row(s)%s', name, count, ' (dry run)' if dry_run else '')

        if dry_run:
            transaction.set_rollback(True)
        else:
            verify_backfill()

    return report


def remaining_without_account_id() -> dict:
    remaining = {STUDENTS_TABLE: Student.objects.missing_account_id().count()}
    for name, model, _, _ in DEPENDENT_TABLES:
        remaining[name] = model.objects.missing_account_id().count()
    return remaining


def find_orphans() -> dict:
    """Account identifiers on financial rows that no student owns, per table."""
    owned = Student.objects.filter(account_id__isnull=False).values('account_id')
    orphans = {}
    for name, model, _, _ in DEPENDENT_TABLES:
        values = (
            model.objects.filter(account_id__isnull=False)
            .exclude(account_id__in=owned)
            .values_list('account_id', flat=True)
            .distinct()
        )
        values = sorted(values)
        if values:
            orphans[name] = values
    return orphans


def verify_backfill() -> dict:
    """Raise unless every row carries an identifier owned by an existing student."""
    remaining = remaining_without_account_id()
    missing = {name: count for name, count in remaining.items() if count}
    if missing:
        logger.error('Backfill incomplete: %s', missing)
        raise BackfillIncomplete(
            'Rows without account_id remain: '
            + ', '.join(f'{name}={count}' for name, count in missing.items()),
            remaining=missing,
        )

    orphans = find_orphans()
    if orphans:
        table, account_ids = next(iter(orphans.items()))
        logger.error('Orphaned financial rows: %s', orphans)
        raise OrphanedRecordError(
            f'{table} reference unknown accounts: {", ".join(account_ids)}',
            table=table,
            account_ids=account_ids,
        )
    return remaining


def _account_id_models():
    return [(STUDENTS_TABLE, Student)] + [(name, model) for name, model, _, _ in DEPENDENT_TABLES]


def _not_null(field_obj):
    required = field_obj.clone()
    required.null = False
    required.set_attributes_from_name(field_obj.name)
    required.model = field_obj.model
    return required


def enforce_account_id_constraints() -> list:
    """
    Make ``account_id`` NOT NULL on students and every financial table.

    Refuses (``BackfillIncomplete`` / ``OrphanedRecordError``) unless the
    backfill has verified. Must run outside an atomic block; the schema
    editor opens its own.
    """
    verify_backfill()

    tables = []
    with connection.schema_editor() as editor:
        for name, model in _account_id_models():
            current = model._meta.get_field('account_id')
            editor.alter_field(model, current, _not_null(current))
            tables.append(name)
            logger.info('account_id on %s is now NOT NULL', name)
    return tables


def relax_account_id_constraints() -> list:
    """Undo ``enforce_account_id_constraints`` so legacy rows can be written again."""
    tables = []
    with connection.schema_editor() as editor:
        for name, model in _account_id_models():
            current = model._meta.get_field('account_id')
            editor.alter_field(model, _not_null(current), current)
            tables.append(name)
    return tables

from __future__ import annotations

import logging
from datetime import date, timedelta
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from apps.core.academics.models import PAYMENT_TERM_NAMES
from apps.core.students.identifiers import allocate_sequence
from apps.core.students.models import Student

from .ledger import _quantize, append_transaction, recalculate_account
from .models import StudentAssessment, StudentPaymentTerm, Transaction


logger = logging.getLogger(__name__)

TERM_START_MONTH = 8
TERM_START_DAY = 1
# Weeks after the semester start at which each installment falls due.
DUE_WEEKS = (0, 6, 12, 15, 18)


def term_due_date(school_year: str, order: int) -> date:
    start = date(int(school_year[:4]), TERM_START_MONTH, TERM_START_DAY)
    weeks = DUE_WEEKS[order - 1] if 0 < order <= len(DUE_WEEKS) else 0
    return start + timedelta(weeks=weeks)


def _assessment_number(school_year: str) -> str:
    return allocate_sequence(
        StudentAssessment.objects.all(),
        field='assessment_number',
        prefix=f"ASM-{school_year[:4]}-",
    )


def _subject_rows(curriculum, courses):
    rows = []
    for course in courses:
        tuition = _quantize(course.total_units * curriculum.tuition_per_unit)
        lab_fee = _quantize(curriculum.lab_fee) if course.has_lab else Decimal('0.00')
        rows.append({
            'id': course.id,
            'code': course.code,
            'title': course.title,
            'lec_units': str(course.lec_units),
            'lab_units': str(course.lab_units),
            'total_units': str(course.total_units),
            'has_lab': course.has_lab,
            'tuition': str(tuition),
            'lab_fee': str(lab_fee),
            'total': str(tuition + lab_fee),
        })
    return rows


@transaction.atomic
def generate_assessment(*, student: Student, curriculum, created_by=None, today=None) -> StudentAssessment:
    """
    Assess a student against a curriculum.

    Creates the assessment and its payment terms only. Nothing is posted to
    the ledger here: charges appear when terms fall due
    (``post_due_term_charges``) and payments when money is recorded.
    """
    if not student.account_id:
        raise ValidationError('Student has no account identifier yet; run the account backfill first.')

    courses = list(curriculum.ordered_courses())
    if not courses:
        raise ValidationError('Cannot generate assessment: curriculum has no courses.')

    duplicate = StudentAssessment.objects.for_account(student.account_id).filter(
        school_year=curriculum.school_year,
        semester=curriculum.semester,
        year_level=curriculum.year_level,
        status=StudentAssessment.STATUS_ACTIVE,
    )
    if duplicate.exists():
        raise ValidationError('Student already has an active assessment for this term.')

    tuition_fee = curriculum.calculate_tuition()
    lab_fees = curriculum.calculate_lab_fees()
    registration_fee = _quantize(curriculum.registration_fee)
    misc_fee = _quantize(curriculum.misc_fee)
    installments = curriculum.generate_payment_terms()

    assessment = StudentAssessment.objects.create(
        user=student.user,
        account_id=student.account_id,
        curriculum=curriculum,
        assessment_number=_assessment_number(curriculum.school_year),
        year_level=curriculum.year_level,
        semester=curriculum.semester,
        school_year=curriculum.school_year,
        tuition_fee=tuition_fee,
        other_fees=_quantize(lab_fees + misc_fee),
        registration_fee=registration_fee,
        total_assessment=curriculum.calculate_total_assessment(),
        subjects=_subject_rows(curriculum, courses),
        fee_breakdown=[
            {'name': 'Registration Fee', 'amount': str(registration_fee)},
            {'name': 'Laboratory Fee', 'amount': str(lab_fees)},
            {'name': 'Miscellaneous Fee', 'amount': str(misc_fee)},
        ],
        payment_terms={key: str(value) for key, value in installments.items()},
        created_by=created_by,
    )

    order = 1
    for key, name in PAYMENT_TERM_NAMES:
        amount = installments.get(key, Decimal('0.00'))
        if amount <= 0:
            continue
        StudentPaymentTerm.objects.create(
            user=student.user,
            account_id=student.account_id,
            curriculum=curriculum,
            school_year=curriculum.school_year,
            semester=curriculum.semester,
            term_name=name,
            term_order=order,
            amount=amount,
            due_date=term_due_date(curriculum.school_year, order),
        )
        order += 1

    logger.info(
        'Assessment %s for %s: %s over %s terms',
        assessment.assessment_number,
        student.account_id,
        assessment.total_assessment,
        order - 1,
    )
    return assessment


TERM_STATUS_TO_LEDGER = {
    StudentPaymentTerm.STATUS_PENDING: Transaction.STATUS_PENDING,
    StudentPaymentTerm.STATUS_PARTIAL: Transaction.STATUS_PARTIAL,
    StudentPaymentTerm.STATUS_PAID: Transaction.STATUS_PAID,
}


@transaction.atomic
def post_due_term_charges(*, account_id: str, as_of=None, created_by=None):
    """Post one charge per due, not yet charged, payment term. Safe to re-run."""
    as_of = as_of or timezone.localdate()
    student = Student.objects.lock_account(account_id)

    due_terms = (
        StudentPaymentTerm.objects.for_account(account_id)
        .select_for_update()
        .filter(charge__isnull=True, due_date__isnull=False, due_date__lte=as_of, amount__gt=0)
        .order_by('due_date', 'term_order', 'id')
    )

    posted = []
    for term in due_terms:
        entry = append_transaction(
            student=student,
            kind=Transaction.KIND_CHARGE,
            amount=term.amount,
            status=TERM_STATUS_TO_LEDGER[term.status],
            meta={
                'term_id': term.pk,
                'term_name': term.term_name,
                'school_year': term.school_year,
                'semester': term.semester,
            },
            created_by=created_by,
            on_date=term.due_date,
            reference=f"FEE-{term.pk:08d}",
        )
        term.charge = entry
        term.save(update_fields=['charge', 'updated_at'])
        posted.append(entry)

    if posted:
        logger.info('Posted %s due term charge(s) on %s', len(posted), account_id)
    recalculate_account(account_id=account_id, today=as_of)
    return posted

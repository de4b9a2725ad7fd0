from __future__ import annotations

import logging
from datetime import date, datetime, time
from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F, Sum
from django.utils import timezone
from django.utils.crypto import get_random_string

from apps.core.academics.calendar import (
    closing_school_year,
    current_term,
    is_final_year_level,
    next_year_level,
)
from apps.core.students.models import Student
from apps.core.utils.exceptions import OrphanedRecordError

from .models import Payment, StudentAssessment, StudentPaymentTerm, Transaction


logger = logging.getLogger(__name__)

REFERENCE_CHARS = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'


def _to_decimal(value) -> Decimal:
    return Decimal(str(value or '0'))


def _quantize(value) -> Decimal:
    return _to_decimal(value).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


def _sum_amount(queryset, field_name='amount') -> Decimal:
    value = queryset.aggregate(total=Sum(field_name)).get('total')
    return _to_decimal(value)


def _as_datetime(value):
    if value is None:
        return timezone.now()
    if isinstance(value, datetime):
        return value if timezone.is_aware(value) else timezone.make_aware(value)
    if isinstance(value, date):
        return timezone.make_aware(datetime.combine(value, time.min))
    raise ValidationError('Invalid payment date.')


def new_reference(prefix: str) -> str:
    return f"{prefix}-{get_random_string(10, allowed_chars=REFERENCE_CHARS)}"


def compute_balance(account_id: str) -> Decimal:
    """Charges minus paid payments, recomputed from the full ledger."""
    ledger = Transaction.objects.for_account(account_id)
    charges = _sum_amount(ledger.filter(kind=Transaction.KIND_CHARGE))
    payments = _sum_amount(ledger.filter(kind=Transaction.KIND_PAYMENT, status=Transaction.STATUS_PAID))
    return _quantize(charges - payments)


def get_balance(account_id: str) -> Decimal:
    if not Student.objects.by_account_id(account_id).exists():
        raise OrphanedRecordError(
            f'No student owns account {account_id}.',
            table='students',
            account_ids=[account_id],
        )
    return compute_balance(account_id)


def append_transaction(
    *,
    student: Student,
    kind: str,
    amount,
    status: str,
    payment_channel: str = '',
    paid_at=None,
    meta=None,
    created_by=None,
    on_date=None,
    reference: str = '',
) -> Transaction:
    """Write one ledger row. Callers recalculate inside the same atomic block."""
    term = current_term(on_date or timezone.localdate())
    prefix = 'PAY' if kind == Transaction.KIND_PAYMENT else 'CHG'
    entry = Transaction(
        user=student.user,
        account_id=student.account_id,
        reference=reference or new_reference(prefix),
        kind=kind,
        status=status,
        amount=_quantize(amount),
        payment_channel=(payment_channel or '')[:50],
        year=str(term.year),
        semester=term.semester,
        paid_at=paid_at,
        meta=meta or {},
        created_by=created_by,
    )
    entry.full_clean()
    entry.save()
    return entry


def promote_student(student: Student, *, today=None):
    """
    Advance the year level once per school year after the account is cleared.

    Runs only inside the configured promotion months, only for enrolled
    students with an active assessment for their current level in the school
    year that is closing. The assessment is marked completed and the school
    year is stamped on the student, so a second call is a no-op. At the last
    level the student (and the login user) become graduated.
    """
    today = today or timezone.localdate()
    if today.month not in tuple(getattr(settings, 'LEDGER_PROMOTION_MONTHS', (5, 6))):
        return None
    if student.status != Student.STATUS_ENROLLED:
        return None

    school_year = closing_school_year(today)
    if student.last_promoted_school_year == school_year:
        return None

    assessment = (
        StudentAssessment.objects.for_account(student.account_id)
        .filter(
            year_level=student.year_level,
            school_year=school_year,
            status=StudentAssessment.STATUS_ACTIVE,
        )
        .order_by('-created_at', '-id')
        .first()
    )
    if assessment is None:
        return None

    previous_level = student.year_level
    next_level = next_year_level(previous_level)
    update_fields = ['last_promoted_school_year', 'updated_at']
    if next_level:
        student.year_level = next_level
        update_fields.append('year_level')
        outcome = next_level
    elif is_final_year_level(previous_level):
        student.status = Student.STATUS_GRADUATED
        update_fields.append('status')
        user = student.user
        user.status = user.STATUS_GRADUATED
        user.save(update_fields=['status'])
        outcome = Student.STATUS_GRADUATED
    else:
        logger.warning('Account %s has unknown year level %r; not promoted', student.account_id, previous_level)
        return None

    student.last_promoted_school_year = school_year
    student.save(update_fields=update_fields)
    StudentAssessment.objects.filter(pk=assessment.pk).update(status=StudentAssessment.STATUS_COMPLETED)

    if outcome == Student.STATUS_GRADUATED:
        logger.info('Account %s graduated (%s)', student.account_id, school_year)
    else:
        logger.info('Account %s promoted %s -> %s (%s)', student.account_id, previous_level, outcome, school_year)
    return outcome


@transaction.atomic
def recalculate_account(*, account_id: str, today=None) -> Decimal:
    student = Student.objects.lock_account(account_id)
    balance = compute_balance(account_id)
    if student.balance != balance:
        student.balance = balance
        student.save(update_fields=['balance', 'updated_at'])
    logger.debug('Recalculated %s balance=%s', account_id, balance)

    if balance <= 0:
        promote_student(student, today=today)
    return balance


def _outstanding_terms(account_id: str):
    return (
        StudentPaymentTerm.objects.for_account(account_id)
        .exclude(status=StudentPaymentTerm.STATUS_PAID)
        .order_by(F('due_date').asc(nulls_last=True), 'term_order', 'id')
    )


def _apply_to_terms(*, account_id: str, amount: Decimal, term=None):
    """Spread ``amount`` over unpaid terms, earliest due first; returns (allocations, leftover)."""
    remaining = _quantize(amount)
    allocations = []

    candidates = list(_outstanding_terms(account_id).select_for_update())
    if term is not None:
        if term.account_id != account_id:
            raise ValidationError('Payment term does not belong to this account.')
        candidates.sort(key=lambda row: row.pk != term.pk)

    for row in candidates:
        if remaining <= 0:
            break
        applied = row.apply_payment(remaining)
        if applied > 0:
            allocations.append({'term_id': row.pk, 'amount': str(applied)})
            remaining = _quantize(remaining - applied)

    return allocations, remaining


def _post_payment(
    *,
    student: Student,
    amount: Decimal,
    method: str,
    status: str,
    paid_at=None,
    reference_number: str = '',
    description: str = '',
    term=None,
    created_by=None,
    today=None,
) -> Payment:
    method = (method or '').strip()
    if not method:
        raise ValidationError('Payment method is required.')

    paid_at = _as_datetime(paid_at)
    allocations, leftover = [], Decimal('0.00')
    if status == Transaction.STATUS_PAID:
        allocations, leftover = _apply_to_terms(account_id=student.account_id, amount=amount, term=term)
        if leftover > 0:
            logger.info('Account %s overpaid by %s; kept as credit', student.account_id, leftover)

    entry = append_transaction(
        student=student,
        kind=Transaction.KIND_PAYMENT,
        amount=amount,
        status=status,
        payment_channel=method,
        paid_at=paid_at,
        meta={
            'reference_number': reference_number or None,
            'description': description,
            'term_id': term.pk if term is not None else None,
            'allocations': allocations,
        },
        created_by=created_by,
        on_date=today,
    )
    return Payment.objects.create(
        student=student,
        account_id=student.account_id,
        transaction=entry,
        amount=entry.amount,
        description=(description or '')[:255],
        payment_method=method[:50],
        reference_number=(reference_number or '')[:120],
        status=Payment.STATUS_COMPLETED if status == Transaction.STATUS_PAID else Payment.STATUS_PENDING,
        paid_at=paid_at,
    )


def _positive_amount(amount) -> Decimal:
    amount = _quantize(amount)
    if amount <= 0:
        raise ValidationError('Amount must be greater than zero.')
    return amount


@transaction.atomic
def post_transaction(
    *,
    account_id: str,
    kind: str,
    amount,
    status: str | None = None,
    payment_channel: str = '',
    meta=None,
    created_by=None,
    today=None,
) -> Transaction:
    """Append a charge or payment and recalculate before commit."""
    student = Student.objects.lock_account(account_id)
    amount = _positive_amount(amount)
    if kind not in dict(Transaction.KIND_CHOICES):
        raise ValidationError('Kind must be charge or payment.')

    if status is None:
        status = Transaction.STATUS_PAID if kind == Transaction.KIND_PAYMENT else Transaction.STATUS_PENDING
    if status not in dict(Transaction.STATUS_CHOICES):
        raise ValidationError('Invalid transaction status.')

    if kind == Transaction.KIND_PAYMENT:
        payment = _post_payment(
            student=student,
            amount=amount,
            method=payment_channel or 'manual',
            status=status,
            description=(meta or {}).get('description', ''),
            created_by=created_by,
            today=today,
        )
        entry = payment.transaction
    else:
        entry = append_transaction(
            student=student,
            kind=kind,
            amount=amount,
            status=status,
            payment_channel=payment_channel,
            meta=meta,
            created_by=created_by,
            on_date=today,
        )

    recalculate_account(account_id=account_id, today=today)
    return entry


@transaction.atomic
def record_payment(
    *,
    account_id: str,
    amount,
    method: str,
    paid_at=None,
    reference_number: str = '',
    description: str = '',
    term: StudentPaymentTerm | None = None,
    created_by=None,
    today=None,
) -> Payment:
    """Record a completed payment: Payment + paid ledger entry, applied to terms by due date."""
    student = Student.objects.lock_account(account_id)
    payment = _post_payment(
        student=student,
        amount=_positive_amount(amount),
        method=method,
        status=Transaction.STATUS_PAID,
        paid_at=paid_at,
        reference_number=reference_number,
        description=description,
        term=term,
        created_by=created_by,
        today=today,
    )
    recalculate_account(account_id=account_id, today=today)
    logger.info('Recorded payment %s of %s for %s', payment.transaction.reference, payment.amount, account_id)
    return payment


@transaction.atomic
def reverse_transaction(*, transaction_obj: Transaction, reason: str, reversed_by=None, today=None) -> Transaction:
    """Cancel a ledger entry by posting its negation; the original row stays in place."""
    reason = (reason or '').strip()
    if not reason:
        raise ValidationError('Reversal reason is required.')

    student = Student.objects.lock_account(transaction_obj.account_id)
    original = Transaction.objects.select_for_update().get(pk=transaction_obj.pk)
    if original.is_reversal:
        raise ValidationError('Offsetting entries cannot be reversed.')
    if original.is_reversed:
        raise ValidationError('Transaction is already reversed.')

    offset = append_transaction(
        student=student,
        kind=original.kind,
        amount=-original.amount,
        status=original.status,
        payment_channel=original.payment_channel,
        paid_at=timezone.now() if original.paid_at else None,
        meta={'reverses': original.reference, 'reason': reason[:255]},
        created_by=reversed_by,
        on_date=today,
        reference=f"REV-{original.reference}"[:40],
    )

    original.is_reversed = True
    original.reversed_at = timezone.now()
    original.reversal_reason = reason[:255]
    original.save(update_fields=['is_reversed', 'reversed_at', 'reversal_reason'])

    if original.kind == Transaction.KIND_PAYMENT:
        payment = Payment.objects.select_for_update().filter(transaction=original).first()
        if payment is not None:
            payment.is_reversed = True
            payment.save(update_fields=['is_reversed'])
            Payment.objects.create(
                student=student,
                account_id=student.account_id,
                transaction=offset,
                amount=offset.amount,
                description=f"Reversal of {original.reference}"[:255],
                payment_method=payment.payment_method,
                status=payment.status,
                paid_at=timezone.now(),
            )
        for allocation in reversed(original.meta.get('allocations', [])):
            term = StudentPaymentTerm.objects.select_for_update().filter(pk=allocation['term_id']).first()
            if term is not None:
                term.unapply_payment(_to_decimal(allocation['amount']))

    recalculate_account(account_id=student.account_id, today=today)
    logger.info('Reversed %s on %s: %s', original.reference, student.account_id, reason)
    return offset


def ledger_summary(account_id: str) -> dict:
    balance = get_balance(account_id)
    ledger = Transaction.objects.for_account(account_id)
    outstanding = list(_outstanding_terms(account_id))
    return {
        'account_id': account_id,
        'charges': _quantize(_sum_amount(ledger.filter(kind=Transaction.KIND_CHARGE))),
        'payments': _quantize(
            _sum_amount(ledger.filter(kind=Transaction.KIND_PAYMENT, status=Transaction.STATUS_PAID))
        ),
        'balance': balance,
        'outstanding_terms': outstanding,
        'next_due': outstanding[0] if outstanding else None,
        'scheduled_remaining': _quantize(sum((term.remaining_balance for term in outstanding), Decimal('0.00'))),
    }

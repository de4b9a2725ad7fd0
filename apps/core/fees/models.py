from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q

from apps.core.academics.models import (
    Curriculum,
    SEMESTER_CHOICES,
    YEAR_LEVEL_CHOICES,
)
from apps.core.students.models import Student
from apps.core.utils.managers import AccountManager


# account_id on every financial table is a plain indexed column rather than a
# foreign key: rows written before identifiers existed carry only the legacy
# user/student key, and orphans must stay representable so they can be reported.
ACCOUNT_ID_MAX_LENGTH = 20


class FinancialRecordModel(models.Model):
    class Meta:
        abstract = True

    def delete(self, *args, **kwargs):
        raise ValidationError('Financial records cannot be deleted. Post an offsetting entry instead.')


class StudentAssessment(models.Model):
    STATUS_ACTIVE = 'active'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = (
        (STATUS_ACTIVE, 'Active'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='assessments',
    )
    account_id = models.CharField(max_length=ACCOUNT_ID_MAX_LENGTH, null=True, blank=True, db_index=True)
    objects = AccountManager()

    curriculum = models.ForeignKey(
        Curriculum,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assessments',
    )
    assessment_number = models.CharField(max_length=30, unique=True)
    year_level = models.CharField(max_length=20, choices=YEAR_LEVEL_CHOICES)
    semester = models.CharField(max_length=20, choices=SEMESTER_CHOICES)
    school_year = models.CharField(max_length=9)
    tuition_fee = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    other_fees = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    registration_fee = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total_assessment = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    subjects = models.JSONField(default=list, blank=True)
    fee_breakdown = models.JSONField(default=list, blank=True)
    payment_terms = models.JSONField(default=dict, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_ACTIVE)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='created_assessments',
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(
                fields=['account_id', 'year_level', 'school_year', 'status'],
                name='assessment_account_term_idx',
            ),
            models.Index(fields=['user', 'school_year', 'semester'], name='assessment_user_term_idx'),
        ]

    def __str__(self):
        return f"{self.assessment_number} ({self.account_id or self.user_id})"


class Transaction(FinancialRecordModel):
    KIND_CHARGE = 'charge'
    KIND_PAYMENT = 'payment'
    KIND_CHOICES = (
        (KIND_CHARGE, 'Charge'),
        (KIND_PAYMENT, 'Payment'),
    )

    STATUS_PENDING = 'pending'
    STATUS_PAID = 'paid'
    STATUS_PARTIAL = 'partial'
    STATUS_CHOICES = (
        (STATUS_PENDING, 'Pending'),
        (STATUS_PAID, 'Paid'),
        (STATUS_PARTIAL, 'Partial'),
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='transactions',
    )
    account_id = models.CharField(max_length=ACCOUNT_ID_MAX_LENGTH, null=True, blank=True, db_index=True)
    objects = AccountManager()

    reference = models.CharField(max_length=40, unique=True)
    kind = models.CharField(max_length=10, choices=KIND_CHOICES)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_PENDING)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    payment_channel = models.CharField(max_length=50, blank=True)
    year = models.CharField(max_length=4, blank=True)
    semester = models.CharField(max_length=20, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    meta = models.JSONField(default=dict, blank=True)

    is_reversed = models.BooleanField(default=False)
    reversed_at = models.DateTimeField(null=True, blank=True)
    reversal_reason = models.CharField(max_length=255, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='posted_transactions',
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']
        constraints = [
            models.CheckConstraint(
                condition=~Q(amount=0),
                name='transaction_amount_non_zero',
            ),
        ]
        indexes = [
            models.Index(fields=['account_id', 'kind', 'status'], name='transaction_account_kind_idx'),
            models.Index(fields=['user', 'kind'], name='transaction_user_kind_idx'),
        ]

    @property
    def is_reversal(self):
        return bool(self.meta.get('reverses'))

    def clean(self):
        super().clean()
        if self.kind not in dict(self.KIND_CHOICES):
            raise ValidationError({'kind': 'Kind must be charge or payment.'})
        if self.status not in dict(self.STATUS_CHOICES):
            raise ValidationError({'status': 'Invalid transaction status.'})
        if self.amount is None or self.amount == 0:
            raise ValidationError({'amount': 'Amount cannot be zero.'})
        if self.amount < 0 and not self.is_reversal:
            raise ValidationError({'amount': 'Only offsetting entries may carry a negative amount.'})

    def __str__(self):
        return f"{self.reference} {self.kind} {self.amount}"


class Payment(FinancialRecordModel):
    STATUS_COMPLETED = 'completed'
    STATUS_PENDING = 'pending'
    STATUS_FAILED = 'failed'
    STATUS_CHOICES = (
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_PENDING, 'Pending'),
        (STATUS_FAILED, 'Failed'),
    )

    student = models.ForeignKey(
        Student,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='payments',
    )
    account_id = models.CharField(max_length=ACCOUNT_ID_MAX_LENGTH, null=True, blank=True, db_index=True)
    objects = AccountManager()

    transaction = models.OneToOneField(
        Transaction,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='payment',
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    description = models.CharField(max_length=255, blank=True)
    payment_method = models.CharField(max_length=50)
    reference_number = models.CharField(max_length=120, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_COMPLETED)
    paid_at = models.DateTimeField()
    is_reversed = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-paid_at', '-id']
        indexes = [
            models.Index(fields=['account_id', 'status'], name='payment_account_status_idx'),
        ]

    def __str__(self):
        return f"Payment {self.amount} ({self.account_id or self.student_id})"


class StudentPaymentTerm(models.Model):
    STATUS_PENDING = 'pending'
    STATUS_PARTIAL = 'partial'
    STATUS_PAID = 'paid'
    STATUS_CHOICES = (
        (STATUS_PENDING, 'Pending'),
        (STATUS_PARTIAL, 'Partial'),
        (STATUS_PAID, 'Paid'),
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='payment_terms',
    )
    account_id = models.CharField(max_length=ACCOUNT_ID_MAX_LENGTH, null=True, blank=True, db_index=True)
    objects = AccountManager()

    curriculum = models.ForeignKey(
        Curriculum,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='payment_terms',
    )
    school_year = models.CharField(max_length=9)
    semester = models.CharField(max_length=20, choices=SEMESTER_CHOICES)
    term_name = models.CharField(max_length=50)
    term_order = models.PositiveSmallIntegerField(default=1)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    due_date = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_PENDING)
    paid_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    charge = models.OneToOneField(
        Transaction,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='charged_term',
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['due_date', 'term_order', 'id']
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gte=0) & Q(paid_amount__gte=0),
                name='payment_term_non_negative_amounts',
            ),
            models.CheckConstraint(
                condition=Q(paid_amount__lte=F('amount')),
                name='payment_term_paid_not_above_amount',
            ),
        ]
        indexes = [
            models.Index(fields=['account_id', 'status', 'due_date'], name='term_account_due_idx'),
            models.Index(fields=['user', 'school_year', 'semester'], name='term_user_term_idx'),
        ]

    @property
    def remaining_balance(self) -> Decimal:
        remaining = Decimal(self.amount) - Decimal(self.paid_amount)
        return remaining if remaining > 0 else Decimal('0.00')

    def is_fully_paid(self) -> bool:
        return Decimal(self.paid_amount) >= Decimal(self.amount)

    def _refresh_status(self):
        if self.is_fully_paid():
            self.status = self.STATUS_PAID
        elif self.paid_amount > 0:
            self.status = self.STATUS_PARTIAL
        else:
            self.status = self.STATUS_PENDING

    def apply_payment(self, amount: Decimal) -> Decimal:
        """Apply up to ``amount`` against this term and return the portion used."""
        applied = min(Decimal(amount), self.remaining_balance)
        if applied <= 0:
            return Decimal('0.00')
        self.paid_amount = Decimal(self.paid_amount) + applied
        self._refresh_status()
        self.save(update_fields=['paid_amount', 'status', 'updated_at'])
        return applied

    def unapply_payment(self, amount: Decimal) -> Decimal:
        removed = min(Decimal(amount), Decimal(self.paid_amount))
        if removed <= 0:
            return Decimal('0.00')
        self.paid_amount = Decimal(self.paid_amount) - removed
        self._refresh_status()
        self.save(update_fields=['paid_amount', 'status', 'updated_at'])
        return removed

    def __str__(self):
        return f"{self.term_name} {self.school_year} {self.semester} ({self.account_id or self.user_id})"

from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import OperationalError, models

from apps.core.academics.models import YEAR_LEVEL_1, YEAR_LEVEL_CHOICES
from apps.core.utils.exceptions import (
    ConcurrentModificationError,
    IdentifierImmutableViolation,
    OrphanedRecordError,
)

from .identifiers import is_valid_account_id


class StudentQuerySet(models.QuerySet):
    def update(self, **kwargs):
        if 'account_id' in kwargs:
            raise IdentifierImmutableViolation(
                'Account identifiers are assigned per student and cannot be bulk-updated.'
            )
        return super().update(**kwargs)

    def by_account_id(self, account_id):
        return self.filter(account_id=account_id)

    def lock_account(self, account_id):
        """Row-lock the owning student; all ledger writes for the account serialize here."""
        if not account_id:
            raise OrphanedRecordError('Account identifier is required.', table='students')
        try:
            return self.select_for_update().select_related('user').get(account_id=account_id)
        except self.model.DoesNotExist:
            raise OrphanedRecordError(
                f'No student owns account {account_id}.',
                table='students',
                account_ids=[account_id],
            ) from None
        except OperationalError as exc:
            raise ConcurrentModificationError(f'Could not lock account {account_id}: {exc}') from exc

    def missing_account_id(self):
        return self.filter(account_id__isnull=True)


class Student(models.Model):
    STATUS_ENROLLED = 'enrolled'
    STATUS_GRADUATED = 'graduated'
    STATUS_INACTIVE = 'inactive'
    STATUS_CHOICES = (
        (STATUS_ENROLLED, 'Enrolled'),
        (STATUS_GRADUATED, 'Graduated'),
        (STATUS_INACTIVE, 'Inactive'),
    )

    # Legacy key used by financial rows written before account_id existed.
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='student',
    )
    account_id = models.CharField(max_length=20, unique=True, null=True, blank=True)
    student_number = models.CharField(max_length=20, blank=True)

    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    middle_initial = models.CharField(max_length=5, blank=True)
    email = models.EmailField(blank=True)
    birthday = models.DateField(null=True, blank=True)
    phone = models.CharField(max_length=20, blank=True)
    address = models.CharField(max_length=255, blank=True)

    course = models.CharField(max_length=255, blank=True)
    year_level = models.CharField(max_length=20, choices=YEAR_LEVEL_CHOICES, default=YEAR_LEVEL_1)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_ENROLLED)

    # Signed: positive means the student owes, negative means credit.
    balance = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    last_promoted_school_year = models.CharField(max_length=9, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = StudentQuerySet.as_manager()

    class Meta:
        ordering = ['last_name', 'first_name', 'id']
        indexes = [
            models.Index(fields=['status'], name='student_status_idx'),
            models.Index(fields=['year_level', 'status'], name='student_level_status_idx'),
        ]

    @property
    def full_name(self):
        middle = f" {self.middle_initial}." if self.middle_initial else ''
        return f"{self.last_name}, {self.first_name}{middle}"

    @property
    def amount_due(self) -> Decimal:
        return self.balance if self.balance > 0 else Decimal('0.00')

    def clean(self):
        super().clean()
        if self.account_id and not is_valid_account_id(self.account_id):
            raise ValidationError({'account_id': 'Account ID must match ACC-YYYYMMDD-NNNN.'})
        self._guard_account_id()

    def _guard_account_id(self):
        if not self.pk:
            return
        stored = Student.objects.filter(pk=self.pk).values_list('account_id', flat=True).first()
        if stored and stored != self.account_id:
            raise IdentifierImmutableViolation()

    def save(self, *args, **kwargs):
        self._guard_account_id()
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        if self.status != self.STATUS_INACTIVE:
            self.status = self.STATUS_INACTIVE
            self.save(update_fields=['status', 'updated_at'])

    def __str__(self):
        return f"{self.account_id or 'unassigned'} - {self.full_name}"

"""
Account identifier allocation.

Identifiers look like ``ACC-20250115-0001``: the creation date plus a
four digit per-day sequence. Allocation reads the highest sequence for the
day under ``select_for_update`` and walks forward past any value that is
already taken, up to ``settings.ACCOUNT_ID_MAX_ATTEMPTS`` candidates.
The unique constraint on ``Student.account_id`` is the final arbiter; callers
retry on IntegrityError (see ``students.services.create_student``).
"""
from __future__ import annotations

import logging
import re

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from apps.core.utils.exceptions import GenerationExhausted


logger = logging.getLogger(__name__)

ACCOUNT_ID_RE = re.compile(r'^ACC-\d{8}-\d{4}$')
SEQUENCE_WIDTH = 4
MAX_SEQUENCE = 10 ** SEQUENCE_WIDTH - 1


def is_valid_account_id(value) -> bool:
    return bool(value) and bool(ACCOUNT_ID_RE.match(str(value)))


def account_id_prefix(on_date) -> str:
    return f"ACC-{on_date:%Y%m%d}-"


def student_number_prefix(on_date) -> str:
    return f"{on_date.year}-"


def _suffix(value, prefix) -> int:
    if not value:
        return 0
    tail = value[len(prefix):]
    return int(tail) if tail.isdigit() else 0


def _max_attempts() -> int:
    return max(int(getattr(settings, 'ACCOUNT_ID_MAX_ATTEMPTS', 100)), 1)


@transaction.atomic
def allocate_sequence(queryset, *, field: str, prefix: str, taken=()) -> str:
    """Reserve the next free ``<prefix>NNNN`` value of ``field`` in ``queryset``."""
    latest = (
        queryset.select_for_update()
        .filter(**{f'{field}__startswith': prefix})
        .order_by(f'-{field}')
        .values_list(field, flat=True)
        .first()
    )
    sequence = max([_suffix(latest, prefix)] + [_suffix(value, prefix) for value in taken if value]) + 1

    for attempt in range(_max_attempts()):
        if sequence > MAX_SEQUENCE:
            break
        candidate = f"{prefix}{sequence:0{SEQUENCE_WIDTH}d}"
        if candidate not in taken and not queryset.filter(**{field: candidate}).exists():
            if attempt:
                logger.warning('Skipped %s taken %s value(s) before allocating %s', attempt, field, candidate)
            return candidate
        sequence += 1

    logger.error('Identifier space exhausted for prefix %s', prefix)
    raise GenerationExhausted(f'Unable to allocate a unique {field} for prefix {prefix}.')


def generate_account_id(on_date=None, *, taken=()) -> str:
    from .models import Student

    on_date = on_date or timezone.localdate()
    account_id = allocate_sequence(
        Student.objects.all(),
        field='account_id',
        prefix=account_id_prefix(on_date),
        taken=taken,
    )
    logger.debug('Allocated account id %s', account_id)
    return account_id


def generate_student_number(on_date=None) -> str:
    on_date = on_date or timezone.localdate()
    return allocate_sequence(
        get_user_model().objects.all(),
        field='student_number',
        prefix=student_number_prefix(on_date),
    )

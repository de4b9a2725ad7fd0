from __future__ import annotations

import logging

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from apps.core.academics.calendar import current_term
from apps.core.academics.models import SEMESTER_FIRST, YEAR_LEVEL_1, YEAR_LEVELS
from apps.core.academics.services import get_curriculum_for_term
from apps.core.fees.assessments import generate_assessment
from apps.core.utils.exceptions import ConcurrentModificationError, IdentifierImmutableViolation

from .identifiers import generate_account_id, generate_student_number
from .models import Student


logger = logging.getLogger(__name__)

CREATE_ATTEMPTS = 3
EDITABLE_FIELDS = {
    'first_name',
    'last_name',
    'middle_initial',
    'email',
    'birthday',
    'phone',
    'address',
    'course',
    'year_level',
}


def _insert_account(*, created_on, student_number=None, user_fields, student_fields) -> Student:
    """
    Insert the login user and the student under fresh identifiers.

    Both the student number and the account id are re-allocated on every
    attempt; a unique collision with a concurrent creation rolls back only
    this attempt's savepoint.
    """
    for attempt in range(1, CREATE_ATTEMPTS + 1):
        number = student_number or generate_student_number(created_on)
        account_id = generate_account_id(created_on)
        try:
            with transaction.atomic():
                user = get_user_model().objects.create_user(
                    username=number,
                    password=None,
                    student_number=number,
                    role='student',
                    **user_fields,
                )
                return Student.objects.create(
                    user=user,
                    account_id=account_id,
                    student_number=number,
                    **student_fields,
                )
        except IntegrityError:
            logger.warning(
                'Student number %s or account id %s was taken concurrently (attempt %s)',
                number,
                account_id,
                attempt,
            )
    raise ConcurrentModificationError('Could not reserve student identifiers; retry the request.')


@transaction.atomic
def create_student(
    *,
    first_name: str,
    last_name: str,
    email: str = '',
    year_level: str = YEAR_LEVEL_1,
    middle_initial: str = '',
    birthday=None,
    phone: str = '',
    address: str = '',
    course: str = '',
    student_number: str | None = None,
    program=None,
    semester: str | None = None,
    school_year: str | None = None,
    auto_generate_assessment: bool = False,
    created_on=None,
    created_by=None,
) -> Student:
    """Create the login user and the zero-balance student account in one transaction."""
    if year_level not in YEAR_LEVELS:
        raise ValidationError({'year_level': 'Invalid year level.'})
    first_name = (first_name or '').strip()
    last_name = (last_name or '').strip()
    if not first_name or not last_name:
        raise ValidationError('First and last name are required.')

    if student_number and get_user_model().objects.filter(
        Q(username=student_number) | Q(student_number=student_number)
    ).exists():
        raise ValidationError({'student_number': 'Student number is already in use.'})

    created_on = created_on or timezone.localdate()
    course_name = program.full_name if program is not None else (course or 'Unknown')

    student = _insert_account(
        created_on=created_on,
        student_number=student_number,
        user_fields={
            'email': email,
            'first_name': first_name,
            'last_name': last_name,
            'middle_initial': middle_initial,
        },
        student_fields={
            'first_name': first_name,
            'last_name': last_name,
            'middle_initial': middle_initial,
            'email': email,
            'birthday': birthday,
            'phone': phone,
            'address': address,
            'course': course_name,
            'year_level': year_level,
        },
    )
    logger.info('Created student %s with account %s', student.student_number, student.account_id)

    if auto_generate_assessment and program is not None:
        term = current_term(created_on)
        curriculum = get_curriculum_for_term(
            program=program,
            year_level=year_level,
            semester=semester or SEMESTER_FIRST,
            school_year=school_year or term.school_year,
        )
        if curriculum:
            generate_assessment(student=student, curriculum=curriculum, created_by=created_by, today=created_on)
        else:
            logger.warning(
                'No curriculum for %s %s %s; account %s created without assessment',
                program.code,
                year_level,
                semester or SEMESTER_FIRST,
                student.account_id,
            )

    return student


@transaction.atomic
def update_student(student: Student, **changes) -> Student:
    """Apply profile edits. Identifiers and the balance cache are never editable here."""
    if 'account_id' in changes and changes['account_id'] != student.account_id:
        raise IdentifierImmutableViolation()
    changes.pop('account_id', None)

    unknown = set(changes) - EDITABLE_FIELDS
    if unknown:
        raise ValidationError(f"Fields cannot be edited: {', '.join(sorted(unknown))}.")

    for field, value in changes.items():
        setattr(student, field, value)
    student.full_clean()
    if changes:
        student.save(update_fields=list(changes) + ['updated_at'])
    return student

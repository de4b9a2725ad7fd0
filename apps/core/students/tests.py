from datetime import date
from decimal import Decimal
from unittest import mock

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.test import TestCase

from apps.core.academics.models import Course, Curriculum, CurriculumCourse, Program, SEMESTER_FIRST
from apps.core.fees.models import StudentAssessment, StudentPaymentTerm, Transaction
from apps.core.utils.exceptions import (
    ConcurrentModificationError,
    GenerationExhausted,
    IdentifierImmutableViolation,
    OrphanedRecordError,
)

from .identifiers import generate_account_id, generate_student_number, is_valid_account_id
from .models import Student
from .services import create_student, update_student


class IdentifierTests(TestCase):
    def setUp(self):
        self.day = date(2025, 1, 15)

    def _legacy_student(self, username, account_id=None):
        user = get_user_model().objects.create_user(username=username)
        return Student.objects.create(user=user, account_id=account_id, first_name='Ana', last_name='Cruz')

    def test_first_identifier_of_the_day(self):
        self.assertEqual(generate_account_id(self.day), 'ACC-20250115-0001')

    def test_sequence_continues_after_highest_existing_value(self):
        self._legacy_student('a', 'ACC-20250115-0001')
        self._legacy_student('b', 'ACC-20250115-0007')
        self._legacy_student('c', 'ACC-20250114-0042')
        self.assertEqual(generate_account_id(self.day), 'ACC-20250115-0008')
        self.assertEqual(generate_account_id(date(2025, 1, 16)), 'ACC-20250116-0001')

    def test_reserved_values_are_skipped(self):
        taken = ['ACC-20250115-0001', 'ACC-20250115-0002']
        self.assertEqual(generate_account_id(self.day, taken=taken), 'ACC-20250115-0003')

    def test_exhausted_day_raises(self):
        self._legacy_student('full', 'ACC-20250115-9999')
        with self.assertRaises(GenerationExhausted):
            generate_account_id(self.day)

    def test_format_check(self):
        self.assertTrue(is_valid_account_id('ACC-20250115-0001'))
        self.assertFalse(is_valid_account_id('ACC-2025011-0001'))
        self.assertFalse(is_valid_account_id('acc-20250115-0001'))
        self.assertFalse(is_valid_account_id(None))

    def test_student_number_sequence(self):
        self.assertEqual(generate_student_number(self.day), '2025-0001')
        get_user_model().objects.create_user(username='2025-0001', student_number='2025-0001')
        self.assertEqual(generate_student_number(self.day), '2025-0002')


class StudentCreationTests(TestCase):
    def setUp(self):
        self.day = date(2025, 1, 15)
        self.program = Program.objects.create(code='BSIT', name='Bachelor of Science in Information Technology')

    def _curriculum(self, school_year='2025-2026'):
        curriculum = Curriculum.objects.create(
            program=self.program,
            school_year=school_year,
            year_level='1st Year',
            semester=SEMESTER_FIRST,
            tuition_per_unit=Decimal('1000.00'),
            registration_fee=Decimal('1000.00'),
            misc_fee=Decimal('3000.00'),
        )
        for order, code in enumerate(['IT101', 'IT102'], start=1):
            course = Course.objects.create(program=self.program, code=code, title=code, lec_units=Decimal('3'))
            CurriculumCourse.objects.create(curriculum=curriculum, course=course, order=order)
        return curriculum

    def test_create_student_assigns_identifier_and_zero_balance(self):
        student = create_student(first_name='Ana', last_name='Cruz', email='ana@example.com', created_on=self.day)

        self.assertEqual(student.account_id, 'ACC-20250115-0001')
        self.assertEqual(student.balance, Decimal('0.00'))
        self.assertEqual(student.status, Student.STATUS_ENROLLED)
        self.assertEqual(student.student_number, '2025-0001')
        self.assertEqual(student.user.username, '2025-0001')
        self.assertEqual(student.user.role, 'student')
        self.assertFalse(student.user.has_usable_password())
        self.assertFalse(Transaction.objects.exists())

    def test_same_day_students_get_consecutive_identifiers(self):
        first = create_student(first_name='Ana', last_name='Cruz', created_on=self.day)
        second = create_student(first_name='Ben', last_name='Reyes', created_on=self.day)
        self.assertEqual(first.account_id, 'ACC-20250115-0001')
        self.assertEqual(second.account_id, 'ACC-20250115-0002')

    def test_invalid_input_creates_nothing(self):
        with self.assertRaises(ValidationError):
            create_student(first_name='Ana', last_name='Cruz', year_level='9th Year', created_on=self.day)
        with self.assertRaises(ValidationError):
            create_student(first_name=' ', last_name='Cruz', created_on=self.day)
        self.assertFalse(Student.objects.exists())
        self.assertFalse(get_user_model().objects.exists())

    def test_auto_assessment_creates_terms_without_transactions(self):
        self._curriculum()
        student = create_student(
            first_name='Ana',
            last_name='Cruz',
            program=self.program,
            semester=SEMESTER_FIRST,
            school_year='2025-2026',
            auto_generate_assessment=True,
            created_on=self.day,
        )

        assessment = StudentAssessment.objects.get(account_id=student.account_id)
        self.assertEqual(assessment.total_assessment, Decimal('10000.00'))
        self.assertEqual(StudentPaymentTerm.objects.for_account(student.account_id).count(), 5)
        self.assertEqual(student.course, self.program.full_name)
        self.assertFalse(Transaction.objects.exists())

    def test_missing_curriculum_is_logged_not_fatal(self):
        with self.assertLogs('apps.core.students.services', level='WARNING'):
            student = create_student(
                first_name='Ana',
                last_name='Cruz',
                program=self.program,
                school_year='2030-2031',
                auto_generate_assessment=True,
                created_on=self.day,
            )
        self.assertIsNotNone(student.account_id)
        self.assertFalse(StudentAssessment.objects.exists())


class IdentifierImmutabilityTests(TestCase):
    def setUp(self):
        self.student = create_student(first_name='Ana', last_name='Cruz', created_on=date(2025, 1, 15))

    def test_save_rejects_changed_identifier(self):
        self.student.account_id = 'ACC-20250115-0099'
        with self.assertRaises(IdentifierImmutableViolation):
            self.student.save()
        self.student.refresh_from_db()
        self.assertEqual(self.student.account_id, 'ACC-20250115-0001')

    def test_queryset_update_rejects_identifier(self):
        with self.assertRaises(IdentifierImmutableViolation):
            Student.objects.filter(pk=self.student.pk).update(account_id='ACC-20250115-0099')

    def test_update_student_rejects_identifier(self):
        with self.assertRaises(IdentifierImmutableViolation):
            update_student(self.student, account_id='ACC-20250115-0099', phone='09170000000')
        self.student.refresh_from_db()
        self.assertEqual(self.student.phone, '')

    def test_update_student_applies_profile_edits(self):
        update_student(self.student, phone='09170000000', year_level='2nd Year')
        self.student.refresh_from_db()
        self.assertEqual(self.student.phone, '09170000000')
        self.assertEqual(self.student.year_level, '2nd Year')

    def test_update_student_rejects_non_editable_fields(self):
        with self.assertRaises(ValidationError):
            update_student(self.student, balance=Decimal('-100.00'))

    def test_legacy_student_can_receive_first_identifier(self):
        user = get_user_model().objects.create_user(username='legacy')
        legacy = Student.objects.create(user=user, first_name='Old', last_name='Record')
        legacy.account_id = 'ACC-20240101-0001'
        legacy.save()
        legacy.refresh_from_db()
        self.assertEqual(legacy.account_id, 'ACC-20240101-0001')

    def test_delete_marks_student_inactive(self):
        self.student.delete()
        self.student.refresh_from_db()
        self.assertEqual(self.student.status, Student.STATUS_INACTIVE)


class AccountLockTests(TestCase):
    def test_lock_returns_owner(self):
        student = create_student(first_name='Ana', last_name='Cruz', created_on=date(2025, 1, 15))
        self.assertEqual(Student.objects.lock_account(student.account_id), student)

    def test_unknown_account_is_orphaned(self):
        with self.assertRaises(OrphanedRecordError) as ctx:
            Student.objects.lock_account('ACC-20990101-0001')
        self.assertEqual(ctx.exception.account_ids, ('ACC-20990101-0001',))

        with self.assertRaises(OrphanedRecordError):
            Student.objects.lock_account('')


class ConcurrentCreationTests(TestCase):
    def setUp(self):
        self.day = date(2025, 1, 15)
        # Committed by a concurrent request: 2025-0001 / ACC-20250115-0001
        self.winner = create_student(first_name='Ana', last_name='Cruz', created_on=self.day)

    def test_taken_account_id_is_retried(self):
        with mock.patch(
            'apps.core.students.services.generate_account_id',
            side_effect=['ACC-20250115-0001', 'ACC-20250115-0002'],
        ):
            with self.assertLogs('apps.core.students.services', level='WARNING'):
                student = create_student(first_name='Ben', last_name='Reyes', created_on=self.day)

        self.assertEqual(student.account_id, 'ACC-20250115-0002')
        self.assertEqual(student.student_number, '2025-0002')
        self.assertEqual(get_user_model().objects.count(), 2)

    def test_account_id_collisions_exhaust_without_persisting(self):
        with mock.patch('apps.core.students.services.generate_account_id', return_value='ACC-20250115-0001'):
            with self.assertRaises(ConcurrentModificationError):
                create_student(first_name='Ben', last_name='Reyes', created_on=self.day)

        self.assertEqual(Student.objects.count(), 1)
        self.assertEqual(get_user_model().objects.count(), 1)

    def test_taken_student_number_is_retried(self):
        with mock.patch(
            'apps.core.students.services.generate_student_number',
            side_effect=['2025-0001', '2025-0002'],
        ):
            student = create_student(first_name='Ben', last_name='Reyes', created_on=self.day)

        self.assertEqual(student.student_number, '2025-0002')
        self.assertEqual(student.user.username, '2025-0002')
        self.assertEqual(student.account_id, 'ACC-20250115-0002')

    def test_student_number_collisions_exhaust_without_persisting(self):
        with mock.patch('apps.core.students.services.generate_student_number', return_value='2025-0001'):
            with self.assertRaises(ConcurrentModificationError):
                create_student(first_name='Ben', last_name='Reyes', created_on=self.day)

        self.assertEqual(Student.objects.count(), 1)
        self.assertEqual(get_user_model().objects.count(), 1)

    def test_explicit_student_number_in_use_is_rejected(self):
        with self.assertRaises(ValidationError):
            create_student(first_name='Ben', last_name='Reyes', student_number='2025-0001', created_on=self.day)
        self.assertEqual(Student.objects.count(), 1)

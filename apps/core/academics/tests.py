from datetime import date
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.test import SimpleTestCase, TestCase

from .calendar import Term, closing_school_year, current_term, is_final_year_level, next_year_level
from .models import (
    Course,
    Curriculum,
    CurriculumCourse,
    Program,
    SEMESTER_FIRST,
    SEMESTER_SECOND,
    SEMESTER_SUMMER,
    YEAR_LEVEL_1,
    YEAR_LEVEL_2,
)
from .services import available_terms, get_curriculum_for_term


class CalendarTests(SimpleTestCase):
    def test_first_semester_runs_june_to_october(self):
        self.assertEqual(current_term(date(2025, 6, 1)), Term(2025, SEMESTER_FIRST, '2025-2026'))
        self.assertEqual(current_term(date(2025, 10, 31)).semester, SEMESTER_FIRST)

    def test_second_semester_spans_the_new_year(self):
        self.assertEqual(current_term(date(2025, 11, 1)), Term(2025, SEMESTER_SECOND, '2025-2026'))
        self.assertEqual(current_term(date(2026, 1, 15)), Term(2025, SEMESTER_SECOND, '2025-2026'))
        self.assertEqual(current_term(date(2026, 3, 31)).semester, SEMESTER_SECOND)

    def test_summer_closes_the_school_year(self):
        self.assertEqual(current_term(date(2026, 4, 1)), Term(2025, SEMESTER_SUMMER, '2025-2026'))
        self.assertEqual(current_term(date(2026, 5, 31)).school_year, '2025-2026')

    def test_closing_school_year(self):
        self.assertEqual(closing_school_year(date(2026, 5, 20)), '2025-2026')
        self.assertEqual(closing_school_year(date(2026, 6, 10)), '2025-2026')

    def test_year_level_sequence(self):
        self.assertEqual(next_year_level(YEAR_LEVEL_1), YEAR_LEVEL_2)
        self.assertIsNone(next_year_level('4th Year'))
        self.assertIsNone(next_year_level('5th Year'))
        self.assertTrue(is_final_year_level('4th Year'))
        self.assertFalse(is_final_year_level(YEAR_LEVEL_2))


class CurriculumTests(TestCase):
    def setUp(self):
        self.program = Program.objects.create(code='BSIT', name='Bachelor of Science in Information Technology')
        self.curriculum = Curriculum.objects.create(
            program=self.program,
            school_year='2025-2026',
            year_level=YEAR_LEVEL_1,
            semester=SEMESTER_FIRST,
            tuition_per_unit=Decimal('500.00'),
            lab_fee=Decimal('800.00'),
            registration_fee=Decimal('1000.00'),
            misc_fee=Decimal('2000.01'),
        )
        courses = [
            Course.objects.create(program=self.program, code='IT101', title='Computing', lec_units=Decimal('3')),
            Course.objects.create(program=self.program, code='IT102', title='Programming 1', lec_units=Decimal('3')),
            Course.objects.create(
                program=self.program,
                code='IT103',
                title='Networks',
                lec_units=Decimal('2'),
                lab_units=Decimal('1'),
                has_lab=True,
            ),
        ]
        for order, course in enumerate(courses, start=1):
            CurriculumCourse.objects.create(curriculum=self.curriculum, course=course, order=order)

    def test_fee_totals(self):
        self.assertEqual(self.curriculum.calculate_tuition(), Decimal('4500.00'))
        self.assertEqual(self.curriculum.calculate_lab_fees(), Decimal('800.00'))
        self.assertEqual(self.curriculum.calculate_total_assessment(), Decimal('8300.01'))

    def test_last_installment_absorbs_rounding(self):
        terms = self.curriculum.generate_payment_terms()
        self.assertEqual(list(terms), ['upon_registration', 'prelim', 'midterm', 'semi_final', 'final'])
        self.assertEqual(terms['prelim'], Decimal('1660.00'))
        self.assertEqual(terms['final'], Decimal('1660.01'))
        self.assertEqual(sum(terms.values()), Decimal('8300.01'))

    def test_ordered_courses_follow_curriculum_order(self):
        codes = [course.code for course in self.curriculum.ordered_courses()]
        self.assertEqual(codes, ['IT101', 'IT102', 'IT103'])

    def test_school_year_format_is_validated(self):
        self.curriculum.school_year = '2025-2027'
        with self.assertRaises(ValidationError):
            self.curriculum.full_clean()

    def test_one_curriculum_per_term(self):
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Curriculum.objects.create(
                    program=self.program,
                    school_year='2025-2026',
                    year_level=YEAR_LEVEL_1,
                    semester=SEMESTER_FIRST,
                    tuition_per_unit=Decimal('100.00'),
                )

    def test_lookup_ignores_inactive_curricula(self):
        found = get_curriculum_for_term(
            program=self.program,
            year_level=YEAR_LEVEL_1,
            semester=SEMESTER_FIRST,
            school_year='2025-2026',
        )
        self.assertEqual(found, self.curriculum)

        Curriculum.objects.filter(pk=self.curriculum.pk).update(is_active=False)
        found = get_curriculum_for_term(
            program=self.program,
            year_level=YEAR_LEVEL_1,
            semester=SEMESTER_FIRST,
            school_year='2025-2026',
        )
        self.assertIsNone(found)

    def test_available_terms_newest_first(self):
        Curriculum.objects.create(
            program=self.program,
            school_year='2026-2027',
            year_level=YEAR_LEVEL_2,
            semester=SEMESTER_FIRST,
            tuition_per_unit=Decimal('550.00'),
        )
        self.assertEqual(
            available_terms(program=self.program),
            [('2026-2027', YEAR_LEVEL_2, SEMESTER_FIRST), ('2025-2026', YEAR_LEVEL_1, SEMESTER_FIRST)],
        )

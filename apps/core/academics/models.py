from decimal import Decimal, ROUND_HALF_UP

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q


YEAR_LEVEL_1 = '1st Year'
YEAR_LEVEL_2 = '2nd Year'
YEAR_LEVEL_3 = '3rd Year'
YEAR_LEVEL_4 = '4th Year'
YEAR_LEVELS = (YEAR_LEVEL_1, YEAR_LEVEL_2, YEAR_LEVEL_3, YEAR_LEVEL_4)
YEAR_LEVEL_CHOICES = tuple((level, level) for level in YEAR_LEVELS)

SEMESTER_FIRST = '1st Sem'
SEMESTER_SECOND = '2nd Sem'
SEMESTER_SUMMER = 'Summer'
SEMESTERS = (SEMESTER_FIRST, SEMESTER_SECOND, SEMESTER_SUMMER)
SEMESTER_CHOICES = tuple((semester, semester) for semester in SEMESTERS)

# Installment keys in collection order.
PAYMENT_TERM_NAMES = (
    ('upon_registration', 'Upon Registration'),
    ('prelim', 'Prelim'),
    ('midterm', 'Midterm'),
    ('semi_final', 'Semi-Final'),
    ('final', 'Final'),
)


def _quantize(value) -> Decimal:
    return Decimal(str(value or '0')).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


class Program(models.Model):
    code = models.CharField(max_length=20, unique=True)
    name = models.CharField(max_length=255)
    major = models.CharField(max_length=255, blank=True)
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name', 'id']
        indexes = [
            models.Index(fields=['is_active'], name='program_active_idx'),
        ]

    @property
    def full_name(self):
        if self.major:
            return f"{self.name} - Major: {self.major}"
        return self.name

    def __str__(self):
        return f"{self.code} - {self.full_name}"


class Course(models.Model):
    program = models.ForeignKey(Program, on_delete=models.CASCADE, related_name='courses')
    code = models.CharField(max_length=20)
    title = models.CharField(max_length=255)
    lec_units = models.DecimalField(max_digits=4, decimal_places=2, default=Decimal('0.00'))
    lab_units = models.DecimalField(max_digits=4, decimal_places=2, default=Decimal('0.00'))
    has_lab = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ['code', 'id']
        constraints = [
            models.UniqueConstraint(fields=['program', 'code'], name='unique_course_code_per_program'),
        ]

    @property
    def total_units(self) -> Decimal:
        return _quantize(self.lec_units) + _quantize(self.lab_units)

    def clean(self):
        super().clean()
        if self.lec_units is not None and self.lec_units < 0:
            raise ValidationError({'lec_units': 'Units cannot be negative.'})
        if self.lab_units is not None and self.lab_units < 0:
            raise ValidationError({'lab_units': 'Units cannot be negative.'})

    def __str__(self):
        return f"{self.code} - {self.title}"


class Curriculum(models.Model):
    program = models.ForeignKey(Program, on_delete=models.CASCADE, related_name='curricula')
    school_year = models.CharField(max_length=9)  # e.g. 2025-2026
    year_level = models.CharField(max_length=20, choices=YEAR_LEVEL_CHOICES)
    semester = models.CharField(max_length=20, choices=SEMESTER_CHOICES)
    tuition_per_unit = models.DecimalField(max_digits=10, decimal_places=2)
    lab_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    registration_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    misc_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    notes = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    courses = models.ManyToManyField(Course, through='CurriculumCourse', related_name='curricula')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-school_year', 'year_level', 'semester']
        constraints = [
            models.UniqueConstraint(
                fields=['program', 'school_year', 'year_level', 'semester'],
                name='unique_curriculum_per_term',
            ),
            models.CheckConstraint(
                condition=Q(tuition_per_unit__gte=0) & Q(lab_fee__gte=0)
                & Q(registration_fee__gte=0) & Q(misc_fee__gte=0),
                name='curriculum_non_negative_fees',
            ),
        ]
        indexes = [
            models.Index(fields=['is_active'], name='curriculum_active_idx'),
        ]

    def ordered_courses(self):
        return self.courses.order_by('curriculumcourse__order', 'id')

    def calculate_tuition(self) -> Decimal:
        units = sum((course.total_units for course in self.ordered_courses()), Decimal('0.00'))
        return _quantize(units * self.tuition_per_unit)

    def calculate_lab_fees(self) -> Decimal:
        lab_courses = self.courses.filter(has_lab=True).count()
        return _quantize(lab_courses * self.lab_fee)

    def calculate_total_assessment(self) -> Decimal:
        return _quantize(
            self.calculate_tuition()
            + self.calculate_lab_fees()
            + _quantize(self.registration_fee)
            + _quantize(self.misc_fee)
        )

    def generate_payment_terms(self) -> dict:
        """Split the assessment into the five installments; the last one absorbs rounding."""
        total = self.calculate_total_assessment()
        count = len(PAYMENT_TERM_NAMES)
        per_term = _quantize(total / count)
        terms = {key: per_term for key, _ in PAYMENT_TERM_NAMES}
        terms[PAYMENT_TERM_NAMES[-1][0]] = _quantize(total - per_term * (count - 1))
        return terms

    @property
    def term_description(self):
        return f"{self.year_level} - {self.semester} ({self.school_year})"

    def clean(self):
        super().clean()
        parts = (self.school_year or '').split('-')
        if len(parts) != 2 or not all(part.isdigit() for part in parts) or int(parts[1]) != int(parts[0]) + 1:
            raise ValidationError({'school_year': 'School year must look like 2025-2026.'})

    def __str__(self):
        return f"{self.program.code} {self.term_description}"


class CurriculumCourse(models.Model):
    curriculum = models.ForeignKey(Curriculum, on_delete=models.CASCADE)
    course = models.ForeignKey(Course, on_delete=models.CASCADE)
    order = models.PositiveSmallIntegerField(default=0)

    class Meta:
        ordering = ['order', 'id']
        constraints = [
            models.UniqueConstraint(fields=['curriculum', 'course'], name='unique_course_per_curriculum'),
        ]

    def __str__(self):
        return f"{self.curriculum_id}:{self.course.code}"

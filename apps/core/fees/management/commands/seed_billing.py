import random
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone
from faker import Faker

from apps.core.academics.calendar import current_term
from apps.core.academics.models import (
    Course,
    Curriculum,
    CurriculumCourse,
    Program,
    SEMESTER_FIRST,
    YEAR_LEVELS,
)
from apps.core.fees.assessments import post_due_term_charges
from apps.core.fees.ledger import record_payment
from apps.core.students.services import create_student
from apps.core.users.models import User


PROGRAMS = (
    ('BSIT', 'Bachelor of Science in Information Technology', ''),
    ('BSED', 'Bachelor of Secondary Education', 'English'),
)
PAYMENT_METHODS = ('cash', 'gcash', 'bank_transfer')


class Command(BaseCommand):
    help = 'Seeds the database with programs, curricula and billed students.'

    def add_arguments(self, parser):
        parser.add_argument('--students', type=int, default=10, help='Students to create per program')
        parser.add_argument('--seed', type=int, help='Random seed for reproducible data')

    @transaction.atomic
    def handle(self, *args, **options):
        self.stdout.write('Seeding database...')

        fake = Faker()
        if options.get('seed') is not None:
            Faker.seed(options['seed'])
            random.seed(options['seed'])

        today = timezone.localdate()
        school_year = current_term(today).school_year

        # Create users
        if not User.objects.filter(username='superadmin').exists():
            User.objects.create_superuser('superadmin', 'superadmin@example.com', 'password')
            self.stdout.write(self.style.SUCCESS('Successfully created superadmin user.'))

        cashier, created = User.objects.get_or_create(
            username='accounting',
            defaults={'role': User.ROLE_ACCOUNTING},
        )
        if created:
            cashier.set_password('password')
            cashier.save()
            self.stdout.write(self.style.SUCCESS('Successfully created accounting user.'))

        for code, name, major in PROGRAMS:
            program, created = Program.objects.get_or_create(code=code, defaults={'name': name, 'major': major})
            if created:
                self.stdout.write(self.style.SUCCESS(f'Successfully created program: {program.full_name}'))

            # Create courses
            courses = []
            for index in range(1, 7):
                course, _ = Course.objects.get_or_create(
                    program=program,
                    code=f'{code}{100 + index}',
                    defaults={
                        'title': fake.catch_phrase().title(),
                        'lec_units': Decimal('3.00') if index % 3 else Decimal('2.00'),
                        'lab_units': Decimal('1.00') if index % 3 == 0 else Decimal('0.00'),
                        'has_lab': index % 3 == 0,
                    },
                )
                courses.append(course)

            # Create first semester curricula for every year level
            for year_level in YEAR_LEVELS:
                curriculum, created = Curriculum.objects.get_or_create(
                    program=program,
                    school_year=school_year,
                    year_level=year_level,
                    semester=SEMESTER_FIRST,
                    defaults={
                        'tuition_per_unit': Decimal('450.00'),
                        'lab_fee': Decimal('800.00'),
                        'registration_fee': Decimal('1500.00'),
                        'misc_fee': Decimal('2500.00'),
                    },
                )
                if created:
                    for order, course in enumerate(random.sample(courses, 5), start=1):
                        CurriculumCourse.objects.create(curriculum=curriculum, course=course, order=order)
                    self.stdout.write(self.style.SUCCESS(f'  - Successfully created curriculum: {curriculum}'))

            # Create students
            for _ in range(options['students']):
                student = create_student(
                    first_name=fake.first_name(),
                    last_name=fake.last_name(),
                    middle_initial=fake.random_uppercase_letter(),
                    email=fake.unique.email(),
                    birthday=fake.date_of_birth(minimum_age=17, maximum_age=24),
                    phone=fake.msisdn()[:11],
                    address=fake.address().replace('\n', ', ')[:255],
                    year_level=random.choice(YEAR_LEVELS),
                    program=program,
                    semester=SEMESTER_FIRST,
                    school_year=school_year,
                    auto_generate_assessment=True,
                    created_on=today,
                    created_by=cashier,
                )
                charges = post_due_term_charges(account_id=student.account_id, as_of=today, created_by=cashier)
                if charges and random.random() < 0.7:
                    amount = sum((entry.amount for entry in charges), Decimal('0.00'))
                    record_payment(
                        account_id=student.account_id,
                        amount=(amount * Decimal(random.choice(('0.5', '1', '1.2')))).quantize(Decimal('0.01')),
                        method=random.choice(PAYMENT_METHODS),
                        reference_number=fake.bothify('OR-########'),
                        created_by=cashier,
                        today=today,
                    )
                student.refresh_from_db()
                self.stdout.write(self.style.SUCCESS(
                    f'Successfully created student: {student.account_id} {student.full_name} ({student.balance})'
                ))

        self.stdout.write(self.style.SUCCESS('Database seeding complete!'))

from datetime import date
from decimal import Decimal
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.core.management import call_command
from django.core.management.base import CommandError
from django.db import IntegrityError
from django.template import Context, Template
from django.test import TestCase, TransactionTestCase, override_settings
from django.utils import timezone

from apps.core.academics.models import Course, Curriculum, CurriculumCourse, Program, SEMESTER_FIRST
from apps.core.students.models import Student
from apps.core.students.services import create_student
from apps.core.utils.exceptions import BackfillIncomplete, OrphanedRecordError

from .assessments import generate_assessment, post_due_term_charges, term_due_date
from .backfill import find_orphans, relax_account_id_constraints, run_backfill, verify_backfill
from .ledger import (
    compute_balance,
    get_balance,
    ledger_summary,
    post_transaction,
    record_payment,
    recalculate_account,
    reverse_transaction,
)
from .models import Payment, StudentAssessment, StudentPaymentTerm, Transaction


class FeesBaseTestCase(TestCase):
    school_year = '2025-2026'

    def setUp(self):
        self.user_model = get_user_model()
        self.cashier = self.user_model.objects.create_user(
            username='cashier',
            password='pass12345',
            role='accounting',
        )
        self.program = Program.objects.create(code='BSIT', name='Bachelor of Science in Information Technology')
        self.courses = [
            Course.objects.create(program=self.program, code='IT101', title='Computing', lec_units=Decimal('3')),
            Course.objects.create(program=self.program, code='IT102', title='Programming 1', lec_units=Decimal('3')),
        ]
        self.curriculum = self.make_curriculum(self.school_year, '1st Year')
        self.student = create_student(
            first_name='Ana',
            last_name='Cruz',
            created_on=date(2025, 6, 2),
        )
        self.account_id = self.student.account_id

    def make_curriculum(self, school_year, year_level):
        # 6 units x 1000 + 1000 registration + 3000 misc = 10,000 in five 2,000 terms
        curriculum = Curriculum.objects.create(
            program=self.program,
            school_year=school_year,
            year_level=year_level,
            semester=SEMESTER_FIRST,
            tuition_per_unit=Decimal('1000.00'),
            registration_fee=Decimal('1000.00'),
            misc_fee=Decimal('3000.00'),
        )
        for order, course in enumerate(self.courses, start=1):
            CurriculumCourse.objects.create(curriculum=curriculum, course=course, order=order)
        return curriculum

    def terms(self):
        return list(StudentPaymentTerm.objects.for_account(self.account_id).order_by('term_order'))


class AssessmentTests(FeesBaseTestCase):
    def test_generate_assessment_creates_terms_only(self):
        assessment = generate_assessment(student=self.student, curriculum=self.curriculum, created_by=self.cashier)

        self.assertEqual(assessment.assessment_number, 'ASM-2025-0001')
        self.assertEqual(assessment.account_id, self.account_id)
        self.assertEqual(assessment.tuition_fee, Decimal('6000.00'))
        self.assertEqual(assessment.total_assessment, Decimal('10000.00'))
        self.assertEqual(len(assessment.subjects), 2)

        terms = self.terms()
        self.assertEqual([term.amount for term in terms], [Decimal('2000.00')] * 5)
        self.assertEqual(
            [term.due_date for term in terms],
            [date(2025, 8, 1), date(2025, 9, 12), date(2025, 10, 24), date(2025, 11, 14), date(2025, 12, 5)],
        )
        self.assertEqual(terms[0].term_name, 'Upon Registration')
        self.assertFalse(Transaction.objects.exists())
        self.assertEqual(get_balance(self.account_id), Decimal('0.00'))

    def test_duplicate_active_assessment_is_rejected(self):
        generate_assessment(student=self.student, curriculum=self.curriculum)
        with self.assertRaises(ValidationError):
            generate_assessment(student=self.student, curriculum=self.curriculum)

    def test_curriculum_without_courses_is_rejected(self):
        empty = Curriculum.objects.create(
            program=self.program,
            school_year=self.school_year,
            year_level='2nd Year',
            semester=SEMESTER_FIRST,
            tuition_per_unit=Decimal('1000.00'),
        )
        with self.assertRaises(ValidationError):
            generate_assessment(student=self.student, curriculum=empty)
        self.assertFalse(StudentAssessment.objects.exists())

    def test_term_due_date_falls_back_to_semester_start(self):
        self.assertEqual(term_due_date('2025-2026', 9), date(2025, 8, 1))

    def test_due_terms_are_charged_once(self):
        generate_assessment(student=self.student, curriculum=self.curriculum)

        posted = post_due_term_charges(account_id=self.account_id, as_of=date(2025, 9, 30))
        self.assertEqual(len(posted), 2)
        self.assertEqual(posted[0].reference, f'FEE-{self.terms()[0].pk:08d}')
        self.assertTrue(all(entry.kind == Transaction.KIND_CHARGE for entry in posted))

        self.assertEqual(post_due_term_charges(account_id=self.account_id, as_of=date(2025, 9, 30)), [])
        self.student.refresh_from_db()
        self.assertEqual(self.student.balance, Decimal('4000.00'))

        post_due_term_charges(account_id=self.account_id, as_of=date(2025, 12, 31))
        self.student.refresh_from_db()
        self.assertEqual(self.student.balance, Decimal('10000.00'))


class LedgerTests(FeesBaseTestCase):
    today = date(2025, 9, 30)

    def setUp(self):
        super().setUp()
        generate_assessment(student=self.student, curriculum=self.curriculum)
        post_due_term_charges(account_id=self.account_id, as_of=self.today)

    def test_balance_is_charges_minus_paid_payments(self):
        post_transaction(account_id=self.account_id, kind=Transaction.KIND_CHARGE, amount='1500', today=self.today)
        post_transaction(
            account_id=self.account_id,
            kind=Transaction.KIND_PAYMENT,
            amount='500',
            status=Transaction.STATUS_PENDING,
            payment_channel='gcash',
            today=self.today,
        )
        self.assertEqual(compute_balance(self.account_id), Decimal('5500.00'))

        post_transaction(
            account_id=self.account_id,
            kind=Transaction.KIND_PAYMENT,
            amount='500',
            payment_channel='cash',
            today=self.today,
        )
        self.student.refresh_from_db()
        self.assertEqual(self.student.balance, Decimal('5000.00'))
        self.assertEqual(self.student.balance, get_balance(self.account_id))

    def test_direct_payment_gets_payment_row(self):
        entry = post_transaction(
            account_id=self.account_id,
            kind=Transaction.KIND_PAYMENT,
            amount='750',
            payment_channel='cash',
            today=self.today,
        )
        payment = Payment.objects.get(transaction=entry)
        self.assertEqual(payment.amount, Decimal('750.00'))
        self.assertEqual(payment.account_id, self.account_id)
        self.assertEqual(entry.year, '2025')
        self.assertEqual(entry.semester, SEMESTER_FIRST)

    def test_invalid_postings_are_rejected(self):
        with self.assertRaises(ValidationError):
            post_transaction(account_id=self.account_id, kind='refund', amount='100')
        with self.assertRaises(ValidationError):
            post_transaction(account_id=self.account_id, kind=Transaction.KIND_CHARGE, amount='0')
        with self.assertRaises(ValidationError):
            post_transaction(account_id=self.account_id, kind=Transaction.KIND_CHARGE, amount='-5')
        with self.assertRaises(ValidationError):
            post_transaction(account_id=self.account_id, kind=Transaction.KIND_CHARGE, amount='5', status='void')
        with self.assertRaises(OrphanedRecordError):
            post_transaction(account_id='ACC-20990101-0001', kind=Transaction.KIND_CHARGE, amount='100')
        self.assertEqual(Transaction.objects.for_account(self.account_id).count(), 2)

    def test_record_payment_settles_terms_by_due_date(self):
        payment = record_payment(
            account_id=self.account_id,
            amount=Decimal('3000.00'),
            method='cash',
            reference_number='OR-0001',
            created_by=self.cashier,
            today=self.today,
        )

        entry = payment.transaction
        self.assertEqual(entry.kind, Transaction.KIND_PAYMENT)
        self.assertEqual(entry.status, Transaction.STATUS_PAID)
        self.assertEqual(len(entry.meta['allocations']), 2)

        terms = self.terms()
        self.assertEqual(terms[0].status, StudentPaymentTerm.STATUS_PAID)
        self.assertEqual(terms[1].status, StudentPaymentTerm.STATUS_PARTIAL)
        self.assertEqual(terms[1].paid_amount, Decimal('1000.00'))

        self.student.refresh_from_db()
        self.assertEqual(self.student.balance, Decimal('1000.00'))

    def test_record_payment_for_specific_term_first(self):
        target = self.terms()[2]
        record_payment(account_id=self.account_id, amount='2500', method='gcash', term=target, today=self.today)

        terms = self.terms()
        self.assertEqual(terms[2].status, StudentPaymentTerm.STATUS_PAID)
        self.assertEqual(terms[0].paid_amount, Decimal('500.00'))

    def test_payment_for_foreign_term_rolls_back(self):
        other = create_student(first_name='Ben', last_name='Reyes', created_on=date(2025, 6, 2))
        generate_assessment(student=other, curriculum=self.curriculum)
        foreign = StudentPaymentTerm.objects.for_account(other.account_id).first()

        with self.assertRaises(ValidationError):
            record_payment(account_id=self.account_id, amount='100', method='cash', term=foreign, today=self.today)
        self.assertFalse(Payment.objects.exists())
        self.assertEqual(sum(term.paid_amount for term in self.terms()), Decimal('0.00'))

    def test_record_payment_requires_method(self):
        with self.assertRaises(ValidationError):
            record_payment(account_id=self.account_id, amount='100', method=' ', today=self.today)

    def test_overpayment_is_kept_as_credit(self):
        record_payment(account_id=self.account_id, amount='5000', method='bank_transfer', today=self.today)
        self.student.refresh_from_db()
        self.assertEqual(self.student.balance, Decimal('-1000.00'))
        self.assertEqual(self.student.amount_due, Decimal('0.00'))

    def test_reverse_payment_restores_balance_and_terms(self):
        payment = record_payment(account_id=self.account_id, amount='3000', method='cash', today=self.today)

        offset = reverse_transaction(
            transaction_obj=payment.transaction,
            reason='Bounced cheque',
            reversed_by=self.cashier,
            today=self.today,
        )

        self.assertEqual(offset.amount, Decimal('-3000.00'))
        self.assertEqual(offset.meta['reverses'], payment.transaction.reference)
        payment.refresh_from_db()
        payment.transaction.refresh_from_db()
        self.assertTrue(payment.is_reversed)
        self.assertTrue(payment.transaction.is_reversed)
        self.assertEqual(Payment.objects.get(transaction=offset).amount, Decimal('-3000.00'))
        self.assertTrue(all(term.paid_amount == 0 for term in self.terms()))

        self.student.refresh_from_db()
        self.assertEqual(self.student.balance, Decimal('4000.00'))

        with self.assertRaises(ValidationError):
            reverse_transaction(transaction_obj=payment.transaction, reason='Again')
        with self.assertRaises(ValidationError):
            reverse_transaction(transaction_obj=offset, reason='Undo the undo')

    def test_reverse_charge(self):
        charge = Transaction.objects.for_account(self.account_id).filter(kind=Transaction.KIND_CHARGE).first()
        reverse_transaction(transaction_obj=charge, reason='Scholarship', today=self.today)
        self.assertEqual(get_balance(self.account_id), Decimal('2000.00'))

    def test_reversal_requires_reason(self):
        charge = Transaction.objects.for_account(self.account_id).first()
        with self.assertRaises(ValidationError):
            reverse_transaction(transaction_obj=charge, reason='  ')

    def test_financial_records_cannot_be_deleted(self):
        payment = record_payment(account_id=self.account_id, amount='100', method='cash', today=self.today)
        with self.assertRaises(ValidationError):
            payment.transaction.delete()
        with self.assertRaises(ValidationError):
            payment.delete()

    def test_unknown_account_balance_is_orphaned(self):
        with self.assertRaises(OrphanedRecordError):
            get_balance('ACC-20990101-0001')

    def test_ledger_summary(self):
        record_payment(account_id=self.account_id, amount='2500', method='cash', today=self.today)
        summary = ledger_summary(self.account_id)
        self.assertEqual(summary['charges'], Decimal('4000.00'))
        self.assertEqual(summary['payments'], Decimal('2500.00'))
        self.assertEqual(summary['balance'], Decimal('1500.00'))
        self.assertEqual(summary['next_due'].term_order, 2)
        self.assertEqual(summary['scheduled_remaining'], Decimal('7500.00'))


class PromotionTests(FeesBaseTestCase):
    school_year = '2024-2025'
    closing_day = date(2025, 5, 15)

    def settle(self, *, today=None):
        today = today or self.closing_day
        generate_assessment(student=self.student, curriculum=self.student_curriculum())
        post_due_term_charges(account_id=self.account_id, as_of=today)
        record_payment(account_id=self.account_id, amount='10000', method='cash', today=today)
        self.student.refresh_from_db()

    def student_curriculum(self):
        if self.student.year_level == '1st Year':
            return self.curriculum
        return self.make_curriculum(self.school_year, self.student.year_level)

    def test_cleared_account_is_promoted_once(self):
        self.settle()

        self.assertEqual(self.student.year_level, '2nd Year')
        self.assertEqual(self.student.last_promoted_school_year, '2024-2025')
        self.assertEqual(
            StudentAssessment.objects.for_account(self.account_id).get().status,
            StudentAssessment.STATUS_COMPLETED,
        )

        recalculate_account(account_id=self.account_id, today=date(2025, 6, 1))
        self.student.refresh_from_db()
        self.assertEqual(self.student.year_level, '2nd Year')

    def test_no_promotion_outside_window(self):
        self.settle(today=date(2025, 3, 1))
        self.assertEqual(self.student.year_level, '1st Year')
        self.assertEqual(self.student.balance, Decimal('0.00'))

    def test_june_promotes_for_the_closing_school_year(self):
        self.settle(today=date(2025, 6, 30))
        self.assertEqual(self.student.year_level, '2nd Year')
        self.assertEqual(self.student.last_promoted_school_year, '2024-2025')

    def test_june_ignores_the_upcoming_school_year(self):
        upcoming = self.make_curriculum('2025-2026', '1st Year')
        generate_assessment(student=self.student, curriculum=upcoming)

        self.assertEqual(recalculate_account(account_id=self.account_id, today=date(2025, 6, 20)), Decimal('0.00'))
        self.student.refresh_from_db()
        self.assertEqual(self.student.year_level, '1st Year')
        self.assertEqual(self.student.last_promoted_school_year, '')

    def test_july_is_outside_the_window(self):
        self.settle(today=date(2025, 7, 1))
        self.assertEqual(self.student.year_level, '1st Year')

    @override_settings(LEDGER_PROMOTION_MONTHS=(3,))
    def test_window_is_configurable(self):
        self.settle(today=date(2025, 3, 1))
        self.assertEqual(self.student.year_level, '2nd Year')

    def test_outstanding_balance_blocks_promotion(self):
        generate_assessment(student=self.student, curriculum=self.curriculum)
        post_due_term_charges(account_id=self.account_id, as_of=self.closing_day)
        record_payment(account_id=self.account_id, amount='9999', method='cash', today=self.closing_day)
        self.student.refresh_from_db()
        self.assertEqual(self.student.balance, Decimal('1.00'))
        self.assertEqual(self.student.year_level, '1st Year')

    def test_charge_then_full_payment_promotes(self):
        student = create_student(first_name='Ben', last_name='Reyes', created_on=date(2025, 1, 15))
        self.assertEqual(student.account_id, 'ACC-20250115-0001')
        generate_assessment(student=student, curriculum=self.curriculum)

        post_transaction(
            account_id=student.account_id,
            kind=Transaction.KIND_CHARGE,
            amount='5000.00',
            today=self.closing_day,
        )
        self.assertEqual(get_balance(student.account_id), Decimal('5000.00'))

        record_payment(account_id=student.account_id, amount='5000.00', method='cash', today=self.closing_day)
        student.refresh_from_db()
        self.assertEqual(student.balance, Decimal('0.00'))
        self.assertEqual(student.year_level, '2nd Year')

        recalculate_account(account_id=student.account_id, today=self.closing_day)
        student.refresh_from_db()
        self.assertEqual(student.year_level, '2nd Year')

    def test_final_year_graduates(self):
        Student.objects.filter(pk=self.student.pk).update(year_level='4th Year')
        self.student.refresh_from_db()
        self.settle()

        self.assertEqual(self.student.status, Student.STATUS_GRADUATED)
        self.assertEqual(self.student.year_level, '4th Year')
        self.student.user.refresh_from_db()
        self.assertEqual(self.student.user.status, self.user_model.STATUS_GRADUATED)


class BackfillTests(TestCase):
    def setUp(self):
        self.user_model = get_user_model()
        self.legacy = [self._legacy_student(f'legacy{index}') for index in range(3)]
        first, second, third = self.legacy

        # 4 terms + 1 assessment + 3 transactions + 2 payments = 10 dependent rows
        for student, count in ((first, 2), (second, 2)):
            for order in range(1, count + 1):
                StudentPaymentTerm.objects.create(
                    user=student.user,
                    school_year='2023-2024',
                    semester=SEMESTER_FIRST,
                    term_name=f'Term {order}',
                    term_order=order,
                    amount=Decimal('1000.00'),
                )
        StudentAssessment.objects.create(
            user=first.user,
            assessment_number='ASM-2023-0001',
            year_level='1st Year',
            semester=SEMESTER_FIRST,
            school_year='2023-2024',
        )
        Transaction.objects.create(user=first.user, reference='LEG-1', kind='charge', amount=Decimal('5000.00'))
        paid = Transaction.objects.create(
            user=first.user,
            reference='LEG-2',
            kind='payment',
            status='paid',
            amount=Decimal('2000.00'),
        )
        Transaction.objects.create(user=second.user, reference='LEG-3', kind='charge', amount=Decimal('800.00'))
        Payment.objects.create(
            student=first,
            transaction=paid,
            amount=Decimal('2000.00'),
            payment_method='cash',
            paid_at=timezone.now(),
        )
        Payment.objects.create(
            student=third,
            amount=Decimal('300.00'),
            payment_method='cash',
            paid_at=timezone.now(),
        )

    def _legacy_student(self, username):
        user = self.user_model.objects.create_user(username=username, role='student')
        return Student.objects.create(user=user, first_name=username.title(), last_name='Legacy')

    def test_dry_run_reports_without_writing(self):
        report = run_backfill(dry_run=True, on_date=date(2024, 6, 1))

        self.assertTrue(report.dry_run)
        self.assertEqual(report.counts_by_table, {
            'students': 3,
            'payment_terms': 4,
            'assessments': 1,
            'transactions': 3,
            'payments': 2,
        })
        self.assertEqual(report.total, 13)
        self.assertEqual(
            sorted(report.assigned.values()),
            ['ACC-20240601-0001', 'ACC-20240601-0002', 'ACC-20240601-0003'],
        )
        self.assertEqual(Student.objects.missing_account_id().count(), 3)
        self.assertEqual(Transaction.objects.missing_account_id().count(), 3)

    def test_backfill_links_dependents_and_is_idempotent(self):
        report = run_backfill(on_date=date(2024, 6, 1))
        self.assertFalse(report.dry_run)
        self.assertEqual(report.total, 13)

        first = Student.objects.get(pk=self.legacy[0].pk)
        self.assertEqual(first.account_id, 'ACC-20240601-0001')
        self.assertEqual(StudentPaymentTerm.objects.for_account(first.account_id).count(), 2)
        self.assertEqual(Transaction.objects.for_account(first.account_id).count(), 2)
        self.assertEqual(Payment.objects.get(transaction__reference='LEG-2').account_id, first.account_id)
        self.assertEqual(
            Payment.objects.get(student=self.legacy[2]).account_id,
            Student.objects.get(pk=self.legacy[2].pk).account_id,
        )
        self.assertEqual(get_balance(first.account_id), Decimal('3000.00'))

        self.assertEqual(verify_backfill()['students'], 0)
        self.assertEqual(run_backfill().total, 0)

    def test_identifiers_default_to_creation_date(self):
        run_backfill()
        student = Student.objects.get(pk=self.legacy[0].pk)
        created = timezone.localdate(student.created_at)
        self.assertTrue(student.account_id.startswith(f'ACC-{created:%Y%m%d}-'))

    def test_existing_identifiers_are_left_alone(self):
        existing = create_student(first_name='New', last_name='Student', created_on=date(2024, 6, 1))
        run_backfill(on_date=date(2024, 6, 1))
        existing.refresh_from_db()
        self.assertEqual(existing.account_id, 'ACC-20240601-0001')
        self.assertEqual(
            sorted(Student.objects.exclude(pk=existing.pk).values_list('account_id', flat=True)),
            ['ACC-20240601-0002', 'ACC-20240601-0003', 'ACC-20240601-0004'],
        )

    def test_rows_without_owner_roll_the_run_back(self):
        staff = self.user_model.objects.create_user(username='registrar', role='admin')
        Transaction.objects.create(user=staff, reference='LEG-STAFF', kind='charge', amount=Decimal('10.00'))

        with self.assertRaises(BackfillIncomplete) as ctx:
            run_backfill()
        self.assertEqual(ctx.exception.remaining, {'transactions': 1})
        self.assertEqual(Student.objects.missing_account_id().count(), 3)
        self.assertEqual(Transaction.objects.missing_account_id().count(), 4)

    def test_dry_run_does_not_verify(self):
        staff = self.user_model.objects.create_user(username='registrar', role='admin')
        Transaction.objects.create(user=staff, reference='LEG-STAFF', kind='charge', amount=Decimal('10.00'))

        report = run_backfill(dry_run=True)
        self.assertEqual(report.counts_by_table['transactions'], 3)

    def test_orphaned_identifiers_are_fatal(self):
        run_backfill()
        Transaction.objects.create(
            account_id='ACC-20990101-0001',
            reference='ORPHAN-1',
            kind='charge',
            amount=Decimal('10.00'),
        )

        self.assertEqual(find_orphans(), {'transactions': ['ACC-20990101-0001']})
        with self.assertRaises(OrphanedRecordError) as ctx:
            verify_backfill()
        self.assertEqual(ctx.exception.table, 'transactions')

    def test_command_dry_run(self):
        out = StringIO()
        call_command('backfill_account_ids', '--dry-run', stdout=out)
        self.assertIn('[DRY RUN] Would update 3 students row(s)', out.getvalue())
        self.assertIn('Total: 13', out.getvalue())
        self.assertEqual(Student.objects.missing_account_id().count(), 3)

    def test_command_backfills_and_verifies(self):
        out = StringIO()
        call_command('backfill_account_ids', '--date', '2024-06-01', stdout=out)
        self.assertIn('Verification passed', out.getvalue())
        self.assertFalse(Student.objects.missing_account_id().exists())

    def test_command_fails_on_orphans(self):
        Payment.objects.create(
            account_id='ACC-20990101-0001',
            amount=Decimal('1.00'),
            payment_method='cash',
            paid_at=timezone.now(),
        )
        with self.assertRaises(CommandError):
            call_command('backfill_account_ids', stdout=StringIO())
        self.assertEqual(Student.objects.missing_account_id().count(), 3)

    def test_command_rejects_bad_date(self):
        with self.assertRaises(CommandError):
            call_command('backfill_account_ids', '--date', '01/06/2024', stdout=StringIO())



class AccountIdEnforcementTests(TransactionTestCase):
    def setUp(self):
        user = get_user_model().objects.create_user(username='legacy', role='student')
        self.student = Student.objects.create(user=user, first_name='Old', last_name='Record')
        Transaction.objects.create(user=user, reference='LEG-1', kind='charge', amount=Decimal('500.00'))

    def test_refuses_before_backfill(self):
        with self.assertRaises(CommandError):
            call_command('enforce_account_ids', stdout=StringIO())

        Transaction.objects.create(user=self.student.user, reference='LEG-2', kind='charge', amount=Decimal('1.00'))
        self.assertEqual(Transaction.objects.missing_account_id().count(), 2)

    def test_account_id_is_required_after_enforcement(self):
        run_backfill(on_date=date(2024, 6, 1))
        out = StringIO()
        call_command('enforce_account_ids', stdout=out)
        self.addCleanup(relax_account_id_constraints)

        self.assertIn('account_id on transactions is now required', out.getvalue())
        self.assertIn('account_id on students is now required', out.getvalue())
        with self.assertRaises(IntegrityError):
            Transaction.objects.create(
                user=self.student.user,
                reference='LEG-2',
                kind='charge',
                amount=Decimal('1.00'),
            )


@override_settings(LEDGER_CURRENCY_SYMBOL='₱')
class LedgerFilterTests(TestCase):
    def render(self, value):
        template = Template('{% load ledger_filters %}{{ value|signed_balance }}')
        return template.render(Context({'value': value}))

    def test_signed_balance(self):
        self.assertEqual(self.render(Decimal('1250')), '₱1,250.00 due')
        self.assertEqual(self.render(Decimal('-300.5')), '₱300.50 credit')
        self.assertEqual(self.render(Decimal('0')), '₱0.00')
        self.assertEqual(self.render('n/a'), '')


class SeedCommandTests(TestCase):
    def test_seed_creates_billed_students(self):
        call_command('seed_billing', students=2, seed=7, stdout=StringIO())

        self.assertEqual(Student.objects.count(), 4)
        self.assertFalse(Student.objects.missing_account_id().exists())
        self.assertEqual(StudentAssessment.objects.count(), 4)
        for student in Student.objects.all():
            self.assertEqual(student.balance, compute_balance(student.account_id))

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.test import TestCase


class UserModelTests(TestCase):
    def setUp(self):
        self.user_model = get_user_model()

    def test_superuser_gets_super_admin_role(self):
        user = self.user_model.objects.create_superuser('root', 'root@example.com', 'pass12345')
        self.assertEqual(user.role, self.user_model.ROLE_SUPER_ADMIN)
        self.assertTrue(user.is_staff_role)

    def test_blank_student_number_is_stored_as_null(self):
        first = self.user_model.objects.create_user(username='cashier1', role='accounting', student_number='')
        second = self.user_model.objects.create_user(username='cashier2', role='accounting', student_number='')
        self.assertIsNone(first.student_number)
        self.assertIsNone(second.student_number)
        self.assertTrue(first.is_staff_role)

    def test_student_number_is_unique(self):
        self.user_model.objects.create_user(username='2025-0001', student_number='2025-0001')
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                self.user_model.objects.create_user(username='other', student_number='2025-0001')

    def test_new_users_default_to_active_students(self):
        user = self.user_model.objects.create_user(username='learner')
        self.assertEqual(user.role, self.user_model.ROLE_STUDENT)
        self.assertEqual(user.status, self.user_model.STATUS_ACTIVE)
        self.assertFalse(user.is_staff_role)

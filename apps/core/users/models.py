from django.contrib.auth.models import AbstractUser, UserManager as DjangoUserManager
from django.db import models
from django.db.models import Q


class UserManager(DjangoUserManager):
    def create_superuser(self, username, email=None, password=None, **extra_fields):
        extra_fields.setdefault('role', 'super_admin')
        return super().create_superuser(username, email=email, password=password, **extra_fields)


class User(AbstractUser):
    ROLE_SUPER_ADMIN = 'super_admin'
    ROLE_ADMIN = 'admin'
    ROLE_ACCOUNTING = 'accounting'
    ROLE_STUDENT = 'student'

    ROLE_CHOICES = (
        (ROLE_SUPER_ADMIN, 'Super Admin'),
        (ROLE_ADMIN, 'Admin'),
        (ROLE_ACCOUNTING, 'Accounting'),
        (ROLE_STUDENT, 'Student'),
    )

    STATUS_ACTIVE = 'active'
    STATUS_GRADUATED = 'graduated'
    STATUS_DROPPED = 'dropped'
    STATUS_CHOICES = (
        (STATUS_ACTIVE, 'Active'),
        (STATUS_GRADUATED, 'Graduated'),
        (STATUS_DROPPED, 'Dropped'),
    )

    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_STUDENT)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_ACTIVE)
    # Legacy school-issued number (YYYY-NNNN); account_id on Student is canonical.
    student_number = models.CharField(max_length=20, null=True, blank=True)
    middle_initial = models.CharField(max_length=5, blank=True)

    objects = UserManager()

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['student_number'],
                condition=Q(student_number__isnull=False),
                name='unique_user_student_number',
            ),
        ]
        indexes = [
            models.Index(fields=['role'], name='user_role_idx'),
            models.Index(fields=['status'], name='user_status_idx'),
        ]

    @property
    def is_staff_role(self):
        return self.role in {self.ROLE_SUPER_ADMIN, self.ROLE_ADMIN, self.ROLE_ACCOUNTING}

    def save(self, *args, **kwargs):
        if self.is_superuser and self.role != self.ROLE_SUPER_ADMIN:
            self.role = self.ROLE_SUPER_ADMIN
        if self.student_number == '':
            self.student_number = None
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.username} ({self.role})"

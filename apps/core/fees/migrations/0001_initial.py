import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


YEAR_LEVEL_CHOICES = [('1st Year', '1st Year'), ('2nd Year', '2nd Year'), ('3rd Year', '3rd Year'), ('4th Year', '4th Year')]
SEMESTER_CHOICES = [('1st Sem', '1st Sem'), ('2nd Sem', '2nd Sem'), ('Summer', 'Summer')]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('academics', '0001_initial'),
        ('students', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='StudentAssessment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('account_id', models.CharField(blank=True, db_index=True, max_length=20, null=True)),
                ('assessment_number', models.CharField(max_length=30, unique=True)),
                ('year_level', models.CharField(choices=YEAR_LEVEL_CHOICES, max_length=20)),
                ('semester', models.CharField(choices=SEMESTER_CHOICES, max_length=20)),
                ('school_year', models.CharField(max_length=9)),
                ('tuition_fee', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('other_fees', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('registration_fee', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('total_assessment', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('subjects', models.JSONField(blank=True, default=list)),
                ('fee_breakdown', models.JSONField(blank=True, default=list)),
                ('payment_terms', models.JSONField(blank=True, default=dict)),
                ('status', models.CharField(choices=[('active', 'Active'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], default='active', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_assessments', to=settings.AUTH_USER_MODEL)),
                ('curriculum', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assessments', to='academics.curriculum')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='assessments', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at', '-id'],
                'indexes': [
                    models.Index(fields=['account_id', 'year_level', 'school_year', 'status'], name='assessment_account_term_idx'),
                    models.Index(fields=['user', 'school_year', 'semester'], name='assessment_user_term_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Transaction',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('account_id', models.CharField(blank=True, db_index=True, max_length=20, null=True)),
                ('reference', models.CharField(max_length=40, unique=True)),
                ('kind', models.CharField(choices=[('charge', 'Charge'), ('payment', 'Payment')], max_length=10)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('paid', 'Paid'), ('partial', 'Partial')], default='pending', max_length=10)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12)),
                ('payment_channel', models.CharField(blank=True, max_length=50)),
                ('year', models.CharField(blank=True, max_length=4)),
                ('semester', models.CharField(blank=True, max_length=20)),
                ('paid_at', models.DateTimeField(blank=True, null=True)),
                ('meta', models.JSONField(blank=True, default=dict)),
                ('is_reversed', models.BooleanField(default=False)),
                ('reversed_at', models.DateTimeField(blank=True, null=True)),
                ('reversal_reason', models.CharField(blank=True, max_length=255)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='posted_transactions', to=settings.AUTH_USER_MODEL)),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='transactions', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at', '-id'],
                'indexes': [
                    models.Index(fields=['account_id', 'kind', 'status'], name='transaction_account_kind_idx'),
                    models.Index(fields=['user', 'kind'], name='transaction_user_kind_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('amount', 0), _negated=True), name='transaction_amount_non_zero'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Payment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('account_id', models.CharField(blank=True, db_index=True, max_length=20, null=True)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12)),
                ('description', models.CharField(blank=True, max_length=255)),
                ('payment_method', models.CharField(max_length=50)),
                ('reference_number', models.CharField(blank=True, max_length=120)),
                ('status', models.CharField(choices=[('completed', 'Completed'), ('pending', 'Pending'), ('failed', 'Failed')], default='completed', max_length=20)),
                ('paid_at', models.DateTimeField()),
                ('is_reversed', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('student', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='payments', to='students.student')),
                ('transaction', models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='payment', to='fees.transaction')),
            ],
            options={
                'ordering': ['-paid_at', '-id'],
                'indexes': [
                    models.Index(fields=['account_id', 'status'], name='payment_account_status_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='StudentPaymentTerm',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('account_id', models.CharField(blank=True, db_index=True, max_length=20, null=True)),
                ('school_year', models.CharField(max_length=9)),
                ('semester', models.CharField(choices=SEMESTER_CHOICES, max_length=20)),
                ('term_name', models.CharField(max_length=50)),
                ('term_order', models.PositiveSmallIntegerField(default=1)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12)),
                ('due_date', models.DateField(blank=True, null=True)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('partial', 'Partial'), ('paid', 'Paid')], default='pending', max_length=10)),
                ('paid_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('charge', models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='charged_term', to='fees.transaction')),
                ('curriculum', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='payment_terms', to='academics.curriculum')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='payment_terms', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['due_date', 'term_order', 'id'],
                'indexes': [
                    models.Index(fields=['account_id', 'status', 'due_date'], name='term_account_due_idx'),
                    models.Index(fields=['user', 'school_year', 'semester'], name='term_user_term_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('amount__gte', 0), ('paid_amount__gte', 0)), name='payment_term_non_negative_amounts'),
                    models.CheckConstraint(condition=models.Q(('paid_amount__lte', models.F('amount'))), name='payment_term_paid_not_above_amount'),
                ],
            },
        ),
    ]

import django.db.models.deletion
from decimal import Decimal
from django.db import migrations, models


YEAR_LEVEL_CHOICES = [('1st Year', '1st Year'), ('2nd Year', '2nd Year'), ('3rd Year', '3rd Year'), ('4th Year', '4th Year')]
SEMESTER_CHOICES = [('1st Sem', '1st Sem'), ('2nd Sem', '2nd Sem'), ('Summer', 'Summer')]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Program',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('code', models.CharField(max_length=20, unique=True)),
                ('name', models.CharField(max_length=255)),
                ('major', models.CharField(blank=True, max_length=255)),
                ('description', models.TextField(blank=True)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'ordering': ['name', 'id'],
                'indexes': [models.Index(fields=['is_active'], name='program_active_idx')],
            },
        ),
        migrations.CreateModel(
            name='Course',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('code', models.CharField(max_length=20)),
                ('title', models.CharField(max_length=255)),
                ('lec_units', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=4)),
                ('lab_units', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=4)),
                ('has_lab', models.BooleanField(default=False)),
                ('is_active', models.BooleanField(default=True)),
                ('program', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='courses', to='academics.program')),
            ],
            options={
                'ordering': ['code', 'id'],
                'constraints': [models.UniqueConstraint(fields=('program', 'code'), name='unique_course_code_per_program')],
            },
        ),
        migrations.CreateModel(
            name='Curriculum',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('school_year', models.CharField(max_length=9)),
                ('year_level', models.CharField(choices=YEAR_LEVEL_CHOICES, max_length=20)),
                ('semester', models.CharField(choices=SEMESTER_CHOICES, max_length=20)),
                ('tuition_per_unit', models.DecimalField(decimal_places=2, max_digits=10)),
                ('lab_fee', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('registration_fee', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('misc_fee', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('notes', models.TextField(blank=True)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('program', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='curricula', to='academics.program')),
            ],
            options={
                'ordering': ['-school_year', 'year_level', 'semester'],
                'indexes': [models.Index(fields=['is_active'], name='curriculum_active_idx')],
                'constraints': [
                    models.UniqueConstraint(fields=('program', 'school_year', 'year_level', 'semester'), name='unique_curriculum_per_term'),
                    models.CheckConstraint(condition=models.Q(('tuition_per_unit__gte', 0), ('lab_fee__gte', 0), ('registration_fee__gte', 0), ('misc_fee__gte', 0)), name='curriculum_non_negative_fees'),
                ],
            },
        ),
        migrations.CreateModel(
            name='CurriculumCourse',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('order', models.PositiveSmallIntegerField(default=0)),
                ('course', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to='academics.course')),
                ('curriculum', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to='academics.curriculum')),
            ],
            options={
                'ordering': ['order', 'id'],
                'constraints': [models.UniqueConstraint(fields=('curriculum', 'course'), name='unique_course_per_curriculum')],
            },
        ),
        migrations.AddField(
            model_name='curriculum',
            name='courses',
            field=models.ManyToManyField(related_name='curricula', through='academics.CurriculumCourse', to='academics.course'),
        ),
    ]

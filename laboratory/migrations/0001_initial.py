import decimal

import django.contrib.auth.models
import django.contrib.auth.validators
import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('username', models.CharField(error_messages={'unique': 'A user with that username already exists.'}, help_text='Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.', max_length=150, unique=True, validators=[django.contrib.auth.validators.UnicodeUsernameValidator()], verbose_name='username')),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('email', models.EmailField(blank=True, max_length=254, verbose_name='email address')),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether the user can log into this admin site.', verbose_name='staff status')),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether this user should be treated as active. Unselect this instead of deleting accounts.', verbose_name='active')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('role', models.CharField(choices=[('ADMIN', 'Admin'), ('DOCTOR', 'Medical Doctor'), ('NURSE', 'Registered Nurse'), ('RECEPTIONIST', 'Receptionist'), ('LABTECH', 'Laboratory Technician'), ('PHARMACIST', 'Pharmacist'), ('STAFF', 'Staff Member'), ('PATIENT', 'Patient'), ('USER', 'User')], db_index=True, default='USER', max_length=16)),
                ('phone', models.CharField(blank=True, max_length=32)),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'user',
                'verbose_name_plural': 'users',
                'abstract': False,
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='LabTest',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100)),
                ('category', models.CharField(choices=[('HEMATOLOGY', 'HEMATOLOGY'), ('BIOCHEMISTRY', 'BIOCHEMISTRY'), ('MICROBIOLOGY', 'MICROBIOLOGY'), ('IMMUNOLOGY', 'IMMUNOLOGY'), ('PATHOLOGY', 'PATHOLOGY'), ('URINALYSIS', 'URINALYSIS'), ('ENDOCRINOLOGY', 'ENDOCRINOLOGY'), ('TOXICOLOGY', 'TOXICOLOGY'), ('MOLECULAR_DIAGNOSTICS', 'MOLECULAR_DIAGNOSTICS'), ('OTHER', 'OTHER')], db_index=True, max_length=32)),
                ('description', models.CharField(blank=True, max_length=500)),
                ('price', models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(decimal.Decimal('0'))])),
                ('duration', models.PositiveIntegerField(help_text='Minutes', validators=[django.core.validators.MinValueValidator(1)])),
                ('sample_type', models.CharField(choices=[('BLOOD', 'BLOOD'), ('URINE', 'URINE'), ('STOOL', 'STOOL'), ('SALIVA', 'SALIVA'), ('TISSUE', 'TISSUE'), ('SWAB', 'SWAB'), ('CSF', 'CSF'), ('SPUTUM', 'SPUTUM'), ('OTHER', 'OTHER')], max_length=16)),
                ('preparation_instructions', models.CharField(blank=True, max_length=1000)),
                ('normal_range', models.CharField(blank=True, max_length=255)),
                ('units', models.CharField(blank=True, max_length=64)),
                ('is_active', models.BooleanField(db_index=True, default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'constraints': [models.UniqueConstraint(fields=('name', 'category'), name='uniq_labtest_name_category')],
            },
        ),
        migrations.CreateModel(
            name='LabTechnician',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('employee_id', models.CharField(max_length=32, unique=True)),
                ('specialization', models.JSONField(blank=True, default=list)),
                ('license_number', models.CharField(blank=True, max_length=64)),
                ('license_expiry', models.DateField(blank=True, null=True)),
                ('qualifications', models.JSONField(blank=True, default=list)),
                ('years_of_experience', models.PositiveIntegerField(default=0, validators=[django.core.validators.MaxValueValidator(50)])),
                ('shift', models.CharField(choices=[('MORNING', 'Morning'), ('EVENING', 'Evening'), ('NIGHT', 'Night'), ('GENERAL', 'General')], db_index=True, default='GENERAL', max_length=10)),
                ('is_available', models.BooleanField(db_index=True, default=True)),
                ('is_active', models.BooleanField(db_index=True, default=True)),
                ('max_concurrent_tests', models.PositiveIntegerField(default=5, validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(20)])),
                ('current_workload', models.PositiveIntegerField(db_index=True, default=0)),
                ('performance_score', models.FloatField(default=0, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(100)])),
                ('joined_date', models.DateTimeField(default=django.utils.timezone.now)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='lab_technician', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'indexes': [
                    models.Index(fields=['is_available', 'current_workload'], name='labtech_avail_workload_idx'),
                    models.Index(fields=['-performance_score'], name='labtech_perf_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='LabTestRequest',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('status', models.CharField(choices=[('REQUESTED', 'Requested'), ('SAMPLE_COLLECTED', 'Sample collected'), ('IN_PROGRESS', 'In progress'), ('COMPLETED', 'Completed'), ('VERIFIED', 'Verified'), ('CANCELLED', 'Cancelled')], db_index=True, default='REQUESTED', max_length=20)),
                ('priority', models.CharField(choices=[('LOW', 'Low'), ('NORMAL', 'Normal'), ('HIGH', 'High'), ('STAT', 'Stat')], db_index=True, default='NORMAL', max_length=10)),
                ('requested_date', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('sample_collected_date', models.DateTimeField(blank=True, null=True)),
                ('started_date', models.DateTimeField(blank=True, null=True)),
                ('completed_date', models.DateTimeField(blank=True, null=True)),
                ('verified_date', models.DateTimeField(blank=True, null=True)),
                ('results', models.TextField(blank=True)),
                ('findings', models.TextField(blank=True)),
                ('notes', models.TextField(blank=True)),
                ('attachments', models.JSONField(blank=True, default=list)),
                ('is_critical', models.BooleanField(default=False)),
                ('referral', models.CharField(blank=True, max_length=255)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('doctor', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='ordered_lab_tests', to=settings.AUTH_USER_MODEL)),
                ('lab_technician', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assigned_requests', to='laboratory.labtechnician')),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='lab_test_requests', to=settings.AUTH_USER_MODEL)),
                ('test', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='requests', to='laboratory.labtest')),
            ],
            options={
                'indexes': [
                    models.Index(fields=['patient', '-requested_date'], name='labreq_patient_date_idx'),
                    models.Index(fields=['lab_technician', 'status'], name='labreq_tech_status_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='LabDashboard',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('total_tests_completed', models.PositiveIntegerField(default=0)),
                ('tests_today', models.PositiveIntegerField(default=0)),
                ('pending_tests', models.PositiveIntegerField(default=0)),
                ('average_turnaround_time', models.FloatField(default=0)),
                ('critical_findings', models.PositiveIntegerField(default=0)),
                ('last_activity', models.DateTimeField(default=django.utils.timezone.now)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('lab_technician', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='dashboard', to='laboratory.labtechnician')),
            ],
        ),
        migrations.CreateModel(
            name='AuditEvent',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(max_length=64)),
                ('object_type', models.CharField(blank=True, max_length=64, null=True)),
                ('object_id', models.IntegerField(blank=True, null=True)),
                ('detail', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'indexes': [
                    models.Index(fields=['action', 'created_at'], name='audit_action_created_idx'),
                    models.Index(fields=['object_type', 'object_id', 'created_at'], name='audit_object_created_idx'),
                ],
            },
        ),
    ]

"""
Management command to populate the database with lab test data.
"""
import random
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from laboratory.models import LabTechnician, LabTest, LabTestRequest, User
from laboratory.services.dashboard import refresh_all_dashboards
from laboratory.services.workload import reconcile_all_workloads


class Command(BaseCommand):
    help = 'Populate database with lab test data'

    def add_arguments(self, parser):
        parser.add_argument('--requests', type=int, default=30, help='Number of lab test requests to create')
        parser.add_argument('--seed', type=int, default=None, help='Random seed for reproducible data')

    def handle(self, *args, **options):
        if options['seed'] is not None:
            random.seed(options['seed'])
        self.stdout.write('Creating lab test data...')

        with transaction.atomic():
            tests = self.create_lab_tests()
            doctors = self.create_doctors()
            patients = self.create_patients()
            technicians = self.create_technicians()
            self.create_requests(tests, doctors, patients, technicians, options['requests'])

        reconcile_all_workloads()
        refresh_all_dashboards()
        self.stdout.write(self.style.SUCCESS('Lab test data created.'))

    def create_lab_tests(self):
        tests_data = [
            {'name': 'Complete Blood Count', 'category': 'HEMATOLOGY', 'price': '25.00', 'duration': 30,
             'sample_type': 'BLOOD', 'normal_range': 'See panel', 'units': ''},
            {'name': 'Basic Metabolic Panel', 'category': 'BIOCHEMISTRY', 'price': '40.00', 'duration': 60,
             'sample_type': 'BLOOD', 'preparation_instructions': 'Fast for 8 hours before the test.'},
            {'name': 'Lipid Panel', 'category': 'BIOCHEMISTRY', 'price': '35.00', 'duration': 60,
             'sample_type': 'BLOOD', 'preparation_instructions': 'Fast for 12 hours before the test.'},
            {'name': 'Urine Culture', 'category': 'MICROBIOLOGY', 'price': '45.00', 'duration': 2880,
             'sample_type': 'URINE'},
            {'name': 'Urinalysis', 'category': 'URINALYSIS', 'price': '15.00', 'duration': 20,
             'sample_type': 'URINE'},
            {'name': 'TSH', 'category': 'ENDOCRINOLOGY', 'price': '30.00', 'duration': 90,
             'sample_type': 'BLOOD', 'normal_range': '0.4-4.0', 'units': 'mIU/L'},
            {'name': 'HbA1c', 'category': 'ENDOCRINOLOGY', 'price': '28.00', 'duration': 60,
             'sample_type': 'BLOOD', 'normal_range': '4.0-5.6', 'units': '%'},
            {'name': 'COVID-19 PCR', 'category': 'MOLECULAR_DIAGNOSTICS', 'price': '80.00', 'duration': 240,
             'sample_type': 'SWAB'},
            {'name': 'Drug Screen', 'category': 'TOXICOLOGY', 'price': '55.00', 'duration': 120,
             'sample_type': 'URINE'},
            {'name': 'ANA', 'category': 'IMMUNOLOGY', 'price': '50.00', 'duration': 180,
             'sample_type': 'BLOOD'},
        ]

        tests = []
        for data in tests_data:
            data = dict(data, price=Decimal(data['price']))
            test, created = LabTest.objects.get_or_create(
                name=data.pop('name'), category=data.pop('category'), defaults=data,
            )
            tests.append(test)
            self.stdout.write(f'Lab test: {test}')
        return tests

    def _user(self, username, role, first_name, last_name, **extra):
        user, created = User.objects.get_or_create(
            username=username,
            defaults={
                'email': f'{username}@clinic.example',
                'password': make_password('123456'),
                'role': role,
                'first_name': first_name,
                'last_name': last_name,
                **extra,
            },
        )
        return user

    def create_doctors(self):
        doctors = [
            self._user('doctor1', 'DOCTOR', 'Grace', 'Ho'),
            self._user('doctor2', 'DOCTOR', 'Samuel', 'Okafor'),
        ]
        for d in doctors:
            self.stdout.write(f'Doctor: {d.username}')
        return doctors

    def create_patients(self):
        names = [('Ana', 'Silva'), ('Ben', 'Clark'), ('Chen', 'Li'), ('Dana', 'Ruiz'),
                 ('Emeka', 'Obi'), ('Farah', 'Khan'), ('Goran', 'Novak'), ('Hana', 'Sato')]
        patients = []
        for i, (first, last) in enumerate(names, start=1):
            patients.append(self._user(f'patient{i}', 'PATIENT', first, last, phone=f'+1555000{i:04d}'))
        self.stdout.write(f'Patients: {len(patients)}')
        return patients

    def create_technicians(self):
        technicians_data = [
            ('labtech1', 'Priya', 'Nair', 'LT001', ['HEMATOLOGY', 'BIOCHEMISTRY'], 'MORNING', 5, 92),
            ('labtech2', 'Tom', 'Becker', 'LT002', ['MICROBIOLOGY', 'MOLECULAR_DIAGNOSTICS'], 'EVENING', 4, 85),
            ('labtech3', 'Lena', 'Ivanova', 'LT003', ['URINALYSIS', 'TOXICOLOGY', 'GENERAL'], 'NIGHT', 3, 78),
            ('labtech4', 'Omar', 'Haddad', 'LT004', ['ENDOCRINOLOGY', 'IMMUNOLOGY'], 'GENERAL', 6, 88),
        ]
        technicians = []
        for username, first, last, employee_id, specs, shift, capacity, score in technicians_data:
            user = self._user(username, 'LABTECH', first, last)
            technician, created = LabTechnician.objects.get_or_create(
                user=user,
                defaults={
                    'employee_id': employee_id,
                    'specialization': specs,
                    'shift': shift,
                    'max_concurrent_tests': capacity,
                    'performance_score': score,
                    'years_of_experience': random.randint(1, 15),
                    'license_number': f'LIC-{employee_id}',
                    'license_expiry': timezone.localdate() + timedelta(days=365),
                    'qualifications': ['BSc Medical Laboratory Science'],
                },
            )
            technicians.append(technician)
            self.stdout.write(f'Lab technician: {technician}')
        return technicians

    def _technician_for(self, test, technicians, load):
        candidates = [t for t in technicians if test.category in t.specialization] or technicians
        candidates = [t for t in candidates if load[t.pk] < t.max_concurrent_tests]
        return min(candidates, key=lambda t: load[t.pk]) if candidates else None

    def create_requests(self, tests, doctors, patients, technicians, count):
        now = timezone.now()
        statuses = [s for s, _ in LabTestRequest.STATUS_CHOICES]
        priorities = [p for p, _ in LabTestRequest.PRIORITY_CHOICES]
        # active requests per technician, kept under capacity
        load = {t.pk: t.assigned_requests.active().count() for t in technicians}
        created = 0
        for _ in range(count):
            test = random.choice(tests)
            status = random.choice(statuses)
            requested = now - timedelta(hours=random.randint(1, 96))
            req = LabTestRequest(
                patient=random.choice(patients),
                doctor=random.choice(doctors),
                test=test,
                priority=random.choice(priorities),
                requested_date=requested,
                is_critical=random.random() < 0.1,
            )
            if status != LabTestRequest.STATUS_REQUESTED:
                technician = self._technician_for(test, technicians, load)
                if technician is None:
                    status = LabTestRequest.STATUS_REQUESTED
                else:
                    req.lab_technician = technician
            self._stamp(req, status, requested)
            req.save()
            if req.status in LabTestRequest.ACTIVE_STATUSES:
                load[req.lab_technician_id] += 1
            created += 1
        self.stdout.write(f'Lab test requests: {created}')

    def _stamp(self, req, status, requested):
        """Walk ``req`` to ``status`` with plausible timestamps."""
        path = {
            LabTestRequest.STATUS_REQUESTED: [],
            LabTestRequest.STATUS_SAMPLE_COLLECTED: ['sample_collected_date'],
            LabTestRequest.STATUS_IN_PROGRESS: ['sample_collected_date', 'started_date'],
            LabTestRequest.STATUS_COMPLETED: ['sample_collected_date', 'started_date', 'completed_date'],
            LabTestRequest.STATUS_VERIFIED: ['sample_collected_date', 'started_date', 'completed_date',
                                             'verified_date'],
            LabTestRequest.STATUS_CANCELLED: [],
        }[status]
        when = requested
        for field in path:
            when = min(when + timedelta(minutes=random.randint(10, 240)), timezone.now())
            setattr(req, field, when)
        req.status = status
        if status in LabTestRequest.FINISHED_STATUSES:
            req.results = 'Within normal limits' if not req.is_critical else 'Critical value reported'

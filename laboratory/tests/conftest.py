from decimal import Decimal

import pytest
from django.core.cache import cache

from laboratory.models import LabTechnician, LabTest, LabTestRequest, User


@pytest.fixture(autouse=True)
def _clear_throttle_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def doctor(db):
    return User.objects.create_user(username='doc', password='P@ssw0rd1', role='DOCTOR', first_name='Gregory')


@pytest.fixture
def patient(db):
    return User.objects.create_user(username='pat', password='P@ssw0rd1', role='PATIENT')


@pytest.fixture
def lab_test(db):
    return LabTest.objects.create(name='Complete Blood Count', category='HEMATOLOGY', price=Decimal('25.00'),
                                  duration=30, sample_type='BLOOD')


@pytest.fixture
def make_technician(db):
    counter = iter(range(1, 1000))

    def _make(**kwargs):
        n = next(counter)
        user = User.objects.create_user(username=f'tech{n}', password='P@ssw0rd1', role='LABTECH')
        kwargs.setdefault('employee_id', f'lt{n:03d}')
        kwargs.setdefault('specialization', ['HEMATOLOGY'])
        return LabTechnician.objects.create(user=user, **kwargs)
    return _make


@pytest.fixture
def technician(make_technician):
    return make_technician(max_concurrent_tests=2)


@pytest.fixture
def make_request(doctor, patient, lab_test):
    def _make(**kwargs):
        kwargs.setdefault('patient', patient)
        kwargs.setdefault('doctor', doctor)
        kwargs.setdefault('test', lab_test)
        return LabTestRequest.objects.create(**kwargs)
    return _make

"""
Lab test catalog endpoints.

Anyone may browse the catalog.  Doctors and administrators add tests;
administrators and lab technicians edit or deactivate them.  Tests are
never removed, ``DELETE`` only clears ``isActive``.
"""
from __future__ import annotations

from django.db import IntegrityError, transaction
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.response import Response

from ..models import LabTest
from ..permissions import IsDoctorOrAdmin, IsLabStaff, ReadOnly
from ..serializers.lab_tests import LabTestListQuerySerializer, LabTestSerializer
from ..services.audit import log_action
from ..services.catalog import deactivate_test, format_lab_test, list_tests


def _get_test(pk: int) -> LabTest:
    test = LabTest.objects.filter(pk=pk).first()
    if test is None:
        raise NotFound('Lab test not found')
    return test


def _save(serializer):
    try:
        with transaction.atomic():
            return serializer.save()
    except IntegrityError:
        # lost a race against another insert of the same name/category
        raise ValidationError('Test name already exists in this category')


@api_view(['GET', 'POST'])
@permission_classes([ReadOnly | IsDoctorOrAdmin])
def lab_tests(request):
    if request.method == 'GET':
        q = LabTestListQuerySerializer(data=request.query_params.dict())
        q.is_valid(raise_exception=True)
        tests = list_tests(category=q.validated_data.get('category'),
                           active_only=q.validated_data['activeOnly'])
        return Response({'tests': [format_lab_test(t) for t in tests]})

    s = LabTestSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    test = _save(s)
    log_action(user=request.user, action='lab_test_create', object_type='lab_test', object_id=test.pk,
               detail={'name': test.name, 'category': test.category})
    return Response({'test': format_lab_test(test)}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([ReadOnly | IsLabStaff])
def lab_test_detail(request, pk: int):
    test = _get_test(pk)
    if request.method == 'GET':
        return Response({'test': format_lab_test(test)})

    if request.method == 'PATCH':
        s = LabTestSerializer(test, data=request.data, partial=True)
        s.is_valid(raise_exception=True)
        test = _save(s)
        log_action(user=request.user, action='lab_test_update', object_type='lab_test', object_id=test.pk,
                   detail={'fields': sorted(s.validated_data)})
        return Response({'test': format_lab_test(test)})

    deactivate_test(test)
    log_action(user=request.user, action='lab_test_deactivate', object_type='lab_test', object_id=test.pk)
    return Response({'message': 'Lab test deactivated', 'test': format_lab_test(test)})

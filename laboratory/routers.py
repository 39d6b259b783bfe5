"""
URL mappings for the laboratory API.

Paths carry no trailing slash (``APPEND_SLASH`` is off) to match the
front-end's endpoint table.
"""
from django.urls import include, path

from .auth_views import jwt_logout_view, jwt_refresh_view, login_view
from .views import health
from .views.dashboard import my_dashboard
from .views.lab_requests import lab_test_request_detail, lab_test_requests
from .views.lab_tests import lab_test_detail, lab_tests
from .views.technicians import (
    available_for,
    lab_technician_detail,
    lab_technicians,
    technician_dashboard,
    technician_workload,
)

urlpatterns = [
    path('', include('django_prometheus.urls')),
    path('healthz', health.healthz, name='healthz'),
    # Authentication
    path('api/auth/login', login_view, name='login_view'),
    path('api/auth/refresh', jwt_refresh_view, name='jwt_refresh_view'),
    path('api/auth/logout', jwt_logout_view, name='jwt_logout_view'),
    # Catalog
    path('api/lab/lab-tests', lab_tests, name='lab_tests'),
    path('api/lab/lab-tests/<int:pk>', lab_test_detail, name='lab_test_detail'),
    # Technicians
    path('api/lab/lab-technicians', lab_technicians, name='lab_technicians'),
    path('api/lab/lab-technicians/available/<str:key>', available_for, name='available_technicians'),
    path('api/lab/lab-technicians/<int:pk>', lab_technician_detail, name='lab_technician_detail'),
    path('api/lab/lab-technicians/<int:pk>/workload', technician_workload, name='technician_workload'),
    path('api/lab/lab-technicians/<int:pk>/dashboard', technician_dashboard, name='technician_dashboard'),
    # Requests
    path('api/lab/lab-test-requests', lab_test_requests, name='lab_test_requests'),
    path('api/lab/lab-test-requests/<int:pk>', lab_test_request_detail, name='lab_test_request_detail'),
    path('api/lab/dashboard', my_dashboard, name='my_dashboard'),
]

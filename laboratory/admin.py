"""
Django admin registrations for the laboratory models.

Workload counters and dashboard figures are shown read-only; they are
maintained by the workflow and the reconcile/refresh commands.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import AuditEvent, LabDashboard, LabTechnician, LabTest, LabTestRequest, User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ('username', 'role', 'email', 'is_staff', 'is_superuser')
    list_filter = ('role', 'is_staff', 'is_active')
    search_fields = ('username', 'first_name', 'last_name', 'email')
    fieldsets = BaseUserAdmin.fieldsets + (('Clinic', {'fields': ('role', 'phone')}),)


@admin.register(LabTest)
class LabTestAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'category', 'sample_type', 'price', 'duration', 'is_active')
    list_filter = ('category', 'sample_type', 'is_active')
    search_fields = ('name',)


@admin.register(LabTechnician)
class LabTechnicianAdmin(admin.ModelAdmin):
    list_display = ('employee_id', 'user', 'shift', 'is_available', 'is_active',
                    'current_workload', 'max_concurrent_tests', 'performance_score')
    list_filter = ('shift', 'is_available', 'is_active')
    search_fields = ('employee_id', 'user__username', 'license_number')
    readonly_fields = ('current_workload',)


@admin.register(LabTestRequest)
class LabTestRequestAdmin(admin.ModelAdmin):
    list_display = ('id', 'test', 'patient', 'doctor', 'lab_technician', 'status', 'priority',
                    'is_critical', 'requested_date')
    list_filter = ('status', 'priority', 'is_critical')
    search_fields = ('id', 'patient__username', 'doctor__username', 'test__name')
    raw_id_fields = ('patient', 'doctor', 'lab_technician', 'test')


@admin.register(LabDashboard)
class LabDashboardAdmin(admin.ModelAdmin):
    list_display = ('lab_technician', 'total_tests_completed', 'tests_today', 'pending_tests',
                    'average_turnaround_time', 'critical_findings', 'last_activity')
    readonly_fields = ('total_tests_completed', 'tests_today', 'pending_tests',
                       'average_turnaround_time', 'critical_findings', 'last_activity')


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('action', 'object_type', 'object_id', 'user', 'created_at')
    list_filter = ('action', 'object_type')
    search_fields = ('action', 'user__username')

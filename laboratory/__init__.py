"""Laboratory application for the clinic backend.

This package contains the models, serializers, services, views and
route registrations for the lab test workflow: catalog, technicians,
lab test requests, workload accounting and dashboards.
"""

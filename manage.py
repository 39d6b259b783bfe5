#!/usr/bin/env python
"""Command-line utility for the clinic laboratory backend.

Points Django at ``clinic.settings`` and hands over to the management
command runner (``migrate``, ``runserver``, ``refresh_dashboards`` ...).
"""
import os
import sys


def main() -> None:
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'clinic.settings')
    try:
        from django.core.management import execute_from_command_line  # type: ignore
    except ImportError as exc:
        raise ImportError(
            "Couldn't import Django. Is it installed and is the virtual "
            "environment active?"
        ) from exc
    execute_from_command_line(sys.argv)


if __name__ == '__main__':
    main()

#!/usr/bin/env python
"""
Test runner for the back-office apps
Usage: python run_tests.py [app_label ...]
"""
import os
import sys
import django
from django.conf import settings
from django.test.utils import get_runner

APPS = [
    'backoffice.core',
    'backoffice.parties',
    'backoffice.catalog',
    'backoffice.purchasing',
    'backoffice.pos',
    'backoffice.repairs',
    'backoffice.finance',
    'backoffice.reports',
]

if __name__ == "__main__":
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'backoffice.config.settings')
    django.setup()
    TestRunner = get_runner(settings)
    test_runner = TestRunner(verbosity=2)
    failures = test_runner.run_tests(sys.argv[1:] or APPS)
    sys.exit(bool(failures))

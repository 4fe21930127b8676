from __future__ import annotations

import os

import django
import pytest
import requests_mock as requests_mock_lib


os.environ.setdefault("DJANGO_SECRET_KEY", "test-secret")
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "weatherapp.settings")
os.environ.setdefault("HISTORY_DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("OPENWEATHER_API_KEY", "ow-test-key")
os.environ.setdefault("GOOGLE_API_KEY", "google-test-key")

django.setup()


@pytest.fixture()
def requests_mock():
    with requests_mock_lib.Mocker() as mocker:
        yield mocker

"""Application config that owns the weather history store."""
from __future__ import annotations

import atexit
import logging
import os
from typing import Optional

from django.apps import AppConfig, apps
from django.conf import settings

from weatherapp.core.models import HistoryStore


logger = logging.getLogger(__name__)


class ApiConfig(AppConfig):
    name = "weatherapp.api"
    label = "api"
    path = os.path.dirname(os.path.abspath(__file__))

    history_store: Optional[HistoryStore] = None

    def ready(self) -> None:
        store = HistoryStore(settings.HISTORY_DATABASE_URL)
        store.open()
        atexit.register(store.close)
        self.history_store = store


def get_history_store() -> HistoryStore:
    config = apps.get_app_config("api")
    if config.history_store is None:
        raise RuntimeError("history store has not been initialised")
    return config.history_store

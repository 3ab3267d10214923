from typing import Any, List, Tuple
from unittest.mock import AsyncMock, MagicMock

import pytest

from cloudlog.client import Logging
from cloudlog.config.client import ClientSettings
from cloudlog.types import ListEntriesPage

PROJECT_ID = "proj1"
GLOBAL_RESOURCE = {"type": "global", "labels": {}}


def no_instrumentation(entries: Any) -> Tuple[List[Any], bool]:
    """Instrumentation stand-in that leaves batches untouched."""
    return list(entries), False


@pytest.fixture
def auth():
    resolver = MagicMock()
    resolver.get_project_id = AsyncMock(return_value=PROJECT_ID)
    return resolver


@pytest.fixture
def service():
    """Fake logging transport recording every RPC."""
    svc = MagicMock()
    svc.write_log_entries = AsyncMock(return_value={"ok": True})
    svc.delete_log = AsyncMock(return_value={})
    svc.list_entries = AsyncMock(return_value=ListEntriesPage())
    return svc


@pytest.fixture
def detector():
    det = MagicMock()
    det.detect = AsyncMock(return_value=dict(GLOBAL_RESOURCE))
    return det


@pytest.fixture
def client_settings():
    return ClientSettings(
        project_id=None,
        max_retries=None,
        max_entry_size=None,
        remove_circular=False,
        json_fields_to_truncate=[],
    )


@pytest.fixture
def logging_client(auth, service, detector, client_settings):
    return Logging(
        auth=auth,
        service=service,
        resource_detector=detector,
        instrumentation=no_instrumentation,
        client_settings=client_settings,
    )


@pytest.fixture
def log(logging_client):
    return logging_client.log("syslog")


def sent_request(service) -> dict:
    """The request dict of the most recent write RPC."""
    return service.write_log_entries.await_args.args[0]


def sent_call_options(service) -> dict:
    return service.write_log_entries.await_args.args[1]

from __future__ import annotations

import sys
from pathlib import Path
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from barback.api.container import Container, build_memory_container
from barback.api.main import create_app
from barback.infrastructure.payments.simulated_gateway import SimulatedPaymentGateway
from barback.tools.seed import DEMO_ORGANIZATION_ID, seed_demo_data


@pytest.fixture
def container() -> Container:
    container = build_memory_container(gateway=SimulatedPaymentGateway(scale=0))
    seed_demo_data(container)
    return container


@pytest.fixture
def client(container: Container) -> Iterator[TestClient]:
    with TestClient(create_app(container)) as test_client:
        test_client.headers.update({"X-Organization-Id": str(DEMO_ORGANIZATION_ID)})
        yield test_client

import uuid

import pytest
import yaml
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from apps.inventory.manager import model_manager
from inventory_crawler import ResourceTypeRegistry

from .helpers import SMALL_ORG, small_org_client

User = get_user_model()


@pytest.fixture(autouse=True)
def reset_model_manager():
    model_manager.reset()
    yield
    model_manager.reset()


@pytest.fixture
def registry():
    reg = ResourceTypeRegistry()
    reg.discover()
    return reg


@pytest.fixture
def small_org():
    return small_org_client()


@pytest.fixture
def small_org_file(tmp_path):
    path = tmp_path / "small_org.yml"
    path.write_text(yaml.safe_dump({"resources": SMALL_ORG}))
    return path


@pytest.fixture
def rando(db):
    return User.objects.create(username=f'rando-{uuid.uuid4().hex[:8]}')


@pytest.fixture
def api_client(rando):
    client = APIClient()
    client.force_authenticate(user=rando)
    return client

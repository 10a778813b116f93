import pytest
from rest_framework.test import APIClient

from apps.inventory.manager import model_manager
from apps.inventory.models import DataModel, InventoryIndex

from .helpers import SMALL_ORG_RESOURCES, make_index


@pytest.fixture
def index(db):
    return make_index(resources=SMALL_ORG_RESOURCES)


@pytest.fixture
def model(index):
    return model_manager.create_model("m1", index.pk)


@pytest.mark.django_db
class TestAuthentication:
    @pytest.mark.parametrize('endpoint', [
        '/api/v1/inventory-indexes/',
        '/api/v1/models/',
        '/api/v1/resource-types/',
    ])
    def test_anonymous_is_rejected(self, endpoint):
        r = APIClient().get(endpoint)
        assert r.status_code in (401, 403)


@pytest.mark.django_db
class TestInventoryIndexes:
    def test_list(self, api_client, index):
        r = api_client.get('/api/v1/inventory-indexes/')
        assert r.status_code == 200
        assert r.data['count'] == 1
        assert r.data['results'][0]['id'] == index.pk
        assert r.data['results'][0]['resource_count'] == 3

    def test_filter_by_status(self, api_client, index):
        make_index(InventoryIndex.Status.FAILED)
        r = api_client.get('/api/v1/inventory-indexes/', {'status': 'FAILED'})
        assert [row['status'] for row in r.data['results']] == ['FAILED']

    def test_retrieve(self, api_client, index):
        r = api_client.get(f'/api/v1/inventory-indexes/{index.pk}/')
        assert r.status_code == 200
        assert r.data['status'] == 'SUCCESS'
        assert r.data['roots'][0]['type'] == 'organization'

    def test_retrieve_missing(self, api_client):
        r = api_client.get('/api/v1/inventory-indexes/999/')
        assert r.status_code == 404

    def test_indexes_are_read_only(self, api_client):
        r = api_client.post('/api/v1/inventory-indexes/', {})
        assert r.status_code == 405

    def test_resources(self, api_client, index):
        r = api_client.get(f'/api/v1/inventory-indexes/{index.pk}/resources/')
        assert r.status_code == 200
        assert [row['key'] for row in r.data['results']] == ['p1', 'img1', 'img2']

    def test_resources_by_type(self, api_client, index):
        r = api_client.get(f'/api/v1/inventory-indexes/{index.pk}/resources/', {'resource_type': 'image'})
        assert [row['key'] for row in r.data['results']] == ['img1', 'img2']

    def test_delete(self, api_client, index):
        r = api_client.delete(f'/api/v1/inventory-indexes/{index.pk}/')
        assert r.status_code == 200
        assert r.data == {'resources_removed': 3}
        assert not InventoryIndex.objects.filter(pk=index.pk).exists()

    def test_delete_running_is_a_conflict(self, api_client):
        running = make_index(InventoryIndex.Status.RUNNING)
        r = api_client.delete(f'/api/v1/inventory-indexes/{running.pk}/')
        assert r.status_code == 409
        assert 'running' in r.data['detail']

    def test_purge(self, api_client, index):
        make_index(InventoryIndex.Status.RUNNING)
        r = api_client.post('/api/v1/inventory-indexes/purge/', {'retention_days': 0})
        assert r.status_code == 200
        assert r.data == {'purged': 1, 'retention_days': 0}
        assert InventoryIndex.objects.count() == 1

    def test_purge_rejects_negative_retention(self, api_client):
        r = api_client.post('/api/v1/inventory-indexes/purge/', {'retention_days': -1})
        assert r.status_code == 400


@pytest.mark.django_db
class TestModels:
    def test_create(self, api_client, index):
        r = api_client.post('/api/v1/models/', {'name': 'm1', 'index_id': index.pk})
        assert r.status_code == 201
        assert r.data['name'] == 'm1'
        assert r.data['row_count'] == 4
        assert r.data['is_active'] is False

    def test_create_duplicate_name(self, api_client, model, index):
        r = api_client.post('/api/v1/models/', {'name': 'm1', 'index_id': index.pk})
        assert r.status_code == 409

    def test_create_from_missing_index(self, api_client):
        r = api_client.post('/api/v1/models/', {'name': 'm1', 'index_id': 999})
        assert r.status_code == 404

    def test_create_from_running_index(self, api_client):
        running = make_index(InventoryIndex.Status.RUNNING)
        r = api_client.post('/api/v1/models/', {'name': 'm1', 'index_id': running.pk})
        assert r.status_code == 409

    def test_create_with_orphan_is_unprocessable(self, api_client):
        broken = make_index(resources=[('image', 'img1', 'project', 'gone')])
        r = api_client.post('/api/v1/models/', {'name': 'm1', 'index_id': broken.pk})
        assert r.status_code == 422
        assert not DataModel.objects.exists()

    def test_create_rejects_slash_in_name(self, api_client, index):
        r = api_client.post('/api/v1/models/', {'name': 'a/b', 'index_id': index.pk})
        assert r.status_code == 400

    def test_list(self, api_client, model):
        r = api_client.get('/api/v1/models/')
        assert r.status_code == 200
        assert [row['name'] for row in r.data['results']] == ['m1']

    def test_retrieve(self, api_client, model):
        r = api_client.get('/api/v1/models/m1/')
        assert r.status_code == 200
        assert r.data['source_index'] == model.source_index_id

    def test_retrieve_missing(self, api_client):
        assert api_client.get('/api/v1/models/nope/').status_code == 404

    def test_use_and_active(self, api_client, model):
        assert api_client.get('/api/v1/models/active/').status_code == 404

        r = api_client.post('/api/v1/models/m1/use/')
        assert r.status_code == 200
        assert r.data['is_active'] is True

        r = api_client.get('/api/v1/models/active/')
        assert r.status_code == 200
        assert r.data['name'] == 'm1'

    def test_delete(self, api_client, model):
        r = api_client.delete('/api/v1/models/m1/')
        assert r.status_code == 200
        assert r.data == {'rows_removed': 4}
        assert not DataModel.objects.exists()

    def test_delete_leased_model_is_a_conflict(self, api_client, model):
        with model_manager.using('m1'):
            r = api_client.delete('/api/v1/models/m1/')
        assert r.status_code == 409

    def test_rows(self, api_client, model):
        r = api_client.get('/api/v1/models/m1/rows/')
        assert r.status_code == 200
        assert r.data['count'] == 4
        assert r.data['results'][0]['full_name'] == 'organization/1'

    def test_rows_by_prefix_and_type(self, api_client, model):
        r = api_client.get(
            '/api/v1/models/m1/rows/',
            {'prefix': 'organization/1/project/p1', 'resource_type': 'image'},
        )
        assert [row['full_name'] for row in r.data['results']] == [
            'organization/1/project/p1/image/img1',
            'organization/1/project/p1/image/img2',
        ]


@pytest.mark.django_db
class TestResourceTypes:
    def test_list(self, api_client):
        r = api_client.get('/api/v1/resource-types/')
        assert r.status_code == 200
        names = [row['name'] for row in r.data]
        assert names[0] == 'organization'
        assert {'project', 'image', 'iam_policy'} <= set(names)

    def test_retrieve(self, api_client):
        r = api_client.get('/api/v1/resource-types/image/')
        assert r.status_code == 200
        assert r.data['requires_api'] == 'compute.googleapis.com'

    def test_retrieve_unknown(self, api_client):
        assert api_client.get('/api/v1/resource-types/spaceship/').status_code == 404

"""Tests for the scan API routes"""

import pytest
from sqlalchemy.exc import OperationalError

from eckwms.models.scan import Scan
from eckwms.utils.checksum import compute_checksum


def headers(api_key):
    return {'X-API-Key': api_key}


def submit(client, api_key, **body):
    return client.post('/eckwms/API/SCAN', json=body, headers=headers(api_key))


def test_submit_scan(client, free_instance):
    response = submit(client, 'free-key', payload='BOX123', priority=5, deviceId='dev-1', type='inbound')

    assert response.status_code == 201
    data = response.json
    assert data['success'] is True
    assert data['scan_id']
    assert len(data['checksum']) == 8
    assert data['timestamp']


def test_submit_without_key_is_401(client):
    response = client.post('/eckwms/API/SCAN', json={'payload': 'BOX'})

    assert response.status_code == 401
    assert response.json == {
        'success': False,
        'kind': 'AuthenticationError',
        'message': 'Missing X-API-Key header'
    }


def test_submit_with_unknown_key_is_403(client, free_instance):
    response = submit(client, 'wrong-key', payload='BOX')

    assert response.status_code == 403
    assert response.json['kind'] == 'AuthenticationError'


def test_submit_without_payload_is_400(client, free_instance):
    response = submit(client, 'free-key', deviceId='dev-1')

    assert response.status_code == 400
    assert response.json['kind'] == 'ValidationError'


def test_submit_non_object_body_is_400(client, free_instance):
    response = client.post('/eckwms/API/SCAN', json=['BOX'], headers=headers('free-key'))

    assert response.status_code == 400


def test_public_key_masks_device_id(client, db, public_instance):
    response = submit(client, 'public-demo-key-for-eckwms-app', payload='DEMO', deviceId='phone-7')

    db.session.expire_all()
    assert db.session.get(Scan, response.json['scan_id']).device_id is None


def test_pull_and_confirm_cycle(client, free_instance):
    scan_id = submit(client, 'free-key', payload='BOX123', priority=5).json['scan_id']

    pulled = client.get('/eckwms/API/PULL?limit=10', headers=headers('free-key'))
    assert pulled.status_code == 200
    assert pulled.json['success'] is True
    assert pulled.json['count'] == 1
    scan = pulled.json['scans'][0]
    assert scan['scan_id'] == scan_id
    assert scan['payload'] == 'BOX123'
    assert set(scan) == {'scan_id', 'payload', 'checksum', 'deviceId', 'priority', 'type', 'created_at'}

    confirmed = client.post('/eckwms/API/CONFIRM', json={'scan_ids': [scan_id]}, headers=headers('free-key'))
    assert confirmed.status_code == 200
    assert confirmed.json == {'success': True, 'confirmed_count': 1}

    again = client.get('/eckwms/API/PULL', headers=headers('free-key'))
    assert again.json['count'] == 0
    assert again.json['scans'] == []


def test_pull_caps_at_max_limit(client, db, free_instance):
    db.session.add_all([
        Scan(payload=f'BOX{i}', checksum=compute_checksum(f'BOX{i}'), instance_id=free_instance.id)
        for i in range(1005)
    ])
    db.session.commit()

    response = client.get('/eckwms/API/PULL?limit=5000', headers=headers('free-key'))

    assert response.status_code == 200
    assert response.json['count'] == 1000


def test_pull_priority_filter(client, free_instance):
    submit(client, 'free-key', payload='LOW', priority=1)
    submit(client, 'free-key', payload='HIGH', priority=9)

    response = client.get('/eckwms/API/PULL?priority_min=5', headers=headers('free-key'))

    assert [s['payload'] for s in response.json['scans']] == ['HIGH']


def test_pull_bad_priority_filter_is_400(client, free_instance):
    response = client.get('/eckwms/API/PULL?priority_min=urgent', headers=headers('free-key'))

    assert response.status_code == 400


def test_pull_requires_key(client):
    assert client.get('/eckwms/API/PULL').status_code == 401


def test_confirm_requires_scan_ids(client, free_instance):
    response = client.post('/eckwms/API/CONFIRM', json={}, headers=headers('free-key'))

    assert response.status_code == 400
    assert response.json['kind'] == 'ValidationError'


def test_confirm_foreign_ids_count_zero(client, free_instance, other_free_instance):
    scan_id = submit(client, 'other-free-key', payload='THEIRS').json['scan_id']

    response = client.post('/eckwms/API/CONFIRM', json={'scan_ids': [scan_id]}, headers=headers('free-key'))

    assert response.status_code == 200
    assert response.json['confirmed_count'] == 0


def test_store_outage_is_503_with_retry_after(client, free_instance, mocker):
    mocker.patch(
        'eckwms.models.scan_repository.SqlAlchemyScanRepository.claim_for_delivery',
        side_effect=OperationalError('SELECT', {}, Exception('database is locked'))
    )

    response = client.get('/eckwms/API/PULL', headers=headers('free-key'))

    assert response.status_code == 503
    assert response.headers['Retry-After'] == '5'
    assert response.json['kind'] == 'TransientError'


def test_public_feed_lists_demo_scans(client, public_instance):
    submit(client, 'public-demo-key-for-eckwms-app', payload='DEMO1', deviceId='phone')

    response = client.get('/eckwms/API/SCANS')

    assert response.status_code == 200
    assert [s['payload'] for s in response.json] == ['DEMO1']
    assert 'deviceId' not in response.json[0]


def test_public_feed_without_demo_instance_is_404(client):
    response = client.get('/eckwms/API/SCANS')

    assert response.status_code == 404


def test_unknown_route_is_json(client):
    response = client.get('/eckwms/API/NOPE')

    assert response.status_code == 404
    assert response.json['success'] is False


@pytest.mark.parametrize('field, value', [
    ('type', {'kind': 'inbound'}),
    ('type', 'x' * 65),
    ('deviceId', ['dev-1']),
    ('deviceId', 'd' * 256),
    ('priority', 2 ** 70),
    ('priority', 2 ** 31),
])
def test_submit_bad_fields_are_400(client, free_instance, field, value):
    response = submit(client, 'free-key', payload='BOX', **{field: value})

    assert response.status_code == 400
    assert response.json['kind'] == 'ValidationError'


def test_pull_out_of_range_priority_filter_is_400(client, free_instance):
    response = client.get(f'/eckwms/API/PULL?priority_min={2 ** 70}', headers=headers('free-key'))

    assert response.status_code == 400
    assert response.json['kind'] == 'ValidationError'


def test_timestamps_carry_utc_offset(client, free_instance):
    submitted = submit(client, 'free-key', payload='BOX')
    pulled = client.get('/eckwms/API/PULL', headers=headers('free-key')).json['scans']

    assert submitted.json['timestamp'].endswith('+00:00')
    assert pulled[0]['created_at'].endswith('+00:00')

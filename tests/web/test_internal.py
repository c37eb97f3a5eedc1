"""Tests for the internal instance registry routes"""

INTERNAL = {'X-Internal-Api-Key': 'test-internal-key'}


def register(client, headers=INTERNAL, **body):
    return client.post('/ECK/api/internal/register-instance', json=body, headers=headers)


def test_register_instance(client):
    response = register(
        client,
        headers={**INTERNAL, 'X-Forwarded-For': '203.0.113.7, 10.0.0.1'},
        instanceId='abcdef0123456789abcdef',
        localIps=['192.168.1.10'],
        serverPublicKey='PUBKEY'
    )

    assert response.status_code == 200
    assert response.json['success'] is True
    assert response.json['message'] == 'Instance registered successfully'
    assert response.json['instanceId'] == 'abcdef0123456789abcdef'
    assert response.json['detectedIp'] == '203.0.113.7'


def test_register_existing_instance_updates(client):
    register(client, instanceId='instance-1')

    response = register(client, instanceId='instance-1')

    assert response.json['message'] == 'Instance updated successfully'


def test_register_requires_instance_id(client):
    response = register(client, localIps=[])

    assert response.status_code == 400


def test_register_rejects_non_list_local_ips(client):
    response = register(client, instanceId='instance-1', localIps='192.168.1.10')

    assert response.status_code == 400


def test_internal_key_missing(client):
    response = register(client, headers={}, instanceId='instance-1')

    assert response.status_code == 401


def test_internal_key_wrong(client):
    response = register(client, headers={'X-Internal-Api-Key': 'nope'}, instanceId='instance-1')

    assert response.status_code == 403
    assert response.json['kind'] == 'AuthenticationError'


def test_internal_key_not_configured(app, client):
    app.config['INTERNAL_API_KEY'] = None

    response = register(client, instanceId='instance-1')

    assert response.status_code == 500
    assert response.json['kind'] == 'ConfigurationError'


def test_get_instance_info(client):
    register(
        client,
        headers={**INTERNAL, 'X-Forwarded-For': '203.0.113.7'},
        instanceId='instance-1',
        localIps=['192.168.1.10'],
        serverPublicKey='PUBKEY'
    )

    response = client.get('/ECK/api/internal/get-instance-info/instance-1', headers=INTERNAL)

    assert response.status_code == 200
    data = response.json
    assert data['instanceId'] == 'instance-1'
    assert data['tier'] == 'free'
    assert data['serverPublicKey'] == 'PUBKEY'
    assert data['lastSeen']
    assert [c['type'] for c in data['connectionCandidates']] == ['LOCAL_LAN', 'PUBLIC_IP', 'GLOBAL_PROXY']


def test_get_instance_info_unknown(client):
    response = client.get('/ECK/api/internal/get-instance-info/missing', headers=INTERNAL)

    assert response.status_code == 404
    assert response.json['kind'] == 'ResourceNotFoundError'

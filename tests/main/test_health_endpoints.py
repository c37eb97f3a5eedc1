"""Tests for health check endpoints"""

from unittest.mock import patch

from sqlalchemy.exc import SQLAlchemyError


def test_health_endpoint(client):
    """Test the health endpoint returns correct status when healthy"""
    response = client.get('/health/')

    assert response.status_code == 200
    data = response.json
    assert data['status'] == 'healthy'
    assert data['database'] == 'connected'
    assert data['version'] == '1.0.0-test'
    assert data['service'] == 'eckWMS Global Server'
    assert data['retention'] == {'scheduled': False}
    assert 'timestamp' in data


@patch('eckwms.web.health.db.session.execute')
def test_health_endpoint_db_failure(mock_execute, client):
    """Test the health endpoint returns 503 when the database fails"""
    mock_execute.side_effect = SQLAlchemyError("Test database error")

    response = client.get('/health/')

    assert response.status_code == 503
    data = response.json
    assert data['status'] == 'degraded'
    assert data['database'] == 'disconnected'


def test_liveness_endpoint(client):
    """Test the liveness endpoint"""
    response = client.get('/health/liveness')

    assert response.status_code == 200
    assert response.json['status'] == 'alive'

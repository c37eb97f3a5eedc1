"""Tests for the flask CLI commands"""

import json

from sqlalchemy.exc import OperationalError

from eckwms.domain.identity import ScanStatus
from eckwms.models.instance import Instance
from eckwms.models.scan import Scan


def test_seed_public_instance(runner, db):
    result = runner.invoke(args=['seed-public-instance'])

    assert result.exit_code == 0
    assert 'created' in result.output
    assert Instance.query.filter_by(api_key='public-demo-key-for-eckwms-app').count() == 1

    again = runner.invoke(args=['seed-public-instance'])
    assert 'already exists' in again.output


def test_create_instance(runner, db):
    result = runner.invoke(args=['create-instance', '--name', 'Depot', '--tier', 'paid'])

    assert result.exit_code == 0
    assert 'API key:' in result.output
    assert Instance.query.filter_by(name='Depot').one().tier == 'paid'


def test_create_duplicate_instance_fails(runner, free_instance):
    result = runner.invoke(args=['create-instance', '--name', 'Warehouse North'])

    assert result.exit_code != 0
    assert 'ValidationError' in result.output


def test_set_tier(runner, db, free_instance):
    instance_id = free_instance.id

    result = runner.invoke(args=['set-tier', instance_id, 'paid'])

    db.session.expire_all()
    assert result.exit_code == 0
    assert db.session.get(Instance, instance_id).tier == 'paid'


def test_delete_instance_cascade(runner, db, free_instance, make_scan):
    instance_id = free_instance.id
    scan_id = make_scan(free_instance)

    result = runner.invoke(args=['delete-instance', instance_id, '--policy', 'cascade', '--yes'])

    db.session.expire_all()
    assert result.exit_code == 0
    assert 'cascade' in result.output
    assert db.session.get(Scan, scan_id) is None


def test_delete_unknown_instance(runner, db):
    result = runner.invoke(args=['delete-instance', 'missing', '--yes'])

    assert result.exit_code != 0
    assert 'ResourceNotFoundError' in result.output


def test_run_retention_prints_report(runner, free_instance, make_scan):
    make_scan(free_instance, status=ScanStatus.CONFIRMED.value)

    result = runner.invoke(args=['run-retention'])

    assert result.exit_code == 0
    report = json.loads(result.output)
    assert report['total_deleted'] == 1
    assert report['succeeded'] is True


def test_purge_scans_by_status(runner, db, free_instance, make_scan):
    buffered = make_scan(free_instance)
    confirmed = make_scan(free_instance, status=ScanStatus.CONFIRMED.value)

    result = runner.invoke(args=['purge-scans', free_instance.id, '--status', 'confirmed', '--yes'])

    db.session.expire_all()
    assert result.exit_code == 0
    assert 'Purged 1 scans' in result.output
    assert db.session.get(Scan, confirmed) is None
    assert db.session.get(Scan, buffered) is not None


def test_scan_stats(runner, free_instance, make_scan):
    make_scan(free_instance)
    make_scan(free_instance, status=ScanStatus.DELIVERED.value)

    result = runner.invoke(args=['scan-stats', free_instance.id])

    assert 'buffered: 1' in result.output
    assert 'delivered: 1' in result.output
    assert 'confirmed: 0' in result.output


def test_purge_scans_store_outage_fails_cleanly(runner, free_instance, mocker):
    mocker.patch(
        'eckwms.models.scan_repository.SqlAlchemyScanRepository.delete_for_instance',
        side_effect=OperationalError('DELETE', {}, Exception('database is locked'))
    )

    result = runner.invoke(args=['purge-scans', free_instance.id, '--yes'])

    assert result.exit_code != 0
    assert 'TransientError' in result.output


def test_scan_stats_store_outage_fails_cleanly(runner, free_instance, mocker):
    mocker.patch(
        'eckwms.models.scan_repository.SqlAlchemyScanRepository.count_by_status',
        side_effect=OperationalError('SELECT', {}, Exception('database is locked'))
    )

    result = runner.invoke(args=['scan-stats', free_instance.id])

    assert result.exit_code != 0
    assert 'TransientError' in result.output

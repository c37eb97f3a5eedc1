"""CLI commands for the application."""

import json

import click
from flask.cli import with_appcontext

from eckwms.domain.identity import DeletePolicy, ScanStatus, Tier
from eckwms.errors import AppError
from eckwms.extensions import db
from eckwms.services.container import container


def _fail(e):
    raise click.ClickException(f"{e.kind}: {e.message}")


@click.command('init-db')
@with_appcontext
def init_db_command():
    """Create database tables."""
    click.echo("Creating database tables...")
    db.create_all()
    click.echo("Database tables created!")


@click.command('seed-public-instance')
@with_appcontext
def seed_public_instance_command():
    """Create or repair the public demo instance."""
    try:
        instance, created = container().get('instance_service').seed_public_instance()
    except AppError as e:
        _fail(e)

    if created:
        click.echo(f"Public Demo Account created with API key: {instance.api_key}")
    else:
        click.echo("Public Demo Account already exists.")


@click.command('create-instance')
@click.option('--name', prompt=True, help='Unique name of the instance')
@click.option('--tier', type=click.Choice([t.value for t in Tier]), default=Tier.FREE.value,
              show_default=True, help='Service tier')
@click.option('--server-url', default=None, help='Primary URL of the site server')
@with_appcontext
def create_instance_command(name, tier, server_url):
    """Create an instance and print its API key."""
    try:
        instance = container().get('instance_service').create_instance(name, tier=tier, server_url=server_url)
    except AppError as e:
        _fail(e)

    click.echo(f"Instance {name} created with ID {instance.id}")
    click.echo(f"API key: {instance.api_key}")


@click.command('set-tier')
@click.argument('instance_id')
@click.argument('tier', type=click.Choice([t.value for t in Tier]))
@with_appcontext
def set_tier_command(instance_id, tier):
    """Move an instance to another tier."""
    try:
        container().get('instance_service').set_tier(instance_id, tier)
    except AppError as e:
        _fail(e)
    click.echo(f"Instance {instance_id} is now on the {tier} tier")


@click.command('delete-instance')
@click.argument('instance_id')
@click.option('--policy', type=click.Choice([p.value for p in DeletePolicy]), default=None,
              help='Orphan or cascade its scans (defaults to INSTANCE_DELETE_POLICY)')
@click.confirmation_option(prompt='Delete this instance?')
@with_appcontext
def delete_instance_command(instance_id, policy):
    """Delete an instance."""
    try:
        result = container().get('instance_service').delete_instance(instance_id, policy=policy)
    except AppError as e:
        _fail(e)
    click.echo(f"Instance {instance_id} deleted ({result['policy']}): {result['scans_affected']} scans affected")


@click.command('run-retention')
@with_appcontext
def run_retention_command():
    """Run one retention sweep now."""
    report = container().get('retention_service').run_sweep()
    click.echo(json.dumps(report.to_dict(), indent=2))
    if not report.succeeded:
        raise click.ClickException("One or more retention steps failed")


@click.command('purge-scans')
@click.argument('instance_id')
@click.option('--status', type=click.Choice([s.value for s in ScanStatus]), default=None,
              help='Only purge scans in this status')
@click.confirmation_option(prompt='Permanently delete these scans?')
@with_appcontext
def purge_scans_command(instance_id, status):
    """Administrative purge of an instance's scans."""
    try:
        container().get('instance_service').get_instance(instance_id)
        count = container().get('scan_service').purge_instance_scans(instance_id, status=status)
    except AppError as e:
        _fail(e)
    click.echo(f"Purged {count} scans")


@click.command('scan-stats')
@click.argument('instance_id')
@with_appcontext
def scan_stats_command(instance_id):
    """Show scan counts per status for an instance."""
    try:
        counts = container().get('scan_service').status_counts(instance_id)
    except AppError as e:
        _fail(e)
    for status, count in counts.items():
        click.echo(f"{status}: {count}")


def register_commands(app):
    """Register CLI commands with the Flask application."""
    for command in (
        init_db_command,
        seed_public_instance_command,
        create_instance_command,
        set_tier_command,
        delete_instance_command,
        run_retention_command,
        purge_scans_command,
        scan_stats_command,
    ):
        app.cli.add_command(command)

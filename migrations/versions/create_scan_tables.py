"""Create instance and scan tables

Revision ID: create_scan_tables
Revises:
Create Date: 2024-05-01 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = 'create_scan_tables'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'eckwms_instances',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('server_url', sa.String(255), nullable=True),
        sa.Column('api_key', sa.String(255), nullable=False),
        sa.Column('tier', sa.String(10), nullable=False, server_default='free'),
        sa.Column('public_ip', sa.String(64), nullable=True),
        sa.Column('local_ips', sa.JSON(), nullable=True),
        sa.Column('traceroute_to_global', sa.Text(), nullable=True),
        sa.Column('server_public_key', sa.Text(), nullable=True),
        sa.Column('last_seen', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )
    op.create_index('ix_eckwms_instances_api_key', 'eckwms_instances', ['api_key'], unique=True)

    op.create_table(
        'scans',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('payload', sa.Text(), nullable=False),
        sa.Column('checksum', sa.String(8), nullable=False),
        sa.Column('instance_id', sa.String(36), nullable=True),
        sa.Column('device_id', sa.String(255), nullable=True),
        sa.Column('priority', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('type', sa.String(64), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='buffered'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['instance_id'], ['eckwms_instances.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    # Pull filters on (instance_id, status) and orders by priority then age
    op.create_index('ix_scans_instance_status', 'scans', ['instance_id', 'status'])
    op.create_index('ix_scans_instance_created', 'scans', ['instance_id', 'created_at'])


def downgrade():
    op.drop_index('ix_scans_instance_created', table_name='scans')
    op.drop_index('ix_scans_instance_status', table_name='scans')
    op.drop_table('scans')
    op.drop_index('ix_eckwms_instances_api_key', table_name='eckwms_instances')
    op.drop_table('eckwms_instances')

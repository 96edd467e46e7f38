"""units, tenancies and rent obligations

Revision ID: 0001_init
Revises:
Create Date: 2024-06-01 00:00:00
"""

from alembic import op
import sqlalchemy as sa

revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('units',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('number', sa.String(length=50), nullable=False),
        sa.Column('notes', sa.Text(), nullable=False),
        sa.Column('current_tenancy_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('number')
    )
    op.create_table('tenancies',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('unit_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=50), nullable=False),
        sa.Column('id_number', sa.String(length=50), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('rent_amount', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('deposit', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['unit_id'], ['units.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_tenancies_unit_id', 'tenancies', ['unit_id'])
    op.create_index('uq_tenancies_active_unit', 'tenancies', ['unit_id'], unique=True,
                    sqlite_where=sa.text('active'), postgresql_where=sa.text('active'))
    with op.batch_alter_table('units') as batch_op:
        batch_op.create_foreign_key('fk_units_current_tenancy_id', 'tenancies',
                                    ['current_tenancy_id'], ['id'], ondelete='SET NULL')
    op.create_table('rent_obligations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('unit_id', sa.Integer(), nullable=False),
        sa.Column('tenancy_id', sa.Integer(), nullable=False),
        sa.Column('period', sa.String(length=7), nullable=False),
        sa.Column('amount', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('maintenance_fee', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('paid', sa.Boolean(), nullable=False),
        sa.Column('paid_on', sa.Date(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['unit_id'], ['units.id']),
        sa.ForeignKeyConstraint(['tenancy_id'], ['tenancies.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('unit_id', 'tenancy_id', 'period', name='uq_rent_obligations_unit_tenancy_period')
    )
    op.create_index('ix_rent_obligations_unit_id', 'rent_obligations', ['unit_id'])
    op.create_index('ix_rent_obligations_tenancy_id', 'rent_obligations', ['tenancy_id'])
    op.create_index('ix_rent_obligations_period', 'rent_obligations', ['period'])


def downgrade():
    op.drop_table('rent_obligations')
    with op.batch_alter_table('units') as batch_op:
        batch_op.drop_constraint('fk_units_current_tenancy_id', type_='foreignkey')
    op.drop_index('uq_tenancies_active_unit', table_name='tenancies')
    op.drop_index('ix_tenancies_unit_id', table_name='tenancies')
    op.drop_table('tenancies')
    op.drop_table('units')

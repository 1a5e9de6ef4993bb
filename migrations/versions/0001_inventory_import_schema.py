"""inventory import schema: organizations, users, categories, folders, items, stock movements

Revision ID: 0001_inventory_import
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_inventory_import'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'organization',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('contact_email', sa.String(length=256), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'user',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=120), nullable=True),
        sa.Column('api_token', sa.String(length=128), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('organization_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['organization_id'], ['organization.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username'),
    )
    with op.batch_alter_table('user', schema=None) as batch_op:
        batch_op.create_index('ix_user_api_token', ['api_token'], unique=True)

    for table_name, constraint_name in (
        ('category', '_category_org_name_uc'),
        ('inventory_folder', '_folder_org_name_uc'),
    ):
        op.create_table(
            table_name,
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('name', sa.String(length=128), nullable=False),
            sa.Column('color', sa.String(length=7), nullable=True),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.Column('organization_id', sa.Integer(), nullable=False),
            sa.ForeignKeyConstraint(['organization_id'], ['organization.id']),
            sa.ForeignKeyConstraint(['user_id'], ['user.id']),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('organization_id', 'name', name=constraint_name),
        )
        with op.batch_alter_table(table_name, schema=None) as batch_op:
            batch_op.create_index(f'ix_{table_name}_organization_id', ['organization_id'], unique=False)

    op.create_table(
        'inventory_item',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sku', sa.String(length=128), nullable=False),
        sa.Column('sku_key', sa.String(length=128), nullable=False),
        sa.Column('name', sa.String(length=256), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(length=128), nullable=False),
        sa.Column('category_id', sa.Integer(), nullable=True),
        sa.Column('picking_bin_quantity', sa.Integer(), nullable=False),
        sa.Column('overstock_quantity', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('reorder_level', sa.Integer(), nullable=False),
        sa.Column('picking_reorder_level', sa.Integer(), nullable=False),
        sa.Column('committed_stock', sa.Integer(), nullable=False),
        sa.Column('incoming_stock', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('unit_cost', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('retail_price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('folder_id', sa.Integer(), nullable=True),
        sa.Column('picking_folder_id', sa.Integer(), nullable=True),
        sa.Column('image_url', sa.String(length=512), nullable=True),
        sa.Column('vendor_id', sa.String(length=128), nullable=True),
        sa.Column('barcode_url', sa.String(length=512), nullable=True),
        sa.Column('tags', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('auto_reorder_enabled', sa.Boolean(), nullable=False),
        sa.Column('auto_reorder_quantity', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('last_updated', sa.DateTime(), nullable=True),
        sa.Column('organization_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['category_id'], ['category.id']),
        sa.ForeignKeyConstraint(['folder_id'], ['inventory_folder.id']),
        sa.ForeignKeyConstraint(['picking_folder_id'], ['inventory_folder.id']),
        sa.ForeignKeyConstraint(['organization_id'], ['organization.id']),
        sa.ForeignKeyConstraint(['user_id'], ['user.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('organization_id', 'sku_key', name='_inventory_org_sku_uc'),
    )
    with op.batch_alter_table('inventory_item', schema=None) as batch_op:
        batch_op.create_index('ix_inventory_item_name', ['name'], unique=False)
        batch_op.create_index('ix_inventory_item_organization_id', ['organization_id'], unique=False)

    op.create_table(
        'stock_movement',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('item_name', sa.String(length=256), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('old_quantity', sa.Integer(), nullable=False),
        sa.Column('new_quantity', sa.Integer(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('folder_id', sa.Integer(), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['folder_id'], ['inventory_folder.id']),
        sa.ForeignKeyConstraint(['item_id'], ['inventory_item.id']),
        sa.ForeignKeyConstraint(['organization_id'], ['organization.id']),
        sa.ForeignKeyConstraint(['user_id'], ['user.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('stock_movement', schema=None) as batch_op:
        batch_op.create_index('ix_stock_movement_item_id', ['item_id'], unique=False)
        batch_op.create_index('ix_stock_movement_organization_id', ['organization_id'], unique=False)


def downgrade():
    with op.batch_alter_table('stock_movement', schema=None) as batch_op:
        batch_op.drop_index('ix_stock_movement_organization_id')
        batch_op.drop_index('ix_stock_movement_item_id')
    op.drop_table('stock_movement')

    with op.batch_alter_table('inventory_item', schema=None) as batch_op:
        batch_op.drop_index('ix_inventory_item_organization_id')
        batch_op.drop_index('ix_inventory_item_name')
    op.drop_table('inventory_item')

    for table_name in ('inventory_folder', 'category'):
        with op.batch_alter_table(table_name, schema=None) as batch_op:
            batch_op.drop_index(f'ix_{table_name}_organization_id')
        op.drop_table(table_name)

    with op.batch_alter_table('user', schema=None) as batch_op:
        batch_op.drop_index('ix_user_api_token')
    op.drop_table('user')
    op.drop_table('organization')

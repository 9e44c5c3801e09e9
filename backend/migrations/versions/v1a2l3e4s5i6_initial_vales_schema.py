"""initial vales schema

Revision ID: v1a2l3e4s5i6
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the store directory, loan vouchers with their merchandise items, and
session tokens. Table/column names keep the original Spanish names
(usuarios, vales, items_mercaderia) so existing data can be imported as-is.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'v1a2l3e4s5i6'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # usuarios: one row per store (login identity)
    # ============================================================================
    op.create_table(
        'usuarios',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('nombre', sa.String(length=120), nullable=False),
        sa.Column('usuario', sa.String(length=64), nullable=False),
        sa.Column('password', sa.String(length=255), nullable=False),
        sa.Column('creado_en', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_usuarios_usuario', 'usuarios', ['usuario'], unique=True)

    # ============================================================================
    # vales: loan vouchers (pendiente -> completado)
    # ============================================================================
    op.create_table(
        'vales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('fecha', sa.Date(), nullable=False),
        sa.Column('local_origen_id', sa.Integer(), nullable=False),
        sa.Column('local_destino_id', sa.Integer(), nullable=False),
        sa.Column('persona_responsable', sa.String(length=255), nullable=False),
        sa.Column('estado', sa.String(length=16), nullable=False, server_default='pendiente'),
        sa.Column('creado_en', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['local_origen_id'], ['usuarios.id'], ),
        sa.ForeignKeyConstraint(['local_destino_id'], ['usuarios.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_vales_fecha', 'vales', ['fecha'])
    op.create_index('ix_vales_local_origen_id', 'vales', ['local_origen_id'])
    op.create_index('ix_vales_local_destino_id', 'vales', ['local_destino_id'])
    op.create_index('ix_vales_estado', 'vales', ['estado'])

    # ============================================================================
    # items_mercaderia: owned by their voucher, removed with it
    # ============================================================================
    op.create_table(
        'items_mercaderia',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('vale_id', sa.Integer(), nullable=False),
        sa.Column('descripcion', sa.Text(), nullable=False),
        sa.ForeignKeyConstraint(['vale_id'], ['vales.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_items_mercaderia_vale_id', 'items_mercaderia', ['vale_id'])

    # ============================================================================
    # session_tokens: hashed bearer tokens
    # ============================================================================
    op.create_table(
        'session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.ForeignKeyConstraint(['store_id'], ['usuarios.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_session_tokens_store_id', 'session_tokens', ['store_id'])
    op.create_index('ix_session_tokens_token_hash', 'session_tokens', ['token_hash'], unique=True)
    op.create_index('ix_session_tokens_expires_at', 'session_tokens', ['expires_at'])
    op.create_index('ix_session_tokens_is_revoked', 'session_tokens', ['is_revoked'])
    op.create_index('ix_session_tokens_store_active', 'session_tokens', ['store_id', 'is_revoked'])


def downgrade():
    """Drop all tables (destructive operation)."""
    op.drop_table('session_tokens')
    op.drop_table('items_mercaderia')
    op.drop_table('vales')
    op.drop_table('usuarios')

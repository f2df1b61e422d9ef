"""Create credito table

Revision ID: 0001
Revises:
Create Date: 2025-01-01 00:00:00
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "credito",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("numero_credito", sa.String(length=50), nullable=False),
        sa.Column("numero_nfse", sa.String(length=50), nullable=False),
        sa.Column("data_constituicao", sa.Date(), nullable=False),
        sa.Column("valor_issqn", sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column("tipo_credito", sa.String(length=50), nullable=False),
        sa.Column("simples_nacional", sa.Boolean(), nullable=False),
        sa.Column("aliquota", sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column("valor_faturado", sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column("valor_deducao", sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column("base_calculo", sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_credito")),
    )
    op.create_index("idx_credito_numero_nfse", "credito", ["numero_nfse"])
    op.create_index("idx_credito_numero_credito", "credito", ["numero_credito"])


def downgrade() -> None:
    op.drop_index("idx_credito_numero_credito", table_name="credito")
    op.drop_index("idx_credito_numero_nfse", table_name="credito")
    op.drop_table("credito")

"""create cards, tags and card_tags tables

Revision ID: 8c1d2e4f6a70
Revises:
Create Date: 2026-10-16 10:12:41.508311

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "8c1d2e4f6a70"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "cards",
        sa.Column("card_id", sa.Integer(), nullable=False),
        sa.Column("front", sa.Text(), nullable=False),
        sa.Column("back", sa.Text(), nullable=False),
        sa.Column("hint", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("card_id"),
    )
    op.create_index(op.f("ix_cards_card_id"), "cards", ["card_id"], unique=False)
    op.create_table(
        "tags",
        sa.Column("tag_id", sa.Integer(), nullable=False),
        sa.Column("tag", sa.String(), nullable=False),
        sa.PrimaryKeyConstraint("tag_id"),
    )
    op.create_index(op.f("ix_tags_tag_id"), "tags", ["tag_id"], unique=False)
    # Unique index backs the ON CONFLICT (tag) upsert
    op.create_index(op.f("ix_tags_tag"), "tags", ["tag"], unique=True)
    op.create_table(
        "card_tags",
        sa.Column("card_id", sa.Integer(), nullable=False),
        sa.Column("tag_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["card_id"],
            ["cards.card_id"],
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["tag_id"],
            ["tags.tag_id"],
            ondelete="RESTRICT",
        ),
        sa.PrimaryKeyConstraint("card_id", "tag_id"),
    )
    op.create_index(
        op.f("ix_card_tags_tag_id"), "card_tags", ["tag_id"], unique=False
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f("ix_card_tags_tag_id"), table_name="card_tags")
    op.drop_table("card_tags")
    op.drop_index(op.f("ix_tags_tag"), table_name="tags")
    op.drop_index(op.f("ix_tags_tag_id"), table_name="tags")
    op.drop_table("tags")
    op.drop_index(op.f("ix_cards_card_id"), table_name="cards")
    op.drop_table("cards")

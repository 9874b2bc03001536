"""SQLAlchemy metadata definitions for the document bucket table."""

from __future__ import annotations

import sqlalchemy as sa

metadata = sa.MetaData()

documents = sa.Table(
    "documents",
    metadata,
    sa.Column("bucket_name", sa.Text(), primary_key=True, nullable=False),
    sa.Column("doc_key", sa.Text(), primary_key=True, nullable=False),
    sa.Column("body", sa.JSON(), nullable=False),
    sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    ),
    sa.Column(
        "updated_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    ),
)

"""lead documents

Revision ID: 0002_lead_documents
Revises: 0001_init
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa


revision = "0002_lead_documents"
down_revision = "0001_init"
branch_labels = None
depends_on = None


def upgrade():
    op.add_column("leads", sa.Column("identity_doc_url", sa.Text(), nullable=True))
    op.add_column("leads", sa.Column("laboral_financial_docs", sa.JSON(), nullable=True))


def downgrade():
    op.drop_column("leads", "laboral_financial_docs")
    op.drop_column("leads", "identity_doc_url")

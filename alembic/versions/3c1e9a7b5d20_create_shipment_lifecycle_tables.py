"""create shipment lifecycle tables

Revision ID: 3c1e9a7b5d20
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3c1e9a7b5d20"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _audit_columns() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.Column(
            "created_by",
            sa.String(length=255),
            nullable=False,
            server_default=sa.text("'system@local'"),
        ),
        sa.Column(
            "last_changed_by",
            sa.String(length=255),
            nullable=False,
            server_default=sa.text("'system@local'"),
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "customer_master",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("customer_identifier", sa.String(length=20), nullable=False),
        sa.Column("legal_name", sa.String(length=255), nullable=False),
        sa.Column("preferred_currency", sa.String(length=3), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_audit_columns(),
    )
    op.create_index(
        "ix_customer_master_customer_identifier",
        "customer_master",
        ["customer_identifier"],
        unique=True,
    )

    op.create_table(
        "partner_master",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("partner_identifier", sa.String(length=20), nullable=False),
        sa.Column("partner_type", sa.String(length=20), nullable=False),
        sa.Column("legal_name", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(), nullable=True, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(), nullable=True, server_default=sa.text("now()")),
    )
    op.create_index(
        "ix_partner_master_partner_identifier",
        "partner_master",
        ["partner_identifier"],
        unique=True,
    )

    op.create_table(
        "courier",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=50), nullable=True),
        sa.Column("base_airport", sa.String(length=3), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_audit_columns(),
    )

    op.create_table(
        "quote",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("quote_number", sa.String(length=30), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("customer_id", sa.Integer(), sa.ForeignKey("customer_master.id"), nullable=False),
        sa.Column("customer_reference", sa.String(length=100), nullable=True),
        sa.Column("service_type", sa.String(length=3), nullable=False),
        sa.Column("priority", sa.String(length=16), nullable=False),
        sa.Column("origin", sa.JSON(), nullable=False),
        sa.Column("destination", sa.JSON(), nullable=False),
        sa.Column("dimensions", sa.JSON(), nullable=False),
        sa.Column("routing", sa.JSON(), nullable=True),
        sa.Column("description", sa.String(length=500), nullable=False),
        sa.Column("special_instructions", sa.String(length=1000), nullable=True),
        sa.Column("deadline", sa.DateTime(), nullable=False),
        sa.Column("courier_id", sa.Integer(), sa.ForeignKey("courier.id"), nullable=True),
        sa.Column("partner_id", sa.Integer(), sa.ForeignKey("partner_master.id"), nullable=True),
        sa.Column("total_price_amount", sa.Numeric(14, 2), nullable=True),
        sa.Column("total_price_currency", sa.String(length=3), nullable=True),
        sa.Column("converted_to_shipment_id", sa.Integer(), nullable=True),
        sa.Column("converted_at", sa.DateTime(), nullable=True),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.Column("deleted_by", sa.String(length=255), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False),
        *_audit_columns(),
        sa.UniqueConstraint("converted_to_shipment_id", name="uq_quote_converted_to_shipment_id"),
    )
    op.create_index("ix_quote_quote_number", "quote", ["quote_number"], unique=True)
    op.create_index("ix_quote_customer_id", "quote", ["customer_id"], unique=False)

    op.create_table(
        "shipment",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("shipment_number", sa.String(length=30), nullable=False),
        sa.Column("awb_number", sa.String(length=50), nullable=True),
        sa.Column("customer_id", sa.Integer(), sa.ForeignKey("customer_master.id"), nullable=False),
        sa.Column("customer_reference", sa.String(length=100), nullable=True),
        sa.Column("service_type", sa.String(length=3), nullable=False),
        sa.Column("priority", sa.String(length=16), nullable=False),
        sa.Column("current_status", sa.String(length=20), nullable=False),
        sa.Column("origin", sa.JSON(), nullable=False),
        sa.Column("destination", sa.JSON(), nullable=False),
        sa.Column("dimensions", sa.JSON(), nullable=False),
        sa.Column("routing", sa.JSON(), nullable=True),
        sa.Column("description", sa.String(length=500), nullable=False),
        sa.Column("special_instructions", sa.String(length=1000), nullable=True),
        sa.Column("courier_instructions", sa.String(length=1000), nullable=True),
        sa.Column("deadline", sa.DateTime(), nullable=False),
        sa.Column("sla_status", sa.String(length=16), nullable=False),
        sa.Column("sla_remaining_hours", sa.Integer(), nullable=True),
        sa.Column("next_task_description", sa.String(length=255), nullable=True),
        sa.Column("next_task_due_date", sa.DateTime(), nullable=True),
        sa.Column("next_task_priority", sa.String(length=16), nullable=True),
        sa.Column("agreed_price_amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("agreed_price_currency", sa.String(length=3), nullable=False),
        sa.Column("actual_costs_amount", sa.Numeric(14, 2), nullable=True),
        sa.Column("actual_costs_currency", sa.String(length=3), nullable=True),
        sa.Column("courier_id", sa.Integer(), sa.ForeignKey("courier.id"), nullable=True),
        sa.Column("partner_id", sa.Integer(), sa.ForeignKey("partner_master.id"), nullable=True),
        sa.Column("partner_reference", sa.String(length=100), nullable=True),
        sa.Column("quote_id", sa.Integer(), sa.ForeignKey("quote.id"), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("closed_at", sa.DateTime(), nullable=True),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.Column("deleted_by", sa.String(length=255), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False),
        *_audit_columns(),
        sa.UniqueConstraint("quote_id", name="uq_shipment_quote_id"),
    )
    op.create_index("ix_shipment_shipment_number", "shipment", ["shipment_number"], unique=True)
    op.create_index("ix_shipment_customer_id", "shipment", ["customer_id"], unique=False)
    op.create_index("ix_shipment_current_status", "shipment", ["current_status"], unique=False)
    op.create_index("ix_shipment_deadline", "shipment", ["deadline"], unique=False)

    op.create_table(
        "shipment_status_history",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("shipment_id", sa.Integer(), sa.ForeignKey("shipment.id"), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.Column("location", sa.String(length=200), nullable=True),
        sa.Column("notes", sa.String(length=2000), nullable=True),
        sa.Column("metadata_json", sa.JSON(), nullable=True),
        sa.Column("created_by", sa.String(length=255), nullable=False),
    )
    op.create_index(
        "ix_shipment_status_history_shipment_id",
        "shipment_status_history",
        ["shipment_id"],
        unique=False,
    )
    op.create_index(
        "ix_shipment_status_history_timestamp",
        "shipment_status_history",
        ["timestamp"],
        unique=False,
    )

    op.create_table(
        "shipment_task",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("shipment_id", sa.Integer(), sa.ForeignKey("shipment.id"), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.String(length=1000), nullable=True),
        sa.Column("task_type", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("priority", sa.String(length=16), nullable=False),
        sa.Column("due_date", sa.DateTime(), nullable=True),
        sa.Column("metadata_json", sa.JSON(), nullable=True),
        *_audit_columns(),
    )
    op.create_index("ix_shipment_task_shipment_id", "shipment_task", ["shipment_id"], unique=False)

    op.create_table(
        "invoice",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("invoice_number", sa.String(length=30), nullable=False),
        sa.Column("shipment_id", sa.Integer(), sa.ForeignKey("shipment.id"), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        *_audit_columns(),
    )
    op.create_index("ix_invoice_invoice_number", "invoice", ["invoice_number"], unique=True)
    op.create_index("ix_invoice_shipment_id", "invoice", ["shipment_id"], unique=False)

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("entity_type", sa.String(length=50), nullable=False),
        sa.Column("entity_id", sa.String(length=64), nullable=False),
        sa.Column("entity_title", sa.String(length=255), nullable=True),
        sa.Column("description", sa.String(length=1000), nullable=True),
        sa.Column("user_email", sa.String(length=255), nullable=False),
        sa.Column("metadata_json", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_audit_log_action", "audit_log", ["action"], unique=False)
    op.create_index("ix_audit_log_entity_type", "audit_log", ["entity_type"], unique=False)
    op.create_index("ix_audit_log_entity_id", "audit_log", ["entity_id"], unique=False)

    op.create_table(
        "sys_number_ranges",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("doc_category", sa.String(length=20), nullable=False),
        sa.Column("doc_type", sa.String(length=20), nullable=False),
        sa.Column("prefix", sa.String(length=10), nullable=False),
        sa.Column("current_value", sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column("padding", sa.Integer(), nullable=False, server_default=sa.text("5")),
        sa.Column("include_year", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.UniqueConstraint("doc_category", "doc_type", name="uix_category_type"),
    )


def downgrade() -> None:
    op.drop_table("sys_number_ranges")
    op.drop_index("ix_audit_log_entity_id", table_name="audit_log")
    op.drop_index("ix_audit_log_entity_type", table_name="audit_log")
    op.drop_index("ix_audit_log_action", table_name="audit_log")
    op.drop_table("audit_log")
    op.drop_index("ix_invoice_shipment_id", table_name="invoice")
    op.drop_index("ix_invoice_invoice_number", table_name="invoice")
    op.drop_table("invoice")
    op.drop_index("ix_shipment_task_shipment_id", table_name="shipment_task")
    op.drop_table("shipment_task")
    op.drop_index("ix_shipment_status_history_timestamp", table_name="shipment_status_history")
    op.drop_index("ix_shipment_status_history_shipment_id", table_name="shipment_status_history")
    op.drop_table("shipment_status_history")
    op.drop_index("ix_shipment_deadline", table_name="shipment")
    op.drop_index("ix_shipment_current_status", table_name="shipment")
    op.drop_index("ix_shipment_customer_id", table_name="shipment")
    op.drop_index("ix_shipment_shipment_number", table_name="shipment")
    op.drop_table("shipment")
    op.drop_index("ix_quote_customer_id", table_name="quote")
    op.drop_index("ix_quote_quote_number", table_name="quote")
    op.drop_table("quote")
    op.drop_table("courier")
    op.drop_index("ix_partner_master_partner_identifier", table_name="partner_master")
    op.drop_table("partner_master")
    op.drop_index("ix_customer_master_customer_identifier", table_name="customer_master")
    op.drop_table("customer_master")

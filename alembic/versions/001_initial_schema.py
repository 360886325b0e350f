"""Initial schema: time series, computations, groups, dependencies, locks.

Creates the complete store schema used by the dependency updater:
- ts_id: registered time-series identifiers
- loading_application, ref_loading_application_prop, comp_proc_lock
- comp, comp_ts_parm, comp_property: computation definitions
- tsdb_group and its member / sub-group / criteria tables
- cp_comp_depends, cp_comp_depends_scratchpad: dependency edges
- cp_depends_notify: change-notification queue

Revision ID: 5e1c0a7d2b94
Revises: None
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5e1c0a7d2b94"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # -----------------------------------------------------------------------
    # Step 1: Time series and applications
    # -----------------------------------------------------------------------
    op.create_table(
        "ts_id",
        sa.Column("ts_code", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("site_name", sa.String(100), nullable=False),
        sa.Column("data_type", sa.String(64), nullable=False),
        sa.Column("param_type", sa.String(32), nullable=False),
        sa.Column("interval", sa.String(32), nullable=False),
        sa.Column("duration", sa.String(32), nullable=False),
        sa.Column("version", sa.String(64), nullable=False),
        sa.Column("unique_string", sa.String(400), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=True,
        ),
        sa.PrimaryKeyConstraint("ts_code", name="pk_ts_id"),
        sa.UniqueConstraint("unique_string", name="uq_ts_id_unique_string"),
    )

    op.create_table(
        "loading_application",
        sa.Column("loading_application_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("loading_application_name", sa.String(24), nullable=False),
        sa.Column("office_id", sa.String(16), nullable=True),
        sa.Column("cmmnt", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("loading_application_id", name="pk_loading_application"),
        sa.UniqueConstraint(
            "loading_application_name",
            name="uq_loading_application_loading_application_name",
        ),
    )

    op.create_table(
        "ref_loading_application_prop",
        sa.Column("loading_application_id", sa.Integer(), nullable=False),
        sa.Column("prop_name", sa.String(64), nullable=False),
        sa.Column("prop_value", sa.String(240), nullable=False),
        sa.ForeignKeyConstraint(
            ["loading_application_id"],
            ["loading_application.loading_application_id"],
            name="fk_ref_loading_application_prop_loading_application_id_loading_application",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint(
            "loading_application_id", "prop_name", name="pk_ref_loading_application_prop"
        ),
    )

    op.create_table(
        "comp_proc_lock",
        sa.Column("loading_application_id", sa.Integer(), nullable=False),
        sa.Column("pid", sa.Integer(), nullable=False),
        sa.Column("hostname", sa.String(400), nullable=False),
        sa.Column("heartbeat", sa.DateTime(timezone=True), nullable=False),
        sa.Column("cur_status", sa.String(64), nullable=True),
        sa.ForeignKeyConstraint(
            ["loading_application_id"],
            ["loading_application.loading_application_id"],
            name="fk_comp_proc_lock_loading_application_id_loading_application",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("loading_application_id", name="pk_comp_proc_lock"),
    )

    # -----------------------------------------------------------------------
    # Step 2: Computations
    # -----------------------------------------------------------------------
    op.create_table(
        "comp",
        sa.Column("computation_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("computation_name", sa.String(64), nullable=False),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("enabled", sa.Boolean(), nullable=False),
        sa.Column("loading_application_id", sa.Integer(), nullable=True),
        sa.Column("group_id", sa.Integer(), nullable=True),
        sa.Column(
            "date_time_loaded",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=True,
        ),
        sa.ForeignKeyConstraint(
            ["loading_application_id"],
            ["loading_application.loading_application_id"],
            name="fk_comp_loading_application_id_loading_application",
        ),
        sa.PrimaryKeyConstraint("computation_id", name="pk_comp"),
        sa.UniqueConstraint("computation_name", name="uq_comp_computation_name"),
    )

    op.create_table(
        "comp_ts_parm",
        sa.Column("computation_id", sa.Integer(), nullable=False),
        sa.Column("algo_role_name", sa.String(24), nullable=False),
        sa.Column("parm_index", sa.Integer(), nullable=False),
        sa.Column("parm_type", sa.String(8), nullable=False),
        sa.Column("site_datatype_id", sa.Integer(), nullable=True),
        sa.Column("site_name", sa.String(100), nullable=True),
        sa.Column("data_type", sa.String(64), nullable=True),
        sa.Column("param_type", sa.String(32), nullable=True),
        sa.Column("interval", sa.String(32), nullable=True),
        sa.Column("duration", sa.String(32), nullable=True),
        sa.Column("version", sa.String(64), nullable=True),
        sa.Column("table_selector", sa.String(32), nullable=True),
        sa.Column("model_id", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(
            ["computation_id"],
            ["comp.computation_id"],
            name="fk_comp_ts_parm_computation_id_comp",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("computation_id", "algo_role_name", name="pk_comp_ts_parm"),
    )

    op.create_table(
        "comp_property",
        sa.Column("computation_id", sa.Integer(), nullable=False),
        sa.Column("prop_name", sa.String(64), nullable=False),
        sa.Column("prop_value", sa.String(240), nullable=False),
        sa.ForeignKeyConstraint(
            ["computation_id"],
            ["comp.computation_id"],
            name="fk_comp_property_computation_id_comp",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("computation_id", "prop_name", name="pk_comp_property"),
        sa.UniqueConstraint("computation_id", "prop_name", name="uq_comp_property_comp_name"),
    )

    # -----------------------------------------------------------------------
    # Step 3: Groups
    # -----------------------------------------------------------------------
    op.create_table(
        "tsdb_group",
        sa.Column("group_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("group_name", sa.String(64), nullable=False),
        sa.Column("group_type", sa.String(24), nullable=True),
        sa.Column("group_description", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("group_id", name="pk_tsdb_group"),
        sa.UniqueConstraint("group_name", name="uq_tsdb_group_group_name"),
    )

    op.create_table(
        "tsdb_group_member_ts",
        sa.Column("group_id", sa.Integer(), nullable=False),
        sa.Column("data_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["group_id"],
            ["tsdb_group.group_id"],
            name="fk_tsdb_group_member_ts_group_id_tsdb_group",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("group_id", "data_id", name="pk_tsdb_group_member_ts"),
    )

    op.create_table(
        "tsdb_group_member_group",
        sa.Column("parent_group_id", sa.Integer(), nullable=False),
        sa.Column("child_group_id", sa.Integer(), nullable=False),
        sa.Column("include_group", sa.String(1), nullable=False),
        sa.ForeignKeyConstraint(
            ["parent_group_id"],
            ["tsdb_group.group_id"],
            name="fk_tsdb_group_member_group_parent_group_id_tsdb_group",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint(
            "parent_group_id", "child_group_id", name="pk_tsdb_group_member_group"
        ),
    )

    op.create_table(
        "tsdb_group_criteria",
        sa.Column("group_id", sa.Integer(), nullable=False),
        sa.Column("criteria_type", sa.String(16), nullable=False),
        sa.Column("criteria_value", sa.String(100), nullable=False),
        sa.ForeignKeyConstraint(
            ["group_id"],
            ["tsdb_group.group_id"],
            name="fk_tsdb_group_criteria_group_id_tsdb_group",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint(
            "group_id", "criteria_type", "criteria_value", name="pk_tsdb_group_criteria"
        ),
    )

    # -----------------------------------------------------------------------
    # Step 4: Dependency edges and the notification queue
    # -----------------------------------------------------------------------
    for table in ("cp_comp_depends", "cp_comp_depends_scratchpad"):
        op.create_table(
            table,
            sa.Column("ts_id", sa.Integer(), nullable=False),
            sa.Column("computation_id", sa.Integer(), nullable=False),
            sa.PrimaryKeyConstraint("ts_id", "computation_id", name=f"pk_{table}"),
        )
    op.create_index("ix_cp_comp_depends_comp", "cp_comp_depends", ["computation_id"])

    op.create_table(
        "cp_depends_notify",
        sa.Column("record_num", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("event_type", sa.String(1), nullable=False),
        sa.Column("key", sa.Integer(), nullable=False),
        sa.Column(
            "date_time_loaded",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("record_num", name="pk_cp_depends_notify"),
    )


def downgrade() -> None:
    op.drop_table("cp_depends_notify")
    op.drop_index("ix_cp_comp_depends_comp", table_name="cp_comp_depends")
    op.drop_table("cp_comp_depends_scratchpad")
    op.drop_table("cp_comp_depends")
    op.drop_table("tsdb_group_criteria")
    op.drop_table("tsdb_group_member_group")
    op.drop_table("tsdb_group_member_ts")
    op.drop_table("tsdb_group")
    op.drop_table("comp_property")
    op.drop_table("comp_ts_parm")
    op.drop_table("comp")
    op.drop_table("comp_proc_lock")
    op.drop_table("ref_loading_application_prop")
    op.drop_table("loading_application")
    op.drop_table("ts_id")

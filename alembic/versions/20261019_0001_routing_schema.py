"""Classifications, workbaskets, distribution targets, access list and tasks."""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None

_CUSTOM_COLUMNS = [f"custom_{index}" for index in range(1, 11)]
_PERMISSION_COLUMNS = [
    "perm_open",
    "perm_read",
    "perm_append",
    "perm_transfer",
    "perm_distribute",
    *(f"perm_custom_{index}" for index in range(1, 9)),
]


def upgrade() -> None:
    op.create_table(
        "classifications",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("key", sa.String(), nullable=False),
        sa.Column("parent_classification_key", sa.String(), nullable=False, server_default=""),
        sa.Column("category", sa.String(), nullable=False, server_default=""),
        sa.Column("type", sa.String(), nullable=False, server_default=""),
        sa.Column("domain", sa.String(), nullable=False, server_default=""),
        sa.Column("valid_in_domain", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("created", sa.DateTime(timezone=True), nullable=False),
        sa.Column("modified", sa.DateTime(timezone=True), nullable=True),
        sa.Column("name", sa.String(), nullable=False, server_default=""),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("service_level", sa.String(), nullable=False, server_default=""),
        sa.Column("application_entry_point", sa.String(), nullable=False, server_default=""),
        *(
            sa.Column(name, sa.String(), nullable=False, server_default="")
            for name in _CUSTOM_COLUMNS
        ),
        sa.Column("valid_from", sa.Date(), nullable=False),
        sa.Column("valid_until", sa.Date(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("key", "domain", name="uq_classifications_key_domain"),
    )
    op.create_index("ix_classifications_key", "classifications", ["key"])
    op.create_index("ix_classifications_domain", "classifications", ["domain"])
    op.create_index(
        "ix_classifications_parent_classification_key",
        "classifications",
        ["parent_classification_key"],
    )

    op.create_table(
        "workbaskets",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("key", sa.Text(), nullable=False),
        sa.Column("created", sa.DateTime(timezone=True), nullable=False),
        sa.Column("modified", sa.DateTime(timezone=True), nullable=False),
        sa.Column("name", sa.String(), nullable=False, server_default=""),
        sa.Column("domain", sa.String(), nullable=False, server_default=""),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("owner", sa.String(), nullable=False, server_default=""),
        *(
            sa.Column(name, sa.String(), nullable=False, server_default="")
            for name in _CUSTOM_COLUMNS
        ),
        *(
            sa.Column(f"org_level_{index}", sa.String(), nullable=False, server_default="")
            for index in range(1, 5)
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("key", name="uq_workbaskets_key"),
    )
    op.create_index("ix_workbaskets_name", "workbaskets", ["name"])
    op.create_index("ix_workbaskets_domain", "workbaskets", ["domain"])
    op.create_index("ix_workbaskets_type", "workbaskets", ["type"])
    op.create_index("ix_workbaskets_owner", "workbaskets", ["owner"])

    op.create_table(
        "distribution_targets",
        sa.Column("source_id", sa.String(), nullable=False),
        sa.Column("target_id", sa.String(), nullable=False),
        sa.ForeignKeyConstraint(["source_id"], ["workbaskets.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["target_id"], ["workbaskets.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("source_id", "target_id", name="pk_distribution_targets"),
    )
    op.create_index("ix_distribution_targets_source_id", "distribution_targets", ["source_id"])
    op.create_index("ix_distribution_targets_target_id", "distribution_targets", ["target_id"])

    op.create_table(
        "workbasket_access_list",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("workbasket_key", sa.Text(), nullable=False),
        sa.Column("access_id", sa.String(), nullable=False),
        *(
            sa.Column(name, sa.Boolean(), nullable=False, server_default=sa.text("0"))
            for name in _PERMISSION_COLUMNS
        ),
        sa.ForeignKeyConstraint(["workbasket_key"], ["workbaskets.key"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "workbasket_key",
            "access_id",
            name="uq_workbasket_access_list_key_access_id",
        ),
    )
    op.create_index(
        "ix_workbasket_access_list_workbasket_key",
        "workbasket_access_list",
        ["workbasket_key"],
    )
    op.create_index(
        "ix_workbasket_access_list_access_id",
        "workbasket_access_list",
        ["access_id"],
    )

    op.create_table(
        "tasks",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("created", sa.DateTime(timezone=True), nullable=False),
        sa.Column("modified", sa.DateTime(timezone=True), nullable=False),
        sa.Column("claimed", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed", sa.DateTime(timezone=True), nullable=True),
        sa.Column("planned", sa.DateTime(timezone=True), nullable=True),
        sa.Column("due", sa.DateTime(timezone=True), nullable=True),
        sa.Column("name", sa.String(), nullable=False, server_default=""),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("state", sa.String(), nullable=False),
        sa.Column("classification_id", sa.String(), nullable=False),
        sa.Column("classification_key", sa.String(), nullable=False),
        sa.Column("classification_domain", sa.String(), nullable=False, server_default=""),
        sa.Column("workbasket_id", sa.String(), nullable=False),
        sa.Column("owner", sa.String(), nullable=False, server_default=""),
        sa.Column("por_company", sa.String(), nullable=False, server_default=""),
        sa.Column("por_system", sa.String(), nullable=False, server_default=""),
        sa.Column("por_system_instance", sa.String(), nullable=False, server_default=""),
        sa.Column("por_type", sa.String(), nullable=False, server_default=""),
        sa.Column("por_value", sa.String(), nullable=False, server_default=""),
        sa.Column("custom_attributes_json", sa.Text(), nullable=False, server_default="{}"),
        sa.ForeignKeyConstraint(["workbasket_id"], ["workbaskets.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_tasks_due", "tasks", ["due"])
    op.create_index("ix_tasks_state", "tasks", ["state"])
    op.create_index("ix_tasks_classification_key", "tasks", ["classification_key"])
    op.create_index("ix_tasks_workbasket_id", "tasks", ["workbasket_id"])
    op.create_index(
        "idx_tasks_workbasket_state_due",
        "tasks",
        ["workbasket_id", "state", "due"],
    )

    op.create_table(
        "attachments",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("task_id", sa.String(), nullable=False),
        sa.Column("created", sa.DateTime(timezone=True), nullable=False),
        sa.Column("modified", sa.DateTime(timezone=True), nullable=False),
        sa.Column("classification_key", sa.String(), nullable=False),
        sa.Column("classification_domain", sa.String(), nullable=False, server_default=""),
        sa.Column("ref_company", sa.String(), nullable=False, server_default=""),
        sa.Column("ref_system", sa.String(), nullable=False, server_default=""),
        sa.Column("ref_system_instance", sa.String(), nullable=False, server_default=""),
        sa.Column("ref_type", sa.String(), nullable=False, server_default=""),
        sa.Column("ref_value", sa.String(), nullable=False, server_default=""),
        sa.Column("channel", sa.String(), nullable=False, server_default=""),
        sa.Column("received", sa.DateTime(timezone=True), nullable=True),
        sa.Column("custom_attributes_json", sa.Text(), nullable=False, server_default="{}"),
        sa.ForeignKeyConstraint(["task_id"], ["tasks.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_attachments_task_id", "attachments", ["task_id"])


def downgrade() -> None:
    op.drop_index("ix_attachments_task_id", table_name="attachments")
    op.drop_table("attachments")
    op.drop_index("idx_tasks_workbasket_state_due", table_name="tasks")
    op.drop_index("ix_tasks_workbasket_id", table_name="tasks")
    op.drop_index("ix_tasks_classification_key", table_name="tasks")
    op.drop_index("ix_tasks_state", table_name="tasks")
    op.drop_index("ix_tasks_due", table_name="tasks")
    op.drop_table("tasks")
    op.drop_index("ix_workbasket_access_list_access_id", table_name="workbasket_access_list")
    op.drop_index("ix_workbasket_access_list_workbasket_key", table_name="workbasket_access_list")
    op.drop_table("workbasket_access_list")
    op.drop_index("ix_distribution_targets_target_id", table_name="distribution_targets")
    op.drop_index("ix_distribution_targets_source_id", table_name="distribution_targets")
    op.drop_table("distribution_targets")
    op.drop_index("ix_workbaskets_owner", table_name="workbaskets")
    op.drop_index("ix_workbaskets_type", table_name="workbaskets")
    op.drop_index("ix_workbaskets_domain", table_name="workbaskets")
    op.drop_index("ix_workbaskets_name", table_name="workbaskets")
    op.drop_table("workbaskets")
    op.drop_index("ix_classifications_parent_classification_key", table_name="classifications")
    op.drop_index("ix_classifications_domain", table_name="classifications")
    op.drop_index("ix_classifications_key", table_name="classifications")
    op.drop_table("classifications")

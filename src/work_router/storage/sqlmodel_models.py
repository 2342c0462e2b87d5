"""SQLModel ORM tables for routing storage."""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    PrimaryKeyConstraint,
    Text,
    UniqueConstraint,
)
from sqlmodel import Field, SQLModel


class ClassificationRow(SQLModel, table=True):
    __tablename__ = "classifications"  # type: ignore[bad-override]
    __table_args__ = (
        UniqueConstraint("key", "domain", name="uq_classifications_key_domain"),
    )

    id: str = Field(primary_key=True)
    key: str = Field(index=True)
    parent_classification_key: str = Field(default="", index=True)
    category: str = ""
    type: str = ""
    domain: str = Field(default="", index=True)
    valid_in_domain: bool = True
    created: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    modified: datetime | None = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True),
    )
    name: str = ""
    description: str = Field(default="", sa_column=Column(Text, nullable=False))
    priority: int = 0
    service_level: str = ""
    application_entry_point: str = ""
    custom_1: str = ""
    custom_2: str = ""
    custom_3: str = ""
    custom_4: str = ""
    custom_5: str = ""
    custom_6: str = ""
    custom_7: str = ""
    custom_8: str = ""
    custom_9: str = ""
    custom_10: str = ""
    valid_from: date = Field(sa_column=Column(Date, nullable=False))
    valid_until: date = Field(sa_column=Column(Date, nullable=False))


class WorkbasketRow(SQLModel, table=True):
    __tablename__ = "workbaskets"  # type: ignore[bad-override]

    id: str = Field(primary_key=True)
    key: str = Field(sa_column=Column("key", Text, nullable=False, unique=True))
    created: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    modified: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    name: str = Field(default="", index=True)
    domain: str = Field(default="", index=True)
    type: str = Field(index=True)
    description: str = Field(default="", sa_column=Column(Text, nullable=False))
    owner: str = Field(default="", index=True)
    custom_1: str = ""
    custom_2: str = ""
    custom_3: str = ""
    custom_4: str = ""
    custom_5: str = ""
    custom_6: str = ""
    custom_7: str = ""
    custom_8: str = ""
    custom_9: str = ""
    custom_10: str = ""
    org_level_1: str = ""
    org_level_2: str = ""
    org_level_3: str = ""
    org_level_4: str = ""


class DistributionTargetRow(SQLModel, table=True):
    __tablename__ = "distribution_targets"  # type: ignore[bad-override]
    __table_args__ = (
        PrimaryKeyConstraint("source_id", "target_id", name="pk_distribution_targets"),
    )

    source_id: str = Field(
        sa_column=Column(
            ForeignKey("workbaskets.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    target_id: str = Field(
        sa_column=Column(
            ForeignKey("workbaskets.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )


class WorkbasketAccessRow(SQLModel, table=True):
    __tablename__ = "workbasket_access_list"  # type: ignore[bad-override]
    __table_args__ = (
        UniqueConstraint(
            "workbasket_key",
            "access_id",
            name="uq_workbasket_access_list_key_access_id",
        ),
    )

    id: str = Field(primary_key=True)
    workbasket_key: str = Field(
        sa_column=Column(
            ForeignKey("workbaskets.key", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    access_id: str = Field(index=True)
    perm_open: bool = False
    perm_read: bool = False
    perm_append: bool = False
    perm_transfer: bool = False
    perm_distribute: bool = False
    perm_custom_1: bool = False
    perm_custom_2: bool = False
    perm_custom_3: bool = False
    perm_custom_4: bool = False
    perm_custom_5: bool = False
    perm_custom_6: bool = False
    perm_custom_7: bool = False
    perm_custom_8: bool = False


class TaskRow(SQLModel, table=True):
    __tablename__ = "tasks"  # type: ignore[bad-override]
    __table_args__ = (
        Index("idx_tasks_workbasket_state_due", "workbasket_id", "state", "due"),
    )

    id: str = Field(primary_key=True)
    created: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    modified: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    claimed: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True)))
    completed: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True)))
    planned: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True)))
    due: datetime | None = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True, index=True),
    )
    name: str = ""
    description: str = Field(default="", sa_column=Column(Text, nullable=False))
    priority: int = 0
    state: str = Field(index=True)
    classification_id: str
    classification_key: str = Field(index=True)
    classification_domain: str = ""
    workbasket_id: str = Field(
        sa_column=Column(
            ForeignKey("workbaskets.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    owner: str = ""
    por_company: str = ""
    por_system: str = ""
    por_system_instance: str = ""
    por_type: str = ""
    por_value: str = ""
    custom_attributes_json: str = Field(default="{}", sa_column=Column(Text, nullable=False))


class AttachmentRow(SQLModel, table=True):
    __tablename__ = "attachments"  # type: ignore[bad-override]

    id: str = Field(primary_key=True)
    task_id: str = Field(
        sa_column=Column(
            ForeignKey("tasks.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    created: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    modified: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    classification_key: str
    classification_domain: str = ""
    ref_company: str = ""
    ref_system: str = ""
    ref_system_instance: str = ""
    ref_type: str = ""
    ref_value: str = ""
    channel: str = ""
    received: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True)))
    custom_attributes_json: str = Field(default="{}", sa_column=Column(Text, nullable=False))

from __future__ import annotations

from datetime import timedelta

import allure
import pytest

from work_router.engine import WorkRouterEngine
from work_router.errors import InvalidArgumentError
from work_router.models import (
    AccessControlEntry,
    Workbasket,
    WorkbasketPermission,
    WorkbasketType,
)
from work_router.security import StaticIdentityContext
from work_router.storage.common import utc_now

pytestmark = [
    allure.epic("Routing Core"),
    allure.feature("Query Builders"),
]


def _seed(engine: WorkRouterEngine) -> None:
    baskets = [
        Workbasket(key="GPK_KSC", domain="DOMAIN_A", type=WorkbasketType.GROUP, owner="teamlead_1"),
        Workbasket(
            key="USER_1_1",
            domain="DOMAIN_A",
            type=WorkbasketType.PERSONAL,
            owner="user_1_1",
            description="Personal basket of user 1",
        ),
        Workbasket(key="TPK_VIP", domain="DOMAIN_B", type=WorkbasketType.TOPIC, owner="teamlead_2"),
    ]
    for basket in baskets:
        engine.workbaskets.create_workbasket(basket)
    grants = [
        ("GPK_KSC", "group_1", WorkbasketPermission.READ | WorkbasketPermission.APPEND),
        ("USER_1_1", "user_1_1", WorkbasketPermission.READ | WorkbasketPermission.OPEN),
        ("TPK_VIP", "group_2", WorkbasketPermission.READ),
    ]
    for key, access_id, permissions in grants:
        engine.workbaskets.create_access_entry(
            AccessControlEntry(workbasket_key=key, access_id=access_id, permissions=permissions),
        )


def test_filters_by_domain_type_and_owner(engine: WorkRouterEngine) -> None:
    _seed(engine)
    query = engine.workbaskets.create_workbasket_query()

    assert query.domain("DOMAIN_A").count() == 2
    assert [item.key for item in query.type(WorkbasketType.TOPIC).list()] == ["TPK_VIP"]
    assert [item.key for item in query.type("PERSONAL").owner("user_1_1").list()] == ["USER_1_1"]
    assert query.owner("nobody").list() == []


def test_description_like_and_name(engine: WorkRouterEngine) -> None:
    _seed(engine)
    query = engine.workbaskets.create_workbasket_query()

    assert query.description_like("Personal%").count() == 1
    assert query.name("").count() == 3


def test_created_and_modified_bounds_are_inclusive(engine: WorkRouterEngine) -> None:
    before = utc_now() - timedelta(seconds=1)
    _seed(engine)
    after = utc_now() + timedelta(seconds=1)
    query = engine.workbaskets.create_workbasket_query()

    assert query.created_after(before).created_before(after).count() == 3
    assert query.created_after(after).count() == 0
    assert query.modified_before(before).count() == 0

    basket = engine.workbaskets.get_workbasket_by_key("GPK_KSC")
    assert basket.created is not None
    assert query.created_after(basket.created).created_before(basket.created).key(
        "GPK_KSC",
    ).count() == 1


def test_with_permission_combines_with_other_filters(engine: WorkRouterEngine) -> None:
    _seed(engine)
    query = engine.workbaskets.create_workbasket_query()

    readable = query.with_permission(WorkbasketPermission.READ, "group_1", "group_2", "user_1_1")
    appendable = query.with_permission(
        [WorkbasketPermission.READ, WorkbasketPermission.APPEND],
        "group_1",
        "user_1_1",
    )

    assert readable.count() == 3
    assert [item.key for item in readable.domain("DOMAIN_B").list()] == ["TPK_VIP"]
    assert [item.key for item in appendable.list()] == ["GPK_KSC"]


def test_with_permission_lowercases_access_ids(engine: WorkRouterEngine) -> None:
    _seed(engine)

    query = engine.workbaskets.create_workbasket_query().with_permission(
        WorkbasketPermission.OPEN,
        "USER_1_1",
    )

    assert query.criteria.access_ids == ("user_1_1",)
    assert [item.key for item in query.list()] == ["USER_1_1"]


def test_with_permission_validates_arguments(engine: WorkRouterEngine) -> None:
    query = engine.workbaskets.create_workbasket_query()

    with pytest.raises(InvalidArgumentError):
        query.with_permission(None, "user_1_1")
    with pytest.raises(InvalidArgumentError):
        query.with_permission(WorkbasketPermission.none(), "user_1_1")
    with pytest.raises(InvalidArgumentError):
        query.with_permission(WorkbasketPermission.READ)
    with pytest.raises(InvalidArgumentError):
        query.with_permission(WorkbasketPermission.READ, "", "  ")


def test_malformed_type_and_permission_values_are_rejected(engine: WorkRouterEngine) -> None:
    query = engine.workbaskets.create_workbasket_query()

    with pytest.raises(InvalidArgumentError, match="Unknown workbasket type"):
        query.type("INBOX")
    with pytest.raises(InvalidArgumentError):
        query.with_permission("READ", "user_1_1")
    with pytest.raises(InvalidArgumentError):
        query.with_permission([WorkbasketPermission.READ, "APPEND"], "user_1_1")
    with pytest.raises(InvalidArgumentError):
        WorkbasketPermission.from_names(["READ", "WRITE"])


def test_with_permission_strips_access_ids(engine: WorkRouterEngine) -> None:
    _seed(engine)

    query = engine.workbaskets.create_workbasket_query().with_permission(
        WorkbasketPermission.OPEN,
        " USER_1_1 ",
        "user_1_1",
    )

    assert query.criteria.access_ids == ("user_1_1",)
    assert [item.key for item in query.list()] == ["USER_1_1"]


def test_with_caller_permission_uses_identity(engine: WorkRouterEngine) -> None:
    _seed(engine)
    identity = StaticIdentityContext(access_ids=("User_1_1", "GROUP_2"))

    query = engine.workbaskets.create_workbasket_query(identity).with_caller_permission(
        WorkbasketPermission.READ,
    )

    keys = [item.key for item in query.list()]
    ids = [item.id for item in query.list()]
    assert sorted(keys) == ["TPK_VIP", "USER_1_1"]
    assert ids == sorted(ids)


def test_with_caller_permission_requires_access_ids(engine: WorkRouterEngine) -> None:
    query = engine.workbaskets.create_workbasket_query(StaticIdentityContext())

    with pytest.raises(InvalidArgumentError, match="no access ids"):
        query.with_caller_permission(WorkbasketPermission.READ)
    with pytest.raises(InvalidArgumentError):
        query.with_caller_permission(None)


def test_single_and_paging(engine: WorkRouterEngine) -> None:
    _seed(engine)
    query = engine.workbaskets.create_workbasket_query()

    single = query.key("TPK_VIP").single()
    assert single is not None
    assert single.type is WorkbasketType.TOPIC
    assert query.list(1, 1) == query.list()[1:2]

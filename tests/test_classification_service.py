from __future__ import annotations

from dataclasses import replace
from datetime import date

import allure
import pytest

from work_router.engine import WorkRouterEngine
from work_router.errors import (
    ClassificationAlreadyExistsError,
    ClassificationNotFoundError,
    InvalidArgumentError,
)
from work_router.models import DEFAULT_VALID_UNTIL, Classification
from work_router.storage.common import utc_today

pytestmark = [
    allure.epic("Routing Core"),
    allure.feature("Classification Resolver"),
]


def _create(engine: WorkRouterEngine, key: str, domain: str = "", **fields) -> Classification:
    classification = replace(
        engine.classifications.new_classification(key, domain),
        **fields,
    )
    return engine.classifications.create_classification(classification)


def test_new_classification_is_unsaved_with_defaults(engine: WorkRouterEngine) -> None:
    classification = engine.classifications.new_classification("L10000", "DOMAIN_A")

    assert classification.id == ""
    assert classification.key == "L10000"
    assert classification.domain == "DOMAIN_A"
    assert classification.valid_in_domain is True
    assert engine.classifications.list_all_with_key("L10000") == []


def test_create_assigns_identity_and_validity(engine: WorkRouterEngine) -> None:
    created = _create(engine, "L10000", name="Claim", service_level="P1D")

    assert created.id.startswith("CLI:")
    assert created.created is not None
    assert created.created == created.modified
    assert created.valid_from == utc_today()
    assert created.valid_until == DEFAULT_VALID_UNTIL

    stored = engine.classifications.get_classification_by_id(created.id)
    assert stored.name == "Claim"
    assert stored.service_level == "P1D"
    assert stored.valid_until == date(9999, 12, 31)


def test_resolve_prefers_exact_domain_variant(engine: WorkRouterEngine) -> None:
    root = _create(engine, "L10000", name="root variant")
    domain_a = _create(engine, "L10000", "DOMAIN_A", name="domain A variant")

    assert engine.classifications.get_classification("L10000", "DOMAIN_A").id == domain_a.id
    assert engine.classifications.get_classification("L10000", "").id == root.id


def test_resolve_falls_back_to_root_domain(engine: WorkRouterEngine) -> None:
    root = _create(engine, "L10000")

    resolved = engine.classifications.get_classification("L10000", "DOMAIN_B")

    assert resolved.id == root.id
    assert resolved.domain == ""


def test_resolve_in_sibling_domain_uses_root_copy(engine: WorkRouterEngine) -> None:
    domain_a = _create(engine, "L20000", "DOMAIN_A")

    resolved = engine.classifications.get_classification("L20000", "DOMAIN_B")

    assert resolved.id != domain_a.id
    assert resolved.domain == ""


def test_domain_variant_creates_missing_root_variant(engine: WorkRouterEngine) -> None:
    created = _create(engine, "L20000", "DOMAIN_A", name="Claim", service_level="P1D")
    _create(engine, "L20000", "DOMAIN_B")

    variants = engine.classifications.list_all_with_key("L20000")
    root = engine.classifications.get_classification("L20000", "")

    assert [item.domain for item in variants] == ["", "DOMAIN_A", "DOMAIN_B"]
    assert root.id.startswith("CLI:")
    assert root.id != created.id
    assert root.created is not None
    assert root.name == "Claim"
    assert root.service_level == "P1D"
    assert root.valid_in_domain is False
    assert created.valid_in_domain is True


def test_root_variant_is_not_duplicated_when_present(engine: WorkRouterEngine) -> None:
    root = _create(engine, "L20000", name="root variant")
    _create(engine, "L20000", "DOMAIN_A")

    assert engine.classifications.get_classification("L20000", "").id == root.id
    assert len(engine.classifications.list_all_with_key("L20000")) == 2


def test_root_variant_is_created_in_the_same_transaction(engine: WorkRouterEngine) -> None:
    with pytest.raises(RuntimeError, match="abort"):
        with engine.transaction():
            _create(engine, "L20000", "DOMAIN_A")
            assert len(engine.classifications.list_all_with_key("L20000")) == 2
            raise RuntimeError("abort")

    assert engine.classifications.list_all_with_key("L20000") == []


def test_resolve_unknown_key_fails(engine: WorkRouterEngine) -> None:
    with pytest.raises(ClassificationNotFoundError):
        engine.classifications.get_classification("MISSING", "")


def test_get_by_unknown_id_fails(engine: WorkRouterEngine) -> None:
    with pytest.raises(ClassificationNotFoundError):
        engine.classifications.get_classification_by_id("CLI:missing")


def test_duplicate_key_and_domain_is_rejected(engine: WorkRouterEngine) -> None:
    _create(engine, "L10000", "DOMAIN_A")

    with pytest.raises(ClassificationAlreadyExistsError):
        _create(engine, "L10000", "DOMAIN_A")

    variants = engine.classifications.list_all_with_key("L10000")
    assert [item.domain for item in variants] == ["", "DOMAIN_A"]


def test_same_key_in_other_domain_is_allowed(engine: WorkRouterEngine) -> None:
    _create(engine, "L10000")
    _create(engine, "L10000", "DOMAIN_A")
    _create(engine, "L10000", "DOMAIN_B")

    variants = engine.classifications.list_all_with_key("L10000")

    assert [item.domain for item in variants] == ["", "DOMAIN_A", "DOMAIN_B"]


def test_create_rejects_invalid_service_level(engine: WorkRouterEngine) -> None:
    with pytest.raises(InvalidArgumentError, match="Invalid service level"):
        _create(engine, "L10000", service_level="ASAP")

    assert engine.classifications.list_all_with_key("L10000") == []


def test_create_rejects_empty_key(engine: WorkRouterEngine) -> None:
    with pytest.raises(InvalidArgumentError):
        _create(engine, "")


def test_update_overwrites_fields_and_restarts_validity(engine: WorkRouterEngine) -> None:
    created = _create(engine, "L10000", "DOMAIN_A", priority=1)

    updated = engine.classifications.update_classification(
        replace(created, priority=5, description="escalated", valid_from=date(2000, 1, 1)),
    )

    assert updated.id == created.id
    assert updated.priority == 5
    assert updated.description == "escalated"
    assert updated.valid_from == utc_today()
    assert updated.modified is not None
    assert updated.created == created.created
    assert updated.modified >= created.modified


def test_update_locates_row_by_key_and_domain(engine: WorkRouterEngine) -> None:
    created = _create(engine, "L10000", "DOMAIN_A")

    updated = engine.classifications.update_classification(
        replace(created, id="", name="renamed"),
    )

    assert updated.id == created.id
    assert updated.name == "renamed"


def test_update_unknown_classification_fails(engine: WorkRouterEngine) -> None:
    with pytest.raises(ClassificationNotFoundError):
        engine.classifications.update_classification(Classification(key="L99999"))


def test_update_onto_existing_variant_fails(engine: WorkRouterEngine) -> None:
    _create(engine, "L10000", "DOMAIN_A")
    other = _create(engine, "L10000", "DOMAIN_B")

    with pytest.raises(ClassificationAlreadyExistsError):
        engine.classifications.update_classification(replace(other, domain="DOMAIN_A"))


def test_update_validates_service_level(engine: WorkRouterEngine) -> None:
    created = _create(engine, "L10000")

    with pytest.raises(InvalidArgumentError):
        engine.classifications.update_classification(replace(created, service_level="P1DT"))


def test_tree_groups_children_under_parent_within_domain(engine: WorkRouterEngine) -> None:
    _create(engine, "ROOT", name="root")
    _create(engine, "CHILD_1", parent_classification_key="ROOT")
    _create(engine, "CHILD_2", parent_classification_key="ROOT")
    _create(engine, "ROOT", "DOMAIN_A")
    _create(engine, "GRANDCHILD", parent_classification_key="CHILD_1")
    _create(engine, "ORPHAN", "DOMAIN_A", parent_classification_key="CHILD_1")

    roots = engine.classifications.get_classification_tree()

    root_keys = sorted((node.classification.key, node.classification.domain) for node in roots)
    assert root_keys == [("ORPHAN", "DOMAIN_A"), ("ROOT", ""), ("ROOT", "DOMAIN_A")]

    root = next(
        node
        for node in roots
        if node.classification.key == "ROOT" and node.classification.domain == ""
    )
    child_ids = [child.classification.id for child in root.children]
    assert child_ids == sorted(child_ids)
    assert {child.classification.key for child in root.children} == {"CHILD_1", "CHILD_2"}
    assert [item.key for item in root.walk()].count("GRANDCHILD") == 1


def test_tree_is_empty_without_classifications(engine: WorkRouterEngine) -> None:
    assert engine.classifications.get_classification_tree() == []

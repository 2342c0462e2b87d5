"""Classification resolution, maintenance and tree assembly."""

from __future__ import annotations

import logging
from dataclasses import replace

from work_router.errors import ClassificationNotFoundError, InvalidArgumentError
from work_router.models import (
    DEFAULT_VALID_UNTIL,
    ROOT_DOMAIN,
    Classification,
    ClassificationNode,
)
from work_router.query.classification_query import ClassificationQuery
from work_router.service_level import validate_service_level
from work_router.storage.common import new_id, utc_now, utc_today
from work_router.storage.repository import SQLiteStorageAdapter

logger = logging.getLogger(__name__)

CLASSIFICATION_ID_PREFIX = "CLI"


class ClassificationService:
    """Maintains classifications and resolves domain overrides."""

    def __init__(self, *, storage: SQLiteStorageAdapter) -> None:
        self.storage = storage

    def new_classification(self, key: str, domain: str = ROOT_DOMAIN) -> Classification:
        """Unsaved classification carrying default values."""

        return Classification(key=key, domain=domain or ROOT_DOMAIN)

    def get_classification(self, key: str, domain: str) -> Classification:
        """Resolve ``key`` in ``domain``, falling back to the root domain."""

        if not key:
            raise InvalidArgumentError("Classification key must not be empty.")
        domain = domain or ROOT_DOMAIN
        classification = self.storage.find_classification(key, domain)
        if classification is None and domain != ROOT_DOMAIN:
            logger.debug(
                "Classification %s has no variant in domain %r, using root domain",
                key,
                domain,
            )
            classification = self.storage.find_classification(key, ROOT_DOMAIN)
        if classification is None:
            raise ClassificationNotFoundError(
                f"Classification not found: key={key!r} domain={domain!r}",
                key=key,
                domain=domain,
            )
        return classification

    def get_classification_by_id(self, classification_id: str) -> Classification:
        classification = self.storage.find_classification_by_id(classification_id)
        if classification is None:
            raise ClassificationNotFoundError(
                f"Classification not found: id={classification_id}",
            )
        return classification

    def create_classification(self, classification: Classification) -> Classification:
        """Persist a new classification and return the stored value.

        Creating a domain variant of a key that has no root variant also
        stores a root copy, marked as not valid in its domain.
        """

        _validate(classification)
        now = utc_now()
        created = replace(
            classification,
            id=new_id(CLASSIFICATION_ID_PREFIX),
            domain=classification.domain or ROOT_DOMAIN,
            created=now,
            modified=now,
            valid_from=utc_today(),
            valid_until=classification.valid_until or DEFAULT_VALID_UNTIL,
        )
        with self.storage.connections.scope():
            self.storage.insert_classification(created)
            if not created.is_root:
                self._ensure_root_variant(created)
        logger.info(
            "Created classification %s key=%s domain=%r",
            created.id,
            created.key,
            created.domain,
        )
        return created

    def update_classification(self, classification: Classification) -> Classification:
        """Overwrite a stored classification; ``valid_from`` restarts today."""

        _validate(classification)
        classification_id = classification.id
        if not classification_id:
            stored = self.storage.find_classification(
                classification.key,
                classification.domain or ROOT_DOMAIN,
            )
            if stored is None:
                raise ClassificationNotFoundError(
                    "Classification not found: "
                    f"key={classification.key!r} domain={classification.domain!r}",
                    key=classification.key,
                    domain=classification.domain,
                )
            classification_id = stored.id
        updated = replace(
            classification,
            id=classification_id,
            domain=classification.domain or ROOT_DOMAIN,
            modified=utc_now(),
            valid_from=utc_today(),
            valid_until=classification.valid_until or DEFAULT_VALID_UNTIL,
        )
        self.storage.update_classification(updated)
        logger.info("Updated classification %s", updated.id)
        return self.get_classification_by_id(updated.id)

    def list_all_with_key(self, key: str) -> list[Classification]:
        """Every domain variant of ``key``, root variant first."""

        return self.storage.list_classifications_with_key(key)

    def get_classification_tree(self) -> list[ClassificationNode]:
        """Assemble the parent/child forest; parents are matched within a domain."""

        classifications = self.storage.list_all_classifications()
        nodes = {
            (item.domain, item.key): ClassificationNode(classification=item)
            for item in classifications
        }
        roots: list[ClassificationNode] = []
        for item in classifications:
            node = nodes[(item.domain, item.key)]
            parent = None
            if item.parent_classification_key:
                parent = nodes.get((item.domain, item.parent_classification_key))
            if parent is None or parent is node:
                roots.append(node)
            else:
                parent.children.append(node)
        return roots

    def create_classification_query(self) -> ClassificationQuery:
        return ClassificationQuery(storage=self.storage)

    def _ensure_root_variant(self, classification: Classification) -> None:
        if self.storage.find_classification(classification.key, ROOT_DOMAIN) is not None:
            return
        root = replace(
            classification,
            id=new_id(CLASSIFICATION_ID_PREFIX),
            domain=ROOT_DOMAIN,
            valid_in_domain=False,
        )
        self.storage.insert_classification(root)
        logger.info("Created root classification %s for key=%s", root.id, root.key)


def _validate(classification: Classification) -> None:
    if not classification.key:
        raise InvalidArgumentError("Classification key must not be empty.")
    validate_service_level(classification.service_level)

"""Category creation, listing and renaming."""

import structlog

from tally.context import RequestContext, require_user_id
from tally.domain.audit import bump_audit, make_audit_for_creation
from tally.domain.category import create_category
from tally.domain.models import CategoryId, UpdatedBy
from tally.domain.validation import duplicated_names, duplicated_names_message
from tally.errors import ErrorCode, TallyError, ValidationError
from tally.services.schema import (
    CategoriesResponse,
    CategoryResponse,
    CreateCategoriesRequest,
    UpdateCategoryRequest,
    category_response,
)
from tally.store import Database, Transaction, is_duplicate_key, new_id
from tally.store import categories as category_store

log = structlog.get_logger(__name__)


def _duplicate_name_error(tx: Transaction, ctx: RequestContext, names: list[str]) -> ValidationError:
    stored = category_store.get_category_names(tx, require_user_id(ctx))
    offending = duplicated_names(names, stored) or names
    log.info("duplicate_key_translated", entity="category", names=offending)
    message = duplicated_names_message("Category", offending)
    return ValidationError(ErrorCode.CATEGORY_NAME_DUPLICATED, message, {"name": message})


class CategoriesService:
    def __init__(self, db: Database) -> None:
        self._db = db

    def create_categories(self, ctx: RequestContext, request: CreateCategoriesRequest) -> CategoriesResponse:
        """Create a batch of categories for the caller in one bulk insert.

        Names are title-cased first, so "health" and "HEALTH" collide.

        Raises:
            ValidationError: SERVICE_REQUIRED_USER_ID without a caller,
                CATEGORY_VALIDATION_FAILED for an invalid name,
                CATEGORY_NAME_DUPLICATED if a name is taken.
            SystemFailure: If the store fails.
        """
        user_id = require_user_id(ctx)
        with self._db.begin(ctx) as tx:
            categories = [
                create_category(
                    category_id=CategoryId(new_id(tx, "category")),
                    name=item.name,
                    audit=make_audit_for_creation(UpdatedBy.for_user(user_id)),
                )
                for item in request.categories
            ]
            try:
                category_store.save_categories(tx, user_id, categories)
            except TallyError as err:
                _, duplicated = is_duplicate_key(err)
                if not duplicated:
                    raise
                raise _duplicate_name_error(tx, ctx, [category.name for category in categories]) from err
            tx.commit()

        log.info("categories_created", user_id=user_id, count=len(categories))
        return {"categories": [category_response(category) for category in categories]}

    def get_categories(self, ctx: RequestContext) -> CategoriesResponse:
        """All categories of the caller, most recently used first, then by name."""
        user_id = require_user_id(ctx)
        with self._db.begin(ctx) as tx:
            categories = category_store.get_categories(tx, user_id)
            tx.commit()
        return {"categories": [category_response(category) for category in categories]}

    def update_category(
        self, ctx: RequestContext, category_id: CategoryId, request: UpdateCategoryRequest
    ) -> CategoryResponse:
        """Rename a category.

        Raises:
            ValidationError: CATEGORIES_NOT_FOUND, CATEGORY_VALIDATION_FAILED or
                CATEGORY_NAME_DUPLICATED.
            SystemFailure: DATABASE_STATE if the category changed since it was read.
        """
        user_id = require_user_id(ctx)
        with self._db.begin(ctx) as tx:
            current = category_store.get_category(tx, category_id, user_id)
            expected_version = request.version if request.version is not None else current.audit.version
            updated = create_category(
                category_id=current.id,
                name=request.name,
                audit=bump_audit(current.audit, UpdatedBy.for_user(user_id)),
                last_used_at=current.last_used_at,
            )
            try:
                category_store.update_category(tx, user_id, updated, expected_version)
            except TallyError as err:
                _, duplicated = is_duplicate_key(err)
                if not duplicated:
                    raise
                raise _duplicate_name_error(tx, ctx, [updated.name]) from err
            tx.commit()

        log.info("category_updated", user_id=user_id, category_id=category_id, version=updated.audit.version)
        return category_response(updated)

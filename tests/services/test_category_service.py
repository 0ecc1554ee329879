"""Tests for CategoriesService."""

import pytest

from tally.context import RequestContext
from tally.domain.models import CategoryId
from tally.errors import ErrorCode, SystemFailure, ValidationError
from tally.services import CategoriesService
from tally.services.schema import CategoryRequest, CreateCategoriesRequest, UpdateCategoryRequest
from tally.store import Database

from conftest import Household


class TestCreateCategories:
    """Tests for CategoriesService.create_categories."""

    def test_names_are_title_cased(self, db: Database, household: Household) -> None:
        """Should store names title-cased and unused."""
        created = CategoriesService(db).create_categories(
            household.ctx, CreateCategoriesRequest(categories=(CategoryRequest(name="eating out"),))
        )["categories"]

        assert created[0]["name"] == "Eating Out"
        assert created[0]["lastUsedAt"] is None
        assert created[0]["version"] == 1

    def test_case_variants_collide(self, db: Database, household: Household) -> None:
        """Should treat "HEALTH" and "health" as the same name."""
        request = CreateCategoriesRequest(categories=(CategoryRequest(name="health"), CategoryRequest(name="HEALTH")))

        with pytest.raises(ValidationError) as exc_info:
            CategoriesService(db).create_categories(household.ctx, request)

        assert exc_info.value.code is ErrorCode.CATEGORY_NAME_DUPLICATED
        assert exc_info.value.detail == 'Category named "Health" already exists'

    def test_collides_with_stored_name(self, db: Database, household: Household) -> None:
        """Should reject a name the caller already has and write nothing."""
        request = CreateCategoriesRequest(categories=(CategoryRequest(name="Rent"), CategoryRequest(name="food")))

        with pytest.raises(ValidationError) as exc_info:
            CategoriesService(db).create_categories(household.ctx, request)

        assert exc_info.value.detail == 'Category named "Food" already exists'
        assert len(CategoriesService(db).get_categories(household.ctx)["categories"]) == 4

    def test_empty_name(self, db: Database, household: Household) -> None:
        """Should reject an empty name."""
        with pytest.raises(ValidationError) as exc_info:
            CategoriesService(db).create_categories(
                household.ctx, CreateCategoriesRequest(categories=(CategoryRequest(name="  "),))
            )

        assert exc_info.value.code is ErrorCode.CATEGORY_VALIDATION_FAILED

    def test_requires_user(self, db: Database) -> None:
        """Should refuse an anonymous caller."""
        with pytest.raises(ValidationError) as exc_info:
            CategoriesService(db).create_categories(RequestContext(), CreateCategoriesRequest(categories=()))

        assert exc_info.value.code is ErrorCode.SERVICE_REQUIRED_USER_ID


class TestGetCategories:
    """Tests for CategoriesService.get_categories."""

    def test_unused_by_name(self, db: Database, household: Household) -> None:
        """Should list never-used categories by name."""
        categories = CategoriesService(db).get_categories(household.ctx)["categories"]

        assert [category["name"] for category in categories] == ["Bills", "Food", "Salary", "Savings"]

    def test_only_own_categories(self, db: Database, household: Household, neighbour: Household) -> None:
        """Should list only the caller's categories."""
        categories = CategoriesService(db).get_categories(neighbour.ctx)["categories"]

        assert {category["id"] for category in categories} == set(neighbour.category_ids.values())


class TestUpdateCategory:
    """Tests for CategoriesService.update_category."""

    def test_rename(self, db: Database, household: Household) -> None:
        """Should rename and bump the version."""
        updated = CategoriesService(db).update_category(
            household.ctx, household.category_ids["Food"], UpdateCategoryRequest(name="groceries")
        )

        assert updated["name"] == "Groceries"
        assert updated["version"] == 2

    def test_rename_to_taken_name(self, db: Database, household: Household) -> None:
        """Should reject a name another category of the caller has."""
        with pytest.raises(ValidationError) as exc_info:
            CategoriesService(db).update_category(
                household.ctx, household.category_ids["Food"], UpdateCategoryRequest(name="bills")
            )

        assert exc_info.value.code is ErrorCode.CATEGORY_NAME_DUPLICATED

    def test_stale_version(self, db: Database, household: Household) -> None:
        """Should refuse a rename based on an old version."""
        service = CategoriesService(db)
        food = household.category_ids["Food"]
        service.update_category(household.ctx, food, UpdateCategoryRequest(name="Groceries", version=1))

        with pytest.raises(SystemFailure) as exc_info:
            service.update_category(household.ctx, food, UpdateCategoryRequest(name="Meals", version=1))

        assert exc_info.value.code is ErrorCode.DATABASE_STATE

    def test_foreign_category(self, db: Database, household: Household, neighbour: Household) -> None:
        """Should not rename another user's category."""
        with pytest.raises(ValidationError) as exc_info:
            CategoriesService(db).update_category(
                neighbour.ctx, household.category_ids["Food"], UpdateCategoryRequest(name="Mine")
            )

        assert exc_info.value.code is ErrorCode.CATEGORIES_NOT_FOUND

    def test_unknown_category(self, db: Database, household: Household) -> None:
        """Should raise CATEGORIES_NOT_FOUND for a missing category."""
        with pytest.raises(ValidationError) as exc_info:
            CategoriesService(db).update_category(household.ctx, CategoryId(999), UpdateCategoryRequest(name="Mine"))

        assert exc_info.value.code is ErrorCode.CATEGORIES_NOT_FOUND

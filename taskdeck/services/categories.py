"""Category registry: the user's categories and their live task counts."""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from pydantic import ValidationError as PydanticValidationError

from ..errors import (
    CategoryError,
    CategoryInUseError,
    NotFoundError,
    ProtectedCategoryError,
    RemoteFailure,
    ValidationError,
)
from ..models import (
    Category,
    DEFAULT_CATEGORY_COLOR,
    DEFAULT_CATEGORY_ID,
    DEFAULT_CATEGORY_NAME,
    STARTER_CATEGORIES,
    Task,
    slugify,
)

logger = logging.getLogger(__name__)


@dataclass
class CategoryDeleteResult:
    """Outcome of a category deletion.

    Refusals are reported through `refusal` instead of being raised so a
    confirmation flow can offer reassign-then-retry; `failure` holds the
    remote error when persisting the deletion failed.
    """
    category_id: str
    deleted: bool = False
    reassigned: int = 0
    refusal: Optional[CategoryError] = None
    failure: Optional[RemoteFailure] = None

    @property
    def ok(self) -> bool:
        return self.deleted and self.refusal is None


class CategoryRegistry:
    """Ordered categories (display order = creation order) with derived counts.

    Attributes:
        default_id: Id of the non-deletable fallback category
    """

    def __init__(self, categories: Optional[Iterable[Category]] = None, default_id: str = DEFAULT_CATEGORY_ID):
        self._categories: List[Category] = list(categories) if categories is not None else []
        self.default_id = default_id
        if self.get(default_id) is None:
            self._categories.insert(0, Category(
                id=default_id,
                name=DEFAULT_CATEGORY_NAME,
                color=DEFAULT_CATEGORY_COLOR,
            ))

    @classmethod
    def with_starter_set(cls) -> "CategoryRegistry":
        """Registry seeded with General, Work, Personal and Urgent."""
        return cls([Category(id=cid, name=name, color=color) for cid, name, color in STARTER_CATEGORIES])

    @property
    def categories(self) -> List[Category]:
        return list(self._categories)

    @property
    def default(self) -> Category:
        return self.get(self.default_id)

    def get(self, category_id: Optional[str]) -> Optional[Category]:
        for category in self._categories:
            if category.id == category_id:
                return category
        return None

    def resolve(self, category_id: Optional[str]) -> str:
        """Return `category_id` if it exists, otherwise the default id."""
        if category_id and self.get(category_id) is not None:
            return category_id
        return self.default_id

    def build_category(self, name: str, color: str, category_id: Optional[str] = None) -> Category:
        """Validate a new category without registering it.

        Args:
            name: Display name; trimmed, must be non-empty and unique
            color: Display color as #RRGGBB
            category_id: Remote key; derived from the name when omitted

        Returns:
            The unregistered Category

        Raises:
            ValidationError: If the name is empty, already used, or the color is malformed
        """
        trimmed = (name or "").strip()
        if not trimmed:
            raise ValidationError("Category name cannot be empty")
        if any(c.name.lower() == trimmed.lower() for c in self._categories):
            raise ValidationError(f"Category '{trimmed}' already exists")
        new_id = category_id or slugify(trimmed)
        if self.get(new_id) is not None:
            raise ValidationError(f"Category id '{new_id}' already exists")
        try:
            return Category(id=new_id, name=trimmed, color=color or DEFAULT_CATEGORY_COLOR)
        except PydanticValidationError as e:
            raise ValidationError(str(e)) from e

    def add_category(self, name: str, color: str, category_id: Optional[str] = None) -> Category:
        """Create and append a category with a zero count."""
        category = self.build_category(name, color, category_id)
        self.register(category)
        return category

    def register(self, category: Category) -> None:
        category.count = 0
        self._categories.append(category)
        logger.info(f"Added category '{category.name}' ({category.id})")

    def check_delete(self, category_id: str, tasks: Iterable[Task], reassign_to_default: bool) -> Optional[CategoryError]:
        """Return the refusal a deletion would hit, or None if it may proceed.

        Raises:
            NotFoundError: If the category does not exist
        """
        if self.get(category_id) is None:
            raise NotFoundError(f"Category {category_id} not found")
        if category_id == self.default_id:
            return ProtectedCategoryError("The default category cannot be deleted", category_id)
        in_use = sum(1 for task in tasks if task.category == category_id)
        if in_use and not reassign_to_default:
            return CategoryInUseError(
                f"Category {category_id} is used by {in_use} task(s)", category_id, in_use
            )
        return None

    def delete_category(self, category_id: str, store, reassign_to_default: bool = False) -> CategoryDeleteResult:
        """Delete a category, optionally moving its tasks to the default category.

        Reassignment and removal happen in one synchronous step, so no reader
        can observe tasks moved while the category still exists.

        Args:
            category_id: The category to delete
            store: TaskStore holding the tasks that may reference it
            reassign_to_default: Move referencing tasks to the default category

        Returns:
            CategoryDeleteResult with `refusal` set when the deletion was refused
        """
        refusal = self.check_delete(category_id, store.tasks, reassign_to_default)
        if refusal is not None:
            logger.warning(f"Refused to delete category {category_id}: {refusal}")
            return CategoryDeleteResult(category_id=category_id, refusal=refusal)
        moved = store.reassign_category(category_id, self.default_id)
        self.remove(category_id)
        self.recompute_counts(store.tasks)
        return CategoryDeleteResult(category_id=category_id, deleted=True, reassigned=moved)

    def remove(self, category_id: str) -> None:
        self._categories = [c for c in self._categories if c.id != category_id]
        logger.info(f"Deleted category {category_id}")

    def replace_all(self, categories: Iterable[Category], default_id: Optional[str] = None) -> None:
        self._categories = list(categories)
        if default_id is not None:
            self.default_id = default_id

    def recompute_counts(self, tasks: Iterable[Task]) -> None:
        """count[c] = number of tasks whose category is c.id."""
        counts = {}
        for task in tasks:
            counts[task.category] = counts.get(task.category, 0) + 1
        self.apply_counts(counts)

    def apply_counts(self, counts) -> None:
        """Set counts from a category id -> task count mapping; missing ids count 0."""
        for category in self._categories:
            category.count = counts.get(category.id, 0)

"""
In-memory recipe store.

Recipes are kept in insertion order and identified by an integer id that the
repository assigns and never reuses. The store knows nothing about which
recipe is currently loaded; that association belongs to the controller.
"""

import itertools
import logging
from dataclasses import asdict, dataclass, field
from typing import Dict, List

from .core import (
    DEFAULT_RPM,
    DEFAULT_TEMP,
    DEFAULT_TIME,
    RPM_MAX,
    RPM_MIN,
    TEMP_MAX,
    TEMP_MIN,
    TIME_MAX,
    TIME_MIN,
    Color,
)
from .errors import NotFound, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecipeDraft:
    """Editable recipe fields, as entered by the operator."""

    name: str
    temp: int = DEFAULT_TEMP
    rpm: int = DEFAULT_RPM
    time: int = DEFAULT_TIME
    color: Color = Color.BLUE


@dataclass(frozen=True)
class Recipe:
    """Stored recipe record."""

    id: int
    name: str
    temp: int
    rpm: int
    time: int
    color: Color = field(default=Color.BLUE)


SEED_RECIPES = [
    RecipeDraft("Vanilla", -5, 80, 15, Color.YELLOW),
    RecipeDraft("Chocolate", -6, 90, 18, Color.BROWN),
    RecipeDraft("Gelato", -8, 120, 12, Color.PINK),
    RecipeDraft("Frozen Yogurt", -4, 70, 10, Color.PURPLE),
]


def check_range(label: str, value: int, low: int, high: int) -> int:
    """Validate an integer parameter against an inclusive range.

    Raises:
        ValidationError: If value is not an integer or is out of range
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{label} must be an integer, got {value!r}")
    if value < low or value > high:
        raise ValidationError(f"{label} {value} out of range [{low}, {high}]")
    return value


def validate_draft(draft: RecipeDraft) -> RecipeDraft:
    """Check a draft and return it with a normalised name and colour."""
    name = (draft.name or "").strip()
    if not name:
        raise ValidationError("Recipe name is required")

    check_range("Temperature", draft.temp, TEMP_MIN, TEMP_MAX)
    check_range("RPM", draft.rpm, RPM_MIN, RPM_MAX)
    check_range("Time", draft.time, TIME_MIN, TIME_MAX)

    try:
        color = Color(draft.color)
    except ValueError:
        palette = ", ".join(c.value for c in Color)
        raise ValidationError(
            f"Unknown color {draft.color!r} (choose from {palette})"
        ) from None

    return RecipeDraft(name, draft.temp, draft.rpm, draft.time, color)


class RecipeRepository:
    """CRUD store for recipes."""

    def __init__(self, seed: bool = True) -> None:
        self._recipes: Dict[int, Recipe] = {}
        self._ids = itertools.count(1)

        if seed:
            for draft in SEED_RECIPES:
                self.create(draft)

    def create(self, draft: RecipeDraft) -> Recipe:
        """Validate and insert a new recipe.

        Args:
            draft: Recipe fields

        Returns:
            The stored Recipe with its assigned id

        Raises:
            ValidationError: If the draft is invalid
        """
        clean = validate_draft(draft)
        recipe = Recipe(id=next(self._ids), **asdict(clean))
        self._recipes[recipe.id] = recipe
        logger.debug(f"Created recipe {recipe.id}: {recipe.name}")
        return recipe

    def update(self, recipe_id: int, draft: RecipeDraft) -> Recipe:
        """Replace every field of an existing recipe except its id.

        Raises:
            NotFound: If no recipe has this id
            ValidationError: If the draft is invalid
        """
        if recipe_id not in self._recipes:
            raise NotFound(recipe_id)

        clean = validate_draft(draft)
        recipe = Recipe(id=recipe_id, **asdict(clean))
        # Assigning to an existing key keeps its insertion position
        self._recipes[recipe_id] = recipe
        logger.debug(f"Updated recipe {recipe_id}: {recipe.name}")
        return recipe

    def delete(self, recipe_id: int) -> Recipe:
        """Remove a recipe and return it.

        Raises:
            NotFound: If no recipe has this id
        """
        try:
            recipe = self._recipes.pop(recipe_id)
        except KeyError:
            raise NotFound(recipe_id) from None
        logger.debug(f"Deleted recipe {recipe_id}: {recipe.name}")
        return recipe

    def get(self, recipe_id: int) -> Recipe:
        try:
            return self._recipes[recipe_id]
        except KeyError:
            raise NotFound(recipe_id) from None

    def list(self) -> List[Recipe]:
        """Return all recipes in insertion order."""
        return list(self._recipes.values())

    def __contains__(self, recipe_id: object) -> bool:
        return recipe_id in self._recipes

    def __len__(self) -> int:
        return len(self._recipes)

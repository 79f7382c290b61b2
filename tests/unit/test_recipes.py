"""Recipe repository behaviour."""

import pytest

from churnctrl.core import Color
from churnctrl.errors import NotFound, ValidationError
from churnctrl.recipes import RecipeDraft, RecipeRepository


def test_seeded_defaults():
    repo = RecipeRepository()
    recipes = repo.list()

    assert [r.name for r in recipes] == ["Vanilla", "Chocolate", "Gelato", "Frozen Yogurt"]
    gelato = recipes[2]
    assert (gelato.temp, gelato.rpm, gelato.time, gelato.color) == (-8, 120, 12, Color.PINK)


def test_create_assigns_fresh_ids():
    repo = RecipeRepository()
    first = repo.create(RecipeDraft("Sorbet", -10, 100, 20, Color.RED))
    repo.delete(first.id)
    second = repo.create(RecipeDraft("Sorbet", -10, 100, 20, Color.RED))

    ids = [r.id for r in repo.list()]
    assert second.id != first.id
    assert len(ids) == len(set(ids))
    assert repo.list()[-1] == second


@pytest.mark.parametrize("name", ["", "   ", "\t\n"])
def test_create_rejects_blank_name(name):
    repo = RecipeRepository(seed=False)
    with pytest.raises(ValidationError):
        repo.create(RecipeDraft(name))
    assert repo.list() == []


@pytest.mark.parametrize(
    "draft",
    [
        RecipeDraft("Too cold", temp=-21),
        RecipeDraft("Too warm", temp=11),
        RecipeDraft("Too fast", rpm=201),
        RecipeDraft("Too short", time=4),
        RecipeDraft("Too long", time=61),
        RecipeDraft("Odd color", color="teal"),  # type: ignore[arg-type]
    ],
)
def test_create_rejects_out_of_range(draft):
    with pytest.raises(ValidationError):
        RecipeRepository(seed=False).create(draft)


def test_create_strips_name_and_accepts_color_string():
    repo = RecipeRepository(seed=False)
    recipe = repo.create(RecipeDraft("  Mango  ", color="orange"))  # type: ignore[arg-type]
    assert recipe.name == "Mango"
    assert recipe.color is Color.ORANGE


def test_duplicate_names_allowed():
    repo = RecipeRepository(seed=False)
    a = repo.create(RecipeDraft("Vanilla"))
    b = repo.create(RecipeDraft("Vanilla"))
    assert a.id != b.id
    assert len(repo) == 2


def test_update_replaces_fields_and_keeps_position():
    repo = RecipeRepository()
    updated = repo.update(2, RecipeDraft("Dark Chocolate", -7, 95, 20, Color.BROWN))

    assert updated.id == 2
    assert repo.get(2) == updated
    assert [r.id for r in repo.list()] == [1, 2, 3, 4]
    assert repo.list()[1].name == "Dark Chocolate"


def test_update_unknown_id():
    repo = RecipeRepository()
    with pytest.raises(NotFound):
        repo.update(99, RecipeDraft("Ghost"))


def test_update_blank_name_leaves_record():
    repo = RecipeRepository()
    before = repo.get(1)
    with pytest.raises(ValidationError):
        repo.update(1, RecipeDraft(" "))
    assert repo.get(1) == before


def test_delete():
    repo = RecipeRepository()
    removed = repo.delete(3)

    assert removed.name == "Gelato"
    assert 3 not in repo
    with pytest.raises(NotFound):
        repo.delete(3)
    with pytest.raises(NotFound):
        repo.get(3)


def test_mixed_operations_never_store_blank_names():
    repo = RecipeRepository()
    seen_ids = {r.id for r in repo.list()}

    for i in range(10):
        recipe = repo.create(RecipeDraft(f"Batch {i}", rpm=i * 10))
        assert recipe.id not in seen_ids
        seen_ids.add(recipe.id)
        if i % 3 == 0:
            repo.delete(recipe.id)
        with pytest.raises(ValidationError):
            repo.create(RecipeDraft(""))

    assert all(r.name.strip() for r in repo.list())


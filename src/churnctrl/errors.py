"""Exception types raised by churnctrl."""


class ChurnError(Exception):
    """Base class for recoverable operator-facing errors."""


class LinkUnavailable(ChurnError):
    """Scanning or pairing with the appliance failed."""


class ValidationError(ChurnError):
    """A recipe or target parameter is invalid."""


class NotFound(ChurnError):
    """No recipe with the requested id."""

    def __init__(self, recipe_id: int) -> None:
        super().__init__(f"Recipe {recipe_id} not found")
        self.recipe_id = recipe_id

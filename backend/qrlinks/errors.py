class ConfigurationError(RuntimeError):
    """Raised at startup when required settings are missing or invalid."""


class SlugConflictError(Exception):
    """A generated slug collided with an existing row (unique index hit)."""


class EmptyUpdateError(ValueError):
    """An update request carried no fields."""

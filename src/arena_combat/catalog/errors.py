"""Definition loading errors."""


class UnknownDefinitionError(ValueError):
    """A definition names a passive or ability that does not exist."""


class InvalidDefinitionError(ValueError):
    """A definition names a known passive or ability with unusable parameters."""

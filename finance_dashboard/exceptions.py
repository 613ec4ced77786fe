"""Exception classes for the Finance Dashboard."""


class FinanceDashboardError(Exception):
    """Base exception for the Finance Dashboard."""
    pass


class ConfigError(FinanceDashboardError):
    """Configuration file could not be read or is malformed."""
    pass


class ValidationError(FinanceDashboardError):
    """User input rejected before it reaches the database.

    The message is shown to the user as-is.
    """
    pass


class NotFoundError(FinanceDashboardError):
    """A row does not exist or belongs to another user."""
    pass


class InsightGenerationError(FinanceDashboardError):
    """Insights could not be generated or stored."""
    pass

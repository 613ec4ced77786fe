"""Finance Dashboard package."""

__all__ = [
    "config",
    "data_loader",
    "categorizer",
    "analytics",
    "insights",
    "reports",
    "store",
    "webapp",
    "models",
]

__version__ = "0.1.0"

"""Contract Loader: normalize data contract documents into canonical tables."""

__version__ = "0.1.0"

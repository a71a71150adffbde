"""papers — a personal library of reference documents kept as markdown notes."""

__version__ = "0.4.0"

"""Review board service: registration, token auth and star-rated reviews."""

__version__ = "1.0.0"

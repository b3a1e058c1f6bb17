"""gitpack-schemas: Pydantic schemas shared across gitpack packages."""

__version__ = "0.1.0"

"""gitpack-cli: command-line interface for gitpack."""

__version__ = "0.1.0"

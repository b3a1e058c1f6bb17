"""Allow ``python -m gitpack_cli``."""

from gitpack_cli.main import app

app()

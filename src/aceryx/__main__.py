"""Allow ``python -m aceryx``."""

from aceryx.cli.app import cli

cli()

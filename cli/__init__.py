"""Command line entry point for the serial sensor logger."""

# The Typer application lives in ``cli.app``. It is not re-exported here so
# that ``cli.app`` keeps resolving to the module, which tests patch by path.

__all__ = []

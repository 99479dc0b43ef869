"""Subcommands of the ``producer`` console script."""

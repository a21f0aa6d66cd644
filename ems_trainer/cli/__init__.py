"""Command-line interface."""

from ems_trainer.cli.commands import app

__all__ = ["app"]

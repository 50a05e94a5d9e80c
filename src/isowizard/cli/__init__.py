"""
IsoWizard Command Line Interface.
"""

from isowizard.cli.main import cli, main

__all__ = ["cli", "main"]

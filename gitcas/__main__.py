"""Entry point for running gitcas as a module.

This module allows gitcas to be run as a Python module using the -m flag:
    python -m gitcas

It serves as the main entry point for the gitcas command-line interface.
"""

from . import cli

if __name__ == "__main__":
    cli._main()

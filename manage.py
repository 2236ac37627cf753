#!/usr/bin/env python3
"""
Gameweek Predictor Management CLI

This script provides command-line management functionality for the Gameweek Predictor.
"""

from predictor import create_app
from predictor.cli import cli

app = create_app()


if __name__ == "__main__":
    with app.app_context():
        cli()

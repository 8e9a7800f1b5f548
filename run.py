#!/usr/bin/env python3
"""Run girdeps from a source checkout.

Usage:
    python run.py [--config config.yaml] [--debug] [--trace] [--verbose] COMMAND ...
"""
from girdeps.cli import run

if __name__ == "__main__":
    run()

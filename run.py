#!/usr/bin/env python
"""
Run effwin from project root without installing.
"""
import sys
import os

# Get project root
project_root = os.path.dirname(os.path.abspath(__file__))
src_path = os.path.join(project_root, 'src')

if src_path not in sys.path:
    sys.path.insert(0, src_path)

from effwin.cli.main import cli

if __name__ == "__main__":
    cli()

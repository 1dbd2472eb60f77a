"""Run with: python -m effwin"""
from .cli.main import cli

if __name__ == "__main__":
    cli()

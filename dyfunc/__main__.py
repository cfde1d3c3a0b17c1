"""
Entry point for running dyfunc as a module: python -m dyfunc
"""

from dyfunc.cli.commands import app

if __name__ == "__main__":
    app()

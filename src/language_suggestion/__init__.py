"""
Language Suggestion - Grammar and translation help for Teams and Notes on macOS

A small icon follows the compose box; click it -> pick an action -> suggestion popup.
"""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("language-suggestion")
except PackageNotFoundError:
    __version__ = "0.0.0"  # Not installed


def main():
    """Run the menu bar service."""
    from .app import service_main
    service_main()


__all__ = ["main", "__version__"]

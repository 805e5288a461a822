"""Allow running as: python -m language_suggestion"""

from .cli import cli_main

if __name__ == "__main__":
    cli_main()

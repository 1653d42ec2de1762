"""Allow ``python -m src.cli`` execution."""

from src.cli.index import main

main()

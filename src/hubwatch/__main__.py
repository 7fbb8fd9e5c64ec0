"""Allow ``python -m hubwatch``."""

from hubwatch.cli.main import main

main()

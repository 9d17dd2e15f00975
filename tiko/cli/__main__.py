"""Allow ``python -m tiko.cli`` execution."""

from tiko.cli.maintain import main

main()

"""Allow ``python -m stackdigger.cli`` execution."""

from stackdigger.cli.stacks import main

main()

"""Allow ``python -m arch_testing``."""

from arch_testing.cli.main import main

if __name__ == "__main__":
    main()

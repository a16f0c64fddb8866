"""Entry point for `python -m trep.cli` invocation.

This module enables running the CLI via:
    python -m trep.cli [command] [options]

The help text will correctly show 'trep' as the command name.
"""


def main():
    """Run the CLI with proper program name."""
    from trep.cli.app import app

    app(prog_name="trep")


if __name__ == "__main__":
    main()

"""Entry point for ``python -m btf2json``."""

from btf2json.cli.main import cli

if __name__ == "__main__":
    cli()

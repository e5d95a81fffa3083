"""Entrypoint for `python -m OrmPacker`.

Usage:
  python -m OrmPacker [search_path] [extension] [flags...]
"""
import logging

logger = logging.getLogger("orm_packer")


def _run_cli():
    from .cli import main as cli_main
    logger.debug("Dispatching to CLI entrypoint.")
    cli_main()


if __name__ == "__main__":
    _run_cli()

"""
casbin-store command-line entry point.
"""

import asyncio
import logging
from pathlib import Path

import casbin
import yaml
from sqlalchemy.exc import SQLAlchemyError

from casbin_store.adapter import Adapter
from casbin_store.config import load_config, Config


logger = logging.getLogger(__name__)


def setup_logging(config: Config) -> None:
    """Configure root logging from the config."""
    logging.basicConfig(
        level=getattr(logging, config.logging.level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


async def open_adapter(config: Config) -> Adapter:
    """Open an adapter using the database section of the config."""
    return await Adapter.new_adapter(
        config.database.url,
        db_specified=config.database.db_specified,
        echo=config.database.echo,
    )


async def init_store(config: Config) -> None:
    """Create the database (if requested) and the rule table."""
    adapter = await open_adapter(config)
    await adapter.close()


async def export_policy(config: Config) -> list[str]:
    """Read all stored rules as policy lines."""
    async with await open_adapter(config) as adapter:
        return await adapter.load_lines()


async def import_policy(config: Config, model_path: str, policy_path: str) -> int:
    """
    Replace the stored rules with the rules from a CSV policy file.

    Returns:
        Number of rules written.
    """
    enforcer = casbin.Enforcer(model_path, policy_path)
    model = enforcer.get_model()

    async with await open_adapter(config) as adapter:
        await adapter.save_policy(model)

    return sum(
        len(ast.policy)
        for sec in ("p", "g")
        for ast in model.model.get(sec, {}).values()
    )


def _load_config(args) -> Config | None:
    config_path = Path(args.config)
    if not config_path.exists():
        print(f"Error: Config file not found: {config_path}")
        print("Please create a config.yaml file or specify a different path with -c")
        return None

    try:
        config = load_config(config_path)
    except (ValueError, yaml.YAMLError) as e:
        print(f"Error: Invalid config file {config_path}: {e}")
        return None

    setup_logging(config)
    return config


def cmd_init(args):
    """Create the database and rule table."""
    config = _load_config(args)
    if config is None:
        return 1

    try:
        asyncio.run(init_store(config))
    except SQLAlchemyError as e:
        logger.error(f"Failed to initialize policy store: {e}")
        print(f"Error: {e}")
        return 1

    print("Policy store initialized")
    return 0


def cmd_export(args):
    """Print every stored rule as a policy line."""
    config = _load_config(args)
    if config is None:
        return 1

    try:
        lines = asyncio.run(export_policy(config))
    except SQLAlchemyError as e:
        logger.error(f"Failed to export policy: {e}")
        print(f"Error: {e}")
        return 1

    for line in lines:
        print(line)
    return 0


def cmd_import(args):
    """Replace the stored rules with a CSV policy file."""
    for path in (args.model, args.policy):
        if not Path(path).exists():
            print(f"Error: File not found: {path}")
            return 1

    config = _load_config(args)
    if config is None:
        return 1

    try:
        count = asyncio.run(import_policy(config, args.model, args.policy))
    except (SQLAlchemyError, ValueError) as e:
        logger.error(f"Failed to import policy: {e}")
        print(f"Error: {e}")
        return 1

    print(f"Imported {count} policy rules")
    return 0


def main():
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Casbin policy storage in a relational database",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-c", "--config",
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("init", help="Create the database and rule table")
    subparsers.add_parser("export", help="Print stored rules as policy lines")

    import_parser = subparsers.add_parser("import", help="Replace stored rules with a CSV policy file")
    import_parser.add_argument("--model", required=True, help="Path to the casbin model file")
    import_parser.add_argument("--policy", required=True, help="Path to the CSV policy file")

    args = parser.parse_args()

    if args.command == "init":
        return cmd_init(args)
    elif args.command == "export":
        return cmd_export(args)
    elif args.command == "import":
        return cmd_import(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    exit(main())

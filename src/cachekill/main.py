"""Main entry point for cachekill."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.prompt import Confirm

from .cache_entry import LanguageFilter
from .config import CONFIG_FILENAME, CacheKillConfig
from .errors import BackupError, CacheKillError, ConfigError, NoBackupFoundError
from .output import OutputFormatter
from .pipeline import CacheKillRunner, setup_logging

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_PARTIAL = 2
EXIT_NO_BACKUP = 3


def _language(value: str) -> LanguageFilter:
    try:
        return LanguageFilter.parse(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def _filter_parser() -> argparse.ArgumentParser:
    """Flags shared by the commands that discover and plan caches."""
    parser = argparse.ArgumentParser(add_help=False)

    parser.add_argument("--lang", type=_language, default=None, help="Ecosystem filter (auto, js, py, rust, java, ml)")
    parser.add_argument("--paths", nargs="+", default=None, help="Only consider paths matching these patterns")
    parser.add_argument("--exclude", nargs="+", default=None, help="Additional exclude patterns")
    parser.add_argument("--stale-days", type=int, default=None, help="Days without use before a cache is stale")
    parser.add_argument(
        "--safe-delete",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Move caches to a backup instead of deleting them",
    )
    parser.add_argument("--backup-dir", type=Path, default=None, help="Backup root directory")
    parser.add_argument("--all", action="store_const", const=True, dest="all_caches", help="Include generic caches")
    parser.add_argument(
        "--no-global",
        action="store_const",
        const=False,
        dest="include_global",
        help="Skip caches in the home directory",
    )
    parser.add_argument("--npx", action="store_const", const=True, help="Include the npx package cache")
    parser.add_argument("--js-pm", action="store_const", const=True, dest="js_pm", help="Include npm/pnpm/yarn stores")
    parser.add_argument("--hf", action="store_const", const=True, dest="huggingface", help="Include HuggingFace")
    parser.add_argument("--model", default=None, dest="hf_model", help="Only this HuggingFace model (org/name)")
    parser.add_argument("--torch", action="store_const", const=True, help="Include the PyTorch cache")

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed arguments.

    """
    parser = argparse.ArgumentParser(
        prog="cachekill",
        description="Find, measure and safely clean development caches",
    )

    parser.add_argument("--config", "-c", type=Path, default=None, help="Path to configuration file")
    parser.add_argument("--json", action="store_true", help="Print results as JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")
    filters = _filter_parser()

    subparsers.add_parser("list", parents=[filters], help="List cache entries and their planned action")
    subparsers.add_parser("dry-run", parents=[filters], help="Show what a cleanup would do")

    clean_parser = subparsers.add_parser("clean", parents=[filters], help="Back up or delete caches")
    clean_parser.add_argument("--force", "-y", action="store_true", help="Do not ask for confirmation")

    restore_parser = subparsers.add_parser("restore", help="Restore a backup into the project")
    restore_parser.add_argument("--dir", "-d", type=Path, default=None, help="Backup directory (default: latest)")
    restore_parser.add_argument("--backup-dir", type=Path, default=None, help="Backup root directory")

    backups_parser = subparsers.add_parser("backups", help="List or prune backups")
    backups_parser.add_argument("--prune", action="store_true", help="Remove expired backups")
    backups_parser.add_argument("--days", type=int, default=None, help="Retention in days for --prune")
    backups_parser.add_argument("--backup-dir", type=Path, default=None, help="Backup root directory")

    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_parser.add_argument("--init", action="store_true", help="Create default configuration file")
    config_parser.add_argument("--show", action="store_true", help="Show current configuration")

    return parser.parse_args(argv)


def apply_overrides(config: CacheKillConfig, args: argparse.Namespace) -> CacheKillConfig:
    """Layer command line flags over the loaded configuration."""
    exclude = getattr(args, "exclude", None)
    paths = getattr(args, "paths", None)

    return config.with_overrides(
        lang=getattr(args, "lang", None),
        include_paths=tuple(paths) if paths else None,
        exclude_paths=(*config.exclude_paths, *exclude) if exclude else None,
        stale_days=getattr(args, "stale_days", None),
        safe_delete=getattr(args, "safe_delete", None),
        backup_dir=getattr(args, "backup_dir", None),
        all_caches=getattr(args, "all_caches", None),
        include_global=getattr(args, "include_global", None),
        npx=getattr(args, "npx", None),
        js_pm=getattr(args, "js_pm", None),
        huggingface=getattr(args, "huggingface", None),
        hf_model=getattr(args, "hf_model", None),
        torch=getattr(args, "torch", None),
        log_level="DEBUG" if args.verbose else None,
    )


def cmd_list(runner: CacheKillRunner, output: OutputFormatter) -> int:
    plan = runner.plan()
    output.print_entries(plan.entries, plan.summary)
    return EXIT_OK


def cmd_dry_run(runner: CacheKillRunner, output: OutputFormatter) -> int:
    output.print_dry_run(runner.dry_run())
    return EXIT_OK


def cmd_clean(runner: CacheKillRunner, output: OutputFormatter, args: argparse.Namespace) -> int:
    """Execute clean command.

    Returns:
        Exit code: 2 if any entry failed.

    """
    plan = runner.plan()

    if not plan.entries:
        output.print_message("No cache entries found to clean")
        return EXIT_OK

    if not output.json_output:
        output.print_summary(plan.summary)

    if not args.force:
        action = "SAFE DELETE (move to backup)" if runner.config.safe_delete else "DELETE"
        if not Confirm.ask(f"Proceed with {action}?", console=output.console, default=False):
            output.print_message("Operation cancelled", style="yellow")
            return EXIT_OK

    result = runner.clean(plan)
    output.print_clean(result)

    return EXIT_PARTIAL if result.failure_count else EXIT_OK


def cmd_restore(runner: CacheKillRunner, output: OutputFormatter, args: argparse.Namespace) -> int:
    """Execute restore command.

    Returns:
        Exit code: 3 if there is no backup, 2 if any item failed.

    """
    try:
        result = runner.restore(args.dir)
    except NoBackupFoundError as e:
        output.print_message(str(e), style="red")
        return EXIT_NO_BACKUP

    output.print_restore(result)
    return EXIT_PARTIAL if result.failed else EXIT_OK


def cmd_backups(runner: CacheKillRunner, output: OutputFormatter, args: argparse.Namespace) -> int:
    if args.prune:
        result = runner.prune_backups(args.days)
        output.print_prune(result)
        return EXIT_PARTIAL if result.failed else EXIT_OK

    output.print_backups(runner.list_backups())
    return EXIT_OK


def cmd_config(config: CacheKillConfig, output: OutputFormatter, args: argparse.Namespace) -> int:
    """Execute config command.

    Returns:
        Exit code.

    """
    if args.init:
        config_path = args.config or config.project_root / CONFIG_FILENAME
        if config_path.exists():
            output.print_message(f"Config already exists: {config_path}", style="yellow")
            return EXIT_ERROR
        config.save(config_path)
        output.print_message(f"Created config: {config_path}")
        return EXIT_OK

    if args.show:
        output.print_config(config)
        return EXIT_OK

    output.print_message("Use --init or --show", style="yellow")
    return EXIT_ERROR


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Exit code.

    """
    args = parse_args(argv)
    output = OutputFormatter(Console(), json_output=args.json)
    err_console = Console(stderr=True)

    if args.command is None:
        err_console.print("[yellow]Use one of: list, dry-run, clean, restore, backups, config[/yellow]")
        return EXIT_ERROR

    try:
        config = apply_overrides(CacheKillConfig.load(args.config, Path.cwd()), args)
        logger = setup_logging(config, err_console)
    except (ConfigError, ValueError) as e:
        err_console.print(f"[red]Configuration error: {e}[/red]")
        return EXIT_ERROR

    if args.command == "config":
        return cmd_config(config, output, args)

    runner = CacheKillRunner(config, logger)

    try:
        if args.command == "list":
            return cmd_list(runner, output)
        elif args.command == "dry-run":
            return cmd_dry_run(runner, output)
        elif args.command == "clean":
            return cmd_clean(runner, output, args)
        elif args.command == "restore":
            return cmd_restore(runner, output, args)
        elif args.command == "backups":
            return cmd_backups(runner, output, args)
    except BackupError as e:
        logging.getLogger(__name__).error("Backup failed: %s", e)
        return EXIT_ERROR
    except CacheKillError as e:
        logging.getLogger(__name__).error("%s", e)
        return EXIT_ERROR

    err_console.print(f"Unknown command: {args.command}")
    return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())

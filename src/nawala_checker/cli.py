"""
Command-line interface for the Nawala checker system.

This module provides the main CLI entry point with commands for:
- serve: Run the REST API, the Telegram bot and the hourly scheduler
- check: Check one or more domains against the oracle right now
- run-cycle: Run a single reconciliation cycle and exit
- add / list / toggle / remove / history / stats / reports: Registry and
  history management against the local state file
- config: Configuration management
- self-test: Configuration and connectivity checks

Configuration comes from a JSON file (``--config``) or from the
environment and an optional ``.env`` file.
"""

import argparse
import asyncio
import dataclasses
import json
import sys
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

from . import __version__
from .config import (
    SystemConfig,
    load_config_from_env,
    load_config_from_file,
    save_config_to_file,
)
from .enums import CycleStatus
from .exceptions import NawalaCheckerError
from .i18n import get_message
from .scheduler import CronParseError
from .self_test import run_self_test, validate_config
from .service import Services, build_services, run_service


DEFAULT_CONFIG_PATH = Path.home() / ".nawala_checker" / "config.json"


def resolve_config(args: argparse.Namespace) -> Optional[SystemConfig]:
    """
    Build the effective configuration for a command.

    ``--config`` wins over the environment; ``--dry-run`` and
    ``--language`` override whatever was loaded.
    """
    if getattr(args, "config", None):
        config = load_config_from_file(Path(args.config))
        if config is None:
            print(f"Error: Could not load config from {args.config}", file=sys.stderr)
            return None
    else:
        env_file = Path(args.env_file) if getattr(args, "env_file", None) else None
        config = load_config_from_env(env_file)

    if getattr(args, "dry_run", False):
        config = dataclasses.replace(config, simulation_mode=True)
    if getattr(args, "language", None):
        config = dataclasses.replace(config, language=args.language)
    return config


def _emit(args: argparse.Namespace, data: Any, text: str) -> None:
    if getattr(args, "json", False):
        print(json.dumps(data, indent=2, ensure_ascii=False))
    else:
        print(text)


def _with_services(
    args: argparse.Namespace,
    action: Callable[[Services], Awaitable[int]],
) -> int:
    """Build the services, run ``action`` and always release them."""
    config = resolve_config(args)
    if config is None:
        return 1

    async def runner() -> int:
        services = build_services(config)
        try:
            return await action(services)
        finally:
            await services.aclose()

    try:
        return asyncio.run(runner())
    except NawalaCheckerError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    except CronParseError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def _verdict(blocked: Optional[bool], language: str) -> str:
    if blocked is None:
        return get_message("label.unknown", language)
    return get_message("label.blocked" if blocked else "label.unblocked", language)


def cmd_serve(args: argparse.Namespace) -> int:
    """Handle the 'serve' command."""
    config = resolve_config(args)
    if config is None:
        return 1

    if not args.skip_self_test:
        result = asyncio.run(run_self_test(config, print_output=True, require_telegram=False))
        if not result.success:
            print("Self-test failed, not starting. Use --skip-self-test to override.", file=sys.stderr)
            return 1

    try:
        services = build_services(config)
    except (NawalaCheckerError, CronParseError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        asyncio.run(run_service(services))
    except KeyboardInterrupt:
        pass
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    """Handle the 'check' command."""

    async def action(services: Services) -> int:
        summary = await services.engine.check_domains(args.domains)
        language = services.config.language
        lines = [
            f"{name}: {_verdict(name in summary.summary.blocked_domains, language)}"
            for name in (*summary.summary.blocked_domains, *summary.summary.unblocked_domains)
        ]
        _emit(args, summary.to_dict(), "\n".join(lines))
        return 0

    return _with_services(args, action)


def cmd_run_cycle(args: argparse.Namespace) -> int:
    """Handle the 'run-cycle' command."""

    async def action(services: Services) -> int:
        outcome = await services.engine.run_cycle()
        data = {
            "status": outcome.status.value,
            "startedAt": outcome.started_at,
            "finishedAt": outcome.finished_at,
            "failedState": outcome.failed_state.value if outcome.failed_state else None,
            "summary": outcome.summary.to_dict() if outcome.summary else None,
            "error": outcome.error,
        }
        text = f"Cycle {outcome.status.value}"
        if outcome.summary and outcome.summary.summary:
            s = outcome.summary.summary
            text += f": {s.total_checked} checked, {s.blocked} blocked, {s.unblocked} unblocked"
        elif outcome.error:
            text += f" in {data['failedState']}: {outcome.error}"
        _emit(args, data, text)
        return 1 if outcome.status == CycleStatus.FAILED else 0

    return _with_services(args, action)


def cmd_add(args: argparse.Namespace) -> int:
    """Handle the 'add' command."""

    async def action(services: Services) -> int:
        domain = await services.registry.add(args.name, args.description, args.frequency)
        _emit(args, domain.to_dict(), f"Added {domain.name} ({domain.check_frequency.value})")
        return 0

    return _with_services(args, action)


def cmd_list(args: argparse.Namespace) -> int:
    """Handle the 'list' command."""

    async def action(services: Services) -> int:
        domains = await services.registry.list(active_only=args.active)
        language = services.config.language
        lines = [
            f"{d.name}\t{'active' if d.is_active else 'inactive'}\t"
            f"{d.check_frequency.value}\t{_verdict(d.last_status.blocked, language)}"
            for d in domains
        ]
        _emit(
            args,
            [d.to_dict() for d in domains],
            "\n".join(lines) if lines else get_message("bot.domains_empty", language),
        )
        return 0

    return _with_services(args, action)


def cmd_toggle(args: argparse.Namespace) -> int:
    """Handle the 'toggle' command."""

    async def action(services: Services) -> int:
        domain = await services.registry.toggle_active(args.name)
        state = "active" if domain.is_active else "inactive"
        _emit(args, domain.to_dict(), f"{domain.name} is now {state}")
        return 0

    return _with_services(args, action)


def cmd_remove(args: argparse.Namespace) -> int:
    """Handle the 'remove' command."""

    async def action(services: Services) -> int:
        domain = await services.registry.remove(args.name)
        _emit(args, domain.to_dict(), f"Removed {domain.name}")
        return 0

    return _with_services(args, action)


def cmd_history(args: argparse.Namespace) -> int:
    """Handle the 'history' command."""

    async def action(services: Services) -> int:
        name = services.registry.validator.normalize(args.name)
        results = await services.history.recent(name, args.limit)
        language = services.config.language
        lines = [f"{r.timestamp}\t{_verdict(r.blocked, language)}" for r in results]
        _emit(args, [r.to_dict() for r in results], "\n".join(lines) or "No history")
        return 0

    return _with_services(args, action)


def cmd_stats(args: argparse.Namespace) -> int:
    """Handle the 'stats' command."""

    async def action(services: Services) -> int:
        stats = await services.registry.statistics()
        text = "\n".join(f"{key}: {value}" for key, value in stats.to_dict().items())
        _emit(args, stats.to_dict(), text)
        return 0

    return _with_services(args, action)


def cmd_reports(args: argparse.Namespace) -> int:
    """Handle the 'reports' command."""

    async def action(services: Services) -> int:
        reports = await services.history.recent_reports(args.limit)
        lines = [
            f"{r.timestamp}\t{r.summary.total_checked} checked\t"
            f"{r.summary.blocked} blocked\t{r.summary.unblocked} unblocked"
            for r in reports
        ]
        _emit(
            args,
            [r.to_dict() for r in reports],
            "\n".join(lines) or get_message("bot.no_reports", services.config.language),
        )
        return 0

    return _with_services(args, action)


def cmd_self_test(args: argparse.Namespace) -> int:
    """Handle the 'self-test' command."""
    config = resolve_config(args)
    if config is None:
        return 1

    result = asyncio.run(run_self_test(
        config=config,
        print_output=True,
        require_telegram=not args.no_telegram,
    ))
    return 0 if result.success else 1


def cmd_config(args: argparse.Namespace) -> int:
    """Handle the 'config' command."""
    config_path = Path(args.path) if args.path else DEFAULT_CONFIG_PATH

    if args.action == "show":
        config = load_config_from_file(config_path)
        if config is None:
            print(f"No configuration found at: {config_path}")
            print("Use 'config init' to create a default configuration.")
            return 1

        print(f"Configuration from: {config_path}")
        print(f"  Language: {config.language}")
        print(f"  Simulation mode: {config.simulation_mode}")
        print(f"  Oracle: {config.oracle.base_url}")
        print(f"  Telegram: {'configured' if config.telegram else 'not configured'}")
        print(f"  API: {config.api.host}:{config.api.port}")
        print(f"  Schedule: {config.schedule.cron_expression} ({config.schedule.timezone})")
        print(f"  State file: {config.persistence.state_file_path}")
        print(f"  Log level: {config.logging.level}")
        return 0

    elif args.action == "init":
        if config_path.exists() and not args.force:
            print(f"Configuration already exists at: {config_path}")
            print("Use --force to overwrite.")
            return 1

        config = load_config_from_env(Path(args.env_file) if args.env_file else None)
        if args.language:
            config = dataclasses.replace(config, language=args.language)
        if save_config_to_file(config, config_path):
            print(f"Configuration created at: {config_path}")
            return 0
        return 1

    elif args.action == "validate":
        config = load_config_from_file(config_path)
        if config is None:
            print(f"Error: Could not load config from {config_path}", file=sys.stderr)
            return 1

        validation = validate_config(config, require_telegram=False)
        for warning in validation.warnings:
            print(f"Warning: {warning}")
        if not validation.valid:
            for error in validation.errors:
                print(f"Error: {error}", file=sys.stderr)
            return 1

        print(f"Configuration at {config_path} is valid.")
        return 0

    return 1


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config", "-c",
        help="Path to configuration file (default: environment and .env)",
    )
    common.add_argument(
        "--env-file",
        help="Path to a .env file",
    )
    common.add_argument(
        "--dry-run",
        action="store_true",
        help="Simulation mode - no real network requests",
    )
    common.add_argument(
        "--language", "-l",
        choices=["en", "id"],
        help="Message language (default: from configuration)",
    )
    common.add_argument(
        "--json",
        action="store_true",
        help="Print results as JSON",
    )

    parser = argparse.ArgumentParser(
        prog="nawala-checker",
        description="Monitor domains for Nawala DNS blocking",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser(
        "serve",
        parents=[common],
        help="Run the API, the Telegram bot and the scheduler",
    )
    serve_parser.add_argument(
        "--skip-self-test",
        action="store_true",
        help="Start even if the startup self-test fails",
    )
    serve_parser.set_defaults(func=cmd_serve)

    check_parser = subparsers.add_parser(
        "check",
        parents=[common],
        help="Check domains against the blocking oracle",
    )
    check_parser.add_argument(
        "domains",
        nargs="+",
        help="Domains to check (e.g., example.com)",
    )
    check_parser.set_defaults(func=cmd_check)

    cycle_parser = subparsers.add_parser(
        "run-cycle",
        parents=[common],
        help="Run one reconciliation cycle over all active hourly domains",
    )
    cycle_parser.set_defaults(func=cmd_run_cycle)

    add_parser = subparsers.add_parser(
        "add",
        parents=[common],
        help="Add a domain to the registry",
    )
    add_parser.add_argument("name", help="Domain name")
    add_parser.add_argument("--description", "-d", default="", help="Free-text description")
    add_parser.add_argument(
        "--frequency", "-f",
        choices=["hourly", "daily", "weekly"],
        default="hourly",
        help="Check frequency (default: hourly)",
    )
    add_parser.set_defaults(func=cmd_add)

    list_parser = subparsers.add_parser(
        "list",
        parents=[common],
        help="List registered domains",
    )
    list_parser.add_argument("--active", action="store_true", help="Only active domains")
    list_parser.set_defaults(func=cmd_list)

    toggle_parser = subparsers.add_parser(
        "toggle",
        parents=[common],
        help="Flip a domain between active and inactive",
    )
    toggle_parser.add_argument("name", help="Domain name")
    toggle_parser.set_defaults(func=cmd_toggle)

    remove_parser = subparsers.add_parser(
        "remove",
        parents=[common],
        help="Remove a domain and its check history",
    )
    remove_parser.add_argument("name", help="Domain name")
    remove_parser.set_defaults(func=cmd_remove)

    history_parser = subparsers.add_parser(
        "history",
        parents=[common],
        help="Show a domain's check history",
    )
    history_parser.add_argument("name", help="Domain name")
    history_parser.add_argument("--limit", "-n", type=int, default=50, help="Number of entries")
    history_parser.set_defaults(func=cmd_history)

    stats_parser = subparsers.add_parser(
        "stats",
        parents=[common],
        help="Show registry statistics",
    )
    stats_parser.set_defaults(func=cmd_stats)

    reports_parser = subparsers.add_parser(
        "reports",
        parents=[common],
        help="Show recent periodic reports",
    )
    reports_parser.add_argument("--limit", "-n", type=int, default=10, help="Number of reports")
    reports_parser.set_defaults(func=cmd_reports)

    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
    )
    config_parser.add_argument(
        "action",
        choices=["show", "init", "validate"],
        help="Configuration action",
    )
    config_parser.add_argument(
        "--path", "-p",
        help="Path to configuration file",
    )
    config_parser.add_argument(
        "--env-file",
        help="Seed 'init' from this .env file",
    )
    config_parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Force overwrite existing configuration",
    )
    config_parser.add_argument(
        "--language", "-l",
        choices=["en", "id"],
        help="Default language for new configuration",
    )
    config_parser.set_defaults(func=cmd_config)

    self_test_parser = subparsers.add_parser(
        "self-test",
        parents=[common],
        help="Validate configuration and test connectivity",
    )
    self_test_parser.add_argument(
        "--no-telegram",
        action="store_true",
        help="Do not require Telegram settings",
    )
    self_test_parser.set_defaults(func=cmd_self_test)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())

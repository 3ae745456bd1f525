"""
Command-line interface for the DoH domain checker.

This module provides the main CLI entry point with commands for:
- check: Check a base name under one or more TLDs
- config: Configuration management
- self-test: Probe every configured DoH provider
"""

import argparse
import asyncio
import dataclasses
import json
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .audit_logger import AuditLogger
from .batch_coordinator import BatchCoordinator
from .config import (
    CacheConfig,
    HeuristicsConfig,
    LoggingConfig,
    ProviderConfig,
    RetryConfig,
    SystemConfig,
)
from .exceptions import DohCheckerError, ValidationError
from .models import GroupedResults, ProgressState
from .orchestrator import QueryOrchestrator
from .result_cache import ResultCache
from .self_test import SelfTest, run_self_test
from .tld_registry import COUNTRY_TLDS, POPULAR_TLDS

DEFAULT_CONFIG_PATH = Path.home() / ".doh_checker" / "config.json"

# JSON sections mapped onto their SystemConfig sub-configurations
SECTIONS = {
    "retry": RetryConfig,
    "heuristics": HeuristicsConfig,
    "cache": CacheConfig,
    "logging": LoggingConfig,
}


def create_default_config(simulation_mode: bool = False) -> SystemConfig:
    """
    Create a default system configuration.

    Args:
        simulation_mode: Enable simulation mode (no real network requests)

    Returns:
        SystemConfig with the default providers and thresholds
    """
    return SystemConfig(simulation_mode=simulation_mode)


def _section(cls, data: dict, key: str):
    """Build a config dataclass from ``data[key]``, ignoring unknown keys."""
    values = data.get(key, {})
    return cls(**{f.name: values[f.name] for f in dataclasses.fields(cls) if f.name in values})


def load_config_from_file(config_path: Path) -> Optional[SystemConfig]:
    """
    Load configuration from a JSON file.

    Missing sections and keys keep their defaults; an empty provider
    list falls back to the default providers.

    Args:
        config_path: Path to the configuration file

    Returns:
        SystemConfig if successful, None otherwise
    """
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
    except (OSError, json.JSONDecodeError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return None

    try:
        providers = [
            ProviderConfig(
                name=p["name"],
                base_url=p["base_url"],
                headers=dict(p.get("headers", {"Accept": "application/dns-json"})),
                method=p.get("method", "GET"),
            )
            for p in data.get("providers", [])
        ]
        top_level = {
            f.name: data[f.name]
            for f in dataclasses.fields(SystemConfig)
            if f.name in data and f.name not in SECTIONS and f.name != "providers"
        }
        sections = {name: _section(cls, data, name) for name, cls in SECTIONS.items()}
    except (AttributeError, KeyError, TypeError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return None

    config = SystemConfig(**sections, **top_level)
    if providers:
        config.providers = providers
    return config


def save_config_to_file(config: SystemConfig, config_path: Path) -> bool:
    """
    Save configuration to a JSON file.

    Args:
        config: SystemConfig to save
        config_path: Path to save the configuration

    Returns:
        True if successful, False otherwise
    """
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(dataclasses.asdict(config), f, indent=2, ensure_ascii=False)
        return True

    except (OSError, TypeError) as e:
        print(f"Error saving config: {e}", file=sys.stderr)
        return False


def _load_or_default(config_arg: Optional[str], dry_run: bool = False) -> Optional[SystemConfig]:
    if config_arg:
        config = load_config_from_file(Path(config_arg))
        if config is None:
            print(f"Error: Could not load config from {config_arg}", file=sys.stderr)
            return None
        if dry_run:
            config = dataclasses.replace(config, simulation_mode=True)
        return config
    return create_default_config(simulation_mode=dry_run)


def print_grouped_results(grouped: GroupedResults, verbose: bool = False) -> None:
    """Print grouped results as human-readable text."""
    sections = (
        ("Available", grouped.available),
        ("Registered", grouped.registered),
        ("Premium", grouped.premium),
        ("Other", grouped.other),
    )
    for title, results in sections:
        if not results:
            continue
        print(f"\n{title} ({len(results)}):")
        for result in results:
            line = f"  {result.domain:<32} {result.status.value:<14} {result.link}"
            if result.error_category:
                line += f"  [{result.error_category.value}]"
            print(line)
            if verbose:
                for item in result.evidence:
                    print(f"      - {item}")


async def run_check(
    base_name: str,
    tlds: list[str],
    config: SystemConfig,
    as_json: bool = False,
    verbose: bool = False,
) -> int:
    """
    Check a base name under every TLD.

    Returns:
        Exit code (0 if any domain is available, 1 otherwise)
    """
    if config.simulation_mode and not as_json:
        print("Simulation mode: no network requests are made")

    logger = None
    if verbose:
        logger = AuditLogger.from_config(
            output_format=config.logging.output_format,
            level=config.logging.level,
        )

    def on_progress(state: ProgressState) -> None:
        if verbose:
            print(
                f"[{state.percentage:5.1f}%] {state.stage.value:<15} "
                f"{state.domains_processed}/{state.total_domains} "
                f"{state.detailed_message or ''}",
                file=sys.stderr,
            )

    async with QueryOrchestrator(config=config, logger=logger) as orchestrator:
        coordinator = BatchCoordinator(
            orchestrator,
            cache=ResultCache(config.cache.ttl_seconds),
            logger=logger,
        )
        grouped = await coordinator.run_batch(base_name, tlds, on_progress=on_progress)

    if as_json:
        print(json.dumps(grouped.to_dict(), indent=2, ensure_ascii=False))
    else:
        print_grouped_results(grouped, verbose=verbose)
        print(f"\nSummary: {len(grouped.available)}/{len(grouped.all_results)} domain(s) available")

    return 0 if grouped.available else 1


def cmd_check(args: argparse.Namespace) -> int:
    """Handle the 'check' command."""
    config = _load_or_default(args.config, dry_run=args.dry_run)
    if config is None:
        return 1

    tlds = list(args.tld or [])
    if args.popular:
        tlds.extend(POPULAR_TLDS)
    if args.countries:
        tlds.extend(COUNTRY_TLDS)

    try:
        return asyncio.run(run_check(
            base_name=args.name,
            tlds=tlds or [".com"],
            config=config,
            as_json=args.json,
            verbose=args.verbose,
        ))
    except ValidationError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 2
    except DohCheckerError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1


def cmd_self_test(args: argparse.Namespace) -> int:
    """Handle the 'self-test' command."""
    config = _load_or_default(args.config)
    if config is None:
        return 1

    result = asyncio.run(run_self_test(config=config, print_output=True))
    return 0 if result.success else 1


def _config_show(config_path: Path, args: argparse.Namespace) -> int:
    config = load_config_from_file(config_path)
    if config is None:
        print(f"Nothing to show: {config_path} does not exist or is unreadable")
        print("Run 'doh-checker config init' to write the defaults there.")
        return 1

    rows = (
        ("Simulation mode", config.simulation_mode),
        ("Providers", ", ".join(p.name for p in config.providers)),
        ("Primary providers", config.primary_provider_count),
        ("Timeout", f"{config.timeout_ms}ms"),
        ("Retries", f"{config.retry.max_retries} (backoff {config.retry.backoff_seconds}s)"),
        ("Cache TTL", f"{config.cache.ttl_seconds}s"),
        ("Log level", config.logging.level),
    )
    print(f"{config_path}:")
    for label, value in rows:
        print(f"  {label}: {value}")
    return 0


def _config_init(config_path: Path, args: argparse.Namespace) -> int:
    if config_path.exists() and not args.force:
        print(f"Refusing to overwrite {config_path} (pass --force to replace it)")
        return 1

    if not save_config_to_file(create_default_config(), config_path):
        return 1
    print(f"Wrote default configuration to {config_path}")
    return 0


def _config_validate(config_path: Path, args: argparse.Namespace) -> int:
    config = load_config_from_file(config_path)
    if config is None:
        print(f"Error: Could not load config from {config_path}", file=sys.stderr)
        return 1

    validation = SelfTest(config).validate_config()
    for warning in validation.warnings:
        print(f"Warning: {warning}")
    for error in validation.errors:
        print(f"Error: {error}", file=sys.stderr)
    if validation.valid:
        print(f"{config_path}: OK")
    return 0 if validation.valid else 1


CONFIG_ACTIONS = {
    "show": _config_show,
    "init": _config_init,
    "validate": _config_validate,
}


def cmd_config(args: argparse.Namespace) -> int:
    """Handle the 'config' command."""
    config_path = Path(args.path) if args.path else DEFAULT_CONFIG_PATH
    return CONFIG_ACTIONS[args.action](config_path, args)


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="doh-checker",
        description="Infer domain registration status from DNS-over-HTTPS answers",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # 'check' command
    check_parser = subparsers.add_parser(
        "check",
        help="Check a base name under one or more TLDs",
    )
    check_parser.add_argument(
        "name",
        help="Base name without TLD (e.g., example)",
    )
    check_parser.add_argument(
        "--tld", "-t",
        action="append",
        help="TLD to check, repeatable (default: .com)",
    )
    check_parser.add_argument(
        "--popular",
        action="store_true",
        help="Also check every popular generic TLD",
    )
    check_parser.add_argument(
        "--countries",
        action="store_true",
        help="Also check every country-code TLD",
    )
    check_parser.add_argument(
        "--json",
        action="store_true",
        help="Print grouped results as JSON",
    )
    check_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Simulation mode - no real network requests",
    )
    check_parser.add_argument(
        "--config", "-c",
        help="Path to configuration file",
    )
    check_parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Print progress, logs and evidence",
    )
    check_parser.set_defaults(func=cmd_check)

    # 'config' command
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
    )
    config_parser.add_argument(
        "action",
        choices=sorted(CONFIG_ACTIONS),
        help="Configuration action",
    )
    config_parser.add_argument(
        "--path", "-p",
        help="Path to configuration file",
    )
    config_parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Force overwrite existing configuration",
    )
    config_parser.set_defaults(func=cmd_config)

    # 'self-test' command
    self_test_parser = subparsers.add_parser(
        "self-test",
        help="Probe every configured DoH provider",
    )
    self_test_parser.add_argument(
        "--config", "-c",
        help="Path to configuration file",
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

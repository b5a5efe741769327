from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Dict, Iterator, Optional, Sequence

from .config import BackupConfig, ConfigurationError, load_config
from .logger import clean_log, configure_logging
from .mutex import BACKUP_WORKER, AlreadyRunning, ExclusiveExecutionGate
from .orchestrator import BackupOrchestrator, BackupResult
from .providers import create_providers
from .scheduler import BackupScheduler

DEFAULT_CONFIG_PATH = "/etc/library-backup/config.yaml"

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create index and album backups of the photo library.")
    parser.add_argument(
        "--config",
        default=os.getenv("LIBRARY_BACKUP_CONFIG", DEFAULT_CONFIG_PATH),
        help="Path to configuration YAML file.",
    )
    parser.add_argument(
        "--index",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Create an index backup (defaults to the configured value).",
    )
    parser.add_argument(
        "--albums",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Export albums to files (defaults to the configured value).",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite existing backup files even if unchanged.",
    )
    parser.add_argument(
        "--retain",
        type=int,
        default=None,
        help="Number of index backups to keep (defaults to the configured value).",
    )
    parser.add_argument(
        "--schedule",
        action="store_true",
        help="Run continuously using the configured cron schedule.",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL"),
        help="Log level (defaults to the configured value, INFO otherwise).",
    )
    return parser.parse_args(argv)


def build_orchestrator(config: BackupConfig, gate: ExclusiveExecutionGate = BACKUP_WORKER) -> BackupOrchestrator:
    index_provider, album_provider = create_providers(config)
    return BackupOrchestrator(
        config=config,
        index_provider=index_provider,
        album_provider=album_provider,
        gate=gate,
    )


def load_configuration(path: Path, overrides: Dict[str, object]) -> BackupConfig:
    config = load_config(path)
    return config.model_copy(update=overrides)


def command_line_overrides(args: argparse.Namespace) -> Dict[str, object]:
    return {
        key: value
        for key, value in (("index", args.index), ("albums", args.albums), ("retain", args.retain))
        if value is not None
    }


@contextmanager
def signal_handlers(on_signal: Callable[[int], None]) -> Iterator[None]:
    """Route SIGINT/SIGTERM to ``on_signal`` once, then restore the previous handlers."""
    previous: Dict[int, object] = {}

    def _handle_signal(signum: int, _frame: Optional[object]) -> None:
        # A second signal goes to the previous handler.
        signal.signal(signum, previous[signum])
        on_signal(signum)

    for signum in (signal.SIGTERM, signal.SIGINT):
        handler = signal.signal(signum, _handle_signal)
        previous[signum] = handler if handler is not None else signal.SIG_DFL
    try:
        yield
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)


def report(result: BackupResult) -> int:
    if result.success:
        if result.errors:
            logging.warning("Backup completed with errors: %s", "; ".join(result.errors))
        return EXIT_OK
    logging.error("Backup %s: %s", result.status, result.error)
    return EXIT_FAILED


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level or "INFO")

    if args.retain is not None and args.retain < 0:
        logging.error("Configuration error: --retain cannot be negative")
        return EXIT_CONFIG

    config_path = Path(args.config).expanduser()
    overrides = command_line_overrides(args)
    try:
        config = load_configuration(config_path, overrides)
        if not args.log_level:
            configure_logging(config.logging.level)
        orchestrator = build_orchestrator(config)
    except ConfigurationError as exc:
        logging.error("Configuration error: %s", exc)
        return EXIT_CONFIG

    if args.schedule:
        return run_with_scheduler(config_path, config, orchestrator, overrides)

    def _cancel(signum: int) -> None:
        logging.info("Received signal %s; canceling backup", signum)
        orchestrator.cancel()

    logging.info("Using configuration %s", clean_log(config_path))
    with signal_handlers(_cancel):
        result = orchestrator.run(config.index, config.albums, args.force, config.retain)
    return report(result)


def run_with_scheduler(
    config_path: Path,
    initial_config: BackupConfig,
    orchestrator: BackupOrchestrator,
    overrides: Dict[str, object],
) -> int:
    if not initial_config.scheduler:
        logging.error("Configuration error: --schedule requires a 'scheduler' block")
        return EXIT_CONFIG

    def _trigger() -> Optional[BackupResult]:
        try:
            config = load_configuration(config_path, overrides)
            index_provider, album_provider = create_providers(config)
        except ConfigurationError as exc:
            logging.error("Failed to reload configuration: %s; continuing with previous settings", exc)
        else:
            if not config.scheduler:
                logging.info("Scheduler removed from configuration; exiting loop")
                scheduler.stop()
                return None
            try:
                orchestrator.reconfigure(config, index_provider, album_provider)
            except AlreadyRunning:
                logging.warning("Backup in progress; configuration reload deferred")
            else:
                scheduler.reconfigure(config.scheduler)
        return orchestrator.start_scheduled()

    scheduler = BackupScheduler(initial_config.scheduler, _trigger)

    def _stop(signum: int) -> None:
        logging.info("Received signal %s; stopping scheduler", signum)
        orchestrator.cancel()
        scheduler.stop()

    with signal_handlers(_stop):
        scheduler.run_forever()
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())

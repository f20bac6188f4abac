"""Main entry point for the Sequence Notifier CLI."""

from dotenv import load_dotenv
load_dotenv()

import argparse
import json
import os
import random
import signal
import sys
import threading
import time
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from sequence_notifier.config.environment import EnvironmentConfig
from sequence_notifier.config.exceptions import ConfigurationError
from sequence_notifier.config.loader import load_config
from sequence_notifier.config.models import AppConfig, DeliveryBackend
from sequence_notifier.domain.exceptions import InputValidationError
from sequence_notifier.domain.models import parse_request
from sequence_notifier.logging import get_logger
from sequence_notifier.logging.config import configure_logging
from sequence_notifier.notifications import (
    AuthenticationError,
    InMemoryFailureQueue,
    MessageRenderer,
    NotificationService,
    get_channel,
    get_credentials,
    get_sender,
)
from sequence_notifier.persistence import (
    CustomerRepository,
    PersistenceError,
    close_database,
    get_session,
    init_database,
    seed_customers,
)
from sequence_notifier.pipeline import NotificationPipeline
from sequence_notifier.sources import RecordSourceError, SQLRecordSource

logger = get_logger(__name__, component="cli")


def load_runtime_config(
    config_path: Optional[Path],
    log_level_override: Optional[str],
    require_smtp: Optional[bool] = None,
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load and prepare runtime configuration.

    Args:
        config_path: Path to configuration file (searched for if None)
        log_level_override: Log level from CLI (takes precedence)
        require_smtp: Whether SMTP variables are mandatory (derived from
            the delivery backend if None)

    Returns:
        Tuple of (AppConfig, EnvironmentConfig) with the effective log level set

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path, require_smtp=require_smtp)

    # Apply log level priority: CLI > Environment > Config
    if log_level_override:
        env_config.log_level = log_level_override
    elif env_config.log_level:
        pass
    elif app_config.logging and app_config.logging.level:
        env_config.log_level = app_config.logging.level
    else:
        env_config.log_level = "INFO"

    return app_config, env_config


def load_request_payload(args: argparse.Namespace) -> Dict[str, Any]:
    """
    Build the raw notification request from CLI arguments.

    Flags take precedence over a request file; ``-`` reads JSON from stdin.

    Raises:
        InputValidationError: If no request was given or the JSON is unreadable
    """
    flags = {
        "first_codon": args.first_codon,
        "final_codon": args.final_codon,
        "template": args.template,
    }
    if any(value is not None for value in flags.values()):
        return {key: value for key, value in flags.items() if value is not None}

    if args.request is None:
        raise InputValidationError(
            "No notification request given",
            errors=["pass a request file, '-' for stdin, or --first-codon/--final-codon/--template"],
        )

    try:
        if args.request == "-":
            return json.load(sys.stdin)
        with open(args.request, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise InputValidationError(f"Request is not valid JSON: {e}") from e
    except OSError as e:
        raise InputValidationError(f"Cannot read request file {args.request}: {e}") from e


def build_pipeline(app_config: AppConfig, env_config: EnvironmentConfig) -> NotificationPipeline:
    """Wire source, channel, renderer and dispatch service from configuration."""
    channel = get_channel(app_config, env_config)
    renderer = MessageRenderer(
        subject_template=app_config.message.subject_template,
        sender=get_sender(app_config, env_config),
    )
    notification_service = NotificationService(
        channel,
        email_config=app_config.email,
        failure_queue=InMemoryFailureQueue(),
    )
    return NotificationPipeline(
        source=SQLRecordSource(
            batch_size=app_config.source.batch_size,
            prefilter=app_config.source.prefilter,
        ),
        channel=channel,
        renderer=renderer,
        notification_service=notification_service,
        credentials=get_credentials(env_config),
        dispatch_workers=app_config.delivery.dispatch_workers,
    )


def run_notify(args: argparse.Namespace, app_config: AppConfig, env_config: EnvironmentConfig) -> int:
    """Run one notification pass over the record store."""
    request = parse_request(load_request_payload(args))

    pipeline = build_pipeline(app_config, env_config)
    init_database(env_config.database_url)

    # Signals stop the run from pulling further records
    cancel_event = threading.Event()

    def signal_handler(signum, frame):
        logger.info(
            f"Received signal {signum}, cancelling run",
            extra={"event": "service.signal_received", "signal": signum},
        )
        cancel_event.set()

    previous_handlers = {
        sig: signal.signal(sig, signal_handler) for sig in (signal.SIGINT, signal.SIGTERM)
    }
    try:
        result = pipeline.run(request, cancel_event=cancel_event, timeout_seconds=args.timeout)
    finally:
        for sig, handler in previous_handlers.items():
            signal.signal(sig, handler)
        close_database()

    failure_queue = pipeline.notification_service.failure_queue
    logger.info(
        f"Notification run completed: "
        f"{result.total_records} records, "
        f"{result.total_dispatched} dispatched, "
        f"{result.total_skipped} skipped, "
        f"{result.total_dispatch_failed + result.total_fetch_failed} failed",
        extra={
            "event": "service.notify.completed",
            "run_id": result.run_id,
            "run_started_at": result.run_started_at,
            "duration_seconds": result.total_duration_seconds,
            "cancelled": result.cancelled,
            "queued_failures": len(failure_queue),
        },
    )

    return 1 if result.had_errors else 0


def run_seed(args: argparse.Namespace, app_config: AppConfig, env_config: EnvironmentConfig) -> int:
    """Create the schema and insert random customers."""
    rows = args.rows if args.rows is not None else app_config.seed.rows
    sequence_length = (
        args.sequence_length if args.sequence_length is not None else app_config.seed.sequence_length
    )
    rng = random.Random(args.random_seed) if args.random_seed is not None else None

    init_database(env_config.database_url)
    try:
        with get_session() as session:
            repo = CustomerRepository(session)
            inserted = seed_customers(repo, rows=rows, sequence_length=sequence_length, rng=rng)
            total = repo.count()
    finally:
        close_database()

    logger.info(
        f"Seeded {inserted} sequences ({total} stored)",
        extra={"event": "service.seed.completed", "inserted": inserted, "total": total},
    )
    return 0


def run_init_db(args: argparse.Namespace, app_config: AppConfig, env_config: EnvironmentConfig) -> int:
    """Create the schema only."""
    init_database(env_config.database_url)
    close_database()
    logger.info("Database schema ready", extra={"event": "service.init_db.completed"})
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sequence-notifier",
        description="Sequence Notifier - notify customers whose sequences carry a marked run",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.yaml or config/config.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    notify = subparsers.add_parser("notify", help="Match stored sequences and send notifications")
    notify.add_argument(
        "request",
        nargs="?",
        default=None,
        help="JSON request file with first_codon, final_codon and template ('-' for stdin)",
    )
    notify.add_argument("--first-codon", default=None, help="Start marker")
    notify.add_argument("--final-codon", default=None, help="End marker")
    notify.add_argument("--template", default=None, help="Message body template")
    notify.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Stop pulling records after this many seconds",
    )
    notify.add_argument(
        "--dry-run",
        action="store_true",
        help="Log messages instead of sending them (no SMTP server needed)",
    )
    notify.set_defaults(handler=run_notify)

    seed = subparsers.add_parser("seed", help="Create the schema and insert random customers")
    seed.add_argument("--rows", type=int, default=None, help="Number of customers (default: seed.rows)")
    seed.add_argument(
        "--sequence-length",
        type=int,
        default=None,
        help="Length of each sequence (default: seed.sequence_length)",
    )
    seed.add_argument("--random-seed", type=int, default=None, help="Seed for reproducible data")
    seed.set_defaults(handler=run_seed)

    init_db = subparsers.add_parser("init-db", help="Create the database schema")
    init_db.set_defaults(handler=run_init_db)

    return parser


def main(argv=None) -> int:
    """
    Main entry point for the Sequence Notifier.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    start_time = time.time()
    args = build_parser().parse_args(argv)

    dry_run = getattr(args, "dry_run", False)
    # Only notify talks to the SMTP server
    require_smtp = None if args.command == "notify" and not dry_run else False

    try:
        app_config, env_config = load_runtime_config(args.config, args.log_level, require_smtp)
        if dry_run:
            app_config.delivery.backend = DeliveryBackend.LOG.value

        log_format = app_config.logging.format if app_config.logging else "key-value"
        environment = os.environ.get("ENVIRONMENT", "local")
        configure_logging(level=env_config.log_level, format_type=log_format, environment=environment)

        logger.info(
            "Sequence Notifier starting",
            extra={
                "event": "service.starting",
                "command": args.command,
                "config_path": str(args.config) if args.config else None,
                "log_level": env_config.log_level,
                "delivery_backend": app_config.delivery.backend,
            },
        )

        exit_code = args.handler(args, app_config, env_config)

        logger.info(
            "Sequence Notifier stopped",
            extra={
                "event": "service.stopping",
                "uptime_seconds": round(time.time() - start_time, 2),
                "exit_code": exit_code,
            },
        )
        return exit_code

    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        logger.error(
            f"Configuration error: {e}",
            extra={"event": "config.error", "error_type": "ConfigurationError"},
        )
        return 1
    except InputValidationError as e:
        print(f"Invalid request: {e}", file=sys.stderr)
        logger.error(
            f"Invalid request: {e}",
            extra={"event": "request.invalid", "error_type": "InputValidationError"},
        )
        return 1
    except AuthenticationError as e:
        print(f"Authentication failed: {e}", file=sys.stderr)
        return 1
    except (RecordSourceError, PersistenceError) as e:
        print(f"Record store error: {e}", file=sys.stderr)
        logger.error(
            f"Record store error: {e}",
            extra={"event": "service.store.failed", "error_type": type(e).__name__},
        )
        return 1
    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        return 0
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logger.critical(
            "Fatal error",
            extra={
                "event": "service.failed",
                "error_type": type(e).__name__,
                "error": str(e),
            },
            exc_info=True,
        )
        return 1


if __name__ == "__main__":
    sys.exit(main())

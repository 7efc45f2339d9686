"""Command line entry point for scheduled reconciliation runs"""

import argparse
import logging
import sys
from typing import List, Optional

from pydantic import ValidationError

from lifecycle_reconciler.config import Settings, load_settings
from lifecycle_reconciler.domain.exceptions import (
    DirectoryQueryError,
    InvalidPolicyError,
    PreconditionMissingError,
    TemplateRenderError,
)
from lifecycle_reconciler.infrastructure.observability.logging import setup_logging
from lifecycle_reconciler.infrastructure.observability.metrics import export_textfile
from lifecycle_reconciler.services.reconciler import LifecycleReconciler, build_reconciler

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INVALID_CONFIG = 2


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="lifecycle-reconciler",
        description=(
            "Notify and disable directory accounts that have not authenticated within the "
            "inactivity window. Values not given here come from RECONCILER_* environment "
            "variables or .env."
        ),
    )
    parser.add_argument(
        "--inactivity-days",
        dest="inactivity_window_days",
        type=int,
        default=None,
        help="Days without sign-in before an account is disabled (default: 45).",
    )
    parser.add_argument(
        "--notify-days",
        dest="notification_lead_days",
        type=int,
        default=None,
        help="Days before the cutoff during which notices are sent (default: 15).",
    )
    parser.add_argument(
        "--expiration-days",
        dest="expiration_lead_days",
        type=int,
        default=None,
        help="Look-ahead for expiring accounts when expiration handling is on (default: 30).",
    )
    parser.add_argument(
        "--handle-expiration",
        dest="expiration_handling_enabled",
        action="store_true",
        default=None,
        help="Also flag accounts by their expiration date.",
    )
    parser.add_argument(
        "--admin",
        dest="admin_recipients",
        action="append",
        default=None,
        help="Administrator report recipient; repeat for several.",
    )
    parser.add_argument("--sender", dest="sender_address", default=None, help="From address.")
    parser.add_argument("--smtp-host", dest="smtp_host", default=None, help="SMTP relay host.")
    parser.add_argument("--smtp-port", dest="smtp_port", type=int, default=None, help="SMTP relay port.")
    parser.add_argument(
        "--smtp-ssl",
        dest="smtp_use_ssl",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Use implicit TLS for SMTP.",
    )
    parser.add_argument("--template-dir", dest="template_dir", default=None, help="Override template directory.")
    parser.add_argument(
        "--dry-run",
        dest="dry_run",
        action="store_true",
        default=None,
        help="Compute and report everything; change no account and send no user notice.",
    )
    parser.add_argument(
        "--debug",
        dest="debug",
        action="store_true",
        default=None,
        help="Verbose logging.",
    )
    return parser.parse_args(argv)


def run_once(settings: Settings, reconciler: LifecycleReconciler) -> int:
    """Run and map fatal failures to exit codes; per-account errors never change the code"""
    try:
        summary = reconciler.run()
    except InvalidPolicyError as e:
        logger.error(f"Invalid policy: {e}")
        return EXIT_INVALID_CONFIG
    except (PreconditionMissingError, DirectoryQueryError) as e:
        logger.error(f"Run aborted: {e}")
        return EXIT_FAILED
    except TemplateRenderError as e:
        logger.error(f"Admin report could not be rendered: {e}")
        return EXIT_FAILED
    finally:
        if settings.metrics_textfile:
            export_textfile(settings.metrics_textfile)

    logger.info(
        f"Processed {summary.processed} accounts: {summary.deactivated} disabled, "
        f"{summary.notified} notified, {summary.errors} errors"
    )
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        settings = load_settings(**vars(args))
    except ValidationError as e:
        print(f"Invalid configuration:\n{e}", file=sys.stderr)
        return EXIT_INVALID_CONFIG

    setup_logging(settings.effective_log_level, settings.service_name)
    return run_once(settings, build_reconciler(settings))


if __name__ == "__main__":
    sys.exit(main())

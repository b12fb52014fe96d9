"""Administrative redemption settlement.

Usage:
    settlement-admin-redeem <businessId> <fundKey> <tokenAmount>

Steps:
1. compute the fund's NAV
2. compute the redemption terms for the token amount
3. apply the insurance risk adjustment
4. append the settlement to the audit trail
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from decimal import Decimal
from typing import Mapping, NoReturn, Sequence

from revenue_settlement.core.config.settlement_config import SettlementConfig
from revenue_settlement.core.domain.errors import SettlementError
from revenue_settlement.core.domain.types import NAV_SCALE
from revenue_settlement.runtime.wiring import build_orchestrator
from revenue_settlement.settlement.orchestrator import record_settlement
from revenue_settlement.storage.audit_trail import AuditTrail

LOGGER = logging.getLogger(__name__)

USAGE = "Usage: settlement-admin-redeem <businessId> <fundKey> <tokenAmount>"


class _UsageArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that exits with status 1 on bad arguments."""

    def error(self, message: str) -> NoReturn:
        print(USAGE, file=sys.stderr)
        print(f"Error: {message}", file=sys.stderr)
        sys.exit(1)


def _positive_int(raw: str) -> int:
    # Stricter than int(), which accepts underscores and surrounding whitespace.
    if not (raw.isascii() and raw.isdigit()):
        raise argparse.ArgumentTypeError(f"Invalid tokenAmount {raw!r}. Must be a whole number.")
    value = int(raw)
    if value <= 0:
        raise argparse.ArgumentTypeError(f"Invalid tokenAmount {raw!r}. Must be positive.")
    return value


def _build_parser() -> argparse.ArgumentParser:
    parser = _UsageArgumentParser(
        prog="settlement-admin-redeem",
        description="Compute NAV, redemption terms and insurance-adjusted value for one redemption.",
    )
    parser.add_argument("business_id", type=str, help="Business identifier.")
    parser.add_argument("fund_key", type=str, help="Fund key (I, II, III or IV).")
    parser.add_argument("token_amount", type=_positive_int, help="Number of tokens to redeem.")
    return parser


def _format_nav(nav_per_token: int) -> str:
    return str(Decimal(nav_per_token) / Decimal(NAV_SCALE))


def main(argv: Sequence[str] | None = None, environ: Mapping[str, str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    logging.basicConfig(level=logging.WARNING)

    try:
        config = SettlementConfig.from_env(environ)
        orchestrator = build_orchestrator(config)

        print(f"\n[1] Computing NAV and redemption for business {args.business_id}, fund {args.fund_key}")
        record = orchestrator.settle(args.business_id, args.fund_key, args.token_amount)

        nav = record.nav
        print(f"NAV = {nav.nav_per_token} ({_format_nav(nav.nav_per_token)} per token, "
              f"{nav.records_used} of {nav.window_months} months)")

        print(f"\n[2] Redemption result for {record.token_amount} tokens of {record.fund_name}:")
        print(json.dumps(record.redemption_terms.model_dump(mode="json"), indent=2))

        print("\n[3] Insurance risk adjustment:")
        print(json.dumps(record.insurance_adjustment.model_dump(mode="json"), indent=2))
        print(f"Adjusted redemption value (post-insurance): {record.adjusted_redemption_value}")

        print("\n[4] Writing audit record...")
        event = record_settlement(record, AuditTrail(config.audit_log_dir))
        print(f"[OK] Audit event {event.event_id} written to partition {event.partition}.")

    except (SettlementError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except Exception as exc:  # pylint: disable=broad-exception-caught
        LOGGER.exception("Unhandled failure in admin redemption")
        print(f"FATAL ERROR in admin redemption: {exc}", file=sys.stderr)
        return 1

    print("\nRedemption settlement complete.\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())

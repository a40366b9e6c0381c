#!/usr/bin/env python3
"""
Escrow ledger demo: walk one project through its full lifecycle.

Creates a project, collects two bids, assigns one bidder, submits and
completes the work, then prints the ledger state, the custody balances and
the recorded event history.

Usage:
    python3 scripts/demo_escrow.py                    # In-memory SQLite
    python3 scripts/demo_escrow.py --db-url sqlite:///escrow.db
    python3 scripts/demo_escrow.py --config my.yaml   # Override fee settings
    python3 scripts/demo_escrow.py --log-json         # Show structured logs
"""

import argparse
import logging
import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

OWNER = "platform"
CLIENT = "alice"
BIDDERS = ("bob", "carol")

W = 72


# =============================================================================
# Formatting
# =============================================================================

def hline(char: str = "=") -> str:
    return char * W


def banner(title: str) -> None:
    print()
    print(hline())
    print(f"  {title}")
    print(hline())


def section(title: str) -> None:
    print()
    print(f"--- {title} ---")
    print()


def field(name: str, value, indent: int = 4) -> None:
    print(f"{' ' * indent}{name}: {value}")


# =============================================================================
# Scenario
# =============================================================================

def run_lifecycle(ledger, custody, clock, budget: int) -> int:
    """Happy path: create, bid, assign, submit, complete. Returns project id."""
    section("Create")
    project = ledger.create_project(
        CLIENT,
        "Logo design",
        "Vector logo plus brand colours",
        clock.now() + timedelta(days=7),
        budget,
    )
    field("project", f"#{project.id} {project.title!r}")
    field("budget", project.budget)
    field("held in trust", custody.held)

    section("Bids")
    for bidder in BIDDERS:
        clock.advance(3600)
        ledger.submit_bid(bidder, project.id)
    field("bidders", ", ".join(ledger.get_project_bids(project.id)))

    section("Assign / submit / complete")
    ledger.assign_freelancer(CLIENT, project.id, BIDDERS[0])
    field("assigned", BIDDERS[0])
    clock.advance(2 * 86400)
    ledger.submit_work(BIDDERS[0], project.id)
    field("status", ledger.get_project(project.id).status.value)
    result = ledger.complete_project(CLIENT, project.id)
    field("fee pct", result.split.fee_pct)
    field("freelancer payout", result.split.payout)
    field("platform fee", result.split.fee)
    return project.id


def print_state(ledger, custody, project_id: int) -> None:
    section("Ledger state")
    project = ledger.get_project(project_id)
    field("status", project.status.value)
    field("funds deposited", project.funds_deposited)
    field("total projects", ledger.get_total_projects())
    field(f"{CLIENT} projects", ledger.get_client_projects(CLIENT))
    field(f"{BIDDERS[0]} projects", ledger.get_freelancer_projects(BIDDERS[0]))

    section("Custody")
    field("held in trust", custody.held)
    for identity in (BIDDERS[0], OWNER, CLIENT):
        field(identity, custody.balance_of(identity))

    section("Events")
    for ev in ledger.get_project_events(project_id):
        payload = ev.payload()
        extra = f" {payload}" if payload else ""
        print(f"    {ev.event_type.value:<22} {ev.actor}{extra}")


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Walk one escrow project through its full lifecycle.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--db-url", type=str, default=None,
        help="Database URL (default: database_url from the configuration)",
    )
    parser.add_argument(
        "--config", type=Path, default=None,
        help="YAML configuration file (default: escrow_config/sets/default.yaml)",
    )
    parser.add_argument(
        "--budget", type=int, default=1000,
        help="Deposit for the demo project (default: 1000)",
    )
    parser.add_argument(
        "--log-json", action="store_true",
        help="Write structured JSON logs to stderr at the configured log_level",
    )
    args = parser.parse_args()

    import yaml

    from escrow_config import get_active_config, log_level_number
    from escrow_config.bridges import init_engine_from_config, open_ledger
    from escrow_kernel.db.engine import create_tables, init_engine_from_url, session_scope
    from escrow_kernel.db.immutability import register_immutability_listeners
    from escrow_kernel.domain.clock import DeterministicClock
    from escrow_kernel.domain.custody import InMemoryCustody
    from escrow_kernel.exceptions import EscrowKernelError
    from escrow_kernel.logging_config import configure_logging

    try:
        config = get_active_config(args.config)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        print(f"  ERROR: Cannot load configuration: {exc}", file=sys.stderr)
        return 1

    if args.log_json:
        configure_logging(level=log_level_number(config), stream=sys.stderr)
    else:
        logging.disable(logging.CRITICAL)

    if args.db_url:
        init_engine_from_url(args.db_url)
    else:
        init_engine_from_config(config)
    create_tables()
    register_immutability_listeners()

    banner("ESCROW LEDGER DEMO")
    field("config checksum", config.checksum[:16] + "...")
    field("default fee pct", config.default_platform_fee_pct)

    custody = InMemoryCustody()
    clock = DeterministicClock(datetime(2025, 6, 1, 9, 0, 0, tzinfo=UTC))
    try:
        with session_scope() as session:
            ledger = open_ledger(session, custody, OWNER, config, clock=clock)
            project_id = run_lifecycle(ledger, custody, clock, args.budget)
            print_state(ledger, custody, project_id)
    except EscrowKernelError as exc:
        print(f"  ERROR [{exc.code}]: {exc}", file=sys.stderr)
        return 1

    print()
    return 0


if __name__ == "__main__":
    sys.exit(main())

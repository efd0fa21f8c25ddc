#!/usr/bin/env python3
"""Command-line companion for the Employee Admin Portal.

Keeps onboarding drafts in a local store and talks to the portal API:

    python3 scripts/portal.py add --first Ada --last Lovelace --title Engineer \
        --department Engineering --business-unit Corporate --manager-id <id>
    python3 scripts/portal.py submit
    python3 scripts/portal.py health --watch

Run from the repository root.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path

_project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from app.client.draft_store import DraftStore, DraftValidationError  # noqa: E402
from app.client.health_probe import HealthProbe, dns_connectivity  # noqa: E402
from app.client.portal_client import PortalClient, PortalClientError, submit_drafts  # noqa: E402
from app.core.auth import encode_client_principal  # noqa: E402
from app.models.auth import ClientPrincipal  # noqa: E402
from app.models.drafts import DraftForm  # noqa: E402
from app.models.health import HealthStatus  # noqa: E402
from app.models.submission import OffboardRequest  # noqa: E402
from app.services.envelopes import normalize_entry  # noqa: E402

logger = logging.getLogger(__name__)

DEFAULT_DRAFTS_DIR = Path.home() / ".employee-portal"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Employee Admin Portal client")
    parser.add_argument("--base-url", default="http://localhost:8000", help="Portal API base URL")
    parser.add_argument("--drafts-dir", type=Path, default=DEFAULT_DRAFTS_DIR, help="Local draft store directory")
    parser.add_argument("--user", default=None, help="Principal user for local development (sets the principal header)")
    parser.add_argument("--role", action="append", default=[], help="Principal role (repeatable)")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose (DEBUG) logging")

    commands = parser.add_subparsers(dest="command", required=True)

    add = commands.add_parser("add", help="Save a draft entry (pass --id to edit one)")
    add.add_argument("--id", default=None)
    add.add_argument("--first", dest="first_name", required=True)
    add.add_argument("--last", dest="last_name", required=True)
    add.add_argument("--title", required=True)
    add.add_argument("--department", required=True)
    add.add_argument("--business-unit", required=True)
    add.add_argument("--manager-id", required=True)
    add.add_argument("--manager-upn", default=None)
    add.add_argument("--manager-name", default=None)
    add.add_argument("--start-date", default=None, help="ISO date, e.g. 2024-01-05")
    add.add_argument("--part-time", action="store_true")

    commands.add_parser("list", help="Show saved drafts")

    delete = commands.add_parser("delete", help="Delete one draft")
    delete.add_argument("id")

    commands.add_parser("clear", help="Delete all drafts")
    commands.add_parser("submit", help="Submit all drafts and drop the accepted ones")

    export = commands.add_parser("export", help="Write the normalized submission payload as JSON")
    export.add_argument("--output", type=Path, default=None)

    offboard = commands.add_parser("offboard", help="Queue a termination request")
    offboard.add_argument("employee")
    offboard.add_argument("--manager-id", default="")
    offboard.add_argument("--notes", default=None)

    health = commands.add_parser("health", help="Check queue health")
    health.add_argument("--watch", action="store_true", help="Keep polling until interrupted")
    health.add_argument("--interval", type=float, default=30.0)

    return parser.parse_args(argv)


def build_client(args: argparse.Namespace) -> PortalClient:
    principal = None
    if args.user:
        roles = ["anonymous", "authenticated", *args.role]
        principal = encode_client_principal(ClientPrincipal(user_id=args.user, user_details=args.user, user_roles=roles))
    return PortalClient(args.base_url, principal=principal)


def cmd_add(args: argparse.Namespace, store: DraftStore) -> int:
    form = DraftForm(
        first_name=args.first_name,
        last_name=args.last_name,
        title=args.title,
        department=args.department,
        business_unit=args.business_unit,
        full_time=not args.part_time,
        start_date=args.start_date,
        manager_id=args.manager_id,
        manager_upn=args.manager_upn,
        manager_name=args.manager_name,
    )
    try:
        entry = store.save(form, args.id)
    except DraftValidationError as e:
        for field, message in e.errors.items():
            print(f"{field}: {message}", file=sys.stderr)
        return 2
    print(f"Saved. ({entry.id})")
    return 0


def cmd_list(store: DraftStore) -> int:
    entries = store.entries()
    if not entries:
        print("No entries yet.")
        return 0
    for e in entries:
        manager = e.manager_name or e.manager_upn or e.manager_id
        full_time = "Yes" if e.full_time else "No"
        print(f"{e.id}  {e.first_name} {e.last_name} | {e.title} | {e.department} | {e.business_unit} | FT:{full_time} | {manager}")
    print(f"({len(entries)} saved, {store.unsubmitted_count()} unsubmitted)")
    return 0


async def cmd_export(args: argparse.Namespace, store: DraftStore, client: PortalClient) -> int:
    lists = await client.fetch_lists()
    by_id = {m.id: m for m in lists.managers}
    payload = [
        normalize_entry(e.model_dump(mode="json", by_alias=True), by_id.get, format_dates=False)
        for e in store.entries()
    ]
    output = args.output or Path(f"employees-{datetime.now(timezone.utc).date().isoformat()}.json")
    output.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    print(f"Exported {len(payload)} entries to {output}")
    return 0


async def cmd_offboard(args: argparse.Namespace, client: PortalClient) -> int:
    lists = await client.fetch_lists()
    manager = next((m for m in lists.managers if m.id == args.manager_id), None)
    request = OffboardRequest(
        employee=args.employee,
        manager_id=manager.id if manager else args.manager_id,
        manager_upn=(manager.upn or "") if manager else "",
        manager_name=manager.name if manager else "",
        notes=args.notes,
    )
    try:
        response = await client.offboard(request)
    except PortalClientError as e:
        logger.error("Offboarding failed: %s", e)
        print("Failed to queue termination request.", file=sys.stderr)
        return 1
    print(f"Termination request queued. ({response.message_id})")
    return 0


async def cmd_health(args: argparse.Namespace, client: PortalClient) -> int:
    def _report(status: HealthStatus, label: str) -> None:
        if status is not HealthStatus.CHECKING:
            print(f"[{status.value}] {label}")

    probe = HealthProbe(
        client.health,
        is_online=dns_connectivity(client.base_url),
        interval=args.interval,
        on_change=_report,
    )
    if not args.watch:
        status = await probe.check()
        return 0 if status is HealthStatus.OK else 1

    try:
        await probe.start()
    finally:
        await probe.stop()
    return 0


async def run(args: argparse.Namespace) -> int:
    store = DraftStore(args.drafts_dir)
    client = build_client(args)

    if args.command == "add":
        return cmd_add(args, store)
    if args.command == "list":
        return cmd_list(store)
    if args.command == "delete":
        found = store.delete(args.id)
        print("Deleted." if found else "No such entry.")
        return 0 if found else 1
    if args.command == "clear":
        store.clear()
        print("Cleared.")
        return 0
    if args.command == "submit":
        print(await submit_drafts(store, client))
        return 0 if store.unsubmitted_count() == 0 else 1
    if args.command == "export":
        return await cmd_export(args, store, client)
    if args.command == "offboard":
        return await cmd_offboard(args, client)
    return await cmd_health(args, client)


def main() -> None:
    args = parse_args()
    level = logging.DEBUG if args.verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(message)s")
    try:
        sys.exit(asyncio.run(run(args)))
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    main()

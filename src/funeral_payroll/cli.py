"""Payroll Command Line Interface.

Provides operator tools for:
- Schema creation
- Period creation and closing
- Record computation and bulk approval
- Receipt generation and verification

Usage:
    python -m funeral_payroll.cli init-db
    python -m funeral_payroll.cli create-period --organization-id X --name "January 2024" \
        --start 2024-01-01 --end 2024-01-31
    python -m funeral_payroll.cli compute --organization-id X --period-id Y
    python -m funeral_payroll.cli approve-all --organization-id X --period-id Y --actor Z
    python -m funeral_payroll.cli generate-receipts --organization-id X --period-id Y
    python -m funeral_payroll.cli close --organization-id X --period-id Y --actor Z
    python -m funeral_payroll.cli verify-receipt CODE
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from datetime import date
from typing import Any, AsyncGenerator, Awaitable, Callable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from funeral_payroll.config import get_settings
from funeral_payroll.database import create_all, get_engine, make_session_factory
from funeral_payroll.errors import PayrollError, retry_on_conflict
from funeral_payroll.services import (
    ApprovalService,
    ComputationService,
    PeriodService,
    ReceiptService,
)

logger = logging.getLogger(__name__)


def parse_date(s: str) -> date:
    """Parse ISO date string."""
    return date.fromisoformat(s)


def parse_uuid(s: str) -> UUID:
    """Parse UUID string."""
    return UUID(s)


class PayrollCli:
    """Payroll Command Line Interface."""

    def __init__(self) -> None:
        self.parser = self._build_parser()
        self.database_url: str | None = None

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="python -m funeral_payroll.cli",
            description="Payroll period operator tools",
        )
        parser.add_argument(
            "--database-url",
            type=str,
            help="Database URL (default: $DATABASE_URL)",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        subparsers.add_parser("init-db", help="Create the payroll tables")

        create = subparsers.add_parser("create-period", help="Create an open payroll period")
        self._add_organization(create)
        create.add_argument("--name", type=str, required=True, help="Period name")
        create.add_argument("--start", type=parse_date, required=True, help="First day (ISO)")
        create.add_argument("--end", type=parse_date, required=True, help="Last day (ISO)")
        create.add_argument("--notes", type=str, help="Free-form notes")

        compute = subparsers.add_parser("compute", help="Compute or refresh payroll records")
        self._add_period(compute)
        compute.add_argument(
            "--include-inactive",
            action="store_true",
            help="Also compute records for inactive collaborators",
        )

        approve = subparsers.add_parser("approve-all", help="Approve all records of a period")
        self._add_period(approve)
        approve.add_argument("--actor", type=str, required=True, help="Approving user ID")

        receipts = subparsers.add_parser(
            "generate-receipts",
            help="Issue receipts for all approved records of a period",
        )
        self._add_period(receipts)

        close = subparsers.add_parser("close", help="Close an open period (irreversible)")
        self._add_period(close)
        close.add_argument("--actor", type=str, required=True, help="Closing user ID")
        close.add_argument("--notes", type=str, help="Closing notes")

        verify = subparsers.add_parser("verify-receipt", help="Look up a receipt by code")
        verify.add_argument("code", type=str, help="Verification code")

        return parser

    @staticmethod
    def _add_organization(sub: argparse.ArgumentParser) -> None:
        sub.add_argument(
            "--organization-id",
            type=parse_uuid,
            required=True,
            help="Organization (funeral home) ID",
        )

    def _add_period(self, sub: argparse.ArgumentParser) -> None:
        self._add_organization(sub)
        sub.add_argument("--period-id", type=parse_uuid, required=True, help="Payroll period ID")

    def run(self, args: list[str] | None = None) -> int:
        """Run the CLI with given arguments."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 1

        self.database_url = parsed.database_url

        # Dispatch to command handler
        handlers: dict[str, Callable[[argparse.Namespace], Awaitable[int]]] = {
            "init-db": self._cmd_init_db,
            "create-period": self._cmd_create_period,
            "compute": self._cmd_compute,
            "approve-all": self._cmd_approve_all,
            "generate-receipts": self._cmd_generate_receipts,
            "close": self._cmd_close,
            "verify-receipt": self._cmd_verify_receipt,
        }

        handler = handlers.get(parsed.command)
        if handler is None:
            print(f"Unknown command: {parsed.command}", file=sys.stderr)
            return 1

        try:
            return asyncio.run(handler(parsed))
        except PayrollError as exc:
            print(f"ERROR [{exc.code}]: {exc}", file=sys.stderr)
            return 1

    @asynccontextmanager
    async def _session(self) -> AsyncGenerator[AsyncSession, None]:
        engine = get_engine(self.database_url)
        factory = make_session_factory(engine)
        try:
            async with factory() as session:
                try:
                    yield session
                    await session.commit()
                except Exception:
                    await session.rollback()
                    raise
        finally:
            await engine.dispose()

    async def _cmd_init_db(self, args: argparse.Namespace) -> int:
        """Create all tables."""
        engine = get_engine(self.database_url)
        try:
            await create_all(engine)
        finally:
            await engine.dispose()
        print("Schema created.")
        return 0

    async def _cmd_create_period(self, args: argparse.Namespace) -> int:
        async with self._session() as session:
            period = await PeriodService(session).create(
                args.organization_id, args.name, args.start, args.end, args.notes
            )
            print(f"Created period {period.payroll_period_id}: {period.name}")
            print(f"  Range: {period.start_date} .. {period.end_date}")
        return 0

    async def _cmd_compute(self, args: argparse.Namespace) -> int:
        async with self._session() as session:
            service = ComputationService(session)
            result = await retry_on_conflict(
                lambda: service.compute(
                    args.period_id, args.organization_id, args.include_inactive
                )
            )
        print(f"Computed period {args.period_id}")
        print(f"  Created: {result.created}")
        print(f"  Updated: {result.updated}")
        return 0

    async def _cmd_approve_all(self, args: argparse.Namespace) -> int:
        async with self._session() as session:
            approved = await ApprovalService(session).approve_all(
                args.period_id, args.actor, args.organization_id
            )
        print(f"Approved {approved} record(s) in period {args.period_id}")
        return 0

    async def _cmd_generate_receipts(self, args: argparse.Namespace) -> int:
        async with self._session() as session:
            service = ReceiptService(session)
            result = await service.generate_all(args.period_id, args.organization_id)
        print(f"Receipts for period {args.period_id}")
        print(f"  Generated: {result.generated}")
        print(f"  Skipped:   {result.skipped}")
        return 0

    async def _cmd_close(self, args: argparse.Namespace) -> int:
        async with self._session() as session:
            period = await PeriodService(session).close(
                args.period_id, args.actor, args.notes, args.organization_id
            )
            print(f"Closed period {period.payroll_period_id} at {period.closed_at.isoformat()}")
            print(f"  Collaborators: {period.collaborator_count}")
            print(f"  Gross:         {period.total_gross}")
            print(f"  Deductions:    {period.total_deductions}")
            print(f"  Net:           {period.total_net}")
        return 0

    async def _cmd_verify_receipt(self, args: argparse.Namespace) -> int:
        async with self._session() as session:
            receipt = await ReceiptService(session).verify(args.code)
            fields: dict[str, Any] = {
                "Receipt": receipt.receipt_number,
                "Collaborator": receipt.collaborator_name,
                "Period": receipt.period_name,
                "Net": receipt.net_total,
                "Status": receipt.status,
            }
            print("Receipt is authentic.")
            for label, value in fields.items():
                print(f"  {label + ':':<14}{value}")
        return 0


def main() -> int:
    """CLI entry point."""
    logging.basicConfig(
        level=get_settings().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    cli = PayrollCli()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())

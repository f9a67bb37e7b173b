"""Tests for the operator CLI against a throwaway SQLite file."""

import re
from uuid import uuid4

import pytest

from funeral_payroll.cli import PayrollCli


@pytest.fixture
def cli_args(tmp_path):
    database_url = f"sqlite+aiosqlite:///{tmp_path / 'payroll.db'}"

    def _args(*command: str) -> list[str]:
        return ["--database-url", database_url, *command]

    assert PayrollCli().run(_args("init-db")) == 0
    return _args


def create_period(cli_args, capsys, organization_id) -> str:
    exit_code = PayrollCli().run(
        cli_args(
            "create-period",
            "--organization-id",
            str(organization_id),
            "--name",
            "January 2024",
            "--start",
            "2024-01-01",
            "--end",
            "2024-01-31",
        )
    )
    assert exit_code == 0
    match = re.search(r"Created period ([0-9a-f-]{36})", capsys.readouterr().out)
    assert match
    return match.group(1)


def test_no_command_prints_help(capsys):
    assert PayrollCli().run([]) == 1
    assert "usage" in capsys.readouterr().out.lower()


def test_period_lifecycle(cli_args, capsys):
    organization_id = uuid4()
    period_id = create_period(cli_args, capsys, organization_id)
    period_args = ("--organization-id", str(organization_id), "--period-id", period_id)

    assert PayrollCli().run(cli_args("compute", *period_args)) == 0
    out = capsys.readouterr().out
    assert "Created: 0" in out
    assert "Updated: 0" in out

    assert PayrollCli().run(cli_args("approve-all", *period_args, "--actor", "ops")) == 0
    assert "Approved 0 record(s)" in capsys.readouterr().out

    assert PayrollCli().run(cli_args("generate-receipts", *period_args)) == 0
    assert "Generated: 0" in capsys.readouterr().out

    assert PayrollCli().run(cli_args("close", *period_args, "--actor", "ops")) == 0
    assert "Closed period" in capsys.readouterr().out

    # Second close and a recompute are both refused
    assert PayrollCli().run(cli_args("close", *period_args, "--actor", "ops")) == 1
    assert "INVALID_TRANSITION" in capsys.readouterr().err

    assert PayrollCli().run(cli_args("compute", *period_args)) == 1
    assert "INVALID_TRANSITION" in capsys.readouterr().err


def test_inverted_range_reported(cli_args, capsys):
    exit_code = PayrollCli().run(
        cli_args(
            "create-period",
            "--organization-id",
            str(uuid4()),
            "--name",
            "Backwards",
            "--start",
            "2024-02-01",
            "--end",
            "2024-01-01",
        )
    )
    assert exit_code == 1
    assert "INVALID_RANGE" in capsys.readouterr().err


def test_unknown_period(cli_args, capsys):
    exit_code = PayrollCli().run(
        cli_args("compute", "--organization-id", str(uuid4()), "--period-id", str(uuid4()))
    )
    assert exit_code == 1
    assert "NOT_FOUND" in capsys.readouterr().err


def test_verify_unknown_receipt(cli_args, capsys):
    assert PayrollCli().run(cli_args("verify-receipt", "0-UNKNOWN")) == 1
    assert "NOT_FOUND" in capsys.readouterr().err

"""
CLI Tests

Runs typer commands against the test repository.
"""

from datetime import date, timedelta

import pytest
from typer.testing import CliRunner

from haulops.cli.main import app
from haulops.models import ComplianceItem, Ticket

runner = CliRunner()


@pytest.fixture
def cli_repo(repo, monkeypatch):
    monkeypatch.setattr("haulops.cli.main.get_repository", lambda: repo)
    return repo


class TestCommands:
    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "HaulOps" in result.output

    def test_compliance_lists_alerts(self, cli_repo):
        cli_repo.save_compliance_item(ComplianceItem(
            item_type="UCR", entity="Fleet", expiration_date=date.today() + timedelta(days=5),
        ))
        result = runner.invoke(app, ["compliance", "--days", "30"])

        assert result.exit_code == 0
        assert "Expiring" in result.output

    def test_profit_report_csv(self, cli_repo, tmp_path):
        cli_repo.save_ticket(Ticket(ticket_date=date(2024, 3, 4), partner_name="Rocky", quantity=1, pay_rate=100, bill_rate=150))
        out = tmp_path / "report.csv"

        result = runner.invoke(app, ["profit-report", "--group-by", "partner", "--csv", str(out)])

        assert result.exit_code == 0, result.output
        assert out.read_text().splitlines()[1] == "Rocky,1,150.00,100.00,50.00,33.33"

    def test_profit_report_rejects_bad_date(self, cli_repo):
        result = runner.invoke(app, ["profit-report", "--from", "03/04/2024"])
        assert result.exit_code == 2

    def test_import_missing_file(self, tmp_path):
        result = runner.invoke(app, ["import-tickets", str(tmp_path / "nope.csv")])
        assert result.exit_code == 1

    def test_eld_ping(self):
        result = runner.invoke(app, ["eld-ping"])
        assert result.exit_code == 0
        assert "Samsara" in result.output

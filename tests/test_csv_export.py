"""
CSV Export Tests

Quoting rules and the profit report download layout.
"""

from datetime import date

from haulops.models import Ticket
from haulops.models.enums import GroupBy
from haulops.reports import build_profit_report, escape_csv_value, profit_report_csv, profit_report_filename, to_csv


class TestEscaping:
    """Values are quoted only when needed"""

    def test_plain_values_are_untouched(self):
        assert escape_csv_value("Gravel") == "Gravel"
        assert escape_csv_value(12.5) == "12.5"
        assert escape_csv_value(None) == ""

    def test_comma_and_newline_are_quoted(self):
        assert escape_csv_value("Smith, Jones") == '"Smith, Jones"'
        assert escape_csv_value("line1\nline2") == '"line1\nline2"'

    def test_quotes_are_doubled(self):
        assert escape_csv_value('3/4" rock') == '"3/4"" rock"'

    def test_rows_joined_without_trailing_newline(self):
        assert to_csv([["a", "b"], [1, 2]]) == "a,b\n1,2"


class TestProfitReportCSV:
    """Layout of the downloaded report"""

    def tickets(self):
        return [
            Ticket(ticket_date=date(2024, 2, 1), partner_name="Smith, Jones & Co", material="Sand",
                   unit_type="Ton", quantity=10, pay_rate=8, bill_rate=11),
            Ticket(ticket_date=date(2024, 2, 2), partner_name="Acme", material="Gravel",
                   unit_type="Load", quantity=1, pay_rate=100, bill_rate=150),
        ]

    def test_item_rows(self):
        lines = profit_report_csv(build_profit_report(self.tickets())).split("\n")

        assert lines[0] == "date,partner,material,unit,qty,pay_rate,bill_rate,total_pay,total_bill,total_profit,margin_pct"
        assert lines[1] == '2024-02-01,"Smith, Jones & Co",Sand,Ton,10,8.00,11.00,80.00,110.00,30.00,27.27'
        assert len(lines) == 3

    def test_quantity_keeps_full_precision(self):
        tickets = [
            Ticket(ticket_date=date(2024, 2, 1), material="Sand", quantity=1234567, pay_rate=1, bill_rate=1),
            Ticket(ticket_date=date(2024, 2, 2), material="Sand", quantity=12.3456789, pay_rate=1, bill_rate=1),
        ]
        lines = profit_report_csv(build_profit_report(tickets)).split("\n")

        assert lines[1].split(",")[4] == "1234567"
        assert lines[2].split(",")[4] == "12.3456789"

    def test_grouped_rows(self):
        report = build_profit_report(self.tickets(), group_by=GroupBy.MATERIAL)
        lines = profit_report_csv(report).split("\n")

        assert lines[0] == "group,count,bill,pay,profit,margin_pct"
        assert lines[1] == "Gravel,1,150.00,100.00,50.00,33.33"
        assert lines[2] == "Sand,1,110.00,80.00,30.00,27.27"

    def test_filenames(self):
        assert profit_report_filename("none") == "profit-report.csv"
        assert profit_report_filename("partner") == "profit-report-partner.csv"

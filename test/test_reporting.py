from datetime import date, datetime
from pathlib import Path

import pytest
from conftest import FixedClock, make_repo
from openpyxl import load_workbook

from dcm.domain.errors import ValidationError
from dcm.domain.models import MilkType, Session, SessionFilter
from dcm.services.cash_service import CashService
from dcm.services.collection_service import CollectionService
from dcm.services.farmer_service import FarmerService
from dcm.services.rate_service import RateService
from dcm.services.reporting_service import ReportingService


def _setup(tmp_path: Path, page_size: int = 50):
    clock = FixedClock(datetime(2024, 6, 1, 7, 0))
    repo = make_repo(tmp_path, page_size=page_size, clock=clock)
    RateService(repo).update_rates(50.0, 40.0)
    farmers = FarmerService(repo)
    vlc_id = farmers.add_farmer("Ramesh", "98765 43210", MilkType.VLC)
    thek_id = farmers.add_farmer("Suresh", "91234 56789", MilkType.THEKADARI)
    return repo, clock, CollectionService(repo), vlc_id, thek_id


def test_farmer_bill_covers_every_page_within_range(tmp_path: Path):
    repo, clock, collections, _vlc_id, thek_id = _setup(tmp_path, page_size=2)
    for day in (1, 2, 3, 4, 5):
        clock.when = datetime(2024, 6, day, 18, 30)
        collections.record_entry(thek_id, 20, 70, None, Session.EVENING)
    clock.when = datetime(2024, 6, 3, 23, 59, 59, 999000)
    collections.record_entry(thek_id, 10, 65, None, Session.EVENING)
    CashService(repo).pay(thek_id, 500)

    bill = ReportingService(repo).farmer_bill(thek_id, date(2024, 6, 2), date(2024, 6, 3))

    assert bill.farmer.name == "Suresh"
    assert bill.totals.count == 3
    assert bill.totals.quantity == pytest.approx(50)
    assert bill.totals.net_milk == pytest.approx(21.5 * 2 + 10)
    assert bill.totals.amount == pytest.approx((21.5 * 2 + 10) * 40)
    assert bill.balance == pytest.approx(-500)


def test_bill_rejects_reversed_range(tmp_path: Path):
    repo, _clock, _collections, vlc_id, _thek_id = _setup(tmp_path)
    with pytest.raises(ValidationError):
        ReportingService(repo).farmer_bill(vlc_id, date(2024, 6, 3), date(2024, 6, 2))


def test_session_report_concatenates_sessions_and_filters_day(tmp_path: Path):
    repo, clock, collections, vlc_id, thek_id = _setup(tmp_path)
    clock.when = datetime(2024, 6, 1, 19, 0)
    collections.record_entry(thek_id, 20, 70, None, Session.EVENING)
    clock.when = datetime(2024, 6, 2, 6, 0)
    collections.record_entry(vlc_id, 10, 3.0, 8.5, Session.MORNING)
    collections.record_entry(vlc_id, 10, 5.0, 8.5, Session.MORNING)
    clock.when = datetime(2024, 6, 2, 19, 0)
    collections.record_entry(thek_id, 20, 60, None, Session.EVENING)

    reporting = ReportingService(repo)
    both = reporting.session_report()
    assert [r.entry.session for r in both.rows] == [Session.MORNING, Session.MORNING, Session.EVENING, Session.EVENING]
    assert both.totals.count == 4
    assert both.has_next_page is False

    day = reporting.session_report(date(2024, 6, 2), SessionFilter.MORNING)
    assert day.totals.count == 2
    assert day.totals.average_fat == pytest.approx(4.0)
    assert all(r.net_milk is None for r in day.rows)


def test_session_report_flags_next_page(tmp_path: Path):
    repo, _clock, collections, vlc_id, _thek_id = _setup(tmp_path, page_size=2)
    for _ in range(3):
        collections.record_entry(vlc_id, 10, 4.0, 8.5, Session.MORNING)

    reporting = ReportingService(repo)
    assert reporting.session_report(page=0).has_next_page is True
    last = reporting.session_report(page=1)
    assert last.has_next_page is False
    assert last.totals.count == 1


def test_excel_exports(tmp_path: Path):
    repo, clock, collections, vlc_id, thek_id = _setup(tmp_path)
    collections.record_entry(vlc_id, 10, 4.0, 8.5, Session.MORNING)
    collections.record_entry(thek_id, 20, 70, None, Session.MORNING)
    CashService(repo).receive(vlc_id, 250, "Milk advance returned")
    reporting = ReportingService(repo)

    report_path = tmp_path / "report.xlsx"
    reporting.export_session_report_excel(str(report_path), reporting.session_report())
    wb = load_workbook(report_path)
    assert wb.sheetnames == ["Summary", "Entries"]
    entries = wb["Entries"]
    assert entries["A1"].value == "Date"
    assert entries.max_row == 3
    assert entries["K3"].value == pytest.approx(860)
    assert entries["I2"].value in (None, "")

    bill_path = tmp_path / "bill.xlsx"
    reporting.export_bill_excel(str(bill_path), reporting.farmer_bill(vlc_id, date(2024, 6, 1), date(2024, 6, 1)))
    bill = load_workbook(bill_path)["Bill"]
    assert bill["B4"].value == "Ramesh"
    assert bill["A15"].value == "Credit Balance"
    assert bill["B15"].value == pytest.approx(250)

    statement_path = tmp_path / "statement.xlsx"
    reporting.export_statement_excel(str(statement_path), reporting.transaction_statement(vlc_id))
    ws = load_workbook(statement_path)["Statement"]
    assert ws["B4"].value == 1
    assert ws["C7"].value == "Milk advance returned"


def test_next_page_flag_only_counts_selected_session(tmp_path: Path):
    repo, _clock, collections, vlc_id, thek_id = _setup(tmp_path, page_size=2)
    collections.record_entry(vlc_id, 10, 4.0, 8.5, Session.MORNING)
    collections.record_entry(thek_id, 20, 70, None, Session.EVENING)
    collections.record_entry(thek_id, 20, 65, None, Session.EVENING)

    reporting = ReportingService(repo)
    assert reporting.session_report(session_filter=SessionFilter.MORNING).has_next_page is False
    assert reporting.session_report(session_filter=SessionFilter.EVENING).has_next_page is True
    assert reporting.session_report(session_filter=SessionFilter.BOTH).has_next_page is True

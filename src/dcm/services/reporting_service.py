from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table, TableStyleInfo

from dcm.domain.errors import ValidationError
from dcm.domain.models import Farmer, Session, SessionFilter, Transaction
from dcm.domain.timestamps import to_datetime
from dcm.services.aggregation import (
    CalculatedEntry,
    CollectionTotals,
    calculated_rows,
    filter_by_date_range,
    filter_by_day,
    select_sessions,
    summarize,
)
from dcm.services.cash_service import balance_label
from dcm.services.pagination import fetch_all_pages


@dataclass(frozen=True)
class SessionReport:
    day: Optional[date]
    session_filter: SessionFilter
    page: int
    rows: list[CalculatedEntry]
    totals: CollectionTotals
    has_next_page: bool


@dataclass(frozen=True)
class FarmerBill:
    farmer: Farmer
    from_date: date
    to_date: date
    rows: list[CalculatedEntry]
    totals: CollectionTotals
    balance: float


@dataclass(frozen=True)
class TransactionStatement:
    farmer: Farmer
    transactions: list[Transaction]
    balance: float


def _money(cell):
    cell.number_format = "#,##0.00"


def _bold_row(ws, r):
    for c in ws[r]:
        c.font = Font(bold=True)


def _set_widths(ws, widths: dict[str, int]):
    for col, w in widths.items():
        ws.column_dimensions[col].width = w


def _add_table(ws, name: str, start_row: int, end_row: int, end_col: int):
    ref = f"A{start_row}:{get_column_letter(end_col)}{end_row}"
    tab = Table(displayName=name, ref=ref)
    tab.tableStyleInfo = TableStyleInfo(
        name="TableStyleMedium9",
        showRowStripes=True,
        showColumnStripes=False,
    )
    ws.add_table(tab)


ENTRY_HEADERS = ["Date", "Session", "Farmer ID", "Milk", "Weight", "Fat", "SNF", "Rate", "Less/Add", "Net Milk", "Amount"]


def _entry_cells(row: CalculatedEntry) -> list:
    e = row.entry
    return [
        to_datetime(e.date).strftime("%Y-%m-%d %H:%M"),
        e.session.value,
        e.farmer_id,
        e.milk_type.value,
        e.weight,
        e.fat,
        e.snf if e.snf is not None else "",
        e.rate,
        row.less_add if row.less_add is not None else "",
        row.net_milk if row.net_milk is not None else "",
        row.amount,
    ]


def _write_entries(ws, header_row: int, rows: list[CalculatedEntry], table_name: str) -> None:
    for col, title in enumerate(ENTRY_HEADERS, start=1):
        ws.cell(row=header_row, column=col, value=title)
    _bold_row(ws, header_row)

    out_row = header_row + 1
    for row in rows:
        for col, value in enumerate(_entry_cells(row), start=1):
            ws.cell(row=out_row, column=col, value=value)
        for col in ("H", "I", "J", "K"):
            _money(ws[f"{col}{out_row}"])
        out_row += 1

    ws.freeze_panes = f"A{header_row + 1}"
    _set_widths(ws, {"A": 18, "B": 10, "C": 10, "D": 11, "E": 9, "F": 7, "G": 7, "H": 9, "I": 10, "J": 10, "K": 12})
    if out_row > header_row + 1:
        _add_table(ws, table_name, header_row, out_row - 1, len(ENTRY_HEADERS))


def _write_totals(ws, start_row: int, totals: CollectionTotals) -> int:
    rows = [
        ("Entries", totals.count, False),
        ("Total quantity", totals.quantity, True),
        ("Average fat", totals.average_fat, True),
        ("Total less/add", totals.less_add, True),
        ("Total net milk", totals.net_milk, True),
        ("Total amount", totals.amount, True),
    ]
    for i, (label, val, money) in enumerate(rows):
        r = start_row + i
        ws[f"A{r}"] = label
        ws[f"B{r}"] = val
        if money:
            _money(ws[f"B{r}"])
    return start_row + len(rows)


class ReportingService:
    def __init__(self, repo, max_pages: int | None = None):
        self.repo = repo
        self.max_pages = max_pages

    def session_report(
        self,
        day: Optional[date] = None,
        session_filter: SessionFilter | str = SessionFilter.BOTH,
        page: int = 0,
    ) -> SessionReport:
        session_filter = SessionFilter(session_filter)
        morning = self.repo.get_all_collections_for_session(Session.MORNING, int(page))
        evening = self.repo.get_all_collections_for_session(Session.EVENING, int(page))

        entries = select_sessions(morning, evening, session_filter)
        if day is not None:
            entries = filter_by_day(entries, day)

        page_size = int(self.repo.page_size)
        selected = {
            SessionFilter.MORNING: (morning,),
            SessionFilter.EVENING: (evening,),
        }.get(session_filter, (morning, evening))
        return SessionReport(
            day=day,
            session_filter=session_filter,
            page=int(page),
            rows=list(calculated_rows(entries)),
            totals=summarize(entries),
            has_next_page=any(len(rows) == page_size for rows in selected),
        )

    def farmer_bill(self, farmer_id: int, from_date: date, to_date: date) -> FarmerBill:
        if from_date > to_date:
            raise ValidationError("From date must not be after to date.")
        farmer = self.repo.get_farmer(int(farmer_id))
        collections = fetch_all_pages(
            lambda page: self.repo.get_paginated_collections(farmer.customer_id, page),
            max_pages=self.max_pages,
        )
        entries = filter_by_date_range(collections, from_date, to_date)
        return FarmerBill(
            farmer=farmer,
            from_date=from_date,
            to_date=to_date,
            rows=list(calculated_rows(entries)),
            totals=summarize(entries),
            balance=self.repo.get_farmer_balance(farmer.customer_id),
        )

    def transaction_statement(self, farmer_id: int) -> TransactionStatement:
        farmer = self.repo.get_farmer(int(farmer_id))
        transactions = fetch_all_pages(
            lambda page: self.repo.get_farmer_transactions(farmer.customer_id, page),
            max_pages=self.max_pages,
        )
        return TransactionStatement(
            farmer=farmer,
            transactions=transactions,
            balance=self.repo.get_farmer_balance(farmer.customer_id),
        )

    # ---------- Excel ----------
    def export_session_report_excel(self, path: str, report: SessionReport) -> None:
        wb = Workbook()
        ws = wb.active
        ws.title = "Summary"
        ws["A1"] = "Collection Report"
        ws["A1"].font = Font(bold=True, size=14)
        ws["A3"] = "Date"
        ws["B3"] = report.day.isoformat() if report.day else "All"
        ws["A4"] = "Session"
        ws["B4"] = report.session_filter.value
        ws["A5"] = "Page"
        ws["B5"] = report.page + 1
        _write_totals(ws, 7, report.totals)
        _set_widths(ws, {"A": 22, "B": 22})

        _write_entries(wb.create_sheet("Entries"), 1, report.rows, "CollectionEntries")
        wb.save(path)

    def export_bill_excel(self, path: str, bill: FarmerBill) -> None:
        wb = Workbook()
        ws = wb.active
        ws.title = "Bill"
        ws["A1"] = "Milk Collection Bill"
        ws["A1"].font = Font(bold=True, size=14)

        header = [
            ("Customer ID", bill.farmer.customer_id),
            ("Name", bill.farmer.name),
            ("Phone", bill.farmer.phone),
            ("Milk type", bill.farmer.milk_type.value),
            ("Bill period", f"{bill.from_date.isoformat()}  ->  {bill.to_date.isoformat()}"),
        ]
        for i, (label, val) in enumerate(header):
            ws[f"A{3 + i}"] = label
            ws[f"B{3 + i}"] = val

        next_row = _write_totals(ws, 9, bill.totals)
        ws[f"A{next_row}"] = balance_label(bill.balance)
        ws[f"B{next_row}"] = bill.balance
        _money(ws[f"B{next_row}"])

        _write_entries(ws, next_row + 2, bill.rows, "BillEntries")
        _set_widths(ws, {"A": 22, "B": 26})
        wb.save(path)

    def export_statement_excel(self, path: str, statement: TransactionStatement) -> None:
        wb = Workbook()
        ws = wb.active
        ws.title = "Statement"
        ws["A1"] = f"Transactions: {statement.farmer.name} ({statement.farmer.customer_id})"
        ws["A1"].font = Font(bold=True, size=14)
        ws["A3"] = balance_label(statement.balance)
        ws["B3"] = statement.balance
        _money(ws["B3"])
        ws["A4"] = "Total transactions"
        ws["B4"] = len(statement.transactions)

        ws.append([])
        ws.append(["ID", "Date", "Description", "Amount"])
        _bold_row(ws, 6)
        out_row = 7
        for t in statement.transactions:
            ws.append([t.id, to_datetime(t.timestamp).strftime("%Y-%m-%d %H:%M"), t.description, t.amount])
            _money(ws[f"D{out_row}"])
            out_row += 1

        ws.freeze_panes = "A7"
        _set_widths(ws, {"A": 22, "B": 18, "C": 34, "D": 14})
        if out_row > 7:
            _add_table(ws, "Transactions", 6, out_row - 1, 4)
        wb.save(path)

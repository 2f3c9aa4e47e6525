"""Excel export of the booking history."""

import io
from datetime import date
from typing import Iterable, Optional

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from . import models
from .filters import period_name
from .schemas import PeriodFilter
from .timeslots import format_date, format_time_range

SHEET_TITLE = "History Peminjaman"
HEADERS = ["No", "Tanggal", "Nama Peminjam", "Ruangan/Lantai", "Rentang Jam", "Keterangan"]
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

MIN_COLUMN_WIDTH = 10
MAX_COLUMN_WIDTH = 50


def export_filename(period: Optional[PeriodFilter], today: date) -> str:
    return f"History_Peminjaman_{period_name(period)}_{today.isoformat()}.xlsx"


def build_workbook(bookings: Iterable[models.Booking]) -> Workbook:
    """
    Build a one-sheet workbook listing the given bookings in order.

    Parameters
    ----------
    bookings : Iterable[Booking]
        Rows to export, already filtered and sorted.

    Returns
    -------
    Workbook
        Header row in bold on a blue fill, then one row per booking with a
        running number in the first column.
    """
    wb = Workbook()
    ws = wb.active
    ws.title = SHEET_TITLE

    for col, header in enumerate(HEADERS, start=1):
        cell = ws.cell(row=1, column=col, value=header)
        cell.font = Font(bold=True, color="FFFFFF")
        cell.fill = PatternFill(start_color="5B9BD5", end_color="5B9BD5", fill_type="solid")
        cell.alignment = Alignment(horizontal="center")

    for number, booking in enumerate(bookings, start=1):
        ws.append([
            number,
            format_date(booking.booking_date),
            booking.borrower_name,
            booking.room,
            format_time_range(booking.start_time, booking.end_time),
            booking.purpose or "",
        ])

    for column in ws.columns:
        longest = max(len(str(cell.value)) for cell in column if cell.value is not None)
        width = min(max(longest + 2, MIN_COLUMN_WIDTH), MAX_COLUMN_WIDTH)
        ws.column_dimensions[get_column_letter(column[0].column)].width = width

    ws.freeze_panes = "A2"
    return wb


def workbook_bytes(wb: Workbook) -> bytes:
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()

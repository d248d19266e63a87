"""Read the weekly timetable workbook into a course -> schedule mapping.

Workbook layout (all indices 0-based):

- the last five sheets are Monday..Friday, earlier sheets are cover/notes
- row 2 holds the period labels ("08-8:55", "1-1:55", ...)
- column 0 holds the venue of each row
- course names fill the grid from row 4 / column 1 onwards
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from app.utils.timeslots import normalize_period_label
from app.utils.timetable_errors import UnknownTimeSlot, WorkbookUnreadable

logger = logging.getLogger("app.timetable")


@dataclass(frozen=True)
class SheetLayout:
    day_count: int = 5           # trailing sheets, Monday first
    period_label_row: int = 2
    venue_col: int = 0
    first_course_row: int = 4
    first_course_col: int = 1


DEFAULT_LAYOUT = SheetLayout()


class ScheduleTriple(NamedTuple):
    venue: str
    time: str
    day: int


@dataclass
class ParsedTimetable:
    courses: Dict[str, List[ScheduleTriple]] = field(default_factory=dict)
    sheet_names: List[str] = field(default_factory=list)
    cells_seen: int = 0
    cells_skipped: int = 0
    # (day, row, col, raw label)
    unknown_time_slots: List[Tuple[int, int, int, object]] = field(default_factory=list)

    @property
    def entry_count(self) -> int:
        return sum(len(v) for v in self.courses.values())


def clean_cell_text(value) -> str:
    # "  CS  101 \t" -> "CS 101"
    if value is None:
        return ""
    return " ".join(str(value).split())


def skip_single_character_cells(text: str) -> bool:
    """Stray one-character cells in the published sheet are noise, not courses.

    Kept as its own rule so it can be dropped once the source sheet is clean.
    """
    return len(text) == 1


def _cell(rows: List[tuple], r: int, c: int):
    if r >= len(rows) or c >= len(rows[r]):
        return None
    return rows[r][c]


def _open_workbook(path):
    path = Path(path)
    if not path.is_file():
        raise WorkbookUnreadable(f"timetable file not found: {path}")
    try:
        return load_workbook(path, data_only=True)
    except (InvalidFileException, BadZipFile, KeyError, ValueError, OSError) as e:
        raise WorkbookUnreadable(f"cannot read workbook {path}: {e}") from e


def parse_day_sheet(rows: List[tuple], day: int, layout: SheetLayout = DEFAULT_LAYOUT,
                    report: Optional[ParsedTimetable] = None) -> List[Tuple[str, ScheduleTriple]]:
    """
    rows: sheet values, rows[r][c] 0-based (openpyxl iter_rows(values_only=True))
    returns [(course_name, ScheduleTriple), ...] in (row, col) order
    """
    report = report if report is not None else ParsedTimetable()
    out = []
    if not rows:
        return out

    last_row = len(rows) - 1
    last_col = max(len(r) for r in rows) - 1

    # the last used row is not part of the grid
    for r in range(layout.first_course_row, last_row):
        for c in range(layout.first_course_col, last_col + 1):
            name = clean_cell_text(_cell(rows, r, c))
            if not name:
                continue
            report.cells_seen += 1
            if skip_single_character_cells(name):
                report.cells_skipped += 1
                continue

            raw_label = _cell(rows, layout.period_label_row, c)
            try:
                time = normalize_period_label(raw_label)
            except UnknownTimeSlot:
                logger.warning(
                    "skip cell day=%d row=%d col=%d course=%r: unknown period label %r",
                    day, r, c, name, raw_label,
                )
                report.cells_skipped += 1
                report.unknown_time_slots.append((day, r, c, raw_label))
                continue

            venue = clean_cell_text(_cell(rows, r, layout.venue_col))
            out.append((name, ScheduleTriple(venue=venue, time=time, day=day)))
    return out


def aggregate_entries(entries: Iterable[Tuple[str, ScheduleTriple]]) -> Dict[str, List[ScheduleTriple]]:
    """Group by course name; duplicates are kept in encounter order."""
    grouped: Dict[str, List[ScheduleTriple]] = {}
    for name, triple in entries:
        grouped.setdefault(name, []).append(triple)
    return grouped


def parse_timetable(path, layout: SheetLayout = DEFAULT_LAYOUT) -> ParsedTimetable:
    wb = _open_workbook(path)
    try:
        names = wb.sheetnames
        if len(names) < layout.day_count:
            raise WorkbookUnreadable(
                f"expected at least {layout.day_count} day sheets, workbook has {len(names)}"
            )

        report = ParsedTimetable(sheet_names=names[-layout.day_count:])
        entries = []
        for day, sheet_name in enumerate(report.sheet_names):
            rows = list(wb[sheet_name].iter_rows(values_only=True))
            day_entries = parse_day_sheet(rows, day, layout, report)
            logger.info("sheet %r (day %d): %d entries", sheet_name, day, len(day_entries))
            entries.extend(day_entries)
    finally:
        wb.close()

    report.courses = aggregate_entries(entries)
    logger.info(
        "timetable parsed: %d courses, %d entries, %d cells skipped, %d unknown period labels",
        len(report.courses), report.entry_count, report.cells_skipped, len(report.unknown_time_slots),
    )
    return report

import os
import tempfile

# must be set before app.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="timetable-logs-"))

from unittest.mock import MagicMock

import pytest
import requests
from openpyxl import Workbook

from app.database import Base, SessionLocal, engine
from app.models import course, course_class  # noqa: F401


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


def build_workbook(path, day_sheets, leading_sheets=2):
    """
    day_sheets: list of {(row, col): value}, 0-based like the parser
    leading_sheets: cover sheets placed before the day sheets
    """
    wb = Workbook()
    wb.remove(wb.active)
    for i in range(leading_sheets):
        ws = wb.create_sheet(f"Notes {i}")
        ws.cell(row=1, column=1, value="cover")
    for i, cells in enumerate(day_sheets):
        ws = wb.create_sheet(f"Day {i}")
        for (r, c), v in cells.items():
            ws.cell(row=r + 1, column=c + 1, value=v)
    wb.save(path)
    return path


def day_sheet(courses, labels=None, footer_row=10):
    """
    courses: {(row, col): name}; venues "Room <row>" in column 0
    labels: {col: period label} for row 2, default 09-09:55 everywhere
    """
    cells = {}
    cols = {c for (_, c) in courses} or {1}
    for c in cols:
        cells[(2, c)] = (labels or {}).get(c, "09-09:55")
    for (r, c), name in courses.items():
        cells[(r, 0)] = f"Room {r}"
        cells[(r, c)] = name
    # last used row is outside the grid
    cells[(footer_row, 0)] = "footer"
    return cells


def fake_response(status=200, text="", chunks=None):
    resp = MagicMock()
    resp.status_code = status
    resp.text = text
    resp.iter_content.return_value = iter(chunks or [])
    resp.__enter__.return_value = resp
    resp.__exit__.return_value = False
    if status >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status} error")
    return resp


@pytest.fixture
def workbook_factory(tmp_path):
    def _make(day_sheets, leading_sheets=2, name="sheet.xlsx"):
        return build_workbook(tmp_path / name, day_sheets, leading_sheets)
    return _make

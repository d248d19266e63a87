"""Tests for timetable_sync.py – reconcile and the full update run."""
from unittest.mock import MagicMock

import pytest

from app.config import Settings
from app.models.course import Course
from app.models.course_class import CourseClass
from app.utils import timetable_sync
from app.utils.timetable_errors import (
    LinkNotFound,
    SourceUnavailable,
    TimetableConfigError,
    UpdateInProgress,
    WorkbookUnreadable,
)
from app.utils.timetable_sheet import ScheduleTriple
from app.utils.timetable_sync import reconcile_schedule, update_timetable

from conftest import day_sheet, fake_response

PAGE = '<div id="dlbtn-1"><a href="/tt.xlsx">Download</a></div>'


def _snapshot(db, hard_coded=False):
    rows = (
        db.query(Course.name, CourseClass.venue, CourseClass.time, CourseClass.day)
        .join(Course, Course.id == CourseClass.course_id)
        .filter(CourseClass.is_hard_coded.is_(hard_coded))
        .all()
    )
    return sorted(tuple(r) for r in rows)


def _seed_manual(db):
    c = Course(name="Seminar")
    db.add(c)
    db.flush()
    db.add(CourseClass(course_id=c.id, venue="Hall", time="16:00-16:55", day=2, is_hard_coded=True))
    db.commit()


SCHEDULE = {
    "CS101": [ScheduleTriple("Room A", "09:00-09:55", 0), ScheduleTriple("Room A", "09:00-09:55", 2)],
    "MATH 2": [ScheduleTriple("Room B", "13:00-13:55", 1)],
}


class TestReconcileSchedule:
    def test_creates_courses_and_classes(self, db):
        result = reconcile_schedule(db, SCHEDULE)

        assert result.courses_created == 2
        assert result.classes_created == 3
        assert _snapshot(db) == [
            ("CS101", "Room A", "09:00-09:55", 0),
            ("CS101", "Room A", "09:00-09:55", 2),
            ("MATH 2", "Room B", "13:00-13:55", 1),
        ]

    def test_reuses_existing_course(self, db):
        db.add(Course(name="CS101"))
        db.commit()
        existing_id = db.query(Course.id).filter(Course.name == "CS101").scalar()

        result = reconcile_schedule(db, SCHEDULE)

        assert result.courses_matched == 1
        assert result.courses_created == 1
        assert db.query(Course).filter(Course.name == "CS101").count() == 1
        ids = {cc.course_id for cc in db.query(CourseClass).all() if cc.course.name == "CS101"}
        assert ids == {existing_id}

    def test_replaces_previous_derived_rows(self, db):
        reconcile_schedule(db, {"OLD": [ScheduleTriple("X", "08:00-08:55", 4)]})
        result = reconcile_schedule(db, SCHEDULE)

        assert result.deleted == 1
        assert "OLD" not in {name for name, *_ in _snapshot(db)}
        # courses are never deleted
        assert db.query(Course).filter(Course.name == "OLD").count() == 1

    def test_manual_rows_preserved(self, db):
        _seed_manual(db)
        before = _snapshot(db, hard_coded=True)

        reconcile_schedule(db, SCHEDULE)
        reconcile_schedule(db, {})

        assert _snapshot(db, hard_coded=True) == before == [("Seminar", "Hall", "16:00-16:55", 2)]
        assert _snapshot(db) == []

    def test_idempotent(self, db):
        reconcile_schedule(db, SCHEDULE)
        first = _snapshot(db)
        reconcile_schedule(db, SCHEDULE)
        assert _snapshot(db) == first
        assert db.query(Course).count() == 2

    def test_failure_rolls_back(self, db, monkeypatch):
        reconcile_schedule(db, SCHEDULE)
        before = _snapshot(db)

        real = timetable_sync.find_or_create_course
        calls = []

        def flaky(session, name):
            calls.append(name)
            if len(calls) == 2:
                raise RuntimeError("db went away")
            return real(session, name)

        monkeypatch.setattr(timetable_sync, "find_or_create_course", flaky)

        with pytest.raises(RuntimeError):
            reconcile_schedule(db, {"NEW": [ScheduleTriple("Z", "10:00-10:55", 3)], **SCHEDULE})

        assert _snapshot(db) == before
        assert db.query(Course).filter(Course.name == "NEW").count() == 0


def _settings(tmp_path, **kw):
    values = dict(
        TIMETABLE_SITES_LINK="https://sites.google.com/view/tt",
        TIMETABLE_SITES_DOWNLOAD_BUTTON_ID="dlbtn",
        TIMETABLE_SITES_HOST="https://sites.google.com",
        TIMETABLE_FILE_PATH=str(tmp_path / "sheet.xlsx"),
        TIMETABLE_HTTP_TIMEOUT=5,
        TIMETABLE_HTTP_RETRIES=1,
    )
    values.update(kw)
    return Settings(**values)


def _http_serving(page_html, workbook_bytes):
    http = MagicMock()

    def get(url, stream=False, timeout=None):
        if stream:
            return fake_response(chunks=[workbook_bytes])
        return fake_response(text=page_html)

    http.get.side_effect = get
    return http


class TestUpdateTimetable:
    def test_full_run(self, db, tmp_path, workbook_factory):
        sheets = [day_sheet({}) for _ in range(5)]
        sheets[0] = day_sheet({(5, 2): "CS101"})
        sheets[3] = day_sheet({(4, 1): "  CS  101 ", (6, 1): "a"}, labels={1: "2-2:55"})
        src = workbook_factory(sheets, name="published.xlsx")
        http = _http_serving(PAGE, src.read_bytes())
        _seed_manual(db)

        result = update_timetable(db, _settings(tmp_path), http=http)

        assert result.download_url == "https://sites.google.com/tt.xlsx"
        assert (tmp_path / "sheet.xlsx").read_bytes() == src.read_bytes()
        assert result.courses == 2
        assert result.entries == 2
        assert result.cells_skipped == 1
        assert result.reconcile.classes_created == 2
        assert _snapshot(db) == [
            ("CS 101", "Room 4", "14:00-14:55", 3),
            ("CS101", "Room 5", "09:00-09:55", 0),
        ]
        assert _snapshot(db, hard_coded=True) == [("Seminar", "Hall", "16:00-16:55", 2)]

    def test_run_twice_same_rows(self, db, tmp_path, workbook_factory):
        src = workbook_factory([day_sheet({(4, 1): "CS101"})] * 5, name="published.xlsx")
        http = _http_serving(PAGE, src.read_bytes())

        update_timetable(db, _settings(tmp_path), http=http)
        first = _snapshot(db)
        update_timetable(db, _settings(tmp_path), http=http)

        assert _snapshot(db) == first
        assert len(first) == 5

    def test_page_500_aborts_before_download(self, db, tmp_path):
        reconcile_schedule(db, SCHEDULE)
        before = _snapshot(db)
        http = MagicMock()
        http.get.return_value = fake_response(status=500)

        with pytest.raises(SourceUnavailable):
            update_timetable(db, _settings(tmp_path), http=http)

        assert http.get.call_count == 1
        assert not (tmp_path / "sheet.xlsx").exists()
        assert _snapshot(db) == before

    def test_link_missing(self, db, tmp_path):
        http = _http_serving("<html></html>", b"")
        with pytest.raises(LinkNotFound):
            update_timetable(db, _settings(tmp_path), http=http)

    def test_bad_workbook_leaves_db_untouched(self, db, tmp_path):
        reconcile_schedule(db, SCHEDULE)
        before = _snapshot(db)
        http = _http_serving(PAGE, b"not a zip file")

        with pytest.raises(WorkbookUnreadable):
            update_timetable(db, _settings(tmp_path), http=http)

        assert _snapshot(db) == before

    def test_missing_config(self, db, tmp_path):
        with pytest.raises(TimetableConfigError):
            update_timetable(db, _settings(tmp_path, TIMETABLE_SITES_LINK=""), http=MagicMock())

    def test_overlapping_run_rejected(self, db, tmp_path):
        http = MagicMock()
        assert timetable_sync._update_lock.acquire(blocking=False)
        try:
            with pytest.raises(UpdateInProgress):
                update_timetable(db, _settings(tmp_path), http=http)
        finally:
            timetable_sync._update_lock.release()
        http.get.assert_not_called()

    def test_lock_released_after_failure(self, db, tmp_path):
        http = MagicMock()
        http.get.return_value = fake_response(status=500)
        with pytest.raises(SourceUnavailable):
            update_timetable(db, _settings(tmp_path), http=http)
        assert not timetable_sync._update_lock.locked()

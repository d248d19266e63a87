"""Replace the derived timetable rows with the freshly published spreadsheet.

``update_timetable`` runs resolve -> download -> parse -> reconcile. Nothing is
written to the database until the whole workbook has been parsed, and the
reconcile step is a single transaction.
"""
import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from app.config import Settings, settings as default_settings
from app.models.course import Course
from app.models.course_class import CourseClass
from app.utils.timetable_errors import TimetableConfigError, UpdateInProgress
from app.utils.timetable_sheet import ParsedTimetable, ScheduleTriple, parse_timetable
from app.utils.timetable_source import download_file, resolve_download_link

logger = logging.getLogger("app.timetable")

_update_lock = threading.Lock()


@dataclass
class ReconcileResult:
    deleted: int = 0
    courses_created: int = 0
    courses_matched: int = 0
    classes_created: int = 0


@dataclass
class TimetableUpdateResult:
    download_url: str
    file_path: str
    sheets: List[str] = field(default_factory=list)
    courses: int = 0
    entries: int = 0
    cells_skipped: int = 0
    unknown_time_slots: int = 0
    reconcile: Optional[ReconcileResult] = None


def find_or_create_course(db: Session, name: str):
    """-> (course, created)"""
    course = db.query(Course).filter(Course.name == name).first()
    if course:
        return course, False
    course = Course(name=name)
    db.add(course)
    db.flush()
    return course, True


def reconcile_schedule(db: Session, course_schedule: Dict[str, List[ScheduleTriple]]) -> ReconcileResult:
    result = ReconcileResult()
    try:
        result.deleted = (
            db.query(CourseClass)
            .filter(CourseClass.is_hard_coded.is_(False))
            .delete(synchronize_session=False)
        )

        for name in sorted(course_schedule):
            course, created = find_or_create_course(db, name)
            if created:
                result.courses_created += 1
            else:
                result.courses_matched += 1

            for t in course_schedule[name]:
                db.add(CourseClass(
                    course_id=course.id,
                    venue=t.venue,
                    time=t.time,
                    day=t.day,
                    is_hard_coded=False,
                ))
                result.classes_created += 1

        db.commit()
    except Exception:
        db.rollback()
        logger.exception("timetable reconcile failed, rolled back")
        raise

    logger.info(
        "timetable reconciled: deleted=%d courses_created=%d courses_matched=%d classes_created=%d",
        result.deleted, result.courses_created, result.courses_matched, result.classes_created,
    )
    return result


def update_timetable(db: Session, settings: Settings = default_settings, http=None) -> TimetableUpdateResult:
    if not settings.TIMETABLE_SITES_LINK or not settings.TIMETABLE_SITES_DOWNLOAD_BUTTON_ID:
        raise TimetableConfigError(
            "TIMETABLE_SITES_LINK and TIMETABLE_SITES_DOWNLOAD_BUTTON_ID must be set"
        )

    if not _update_lock.acquire(blocking=False):
        raise UpdateInProgress("a timetable update is already running")

    try:
        logger.info("timetable update started: %s", settings.TIMETABLE_SITES_LINK)

        url = resolve_download_link(
            settings.TIMETABLE_SITES_LINK,
            settings.TIMETABLE_SITES_DOWNLOAD_BUTTON_ID,
            site_host=settings.TIMETABLE_SITES_HOST,
            timeout=settings.TIMETABLE_HTTP_TIMEOUT,
            attempts=settings.TIMETABLE_HTTP_RETRIES,
            session=http,
        )
        path = download_file(
            url,
            settings.TIMETABLE_FILE_PATH,
            timeout=settings.TIMETABLE_HTTP_TIMEOUT,
            chunk_size=settings.TIMETABLE_DOWNLOAD_CHUNK_SIZE,
            attempts=settings.TIMETABLE_HTTP_RETRIES,
            session=http,
        )
        parsed: ParsedTimetable = parse_timetable(path)

        reconciled = reconcile_schedule(db, parsed.courses)
    finally:
        _update_lock.release()

    return TimetableUpdateResult(
        download_url=url,
        file_path=str(path),
        sheets=parsed.sheet_names,
        courses=len(parsed.courses),
        entries=parsed.entry_count,
        cells_skipped=parsed.cells_skipped,
        unknown_time_slots=len(parsed.unknown_time_slots),
        reconcile=reconciled,
    )

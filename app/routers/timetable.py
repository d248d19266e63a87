from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.models.course import Course
from app.models.course_class import CourseClass
from app.schemas.timetable import TimetableOut, TimetableSlotOut, TimetableUpdateOut
from app.utils.timetable_errors import (
    DownloadFailed,
    LinkNotFound,
    SourceUnavailable,
    TimetableConfigError,
    TimetableError,
    UpdateInProgress,
    WorkbookUnreadable,
)
from app.utils.timetable_sync import update_timetable

import logging
logger = logging.getLogger("app.timetable")


router = APIRouter(prefix="/timetable", tags=["Timetable"])

ERROR_STATUS = {
    SourceUnavailable: 502,
    LinkNotFound: 502,
    DownloadFailed: 502,
    WorkbookUnreadable: 422,
    UpdateInProgress: 409,
    TimetableConfigError: 500,
}


@router.get("", response_model=TimetableOut)
def get_timetable(
    db: Session = Depends(get_db),
    day: Optional[int] = Query(None, ge=0, le=4, description="0=Mon .. 4=Fri"),
):
    q = (
        db.query(CourseClass, Course.name)
        .join(Course, Course.id == CourseClass.course_id)
    )
    if day is not None:
        q = q.filter(CourseClass.day == day)
    rows = q.order_by(CourseClass.day, CourseClass.time, Course.name, CourseClass.venue).all()

    grid = {str(d): [] for d in range(5)} if day is None else {str(day): []}
    for cc, course_name in rows:
        grid.setdefault(str(cc.day), []).append(
            TimetableSlotOut(
                class_id=cc.id,
                course_id=cc.course_id,
                course_name=course_name,
                venue=cc.venue,
                time=cc.time,
                day=cc.day,
                is_hard_coded=cc.is_hard_coded,
            )
        )
    return TimetableOut(total=len(rows), grid=grid)


@router.post("/update", response_model=TimetableUpdateOut)
def run_timetable_update(db: Session = Depends(get_db)):
    try:
        result = update_timetable(db, settings)
    except TimetableError as e:
        status = ERROR_STATUS.get(type(e), 500)
        logger.error("timetable update failed stage=%s: %s", e.stage, e.message)
        raise HTTPException(status_code=status, detail=e.to_detail())
    return TimetableUpdateOut.model_validate(result)

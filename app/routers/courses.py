# app/routers/courses.py
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.course import Course
from app.models.course_class import CourseClass
from app.schemas.course import (
    CourseClassIn, CourseClassOut,
    CourseCreate, CourseUpdate,
    CourseOut, CourseDetailOut,
)

import logging
logger = logging.getLogger("app.courses")


router = APIRouter(prefix="/courses", tags=["Courses"])


def get_course_or_404(db: Session, course_id: int) -> Course:
    c = db.query(Course).filter(Course.id == course_id).first()
    if not c:
        raise HTTPException(status_code=404, detail="Course not found")
    return c


def ensure_name_free(db: Session, name: str, exclude_id: Optional[int] = None):
    q = db.query(Course.id).filter(Course.name == name)
    if exclude_id is not None:
        q = q.filter(Course.id != exclude_id)
    if q.first():
        raise HTTPException(status_code=400, detail="Course name already exists")


@router.get("", response_model=List[CourseOut])
def list_courses(
    db: Session = Depends(get_db),
    name: Optional[str] = Query(None, description="課程名稱關鍵字"),
):
    q = db.query(Course)
    if name:
        q = q.filter(Course.name.ilike(f"%{name}%"))
    return q.order_by(Course.name.asc()).all()


@router.get("/{course_id}", response_model=CourseDetailOut)
def get_course(course_id: int, db: Session = Depends(get_db)):
    c = get_course_or_404(db, course_id)
    out = CourseDetailOut.model_validate(c)
    out.classes.sort(key=lambda x: (x.day, x.time or "", x.venue))
    return out


@router.post("", response_model=CourseOut, status_code=201)
def create_course(body: CourseCreate, db: Session = Depends(get_db)):
    name = body.name.strip()
    ensure_name_free(db, name)

    c = Course(name=name)
    db.add(c)
    db.commit()
    db.refresh(c)
    logger.info("course created id=%s name=%r", c.id, c.name)
    return c


@router.put("/{course_id}", response_model=CourseOut)
def update_course(course_id: int, body: CourseUpdate, db: Session = Depends(get_db)):
    c = get_course_or_404(db, course_id)

    data = body.model_dump(exclude_unset=True)
    if data.get("name") is not None:
        data["name"] = data["name"].strip()
        ensure_name_free(db, data["name"], exclude_id=c.id)

    # 只更新有變動的欄位
    for k, v in data.items():
        if v is not None and getattr(c, k) != v:
            setattr(c, k, v)

    db.commit()
    db.refresh(c)
    return c


@router.delete("/{course_id}", status_code=204)
def delete_course(course_id: int, db: Session = Depends(get_db)):
    c = get_course_or_404(db, course_id)
    db.delete(c)
    db.commit()
    logger.info("course deleted id=%s", course_id)


@router.post("/{course_id}/classes", response_model=CourseClassOut, status_code=201)
def add_manual_class(course_id: int, body: CourseClassIn, db: Session = Depends(get_db)):
    """Operator-entered class; kept across timetable updates."""
    get_course_or_404(db, course_id)

    cc = CourseClass(
        course_id=course_id,
        venue=body.venue.strip(),
        time=body.time,
        day=body.day,
        is_hard_coded=True,
    )
    db.add(cc)
    db.commit()
    db.refresh(cc)
    return cc


@router.delete("/{course_id}/classes/{class_id}", status_code=204)
def delete_class(course_id: int, class_id: int, db: Session = Depends(get_db)):
    deleted = (
        db.query(CourseClass)
        .filter(CourseClass.id == class_id, CourseClass.course_id == course_id)
        .delete(synchronize_session=False)
    )
    if not deleted:
        raise HTTPException(status_code=404, detail="Class not found")
    db.commit()

from sqlalchemy import Column, Integer, String, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from app.database import Base

class CourseClass(Base):
    __tablename__ = "course_class"

    id = Column(Integer, primary_key=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)

    venue = Column(String(100), nullable=False, default="")
    # "HH:MM-HH:MM"
    time = Column(String(11))
    # 0 = Monday .. 4 = Friday
    day = Column(Integer, nullable=False)
    # operator-entered rows, never touched by the timetable sync
    is_hard_coded = Column(Boolean, nullable=False, default=False, index=True)

    course = relationship("Course", back_populates="classes")

from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship
from app.database import Base

class Course(Base):
    __tablename__ = "courses"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False, unique=True, index=True)

    # relationship
    classes = relationship(
        "CourseClass",
        back_populates="course",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class CourseClassIn(BaseModel):
    venue: str = ""
    time: Optional[str] = Field(default=None, description="例如 09:00-09:55")
    day: int = Field(ge=0, le=4, description="0=Mon .. 4=Fri")


class CourseClassOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    venue: str
    time: Optional[str] = None
    day: int
    is_hard_coded: bool


class CourseCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)


class CourseUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)


class CourseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class CourseDetailOut(CourseOut):
    classes: List[CourseClassOut] = []

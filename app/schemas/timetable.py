from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict


class TimetableSlotOut(BaseModel):
    class_id: int
    course_id: int
    course_name: str
    venue: str
    time: Optional[str] = None
    day: int
    is_hard_coded: bool


class TimetableOut(BaseModel):
    total: int
    grid: Dict[str, List[TimetableSlotOut]]  # "0".."4"


class ReconcileOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    deleted: int
    courses_created: int
    courses_matched: int
    classes_created: int


class TimetableUpdateOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    download_url: str
    file_path: str
    sheets: List[str]
    courses: int
    entries: int
    cells_skipped: int
    unknown_time_slots: int
    reconcile: Optional[ReconcileOut] = None

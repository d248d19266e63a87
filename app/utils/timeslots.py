from typing import Dict

from app.utils.timetable_errors import UnknownTimeSlot


# Period labels as printed in row 3 of every day sheet -> 24h range.
# Afternoon periods are written without the 12h offset ("1-1:55" is 13:00).
PERIOD_LABELS: Dict[str, str] = {
    "08-8:55": "08:00-08:55",
    "09-09:55": "09:00-09:55",
    "10-10:55": "10:00-10:55",
    "11-11:55": "11:00-11:55",
    "12-12:55": "12:00-12:55",
    "1-1:55": "13:00-13:55",
    "2-2:55": "14:00-14:55",
    "3-3:55": "15:00-15:55",
}


def normalize_period_label(raw) -> str:
    """
    "1-1:55" -> "13:00-13:55"
    raises UnknownTimeSlot for anything not in PERIOD_LABELS
    """
    if raw is None:
        raise UnknownTimeSlot(raw)
    label = str(raw).strip()
    try:
        return PERIOD_LABELS[label]
    except KeyError:
        raise UnknownTimeSlot(raw) from None

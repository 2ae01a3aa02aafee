"""Constants for timetable generation."""

# Wildcard accepted in restriction day lists
ALL_DAYS = "All days"

# Saturday is part of the week but never scheduled
SCHEDULING_DAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]

# A lab session always spans two adjacent slots
LAB_BLOCK_LENGTH = 2

# Ordinal year labels used by restrictions -> academic year codes
YEAR_LABEL_TO_CODE = {
    "1st Year": "FE",
    "2nd Year": "SE",
    "3rd Year": "TE",
    "4th Year": "BE",
}

YEAR_CODE_TO_LABEL = {code: label for label, code in YEAR_LABEL_TO_CODE.items()}

# Restriction names containing one of these mark open-elective slots
ELECTIVE_KEYWORDS = ["open elective", "elective"]
ELECTIVE_TOKENS = ["oe"]

# Default lecture pass bound: days x slots x this factor
ROTATION_ATTEMPT_FACTOR = 2

# CP-SAT time limit per lab day (seconds)
DEFAULT_CP_TIME_LIMIT = 10.0

# Default time grid, used when an input file carries no timeSlots
DEFAULT_TIME_SLOTS = [
    {"slotNumber": 1, "startTime": "09:00", "endTime": "10:00"},
    {"slotNumber": 2, "startTime": "10:00", "endTime": "11:00"},
    {"slotNumber": 3, "startTime": "11:15", "endTime": "12:15"},
    {"slotNumber": 4, "startTime": "12:15", "endTime": "13:15"},
    {"slotNumber": 5, "startTime": "14:00", "endTime": "15:00"},
    {"slotNumber": 6, "startTime": "15:00", "endTime": "16:00"},
]


def year_code_for_label(label: str) -> str | None:
    """Get the academic year code for an ordinal label (e.g. '2nd Year' -> 'SE').

    Codes themselves are accepted and returned unchanged.
    """
    if label in YEAR_LABEL_TO_CODE:
        return YEAR_LABEL_TO_CODE[label]
    if label in YEAR_CODE_TO_LABEL:
        return label
    return None


def is_elective_restriction_name(name: str) -> bool:
    """Check if a restriction name refers to open-elective slots."""
    lowered = name.lower()
    if any(keyword in lowered for keyword in ELECTIVE_KEYWORDS):
        return True
    tokens = lowered.replace("-", " ").replace("/", " ").split()
    return any(token in ELECTIVE_TOKENS for token in tokens)

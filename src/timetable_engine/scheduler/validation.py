"""Double-booking checks over committed sessions."""

import logging
from collections.abc import Iterable

from ..models import ConflictRecord, Day, LabSession, LectureSession

logger = logging.getLogger(__name__)


def _occupancy(
    labs: Iterable[LabSession], lectures: Iterable[LectureSession]
) -> list[tuple[Day, int, LabSession | LectureSession]]:
    """Flatten sessions into (day, slot, session) entries."""
    entries = []
    for lab in labs:
        for slot in lab.slots:
            entries.append((lab.day, slot, lab))
    for lecture in lectures:
        entries.append((lecture.day, lecture.slot_number, lecture))
    return entries


def _room_of(session: LabSession | LectureSession) -> str:
    if isinstance(session, LabSession):
        return session.lab_id
    return session.classroom_id


def validate_sessions(
    labs: list[LabSession], lectures: list[LectureSession]
) -> list[ConflictRecord]:
    """
    Check committed sessions for double bookings.

    Reports, per (day, slot):
    - a teacher holding more than one session
    - a room holding more than one session
    - a batch in more than one lab
    - a division in more than one lecture
    - a lecture placed over a lab of the same division

    Returns:
        One ConflictRecord per offending pair; empty when the schedule is clean
    """
    violations: list[ConflictRecord] = []
    teachers: dict[tuple[str, Day, int], LabSession | LectureSession] = {}
    rooms: dict[tuple[str, Day, int], LabSession | LectureSession] = {}
    batches: dict[tuple[str, Day, int], LabSession] = {}
    lab_divisions: set[tuple[str, Day, int]] = set()
    lecture_divisions: dict[tuple[str, Day, int], LectureSession] = {}

    for day, slot, session in _occupancy(labs, lectures):
        teacher_key = (session.teacher.id, day, slot)
        if teacher_key in teachers:
            violations.append(
                ConflictRecord(
                    kind="teacher_double_booking",
                    details=f"{teachers[teacher_key].formatted} vs {session.formatted}",
                    day=day,
                    slot=slot,
                    resource=session.teacher.id,
                )
            )
        else:
            teachers[teacher_key] = session

        room_key = (_room_of(session), day, slot)
        if room_key in rooms:
            violations.append(
                ConflictRecord(
                    kind="room_double_booking",
                    details=f"{rooms[room_key].formatted} vs {session.formatted}",
                    day=day,
                    slot=slot,
                    resource=_room_of(session),
                )
            )
        else:
            rooms[room_key] = session

        if isinstance(session, LabSession):
            batch_key = (session.batch, day, slot)
            if batch_key in batches:
                violations.append(
                    ConflictRecord(
                        kind="batch_double_booking",
                        details=f"{batches[batch_key].formatted} vs {session.formatted}",
                        day=day,
                        slot=slot,
                        resource=session.batch,
                    )
                )
            else:
                batches[batch_key] = session
            lab_divisions.add((session.division, day, slot))
            continue

        division_key = (session.division, day, slot)
        if division_key in lecture_divisions:
            violations.append(
                ConflictRecord(
                    kind="division_double_booking",
                    details=(
                        f"{lecture_divisions[division_key].formatted} vs {session.formatted}"
                    ),
                    day=day,
                    slot=slot,
                    resource=session.division,
                )
            )
        else:
            lecture_divisions[division_key] = session

        if division_key in lab_divisions:
            violations.append(
                ConflictRecord(
                    kind="lecture_over_lab",
                    details=f"{session.formatted} overlaps a lab of {session.division}",
                    day=day,
                    slot=slot,
                    resource=session.division,
                )
            )

    if violations:
        logger.warning(f"Schedule validation found {len(violations)} violations")
    return violations

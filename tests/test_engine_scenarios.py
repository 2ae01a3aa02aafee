"""Randomized end-to-end runs checking the timetable-wide guarantees."""

import random
from collections import Counter

import pytest

from timetable_engine import EngineSettings, TimetableEngine, parse_input
from timetable_engine.constants import DEFAULT_TIME_SLOTS

SEEDS = range(8)
DAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]


def _random_document(seed):
    rng = random.Random(seed)
    teachers = [f"t{i}" for i in range(rng.randint(3, 8))]

    divisions = []
    labs = []
    lectures = []
    for d in range(rng.randint(1, 4)):
        year = rng.choice(["SE", "TE"])
        name = f"{year}-{chr(ord('A') + d)}"
        batches = [f"{name}{b}" for b in range(1, rng.randint(2, 3) + 1)]
        divisions.append({"name": name, "academicYear": year, "batches": batches})
        for subject in rng.sample(["DSL", "OSL", "CNL"], rng.randint(1, 2)):
            for batch in batches:
                labs.append({
                    "division": name,
                    "batch": batch,
                    "subject": subject,
                    "teacherId": rng.choice(teachers),
                    "hoursPerWeek": rng.choice([2, 2, 4]),
                })
        for subject in rng.sample(["DSA", "OS", "CN", "DBMS"], rng.randint(2, 3)):
            lectures.append({
                "division": name,
                "subject": subject,
                "teacherId": rng.choice(teachers),
                "hoursPerWeek": rng.randint(1, 4),
            })

    restrictions = [
        {"restrictionName": "Recess", "scope": "global", "days": ["All days"],
         "timeSlots": [rng.choice([4, 6])]},
    ]
    if rng.random() < 0.5:
        restrictions.append({
            "restrictionName": "Seminar", "scope": "year-specific",
            "days": [rng.choice(DAYS)], "timeSlots": rng.sample(range(1, 7), 2),
            "affectedYears": [rng.choice(["2nd Year", "3rd Year"])],
        })
    if rng.random() < 0.5:
        restrictions.append({
            "restrictionName": "Leave", "days": [rng.choice(DAYS)],
            "timeSlots": list(range(1, 7)), "teacherId": rng.choice(teachers),
        })

    resources = [
        {"name": f"LAB-{i}", "type": "laboratory"} for i in range(1, rng.randint(3, 6) + 1)
    ]
    resources += [
        {"name": f"CR-{i}", "type": "classroom"} for i in range(1, len(divisions) + 2)
    ]

    return {
        "divisions": divisions,
        "labAssignments": labs,
        "lectureAssignments": lectures,
        "resources": resources,
        "timeSlots": DEFAULT_TIME_SLOTS,
        "restrictions": restrictions,
    }


class TestRandomizedScenarios:
    """Whole-week guarantees over varied teacher sharing and restrictions."""

    @pytest.mark.parametrize("strategy", ["heuristic", "cp-sat"])
    @pytest.mark.parametrize("seed", SEEDS)
    def test_no_double_bookings(self, seed, strategy):
        data = parse_input(_random_document(seed))
        settings = EngineSettings(allocation_strategy=strategy, cp_time_limit=2)

        result = TimetableEngine(settings).generate(data, run_id=f"seed-{seed}")

        if not result.success:
            assert result.lab_sessions == []
            assert result.lecture_sessions == []
            return
        assert result.violations == []
        assert not any(s.teacher_conflict for s in result.lab_sessions)

        per_day = Counter((s.division, s.subject, s.day) for s in result.lecture_sessions)
        assert all(count == 1 for count in per_day.values())

    @pytest.mark.parametrize("seed", SEEDS)
    def test_lab_hours_never_exceed_requirements(self, seed):
        data = parse_input(_random_document(seed))

        result = TimetableEngine().generate(data)

        required = Counter()
        for req in data.lab_requirements:
            required[(req.batch, req.subject)] += req.hours_per_week
        placed = Counter()
        for session in result.lab_sessions:
            placed[(session.batch, session.subject)] += len(session.slots)
        assert all(placed[key] <= required[key] for key in placed)

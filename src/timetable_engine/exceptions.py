"""Custom exceptions for the timetable engine."""


class TimetableError(Exception):
    """Base exception for timetable engine errors."""

    pass


class MissingTimeGridError(TimetableError):
    """No active time slot configuration was supplied."""

    def __init__(self, message: str | None = None):
        super().__init__(
            message
            or "Time slot configuration not found. "
            "Configure the daily time grid before generating a timetable."
        )


class InvalidInputError(TimetableError):
    """Input data validation failed."""

    def __init__(
        self, message: str, source: str | None = None, record: int | None = None
    ):
        self.source = source
        self.record = record
        location = ""
        if source:
            location += f" in '{source}'"
        if record is not None:
            location += f" at record {record}"
        super().__init__(f"Invalid input{location}: {message}")


class CapacityShortfallError(TimetableError):
    """Resource inventory cannot cover the weekly requirements."""

    def __init__(self, resource: str, current: int, required: int):
        self.resource = resource
        self.current = current
        self.required = required
        super().__init__(
            f"Insufficient {resource} capacity: {current} available, "
            f"{required} required ({required - current} more needed)"
        )

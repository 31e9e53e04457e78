"""Parser for crontab text.

Field grammar: a comma-separated list of items, each one of
``*``, ``N`` or ``N-M``. A wildcard or a range may carry a ``/S`` step.

Line format::

    <minute> <hour> <day-of-month> <month> <day-of-week> <command...>
"""
import re

from .models import Entry
from .types import (
    FIELDS,
    Constraint,
    CrontabParseError,
    FieldParseError,
    Schedule,
)


ITEM_PATTERN = re.compile(r"(?:(?P<star>\*)|(?P<begin>[0-9]+)(?:-(?P<end>[0-9]+))?)(?:/(?P<step>[0-9]+))?")

# Five fields then the command, separated by spaces or tabs
FIELD_SEPARATOR = re.compile(r"[ \t]+")


def parse_field(text: str, limit: int, one_indexed: bool) -> Constraint:
    """Parse one schedule field.

    Args:
        text: Field text, e.g. ``"*/15"`` or ``"1-5,7"``
        limit: Domain size; every value must be below it
        one_indexed: Whether 0 is outside the domain

    Returns:
        The parsed constraint

    Raises:
        FieldParseError: On bad syntax or an out-of-range value
    """
    valid = [False] * limit

    for item in text.split(","):
        match = ITEM_PATTERN.fullmatch(item)
        if match is None:
            raise FieldParseError(text, f"bad item {item!r}")

        if match["star"]:
            begin = 1 if one_indexed else 0
            end = limit - 1
        else:
            begin = int(match["begin"])
            end = int(match["end"]) if match["end"] is not None else begin
            if match["step"] is not None and match["end"] is None:
                raise FieldParseError(text, f"step on single value {item!r}")

        step = int(match["step"]) if match["step"] is not None else 1
        if step == 0:
            raise FieldParseError(text, "step must be positive")

        if begin >= limit or end >= limit:
            raise FieldParseError(text, f"value out of range (limit {limit})")
        if one_indexed and (begin == 0 or end == 0):
            raise FieldParseError(text, "zero in one-indexed field")

        for value in range(begin, end + 1, step):
            valid[value] = True

    return Constraint(tuple(valid))


def parse_line(line: str, lineno: int = 0) -> Entry | None:
    """Parse one crontab line.

    Returns:
        The entry, or None for blank and comment lines

    Raises:
        CrontabParseError: If the line is malformed
    """
    stripped = line.strip(" \t")
    if not stripped or stripped.startswith("#"):
        return None

    parts = FIELD_SEPARATOR.split(stripped, maxsplit=len(FIELDS))
    if len(parts) <= len(FIELDS):
        reason = "missing command" if len(parts) == len(FIELDS) else "expected five fields"
        raise CrontabParseError(lineno, line, reason)

    texts, command = parts[:len(FIELDS)], parts[len(FIELDS)]

    constraints = []
    for spec, text in zip(FIELDS, texts):
        try:
            constraints.append(parse_field(text, spec.limit, spec.one_indexed))
        except FieldParseError as e:
            raise CrontabParseError(lineno, line, f"{spec.name}: {e}") from e

    return Entry(
        command=command,
        schedule=Schedule(*constraints),
        lineno=lineno,
        expression=" ".join(texts),
    )


def parse_crontab(text: str) -> list[Entry]:
    """Parse a whole crontab file.

    Any bad line rejects the whole file.

    Raises:
        CrontabParseError: For the first malformed line
    """
    entries = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        entry = parse_line(line, lineno)
        if entry is not None:
            entries.append(entry)
    return entries

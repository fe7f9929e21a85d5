"""Decoder for the tabular text printed by LSF commands.

LSF tools print a header row followed by one row per object, separated by
runs of spaces whose width depends on the values. Two modes are supported:

- strict (``decode_table``): a single delimiter character, quoted fields may
  contain the delimiter, leading separators of a field are skipped. Columns
  are matched by header name.
- loose (``decode_loose``): the first N columns are split on whitespace runs
  and the rest of the line is kept as one free-text column.

Malformed rows are logged and skipped; decoding carries on with the next row.
"""

import csv
from collections.abc import Iterable, Iterator
from typing import TypeAlias, TypeVar

import pydantic
import structlog

from ..errors import DecodeError

logger = structlog.get_logger(__name__)

RawRecord: TypeAlias = dict[str, str]
M = TypeVar("M", bound=pydantic.BaseModel)


def _lines(output: bytes) -> Iterator[tuple[int, str]]:
    """Yield (line number, line) with trailing whitespace removed.

    Blank lines are dropped.
    """
    text = output.decode(errors="replace")
    for number, line in enumerate(text.splitlines(), start=1):
        stripped = line.rstrip()
        if stripped:
            yield number, stripped


def _tokenize(line: str, number: int, delimiter: str) -> list[str]:
    try:
        return next(csv.reader([line], delimiter=delimiter, skipinitialspace=True))
    except csv.Error as e:
        raise DecodeError(number, str(e)) from e


def _strict_row(
    header: list[str],
    line: str,
    number: int,
    delimiter: str,
    fill_missing: str | None,
) -> RawRecord:
    fields = _tokenize(line, number, delimiter)
    if len(fields) > len(header):
        msg = f"expected {len(header)} fields, got {len(fields)}"
        raise DecodeError(number, msg)
    if len(fields) < len(header):
        if fill_missing is None:
            msg = f"expected {len(header)} fields, got {len(fields)}"
            raise DecodeError(number, msg)
        fields += [fill_missing] * (len(header) - len(fields))
    return dict(zip(header, fields, strict=True))


def decode_table(
    output: bytes,
    *,
    delimiter: str = " ",
    fill_missing: str | None = None,
) -> Iterator[RawRecord]:
    """Decode delimiter-separated output with a header row.

    Args:
        output: Raw command output.
        delimiter: Single field separator character.
        fill_missing: Token used to pad rows shorter than the header. When
            None, short rows are skipped as malformed.

    Yields:
        One mapping of header name to raw value per valid data row.

    Raises:
        ValueError: If delimiter is not a single character.
        DecodeError: If the header row itself cannot be tokenized.
    """
    if len(delimiter) != 1:
        msg = "delimiter must be a single character"
        raise ValueError(msg)

    lines = _lines(output)
    first = next(lines, None)
    if first is None:
        return
    header = _tokenize(first[1], first[0], delimiter)

    for number, line in lines:
        try:
            yield _strict_row(header, line, number, delimiter, fill_missing)
        except DecodeError as e:
            logger.warning("Skipping malformed row", line=number, reason=e.reason)


def decode_loose(
    output: bytes,
    *,
    positional: int,
    rest_column: str,
) -> Iterator[RawRecord]:
    """Decode output whose trailing columns have ragged widths.

    The first ``positional`` header names are matched to the first
    ``positional`` whitespace-separated tokens of each row. Whatever follows
    is stored verbatim (minus leading whitespace) under ``rest_column``, or
    as an empty string if the row ends early.

    Raises:
        ValueError: If positional is not positive.
        DecodeError: If the header has fewer than ``positional`` names.
    """
    if positional <= 0:
        msg = "positional must be positive"
        raise ValueError(msg)

    lines = _lines(output)
    first = next(lines, None)
    if first is None:
        return
    header = first[1].split()
    if len(header) < positional:
        msg = f"header has {len(header)} columns, expected at least {positional}"
        raise DecodeError(first[0], msg)

    for number, line in lines:
        tokens = line.split(None, positional)
        if len(tokens) < positional:
            logger.warning(
                "Skipping malformed row",
                line=number,
                reason=f"expected at least {positional} fields, got {len(tokens)}",
            )
            continue
        record = dict(zip(header[:positional], tokens[:positional], strict=True))
        record[rest_column] = tokens[positional] if len(tokens) > positional else ""
        yield record


def decode_models(records: Iterable[RawRecord], model: type[M]) -> Iterator[M]:
    """Validate raw records into ``model`` instances.

    Records failing validation (typically a missing column) are logged and
    skipped.
    """
    for index, record in enumerate(records):
        try:
            yield model.model_validate(record)
        except pydantic.ValidationError as e:
            logger.warning(
                "Skipping invalid record",
                model=model.__name__,
                record_index=index,
                errors=e.error_count(),
            )

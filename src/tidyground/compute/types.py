"""Semantic types of the columns handled by the engine.

Arrow has a rich type system: integers of multiple widths,
floats, decimals, multiple flavours of strings and dates...
When joining or reshaping data most of those differences
don't matter, what matters is the *kind* of data stored
in the column, so that we can refuse to compare things that
make no sense to compare (like a date and a number)
instead of silently coercing one into the other.

The engine recognises five semantic types:

* ``NUMBER``: integers, floating point and decimal values.
* ``TEXT``: strings.
* ``BOOLEAN``: true/false values.
* ``DATE``: calendar dates and timestamps.
* ``CATEGORICAL``: dictionary encoded columns, where the
  dictionary provides the levels of the category.

A column whose values are all missing has the Arrow ``null`` type,
it is reported as ``NULL`` and is considered comparable with any other type
as there is no value in it that could be compared.

>>> import pyarrow as pa
>>> semantic_type(pa.int32())
<SemanticType.NUMBER: 'number'>
>>> semantic_type(pa.dictionary(pa.int8(), pa.string()))
<SemanticType.CATEGORICAL: 'categorical'>
>>> comparable(pa.int64(), pa.float64())
True
>>> comparable(pa.int64(), pa.string())
False
"""

import enum

import pyarrow as pa

from ..errors import UnsupportedColumnTypeError


class SemanticType(enum.Enum):
    """The kind of values stored in a column."""

    NUMBER = "number"
    TEXT = "text"
    BOOLEAN = "boolean"
    DATE = "date"
    CATEGORICAL = "categorical"
    NULL = "null"


def semantic_type(datatype: pa.DataType) -> SemanticType:
    """Get the semantic type of an Arrow data type.

    :param datatype: The Arrow type of a column.
    :raises UnsupportedColumnTypeError: For nested or binary types.
    """
    if pa.types.is_dictionary(datatype):
        return SemanticType.CATEGORICAL
    elif pa.types.is_null(datatype):
        return SemanticType.NULL
    elif pa.types.is_boolean(datatype):
        return SemanticType.BOOLEAN
    elif (
        pa.types.is_integer(datatype)
        or pa.types.is_floating(datatype)
        or pa.types.is_decimal(datatype)
    ):
        return SemanticType.NUMBER
    elif pa.types.is_string(datatype) or pa.types.is_large_string(datatype):
        return SemanticType.TEXT
    elif pa.types.is_date(datatype) or pa.types.is_timestamp(datatype):
        return SemanticType.DATE
    raise UnsupportedColumnTypeError(f"Unsupported column type: {datatype}")


def value_type(datatype: pa.DataType) -> pa.DataType:
    """The type of the values stored in a column.

    For categorical columns that's the type of the levels,
    for every other column it's the type itself.
    """
    if pa.types.is_dictionary(datatype):
        return datatype.value_type
    return datatype


def decode(array: pa.Array) -> pa.Array:
    """Replace a categorical array with an array of its levels."""
    if pa.types.is_dictionary(array.type):
        return array.dictionary_decode()
    return array


def comparable(left: pa.DataType, right: pa.DataType) -> bool:
    """Check if values of two column types can be compared for equality.

    Two columns are comparable when their values can be converted
    to a common type without losing information, see :func:`common_type`.
    Categorical columns are compared by their levels, so a categorical
    of strings is comparable with a text column.
    Dates can only be compared with dates, and timestamps with timestamps,
    as a calendar day and an instant in time are never equal.
    """
    return common_type([left, right]) is not None


TIME_UNITS = ("s", "ms", "us", "ns")

# Digits required by the largest integer of each width.
INTEGER_DIGITS = {8: 3, 16: 5, 32: 10, 64: 20}


def common_type(types: list[pa.DataType]) -> pa.DataType | None:
    """Find the type able to hold the values of all the provided types.

    Used when values coming from different columns have to
    end up in the same column, or have to be compared:

    * Identical types are preserved.
    * ``null`` columns adopt the type of the other columns.
    * Integers are widened to ``int64`` (``uint64`` if all of them are unsigned).
      A ``uint64`` mixed with signed integers needs a ``decimal128(20, 0)``.
    * Decimals mixed with integers become a decimal wide enough for both,
      mixed with floating point numbers they become ``float64``.
    * Text and categoricals of text are merged into plain text.
    * Dates become ``date32``. Timestamps take the finest unit,
      and keep their time zone. Timestamps with and without
      a time zone have no common type.

    Returns ``None`` when no common type exists.

    >>> common_type([pa.int8(), pa.int64()])
    DataType(int64)
    >>> common_type([pa.int64(), pa.float32(), pa.null()])
    DataType(double)
    >>> common_type([pa.int64(), pa.decimal128(5, 2)])
    Decimal128Type(decimal128(22, 2))
    >>> common_type([pa.timestamp("s", tz="UTC"), pa.timestamp("ms", tz="UTC")])
    TimestampType(timestamp[ms, tz=UTC])
    >>> common_type([pa.string(), pa.date32()]) is None
    True
    """
    candidates = [t for t in types if not pa.types.is_null(t)]
    if not candidates:
        return pa.null()
    if all(t == candidates[0] for t in candidates):
        return candidates[0]

    decoded = [value_type(t) for t in candidates]
    kinds = {semantic_type(t) for t in decoded}
    if len(kinds) != 1:
        return None

    kind = kinds.pop()
    if kind == SemanticType.NUMBER:
        return common_number_type(decoded)
    elif kind == SemanticType.TEXT:
        if any(pa.types.is_large_string(t) for t in decoded):
            return pa.large_string()
        return pa.string()
    elif kind == SemanticType.DATE:
        if all(pa.types.is_date(t) for t in decoded):
            return pa.date32()
        if all(pa.types.is_timestamp(t) for t in decoded):
            return common_timestamp_type(decoded)
        return None
    elif all(t == decoded[0] for t in decoded):
        return decoded[0]
    return None


def common_number_type(types: list[pa.DataType]) -> pa.DataType | None:
    if all(pa.types.is_integer(t) for t in types):
        if all(pa.types.is_unsigned_integer(t) for t in types):
            return pa.uint64()
        if any(t == pa.uint64() for t in types):
            return pa.decimal128(INTEGER_DIGITS[64], 0)
        return pa.int64()
    if any(pa.types.is_floating(t) for t in types):
        return pa.float64()

    # Decimals, possibly mixed with integers.
    scale = max(t.scale for t in types if pa.types.is_decimal(t))
    integer_digits = max(
        t.precision - t.scale if pa.types.is_decimal(t) else INTEGER_DIGITS[t.bit_width]
        for t in types
    )
    precision = integer_digits + scale
    if precision <= 38:
        return pa.decimal128(precision, scale)
    elif precision <= 76:
        return pa.decimal256(precision, scale)
    return None


def common_timestamp_type(types: list[pa.DataType]) -> pa.DataType | None:
    zones = {t.tz for t in types}
    if len(zones) > 1 and None in zones:
        return None
    tz = zones.pop() if len(zones) == 1 else "UTC"
    unit = max((t.unit for t in types), key=TIME_UNITS.index)
    return pa.timestamp(unit, tz=tz)

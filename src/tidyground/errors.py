"""Errors raised by the TidyGround engine.

Every operation of the engine either returns a brand new
:class:`tidyground.table.Table` or raises one of the exceptions
defined here. As Arrow data is immutable, a raised error
never leaves any of the inputs in a partially modified state,
so it's always safe to catch the error and keep using the
tables involved.

All the errors inherit from :class:`TidyGroundError`,
which allows a host program to catch them all at once::

    try:
        result = left.left_join(right, on="id")
    except TidyGroundError as e:
        print(f"Unable to join: {e}")
"""


class TidyGroundError(Exception):
    """Base class for all errors raised by the engine."""

    pass


class UnknownColumnError(TidyGroundError):
    """A referenced column name does not exist in the given table."""

    def __init__(self, name: str, available: list[str]) -> None:
        """
        :param name: The name of the column that was requested.
        :param available: The names of the columns that the table actually has.
        """
        super().__init__(f"Unknown column '{name}', available columns: {available}")
        self.name = name
        self.available = available


class IncompatibleKeyTypeError(TidyGroundError):
    """Two columns mapped as join keys hold values that can't be compared."""

    pass


class IncompatibleValueTypeError(TidyGroundError):
    """Values that have to end up in the same column have incompatible types.

    This happens when collapsing columns of different types
    into a single values column, or when the fill value of
    a pivot does not fit the values column.
    """

    pass


class DuplicateOutputColumnError(TidyGroundError):
    """An operation would lead to a table with two columns with the same name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Duplicate column name '{name}'")
        self.name = name


class EmptyKeyMappingError(TidyGroundError):
    """A join was requested without any key to match rows on."""

    pass


class DuplicateKeyError(TidyGroundError):
    """A uniqueness check found the same key on more than one row."""

    def __init__(self, columns: list[str], key: tuple[str, ...]) -> None:
        """
        :param columns: The columns that were expected to identify a row.
        :param key: The repeated values of those columns, rendered as text.
        """
        super().__init__(f"Key {key} for columns {columns} is not unique")
        self.columns = columns
        self.key = key


class UnsupportedColumnTypeError(TidyGroundError):
    """The column holds values that the engine does not know how to handle."""

    pass


class DataSourceError(TidyGroundError):
    """A file could not be loaded, because it's missing or its content is not valid."""

    pass

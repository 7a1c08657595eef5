"""TidyGround

A tabular join & reshape engine built from scratch for learning and teaching purposes.

Joining tables and reshaping them between long and wide layouts
are the steps that show up in every data analysis lesson,
usually as one-line calls into a dataframe library.
TidyGround implements those operations from scratch on top of Apache Arrow,
in literate programming style, to show how they actually work.

The platform is constituted by multiple components, each isolated within its own
package and each self documented:

* The Compute Engine, in charge of executing joins and pivots on the data.
* The Table API, which provides an eager, immutable table on top of the compute engine.
* The commands, which expose joins and pivots over CSV and Parquet files to the shell.

For the user guide and code documentation of each component, refer to the
component itself.

>>> from tidyground import Table
>>> a = Table({"id": [1, 2], "val": ["x", "y"]})
>>> b = Table({"id": [2, 3], "score": [9, 4]})
>>> a.left_join(b, on="id").to_pydict()
{'id': [1, 2], 'val': ['x', 'y'], 'score': [None, 9]}
"""

from . import compute, errors
from .compute import SemanticType
from .errors import (
    DataSourceError,
    DuplicateKeyError,
    DuplicateOutputColumnError,
    EmptyKeyMappingError,
    IncompatibleKeyTypeError,
    IncompatibleValueTypeError,
    TidyGroundError,
    UnknownColumnError,
    UnsupportedColumnTypeError,
)
from .table import JOIN_KINDS, Table, join, pivot_longer, pivot_wider

__all__ = (
    "compute",
    "errors",
    "Table",
    "SemanticType",
    "JOIN_KINDS",
    "join",
    "pivot_longer",
    "pivot_wider",
    "TidyGroundError",
    "UnknownColumnError",
    "IncompatibleKeyTypeError",
    "IncompatibleValueTypeError",
    "DuplicateOutputColumnError",
    "EmptyKeyMappingError",
    "DuplicateKeyError",
    "UnsupportedColumnTypeError",
    "DataSourceError",
)

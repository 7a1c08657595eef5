"""Tables built on top of the tidyground compute engine.

A Table is the user facing way to hold data in rows and columns
and combine it through joins and pivots.

While the compute engine deals with plans of nodes
that are only executed when their batches are consumed,
Tables are eager: each operation runs immediately and
returns a new Table holding its result in memory.
This makes them convenient to explore data step by step,
inspecting the outcome of each join or reshape.

Tables are also immutable, no operation ever changes
the content of an existing Table, so the same Table can be
safely used as the input of many operations, even from
multiple threads.
"""

from .operations import JOIN_KINDS, join, pivot_longer, pivot_wider
from .table import Table

__all__ = ("Table", "JOIN_KINDS", "join", "pivot_longer", "pivot_wider")

from enum import Enum


class AppendOutcome(str, Enum):
    INSERTED = "inserted"
    DUPLICATE = "duplicate"

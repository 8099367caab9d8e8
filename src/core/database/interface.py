from typing import Any, Dict, Generic, List, Optional, Protocol, TypeVar

T = TypeVar("T")


class IRepository(Generic[T], Protocol):
    """
    Generic repository interface.
    Read contract shared by every backend (Supabase, Postgres, in-memory).
    """

    def find_by(
        self,
        filters: Dict[str, Any],
        limit: int = 100,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[T]:
        """Find records matching simple equality filters."""
        ...

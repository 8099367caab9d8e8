"""
Supabase (PostgREST) implementation of the Repository Pattern.
"""

from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from src.core.utils import get_logger

logger = get_logger(__name__)

T = TypeVar("T")  # Pydantic Model


class SupabaseRepository(Generic[T]):
    """
    Supabase implementation of IRepository.

    Wraps a supabase-py client table builder and maps rows to Pydantic models.
    """

    def __init__(
        self,
        client: Any,
        table_name: str,
        model_class: Type[T],
        primary_key: str = "id",
    ):
        """
        Initialize Supabase repository.

        Args:
            client: Supabase client (or any object exposing .table(name))
            table_name: Name of the table
            model_class: Pydantic model class (for return types)
            primary_key: Primary key column
        """
        self.client = client
        self.table_name = table_name
        self.model_class = model_class
        self.primary_key = primary_key

    def _table(self) -> Any:
        return self.client.table(self.table_name)

    def _to_model(self, row: Dict[str, Any]) -> T:
        return self.model_class(**row)

    def find_by(
        self,
        filters: Dict[str, Any],
        limit: int = 100,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[T]:
        """Find records matching simple equality filters."""
        query = self._table().select("*")
        for column, value in filters.items():
            query = query.eq(column, value)
        if order_by:
            query = query.order(order_by, desc=descending)

        result = query.limit(limit).execute()
        return [self._to_model(row) for row in result.data]

"""
PostgreSQL implementation of the Repository Pattern using raw SQL (psycopg2).
"""

from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from psycopg2 import sql
from psycopg2.extras import RealDictCursor

from src.core.utils import get_logger
from src.core.database.postgres_session import PostgresDatabase

logger = get_logger(__name__)

T = TypeVar("T")  # Pydantic Model


class PostgresRepository(Generic[T]):
    """
    PostgreSQL implementation of IRepository using raw SQL (psycopg2).

    This class generates and executes raw SQL queries, mapping results directly
    to Pydantic models without an ORM overhead.
    """

    def __init__(self, db: PostgresDatabase, table_name: str, model_class: Type[T]):
        """
        Initialize Postgres Raw repository.

        Args:
            db: PostgresDatabase instance (pool/connection manager)
            table_name: Name of the database table (supports "schema.table" format)
            model_class: Pydantic model class (for return types)
        """
        self.db = db
        self.table_name = table_name
        self.model_class = model_class

        if "." in table_name:
            schema, table = table_name.split(".", 1)
            self.table_identifier = sql.Identifier(schema, table)
        else:
            self.table_identifier = sql.Identifier(table_name)

    def _execute_query(
        self,
        query: sql.Composable,
        params: tuple = None,
        fetch_one: bool = False,
        fetch_all: bool = False,
        commit: bool = False,
    ) -> Any:
        """Helper to execute queries with cursor management."""
        with self.db.connection() as conn:
            cursor = conn.cursor(cursor_factory=RealDictCursor)
            try:
                cursor.execute(query, params)

                if fetch_one:
                    result = cursor.fetchone()
                    if commit:
                        conn.commit()
                    return result
                if fetch_all:
                    result = cursor.fetchall()
                    if commit:
                        conn.commit()
                    return result

                if commit:
                    conn.commit()
                return cursor.rowcount

            except Exception as e:
                conn.rollback()
                logger.error("query_failed", table=self.table_name, error=str(e))
                raise
            finally:
                cursor.close()

    def _to_model(self, row: Dict[str, Any]) -> T:
        return self.model_class(**row)

    def find_by(
        self,
        filters: Dict[str, Any],
        limit: int = 100,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[T]:
        """
        Find records by equality filters using raw SELECT.
        """
        conditions = []
        values = []

        for k, v in filters.items():
            conditions.append(
                sql.SQL("{} = {}").format(sql.Identifier(k), sql.Placeholder())
            )
            values.append(v)

        where_clause = (
            sql.SQL(" WHERE {}").format(sql.SQL(" AND ").join(conditions))
            if conditions
            else sql.SQL("")
        )
        order_clause = (
            sql.SQL(" ORDER BY {} {}").format(
                sql.Identifier(order_by), sql.SQL("DESC" if descending else "ASC")
            )
            if order_by
            else sql.SQL("")
        )
        limit_clause = sql.SQL(" LIMIT %s")

        query = (
            sql.SQL("SELECT * FROM {}").format(self.table_identifier)
            + where_clause
            + order_clause
            + limit_clause
        )

        # Params: filter values + limit
        params = tuple(values) + (limit,)

        results = self._execute_query(query, params, fetch_all=True)

        return [self._to_model(dict(row)) for row in results]

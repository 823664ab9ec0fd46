# src/hubscraper/storage/query_builder.py
from typing import List, Dict, Any, Tuple, Optional, Sequence

class SQLQueryBuilder:
    """
    A simple SQL query builder for SQLite.
    Column names always come from our own record models, never from scraped input.
    """

    @staticmethod
    def build_insert_query(table_name: str, data: Dict[str, Any], or_clause: Optional[str] = None) -> Tuple[str, List[Any]]:
        """
        Builds an INSERT [OR IGNORE|OR REPLACE] INTO ... query.
        """
        columns = list(data.keys())
        placeholders = ', '.join(['?'] * len(columns))
        column_names = ', '.join(columns)
        verb = f"INSERT OR {or_clause.upper()}" if or_clause else "INSERT"
        query = f"{verb} INTO {table_name} ({column_names}) VALUES ({placeholders})"
        values = [data[col] for col in columns]
        return query, values

    @staticmethod
    def build_upsert_query(table_name: str, data: Dict[str, Any], conflict_target: Sequence[str],
                           update_columns: Optional[Sequence[str]] = None,
                           extra_set_clauses: Optional[Sequence[str]] = None) -> Tuple[str, List[Any]]:
        """
        Builds an INSERT ... ON CONFLICT(conflict_target) DO UPDATE SET ... query.

        :param update_columns: Columns overwritten on conflict. Defaults to every non-key column.
                               Columns not listed keep their stored value.
        :param extra_set_clauses: Raw SET clauses appended on conflict, e.g. "updated_at = datetime('now')".
        """
        columns = list(data.keys())
        placeholders = ', '.join(['?'] * len(columns))
        column_names = ', '.join(columns)

        if update_columns is None:
            update_columns = [col for col in columns if col not in conflict_target]

        set_parts = [f"{col} = excluded.{col}" for col in update_columns]
        if extra_set_clauses:
            set_parts.extend(extra_set_clauses)

        if not set_parts:
            query = (
                f"INSERT INTO {table_name} ({column_names}) VALUES ({placeholders}) "
                f"ON CONFLICT({', '.join(conflict_target)}) DO NOTHING"
            )
        else:
            query = (
                f"INSERT INTO {table_name} ({column_names}) VALUES ({placeholders}) "
                f"ON CONFLICT({', '.join(conflict_target)}) DO UPDATE SET {', '.join(set_parts)}"
            )

        values = [data[col] for col in columns]
        return query, values

    @staticmethod
    def build_select_query(table_name: str, columns: Optional[List[str]] = None,
                           conditions: Optional[Dict[str, Any]] = None,
                           order_by: Optional[str] = None, limit: Optional[int] = None) -> Tuple[str, List[Any]]:
        """Builds a SELECT query."""
        select_cols = "*" if not columns else ", ".join(columns)
        query = f"SELECT {select_cols} FROM {table_name}"

        values = []
        if conditions:
            where_clauses = []
            for col, val in conditions.items():
                if isinstance(val, tuple) and len(val) == 2: # e.g. ('>', value) -> "col > ?"
                    operator, actual_val = val
                    where_clauses.append(f"{col} {operator} ?")
                    values.append(actual_val)
                else:
                    where_clauses.append(f"{col} = ?")
                    values.append(val)
            query += " WHERE " + " AND ".join(where_clauses)

        if order_by:
            query += f" ORDER BY {order_by}"

        if limit is not None:
            query += " LIMIT ?"
            values.append(limit)

        return query, values

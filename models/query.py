from pydantic import BaseModel
from typing import Optional, Dict, Any, Literal

Comparison = Literal['eq', 'ne', 'gt', 'ge', 'lt', 'le']


class QueryFilter(BaseModel):
    query_filter: Optional[str] = None
    parameters: Dict[str, Any] = {}

    def add_filter(self, field: str, value: Any, op: Comparison = 'eq'):
        """
        値が None の条件はスキップする。条件同士は and で結合する。

        Examples:
            >>> qf = QueryFilter()
            >>> qf.add_filter("PartitionKey", "asset")
            >>> qf.add_filter("published", None)
            >>> qf.query_filter
            'PartitionKey eq @PartitionKey'
        """
        if value is None:
            return self
        param = field
        suffix = 1
        while param in self.parameters:
            suffix += 1
            param = f"{field}{suffix}"
        clause = f"{field} {op} @{param}"
        self.query_filter = f"{self.query_filter} and {clause}" if self.query_filter else clause
        self.parameters[param] = value
        return self

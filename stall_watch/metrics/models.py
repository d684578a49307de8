"""Modelos de la respuesta de /api/v1/query_range.

Formato esperado:
{
    "status": "success",
    "data": {
        "resultType": "matrix",
        "result": [
            {"metric": {"device_id": "kitchen"}, "values": [[1706688000, "21.0"], ...]}
        ]
    }
}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError

from ..errors import DecodeError

MATRIX_RESULT_TYPE = "matrix"


class QueryStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


class Series(BaseModel):
    """Una serie de la matriz: labels + muestras (timestamp, valor como texto)."""

    labels: dict[str, str] = Field(default_factory=dict, alias="metric")
    samples: List[Tuple[float, str]] = Field(default_factory=list, alias="values")

    class Config:
        populate_by_name = True

    @property
    def sample_values(self) -> List[str]:
        """Valores de las muestras, sin timestamps, en el orden del store."""
        return [value for _, value in self.samples]


class _QueryData(BaseModel):
    result_type: str = Field(..., alias="resultType")
    result: List[Any] = Field(default_factory=list)


class _QueryEnvelope(BaseModel):
    status: QueryStatus
    data: Optional[_QueryData] = None
    error_type: Optional[str] = Field(default=None, alias="errorType")
    error: Optional[str] = None


@dataclass(frozen=True)
class QueryResultSet:
    status: QueryStatus
    result_type: Optional[str] = None
    series: List[Series] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is QueryStatus.SUCCESS


def decode_query_result(payload: Any) -> QueryResultSet:
    """Valida el JSON ya parseado y construye el QueryResultSet.

    Solo `success` con `resultType == "matrix"` produce series. Un status
    `error` o cualquier otro resultType devuelve un resultado vacío. Un JSON
    que no cumple el schema lanza DecodeError.
    """
    try:
        envelope = _QueryEnvelope.model_validate(payload)
    except ValidationError as e:
        raise DecodeError(f"Unexpected query_range response: {e}") from e

    if envelope.status is not QueryStatus.SUCCESS or envelope.data is None:
        return QueryResultSet(status=envelope.status, error=envelope.error)

    result_type = envelope.data.result_type
    if result_type != MATRIX_RESULT_TYPE:
        return QueryResultSet(status=envelope.status, result_type=result_type)

    try:
        series = [Series.model_validate(item) for item in envelope.data.result]
    except ValidationError as e:
        raise DecodeError(f"Malformed matrix series: {e}") from e

    return QueryResultSet(status=envelope.status, result_type=result_type, series=series)

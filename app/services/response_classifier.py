"""Classify Alpha Vantage payloads by their structure."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Type

from pydantic import BaseModel, ValidationError

from app.schemas.alpha_vantage import (
    ErrorResponse,
    RateLimitResponse,
    TimeSeriesDailyResponse,
)


class ResponseKind(str, Enum):
    PASSING = "passing"
    ERROR = "error"
    RATE_LIMITED = "rate_limited"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class MarketQuote:
    """The latest close extracted from a passing payload."""

    symbol: str
    close_price: str
    as_of: str


@dataclass(frozen=True, slots=True)
class ClassifiedResponse:
    kind: ResponseKind
    quote: Optional[MarketQuote] = None


def _parse(model: Type[BaseModel], body: Any) -> Optional[BaseModel]:
    try:
        return model.model_validate(body)
    except ValidationError:
        return None


def classify_response(body: Any, *, symbol: str) -> ClassifiedResponse:
    """Map any payload to exactly one ``ResponseKind``.

    The quote shape is probed first because the error and rate limit shapes
    are single loose fields. Anything unrecognized is ``UNKNOWN``; this never
    raises.
    """
    series = _parse(TimeSeriesDailyResponse, body)
    if isinstance(series, TimeSeriesDailyResponse):
        as_of = series.meta_data.last_refreshed_date
        return ClassifiedResponse(
            kind=ResponseKind.PASSING,
            quote=MarketQuote(
                symbol=symbol,
                close_price=series.time_series[as_of].close,
                as_of=as_of,
            ),
        )
    if _parse(ErrorResponse, body) is not None:
        return ClassifiedResponse(kind=ResponseKind.ERROR)
    if _parse(RateLimitResponse, body) is not None:
        return ClassifiedResponse(kind=ResponseKind.RATE_LIMITED)
    return ClassifiedResponse(kind=ResponseKind.UNKNOWN)


__all__ = ["ClassifiedResponse", "MarketQuote", "ResponseKind", "classify_response"]

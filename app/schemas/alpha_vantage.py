"""
Structural models for the response shapes Alpha Vantage is known to return.

Values are kept as strict strings because that is what the API sends; the
quote shape rejects unknown keys so a changed payload is never mistaken for
a good quote.
"""

from datetime import date, datetime
from typing import Dict, Final, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator, model_validator

RATE_LIMIT_NOTE: Final = (
    "Thank you for using Alpha Vantage! Our standard API call frequency is "
    "5 calls per minute and 500 calls per day. Please visit "
    "https://www.alphavantage.co/premium/ if you would like to target a higher "
    "API call frequency."
)


class _StrictShape(BaseModel):
    model_config = ConfigDict(extra="forbid")


class DailyMetaData(_StrictShape):
    information: Optional[
        Literal["Daily Prices (open, high, low, close) and Volumes"]
    ] = Field(None, alias="1. Information")
    symbol: Optional[StrictStr] = Field(None, alias="2. Symbol")
    last_refreshed: StrictStr = Field(..., alias="3. Last Refreshed")
    output_size: Optional[Literal["Compact"]] = Field(None, alias="4. Output Size")
    time_zone: Optional[StrictStr] = Field(None, alias="5. Time Zone")

    @field_validator("last_refreshed")
    @classmethod
    def _iso_timestamp(cls, value: str) -> str:
        datetime.fromisoformat(value)
        return value

    @property
    def last_refreshed_date(self) -> str:
        return self.last_refreshed[:10]


class DailyBar(_StrictShape):
    open: Optional[StrictStr] = Field(None, alias="1. open")
    high: Optional[StrictStr] = Field(None, alias="2. high")
    low: Optional[StrictStr] = Field(None, alias="3. low")
    close: StrictStr = Field(..., alias="4. close")
    volume: Optional[StrictStr] = Field(None, alias="5. volume")


class TimeSeriesDailyResponse(_StrictShape):
    """A well formed ``TIME_SERIES_DAILY`` payload."""

    meta_data: DailyMetaData = Field(..., alias="Meta Data")
    time_series: Dict[StrictStr, DailyBar] = Field(..., alias="Time Series (Daily)")

    @field_validator("time_series")
    @classmethod
    def _iso_date_keys(cls, value: Dict[str, DailyBar]) -> Dict[str, DailyBar]:
        for key in value:
            date.fromisoformat(key)
        return value

    @model_validator(mode="after")
    def _latest_bar_present(self) -> "TimeSeriesDailyResponse":
        if self.meta_data.last_refreshed_date not in self.time_series:
            raise ValueError("time series has no bar for the last refreshed date")
        return self


class ErrorResponse(BaseModel):
    """Alpha Vantage's reply to an invalid symbol or malformed call."""

    error_message: StrictStr = Field(..., alias="Error Message")


class RateLimitResponse(BaseModel):
    """The throttling notice sent instead of data when the quota is spent."""

    note: Literal[RATE_LIMIT_NOTE] = Field(..., alias="Note")


__all__ = [
    "DailyBar",
    "DailyMetaData",
    "ErrorResponse",
    "RATE_LIMIT_NOTE",
    "RateLimitResponse",
    "TimeSeriesDailyResponse",
]

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import pytest

from app.schemas import RATE_LIMIT_NOTE
from app.services import ResponseKind, classify_response

try:
    from ._payloads import AV_ERROR, AV_RATE_LIMIT, av_success
except ImportError:  # pragma: no cover - fallback for direct execution
    from _payloads import AV_ERROR, AV_RATE_LIMIT, av_success  # type: ignore


def test_passing_response_extracts_latest_close() -> None:
    result = classify_response(av_success(), symbol="BTCUSD")

    assert result.kind is ResponseKind.PASSING
    assert result.quote is not None
    assert result.quote.close_price == "8293.4497"
    assert result.quote.as_of == "2019-05-31"
    assert result.quote.symbol == "BTCUSD"


def test_passing_response_without_optional_fields() -> None:
    body = {
        "Meta Data": {"3. Last Refreshed": "2024-02-01"},
        "Time Series (Daily)": {"2024-02-01": {"4. close": "101.5"}},
    }

    result = classify_response(body, symbol="IBM")

    assert result.kind is ResponseKind.PASSING
    assert result.quote is not None
    assert result.quote.close_price == "101.5"


def test_extra_top_level_field_is_not_a_quote() -> None:
    body = av_success()
    body["Information"] = "Something new from upstream"

    assert classify_response(body, symbol="BTCUSD").kind is ResponseKind.UNKNOWN


def test_extra_bar_field_is_not_a_quote() -> None:
    body = av_success()
    body["Time Series (Daily)"]["2019-05-31"]["6. adjusted close"] = "1.0"

    assert classify_response(body, symbol="BTCUSD").kind is ResponseKind.UNKNOWN


def test_missing_latest_bar_is_not_a_quote() -> None:
    body = av_success()
    del body["Time Series (Daily)"]["2019-05-31"]

    assert classify_response(body, symbol="BTCUSD").kind is ResponseKind.UNKNOWN


def test_non_iso_series_key_is_not_a_quote() -> None:
    body = av_success()
    body["Time Series (Daily)"]["yesterday"] = {"4. close": "1.0"}

    assert classify_response(body, symbol="BTCUSD").kind is ResponseKind.UNKNOWN


def test_numeric_close_is_not_a_quote() -> None:
    body = av_success()
    body["Time Series (Daily)"]["2019-05-31"]["4. close"] = 8293.4497

    assert classify_response(body, symbol="BTCUSD").kind is ResponseKind.UNKNOWN


def test_error_response() -> None:
    assert classify_response(AV_ERROR, symbol="NOPE").kind is ResponseKind.ERROR


def test_error_response_tolerates_extra_fields() -> None:
    body = {**AV_ERROR, "Hint": "check the symbol"}

    assert classify_response(body, symbol="NOPE").kind is ResponseKind.ERROR


def test_rate_limit_response() -> None:
    result = classify_response(AV_RATE_LIMIT, symbol="BTCUSD")

    assert result.kind is ResponseKind.RATE_LIMITED
    assert result.quote is None


def test_rate_limit_text_off_by_one_character_is_unknown() -> None:
    body = {"Note": RATE_LIMIT_NOTE[:-1]}

    assert classify_response(body, symbol="BTCUSD").kind is ResponseKind.UNKNOWN


@pytest.mark.parametrize(
    "body",
    [
        None,
        "",
        "Thank you for using Alpha Vantage!",
        42,
        [],
        [AV_ERROR],
        {},
        {"Note": 5},
        {"Error Message": None},
        {"Meta Data": {}, "Time Series (Daily)": {}},
        {"Meta Data": {"3. Last Refreshed": "not a date"}, "Time Series (Daily)": {}},
        {"Time Series (Daily)": {"2019-05-31": {"4. close": "1"}}},
    ],
)
def test_unrecognized_bodies_are_unknown(body) -> None:
    result = classify_response(body, symbol="BTCUSD")

    assert result.kind is ResponseKind.UNKNOWN
    assert result.quote is None

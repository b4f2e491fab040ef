try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from urllib.parse import urlencode

import pytest

from app.core.config import SlackSettings
from app.schemas import SlackSlashCommand
from app.services import SlackRejection, SlackRequestVerifier

try:
    from ._payloads import SLACK_FORM
except ImportError:  # pragma: no cover - fallback for direct execution
    from _payloads import SLACK_FORM  # type: ignore

NOW = 1_531_420_618
BODY = (
    b"token=xyzz0WbapA4vBCDEFasx0q6G&team_id=T1DC2JH3J&team_domain=testteamnow"
    b"&channel_id=G8PSS9T3V&channel_name=foobar&user_id=U2CERLKJA&user_name=roadrunner"
    b"&command=%2Fwebhook-collect&text=&response_url=https%3A%2F%2Fhooks.slack.com%2F"
    b"commands%2FT1DC2JH3J%2F397700885554%2F96rGlfmibIGlgcZRskXaIFfN"
    b"&trigger_id=398738663015.47445629121.803a0bc887a14d10d2c447fce8b6703c"
)


@pytest.fixture
def verifier() -> SlackRequestVerifier:
    return SlackRequestVerifier(
        SlackSettings(signing_secret="8f742231b10e8888abcd99yyyzzz85a5")
    )


def test_signature_matches_slack_reference_example(verifier: SlackRequestVerifier) -> None:
    assert verifier.compute_signature(str(NOW), BODY) == (
        "v0=a2114d57b48eac39b9ad189dd8316235a7b4a8d21a10bd27519666489c69b503"
    )


def test_authentic_request_passes(verifier: SlackRequestVerifier) -> None:
    signature = verifier.compute_signature(str(NOW), BODY)

    assert verifier.verify_signature(
        timestamp=str(NOW), signature=signature, body=BODY, now=NOW + 10
    ) is None


@pytest.mark.parametrize("offset", [301, -301])
def test_timestamp_outside_window_is_replay(verifier: SlackRequestVerifier, offset: int) -> None:
    signature = verifier.compute_signature(str(NOW), BODY)

    result = verifier.verify_signature(
        timestamp=str(NOW), signature=signature, body=BODY, now=NOW + offset
    )

    assert result is SlackRejection.REPLAY


@pytest.mark.parametrize("timestamp", [None, "", "yesterday"])
def test_missing_or_garbled_timestamp_is_replay(
    verifier: SlackRequestVerifier, timestamp
) -> None:
    result = verifier.verify_signature(
        timestamp=timestamp, signature="v0=abc", body=BODY, now=NOW
    )

    assert result is SlackRejection.REPLAY


@pytest.mark.parametrize("signature", [None, "", "v0=deadbeef", "v0=é"])
def test_bad_signature_is_rejected(verifier: SlackRequestVerifier, signature) -> None:
    result = verifier.verify_signature(
        timestamp=str(NOW), signature=signature, body=BODY, now=NOW
    )

    assert result is SlackRejection.INVALID_SIGNATURE


def test_parse_command_accepts_slack_form(verifier: SlackRequestVerifier) -> None:
    command = verifier.parse_command(urlencode(SLACK_FORM).encode())

    assert isinstance(command, SlackSlashCommand)
    assert command.ticker_symbol == "BTCUSD"
    assert str(command.response_url) == SLACK_FORM["response_url"]


def test_parse_command_keeps_unknown_fields(verifier: SlackRequestVerifier) -> None:
    form = {**SLACK_FORM, "api_app_id": "A123", "is_enterprise_install": "false"}

    command = verifier.parse_command(urlencode(form).encode())

    assert isinstance(command, SlackSlashCommand)
    assert command.to_queue_payload()["api_app_id"] == "A123"


def test_parse_command_empty_text_is_missing_argument(verifier: SlackRequestVerifier) -> None:
    assert verifier.parse_command(BODY) is SlackRejection.MISSING_ARGUMENT


@pytest.mark.parametrize("dropped", ["user_id", "response_url", "text"])
def test_parse_command_missing_field_is_malformed(
    verifier: SlackRequestVerifier, dropped: str
) -> None:
    form = {key: value for key, value in SLACK_FORM.items() if key != dropped}

    assert verifier.parse_command(urlencode(form).encode()) is SlackRejection.MALFORMED_PAYLOAD


def test_parse_command_rejects_bad_response_url(verifier: SlackRequestVerifier) -> None:
    form = {**SLACK_FORM, "response_url": "not a url"}

    assert verifier.parse_command(urlencode(form).encode()) is SlackRejection.MALFORMED_PAYLOAD


def test_rejection_replies() -> None:
    assert SlackRejection.REPLAY.reply().text == (
        "There was a communication error with the bot. (code: 101)"
    )
    hint = SlackRejection.MISSING_ARGUMENT.reply()
    assert hint.response_type == "ephemeral"
    assert hint.attachments[0].text == "Getting a market quote: /marketquote BTCUSD"

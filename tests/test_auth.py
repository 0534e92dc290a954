"""Tests for HMAC request signing and verification."""

import pytest

from llm_relay.auth import (
    INVALID_SIGNATURE,
    INVALID_TIMESTAMP,
    MISSING_HEADERS,
    TIMESTAMP_EXPIRED,
    RequestSigner,
    authorize,
    compute_signature,
)
from llm_relay.errors import ConfigurationError

from .conftest import SECRET

NOW = 1_700_000_000
GOLDEN_TTS_SIGNATURE = "f63db5c37c7e2ffc7014e950a2674f551600c9758e1655c1b3205b6c048f0bcb"


def _headers(timestamp, path="/tts"):
    return RequestSigner(SECRET).sign(path, timestamp=timestamp)


def test_compute_signature_golden_vector():
    assert compute_signature(SECRET, "1700000000", "/tts") == GOLDEN_TTS_SIGNATURE


def test_signer_produces_golden_headers():
    headers = RequestSigner(SECRET).sign("/tts", timestamp=NOW)

    assert headers == {"X-Timestamp": "1700000000", "X-Signature": GOLDEN_TTS_SIGNATURE}


def test_valid_signature_is_accepted():
    result = authorize(_headers(NOW), "/tts", SECRET, now=NOW)

    assert result.valid
    assert result.reason is None


def test_uppercase_signature_is_accepted():
    headers = _headers(NOW)
    headers["X-Signature"] = headers["X-Signature"].upper()

    assert authorize(headers, "/tts", SECRET, now=NOW).valid


def test_lowercase_header_names_are_accepted():
    headers = {key.lower(): value for key, value in _headers(NOW).items()}

    assert authorize(headers, "/tts", SECRET, now=NOW).valid


@pytest.mark.parametrize("position", [0, 17, 63])
def test_flipping_one_signature_character_is_rejected(position):
    headers = _headers(NOW)
    signature = headers["X-Signature"]
    flipped = "0" if signature[position] != "0" else "1"
    headers["X-Signature"] = signature[:position] + flipped + signature[position + 1:]

    result = authorize(headers, "/tts", SECRET, now=NOW)

    assert not result.valid
    assert result.reason == INVALID_SIGNATURE


def test_signature_for_another_path_is_rejected():
    result = authorize(_headers(NOW, path="/tts"), "/gpt-4.1/chat/completions", SECRET, now=NOW)

    assert result.reason == INVALID_SIGNATURE


@pytest.mark.parametrize("missing", ["X-Timestamp", "X-Signature"])
def test_missing_header_is_rejected(missing):
    headers = _headers(NOW)
    del headers[missing]

    assert authorize(headers, "/tts", SECRET, now=NOW).reason == MISSING_HEADERS


@pytest.mark.parametrize(
    "timestamp",
    ["soon", "1700000000.5", "", "1_700_000_000", "+1700000000", "１７００００００００"],
)
def test_malformed_timestamp_is_rejected(timestamp):
    headers = {"X-Timestamp": timestamp, "X-Signature": "ab" * 32}

    result = authorize(headers, "/tts", SECRET, now=NOW)

    # An empty header counts as missing
    expected = MISSING_HEADERS if timestamp == "" else INVALID_TIMESTAMP
    assert result.reason == expected


@pytest.mark.parametrize("offset", [-121, 121, -3600, 86400])
def test_timestamps_outside_window_are_expired(offset):
    result = authorize(_headers(NOW + offset), "/tts", SECRET, now=NOW)

    assert result.reason == TIMESTAMP_EXPIRED


@pytest.mark.parametrize("offset", [-120, 0, 120])
def test_timestamps_inside_window_are_accepted(offset):
    assert authorize(_headers(NOW + offset), "/tts", SECRET, now=NOW).valid


def test_expiry_is_checked_before_signature():
    headers = {"X-Timestamp": str(NOW - 500), "X-Signature": "not-a-signature"}

    assert authorize(headers, "/tts", SECRET, now=NOW).reason == TIMESTAMP_EXPIRED


@pytest.mark.parametrize("secret", ["", "not-hex"])
def test_misconfigured_secret_raises(secret):
    with pytest.raises(ConfigurationError):
        authorize(_headers(NOW), "/tts", secret, now=NOW)


@pytest.mark.parametrize("stamp", ["1_700_000_000", "+1700000000"])
def test_correctly_signed_non_decimal_timestamp_is_rejected(stamp):
    headers = RequestSigner(SECRET).sign("/tts", timestamp=stamp)

    assert authorize(headers, "/tts", SECRET, now=NOW).reason == INVALID_TIMESTAMP


@pytest.mark.parametrize("signature", ["é" * 64, "é", "ÿ" + GOLDEN_TTS_SIGNATURE[1:]])
def test_non_ascii_signature_is_rejected(signature):
    headers = {"X-Timestamp": str(NOW), "X-Signature": signature}

    result = authorize(headers, "/tts", SECRET, now=NOW)

    assert not result.valid
    assert result.reason == INVALID_SIGNATURE

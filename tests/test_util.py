"""Tests for env expansion, durations and URI scheme parsing."""

from datetime import timedelta

import pytest

from opamp_bridge.util import expand_env, format_duration, parse_duration, request_uri_scheme


def test_expand_env_both_forms():
    env = {"HOST": "server", "PORT": "4320"}
    assert expand_env("ws://${HOST}:$PORT/v1/opamp", env) == "ws://server:4320/v1/opamp"


def test_expand_env_unset_is_empty():
    assert expand_env("a-${MISSING}-$ALSO_MISSING-b", {}) == "a---b"


def test_expand_env_reads_process_environment(monkeypatch):
    monkeypatch.setenv("OPAMP_TEST_TOKEN", "s3cr3t")
    assert expand_env("Bearer ${OPAMP_TEST_TOKEN}") == "Bearer s3cr3t"


@pytest.mark.parametrize(
    "text,expected",
    [
        ("30s", timedelta(seconds=30)),
        ("1m30s", timedelta(seconds=90)),
        ("500ms", timedelta(milliseconds=500)),
        ("1.5h", timedelta(minutes=90)),
        ("0", timedelta(0)),
        ("-2s", timedelta(seconds=-2)),
    ],
)
def test_parse_duration(text, expected):
    assert parse_duration(text) == expected


@pytest.mark.parametrize("text", ["", "30", "abc", "10x", "s"])
def test_parse_duration_invalid(text):
    with pytest.raises(ValueError):
        parse_duration(text)


def test_format_duration():
    assert format_duration(timedelta(seconds=30)) == "30s"
    assert format_duration(timedelta(seconds=90)) == "1m30s"
    assert format_duration(timedelta(hours=1)) == "1h0m0s"
    assert format_duration(timedelta(0)) == "0s"


@pytest.mark.parametrize(
    "endpoint,scheme",
    [
        ("http://localhost:4320/v1/opamp", "http"),
        ("HTTPS://server/v1/opamp", "https"),
        ("ws://localhost:4320/v1/opamp", "ws"),
        ("wss://server/v1/opamp", "wss"),
        ("/v1/opamp", ""),
        ("", ""),
        ("not a url", ""),
        ("http://bad host/", ""),
        ("http://opamp-server/v1/my opamp", "http"),
        ("https://opamp-server/v1/opamp?tenant=a b", "https"),
        ("http://opamp-server/v1/\x7fopamp", ""),
        (" http://opamp-server/v1/opamp", ""),
    ],
)
def test_request_uri_scheme(endpoint, scheme):
    assert request_uri_scheme(endpoint) == scheme

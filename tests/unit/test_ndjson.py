"""
Unit tests for sitewatch.transport.ndjson.

Validates:
- value messages decode into PathUpdate with a normalized path
- concatenated JSON objects on one line (first one wins)
- unknown types, empty paths and empty lines raise
"""

from __future__ import annotations

import pytest

from sitewatch.domain.models import PathUpdate
from sitewatch.transport.ndjson import decode_message, iter_json_objects


def test_decode_value_message() -> None:
    msg = decode_message('{"type":"value","path":"/raspi/sensors/dht/","data":{"temperature_c":21.5}}')
    assert msg == PathUpdate(path="raspi/sensors/dht", data={"temperature_c": 21.5})


def test_type_defaults_to_value() -> None:
    msg = decode_message('{"path":"raspi/node/flame","data":{"value":1,"detect":true}}')
    assert msg.path == "raspi/node/flame"
    assert msg.data == {"value": 1, "detect": True}


def test_data_is_passed_through_untouched() -> None:
    """
    Payloads are opaque at the transport layer, including null and scalars.
    """
    assert decode_message('{"path":"p"}').data is None
    assert decode_message('{"path":"p","data":42}').data == 42


def test_concatenated_objects_first_wins() -> None:
    msg = decode_message('{"path":"a","data":1}{"path":"b","data":2}')
    assert msg.path == "a"


def test_iter_json_objects_skips_non_dicts() -> None:
    objs = list(iter_json_objects('[1,2] {"a":1}  "x" {"b":2}'))
    assert objs == [{"a": 1}, {"b": 2}]


@pytest.mark.parametrize(
    "line, exc",
    [
        ('{"type":"snapshot","path":"a"}', ValueError),
        ('{"path":"///"}', ValueError),
        ("   ", ValueError),
        ("[1,2,3]", ValueError),
        ('{"data":1}', KeyError),
        ("{oops", ValueError),
    ],
)
def test_bad_lines_raise(line: str, exc) -> None:
    with pytest.raises(exc):
        decode_message(line)

"""Tests for channel naming and update message wire format."""

import pytest

from hippo_hash import DecodeError
from hippo_hash.protocol import (
    decode_component,
    delete_message,
    encode_component,
    keyspace_channel,
    parse_changes,
    parse_channel,
    set_message,
    split_message,
    update_channel,
)


def test_channel_names():
    assert keyspace_channel("u:1") == "__keyspace@0__:u:1"
    assert keyspace_channel("u:1", database=3) == "__keyspace@3__:u:1"
    assert update_channel("u:1") == "hippo_hash:u:1"


def test_parse_channel_extracts_key():
    ref = parse_channel("__keyspace@0__:u:1")
    assert ref.key == "u:1"
    assert ref.keyspace is True

    ref = parse_channel("hippo_hash:a b:c")
    assert ref.key == "a b:c"
    assert ref.keyspace is False


def test_parse_channel_ignores_foreign_channels():
    assert parse_channel("other:u:1") is None
    assert parse_channel("__keyspace@1__:u:1", database=0) is None


def test_set_message_encodes_like_a_query_string():
    assert set_message({"score": "15", "high": "15"}) == "hset score=15&high=15"
    assert set_message({"name": '"a b&c"'}) == "hset name=%22a%20b%26c%22"


def test_delete_message_encodes_field_name():
    assert delete_message("a b") == "hdel a%20b"
    assert delete_message("it's(ok)!") == "hdel it's(ok)!"


def test_split_message():
    assert split_message("hset a=1") == ("hset", "a=1")
    assert split_message("hdel x") == ("hdel", "x")


@pytest.mark.parametrize("message", ["hset", "noop a=1", ""])
def test_split_message_rejects_malformed(message):
    with pytest.raises(DecodeError):
        split_message(message)


def test_parse_changes():
    assert parse_changes("score=15&name=%22a%20b%22") == {"score": "15", "name": '"a b"'}
    assert parse_changes("") == {}


def test_parse_changes_rejects_bad_escapes():
    with pytest.raises(DecodeError):
        parse_changes("a=%zz")
    with pytest.raises(DecodeError):
        parse_changes("a=%ff")


def test_component_round_trip_and_errors():
    assert decode_component(encode_component("ünï code/?&=")) == "ünï code/?&="
    with pytest.raises(DecodeError):
        decode_component("%E0%A4%A")
    with pytest.raises(DecodeError):
        decode_component("%C3")

from dataclasses import dataclass

import pytest

from archaius.serializers import (
    JSON_ENCODER,
    JSONSerializer,
    SerializerError,
    decode,
    encode,
)


@dataclass
class Team:
    team: str


def test_encode_valid_serializer():
    assert encode(JSON_ENCODER, Team(team="data")) == b'{"team":"data"}'


def test_encode_invalid_serializer():
    with pytest.raises(SerializerError):
        encode("Invalidserializer", Team(team="data"))


def test_decode_invalid_serializer():
    with pytest.raises(SerializerError):
        decode("Invalidserializer", b"{}")


def test_decode_round_trip():
    data = encode(JSON_ENCODER, Team(team="data"))
    assert decode(JSON_ENCODER, data) == {"team": "data"}


def test_json_serializer_encode():
    assert JSONSerializer().encode({"a": [1, 2], "b": None}) == b'{"a":[1,2],"b":null}'


def test_json_serializer_decode_text_and_bytes():
    serializer = JSONSerializer()
    assert serializer.decode('{"team":"data"}') == {"team": "data"}
    assert serializer.decode(b'{"team":"data"}') == {"team": "data"}


def test_json_serializer_decode_invalid():
    with pytest.raises(SerializerError):
        JSONSerializer().decode(b"{not json")


def test_json_serializer_encode_unsupported():
    with pytest.raises(SerializerError):
        JSONSerializer().encode(object())
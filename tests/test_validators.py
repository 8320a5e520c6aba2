import pytest

from domain.models import SynopsisRequest
from validators import InvalidRequest, validate_synopsis_request


def _body(**overrides):
    body = {
        "hero": "記憶を失った猫探偵",
        "stage": "夜だけ光る図書館",
        "rule": "時間が逆に流れる",
        "rival": "異世界の自分",
        "boss": "時を止める王",
    }
    body.update(overrides)
    return body


def test_valid_body_uses_default_lengths():
    request = validate_synopsis_request(_body())
    assert request == SynopsisRequest(
        hero="記憶を失った猫探偵",
        stage="夜だけ光る図書館",
        rule="時間が逆に流れる",
        rival="異世界の自分",
        boss="時を止める王",
        min_chars=300,
        max_chars=450,
    )


def test_explicit_lengths_and_extra_keys():
    request = validate_synopsis_request(_body(minChars=200, maxChars=1200, extra="ignored"))
    assert request.min_chars == 200
    assert request.max_chars == 1200


def test_integral_float_lengths_are_accepted():
    request = validate_synopsis_request(_body(minChars=300.0))
    assert request.min_chars == 300
    assert isinstance(request.min_chars, int)


@pytest.mark.parametrize(
    "overrides",
    [
        {"hero": ""},
        {"stage": "x" * 51},
        {"rule": 42},
        {"minChars": 199},
        {"minChars": 801},
        {"maxChars": 1201},
        {"maxChars": "450"},
        {"minChars": True},
        {"minChars": 300.5},
    ],
)
def test_invalid_fields_rejected(overrides):
    with pytest.raises(InvalidRequest):
        validate_synopsis_request(_body(**overrides))


def test_missing_field_rejected():
    body = _body()
    del body["boss"]
    with pytest.raises(InvalidRequest) as excinfo:
        validate_synopsis_request(body)
    assert any("boss" in error for error in excinfo.value.errors)


@pytest.mark.parametrize("payload", [None, [], "hero", {}])
def test_non_object_bodies_rejected(payload):
    with pytest.raises(InvalidRequest):
        validate_synopsis_request(payload)

import pytest

from carehq.validators import ValidationError, parse_params, validate_method, validate_path


def test_validate_method_uppercases():
    assert validate_method(" post ") == "POST"


def test_validate_method_rejects_unknown():
    with pytest.raises(ValidationError):
        validate_method("TRACE")


def test_validate_path_trims_slashes():
    assert validate_path("/residents/42/") == "residents/42"


def test_validate_path_rejects_empty():
    with pytest.raises(ValidationError):
        validate_path("//")


def test_parse_params_collects_repeated_keys():
    assert parse_params(["a=1", "b=x=y", "a=2", "a=3"]) == {"a": ["1", "2", "3"], "b": "x=y"}


def test_parse_params_allows_empty_value():
    assert parse_params(["q="]) == {"q": ""}
    assert parse_params(None) == {}


@pytest.mark.parametrize("item", ["novalue", "=value"])
def test_parse_params_rejects_malformed(item):
    with pytest.raises(ValidationError):
        parse_params([item])

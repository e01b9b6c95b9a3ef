import hashlib
import hmac
import re
from urllib.parse import parse_qsl

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from carehq.utils import (
    canonical_params_str,
    canonical_params_str_from_pairs,
    compute_signature,
    ensure_string,
    filter_and_stringify,
    flatten_params,
    form_urlencode_from_pairs,
    nonce_url_safe,
)


# =============================================================================
# Canonicalization
# =============================================================================

def test_filter_and_stringify_none_input_returns_none():
    assert filter_and_stringify(None) is None


def test_filter_and_stringify_empty_input_returns_empty_dict():
    assert filter_and_stringify({}) == {}


def test_filter_and_stringify_drops_none_and_stringifies():
    result = filter_and_stringify({"a": None, "b": 1, "c": True, "d": [1, "x", False], "e": 2.5})
    assert result == {"b": "1", "c": "true", "d": ["1", "x", "false"], "e": "2.5"}


def test_ensure_string_renders_whole_floats_without_fraction():
    assert ensure_string(3.0) == "3"
    assert ensure_string((1, 2.0)) == ["1", "2"]


@pytest.mark.parametrize(
    "value, expected",
    [
        (float("nan"), "NaN"),
        (float("inf"), "Infinity"),
        (float("-inf"), "-Infinity"),
        (-0.0, "0"),
        (0.1, "0.1"),
        (-2.5, "-2.5"),
        (123456.789, "123456.789"),
        (1e16, "10000000000000000"),
        (1e20, "100000000000000000000"),
        (1e21, "1e+21"),
        (1.5e300, "1.5e+300"),
        (0.000001, "0.000001"),
        (1e-7, "1e-7"),
        (-1.25e-9, "-1.25e-9"),
    ],
)
def test_ensure_string_formats_floats_like_the_verifier(value, expected):
    assert ensure_string(value) == expected


def test_flatten_params_sorts_keys_and_values():
    assert flatten_params({"b": "2", "a": ["y", "x"]}) == [("a", "x"), ("a", "y"), ("b", "2")]


def test_flatten_params_defaults_missing_input():
    assert flatten_params(None) == []
    assert flatten_params({}) == []


def test_canonical_params_str_empty():
    assert canonical_params_str({}) == ""
    assert canonical_params_str_from_pairs([]) == ""


def test_canonical_params_str_joins_with_newlines():
    assert canonical_params_str({"b": "2", "a": ["y", "x"]}) == "a=x\na=y\nb=2"


def test_form_urlencode_escapes_values_and_keeps_duplicates():
    pairs = [("q", "a b"), ("tag", "x&y"), ("tag", "z")]
    assert form_urlencode_from_pairs(pairs) == "q=a%20b&tag=x%26y&tag=z"


# =============================================================================
# Signing
# =============================================================================

def test_compute_signature_matches_hmac_sha256():
    expected = hmac.new(b"secret", b"message", hashlib.sha256).hexdigest()
    assert compute_signature("secret", "message") == expected
    assert compute_signature("secret", b"message") == expected


def test_compute_signature_is_deterministic_lowercase_hex():
    first = compute_signature("s3cr3t", "1700000000\nnonce\nGET\n/v1/residents\n")
    second = compute_signature("s3cr3t", "1700000000\nnonce\nGET\n/v1/residents\n")
    assert first == second
    assert re.fullmatch(r"[0-9a-f]{64}", first)


def test_compute_signature_accepts_empty_secret():
    assert len(compute_signature("", "message")) == 64


# =============================================================================
# Nonces
# =============================================================================

def test_nonce_is_url_safe():
    for _ in range(200):
        nonce = nonce_url_safe(16)
        assert not set("=+/") & set(nonce)
        assert re.fullmatch(r"[A-Za-z0-9_-]+", nonce)


def test_nonce_values_are_distinct():
    nonces = {nonce_url_safe(16) for _ in range(100)}
    assert len(nonces) == 100


# =============================================================================
# Properties
# =============================================================================

text_strategy = st.text(
    alphabet=st.characters(whitelist_categories=('L', 'N', 'P', 'S', 'Zs')),
    max_size=12,
)
key_strategy = st.text(
    alphabet=st.characters(whitelist_categories=('L', 'N', 'P', 'S', 'Zs')),
    min_size=1,
    max_size=8,
)
scalar_strategy = st.one_of(text_strategy, st.integers(), st.booleans(), st.floats())
value_strategy = st.one_of(st.none(), scalar_strategy, st.lists(scalar_strategy, max_size=5))
params_strategy = st.dictionaries(key_strategy, value_strategy, max_size=6)


@settings(max_examples=100)
@given(params=params_strategy, data=st.data())
def test_flatten_params_ignores_key_and_element_order(params, data):
    """For any params, shuffling keys and array elements gives the same pairs."""
    shuffled = {}
    for key in data.draw(st.permutations(list(params))):
        value = params[key]
        if isinstance(value, list):
            value = data.draw(st.permutations(value))
        shuffled[key] = value

    expected = flatten_params(filter_and_stringify(params))
    assert flatten_params(filter_and_stringify(shuffled)) == expected
    assert flatten_params(shuffled) == flatten_params(params)
    assert expected == sorted(expected)


@settings(max_examples=100)
@given(params=params_strategy)
def test_canonical_string_is_newline_join_of_pairs(params):
    filtered = filter_and_stringify(params)
    pairs = flatten_params(filtered)
    assert canonical_params_str(filtered) == "\n".join(f"{k}={v}" for k, v in pairs)
    present = [v for v in params.values() if v is not None]
    assert len(pairs) == sum(len(v) if isinstance(v, list) else 1 for v in present)


@settings(max_examples=100)
@given(params=params_strategy)
def test_form_encoding_decodes_back_to_pairs(params):
    pairs = flatten_params(filter_and_stringify(params))
    body = form_urlencode_from_pairs(pairs)
    assert parse_qsl(body, keep_blank_values=True) == pairs

import pytest

from laterpay_core import (
    UnsupportedMethod,
    build_message,
    collect_items,
    encode_query,
    normalize_method,
    normalize_params,
    percent_encode,
)

URL = "https://api.example.test/access"


def test_build_message_matches_reference_fixture():
    message = build_message({"cp": "42", "article_id": ["7", "9"]}, URL, "get")

    assert message == (
        "GET&https%3A%2F%2Fapi.example.test%2Faccess"
        "&article_id%3D7%26article_id%3D9%26cp%3D42"
    )


def test_message_is_independent_of_ordering_and_shape():
    first = build_message({"b": "2", "a": ["3", "1"]}, URL, "POST")
    second = build_message({"a": ["1", "3"], "b": ["2"]}, URL, "post")
    assert first == second


def test_parameter_block_is_doubly_encoded():
    message = build_message({"q": "a b"}, URL, "GET")
    # "a b" -> "a%20b" in the pair, then "%" -> "%25" for the block
    assert message.endswith("&q%3Da%2520b")


def test_query_component_is_dropped_from_url():
    assert build_message({}, URL + "?x=1", "GET") == build_message({}, URL, "GET")


def test_empty_params_give_empty_block():
    assert build_message({}, URL, "HEAD") == "HEAD&https%3A%2F%2Fapi.example.test%2Faccess&"


def test_percent_encode_uses_rfc3986_raw_encoding():
    assert percent_encode("a b+c/~_-.") == "a%20b%2Bc%2F~_-."
    assert percent_encode("ü") == "%C3%BC"


def test_normalize_params_folds_scalars_into_lists():
    assert normalize_params({"a": "1", "b": ["2", "3"], "c": 4}) == {
        "a": ["1"],
        "b": ["2", "3"],
        "c": ["4"],
    }
    assert normalize_params(None) == {}


def test_collect_items_groups_repeated_names():
    assert collect_items([("a", "1"), ("b", "2"), ("a", "0")]) == {"a": ["1", "0"], "b": ["2"]}


def test_encode_query_is_singly_encoded_and_sorted():
    query = encode_query({"z": "1", "title": "My Article", "id": ["b", "a"]})
    assert query == "id=a&id=b&title=My%20Article&z=1"


def test_names_sort_by_code_point_not_locale():
    query = encode_query({"b": "1", "B": "1", "a": "1"})
    assert query == "B=1&a=1&b=1"


@pytest.mark.parametrize("method", ["get", "Head", "POST", "put", "delete", "PATCH"])
def test_normalize_method_accepts_verb_set(method):
    assert normalize_method(method) == method.upper()


def test_unsupported_method_is_rejected():
    with pytest.raises(UnsupportedMethod):
        build_message({}, URL, "OPTIONS")

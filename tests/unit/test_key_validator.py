import pytest

from cachepool.exceptions import InvalidArgument
from cachepool.key_validator import MAX_KEY_LENGTH, is_valid_key, validate_key, validate_namespace


@pytest.mark.parametrize("key", ["a", "key", "Key_1.2", "A" * MAX_KEY_LENGTH, "...", "_"])
def test_valid_keys_pass(key):
    validate_key(key)
    assert is_valid_key(key)


@pytest.mark.parametrize("key", ["", "A" * (MAX_KEY_LENGTH + 1)])
def test_invalid_length_rejected(key):
    with pytest.raises(InvalidArgument, match="must be length from 1 up to 64 characters"):
        validate_key(key)


@pytest.mark.parametrize("key", ["with space", "slash/key", "colon:key", "dash-key", "{braces}", "key\n", "é"])
def test_invalid_characters_rejected(key):
    with pytest.raises(InvalidArgument, match="contains invalid characters"):
        validate_key(key)


def test_multibyte_key_fails_on_charset_not_length():
    # 40 code points, 80 bytes in UTF-8
    with pytest.raises(InvalidArgument, match="contains invalid characters"):
        validate_key("ü" * 40)


@pytest.mark.parametrize("key", [None, 123, b"bytes"])
def test_non_string_keys_rejected(key):
    with pytest.raises(InvalidArgument):
        validate_key(key)


def test_invalid_argument_is_value_error():
    with pytest.raises(ValueError):
        validate_key("")


@pytest.mark.parametrize(
    "pool_name, separator",
    [("app", "."), ("app", "x"), ("app", ""), ("", ":"), ("app:users", ":"), ("a|b", "|:")],
)
def test_namespace_that_could_collide_rejected(pool_name, separator):
    with pytest.raises(InvalidArgument):
        validate_namespace(pool_name, separator)


def test_nested_pool_names_are_valid_namespaces():
    validate_namespace("app", ":")
    validate_namespace("app.users", ":")
    validate_namespace("pool*", "::")

import pytest

from dotatui.api.account import (
    MAX_ACCOUNT_ID,
    STEAMID64_BASE,
    AccountIdError,
    parse_account_id,
    to_steamid64,
)


@pytest.mark.unit
def test_steamid64_base_maps_to_zero():
    assert parse_account_id(str(STEAMID64_BASE)) == 0


@pytest.mark.unit
def test_steamid64_converts_to_account_id():
    assert parse_account_id("76561198095930120") == 135664392


@pytest.mark.unit
def test_account_id_passes_through():
    assert parse_account_id("135664392") == 135664392
    assert parse_account_id(135664392) == 135664392


@pytest.mark.unit
def test_surrounding_whitespace_is_ignored():
    assert parse_account_id("  135664392\n") == 135664392


@pytest.mark.unit
def test_largest_account_id_accepted():
    assert parse_account_id(str(MAX_ACCOUNT_ID)) == MAX_ACCOUNT_ID


@pytest.mark.unit
@pytest.mark.parametrize("value", ["4294967296", "76561197960265727"])
def test_values_between_32bit_and_base_are_rejected(value):
    with pytest.raises(AccountIdError, match="too large"):
        parse_account_id(value)


@pytest.mark.unit
def test_steamid64_beyond_32bit_range_is_rejected():
    with pytest.raises(AccountIdError, match="too large"):
        parse_account_id(str(STEAMID64_BASE + MAX_ACCOUNT_ID + 1))


@pytest.mark.unit
@pytest.mark.parametrize("value", ["", "abc", "-5", "12.5", "7656119809593012x"])
def test_non_numeric_input_is_rejected(value):
    with pytest.raises(AccountIdError, match="numeric"):
        parse_account_id(value)


@pytest.mark.unit
def test_account_id_error_is_value_error():
    with pytest.raises(ValueError):
        parse_account_id("nope")


@pytest.mark.unit
def test_to_steamid64_inverts_parse():
    assert to_steamid64(135664392) == 76561198095930120

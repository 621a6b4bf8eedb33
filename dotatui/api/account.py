"""Account identifier normalization."""

# SteamID64 of account id 0; 64-bit platform ids at or above this map down
STEAMID64_BASE = 76561197960265728
MAX_ACCOUNT_ID = 0xFFFFFFFF


class AccountIdError(ValueError):
    """Input is not a usable account id or SteamID64."""
    pass


def parse_account_id(value) -> int:
    """
    Normalize a raw account id or a SteamID64 to a 32-bit account id.

    Args:
        value: String or integer entered by the user

    Returns:
        Account id in the 32-bit range

    Raises:
        AccountIdError: If the value is not numeric or is out of range

    Example:
        >>> parse_account_id("76561198095930120")
        135664392
    """
    text = str(value).strip()
    if not text.isdigit():
        raise AccountIdError("SteamID must be numeric")

    number = int(text)
    if number >= STEAMID64_BASE:
        account_id = number - STEAMID64_BASE
        if account_id > MAX_ACCOUNT_ID:
            raise AccountIdError("SteamID too large")
        return account_id
    if number <= MAX_ACCOUNT_ID:
        return number
    raise AccountIdError("SteamID too large")


def to_steamid64(account_id: int) -> int:
    """Convert a 32-bit account id back to its SteamID64."""
    return account_id + STEAMID64_BASE

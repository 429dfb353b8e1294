"""Address validation and normalization."""

import re

# 0x + 40 hex characters
ADDRESS_PATTERN = re.compile(r"^0x[0-9a-f]{40}$")


def validate_wallet_address(address: str) -> tuple[bool, str | None]:
    """
    Validate account address format.

    Checksum casing is not enforced: addresses are compared lower-cased.

    Args:
        address: Wallet address to validate

    Returns:
        Tuple of (is_valid, error_message)
        - (True, None) if valid
        - (False, error_message) if invalid

    Examples:
        >>> validate_wallet_address("0x1234567890123456789012345678901234567890")
        (True, None)
        >>> validate_wallet_address("invalid")
        (False, 'Address must start with 0x')
    """
    if not address or not isinstance(address, str):
        return False, "Address is empty"

    address = address.strip()

    if not address:
        return False, "Address is empty"

    if not address.lower().startswith("0x"):
        return False, "Address must start with 0x"

    if len(address) != 42:
        return False, "Address must be 42 characters"

    if not ADDRESS_PATTERN.match(address.lower()):
        return False, "Invalid address format"

    return True, None


def normalize_wallet_address(address: str) -> str:
    """
    Normalize address to lower-case 0x form.

    Args:
        address: Wallet address

    Returns:
        Normalized address

    Raises:
        ValueError: If address is malformed
    """
    is_valid, error = validate_wallet_address(address)
    if not is_valid:
        raise ValueError(f"{error}: {address!r}")
    return address.strip().lower()

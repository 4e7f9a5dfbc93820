"""Shared type definitions for tokens, pairs and orders."""

from typing import Annotated, Any

from pydantic import BeforeValidator, Field, PlainSerializer

# Maximum uint256 value
UINT256_MAX = 2**256 - 1

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def validate_base_units(value: Any) -> int:
    """Validate a base-unit token amount.

    Amounts cross the HTTP boundary as decimal strings (JSON numbers lose
    precision above 2**53) but are held as Python ints everywhere else.

    Args:
        value: Value to validate (string or int)

    Returns:
        The amount as a non-negative int

    Raises:
        ValueError: If value is not a non-negative integer within uint256 range
    """
    if isinstance(value, bool):
        raise ValueError("Amount must be an integer, got bool")

    if isinstance(value, int):
        int_value = value
    elif isinstance(value, str):
        try:
            int_value = int(value)
        except ValueError as err:
            raise ValueError(f"Amount must be a decimal integer string: '{value}'") from err
    else:
        raise ValueError(f"Amount must be string or int, got {type(value).__name__}")

    if int_value < 0:
        raise ValueError(f"Amount cannot be negative: {value}")
    if int_value > UINT256_MAX:
        raise ValueError(f"Amount overflow: {value} > 2^256-1")

    return int_value


# Ethereum address (40 hex chars after 0x prefix)
Address = Annotated[str, Field(pattern=r"^0x[a-fA-F0-9]{40}$")]

# Token amount in base units (wei-style integer), a decimal string in JSON
BaseUnits = Annotated[
    int,
    BeforeValidator(validate_base_units),
    PlainSerializer(str, return_type=str, when_used="json"),
    Field(description="Token amount in base units"),
]


def normalize_address(address: str, *, validate: bool = False) -> str:
    """Normalize an Ethereum address to lowercase.

    Args:
        address: An Ethereum address (with or without 0x prefix)
        validate: If True, raises ValueError for invalid addresses.

    Returns:
        Lowercase address with 0x prefix

    Raises:
        ValueError: If validate=True and address is not a valid Ethereum address
    """
    addr = address.lower()
    if not addr.startswith("0x"):
        addr = "0x" + addr

    if validate and not is_valid_address(addr):
        raise ValueError(f"Invalid address: {address}")

    return addr


def is_valid_address(address: str) -> bool:
    """Check if a string is a valid Ethereum address."""
    if not isinstance(address, str):
        return False
    if not address.startswith("0x"):
        return False
    if len(address) != 42:
        return False
    try:
        int(address, 16)
        return True
    except ValueError:
        return False


def address_to_bytes(address: str) -> bytes:
    """Convert a 0x-prefixed address to its 20 raw bytes.

    Raises:
        ValueError: If the address is invalid
    """
    addr = normalize_address(address, validate=True)
    return bytes.fromhex(addr[2:])


__all__ = [
    "UINT256_MAX",
    "ZERO_ADDRESS",
    "Address",
    "BaseUnits",
    "validate_base_units",
    "normalize_address",
    "is_valid_address",
    "address_to_bytes",
]

"""Token metadata and the static token list."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from pydantic import BaseModel, ConfigDict, Field

from dexroute.models.types import ZERO_ADDRESS, Address, normalize_address


class Token(BaseModel):
    """An ERC20 token (or the chain's native asset) as listed in the client.

    The native asset is represented by the zero address. It never has a pool
    of its own; routing maps it to the wrapped-native token first.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    address: Address
    symbol: str
    name: str = ""
    decimals: int = Field(default=18, ge=0, le=77)
    logo_uri: str | None = Field(default=None, alias="logoURI")

    @property
    def is_native(self) -> bool:
        """True for the native-asset sentinel."""
        return normalize_address(self.address) == ZERO_ADDRESS

    @property
    def key(self) -> str:
        """Lowercase address, used for lookups and cache keys."""
        return normalize_address(self.address)


class TokenList:
    """Case-insensitive lookup over a fixed list of tokens.

    Args:
        tokens: Tokens in display order
        wrapped_native: Address of the wrapped-native token
    """

    def __init__(self, tokens: Iterable[Token], wrapped_native: str) -> None:
        self._tokens = list(tokens)
        self._by_address = {t.key: t for t in self._tokens}
        self._by_symbol = {t.symbol.upper(): t for t in self._tokens}
        self.wrapped_native = normalize_address(wrapped_native, validate=True)

    def __iter__(self) -> Iterator[Token]:
        return iter(self._tokens)

    def __len__(self) -> int:
        return len(self._tokens)

    def __contains__(self, address: object) -> bool:
        return isinstance(address, str) and normalize_address(address) in self._by_address

    def by_address(self, address: str) -> Token | None:
        return self._by_address.get(normalize_address(address))

    def by_symbol(self, symbol: str) -> Token | None:
        return self._by_symbol.get(symbol.upper())

    def wrapped(self, address: str) -> str:
        """Map the native sentinel to the wrapped-native address.

        Any other address is returned normalized and unchanged.
        """
        addr = normalize_address(address)
        if addr == ZERO_ADDRESS:
            return self.wrapped_native
        return addr

    def resolve(self, address: str) -> Token:
        """Return the listed token, or an unlisted placeholder with 18 decimals."""
        token = self.by_address(address)
        if token is not None:
            return token
        addr = normalize_address(address, validate=True)
        return Token(address=addr, symbol=addr[:8], name="Unknown Token")


__all__ = ["Token", "TokenList"]

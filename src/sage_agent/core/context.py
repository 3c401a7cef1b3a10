"""Per-call caller identity passed explicitly through the pipeline."""

from dataclasses import dataclass
from typing import Optional

from sage_agent.core.errors import (
    CallerContextError,
    InvalidCredentialError,
)
from sage_agent.core.keys import (
    address_from_private_key,
    normalise_address,
)


@dataclass(frozen=True)
class CallerContext:
    """
    Identity of the caller a pipeline invocation acts for.

    When a signing key is given, the address is derived from it; an explicitly supplied address
    must then match, so a tool can never sign with one wallet's key on behalf of another.  The
    key itself is only forwarded to tools whose schema declares a credential parameter.  One
    context belongs to one request; it is never cached on the agent.

    Raises
    ------
    InvalidCredentialError
        If the key cannot be decoded or does not own *address*.
    """

    address: Optional[str] = None
    private_key: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.private_key:
            return
        derived = address_from_private_key(self.private_key)
        if self.address and normalise_address(self.address) != derived:
            raise InvalidCredentialError("Wallet address does not match the signing key")
        object.__setattr__(self, "address", derived)

    def __repr__(self) -> str:
        key = "<set>" if self.private_key else None
        return f"CallerContext(address={self.address!r}, private_key={key})"

    def require_address(self) -> str:
        """Return the caller's wallet address or raise :class:`CallerContextError`."""
        if not self.address:
            raise CallerContextError(
                "Wallet address required but not provided. Please connect your wallet."
            )
        return self.address

    def require_private_key(self) -> str:
        """Return the signing credential or raise :class:`CallerContextError`."""
        if not self.private_key:
            raise CallerContextError(
                "Signing key required but not provided. Please connect your wallet."
            )
        return self.private_key


ANONYMOUS = CallerContext()

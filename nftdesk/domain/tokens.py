"""
Domain Layer: Token Rules
Price units, media URIs and write capabilities.
"""
from decimal import Decimal, ROUND_DOWN
from enum import Enum
from typing import AbstractSet, FrozenSet, Iterable, Optional

from .models import UnsupportedOperationError, ValidationError


def to_smallest_unit(price: "float | Decimal | str", multiplier: int) -> int:
    """
    Converts a display price into the chain's indivisible unit.
    1.5 XTZ with multiplier 1_000_000 -> 1_500_000 mutez.
    """
    try:
        amount = Decimal(str(price))
    except ArithmeticError as e:
        raise ValidationError(f"Invalid price: {price!r}") from e

    if not amount.is_finite() or amount <= 0:
        raise ValidationError(f"Price must be a positive number, got {price!r}")

    units = (amount * multiplier).quantize(Decimal(1), rounding=ROUND_DOWN)
    if units <= 0:
        raise ValidationError(f"Price {price!r} is below the smallest unit")
    return int(units)


def resolve_media_uri(uri: Optional[str], gateway: str) -> Optional[str]:
    """Rewrites content-addressed ipfs:// URIs to an HTTP gateway URL"""
    if not uri:
        return None
    if uri.startswith("ipfs://"):
        path = uri[len("ipfs://"):]
        if path.startswith("ipfs/"):
            path = path[len("ipfs/"):]
        return f"{gateway.rstrip('/')}/ipfs/{path}"
    return uri


class WriteCapability(Enum):
    NATIVE_BURN = "native_burn"
    TRANSFER_TO_BURN_ADDRESS = "transfer_to_burn_address"


# Entrypoint name -> capability it grants
_ENTRYPOINT_CAPABILITIES = {
    "burn": WriteCapability.NATIVE_BURN,
    "transfer": WriteCapability.TRANSFER_TO_BURN_ADDRESS,
}


def capabilities_from_entrypoints(entrypoints: Iterable[str]) -> FrozenSet[WriteCapability]:
    """Maps a contract's exposed entrypoints onto the closed capability set"""
    return frozenset(
        _ENTRYPOINT_CAPABILITIES[name]
        for name in entrypoints
        if name in _ENTRYPOINT_CAPABILITIES
    )


def select_burn_capability(capabilities: AbstractSet[WriteCapability]) -> WriteCapability:
    """Native burn wins over transfer-to-burn-address"""
    if WriteCapability.NATIVE_BURN in capabilities:
        return WriteCapability.NATIVE_BURN
    if WriteCapability.TRANSFER_TO_BURN_ADDRESS in capabilities:
        return WriteCapability.TRANSFER_TO_BURN_ADDRESS
    raise UnsupportedOperationError("Contract exposes neither burn nor transfer")

from __future__ import annotations

import json
from typing import Any, Mapping

from eth_utils import decode_hex, to_checksum_address

from heimfetch.domain.errors import DecodeError
from heimfetch.domain.models import Checkpoint, Milestone, Withdrawal
from heimfetch.domain.value_types import ADDRESS_LENGTH, MAX_UINT64, Address, BlockNum, EntityId

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")

# ---------- hex quantities / fixed-length bytes --------------------------------

def encode_quantity(n: int) -> str:
    """uint64 -> minimal 0x-prefixed hex ("0x0" for zero)."""
    if not 0 <= n <= MAX_UINT64:
        raise ValueError(f"quantity out of uint64 range: {n}")
    return hex(n)

def decode_quantity(v: Any, field: str = "quantity") -> int:
    """Strict inverse of encode_quantity: prefix required, no leading zeros, fits uint64."""
    if not isinstance(v, str):
        raise DecodeError(f"{field}: expected hex string, got {type(v).__name__}")
    if not v.startswith(("0x", "0X")):
        raise DecodeError(f"{field}: missing 0x prefix: {v!r}")
    digits = v[2:]
    if not digits:
        raise DecodeError(f"{field}: empty hex quantity")
    if not set(digits) <= _HEX_DIGITS:
        raise DecodeError(f"{field}: invalid hex: {v!r}")
    if len(digits) > 1 and digits[0] == "0":
        raise DecodeError(f"{field}: hex quantity with leading zero digits: {v!r}")
    n = int(digits, 16)
    if n > MAX_UINT64:
        raise DecodeError(f"{field}: hex number > 64 bits: {v!r}")
    return n

def decode_fixed_bytes(v: Any, size: int, field: str = "bytes") -> bytes:
    if not isinstance(v, str):
        raise DecodeError(f"{field}: expected hex string, got {type(v).__name__}")
    if not v.startswith(("0x", "0X")):
        raise DecodeError(f"{field}: missing 0x prefix: {v!r}")
    if len(v) - 2 != size * 2:
        raise DecodeError(f"{field}: hex string has length {len(v) - 2}, want {size * 2}")
    try:
        return decode_hex(v)
    except ValueError as e:  # binascii.Error is a ValueError
        raise DecodeError(f"{field}: invalid hex: {v!r}") from e

def _checksum(v: Any, field: str) -> Address:
    try:
        return Address(to_checksum_address(v))
    except (TypeError, ValueError) as e:
        raise DecodeError(f"{field}: invalid address {v!r}") from e

# ---------- withdrawal record ----------------------------------------------------

def withdrawal_to_dict(w: Withdrawal) -> dict[str, str]:
    if len(w.address) != ADDRESS_LENGTH:
        raise ValueError(f"address must be {ADDRESS_LENGTH} bytes, got {len(w.address)}")
    return {
        "index": encode_quantity(w.index),
        "validatorIndex": encode_quantity(w.validator_index),
        "address": to_checksum_address(w.address),
        "amount": encode_quantity(w.amount),
    }

def withdrawal_from_dict(d: Mapping[str, Any]) -> Withdrawal:
    """Every field is optional; absent (or JSON null) keeps the zero default."""
    if not isinstance(d, Mapping):
        raise DecodeError(f"withdrawal: expected object, got {type(d).__name__}")
    kw: dict[str, Any] = {}
    if d.get("index") is not None:
        kw["index"] = decode_quantity(d["index"], "index")
    if d.get("validatorIndex") is not None:
        kw["validator_index"] = decode_quantity(d["validatorIndex"], "validatorIndex")
    if d.get("address") is not None:
        kw["address"] = decode_fixed_bytes(d["address"], ADDRESS_LENGTH, "address")
    if d.get("amount") is not None:
        kw["amount"] = decode_quantity(d["amount"], "amount")
    return Withdrawal(**kw)

def encode_withdrawal(w: Withdrawal) -> str:
    return json.dumps(withdrawal_to_dict(w), separators=(",", ":"))

def decode_withdrawal(raw: str | bytes) -> Withdrawal:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise DecodeError(f"withdrawal: invalid JSON: {e}") from e
    return withdrawal_from_dict(data)

# ---------- heimdall payloads ----------------------------------------------------

def _require(d: Mapping[str, Any], key: str, kind: str) -> Any:
    try:
        return d[key]
    except KeyError:
        raise DecodeError(f"{kind}: missing field {key!r}") from None

def as_int(v: Any, field: str) -> int:
    # heimdall serializes uint64 as either JSON numbers or decimal strings
    if isinstance(v, bool):
        raise DecodeError(f"{field}: expected integer, got bool")
    if isinstance(v, int):
        if v < 0:
            raise DecodeError(f"{field}: expected non-negative integer, got {v}")
        return v
    if isinstance(v, str) and v.isascii() and v.isdigit():
        return int(v)
    raise DecodeError(f"{field}: expected integer, got {v!r}")

def _hex_lower(v: Any, field: str) -> str:
    if not isinstance(v, str):
        raise DecodeError(f"{field}: expected hex string, got {type(v).__name__}")
    s = v.lower()
    digits = s[2:] if s.startswith("0x") else s
    if not digits or not set(digits) <= _HEX_DIGITS:
        raise DecodeError(f"{field}: invalid hex: {v!r}")
    return "0x" + digits

def checkpoint_from_dict(d: Mapping[str, Any]) -> Checkpoint:
    if not isinstance(d, Mapping):
        raise DecodeError(f"checkpoint: expected object, got {type(d).__name__}")
    return Checkpoint(
        id=EntityId(as_int(_require(d, "id", "checkpoint"), "id")),
        proposer=_checksum(_require(d, "proposer", "checkpoint"), "proposer"),
        start_block=BlockNum(as_int(_require(d, "start_block", "checkpoint"), "start_block")),
        end_block=BlockNum(as_int(_require(d, "end_block", "checkpoint"), "end_block")),
        root_hash=_hex_lower(_require(d, "root_hash", "checkpoint"), "root_hash"),
        chain_id=str(d.get("bor_chain_id", "")),
        timestamp=as_int(d.get("timestamp", 0), "timestamp"),
    )

def milestone_from_dict(d: Mapping[str, Any], id: int | None = None) -> Milestone:
    """`id` overrides the payload id; the milestone endpoints do not always echo it."""
    if not isinstance(d, Mapping):
        raise DecodeError(f"milestone: expected object, got {type(d).__name__}")
    mid = id if id is not None else as_int(_require(d, "id", "milestone"), "id")
    return Milestone(
        id=EntityId(mid),
        proposer=_checksum(_require(d, "proposer", "milestone"), "proposer"),
        start_block=BlockNum(as_int(_require(d, "start_block", "milestone"), "start_block")),
        end_block=BlockNum(as_int(_require(d, "end_block", "milestone"), "end_block")),
        hash=_hex_lower(_require(d, "hash", "milestone"), "hash"),
        chain_id=str(d.get("bor_chain_id", "")),
        timestamp=as_int(d.get("timestamp", 0), "timestamp"),
        milestone_id=str(d.get("milestone_id", "")),
    )

def entity_to_row(e: Checkpoint | Milestone) -> dict[str, Any]:
    """Flat, JSON-safe row used by the sinks."""
    return {
        "id": int(e.id),
        "proposer": str(e.proposer),
        "start_block": int(e.start_block),
        "end_block": int(e.end_block),
        "hash": e.root_hash if isinstance(e, Checkpoint) else e.hash,
        "chain_id": e.chain_id,
        "timestamp": e.timestamp,
        "milestone_id": e.milestone_id if isinstance(e, Milestone) else None,
    }

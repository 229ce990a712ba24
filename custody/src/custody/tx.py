"""
Transaction decoding and signed/unsigned comparison.

Signing may only populate unlocking data (scriptSig and witness). Everything
else, and in particular every output amount and destination, must come back
exactly as it was handed to the signer. A ``False`` from ``compare_tx`` must
block submission.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field

from loguru import logger

from custody.errors import TransactionDecodeError


@dataclass
class DecodedInput:
    txid: str
    vout: int
    script_sig: str
    sequence: int
    witness: list[str] = field(default_factory=list)

    def outpoint_fields(self) -> tuple[str, int, int]:
        """Every field that signing must leave untouched"""
        return (self.txid, self.vout, self.sequence)


@dataclass
class DecodedOutput:
    value: int
    script_pubkey: str


@dataclass
class DecodedTransaction:
    version: int
    inputs: list[DecodedInput]
    outputs: list[DecodedOutput]
    locktime: int


def read_varint(data: bytes, offset: int) -> tuple[int, int]:
    """Read varint and return (value, bytes_consumed)."""
    first = data[offset]
    if first < 0xFD:
        return first, 1
    elif first == 0xFD:
        return struct.unpack("<H", data[offset + 1 : offset + 3])[0], 3
    elif first == 0xFE:
        return struct.unpack("<I", data[offset + 1 : offset + 5])[0], 5
    else:
        return struct.unpack("<Q", data[offset + 1 : offset + 9])[0], 9


def _take(data: bytes, offset: int, length: int) -> bytes:
    chunk = data[offset : offset + length]
    if len(chunk) != length:
        raise TransactionDecodeError(f"Truncated transaction at offset {offset}")
    return chunk


def decode_transaction(tx_hex: str) -> DecodedTransaction:
    """
    Decode a legacy or SegWit serialized transaction.

    Raises:
        TransactionDecodeError: If the hex is invalid, truncated or has
            trailing bytes
    """
    try:
        tx_bytes = bytes.fromhex(tx_hex)
    except ValueError as e:
        raise TransactionDecodeError(f"Invalid transaction hex: {e}") from e

    try:
        offset = 0

        version = struct.unpack("<i", _take(tx_bytes, offset, 4))[0]
        offset += 4

        # SegWit marker + flag
        has_witness = False
        if _take(tx_bytes, offset, 2) == b"\x00\x01":
            offset += 2
            has_witness = True

        input_count, size = read_varint(tx_bytes, offset)
        offset += size

        inputs = []
        for _ in range(input_count):
            txid = _take(tx_bytes, offset, 32)[::-1].hex()
            offset += 32
            vout = struct.unpack("<I", _take(tx_bytes, offset, 4))[0]
            offset += 4
            script_len, size = read_varint(tx_bytes, offset)
            offset += size
            script_sig = _take(tx_bytes, offset, script_len).hex()
            offset += script_len
            sequence = struct.unpack("<I", _take(tx_bytes, offset, 4))[0]
            offset += 4
            inputs.append(
                DecodedInput(txid=txid, vout=vout, script_sig=script_sig, sequence=sequence)
            )

        output_count, size = read_varint(tx_bytes, offset)
        offset += size

        outputs = []
        for _ in range(output_count):
            value = struct.unpack("<q", _take(tx_bytes, offset, 8))[0]
            offset += 8
            script_len, size = read_varint(tx_bytes, offset)
            offset += size
            script_pubkey = _take(tx_bytes, offset, script_len).hex()
            offset += script_len
            outputs.append(DecodedOutput(value=value, script_pubkey=script_pubkey))

        if has_witness:
            for inp in inputs:
                item_count, size = read_varint(tx_bytes, offset)
                offset += size
                for _ in range(item_count):
                    item_len, size = read_varint(tx_bytes, offset)
                    offset += size
                    inp.witness.append(_take(tx_bytes, offset, item_len).hex())
                    offset += item_len

        locktime = struct.unpack("<I", _take(tx_bytes, offset, 4))[0]
        offset += 4
    except (IndexError, struct.error) as e:
        raise TransactionDecodeError(f"Malformed transaction: {e}") from e

    if offset != len(tx_bytes):
        raise TransactionDecodeError(f"{len(tx_bytes) - offset} trailing bytes after locktime")

    return DecodedTransaction(version=version, inputs=inputs, outputs=outputs, locktime=locktime)


def compare_tx(unsigned_hex: str, signed_hex: str) -> bool:
    """
    Check that a signed transaction is the unsigned one plus unlocking data.

    Returns:
        True if version, locktime, every input's outpoint and sequence, and
        every output match exactly
    """
    try:
        unsigned_tx = decode_transaction(unsigned_hex)
        signed_tx = decode_transaction(signed_hex)
    except TransactionDecodeError as e:
        logger.warning(f"compareTx: cannot decode transaction: {e}")
        return False

    if unsigned_tx.version != signed_tx.version or unsigned_tx.locktime != signed_tx.locktime:
        logger.warning("compareTx: version or locktime mismatch")
        return False

    if len(unsigned_tx.inputs) != len(signed_tx.inputs):
        logger.warning(
            f"compareTx: input count mismatch "
            f"({len(unsigned_tx.inputs)} != {len(signed_tx.inputs)})"
        )
        return False

    for i, (unsigned_in, signed_in) in enumerate(
        zip(unsigned_tx.inputs, signed_tx.inputs, strict=True)
    ):
        if unsigned_in.outpoint_fields() != signed_in.outpoint_fields():
            logger.warning(f"compareTx: input {i} mismatch")
            return False

    if unsigned_tx.outputs != signed_tx.outputs:
        logger.warning("compareTx: outputs mismatch")
        return False

    return True

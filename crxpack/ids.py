# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Extension identifiers.

Two distinct derivations share the same sha256 digest of the DER public key:
- the public id: 32 characters in `a..p` (one per hex nibble of the digest),
- the binary id embedded in CRX3 signed header data: the first 16 raw digest
  bytes.

Neither is computed from the other.
"""

from __future__ import annotations

import hashlib

CRX_ID_SIZE = 16
CRX_ID_LEN = 32

_NIBBLE_ALPHABET = "abcdefghijklmnop"


def _remap_hex(hex_text: str) -> str:
	return "".join(_NIBBLE_ALPHABET[int(ch, 16)] for ch in hex_text)


def derive_identifier(public_key: bytes) -> str:
	"""Return the 32-character extension id for a DER public key."""
	return _remap_hex(hashlib.sha256(public_key).hexdigest())[:CRX_ID_LEN]


def binary_crx_id(public_key: bytes) -> bytes:
	"""Return the raw 16-byte id stored in CRX3 `SignedData.crx_id`."""
	return hashlib.sha256(public_key).digest()[:CRX_ID_SIZE]


def identifier_from_binary(crx_id: bytes) -> str:
	"""Render a raw 16-byte id the way `derive_identifier` renders a digest."""
	return _remap_hex(crx_id.hex())


def is_identifier(text: str) -> bool:
	return len(text) == CRX_ID_LEN and all(ch in _NIBBLE_ALPHABET for ch in text)

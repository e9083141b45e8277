# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
CRX container codec (versions 2 and 3).

Byte layout (all integers u32 little-endian):

	v2: "Cr24" | 2 | key_len | sig_len | public_key | signature | archive
	v3: "Cr24" | 3 | header_len | CrxFileHeader | archive

The v3 signature covers `signing_payload_v3(...)`, never the outer framing,
so a signature is independent of the proof slot it ends up in.

`decode` only demultiplexes framing; it does not verify signatures.
"""

from __future__ import annotations

import functools
import struct
import warnings
from dataclasses import dataclass
from typing import Callable, Union

from google.protobuf.message import DecodeError
from loguru import logger

from crxpack import crypto
from crxpack.crx3_pb import CrxFileHeader, SignedData
from crxpack.errors import (
	BAD_HEADER,
	BAD_MAGIC,
	TRUNCATED,
	UNSUPPORTED_CRX_VERSION,
	UNSUPPORTED_FORMAT_VERSION,
	UNSUPPORTED_KEY_ALGORITHM,
	CrxConfigError,
	CrxFormatError,
)
from crxpack.ids import binary_crx_id

MAGIC = b"Cr24"
SIGNATURE_CONTEXT = b"CRX3 SignedData\x00"
SUPPORTED_VERSIONS = (2, 3)
DEFAULT_CRX_VERSION = 3

_U32 = struct.Struct("<I")
# magic(4), version(u32)
_PREFIX_STRUCT = struct.Struct("<4sI")
# magic(4), version(u32), key_len(u32), sig_len(u32)
_V2_HEADER_STRUCT = struct.Struct("<4sIII")
# magic(4), version(u32), header_len(u32)
_V3_HEADER_STRUCT = struct.Struct("<4sII")

SignFn = Callable[[bytes, bytes], bytes]

_PROOF_SLOTS = {
	"rsa": "sha256_with_rsa",
	"ecdsa": "sha256_with_ecdsa",
}


@dataclass(frozen=True)
class Crx2:
	"""A decoded CRX2 container."""

	archive: bytes
	key: bytes
	sign: bytes
	crx_version: int = 2


@dataclass(frozen=True)
class Crx3:
	"""A decoded CRX3 container; `header` is a `CrxFileHeader` message."""

	archive: bytes
	header: CrxFileHeader
	crx_version: int = 3

	@property
	def signed_data(self) -> SignedData:
		return SignedData.FromString(self.header.signed_header_data)

	@property
	def crx_id(self) -> bytes:
		"""Raw 16-byte id embedded in the signed header data."""
		return bytes(self.signed_data.crx_id)

	@property
	def public_keys(self) -> list[bytes]:
		proofs = list(self.header.sha256_with_rsa) + list(self.header.sha256_with_ecdsa)
		return [bytes(p.public_key) for p in proofs]


Container = Union[Crx2, Crx3]


def encode_v2(private_key: bytes, public_key: bytes, contents: bytes, sign_fn: SignFn | None = None) -> bytes:
	"""
	Encode a CRX2 container.

	CRX2 signs the raw archive with PKCS#1 v1.5 / SHA-1. Chromium stopped
	accepting it in 2017; this exists for legacy hosting only.
	"""
	warnings.warn("CRX2 is deprecated; use CRX3", DeprecationWarning, stacklevel=2)
	if sign_fn is None:
		if crypto.key_algorithm(private_key) != "rsa":
			raise CrxConfigError(UNSUPPORTED_KEY_ALGORITHM, "CRX2 requires an RSA key", field="private_key")
		sign_fn = functools.partial(crypto.sign_message, digest="sha1")
	signature = sign_fn(private_key, contents)
	header = _V2_HEADER_STRUCT.pack(MAGIC, 2, len(public_key), len(signature))
	logger.debug(f"encoded CRX2: key={len(public_key)}B sig={len(signature)}B archive={len(contents)}B")
	return b"".join((header, public_key, signature, contents))


def encode_signed_header_data(public_key: bytes) -> bytes:
	"""Serialize `SignedData{crx_id}` for a public key."""
	return SignedData(crx_id=binary_crx_id(public_key)).SerializeToString(deterministic=True)


def signing_payload_v3(signed_header_data: bytes, contents: bytes) -> bytes:
	"""
	Build the exact byte string a CRX3 signature covers:

	context ("CRX3 SignedData\\0") | u32le len(signed_header_data) | signed_header_data | contents
	"""
	return b"".join((SIGNATURE_CONTEXT, _U32.pack(len(signed_header_data)), signed_header_data, contents))


def encode_v3(
	private_key: bytes,
	public_key: bytes,
	contents: bytes,
	sign_fn: SignFn | None = None,
	algorithm: str | None = None,
) -> bytes:
	"""
	Encode a CRX3 container with a single proof.

	`algorithm` picks the proof slot ("rsa" or "ecdsa"); it is detected from the
	private key when omitted.
	"""
	if algorithm is None:
		algorithm = crypto.key_algorithm(private_key)
	slot = _PROOF_SLOTS.get(algorithm)
	if slot is None:
		raise CrxConfigError(UNSUPPORTED_KEY_ALGORITHM, f"no CRX3 proof slot for algorithm {algorithm!r}", field="private_key")
	if sign_fn is None:
		sign_fn = functools.partial(crypto.sign_message, digest="sha256")

	signed_header_data = encode_signed_header_data(public_key)
	signature = sign_fn(private_key, signing_payload_v3(signed_header_data, contents))

	header_msg = CrxFileHeader(signed_header_data=signed_header_data)
	proof = getattr(header_msg, slot).add()
	proof.public_key = public_key
	proof.signature = signature
	header = header_msg.SerializeToString(deterministic=True)

	logger.debug(f"encoded CRX3: slot={slot} header={len(header)}B archive={len(contents)}B")
	return b"".join((_V3_HEADER_STRUCT.pack(MAGIC, 3, len(header)), header, contents))


def encode(
	version: int | None,
	private_key: bytes,
	public_key: bytes,
	contents: bytes,
	sign_fn: SignFn | None = None,
) -> bytes:
	"""Encode with the given container version (`None` means CRX3)."""
	if version is None or version == 3:
		return encode_v3(private_key, public_key, contents, sign_fn)
	if version == 2:
		return encode_v2(private_key, public_key, contents, sign_fn)
	raise CrxConfigError(UNSUPPORTED_CRX_VERSION, f"unsupported CRX version: {version!r}", field="crx_version")


def _need(buf: bytes, n: int, what: str) -> None:
	if len(buf) < n:
		raise CrxFormatError(TRUNCATED, f"unexpected end of data while reading {what} ({len(buf)} < {n} bytes)")


def decode(buf: bytes) -> Container:
	"""
	Split a CRX container into its header fields and archive.

	Raises CrxFormatError for anything that is not a well-formed v2/v3 container.
	"""
	buf = bytes(buf)
	if buf[: len(MAGIC)] != MAGIC:
		raise CrxFormatError(BAD_MAGIC, "the data given is not a valid CRX file (bad magic)")
	_need(buf, _PREFIX_STRUCT.size, "version")
	_, version = _PREFIX_STRUCT.unpack_from(buf, 0)

	if version == 2:
		_need(buf, _V2_HEADER_STRUCT.size, "CRX2 header")
		_, _, key_len, sig_len = _V2_HEADER_STRUCT.unpack_from(buf, 0)
		key_start = _V2_HEADER_STRUCT.size
		sig_start = key_start + key_len
		archive_start = sig_start + sig_len
		_need(buf, archive_start, "CRX2 key and signature")
		return Crx2(
			archive=buf[archive_start:],
			key=buf[key_start:sig_start],
			sign=buf[sig_start:archive_start],
		)

	if version == 3:
		_need(buf, _V3_HEADER_STRUCT.size, "CRX3 header length")
		_, _, header_len = _V3_HEADER_STRUCT.unpack_from(buf, 0)
		header_start = _V3_HEADER_STRUCT.size
		archive_start = header_start + header_len
		_need(buf, archive_start, "CRX3 header")
		try:
			header = CrxFileHeader.FromString(buf[header_start:archive_start])
		except DecodeError as err:
			raise CrxFormatError(BAD_HEADER, f"CRX3 header is not a valid CrxFileHeader: {err}") from err
		try:
			SignedData.FromString(header.signed_header_data)
		except DecodeError as err:
			raise CrxFormatError(BAD_HEADER, f"CRX3 signed_header_data is not a valid SignedData: {err}") from err
		return Crx3(archive=buf[archive_start:], header=header)

	raise CrxFormatError(UNSUPPORTED_FORMAT_VERSION, f"unsupported CRX format version: {version}")

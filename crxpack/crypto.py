# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import hashlib

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa

from crxpack.errors import UNSUPPORTED_KEY_ALGORITHM, CrxConfigError

DEFAULT_KEY_SIZE = 4096
RSA_PUBLIC_EXPONENT = 65537

KEY_ALGORITHMS = ("rsa", "ecdsa")

_DIGESTS = {
	"sha1": hashes.SHA1,
	"sha256": hashes.SHA256,
}


def sha256_hex(data: bytes) -> str:
	return hashlib.sha256(data).hexdigest()


def _load_private(private_key: bytes):
	return serialization.load_der_private_key(private_key, password=None)


def _private_der(key) -> bytes:
	return key.private_bytes(
		encoding=serialization.Encoding.DER,
		format=serialization.PrivateFormat.PKCS8,
		encryption_algorithm=serialization.NoEncryption(),
	)


def _public_der(key) -> bytes:
	return key.public_bytes(
		encoding=serialization.Encoding.DER,
		format=serialization.PublicFormat.SubjectPublicKeyInfo,
	)


def generate_private_key(bits: int = DEFAULT_KEY_SIZE, algorithm: str = "rsa") -> bytes:
	"""
	Generate a fresh private key and return it as PKCS#8 DER.

	`bits` applies to RSA only; ECDSA keys are always P-256, the curve Chromium
	accepts in CRX3 headers.
	"""
	if algorithm == "rsa":
		key = rsa.generate_private_key(public_exponent=RSA_PUBLIC_EXPONENT, key_size=bits)
	elif algorithm == "ecdsa":
		key = ec.generate_private_key(ec.SECP256R1())
	else:
		raise CrxConfigError(UNSUPPORTED_KEY_ALGORITHM, f"unsupported key algorithm: {algorithm!r}", field="private_key")
	return _private_der(key)


def public_key_from_private(private_key: bytes) -> bytes:
	"""Derive the SubjectPublicKeyInfo DER public key from a PKCS#8 DER private key."""
	return _public_der(_load_private(private_key).public_key())


def key_algorithm(private_key: bytes) -> str:
	"""Return "rsa" or "ecdsa" for a DER private key."""
	key = _load_private(private_key)
	if isinstance(key, rsa.RSAPrivateKey):
		return "rsa"
	if isinstance(key, ec.EllipticCurvePrivateKey):
		return "ecdsa"
	raise CrxConfigError(UNSUPPORTED_KEY_ALGORITHM, f"unsupported private key type: {type(key).__name__}", field="private_key")


def sign_message(private_key: bytes, message: bytes, digest: str = "sha256") -> bytes:
	"""
	Sign `message` with a DER private key.

	RSA keys use PKCS#1 v1.5 padding; EC keys use ECDSA (DER-encoded signature).
	"""
	hash_alg = _DIGESTS[digest]()
	key = _load_private(private_key)
	if isinstance(key, rsa.RSAPrivateKey):
		return key.sign(message, padding.PKCS1v15(), hash_alg)
	if isinstance(key, ec.EllipticCurvePrivateKey):
		return key.sign(message, ec.ECDSA(hash_alg))
	raise CrxConfigError(UNSUPPORTED_KEY_ALGORITHM, f"unsupported private key type: {type(key).__name__}", field="private_key")


def to_pem(key: bytes, kind: str) -> str:
	"""Convert a DER key (`kind` is "private" or "public") to PKCS#8/SPKI PEM text."""
	if kind == "private":
		pem = _load_private(key).private_bytes(
			encoding=serialization.Encoding.PEM,
			format=serialization.PrivateFormat.PKCS8,
			encryption_algorithm=serialization.NoEncryption(),
		)
	elif kind == "public":
		pem = serialization.load_der_public_key(key).public_bytes(
			encoding=serialization.Encoding.PEM,
			format=serialization.PublicFormat.SubjectPublicKeyInfo,
		)
	else:
		raise ValueError(f"kind must be 'private' or 'public', got: {kind!r}")
	return pem.decode("ascii")


def from_pem(text: str | bytes, kind: str) -> bytes:
	"""Convert PEM text to a DER key (PKCS#8 for private keys, SPKI for public keys)."""
	data = text.encode("ascii") if isinstance(text, str) else text
	if kind == "private":
		return _private_der(serialization.load_pem_private_key(data, password=None))
	if kind == "public":
		return _public_der(serialization.load_pem_public_key(data))
	raise ValueError(f"kind must be 'private' or 'public', got: {kind!r}")

# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import os
from pathlib import Path

from loguru import logger

from crxpack.crypto import from_pem, to_pem

_PEM_PREFIX = b"-----BEGIN"


def _is_pem(path: Path, data: bytes) -> bool:
	return path.suffix.lower() == ".pem" or data.lstrip().startswith(_PEM_PREFIX)


def _load_key(path: str | Path, kind: str) -> bytes | None:
	"""
	Load a key file as DER bytes.

	PEM files (by `.pem` suffix or content) are converted; anything else is
	taken as raw DER. A missing file yields None so callers can regenerate.
	"""
	path = Path(path)
	try:
		data = path.read_bytes()
	except FileNotFoundError:
		logger.debug(f"{kind} key file not found: {path}")
		return None
	if _is_pem(path, data):
		return from_pem(data, kind)
	return data


def load_private_key(path: str | Path) -> bytes | None:
	return _load_key(path, "private")


def load_public_key(path: str | Path) -> bytes | None:
	return _load_key(path, "public")


def save_private_key(path: str | Path, private_key: bytes) -> None:
	"""
	Write a DER private key as PKCS#8 PEM.

	Refuses to overwrite an existing file (raises FileExistsError).
	"""
	path = Path(path)
	path.parent.mkdir(parents=True, exist_ok=True)
	pem = to_pem(private_key, "private")
	fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o600)
	with os.fdopen(fd, "w", encoding="ascii") as f:
		f.write(pem)
	logger.info(f"wrote private key to {path}")

# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from crxpack.crypto import DEFAULT_KEY_SIZE, generate_private_key, public_key_from_private
from crxpack.ids import derive_identifier
from crxpack.keyfile import save_private_key


@dataclass(frozen=True)
class KeygenOptions:
	out_path: Path
	key_size: int = DEFAULT_KEY_SIZE
	key_algorithm: str = "rsa"
	print_id: bool = False


def keygen(opts: KeygenOptions) -> str:
	"""
	Generate a new private key and write it as PKCS#8 PEM.

	Returns the extension id the key produces. Existing files are never
	overwritten.
	"""
	if opts.out_path.exists():
		raise ValueError(f"refusing to overwrite existing key file: {opts.out_path}")
	private_key = generate_private_key(opts.key_size, opts.key_algorithm)
	save_private_key(opts.out_path, private_key)
	crx_id = derive_identifier(public_key_from_private(private_key))
	if opts.print_id:
		print(crx_id)
	return crx_id

# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from loguru import logger

from crxpack.container import Crx2, decode
from crxpack.contents import extract_archive
from crxpack.crypto import sha256_hex
from crxpack.ids import derive_identifier, identifier_from_binary


@dataclass(frozen=True)
class UnpackOptions:
	crx_path: Path
	out_zip: Path | None = None
	out_dir: Path | None = None


def describe(crx_bytes: bytes) -> dict[str, Any]:
	"""Summarize a CRX container (version, id, key count, archive hash)."""
	crx = decode(crx_bytes)
	if isinstance(crx, Crx2):
		return {
			"crx_version": 2,
			"crx_id": derive_identifier(crx.key),
			"public_keys": 1,
			"archive_size": len(crx.archive),
			"archive_sha256": f"sha256:{sha256_hex(crx.archive)}",
		}
	return {
		"crx_version": 3,
		"crx_id": identifier_from_binary(crx.crx_id) if crx.header.signed_header_data else None,
		"public_keys": len(crx.public_keys),
		"archive_size": len(crx.archive),
		"archive_sha256": f"sha256:{sha256_hex(crx.archive)}",
	}


def unpack_crx(opts: UnpackOptions) -> dict[str, Any]:
	"""Decode a CRX file and write its archive as a zip and/or an extracted tree."""
	if opts.out_zip is None and opts.out_dir is None:
		raise ValueError("nothing to do: pass an output zip path and/or an output directory")
	crx_bytes = opts.crx_path.read_bytes()
	info = describe(crx_bytes)
	archive = decode(crx_bytes).archive
	if opts.out_zip is not None:
		opts.out_zip.parent.mkdir(parents=True, exist_ok=True)
		opts.out_zip.write_bytes(archive)
		logger.info(f"wrote archive {opts.out_zip}")
	if opts.out_dir is not None:
		names = extract_archive(archive, opts.out_dir)
		info["files"] = sorted(names)
		logger.info(f"extracted {len(names)} file(s) into {opts.out_dir}")
	return info

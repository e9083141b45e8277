# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from crxpack import crypto, keyfile
from crxpack.resolve import REQUESTED, UNSET, BuildRequest, BuildResult, Resolver


@dataclass(frozen=True)
class PackOptions:
	src_dir: Path
	out_path: Path
	key_path: Path | None = None
	write_key: bool = False
	crx_version: int | None = None
	key_size: int = crypto.DEFAULT_KEY_SIZE
	key_algorithm: str = "rsa"
	update_url: str | None = None
	update_xml_path: Path | None = None


def build_request(opts: PackOptions) -> BuildRequest:
	want_xml = opts.update_xml_path is not None
	return BuildRequest(
		contents=opts.src_dir,
		private_key=opts.key_path if opts.key_path is not None else UNSET,
		crx=REQUESTED,
		crx_id=REQUESTED,
		update_xml=REQUESTED if want_xml else UNSET,
		crx_url=opts.update_url,
		crx_version=opts.crx_version,
		key_size=opts.key_size,
		key_algorithm=opts.key_algorithm,
	)


def pack_extension(opts: PackOptions) -> BuildResult:
	"""
	Package `src_dir` into a CRX at `out_path`.

	If `key_path` names a key file it is used; otherwise a fresh key is
	generated and, with `write_key`, saved to `key_path` (never overwriting).
	"""
	if not opts.src_dir.is_dir():
		raise ValueError(f"extension directory not found: {opts.src_dir}")
	resolver = Resolver(build_request(opts))
	for name, value in resolver.steps():
		if name == "private_key" and opts.write_key and opts.key_path is not None:
			# Persist the fresh key before signing so a later failure does not lose it.
			keyfile.save_private_key(opts.key_path, value)
	result = resolver.result()

	opts.out_path.parent.mkdir(parents=True, exist_ok=True)
	opts.out_path.write_bytes(result.crx)
	logger.info(f"wrote CRX{result.crx_version} {opts.out_path} (id={result.crx_id})")
	if opts.update_xml_path is not None:
		opts.update_xml_path.parent.mkdir(parents=True, exist_ok=True)
		opts.update_xml_path.write_text(result.update_xml + "\n", encoding="utf-8")
		logger.info(f"wrote update XML {opts.update_xml_path}")
	return result

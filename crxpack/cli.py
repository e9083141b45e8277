# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from loguru import logger

from crxpack.crypto import DEFAULT_KEY_SIZE, KEY_ALGORITHMS, public_key_from_private
from crxpack.errors import CrxError
from crxpack.ids import derive_identifier, is_identifier
from crxpack.keyfile import load_private_key
from crxpack.keygen import KeygenOptions, keygen
from crxpack.pack import PackOptions, pack_extension
from crxpack.unpack import UnpackOptions, unpack_crx
from crxpack.update_xml import render_update_xml


def _build_parser() -> argparse.ArgumentParser:
	p = argparse.ArgumentParser(prog="crxpack", description="Pack, unpack and host signed browser extension (CRX) packages")
	p.add_argument("-v", "--verbose", action="store_true", help="Log resolution steps to stderr")
	sub = p.add_subparsers(dest="cmd", required=True)

	pack = sub.add_parser("pack", help="Pack an extension directory into a signed CRX")
	pack.add_argument("src_dir", type=Path, help="Extension root (must contain manifest.json)")
	pack.add_argument("--out", type=Path, default=None, help="Output CRX path (default: <src_dir>.crx)")
	pack.add_argument("--key", type=Path, default=None, help="Private key (PEM or DER); generated when missing")
	pack.add_argument("--write-key", action="store_true", help="Save a generated key to --key (never overwrites)")
	pack.add_argument("--crx-version", type=int, default=None, help="Container version: 3 (default) or 2 (deprecated)")
	pack.add_argument("--key-size", type=int, default=DEFAULT_KEY_SIZE, help=f"RSA key size for generated keys (default: {DEFAULT_KEY_SIZE})")
	pack.add_argument("--key-algorithm", choices=KEY_ALGORITHMS, default="rsa", help="Algorithm for generated keys (default: rsa)")
	pack.add_argument("--update-url", type=str, default=None, help="URL the CRX will be hosted at (for --update-xml)")
	pack.add_argument("--update-xml", type=Path, default=None, help="Also write an update manifest XML to this path")
	pack.add_argument("--json", action="store_true", help="Emit machine-readable JSON")

	unpack = sub.add_parser("unpack", help="Extract the archive from a CRX")
	unpack.add_argument("crx", type=Path, help="Path to a .crx file")
	unpack.add_argument("--out-zip", type=Path, default=None, help="Write the embedded zip archive here")
	unpack.add_argument("--out-dir", type=Path, default=None, help="Extract the archive into this directory")
	unpack.add_argument("--json", action="store_true", help="Emit machine-readable JSON")

	ident = sub.add_parser("id", help="Print the extension id for a private key")
	ident.add_argument("--key", type=Path, required=True, help="Private key (PEM or DER)")

	kg = sub.add_parser("keygen", help="Generate a private key (PKCS#8 PEM)")
	kg.add_argument("--out", type=Path, required=True, help="Output key path")
	kg.add_argument("--key-size", type=int, default=DEFAULT_KEY_SIZE, help=f"RSA key size (default: {DEFAULT_KEY_SIZE})")
	kg.add_argument("--key-algorithm", choices=KEY_ALGORITHMS, default="rsa", help="Key algorithm (default: rsa)")
	kg.add_argument("--print-id", action="store_true", help="Print the extension id to stdout")

	ux = sub.add_parser("update-xml", help="Render an update manifest XML")
	ux.add_argument("--id", dest="crx_id", type=str, required=True, help="Extension id")
	ux.add_argument("--url", type=str, required=True, help="CRX download URL")
	ux.add_argument("--version", dest="ext_version", type=str, required=True, help="Extension version")
	ux.add_argument("--min-chrome-version", type=str, default=None, help="Minimum browser version")
	return p


def _configure_logging(verbose: bool) -> None:
	logger.remove()
	logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


def main(argv: list[str] | None = None) -> int:
	p = _build_parser()
	args = p.parse_args(argv)
	_configure_logging(bool(args.verbose))

	if args.cmd == "pack":
		src_dir: Path = args.src_dir
		out: Path = args.out if args.out is not None else Path(str(src_dir).rstrip("/\\") + ".crx")
		if args.update_xml is not None and args.update_url is None:
			p.error("--update-xml requires --update-url")
		if args.write_key and args.key is None:
			p.error("--write-key requires --key")
		opts = PackOptions(
			src_dir=src_dir,
			out_path=out,
			key_path=args.key,
			write_key=bool(args.write_key),
			crx_version=args.crx_version,
			key_size=args.key_size,
			key_algorithm=args.key_algorithm,
			update_url=args.update_url,
			update_xml_path=args.update_xml,
		)
		try:
			result = pack_extension(opts)
		except (CrxError, OSError, ValueError) as err:
			p.error(str(err))
			return 2
		report = {"crx_id": result.crx_id, "crx_version": result.crx_version, "out": str(out), "generated": list(result.generated)}
		if args.json:
			print(json.dumps(report, sort_keys=True, separators=(",", ":")))
		else:
			print(result.crx_id)
		return 0

	if args.cmd == "unpack":
		opts = UnpackOptions(crx_path=args.crx, out_zip=args.out_zip, out_dir=args.out_dir)
		try:
			info = unpack_crx(opts)
		except (CrxError, OSError, ValueError) as err:
			p.error(str(err))
			return 2
		if args.json:
			print(json.dumps(info, sort_keys=True, separators=(",", ":")))
		else:
			print(f"CRX{info['crx_version']} id={info['crx_id']} archive={info['archive_size']}B")
		return 0

	if args.cmd == "id":
		try:
			private_key = load_private_key(args.key)
			if private_key is None:
				raise ValueError(f"key file not found: {args.key}")
			print(derive_identifier(public_key_from_private(private_key)))
			return 0
		except (CrxError, OSError, ValueError) as err:
			p.error(str(err))
			return 2

	if args.cmd == "keygen":
		opts = KeygenOptions(
			out_path=args.out,
			key_size=args.key_size,
			key_algorithm=args.key_algorithm,
			print_id=bool(args.print_id),
		)
		try:
			keygen(opts)
			return 0
		except (CrxError, OSError, ValueError) as err:
			p.error(str(err))
			return 2

	if args.cmd == "update-xml":
		if not is_identifier(args.crx_id):
			p.error(f"not an extension id: {args.crx_id!r}")
		print(render_update_xml(args.crx_id, args.url, args.ext_version, args.min_chrome_version))
		return 0

	raise AssertionError("unreachable")

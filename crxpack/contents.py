# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Extension contents: directory -> zip archive + parsed manifest.

The archive is deterministic so the signature and id computed later depend
only on the files themselves:
- entries are written in sorted relative-path order,
- entries use a fixed timestamp and fixed permissions,
- DEFLATE compression at a fixed level.
"""

from __future__ import annotations

import io
import json
import os
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator

from loguru import logger

from crxpack.errors import MANIFEST_INVALID, MANIFEST_NOT_FOUND, CrxContentsError

MANIFEST_NAME = "manifest.json"
COMPRESS_LEVEL = 6


@dataclass(frozen=True)
class PackedContents:
	contents: bytes
	manifest: dict[str, Any]


def iter_files(root: Path) -> Iterator[str]:
	"""
	Yield relative file paths (POSIX strings) under root, sorted.

	Follows symlinks, except links back into one of their own ancestors;
	skips anything that is not a regular file.
	"""
	files = []
	top = os.fspath(root)
	ancestors = {top: frozenset([os.path.realpath(top)])}
	for base, dirs, filenames in os.walk(top, followlinks=True):
		chain = ancestors.pop(base)
		kept = []
		for name in dirs:
			sub = os.path.join(base, name)
			real = os.path.realpath(sub)
			if real in chain:
				logger.warning(f"skipping symlink cycle: {sub}")
				continue
			ancestors[sub] = chain | {real}
			kept.append(name)
		dirs[:] = kept
		base_p = Path(base)
		for name in filenames:
			fp = base_p / name
			if not fp.is_file():
				continue
			files.append(fp.relative_to(root).as_posix())
	yield from sorted(files)


def _zipinfo(name: str) -> zipfile.ZipInfo:
	"""
	Create a ZipInfo with deterministic metadata.

	- fixed timestamp (Zip's earliest representable time)
	- fixed unix permissions (rw-r--r--)
	"""
	zi = zipfile.ZipInfo(filename=name)
	zi.date_time = (1980, 1, 1, 0, 0, 0)
	zi.external_attr = 0o100644 << 16
	zi.compress_type = zipfile.ZIP_DEFLATED
	return zi


def parse_manifest(data: bytes, *, path: str | None = None) -> dict[str, Any]:
	try:
		obj = json.loads(data.decode("utf-8-sig"))
	except (UnicodeDecodeError, json.JSONDecodeError) as err:
		raise CrxContentsError(MANIFEST_INVALID, f"{MANIFEST_NAME} is not valid JSON: {err}", path=path) from err
	if not isinstance(obj, dict):
		raise CrxContentsError(MANIFEST_INVALID, f"{MANIFEST_NAME} must be a JSON object", path=path)
	return obj


def pack_directory(root: str | Path) -> PackedContents:
	"""
	Zip every file under `root` and parse its root-level manifest.json.

	Raises CrxContentsError if the manifest is missing or not a JSON object.
	"""
	root = Path(root).resolve()
	manifest_bytes: bytes | None = None
	buf = io.BytesIO()
	count = 0
	with zipfile.ZipFile(buf, mode="w", compression=zipfile.ZIP_DEFLATED, compresslevel=COMPRESS_LEVEL) as zf:
		for rel in iter_files(root):
			data = (root / rel).read_bytes()
			if rel == MANIFEST_NAME:
				manifest_bytes = data
			zf.writestr(_zipinfo(rel), data, compresslevel=COMPRESS_LEVEL)
			count += 1
	if manifest_bytes is None:
		raise CrxContentsError(MANIFEST_NOT_FOUND, "manifest file not found", path=str(root / MANIFEST_NAME))
	contents = buf.getvalue()
	logger.debug(f"packed {count} file(s) from {root} into {len(contents)}B archive")
	return PackedContents(contents=contents, manifest=parse_manifest(manifest_bytes, path=str(root / MANIFEST_NAME)))


def read_manifest(archive: bytes) -> dict[str, Any]:
	"""Parse manifest.json from the root of a zip archive buffer."""
	try:
		with zipfile.ZipFile(io.BytesIO(archive)) as zf:
			data = zf.read(MANIFEST_NAME)
	except KeyError as err:
		raise CrxContentsError(MANIFEST_NOT_FOUND, "manifest file not found in archive") from err
	except zipfile.BadZipFile as err:
		raise CrxContentsError(MANIFEST_NOT_FOUND, f"contents are not a zip archive: {err}") from err
	return parse_manifest(data)


def extract_archive(archive: bytes, dest_dir: Path) -> list[str]:
	"""Extract a zip archive buffer into `dest_dir`; return the member names."""
	dest_dir.mkdir(parents=True, exist_ok=True)
	with zipfile.ZipFile(io.BytesIO(archive)) as zf:
		names = zf.namelist()
		zf.extractall(dest_dir)
	return names

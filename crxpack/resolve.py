# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Build resolution: fill in whatever the caller asked for.

Every output field of a `BuildRequest` is a `Field` in one of three states:
- GIVEN: the caller supplied a value; it is never recomputed,
- REQUESTED: "derive this for me",
- UNSET: not mentioned; only computed if something requested needs it.

Resolution is a walk over a small fixed dependency graph:

	update_xml         -> crx_id, ext_version, min_chrome_version
	ext_version        -> manifest
	min_chrome_version -> manifest (only when contents are available)
	crx                -> private_key, public_key (+ contents)
	crx_id             -> public_key
	public_key         -> private_key

Pass 1 walks from the outputs towards the roots and promotes UNSET
prerequisites of REQUESTED fields to REQUESTED. Pass 2 walks back from the
roots and computes every REQUESTED field. Configuration errors that can be
detected from the request alone are raised in pass 1, before any key is
generated.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Generic, Iterator, Optional, TypeVar

from loguru import logger

from crxpack import container, contents as contents_mod, crypto, keyfile
from crxpack.errors import (
	CONTENTS_REQUIRED,
	MANIFEST_INVALID,
	MANIFEST_REQUIRED,
	UNSUPPORTED_CRX_VERSION,
	URL_REQUIRED,
	CrxConfigError,
	CrxContentsError,
)
from crxpack.ids import derive_identifier
from crxpack.update_xml import render_update_xml

T = TypeVar("T")

# Chromium accepts CRX3 from this version on.
CRX3_MIN_CHROME_VERSION = "73.0.3683"


class FieldState(enum.Enum):
	UNSET = "unset"
	REQUESTED = "requested"
	GIVEN = "given"


@dataclass(frozen=True)
class Field(Generic[T]):
	state: FieldState
	value: Optional[T] = None

	@property
	def is_given(self) -> bool:
		return self.state is FieldState.GIVEN

	@property
	def is_requested(self) -> bool:
		return self.state is FieldState.REQUESTED

	@property
	def is_unset(self) -> bool:
		return self.state is FieldState.UNSET

	def __repr__(self) -> str:
		if self.is_given:
			return f"given({self.value!r})"
		return self.state.name


UNSET: Field[Any] = Field(FieldState.UNSET)
REQUESTED: Field[Any] = Field(FieldState.REQUESTED)


def given(value: T) -> Field[T]:
	return Field(FieldState.GIVEN, value)


def _as_field(value: Any) -> Field[Any]:
	if isinstance(value, Field):
		return value
	if value is None:
		return UNSET
	return given(value)


# Output fields, most downstream first. Pass 1 walks this order, pass 2 the reverse.
FIELD_ORDER = (
	"update_xml",
	"ext_version",
	"min_chrome_version",
	"crx",
	"manifest",
	"crx_id",
	"public_key",
	"private_key",
)

# dependent -> (prerequisite, soft). A soft prerequisite is only promoted when
# it can actually be derived.
DEPENDENCIES: dict[str, tuple[tuple[str, bool], ...]] = {
	"update_xml": (("crx_id", False), ("ext_version", False), ("min_chrome_version", False)),
	"ext_version": (("manifest", False),),
	"min_chrome_version": (("manifest", True),),
	"crx": (("private_key", False), ("public_key", False)),
	"manifest": (),
	"crx_id": (("public_key", False),),
	"public_key": (("private_key", False),),
	"private_key": (),
}


@dataclass
class BuildRequest:
	"""
	A partially specified build.

	Output slots accept a `Field` (`UNSET`, `REQUESTED`, `given(...)`) or a raw
	value, which is taken as given. `private_key`/`public_key` given as a
	`str`/`Path` name a key file (PEM or DER) loaded before resolution; a
	missing file leaves the slot UNSET.

	`contents` is the extension payload: zip bytes or a directory path.
	"""

	contents: bytes | str | Path | None = None
	private_key: Field[Any] = UNSET
	public_key: Field[Any] = UNSET
	crx_id: Field[str] = UNSET
	crx: Field[bytes] = UNSET
	manifest: Field[dict] = UNSET
	ext_version: Field[str] = UNSET
	min_chrome_version: Field[str] = UNSET
	update_xml: Field[str] = UNSET
	crx_url: str | None = None
	crx_version: int | None = None
	key_size: int = crypto.DEFAULT_KEY_SIZE
	key_algorithm: str = "rsa"

	def __post_init__(self) -> None:
		for name in FIELD_ORDER:
			setattr(self, name, _as_field(getattr(self, name)))

	def slot(self, name: str) -> Field[Any]:
		return getattr(self, name)


@dataclass(frozen=True)
class BuildResult:
	"""Concrete outputs of a resolved build; fields never produced are None."""

	private_key: bytes | None = None
	public_key: bytes | None = None
	crx_id: str | None = None
	crx: bytes | None = None
	manifest: dict | None = None
	ext_version: str | None = None
	min_chrome_version: str | None = None
	update_xml: str | None = None
	contents: bytes | None = None
	crx_version: int = container.DEFAULT_CRX_VERSION
	generated: tuple[str, ...] = ()

	def to_dict(self) -> dict[str, Any]:
		return {f.name: getattr(self, f.name) for f in fields(self)}


def propagate_requests(request: BuildRequest) -> list[str]:
	"""
	Pass 1: promote UNSET prerequisites of REQUESTED fields, in place.

	Returns the names of the promoted fields.
	"""
	promoted: list[str] = []
	for name in FIELD_ORDER:
		if not request.slot(name).is_requested:
			continue
		if name == "update_xml" and request.crx_url is None:
			raise CrxConfigError(URL_REQUIRED, "crx_url must be set to generate update_xml", field="update_xml")
		if name == "crx" and request.contents is None:
			raise CrxConfigError(CONTENTS_REQUIRED, "contents must be set to generate crx", field="crx")
		for prereq, soft in DEPENDENCIES[name]:
			if not request.slot(prereq).is_unset:
				continue
			if soft and not _derivable(request, prereq):
				continue
			setattr(request, prereq, REQUESTED)
			promoted.append(prereq)
			logger.debug(f"{name} requested: promoting {prereq}")
	return promoted


def _derivable(request: BuildRequest, name: str) -> bool:
	if name == "manifest":
		return request.contents is not None
	return True


def _validate(request: BuildRequest) -> None:
	if request.crx_version is not None and request.crx_version not in container.SUPPORTED_VERSIONS:
		raise CrxConfigError(
			UNSUPPORTED_CRX_VERSION,
			f"unsupported CRX version: {request.crx_version!r} (expected one of {container.SUPPORTED_VERSIONS})",
			field="crx_version",
		)


def _load_key_slot(request: BuildRequest, name: str) -> None:
	slot = request.slot(name)
	if not slot.is_given or not isinstance(slot.value, (str, Path)):
		return
	loader = keyfile.load_private_key if name == "private_key" else keyfile.load_public_key
	key = loader(slot.value)
	setattr(request, name, given(key) if key is not None else UNSET)


class Resolver:
	"""
	Resolve a `BuildRequest` into a `BuildResult`.

	`steps()` yields `(field, value)` as soon as each field is resolved, so a
	caller can act on early outputs (e.g. the key pair) before the container
	is signed. `resolve()` runs to completion. The caller's request is copied,
	never mutated.
	"""

	def __init__(self, request: BuildRequest) -> None:
		self.request = replace(request)
		self._contents: bytes | None = None
		self._generated: list[str] = []
		self._done = False

	def _value(self, name: str) -> Any:
		return self.request.slot(name).value

	def _set(self, name: str, value: Any) -> tuple[str, Any]:
		setattr(self.request, name, given(value))
		self._generated.append(name)
		return name, value

	def _archive(self) -> bytes:
		"""Return archive bytes, packaging a contents directory on first use."""
		if self._contents is not None:
			return self._contents
		src = self.request.contents
		if isinstance(src, (str, Path)):
			packed = contents_mod.pack_directory(src)
			self._contents = packed.contents
			if not self.request.manifest.is_given:
				self.request.manifest = given(packed.manifest)
		else:
			self._contents = bytes(src)
		return self._contents

	def steps(self) -> Iterator[tuple[str, Any]]:
		if self._done:
			return
		req = self.request
		for name in ("private_key", "public_key"):
			_load_key_slot(req, name)
		_validate(req)
		propagate_requests(req)

		if req.private_key.is_requested:
			private_key = crypto.generate_private_key(req.key_size, req.key_algorithm)
			logger.info(f"generated {req.key_algorithm} private key")
			yield self._set("private_key", private_key)
			if req.public_key.is_given:
				logger.warning("public_key was given but a new private key was generated; replacing it with the generated key's public half")
			yield self._set("public_key", crypto.public_key_from_private(private_key))

		if req.public_key.is_requested:
			yield self._set("public_key", crypto.public_key_from_private(self._value("private_key")))

		if req.crx_id.is_requested:
			crx_id = derive_identifier(self._value("public_key"))
			logger.debug(f"extension id: {crx_id}")
			yield self._set("crx_id", crx_id)

		if req.manifest.is_requested:
			yield self._set("manifest", self._resolve_manifest())

		if req.crx.is_requested:
			archive = self._archive()
			crx = container.encode(req.crx_version, self._value("private_key"), self._value("public_key"), archive)
			logger.debug(f"encoded CRX{req.crx_version or container.DEFAULT_CRX_VERSION}: {len(crx)}B")
			yield self._set("crx", crx)

		if req.min_chrome_version.is_requested:
			yield self._set("min_chrome_version", self._resolve_min_chrome_version())

		if req.ext_version.is_requested:
			manifest = self._value("manifest") if req.manifest.is_given else None
			if manifest is None:
				raise CrxConfigError(MANIFEST_REQUIRED, "manifest must be available to generate ext_version", field="ext_version")
			if "version" not in manifest:
				raise CrxContentsError(MANIFEST_INVALID, "manifest has no 'version' field", field="ext_version")
			yield self._set("ext_version", str(manifest["version"]))

		if req.update_xml.is_requested:
			yield self._set(
				"update_xml",
				render_update_xml(
					self._value("crx_id"),
					req.crx_url,
					self._value("ext_version"),
					self._value("min_chrome_version"),
				),
			)
		self._done = True

	def _resolve_manifest(self) -> dict:
		if self.request.contents is None:
			raise CrxConfigError(MANIFEST_REQUIRED, "contents must be set to read the manifest", field="manifest")
		archive = self._archive()
		if self.request.manifest.is_given:
			# Packaging a directory supplies the manifest as a byproduct.
			return self._value("manifest")
		return contents_mod.read_manifest(archive)

	def _resolve_min_chrome_version(self) -> str | None:
		manifest = self._value("manifest") if self.request.manifest.is_given else None
		declared = manifest.get("minimum_chrome_version") if manifest else None
		if declared:
			return str(declared)
		if self.request.crx_version in (None, 3):
			return CRX3_MIN_CHROME_VERSION
		return None

	def resolve(self) -> BuildResult:
		for _ in self.steps():
			pass
		return self.result()

	def result(self) -> BuildResult:
		"""Snapshot of what has been resolved so far."""
		req = self.request

		def val(name: str) -> Any:
			slot = req.slot(name)
			return slot.value if slot.is_given else None

		archive = self._contents
		if archive is None and isinstance(req.contents, (bytes, bytearray)):
			archive = bytes(req.contents)
		return BuildResult(
			private_key=val("private_key"),
			public_key=val("public_key"),
			crx_id=val("crx_id"),
			crx=val("crx"),
			manifest=val("manifest"),
			ext_version=val("ext_version"),
			min_chrome_version=val("min_chrome_version"),
			update_xml=val("update_xml"),
			contents=archive,
			crx_version=req.crx_version or container.DEFAULT_CRX_VERSION,
			generated=tuple(self._generated),
		)


def resolve(request: BuildRequest) -> BuildResult:
	"""Resolve every requested field of `request` (and what they depend on)."""
	return Resolver(request).resolve()

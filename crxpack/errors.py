# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

# Format errors (raised by container.decode).
BAD_MAGIC = "BAD_MAGIC"
UNSUPPORTED_FORMAT_VERSION = "UNSUPPORTED_FORMAT_VERSION"
TRUNCATED = "TRUNCATED"
BAD_HEADER = "BAD_HEADER"

# Configuration errors (raised by the resolver and the encoders).
URL_REQUIRED = "URL_REQUIRED"
CONTENTS_REQUIRED = "CONTENTS_REQUIRED"
MANIFEST_REQUIRED = "MANIFEST_REQUIRED"
UNSUPPORTED_CRX_VERSION = "UNSUPPORTED_CRX_VERSION"
UNSUPPORTED_KEY_ALGORITHM = "UNSUPPORTED_KEY_ALGORITHM"

# Contents errors (raised while packaging or reading an archive).
MANIFEST_NOT_FOUND = "MANIFEST_NOT_FOUND"
MANIFEST_INVALID = "MANIFEST_INVALID"


@dataclass(frozen=True)
class CrxError(Exception):
	"""
	A structured, serializable error for crxpack.

	`reason_code` is stable and meant for programmatic matching; `message` is
	for humans. `field` names the build field the error is about (if any).
	"""

	reason_code: str
	message: str
	field: str | None = None
	path: str | None = None

	def __str__(self) -> str:
		return self.format_human()

	def to_dict(self) -> dict[str, Any]:
		return {
			"reason_code": self.reason_code,
			"message": self.message,
			"field": self.field,
			"path": self.path,
		}

	def format_human(self) -> str:
		parts: list[str] = [f"[{self.reason_code}] {self.message}"]
		if self.field:
			parts.append(f"field={self.field}")
		if self.path:
			parts.append(f"path={self.path}")
		return " ".join(parts)


class CrxFormatError(CrxError):
	"""The buffer is not a CRX container this codec understands."""


class CrxConfigError(CrxError):
	"""A requested output cannot be produced from the supplied inputs."""


class CrxContentsError(CrxError):
	"""The extension contents (directory or archive) are unusable."""

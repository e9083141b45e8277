# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
crxpack: signed browser extension packages.

- `container`: CRX2/CRX3 byte layout (encode/decode),
- `ids`: extension ids derived from public keys,
- `resolve`: fills in missing build inputs/outputs (keys, id, versions,
  update XML) in dependency order.

Signature verification is not performed here; `decode` only splits framing.
"""

from __future__ import annotations

from crxpack.container import Crx2, Crx3, decode, encode_v2, encode_v3
from crxpack.errors import CrxConfigError, CrxContentsError, CrxError, CrxFormatError
from crxpack.ids import derive_identifier
from crxpack.resolve import REQUESTED, UNSET, BuildRequest, BuildResult, Resolver, given

__all__ = [
	"BuildRequest",
	"BuildResult",
	"Crx2",
	"Crx3",
	"CrxConfigError",
	"CrxContentsError",
	"CrxError",
	"CrxFormatError",
	"REQUESTED",
	"Resolver",
	"UNSET",
	"decode",
	"derive_identifier",
	"encode_v2",
	"encode_v3",
	"given",
]
__version__ = "0.1.0"

# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import json
from pathlib import Path

import pytest

from crxpack.crypto import generate_private_key, public_key_from_private

TEST_KEY_SIZE = 2048


@pytest.fixture(scope="session")
def rsa_keys() -> tuple[bytes, bytes]:
	"""A (private, public) DER RSA key pair shared by the whole session."""
	priv = generate_private_key(TEST_KEY_SIZE)
	return priv, public_key_from_private(priv)


@pytest.fixture(scope="session")
def ec_keys() -> tuple[bytes, bytes]:
	priv = generate_private_key(algorithm="ecdsa")
	return priv, public_key_from_private(priv)


def write_extension(root: Path, manifest: dict | None = None, files: dict[str, str] | None = None) -> Path:
	"""Write a small extension tree under `root` and return it."""
	root.mkdir(parents=True, exist_ok=True)
	if manifest is not None:
		(root / "manifest.json").write_text(json.dumps(manifest), encoding="utf-8")
	for rel, text in (files or {}).items():
		p = root / rel
		p.parent.mkdir(parents=True, exist_ok=True)
		p.write_text(text, encoding="utf-8")
	return root


@pytest.fixture
def make_extension():
	"""Factory fixture: `make_extension(root, manifest, files)`."""
	return write_extension


@pytest.fixture
def ext_dir(tmp_path: Path) -> Path:
	return write_extension(
		tmp_path / "ext",
		{"manifest_version": 3, "name": "Test", "version": "1.2.3"},
		{"background.js": "console.log('hi');\n", "icons/icon16.png": "not really a png"},
	)

# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import json
import struct
from pathlib import Path

import pytest

from crxpack.cli import main
from crxpack.container import MAGIC, Crx3, decode
from crxpack.contents import pack_directory
from crxpack.crx3_pb import CrxFileHeader
from crxpack.crypto import public_key_from_private
from crxpack.ids import derive_identifier
from crxpack.keyfile import load_private_key, save_private_key


def test_pack_generates_and_saves_key(ext_dir: Path, tmp_path: Path, capsys) -> None:
	out = tmp_path / "ext.crx"
	key = tmp_path / "key.pem"
	rc = main(["pack", str(ext_dir), "--out", str(out), "--key", str(key), "--write-key", "--key-size", "2048", "--json"])
	assert rc == 0
	report = json.loads(capsys.readouterr().out)
	assert key.exists()
	pub = public_key_from_private(load_private_key(key))
	assert report["crx_id"] == derive_identifier(pub)
	assert report["crx_version"] == 3
	assert "private_key" in report["generated"]
	crx = decode(out.read_bytes())
	assert isinstance(crx, Crx3)
	assert crx.archive == pack_directory(ext_dir).contents


def test_pack_reuses_existing_key(ext_dir: Path, tmp_path: Path, rsa_keys, capsys) -> None:
	priv, pub = rsa_keys
	key = tmp_path / "key.pem"
	save_private_key(key, priv)
	out = tmp_path / "ext.crx"
	assert main(["pack", str(ext_dir), "--out", str(out), "--key", str(key), "--write-key"]) == 0
	assert capsys.readouterr().out.strip() == derive_identifier(pub)
	assert load_private_key(key) == priv


def test_pack_writes_update_xml(ext_dir: Path, tmp_path: Path, rsa_keys) -> None:
	priv, _ = rsa_keys
	key = tmp_path / "key.der"
	key.write_bytes(priv)
	xml_path = tmp_path / "updates.xml"
	rc = main(
		[
			"pack",
			str(ext_dir),
			"--out",
			str(tmp_path / "ext.crx"),
			"--key",
			str(key),
			"--update-url",
			"https://example.invalid/ext.crx",
			"--update-xml",
			str(xml_path),
		]
	)
	assert rc == 0
	xml = xml_path.read_text(encoding="utf-8")
	assert "codebase='https://example.invalid/ext.crx' version='1.2.3'" in xml


def test_pack_update_xml_requires_url(ext_dir: Path, tmp_path: Path) -> None:
	with pytest.raises(SystemExit) as exc:
		main(["pack", str(ext_dir), "--update-xml", str(tmp_path / "u.xml")])
	assert exc.value.code == 2


def test_pack_rejects_directory_without_manifest(tmp_path: Path, rsa_keys) -> None:
	(tmp_path / "ext").mkdir()
	(tmp_path / "ext" / "a.js").write_text("x", encoding="utf-8")
	key = tmp_path / "key.der"
	key.write_bytes(rsa_keys[0])
	with pytest.raises(SystemExit) as exc:
		main(["pack", str(tmp_path / "ext"), "--key", str(key)])
	assert exc.value.code == 2


def test_unpack_to_zip_and_dir(ext_dir: Path, tmp_path: Path, rsa_keys, capsys) -> None:
	priv, pub = rsa_keys
	key = tmp_path / "key.der"
	key.write_bytes(priv)
	crx_path = tmp_path / "ext.crx"
	assert main(["pack", str(ext_dir), "--out", str(crx_path), "--key", str(key)]) == 0
	capsys.readouterr()

	out_zip = tmp_path / "ext.zip"
	out_dir = tmp_path / "unpacked"
	assert main(["unpack", str(crx_path), "--out-zip", str(out_zip), "--out-dir", str(out_dir), "--json"]) == 0
	info = json.loads(capsys.readouterr().out)
	assert info["crx_version"] == 3
	assert info["crx_id"] == derive_identifier(pub)
	assert info["files"] == ["background.js", "icons/icon16.png", "manifest.json"]
	assert out_zip.read_bytes() == pack_directory(ext_dir).contents
	assert (out_dir / "background.js").read_text(encoding="utf-8") == "console.log('hi');\n"


def test_unpack_rejects_non_crx(tmp_path: Path) -> None:
	bogus = tmp_path / "bogus.crx"
	bogus.write_bytes(b"PK\x03\x04 nope")
	with pytest.raises(SystemExit) as exc:
		main(["unpack", str(bogus), "--out-zip", str(tmp_path / "x.zip")])
	assert exc.value.code == 2


def test_keygen_and_id(tmp_path: Path, capsys) -> None:
	key = tmp_path / "key.pem"
	assert main(["keygen", "--out", str(key), "--key-size", "2048", "--print-id"]) == 0
	printed = capsys.readouterr().out.strip()
	assert main(["id", "--key", str(key)]) == 0
	assert capsys.readouterr().out.strip() == printed
	assert len(printed) == 32


def test_keygen_refuses_to_overwrite(tmp_path: Path) -> None:
	key = tmp_path / "key.pem"
	key.write_text("keep me", encoding="utf-8")
	with pytest.raises(SystemExit):
		main(["keygen", "--out", str(key)])
	assert key.read_text(encoding="utf-8") == "keep me"


def test_update_xml_command(capsys) -> None:
	rc = main(["update-xml", "--id", "a" * 32, "--url", "https://x/e.crx", "--version", "1.0", "--min-chrome-version", "90.0"])
	assert rc == 0
	assert "prodversionmin='90.0'" in capsys.readouterr().out


def test_update_xml_command_rejects_bad_id() -> None:
	with pytest.raises(SystemExit) as exc:
		main(["update-xml", "--id", "not-an-id", "--url", "https://x/e.crx", "--version", "1.0"])
	assert exc.value.code == 2


def test_unpack_rejects_corrupt_signed_header_data(tmp_path: Path) -> None:
	header = CrxFileHeader(signed_header_data=b"\xff\xff\xff").SerializeToString()
	bogus = tmp_path / "bogus.crx"
	bogus.write_bytes(MAGIC + b"\x03\x00\x00\x00" + struct.pack("<I", len(header)) + header + b"PK")
	with pytest.raises(SystemExit) as exc:
		main(["unpack", str(bogus), "--out-zip", str(tmp_path / "x.zip")])
	assert exc.value.code == 2
	assert not (tmp_path / "x.zip").exists()

# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from crxpack.update_xml import render_update_xml

CRX_ID = "abcdefghijklmnopabcdefghijklmnop"


def test_update_xml_without_min_version() -> None:
	xml = render_update_xml(CRX_ID, "https://x/e.crx", "1.2.3")
	assert "prodversionmin" not in xml
	assert "<gupdate xmlns='http://www.google.com/update2/response' protocol='2.0'>" in xml
	assert f"<app appid='{CRX_ID}'>" in xml
	assert "<updatecheck codebase='https://x/e.crx' version='1.2.3' />" in xml


def test_update_xml_with_min_version() -> None:
	xml = render_update_xml(CRX_ID, "https://x/e.crx", "1.2.3", "90.0")
	assert " prodversionmin='90.0'" in xml
	assert "<updatecheck codebase='https://x/e.crx' version='1.2.3' prodversionmin='90.0' />" in xml


def test_update_xml_exact_document() -> None:
	assert render_update_xml(CRX_ID, "https://x/e.crx", "1.0") == (
		"<?xml version='1.0' encoding='UTF-8'?>\n"
		"<gupdate xmlns='http://www.google.com/update2/response' protocol='2.0'>\n"
		f"  <app appid='{CRX_ID}'>\n"
		"    <updatecheck codebase='https://x/e.crx' version='1.0' />\n"
		"  </app>\n"
		"</gupdate>"
	)


def test_update_xml_escapes_attribute_values() -> None:
	xml = render_update_xml(CRX_ID, "https://x/e.crx?a=1&b='2'", "1.0")
	assert "codebase='https://x/e.crx?a=1&amp;b=&apos;2&apos;'" in xml

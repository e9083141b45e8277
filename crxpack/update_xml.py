# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from xml.sax.saxutils import escape

UPDATE_XMLNS = "http://www.google.com/update2/response"


def _attr(value: str) -> str:
	return escape(value, {"'": "&apos;", '"': "&quot;"})


def render_update_xml(crx_id: str, url: str, version: str, min_chrome_version: str | None = None) -> str:
	"""
	Render the gupdate document that tells the browser where to fetch a hosted extension.

	`prodversionmin` is only emitted when a minimum version is supplied.
	"""
	prodversionmin = f" prodversionmin='{_attr(min_chrome_version)}'" if min_chrome_version else ""
	return (
		"<?xml version='1.0' encoding='UTF-8'?>\n"
		f"<gupdate xmlns='{UPDATE_XMLNS}' protocol='2.0'>\n"
		f"  <app appid='{_attr(crx_id)}'>\n"
		f"    <updatecheck codebase='{_attr(url)}' version='{_attr(version)}'{prodversionmin} />\n"
		"  </app>\n"
		"</gupdate>"
	)

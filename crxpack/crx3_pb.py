# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
CRX3 header messages.

Mirrors Chromium's `components/crx_file/crx3.proto` (proto2):

	message CrxFileHeader {
	  repeated AsymmetricKeyProof sha256_with_rsa = 2;
	  repeated AsymmetricKeyProof sha256_with_ecdsa = 3;
	  optional bytes signed_header_data = 10000;
	}
	message AsymmetricKeyProof {
	  optional bytes public_key = 1;
	  optional bytes signature = 2;
	}
	message SignedData {
	  optional bytes crx_id = 1;
	}

The descriptors are built at import time into a private pool so no `protoc`
step is needed and the default pool stays untouched.
"""

from __future__ import annotations

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

_PACKAGE = "crx_file"

_F = descriptor_pb2.FieldDescriptorProto


def _add_field(
	msg: descriptor_pb2.DescriptorProto,
	name: str,
	number: int,
	*,
	type_: int = _F.TYPE_BYTES,
	label: int = _F.LABEL_OPTIONAL,
	type_name: str | None = None,
) -> None:
	field = msg.field.add()
	field.name = name
	field.number = number
	field.type = type_
	field.label = label
	if type_name is not None:
		field.type_name = type_name


def _file_descriptor() -> descriptor_pb2.FileDescriptorProto:
	fdp = descriptor_pb2.FileDescriptorProto()
	fdp.name = "crxpack/crx3.proto"
	fdp.package = _PACKAGE
	fdp.syntax = "proto2"

	proof = fdp.message_type.add()
	proof.name = "AsymmetricKeyProof"
	_add_field(proof, "public_key", 1)
	_add_field(proof, "signature", 2)

	header = fdp.message_type.add()
	header.name = "CrxFileHeader"
	proof_type = f".{_PACKAGE}.AsymmetricKeyProof"
	_add_field(header, "sha256_with_rsa", 2, type_=_F.TYPE_MESSAGE, label=_F.LABEL_REPEATED, type_name=proof_type)
	_add_field(header, "sha256_with_ecdsa", 3, type_=_F.TYPE_MESSAGE, label=_F.LABEL_REPEATED, type_name=proof_type)
	_add_field(header, "signed_header_data", 10000)

	signed = fdp.message_type.add()
	signed.name = "SignedData"
	_add_field(signed, "crx_id", 1)
	return fdp


_POOL = descriptor_pool.DescriptorPool()
_POOL.AddSerializedFile(_file_descriptor().SerializeToString())


def _message_class(name: str):
	return message_factory.GetMessageClass(_POOL.FindMessageTypeByName(f"{_PACKAGE}.{name}"))


AsymmetricKeyProof = _message_class("AsymmetricKeyProof")
CrxFileHeader = _message_class("CrxFileHeader")
SignedData = _message_class("SignedData")

__all__ = ["AsymmetricKeyProof", "CrxFileHeader", "SignedData"]

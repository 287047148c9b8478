"""Payload codecs for columnar batches."""

from otelarc.core.encoding.msgpack import decode_batch, encode_batch

__all__ = ["decode_batch", "encode_batch"]

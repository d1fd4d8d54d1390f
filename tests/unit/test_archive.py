"""Tests for the .pncsum archive codec — member layout and streaming reads."""

from __future__ import annotations

import io
import tarfile

import pytest

from ncsum.core.archive import pack, read_archive, unpack, write_archive
from ncsum.core.descriptor_codec import encode
from ncsum.core.errors import ParseError
from ncsum.core.hasher import HashlibEngine, digest_stream
from ncsum.models.descriptor import Descriptor

DIGEST = "5d41402abc4b2a76b9719d911017c592"


@pytest.fixture
def descriptor_bytes() -> bytes:
    return encode(Descriptor(digest=DIGEST, original_name="hello.txt", size=5))


class TestPackUnpack:
    def test_round_trip(self, engine: HashlibEngine, descriptor_bytes: bytes):
        archive = pack("hello.txt", b"hello", descriptor_bytes, engine=engine)
        assert unpack(archive) == ("hello.txt", b"hello", descriptor_bytes)

    @pytest.mark.parametrize(
        "payload",
        [b"", b"\x00" * 511, b"\x00" * 512, b"\xff" * 513, bytes(range(256)) * 40],
    )
    def test_round_trip_block_edges(
        self, engine: HashlibEngine, descriptor_bytes: bytes, payload: bytes
    ):
        archive = pack("data.bin", payload, descriptor_bytes, engine=engine)
        assert unpack(archive) == ("data.bin", payload, descriptor_bytes)

    def test_long_unicode_payload_name(self, engine: HashlibEngine, descriptor_bytes: bytes):
        name = "é" * 120 + ".mkv"
        assert unpack(pack(name, b"v", descriptor_bytes, engine=engine))[0] == name

    def test_members_in_fixed_order(self, engine: HashlibEngine, descriptor_bytes: bytes):
        archive = pack("hello.txt", b"hello", descriptor_bytes, engine=engine)
        with tarfile.open(fileobj=io.BytesIO(archive)) as tar:
            names = tar.getnames()
        assert names == ["hello.txt", f"{DIGEST}.ncsum"]

    def test_pack_rejects_invalid_descriptor(self, engine: HashlibEngine):
        with pytest.raises(ParseError):
            pack("hello.txt", b"hello", b"not a descriptor", engine=engine)


class TestStreaming:
    def test_payload_consumed_before_descriptor(
        self, engine: HashlibEngine, descriptor_bytes: bytes
    ):
        archive = pack("hello.txt", b"hello", descriptor_bytes, engine=engine)
        seen = []

        def consume(stream):
            seen.append("payload")
            return digest_stream(stream, engine)

        contents = read_archive(io.BytesIO(archive), consume)
        assert seen == ["payload"]
        assert contents.payload_result == DIGEST
        assert contents.descriptor_name == f"{DIGEST}.ncsum"
        assert contents.descriptor_bytes == descriptor_bytes

    def test_partially_consumed_payload(self, engine: HashlibEngine, descriptor_bytes: bytes):
        archive = pack("big.bin", b"x" * 10_000, descriptor_bytes, engine=engine)
        contents = read_archive(io.BytesIO(archive), lambda stream: stream.read(10))
        assert contents.payload_result == b"x" * 10
        assert contents.descriptor_bytes == descriptor_bytes

    def test_short_payload_stream_fails_to_write(self, descriptor_bytes: bytes):
        with pytest.raises(OSError):
            write_archive(
                io.BytesIO(),
                "short.bin",
                io.BytesIO(b"abc"),
                10,
                f"{DIGEST}.ncsum",
                descriptor_bytes,
            )

    def test_descriptor_member_name_enforced_on_write(self, descriptor_bytes: bytes):
        with pytest.raises(ValueError):
            write_archive(
                io.BytesIO(), "a.bin", io.BytesIO(b"a"), 1, "descriptor.txt", descriptor_bytes
            )

"""Tests for the digest engine and streaming helpers."""

from __future__ import annotations

import hashlib
import io

import pytest

from ncsum.core.hasher import HashlibEngine, digest_bytes, digest_file, digest_stream


class TestHashlibEngine:
    def test_md5_is_default_shape(self, engine: HashlibEngine):
        assert engine.name == "md5"
        assert engine.hex_length == 32

    def test_sha256_length(self):
        assert HashlibEngine("sha256").hex_length == 64

    def test_algorithm_name_is_normalized(self):
        assert HashlibEngine("SHA256").name == "sha256"

    def test_unknown_algorithm_rejected(self):
        with pytest.raises(ValueError, match="Unsupported"):
            HashlibEngine("no-such-hash")

    def test_variable_length_algorithm_rejected(self):
        with pytest.raises(ValueError, match="fixed length"):
            HashlibEngine("shake_128")


class TestDigest:
    def test_known_md5(self, engine: HashlibEngine):
        assert digest_bytes(b"hello", engine) == "5d41402abc4b2a76b9719d911017c592"

    def test_empty_input(self, engine: HashlibEngine):
        assert digest_bytes(b"", engine) == "d41d8cd98f00b204e9800998ecf8427e"

    def test_deterministic(self, engine: HashlibEngine):
        data = b"same bytes every time"
        assert digest_bytes(data, engine) == digest_bytes(data, engine)

    def test_distinct_inputs_differ(self, engine: HashlibEngine):
        corpus = [b"a", b"b", b"ab", b"ba", b"", b"\x00", b"\x00\x00"]
        digests = {digest_bytes(item, engine) for item in corpus}
        assert len(digests) == len(corpus)

    def test_stream_matches_bytes_across_chunk_boundaries(self, engine: HashlibEngine):
        data = bytes(range(256)) * 50
        for chunk_size in (1, 7, 256, 4096, len(data) + 1):
            assert digest_stream(io.BytesIO(data), engine, chunk_size=chunk_size) == (
                hashlib.md5(data).hexdigest()
            )

    def test_stream_tees_into_sink(self, engine: HashlibEngine):
        data = b"copy me while hashing" * 100
        sink = io.BytesIO()
        digest = digest_stream(io.BytesIO(data), engine, chunk_size=64, sink=sink)
        assert sink.getvalue() == data
        assert digest == hashlib.md5(data).hexdigest()

    def test_lowercase_hex(self):
        digest = digest_bytes(b"case", HashlibEngine("sha1"))
        assert digest == digest.lower()
        assert len(digest) == 40


class TestDigestFile:
    def test_local_file(self, engine: HashlibEngine, fs, tmp_dir):
        path = tmp_dir / "a.txt"
        path.write_bytes(b"hello")
        assert digest_file(fs, path, engine) == "5d41402abc4b2a76b9719d911017c592"

    def test_missing_file_raises(self, engine: HashlibEngine, fs, tmp_dir):
        with pytest.raises(FileNotFoundError):
            digest_file(fs, tmp_dir / "absent", engine)

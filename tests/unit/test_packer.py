"""Tests for Packer."""

from __future__ import annotations

import hashlib
from collections.abc import Callable
from pathlib import Path

import pytest

from ncsum.core.archive import unpack
from ncsum.core.descriptor_codec import decode
from ncsum.core.errors import NameCollisionError, NotFoundError, UnsupportedInputError
from ncsum.core.packer import Packer
from ncsum.core.renamer import ContentAddressRenamer
from ncsum.models.descriptor import Descriptor


def _md5(data: bytes) -> str:
    return hashlib.md5(data).hexdigest()


class TestPacker:
    def test_pack_raw_file(self, packer: Packer, make_file: Callable[..., Path], engine):
        source = make_file("movie.mkv", b"frames")
        digest = _md5(b"frames")

        result = packer.pack(source)

        assert result.archive_path == source.with_name(f"{digest}.pncsum")
        assert result.already_packed is False
        assert not source.exists()
        name, payload, descriptor_bytes = unpack(result.archive_path.read_bytes())
        assert name == "movie.mkv"
        assert payload == b"frames"
        assert decode(descriptor_bytes, engine=engine) == Descriptor(
            digest=digest, original_name="movie.mkv", size=6
        )

    def test_pack_named_descriptor(
        self,
        packer: Packer,
        renamer: ContentAddressRenamer,
        make_file: Callable[..., Path],
        tmp_dir: Path,
    ):
        named = renamer.name(make_file("movie.mkv", b"frames"))

        result = packer.pack(named.descriptor_path)

        assert not named.payload_path.exists()
        assert not named.descriptor_path.exists()
        assert sorted(p.name for p in tmp_dir.iterdir()) == [result.archive_path.name]
        name, payload, _ = unpack(result.archive_path.read_bytes())
        assert (name, payload) == ("movie.mkv", b"frames")

    def test_named_descriptor_without_payload(
        self, packer: Packer, renamer: ContentAddressRenamer, make_file: Callable[..., Path]
    ):
        named = renamer.name(make_file("movie.mkv", b"frames"))
        named.payload_path.unlink()

        with pytest.raises(NotFoundError):
            packer.pack(named.descriptor_path)
        assert named.descriptor_path.exists()

    def test_already_packed(self, packer: Packer, make_file: Callable[..., Path]):
        first = packer.pack(make_file("a.bin", b"same"))
        again = make_file("b.bin", b"same")

        result = packer.pack(again)

        assert result.already_packed is True
        assert result.archive_path == first.archive_path
        assert again.exists()

    def test_existing_archive_with_other_content(
        self, packer: Packer, make_file: Callable[..., Path]
    ):
        digest = _md5(b"data")
        squatter = make_file(f"{digest}.pncsum", b"not an archive")
        source = make_file("data.bin", b"data")

        with pytest.raises(NameCollisionError):
            packer.pack(source)

        assert source.read_bytes() == b"data"
        assert squatter.read_bytes() == b"not an archive"

    def test_archive_input_unsupported(self, packer: Packer, make_file: Callable[..., Path]):
        with pytest.raises(UnsupportedInputError):
            packer.pack(make_file("x.pncsum", b""))

    def test_no_temp_files_left(
        self, packer: Packer, make_file: Callable[..., Path], tmp_dir: Path
    ):
        result = packer.pack(make_file("a.txt", b"a" * 5000))
        assert [p.name for p in tmp_dir.iterdir()] == [result.archive_path.name]

"""Tests for the descriptor and result models."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from ncsum.models import CheckResult, CheckState, Descriptor
from ncsum.models.results import TERMINAL_STATES, VALID_TRANSITIONS

DIGEST = "9e107d9d372bb6826bd81d3542a419d6"


class TestDescriptor:
    def test_derived_names(self):
        d = Descriptor(digest=DIGEST, original_name="report.pdf")
        assert d.payload_name == f"{DIGEST}.pdf"
        assert d.descriptor_name == f"{DIGEST}.ncsum"
        assert d.archive_name == f"{DIGEST}.pncsum"

    def test_digest_lowercased(self):
        d = Descriptor(digest=DIGEST.upper(), original_name="a")
        assert d.digest == DIGEST

    def test_last_suffix_only(self):
        assert Descriptor(digest=DIGEST, original_name="a.tar.gz").payload_name == f"{DIGEST}.gz"

    def test_no_suffix(self):
        assert Descriptor(digest=DIGEST, original_name="Makefile").payload_name == DIGEST

    def test_dotfile_has_no_suffix(self):
        assert Descriptor(digest=DIGEST, original_name=".bashrc").payload_name == DIGEST

    @pytest.mark.parametrize(
        "name", ["", ".", "..", "dir/file", "..\\evil", "line\nbreak", "nul\x00", "\udcff.pdf"]
    )
    def test_rejects_non_file_names(self, name: str):
        with pytest.raises(ValidationError):
            Descriptor(digest=DIGEST, original_name=name)

    def test_rejects_non_hex_digest(self):
        with pytest.raises(ValidationError):
            Descriptor(digest="not-a-digest", original_name="a")

    def test_rejects_negative_size(self):
        with pytest.raises(ValidationError):
            Descriptor(digest=DIGEST, original_name="a", size=-1)

    def test_frozen(self):
        d = Descriptor(digest=DIGEST, original_name="a")
        with pytest.raises(ValidationError):
            d.original_name = "b"


class TestCheckStateMachine:
    def test_terminal_states(self):
        assert TERMINAL_STATES == {CheckState.MATCH, CheckState.MISMATCH, CheckState.MISSING}

    def test_every_state_has_transitions_entry(self):
        assert set(VALID_TRANSITIONS) == set(CheckState)

    def test_match_only_reachable_from_hashing(self):
        sources = {s for s, targets in VALID_TRANSITIONS.items() if CheckState.MATCH in targets}
        assert sources == {CheckState.HASHING}


class TestCheckResult:
    def _descriptor(self) -> Descriptor:
        return Descriptor(digest=DIGEST, original_name="report.pdf")

    def test_ok_only_for_match(self):
        d = self._descriptor()
        assert CheckResult(source=Path("x"), status=CheckState.MATCH, descriptor=d).ok
        assert not CheckResult(source=Path("x"), status=CheckState.MISMATCH, descriptor=d).ok
        assert not CheckResult(source=Path("x"), status=CheckState.MISSING, descriptor=d).ok

    def test_status_must_be_terminal(self):
        with pytest.raises(ValidationError):
            CheckResult(source=Path("x"), status=CheckState.HASHING, descriptor=self._descriptor())

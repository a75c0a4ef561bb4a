"""Note model invariants."""

from uuid import uuid4

import pytest
from pydantic import ValidationError

from studynotes.core.models.note import Note, NoteType, normalize_tags


def test_normalize_tags_strips_dedupes_and_keeps_case():
    assert normalize_tags([" Calc ", "calc", "", "  ", "Calc"]) == ["Calc", "calc"]
    assert normalize_tags(None) == []


def test_file_fields_must_travel_together():
    with pytest.raises(ValidationError):
        Note(
            title="Scan",
            note_type=NoteType.PDF,
            author_id=uuid4(),
            file_url="https://cdn.example/scan.pdf",
        )


def test_file_property_returns_reference():
    note = Note(
        title="Scan",
        note_type=NoteType.PDF,
        author_id=uuid4(),
        file_url="https://cdn.example/scan.pdf",
        file_name="scan.pdf",
        file_size=2048,
    )
    assert note.file is not None
    assert note.file.name == "scan.pdf"
    assert note.file.size == 2048


def test_null_columns_become_empty_strings():
    note = Note(title="T", author_id=uuid4(), content=None, subject=None)
    assert note.content == ""
    assert note.subject == ""
    assert note.file is None


def test_counters_cannot_be_negative():
    with pytest.raises(ValidationError):
        Note(title="T", author_id=uuid4(), like_count=-1)

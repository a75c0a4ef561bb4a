"""Metadata routes: counters, note types, subject catalog."""

API = "/api/v1"


def test_counters_start_empty(client):
    assert client.get(f"{API}/metadata/tags").json() == []
    assert client.get(f"{API}/metadata/subjects").json() == []


def test_note_types(client):
    assert client.get(f"{API}/metadata/note-types").json() == ["markdown", "pdf", "image"]


def test_subject_catalog(client):
    catalog = client.get(f"{API}/metadata/subject-catalog").json()

    assert catalog[0] == "Mathematics"
    assert "Computer Science" in catalog
    assert len(catalog) == 16


def test_metadata_responses_are_briefly_cacheable(client):
    resp = client.get(f"{API}/metadata/note-types")

    assert resp.headers["Cache-Control"] == "private, max-age=60"
    assert resp.headers["X-Content-Type-Options"] == "nosniff"

"""Log formatting of `extra=` fields."""

import json
import logging

from studynotes.utils.logging import ExtrasFormatter, JSONFormatter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("studynotes.test", logging.INFO, __file__, 1, "Note created", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_extras_are_appended_as_key_value_pairs():
    line = ExtrasFormatter("%(levelname)s %(message)s").format(_record(note_id="n1", author_id="a1"))

    assert line == "INFO Note created | author_id=a1 note_id=n1"


def test_plain_records_have_no_suffix():
    assert ExtrasFormatter("%(message)s").format(_record()) == "Note created"


def test_json_formatter_nests_extras():
    entry = json.loads(JSONFormatter().format(_record(note_id="n1")))

    assert entry["message"] == "Note created"
    assert entry["level"] == "INFO"
    assert entry["extra"] == {"note_id": "n1"}

import json
import os
import stat
from datetime import date

from tests.fixtures.sample_words import PETRICHOR, QUIXOTIC, SERENDIPITY
from wotd.word.models import WordRecord
from wotd.word.store import WordStore


def test_missing_file_is_empty(tmp_path):
    store = WordStore(tmp_path / "words.json")
    assert store.load_current() is None
    assert store.history() == []
    assert store.previous_words() == []


def test_save_word_writes_current_and_history(tmp_path):
    path = tmp_path / "words.json"
    store = WordStore(path)

    store.save_word(WordRecord.from_dict(PETRICHOR))
    store.save_word(WordRecord.from_dict(SERENDIPITY))

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["current"]["word"] == "Serendipity"
    assert [w["word"] for w in data["history"]] == ["Serendipity", "Petrichor"]
    assert store.previous_words() == ["Serendipity", "Petrichor"]


def test_history_is_capped(tmp_path):
    store = WordStore(tmp_path / "words.json", history_limit=2)
    for entry in (QUIXOTIC, PETRICHOR, SERENDIPITY):
        store.save_word(WordRecord.from_dict(entry))

    assert store.previous_words() == ["Serendipity", "Petrichor"]


def test_new_store_reads_existing_file(tmp_path):
    path = tmp_path / "words.json"
    WordStore(path).save_word(WordRecord.from_dict(SERENDIPITY))

    fresh = WordStore(path)
    assert fresh.load_current() == WordRecord.from_dict(SERENDIPITY)


def test_todays_word(tmp_path):
    store = WordStore(tmp_path / "words.json")
    store.save_word(WordRecord.from_dict(SERENDIPITY))

    assert store.todays_word(date(2026, 10, 17)).word == "Serendipity"
    assert store.todays_word(date(2026, 10, 18)) is None


def test_invalid_entries_are_skipped(tmp_path):
    path = tmp_path / "words.json"
    path.write_text(
        json.dumps(
            {
                "current": {"word": ""},
                "history": [SERENDIPITY, "not a record", {"phonetic": "no word"}, PETRICHOR],
            }
        ),
        encoding="utf-8",
    )
    store = WordStore(path)

    assert store.load_current() is None
    assert store.previous_words() == ["Serendipity", "Petrichor"]


def test_corrupt_file_is_treated_as_empty(tmp_path):
    path = tmp_path / "words.json"
    path.write_text("{not json", encoding="utf-8")

    assert WordStore(path).load_current() is None


def test_external_edit_is_picked_up(tmp_path):
    path = tmp_path / "words.json"
    store = WordStore(path)
    store.save_word(WordRecord.from_dict(PETRICHOR))
    assert store.load_current().word == "Petrichor"

    path.write_text(json.dumps({"current": QUIXOTIC, "history": [QUIXOTIC]}), encoding="utf-8")
    st = os.stat(path)
    os.utime(path, (st.st_atime, st.st_mtime + 5))

    assert store.load_current().word == "Quixotic"


def test_saved_file_is_private(tmp_path):
    path = tmp_path / "words.json"
    WordStore(path).save_word(WordRecord.from_dict(SERENDIPITY))

    assert stat.S_IMODE(os.stat(path).st_mode) == 0o600
    assert [p.name for p in tmp_path.iterdir()] == ["words.json"]


def test_mark_posted_is_kept_across_word_saves(tmp_path):
    path = tmp_path / "words.json"
    store = WordStore(path)
    store.save_word(WordRecord.from_dict(PETRICHOR))

    store.mark_posted(date(2026, 10, 17))
    store.save_word(WordRecord.from_dict(SERENDIPITY))

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["lastPostDate"] == "Sat Oct 17 2026"
    assert data["current"]["word"] == "Serendipity"
    fresh = WordStore(path)
    assert fresh.posted_on(date(2026, 10, 17))
    assert not fresh.posted_on(date(2026, 10, 18))


def test_last_post_date_absent_by_default(tmp_path):
    store = WordStore(tmp_path / "words.json")
    assert store.last_post_date() is None

    store.save_word(WordRecord.from_dict(SERENDIPITY))

    assert "lastPostDate" not in json.loads((tmp_path / "words.json").read_text())
    assert store.last_post_date() is None

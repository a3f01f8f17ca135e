"""
Unit tests for the JSON file book store.
"""

import json

import pytest

from library_api.store import BookStore, StoreCorruptedError, StoreWriteError


def make_book(book_id, title="Title", author="Author", **extra):
    book = {"id": book_id, "title": title, "author": author}
    book.update(extra)
    return book


class TestLoading:
    """Test cases for loading the collection."""

    def test_missing_file_loads_empty(self, data_file):
        """A store without a data file starts empty and writes nothing."""
        store = BookStore(data_file)

        assert store.load_all() == []
        assert store.get_all() == []
        assert not data_file.exists()

    def test_loads_existing_collection(self, data_file):
        """Books in the data file are loaded in file order."""
        books = [make_book("aaaaaaaa"), make_book("bbbbbbbb", genre="Poetry")]
        data_file.write_text(json.dumps({"books": books}), encoding="utf-8")

        store = BookStore(data_file)

        assert store.load_all() == books
        assert store.find_by_id("bbbbbbbb")["genre"] == "Poetry"

    def test_object_without_books_loads_empty(self, data_file):
        """A JSON object with no books field is an empty collection."""
        data_file.write_text("{}", encoding="utf-8")

        assert BookStore(data_file).load_all() == []

    def test_unparseable_file_is_rejected(self, data_file):
        """Invalid JSON cannot be loaded."""
        data_file.write_text("{not json", encoding="utf-8")

        with pytest.raises(StoreCorruptedError):
            BookStore(data_file).load_all()

    @pytest.mark.parametrize("content", [
        "[]",
        '{"books": {"id": "x"}}',
        '{"books": ["x"]}',
    ])
    def test_wrong_shape_is_rejected(self, data_file, content):
        """The document must be an object holding an array of objects."""
        data_file.write_text(content, encoding="utf-8")

        with pytest.raises(StoreCorruptedError):
            BookStore(data_file).load_all()


class TestMutations:
    """Test cases for mutating the collection."""

    def test_append_flushes_to_file(self, book_store, data_file):
        """Appending writes the whole collection under the books key."""
        book_store.append(make_book("aaaaaaaa"))

        data = json.loads(data_file.read_text(encoding="utf-8"))
        assert data == {"books": [make_book("aaaaaaaa")]}

    def test_reload_round_trip(self, book_store, data_file):
        """A new store over the same file sees identical records."""
        book_store.append(make_book("aaaaaaaa", year=1993, tags=["cs"]))
        book_store.append(make_book("bbbbbbbb", title="Second"))

        reloaded = BookStore(data_file)
        reloaded.load_all()

        assert reloaded.get_all() == book_store.get_all()

    def test_get_all_returns_copy(self, book_store):
        """Changing the returned list does not change the store."""
        book_store.append(make_book("aaaaaaaa"))

        books = book_store.get_all()
        books.clear()

        assert len(book_store.get_all()) == 1

    def test_find_by_id_absent(self, book_store):
        """Unknown ids are not found."""
        book_store.append(make_book("aaaaaaaa"))

        assert book_store.find_by_id("zzzzzzzz") is None

    def test_update_merges_patch(self, book_store, data_file):
        """Patch fields overwrite existing ones and new fields are added."""
        book_store.append(make_book("aaaaaaaa", title="T", author="A"))

        updated = book_store.update_by_id("aaaaaaaa", {"author": "B", "year": 2001})

        assert updated == {"id": "aaaaaaaa", "title": "T", "author": "B", "year": 2001}
        data = json.loads(data_file.read_text(encoding="utf-8"))
        assert data["books"][0] == updated

    def test_update_unknown_id(self, book_store, data_file):
        """Updating an unknown id changes nothing."""
        assert book_store.update_by_id("zzzzzzzz", {"title": "X"}) is None
        assert not data_file.exists()

    def test_remove_first_match_only(self, book_store):
        """Only one record is removed per call."""
        book_store.append(make_book("aaaaaaaa"))
        book_store.append(make_book("bbbbbbbb"))

        assert book_store.remove_by_id("aaaaaaaa") is True
        assert [b["id"] for b in book_store.get_all()] == ["bbbbbbbb"]

    def test_remove_twice(self, book_store):
        """The second removal reports that nothing was removed."""
        book_store.append(make_book("aaaaaaaa"))

        assert book_store.remove_by_id("aaaaaaaa") is True
        assert book_store.remove_by_id("aaaaaaaa") is False
        assert book_store.get_all() == []


class TestFlushFailure:
    """Test cases for write failures."""

    def test_failed_flush_keeps_memory_state(self, tmp_path):
        """The collection in memory survives a failed write."""
        data_dir = tmp_path / "db.json"
        data_dir.mkdir()
        store = BookStore(data_dir)

        with pytest.raises(StoreWriteError):
            store.append(make_book("aaaaaaaa"))

        assert store.find_by_id("aaaaaaaa") == make_book("aaaaaaaa")

    def test_flush_creates_parent_directories(self, tmp_path):
        """The data file may live in a directory that does not exist yet."""
        data_file = tmp_path / "data" / "nested" / "db.json"
        store = BookStore(data_file)
        store.load_all()

        store.append(make_book("aaaaaaaa"))

        assert data_file.exists()

    def test_failed_write_keeps_previous_file(self, book_store, data_file):
        """A write that fails leaves the last good data file in place."""
        book_store.append(make_book("aaaaaaaa"))
        before = data_file.read_bytes()

        with pytest.raises(StoreWriteError):
            book_store.append(make_book("bbbbbbbb", title="\ud800"))

        assert data_file.read_bytes() == before
        assert list(data_file.parent.glob("*.tmp")) == []

        reloaded = BookStore(data_file)
        assert reloaded.load_all() == [make_book("aaaaaaaa")]


class TestLoadValidation:
    """Test cases for records that cannot be served."""

    @pytest.mark.parametrize("book", [
        {"id": "aaaaaaaa", "title": "T"},
        {"id": 12345678, "title": "T", "author": "A"},
        {"title": "T", "author": "A"},
        {"id": "aaaaaaaa", "title": None, "author": "A"},
    ])
    def test_records_need_string_fields(self, data_file, book):
        """Every record needs string id, title and author."""
        data_file.write_text(json.dumps({"books": [make_book("bbbbbbbb"), book]}), encoding="utf-8")

        with pytest.raises(StoreCorruptedError):
            BookStore(data_file).load_all()

    def test_unencodable_text_is_rejected(self, data_file):
        """Escaped lone surrogates in the file cannot be loaded."""
        data_file.write_text('{"books": [{"id": "a", "title": "\\ud800", "author": "A"}]}', encoding="utf-8")

        with pytest.raises(StoreCorruptedError):
            BookStore(data_file).load_all()

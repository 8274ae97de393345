"""Tests for the word catalog."""
import json
from pathlib import Path

import pytest

from vocabplan.exceptions import BookNotFoundError
from vocabplan.models.vocab_models import Book, Word, WordDetails
from vocabplan.services.catalog_service import WordCatalog


def test_list_books_builtin_first(catalog: WordCatalog) -> None:
    """Test that user books follow the built-in ones."""
    catalog.add_book(Book(id="custom", title="Mine", words=[Word(word="zebra")]))
    assert [b.id for b in catalog.list_books()] == ["fruit", "animals", "custom"]
    assert not catalog.get_book("custom").is_builtin
    assert catalog.get_book("missing") is None


def test_all_words_tags_book(catalog: WordCatalog) -> None:
    """Test that every word carries the id of its book."""
    words = catalog.all_words()
    assert [w.word for w in words] == ["cherry", "apple", "banana", "cat", "dog"]
    assert {w.book_id for w in words[:3]} == {"fruit"}
    assert {w.book_id for w in words[3:]} == {"animals"}


def test_words_for_books(catalog: WordCatalog) -> None:
    """Test selecting words by book."""
    assert [w.word for w in catalog.words_for_books(["animals"])] == ["cat", "dog"]


def test_builtin_book_is_protected(catalog: WordCatalog) -> None:
    """Test that built-in books cannot be replaced or removed."""
    with pytest.raises(ValueError):
        catalog.add_book(Book(id="fruit", title="Other"))
    with pytest.raises(ValueError):
        catalog.remove_book("fruit")


def test_user_book_replace_and_remove(catalog: WordCatalog) -> None:
    """Test replacing and removing user books."""
    catalog.add_book(Book(id="custom", title="v1", words=[Word(word="zebra")]))
    catalog.add_book(Book(id="custom", title="v2", words=[Word(word="yak")]))
    assert catalog.get_book("custom").title == "v2"
    assert [w.word for w in catalog.words_for_books(["custom"])] == ["yak"]

    catalog.remove_book("custom")
    assert catalog.get_book("custom") is None
    with pytest.raises(BookNotFoundError):
        catalog.remove_book("custom")


def test_override_applied_at_read_time(catalog: WordCatalog, fruit_book: Book) -> None:
    """Test that overrides patch details without changing the source word."""
    catalog.set_override("Apple", WordDetails(phonetic="/ˈæp.əl/", example="An apple a day."))
    apple = next(w for w in catalog.all_words() if w.word == "apple")

    assert apple.phonetic == "/ˈæp.əl/"
    assert apple.example == "An apple a day."
    assert apple.meaning == "苹果"
    assert next(w for w in fruit_book.words if w.word == "apple").phonetic is None

    assert catalog.clear_override("apple")
    assert not catalog.clear_override("apple")
    apple = next(w for w in catalog.all_words() if w.word == "apple")
    assert apple.phonetic is None


def test_override_never_uses_phonetic_as_meaning() -> None:
    """Test that a missing meaning is filled from the override meaning only."""
    catalog = WordCatalog([Book(id="b", title="B", words=[Word(word="kiwi")])])
    catalog.set_override("kiwi", WordDetails(phonetic="/ˈkiː.wiː/"))
    assert catalog.all_words()[0].meaning == ""

    catalog.set_override("kiwi", WordDetails(meaning="猕猴桃", phonetic="/ˈkiː.wiː/"))
    assert catalog.all_words()[0].meaning == "猕猴桃"


def test_load_books_from_directory(tmp_path: Path) -> None:
    """Test loading single-book and multi-book files."""
    single = {"id": "kids", "title": "Kids", "words": [{"word": "sun", "meaning": "太阳", "pos": "n.", "audioUrl": "a.mp3"}]}
    many = [
        {"id": "cet4", "words": [{"word": "abandon", "meaning": "放弃"}]},
        {"id": "cet6", "words": []},
    ]
    (tmp_path / "a.json").write_text(json.dumps(single), encoding="utf-8")
    (tmp_path / "b.json").write_text(json.dumps(many), encoding="utf-8")
    (tmp_path / "broken.json").write_text("{not json", encoding="utf-8")

    catalog = WordCatalog()
    assert catalog.load_books(tmp_path) == 3
    assert [b.id for b in catalog.list_books()] == ["kids", "cet4", "cet6"]

    sun = catalog.words_for_books(["kids"])[0]
    assert sun.part_of_speech == "n."
    assert sun.audio_url == "a.mp3"
    assert sun.book_id == "kids"
    assert catalog.get_book("cet4").title == "cet4"


if __name__ == "__main__":
    pytest.main([__file__])

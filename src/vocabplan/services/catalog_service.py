"""Service for the vocabulary book catalog."""
import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from vocabplan.exceptions import BookNotFoundError
from vocabplan.models.vocab_models import Book, Word, WordDetails

logger = logging.getLogger(__name__)


class WordCatalog:
    """Ordered collection of built-in and user-added books.

    Overrides are keyed by the lower-cased word text and are merged into the
    words when they are read; the book entries themselves never change.
    """

    def __init__(self, books: Optional[Iterable[Book]] = None):
        self._builtin_books: List[Book] = []
        self._custom_books: List[Book] = []
        self._overrides: Dict[str, WordDetails] = {}
        for book in books or []:
            self._builtin_books.append(book)

    def load_books(self, directory: Path) -> int:
        """Load built-in books from the JSON files of a directory."""
        loaded = 0
        for path in sorted(Path(directory).glob("*.json")):
            try:
                with path.open(encoding="utf-8") as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.error(f"Could not load book file {path}: {e}")
                continue
            # A file holds either one book or a list of them
            for book_data in data if isinstance(data, list) else [data]:
                book = Book.from_dict(book_data, is_builtin=True)
                self._builtin_books = [b for b in self._builtin_books if b.id != book.id]
                self._builtin_books.append(book)
                loaded += 1
                logger.info(f"Loaded book {book.id} ({len(book.words)} words) from {path.name}")
        return loaded

    def list_books(self) -> List[Book]:
        """Built-in books first, then user-added ones."""
        return [*self._builtin_books, *self._custom_books]

    def get_book(self, book_id: str) -> Optional[Book]:
        return next((b for b in self.list_books() if b.id == book_id), None)

    def add_book(self, book: Book) -> Book:
        """Add a user book, replacing an earlier user book with the same id."""
        if any(b.id == book.id for b in self._builtin_books):
            raise ValueError(f"Book {book.id} is built in and cannot be replaced")
        book.is_builtin = False
        self._custom_books = [b for b in self._custom_books if b.id != book.id]
        self._custom_books.append(book)
        logger.info(f"Added user book {book.id} with {len(book.words)} words")
        return book

    def remove_book(self, book_id: str) -> None:
        """Remove a user-added book."""
        if any(b.id == book_id for b in self._builtin_books):
            raise ValueError(f"Book {book_id} is built in and cannot be removed")
        remaining = [b for b in self._custom_books if b.id != book_id]
        if len(remaining) == len(self._custom_books):
            raise BookNotFoundError(f"Book {book_id} not found")
        self._custom_books = remaining
        logger.info(f"Removed user book {book_id}")

    def set_override(self, word: str, details: WordDetails) -> None:
        self._overrides[word.lower()] = details

    def clear_override(self, word: str) -> bool:
        return self._overrides.pop(word.lower(), None) is not None

    def get_override(self, word: str) -> Optional[WordDetails]:
        return self._overrides.get(word.lower())

    def all_words(self) -> List[Word]:
        """Every word of every book, in book order, with overrides applied."""
        words = []
        for book in self.list_books():
            for word in book.words:
                if word.book_id != book.id:
                    word = replace(word, book_id=book.id)
                override = self._overrides.get(word.word.lower())
                words.append(word.with_details(override) if override else word)
        return words

    def words_for_books(self, book_ids: Iterable[str]) -> List[Word]:
        """Words whose book is in ``book_ids``, in catalog order."""
        selected = set(book_ids)
        return [w for w in self.all_words() if w.book_id in selected]

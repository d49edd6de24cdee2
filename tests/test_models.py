"""
Tests for magicshelf.models.

Tests cover:
- camelCase API shape decoding (Book.from_dict, BookMetadata.from_dict)
- Reading progress aggregation
- Read status defaults
- MagicShelf decoding
"""

from magicshelf.models import (
    Book,
    BookMetadata,
    MagicShelf,
    ReadingProgress,
    ReadStatus,
    Shelf,
    camel_to_snake,
)


class TestCamelToSnake:
    """Test API key conversion."""

    def test_converts_camel_case_keys(self):
        assert camel_to_snake("seriesName") == "series_name"
        assert camel_to_snake("goodreadsReviewCount") == "goodreads_review_count"

    def test_leaves_single_words_alone(self):
        assert camel_to_snake("title") == "title"


class TestBookFromDict:
    """Test decoding the API book shape."""

    def test_decodes_top_level_and_nested_metadata(self):
        # Given: An API-shaped book
        data = {
            "id": 7,
            "libraryId": 2,
            "readStatus": "READING",
            "fileSizeKb": 2048,
            "addedOn": "2024-01-10T08:00:00Z",
            "shelves": [{"id": 5, "name": "Favourites"}],
            "metadata": {
                "title": "Dune",
                "authors": ["Frank Herbert"],
                "seriesName": "Dune",
                "seriesNumber": 1,
                "pageCount": 412,
            },
        }

        # When: Decoding it
        book = Book.from_dict(data)

        # Then: Every attribute lands on the snake_case field
        assert book.id == 7
        assert book.library_id == 2
        assert book.read_status == "READING"
        assert book.file_size_kb == 2048
        assert book.added_on == "2024-01-10T08:00:00Z"
        assert book.shelves == [Shelf(id=5, name="Favourites")]
        assert book.metadata.title == "Dune"
        assert book.metadata.authors == ["Frank Herbert"]
        assert book.metadata.series_name == "Dune"
        assert book.metadata.page_count == 412

    def test_collects_progress_sub_objects(self):
        # Given: A book with two progress sources
        data = {"id": 1, "epubProgress": {"percentage": 40}, "koreaderProgress": {"percentage": 55.5}}

        # When: Decoding it
        book = Book.from_dict(data)

        # Then: Progress is keyed by format
        assert book.progress == {"epub": ReadingProgress(40), "koreader": ReadingProgress(55.5)}
        assert book.effective_progress == 55.5

    def test_book_type_from_primary_file(self):
        book = Book.from_dict({"id": 1, "primaryFile": {"bookType": "EPUB"}})
        assert book.book_type == "EPUB"

    def test_explicit_book_type_wins_over_primary_file(self):
        book = Book.from_dict({"id": 1, "bookType": "PDF", "primaryFile": {"bookType": "EPUB"}})
        assert book.book_type == "PDF"

    def test_unknown_keys_go_to_extra(self):
        # Given: A book with a custom attribute
        data = {"id": 1, "customScore": 12, "extra": {"origin": "import"}}

        # When: Decoding it
        book = Book.from_dict(data)

        # Then: Unknown keys are kept in extra alongside the explicit extras
        assert book.extra == {"origin": "import", "customScore": 12}

    def test_missing_metadata_stays_none(self):
        book = Book.from_dict({"id": 1})
        assert book.metadata is None
        assert book.shelves == []


class TestBookMetadataFromDict:
    """Test metadata decoding."""

    def test_audiobook_duration_from_nested_metadata(self):
        meta = BookMetadata.from_dict({"audiobookMetadata": {"durationSeconds": 3600}})
        assert meta.audiobook_duration == 3600

    def test_scalar_list_value_is_wrapped(self):
        meta = BookMetadata.from_dict({"authors": "Ursula K. Le Guin"})
        assert meta.authors == ["Ursula K. Le Guin"]

    def test_null_list_becomes_empty(self):
        meta = BookMetadata.from_dict({"tags": None})
        assert meta.tags == []


class TestBookProperties:
    """Test derived book attributes."""

    def test_effective_progress_defaults_to_zero(self):
        assert Book(id=1).effective_progress == 0

    def test_effective_progress_ignores_missing_percentages(self):
        book = Book(id=1, progress={"pdf": ReadingProgress(None), "kobo": ReadingProgress(12)})
        assert book.effective_progress == 12

    def test_status_defaults_to_unset(self):
        assert Book(id=1).status == "UNSET"
        assert Book(id=1).status == ReadStatus.UNSET

    def test_status_reports_read_status(self):
        assert Book(id=1, read_status="READ").status == "READ"


class TestMagicShelfFromDict:

    def test_decodes_filter_json(self):
        shelf = MagicShelf.from_dict({"id": 3, "name": "Sci-Fi", "filterJson": "{}", "icon": "pi-star"})
        assert shelf == MagicShelf(id=3, name="Sci-Fi", filter_json="{}", icon="pi-star")

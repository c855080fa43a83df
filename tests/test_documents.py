"""Tests for document models, loaders, and chunking."""

import math
import random
import string
from pathlib import Path

import pytest

from compliance_rag.config import RetrievalSettings
from compliance_rag.documents.chunker import FixedWindowChunker, chunk_text
from compliance_rag.documents.loader import TextFileLoader, file_type_for
from compliance_rag.documents.models import Chunk, DocumentMetadata, chunk_key
from compliance_rag.exceptions import (
    ConfigurationError,
    DocumentError,
    ErrorCode,
    ValidationError,
)

LOREM = (
    "Lorem ipsum dolor sit amet, consectetur adipiscing elit, sed do eiusmod "
    "tempor incididunt ut labore et dolore magna aliqua. "
)


def _random_text(rng: random.Random, length: int) -> str:
    return "".join(rng.choice(string.ascii_letters + string.digits) for _ in range(length))


class TestDocumentMetadata:
    """Tests for DocumentMetadata model."""

    def test_uploaded_at_defaults_to_iso_timestamp(self) -> None:
        """Upload time defaults to an ISO 8601 string."""
        meta = DocumentMetadata(
            document_id="doc-1",
            file_name="policy.pdf",
            file_path="/uploads/doc-1.pdf",
            file_type="pdf",
        )
        assert "T" in meta.uploaded_at
        assert meta.page_number is None

    def test_empty_document_id_rejected(self) -> None:
        """Document id must not be empty."""
        with pytest.raises(ValueError):
            DocumentMetadata(document_id="", file_name="a", file_path="a", file_type="txt")


class TestChunk:
    """Tests for Chunk model."""

    def test_key(self) -> None:
        """Chunk key combines document id and index."""
        chunk = Chunk(document_id="abc", index=3, total=5, text="hello")
        assert chunk.key == "abc_chunk_3"
        assert chunk_key("abc", 3) == chunk.key

    def test_chunk_is_immutable(self) -> None:
        """Chunks cannot be modified after creation."""
        chunk = Chunk(document_id="abc", index=0, total=1, text="hello")
        with pytest.raises(ValueError):
            chunk.text = "changed"  # type: ignore[misc]


class TestChunkText:
    """Tests for the fixed-window chunking function."""

    def test_empty_input(self) -> None:
        """Empty text produces no chunks."""
        assert chunk_text("", 1000, 200) == []

    def test_whitespace_only_input(self) -> None:
        """Whitespace-only text produces no chunks."""
        assert chunk_text("   \n\t  ", 10, 2) == []

    def test_short_text_single_chunk(self) -> None:
        """Text shorter than the window yields one trimmed chunk."""
        assert chunk_text("  ISO 27001 Annex A  ", 1000, 200) == ["ISO 27001 Annex A"]

    def test_2500_characters_yield_four_chunks(self) -> None:
        """Windows start at 0, 800, 1600 and 2400."""
        text = (LOREM * 30)[:2500]
        chunks = chunk_text(text, 1000, 200)

        assert len(chunks) == 4
        assert chunks[0] == text[0:1000].strip()
        assert chunks[1] == text[800:1800].strip()
        assert chunks[2] == text[1600:2500].strip()
        assert chunks[3] == text[2400:2500].strip()

    def test_exact_multiple_of_step(self) -> None:
        """Length equal to a multiple of the step adds no trailing chunk."""
        text = "x" * 1600
        chunks = chunk_text(text, 1000, 200)
        assert len(chunks) == 2
        assert chunks[1] == "x" * 800

    def test_deterministic(self) -> None:
        """Chunking the same input twice gives identical output."""
        text = LOREM * 50
        assert chunk_text(text, 300, 50) == chunk_text(text, 300, 50)

    def test_zero_overlap(self) -> None:
        """Zero overlap tiles the text."""
        assert chunk_text("abcdefghij", 4, 0) == ["abcd", "efgh", "ij"]

    def test_drops_blank_windows(self) -> None:
        """Windows that are blank after trimming are removed."""
        text = "abcd" + " " * 8 + "efgh"
        assert chunk_text(text, 4, 0) == ["abcd", "efgh"]

    def test_count_matches_ceiling(self) -> None:
        """Chunk count equals ceil(len / (size - overlap)) for dense text."""
        rng = random.Random(7)
        for size, overlap in [(10, 3), (100, 20), (1000, 200), (7, 0), (50, 49)]:
            for length in (1, size - 1, size, size + 1, 3 * size + 5):
                text = _random_text(rng, max(length, 1))
                expected = math.ceil(len(text) / (size - overlap))
                assert len(chunk_text(text, size, overlap)) == expected

    def test_chunks_reconstruct_text(self) -> None:
        """Dropping each chunk's overlap prefix rebuilds the original text."""
        rng = random.Random(42)
        for _ in range(50):
            size = rng.randint(2, 200)
            overlap = rng.randint(0, size - 1)
            text = _random_text(rng, rng.randint(1, 2000))

            chunks = chunk_text(text, size, overlap)
            rebuilt = chunks[0] + "".join(chunk[overlap:] for chunk in chunks[1:])

            assert rebuilt == text

    @pytest.mark.parametrize(
        ("size", "overlap"),
        [(0, 0), (-5, 0), (100, -1), (100, 100), (100, 150)],
    )
    def test_invalid_parameters(self, size: int, overlap: int) -> None:
        """Parameters that cannot advance the cursor are rejected."""
        with pytest.raises(ConfigurationError) as exc_info:
            chunk_text("some text", size, overlap)
        assert exc_info.value.code == ErrorCode.CONFIGURATION_ERROR


class TestFixedWindowChunker:
    """Tests for FixedWindowChunker."""

    def test_uses_settings(self) -> None:
        """Chunker reads window size and overlap from settings."""
        chunker = FixedWindowChunker(RetrievalSettings(chunk_size=4, chunk_overlap=1))
        chunks = chunker.chunk("doc", "abcdefg")

        assert [c.text for c in chunks] == ["abcd", "defg", "g"]
        assert [c.index for c in chunks] == [0, 1, 2]
        assert all(c.total == 3 for c in chunks)
        assert all(c.document_id == "doc" for c in chunks)

    def test_per_call_override(self) -> None:
        """Size and overlap can be overridden per call."""
        chunker = FixedWindowChunker(RetrievalSettings(chunk_size=1000, chunk_overlap=200))
        chunks = chunker.chunk("doc", "abcdefgh", size=4, overlap=0)
        assert [c.text for c in chunks] == ["abcd", "efgh"]

    def test_invalid_settings_rejected(self) -> None:
        """Overlap not smaller than size fails at construction."""
        with pytest.raises(ConfigurationError):
            FixedWindowChunker(RetrievalSettings(chunk_size=100, chunk_overlap=100))


class TestTextFileLoader:
    """Tests for TextFileLoader."""

    def test_load_text_file(self, tmp_path: Path) -> None:
        """Loader reads text file content."""
        path = tmp_path / "access-control.txt"
        path.write_text("Access control policy", encoding="utf-8")

        doc = TextFileLoader().load(path)

        assert doc.content == "Access control policy"
        assert doc.file_name == "access-control.txt"
        assert doc.file_path == str(path)
        assert doc.file_type == "txt"

    def test_load_with_string_path(self, tmp_path: Path) -> None:
        """Loader accepts string paths."""
        path = tmp_path / "checklist.csv"
        path.write_text("control,status\nA.5.1,done\n", encoding="utf-8")

        doc = TextFileLoader().load(str(path))

        assert doc.file_type == "csv"
        assert "A.5.1" in doc.content

    def test_file_not_found(self, tmp_path: Path) -> None:
        """Missing file raises DocumentError."""
        with pytest.raises(DocumentError) as exc_info:
            TextFileLoader().load(tmp_path / "missing.txt")
        assert exc_info.value.code == ErrorCode.DOCUMENT_NOT_FOUND

    def test_directory_rejected(self, tmp_path: Path) -> None:
        """Directories are not loadable."""
        with pytest.raises(DocumentError) as exc_info:
            TextFileLoader().load(tmp_path)
        assert exc_info.value.code == ErrorCode.DOCUMENT_PARSE_ERROR

    def test_unsupported_extension(self, tmp_path: Path) -> None:
        """Binary formats are not handled by the text loader."""
        path = tmp_path / "report.pdf"
        path.write_bytes(b"%PDF-1.4")

        with pytest.raises(ValidationError):
            TextFileLoader().load(path)

    def test_decode_error(self, tmp_path: Path) -> None:
        """Undecodable content raises DocumentError."""
        path = tmp_path / "latin.txt"
        path.write_bytes(b"\xff\xfe\xfa")

        with pytest.raises(DocumentError) as exc_info:
            TextFileLoader().load(path)
        assert exc_info.value.code == ErrorCode.DOCUMENT_PARSE_ERROR

    def test_supports(self) -> None:
        """Supported extensions are matched case-insensitively."""
        loader = TextFileLoader()
        assert loader.supports("notes.MD")
        assert loader.supports("export.csv")
        assert not loader.supports("scan.docx")


def test_file_type_for() -> None:
    """File types are normalised extensions."""
    assert file_type_for("a.TXT") == "txt"
    assert file_type_for("a.markdown") == "md"
    assert file_type_for("a.text") == "txt"
    assert file_type_for("a.csv") == "csv"

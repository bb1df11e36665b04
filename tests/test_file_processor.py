import io

import pytest

from eduassist.services.file_processor import (
    MAX_CONTENT_LENGTH,
    MAX_FILE_SIZE,
    TRUNCATION_MARKER,
    EmptyFileError,
    ExtractionFailedError,
    FileTooLargeError,
    UnsupportedFileTypeError,
    cleanup_file,
    extract_text,
    get_supported_formats,
    measure_upload,
    stored_upload,
    validate_file_size,
    validate_file_type,
    validate_upload,
)


# ── Upload validation ────────────────────────────────────────

class TestValidateFileSize:
    @pytest.mark.parametrize("size", [0, 1, 1024, MAX_FILE_SIZE - 1, MAX_FILE_SIZE])
    def test_within_limit(self, size):
        assert validate_file_size(size) is True

    @pytest.mark.parametrize("size", [MAX_FILE_SIZE + 1, 50 * 1024 * 1024])
    def test_over_limit(self, size):
        assert validate_file_size(size) is False

    def test_limit_is_ten_megabytes(self):
        assert MAX_FILE_SIZE == 10_485_760

    def test_custom_limit(self):
        assert validate_file_size(100, max_bytes=100)
        assert not validate_file_size(101, max_bytes=100)


class TestValidateFileType:
    @pytest.mark.parametrize("name", ["notes.txt", "README.md", "paper.pdf", "SHOUT.PDF", "Mixed.Md", "a.b.txt"])
    def test_allowed(self, name):
        assert validate_file_type(name) is True

    @pytest.mark.parametrize("name", ["setup.exe", "slides.pptx", "notes.txt.exe", "noextension", ".pdf", "archive.zip"])
    def test_rejected(self, name):
        assert validate_file_type(name) is False

    def test_custom_allow_list(self):
        assert validate_file_type("data.csv", allowed={".csv"})
        assert not validate_file_type("notes.txt", allowed={".csv"})


class TestValidateUpload:
    def test_too_large(self):
        with pytest.raises(FileTooLargeError) as exc:
            validate_upload("notes.txt", MAX_FILE_SIZE + 1)
        assert exc.value.code == "FileTooLarge"

    def test_unsupported_type(self):
        with pytest.raises(UnsupportedFileTypeError) as exc:
            validate_upload("virus.exe", 10)
        assert exc.value.code == "UnsupportedFileType"
        assert ".exe" in str(exc.value)

    def test_size_checked_before_type(self):
        with pytest.raises(FileTooLargeError):
            validate_upload("virus.exe", MAX_FILE_SIZE + 1)

    def test_valid_upload_passes(self):
        validate_upload("paper.pdf", 2048)


# ── Text extraction ──────────────────────────────────────────

class TestExtractText:
    def test_plain_text_returned_verbatim(self, tmp_path):
        content = "Photosynthesis converts light energy into chemical energy.\n  Indented line.\n"
        path = tmp_path / "upload.txt"
        path.write_text(content, encoding="utf-8")
        assert extract_text(path, "notes.txt") == content

    def test_markdown_uses_original_name(self, tmp_path):
        path = tmp_path / "stored-without-extension"
        path.write_text("# Cells\n\nThe basic unit of life.", encoding="utf-8")
        assert extract_text(path, "Biology.MD").startswith("# Cells")

    def test_exactly_max_length_not_truncated(self, tmp_path):
        content = "a" * MAX_CONTENT_LENGTH
        path = tmp_path / "upload.txt"
        path.write_text(content, encoding="utf-8")
        assert extract_text(path, "notes.txt") == content

    def test_long_text_truncated_with_marker(self, tmp_path):
        content = "x" * 15000
        path = tmp_path / "upload.txt"
        path.write_text(content, encoding="utf-8")
        text = extract_text(path, "notes.txt")
        assert len(text) == 12000 + len("...(content truncated)")
        assert text.endswith(TRUNCATION_MARKER)
        assert text[:12000] == content[:12000]

    def test_whitespace_only_is_empty_file(self, tmp_path):
        path = tmp_path / "upload.txt"
        path.write_text("   \n\t\n  ", encoding="utf-8")
        with pytest.raises(EmptyFileError) as exc:
            extract_text(path, "blank.txt")
        assert exc.value.code == "EmptyFile"

    def test_unsupported_extension(self, tmp_path):
        path = tmp_path / "upload.docx"
        path.write_bytes(b"PK\x03\x04")
        with pytest.raises(UnsupportedFileTypeError):
            extract_text(path, "essay.docx")

    def test_invalid_utf8_fails(self, tmp_path):
        path = tmp_path / "upload.txt"
        path.write_bytes(b"\xff\xfe\x00broken \xc3\x28 bytes")
        with pytest.raises(ExtractionFailedError):
            extract_text(path, "notes.txt")

    def test_missing_file_fails(self, tmp_path):
        with pytest.raises(ExtractionFailedError):
            extract_text(tmp_path / "gone.txt", "notes.txt")

    def test_corrupt_pdf_fails(self, tmp_path):
        path = tmp_path / "upload.pdf"
        path.write_bytes(b"this is not a pdf at all")
        with pytest.raises(ExtractionFailedError) as exc:
            extract_text(path, "paper.pdf")
        assert exc.value.code == "ExtractionFailed"

    def test_pdf_without_text_is_empty_file(self, tmp_path):
        from PyPDF2 import PdfWriter
        writer = PdfWriter()
        writer.add_blank_page(width=612, height=792)
        path = tmp_path / "upload.pdf"
        with open(path, "wb") as f:
            writer.write(f)
        with pytest.raises(EmptyFileError):
            extract_text(path, "scan.pdf")


# ── Stored uploads ───────────────────────────────────────────

class TestStoredUpload:
    def test_written_with_original_extension_and_removed(self, tmp_path):
        upload_dir = tmp_path / "uploads"
        with stored_upload(io.BytesIO(b"hello world"), "Notes.TXT", upload_dir) as path:
            assert path.parent == upload_dir
            assert path.suffix == ".txt"
            assert path.read_bytes() == b"hello world"
        assert not path.exists()

    def test_removed_when_block_raises(self, tmp_path):
        with pytest.raises(RuntimeError):
            with stored_upload(io.BytesIO(b"data"), "notes.md", tmp_path) as path:
                raise RuntimeError("boom")
        assert not path.exists()

    def test_unique_names(self, tmp_path):
        with stored_upload(io.BytesIO(b"a"), "notes.txt", tmp_path) as first:
            with stored_upload(io.BytesIO(b"b"), "notes.txt", tmp_path) as second:
                assert first != second

    def test_cleanup_of_missing_file_is_silent(self, tmp_path):
        cleanup_file(tmp_path / "never-existed.txt")

    def test_cleanup_failure_is_logged_not_raised(self, tmp_path, caplog):
        directory = tmp_path / "a-directory.txt"
        directory.mkdir()
        cleanup_file(directory)
        assert "File cleanup error" in caplog.text


def test_measure_upload_rewinds():
    stream = io.BytesIO(b"12345")
    stream.read(2)
    assert measure_upload(stream) == 5
    assert stream.tell() == 0


def test_supported_formats():
    formats = get_supported_formats()
    assert formats["extensions"] == [".md", ".pdf", ".txt"]
    assert formats["max_file_size_mb"] == 10

"""
Text reader tests. Tesseract, Poppler and pdfplumber are patched out so the
suite runs without native binaries.
"""

import io
import sys
from pathlib import Path
from types import SimpleNamespace

sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
from PIL import Image

import menuscan.text_reader as text_reader
from menuscan.config import Settings
from menuscan.errors import TextEngineError, TextReaderError, UndecodableInput, UnsupportedInputType
from menuscan.menu_types import ExtractedText
from menuscan.text_reader import TextReader, to_text_blocks


def _png_bytes():
    buf = io.BytesIO()
    Image.new("RGB", (40, 20), "white").save(buf, format="PNG")
    return buf.getvalue()


OCR_DATA = {
    "text": ["APPETIZERS", "", "Soup", "$4", "noise"],
    "conf": [90, -1, 80, 85, -1],
    "block_num": [1, 1, 1, 1, 1],
    "par_num": [1, 1, 1, 1, 1],
    "line_num": [1, 1, 2, 2, 3],
}


class _FakePdf:
    def __init__(self, page_texts):
        self.pages = [SimpleNamespace(extract_text=lambda t=t: t) for t in page_texts]

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


@pytest.fixture
def reader():
    return TextReader(Settings())


class TestDispatch:
    def test_unsupported_type(self, reader):
        with pytest.raises(UnsupportedInputType) as exc:
            reader.extract(b"hello", "text/plain")
        assert exc.value.mime_type == "text/plain"
        assert isinstance(exc.value, TextReaderError)

    def test_bad_image_bytes(self, reader):
        with pytest.raises(UndecodableInput):
            reader.extract(b"definitely not a png", "image/png")


class TestImageOcr:
    def test_lines_and_confidence(self, reader, monkeypatch):
        seen = {}

        def fake_image_to_data(image, lang, config, output_type):
            seen["mode"] = image.mode
            seen["lang"] = lang
            return OCR_DATA

        monkeypatch.setattr(text_reader.pytesseract, "image_to_data", fake_image_to_data)
        result = reader.extract(_png_bytes(), "image/png")

        assert result.text_boxes == ("APPETIZERS\nSoup $4",)
        assert result.confidence == pytest.approx(0.85)
        assert seen == {"mode": "L", "lang": "eng"}

    def test_no_words(self, reader, monkeypatch):
        empty = {"text": [], "conf": [], "block_num": [], "par_num": [], "line_num": []}
        monkeypatch.setattr(text_reader.pytesseract, "image_to_data", lambda *a, **k: empty)
        result = reader.extract(_png_bytes(), "image/jpeg")
        assert result.text_boxes == ()
        assert result.confidence == 0.0

    def test_missing_tesseract(self, reader, monkeypatch):
        def boom(*args, **kwargs):
            raise text_reader.pytesseract.TesseractNotFoundError()

        monkeypatch.setattr(text_reader.pytesseract, "image_to_data", boom)
        with pytest.raises(TextEngineError):
            reader.extract(_png_bytes(), "image/png")


class TestPdf:
    def test_text_layer(self, reader, monkeypatch):
        monkeypatch.setattr(
            text_reader.pdfplumber, "open",
            lambda stream: _FakePdf(["MAINS\nBurger $12", "  ", None, "DESSERTS\nCake $6"]),
        )
        result = reader.extract(b"%PDF-1.4", "application/pdf")
        assert result.text_boxes == ("MAINS\nBurger $12", "DESSERTS\nCake $6")
        assert result.confidence == 0.95

    def test_scanned_pdf_falls_back_to_ocr(self, reader, monkeypatch):
        monkeypatch.setattr(text_reader.pdfplumber, "open", lambda stream: _FakePdf([None, ""]))
        page = Image.new("RGB", (40, 20), "white")
        monkeypatch.setattr(text_reader, "convert_from_bytes", lambda data, dpi, poppler_path: [page, page])
        monkeypatch.setattr(text_reader.pytesseract, "image_to_data", lambda *a, **k: OCR_DATA)

        result = reader.extract(b"%PDF-1.4", "application/pdf")
        assert result.text_boxes == ("APPETIZERS\nSoup $4", "APPETIZERS\nSoup $4")
        assert result.confidence == pytest.approx(0.85)

    def test_unreadable_pdf(self, reader, monkeypatch):
        def broken(stream):
            raise ValueError("no /Root object")

        monkeypatch.setattr(text_reader.pdfplumber, "open", broken)
        with pytest.raises(UndecodableInput):
            reader.extract(b"garbage", "application/pdf")


class TestTextBlocks:
    def test_blocks_carry_confidence(self):
        blocks = to_text_blocks(ExtractedText(text_boxes=("a", "b"), confidence=0.7))
        assert [(b.text, b.confidence) for b in blocks] == [("a", 0.7), ("b", 0.7)]

    def test_raw_text(self):
        assert ExtractedText(text_boxes=("a", "b"), confidence=1.0).raw_text == "a\n\nb"

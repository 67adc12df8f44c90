# menuscan/text_reader.py
"""
Text reader — turns an uploaded menu (PDF or image bytes) into text boxes
plus a text-quality confidence.

Public API:
- TextReader().extract(file_bytes, mime_type) -> ExtractedText
- to_text_blocks(extracted) -> list[RawTextBlock]
- health() -> tesseract / poppler availability

PDFs: pdfplumber text layer, one text box per non-empty page, confidence
0.95. Scanned PDFs (no text layer) are rasterized with pdf2image and OCR'd
like images. Images: Pillow decode + EXIF transpose → grayscale →
Tesseract image_to_data; confidence is the mean word confidence / 100.
"""

from __future__ import annotations

import io
import logging
import shutil
from typing import Any, Dict, List, Optional, Tuple

import pdfplumber
import pytesseract
from pdf2image import convert_from_bytes
from pdf2image.exceptions import PDFInfoNotInstalledError, PDFPageCountError, PDFSyntaxError
from PIL import Image, ImageOps, UnidentifiedImageError
from pytesseract import Output

from menuscan.config import PDF_TEXT_CONFIDENCE, Settings, load_settings
from menuscan.errors import TextEngineError, UndecodableInput, UnsupportedInputType
from menuscan.menu_types import ExtractedText, RawTextBlock

log = logging.getLogger(__name__)

PDF_MIME = "application/pdf"
RASTER_DPI = 300


def configure_tesseract(settings: Settings) -> None:
    if settings.tesseract_cmd:
        pytesseract.pytesseract.tesseract_cmd = settings.tesseract_cmd


def health(settings: Optional[Settings] = None) -> Dict[str, Any]:
    settings = settings or load_settings()
    configure_tesseract(settings)
    try:
        version: Optional[str] = str(pytesseract.get_tesseract_version())
    except (pytesseract.TesseractNotFoundError, OSError):
        version = None
    return {
        "tesseract": {
            "cmd": pytesseract.pytesseract.tesseract_cmd,
            "version": version,
            "found": version is not None,
        },
        "poppler": {
            "path": settings.poppler_path,
            "found": bool(settings.poppler_path or shutil.which("pdfinfo")),
        },
    }


# ---------------------------------------------------------------------------
# OCR helpers
# ---------------------------------------------------------------------------

def _ocr_image(im: Image.Image, settings: Settings) -> Tuple[str, List[float]]:
    """Return (recognized text, per-word confidences 0-100) for one image."""
    gray = ImageOps.exif_transpose(im).convert("L")
    try:
        data = pytesseract.image_to_data(
            gray,
            lang=settings.tesseract_lang,
            config=settings.tesseract_config,
            output_type=Output.DICT,
        )
    except pytesseract.TesseractNotFoundError as e:
        raise TextEngineError("Tesseract is not installed or not on PATH") from e
    except (pytesseract.TesseractError, RuntimeError) as e:
        raise TextEngineError(f"Tesseract failed: {e}") from e

    lines: Dict[Tuple[int, int, int], List[str]] = {}
    confs: List[float] = []
    for i, word in enumerate(data.get("text", [])):
        word = (word or "").strip()
        if not word:
            continue
        try:
            conf = float(data["conf"][i])
        except (KeyError, IndexError, TypeError, ValueError):
            conf = -1.0
        if conf < 0:
            continue
        key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
        lines.setdefault(key, []).append(word)
        confs.append(conf)

    text = "\n".join(" ".join(words) for _, words in sorted(lines.items()))
    return text, confs


def _mean_confidence(confs: List[float]) -> float:
    if not confs:
        return 0.0
    return max(0.0, min(1.0, sum(confs) / len(confs) / 100.0))


# ---------------------------------------------------------------------------
# Reader
# ---------------------------------------------------------------------------

class TextReader:
    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or load_settings()
        configure_tesseract(self.settings)

    def extract(self, file_bytes: bytes, mime_type: str) -> ExtractedText:
        mime = (mime_type or "").strip().lower()
        if mime == PDF_MIME:
            return self._extract_pdf(file_bytes)
        if mime.startswith("image/"):
            return self._extract_image(file_bytes)
        raise UnsupportedInputType(mime_type)

    def _extract_pdf(self, file_bytes: bytes) -> ExtractedText:
        try:
            with pdfplumber.open(io.BytesIO(file_bytes)) as pdf:
                pages = [(page.extract_text() or "").strip() for page in pdf.pages]
        except Exception as e:
            raise UndecodableInput(f"Failed to extract text from PDF: {e}") from e

        boxes = tuple(p for p in pages if p)
        if boxes:
            return ExtractedText(text_boxes=boxes, confidence=PDF_TEXT_CONFIDENCE)

        log.info("PDF has no text layer; falling back to OCR on %d page(s)", len(pages))
        return self._ocr_pdf(file_bytes)

    def _ocr_pdf(self, file_bytes: bytes) -> ExtractedText:
        try:
            images = convert_from_bytes(
                file_bytes, dpi=RASTER_DPI, poppler_path=self.settings.poppler_path,
            )
        except PDFInfoNotInstalledError as e:
            raise TextEngineError("Poppler is not installed or POPPLER_PATH is wrong") from e
        except (PDFPageCountError, PDFSyntaxError) as e:
            raise UndecodableInput(f"Failed to rasterize PDF: {e}") from e

        boxes: List[str] = []
        confs: List[float] = []
        for im in images:
            text, page_confs = _ocr_image(im, self.settings)
            if text.strip():
                boxes.append(text)
            confs.extend(page_confs)
        return ExtractedText(text_boxes=tuple(boxes), confidence=_mean_confidence(confs))

    def _extract_image(self, file_bytes: bytes) -> ExtractedText:
        try:
            im = Image.open(io.BytesIO(file_bytes))
            im.load()
        except (UnidentifiedImageError, OSError) as e:
            raise UndecodableInput(f"Failed to decode image: {e}") from e

        text, confs = _ocr_image(im, self.settings)
        boxes = (text,) if text.strip() else ()
        return ExtractedText(text_boxes=boxes, confidence=_mean_confidence(confs))


def to_text_blocks(extracted: ExtractedText) -> List[RawTextBlock]:
    return [RawTextBlock(text=box, confidence=extracted.confidence) for box in extracted.text_boxes]

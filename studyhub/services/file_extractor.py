"""Text extraction from uploaded study materials."""

import asyncio
import csv
import io
import logging
import re
import zipfile
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

import docx
import openpyxl
import pytesseract
from PIL import Image

from studyhub.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
PPTX_MIME = "application/vnd.openxmlformats-officedocument.presentationml.presentation"
XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
LEGACY_DOC_MIME = "application/msword"
PDF_MIME = "application/pdf"

MAX_SLIDES = 50
MIN_OCR_CHARS = 10
TRUNCATION_NOTICE = "\n\n[Content truncated due to length - this is the first 500KB of text]"

_SLIDE_TEXT_RE = re.compile(r"<a:t[^>]*>([^<]+)<")


class ExtractionError(Exception):
    """The file could not be turned into text."""


class FileKind(str, Enum):
    DOCX = "docx"
    PPTX = "pptx"
    XLSX = "xlsx"
    TEXT = "text"
    CSV = "csv"
    IMAGE = "image"
    PDF = "pdf"
    LEGACY_DOC = "legacy_doc"
    UNSUPPORTED = "unsupported"


_EXACT_MIME_KINDS = {
    PDF_MIME: FileKind.PDF,
    DOCX_MIME: FileKind.DOCX,
    LEGACY_DOC_MIME: FileKind.LEGACY_DOC,
    PPTX_MIME: FileKind.PPTX,
    XLSX_MIME: FileKind.XLSX,
}


def classify(mime_type: str, file_name: str) -> FileKind:
    """Pick the extraction routine from the MIME type, falling back to the extension."""
    if mime_type in _EXACT_MIME_KINDS:
        return _EXACT_MIME_KINDS[mime_type]

    name = file_name.lower()
    if mime_type in ("text/plain", "text/markdown") or name.endswith((".txt", ".md")):
        return FileKind.TEXT
    if mime_type == "text/csv" or name.endswith(".csv"):
        return FileKind.CSV
    if mime_type.startswith("image/"):
        return FileKind.IMAGE
    return FileKind.UNSUPPORTED


@dataclass(frozen=True)
class ExtractionResult:
    content: str
    success: bool


class FileExtractor:
    """Service for extracting readable text from documents, spreadsheets, slides and images."""

    def __init__(self, max_chars: int | None = None):
        self.max_chars = max_chars or settings.extraction_max_chars
        self._handlers: dict[FileKind, Callable[[bytes, str, str], str]] = {
            FileKind.DOCX: self._extract_docx,
            FileKind.PPTX: self._extract_pptx,
            FileKind.XLSX: self._extract_xlsx,
            FileKind.TEXT: self._extract_text,
            FileKind.CSV: self._extract_csv,
            FileKind.IMAGE: self._extract_image,
            FileKind.PDF: self._pdf_disabled,
            FileKind.LEGACY_DOC: self._legacy_doc,
            FileKind.UNSUPPORTED: self._unsupported,
        }

    async def extract(self, data: bytes, mime_type: str, file_name: str) -> str:
        """
        Extract text content from a file.

        Args:
            data: Raw bytes of the file
            mime_type: Declared MIME type
            file_name: Original file name (used for extension fallback and headings)

        Returns:
            Extracted text, truncated to max_chars with a notice appended

        Raises:
            ExtractionError: If the file has no extractable content, is unsupported,
                or its parser fails partway through (corrupt archive members,
                malformed sheets)
        """
        kind = classify(mime_type, file_name)
        handler = self._handlers[kind]
        try:
            content = await asyncio.to_thread(handler, data, mime_type, file_name)
        except ExtractionError:
            raise
        except Exception as e:
            logger.exception("Parser failed on %s (%s)", file_name, kind.value)
            raise ExtractionError(f"Failed to extract content: {type(e).__name__}") from e
        if len(content) > self.max_chars:
            content = content[: self.max_chars] + TRUNCATION_NOTICE
        return content

    async def extract_or_fallback(self, data: bytes, mime_type: str, file_name: str) -> ExtractionResult:
        """Like extract, but failures become an explanatory message instead of an exception."""
        try:
            content = await self.extract(data, mime_type, file_name)
            return ExtractionResult(content=content, success=True)
        except ExtractionError as e:
            logger.warning("Extraction failed for %s (%s): %s", file_name, mime_type, e)
            return ExtractionResult(
                content=fallback_message(file_name, mime_type, str(e)),
                success=False,
            )

    # -------------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------------

    @staticmethod
    def _extract_docx(data: bytes, mime_type: str, file_name: str) -> str:
        try:
            document = docx.Document(io.BytesIO(data))
        except Exception as e:
            raise ExtractionError("Failed to read Word document") from e
        text = "\n".join(paragraph.text for paragraph in document.paragraphs)
        if not text.strip():
            raise ExtractionError("No text content found in Word document")
        return f'📝 Word Document Content from "{file_name}":\n\n{text}'

    @staticmethod
    def _extract_pptx(data: bytes, mime_type: str, file_name: str) -> str:
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as archive:
                members = set(archive.namelist())
                slide_texts = []
                for i in range(1, MAX_SLIDES + 1):
                    slide_path = f"ppt/slides/slide{i}.xml"
                    if slide_path not in members:
                        continue
                    slide_xml = archive.read(slide_path).decode("utf-8", errors="ignore")
                    slide_text = " ".join(_SLIDE_TEXT_RE.findall(slide_xml)).strip()
                    if slide_text:
                        slide_texts.append(f"Slide {i}: {slide_text}")
        except zipfile.BadZipFile as e:
            raise ExtractionError("Failed to extract PowerPoint content") from e

        if not slide_texts:
            raise ExtractionError("Failed to extract PowerPoint content")
        joined = "\n\n".join(slide_texts)
        return f'📊 PowerPoint Content from "{file_name}":\n\n{joined}'

    @staticmethod
    def _extract_xlsx(data: bytes, mime_type: str, file_name: str) -> str:
        try:
            workbook = openpyxl.load_workbook(io.BytesIO(data), read_only=True, data_only=True)
        except Exception as e:
            raise ExtractionError("Failed to read Excel file") from e

        sheets_text = ""
        try:
            for sheet in workbook.worksheets:
                buffer = io.StringIO()
                writer = csv.writer(buffer, lineterminator="\n")
                for row in sheet.iter_rows(values_only=True):
                    writer.writerow("" if value is None else value for value in row)
                sheet_csv = buffer.getvalue()
                # Rows of empty cells render as bare commas
                if sheet_csv.replace(",", "").strip():
                    sheets_text += f'\n\nSheet "{sheet.title}":\n{sheet_csv}'
        finally:
            workbook.close()

        if not sheets_text.strip():
            raise ExtractionError("No data found in Excel file")
        return f'📊 Excel Content from "{file_name}":{sheets_text}'

    @staticmethod
    def _extract_text(data: bytes, mime_type: str, file_name: str) -> str:
        text = data.decode("utf-8", errors="replace")
        if not text.strip():
            raise ExtractionError("Text file is empty")
        return f'📄 Text Content from "{file_name}":\n\n{text}'

    @staticmethod
    def _extract_csv(data: bytes, mime_type: str, file_name: str) -> str:
        text = data.decode("utf-8", errors="replace")
        if not text.strip():
            raise ExtractionError("CSV file is empty")
        return f'📊 CSV Data from "{file_name}":\n\n{text}'

    @staticmethod
    def _extract_image(data: bytes, mime_type: str, file_name: str) -> str:
        # OCR problems are reported as text, never as an extraction failure
        try:
            with Image.open(io.BytesIO(data)) as image:
                text = pytesseract.image_to_string(image, lang="eng")
        except Exception:
            logger.exception("OCR failed for %s", file_name)
            return (
                f'🖼️ Image "{file_name}" uploaded.\n\n'
                "OCR processing failed. Please describe what you see in the image "
                "or what questions you have about it."
            )

        text = text.strip()
        if len(text) > MIN_OCR_CHARS:
            return f'🖼️ Text extracted from image "{file_name}":\n\n{text}'
        return (
            f'🖼️ Image "{file_name}" uploaded.\n\n'
            "No readable text detected in this image. Please describe what you see "
            "in the image or what questions you have about it."
        )

    @staticmethod
    def _pdf_disabled(data: bytes, mime_type: str, file_name: str) -> str:
        return (
            f'📄 PDF File: "{file_name}"\n\n'
            "PDF processing has been disabled due to technical limitations. Please:\n\n"
            "1. Convert your PDF to a Word document (.docx) for full text extraction\n"
            "2. Copy and paste the text content you want to discuss\n"
            "3. Upload individual pages as images if you need specific sections analyzed\n"
            "4. Describe the key points from the PDF you'd like help with"
        )

    @staticmethod
    def _legacy_doc(data: bytes, mime_type: str, file_name: str) -> str:
        return (
            f'📝 Word Document: "{file_name}"\n\n'
            "Legacy .doc format detected. Please save as .docx for full text extraction, "
            "or copy and paste the content you want to discuss."
        )

    @staticmethod
    def _unsupported(data: bytes, mime_type: str, file_name: str) -> str:
        raise ExtractionError(f"Unsupported file type: {mime_type}")


def fallback_message(file_name: str, mime_type: str, error: str) -> str:
    return (
        f'❌ Could not extract content from "{file_name}"\n\n'
        f"File type: {mime_type}\n"
        f"Error: {error}\n\n"
        "Please try:\n"
        "1. Converting to a supported format (.docx, .txt, .md)\n"
        "2. Copy-pasting the content you want to discuss\n"
        "3. Describing the key points from the document"
    )


# Singleton instance
file_extractor = FileExtractor()

"""Tests for the PDF text layer and vision OCR collaborators"""

import fitz
import pytest

from bureau.document_parser import DocumentParser
from bureau.exceptions import OCRError
from bureau.vision_parser import VisionOCR


@pytest.fixture
def report_pdf(tmp_path):
    """one page PDF with a real text layer"""
    path = tmp_path / "report.pdf"
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), "Experian Credit Score 750")
    page.insert_text((72, 100), "Total Current Bal. amt 40,88,632")
    doc.save(str(path))
    doc.close()
    return path


def test_native_text_layer(report_pdf):
    text = DocumentParser().extract_native_text(str(report_pdf))

    assert "Experian" in text
    assert "750" in text
    assert "40,88,632" in text


def test_vision_ocr_transcribes_pages(report_pdf, fake_openai_factory):
    client = fake_openai_factory("```\nExperian Credit Score 750\n```")
    ocr = VisionOCR(client, model="gpt-4o", dpi=72)

    text = ocr.recognize_text(report_pdf)

    assert text == "Experian Credit Score 750"
    call = client.completions.calls[0]
    assert call["model"] == "gpt-4o"
    image_part = call["messages"][0]["content"][1]
    assert image_part["image_url"]["url"].startswith("data:image/png;base64,")


def test_vision_ocr_missing_file(tmp_path, fake_openai_factory):
    ocr = VisionOCR(fake_openai_factory("text"))

    with pytest.raises(OCRError):
        ocr.recognize_text(tmp_path / "missing.pdf")


def test_vision_ocr_model_error(report_pdf, fake_openai_factory):
    ocr = VisionOCR(fake_openai_factory(error=RuntimeError("rate limited")), dpi=72)

    with pytest.raises(OCRError, match="page 1"):
        ocr.recognize_text(report_pdf)

import base64
import io
from pathlib import Path
from typing import List

import fitz  # PyMuPDF - no poppler needed
from loguru import logger
from openai import OpenAI
from PIL import Image

from bureau.exceptions import OCRError


TRANSCRIBE_PROMPT = """You are reading one page of an Indian credit bureau report (Experian, CIBIL, CRIF or Equifax).

Transcribe ALL text on the page exactly as printed, top to bottom.

RULES:
1. Keep every number exactly as printed, including commas (e.g. 7,50,000)
2. Write each table row on its own line
3. Separate table columns with at least three spaces
4. Do not summarise, translate or add anything
5. Return plain text only, no markdown"""


class VisionOCR:
    """
    OCR fallback for scanned reports

    renders each page with PyMuPDF and asks a vision model to transcribe it
    """

    def __init__(self, openai_client: OpenAI, model: str = "gpt-4o", dpi: int = 200):
        self.client = openai_client
        self.model = model
        self.dpi = dpi
        logger.info(f"VisionOCR initialized with model: {model}")

    def pdf_to_images(self, pdf_path: str) -> List[Image.Image]:
        logger.info(f"Converting PDF to images: {Path(pdf_path).name} (DPI: {self.dpi})")

        images = []
        doc = fitz.open(pdf_path)
        try:
            # 72 DPI is the PDF default
            zoom = self.dpi / 72
            mat = fitz.Matrix(zoom, zoom)
            for page in doc:
                pix = page.get_pixmap(matrix=mat)
                images.append(Image.open(io.BytesIO(pix.tobytes("png"))))
        finally:
            doc.close()

        logger.success(f"Converted {len(images)} pages to images")
        return images

    def image_to_base64(self, image: Image.Image) -> str:
        buffered = io.BytesIO()
        image.save(buffered, format="PNG")
        return base64.b64encode(buffered.getvalue()).decode()

    def transcribe_page(self, image: Image.Image, page_num: int) -> str:
        img_base64 = self.image_to_base64(image)

        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": TRANSCRIBE_PROMPT},
                        {
                            "type": "image_url",
                            "image_url": {
                                "url": f"data:image/png;base64,{img_base64}",
                                "detail": "high"
                            }
                        }
                    ]
                }
            ],
            max_tokens=4000,
            temperature=0.0
        )

        text = (response.choices[0].message.content or "").strip()

        # strip markdown fences if the model added them anyway
        if text.startswith("```"):
            text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.endswith("```"):
            text = text[:-3]

        logger.debug(f"Page {page_num}: {len(text)} chars transcribed")
        return text.strip()

    def recognize_text(self, pdf_path) -> str:
        """OCR text of the whole document, raises OCRError on failure"""
        try:
            images = self.pdf_to_images(str(pdf_path))
        except Exception as e:
            raise OCRError(f"Could not render {Path(str(pdf_path)).name}: {str(e)}") from e

        if not images:
            raise OCRError("Document has no pages to recognize")

        pages = []
        for page_num, image in enumerate(images, start=1):
            logger.info(f"OCR page {page_num}/{len(images)}...")
            try:
                pages.append(self.transcribe_page(image, page_num))
            except Exception as e:
                raise OCRError(f"Vision transcription failed on page {page_num}: {str(e)}") from e

        text = "\n\n".join(pages)
        logger.success(f"OCR complete: {len(text)} chars from {len(images)} pages")
        return text

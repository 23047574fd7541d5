import pdfplumber
from pathlib import Path
from loguru import logger


class DocumentParser:
    # native text layer of a bureau PDF

    def __init__(self, layout=True):
        # layout mode keeps the wide gaps that separate table columns
        self.layout = layout
        logger.info(f"Parser initialized - layout={layout}")

    def extract_native_text(self, pdf_path):
        """
        text layer of every page joined with blank lines

        scanned reports come back short or empty, the pipeline decides
        whether that is enough
        """
        logger.info(f"Parsing: {Path(pdf_path).name}")

        pages = []
        with pdfplumber.open(pdf_path) as pdf:
            for page_num, page in enumerate(pdf.pages, start=1):
                try:
                    page_text = page.extract_text(layout=self.layout) or ""
                except Exception as e:
                    logger.error(f"Error on page {page_num}: {str(e)}")
                    continue  # skip problematic pages

                pages.append(page_text.replace("\r", ""))
                logger.debug(f"Page {page_num}: {len(page_text)} chars")

        text = "\n\n".join(pages)
        logger.success(f"Parsed {len(pages)} pages, {len(text.strip())} chars of text")
        return text

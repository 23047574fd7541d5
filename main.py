import uuid

from fastapi import FastAPI, File, UploadFile, HTTPException
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from openai import OpenAI

from config import Config
from bureau.document_parser import DocumentParser
from bureau.interpreter import OpenAIReportInterpreter
from bureau.pipeline import BureauReportPipeline
from bureau.vision_parser import VisionOCR


# setup FastAPI
app = FastAPI(
    title=Config.API_TITLE,
    version=Config.API_VERSION,
    description="""
## Bureau Report Parser

Turns Indian credit bureau reports (Experian, CIBIL, CRIF, Equifax) into one structured record:
- credit score, enquiry count and a DPD summary
- every loan / credit card with its account details
- aggregate sanctioned / outstanding totals

Printed summary totals win over row sums, which win over the AI reading.
    """,
    docs_url="/docs",
    redoc_url="/redoc",
)

# add CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# initialize services
try:
    openai_client = None
    if Config.OPENAI_API_KEY:
        openai_client = OpenAI(api_key=Config.OPENAI_API_KEY)

    document_parser = DocumentParser()

    vision_ocr = None
    if openai_client and Config.USE_OCR:
        vision_ocr = VisionOCR(
            openai_client=openai_client,
            model=Config.OPENAI_VISION_MODEL,
            dpi=Config.VISION_DPI
        )

    report_interpreter = None
    if openai_client and Config.USE_INTERPRETER:
        report_interpreter = OpenAIReportInterpreter(
            openai_client=openai_client,
            model=Config.OPENAI_MODEL,
            temperature=Config.OPENAI_TEMPERATURE,
            max_chars=Config.MAX_INTERPRETER_CHARS
        )

    pipeline = BureauReportPipeline(
        text_source=document_parser,
        recognizer=vision_ocr,
        interpreter=report_interpreter
    )

    logger.success("All services initialized")

except Exception as e:
    logger.error(f"Failed to init services: {str(e)}")
    openai_client = None
    document_parser = None
    vision_ocr = None
    report_interpreter = None
    pipeline = None


@app.on_event("startup")
async def startup_event():
    """startup handler"""
    logger.info("=" * 80)
    logger.info(f"Bureau Report Parser v{Config.API_VERSION} - Starting")
    logger.info(f"OCR: {'on' if vision_ocr else 'off'}, interpreter: {'on' if report_interpreter else 'off'}")
    logger.info("=" * 80)

    if not Config.validate_configuration():
        logger.warning("Config validation reported issues")
    else:
        logger.success("Config validated")


@app.get("/")
def root():
    """root endpoint"""
    return {
        "message": "Bureau Parser API Working",
        "version": Config.API_VERSION,
        "endpoints": {
            "main": "POST /analyze",
            "health": "GET /health",
            "docs": "GET /docs",
        },
    }


@app.get("/health")
def health_check():
    """health check"""
    services = {
        "pipeline": pipeline is not None,
        "document_parser": document_parser is not None,
        "ocr": vision_ocr is not None,
        "interpreter": report_interpreter is not None,
    }

    # OCR and interpreter are optional, the pipeline is not
    if not services["pipeline"]:
        status = "unhealthy"
    elif all(services.values()):
        status = "healthy"
    else:
        status = "degraded"

    return {
        "status": status,
        "services": services,
        "configuration": {
            "min_native_text_chars": Config.MIN_NATIVE_TEXT_CHARS,
            "min_readable_chars": Config.MIN_READABLE_CHARS,
        },
    }


async def save_upload(upload: UploadFile):
    """store the upload under a unique name, returns its path"""
    Config.ensure_directories()
    path = Config.UPLOADS_DIR / f"{uuid.uuid4().hex}.pdf"
    content = await upload.read()
    with open(path, "wb") as f:
        f.write(content)
    logger.info(f"Saved upload {upload.filename} ({len(content)} bytes)")
    return path


@app.post(
    "/analyze",
    summary="Parse a bureau report PDF",
    tags=["Extraction"]
)
async def analyze(pdf: UploadFile = File(...)):
    """extract the structured record from one bureau report"""
    logger.info("=" * 80)
    logger.info(f"NEW REQUEST - /analyze: {pdf.filename}")
    logger.info("=" * 80)

    if pipeline is None:
        raise HTTPException(status_code=500, detail="Services not initialized.")

    if not (pdf.filename or "").lower().endswith(".pdf"):
        raise HTTPException(status_code=400, detail="Please upload the report as a PDF file.")

    path = None
    try:
        path = await save_upload(pdf)
        outcome = await run_in_threadpool(pipeline.process_document, str(path))

    except Exception as e:
        logger.error(f"Error: {str(e)}")
        raise HTTPException(status_code=500, detail="Error parsing PDF")

    finally:
        # uploads are never kept
        if path is not None and path.exists():
            path.unlink()

    if not outcome.success:
        logger.warning(f"Report rejected: {outcome.failure.kind}")
        return JSONResponse(
            status_code=422,
            content={
                "success": False,
                "message": outcome.failure.message,
                "remediation": outcome.failure.remediation,
                "warnings": outcome.warnings,
            }
        )

    logger.success("REQUEST COMPLETED")
    return {
        "success": True,
        "message": "PDF parsed successfully",
        "result": outcome.result.to_dict(),
        "warnings": outcome.warnings,
        "sources": outcome.sources,
    }


if __name__ == "__main__":
    import uvicorn

    logger.info("Starting server...")
    uvicorn.run(
        app,
        host=Config.API_HOST,
        port=Config.API_PORT,
        log_level="info"
    )

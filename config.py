import os
from pathlib import Path
from loguru import logger
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name, default):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    """app configuration"""

    # API stuff
    API_TITLE = "Bureau Report Parser"
    API_VERSION = "1.0.0"
    API_HOST = os.getenv("API_HOST", "127.0.0.1")
    API_PORT = int(os.getenv("API_PORT", "5000"))

    # OpenAI config
    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")

    # model settings
    OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")  # report interpreter
    OPENAI_VISION_MODEL = os.getenv("OPENAI_VISION_MODEL", "gpt-4o")  # OCR fallback
    OPENAI_TEMPERATURE = 0.0  # deterministic extraction
    MAX_INTERPRETER_CHARS = int(os.getenv("MAX_INTERPRETER_CHARS", "60000"))

    # collaborators
    USE_OCR = _env_flag("USE_OCR", True)
    USE_INTERPRETER = _env_flag("USE_INTERPRETER", True)
    VISION_DPI = 200

    # sufficiency gate - keep these in line with older deployments
    MIN_NATIVE_TEXT_CHARS = int(os.getenv("MIN_NATIVE_TEXT_CHARS", "300"))
    MIN_READABLE_CHARS = int(os.getenv("MIN_READABLE_CHARS", "100"))

    # rule extractors
    SCORE_TOP_WINDOW = 2000  # chars considered "top of the report"
    DPD_LOOKAHEAD = 300

    # directories
    BASE_DIR = Path(__file__).parent
    STORAGE_DIR = BASE_DIR / "storage"
    UPLOADS_DIR = STORAGE_DIR / "uploads"

    @classmethod
    def ensure_directories(cls):
        """create necessary directories"""
        for directory in [cls.STORAGE_DIR, cls.UPLOADS_DIR]:
            directory.mkdir(parents=True, exist_ok=True)

    @classmethod
    def validate_configuration(cls):
        """validate config and check for issues"""
        issues = []

        # check API key
        if not cls.OPENAI_API_KEY and (cls.USE_OCR or cls.USE_INTERPRETER):
            issues.append("OPENAI_API_KEY not set, OCR and interpreter will be skipped")

        if cls.MIN_READABLE_CHARS > cls.MIN_NATIVE_TEXT_CHARS:
            issues.append(
                f"MIN_READABLE_CHARS ({cls.MIN_READABLE_CHARS}) is above "
                f"MIN_NATIVE_TEXT_CHARS ({cls.MIN_NATIVE_TEXT_CHARS})"
            )

        # make sure directories exist
        cls.ensure_directories()

        # log any issues
        for issue in issues:
            logger.error(f"Config issue: {issue}")

        return len(issues) == 0

"""Configuration module for the Foresight Appendix pipeline."""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# API Configuration
LLM_PROVIDER = os.getenv("LLM_PROVIDER", "gemini")  # gemini | anthropic
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")

# Tier -> model mapping. "paid" is tried first, "free" is the one-shot fallback.
PAID_MODEL = os.getenv("PAID_MODEL", "gemini-2.5-pro")
FREE_MODEL = os.getenv("FREE_MODEL", "gemini-2.5-flash")
ANTHROPIC_PAID_MODEL = os.getenv("ANTHROPIC_PAID_MODEL", "claude-opus-4-5-20251101")
ANTHROPIC_FREE_MODEL = os.getenv("ANTHROPIC_FREE_MODEL", "claude-haiku-4-5")

LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.7"))
LLM_MAX_OUTPUT_TOKENS = int(os.getenv("LLM_MAX_OUTPUT_TOKENS", "32768"))

# Upload limits
MAX_UPLOAD_MB = int(os.getenv("MAX_UPLOAD_MB", "100"))
MAX_UPLOAD_BYTES = MAX_UPLOAD_MB * 1024 * 1024

# Content reduction
MAX_CONTENT_CHARS = int(os.getenv("MAX_CONTENT_CHARS", "1000000"))
BIBLIOGRAPHY_THRESHOLD = 0.6
INDEX_THRESHOLD = 0.8
TRUNCATION_HEAD_SHARE = 0.55
TRUNCATION_TAIL_SHARE = 0.45
PAGE_SNAP_WINDOW = 0.2

# Reference text embedded in each appendix prompt
GENERATION_CONTEXT_CHARS = int(os.getenv("GENERATION_CONTEXT_CHARS", "50000"))

# Generation settings
DEFAULT_FORECAST_YEARS = 15
MIN_FORECAST_YEARS = 5
MAX_FORECAST_YEARS = 30
WORD_COUNT_OPTIONS = ("1500-2000", "2500-3500", "4000-5000")
DEFAULT_WORD_COUNT_OPTION = "2500-3500"

# Project files
PROJECT_FILE_VERSION = "1.0"

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Output Paths
OUTPUT_DIR = Path(os.getenv("OUTPUT_DIR", "./output"))
PROJECTS_DIR = OUTPUT_DIR / "projects"
EXPORTS_DIR = OUTPUT_DIR / "exports"

# Ensure output directories exist
PROJECTS_DIR.mkdir(parents=True, exist_ok=True)
EXPORTS_DIR.mkdir(parents=True, exist_ok=True)

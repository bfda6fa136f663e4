"""
Configuration for CanLabeler.

Values come from the environment (a .env file next to the app is loaded
first). The record store defaults to Airtable; RECORD_BACKEND=memory runs
the labeler against an in-process store for bench tests and demos.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file early so environment variables are available for Config class
load_dotenv(override=True)

# Base directory (where this file lives)
BASE_DIR = Path(__file__).resolve().parent


def _env_float(name: str, default: float) -> float:
    return float(os.environ.get(name, str(default)))


def _env_int(name: str, default: int) -> int:
    return int(os.environ.get(name, str(default)))


class Config:
    """Default configuration for the Flask application."""

    # Flask settings
    SECRET_KEY = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    ENVIRONMENT = os.environ.get("FLASK_ENV", "development")
    DEBUG = os.environ.get("FLASK_DEBUG", "1") == "1"
    TESTING = False

    # ==========================================================================
    # Record store
    # ==========================================================================
    # "airtable" - production base (catalogs, counter, print log)
    # "memory"   - in-process store, optionally seeded from MEMORY_SEED_FILE
    RECORD_BACKEND = os.environ.get("RECORD_BACKEND", "airtable")
    MEMORY_SEED_FILE = os.environ.get("MEMORY_SEED_FILE", "")

    AIRTABLE_API_KEY = os.environ.get("AIRTABLE_API_KEY", "")
    AIRTABLE_BASE_ID = os.environ.get("AIRTABLE_BASE_ID", "")
    AIRTABLE_COUNTER_TABLE = os.environ.get("AIRTABLE_COUNTER_TABLE", "contadores")
    AIRTABLE_PRODUCT_TABLE = os.environ.get("AIRTABLE_PRODUCT_TABLE", "productos")
    AIRTABLE_BRAND_TABLE = os.environ.get("AIRTABLE_BRAND_TABLE", "marcas")
    AIRTABLE_PRINT_TABLE = os.environ.get("AIRTABLE_PRINT_TABLE", "impresiones")
    AIRTABLE_TIMEOUT_SECONDS = _env_float("AIRTABLE_TIMEOUT_SECONDS", 10.0)

    # ==========================================================================
    # Devices
    # ==========================================================================
    SCALE_PORT = os.environ.get("SCALE_PORT", "")
    SCALE_BAUDRATE = _env_int("SCALE_BAUDRATE", 9600)

    # "network" - raw TCP to PRINTER_HOST:PRINTER_PORT
    # "device"  - write to PRINTER_DEVICE (e.g. /dev/usb/lp0)
    PRINTER_MODE = os.environ.get("PRINTER_MODE", "network")
    PRINTER_HOST = os.environ.get("PRINTER_HOST", "")
    PRINTER_PORT = _env_int("PRINTER_PORT", 9100)
    PRINTER_DEVICE = os.environ.get("PRINTER_DEVICE", "/dev/usb/lp0")
    PRINTER_TIMEOUT_SECONDS = _env_float("PRINTER_TIMEOUT_SECONDS", 5.0)

    # ==========================================================================
    # Workflow
    # ==========================================================================
    SHELF_LIFE_YEARS = _env_int("SHELF_LIFE_YEARS", 2)
    LOAD_TIMEOUT_SECONDS = _env_float("LOAD_TIMEOUT_SECONDS", 30.0)
    # Load catalogs at startup; otherwise the first /api/session/load does it
    LOAD_ON_STARTUP = os.environ.get("LOAD_ON_STARTUP", "1") == "1"

    # ==========================================================================
    # Logging
    # ==========================================================================
    # File logs are written in production only; defaults to ./logs
    LOG_DIR = os.environ.get("LOG_DIR", "")


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    TESTING = False
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    """Testing configuration."""
    ENVIRONMENT = "testing"
    DEBUG = False
    TESTING = True
    RECORD_BACKEND = "memory"
    MEMORY_SEED_FILE = ""
    SCALE_PORT = ""
    PRINTER_HOST = ""
    LOAD_ON_STARTUP = False

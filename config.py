"""
GDPR Compliance Checker Configuration
"""
import os


class Config:
    """Base configuration"""
    # Flask
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-change-in-production")

    # Server
    PORT = int(os.environ.get("PORT", "5000"))
    CLIENT_URL = os.environ.get("CLIENT_URL", "http://localhost:3000")
    API_PREFIX = os.environ.get("API_PREFIX", "/api")
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Uploads
    MAX_UPLOAD_BYTES = 10 * 1024 * 1024  # 10MB per file
    # Request body limit; leaves room for multipart framing around a full-size file
    MAX_CONTENT_LENGTH = MAX_UPLOAD_BYTES + 64 * 1024
    MIN_CONTENT_CHARS = 100
    MAX_CONTENT_CHARS = 50000

    # Storage
    STORAGE_BACKEND = os.environ.get("STORAGE_BACKEND", "memory")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///gdpr_checker.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}

    # Fix Render's postgres:// URL
    if SQLALCHEMY_DATABASE_URI.startswith("postgres://"):
        SQLALCHEMY_DATABASE_URI = SQLALCHEMY_DATABASE_URI.replace("postgres://", "postgresql://", 1)

    # Background analysis
    ANALYSIS_WORKERS = int(os.environ.get("ANALYSIS_WORKERS", "4"))

    # IO Intelligence (OpenAI-compatible)
    IO_INTELLIGENCE_API_KEY = os.environ.get("IO_INTELLIGENCE_API_KEY", "")
    IO_INTELLIGENCE_BASE_URL = os.environ.get(
        "IO_INTELLIGENCE_BASE_URL", "https://api.intelligence.io.solutions/api/v1/"
    )
    IO_INTELLIGENCE_MODEL = os.environ.get("IO_INTELLIGENCE_MODEL", "meta-llama/Llama-3.3-70B-Instruct")
    LLM_TIMEOUT_SECONDS = float(os.environ.get("LLM_TIMEOUT_SECONDS", "120"))

    # App Version
    APP_VERSION = os.environ.get("APP_VERSION", "1.0.0")


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    TESTING = False


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    TESTING = False


class TestingConfig(Config):
    """Testing configuration"""
    DEBUG = True
    TESTING = True
    STORAGE_BACKEND = "memory"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    IO_INTELLIGENCE_API_KEY = ""
    ANALYSIS_WORKERS = 2


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig,
}

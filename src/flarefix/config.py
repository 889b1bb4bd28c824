"""Configuration management for Flare Fixer."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Garbled-text heuristic
    min_readability_ratio: float = 0.90
    max_symbol_ratio: float = 0.10
    min_word_count: int = 5

    # Rendering (1.0 = native media-box size)
    render_scale: float = 1.0

    # OCR
    ocr_language: str = "eng"
    ocr_psm: int = 3
    ocr_oem: int = 3
    ocr_preprocess: bool = False
    ocr_workers: int = 1

    # Reconstruction
    reconstruction_strategy: str = "fresh_page_with_laid_out_text"
    font_name: str = "helv"
    font_size: float = 12.0
    text_margin: float = 100.0

    # Logging
    log_level: str = "INFO"

    class Config:
        env_prefix = "FLAREFIX_"
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()

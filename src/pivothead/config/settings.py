"""Engine settings loaded from environment variables."""

import logging

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "env_prefix": "PIVOTHEAD_"}

    # Pagination
    default_page_size: int = 10
    max_page_size: int = 500

    # Row / column geometry
    default_row_height: int = 40
    min_row_height: int = 20
    min_column_width: int = 20

    # Virtual windowing
    scroll_buffer: int = 10

    # Sorting
    max_sort_directives: int = 3

    # Field discovery
    field_sample_size: int = 200

    # Display
    empty_value_placeholder: str = "-"

    # Ingestion
    remote_timeout_seconds: float = 30.0

    # Logging
    log_level: str = "INFO"


settings = Settings()


def configure_logging(level: str | None = None) -> None:
    """Apply *level* (or ``settings.log_level``) to the ``pivothead`` loggers."""
    logging.getLogger("pivothead").setLevel((level or settings.log_level).upper())

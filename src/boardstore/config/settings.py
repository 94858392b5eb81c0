"""Application settings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    data_dir: Path = Field(
        default=Path(".boardstore"),
        description="Directory holding the persisted boards, columns and cards",
    )

    verbose: int = Field(
        default=0,
        description="Verbosity level (0=off, 1=INFO, 2+=DEBUG)",
    )

    log_file: Path | None = Field(
        default=None,
        description="Optional path to write logs to file",
    )

    title_max_length: int = Field(default=100, ge=1)
    description_max_length: int = Field(default=1000, ge=0)
    max_labels: int = Field(
        default=20,
        ge=0,
        description="Maximum number of labels kept on a card",
    )
    label_max_length: int = Field(default=50, ge=1)

    model_config = {
        "env_prefix": "BOARDSTORE_",
    }

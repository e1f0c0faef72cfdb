"""Configuration management using Pydantic settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Library settings loaded from SHAPELAYER_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SHAPELAYER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging (applied by the CLI; the library never touches sinks)
    log_level: str = "INFO"

    # Attribute file text codec for field names and C/M values
    dbf_encoding: str = "latin-1"

    # Three-point circles are rejected when the sine of the angle at the first
    # point falls to this or below; independent of coordinate scale
    collinear_tolerance: float = 1e-10

    # Default segment count for Circle.approximation_points()
    circle_segments: int = 36

    # Case-insensitive substrings tried in order when picking a label column
    label_field_patterns: list[str] = [
        "name", "label", "title", "id", "code", "desc", "type",
    ]

    # Also demand the .shx index next to the .shp/.dbf pair
    require_index_file: bool = False


settings = Settings()

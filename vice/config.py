from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    api_key: str | None = None
    log_level: str = "INFO"

    # Document defaults
    default_version: str = "1.0.0"  # version written into freshly created documents
    heading_prefix: str = "# "  # checklist items starting with this are headings

    # When False, load_schema/load_checklists never report generated IDs as a change
    persist_generated_ids: bool = True

    model_config = {"env_file": ".env", "env_prefix": "VICE_", "extra": "ignore"}


settings = Settings()

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional

class Settings(BaseSettings):
    aws_region: str = Field("us-east-1")
    aws_endpoint_url: Optional[str] = Field(None)
    # Public hostname that replaces aws_endpoint_url in presigned URLs
    external_endpoint: Optional[str] = Field(None)
    aws_access_key_id: str = Field("test")
    aws_secret_access_key: str = Field("test")

    photos_bucket: str = Field("photos")
    metadata_bucket: str = Field("metadata")

    # When set, image URLs are built as {public_base_url}/{bucket}/{key}?{access_token}
    # instead of being presigned.
    public_base_url: Optional[str] = Field(None)
    access_token: Optional[str] = Field(None)
    presign_expire_seconds: int = Field(604800)

    serialize_mutations: bool = Field(True)

    app_title: str = Field("PhotoShare")
    host: str = Field("0.0.0.0")
    port: int = Field(8080)
    log_level: str = Field("INFO")
    static_dir: str = Field("public")

    model_config = SettingsConfigDict(env_file=".env", extra="allow")

settings = Settings()

"""Pydantic schemas for API request/response."""

from pydantic import BaseModel, StrictStr, field_validator, model_validator


class MetadataRequest(BaseModel):
    """Request body for POST /metadata."""

    url: StrictStr

    @field_validator("url")
    @classmethod
    def require_url(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("URL is required")
        return normalized


class GenerateRequest(BaseModel):
    """Request body for POST /generate. At least one of url/prompt is required."""

    url: StrictStr | None = None
    prompt: StrictStr | None = None

    @field_validator("url", "prompt")
    @classmethod
    def blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None

    @model_validator(mode="after")
    def require_url_or_prompt(self) -> "GenerateRequest":
        if not self.url and not self.prompt:
            raise ValueError("URL or prompt is required")
        return self


class ErrorDetail(BaseModel):
    message: str
    code: str


class ErrorResponse(BaseModel):
    """Uniform error envelope returned for every failure."""

    error: ErrorDetail

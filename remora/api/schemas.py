"""
Request and response models for the memory HTTP API.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from ..core.config import DEFAULT_TOP_K


class AddMemoryRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str
    agent_id: Optional[str] = None
    scope: Literal["global", "agent"]
    payload: str = Field(validation_alias=AliasChoices("payload", "encrypted_text"))
    embedding: List[float]
    embedding_model: Optional[str] = None

    @field_validator('user_id')
    @classmethod
    def user_id_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('user_id cannot be empty')
        return v

    @field_validator('embedding')
    @classmethod
    def embedding_must_not_be_empty(cls, v):
        if not v:
            raise ValueError('embedding must be number[]')
        return v


class AddMemoryResponse(BaseModel):
    memory_id: str


class SearchRequest(BaseModel):
    user_id: str
    agent_id: Optional[str] = None
    query_embedding: List[float]
    top_k: int = DEFAULT_TOP_K

    @field_validator('user_id')
    @classmethod
    def user_id_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('user_id required')
        return v

    @field_validator('query_embedding')
    @classmethod
    def query_embedding_must_not_be_empty(cls, v):
        if not v:
            raise ValueError('query_embedding must be number[]')
        return v


class AddTextMemoryRequest(BaseModel):
    user_id: str
    agent_id: Optional[str] = None
    scope: Literal["global", "agent"]
    text: str

    @field_validator('text')
    @classmethod
    def text_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('text cannot be empty')
        return v


class SearchTextRequest(BaseModel):
    user_id: str
    agent_id: Optional[str] = None
    query_text: str
    top_k: int = DEFAULT_TOP_K


class MemoryResult(BaseModel):
    memory_id: str
    payload: str
    scope: str
    agent_id: Optional[str] = None
    created_at: datetime
    embedding_model: Optional[str] = None


class SearchResponse(BaseModel):
    memories: List[MemoryResult]


class DeleteResponse(BaseModel):
    deleted: bool = True


class HealthResponse(BaseModel):
    status: str
    version: str
    db_health: bool
    memory_count: int
    indexed_count: int


class ValidationFieldError(BaseModel):
    field: str
    message: str


class ValidationErrorResponse(BaseModel):
    error_type: str = "VALIDATION_ERROR"
    message: str
    errors: List[ValidationFieldError] = []
    timestamp: datetime = Field(default_factory=datetime.now)


class ErrorResponse(BaseModel):
    error_type: str
    message: str
    timestamp: datetime = Field(default_factory=datetime.now)
    details: Optional[Dict[str, Any]] = None

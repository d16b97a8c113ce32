"""Shared plumbing for endpoint services"""
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

import structlog
from pydantic import BaseModel, TypeAdapter, ValidationError

from fieldvisit.api.client import ApiClient
from fieldvisit.api.executor import INVALID_RESPONSE_MESSAGE
from fieldvisit.exceptions import UnknownServerFailure
from fieldvisit.models import ResponseEnvelope

logger = structlog.get_logger(__name__)

TokenProvider = Callable[[], Optional[str]]
ModelT = TypeVar("ModelT", bound=BaseModel)


def clean_params(params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Drop empty query values, the backend treats them as filters."""
    if not params:
        return {}
    return {
        key: value
        for key, value in params.items()
        if value is not None and value != ""
    }


def _invalid_data(envelope: ResponseEnvelope, error: ValidationError) -> UnknownServerFailure:
    logger.warning("Response data does not match the expected record",
                   code=envelope.meta.code,
                   errors=error.error_count())
    return UnknownServerFailure(
        INVALID_RESPONSE_MESSAGE,
        code=envelope.meta.code,
        status=envelope.meta.status,
        data=envelope.data,
    )


def parse_data(model: Type[ModelT], envelope: ResponseEnvelope) -> ModelT:
    """Validate a single record, raising UnknownServerFailure when it is null or malformed."""
    try:
        return model.model_validate(envelope.data)
    except ValidationError as e:
        raise _invalid_data(envelope, e) from e


def parse_items(model: Type[ModelT], envelope: ResponseEnvelope) -> List[ModelT]:
    try:
        return TypeAdapter(List[model]).validate_python(envelope.data or [])
    except ValidationError as e:
        raise _invalid_data(envelope, e) from e


class BaseService:
    def __init__(self, api: ApiClient, token_provider: TokenProvider):
        self.api = api
        self.token_provider = token_provider

    @property
    def token(self) -> Optional[str]:
        return self.token_provider()

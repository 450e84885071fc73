"""
Shared request helpers for the API routers
"""
import json
from typing import Annotated, Type, TypeVar

from fastapi import Depends, Request
from pydantic import BaseModel, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.exceptions import InvalidInputError

DbSession = Annotated[AsyncSession, Depends(get_db)]

ModelT = TypeVar("ModelT", bound=BaseModel)


async def read_json_body(request: Request) -> dict:
    """Parse a JSON object body, turning empty/malformed bodies into 400s"""
    raw = await request.body()
    if not raw:
        raise InvalidInputError("Empty request body")
    try:
        body = json.loads(raw)
    except ValueError as e:
        raise InvalidInputError("Invalid JSON body", detail=str(e))
    if not isinstance(body, dict):
        raise InvalidInputError("Request body must be a JSON object")
    return body


def parse_payload(model: Type[ModelT], payload: dict) -> ModelT:
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        fields = ", ".join(".".join(str(part) for part in err["loc"]) for err in e.errors())
        raise InvalidInputError(f"Invalid value for: {fields}", detail=str(e))

"""
Response helper utilities for the API envelope, UUID conversions and model validation
"""
from typing import Any, Dict, List, Optional
import uuid
from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel


def convert_uuids_to_strings(obj: Any) -> Any:
    """
    Recursively convert UUID objects to strings in any data structure
    """
    if isinstance(obj, uuid.UUID):
        return str(obj)
    elif isinstance(obj, dict):
        return {key: convert_uuids_to_strings(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [convert_uuids_to_strings(item) for item in obj]
    elif hasattr(obj, '__table__'):
        # SQLAlchemy models: skip internal state
        return {
            key: convert_uuids_to_strings(value)
            for key, value in obj.__dict__.items()
            if not key.startswith('_')
        }
    else:
        return obj


def safe_model_validate(model_class: BaseModel, data: Any) -> BaseModel:
    """
    Safely validate a model by converting UUIDs to strings first
    """
    clean_data = convert_uuids_to_strings(data)
    return model_class.model_validate(clean_data)


def safe_model_validate_list(model_class: BaseModel, data_list: List[Any]) -> List[BaseModel]:
    return [safe_model_validate(model_class, item) for item in data_list]


def api_response(
    status_code: int = status.HTTP_200_OK,
    message: str = "",
    data: Any = None,
    error: Optional[str] = None
) -> JSONResponse:
    """
    Build the {statusCode, success, message, data} envelope used by every route
    """
    content: Dict[str, Any] = {
        "statusCode": status_code,
        "success": status_code < 400,
        "message": message,
    }
    if data is not None:
        if isinstance(data, BaseModel):
            data = data.model_dump(mode="json")
        content["data"] = jsonable_encoder(convert_uuids_to_strings(data))
    if error is not None:
        content["error"] = error
    return JSONResponse(status_code=status_code, content=content)


def account_to_dict(account) -> Dict[str, Any]:
    """Convert Account model to dict with string UUIDs"""
    return {
        'id': str(account.id),
        'name': account.name,
        'email': account.email,
        'phone_number': account.phone_number,
        'role': account.role,
        'is_phone_verified': account.is_phone_verified,
        'is_active': account.is_active,
        'has_shop_detail': account.has_shop_detail,
        'created_at': account.created_at,
        'updated_at': account.updated_at
    }


def category_to_dict(category) -> Dict[str, Any]:
    """Convert Category model to dict with string UUIDs"""
    return {
        'id': str(category.id),
        'name': category.name,
        'description': category.description,
        'created_at': category.created_at,
        'updated_at': category.updated_at
    }

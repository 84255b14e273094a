"""输入字段校验 -- pydantic 校验错误统一转换为 core ValidationError"""

from collections.abc import Mapping
from typing import Any, TypeVar

import pydantic
from pydantic import BaseModel

from .exceptions import ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


def validate_fields(model: type[ModelT], fields: ModelT | Mapping[str, Any]) -> ModelT:
    """把调用方字段解析为模型实例

    已经是模型实例时原样返回；否则按模型校验。

    Raises:
        ValidationError: 字段缺失或不合法（errors 保留 pydantic 错误明细）
    """
    if isinstance(fields, model):
        return fields
    if isinstance(fields, BaseModel):
        fields = fields.model_dump()
    try:
        return model.model_validate(dict(fields))
    except pydantic.ValidationError as e:
        errors = e.errors(include_url=False, include_context=False, include_input=False)
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", ())) or model.__name__
        raise ValidationError(
            f"Invalid {model.__name__}: {location}: {first.get('msg', 'invalid value')}",
            errors=errors,
        ) from e

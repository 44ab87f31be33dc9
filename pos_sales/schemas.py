"""Request schemas for the sales API, validated before any domain work starts."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, ValidationError as PydanticValidationError

from pos_sales.exceptions import ValidationError

# Largest id a BIGINT primary key can hold
MAX_ID = 2**63 - 1


class SaleItemIn(BaseModel):
    """One requested (product, quantity) pair."""
    id: int = Field(gt=0, le=MAX_ID, strict=True)
    quantity: int = Field(gt=0, strict=True)


class SaleCreateIn(BaseModel):
    """Body of POST /sales."""
    items: List[SaleItemIn] = Field(min_length=1)
    date: Optional[datetime] = None

    @field_validator('date', mode='before')
    @classmethod
    def parse_iso_date(cls, value):
        """Only ISO-8601 strings; numbers are not read as Unix timestamps."""
        if value is None or isinstance(value, datetime):
            return value
        if not isinstance(value, str):
            raise ValueError('sale date must be an ISO-8601 date-time string')
        if value.endswith('Z'):
            value = value[:-1] + '+00:00'
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            raise ValueError(f'{value!r} is not an ISO-8601 date-time')


def _format_errors(exc: PydanticValidationError) -> List[dict]:
    return [
        {'field': '.'.join(str(part) for part in err['loc']), 'message': err['msg']}
        for err in exc.errors()
    ]


def parse_sale_request(data) -> SaleCreateIn:
    """
    Validate a create-sale payload.

    Raises:
        ValidationError: body is not an object, items missing/empty/not a list,
            an entry without id or with a non-positive quantity, or a bad date.
    """
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')

    try:
        return SaleCreateIn.model_validate(data)
    except PydanticValidationError as e:
        errors = _format_errors(e)
        first = errors[0]
        if first['field'] == 'date':
            message = f"Invalid sale date: {first['message']}"
        else:
            message = (
                f"At least one product with an id and a quantity greater than 0 is required "
                f"({first['field']}: {first['message']})"
            )
        raise ValidationError(message, payload={'errors': errors}) from e

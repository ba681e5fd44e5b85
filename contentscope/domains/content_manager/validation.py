"""Input validation for content manager operations."""

from typing import Any, List, Union

from pydantic import BaseModel, Field, StrictInt, StrictStr, ValidationError

from contentscope.core.exceptions import ValidationException, unpack_validation_error


class BulkDeleteInput(BaseModel):
    """Body of a bulk delete request."""

    ids: List[Union[StrictInt, StrictStr]] = Field(..., min_length=1)


def validate_bulk_delete_input(body: Any) -> BulkDeleteInput:
    """Validate a bulk delete body.

    Raises:
        ValidationException: If ``ids`` is missing, empty or not a list of ids.
    """
    try:
        return BulkDeleteInput.model_validate(body)
    except ValidationError as e:
        raise ValidationException(unpack_validation_error(e)) from e

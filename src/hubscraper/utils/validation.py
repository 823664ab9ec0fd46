# src/hubscraper/utils/validation.py
# Pydantic models in types.py do the field-level validation; these helpers turn
# catalog/payload dicts into records and report failures as pipeline errors.

from typing import Any, Dict, Type, TypeVar
from pydantic import BaseModel, ValidationError
import logging

from ..types import NormalizedModel, NormalizedScore
from ..exceptions import NormalizationError

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


def validate_record(record_cls: Type[RecordT], data: Dict[str, Any]) -> RecordT:
    """
    Validates ``data`` against ``record_cls``.
    Raises NormalizationError if validation fails.
    """
    try:
        return record_cls(**data)
    except ValidationError as e:
        logger.debug(f"{record_cls.__name__} validation failed for {data}. Errors: {e.errors()}")
        raise NormalizationError(f"Invalid {record_cls.__name__} record: {e}") from e
    except TypeError as e:
        raise NormalizationError(f"Invalid {record_cls.__name__} record {data!r}: {e}") from e


def validate_model_data(data: Dict[str, Any]) -> NormalizedModel:
    return validate_record(NormalizedModel, data)


def validate_score_data(data: Dict[str, Any]) -> NormalizedScore:
    return validate_record(NormalizedScore, data)

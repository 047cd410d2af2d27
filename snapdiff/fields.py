"""
Parameter checks and the field-list parser used by the rule-set handlers
"""

import re
from typing import Any, List, Mapping, Optional


__all__ = ["MissingParameterError", "check_required_param", "split_field_list", "check_get_field_list"]


_FIELD_SEPARATOR = re.compile(r"[ ,]+")


class MissingParameterError(ValueError):
    """A required handler parameter is absent or None"""

    def __init__(self, param_name: str):
        super().__init__(f'Parameter "{param_name}" is required')
        self.param_name = param_name


def check_required_param(params: Mapping[str, Any], param_name: str) -> None:
    """
    Check that a parameter is present and not None

    Raises:
        MissingParameterError: If the parameter is missing
    """
    if params.get(param_name) is None:
        raise MissingParameterError(param_name)


def split_field_list(field_list: Optional[str]) -> List[str]:
    """
    Split a string of field names separated by commas and/or spaces.

    Names are trimmed and empty names dropped. Falsy input gives an empty list.

    Example:
        >>> split_field_list(" id, name  code,,")
        ['id', 'name', 'code']
    """
    if not field_list:
        return []
    if not isinstance(field_list, str):
        raise TypeError(f"Field list must be a string, got {type(field_list).__name__}")

    return [name.strip() for name in _FIELD_SEPARATOR.split(field_list) if name.strip()]


def check_get_field_list(params: Mapping[str, Any], param_name: str, is_required: bool = True) -> List[str]:
    """
    Check for a parameter and split it into a list of field names

    Args:
        params: Handler parameters
        param_name: Name of the field-list parameter
        is_required: Whether the parameter must be present and non-empty

    Returns:
        List of field names; empty if optional and not given

    Raises:
        MissingParameterError: If required and missing
        ValueError: If required and no field names remain after splitting
    """
    if is_required:
        check_required_param(params, param_name)

    field_list = params.get(param_name)
    if not field_list:
        if is_required:
            raise ValueError(f'No fields specified in "{param_name}"')
        return []

    fields = split_field_list(field_list)
    if is_required and len(fields) == 0:
        raise ValueError(f'No fields specified in "{param_name}"')

    return fields

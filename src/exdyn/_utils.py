"""Validators, converters and array helpers shared across exdyn."""
from typing import Union

import numpy as np
from attrs import fields, validators

PrecisionDType = Union[type[np.float32], type[np.float64]]

ALLOWED_PRECISIONS = {np.dtype(np.float32), np.dtype(np.float64)}


def in_attr(name, attrs_class_instance):
    """Checks if a name is in the attributes of a class instance."""
    field_names = {field.name for field in
                   fields(attrs_class_instance.__class__)}
    return name in field_names or ("_" + name) in field_names


def precision_converter(value) -> PrecisionDType:
    """Return the numpy scalar type for a dtype-like ``value``."""
    return np.dtype(value).type


def precision_validator(instance, attribute, value):
    """Reject any precision other than float32 or float64."""
    if np.dtype(value) not in ALLOWED_PRECISIONS:
        raise ValueError(
            f"{attribute.name} must be float32 or float64, got {value!r}"
        )


def getype_validator(dtype, min_):
    """Validate that a value is an instance of ``dtype`` and ``>= min_``."""
    return validators.and_(
        validators.instance_of(dtype),
        validators.ge(min_),
    )


def gttype_validator(dtype, min_):
    """Validate that a value is an instance of ``dtype`` and ``> min_``."""
    return validators.and_(
        validators.instance_of(dtype),
        validators.gt(min_),
    )


def inrangetype_validator(dtype, min_, max_):
    """Validate ``min_ < value < max_`` for an instance of ``dtype``."""
    return validators.and_(
        validators.instance_of(dtype),
        validators.gt(min_),
        validators.lt(max_),
    )


def get_readonly_view(array):
    view = array.view()
    view.flags.writeable = False
    return view

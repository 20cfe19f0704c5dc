"""
Vector, quaternion and rotation utilities for the motion pipeline.
"""

from .utils import (
    as_vector3,
    is_finite_vector,
    normalize_vector,
    quaternion_multiply,
    quaternion_to_rotation_matrix,
    rotation_matrix_to_quaternion,
    euler_to_matrix,
    screen_rotation_matrix,
    format_proper_time,
)
from .constants import *

__all__ = [
    "as_vector3",
    "is_finite_vector",
    "normalize_vector",
    "quaternion_multiply",
    "quaternion_to_rotation_matrix",
    "rotation_matrix_to_quaternion",
    "euler_to_matrix",
    "screen_rotation_matrix",
    "format_proper_time",
]

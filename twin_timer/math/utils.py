"""
Mathematical utility functions for orientation and motion calculations.

Quaternions are stored as numpy arrays ordered (w, x, y, z) and describe
the rotation from the device frame into the world frame.
"""

import numpy as np
import math

def as_vector3(values) -> np.ndarray:
    """
    Convert a 3-element sequence to a float numpy vector.

    Args:
        values: Sequence or array with exactly three elements

    Returns:
        np.ndarray: Vector of shape (3,)
    """
    vector = np.asarray(values, dtype=float).reshape(-1)
    if vector.shape != (3,):
        raise ValueError(f"Expected 3 components, got {vector.size}")
    return vector

def is_finite_vector(vector) -> bool:
    """Check that every component of a vector is finite."""
    return vector is not None and bool(np.all(np.isfinite(vector)))

def normalize_vector(vector: np.ndarray):
    """
    Normalize a vector to unit length.

    Args:
        vector (np.ndarray): Input vector

    Returns:
        np.ndarray or None: Unit vector, or None when the norm is zero or
        not finite
    """
    if not is_finite_vector(vector):
        return None
    norm = np.linalg.norm(vector)
    if not np.isfinite(norm) or norm <= 0.0:
        return None
    return vector / norm

def quaternion_multiply(p: np.ndarray, q: np.ndarray) -> np.ndarray:
    """
    Hamilton product p ⊗ q.

    Args:
        p, q: Quaternions (w, x, y, z)

    Returns:
        np.ndarray: Product quaternion
    """
    pw, px, py, pz = p
    qw, qx, qy, qz = q

    return np.array([
        pw*qw - px*qx - py*qy - pz*qz,
        pw*qx + px*qw + py*qz - pz*qy,
        pw*qy - px*qz + py*qw + pz*qx,
        pw*qz + px*qy - py*qx + pz*qw
    ])

def quaternion_to_rotation_matrix(q: np.ndarray) -> np.ndarray:
    """
    Build the device->world rotation matrix of a unit quaternion.

    Args:
        q (np.ndarray): Quaternion (w, x, y, z)

    Returns:
        np.ndarray: 3x3 rotation matrix
    """
    w, x, y, z = q

    return np.array([
        [1 - 2*(y*y + z*z), 2*(x*y - w*z),     2*(x*z + w*y)],
        [2*(x*y + w*z),     1 - 2*(x*x + z*z), 2*(y*z - w*x)],
        [2*(x*z - w*y),     2*(y*z + w*x),     1 - 2*(x*x + y*y)]
    ])

def rotation_matrix_to_quaternion(R: np.ndarray) -> np.ndarray:
    """
    Convert a rotation matrix to a unit quaternion (Shepperd's method).

    Args:
        R (np.ndarray): 3x3 rotation matrix

    Returns:
        np.ndarray: Quaternion (w, x, y, z) with non-negative w
    """
    m00, m01, m02 = R[0]
    m10, m11, m12 = R[1]
    m20, m21, m22 = R[2]
    trace = m00 + m11 + m22

    # Pick the largest diagonal term to keep the square root well conditioned
    if trace > 0:
        s = math.sqrt(trace + 1.0) * 2
        q = [0.25 * s, (m21 - m12) / s, (m02 - m20) / s, (m10 - m01) / s]
    elif m00 > m11 and m00 > m22:
        s = math.sqrt(1.0 + m00 - m11 - m22) * 2
        q = [(m21 - m12) / s, 0.25 * s, (m01 + m10) / s, (m02 + m20) / s]
    elif m11 > m22:
        s = math.sqrt(1.0 + m11 - m00 - m22) * 2
        q = [(m02 - m20) / s, (m01 + m10) / s, 0.25 * s, (m12 + m21) / s]
    else:
        s = math.sqrt(1.0 + m22 - m00 - m11) * 2
        q = [(m10 - m01) / s, (m02 + m20) / s, (m12 + m21) / s, 0.25 * s]

    q = np.array(q)
    if q[0] < 0:
        q = -q
    return q / np.linalg.norm(q)

def euler_to_matrix(alpha: float, beta: float, gamma: float) -> np.ndarray:
    """
    Device-orientation angles to a device->world rotation matrix.

    Uses the Z-X'-Y'' convention: R = Rz(alpha) * Rx(beta) * Ry(gamma).

    Args:
        alpha (float): Rotation about z (compass heading), radians
        beta (float): Rotation about x (front-back tilt), radians
        gamma (float): Rotation about y (left-right tilt), radians

    Returns:
        np.ndarray: 3x3 rotation matrix
    """
    cA, sA = math.cos(alpha), math.sin(alpha)
    cB, sB = math.cos(beta), math.sin(beta)
    cG, sG = math.cos(gamma), math.sin(gamma)

    return np.array([
        [cA*cG - sA*sB*sG, -cB*sA, cA*sG + cG*sA*sB],
        [cG*sA + cA*sB*sG,  cA*cB, sA*sG - cA*cG*sB],
        [-cB*sG,            sB,    cB*cG]
    ])

def screen_rotation_matrix(angle_deg: float) -> np.ndarray:
    """
    Rotation about world z compensating a rotated (landscape) screen.

    Args:
        angle_deg (float): Screen orientation angle in degrees

    Returns:
        np.ndarray: 3x3 rotation matrix
    """
    angle = math.radians(angle_deg)
    c, s = math.cos(angle), math.sin(angle)

    return np.array([
        [c, -s, 0.0],
        [s,  c, 0.0],
        [0.0, 0.0, 1.0]
    ])

def format_proper_time(seconds: float) -> str:
    """
    Format an accumulated proper time as HH:MM:SS.mmm.

    Args:
        seconds (float): Proper time in seconds

    Returns:
        str: Formatted clock string
    """
    if not math.isfinite(seconds) or seconds < 0:
        seconds = 0.0

    total_ms = int(math.floor(seconds * 1000))
    ms = total_ms % 1000
    total = total_ms // 1000
    s = total % 60
    m = (total // 60) % 60
    h = total // 3600

    return f"{h:02d}:{m:02d}:{s:02d}.{ms:03d}"

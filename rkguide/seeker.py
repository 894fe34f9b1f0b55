"""Missile, target and seeker models: target motion, line-of-sight and seeker image."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field

DEG_TO_RAD = math.pi / 180.0
RAD_TO_DEG = 180.0 / math.pi

_FOV_DEG = 60.0
_REFERENCE_DISTANCE = 1000.0
_REFERENCE_AREA = 100.0
_MIN_DOT_SIZE = 5.0
_MAX_DOT_SIZE = 5000.0


@dataclass
class MissileParams:
    """Physical parameters of the missile."""

    m0: float = 320.0  # initial mass (kg)
    Jz: float = 350.0  # moment of inertia (kg m^2)
    P: float = 2000.0  # engine thrust (N)
    ms: float = 0.46  # mass flow rate (kg/s)
    Sref: float = 0.45  # reference area (m^2)
    Lref: float = 2.5  # reference length (m)
    g0: float = 9.8  # gravitational acceleration (m/s^2)
    rou0: float = 1.2495  # sea-level air density (kg/m^3)
    T0: float = 288.15  # sea-level temperature (K)


@dataclass
class TargetParams:
    """Initial position and constant velocity of the target."""

    position0: list[float] = field(default_factory=lambda: [2000.0, 0.0, 2000.0])
    velocity: list[float] = field(default_factory=lambda: [15.0, 10.0, 0.0])


@dataclass
class PIDParams:
    """Gains of the pitch and yaw PID controllers."""

    K_P_theta: float = 20.0
    K_D_theta: float = 1.0
    K_I_theta: float = 0.1
    K_P_varphi: float = 20.0
    K_D_varphi: float = 1.0
    K_I_varphi: float = 0.1


@dataclass
class SeekerParams:
    """Seeker optics parameters."""

    FOV: float = 60.0  # field of view (deg)
    target_actual_size: float = 2.0  # (m)
    reference_distance: float = 1000.0  # (m)
    reference_area: float = 100.0


@dataclass
class SeekerData:
    """What the seeker sees: target image centre and area, in degrees."""

    target_center: list[float] = field(default_factory=lambda: [0.0, 0.0])
    target_area: float = 0.0
    image_center: list[float] = field(default_factory=lambda: [0.0, 0.0])
    image_area: float = _FOV_DEG * _FOV_DEG
    is_target_detected: bool = False


def target_move(position0: Sequence[float], velocity: Sequence[float], t: float) -> list[float]:
    """Position of a target moving at constant velocity after time ``t``."""
    return [p + v * t for p, v in zip(position0, velocity)]


def calculate_light_angle(
    x: float, y: float, z: float, x_t: float, y_t: float, z_t: float
) -> list[float]:
    """Line-of-sight elevation and azimuth (radians) from the missile to the target."""
    dx = x_t - x
    dy = y_t - y
    dz = z_t - z
    horizontal = math.sqrt(dx * dx + dz * dz)
    q1 = math.atan2(dy, horizontal)
    q2 = math.atan2(dz, dx)
    return [q1, q2]


def _matmul(a: list[list[float]], b: list[list[float]]) -> list[list[float]]:
    return [[sum(a[i][k] * b[k][j] for k in range(3)) for j in range(3)] for i in range(3)]


def _matvec(m: list[list[float]], v: Sequence[float]) -> list[float]:
    return [sum(mij * vj for mij, vj in zip(row, v)) for row in m]


def get_seeker_data(
    missile_pos: Sequence[float],
    target_pos: Sequence[float],
    seeker_elevation_deg: float,
    seeker_azimuth_deg: float,
    t: float,
) -> SeekerData:
    """Project the target into the seeker frame and report what is visible."""
    relative = [tp - mp for tp, mp in zip(target_pos, missile_pos)]
    distance = math.sqrt(sum(c * c for c in relative))

    az = seeker_azimuth_deg * DEG_TO_RAD
    el = seeker_elevation_deg * DEG_TO_RAD
    r_az = [
        [math.cos(az), 0.0, math.sin(az)],
        [0.0, 1.0, 0.0],
        [-math.sin(az), 0.0, math.cos(az)],
    ]
    r_el = [
        [math.cos(el), -math.sin(el), 0.0],
        [math.sin(el), math.cos(el), 0.0],
        [0.0, 0.0, 1.0],
    ]
    seeker = _matvec(_matmul(r_el, r_az), relative)

    data = SeekerData()
    if seeker[0] > 0:
        horizontal = math.atan2(seeker[2], seeker[0]) * RAD_TO_DEG
        vertical = math.atan2(seeker[1], math.hypot(seeker[0], seeker[2])) * RAD_TO_DEG
        half = _FOV_DEG / 2
        if abs(horizontal) <= half and abs(vertical) <= half:
            ratio = _REFERENCE_DISTANCE / max(distance, 1.0)
            area = _REFERENCE_AREA * ratio * ratio
            data.is_target_detected = True
            data.target_center = [horizontal, vertical]
            data.target_area = max(_MIN_DOT_SIZE, min(area, _MAX_DOT_SIZE))
        elif abs(horizontal) > half and abs(vertical) > half:
            print(
                f"[GUIDANCE] t={t:g} target ahead of seeker but not in field of view! "
                f"horizontal: {horizontal:g}deg (FOV: +-{half:g}deg) "
                f"vertical: {vertical:g}deg (FOV: +-{half:g}deg)"
            )
    return data
"""Missile guidance model driven by the seeker, and the simulation that runs it."""

from __future__ import annotations

import argparse
import logging
import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from rkguide.ode45 import ODEResult, Options, solve
from rkguide.seeker import (
    DEG_TO_RAD,
    RAD_TO_DEG,
    MissileParams,
    PIDParams,
    SeekerParams,
    TargetParams,
    calculate_light_angle,
    get_seeker_data,
    target_move,
)

logger = logging.getLogger(__name__)

_FIN_LIMIT = 30.0 * DEG_TO_RAD
_TRIM_RATIO = 0.24
_BURN_TIME = 2.0
_HIT_DISTANCE = 10.0
_LOG_EVERY = 5
_MISSILE_ROW_STRIDE = 10
_ADDITIONAL_ROWS = 50


@dataclass
class SimulationState:
    """Histories recorded by the model at every right-hand-side evaluation."""

    error_theta: list[float] = field(default_factory=list)
    error_varphi: list[float] = field(default_factory=list)
    delta_z: list[float] = field(default_factory=list)
    delta_y: list[float] = field(default_factory=list)
    alpha: list[float] = field(default_factory=list)
    bleta: list[float] = field(default_factory=list)
    q1: list[float] = field(default_factory=list)
    q2: list[float] = field(default_factory=list)
    target_x: list[float] = field(default_factory=list)
    target_y: list[float] = field(default_factory=list)
    target_z: list[float] = field(default_factory=list)
    sum1: float = 0.0
    sum2: float = 0.0


def _clamp(value: float, limit: float) -> float:
    return max(-limit, min(value, limit))


def _air_density(params: MissileParams, altitude: float) -> float:
    ratio = (params.T0 - 0.0065 * altitude) / params.T0
    if ratio < 0:
        return math.nan
    return params.rou0 * ratio**4.25588


class MissileModel:
    """Right-hand side of the missile equations of motion with PID guidance.

    The state vector is ``[v, theta, varphi, x, y, z, mass]``. Every call
    records the guidance quantities it computed, so the model is stateful.
    """

    def __init__(
        self,
        missile_params: MissileParams | None = None,
        target_params: TargetParams | None = None,
        pid_params: PIDParams | None = None,
        seeker_params: SeekerParams | None = None,
    ) -> None:
        self.missile_params = missile_params or MissileParams()
        self.target_params = target_params or TargetParams()
        self.pid_params = pid_params or PIDParams()
        self.seeker_params = seeker_params or SeekerParams()
        self._state = SimulationState()
        self._calls = 0

    def _guidance_errors(
        self, t: float, theta: float, varphi: float, pos: list[float], target_pos: list[float]
    ) -> tuple[float, float]:
        state = self._state
        seeker = get_seeker_data(pos, target_pos, theta * RAD_TO_DEG, varphi * RAD_TO_DEG, t)
        log_now = self._calls % _LOG_EVERY == 0

        if seeker.is_target_detected:
            dis_cal = math.sqrt(seeker.image_area / seeker.target_area) * 100
            if log_now:
                logger.debug(
                    "t=%g seeker detected target: horizontal %g deg, vertical %g deg",
                    t,
                    seeker.target_center[0],
                    seeker.target_center[1],
                )
            e_theta = (seeker.target_center[1] - seeker.image_center[1]) * DEG_TO_RAD
            e_varphi = (seeker.target_center[0] - seeker.image_center[0]) * DEG_TO_RAD
            state.sum1 += e_theta
            state.sum2 += e_varphi
            if dis_cal < 100:
                e_theta *= 2
                e_varphi *= 2
            return e_theta, e_varphi

        q_elev, q_azim = calculate_light_angle(*pos, *target_pos)
        state.q1.append(q_elev)
        state.q2.append(q_azim)
        if log_now:
            logger.debug(
                "t=%g seeker lost target: line-of-sight elevation %g deg, azimuth %g deg",
                t,
                q_elev * RAD_TO_DEG,
                q_azim * RAD_TO_DEG,
            )
        return q_elev - theta, q_azim - varphi

    def __call__(self, t: float, y: Sequence[float]) -> list[float]:
        v, theta, varphi, x, y_pos, z, mass = y[:7]
        mp = self.missile_params
        pid = self.pid_params
        state = self._state

        target_pos = target_move(self.target_params.position0, self.target_params.velocity, t)
        state.target_x.append(target_pos[0])
        state.target_y.append(target_pos[1])
        state.target_z.append(target_pos[2])

        e_theta, e_varphi = self._guidance_errors(t, theta, varphi, [x, y_pos, z], target_pos)
        self._calls += 1

        state.error_theta.append(e_theta)
        state.error_varphi.append(e_varphi)

        if len(state.error_theta) < 2:
            delta_z = pid.K_P_theta * e_theta
            delta_y = pid.K_P_varphi * e_varphi
        else:
            d_theta = e_theta - state.error_theta[-2]
            d_varphi = e_varphi - state.error_varphi[-2]
            delta_z = pid.K_P_theta * e_theta + pid.K_D_theta * d_theta + pid.K_I_theta * state.sum1
            delta_y = (
                pid.K_P_varphi * e_varphi + pid.K_D_varphi * d_varphi + pid.K_I_varphi * state.sum2
            )

        delta_z = _clamp(delta_z, _FIN_LIMIT)
        delta_y = _clamp(delta_y, _FIN_LIMIT)
        state.delta_z.append(delta_z)
        state.delta_y.append(delta_y)

        # Instantaneous balance assumption.
        alpha = _TRIM_RATIO * delta_z
        bleta = _TRIM_RATIO * delta_y
        state.alpha.append(alpha)
        state.bleta.append(bleta)

        alpha_deg = alpha * RAD_TO_DEG
        bleta_deg = bleta * RAD_TO_DEG
        c_x = 0.2 + 0.005 * alpha_deg * alpha_deg
        c_y = 0.25 * alpha_deg + 0.05 * delta_z * RAD_TO_DEG
        c_z = -0.25 * bleta_deg - 0.05 * delta_y * RAD_TO_DEG

        q_dynamic = 0.5 * _air_density(mp, y_pos) * v * v
        drag = c_x * q_dynamic * mp.Sref
        lift = c_y * q_dynamic * mp.Sref
        side = c_z * q_dynamic * mp.Sref

        burning = t < _BURN_TIME
        thrust = mp.P if burning else 0.0
        dmass = -mp.ms if burning else 0.0

        dv = (thrust * math.cos(alpha) * math.cos(bleta) - drag - mass * mp.g0 * math.sin(theta)) / mass
        dtheta = (thrust * math.sin(alpha) + lift - mass * mp.g0 * math.cos(theta)) / (mass * v)
        dvarphi = -(-thrust * math.cos(alpha) * math.sin(bleta) + side) / (
            mass * v * math.cos(theta)
        )
        dx = v * math.cos(theta) * math.cos(varphi)
        dy = v * math.sin(theta)
        dz = v * math.cos(theta) * math.sin(varphi)

        if self._calls % _LOG_EVERY == 0 and logger.isEnabledFor(logging.DEBUG):
            distance = math.dist((x, y_pos, z), target_pos)
            logger.debug(
                "t=%g missile (%g, %g, %g) target (%g, %g, %g) distance %g m; "
                "speed %g m/s pitch %g deg yaw %g deg mass %g kg mass rate %g kg/s",
                t, x, y_pos, z, *target_pos, distance,
                v, theta * RAD_TO_DEG, varphi * RAD_TO_DEG, mass, dmass,
            )

        return [dv, dtheta, dvarphi, dx, dy, dz, dmass]

    def simulation_state(self) -> SimulationState:
        """A copy of the histories recorded so far."""
        s = self._state
        return SimulationState(
            error_theta=list(s.error_theta),
            error_varphi=list(s.error_varphi),
            delta_z=list(s.delta_z),
            delta_y=list(s.delta_y),
            alpha=list(s.alpha),
            bleta=list(s.bleta),
            q1=list(s.q1),
            q2=list(s.q2),
            target_x=list(s.target_x),
            target_y=list(s.target_y),
            target_z=list(s.target_z),
            sum1=s.sum1,
            sum2=s.sum2,
        )


def make_distance_event(
    target_params: TargetParams,
) -> Callable[[float, Sequence[float]], list[float]]:
    """Event function that crosses zero when the missile comes within hit distance."""

    def event(t: float, y: Sequence[float]) -> list[float]:
        target_pos = target_move(target_params.position0, target_params.velocity, t)
        return [math.dist(y[3:6], target_pos) - _HIT_DISTANCE]

    return event


def format_missile_data(result: ODEResult) -> str:
    """Table of the missile state at every tenth stored time point."""
    lines = [
        "",
        "Missile state:",
        f"{'t(s)':>8}{'v(m/s)':>12}{'theta(deg)':>15}{'varphi(deg)':>15}"
        f"{'x(m)':>12}{'y(m)':>12}{'z(m)':>12}{'mass(kg)':>12}",
    ]
    for t, state in list(zip(result.t, result.y))[::_MISSILE_ROW_STRIDE]:
        lines.append(
            f"{t:>8.4g}{state[0]:>12.6g}{state[1] * RAD_TO_DEG:>15.6g}"
            f"{state[2] * RAD_TO_DEG:>15.6g}{state[3]:>12.2g}{state[4]:>12.2g}"
            f"{state[5]:>12.2g}{state[6]:>12.2g}"
        )
    return "\n".join(lines)


def format_additional_data(sim_state: SimulationState) -> str:
    """Table of the first guidance records (errors, fin deflections, angles)."""
    lines = [
        "",
        f"Guidance data (first {_ADDITIONAL_ROWS} records):",
        f"{'Index':>8}{'pitch err':>15}{'yaw err':>15}{'pitch fin(deg)':>15}"
        f"{'yaw fin(deg)':>15}{'alpha(deg)':>15}{'beta(deg)':>15}",
    ]
    rows = zip(
        sim_state.error_theta,
        sim_state.error_varphi,
        sim_state.delta_z,
        sim_state.delta_y,
        sim_state.alpha,
        sim_state.bleta,
    )
    for index, (e_t, e_v, d_z, d_y, a, b) in enumerate(rows):
        if index >= _ADDITIONAL_ROWS:
            break
        lines.append(
            f"{index:>8}{e_t:>15.6g}{e_v:>15.6g}{d_z * RAD_TO_DEG:>15.6g}"
            f"{d_y * RAD_TO_DEG:>15.6g}{a * RAD_TO_DEG:>15.6g}{b * RAD_TO_DEG:>15.6g}"
        )
    extra = len(sim_state.error_theta) - _ADDITIONAL_ROWS
    if extra > 0:
        lines.append(f"...{extra} more rows not shown...")
    return "\n".join(lines)


def run_simulation(
    missile_params: MissileParams | None = None,
    target_params: TargetParams | None = None,
    pid_params: PIDParams | None = None,
    seeker_params: SeekerParams | None = None,
) -> tuple[ODEResult, SimulationState]:
    """Fly the missile from its launch state until it hits or 50 s pass."""
    missile_params = missile_params or MissileParams()
    target_params = target_params or TargetParams()
    model = MissileModel(missile_params, target_params, pid_params, seeker_params)
    initial_conditions = [250.0, 0.0, 0.0, 0.0, 7000.0, 0.0, missile_params.m0]
    options = Options(
        rtol=1e-6,
        atol=1e-6,
        initial_step=0.01,
        max_step=0.1,
        event_fcn=make_distance_event(target_params),
        event_directions=[-1],
        event_terminal=[True],
    )
    result = solve(model, [0.0, 50.0], initial_conditions, options)
    return result, model.simulation_state()


def _fmt_point(values: Sequence[float]) -> str:
    return "(" + ", ".join(f"{v:g}" for v in values) + ")"


def main(argv: Sequence[str] | None = None) -> int:
    """Run the default engagement and print its tables and summary."""
    parser = argparse.ArgumentParser(description="Simulate a seeker-guided missile engagement.")
    parser.parse_args(argv)

    missile_params = MissileParams()
    target_params = TargetParams()

    print("Starting missile simulation...")
    print(f"Target position: {_fmt_point(target_params.position0)}")
    print(f"Target velocity: {_fmt_point(target_params.velocity)}")

    result, sim_state = run_simulation(missile_params, target_params, PIDParams(), SeekerParams())
    print(f"Simulation complete! {len(result.t)} time steps")

    print(format_missile_data(result))
    print(format_additional_data(sim_state))

    if result.events:
        print("\nEvents:")
        for event in result.events:
            target_pos = target_move(target_params.position0, target_params.velocity, event.event_time)
            print(f"Event time: {event.event_time:g} s")
            print(f"Terminal: {'yes' if event.is_terminal else 'no'}")
            print(f"Missile position: {_fmt_point(event.event_y[3:6])} m")
            print(f"Target position: {_fmt_point(target_pos)} m")
    else:
        print("\nNo event detected")
        if result.y:
            final_target = target_move(target_params.position0, target_params.velocity, result.t[-1])
            distance = math.dist(result.y[-1][3:6], final_target)
            print(f"Final missile-target distance: {distance:g} m")

    if result.y:
        final_state = result.y[-1]
        final_target = target_move(target_params.position0, target_params.velocity, result.t[-1])
        print("\nFinal state:")
        print(f"Time: {result.t[-1]:g} s")
        print(f"Missile position: {_fmt_point(final_state[3:6])} m")
        print(f"Target position: {_fmt_point(final_target)} m")
        print(f"Speed: {final_state[0]:g} m/s")
        print(f"Mass: {final_state[6]:g} kg")

    return 0
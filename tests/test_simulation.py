import math

import pytest

from rkguide.ode45 import ODEResult, Options, solve
from rkguide.seeker import DEG_TO_RAD, MissileParams, TargetParams
from rkguide.simulation import (
    MissileModel,
    SimulationState,
    format_additional_data,
    format_missile_data,
    make_distance_event,
)

LAUNCH_STATE = [250.0, 0.0, 0.0, 0.0, 7000.0, 0.0, 320.0]


def _stationary_target(position):
    return TargetParams(position0=list(position), velocity=[0.0, 0.0, 0.0])


def test_distance_event_zero_at_hit_distance():
    event = make_distance_event(TargetParams())
    value = event(0.0, [250.0, 0.0, 0.0, 2010.0, 0.0, 2000.0, 320.0])
    assert value == [pytest.approx(0.0, abs=1e-9)]


def test_distance_event_follows_moving_target():
    params = TargetParams()
    event = make_distance_event(params)
    t = 2.0
    pos = [p + v * t for p, v in zip(params.position0, params.velocity)]
    assert event(t, [0.0, 0.0, 0.0, *pos, 0.0]) == [pytest.approx(-10.0)]


def test_distance_event_decreases_as_missile_approaches():
    event = make_distance_event(_stationary_target([1000.0, 0.0, 0.0]))
    far = event(0.0, [0, 0, 0, 0.0, 0.0, 0.0, 0])[0]
    near = event(0.0, [0, 0, 0, 500.0, 0.0, 0.0, 0])[0]
    assert near < far


def test_kinematics_and_mass_rate_during_burn():
    model = MissileModel(MissileParams(), TargetParams(), None, None)
    deriv = model(0.0, LAUNCH_STATE)
    assert len(deriv) == 7
    assert deriv[3] == pytest.approx(250.0)
    assert deriv[4] == pytest.approx(0.0)
    assert deriv[5] == pytest.approx(0.0)
    assert deriv[6] == pytest.approx(-MissileParams().ms)


def test_mass_rate_zero_after_burnout():
    model = MissileModel(MissileParams(), TargetParams(), None, None)
    assert model(2.5, LAUNCH_STATE)[6] == 0.0


def test_undetected_target_uses_line_of_sight_and_saturates_fins():
    model = MissileModel(MissileParams(), TargetParams(), None, None)
    model(0.0, LAUNCH_STATE)
    state = model.simulation_state()
    assert len(state.q1) == 1 and len(state.q2) == 1
    assert state.error_theta[0] == pytest.approx(state.q1[0])
    assert state.error_varphi[0] == pytest.approx(state.q2[0])
    assert state.delta_z[0] == pytest.approx(-30.0 * DEG_TO_RAD)
    assert state.delta_y[0] == pytest.approx(30.0 * DEG_TO_RAD)
    assert state.alpha[0] == pytest.approx(0.24 * state.delta_z[0])
    assert state.target_x == [2000.0]
    assert state.sum1 == 0.0


def test_target_dead_ahead_gives_zero_guidance():
    params = MissileParams()
    model = MissileModel(params, _stationary_target([1000.0, 0.0, 0.0]), None, None)
    v = 250.0
    deriv = model(0.0, [v, 0.0, 0.0, 0.0, 0.0, 0.0, params.m0])
    state = model.simulation_state()
    assert state.q1 == []
    assert state.error_theta == [0.0]
    assert state.delta_z == [0.0]
    assert deriv[1] == pytest.approx(-params.g0 / v)
    assert deriv[2] == pytest.approx(0.0)


def test_fin_deflections_stay_within_limits():
    model = MissileModel(MissileParams(), TargetParams(), None, None)
    for t in (0.0, 0.1, 0.2, 0.3):
        model(t, LAUNCH_STATE)
    state = model.simulation_state()
    limit = 30.0 * DEG_TO_RAD + 1e-12
    assert len(state.delta_z) == 4
    assert all(abs(d) <= limit for d in state.delta_z + state.delta_y)


def test_simulation_state_is_a_copy():
    model = MissileModel(MissileParams(), TargetParams(), None, None)
    model(0.0, LAUNCH_STATE)
    snapshot = model.simulation_state()
    snapshot.error_theta.append(99.0)
    assert len(model.simulation_state().error_theta) == 1


def test_short_flight_burns_fuel_linearly():
    params = MissileParams()
    model = MissileModel(params, TargetParams(), None, None)
    options = Options(rtol=1e-6, atol=1e-6, initial_step=0.01, max_step=0.1, fixed_step=True)
    result = solve(model, [0.0, 0.5], LAUNCH_STATE, options)
    assert result.t[-1] == pytest.approx(0.5)
    assert all(a < b for a, b in zip(result.t, result.t[1:]))
    assert result.y[-1][6] == pytest.approx(params.m0 - params.ms * 0.5)


def test_format_missile_data_prints_every_tenth_point():
    result = ODEResult(
        t=[0.1 * i for i in range(25)],
        y=[[250.0, 0.0, 0.0, 1.0 * i, 7000.0, 0.0, 320.0] for i in range(25)],
    )
    lines = format_missile_data(result).strip().splitlines()
    assert lines[0] == "Missile state:"
    assert len(lines) == 2 + 3


def test_format_additional_data_truncates_after_fifty_rows():
    values = [0.0] * 60
    state = SimulationState(
        error_theta=values, error_varphi=values, delta_z=values,
        delta_y=values, alpha=values, bleta=values,
    )
    lines = format_additional_data(state).strip().splitlines()
    assert lines[-1] == "...10 more rows not shown..."
    assert len(lines) == 2 + 50 + 1


def test_format_additional_data_short_history_has_no_ellipsis():
    values = [math.pi / 180.0] * 3
    state = SimulationState(
        error_theta=values, error_varphi=values, delta_z=values,
        delta_y=values, alpha=values, bleta=values,
    )
    text = format_additional_data(state)
    lines = text.strip().splitlines()
    assert len(lines) == 2 + 3
    assert "more rows" not in text
    assert lines[-1].split()[0] == "2"
# rkguide

A small toolkit with no dependencies for integrating ordinary differential
equations with a Runge-Kutta-Fehlberg 4(5) method. It also includes a
seeker-guided missile pursuit simulation that uses the integrator.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Solving an ODE

`rkguide.ode45.solve(func, tspan, y0, options=None)` integrates
`dy/dt = func(t, y)` from `tspan[0]` to `tspan[1]`:

```python
from rkguide.ode45 import Options, solve

def rhs(t, y):
    return [-y[0] + t + 1]

result = solve(rhs, [0.0, 1.0], [1.0], Options(fixed_step=True, initial_step=0.1))
for t, y in zip(result.t, result.y):
    print(f"t={t:.2f}  y={y[0]:.6f}")
```

### Options

`Options` is a dataclass with the following fields:

- `rtol` (default `1e-6`) and `atol` (default `1e-8`) set the tolerances for step control.
- `max_step` (default infinity) is an upper bound on the step size.
- `initial_step` (default `0.0`) sets the first step. If it is not positive, the solver estimates the first step with `compute_initial_step`.
- `fixed_step` (default `False`) controls step control:
  - With `True`, the solver keeps the step fixed and only shortens the last step so that it lands on the end time.
  - With `False`, the solver compares one full step with two half steps and accepts or shrinks the step from the scaled error.
- `event_fcn(t, y)` returns a list of values that are watched for zero crossings.
- `event_directions` holds one entry per event:
  - `0` means any crossing.
  - `1` means rising crossings only.
  - `-1` means falling crossings only.
- `event_terminal` holds one entry per event. An entry of `True` stops the integration when that event fires.
- `output_fcn(t, y, dydt)` is called with the initial point and each stored point. If it returns a false value, integration stops.

### Results and errors

`solve` returns an `ODEResult` with three lists:

- `t`: the stored time points.
- `y`: the states at those time points.
- `events`: the events that fired.

Each event is an `EventInfo` with these fields:

- `event_index`
- `event_time`
- `event_y`
- `is_terminal`
- `direction`

The event time comes from linear interpolation of the event function. The event state comes from linear interpolation of the solution. When a terminal event fires, its point is the last entry in `t` and `y`.

`solve` raises errors in these cases:

- `ValueError` if `tspan` does not have exactly two elements.
- `ValueError` if `y0` is empty.
- `ValueError` if the start time is not before the end time.
- `StepSizeTooSmallError` (a `RuntimeError`) if the adaptive step falls below what floating-point precision can resolve.

### Building blocks

The building blocks are also public:

- `rk45_step`
- `estimate_error`
- `compute_initial_step`
- `check_events`
- `interpolate`

## Seeker and target models

`rkguide.seeker` provides these functions:

- `target_move(position0, velocity, t)` gives the position of a target that moves at constant velocity.
- `calculate_light_angle(x, y, z, x_t, y_t, z_t)` gives the line-of-sight elevation and azimuth, in radians.
- `get_seeker_data(missile_pos, target_pos, seeker_elevation_deg, seeker_azimuth_deg, t)` rotates the target into the seeker frame and returns a `SeekerData`:
  - `target_center` is the horizontal and vertical angle to the target, in degrees.
  - `target_area` is inversely proportional to the squared distance, limited to the range 5–5000.
  - `is_target_detected` is `True` when the target is ahead of the seeker and within its 60° field of view.

The parameter dataclasses `MissileParams`, `TargetParams`, `PIDParams` and
`SeekerParams` hold the defaults that the simulation uses.

## Missile simulation

Run the default engagement from the command line:

```
rkguide-sim
```

The command prints:

- the target's starting position and velocity;
- a table of the missile state at every tenth stored time point;
- the first 50 guidance records;
- any intercept event;
- the final state.

The same run is available from Python:

```python
from rkguide.seeker import MissileParams, PIDParams, SeekerParams, TargetParams
from rkguide.simulation import run_simulation, format_missile_data

result, state = run_simulation(MissileParams(), TargetParams(), PIDParams(), SeekerParams())
print(format_missile_data(result))
```

`run_simulation` flies the missile from its launch state for up to 50 s. The
launch state is 250 m/s at an altitude of 7000 m. The run stops early when the
missile comes within 10 m of the target.

The simulation module provides these pieces:

- `MissileModel` is the right-hand side for `solve`. Its state vector is `[v, theta, varphi, x, y, z, mass]`. Each evaluation records guidance errors, fin deflections and angles. `simulation_state()` returns a copy of those records as a `SimulationState`.
- `make_distance_event(target_params)` builds the intercept event function.
- `format_missile_data` and `format_additional_data` return the printed tables as strings.

The model writes periodic progress details through the standard `logging`
module at DEBUG level, under the `rkguide.simulation` logger.

## Limitations

The simulation only prints text tables to standard output. It does not:

- write results to files;
- plot trajectories;
- accept its parameters from the command line.

To change parameters, call `run_simulation` from Python.
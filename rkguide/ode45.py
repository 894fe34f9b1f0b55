"""Runge-Kutta-Fehlberg 4(5) integrator with event detection and output hooks."""

from __future__ import annotations

import math
import sys
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace

ODEFunction = Callable[[float, Sequence[float]], Sequence[float]]
EventFunction = Callable[[float, Sequence[float]], Sequence[float]]
OutputFunction = Callable[[float, Sequence[float], Sequence[float]], bool]

DEFAULT_RTOL = 1e-6
DEFAULT_ATOL = 1e-8

_EVENT_TOLERANCE = 1e-12

# Fehlberg tableau.
_A2 = 1.0 / 4.0
_A3, _B31, _B32 = 3.0 / 8.0, 3.0 / 32.0, 9.0 / 32.0
_A4, _B41, _B42, _B43 = 12.0 / 13.0, 1932.0 / 2197.0, -7200.0 / 2197.0, 7296.0 / 2197.0
_A5, _B51, _B52, _B53, _B54 = 1.0, 439.0 / 216.0, -8.0, 3680.0 / 513.0, -845.0 / 4104.0
_A6, _B61, _B62, _B63, _B64, _B65 = (
    1.0 / 2.0,
    -8.0 / 27.0,
    2.0,
    -3544.0 / 2565.0,
    1859.0 / 4104.0,
    -11.0 / 40.0,
)
_C1, _C3, _C4, _C5 = 25.0 / 216.0, 1408.0 / 2565.0, 2197.0 / 4104.0, -1.0 / 5.0


class StepSizeTooSmallError(RuntimeError):
    """Raised when the adaptive step size collapses below machine resolution."""


@dataclass
class EventInfo:
    """A detected zero crossing of one component of the event function."""

    event_index: int
    event_time: float
    is_terminal: bool = False
    direction: int = 0
    event_y: list[float] = field(default_factory=list)


@dataclass
class ODEResult:
    """Time points, states and events produced by :func:`solve`."""

    t: list[float] = field(default_factory=list)
    y: list[list[float]] = field(default_factory=list)
    events: list[EventInfo] = field(default_factory=list)


@dataclass
class Options:
    """Solver settings.

    ``event_directions`` holds 0 (any), 1 (rising) or -1 (falling) per event;
    ``event_terminal`` says whether each event stops the integration.
    """

    rtol: float = DEFAULT_RTOL
    atol: float = DEFAULT_ATOL
    max_step: float = math.inf
    initial_step: float = 0.0
    event_fcn: EventFunction | None = None
    output_fcn: OutputFunction | None = None
    event_directions: list[int] = field(default_factory=list)
    event_terminal: list[bool] = field(default_factory=list)
    fixed_step: bool = False


def _axpy(y: Sequence[float], h: float, *terms: tuple[float, Sequence[float]]) -> list[float]:
    """Return y + h * sum(coef * k) componentwise."""
    return [
        yi + h * sum(coef * k[i] for coef, k in terms)
        for i, yi in enumerate(y)
    ]


def rk45_step(func: ODEFunction, t: float, y: Sequence[float], h: float) -> list[float]:
    """Advance ``y`` from ``t`` by one Fehlberg step of size ``h``."""
    k1 = list(func(t, y))
    k2 = list(func(t + h * _A2, _axpy(y, h, (_A2, k1))))
    k3 = list(func(t + h * _A3, _axpy(y, h, (_B31, k1), (_B32, k2))))
    k4 = list(func(t + h * _A4, _axpy(y, h, (_B41, k1), (_B42, k2), (_B43, k3))))
    k5 = list(func(t + h * _A5, _axpy(y, h, (_B51, k1), (_B52, k2), (_B53, k3), (_B54, k4))))
    # The sixth stage is evaluated for completeness of the tableau; the
    # fourth-order combination below does not use it.
    func(
        t + h * _A6,
        _axpy(y, h, (_B61, k1), (_B62, k2), (_B63, k3), (_B64, k4), (_B65, k5)),
    )
    return _axpy(y, h, (_C1, k1), (_C3, k3), (_C4, k4), (_C5, k5))


def estimate_error(
    y: Sequence[float],
    y_high: Sequence[float],
    y_low: Sequence[float],
    rtol: float,
    atol: float,
) -> float:
    """Scaled RMS difference between two candidate solutions."""
    total = 0.0
    for yi, hi, lo in zip(y, y_high, y_low):
        scale = atol + rtol * max(abs(yi), abs(hi))
        e = abs(hi - lo) / scale
        total += e * e
    return math.sqrt(total / len(y))


def compute_initial_step(
    func: ODEFunction,
    t0: float,
    y0: Sequence[float],
    rtol: float,
    atol: float,
) -> float:
    """Heuristic first step size from the scale of y0 and its derivatives."""
    n = len(y0)
    f0 = list(func(t0, y0))
    scales = [atol + rtol * abs(v) for v in y0]

    def rms(values: Sequence[float]) -> float:
        return math.sqrt(sum((v / s) ** 2 for v, s in zip(values, scales)) / n)

    d0 = rms(y0)
    d1 = rms(f0)
    if d0 < 1e-10 or d1 < 1e-10:
        return 1e-6

    h0 = 0.01 * d0 / d1
    y1 = [yi + h0 * fi for yi, fi in zip(y0, f0)]
    f1 = list(func(t0 + h0, y1))
    d2 = rms([b - a for a, b in zip(f0, f1)]) / h0

    largest = max(d1, d2)
    if largest <= 1e-15:
        h1 = max(1e-6, h0 * 1e-3)
    else:
        h1 = (0.01 / largest) ** (1.0 / 3.0)
    return min(100.0 * h0, h1)


def check_events(
    event_fcn: EventFunction,
    directions: Sequence[int],
    terminal: Sequence[bool],
    t_old: float,
    t_new: float,
    y_old: Sequence[float],
    y_new: Sequence[float],
) -> list[EventInfo]:
    """Find sign changes of the event function between two states.

    An event fires when its old value is not already zero, its value changes
    sign, and the crossing matches the requested direction. The event time is
    estimated by linear interpolation.
    """
    val_old = list(event_fcn(t_old, y_old))
    val_new = list(event_fcn(t_new, y_new))
    events = []
    for i, (v_old, v_new) in enumerate(zip(val_old, val_new)):
        direction = directions[i] if i < len(directions) else 0
        is_terminal = terminal[i] if i < len(terminal) else False
        if abs(v_old) <= _EVENT_TOLERANCE or v_old * v_new > 0.0:
            continue
        slope = (v_new - v_old) / (t_new - t_old)
        if direction == 0 or (direction == 1 and slope > 0) or (direction == -1 and slope < 0):
            t_event = t_old - v_old * (t_new - t_old) / (v_new - v_old)
            events.append(
                EventInfo(
                    event_index=i,
                    event_time=t_event,
                    is_terminal=is_terminal,
                    direction=direction,
                )
            )
    return events


def interpolate(
    t_old: float,
    t_new: float,
    y_old: Sequence[float],
    y_new: Sequence[float],
    t_interp: float,
) -> tuple[float, list[float]]:
    """Linearly interpolate the state at ``t_interp``, clamped to the interval."""
    if t_interp <= t_old:
        return t_old, list(y_old)
    if t_interp >= t_new:
        return t_new, list(y_new)
    theta = (t_interp - t_old) / (t_new - t_old)
    return t_interp, [a + theta * (b - a) for a, b in zip(y_old, y_new)]


def _handle_events(
    func: ODEFunction,
    options: Options,
    result: ODEResult,
    t_old: float,
    t_new: float,
    y_old: list[float],
    y_new: list[float],
) -> bool:
    """Record events in a step; return True if a terminal event ended the run."""
    events = check_events(
        options.event_fcn,
        options.event_directions,
        options.event_terminal,
        t_old,
        t_new,
        y_old,
        y_new,
    )
    for event in events:
        t_event, y_event = interpolate(t_old, t_new, y_old, y_new, event.event_time)
        result.events.append(replace(event, event_time=t_event, event_y=y_event))
        if event.is_terminal:
            result.t.append(t_event)
            result.y.append(y_event)
            if options.output_fcn is not None:
                options.output_fcn(t_event, y_event, list(func(t_event, y_event)))
            return True
    return False


def _record(func: ODEFunction, options: Options, result: ODEResult, t: float, y: list[float]) -> bool:
    """Store a point and report it; return False if the output hook asks to stop."""
    result.t.append(t)
    result.y.append(y)
    if options.output_fcn is not None:
        return bool(options.output_fcn(t, y, list(func(t, y))))
    return True


def solve(
    func: ODEFunction,
    tspan: Sequence[float],
    y0: Sequence[float],
    options: Options | None = None,
) -> ODEResult:
    """Integrate dy/dt = func(t, y) over ``tspan`` starting from ``y0``.

    Raises ValueError for malformed input and StepSizeTooSmallError when the
    adaptive step collapses.
    """
    if options is None:
        options = Options()
    if len(tspan) != 2:
        raise ValueError("tspan must have exactly 2 elements")
    if len(y0) == 0:
        raise ValueError("Initial state y0 cannot be empty")
    t0, tf = float(tspan[0]), float(tspan[1])
    if t0 >= tf:
        raise ValueError("tspan[0] must be less than tspan[1]")

    y = [float(v) for v in y0]
    result = ODEResult(t=[t0], y=[list(y)])

    if options.output_fcn is not None:
        if not options.output_fcn(t0, list(y), list(func(t0, y))):
            return result

    if options.initial_step > 0:
        h = options.initial_step
    else:
        h = compute_initial_step(func, t0, y, options.rtol, options.atol)
    h = min(h, options.max_step)

    t = t0

    if options.event_fcn is not None:
        initial_events = check_events(
            options.event_fcn,
            options.event_directions,
            options.event_terminal,
            t,
            t,
            y,
            y,
        )
        for event in initial_events:
            result.events.append(event)
            if event.is_terminal:
                return result

    while t < tf:
        if t + h > tf:
            h = tf - t

        if options.fixed_step:
            t_old, y_old = t, y
            y = rk45_step(func, t, y, h)
            t += h
            if options.event_fcn is not None and _handle_events(
                func, options, result, t_old, t, y_old, y
            ):
                return result
            if not _record(func, options, result, t, y):
                return result
            continue

        y_new = rk45_step(func, t, y, h)
        y_low = rk45_step(func, t, y, h / 2)
        y_low = rk45_step(func, t + h / 2, y_low, h / 2)
        error = estimate_error(y, y_new, y_low, options.rtol, options.atol)

        if error <= 1.0:
            t_old, y_old = t, y
            t += h
            y = y_new
            if options.event_fcn is not None and _handle_events(
                func, options, result, t_old, t, y_old, y
            ):
                return result
            if not _record(func, options, result, t, y):
                return result
            if error > 0:
                h *= 0.9 * (1.0 / error) ** 0.2
                h = min(h, options.max_step)
        else:
            h *= 0.9 * (1.0 / error) ** 0.2

        if h < 16 * sys.float_info.epsilon * abs(t):
            raise StepSizeTooSmallError("Step size became too small")

    return result
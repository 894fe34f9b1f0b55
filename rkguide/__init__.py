"""Runge-Kutta-Fehlberg ODE integration with events, seeker models and a missile guidance simulation."""

__version__ = "0.1.0"
__all__ = ["ode45", "seeker", "simulation"]
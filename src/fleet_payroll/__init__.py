"""Weekly driver payroll for a trucking back office."""

__version__ = "0.1.0"

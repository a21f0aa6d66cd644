"""EMS Trainer - clinical scenario simulation and evaluation engine."""

__version__ = "0.1.0"

"""ADMM time integration of elastic solids and cloth with hard pins, obstacle collisions and Anderson acceleration."""

__version__ = "0.1.0"
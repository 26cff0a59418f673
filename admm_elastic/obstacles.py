"""Analytic passive obstacles: floors, spheres and cylinders."""

from __future__ import annotations

import numpy as np

from .collider import PassiveCollision


def _vec3(v):
    arr = np.asarray(v, dtype=float).ravel()
    if arr.size != 3:
        raise ValueError(f"expected 3 components, got {arr.size}")
    return arr.copy()


def _normalized(v):
    norm = np.linalg.norm(v)
    return v / norm if norm > 0.0 else v.copy()


class Floor(PassiveCollision):
    """A horizontal plane at height ``y`` with its normal along +y."""

    def __init__(self, y):
        self.y = float(y)

    def signed_distance(self, x, payload):
        dx = x[1] - self.y
        if dx > payload.dx:
            return
        payload.dx = dx
        payload.point = np.array([x[0], self.y, x[2]], dtype=float)
        payload.normal = np.array([0.0, 1.0, 0.0])


class SlideFloor(PassiveCollision):
    """An arbitrary plane through ``center`` with the given normal."""

    def __init__(self, center, normal):
        self.center = _vec3(center)
        self.normal = _normalized(_vec3(normal))

    def signed_distance(self, x, payload):
        pos = np.asarray(x, dtype=float)
        dx = float((pos - self.center) @ self.normal)
        if dx > payload.dx:
            return
        payload.dx = dx
        payload.point = pos - dx * self.normal
        payload.normal = self.normal.copy()


class Sphere(PassiveCollision):
    """A solid sphere."""

    def __init__(self, center, rad):
        self.center = _vec3(center)
        self.rad = float(rad)

    def signed_distance(self, x, payload):
        direction = np.asarray(x, dtype=float) - self.center
        dx = float(np.linalg.norm(direction)) - self.rad
        if dx > payload.dx:
            return
        direction = _normalized(direction)
        payload.dx = dx
        payload.point = self.center + direction * self.rad
        payload.normal = direction


class PlaneAndHalfSphere(PassiveCollision):
    """A horizontal plane through ``center`` with a hemispherical bowl cut into it."""

    def __init__(self, center, rad):
        self.center = _vec3(center)
        self.rad = float(rad)

    def signed_distance(self, x, payload):
        pos = np.asarray(x, dtype=float)
        proj = np.array([pos[0] - self.center[0], 0.0, pos[2] - self.center[2]])
        dc = float(np.linalg.norm(proj)) - self.rad
        if dc > 0:
            dx = pos[1] - self.center[1]
            if dx > payload.dx:
                return
            payload.dx = dx
            payload.point = np.array([pos[0], self.center[1], pos[2]])
            payload.normal = np.array([0.0, 1.0, 0.0])
            return

        direction = pos - self.center
        dist = float(np.linalg.norm(direction))
        if pos[1] - self.center[1] > 0:
            dx = dist + self.rad
        else:
            dx = self.rad - dist
        if dx > payload.dx:
            return
        direction = _normalized(direction)
        payload.dx = dx
        payload.point = self.center + direction * self.rad
        payload.normal = direction


class Cylinder(PassiveCollision):
    """An infinite solid cylinder with its axis along z."""

    def __init__(self, center, rad):
        self.center = _vec3(center)
        self.rad = float(rad)

    def signed_distance(self, x, payload):
        pos = np.asarray(x, dtype=float)
        direction = np.array([pos[0], pos[1], 0.0]) - self.center
        dx = float(np.linalg.norm(direction)) - self.rad
        if dx > payload.dx:
            return
        direction = _normalized(direction)
        payload.dx = dx
        payload.point = self.center + direction * self.rad + np.array([0.0, 0.0, pos[2]])
        payload.normal = direction
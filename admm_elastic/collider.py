"""Collision detection against passive obstacles and dynamic (self) colliders."""

from __future__ import annotations

import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

import numpy as np

_FAR = sys.float_info.max


def _zeros3():
    return np.zeros(3)


@dataclass
class PassivePayload:
    """Result of testing one vertex against passive obstacles.

    ``dx`` is the lowest signed distance seen so far: positive means no
    collision, zero on the surface, negative inside an obstacle.
    """

    vert_idx: int
    dx: float = _FAR
    point: np.ndarray = field(default_factory=_zeros3)
    normal: np.ndarray = field(default_factory=_zeros3)


@dataclass
class DynamicPayload:
    """Result of testing one vertex against dynamic (deforming) colliders."""

    vert_idx: int
    self_tet: tuple = (-1, -1, -1, -1)
    dx: float = _FAR
    normal: np.ndarray = field(default_factory=_zeros3)
    face: tuple = (-1, -1, -1)
    barys: np.ndarray = field(default_factory=_zeros3)


class PassiveCollision(ABC):
    """An obstacle that is not simulated but which vertices collide with."""

    @abstractmethod
    def signed_distance(self, x, payload):
        """Update ``payload`` if ``x`` is closer to this object than recorded."""


class DynamicCollision(ABC):
    """A collider whose geometry follows the simulated vertices."""

    @abstractmethod
    def update(self, x):
        """Refresh internal structures from the current vertex positions."""

    @abstractmethod
    def signed_distance(self, x, payload):
        """Update ``payload`` if ``x`` penetrates this object."""


class Collider:
    """Holds collision objects and the hits found by the last detection."""

    def __init__(self):
        self.passive_objs: list[PassiveCollision] = []
        self.dynamic_objs: list[DynamicCollision] = []
        self.passive_hits: list[PassivePayload] = []
        self.dynamic_hits: list[DynamicPayload] = []

    def clear_hits(self):
        self.passive_hits.clear()
        self.dynamic_hits.clear()

    def detect_passive(self, idx, x):
        """Test one vertex against passive obstacles.

        Returns ``(normal, point)`` of the first penetrated obstacle, or
        ``None`` when the vertex is free.
        """
        if not self.passive_objs:
            return None
        pos = np.asarray(x, dtype=float)
        payload = PassivePayload(idx)
        for obj in self.passive_objs:
            obj.signed_distance(pos, payload)
            if payload.dx < 0:
                return payload.normal.copy(), payload.point.copy()
        return None

    def has_collisions(self):
        return bool(self.passive_hits) or bool(self.dynamic_hits)

    def detect(self, inds, x, with_passive=True):
        """Run collision detection and append hits.

        ``x`` holds three coordinates per vertex. If ``inds`` is empty,
        every vertex is tested; otherwise only the listed ones.
        """
        if not self.passive_objs and not self.dynamic_objs:
            return
        flat = np.asarray(x, dtype=float).ravel()
        indices = list(inds) if len(inds) else range(flat.size // 3)

        for obj in self.dynamic_objs:
            obj.update(flat)

        for idx in indices:
            pos = flat[idx * 3: idx * 3 + 3]

            if with_passive:
                p_payload = PassivePayload(idx)
                for obj in self.passive_objs:
                    obj.signed_distance(pos, p_payload)
                if p_payload.dx < 0:
                    self.passive_hits.append(p_payload)

            d_payload = DynamicPayload(idx)
            for obj in self.dynamic_objs:
                obj.signed_distance(pos, d_payload)
            if d_payload.dx < 0:
                self.dynamic_hits.append(d_payload)

    def add_passive_obj(self, obj):
        self.passive_objs.append(obj)

    def add_dynamic_obj(self, obj):
        self.dynamic_objs.append(obj)
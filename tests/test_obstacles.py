import numpy as np
import pytest

from admm_elastic.collider import PassivePayload
from admm_elastic.obstacles import (
    Cylinder,
    Floor,
    PlaneAndHalfSphere,
    SlideFloor,
    Sphere,
)


def test_floor_below_surface():
    p = PassivePayload(0)
    Floor(0.0).signed_distance(np.array([1.0, -0.5, 2.0]), p)
    assert p.dx == pytest.approx(-0.5)
    assert np.allclose(p.point, [1.0, 0.0, 2.0])
    assert np.allclose(p.normal, [0.0, 1.0, 0.0])


def test_floor_does_not_overwrite_closer_hit():
    p = PassivePayload(0, dx=-5.0)
    Floor(0.0).signed_distance(np.array([1.0, -0.5, 2.0]), p)
    assert p.dx == -5.0
    assert np.allclose(p.point, np.zeros(3))


def test_slide_floor_normalizes_and_projects_onto_plane():
    floor = SlideFloor([0.0, -1.0, 0.0], [0.5, np.sqrt(3.0) / 2.0, 0.0])
    assert np.linalg.norm(floor.normal) == pytest.approx(1.0)
    p = PassivePayload(0)
    x = np.array([0.3, -2.0, 0.4])
    floor.signed_distance(x, p)
    assert p.dx < 0
    assert float((p.point - floor.center) @ floor.normal) == pytest.approx(0.0)
    assert np.allclose(x - p.point, p.dx * floor.normal)


def test_slide_floor_rejects_bad_vector():
    with pytest.raises(ValueError):
        SlideFloor([0.0, 0.0], [0.0, 1.0, 0.0])


def test_sphere_inside_point():
    sphere = Sphere([0.0, 0.0, 0.0], 1.0)
    p = PassivePayload(0)
    sphere.signed_distance(np.array([0.5, 0.0, 0.0]), p)
    assert p.dx == pytest.approx(-0.5)
    assert np.allclose(p.point, [1.0, 0.0, 0.0])
    assert np.allclose(p.normal, [1.0, 0.0, 0.0])


def test_sphere_outside_point_is_positive():
    sphere = Sphere([1.0, 1.0, 1.0], 0.5)
    p = PassivePayload(0)
    sphere.signed_distance(np.array([4.0, 1.0, 1.0]), p)
    assert p.dx > 0
    assert np.linalg.norm(p.point - sphere.center) == pytest.approx(0.5)


def test_plane_and_half_sphere_outside_radius_acts_as_plane():
    obj = PlaneAndHalfSphere([0.0, -3.0, 0.0], 1.0)
    p = PassivePayload(0)
    obj.signed_distance(np.array([2.0, -3.5, 0.0]), p)
    assert p.dx == pytest.approx(-0.5)
    assert np.allclose(p.point, [2.0, -3.0, 0.0])
    assert np.allclose(p.normal, [0.0, 1.0, 0.0])


def test_plane_and_half_sphere_inside_bowl_below_plane():
    obj = PlaneAndHalfSphere([0.0, 0.0, 0.0], 1.0)
    p = PassivePayload(0)
    obj.signed_distance(np.array([0.0, -0.5, 0.0]), p)
    assert p.dx > 0
    assert np.linalg.norm(p.point - obj.center) == pytest.approx(1.0)
    assert np.allclose(p.normal, [0.0, -1.0, 0.0])


def test_plane_and_half_sphere_above_bowl_is_free():
    obj = PlaneAndHalfSphere([0.0, 0.0, 0.0], 1.0)
    p = PassivePayload(0)
    obj.signed_distance(np.array([0.0, 0.5, 0.0]), p)
    assert p.dx > 1.0


def test_cylinder_keeps_z_and_lies_on_surface():
    cyl = Cylinder([1.0, 2.0, 0.0], 0.4)
    p = PassivePayload(0)
    x = np.array([1.1, 2.0, 7.0])
    cyl.signed_distance(x, p)
    assert p.dx < 0
    assert p.point[2] == pytest.approx(7.0)
    assert np.linalg.norm(p.point[:2] - cyl.center[:2]) == pytest.approx(0.4)
    assert np.allclose(p.normal, [1.0, 0.0, 0.0])
import pytest

from ghorer_khabar.models import Address, Kitchen
from ghorer_khabar.services.delivery import (
    calculate_delivery_charge,
    calculate_distance,
    format_distance,
    get_delivery_info,
    is_valid_coordinates,
)


def test_distance_between_same_point_is_zero():
    assert calculate_distance(23.8103, 90.4125, 23.8103, 90.4125) == 0.0


def test_distance_dhanmondi_to_gulshan():
    distance = calculate_distance(23.7461, 90.3742, 23.7925, 90.4078)
    assert 6.0 < distance < 6.5


@pytest.mark.parametrize("distance, fee", [
    (0.5, 10),
    (1.0, 10),
    (1.5, 15),
    (2.0, 15),
    (3.0, 25),
    (4.0, 35),
    (5.5, 47),
    (7.0, 60),
])
def test_fee_tiers(distance, fee):
    assert calculate_delivery_charge(distance) == fee


def test_no_fee_outside_service_radius():
    assert calculate_delivery_charge(7.01) is None
    assert calculate_delivery_charge(9, max_distance_km=10) == 77


def test_missing_coordinates_use_flat_fee():
    info = get_delivery_info(None, 90.4, 23.8, 90.4)

    assert info.available is True
    assert info.distance is None
    assert info.charge == 60
    assert "flat delivery fee" in info.error


def test_far_buyer_is_not_served():
    info = get_delivery_info(23.8759, 90.3795, 23.7461, 90.3742)

    assert info.available is False
    assert info.charge is None
    assert "greater than 7 km" in info.error


def test_nearby_buyer_gets_tiered_fee():
    info = get_delivery_info(23.7580, 90.3800, 23.7461, 90.3742)

    assert info.available is True
    assert info.error is None
    assert info.charge == calculate_delivery_charge(info.distance)


def test_format_distance():
    assert format_distance(0.5) == "500 m"
    assert format_distance(3.456) == "3.5 km"


def test_coordinate_validation():
    assert is_valid_coordinates(23.8, 90.4)
    assert not is_valid_coordinates(None, 90.4)
    assert not is_valid_coordinates(91, 90.4)
    assert not is_valid_coordinates(float("nan"), 90.4)


@pytest.mark.parametrize("a, b", [
    ((23.7461, 90.3742), (23.7925, 90.4078)),
    ((23.8759, 90.3795), (23.7104, 90.4074)),
    ((23.8103, 90.4125), (23.8104, 90.4126)),
    ((-33.8688, 151.2093), (51.5074, -0.1278)),
])
def test_distance_is_symmetric_and_non_negative(a, b):
    forward = calculate_distance(*a, *b)

    assert forward == calculate_distance(*b, *a)
    assert forward >= 0


@pytest.mark.parametrize("bearing", [(1, 0), (0, 1), (1, 1), (-1, 0.5)])
def test_distance_grows_moving_away(bearing):
    origin = (23.7461, 90.3742)
    points = [
        (origin[0] + bearing[0] * step * 0.01, origin[1] + bearing[1] * step * 0.01)
        for step in range(1, 11)
    ]

    distances = [calculate_distance(*origin, *point) for point in points]

    assert all(near < far for near, far in zip(distances, distances[1:]))


@pytest.mark.parametrize("buyer", [
    (float("nan"), 90.38),
    (123.0, 90.38),
    (23.75, -200.0),
])
def test_invalid_coordinates_use_flat_fee(buyer):
    info = get_delivery_info(*buyer, 23.7461, 90.3742)

    assert info.available is True
    assert info.distance is None
    assert info.charge == 60
    assert info.error == "Address coordinates are invalid; a flat delivery fee was applied."


def test_kitchen_coordinates_come_from_one_source():
    address = Address(latitude=23.7461, longitude=90.3742)

    assert Kitchen(latitude=23.80, longitude=90.41, address=address).coordinates == (23.80, 90.41)
    assert Kitchen(latitude=23.80, longitude=None, address=address).coordinates == (23.7461, 90.3742)
    assert Kitchen(latitude=None, longitude=90.41, address=None).coordinates == (None, None)

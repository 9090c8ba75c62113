import pytest

from speckqc.geometry import VolumeGeometry
from tests.helpers.phantom import PIXEL_MM, THICKNESS_MM, make_group_volume, make_phantom_volume


@pytest.fixture
def geom():
    return VolumeGeometry((PIXEL_MM, PIXEL_MM), THICKNESS_MM)


@pytest.fixture
def group_volume():
    return make_group_volume()


@pytest.fixture
def phantom_volume():
    return make_phantom_volume()

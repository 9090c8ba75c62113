import time

import numpy as np

from speckqc.maxima import MaximaDetector, find_maxima, format_maxima
from tests.helpers.phantom import noisy_group_slice


def _image_with_peaks(peaks, shape=(40, 40), base=10.0):
    img = np.full(shape, base, dtype=np.float32)
    for x, y, v in peaks:
        img[y, x] = v
    return img


def test_find_maxima_sorted_by_intensity():
    img = _image_with_peaks([(5, 5, 300), (30, 10, 500), (20, 30, 400)])
    pts = find_maxima(img, prominence=50)
    assert pts.tolist() == [[30, 10], [20, 30], [5, 5]]


def test_prominence_suppresses_weak_peaks():
    img = _image_with_peaks([(5, 5, 300), (30, 10, 500), (20, 30, 40)])
    assert len(find_maxima(img, prominence=50)) == 2
    assert len(find_maxima(img, prominence=20)) == 3


def test_peak_on_shoulder_of_higher_peak_is_merged():
    img = np.full((20, 40), 0.0, dtype=np.float32)
    img[10, 5:35] = np.concatenate([np.linspace(0, 100, 15), np.linspace(100, 80, 15)])
    img[10, 30] = 90.0  # small bump on the falling side
    pts = find_maxima(img, prominence=20)
    assert pts.tolist() == [[19, 10]]


def test_plateau_reported_once():
    img = np.zeros((20, 20), dtype=np.float32)
    img[8:10, 8:11] = 200.0
    pts = find_maxima(img, prominence=10)
    assert len(pts) == 1
    x, y = pts[0]
    assert 8 <= x <= 10 and 8 <= y <= 9


def test_flat_image_gives_single_maximum():
    img = np.full((10, 10), 7.0, dtype=np.float32)
    assert len(find_maxima(img, prominence=5)) == 1


def test_format_maxima_layouts():
    pts = [(3, 4), (5, 6)]
    assert format_maxima(pts, header=False, index=False) == ["3", "4", "5", "6"]
    assert format_maxima(pts, header=True, index=False) == ["X", "Y", "3", "4", "5", "6"]
    assert format_maxima(pts, header=False, index=True) == ["1", "3", "4", "2", "5", "6"]
    assert format_maxima(pts, header=True, index=True) == ["X", "Y", "1", "3", "4", "2", "5", "6"]


def test_detector_formats_found_maxima():
    img = _image_with_peaks([(5, 5, 300), (30, 10, 500)])
    tokens = MaximaDetector(header=True, index=True)(img, 50)
    assert tokens == ["X", "Y", "1", "30", "10", "2", "5", "5"]


def test_equal_peaks_joined_above_prominence_reported_once():
    img = np.zeros((20, 40), dtype=np.float32)
    img[10, 5:36] = 80.0
    img[10, 5] = 100.0
    img[10, 35] = 100.0
    assert find_maxima(img, prominence=50).tolist() == [[5, 10]]
    assert find_maxima(img, prominence=10).tolist() == [[5, 10], [35, 10]]


def test_zero_prominence_keeps_every_isolated_peak():
    img = _image_with_peaks([(5, 5, 300), (30, 10, 500), (20, 30, 11)])
    assert len(find_maxima(img, prominence=0)) == 3


def test_noisy_slice_search_is_fast():
    img, centers = noisy_group_slice()

    t0 = time.perf_counter()
    pts = find_maxima(img, prominence=150)
    assert time.perf_counter() - t0 < 2.0
    assert sorted(map(tuple, pts.tolist())) == sorted(centers)

    t0 = time.perf_counter()
    noisy = find_maxima(img, prominence=10)
    assert time.perf_counter() - t0 < 2.0
    assert len(noisy) > 100

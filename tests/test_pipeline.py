import csv

import numpy as np
import pytest
import SimpleITK as sitk

from speckqc.errors import LandmarkSearchError, PreconditionError
from speckqc.imaging import rotate180
from speckqc.pipeline import analyze_group, analyze_volume, run_pipeline
from tests.helpers.phantom import BACKGROUND, PIXEL_MM, SPECK_XY, THICKNESS_MM, speck_peak


def _assert_matches_ground_truth(analysis):
    assert analysis.focal_slice == 4
    assert len(analysis.table) == 7
    assert analysis.labeled.markers.astype(int).tolist() == [list(p) for p in SPECK_XY]
    for r in analysis.table.rows:
        assert np.allclose(r.maxima, [speck_peak(k, r.slice) for k in range(6)])
        assert r.background_mean == pytest.approx(BACKGROUND)


def test_analyze_group_end_to_end(group_volume, geom):
    analysis = analyze_group(group_volume, geom, verbose=False)
    _assert_matches_ground_truth(analysis)
    assert not analysis.search.adjusted


def test_analyze_volume_end_to_end(phantom_volume, geom):
    analysis = analyze_volume(phantom_volume, geom, verbose=False)
    assert not analysis.flipped
    assert (analysis.edges.x, analysis.edges.y) == (20, 20)
    _assert_matches_ground_truth(analysis)


def test_analyze_volume_recovers_upside_down_phantom(phantom_volume, geom):
    analysis = analyze_volume(rotate180(phantom_volume), geom, verbose=False)
    assert analysis.flipped
    _assert_matches_ground_truth(analysis)


def test_focal_slice_too_close_to_stack_end(group_volume, geom):
    with pytest.raises(PreconditionError):
        analyze_group(group_volume[1:], geom, half_window=3, verbose=False)


def test_unconverged_search_surfaces(group_volume, geom):
    def always_seven(image, noise):
        return ["X", "Y"] + [str(v) for v in range(100, 114)]

    with pytest.raises(LandmarkSearchError):
        analyze_group(group_volume, geom, detector=always_seven, verbose=False)


def test_analyze_volume_rejects_empty_stack(geom):
    with pytest.raises(PreconditionError):
        analyze_volume(np.zeros((0, 10, 10), dtype=np.float32), geom, verbose=False)


@pytest.fixture
def phantom_file(tmp_path, phantom_volume):
    path = tmp_path / "phantom.nrrd"
    img = sitk.GetImageFromArray(phantom_volume)
    img.SetSpacing((PIXEL_MM, PIXEL_MM, THICKNESS_MM))
    sitk.WriteImage(img, str(path))
    return path


def test_run_pipeline_writes_results_and_qc(phantom_file, tmp_path):
    out_dir = tmp_path / "out"
    out = run_pipeline(
        phantom_file,
        out_dir=out_dir,
        pixel_spacing_mm=(PIXEL_MM, PIXEL_MM),
        slice_thickness_mm=THICKNESS_MM,
        do_qc=True,
        verbose=False,
    )
    assert out == out_dir / "phantom_SPECKS_r01.csv"

    lines = out.read_text().splitlines()
    assert lines[0].startswith("# focal_slice=4")
    rows = list(csv.reader(lines[1:]))
    assert rows[0][:3] == ["slice", "offset", "mean_max"]
    assert len(rows) == 8
    assert rows[4][:2] == ["4", "0"]
    assert float(rows[4][3]) == pytest.approx(speck_peak(0, 4))

    assert (out_dir / "QC" / "focal_overlay.png").exists()
    assert (out_dir / "QC" / "window_montage.png").exists()


def test_run_pipeline_numbers_repeat_runs(phantom_file, tmp_path):
    kwargs = dict(
        out_dir=tmp_path / "out",
        pixel_spacing_mm=(PIXEL_MM, PIXEL_MM),
        slice_thickness_mm=THICKNESS_MM,
        do_qc=False,
        verbose=False,
    )
    first = run_pipeline(phantom_file, **kwargs)
    second = run_pipeline(phantom_file, **kwargs)
    assert first.name.endswith("_r01.csv")
    assert second.name.endswith("_r02.csv")


def test_run_pipeline_without_metadata_fails(phantom_file):
    with pytest.raises(PreconditionError) as exc:
        run_pipeline(phantom_file, do_qc=False, verbose=False)
    assert exc.value.stage == "metadata"


def test_run_pipeline_missing_input(tmp_path):
    with pytest.raises(FileNotFoundError):
        run_pipeline(tmp_path / "nope.nrrd", verbose=False)

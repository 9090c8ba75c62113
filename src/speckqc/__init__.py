"""Speck-group focal plane QC package public API."""


def run_pipeline(*args, **kwargs):
    from .pipeline import run_pipeline as _run_pipeline

    return _run_pipeline(*args, **kwargs)


def analyze_volume(*args, **kwargs):
    from .pipeline import analyze_volume as _analyze_volume

    return _analyze_volume(*args, **kwargs)


__all__ = ["run_pipeline", "analyze_volume"]

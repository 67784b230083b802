"""
Shared fixtures: factories of observed, synthetic and partial records.
"""

import numpy as np
import pytest
from waveinv.inversion import PartialDerivativeRecord
from waveinv.inversion import UnknownParameter
from waveinv.inversion import WaveformRecord


HEADER = dict(phases='S', start_time=100., sampling_hz=1., min_period=10.,
              max_period=50.)


def make_pair(event, station, component='T', obs=None, syn=None, npts=10,
              **kwargs):
    """Observed and synthetic records of one time window."""
    header = dict(HEADER, **kwargs)
    obs = np.ones(npts) if obs is None else np.asarray(obs, dtype=float)
    syn = np.zeros(obs.size) if syn is None else np.asarray(syn, dtype=float)
    return (WaveformRecord(event, station, component, data=obs,
                           waveform_type='obs', **header),
            WaveformRecord(event, station, component, data=syn,
                           waveform_type='syn', **header))


def make_partial(event, station, parameter, component='T', data=None,
                 npts=10, **kwargs):
    """Partial derivative of one time window w.r.t. one unknown."""
    header = dict(HEADER, **kwargs)
    data = np.ones(npts) if data is None else np.asarray(data, dtype=float)
    return PartialDerivativeRecord(event, station, component,
                                   parameter_type=parameter.parameter_type,
                                   location=parameter.location,
                                   data=data, **header)


@pytest.fixture
def pair_factory():
    return make_pair


@pytest.fixture
def partial_factory():
    return make_partial


@pytest.fixture
def two_windows():
    """Two time windows of 10 samples each."""
    records = []
    records.extend(make_pair('EV1', 'STA1', obs=np.arange(1, 11), syn=np.full(10, 0.5)))
    records.extend(make_pair('EV2', 'STA2', obs=-np.arange(1, 11), syn=np.full(10, 0.5)))
    return records


@pytest.fixture
def unknown():
    return UnknownParameter('MU', (0., 0., 6000.), scale=2.)


@pytest.fixture
def unknowns():
    return [UnknownParameter('MU', (0., 0., 6000.), scale=2.),
            UnknownParameter('MU', (0., 5., 6000.), scale=1.5),
            UnknownParameter('LAMBDA', (0., 0., 6000.), scale=0.5)]


@pytest.fixture
def random_partials(unknowns):
    """One random partial per (window, unknown) pair of `two_windows`."""
    rng = np.random.default_rng(0)
    return [make_partial(event, station, parameter, data=rng.standard_normal(10))
            for event, station in (('EV1', 'STA1'), ('EV2', 'STA2'))
            for parameter in unknowns]

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Records
=======

In-memory representation of the inputs of the assembly: time-windowed
waveforms (observed and synthetic), partial-derivative waveforms, and the
unknown parameters of the Earth model. Reading these records from the binary
files produced by the forward-modelling codes is left to the caller.

"""
import warnings
import numpy as np
from waveinv.utils import read_information_lines

__all__ = ['WaveformRecord',
           'PartialDerivativeRecord',
           'UnknownParameter',
           'TimeWindow',
           'parse_phases',
           'read_unknowns',
           'write_unknowns']
COMPONENTS = ('Z', 'R', 'T')


def parse_phases(phases):
    """ Normalizes a set of seismic phases

    Parameters
    ----------
    phases : str or iterable of str or None
        Either a comma-separated string (e.g., 'S,ScS') or an iterable of
        phase names

    Returns
    -------
    frozenset of str
    """
    if phases is None:
        return frozenset()
    if isinstance(phases, str):
        phases = phases.split(',')
    return frozenset(p.strip() for p in phases if p.strip())


def _parse_position(position):
    if position is None:
        return None
    lat, lon = position
    return (float(lat), float(lon))


class WaveformRecord:
    """
    Time-windowed waveform, either observed or synthetic.

    Parameters
    ----------
    event : str
        Event identifier (e.g., a Global CMT ID)

    station : str
        Station identifier (e.g., 'STA_NET')

    component : {'Z', 'R', 'T'}
        Component of the recording

    phases : str or iterable of str
        Seismic phases included in the time window

    start_time : float
        Start time of the window (in s)

    sampling_hz : float
        Sampling rate (in Hz)

    min_period, max_period : float
        Lower and upper period of the passband (in s)

    data : array-like of shape (npts,), optional
        Waveform samples. If `None`, the record only carries the header
        information (see :attr:`has_data`)

    npts : int, optional
        Number of samples. If `None`, it is inferred from `data`

    waveform_type : {'obs', 'syn'}
        Whether the waveform is observed or synthetic. Default is 'obs'

    event_position, station_position : tuple of shape (2,), optional
        Latitude and longitude (in degrees) of the event and of the station


    Attributes
    ----------
    phases : frozenset of str

    data : ndarray of shape (npts,) or None

    npts : int
    """

    def __init__(self, event, station, component, phases, start_time,
                 sampling_hz, min_period, max_period, data=None, npts=None,
                 waveform_type='obs', event_position=None,
                 station_position=None):
        self.event = str(event)
        self.station = str(station)
        self.component = str(component).upper()
        if self.component not in COMPONENTS:
            raise ValueError('Unknown component: %s'%component)
        self.phases = parse_phases(phases)
        self.start_time = float(start_time)
        self.sampling_hz = float(sampling_hz)
        self.min_period = float(min_period)
        self.max_period = float(max_period)
        self.data = None if data is None else np.asarray(data, dtype=np.float64)
        if npts is None:
            npts = 0 if self.data is None else self.data.size
        self.npts = int(npts)
        if waveform_type not in ('obs', 'syn'):
            raise ValueError('Unknown waveform type: %s'%waveform_type)
        self.waveform_type = waveform_type
        self.event_position = _parse_position(event_position)
        self.station_position = _parse_position(station_position)


    def __repr__(self):
        return str(self)


    def __str__(self):
        string = '%s %s %s %s'%(self.event, self.station, self.component,
                                ','.join(sorted(self.phases)))
        string += ' %s %.3f %.3f %.3f %.3f %d'%(self.waveform_type,
                                                self.start_time,
                                                self.sampling_hz,
                                                self.min_period,
                                                self.max_period,
                                                self.npts)
        return string


    @property
    def has_data(self):
        """ `True` if the record carries `npts` waveform samples """
        return self.data is not None and self.data.size == self.npts


    @property
    def entry(self):
        """ (event, station, component) """
        return (self.event, self.station, self.component)


    @property
    def window_key(self):
        """ Identity of the time window, start time excluded """
        return (self.event, self.station, self.component, self.phases)


    def identity(self):
        """ Tuple identifying the record, used to detect duplicates """
        return (self.waveform_type,) + self.window_key + (self.start_time,
                                                          self.sampling_hz,
                                                          self.min_period,
                                                          self.max_period)


class PartialDerivativeRecord(WaveformRecord):
    """
    Partial-derivative waveform of a synthetic with respect to one unknown
    parameter.

    Parameters
    ----------
    parameter_type : str
        Type of the unknown parameter (e.g., 'MU', 'LAMBDA', 'Vs')

    location : tuple of float
        Position of the unknown parameter (e.g., latitude, longitude,
        radius of a voxel)

    *args, **kwargs
        Passed to :class:`WaveformRecord`. The waveform type is always 'syn'
    """

    def __init__(self, event, station, component, phases, start_time,
                 sampling_hz, min_period, max_period, parameter_type,
                 location, data=None, npts=None, event_position=None,
                 station_position=None):
        super().__init__(event, station, component, phases, start_time,
                         sampling_hz, min_period, max_period, data=data,
                         npts=npts, waveform_type='syn',
                         event_position=event_position,
                         station_position=station_position)
        self.parameter_type = str(parameter_type)
        self.location = tuple(float(x) for x in location)


    def __str__(self):
        string = super().__str__()
        string += ' %s %s'%(self.parameter_type,
                            ' '.join('%g'%x for x in self.location))
        return string


    @property
    def parameter_key(self):
        """ (parameter type, location) """
        return (self.parameter_type, self.location)


class UnknownParameter:
    """
    Unknown parameter of the Earth model, i.e. one column of A.

    Parameters
    ----------
    parameter_type : str
        Type of the parameter (e.g., 'MU', 'LAMBDA', 'Vs')

    location : tuple of float
        Position of the parameter (e.g., latitude, longitude, radius of a
        voxel)

    scale : float
        Physical size of the parameter (e.g., volume of the voxel), by which
        the partial derivatives are multiplied. Default is 1

    .. note::
        Two parameters with the same type and location are equal, even if
        their scale differs.
    """

    def __init__(self, parameter_type, location, scale=1.):
        self.parameter_type = str(parameter_type)
        self.location = tuple(float(x) for x in location)
        self.scale = float(scale)


    def __repr__(self):
        return 'UnknownParameter(%s)'%self


    def __str__(self):
        return '%s %s %r'%(self.parameter_type,
                           ' '.join(repr(x) for x in self.location),
                           self.scale)


    def __eq__(self, other):
        if not isinstance(other, UnknownParameter):
            return NotImplemented
        return self.key == other.key


    def __hash__(self):
        return hash(self.key)


    @property
    def key(self):
        """ (parameter type, location) """
        return (self.parameter_type, self.location)


class TimeWindow:
    """
    Pair of observed and synthetic records, occupying the rows
    [`start`, `start` + `npts`) of A and d.
    """

    def __init__(self, index, obs, syn, start):
        self.index = index
        self.obs = obs
        self.syn = syn
        self.start = start


    def __repr__(self):
        return 'TimeWindow(%d: %s, rows %d-%d)'%(self.index, self.obs,
                                                  self.start, self.stop)


    @property
    def npts(self):
        return self.obs.npts


    @property
    def stop(self):
        return self.start + self.npts


def write_unknowns(parameters, path):
    """ Writes the unknown parameters to disk, one per line

    Each line reads: type, location (one column per coordinate), scale.

    Parameters
    ----------
    parameters : list of UnknownParameter

    path : str
        Absolute path to the resulting file
    """
    with open(path, 'w') as f:
        f.write('# type location scale\n')
        for parameter in parameters:
            f.write('%s\n'%parameter)


def read_unknowns(path):
    """ Reads a file written by :func:`write_unknowns`

    Duplicated parameters are kept, but a warning is issued.

    Returns
    -------
    list of UnknownParameter
    """
    parameters = []
    for line in read_information_lines(path):
        parts = line.split()
        location = [float(x) for x in parts[1:-1]]
        parameters.append(UnknownParameter(parts[0], location, float(parts[-1])))
    if len(set(parameters)) != len(parameters):
        warnings.warn('There is duplication in %s'%path)
    return parameters

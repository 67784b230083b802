#!/usr/bin/env python3
# -*- coding: utf-8 -*-
r"""
Data Vector
===========

The data vector of a waveform inversion is obtained by concatenating the
residual waveforms of all the time windows in the data set. For the
:math:`i`\ th time window, the residual reads

.. math::

    {\bf d}_i = {\bf W}_i \left( {\bf u}^{obs}_i - {\bf u}^{syn}_i \right),

where :math:`{\bf u}^{obs}_i` and :math:`{\bf u}^{syn}_i` denote the observed
and synthetic waveforms, and :math:`{\bf W}_i` a diagonal weighting matrix
(see :mod:`waveinv.inversion.weighting`). The samples of the :math:`i`\ th
time window occupy the rows :math:`[s_i, s_i + n_i)` of the data vector,
where :math:`n_i` is its number of samples and :math:`s_i = \sum_{k<i} n_k`.
The same row space is shared by the design matrix
(see :mod:`waveinv.inversion.amatrix`).

"""
from collections import defaultdict
import numpy as np
from waveinv.exceptions import InputInconsistencyException
from waveinv.exceptions import DegenerateObservationException
from waveinv.exceptions import TimeMisalignmentException
from waveinv.inversion.records import TimeWindow
from waveinv.utils import linf_norm

__all__ = ['DataVectorAssembler',
           'START_TIME_DELAY_LIMIT',
           'TIME_SHIFT_MAX',
           'PERIOD_EPSILON']
START_TIME_DELAY_LIMIT = 15.
TIME_SHIFT_MAX = 20.
PERIOD_EPSILON = 0.1


def _matches(record, other):
    """ Whether two records with the same window key belong to the same
    time window
    """
    return (record.sampling_hz == other.sampling_hz
            and abs(record.start_time - other.start_time) < TIME_SHIFT_MAX
            and abs(record.min_period - other.min_period) < PERIOD_EPSILON
            and abs(record.max_period - other.max_period) < PERIOD_EPSILON)


def _closest(record, candidates):
    """ Closest (in start time) of the matching candidates, or `None` """
    best, best_shift = None, None
    for candidate in candidates:
        if not _matches(record, candidate[1]):
            continue
        shift = abs(record.start_time - candidate[1].start_time)
        if best is None or shift < best_shift:
            best, best_shift = candidate, shift
    return best


class DataVectorAssembler:
    r"""
    Pairs observed and synthetic waveforms into time windows, and builds the
    data vector :math:`\bf d` in Am=d.

    Parameters
    ----------
    records : iterable of waveinv.inversion.records.WaveformRecord
        Observed and synthetic records, in any order. Each synthetic record
        is paired with the observed record sharing event, station,
        component, phases, sampling rate, and passband, and having the
        closest start time (within 20 s). Synthetic records without an
        observed counterpart are discarded

    verbose : bool
        If `True` (default), information about the time windows is
        displayed in console


    Attributes
    ----------
    timewindows : list of waveinv.inversion.records.TimeWindow
        Time windows, in the order of the synthetic records

    n_timewindow : int
        Number of time windows

    total_npts : int
        Number of rows of the data vector, i.e. the sum of the number of
        samples of all the time windows

    num_independent : float
        Estimate of the number of independent data, i.e. the sum over the
        time windows of npts / min_period / sampling_hz


    Raises
    ------
    InputInconsistencyException
        If any record lacks waveform data, if some record is duplicated, or
        if observed and synthetic waveforms of a time window have different
        lengths

    TimeMisalignmentException
        If the start times of observed and synthetic waveforms differ by
        15 s or more

    DegenerateObservationException
        If an observed waveform is zero or contains nan values


    Examples
    --------
    >>> from waveinv.inversion import DataVectorAssembler
    >>> dvector = DataVectorAssembler(records)
     2 timewindows are used
    >>> d = dvector.build_weighted_d()
    >>> residuals = dvector.decompose(d)

    .. hint::
        :meth:`which_timewindow` relies on a hash index, so that the
        records of partial derivatives can be assigned to their time window
        in constant time.
    """

    def __init__(self, records, verbose=True):
        self.verbose = verbose
        records = list(records)
        no_data = [record for record in records if not record.has_data]
        if no_data:
            raise InputInconsistencyException(
                *no_data,
                message='%d input records do not have waveform data.'%len(no_data)
                )
        obs_list, syn_list = self._pair_up(records)
        self.n_timewindow = len(syn_list)
        if self.verbose:
            print(' %d timewindow%s used'%(self.n_timewindow,
                                           ' is' if self.n_timewindow==1 else 's are'))

        self.timewindows = []
        self._obs_vecs = []
        self._syn_vecs = []
        self._obs_index = defaultdict(list)
        self._syn_index = defaultdict(list)
        npts = 0
        for i, (obs, syn) in enumerate(zip(obs_list, syn_list)):
            if obs.npts != syn.npts:
                raise InputInconsistencyException(
                    obs, syn,
                    message='Observed and synthetic waveforms differ in length.'
                    )
            if abs(obs.start_time - syn.start_time) >= START_TIME_DELAY_LIMIT:
                raise TimeMisalignmentException(obs, syn)
            amplitude = linf_norm(obs.data)
            if np.isnan(amplitude) or amplitude == 0:
                raise DegenerateObservationException(obs, amplitude)
            self.timewindows.append(TimeWindow(i, obs, syn, npts))
            self._obs_vecs.append(obs.data.copy())
            self._syn_vecs.append(syn.data.copy())
            self._obs_index[obs.window_key].append((i, obs))
            self._syn_index[syn.window_key].append((i, syn))
            npts += obs.npts
        self.total_npts = npts
        self.num_independent = self._compute_num_independent()


    def __repr__(self):
        return str(self)


    def __str__(self):
        string = '-------------------------------------\n'
        string += 'DATA VECTOR\n'
        string += 'Number of timewindows : %d\n'%self.n_timewindow
        string += 'Number of data points : %d\n'%self.total_npts
        string += 'Independent data : %.1f\n'%self.num_independent
        string += '-------------------------------------'
        return string


    def _pair_up(self, records):
        obs_index = defaultdict(list)
        identities = set()
        syn_list = []
        nobs = 0
        for record in records:
            identity = record.identity()
            if identity in identities:
                raise InputInconsistencyException(
                    record, message='Duplicate %s records detected.'%record.waveform_type
                    )
            identities.add(identity)
            if record.waveform_type == 'obs':
                obs_index[record.window_key].append((nobs, record))
                nobs += 1
            else:
                syn_list.append(record)
        if self.verbose:
            print('Number of obs records before pairing: %d'%nobs)
            if nobs != len(syn_list):
                print('The numbers of obs (%d) and syn (%d) records differ'%(
                    nobs, len(syn_list)))

        paired_obs, paired_syn = [], []
        used = set()
        for syn in syn_list:
            candidate = _closest(syn, obs_index.get(syn.window_key, ()))
            if candidate is None:
                if self.verbose:
                    print("Didn't find obs for", syn)
                continue
            obs = candidate[1]
            if id(obs) in used:
                raise InputInconsistencyException(
                    obs, syn, message='Observed record paired more than once.'
                    )
            used.add(id(obs))
            paired_obs.append(obs)
            paired_syn.append(syn)
        if self.verbose:
            print('Number of pairs created: %d'%len(paired_syn))
        return paired_obs, paired_syn


    def _compute_num_independent(self):
        # npts = (min_period * sampling_hz) * (number of independent data)
        num = 0.
        for window in self.timewindows:
            obs = window.obs
            num += obs.npts / obs.min_period / obs.sampling_hz
        return num


    def _weights_of_window(self, weights, i):
        npts = self.timewindows[i].npts
        w = np.asarray(weights[i], dtype=np.float64)
        if w.ndim == 0:
            return np.full(npts, float(w))
        if w.shape != (npts,):
            raise ValueError('Weighting of timewindow %d has length %d, should'
                             ' be %d'%(i, w.size, npts))
        return w


    def check_weights(self, weights):
        r""" Expands the weighting to one vector per time window

        Parameters
        ----------
        weights : list or None
            One weighting vector, or scalar, per time window. If `None`,
            every weight is 1

        Returns
        -------
        list of ndarray
            The :math:`i`\ th array has the length of the :math:`i`\ th time
            window

        Raises
        ------
        ValueError
            If the number of time windows, or the length of a vector, does
            not match
        """
        if weights is None:
            return [np.ones(window.npts) for window in self.timewindows]
        if len(weights) != self.n_timewindow:
            raise ValueError('%d weighting vectors given for %d timewindows'%(
                len(weights), self.n_timewindow))
        return [self._weights_of_window(weights, i)
                for i in range(self.n_timewindow)]


    def which_timewindow(self, record):
        """ Index of the time window the input record belongs to

        Observed records are searched for among the observed waveforms,
        synthetic and partial-derivative records among the synthetic ones.

        Parameters
        ----------
        record : waveinv.inversion.records.WaveformRecord

        Returns
        -------
        int
            Index of the time window, -1 if no time window matches
        """
        index = self._obs_index if record.waveform_type == 'obs' else self._syn_index
        candidate = _closest(record, index.get(record.window_key, ()))
        return -1 if candidate is None else candidate[0]


    def compose(self, vectors):
        r""" Concatenates one vector per time window into a full vector

        Parameters
        ----------
        vectors : list of ndarray
            The :math:`i`\ th vector must have the length of the
            :math:`i`\ th time window

        Returns
        -------
        ndarray of shape (total_npts,)
        """
        if len(vectors) != self.n_timewindow:
            raise ValueError('The number of input vectors (%d) is invalid, '
                             'should be %d'%(len(vectors), self.n_timewindow))
        v = np.zeros(self.total_npts)
        for window, vector in zip(self.timewindows, vectors):
            vector = np.asarray(vector, dtype=np.float64)
            if vector.shape != (window.npts,):
                raise ValueError('Input vector of timewindow %d is invalid'%window.index)
            v[window.start: window.stop] = vector
        return v


    def decompose(self, vector):
        """ Splits a full vector into one vector per time window

        Parameters
        ----------
        vector : ndarray of shape (total_npts,)

        Returns
        -------
        list of ndarray
        """
        vector = np.asarray(vector, dtype=np.float64)
        if vector.shape != (self.total_npts,):
            raise ValueError('The length of input vector %d is invalid, should'
                             ' be %d'%(vector.size, self.total_npts))
        return [vector[window.start: window.stop].copy()
                for window in self.timewindows]


    def build_weighted_d(self, weights=None):
        """ Builds the data vector, weighted as W(obs - syn)

        Parameters
        ----------
        weights : list, optional
            One weighting vector (or scalar) per time window. If `None`, no
            weighting is applied

        Returns
        -------
        ndarray of shape (total_npts,)
        """
        weights = self.check_weights(weights)
        return self.compose([(obs - syn) * w for obs, syn, w in
                             zip(self._obs_vecs, self._syn_vecs, weights)])


    def full_obs_vec(self):
        """ Observed waveforms of all the time windows, concatenated """
        return self.compose(self._obs_vecs)


    def full_obs_vec_with_weight(self, weights):
        """ Observed waveforms of all the time windows, weighted and
        concatenated
        """
        weights = self.check_weights(weights)
        return self.compose([obs * w for obs, w in zip(self._obs_vecs, weights)])


    def full_syn_vec(self):
        """ Synthetic waveforms of all the time windows, concatenated """
        return self.compose(self._syn_vecs)


    def full_syn_vec_with_weight(self, weights):
        """ Synthetic waveforms of all the time windows, weighted and
        concatenated
        """
        weights = self.check_weights(weights)
        return self.compose([syn * w for syn, w in zip(self._syn_vecs, weights)])


    def npts_of_window(self, i):
        return self.timewindows[i].npts


    def npts_array(self):
        return np.array([window.npts for window in self.timewindows], dtype=int)


    def start_point(self, i):
        r""" Row at which the :math:`i`\ th time window starts """
        return self.timewindows[i].start


    def obs_record(self, i):
        return self.timewindows[i].obs


    def syn_record(self, i):
        return self.timewindows[i].syn


    def obs_vec(self, i):
        return self._obs_vecs[i].copy()


    def syn_vec(self, i):
        return self._syn_vecs[i].copy()

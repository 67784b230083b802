#!/usr/bin/env python3
# -*- coding: utf-8 -*-
r"""
Weighting
=========

The data vector and the design matrix are weighted as

.. math::

    {\bf W A \cdot m} = {\bf W d},

where :math:`\bf W` is a diagonal matrix, constant over the samples of each
time window. The normal equations therefore read
:math:`{\bf A}^T {\bf W}^T {\bf W A \cdot m} = {\bf A}^T {\bf W}^T {\bf W d}`:
since the weights are applied twice, the balancing factors below are
square-rooted.

For the :math:`i`\ th time window, the weight is the product of

- :math:`1 / \| {\bf u}^{obs}_i \|_\infty`, if `amplitude_reciprocal`
- a factor specific to the component (Z, R, or T), divided by
  :math:`\sqrt{N_c / N}` if `balance_component`, where :math:`N_c` is the
  number of time windows on the same component and :math:`N` the total
- :math:`1 / \sqrt{N_f / N_{SH+PSV}}` for each phase family `f` (SH or PSV)
  the time window belongs to, if `balance_phase`
- :math:`1 / \sqrt{N_g}` if `balance_geometry`, where :math:`N_g` is the
  number of time windows on the same component whose event and station lie
  within 2.5° of those of the :math:`i`\ th time window (itself included)
- :math:`\sqrt{w_e}` for each map of entry weights, where :math:`w_e` is the
  weight given to the (event, station, component) of the time window

"""
import inspect
from collections import Counter
import numpy as np
from waveinv.exceptions import InputInconsistencyException
from waveinv.exceptions import MissingDataException
from waveinv.utils import epicentral_distance, linf_norm

__all__ = ['WeightingConfig',
           'WeightAssigner',
           'IDENTITY',
           'phase_families',
           'GEOMETRY_DISTANCE']
GEOMETRY_DISTANCE = 2.5
P_LEGS = ('P', 'p', 'K')


def phase_families(phases, component):
    """ Classifies a set of phases as SH, PSV, or both

    A phase with a P leg (P, p, or K) is PSV. A pure S phase is SH on the
    transverse component, PSV on the vertical and radial ones.

    Parameters
    ----------
    phases : iterable of str

    component : {'Z', 'R', 'T'}

    Returns
    -------
    set of str
        Subset of {'SH', 'PSV'}; empty if no phase can be classified
    """
    families = set()
    for phase in phases:
        if any(leg in phase for leg in P_LEGS):
            families.add('PSV')
        elif 'S' in phase or 's' in phase:
            families.add('SH' if component == 'T' else 'PSV')
    return families


class WeightingConfig:
    """
    Options ruling the weighting of the time windows. All of them are
    independent and switched off by default.

    Parameters
    ----------
    amplitude_reciprocal : bool
        If `True`, each time window is divided by the maximum absolute
        amplitude of the observed waveform

    balance_component : bool
        If `True`, the weights are balanced according to the number of
        time windows on each component

    factor_z, factor_r, factor_t : float
        Factors multiplying the time windows on the Z, R, and T components
        (default is 1)

    balance_phase : bool
        If `True`, the weights are balanced according to the number of
        SH and PSV time windows

    balance_geometry : bool
        If `True`, the weights are balanced according to the number of time
        windows having (approximately) the same event and station

    entry_weights : list of dict, optional
        Each dict maps (event, station, component) to a positive weight,
        see :func:`waveinv.utils.read_entry_weights`
    """

    def __init__(self, amplitude_reciprocal=False, balance_component=False,
                 factor_z=1., factor_r=1., factor_t=1., balance_phase=False,
                 balance_geometry=False, entry_weights=None):
        self.amplitude_reciprocal = bool(amplitude_reciprocal)
        self.balance_component = bool(balance_component)
        self.factor_z = float(factor_z)
        self.factor_r = float(factor_r)
        self.factor_t = float(factor_t)
        self.balance_phase = bool(balance_phase)
        self.balance_geometry = bool(balance_geometry)
        self.entry_weights = [dict(w) for w in entry_weights or []]


    def __repr__(self):
        return str(self)


    def __str__(self):
        string = '-------------------------------------\n'
        string += 'WEIGHTING\n'
        string += 'Amplitude reciprocal : %s\n'%self.amplitude_reciprocal
        string += 'Component factors (Z, R, T) : %g, %g, %g\n'%(self.factor_z,
                                                               self.factor_r,
                                                               self.factor_t)
        string += 'Balance component : %s\n'%self.balance_component
        string += 'Balance phase : %s\n'%self.balance_phase
        string += 'Balance geometry : %s\n'%self.balance_geometry
        string += 'Entry weight maps : %d\n'%len(self.entry_weights)
        string += '-------------------------------------'
        return string


    @classmethod
    def from_dict(cls, options):
        """ Builds the configuration from a dictionary of options

        Raises
        ------
        ValueError
            If an option is not recognized
        """
        valid = inspect.signature(cls).parameters
        unknown = set(options) - set(valid)
        if unknown:
            raise ValueError('Unrecognized weighting options: %s'%', '.join(sorted(unknown)))
        return cls(**options)


    def component_factor(self, component):
        return {'Z': self.factor_z,
                'R': self.factor_r,
                'T': self.factor_t}[component]


class WeightAssigner:
    """
    Computes the weight of each time window of a
    :class:`waveinv.inversion.dvector.DataVectorAssembler`.

    Parameters
    ----------
    config : WeightingConfig, optional
        If `None`, a configuration is built from `**kwargs`

    **kwargs
        Options passed to :class:`WeightingConfig`


    Examples
    --------
    >>> from waveinv.inversion import WeightAssigner
    >>> assigner = WeightAssigner(amplitude_reciprocal=True,
    ...                           balance_geometry=True)
    >>> weights = assigner.weigh(dvector)
    >>> d = dvector.build_weighted_d(weights)
    """

    def __init__(self, config=None, **kwargs):
        if config is None:
            config = WeightingConfig(**kwargs)
        elif kwargs:
            raise ValueError('Pass either a WeightingConfig or keyword options')
        self.config = config


    def __repr__(self):
        return 'WeightAssigner\n%s'%self.config


    def factors(self, dvector):
        """ One weight per time window

        Parameters
        ----------
        dvector : waveinv.inversion.dvector.DataVectorAssembler

        Returns
        -------
        ndarray of shape (dvector.n_timewindow,)
        """
        config = self.config
        obs_records = [dvector.obs_record(i) for i in range(dvector.n_timewindow)]
        weights = np.ones(len(obs_records))
        if not obs_records:
            return weights

        if config.amplitude_reciprocal:
            weights /= [linf_norm(dvector.obs_vec(i)) for i in range(len(weights))]

        components = [record.component for record in obs_records]
        weights *= [config.component_factor(c) for c in components]
        if config.balance_component:
            counts = Counter(components)
            total = len(components)
            weights /= np.sqrt([counts[c] / total for c in components])

        if config.balance_phase:
            weights /= self._phase_balance(obs_records)

        if config.balance_geometry:
            weights /= np.sqrt(self._geometry_counts(obs_records))

        for entry_weights in config.entry_weights:
            weights *= np.sqrt(self._entry_weights(obs_records, entry_weights))

        return weights


    def weigh(self, dvector):
        r""" One weighting vector per time window, constant over its samples

        Parameters
        ----------
        dvector : waveinv.inversion.dvector.DataVectorAssembler

        Returns
        -------
        list of ndarray
            The :math:`i`\ th array has the length of the :math:`i`\ th time
            window
        """
        factors = self.factors(dvector)
        return [np.full(dvector.npts_of_window(i), factor)
                for i, factor in enumerate(factors)]


    @staticmethod
    def _phase_balance(obs_records):
        families = [phase_families(r.phases, r.component) for r in obs_records]
        counts = Counter(f for family in families for f in family)
        total = sum(1 for family in families if family)
        balance = np.ones(len(obs_records))
        for i, family in enumerate(families):
            for f in family:
                balance[i] *= np.sqrt(counts[f] / total)
        return balance


    @staticmethod
    def _geometry_counts(obs_records):
        missing = [r for r in obs_records
                   if r.event_position is None or r.station_position is None]
        if missing:
            raise InputInconsistencyException(
                *missing,
                message='Event and station positions are needed to balance geometry.'
                )
        components = np.array([r.component for r in obs_records])
        events = np.array([r.event_position for r in obs_records])
        stations = np.array([r.station_position for r in obs_records])
        counts = np.zeros(len(obs_records))
        for i, record in enumerate(obs_records):
            same = np.flatnonzero(components == record.component)
            event_dist = epicentral_distance(events[i, 0], events[i, 1],
                                             events[same, 0], events[same, 1])
            station_dist = epicentral_distance(stations[i, 0], stations[i, 1],
                                               stations[same, 0], stations[same, 1])
            close = (event_dist < GEOMETRY_DISTANCE) & (station_dist < GEOMETRY_DISTANCE)
            counts[i] = np.count_nonzero(close)
        return counts


    @staticmethod
    def _entry_weights(obs_records, entry_weights):
        missing = [r for r in obs_records if r.entry not in entry_weights]
        if missing:
            raise MissingDataException(
                *missing,
                message='%d timewindows have no entry weight.'%len(missing)
                )
        return np.array([entry_weights[r.entry] for r in obs_records])


IDENTITY = WeightAssigner()

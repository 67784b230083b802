#!/usr/bin/env python3
# -*- coding: utf-8 -*-
r"""
Normal Equations
================

The weighted linear problem

.. math::

    {\bf W A \cdot m} = {\bf W d}

is solved downstream through its normal equations

.. math::

    {\bf A}^T {\bf W}^T {\bf W A \cdot m} = {\bf A}^T {\bf W}^T {\bf W d}.

:class:`NormalEquationAssembler` takes care of the whole assembly: the
observed and synthetic waveforms are paired into time windows
(:class:`waveinv.inversion.dvector.DataVectorAssembler`), each time window is
weighted (:class:`waveinv.inversion.weighting.WeightAssigner`), the partial
derivatives are arranged into the design matrix
(:class:`waveinv.inversion.amatrix.DesignMatrixAssembler`), and finally
:math:`{\bf A}^T {\bf A}` and :math:`{\bf A}^T {\bf d}` are computed in
parallel (:class:`waveinv.linalg.ParallelMatrixEngine`) on first access.

Besides the normal equations, the norms of the residual and observed
vectors and the number of independent data are made available, for use in
model selection (e.g., variance reduction or AIC).

"""
import os
import threading
import numpy as np
from waveinv.exceptions import InputInconsistencyException
from waveinv.inversion.amatrix import DesignMatrixAssembler
from waveinv.inversion.dvector import DataVectorAssembler
from waveinv.inversion.records import write_unknowns
from waveinv.inversion.weighting import WeightAssigner, WeightingConfig
from waveinv.linalg import ParallelMatrixEngine
from waveinv.utils import compute_variance
from waveinv.utils import write_vector, write_matrix, write_dinfo
from waveinv.utils import load_pickle, save_pickle

__all__ = ['NormalEquationAssembler']


def _as_assigner(weighting):
    if weighting is None:
        return WeightAssigner()
    if isinstance(weighting, WeightAssigner):
        return weighting
    if isinstance(weighting, WeightingConfig):
        return WeightAssigner(weighting)
    if isinstance(weighting, dict):
        return WeightAssigner(WeightingConfig.from_dict(weighting))
    raise TypeError('Unsupported weighting: %r'%type(weighting))


class NormalEquationAssembler:
    r"""
    Assembles the normal equations
    :math:`{\bf A}^T {\bf A \cdot m} = {\bf A}^T {\bf d}` of a weighted
    waveform inversion.

    Parameters
    ----------
    records : iterable of waveinv.inversion.records.WaveformRecord
        Observed and synthetic waveforms, see
        :class:`waveinv.inversion.dvector.DataVectorAssembler`

    partials : iterable of waveinv.inversion.records.PartialDerivativeRecord
        Partial derivatives of the synthetic waveforms with respect to the
        unknown parameters

    parameters : list of waveinv.inversion.records.UnknownParameter
        Unknown parameters. Their order defines the columns of
        :math:`\bf A`

    weighting : WeightAssigner or WeightingConfig or dict, optional
        Weighting of the time windows. If `None` (default), no weighting is
        applied

    fill_empty_partial : bool
        If `True`, missing partial derivatives are replaced by zeros (a
        warning is issued). Otherwise (default), they raise a
        :class:`waveinv.exceptions.MissingDataException`

    ata : ndarray of shape (n, n), optional
        Previously computed :math:`{\bf A}^T {\bf A}`, which will be returned
        by :attr:`ata` instead of being computed again. `n` must be equal to
        the number of unknown parameters

    n_cpus : int, optional
        Number of threads used in the assembly. If `None` (default), all the
        available CPUs are used

    verbose : bool
        If `True` (default), information about the assembly is displayed in
        console


    Attributes
    ----------
    dvector : waveinv.inversion.dvector.DataVectorAssembler

    weighting : waveinv.inversion.weighting.WeightAssigner

    parameters : list of waveinv.inversion.records.UnknownParameter

    weights : list of ndarray
        Weighting vector of each time window

    a : ndarray of shape (m, n)
        Weighted design matrix

    d : ndarray of shape (m,)
        Weighted residual vector

    obs : ndarray of shape (m,)
        Weighted observed vector

    normalized_variance : float
        :math:`\| {\bf d} \|^2 / \| {\bf obs} \|^2`

    num_independent : float
        Estimate of the number of independent data

    d_norm, obs_norm : float
        Euclidean norms of `d` and `obs`


    Raises
    ------
    InputInconsistencyException
        If the precomputed `ata` does not have shape (n, n)

    ValueError
        If the weighted observed vector is null, e.g. when no time window
        is left after pairing


    Examples
    --------
    >>> from waveinv import NormalEquationAssembler
    >>> neq = NormalEquationAssembler(records, partials, parameters,
    ...                               weighting={'amplitude_reciprocal': True},
    ...                               n_cpus=8)
    >>> neq.ata.shape
    (300, 300)
    >>> neq.write('/path/to/inversion/dir')
    >>> neq.save('/path/to/inversion/neq.pickle')
    """

    def __init__(self, records, partials, parameters, weighting=None,
                 fill_empty_partial=False, ata=None, n_cpus=None, verbose=True):
        self.verbose = verbose
        self.parameters = list(parameters)
        self.engine = ParallelMatrixEngine(n_cpus=n_cpus)
        if ata is not None:
            ata = np.asarray(ata, dtype=np.float64)
            n = len(self.parameters)
            if ata.shape != (n, n):
                raise InputInconsistencyException(
                    'AtA shape: %s, number of unknowns: %d'%(ata.shape, n),
                    message='The input AtA does not match the unknowns.'
                    )
        self._ata = ata
        self._atd = None
        self._lock = threading.Lock()

        self.dvector = DataVectorAssembler(records, verbose=verbose)
        self.weighting = _as_assigner(weighting)
        self.weights = self.weighting.weigh(self.dvector)
        builder = DesignMatrixAssembler(self.parameters,
                                        self.dvector,
                                        n_cpus=self.engine.n_cpus,
                                        verbose=verbose)
        self.a = builder.build_with_weight(partials,
                                           self.weights,
                                           fill_empty_partial=fill_empty_partial)
        self.d = self.dvector.build_weighted_d(self.weights)
        self.obs = self.dvector.full_obs_vec_with_weight(self.weights)
        self.normalized_variance = compute_variance(self.d, self.obs)
        self.num_independent = self.dvector.num_independent
        self.d_norm = float(np.linalg.norm(self.d))
        self.obs_norm = float(np.linalg.norm(self.obs))
        if self.verbose:
            print(self)


    def __repr__(self):
        return str(self)


    def __str__(self):
        string = '-------------------------------------\n'
        string += 'NORMAL EQUATIONS\n'
        string += 'Number of timewindows : %d\n'%self.dvector.n_timewindow
        string += 'Number of data points : %d\n'%self.dvector.total_npts
        string += 'Number of unknowns : %d\n'%len(self.parameters)
        string += 'Independent data : %.1f\n'%self.num_independent
        string += 'Normalized variance : %.5f\n'%self.normalized_variance
        string += '-------------------------------------'
        return string


    def __getstate__(self):
        state = self.__dict__.copy()
        del state['_lock']
        return state


    def __setstate__(self, state):
        self.__dict__.update(state)
        self._lock = threading.Lock()


    @property
    def ata(self):
        r""" :math:`{\bf A}^T {\bf A}`, computed on first access """
        with self._lock:
            if self._ata is None:
                self._ata = self.engine.compute_ata(self.a)
            return self._ata


    @property
    def atd(self):
        r""" :math:`{\bf A}^T {\bf d}`, computed on first access """
        with self._lock:
            if self._atd is None:
                self._atd = self.engine.pre_multiply(self.d, self.a)
            return self._atd


    def write(self, outdir):
        """ Writes the normal equations to disk

        The following files are created in `outdir`: ata.lst (one row of
        AtA per line), atd.lst (one value per line), dInfo.inf (number of
        independent data, norms of d and obs), and unknowns.lst.

        Parameters
        ----------
        outdir : str
            Absolute path to the output directory. It is created if it does
            not exist
        """
        os.makedirs(outdir, exist_ok=True)
        write_matrix(self.ata, os.path.join(outdir, 'ata.lst'))
        write_vector(self.atd, os.path.join(outdir, 'atd.lst'))
        write_dinfo(self.num_independent,
                    self.d_norm,
                    self.obs_norm,
                    os.path.join(outdir, 'dInfo.inf'))
        write_unknowns(self.parameters, os.path.join(outdir, 'unknowns.lst'))
        if self.verbose:
            print('Normal equations written to %s'%outdir)


    def save(self, path):
        """ Saves the instance to a .pickle file

        Parameters
        ----------
        path : str
            Absolute path to the resulting file
        """
        save_pickle(path, self)


    @classmethod
    def load(cls, path):
        """ Loads an instance previously saved via :meth:`save`

        Parameters
        ----------
        path : str
            Absolute path to the .pickle file

        Returns
        -------
        NormalEquationAssembler
        """
        obj = load_pickle(path)
        if not isinstance(obj, cls):
            raise TypeError('%s does not contain a %s'%(path, cls.__name__))
        return obj

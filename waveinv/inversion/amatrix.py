#!/usr/bin/env python3
# -*- coding: utf-8 -*-
r"""
Design Matrix
=============

The :math:`j`\ th column of the design matrix :math:`\bf A` in Am=d
contains the partial derivatives of the synthetic waveforms with respect to
the :math:`j`\ th unknown parameter. Its rows are those of the data vector
(see :mod:`waveinv.inversion.dvector`): the partial derivative computed for
the :math:`i`\ th time window fills the rows :math:`[s_i, s_i + n_i)`.

The matrix is weighted as :math:`\bf W A`, consistently with the data
vector, and each column is multiplied by the physical size of the
corresponding parameter (e.g., the volume of a voxel).

"""
import time
import warnings
from joblib import Parallel, delayed, effective_n_jobs
import numpy as np
from waveinv.exceptions import InputInconsistencyException
from waveinv.exceptions import MissingDataException
from waveinv.exceptions import MissingDataWarning
from waveinv.exceptions import NumericAnomalyWarning

__all__ = ['DesignMatrixAssembler']


class DesignMatrixAssembler:
    r"""
    Builds the (weighted) design matrix :math:`\bf A` in Am=d.

    Parameters
    ----------
    parameters : list of waveinv.inversion.records.UnknownParameter
        Unknown parameters, one per column of :math:`\bf A`

    dvector : waveinv.inversion.dvector.DataVectorAssembler
        Time windows, one block of rows of :math:`\bf A` each

    n_cpus : int, optional
        Number of threads used to fill the matrix. If `None` (default), all
        the available CPUs are used. When `n_cpus=1`, the matrix is filled in
        single-threaded mode without using joblib

    verbose : bool
        If `True` (default), information about the assembly is displayed in
        console


    Raises
    ------
    InputInconsistencyException
        If two unknown parameters share type and location


    Examples
    --------
    >>> from waveinv.inversion import DesignMatrixAssembler
    >>> builder = DesignMatrixAssembler(parameters, dvector)
    >>> a = builder.build_with_weight(partials, weights)

    .. note::
        The partial derivatives can include records that correspond to no
        time window or no unknown parameter: these are simply ignored.
    """

    def __init__(self, parameters, dvector, n_cpus=None, verbose=True):
        self.parameters = list(parameters)
        self.dvector = dvector
        self.n_cpus = effective_n_jobs(-1 if n_cpus is None else n_cpus)
        self.verbose = verbose
        self._columns = {}
        for column, parameter in enumerate(self.parameters):
            if parameter.key in self._columns:
                raise InputInconsistencyException(
                    parameter, message='Duplicate unknown parameters detected.'
                    )
            self._columns[parameter.key] = column


    def find_column(self, partial):
        r""" Column of :math:`\bf A` the partial derivative belongs to

        Parameters
        ----------
        partial : waveinv.inversion.records.PartialDerivativeRecord

        Returns
        -------
        int
            -1 if the partial derivative matches no unknown parameter
        """
        return self._columns.get(partial.parameter_key, -1)


    def _resolve(self, partials):
        """ Maps each (time window, column) pair to its partial derivative """
        targets = {}
        for partial in partials:
            column = self.find_column(partial)
            if column < 0:
                continue
            window = self.dvector.which_timewindow(partial)
            if window < 0:
                continue
            if (window, column) in targets:
                raise InputInconsistencyException(
                    targets[(window, column)], partial,
                    message='Two partials correspond to the same timewindow '
                            'and unknown parameter.'
                    )
            targets[(window, column)] = partial
        return targets


    def _fill(self, a, weights, window, column, partial):
        """ Writes one partial derivative into `a`. Returns the number of
        (time window, column) pairs filled, and whether nan were found
        """
        npts = self.dvector.npts_of_window(window)
        if not partial.has_data or partial.npts != npts:
            raise InputInconsistencyException(
                partial, '%d != %d'%(partial.npts, npts),
                message='Partial length does not match window length.'
                )
        data = partial.data
        has_nan = bool(np.isnan(data).any())
        start = self.dvector.start_point(window)
        scale = self.parameters[column].scale
        a[start: start + npts, column] = data * weights[window] * scale
        return 1, has_nan


    def build_with_weight(self, partials, weights=None, fill_empty_partial=False):
        r""" Builds :math:`\bf W A`

        Parameters
        ----------
        partials : iterable of waveinv.inversion.records.PartialDerivativeRecord
            Partial derivatives. Extra records are ignored, but every
            (time window, unknown parameter) pair must be covered

        weights : list of ndarray, optional
            One weighting vector per time window, see
            :meth:`waveinv.inversion.weighting.WeightAssigner.weigh`. If
            `None`, no weighting is applied

        fill_empty_partial : bool
            If `True`, the (time window, unknown parameter) pairs not covered
            by any partial derivative are filled with zeros, and a
            :class:`MissingDataWarning` is issued. Otherwise (default), a
            :class:`MissingDataException` is raised

        Returns
        -------
        ndarray of shape (dvector.total_npts, len(parameters))

        Raises
        ------
        InputInconsistencyException
            If a partial derivative has a length different from that of its
            time window, or if two partial derivatives correspond to the same
            (time window, unknown parameter) pair

        MissingDataException
            If some (time window, unknown parameter) pair is not covered and
            `fill_empty_partial` is `False`
        """
        dvector = self.dvector
        weights = dvector.check_weights(weights)
        t0 = time.time()
        targets = self._resolve(partials)
        a = np.zeros((dvector.total_npts, len(self.parameters)))

        tasks = [(window, column, partial)
                 for (window, column), partial in targets.items()]
        if self.n_cpus == 1:
            results = [self._fill(a, weights, *task) for task in tasks]
        else:
            results = Parallel(n_jobs=self.n_cpus, backend='threading')(
                delayed(self._fill)(a, weights, *task) for task in tasks
                )

        for (filled, has_nan), task in zip(results, tasks):
            if has_nan:
                warnings.warn('Caution partial is nan: %s'%task[2],
                              NumericAnomalyWarning)
        count = sum(filled for filled, _ in results)
        required = dvector.n_timewindow * len(self.parameters)
        if count != required:
            self._handle_missing(targets, count, required, fill_empty_partial)
        if self.verbose:
            print('A is built in %.1f s'%(time.time() - t0))
        return a


    def _handle_missing(self, targets, count, required, fill_empty_partial):
        listing = []
        for window in range(self.dvector.n_timewindow):
            missing = [self.parameters[column] for column in range(len(self.parameters))
                       if (window, column) not in targets]
            if missing:
                listing.append('%s : %d missing (%s)'%(
                    self.dvector.syn_record(window),
                    len(missing),
                    ', '.join(str(p) for p in missing)
                    ))
        nmissing = required - count
        if fill_empty_partial:
            warnings.warn('%d partials are missing, filled with 0'%nmissing,
                          MissingDataWarning)
            return
        if self.verbose:
            print('Printing timewindows with missing partials...')
            for line in listing:
                print(line)
        raise MissingDataException(
            *listing,
            message='Input partials are not enough: %d != %d * %d'%(
                count, self.dvector.n_timewindow, len(self.parameters))
            )

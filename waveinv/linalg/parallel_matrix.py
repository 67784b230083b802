#!/usr/bin/env python3
# -*- coding: utf-8 -*-
r"""
Parallel Dense Linear Algebra
=============================

The design matrix :math:`\bf A` of a waveform inversion is dense and very
tall: its rows are the samples of all the time windows in the data set
(:math:`10^5`-:math:`10^7`), its columns the unknown parameters
(:math:`10^2`-:math:`10^4`). The normal equations

.. math::

    {\bf A}^T {\bf A} \cdot {\bf m} = {\bf A}^T \cdot {\bf d}

are obtained through the products implemented in
:class:`ParallelMatrixEngine`. Each product is split into contiguous blocks
of rows (of the output, or of :math:`\bf A` when the product reduces over
its rows), and the blocks are distributed over a pool of threads via
`joblib`. Every block writes to its own region of the output, so that no
synchronization is needed except for the final join.

The partition only depends on the shape of the operands and on the block
size, not on the number of threads. The same operands therefore produce the
same result whatever the size of the pool.

:math:`{\bf A}^T {\bf A}` is symmetric: only the blocks on and above the
diagonal are computed, and then mirrored. The diagonal blocks are
obtained through the BLAS routine `dsyrk`, which fills a single triangle.
"""
import numpy as np
from joblib import Parallel, delayed, effective_n_jobs
from scipy.linalg.blas import dsyrk

__all__ = ['ParallelMatrixEngine']


def _row_blocks(nrows, block_size):
    """ Contiguous (start, stop) ranges of at most `block_size` rows """
    return [(start, min(start + block_size, nrows))
            for start in range(0, nrows, block_size)]


def _triangular_blocks(n, nblocks):
    """ Contiguous (start, stop) ranges of the rows of an upper-triangular
    n x n matrix, such that each range holds about the same number of
    elements
    """
    if n == 0:
        return []
    nblocks = max(1, min(n, nblocks))
    work = np.cumsum(np.arange(n, 0, -1, dtype=np.float64))
    targets = work[-1] * np.arange(1, nblocks) / nblocks
    inner = np.searchsorted(work, targets) + 1
    bounds = np.unique(np.concatenate(([0], inner, [n]))).astype(int)
    return [(int(i0), int(i1)) for i0, i1 in zip(bounds[:-1], bounds[1:])]


class ParallelMatrixEngine:
    r"""
    Dense matrix products parallelized over blocks of rows.

    Parameters
    ----------
    n_cpus : int, optional
        Number of threads. If `None` (default), all the available CPUs are
        used. Negative values follow the joblib convention (-1 means all
        the CPUs, -2 all but one, etc.). When the resulting number is 1,
        the blocks are processed sequentially without using joblib

    block_size : int
        Number of rows of each block in :meth:`multiply`, :meth:`operate`,
        :meth:`pre_multiply` and :meth:`transpose`. Default is 8192

    ata_block_size : int
        Approximate number of columns of :math:`\bf A` handled by each block
        in :meth:`compute_ata`. Default is 64


    Attributes
    ----------
    n_cpus : int
        Number of threads actually used


    Examples
    --------
    >>> import numpy as np
    >>> from waveinv.linalg import ParallelMatrixEngine
    >>> engine = ParallelMatrixEngine(n_cpus=4)
    >>> a = np.random.rand(100000, 300)
    >>> d = np.random.rand(100000)
    >>> ata = engine.compute_ata(a)
    >>> atd = engine.pre_multiply(d, a)

    .. note::
        Any exception raised inside a block (floating-point overflow and
        invalid operations included) aborts the whole operation: nothing is
        returned.
    """

    def __init__(self, n_cpus=None, block_size=8192, ata_block_size=64):
        self.n_cpus = effective_n_jobs(-1 if n_cpus is None else n_cpus)
        if block_size < 1 or ata_block_size < 1:
            raise ValueError('Block sizes should be positive integers')
        self.block_size = int(block_size)
        self.ata_block_size = int(ata_block_size)


    def __repr__(self):
        return str(self)


    def __str__(self):
        string = 'ParallelMatrixEngine(n_cpus=%d, '%self.n_cpus
        string += 'block_size=%d, '%self.block_size
        string += 'ata_block_size=%d)'%self.ata_block_size
        return string


    def _run(self, func, blocks):
        """ Applies `func(start, stop)` to every block and waits for all of
        them to complete
        """
        def guarded(start, stop):
            with np.errstate(over='raise', invalid='raise'):
                return func(start, stop)

        if self.n_cpus == 1 or len(blocks) < 2:
            return [guarded(start, stop) for start, stop in blocks]
        return Parallel(n_jobs=self.n_cpus, backend='threading')(
            delayed(guarded)(start, stop) for start, stop in blocks
            )


    @staticmethod
    def _as_matrix(a):
        a = np.asarray(a, dtype=np.float64)
        if a.ndim != 2:
            raise ValueError('A 2-D array is required, got %d-D'%a.ndim)
        return a


    @staticmethod
    def _as_vector(v):
        v = np.asarray(v, dtype=np.float64)
        if v.ndim != 1:
            raise ValueError('A 1-D array is required, got %d-D'%v.ndim)
        return v


    def multiply(self, a, b):
        r""" Matrix product :math:`\bf A \cdot B`

        Parameters
        ----------
        a : ndarray of shape (m, n)

        b : ndarray of shape (n, p)

        Returns
        -------
        ndarray of shape (m, p)
        """
        a = self._as_matrix(a)
        b = self._as_matrix(b)
        if a.shape[1] != b.shape[0]:
            raise ValueError('Shapes %s and %s are not aligned'%(a.shape, b.shape))
        out = np.zeros((a.shape[0], b.shape[1]))

        def block(start, stop):
            out[start: stop] = a[start: stop] @ b

        self._run(block, _row_blocks(a.shape[0], self.block_size))
        return out


    def transpose(self, a):
        """ Transposed copy of `a`

        Parameters
        ----------
        a : ndarray of shape (m, n)

        Returns
        -------
        ndarray of shape (n, m)
        """
        a = self._as_matrix(a)
        out = np.empty((a.shape[1], a.shape[0]))

        def block(start, stop):
            out[:, start: stop] = a[start: stop].T

        self._run(block, _row_blocks(a.shape[0], self.block_size))
        return out


    def operate(self, a, v):
        r""" Matrix-vector product :math:`\bf A \cdot v`

        Parameters
        ----------
        a : ndarray of shape (m, n)

        v : ndarray of shape (n,)

        Returns
        -------
        ndarray of shape (m,)
        """
        a = self._as_matrix(a)
        v = self._as_vector(v)
        if v.size != a.shape[1]:
            raise ValueError('Vector of length %d cannot be applied to a matrix'
                             ' with %d columns'%(v.size, a.shape[1]))
        out = np.zeros(a.shape[0])

        def block(start, stop):
            out[start: stop] = a[start: stop] @ v

        self._run(block, _row_blocks(a.shape[0], self.block_size))
        return out


    def pre_multiply(self, v, a):
        r""" Vector-matrix product :math:`{\bf v}^T \cdot \bf A`, i.e.
        :math:`{\bf A}^T \cdot \bf v`

        Each block of rows of `a` yields a partial sum; the partial sums are
        added up in block order once all the blocks are done.

        Parameters
        ----------
        v : ndarray of shape (m,)

        a : ndarray of shape (m, n)

        Returns
        -------
        ndarray of shape (n,)
        """
        a = self._as_matrix(a)
        v = self._as_vector(v)
        if v.size != a.shape[0]:
            raise ValueError('Vector of length %d cannot pre-multiply a matrix'
                             ' with %d rows'%(v.size, a.shape[0]))
        blocks = _row_blocks(a.shape[0], self.block_size)
        partials = np.zeros((len(blocks), a.shape[1]))

        def block(start, stop):
            partials[start // self.block_size] = v[start: stop] @ a[start: stop]

        self._run(block, blocks)
        return partials.sum(axis=0)


    def compute_ata(self, a):
        r""" Symmetric product :math:`{\bf A}^T \cdot \bf A`

        The rows of the result are split into blocks holding about the same
        number of upper-triangular elements. For the block of rows
        :math:`[i_0, i_1)`, the diagonal sub-block is computed via `dsyrk`
        and the sub-block to its right via a matrix product. The lower
        triangle is then filled by symmetry.

        Parameters
        ----------
        a : ndarray of shape (m, n)

        Returns
        -------
        ndarray of shape (n, n)

        Raises
        ------
        FloatingPointError
            If the product overflows while `a` is finite, as in the other
            operations of the engine
        """
        a = self._as_matrix(a)
        n = a.shape[1]
        upper = np.zeros((n, n))
        if a.shape[0] == 0 or n == 0:
            return upper
        nblocks = -(-n // self.ata_block_size)

        def block(start, stop):
            ai = a[:, start: stop]
            diagonal = dsyrk(1.0, ai, trans=1, lower=0)
            # dsyrk is blind to np.errstate
            if not np.isfinite(np.triu(diagonal)).all() and np.isfinite(ai).all():
                raise FloatingPointError('overflow encountered in dsyrk, '
                                         'columns %d-%d'%(start, stop))
            upper[start: stop, start: stop] = diagonal
            if stop < n:
                upper[start: stop, stop:] = ai.T @ a[:, stop:]

        self._run(block, _triangular_blocks(n, nblocks))
        upper = np.triu(upper)
        return upper + np.triu(upper, 1).T

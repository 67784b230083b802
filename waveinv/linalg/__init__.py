r"""
==================================================
Parallel Linear Algebra (:mod:`waveinv.linalg`)
==================================================

Dense matrix products needed to reduce the (very tall) system
:math:`\bf A \cdot m = d` to the normal equations
:math:`{\bf A}^T {\bf A} \cdot {\bf m} = {\bf A}^T \cdot {\bf d}`. The
products are parallelized over blocks of rows through a pool of threads,
see :class:`waveinv.linalg.parallel_matrix.ParallelMatrixEngine`.
"""
from .parallel_matrix import *

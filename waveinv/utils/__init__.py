"""
===========================================
Utility Functions (:mod:`waveinv.utils`)
===========================================

This module provides support for several helper functions used while
assembling the normal equations, and for the thin I/O layer that
persists their products. These include:

- Epicentral distances (in degrees) between points on the Earth's surface,
  building on `ObsPy <https://docs.obspy.org/>`_

- Norms and variance of the data vectors

- Plain-text persistence of vectors and matrices (one value per line for
  vectors, one whitespace-separated row per line for matrices, comment
  lines starting with `#`)

- Plain-text persistence of per-entry weights and of the data information
  (number of independent data, norm of d, norm of the observed vector)

- Pickle helpers

"""
from ._utils import *

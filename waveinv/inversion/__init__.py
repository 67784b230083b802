r"""
===============================================
Assembly of Am=d (:mod:`waveinv.inversion`)
===============================================

This module provides support for assembling the linear problem
:math:`\bf A \cdot m = d` of a waveform inversion, and its normal equations.
It includes:

- Records of observed, synthetic, and partial-derivative waveforms, and of
  the unknown parameters (:mod:`waveinv.inversion.records`)

- Pairing of observed and synthetic waveforms into time windows, and the
  (weighted) data vector (:mod:`waveinv.inversion.dvector`)

- Weighting of the time windows (:mod:`waveinv.inversion.weighting`)

- The (weighted) design matrix (:mod:`waveinv.inversion.amatrix`)

- The normal equations (:mod:`waveinv.inversion.assembly`)

"""
from .records import *
from .dvector import *
from .weighting import *
from .amatrix import *
from .assembly import *

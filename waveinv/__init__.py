#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
=======
WaveInv
=======
"""

from .__version__ import __version__
from .inversion.assembly import NormalEquationAssembler
from .linalg.parallel_matrix import ParallelMatrixEngine
from . import exceptions
from . import inversion
from . import linalg
from . import utils

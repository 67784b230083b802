#!/usr/bin/env python
"""
WaveInv: normal-equation assembly for waveform tomography
"""

import os
from setuptools import setup, find_packages



def readme():
	path = os.path.join(here, "README.md")
	if not os.path.exists(path):
		return __doc__
	with open(path, "r") as f:
		return f.read()


here = os.path.abspath(os.path.dirname(__file__))
about = {}
with open(os.path.join(here, 'waveinv', "__version__.py")) as f:
	exec(f.read(), about)


pkg_metadata = dict(
		name="waveinv",
		version=about["__version__"],
		description="Assembly of the normal equations for waveform tomography",
		long_description=readme(),
		long_description_content_type="text/markdown",
		license="MIT",
		packages=find_packages(exclude=["tests", "tests.*"]),
		python_requires=">=3.8",
		keywords="Waveform Inversion, Seismic Tomography, Normal Equations, Partial Derivatives",
		install_requires=['obspy>=1.1.0',
						  'numpy>=1.16.0',
						  'scipy>=1.3.0',
						  'joblib>=1.0.0'],
		extras_require={'test': ['pytest>=6.0']},
		classifiers=["License :: OSI Approved :: MIT License",
					 "Programming Language :: Python :: 3"]
		)

setup(**pkg_metadata)

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""


"""

import os
import pickle
import numpy as np
from obspy.geodetics import locations2degrees

__all__ = ['epicentral_distance',
           'linf_norm',
           'compute_variance',
           'read_information_lines',
           'write_vector',
           'read_vector',
           'write_matrix',
           'read_matrix',
           'write_dinfo',
           'read_dinfo',
           'write_entry_weights',
           'read_entry_weights',
           'load_pickle',
           'save_pickle']
COMMENT_FLAGS = ('#', '!')


def epicentral_distance(lat1, lon1, lat2, lon2):
    """
    Calculates the epicentral distance (in degrees) between coordinate
    points (in degrees). This function calls directly the obspy
    `locations2degrees`, which works on both scalars and arrays.

    Parameters
    ----------
    lat1, lon1, lat2, lon2 : float or array-like of shape (n,)
        Coordinates of the points on the Earth's surface, in degrees.

    Returns
    -------
    Epicentral distance (in degrees)
        If the input is an array (or list) of coordinates, an array of
        distances is returned
    """
    return locations2degrees(np.asarray(lat1, dtype=np.float64),
                             np.asarray(lon1, dtype=np.float64),
                             np.asarray(lat2, dtype=np.float64),
                             np.asarray(lon2, dtype=np.float64))


def linf_norm(x):
    """ Maximum absolute value of `x`. nan is returned if `x` contains nan

    Parameters
    ----------
    x : array-like of shape (n,)

    Returns
    -------
    float
    """
    x = np.asarray(x, dtype=np.float64)
    if not x.size:
        return 0.
    return float(np.max(np.abs(x)))


def compute_variance(d, obs):
    r""" Normalized variance :math:`|d|^2 / |obs|^2`

    Parameters
    ----------
    d : ndarray of shape (n,)
        Residual vector (weighted)

    obs : ndarray of shape (n,)
        Observed vector (weighted)

    Returns
    -------
    float

    Raises
    ------
    ValueError
        If `obs` is empty or identically zero
    """
    d = np.asarray(d, dtype=np.float64)
    obs = np.asarray(obs, dtype=np.float64)
    obs_power = np.dot(obs, obs)
    if obs_power == 0:
        raise ValueError('The variance is undefined for a null observed vector')
    return float(np.dot(d, d) / obs_power)


def read_information_lines(path):
    """ Reads the non-comment lines of a text file

    Lines starting with `#` or `!`, and blank lines, are skipped. The
    remaining lines are returned after stripping the leading and trailing
    whitespace.

    Parameters
    ----------
    path : str
        Absolute path to the file

    Returns
    -------
    list of str
    """
    lines = []
    with open(path, 'r') as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith(COMMENT_FLAGS):
                continue
            lines.append(line)
    return lines


def write_vector(vector, path, header=None):
    """ Writes a vector to disk, one value per line

    Parameters
    ----------
    vector : array-like of shape (n,)

    path : str
        Absolute path to the resulting file

    header : str, optional
        If not `None`, it is written on top of the file as a comment line
    """
    with open(path, 'w') as f:
        if header is not None:
            f.write('# %s\n'%header)
        for value in np.asarray(vector, dtype=np.float64):
            f.write('%r\n'%float(value))


def read_vector(path):
    """ Reads a vector written by :func:`write_vector`

    Parameters
    ----------
    path : str
        Absolute path to the file

    Returns
    -------
    ndarray of shape (n,)
    """
    return np.array([float(line) for line in read_information_lines(path)])


def write_matrix(matrix, path, header=None):
    """ Writes a matrix to disk, one whitespace-separated row per line

    Parameters
    ----------
    matrix : array-like of shape (m, n)

    path : str
        Absolute path to the resulting file

    header : str, optional
        If not `None`, it is written on top of the file as a comment line
    """
    matrix = np.atleast_2d(np.asarray(matrix, dtype=np.float64))
    with open(path, 'w') as f:
        if header is not None:
            f.write('# %s\n'%header)
        for row in matrix:
            f.write(' '.join(repr(float(value)) for value in row))
            f.write('\n')


def read_matrix(path):
    """ Reads a matrix written by :func:`write_matrix`

    Parameters
    ----------
    path : str
        Absolute path to the file

    Returns
    -------
    ndarray of shape (m, n)

    Raises
    ------
    ValueError
        If the rows do not have the same number of columns
    """
    rows = [[float(value) for value in line.split()]
            for line in read_information_lines(path)]
    ncols = set(len(row) for row in rows)
    if len(ncols) > 1:
        raise ValueError('Rows of different length found in %s'%path)
    return np.array(rows, dtype=np.float64)


def write_dinfo(num_independent, d_norm, obs_norm, path):
    """ Writes the information on the data vector used downstream for
    model selection

    Parameters
    ----------
    num_independent : float
        Number of independent data

    d_norm, obs_norm : float
        Norms of the (weighted) residual and observed vectors

    path : str
        Absolute path to the resulting file
    """
    with open(path, 'w') as f:
        f.write('# numIndependent dNorm obsNorm\n')
        f.write('%r %r %r\n'%(float(num_independent),
                              float(d_norm),
                              float(obs_norm)))


def read_dinfo(path):
    """ Reads a file written by :func:`write_dinfo`

    Returns
    -------
    num_independent, d_norm, obs_norm : float
    """
    values = read_information_lines(path)[0].split()
    return tuple(float(value) for value in values[:3])


def write_entry_weights(weights, path):
    """ Writes the weights associated with each data entry

    Parameters
    ----------
    weights : dict
        The keys are tuples (event, station, component), the values the
        corresponding weights

    path : str
        Absolute path to the resulting file
    """
    with open(path, 'w') as f:
        f.write('# event station component weight\n')
        for (event, station, component), weight in sorted(weights.items()):
            f.write('%s %s %s %r\n'%(event, station, component, float(weight)))


def read_entry_weights(path):
    """ Reads a file written by :func:`write_entry_weights`

    Returns
    -------
    dict
        The keys are tuples (event, station, component), the values the
        corresponding weights
    """
    weights = {}
    for line in read_information_lines(path):
        event, station, component, weight = line.split()[:4]
        weights[(event, station, component.upper())] = float(weight)
    return weights


def load_pickle(path):
    """ Loads a .pickle file

    Parameters
    ----------
    path : str
        Absolute path to the file

    Returns
    -------
    Object contained in the .pickle file
    """
    with open(path, 'rb') as f:
        return pickle.load(f)


def save_pickle(file, obj):
    """ Saves an object to a .pickle file

    Parameters
    ----------
    file : str
        Absolute path to the resulting file

    obj : python object
        Object to be saved (see documentation on the pickle module to know
        more on which Python objects can be stored into .pickle files)
    """
    os.makedirs(os.path.dirname(os.path.abspath(file)), exist_ok=True)
    with open(file, 'wb') as f:
        pickle.dump(obj, f)
